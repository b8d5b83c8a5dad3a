"""
Unit tests for the knowledge-base chat assistant.
"""

import pytest
import requests
from unittest.mock import MagicMock

from app.errors import ChatProviderError, InvalidRequest
from app.services.chat_service import SYSTEM_PROMPT, ChatService, build_context_block


def _completion(content="Sure.", total=30):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {
        "model": "gpt-4o-mini",
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": total, "prompt_tokens": 20, "completion_tokens": 10},
    }
    return response


@pytest.fixture
def chat_store(fake_store):
    fake_store.conversations["conv-1"] = {"id": "conv-1", "user_id": "user-1"}
    fake_store.messages["conv-1"] = [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "What was said?"},
    ]
    fake_store.media_items.append({
        "id": "media-1", "user_id": "user-1", "title": "Talk", "media_type": "text",
        "source_url": "https://youtube.com/watch?v=abc",
    })
    fake_store.transcripts.append({
        "id": "transcript-1", "user_id": "user-1", "title": "Talk", "content": "The talk covered caching.",
    })
    return fake_store


class TestBuildContextBlock:

    def test_empty(self):
        assert build_context_block([], [], 100) is None

    def test_lists_media_and_transcripts(self):
        block = build_context_block(
            [{"title": "Talk", "media_type": "video", "source_url": "https://x"}],
            [{"title": "Talk", "content": "body"}],
            100,
        )
        assert "Media: Talk (video, source: https://x)" in block
        assert "Transcript: Talk\nbody" in block

    def test_truncates_across_transcripts(self):
        block = build_context_block(
            [],
            [{"title": "A", "content": "a" * 8}, {"title": "B", "content": "b" * 8}],
            10,
        )
        assert "a" * 8 in block
        assert "bb [truncated]" in block
        assert "b" * 3 not in block


class TestReply:

    @pytest.mark.asyncio
    async def test_builds_prompt_and_returns_metadata(self, settings, chat_store):
        session = MagicMock()
        session.post.return_value = _completion("It covered caching.")
        service = ChatService(settings, chat_store, session=session)

        result = await service.reply("user-1", "conv-1", "What was said?", ["media-1"], ["transcript-1"])

        assert result["message"] == "It covered caching."
        assert result["metadata"]["tokens"] == 30
        assert result["metadata"]["contextMediaCount"] == 1
        assert result["metadata"]["contextTranscriptCount"] == 1

        messages = session.post.call_args.kwargs["json"]["messages"]
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert "The talk covered caching." in messages[1]["content"]
        # The pending user message is sent once, at the end
        assert [m["content"] for m in messages[2:]] == ["Hi", "Hello!", "What was said?"]

    @pytest.mark.asyncio
    async def test_other_users_context_is_ignored(self, settings, chat_store):
        chat_store.conversations["conv-2"] = {"id": "conv-2", "user_id": "user-2"}
        session = MagicMock()
        session.post.return_value = _completion()

        result = await ChatService(settings, chat_store, session=session).reply(
            "user-2", "conv-2", "Hello", ["media-1"], ["transcript-1"]
        )

        assert result["metadata"]["contextMediaCount"] == 0
        assert result["metadata"]["contextTranscriptCount"] == 0

    @pytest.mark.asyncio
    async def test_empty_message(self, settings, chat_store):
        with pytest.raises(InvalidRequest):
            await ChatService(settings, chat_store, session=MagicMock()).reply("user-1", "conv-1", "   ")

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, settings, chat_store):
        with pytest.raises(InvalidRequest) as excinfo:
            await ChatService(settings, chat_store, session=MagicMock()).reply("user-2", "conv-1", "Hi")
        assert excinfo.value.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_api_key(self, settings, chat_store):
        no_key = settings.model_copy(update={"openai_api_key": None})
        with pytest.raises(ChatProviderError):
            await ChatService(no_key, chat_store, session=MagicMock()).reply("user-1", "conv-1", "Hi")

    @pytest.mark.asyncio
    async def test_provider_http_error(self, settings, chat_store):
        session = MagicMock()
        session.post.return_value.status_code = 429
        session.post.return_value.json.return_value = {"error": {"message": "Rate limit reached"}}

        with pytest.raises(ChatProviderError) as excinfo:
            await ChatService(settings, chat_store, session=session).reply("user-1", "conv-1", "Hi")
        assert "Rate limit reached" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_provider_timeout(self, settings, chat_store):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.Timeout()

        with pytest.raises(ChatProviderError) as excinfo:
            await ChatService(settings, chat_store, session=session).reply("user-1", "conv-1", "Hi")
        assert "timed out" in excinfo.value.message
