"""
Chat assistant over the user's knowledge base.

Builds a prompt from the conversation history plus any media items and
transcripts the user pinned as context, then calls the OpenAI chat
completions API.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from app.config import Settings
from app.errors import ChatProviderError, InvalidRequest
from app.services.supabase_service import KnowledgeBaseStore
from app.utils.logging_utils import APP_LOGGER_NAME


logger = logging.getLogger(APP_LOGGER_NAME)

SYSTEM_PROMPT = (
    "You are a helpful assistant for a personal media knowledge base. "
    "Answer using the provided media details and transcripts when they are relevant. "
    "If the answer is not in the provided context, say so and answer from general knowledge."
)


def build_context_block(media_items: List[Dict[str, Any]], transcripts: List[Dict[str, Any]],
                        char_limit: int) -> Optional[str]:
    """
    Render pinned media items and transcripts as one system message.

    Transcript bodies share char_limit between them; anything past it is cut.
    """
    if not media_items and not transcripts:
        return None

    sections = []
    for item in media_items:
        sections.append(
            f"Media: {item.get('title') or 'Untitled'} "
            f"({item.get('media_type') or 'unknown'}, source: {item.get('source_url') or 'n/a'})"
        )

    remaining = max(char_limit, 0)
    for transcript in transcripts:
        content = (transcript.get('content') or '').strip()
        if remaining <= 0:
            content = ''
        elif len(content) > remaining:
            content = content[:remaining] + ' [truncated]'
        remaining -= len(content)
        sections.append(f"Transcript: {transcript.get('title') or 'Untitled'}\n{content}")

    return "Context from the user's knowledge base:\n\n" + "\n\n".join(sections)


def _drop_pending_user_message(history: List[Dict[str, Any]], message: str) -> List[Dict[str, Any]]:
    # The client stores the user's message before calling the API
    if history and history[-1].get('role') == 'user' and history[-1].get('content') == message:
        return history[:-1]
    return history


class ChatService:
    def __init__(self, settings: Settings, store: KnowledgeBaseStore,
                 session: Optional[requests.Session] = None):
        self.settings = settings
        self.store = store
        self.session = session or requests.Session()

    def _complete(self, messages: List[Dict[str, str]]) -> requests.Response:
        return self.session.post(
            f"{self.settings.openai_base_url.rstrip('/')}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.settings.openai_api_key}",
                "Content-Type": "application/json",
            },
            json={"model": self.settings.chat_model, "messages": messages},
            timeout=self.settings.chat_timeout,
        )

    async def reply(
        self,
        user_id: str,
        conversation_id: str,
        message: Optional[str],
        context_media_ids: Optional[List[str]] = None,
        context_transcript_ids: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Produce the assistant's reply for one user message.

        Returns:
            {"message": reply text, "metadata": {model, tokens, ...}}

        Raises:
            InvalidRequest: Empty message or unknown conversation
            ChatProviderError: Missing API key or provider failure
            PersistenceError: Conversation context could not be loaded
        """
        message = (message or '').strip()
        if not message:
            raise InvalidRequest("Message is required")
        if not self.settings.openai_api_key:
            raise ChatProviderError("Chat unavailable: OPENAI_API_KEY not configured")

        conversation = await self.store.get_conversation(conversation_id, user_id)
        if conversation is None:
            raise InvalidRequest("Conversation not found", status_code=404)

        history = await self.store.get_recent_messages(conversation_id, self.settings.chat_history_limit)
        history = _drop_pending_user_message(history, message)
        media_items = await self.store.get_media_items(list(context_media_ids or []), user_id)
        transcripts = await self.store.get_transcripts(list(context_transcript_ids or []), user_id)

        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        context_block = build_context_block(media_items, transcripts, self.settings.chat_context_char_limit)
        if context_block:
            messages.append({"role": "system", "content": context_block})
        messages.extend(
            {"role": entry["role"], "content": entry["content"]}
            for entry in history
            if entry.get("role") in ("user", "assistant") and entry.get("content")
        )
        messages.append({"role": "user", "content": message})

        logger.info(
            f"Chat request for conversation {conversation_id}: {len(history)} history messages, "
            f"{len(media_items)} media, {len(transcripts)} transcripts"
        )
        try:
            response = await asyncio.to_thread(self._complete, messages)
        except requests.exceptions.Timeout:
            raise ChatProviderError(f"Chat provider timed out after {self.settings.chat_timeout}s")
        except requests.exceptions.RequestException as e:
            raise ChatProviderError(f"Chat provider request failed: {str(e)}")

        if response.status_code != 200:
            try:
                error_message = response.json().get('error', {}).get('message', response.text)
            except ValueError:
                error_message = response.text
            raise ChatProviderError(f"OpenAI API error (HTTP {response.status_code}): {error_message}")

        try:
            result = response.json()
            reply = result['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError):
            raise ChatProviderError("Chat provider returned an unexpected response")

        usage = result.get('usage') or {}
        return {
            "message": reply,
            "metadata": {
                "model": result.get('model', self.settings.chat_model),
                "tokens": usage.get('total_tokens'),
                "promptTokens": usage.get('prompt_tokens'),
                "completionTokens": usage.get('completion_tokens'),
                "contextMediaCount": len(media_items),
                "contextTranscriptCount": len(transcripts),
            },
        }
