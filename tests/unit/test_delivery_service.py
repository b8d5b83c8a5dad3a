"""Unit tests for the delivery webhook client."""

import json
import pytest
import requests
from unittest.mock import MagicMock

from app.errors import DeliveryError
from app.services.delivery_service import DeliveryService


@pytest.fixture
def webhook_settings(settings):
    return settings.model_copy(update={"delivery_webhook_url": "https://hooks.example.com/drive"})


@pytest.fixture
def docx_file(tmp_path):
    path = tmp_path / "talk.docx"
    path.write_bytes(b"PK")
    return str(path)


@pytest.mark.asyncio
async def test_posts_file_and_metadata(webhook_settings, docx_file):
    session = MagicMock()
    session.post.return_value.ok = True
    session.post.return_value.json.return_value = {"id": "drive-1"}

    result = await DeliveryService(webhook_settings, session=session).deliver(docx_file, {"title": "Talk"})

    assert result == {"id": "drive-1"}
    args, kwargs = session.post.call_args
    assert args[0] == "https://hooks.example.com/drive"
    assert kwargs["data"]["fileName"] == "talk.docx"
    assert json.loads(kwargs["data"]["metadata"]) == {"title": "Talk"}
    assert kwargs["files"]["file"][0] == "talk.docx"


@pytest.mark.asyncio
async def test_text_response(webhook_settings, docx_file):
    session = MagicMock()
    session.post.return_value.ok = True
    session.post.return_value.json.side_effect = ValueError()
    session.post.return_value.text = "Accepted"

    assert await DeliveryService(webhook_settings, session=session).deliver(docx_file) == "Accepted"


@pytest.mark.asyncio
async def test_not_configured(settings, docx_file):
    with pytest.raises(DeliveryError):
        await DeliveryService(settings, session=MagicMock()).deliver(docx_file)


@pytest.mark.asyncio
async def test_http_failure(webhook_settings, docx_file):
    session = MagicMock()
    session.post.return_value.ok = False
    session.post.return_value.status_code = 502

    with pytest.raises(DeliveryError) as excinfo:
        await DeliveryService(webhook_settings, session=session).deliver(docx_file)
    assert "HTTP 502" in excinfo.value.message


@pytest.mark.asyncio
async def test_unreachable(webhook_settings, docx_file):
    session = MagicMock()
    session.post.side_effect = requests.exceptions.ConnectionError("refused")

    with pytest.raises(DeliveryError):
        await DeliveryService(webhook_settings, session=session).deliver(docx_file)
