"""
Chat router: the knowledge base assistant.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from app.dependencies import get_chat_service, get_current_user, get_logger
from app.errors import MediaAppError, error_response
from app.models import ChatRequest, ChatResponse
from app.services.chat_service import ChatService


router = APIRouter(prefix="/api", tags=["Chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest = Body(...),
    user: Dict[str, Any] = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    logger: logging.LoggerAdapter = Depends(get_logger),
):
    """
    Answer a message in one of the user's conversations, using the selected
    media items and transcripts as context.

    Requires: Authorization: Bearer <Supabase access token>
    """
    try:
        reply = await chat_service.reply(
            user_id=user["id"],
            conversation_id=body.conversation_id,
            message=body.message,
            context_media_ids=body.context_media_ids,
            context_transcript_ids=body.context_transcript_ids,
        )
    except MediaAppError as e:
        logger.error(f"Chat failed: {e.message}")
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Unexpected chat error: {str(e)}")
        return error_response(500, f"Failed to get response: {str(e)}")

    return {"success": True, "message": reply["message"], "metadata": reply["metadata"]}
