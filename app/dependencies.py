"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- Accessing the services built at startup (stored on app.state)
- Bearer token authentication against Supabase Auth
- Request-scoped loggers carrying a request id
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Header, HTTPException, Request

from app.config import Settings
from app.errors import AuthError, PersistenceError
from app.services.billing_service import BillingService
from app.services.chat_service import ChatService
from app.services.delivery_service import DeliveryService
from app.services.media_service import MediaService
from app.services.supabase_service import KnowledgeBaseStore
from app.utils.logging_utils import get_request_logger


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_media_service(request: Request) -> MediaService:
    return request.app.state.media_service


def get_delivery_service(request: Request) -> DeliveryService:
    return request.app.state.delivery_service


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_billing_service(request: Request) -> BillingService:
    return request.app.state.billing_service


def get_logger(x_request_id: Optional[str] = Header(None)) -> logging.LoggerAdapter:
    """Request logger; honours an incoming X-Request-ID header."""
    return get_request_logger(x_request_id[:32] if x_request_id else None)


def parse_bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an "Authorization: Bearer <token>" header.

    Raises:
        HTTPException 401 if the header is missing or malformed
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header format. Expected: Bearer <token>")
    return parts[1].strip()


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Dict[str, Any]:
    """
    Dependency resolving the Supabase user behind a bearer token.

    Raises:
        HTTPException 401 if the token is missing or invalid
        HTTPException 503 if Supabase is not configured
    """
    token = parse_bearer_token(authorization)
    store: KnowledgeBaseStore = request.app.state.store
    if not store.configured:
        raise HTTPException(
            status_code=503,
            detail="Authentication unavailable: Supabase not configured"
        )
    try:
        return await store.get_user_from_token(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=e.message)
