"""
Supabase service module (persistence gateway).

This module provides utilities for:
- Supabase client initialization and access
- Saving processed media items and transcripts to the knowledge base
- Reading user profiles, monthly usage and chat context
- Resolving bearer tokens to Supabase users
- Updating subscription fields after billing events

supabase-py is synchronous, so every query runs in a worker thread.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from supabase import Client, create_client

from app.config import Settings
from app.errors import AuthError, PersistenceError
from app.utils.logging_utils import APP_LOGGER_NAME


logger = logging.getLogger(APP_LOGGER_NAME)

MEDIA_ITEMS_TABLE = "media_items"
TRANSCRIPTS_TABLE = "transcripts"
PROFILES_TABLE = "user_profiles"
CONVERSATIONS_TABLE = "chat_conversations"
MESSAGES_TABLE = "chat_messages"


def start_of_month(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class KnowledgeBaseStore:
    """Thin async wrapper around the Supabase tables this service writes and reads."""

    def __init__(self, settings: Settings, client: Optional[Client] = None):
        self.settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or self.settings.supabase_configured

    @property
    def client(self) -> Client:
        """
        Get the Supabase client, creating it on first use.

        Raises:
            PersistenceError: If SUPABASE_URL/SUPABASE_SERVICE_KEY are not set
        """
        if self._client is None:
            if not self.settings.supabase_configured:
                raise PersistenceError(
                    "Supabase not configured. Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables."
                )
            self._client = create_client(self.settings.supabase_url, self.settings.supabase_service_key)
            logger.info("Supabase client initialized")
        return self._client

    async def _execute(self, description: str, query: Callable[[Client], Any]) -> Any:
        client = self.client
        try:
            return await asyncio.to_thread(query, client)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to {description}: {str(e)}", detail=repr(e))

    # ------------------------------------------------------------------
    # Knowledge base writes
    # ------------------------------------------------------------------

    async def save_media_item(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a media_items row.

        Args:
            record: Column values; must include user_id

        Returns:
            The inserted row (with its generated id)

        Raises:
            PersistenceError: On any client or database failure
        """
        result = await self._execute(
            "save media item",
            lambda c: c.table(MEDIA_ITEMS_TABLE).insert(record).execute(),
        )
        if not result.data:
            raise PersistenceError("Failed to save media item: no row returned")
        return result.data[0]

    async def save_transcript(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a transcripts row and return it."""
        result = await self._execute(
            "save transcript",
            lambda c: c.table(TRANSCRIPTS_TABLE).insert(record).execute(),
        )
        if not result.data:
            raise PersistenceError("Failed to save transcript: no row returned")
        return result.data[0]

    # ------------------------------------------------------------------
    # Profiles and usage
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = await self._execute(
            "load user profile",
            lambda c: c.table(PROFILES_TABLE).select("*").eq("id", user_id).limit(1).execute(),
        )
        return result.data[0] if result.data else None

    async def count_monthly_media_items(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Number of media items the user created since the start of the current month."""
        since = start_of_month(now).isoformat()
        result = await self._execute(
            "count monthly media items",
            lambda c: (
                c.table(MEDIA_ITEMS_TABLE)
                .select("id", count="exact")
                .eq("user_id", user_id)
                .gte("created_at", since)
                .execute()
            ),
        )
        return result.count or 0

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> None:
        await self._execute(
            "update user profile",
            lambda c: c.table(PROFILES_TABLE).update(fields).eq("id", user_id).execute(),
        )

    async def update_profile_by_customer(self, customer_id: str, fields: Dict[str, Any]) -> None:
        await self._execute(
            "update user profile",
            lambda c: c.table(PROFILES_TABLE).update(fields).eq("stripe_customer_id", customer_id).execute(),
        )

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def get_user_from_token(self, token: str) -> Dict[str, Any]:
        """
        Resolve a Supabase access token to its user.

        Returns:
            Dict with id and email

        Raises:
            AuthError: If the token is invalid or expired
            PersistenceError: If Supabase is not configured
        """
        client = self.client
        try:
            response = await asyncio.to_thread(client.auth.get_user, token)
        except Exception as e:
            raise AuthError(f"Invalid or expired token: {str(e)}")

        user = getattr(response, "user", None)
        if user is None:
            raise AuthError("Invalid or expired token")
        return {"id": user.id, "email": getattr(user, "email", None)}

    # ------------------------------------------------------------------
    # Chat context
    # ------------------------------------------------------------------

    async def get_conversation(self, conversation_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        result = await self._execute(
            "load conversation",
            lambda c: (
                c.table(CONVERSATIONS_TABLE)
                .select("*")
                .eq("id", conversation_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            ),
        )
        return result.data[0] if result.data else None

    async def get_recent_messages(self, conversation_id: str, limit: int) -> List[Dict[str, Any]]:
        """Last `limit` messages of a conversation, oldest first."""
        result = await self._execute(
            "load chat history",
            lambda c: (
                c.table(MESSAGES_TABLE)
                .select("role, content, created_at")
                .eq("conversation_id", conversation_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            ),
        )
        return list(reversed(result.data or []))

    async def get_media_items(self, ids: List[str], user_id: str) -> List[Dict[str, Any]]:
        if not ids:
            return []
        result = await self._execute(
            "load media items",
            lambda c: c.table(MEDIA_ITEMS_TABLE).select("*").in_("id", ids).eq("user_id", user_id).execute(),
        )
        return result.data or []

    async def get_transcripts(self, ids: List[str], user_id: str) -> List[Dict[str, Any]]:
        if not ids:
            return []
        result = await self._execute(
            "load transcripts",
            lambda c: c.table(TRANSCRIPTS_TABLE).select("*").in_("id", ids).eq("user_id", user_id).execute(),
        )
        return result.data or []
