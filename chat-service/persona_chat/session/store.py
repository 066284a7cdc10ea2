"""
Conversation persistence

`ChatStore` is the interface the chat session needs from the
backend-as-a-service; `SupabaseChatStore` implements it on the
`chat_sessions` and `messages` tables.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from supabase import Client

from persona_chat.core.logger import setup_logger
from persona_chat.session.models import ChatSessionRecord, MessageRecord, Sender

logger = setup_logger("persona_chat.session.store")


class ChatStoreError(Exception):
    """A backend read or write failed."""


class ChatStore(Protocol):
    """Backend operations used by `ChatSession`."""

    async def find_latest_session(
        self, user_id: str, persona_id: str, since: datetime
    ) -> Optional[ChatSessionRecord]:
        """Most recent thread for user and persona created at or after `since`."""

    async def get_session(self, session_id: str) -> Optional[ChatSessionRecord]:
        """Thread by id, or None when it no longer exists."""

    async def create_session(self, user_id: str, persona_id: str) -> ChatSessionRecord:
        """Insert a new thread."""

    async def list_messages(self, session_id: str) -> List[MessageRecord]:
        """Messages of a thread, oldest first."""

    async def insert_message(
        self, session_id: str, content: str, sender: Sender, image_url: Optional[str] = None
    ) -> MessageRecord:
        """Append a message to a thread."""

    async def touch_session(self, session_id: str) -> None:
        """Set the thread's `last_message_at` to now."""


class SupabaseChatStore:
    """
    Supabase-backed chat store

    The supabase client is synchronous; every call runs in a worker thread so
    the event loop is never blocked.
    """

    def __init__(self, client: Client):
        self.client = client

    async def _run(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as exc:
            logger.error("Supabase call %s failed: %s", fn.__name__, exc)
            raise ChatStoreError(str(exc)) from exc

    def _find_latest_session(self, user_id, persona_id, since):
        result = (
            self.client.table("chat_sessions")
            .select("*")
            .eq("user_id", user_id)
            .eq("persona_id", persona_id)
            .gte("created_at", since.isoformat())
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return ChatSessionRecord(**result.data[0]) if result.data else None

    def _get_session(self, session_id):
        result = self.client.table("chat_sessions").select("*").eq("id", session_id).execute()
        return ChatSessionRecord(**result.data[0]) if result.data else None

    def _create_session(self, user_id, persona_id):
        result = (
            self.client.table("chat_sessions")
            .insert({"user_id": user_id, "persona_id": persona_id})
            .execute()
        )
        return ChatSessionRecord(**result.data[0])

    def _list_messages(self, session_id):
        result = (
            self.client.table("messages")
            .select("*")
            .eq("chat_id", session_id)
            .order("created_at")
            .execute()
        )
        return [MessageRecord(**row) for row in result.data]

    def _insert_message(self, session_id, content, sender, image_url):
        row = {"chat_id": session_id, "content": content, "sender": sender}
        if image_url:
            row["image_url"] = image_url
        result = self.client.table("messages").insert(row).execute()
        return MessageRecord(**result.data[0])

    def _touch_session(self, session_id):
        self.client.table("chat_sessions").update(
            {"last_message_at": datetime.now(timezone.utc).isoformat()}
        ).eq("id", session_id).execute()

    async def find_latest_session(self, user_id, persona_id, since):
        return await self._run(self._find_latest_session, user_id, persona_id, since)

    async def get_session(self, session_id):
        return await self._run(self._get_session, session_id)

    async def create_session(self, user_id, persona_id):
        session = await self._run(self._create_session, user_id, persona_id)
        logger.info("New session created: %s", session.id)
        return session

    async def list_messages(self, session_id):
        return await self._run(self._list_messages, session_id)

    async def insert_message(self, session_id, content, sender, image_url=None):
        return await self._run(self._insert_message, session_id, content, sender, image_url)

    async def touch_session(self, session_id):
        await self._run(self._touch_session, session_id)
