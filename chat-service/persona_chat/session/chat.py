"""Conversation state for one user and one persona.

`initialize()` resolves which thread is active: an explicitly selected one,
else the most recent thread started today. When neither exists, no thread is
created until the first message is sent.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from persona_chat.core.logger import setup_logger
from persona_chat.session.models import MessageRecord
from persona_chat.session.personas import Persona, system_prompt_for
from persona_chat.session.relay_client import RelayClient, RelayClientError
from persona_chat.session.store import ChatStore, ChatStoreError

logger = setup_logger("persona_chat.session.chat")


class SessionBootstrapError(Exception):
    """The active thread could not be resolved."""


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class ChatSession:
    """Sends messages to a persona and keeps the visible transcript in step with the backend."""

    def __init__(
        self,
        store: ChatStore,
        relay: RelayClient,
        user_id: str,
        persona: Persona,
        on_reply: Optional[Callable[[str], Awaitable[None]]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.relay = relay
        self.user_id = user_id
        self.persona = persona
        self.on_reply = on_reply
        self._clock = clock

        self.session_id: Optional[str] = None
        self.initialized = False
        self.messages: List[MessageRecord] = []
        self.input_text = ""
        self.is_loading = False
        self.error: Optional[str] = None

    async def initialize(self, session_id: Optional[str] = None) -> Optional[str]:
        """Resolve the active thread and load its messages.

        Raises
        ------
        SessionBootstrapError
            When the backend cannot be queried.
        """
        self.initialized = False
        self.session_id = None
        self.messages = []
        try:
            session = None
            if session_id:
                session = await self.store.get_session(session_id)
            if session is None:
                session = await self.store.find_latest_session(
                    self.user_id, self.persona.id, start_of_day(self._clock())
                )
            if session is not None:
                logger.info("Resuming session %s", session.id)
                self.session_id = session.id
                self.messages = await self.store.list_messages(session.id)
        except ChatStoreError as exc:
            raise SessionBootstrapError(f"Failed to initialize chat session: {exc}") from exc

        self.initialized = True
        return self.session_id

    async def _ensure_session(self) -> str:
        if self.session_id is not None:
            if await self.store.get_session(self.session_id) is not None:
                return self.session_id
            logger.info("Session %s not found, creating a new one", self.session_id)
        session = await self.store.create_session(self.user_id, self.persona.id)
        self.session_id = session.id
        return session.id

    def history(self) -> List[dict]:
        return [m.to_completion_message() for m in self.messages]

    async def send_message(self) -> Optional[MessageRecord]:
        """Send `input_text` and return the stored reply.

        On a relay or backend failure the input text is restored, `error` is
        set and None is returned. `is_loading` is cleared in every case.
        """
        text = self.input_text.strip()
        if not text or not self.initialized:
            return None

        self.input_text = ""
        self.error = None
        self.is_loading = True
        try:
            session_id = await self._ensure_session()
            # the user message is stored only after the relay answered
            history = self.history() + [{"role": "user", "content": text}]
            reply = await self.relay.complete(history, system_prompt_for(self.persona))

            user_message = await self.store.insert_message(session_id, text, "user")
            self.messages.append(user_message)
            return await self._store_reply(session_id, reply)
        except (RelayClientError, ChatStoreError) as exc:
            logger.error("Error sending message: %s", exc)
            self.input_text = text
            self.error = str(exc)
            return None
        except Exception:
            self.input_text = text
            raise
        finally:
            self.is_loading = False

    async def send_image(
        self, image: bytes, mime_type: str, filename: str = "image"
    ) -> Optional[MessageRecord]:
        """Send an image with `input_text` as its caption and return the stored reply."""
        if not self.initialized:
            return None
        text = self.input_text.strip()
        self.input_text = ""
        self.error = None
        self.is_loading = True
        try:
            envelope = await self.relay.describe_image(
                image,
                mime_type,
                content=text or None,
                system_prompt=system_prompt_for(self.persona),
                filename=filename,
            )
            session_id = await self._ensure_session()
            user_message = await self.store.insert_message(
                session_id,
                envelope.userMessage.content,
                "user",
                image_url=envelope.userMessage.image_url,
            )
            self.messages.append(user_message)
            return await self._store_reply(session_id, envelope.aiResponse)
        except (RelayClientError, ChatStoreError) as exc:
            logger.error("Error sending image: %s", exc)
            self.input_text = text
            self.error = str(exc)
            return None
        except Exception:
            self.input_text = text
            raise
        finally:
            self.is_loading = False

    async def _store_reply(self, session_id: str, reply: str) -> MessageRecord:
        ai_message = await self.store.insert_message(session_id, reply, "ai")
        self.messages.append(ai_message)
        try:
            await self.store.touch_session(session_id)
        except ChatStoreError as exc:
            logger.warning("Error updating session timestamp: %s", exc)
        if self.on_reply is not None:
            await self.on_reply(reply)
        return ai_message
