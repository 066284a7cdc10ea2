"""Records persisted by the backend-as-a-service for conversations."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

Sender = Literal["user", "ai"]


class ChatSessionRecord(BaseModel):
    """One conversation thread between a user and a persona."""

    id: str
    user_id: str
    persona_id: str
    created_at: datetime
    last_message_at: Optional[datetime] = None


class MessageRecord(BaseModel):
    """One stored message of a thread."""

    id: str
    chat_id: Optional[str] = None
    content: str
    sender: Sender
    created_at: datetime
    image_url: Optional[str] = None

    def to_completion_message(self) -> dict:
        """Role/content form sent to the relay."""
        role = "user" if self.sender == "user" else "assistant"
        return {"role": role, "content": self.content}
