"""Utilities that turn a normalized `ChatRequest` into provider payloads and back.

Conventions
-----------
- A system prompt is synthesized as the first message and is the only
  system message in the outbound sequence.
- Without a system prompt the caller's messages are forwarded unchanged.
- Images travel inline as `data:<mime>;base64,<bytes>` URIs.
"""

import base64
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from persona_chat.core.config import Settings
from persona_chat.relay.models import (
    ChatCompletionPayload,
    CompletionMessage,
    ContentPart,
    ImagePart,
    ImageURL,
    MultipartForm,
    RelayEnvelope,
    TextForm,
    TextPart,
    UserMessageEcho,
)


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URI."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_messages(
    messages: List[Any], system_prompt: Optional[str]
) -> List[Any]:
    """Prepend the system prompt, if any, to the caller's messages.

    Parameters
    ----------
    messages : list
        Caller-supplied messages in order.
    system_prompt : str | None
        Persona prompt; empty or None means "no system prompt".

    Returns
    -------
    list
        The outbound message sequence. When a prompt is given, any
        caller-supplied system messages are dropped so the synthesized one
        is the only system message.
    """
    if not system_prompt:
        return list(messages)
    rest = [
        m for m in messages if not (isinstance(m, dict) and m.get("role") == "system")
    ]
    return [{"role": "system", "content": system_prompt}, *rest]


def build_text_payload(form: TextForm, config: Settings) -> ChatCompletionPayload:
    """Chat-completion payload for the JSON path."""
    return ChatCompletionPayload(
        model=config.CHAT_MODEL,
        messages=build_messages(form.messages, form.system_prompt),
        temperature=config.CHAT_TEMPERATURE,
    )


def build_image_content(form: MultipartForm) -> List[ContentPart]:
    """Content parts of the user's image message: optional text, then the image."""
    parts: List[ContentPart] = []
    if form.content:
        parts.append(TextPart(text=form.content))
    parts.append(
        ImagePart(
            image_url=ImageURL(url=to_data_uri(form.image.data, form.image.mime_type))
        )
    )
    return parts


def build_image_payload(
    form: MultipartForm, config: Settings
) -> ChatCompletionPayload:
    """Chat-completion payload for the multipart path, using the vision model."""
    user_message = CompletionMessage(role="user", content=build_image_content(form))
    return ChatCompletionPayload(
        model=config.VISION_MODEL,
        messages=build_messages(
            [user_message.model_dump(mode="json")], form.system_prompt
        ),
        max_tokens=config.VISION_MAX_TOKENS,
    )


def extract_reply(data: Dict[str, Any]) -> str:
    """Pull the first choice's text out of a chat-completion response."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content.strip() if isinstance(content, str) else ""


def build_envelope(form: MultipartForm, data: Dict[str, Any]) -> RelayEnvelope:
    """Pair the echoed user message with the generated reply."""
    echo = UserMessageEcho(
        id=uuid4().hex,
        content=form.content or "",
        created_at=datetime.now(timezone.utc),
        image_url=to_data_uri(form.image.data, form.image.mime_type),
    )
    return RelayEnvelope(userMessage=echo, aiResponse=extract_reply(data))
