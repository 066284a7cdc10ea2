"""Normalization of inbound relay invocations into a `ChatRequest`.

The Content-Type header is inspected exactly once, here; everything
downstream works with the resulting `TextForm` or `MultipartForm`.
"""

import base64
import json
from typing import Any, AsyncIterator, Optional

from starlette.datastructures import Headers, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from persona_chat.core.logger import setup_logger
from persona_chat.relay import errors
from persona_chat.relay.errors import RelayError
from persona_chat.relay.models import (
    ChatRequest,
    ImageUpload,
    MultipartForm,
    RelayEvent,
    TextForm,
)

logger = setup_logger("persona_chat.relay.request")

MULTIPART = "multipart/form-data"
IMAGE_FIELD = "image"


def decode_body(event: RelayEvent) -> bytes:
    """Return the raw body, undoing the host's base64 transport encoding if flagged."""
    if event.is_base64_encoded:
        return base64.b64decode(event.body)
    return event.body


def is_multipart(event: RelayEvent) -> bool:
    """True when the request declares a multipart form body."""
    return MULTIPART in event.content_type.lower()


def parse_json_object(body: bytes) -> Any:
    """Parse a JSON body, raising a 400 `RelayError` when it is not JSON."""
    try:
        return json.loads(body)
    except ValueError as exc:
        raise RelayError(400, errors.INVALID_JSON) from exc


def _text_field(value: Any) -> Optional[str]:
    """Return a form value as text; file parts and blanks count as absent."""
    if isinstance(value, str) and value != "":
        return value
    return None


def parse_text_form(body: bytes) -> TextForm:
    """Build a `TextForm` from a JSON body.

    Raises
    ------
    RelayError
        400 on unparsable JSON, or when `messages` is missing, not a list,
        or contains something other than objects.
    """
    data = parse_json_object(body)
    messages = data.get("messages") if isinstance(data, dict) else None
    if not isinstance(messages, list) or not all(
        isinstance(m, dict) for m in messages
    ):
        raise RelayError(400, errors.INVALID_MESSAGES)

    system_prompt = data.get("systemPrompt")
    if not isinstance(system_prompt, str) or not system_prompt:
        system_prompt = None
    return TextForm(messages=messages, system_prompt=system_prompt)


async def _single_chunk(body: bytes) -> AsyncIterator[bytes]:
    yield body


async def parse_multipart_form(body: bytes, content_type: str) -> MultipartForm:
    """Build a `MultipartForm` from a multipart body.

    The body must carry exactly one file part, in the `image` field, and its
    declared MIME type must be `image/*`; the file's bytes are accumulated into one buffer.

    Raises
    ------
    RelayError
        400 when the body cannot be split into parts, or when the image is
        missing, duplicated, or not an image.
    """
    parser = MultiPartParser(
        Headers(headers={"content-type": content_type}), _single_chunk(body)
    )
    try:
        form = await parser.parse()
    except (MultiPartException, ValueError) as exc:
        logger.warning("Rejecting multipart body: %s", exc)
        raise RelayError(400, errors.INVALID_MULTIPART) from exc

    try:
        files = [value for _, value in form.multi_items() if isinstance(value, UploadFile)]
        images = [value for value in form.getlist(IMAGE_FIELD) if isinstance(value, UploadFile)]
        if len(files) != 1 or len(images) != 1:
            raise RelayError(400, errors.INVALID_IMAGE)

        upload = images[0]
        mime_type = upload.content_type or ""
        if not mime_type.lower().startswith("image/"):
            raise RelayError(400, errors.INVALID_IMAGE)

        data = await upload.read()
        return MultipartForm(
            content=_text_field(form.get("content")),
            system_prompt=_text_field(form.get("systemPrompt")),
            image=ImageUpload(data=data, mime_type=mime_type, filename=upload.filename),
        )
    finally:
        await form.close()


async def parse_chat_request(event: RelayEvent) -> ChatRequest:
    """Normalize an invocation into a `TextForm` or a `MultipartForm`."""
    body = decode_body(event)
    if is_multipart(event):
        return await parse_multipart_form(body, event.content_type)
    return parse_text_form(body)
