"""Request/response cycle of the relay, independent of the hosting transport.

Each invocation is validated in a fixed order:

1. method must be POST (405 otherwise)
2. the provider credential must be configured (500 otherwise)
3. the body is normalized (400 on malformed input)
4. exactly one upstream call is made; non-2xx answers are relayed verbatim
5. anything unexpected becomes a 500 carrying the exception message
"""

from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from persona_chat.core.config import Settings, get_settings
from persona_chat.core.logger import setup_logger
from persona_chat.relay import errors
from persona_chat.relay.errors import RelayError, UpstreamError
from persona_chat.relay.models import (
    MultipartForm,
    RelayEvent,
    RelayResponse,
    SpeechRequest,
)
from persona_chat.relay.request import decode_body, parse_chat_request, parse_json_object
from persona_chat.relay.upstream import UpstreamClient
from persona_chat.relay.util import (
    build_envelope,
    build_image_payload,
    build_text_payload,
)

logger = setup_logger("persona_chat.relay.handler")

Dispatch = Callable[[RelayEvent, Settings, UpstreamClient], Awaitable[RelayResponse]]


async def _dispatch_chat(
    event: RelayEvent, config: Settings, upstream: UpstreamClient
) -> RelayResponse:
    request = await parse_chat_request(event)

    if isinstance(request, MultipartForm):
        logger.info(
            "Relaying image message (%s, %d bytes)",
            request.image.mime_type,
            len(request.image.data),
        )
        payload = build_image_payload(request, config)
        data = await upstream.chat_completion(payload.to_wire())
        envelope = build_envelope(request, data)
        return RelayResponse(body=envelope.model_dump(mode="json", exclude_none=True))

    logger.info("Relaying chat with %d messages", len(request.messages))
    payload = build_text_payload(request, config)
    data = await upstream.chat_completion(payload.to_wire())
    return RelayResponse(body=data)


async def _dispatch_speech(
    event: RelayEvent, config: Settings, upstream: UpstreamClient
) -> RelayResponse:
    data = parse_json_object(decode_body(event))
    if not isinstance(data, dict):
        raise RelayError(400, errors.MISSING_TEXT)
    try:
        request = SpeechRequest.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise RelayError(400, f"Invalid {field}.") from exc
    if not request.text.strip():
        raise RelayError(400, errors.MISSING_TEXT)

    audio = await upstream.speech(
        request.text,
        request.voice or config.TTS_VOICE,
        request.model or config.TTS_MODEL,
    )
    return RelayResponse(content=audio, media_type="audio/mpeg")


async def _invoke(
    dispatch: Dispatch,
    event: RelayEvent,
    transport: Optional[httpx.AsyncBaseTransport],
) -> RelayResponse:
    logger.info("Received %s (%s)", event.method, event.content_type or "no content type")
    if event.method.upper() != "POST":
        logger.warning("Rejecting %s request", event.method)
        return RelayResponse.error(405, errors.METHOD_NOT_ALLOWED)

    config = get_settings()
    if not config.OPENAI_API_KEY:
        logger.error("OPENAI_API_KEY is not configured")
        return RelayResponse.error(500, errors.MISSING_CREDENTIAL)

    try:
        return await dispatch(event, config, UpstreamClient(config, transport))
    except RelayError as exc:
        logger.warning("Rejected request: %s", exc.message)
        return RelayResponse.error(exc.status_code, exc.message)
    except UpstreamError as exc:
        return RelayResponse.error(exc.status_code, exc.text)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.exception("Relay failed: %s", exc)
        return RelayResponse.error(500, str(exc))


async def handle_chat(
    event: RelayEvent, transport: Optional[httpx.AsyncBaseTransport] = None
) -> RelayResponse:
    """Relay one chat invocation (JSON or multipart) to the provider."""
    return await _invoke(_dispatch_chat, event, transport)


async def handle_speech(
    event: RelayEvent, transport: Optional[httpx.AsyncBaseTransport] = None
) -> RelayResponse:
    """Relay one text-to-speech invocation to the provider."""
    return await _invoke(_dispatch_speech, event, transport)
