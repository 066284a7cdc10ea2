"""Routes exposing the relay over HTTP."""

from typing import Annotated, Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from persona_chat.core.config import settings
from persona_chat.core.logger import setup_logger
from persona_chat.relay.handler import handle_chat, handle_speech
from persona_chat.relay.models import RelayEvent, RelayResponse

logger = setup_logger("persona_chat.relay.routes")

router = APIRouter()

# Every verb is routed to the handler so that non-POST requests get the
# relay's own 405 body instead of the framework default. CORS preflight
# OPTIONS requests are answered by the middleware and never get here.
RELAY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def get_upstream_transport(request: Request) -> Optional[httpx.AsyncBaseTransport]:
    """Dependency to get an optional upstream transport from the application state."""
    return getattr(request.app.state, "upstream_transport", None)


async def to_event(request: Request) -> RelayEvent:
    """Convert a Starlette request into a transport-agnostic `RelayEvent`."""
    return RelayEvent(
        method=request.method,
        headers={k.lower(): v for k, v in request.headers.items()},
        body=await request.body(),
    )


def to_response(result: RelayResponse) -> Response:
    """Render a `RelayResponse` as a Starlette response."""
    if result.is_binary:
        return Response(
            content=result.content,
            status_code=result.status_code,
            media_type=result.media_type,
        )
    return JSONResponse(content=result.body, status_code=result.status_code)


@router.api_route("/chat", methods=RELAY_METHODS)
async def chat(
    request: Request,
    transport: Annotated[
        Optional[httpx.AsyncBaseTransport], Depends(get_upstream_transport)
    ],
):
    """Relay a JSON chat or a multipart image message to the provider."""
    event = await to_event(request)
    return to_response(await handle_chat(event, transport))


@router.api_route("/tts", methods=RELAY_METHODS)
async def tts(
    request: Request,
    transport: Annotated[
        Optional[httpx.AsyncBaseTransport], Depends(get_upstream_transport)
    ],
):
    """Render text to speech through the hosted provider."""
    event = await to_event(request)
    return to_response(await handle_speech(event, transport))


@router.get("/health")
async def health():
    """Relay health check"""
    return {"status": "healthy", "service": "relay", "version": settings.API_VERSION}
