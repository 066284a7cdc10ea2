"""Serverless entry point.

Hosts such as Netlify Functions or AWS Lambda hand the relay an event dict
(`httpMethod`, `headers`, `body`, `isBase64Encoded`) and expect a dict with
`statusCode`, `headers` and `body` back. This module adapts that contract to
the transport-agnostic handlers.
"""

import asyncio
import base64
import json
from typing import Any, Dict, Optional

from persona_chat.core.logger import setup_logger
from persona_chat.relay.handler import handle_chat, handle_speech
from persona_chat.relay.models import RelayEvent, RelayResponse

logger = setup_logger("persona_chat.relay.function")


def to_event(event: Dict[str, Any]) -> RelayEvent:
    """Build a `RelayEvent` from a host event dict."""
    body = event.get("body") or ""
    if isinstance(body, str):
        body = body.encode("utf-8")
    headers = event.get("headers") or {}
    return RelayEvent(
        method=event.get("httpMethod", "GET"),
        headers={str(k).lower(): str(v) for k, v in headers.items()},
        body=body,
        is_base64_encoded=bool(event.get("isBase64Encoded", False)),
    )


def to_result(response: RelayResponse) -> Dict[str, Any]:
    """Serialize a `RelayResponse` into the host's result dict."""
    if response.is_binary:
        return {
            "statusCode": response.status_code,
            "headers": {"Content-Type": response.media_type},
            "body": base64.b64encode(response.content).decode("ascii"),
            "isBase64Encoded": True,
        }
    return {
        "statusCode": response.status_code,
        "headers": {"Content-Type": response.media_type},
        "body": json.dumps(response.body),
    }


def handler(event: Dict[str, Any], context: Optional[Any] = None) -> Dict[str, Any]:
    """Chat function: one invocation, one upstream call at most."""
    # pylint: disable=unused-argument
    logger.info("Function invoked: %s %s", event.get("httpMethod"), event.get("path", ""))
    return to_result(asyncio.run(handle_chat(to_event(event))))


def tts_handler(
    event: Dict[str, Any], context: Optional[Any] = None
) -> Dict[str, Any]:
    """Speech function: renders text through the hosted voice endpoint."""
    # pylint: disable=unused-argument
    logger.info("Function invoked: %s %s", event.get("httpMethod"), event.get("path", ""))
    return to_result(asyncio.run(handle_speech(to_event(event))))
