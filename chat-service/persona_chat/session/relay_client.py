"""Client side of the relay's `/chat` endpoint."""

from typing import Any, Dict, List, Optional

import httpx

from persona_chat.core.config import settings
from persona_chat.core.logger import setup_logger
from persona_chat.relay.models import RelayEnvelope
from persona_chat.relay.util import extract_reply

logger = setup_logger("persona_chat.session.relay_client")

NO_RESPONSE = "Sorry, I could not generate a response."


class RelayClientError(Exception):
    """The relay answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RelayClient:
    """Sends chat history or an image to the relay and returns the persona's reply."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 120.0,
    ):
        self.base_url = (base_url or settings.RELAY_URL).rstrip("/")
        self._transport = transport
        self._timeout = timeout

    async def _post(self, **kwargs: Any) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.post(f"{self.base_url}/chat", **kwargs)
        except httpx.HTTPError as exc:
            raise RelayClientError(f"Relay unreachable: {exc}") from exc

        if not response.is_success:
            try:
                detail = response.json().get("error", response.text)
            except (ValueError, AttributeError):
                detail = response.text
            logger.error("Relay error %s: %s", response.status_code, detail)
            raise RelayClientError(str(detail), response.status_code)
        return response.json()

    async def complete(
        self, messages: List[Dict[str, Any]], system_prompt: Optional[str] = None
    ) -> str:
        """Return the reply text for a role/content history."""
        body: Dict[str, Any] = {"messages": messages}
        if system_prompt:
            body["systemPrompt"] = system_prompt
        data = await self._post(json=body)
        return extract_reply(data) or NO_RESPONSE

    async def describe_image(
        self,
        image: bytes,
        mime_type: str,
        content: Optional[str] = None,
        system_prompt: Optional[str] = None,
        filename: str = "image",
    ) -> RelayEnvelope:
        """Send one image with optional text and return the echoed message plus reply."""
        fields: Dict[str, str] = {}
        if content:
            fields["content"] = content
        if system_prompt:
            fields["systemPrompt"] = system_prompt
        data = await self._post(
            data=fields, files={"image": (filename, image, mime_type)}
        )
        return RelayEnvelope.model_validate(data)
