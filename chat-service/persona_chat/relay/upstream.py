"""Thin async client for the hosted LLM and speech endpoints."""

from typing import Any, Dict, Optional

import httpx

from persona_chat.core.config import Settings
from persona_chat.core.logger import setup_logger
from persona_chat.relay.errors import UpstreamError

logger = setup_logger("persona_chat.relay.upstream")


class UpstreamClient:
    """
    Issues exactly one request per call to the provider.

    Nothing is retried and no state is kept between calls; the credential is
    taken from the settings object handed in for this invocation.
    """

    def __init__(
        self,
        config: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = config.OPENAI_BASE_URL.rstrip("/")
        self.timeout = httpx.Timeout(config.UPSTREAM_TIMEOUT)
        self._api_key = config.OPENAI_API_KEY
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(
            transport=self._transport, timeout=self.timeout
        ) as client:
            response = await client.post(
                f"{self.base_url}{path}", json=payload, headers=self._headers()
            )

        if response.is_success:
            return response

        logger.warning("Upstream %s returned %s", path, response.status_code)
        raise UpstreamError(response.status_code, response.text)

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Call the chat-completion endpoint

        Returns:
            The decoded JSON body, untouched

        Raises:
            UpstreamError: on any non-2xx answer
        """
        response = await self._post("/chat/completions", payload)
        return response.json()

    async def speech(self, text: str, voice: str, model: str) -> bytes:
        """
        Render text to an mp3 clip

        Raises:
            UpstreamError: on any non-2xx answer
        """
        response = await self._post(
            "/audio/speech",
            {"model": model, "input": text, "voice": voice, "response_format": "mp3"},
        )
        return response.content
