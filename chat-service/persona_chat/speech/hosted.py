"""Client for the relay's hosted text-to-speech endpoint."""

from typing import Optional

import httpx

from persona_chat.core.config import settings
from persona_chat.core.logger import setup_logger

logger = setup_logger("persona_chat.speech.hosted")


class HostedSpeechError(Exception):
    """The relay could not render the requested clip."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"TTS generation failed: {status_code} {detail}")
        self.status_code = status_code
        self.detail = detail


class HostedSpeechClient:
    """Fetches mp3 clips from `POST {relay}/tts`; the provider key stays on the relay."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 60.0,
    ):
        self.base_url = (base_url or settings.RELAY_URL).rstrip("/")
        self._transport = transport
        self._timeout = timeout

    async def synthesize(
        self, text: str, voice: str = "nova", model: str = "tts-1"
    ) -> bytes:
        """Render `text` and return the audio bytes.

        Raises
        ------
        HostedSpeechError
            When the relay answers with a non-2xx status.
        """
        async with httpx.AsyncClient(
            transport=self._transport, timeout=self._timeout
        ) as client:
            response = await client.post(
                f"{self.base_url}/tts",
                json={"text": text, "voice": voice, "model": model},
            )

        if not response.is_success:
            logger.error("Hosted TTS error: %s %s", response.status_code, response.text)
            raise HostedSpeechError(response.status_code, response.text)
        return response.content
