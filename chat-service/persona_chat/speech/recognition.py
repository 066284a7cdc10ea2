"""Speech-to-text bridge.

State machine: IDLE -> LISTENING -> (results)* -> IDLE, with errors also
returning to IDLE. A fresh engine session is created on every `start()`;
callbacks are bound to that session, so a session cancelled by `stop()` can
no longer change the bridge's state.
"""

import asyncio
from typing import Any, Callable, Optional

from persona_chat.core.logger import setup_logger
from persona_chat.speech.models import (
    RecognitionEngine,
    RecognitionOptions,
    RecognitionResultEvent,
    RecognitionState,
)

logger = setup_logger("persona_chat.speech.recognition")

UNSUPPORTED = "Speech recognition is not supported on this platform"


class SpeechToTextBridge:
    """Wraps a platform recognizer and exposes live and final transcripts."""

    def __init__(
        self,
        engine_factory: Optional[Callable[[], RecognitionEngine]],
        options: Optional[RecognitionOptions] = None,
    ):
        self._factory = engine_factory
        self.options = options or RecognitionOptions()
        self.state = RecognitionState.IDLE
        self.transcript = ""
        self.final_transcript = ""
        self.error: Optional[str] = None if engine_factory else UNSUPPORTED
        self._engine: Optional[RecognitionEngine] = None
        self._session: Optional[object] = None
        self._finished: Optional[asyncio.Future] = None

    @property
    def is_supported(self) -> bool:
        return self._factory is not None

    @property
    def is_listening(self) -> bool:
        return self.state is RecognitionState.LISTENING

    def update_options(self, **changes: Any) -> RecognitionOptions:
        """Merge option changes; they apply from the next `start()`."""
        self.options = self.options.model_copy(update=changes)
        return self.options

    def clear_transcripts(self) -> None:
        self.transcript = ""
        self.final_transcript = ""

    def start(self) -> bool:
        """Clear previous transcripts and open a new recognition session.

        Returns False when recognition is unavailable or the platform refuses
        to start.
        """
        if not self.is_supported:
            return False
        self.stop()
        self.clear_transcripts()

        session = object()
        engine = self._factory()
        engine.configure(self.options)
        engine.on("start", self._guard(session, self._on_start))
        engine.on("result", self._guard(session, self._on_result))
        engine.on("end", self._guard(session, self._on_end))
        engine.on("error", self._guard(session, self._on_error))
        self._engine = engine
        self._session = session

        logger.debug("Starting recognition (%s)", self.options.language)
        try:
            engine.start()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Recognition error: %s", exc)
            self._close("Error starting speech recognition")
            return False
        self.state = RecognitionState.LISTENING
        return True

    def stop(self) -> None:
        """End the current session; a no-op when nothing is active."""
        engine = self._engine
        if engine is None:
            return
        self._close()
        try:
            engine.stop()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Error stopping recognition: %s", exc)

    async def recognize(self) -> str:
        """Run one session to its end and return the final transcript."""
        self.stop()
        loop = asyncio.get_running_loop()
        self._finished = loop.create_future()
        finished = self._finished
        if not self.start():
            self._finished = None
            return ""
        await finished
        return self.final_transcript

    def _guard(self, session: object, callback: Callable[..., None]) -> Callable[..., None]:
        def guarded(*args: Any) -> None:
            if session is self._session:
                callback(*args)

        return guarded

    def _close(self, error: Optional[str] = None) -> None:
        self._engine = None
        self._session = None
        self.state = RecognitionState.IDLE
        if error is not None:
            self.error = error
        if self._finished is not None and not self._finished.done():
            self._finished.set_result(None)
        self._finished = None

    def _on_start(self) -> None:
        self.state = RecognitionState.LISTENING
        self.error = None

    def _on_result(self, event: RecognitionResultEvent) -> None:
        interim = ""
        final = ""
        for result in event.results[event.result_index:]:
            if result.is_final:
                final += result.transcript
            else:
                interim += result.transcript
        self.transcript = interim
        if final:
            self.final_transcript = final.strip()

    def _on_end(self) -> None:
        # Also fired spontaneously by the platform, e.g. on a silence timeout
        self._close()

    def _on_error(self, error: Any) -> None:
        self._close(f"Recognition error: {error}")
