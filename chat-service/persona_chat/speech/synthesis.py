"""Text-to-speech bridge.

Speaks either through the platform's local synthesizer or by fetching a clip
from the hosted endpoint and playing it through an audio sink, depending on
`SpeechOptions.use_hosted`. Both paths toggle the same `speaking` flag and
`stop()` always cancels both, so a rapid preference toggle never leaves two
audio sources running.
"""

from typing import Any, Callable, List, Optional

from persona_chat.core.logger import setup_logger
from persona_chat.speech.hosted import HostedSpeechClient
from persona_chat.speech.models import (
    AudioSink,
    PlaybackHandle,
    SpeechOptions,
    SynthesisEngine,
    Utterance,
    Voice,
)

logger = setup_logger("persona_chat.speech.synthesis")


def find_best_voice(
    voices: List[Voice], lang: Optional[str] = None, name: Optional[str] = None
) -> Optional[Voice]:
    """Pick the closest voice for a language and name preference.

    Tries language + name, then language alone, then the platform default,
    then the first voice.
    """
    if not voices:
        return None
    if lang and name:
        for voice in voices:
            if voice.lang.startswith(lang) and name.lower() in voice.name.lower():
                return voice
    if lang:
        for voice in voices:
            if voice.lang.startswith(lang):
                return voice
    return next((v for v in voices if v.default), voices[0])


class TextToSpeechBridge:
    """Drives local or hosted speech output and tracks whether audio is playing."""

    def __init__(
        self,
        engine: Optional[SynthesisEngine] = None,
        player: Optional[AudioSink] = None,
        hosted: Optional[HostedSpeechClient] = None,
        options: Optional[SpeechOptions] = None,
    ):
        self.engine = engine
        self.player = player
        self.hosted = hosted
        self.options = options or SpeechOptions()
        self.voices: List[Voice] = []
        self.voice: Optional[Voice] = None
        self.speaking = False
        self._token: Optional[object] = None
        self._playback: Optional[PlaybackHandle] = None

        if engine is not None:
            engine.on_voices_changed(self.refresh_voices)
            self.refresh_voices()

    def refresh_voices(self) -> List[Voice]:
        """Reload the voice list and re-resolve the saved voice by its identifier.

        The platform list loads asynchronously, so the first call may see no
        voices; the voices-changed callback calls this again once it arrives.
        """
        if self.engine is None:
            return self.voices
        self.voices = list(self.engine.get_voices())
        if self.voice is None and self.options.voice_uri:
            self.voice = next(
                (v for v in self.voices if v.voice_uri == self.options.voice_uri), None
            )
            if self.voice is not None:
                logger.debug("Restored voice %s", self.voice.name)
        return self.voices

    def select_voice(self, voice: Optional[Voice]) -> None:
        self.voice = voice
        self.options = self.options.model_copy(
            update={"voice_uri": voice.voice_uri if voice else None}
        )

    def select_voice_by(
        self, name: Optional[str] = None, lang: Optional[str] = None
    ) -> Optional[Voice]:
        """Select the first voice whose name (or else language) contains the given text."""
        selected = None
        if name:
            selected = next((v for v in self.voices if name in v.name), None)
        elif lang:
            selected = next((v for v in self.voices if lang in v.lang), None)
        if selected is not None:
            self.select_voice(selected)
        return selected

    def update_options(self, **changes: Any) -> SpeechOptions:
        self.options = self.options.model_copy(update=changes)
        if "voice_uri" in changes:
            self.voice = None
            self.refresh_voices()
        return self.options

    async def speak(self, text: str, **overrides: Any) -> None:
        """Speak `text`, cancelling whatever was playing before.

        Raises
        ------
        HostedSpeechError
            When hosted synthesis is selected and the clip cannot be fetched.
        """
        self.stop()
        options = self.options.model_copy(update=overrides)
        token = object()
        self._token = token

        if options.use_hosted:
            await self._speak_hosted(text, options, token)
        else:
            self._speak_local(text, options, token)

    def stop(self) -> None:
        """Cancel local and hosted playback; safe when nothing is active."""
        self._token = None
        if self.engine is not None:
            self.engine.cancel()
        if self._playback is not None:
            playback, self._playback = self._playback, None
            try:
                playback.stop()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error("Error stopping audio: %s", exc)
        self.speaking = False

    def _guard(self, token: object, callback: Callable[..., None]) -> Callable[..., None]:
        def guarded(*args: Any) -> None:
            if token is self._token:
                callback(*args)

        return guarded

    def _set_speaking(self, value: bool) -> None:
        self.speaking = value

    def _finished(self, *_: Any) -> None:
        self.speaking = False
        self._playback = None

    def _speak_local(self, text: str, options: SpeechOptions, token: object) -> None:
        if self.engine is None:
            logger.error("Speech synthesis not supported on this platform")
            return
        utterance = Utterance(text, rate=options.rate, pitch=options.pitch, voice=self.voice)
        utterance.on_start = self._guard(token, lambda: self._set_speaking(True))
        utterance.on_end = self._guard(token, lambda: self._set_speaking(False))
        utterance.on_error = self._guard(token, lambda error: self._set_speaking(False))
        self.engine.speak(utterance)

    async def _speak_hosted(
        self, text: str, options: SpeechOptions, token: object
    ) -> None:
        if self.hosted is None or self.player is None:
            logger.error("Hosted speech requested but no client or audio sink is configured")
            return
        audio = await self.hosted.synthesize(
            text, voice=options.hosted_voice, model=options.hosted_model
        )
        if token is not self._token:
            # stopped or superseded while the clip was being fetched
            return
        self._playback = self.player.play(
            audio,
            "audio/mpeg",
            on_play=self._guard(token, lambda: self._set_speaking(True)),
            on_ended=self._guard(token, self._finished),
            on_error=self._guard(token, self._finished),
        )
