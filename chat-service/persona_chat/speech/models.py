"""Pydantic models and platform interfaces for the speech bridges.

The platform speech APIs (recognition, synthesis, audio playback) are
injected collaborators. They are described here as `typing.Protocol`s so
that a browser bridge, a desktop engine or a test fake can drive the same
state machines.
"""

from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from persona_chat.relay.models import HostedVoice


class RecognitionState(str, Enum):
    """Lifecycle of a speech-to-text session."""

    IDLE = "idle"
    LISTENING = "listening"


class RecognitionOptions(BaseModel):
    """Recognition session configuration.

    Attributes
    ----------
    language : str
        BCP-47 language tag passed to the recognizer.
    continuous : bool
        Keep listening across utterances.
    interim_results : bool
        Deliver non-final hypotheses while the user speaks.
    """

    language: str = "en-US"
    continuous: bool = False
    interim_results: bool = True


class RecognitionAlternative(BaseModel):
    """One recognized hypothesis for a result slot."""

    transcript: str
    is_final: bool = False


class RecognitionResultEvent(BaseModel):
    """Results delivered by the platform; only slots from `result_index` on are new."""

    result_index: int = 0
    results: List[RecognitionAlternative]


class Voice(BaseModel):
    """A platform voice option.

    `voice_uri` is the stable identifier; names may change between reloads of
    the voice list.
    """

    model_config = ConfigDict(frozen=True)

    voice_uri: str
    name: str
    lang: str
    default: bool = False


class SpeechOptions(BaseModel):
    """Text-to-speech preferences."""

    rate: float = 1.0
    pitch: float = 1.0
    voice_uri: Optional[str] = None
    use_hosted: bool = False
    hosted_voice: HostedVoice = "nova"
    hosted_model: str = "tts-1"


class Utterance:  # pylint: disable=too-few-public-methods
    """Text handed to a local synthesizer, with lifecycle callbacks the engine fires."""

    def __init__(
        self,
        text: str,
        rate: float = 1.0,
        pitch: float = 1.0,
        voice: Optional[Voice] = None,
    ):
        self.text = text
        self.rate = rate
        self.pitch = pitch
        self.voice = voice
        self.on_start: Callable[[], None] = lambda: None
        self.on_end: Callable[[], None] = lambda: None
        self.on_error: Callable[[Any], None] = lambda error: None


class RecognitionEngine(Protocol):
    """One platform recognition session."""

    def configure(self, options: RecognitionOptions) -> None:
        """Apply language and result-delivery options."""

    def on(self, event: str, callback: Callable[..., None]) -> None:
        """Subscribe to "start", "result", "end" or "error"."""

    def start(self) -> None:
        """Begin listening."""

    def stop(self) -> None:
        """Stop listening; the platform fires "end" afterwards."""


class SynthesisEngine(Protocol):
    """The platform's local speech synthesizer."""

    def get_voices(self) -> List[Voice]:
        """Return the currently known voices; may be empty until loaded."""

    def on_voices_changed(self, callback: Callable[[], None]) -> None:
        """Register a callback for when the voice list (re)loads."""

    def speak(self, utterance: Utterance) -> None:
        """Queue an utterance; returns immediately."""

    def cancel(self) -> None:
        """Drop the current and queued utterances."""


class PlaybackHandle(Protocol):
    """A clip currently held by an audio sink."""

    def stop(self) -> None:
        """Pause and rewind the clip."""


class AudioSink(Protocol):
    """Plays rendered audio clips."""

    def play(
        self,
        audio: bytes,
        media_type: str,
        on_play: Callable[[], None],
        on_ended: Callable[[], None],
        on_error: Callable[[Any], None],
    ) -> PlaybackHandle:
        """Start playback and return a handle to stop it."""
