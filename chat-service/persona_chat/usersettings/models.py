"""Pydantic models for persisted user preferences."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from persona_chat.relay.models import HostedVoice


class ThemeSettings(BaseModel):
    """Palette index and dark mode flag."""

    active_palette: int = 0
    dark_mode: bool = False


class VoiceSettings(BaseModel):
    """Spoken-reply preferences.

    `voice_uri` identifies the local voice; name and language are kept so a
    close match can be found on a device where that identifier is unknown.
    """

    voice_uri: Optional[str] = None
    voice_name: Optional[str] = None
    voice_lang: Optional[str] = None
    rate: float = 1.0
    pitch: float = 1.0
    use_hosted: bool = False
    hosted_voice: HostedVoice = "nova"


class RecognitionSettings(BaseModel):
    """Speech recognition language."""

    language: str = "en-US"


class UserSettings(BaseModel):
    """All preference groups, written as one object."""

    theme: ThemeSettings = Field(default_factory=ThemeSettings)
    tts: VoiceSettings = Field(default_factory=VoiceSettings)
    stt: RecognitionSettings = Field(default_factory=RecognitionSettings)


class SettingsSnapshot(BaseModel):
    """Profile name plus preferences as last loaded from or saved to the backend."""

    name: str = ""
    settings: UserSettings = Field(default_factory=UserSettings)

    def to_metadata(self) -> Dict[str, Any]:
        """Flatten into the backend's user-metadata keys."""
        theme, tts, stt = self.settings.theme, self.settings.tts, self.settings.stt
        return {
            "name": self.name,
            "theme_palette": theme.active_palette,
            "theme_dark_mode": theme.dark_mode,
            "tts_voice_uri": tts.voice_uri,
            "tts_voice_name": tts.voice_name,
            "tts_voice_lang": tts.voice_lang,
            "tts_rate": tts.rate,
            "tts_pitch": tts.pitch,
            "tts_use_hosted": tts.use_hosted,
            "tts_hosted_voice": tts.hosted_voice,
            "stt_language": stt.language,
        }

    @classmethod
    def from_metadata(cls, metadata: Optional[Dict[str, Any]]) -> "SettingsSnapshot":
        """Rebuild a snapshot from flattened metadata; missing keys keep their defaults."""
        md = {k: v for k, v in (metadata or {}).items() if v is not None}
        theme = {"active_palette": md.get("theme_palette"), "dark_mode": md.get("theme_dark_mode")}
        tts = {
            "voice_uri": md.get("tts_voice_uri"),
            "voice_name": md.get("tts_voice_name"),
            "voice_lang": md.get("tts_voice_lang"),
            "rate": md.get("tts_rate"),
            "pitch": md.get("tts_pitch"),
            "use_hosted": md.get("tts_use_hosted"),
            "hosted_voice": md.get("tts_hosted_voice"),
        }
        stt = {"language": md.get("stt_language")}
        return cls(
            name=md.get("name", ""),
            settings=UserSettings(
                theme=ThemeSettings(**_present(theme)),
                tts=VoiceSettings(**_present(tts)),
                stt=RecognitionSettings(**_present(stt)),
            ),
        )


def _present(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}
