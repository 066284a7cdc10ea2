"""Settings synchronizer.

Owns the one in-memory copy of the user's editable preferences and tracks it
against the snapshot last loaded from or saved to the backend. Data moves in
one direction at a time: `load()`/`refresh()` reconcile remote -> local,
`save()` commits local -> remote.

Each preference group moves through
UNLOADED -> LOADED -> EDITED -> SAVING -> LOADED, and a failed save goes
SAVING -> ERROR -> EDITED with the edits kept.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from persona_chat.core.logger import setup_logger
from persona_chat.speech.models import Voice
from persona_chat.speech.synthesis import find_best_voice
from persona_chat.usersettings.models import SettingsSnapshot, UserSettings
from persona_chat.usersettings.store import LocalSettingsCache, SettingsStore

logger = setup_logger("persona_chat.usersettings.sync")


class GroupState(str, Enum):
    """Lifecycle of one preference group."""

    UNLOADED = "unloaded"
    LOADED = "loaded"
    EDITED = "edited"
    SAVING = "saving"
    ERROR = "error"


class LeaveChoice(str, Enum):
    """Answers to the unsaved-changes prompt."""

    SAVE_AND_LEAVE = "save"
    DISCARD_AND_LEAVE = "discard"
    CANCEL = "cancel"


class SettingsSyncError(Exception):
    """Saving to the backend failed; local edits are still pending."""


# field -> group
FIELDS: Dict[str, str] = {
    "name": "profile",
    "active_palette": "theme",
    "dark_mode": "theme",
    "voice": "voice",
    "rate": "voice",
    "pitch": "voice",
    "language": "speech",
}
GROUPS = ("profile", "theme", "voice", "speech")


def _same(field: str, left: Any, right: Any) -> bool:
    if field == "voice":
        # the selected option is identified by its voice URI
        left_uri = left.voice_uri if left is not None else None
        right_uri = right.voice_uri if right is not None else None
        return left_uri == right_uri
    return left == right


class SettingsSynchronizer:
    """Dirty tracking and persistence for profile, theme, voice and speech settings."""

    def __init__(
        self,
        remote: Optional[SettingsStore] = None,
        local: Optional[LocalSettingsCache] = None,
    ):
        self.remote = remote
        self.local = local
        self._states: Dict[str, GroupState] = {g: GroupState.UNLOADED for g in GROUPS}
        self._snapshot: Dict[str, Any] = {}
        self._current: Dict[str, Any] = {}
        self._base = SettingsSnapshot()
        self.voices: List[Voice] = []
        self.last_error: Optional[str] = None

    @property
    def snapshot(self) -> SettingsSnapshot:
        """The baseline last loaded or saved."""
        return self._base

    # ------------------------------------------------------------------
    # remote -> local

    def load(self, snapshot: SettingsSnapshot, voices: Optional[List[Voice]] = None) -> None:
        """Adopt `snapshot` as both the baseline and the current values."""
        if voices is not None:
            self.voices = list(voices)
        self._base = snapshot
        values = self._flatten(snapshot)
        self._snapshot = dict(values)
        self._current = dict(values)
        for group in GROUPS:
            self._states[group] = GroupState.LOADED

    reconcile = load

    async def refresh(self) -> SettingsSnapshot:
        """Fetch settings from the backend, load them and mirror them locally.

        When the backend cannot be reached, the local mirror (if any) is loaded
        instead and the error is re-raised only when there is nothing to load.
        """
        if self.remote is None:
            raise SettingsSyncError("No remote settings store configured")
        try:
            snapshot = await self.remote.fetch()
        except Exception as exc:
            cached = self.local.read() if self.local else None
            if cached is None:
                raise SettingsSyncError(f"Failed to load settings: {exc}") from exc
            logger.warning("Loading settings from local mirror: %s", exc)
            snapshot = SettingsSnapshot(name=self._base.name, settings=cached)
            self.load(snapshot)
            return snapshot

        self.load(snapshot)
        self._mirror(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # editing

    def update(self, **changes: Any) -> bool:
        """Apply field edits and return the resulting unsaved-changes flag."""
        unknown = set(changes) - set(FIELDS)
        if unknown:
            raise KeyError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")
        self._current.update(changes)
        for field in changes:
            self._refresh_group(FIELDS[field])
        return self.has_unsaved_changes

    def value(self, field: str) -> Any:
        return self._current.get(field)

    @property
    def has_unsaved_changes(self) -> bool:
        return any(
            not _same(field, self._current.get(field), self._snapshot.get(field))
            for field in FIELDS
        )

    def group_state(self, group: str) -> GroupState:
        return self._states[group]

    def dirty_groups(self) -> List[str]:
        return [g for g in GROUPS if self._group_dirty(g)]

    def discard(self) -> None:
        """Drop edits and return to the last snapshot."""
        self._current = dict(self._snapshot)
        for group in GROUPS:
            if self._states[group] is not GroupState.UNLOADED:
                self._states[group] = GroupState.LOADED

    # ------------------------------------------------------------------
    # local -> remote

    def current_snapshot(self) -> SettingsSnapshot:
        """Build the snapshot that `save()` would write."""
        c = self._current
        voice: Optional[Voice] = c.get("voice")
        settings = self._base.settings.model_copy(deep=True)
        settings.theme.active_palette = c.get("active_palette", 0)
        settings.theme.dark_mode = c.get("dark_mode", False)
        settings.tts.rate = c.get("rate", 1.0)
        settings.tts.pitch = c.get("pitch", 1.0)
        if not _same("voice", voice, self._snapshot.get("voice")):
            settings.tts.voice_uri = voice.voice_uri if voice else None
            settings.tts.voice_name = voice.name if voice else None
            settings.tts.voice_lang = voice.lang if voice else None
        settings.stt.language = c.get("language", "en-US")
        return SettingsSnapshot(name=c.get("name", ""), settings=settings)

    async def save(self) -> SettingsSnapshot:
        """Commit current values to the backend, then mirror them locally.

        Raises
        ------
        SettingsSyncError
            When the backend rejects the write; edits stay pending.
        """
        dirty = self.dirty_groups()
        snapshot = self.current_snapshot()
        for group in dirty:
            self._states[group] = GroupState.SAVING

        try:
            if self.remote is not None:
                await self.remote.commit(snapshot)
        except Exception as exc:
            logger.error("Failed to save settings: %s", exc)
            self.last_error = str(exc)
            for group in dirty:
                self._states[group] = GroupState.ERROR
            raise SettingsSyncError(str(exc)) from exc

        self._mirror(snapshot)
        saved_current = dict(self._current)
        self.last_error = None
        self.load(snapshot)
        # keep the selected option object itself, not one re-resolved from the list
        self._snapshot["voice"] = self._current["voice"] = saved_current.get("voice")
        logger.info("Settings saved")
        return snapshot

    # ------------------------------------------------------------------
    # navigation guard

    def request_leave(self) -> bool:
        """True when the user can leave without being asked."""
        return not self.has_unsaved_changes

    async def resolve_leave(self, choice: LeaveChoice) -> bool:
        """Apply the user's answer to the unsaved-changes prompt; True means leave."""
        if choice is LeaveChoice.CANCEL:
            return False
        if choice is LeaveChoice.DISCARD_AND_LEAVE:
            self.discard()
            return True
        try:
            await self.save()
        except SettingsSyncError:
            return False
        return True

    # ------------------------------------------------------------------

    def _mirror(self, snapshot: SettingsSnapshot) -> None:
        """Best-effort write of the local mirror; the backend already holds the data."""
        if self.local is None:
            return
        try:
            self.local.write(snapshot.settings)
        except OSError as exc:
            logger.warning("Could not update local settings mirror: %s", exc)

    def _flatten(self, snapshot: SettingsSnapshot) -> Dict[str, Any]:
        s = snapshot.settings
        return {
            "name": snapshot.name,
            "active_palette": s.theme.active_palette,
            "dark_mode": s.theme.dark_mode,
            "voice": self._resolve_voice(s),
            "rate": s.tts.rate,
            "pitch": s.tts.pitch,
            "language": s.stt.language,
        }

    def _resolve_voice(self, settings: UserSettings) -> Optional[Voice]:
        tts = settings.tts
        if tts.voice_uri:
            for voice in self.voices:
                if voice.voice_uri == tts.voice_uri:
                    return voice
            if not self.voices:
                return Voice(
                    voice_uri=tts.voice_uri,
                    name=tts.voice_name or tts.voice_uri,
                    lang=tts.voice_lang or "",
                )
        if tts.voice_lang or tts.voice_name:
            return find_best_voice(self.voices, tts.voice_lang, tts.voice_name)
        return None

    def _group_dirty(self, group: str) -> bool:
        return any(
            not _same(f, self._current.get(f), self._snapshot.get(f))
            for f, g in FIELDS.items()
            if g == group
        )

    def _refresh_group(self, group: str) -> None:
        if self._states[group] is GroupState.UNLOADED:
            return
        self._states[group] = GroupState.EDITED if self._group_dirty(group) else GroupState.LOADED
