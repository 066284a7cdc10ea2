"""Remote and local persistence for user settings.

Remote: the backend-as-a-service keeps preferences in the signed-in user's
metadata. Local: a JSON file mirrors the last saved preferences for fast
access; it is always replaced as a whole, never patched field by field.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError
from supabase import Client

from persona_chat.core.logger import setup_logger
from persona_chat.usersettings.models import SettingsSnapshot, UserSettings

logger = setup_logger("persona_chat.usersettings.store")


class SettingsStore(Protocol):
    """Remote settings persistence."""

    async def fetch(self) -> SettingsSnapshot:
        """Load the signed-in user's name and settings."""

    async def commit(self, snapshot: SettingsSnapshot) -> None:
        """Persist name and settings."""


class SupabaseSettingsStore:
    """Keeps settings in Supabase auth user metadata."""

    def __init__(self, client: Client):
        self.client = client

    def _fetch(self) -> SettingsSnapshot:
        response = self.client.auth.get_user()
        if response is None or response.user is None:
            raise PermissionError("User not authenticated")
        return SettingsSnapshot.from_metadata(response.user.user_metadata)

    def _commit(self, snapshot: SettingsSnapshot) -> None:
        self.client.auth.update_user({"data": snapshot.to_metadata()})

    async def fetch(self) -> SettingsSnapshot:
        return await asyncio.to_thread(self._fetch)

    async def commit(self, snapshot: SettingsSnapshot) -> None:
        logger.info("Saving user settings")
        await asyncio.to_thread(self._commit, snapshot)


class LocalSettingsCache:
    """Whole-object JSON mirror of the user's settings."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def read(self) -> Optional[UserSettings]:
        """Return the mirrored settings, or None when absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            return UserSettings.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable settings mirror %s: %s", self.path, exc)
            return None

    def write(self, settings: UserSettings) -> None:
        """Atomically replace the mirror with `settings`."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".settings-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(settings.model_dump_json(indent=2))
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
