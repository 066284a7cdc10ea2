"""This module provides the backend-as-a-service client used by the session and settings stores."""

from typing import Optional

from supabase import Client, create_client

from persona_chat.core.config import Settings, settings
from persona_chat.core.logger import setup_logger

logger = setup_logger("persona_chat.core.backend")


def get_supabase_client(config: Optional[Settings] = None) -> Optional[Client]:
    """
    Initializes and returns a Supabase client from the configured URL and key.

    :return: A Supabase client if the backend is configured, None otherwise.
    """
    config = config or settings
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        logger.error("SUPABASE_URL and SUPABASE_KEY must be set")
        return None
    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
