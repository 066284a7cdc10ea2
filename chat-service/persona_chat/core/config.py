"""This module provides application settings and configuration for the chat relay service."""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings and configuration"""

    # Upstream provider
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    UPSTREAM_TIMEOUT: Optional[float] = None

    # Chat (JSON mode)
    CHAT_MODEL: str = "gpt-3.5-turbo"
    CHAT_TEMPERATURE: float = 0.7

    # Vision (multipart mode)
    VISION_MODEL: str = "gpt-4o"
    VISION_MAX_TOKENS: int = 1000

    # Hosted speech
    TTS_MODEL: str = "tts-1"
    TTS_VOICE: str = "nova"

    LOG_LEVEL: str = "INFO"

    # API settings
    API_TITLE: str = "Persona Chat Relay"
    API_DESCRIPTION: str = "Relay for persona chat, vision and speech requests"
    API_VERSION: str = "1.0.0"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173"]

    # Client side
    RELAY_URL: str = "http://localhost:8080"
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    LOCAL_SETTINGS_PATH: str = "~/.persona_chat/settings.json"

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")


def get_settings() -> Settings:
    """Build a fresh settings object from the current environment.

    The relay calls this once per invocation so the provider credential is
    always read at request time.
    """
    return Settings()


settings = Settings()
