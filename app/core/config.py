"""Application configuration via pydantic-settings.

Loads all settings from environment variables with sensible defaults.
A global `settings` singleton is available for import throughout the app.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Document store
    STORE_BACKEND: str = "file"  # "file" | "memory" | "kv" | "supabase"
    DATA_FILE: str = "data/db.json"

    # Vercel KV / Upstash REST
    KV_REST_API_URL: str = ""
    KV_REST_API_TOKEN: str = ""

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_TABLE: str = "portal_documents"

    # Video calls
    VIDEO_ROOM_BASE_URL: str = ""

    # Client poller
    POLL_INTERVAL_SECONDS: int = 3

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
