"""Configuration for the DealsList FastAPI service."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment variables (and .env)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Postgres
    DATABASE_URL: str
    DEALS_TABLE_NAME: str = "deals_list"

    # OpenAI
    OPENAI_API_KEY: str
    OPENAI_CHAT_MODEL: str = "gpt-3.5-turbo"

    # Auth
    ADMIN_API_KEY: str

    # Gmail (optional; mail import endpoints answer 503 without it)
    GMAIL_CLIENT_ID: str | None = None
    GMAIL_CLIENT_SECRET: str | None = None
    GMAIL_REFRESH_TOKEN: str | None = None
    GMAIL_TOKEN_URI: str = "https://oauth2.googleapis.com/token"

    @property
    def gmail_configured(self) -> bool:
        return bool(self.GMAIL_CLIENT_ID and self.GMAIL_CLIENT_SECRET and self.GMAIL_REFRESH_TOKEN)


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
