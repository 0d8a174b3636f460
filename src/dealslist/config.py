"""
Configuration management for the DealsList import pipeline.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class Config:
    """Configuration settings loaded from environment."""

    # OpenAI
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')
    OPENAI_CHAT_MODEL: str = os.getenv('OPENAI_CHAT_MODEL', 'gpt-3.5-turbo')
    OPENAI_TEMPERATURE: float = float(os.getenv('OPENAI_TEMPERATURE', '0.2'))
    OPENAI_MAX_TOKENS: int = int(os.getenv('OPENAI_MAX_TOKENS', '500'))
    OPENAI_TIMEOUT_SECONDS: float = float(os.getenv('OPENAI_TIMEOUT_SECONDS', '30'))

    # Extraction
    EXTRACTION_MAX_RETRIES: int = int(os.getenv('EXTRACTION_MAX_RETRIES', '3'))
    EXTRACTION_DELAY_MS: int = int(os.getenv('EXTRACTION_DELAY_MS', '1000'))

    # Gmail (OAuth2 refresh-token flow)
    GMAIL_CLIENT_ID: str = os.getenv('GMAIL_CLIENT_ID', '')
    GMAIL_CLIENT_SECRET: str = os.getenv('GMAIL_CLIENT_SECRET', '')
    GMAIL_REFRESH_TOKEN: str = os.getenv('GMAIL_REFRESH_TOKEN', '')
    GMAIL_TOKEN_URI: str = os.getenv('GMAIL_TOKEN_URI', 'https://oauth2.googleapis.com/token')

    # Inbox polling
    POLL_MAX_RESULTS: int = int(os.getenv('POLL_MAX_RESULTS', '50'))
    POLL_BATCH_SIZE: int = int(os.getenv('POLL_BATCH_SIZE', '10'))
    POLL_MESSAGE_DELAY_MS: int = int(os.getenv('POLL_MESSAGE_DELAY_MS', '100'))
    POLL_BATCH_DELAY_MS: int = int(os.getenv('POLL_BATCH_DELAY_MS', '2000'))
    MAX_CONTENT_LENGTH: int = int(os.getenv('MAX_CONTENT_LENGTH', '4000'))

    # Storage
    DATABASE_URL: str = os.getenv('DATABASE_URL', '')
    DEALS_TABLE_NAME: str = os.getenv('DEALS_TABLE_NAME', 'deals_list')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_JSON: bool = os.getenv('LOG_JSON', '').lower() in ('1', 'true', 'yes')

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate that required configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if not cls.OPENAI_API_KEY:
            missing.append('OPENAI_API_KEY')
        if not cls.DATABASE_URL:
            missing.append('DATABASE_URL')
        if not cls.GMAIL_REFRESH_TOKEN:
            missing.append('GMAIL_REFRESH_TOKEN')
        return missing


# Singleton config instance
config = Config()
