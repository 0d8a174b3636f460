"""Tests for the admin service configuration."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from dealslist.api.config import Settings

BASE_ENV = {
    "DATABASE_URL": "postgresql://u:p@localhost/deals",
    "OPENAI_API_KEY": "sk-test-key",
    "ADMIN_API_KEY": "admin-secret-123",
}


class TestApiConfig:
    def test_config_loads_from_env(self):
        with patch.dict(os.environ, BASE_ENV, clear=False):
            settings = Settings(_env_file=None)
            assert settings.DATABASE_URL == "postgresql://u:p@localhost/deals"
            assert settings.OPENAI_API_KEY == "sk-test-key"
            assert settings.ADMIN_API_KEY == "admin-secret-123"

    def test_config_defaults(self):
        gmail_keys = ("GMAIL_CLIENT_ID", "GMAIL_CLIENT_SECRET", "GMAIL_REFRESH_TOKEN")
        with patch.dict(os.environ, BASE_ENV, clear=False):
            for key in gmail_keys + ("DEALS_TABLE_NAME", "OPENAI_CHAT_MODEL"):
                os.environ.pop(key, None)
            settings = Settings(_env_file=None)
            assert settings.DEALS_TABLE_NAME == "deals_list"
            assert settings.OPENAI_CHAT_MODEL == "gpt-3.5-turbo"
            assert settings.gmail_configured is False

    def test_gmail_configured(self):
        env = {
            **BASE_ENV,
            "GMAIL_CLIENT_ID": "id",
            "GMAIL_CLIENT_SECRET": "secret",
            "GMAIL_REFRESH_TOKEN": "rt",
        }
        with patch.dict(os.environ, env, clear=False):
            assert Settings(_env_file=None).gmail_configured is True

    def test_admin_key_required(self):
        env = {k: v for k, v in BASE_ENV.items() if k != "ADMIN_API_KEY"}
        with patch.dict(os.environ, env, clear=False):
            os.environ.pop("ADMIN_API_KEY", None)
            with pytest.raises(ValidationError):
                Settings(_env_file=None)
