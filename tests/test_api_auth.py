"""Tests for admin API bearer token authentication."""

import pytest
from unittest.mock import patch, MagicMock
from fastapi import HTTPException

from dealslist.api.auth import verify_admin_token


@pytest.fixture
def settings():
    mock_settings = MagicMock()
    mock_settings.ADMIN_API_KEY = "test-secret-key"
    with patch("dealslist.api.auth.get_settings", return_value=mock_settings):
        yield mock_settings


class TestBearerAuth:
    @pytest.mark.asyncio
    async def test_valid_token_passes(self, settings):
        await verify_admin_token(authorization="Bearer test-secret-key")

    @pytest.mark.asyncio
    async def test_invalid_token_raises_401(self, settings):
        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_token(authorization="Bearer wrong-key")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_bearer_prefix_raises_401(self, settings):
        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_token(authorization="test-secret-key")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_header_raises_401(self, settings):
        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_token(authorization=None)
        assert exc_info.value.status_code == 401
