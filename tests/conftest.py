"""
Pytest configuration and shared fixtures.

Key fixtures:
- openai_api_key: OpenAI API key from environment (live tests skip without it)
- no_sleep: AsyncMock standing in for asyncio.sleep (records requested delays)
- mock_engine: AsyncEngine mock whose begin() yields a mock connection
- gmail_message / b64: builders for Gmail API message resources

Providers (Gmail, OpenAI, Postgres) are mocked everywhere except the
openai_api_key tests. scripts/run_live_import.py covers the full live path.
"""

import base64
import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)


def b64(text: str) -> str:
    """Gmail-style url-safe base64 without padding."""
    return base64.urlsafe_b64encode(text.encode('utf-8')).decode('ascii').rstrip('=')


def gmail_message(message_id: str, payload: dict) -> dict:
    """Minimal Gmail API message resource."""
    return {'id': message_id, 'threadId': f't-{message_id}', 'payload': payload}


def text_part(text: str, mime_type: str = 'text/plain') -> dict:
    return {'mimeType': mime_type, 'body': {'data': b64(text)}}


@pytest.fixture
def openai_api_key() -> str:
    """Get OpenAI API key from environment."""
    key = os.getenv('OPENAI_API_KEY')
    if not key:
        pytest.skip('OPENAI_API_KEY not set')
    return key


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Async sleep replacement; inspect await_args_list for requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def mock_engine():
    """Create a mock AsyncEngine with a mock connection context manager."""
    engine = AsyncMock()

    # Mock the begin() context manager to yield a mock connection
    conn = AsyncMock()
    conn.execute = AsyncMock()

    ctx = AsyncMock()
    ctx.__aenter__ = AsyncMock(return_value=conn)
    ctx.__aexit__ = AsyncMock(return_value=False)

    engine.begin = MagicMock(return_value=ctx)
    engine.dispose = AsyncMock()

    return engine, conn


@pytest.fixture
def sample_deal_json() -> str:
    """Model output for a promotional email with two deals."""
    return """[
  {
    "expiryDate": "2030-06-30",
    "company": "Coffee Co",
    "description": "20% off any latte",
    "redemptionMethod": "Use code LATTE20",
    "discountAmount": "20%",
    "additionalInfo": "Terms apply",
    "category": "universal"
  },
  {
    "expiryDate": "",
    "company": "Coffee Co",
    "description": "Free pastry for rewards members",
    "redemptionMethod": "Through the app",
    "discountAmount": "",
    "additionalInfo": "",
    "category": "reward"
  }
]"""


class InMemoryDealsTable:
    """DealsTable stand-in keeping items in a dict (insertion order = created order)."""

    def __init__(self, items: list[dict] | None = None):
        self.items: dict[str, dict] = {}
        for item in items or []:
            self.items[item['dealId']] = dict(item)

    async def verify_connectivity(self) -> bool:
        return True

    async def get(self, deal_id: str) -> dict | None:
        item = self.items.get(deal_id)
        return dict(item) if item is not None else None

    async def put(self, item: dict) -> None:
        self.items[item['dealId']] = dict(item)

    async def update(self, deal_id: str, patch: dict) -> dict | None:
        if deal_id not in self.items:
            return None
        item = self.items[deal_id]
        item.update({k: v for k, v in patch.items() if k != 'dealId'})
        return dict(item)

    async def delete(self, deal_id: str) -> bool:
        return self.items.pop(deal_id, None) is not None

    async def scan(self) -> list[dict]:
        return [dict(i) for i in self.items.values()]

    async def query_by_chain(self, chain_id: str, limit: int | None = None) -> list[dict]:
        found = [dict(i) for i in self.items.values() if i.get('chainId') == chain_id]
        return found[:limit] if limit is not None else found

    async def query_by_active(self, active: bool) -> list[dict]:
        return [dict(i) for i in self.items.values() if bool(i.get('active', True)) is active]

    async def query_by_deal_type(self, deal_type: str) -> list[dict]:
        return [dict(i) for i in self.items.values() if i.get('dealType') == deal_type]

    async def purge_expired(self, now: int | None = None) -> int:
        expired = [k for k, i in self.items.items() if i.get('ttl') is not None and i['ttl'] < now]
        for key in expired:
            del self.items[key]
        return len(expired)


@pytest.fixture
def deals_table() -> InMemoryDealsTable:
    return InMemoryDealsTable()
