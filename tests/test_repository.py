"""
Tests for the deals admin repository.

Tests cover:
- list with active / deal type filters
- create: dealId generation, timestamps, ttl = endDate + 30 days
- update: patch merge, updatedAt refresh, ttl recompute, missing deal
- delete and purge_expired
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from conftest import InMemoryDealsTable
from dealslist.errors import ValidationError
from dealslist.repository import DealRepository, expiry_ttl


@pytest.fixture
def table() -> InMemoryDealsTable:
    return InMemoryDealsTable(
        [
            {'dealId': 'a', 'dealType': 'reward', 'active': True},
            {'dealId': 'b', 'dealType': 'universal', 'active': False},
            {'dealId': 'c', 'dealType': 'universal', 'active': True},
        ]
    )


@pytest.fixture
def repo(table) -> DealRepository:
    return DealRepository(table)


class TestExpiryTtl:
    def test_thirty_days_after_end_date(self):
        end = datetime(2030, 6, 30, tzinfo=timezone.utc)
        assert expiry_ttl('2030-06-30') == int((end + timedelta(days=30)).timestamp())

    def test_accepts_z_suffix(self):
        end = datetime(2030, 6, 30, 12, tzinfo=timezone.utc)
        assert expiry_ttl('2030-06-30T12:00:00Z') == int((end + timedelta(days=30)).timestamp())

    @pytest.mark.parametrize('value', [None, ''])
    def test_no_end_date(self, value):
        assert expiry_ttl(value) is None

    @pytest.mark.parametrize('value', ['someday', 12345])
    def test_invalid_end_date(self, value):
        with pytest.raises(ValidationError):
            expiry_ttl(value)


class TestListDeals:
    @pytest.mark.asyncio
    async def test_all(self, repo):
        assert [d['dealId'] for d in await repo.list_deals()] == ['a', 'b', 'c']

    @pytest.mark.asyncio
    async def test_by_active(self, repo):
        assert [d['dealId'] for d in await repo.list_deals(active=True)] == ['a', 'c']

    @pytest.mark.asyncio
    async def test_by_deal_type(self, repo):
        assert [d['dealId'] for d in await repo.list_deals(deal_type='universal')] == ['b', 'c']

    @pytest.mark.asyncio
    async def test_combined_filters(self, repo):
        deals = await repo.list_deals(active=True, deal_type='universal')
        assert [d['dealId'] for d in deals] == ['c']


class TestCreateDeal:
    @pytest.mark.asyncio
    async def test_generates_id_and_timestamps(self, repo, table):
        item = await repo.create_deal({'title': 'Coffee Co - latte', 'endDate': '2030-06-30'})

        assert UUID(item['dealId']).version == 7
        assert item['createdAt'] == item['updatedAt']
        assert item['createdAt'].endswith('Z')
        assert item['ttl'] == expiry_ttl('2030-06-30')
        assert table.items[item['dealId']] == item

    @pytest.mark.asyncio
    async def test_keeps_given_id(self, repo):
        item = await repo.create_deal({'dealId': 'custom-1', 'title': 'x'})
        assert item['dealId'] == 'custom-1'
        assert 'ttl' not in item

    @pytest.mark.asyncio
    async def test_rejects_bad_end_date(self, repo, table):
        with pytest.raises(ValidationError):
            await repo.create_deal({'endDate': 'not a date'})
        assert len(table.items) == 3

    @pytest.mark.asyncio
    async def test_rejects_non_object(self, repo):
        with pytest.raises(ValidationError):
            await repo.create_deal(['not', 'a', 'dict'])


class TestUpdateDeal:
    @pytest.mark.asyncio
    async def test_merges_patch_and_refreshes_updated_at(self, repo):
        item = await repo.update_deal('a', {'title': 'New title', 'createdAt': 'hacked'})

        assert item['title'] == 'New title'
        assert item['dealType'] == 'reward'
        assert 'createdAt' not in item
        assert item['updatedAt'].endswith('Z')

    @pytest.mark.asyncio
    async def test_recomputes_ttl_on_end_date(self, repo):
        item = await repo.update_deal('a', {'endDate': '2031-01-01'})
        assert item['ttl'] == expiry_ttl('2031-01-01')

    @pytest.mark.asyncio
    async def test_clearing_end_date_clears_ttl(self, repo, table):
        table.items['a']['ttl'] = 123
        item = await repo.update_deal('a', {'endDate': ''})
        assert item['ttl'] is None

    @pytest.mark.asyncio
    async def test_missing_deal(self, repo):
        assert await repo.update_deal('nope', {'title': 'x'}) is None


class TestDeleteAndPurge:
    @pytest.mark.asyncio
    async def test_delete(self, repo, table):
        assert await repo.delete_deal('a') is True
        assert await repo.delete_deal('a') is False
        assert 'a' not in table.items

    @pytest.mark.asyncio
    async def test_purge_expired(self, repo, table):
        table.items['a']['ttl'] = 100
        table.items['b']['ttl'] = 10_000
        assert await repo.purge_expired(now=1_000) == 1
        assert set(table.items) == {'b', 'c'}
