"""
Postgres-backed DealsList table.

Stores deal records the way the admin dashboard sees them: a free-form
JSON item per deal, addressed by deal_id. The columns next to the item are
projections of item fields used for lookups:

- deal_id (primary key) + created_at (sort column)
- chain_id, active, deal_type: secondary indexes, each paired with created_at
- ttl: epoch seconds after which the record is purged (purge_expired)

Uses SQLAlchemy 2.0 async engine + asyncpg with raw SQL.
"""

from __future__ import annotations

import json
import re
import time
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..errors import wrap_storage_error

logger = structlog.get_logger(__name__)

_TABLE_NAME_RE = re.compile(r'^[a-z_][a-z0-9_]*$')


def _sanitize_url(url: str) -> str:
    """Remove URL query params that asyncpg does not understand.

    Hosted Postgres URLs often include ``channel_binding=require`` and
    ``sslmode=require`` which are libpq parameters. asyncpg rejects unknown
    connection params. SQLAlchemy's asyncpg dialect handles SSL via
    ``connect_args`` instead.
    """
    _STRIP_PARAMS = {'channel_binding', 'sslmode'}
    parsed = urlparse(url)
    if not parsed.query:
        return url
    params = parse_qs(parsed.query)
    filtered = {k: v for k, v in params.items() if k not in _STRIP_PARAMS}
    new_query = urlencode(filtered, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


def _wants_ssl(url: str) -> bool:
    params = parse_qs(urlparse(url).query)
    return params.get('sslmode', [''])[0] in ('require', 'verify-ca', 'verify-full')


def _active_key(value: Any) -> str:
    """Index value for the active flag ('true'/'false'), stored as text like the dashboard sends it."""
    if isinstance(value, str):
        return 'true' if value.strip().lower() == 'true' else 'false'
    return 'true' if value else 'false'


def _ttl_value(value: Any) -> int | None:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _index_params(item: dict[str, Any]) -> dict[str, Any]:
    """Project an item onto the indexed columns."""
    return {
        'deal_id': str(item['dealId']),
        'created_at': str(item.get('createdAt') or ''),
        'chain_id': item.get('chainId') or None,
        'active': _active_key(item.get('active', True)),
        'deal_type': item.get('dealType') or None,
        'description': item.get('description') or '',
        'ttl': _ttl_value(item.get('ttl')),
        'item': json.dumps(item),
    }


def _row_item(row: Any) -> dict[str, Any]:
    item = row[0]
    if isinstance(item, str):
        return json.loads(item)
    return dict(item)


class DealsTable:
    """
    Async key-value table of deal records.

    All methods raise dealslist.errors.StorageError on database failure.
    """

    def __init__(self, database_url: str | None = None, table_name: str = 'deals_list'):
        """
        Initialize with a Postgres connection URL.

        Args:
            database_url: Postgres connection URL. If the URL starts with
                          'postgres://' or 'postgresql://', it will be
                          converted to use asyncpg.
            table_name: Table holding the deal records
        """
        if not _TABLE_NAME_RE.match(table_name):
            raise ValueError(f'Invalid table name: {table_name!r}')
        self.table_name = table_name
        self._engine: AsyncEngine | None = None
        self._database_url = database_url

    async def connect(self, database_url: str | None = None) -> None:
        """
        Create the async engine. Idempotent: no-op if already connected.

        Args:
            database_url: Override the URL from __init__.
        """
        if self._engine is not None:
            return

        url = database_url or self._database_url
        if not url:
            raise ValueError('database_url is required')

        connect_args: dict[str, Any] = {}
        if _wants_ssl(url):
            connect_args['ssl'] = 'require'
        url = _sanitize_url(url)

        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql+asyncpg://', 1)
        elif url.startswith('postgresql://') and '+asyncpg' not in url:
            url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)

        self._engine = create_async_engine(
            url,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,
            pool_timeout=30,
            connect_args=connect_args,
        )
        logger.info('deals_table.connected', table=self.table_name)

    async def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info('deals_table.closed')

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError('DealsTable not connected, call connect() first')
        return self._engine

    async def verify_connectivity(self) -> bool:
        """Return True if we can execute a simple query."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text('SELECT 1'))
            return True
        except Exception:
            logger.exception('deals_table.connectivity_check_failed')
            return False

    async def setup_schema(self) -> list[str]:
        """
        Create the table and its secondary indexes if missing.

        Returns:
            Names of the indexes ensured
        """
        t = self.table_name
        statements = [
            f"""
            CREATE TABLE IF NOT EXISTS {t} (
                deal_id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                chain_id TEXT,
                active TEXT NOT NULL DEFAULT 'true',
                deal_type TEXT,
                description TEXT NOT NULL DEFAULT '',
                ttl BIGINT,
                item JSONB NOT NULL
            )
            """,
        ]
        indexes = {
            f'{t}_chain_id_idx': '(chain_id, created_at)',
            f'{t}_active_idx': '(active, created_at)',
            f'{t}_deal_type_idx': '(deal_type, created_at)',
            f'{t}_ttl_idx': '(ttl)',
        }
        for name, columns in indexes.items():
            statements.append(f'CREATE INDEX IF NOT EXISTS {name} ON {t} {columns}')

        try:
            async with self.engine.begin() as conn:
                for statement in statements:
                    await conn.execute(text(statement))
        except Exception as e:
            raise wrap_storage_error(e, context={'operation': 'setup_schema'}) from e

        logger.info('deals_table.schema_ready', indexes=list(indexes))
        return list(indexes)

    # =========================================================================
    # Item Operations
    # =========================================================================

    async def get(self, deal_id: str) -> dict[str, Any] | None:
        """Fetch one item by deal ID, or None if absent."""
        sql = text(f'SELECT item FROM {self.table_name} WHERE deal_id = :deal_id')
        rows = await self._fetch(sql, {'deal_id': deal_id}, operation='get')
        return _row_item(rows[0]) if rows else None

    async def put(self, item: dict[str, Any]) -> None:
        """Insert or replace an item. The item must carry a dealId."""
        if not item.get('dealId'):
            raise ValueError('item must have a dealId')

        sql = text(f"""
            INSERT INTO {self.table_name} (
                deal_id, created_at, chain_id, active, deal_type,
                description, ttl, item
            ) VALUES (
                :deal_id, :created_at, :chain_id, :active, :deal_type,
                :description, :ttl, CAST(:item AS jsonb)
            )
            ON CONFLICT (deal_id) DO UPDATE SET
                created_at = EXCLUDED.created_at,
                chain_id = EXCLUDED.chain_id,
                active = EXCLUDED.active,
                deal_type = EXCLUDED.deal_type,
                description = EXCLUDED.description,
                ttl = EXCLUDED.ttl,
                item = EXCLUDED.item
        """)
        params = _index_params(item)
        await self._write(sql, params, operation='put')
        logger.debug('deals_table.put', deal_id=params['deal_id'])

    async def update(self, deal_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
        """
        Merge patch into an existing item and return the new item.

        Keys in patch overwrite top-level keys of the stored item; a None
        value stores null. dealId itself cannot be changed.

        Returns:
            The updated item, or None if no item has this deal ID
        """
        select_sql = text(
            f'SELECT item FROM {self.table_name} WHERE deal_id = :deal_id FOR UPDATE'
        )
        update_sql = text(f"""
            UPDATE {self.table_name} SET
                created_at = :created_at,
                chain_id = :chain_id,
                active = :active,
                deal_type = :deal_type,
                description = :description,
                ttl = :ttl,
                item = CAST(:item AS jsonb)
            WHERE deal_id = :deal_id
        """)
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(select_sql, {'deal_id': deal_id})
                row = result.first()
                if row is None:
                    return None
                item = _row_item(row)
                item.update({k: v for k, v in patch.items() if k != 'dealId'})
                item['dealId'] = deal_id
                await conn.execute(update_sql, _index_params(item))
        except Exception as e:
            raise wrap_storage_error(e, context={'operation': 'update', 'deal_id': deal_id}) from e

        logger.debug('deals_table.update', deal_id=deal_id, keys=sorted(patch))
        return item

    async def delete(self, deal_id: str) -> bool:
        """Delete an item. Returns True if a row was removed."""
        sql = text(f'DELETE FROM {self.table_name} WHERE deal_id = :deal_id')
        rowcount = await self._write(sql, {'deal_id': deal_id}, operation='delete')
        return rowcount > 0

    # =========================================================================
    # Queries
    # =========================================================================

    async def scan(self) -> list[dict[str, Any]]:
        """Return every item, oldest first."""
        sql = text(f'SELECT item FROM {self.table_name} ORDER BY created_at')
        return [_row_item(r) for r in await self._fetch(sql, {}, operation='scan')]

    async def query_by_chain(
        self,
        chain_id: str,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Items for one chain (company), oldest first."""
        sql = f'SELECT item FROM {self.table_name} WHERE chain_id = :chain_id ORDER BY created_at'
        params: dict[str, Any] = {'chain_id': chain_id}
        if limit is not None:
            sql += ' LIMIT :limit'
            params['limit'] = limit
        rows = await self._fetch(text(sql), params, operation='query_by_chain')
        return [_row_item(r) for r in rows]

    async def query_by_active(self, active: bool) -> list[dict[str, Any]]:
        """Items with the given active flag, oldest first."""
        sql = text(
            f'SELECT item FROM {self.table_name} WHERE active = :active ORDER BY created_at'
        )
        rows = await self._fetch(sql, {'active': _active_key(active)}, operation='query_by_active')
        return [_row_item(r) for r in rows]

    async def query_by_deal_type(self, deal_type: str) -> list[dict[str, Any]]:
        """Items of one deal type ('reward' / 'universal'), oldest first."""
        sql = text(
            f'SELECT item FROM {self.table_name} WHERE deal_type = :deal_type ORDER BY created_at'
        )
        rows = await self._fetch(sql, {'deal_type': deal_type}, operation='query_by_deal_type')
        return [_row_item(r) for r in rows]

    async def purge_expired(self, now: int | None = None) -> int:
        """
        Delete items whose ttl (epoch seconds) is in the past.

        Args:
            now: Reference epoch seconds (defaults to current time)

        Returns:
            Number of purged items
        """
        cutoff = int(time.time()) if now is None else now
        sql = text(
            f'DELETE FROM {self.table_name} WHERE ttl IS NOT NULL AND ttl < :now'
        )
        purged = await self._write(sql, {'now': cutoff}, operation='purge_expired')
        logger.info('deals_table.purged_expired', count=purged, cutoff=cutoff)
        return purged

    # =========================================================================
    # Execution helpers
    # =========================================================================

    async def _fetch(self, sql: Any, params: dict[str, Any], operation: str) -> list[Any]:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(sql, params)
                return list(result.fetchall())
        except Exception as e:
            raise wrap_storage_error(e, context={'operation': operation}) from e

    async def _write(self, sql: Any, params: dict[str, Any], operation: str) -> int:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(sql, params)
                return result.rowcount or 0
        except Exception as e:
            raise wrap_storage_error(e, context={'operation': operation}) from e
