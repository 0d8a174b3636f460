"""
Persisting extracted deals into the DealsList table.

- convert_deal_format(): Deal → table record (chainId, title, params, ttl, ...)
- PersistenceGate: "is an equivalent deal already stored?" Storage failures
  answer False, so a flaky lookup never blocks an import (a duplicate
  write is the accepted cost).
- DealSaver: gate + put per deal, sequentially, with a saved/skipped/error
  summary. One failing deal never stops the others.
"""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

import structlog

from ..clients.postgres_client import DealsTable
from ..models.deal import Deal
from ..utils import chain_id_for, parse_iso_datetime, to_iso, utc_now_iso

logger = structlog.get_logger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_import_deal_id(chain_id: str, now_ms: int | None = None) -> str:
    """ID for an imported deal: '<chainId>-<epoch ms>-<9 random base36 chars>'."""
    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    suffix = ''.join(random.choices(_ID_ALPHABET, k=9))
    return f'{chain_id}-{stamp}-{suffix}'


def convert_deal_format(deal: Deal, now: datetime | None = None) -> dict[str, Any]:
    """
    Convert an extracted Deal into a DealsList table record.

    An expiry date that does not parse as ISO-8601 is dropped: the record
    gets no endDate and no ttl.

    Args:
        deal: Extracted deal
        now: Creation timestamp (defaults to current UTC time)

    Returns:
        Item dict ready for DealsTable.put()
    """
    created = to_iso(now) if now is not None else utc_now_iso()
    chain_id = chain_id_for(deal.company)

    end_date = ''
    ttl: int | None = None
    if deal.expiry_date:
        expiry = parse_iso_datetime(deal.expiry_date)
        if expiry is None:
            logger.warning('save_deals.invalid_expiry_date', expiry_date=deal.expiry_date)
        else:
            end_date = to_iso(expiry)
            ttl = int(expiry.timestamp())

    item: dict[str, Any] = {
        'dealId': generate_import_deal_id(chain_id),
        'chainId': chain_id,
        'title': f'{deal.company} - {deal.description}',
        'description': deal.description,
        'dealType': deal.category.value,
        'params': {
            'discountAmount': deal.discount_amount,
            'redemptionMethod': deal.redemption_method,
            'additionalInfo': deal.additional_info,
        },
        'startDate': created,
        'endDate': end_date,
        'locationScope': 'national',
        'regions': [],
        'storeIds': [],
        'geoHash': '',
        'active': True,
        'createdAt': created,
        'updatedAt': created,
    }
    if ttl is not None:
        item['ttl'] = ttl
    return item


class PersistenceGate:
    """Decides whether a deal is already stored."""

    def __init__(self, table: DealsTable):
        self.table = table

    async def exists(self, deal: Deal) -> bool:
        """
        True if a stored record of the same chain has a description
        containing this deal's (lowercased, trimmed) description.

        Any storage error resolves to False.
        """
        chain_id = chain_id_for(deal.company)
        needle = deal.description.strip().lower()
        if not chain_id or not needle:
            return False

        try:
            records = await self.table.query_by_chain(chain_id)
        except Exception as e:
            logger.warning(
                'save_deals.exists_check_failed',
                chain_id=chain_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        return any(needle in str(r.get('description') or '').lower() for r in records)


@dataclass
class SaveDealsResult:
    """Summary of one save request."""

    total: int
    saved_ids: list[str] = field(default_factory=list)
    skipped_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def saved_count(self) -> int:
        return len(self.saved_ids)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, Any]:
        """API response shape (camelCase)."""
        result: dict[str, Any] = {
            'message': f'Successfully processed {self.total} deals',
            'savedCount': self.saved_count,
            'skippedCount': self.skipped_count,
            'errorCount': self.error_count,
        }
        if self.errors:
            result['errors'] = self.errors
        return result


class DealSaver:
    """Saves deals one at a time behind the persistence gate."""

    def __init__(self, table: DealsTable, gate: PersistenceGate | None = None):
        self.table = table
        self.gate = gate or PersistenceGate(table)

    async def save_deals(self, deals: Iterable[Deal]) -> SaveDealsResult:
        """
        Save every deal not already stored.

        Returns:
            SaveDealsResult with saved IDs, skip count and per-deal errors
        """
        deals = list(deals)
        result = SaveDealsResult(total=len(deals))
        logger.info('save_deals.start', deal_count=len(deals))

        for deal in deals:
            try:
                if await self.gate.exists(deal):
                    logger.info(
                        'save_deals.skipped_duplicate',
                        company=deal.company,
                        description=deal.description,
                    )
                    result.skipped_count += 1
                    continue

                item = convert_deal_format(deal, now=datetime.now(timezone.utc))
                await self.table.put(item)
                result.saved_ids.append(item['dealId'])
                logger.info('save_deals.saved', deal_id=item['dealId'], title=item['title'])
            except Exception as e:
                logger.error(
                    'save_deals.failed',
                    company=deal.company,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.errors.append(f'{deal.company}: {e}')

        logger.info('save_deals.complete', **result.to_dict())
        return result
