"""
Deal repository for the admin CRUD operations.

Provides:
- Listing deals, optionally filtered by active flag or deal type
- Creating deals with generated IDs, timestamps and expiry ttl
- Reading, patching and deleting single deals
- Purging expired deals
"""

from datetime import timedelta
from typing import Any

import structlog

from .clients.postgres_client import DealsTable
from .errors import ValidationError
from .utils import parse_iso_datetime, utc_now_iso, uuid7

logger = structlog.get_logger(__name__)

# Records stay in the table this long after their endDate
TTL_GRACE_PERIOD = timedelta(days=30)


def expiry_ttl(end_date: Any) -> int | None:
    """
    Epoch seconds at which a deal ending at end_date is purged.

    Returns None when end_date is empty.

    Raises:
        ValidationError: end_date is set but not an ISO-8601 date
    """
    if end_date is None or end_date == '':
        return None
    parsed = parse_iso_datetime(end_date) if isinstance(end_date, str) else None
    if parsed is None:
        raise ValidationError(
            'endDate must be an ISO-8601 date',
            context={'endDate': end_date},
        )
    return int((parsed + TTL_GRACE_PERIOD).timestamp())


class DealRepository:
    """
    CRUD operations over the DealsList table.

    Items are free-form dicts in the dashboard's camelCase shape; only
    dealId, createdAt, updatedAt and ttl are managed here.
    """

    def __init__(self, table: DealsTable):
        """
        Initialize the repository.

        Args:
            table: Connected deals table
        """
        self.table = table

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_deals(
        self,
        active: bool | None = None,
        deal_type: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List deals, oldest first.

        Args:
            active: Only deals with this active flag
            deal_type: Only deals of this type ('reward' / 'universal')

        Both filters may be combined; the first one is served by its index
        and the second is applied to the result.
        """
        if active is not None:
            items = await self.table.query_by_active(active)
            if deal_type is not None:
                items = [i for i in items if i.get('dealType') == deal_type]
            return items
        if deal_type is not None:
            return await self.table.query_by_deal_type(deal_type)
        return await self.table.scan()

    async def get_deal(self, deal_id: str) -> dict[str, Any] | None:
        """Fetch one deal, or None if absent."""
        return await self.table.get(deal_id)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_deal(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Store a new deal.

        The body is stored as given, plus:
        - dealId: kept if present, else a new UUIDv7
        - createdAt / updatedAt: now
        - ttl: endDate + 30 days, when endDate is set

        Returns:
            The stored item

        Raises:
            ValidationError: body is not an object or endDate is malformed
        """
        if not isinstance(body, dict):
            raise ValidationError('Deal body must be a JSON object')

        now = utc_now_iso()
        item = dict(body)
        item['dealId'] = str(item.get('dealId') or uuid7())
        item['createdAt'] = now
        item['updatedAt'] = now

        ttl = expiry_ttl(item.get('endDate'))
        if ttl is not None:
            item['ttl'] = ttl
        else:
            item.pop('ttl', None)

        await self.table.put(item)
        logger.info('deal_repository.created', deal_id=item['dealId'])
        return item

    async def update_deal(self, deal_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
        """
        Merge patch into a stored deal.

        updatedAt is refreshed; ttl is recomputed when the patch sets endDate
        (and removed when endDate is cleared). dealId and createdAt are not
        patchable.

        Returns:
            The updated item, or None if the deal does not exist

        Raises:
            ValidationError: patch is not an object or endDate is malformed
        """
        if not isinstance(patch, dict):
            raise ValidationError('Deal patch must be a JSON object')

        changes = {k: v for k, v in patch.items() if k not in ('dealId', 'createdAt')}
        changes['updatedAt'] = utc_now_iso()
        if 'endDate' in changes:
            changes['ttl'] = expiry_ttl(changes['endDate'])

        item = await self.table.update(deal_id, changes)
        if item is None:
            logger.info('deal_repository.update_missing', deal_id=deal_id)
            return None

        logger.info('deal_repository.updated', deal_id=deal_id, keys=sorted(patch))
        return item

    async def delete_deal(self, deal_id: str) -> bool:
        """Delete a deal. Returns True if it existed."""
        deleted = await self.table.delete(deal_id)
        logger.info('deal_repository.deleted', deal_id=deal_id, existed=deleted)
        return deleted

    async def purge_expired(self, now: int | None = None) -> int:
        """Delete deals whose ttl has passed. Returns how many were removed."""
        return await self.table.purge_expired(now=now)
