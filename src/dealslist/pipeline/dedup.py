"""
In-batch deduplication of extracted deals.

Two deals are the same when they agree on company and redemption method
(case- and padding-insensitive) and on expiry date and discount amount
(padding-insensitive). The first occurrence wins and keeps its position.
"""

from typing import Iterable

from ..models.deal import Deal

DedupKey = tuple[str, str, str, str]


def deal_dedup_key(deal: Deal) -> DedupKey:
    """Derived identity of a deal for deduplication."""
    return (
        deal.company.strip().lower(),
        deal.expiry_date.strip(),
        deal.discount_amount.strip(),
        deal.redemption_method.strip().lower(),
    )


def dedupe_deals(deals: Iterable[Deal]) -> list[Deal]:
    """Drop deals whose key was already seen, preserving first-seen order."""
    seen: set[DedupKey] = set()
    unique: list[Deal] = []
    for deal in deals:
        key = deal_dedup_key(deal)
        if key in seen:
            continue
        seen.add(key)
        unique.append(deal)
    return unique
