"""
Monthly profit aggregation and dashboard figures.

Two revenue sources feed the same month buckets:
- delivered sale items contribute their price, keyed by sale_date
- delivered, closed resin lots contribute gross_revenue - cost, keyed by end_date

Totals may be negative (a loss-making month) and are never clamped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from domain.resin_lot import ResinLot, ResinLotStatus
from domain.sale_item import SaleItem
from domain.time import month_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BuyerSpend:
    """Total spent by one buyer name."""
    buyer_name: str
    total_spent: Decimal


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    """Headline figures shown on the dashboard."""
    pending_resin_lots: int
    pending_sale_items: int
    delivered_resin_lots: int
    delivered_sale_items: int
    current_month_profit: Decimal
    current_year_profit: Decimal

    @property
    def total_pending(self) -> int:
        return self.pending_resin_lots + self.pending_sale_items

    @property
    def total_delivered(self) -> int:
        return self.delivered_resin_lots + self.delivered_sale_items


def _add(buckets: Dict[str, Decimal], key: str, amount: Decimal) -> None:
    buckets[key] = buckets.get(key, Decimal("0")) + amount


def aggregate_monthly_profit(
    sale_items: Iterable[SaleItem],
    resin_lots: Iterable[ResinLot],
) -> Dict[str, Decimal]:
    """
    Build the month -> net profit map ('YYYY-MM' keys).

    Records whose relevant date is not a calendar date are skipped with a
    warning. Open lots (no end_date) never contribute.
    """

    buckets: Dict[str, Decimal] = {}

    for item in sale_items:
        if not item.delivered:
            continue
        if not isinstance(item.sale_date, date):
            logger.warning(
                "Skipping sale item with unparseable sale_date",
                extra={"sale_item_id": str(item.sale_item_id), "sale_date": repr(item.sale_date)},
            )
            continue
        _add(buckets, month_key(item.sale_date), item.price)

    for lot in resin_lots:
        if lot.status is not ResinLotStatus.DELIVERED or lot.end_date is None:
            continue
        if not isinstance(lot.end_date, date):
            logger.warning(
                "Skipping resin lot with unparseable end_date",
                extra={"lot_id": str(lot.lot_id), "end_date": repr(lot.end_date)},
            )
            continue
        _add(buckets, month_key(lot.end_date), lot.gross_revenue - lot.cost)

    return buckets


def sorted_months(monthly: Mapping[str, Decimal]) -> List[tuple[str, Decimal]]:
    """Chronological (month, amount) pairs."""

    return sorted(monthly.items())


def summarize_dashboard(
    sale_items: Sequence[SaleItem],
    resin_lots: Sequence[ResinLot],
    monthly: Mapping[str, Decimal],
    *,
    today: Optional[date] = None,
) -> DashboardSummary:
    """
    Order counts plus profit for the current month and year.

    `today` defaults to the wall-clock date.
    """

    today = today or date.today()
    this_month = month_key(today)
    this_year = f"{today.year:04d}-"

    month_profit = Decimal("0")
    year_profit = Decimal("0")
    for key, amount in monthly.items():
        if key == this_month:
            month_profit += amount
        if key.startswith(this_year):
            year_profit += amount

    return DashboardSummary(
        pending_resin_lots=sum(1 for lot in resin_lots if lot.status is ResinLotStatus.PENDING),
        pending_sale_items=sum(1 for item in sale_items if not item.delivered),
        delivered_resin_lots=sum(1 for lot in resin_lots if lot.status is ResinLotStatus.DELIVERED),
        delivered_sale_items=sum(1 for item in sale_items if item.delivered),
        current_month_profit=month_profit,
        current_year_profit=year_profit,
    )


def rank_buyers(sale_items: Iterable[SaleItem]) -> List[BuyerSpend]:
    """
    Total spend per buyer, highest first.

    Buyer names are grouped on their trimmed text; items without a buyer or
    with a zero price are ignored.
    """

    totals: Dict[str, Decimal] = {}
    for item in sale_items:
        buyer = item.buyer_name.strip() if item.buyer_name else ""
        if not buyer or item.price <= 0:
            continue
        _add(totals, buyer, item.price)

    ranking = [BuyerSpend(buyer_name=name, total_spent=total) for name, total in totals.items()]
    ranking.sort(key=lambda spend: spend.total_spent, reverse=True)
    return ranking


__all__ = [
    "BuyerSpend",
    "DashboardSummary",
    "aggregate_monthly_profit",
    "rank_buyers",
    "sorted_months",
    "summarize_dashboard",
]
