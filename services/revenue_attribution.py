"""
Revenue attribution for resin lots.

A lot earns the price of every sale dated inside its interval:
- closed lot:  purchase_date <= sale_date <= end_date (both ends inclusive)
- open lot:    sale_date >= purchase_date, with no upper bound

Lots are not exclusive. When two lots overlap, a sale inside both intervals
counts toward each of them.

All functions here are pure; persistence of changed values is handled by the
recalculation controller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Sequence

from domain.resin_lot import ResinLot
from domain.sale_item import SaleItem


@dataclass(frozen=True, slots=True)
class RevenueUpdate:
    """A lot whose stored gross_revenue differs from the recomputed value."""

    previous: ResinLot
    updated: ResinLot

    @property
    def delta(self) -> Decimal:
        return self.updated.gross_revenue - self.previous.gross_revenue


def sale_in_lot_interval(lot: ResinLot, sale_date: date) -> bool:
    if sale_date < lot.purchase_date:
        return False
    if lot.end_date is None:
        return True
    return sale_date <= lot.end_date


def attribute_revenue(lot: ResinLot, sale_items: Iterable[SaleItem]) -> Decimal:
    """
    Sum of prices of the sale items that fall inside the lot's interval.

    Returns Decimal 0 when no sale matches. Items without a usable sale_date
    are ignored.
    """

    total = Decimal("0")
    for item in sale_items:
        sale_date = getattr(item, "sale_date", None)
        if not isinstance(sale_date, date):
            continue
        if sale_in_lot_interval(lot, sale_date):
            total += item.price
    return total


def recompute_gross_revenue(
    lots: Sequence[ResinLot],
    sale_items: Sequence[SaleItem],
) -> List[RevenueUpdate]:
    """
    Recompute gross_revenue for every lot.

    Only lots whose value changed (exact Decimal comparison) are returned,
    in the order given.
    """

    updates: List[RevenueUpdate] = []
    for lot in lots:
        revenue = attribute_revenue(lot, sale_items)
        if revenue != lot.gross_revenue:
            updates.append(RevenueUpdate(previous=lot, updated=lot.with_gross_revenue(revenue)))
    return updates


__all__ = [
    "RevenueUpdate",
    "attribute_revenue",
    "recompute_gross_revenue",
    "sale_in_lot_interval",
]
