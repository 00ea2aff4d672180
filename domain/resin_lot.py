"""
Domain: Resin lots (raw-material purchases).

A lot is bought on `purchase_date` and consumed until `end_date`. While
`end_date` is absent the lot is still open and keeps accumulating revenue
from every later sale.

Rules implemented here:
- end_date, when present, must be >= purchase_date.
- gross_revenue is derived by the attribution engine; values supplied by
  callers are only an initial estimate.
- Net profit = gross_revenue - cost, defined only for Delivered lots.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_calendar_date


class ResinLotStatus(str, Enum):
    PENDING = "P"
    DELIVERED = "E"
    CANCELLED = "C"


@dataclass(frozen=True, slots=True)
class ResinLot:
    """
    Immutable resin purchase lot.

    `lot_id` is None until the store assigns one on first save.
    """

    lot_id: Optional[UUID]
    purchase_date: date
    quantity: Decimal
    cost: Decimal
    status: ResinLotStatus = ResinLotStatus.PENDING
    end_date: Optional[date] = None
    gross_revenue: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        require_calendar_date("purchase_date", self.purchase_date)
        if self.end_date is not None:
            require_calendar_date("end_date", self.end_date)
            if self.end_date < self.purchase_date:
                raise ValueError("end_date must be >= purchase_date")
        if self.quantity < 0:
            raise ValueError("quantity must be >= 0")
        if self.cost < 0:
            raise ValueError("cost must be >= 0")
        if self.gross_revenue < 0:
            raise ValueError("gross_revenue must be >= 0")

    @property
    def is_open(self) -> bool:
        return self.end_date is None

    @property
    def is_delivered(self) -> bool:
        return self.status is ResinLotStatus.DELIVERED

    def net_profit(self) -> Optional[Decimal]:
        """gross_revenue - cost for Delivered lots, None otherwise."""

        if not self.is_delivered:
            return None
        return self.gross_revenue - self.cost

    def with_gross_revenue(self, gross_revenue: Decimal) -> "ResinLot":
        return replace(self, gross_revenue=gross_revenue)

    def with_id(self, lot_id: UUID) -> "ResinLot":
        return replace(self, lot_id=lot_id)
