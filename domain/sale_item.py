"""
Domain: Finished-item sales.

`buyer_name` is free text and the source of truth for display. `client_id` is
derived: the client resolution engine binds it the first time an item with a
buyer name is saved. Later client renames are not propagated back.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_calendar_date


class SaleLocation(str, Enum):
    MARKETPLACE = "W"
    SHOP = "T"
    PERSONAL = "P"
    FRIENDS = "A"


@dataclass(frozen=True, slots=True)
class SaleItem:
    """Immutable record of one finished item sold to a buyer."""

    sale_item_id: Optional[UUID]
    item_name: str
    price: Decimal
    location: SaleLocation
    sale_date: date
    buyer_name: Optional[str] = None
    client_id: Optional[UUID] = None
    delivered: bool = False

    def __post_init__(self) -> None:
        require_calendar_date("sale_date", self.sale_date)
        if not self.item_name or not self.item_name.strip():
            raise ValueError("item_name must not be empty")
        if self.price < 0:
            raise ValueError("price must be >= 0")

    @property
    def has_buyer(self) -> bool:
        return bool(self.buyer_name and self.buyer_name.strip())

    def with_client(self, client_id: Optional[UUID]) -> "SaleItem":
        return replace(self, client_id=client_id)

    def with_id(self, sale_item_id: UUID) -> "SaleItem":
        return replace(self, sale_item_id=sale_item_id)
