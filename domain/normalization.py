"""
Domain: raw-record normalization.

Turns loosely-typed mappings (API payloads, store rows, imported spreadsheet
rows) into validated entities before they reach any engine.

Rules:
- Numeric fields become non-negative Decimals; absent, unparseable or
  negative values become 0 unless the field is required.
- Date fields become calendar dates or the record is rejected. Values that
  already are dates are taken as-is.
- A record failing a required-field check raises ValidationError. Bulk flows
  drop such records and only count them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, Iterable, List, Mapping, Optional, TypeVar
from uuid import UUID

from .client import Client
from .exceptions import ValidationError
from .resin_lot import ResinLot, ResinLotStatus
from .sale_item import SaleItem, SaleLocation
from .time import to_calendar_date

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ZERO = Decimal("0")
_TRUE_STRINGS = {"true", "1", "yes", "y", "si", "sí", "x"}


def coerce_decimal(value: Any, name: str, *, required: bool = False) -> Decimal:
    """Coerce to a finite, non-negative Decimal (0 when absent or invalid)."""

    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"Missing required field: {name}", field=name)
        return _ZERO

    if isinstance(value, bool):
        return _ZERO

    try:
        amount = Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        if required:
            raise ValidationError(f"{name} is not a number: {value!r}", field=name)
        return _ZERO

    if not amount.is_finite() or amount < 0:
        return _ZERO
    return amount


def coerce_date(value: Any, name: str, *, required: bool = False) -> Optional[date]:
    """Coerce a calendar-date value; unparseable input is rejected."""

    try:
        result = to_calendar_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} is not a valid date: {value!r}", field=name)

    if result is None and required:
        raise ValidationError(f"Missing required field: {name}", field=name)
    return result


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().casefold() in _TRUE_STRINGS
    return False


def coerce_text(value: Any) -> Optional[str]:
    """Strip text fields; blank becomes None."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_id(value: Any, name: str) -> Optional[UUID]:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(f"{name} is not a valid identifier: {value!r}", field=name)


def _coerce_status(value: Any) -> ResinLotStatus:
    if value is None or value == "":
        return ResinLotStatus.PENDING
    if isinstance(value, ResinLotStatus):
        return value
    text = str(value).strip()
    try:
        return ResinLotStatus(text.upper())
    except ValueError:
        pass
    try:
        return ResinLotStatus[text.upper()]
    except KeyError:
        raise ValidationError(f"Unknown resin lot status: {value!r}", field="status")


def _coerce_location(value: Any) -> SaleLocation:
    if value is None or value == "":
        return SaleLocation.PERSONAL
    if isinstance(value, SaleLocation):
        return value
    text = str(value).strip()
    try:
        return SaleLocation(text.upper())
    except ValueError:
        pass
    try:
        return SaleLocation[text.upper()]
    except KeyError:
        raise ValidationError(f"Unknown sale location: {value!r}", field="location")


def resin_lot_from_raw(raw: Mapping[str, Any]) -> ResinLot:
    """
    Build a ResinLot from a raw mapping.

    Required: purchase_date. Status defaults to Pending.
    """

    purchase_date = coerce_date(raw.get("purchase_date"), "purchase_date", required=True)
    end_date = coerce_date(raw.get("end_date"), "end_date")

    if end_date is not None and end_date < purchase_date:
        raise ValidationError("end_date must be >= purchase_date", field="end_date")

    return ResinLot(
        lot_id=coerce_id(raw.get("id"), "id"),
        purchase_date=purchase_date,
        end_date=end_date,
        quantity=coerce_decimal(raw.get("quantity"), "quantity"),
        gross_revenue=coerce_decimal(raw.get("gross_revenue"), "gross_revenue"),
        cost=coerce_decimal(raw.get("cost"), "cost"),
        status=_coerce_status(raw.get("status")),
    )


def sale_item_from_raw(raw: Mapping[str, Any]) -> SaleItem:
    """
    Build a SaleItem from a raw mapping.

    Required: item_name and sale_date.
    """

    item_name = coerce_text(raw.get("item_name"))
    if item_name is None:
        raise ValidationError("Missing required field: item_name", field="item_name")

    return SaleItem(
        sale_item_id=coerce_id(raw.get("id"), "id"),
        item_name=item_name,
        price=coerce_decimal(raw.get("price"), "price"),
        location=_coerce_location(raw.get("location")),
        sale_date=coerce_date(raw.get("sale_date"), "sale_date", required=True),
        buyer_name=coerce_text(raw.get("buyer_name")),
        client_id=coerce_id(raw.get("client_id"), "client_id"),
        delivered=coerce_bool(raw.get("delivered")),
    )


def client_from_raw(raw: Mapping[str, Any]) -> Client:
    """
    Build a Client from a raw mapping.

    Required: a name that is non-empty after trimming.
    """

    name = coerce_text(raw.get("name"))
    if name is None:
        raise ValidationError("Client name must not be empty", field="name")

    return Client(
        client_id=coerce_id(raw.get("id"), "id"),
        name=name,
        email=coerce_text(raw.get("email")),
        phone=coerce_text(raw.get("phone")),
        address=coerce_text(raw.get("address")),
    )


@dataclass(frozen=True, slots=True)
class BulkNormalization(Generic[T]):
    """Valid records plus how many raw rows were dropped."""

    records: List[T] = field(default_factory=list)
    dropped: int = 0


def normalize_bulk(
    rows: Iterable[Mapping[str, Any]],
    factory: Callable[[Mapping[str, Any]], T],
) -> BulkNormalization[T]:
    """
    Normalize many raw rows, silently dropping invalid ones.

    Example:
        result = normalize_bulk(rows, sale_item_from_raw)
        store_all(result.records)
    """

    records: List[T] = []
    dropped = 0
    for row in rows:
        try:
            records.append(factory(row))
        except ValidationError:
            dropped += 1

    if dropped:
        logger.warning(
            "Dropped %d invalid record(s) during bulk normalization",
            dropped,
            extra={"dropped": dropped, "kept": len(records)},
        )
    return BulkNormalization(records=records, dropped=dropped)


__all__ = [
    "BulkNormalization",
    "client_from_raw",
    "coerce_bool",
    "coerce_date",
    "coerce_decimal",
    "coerce_id",
    "coerce_text",
    "normalize_bulk",
    "resin_lot_from_raw",
    "sale_item_from_raw",
]
