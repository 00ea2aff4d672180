"""
Tests for `domain/normalization.py`.

Covers:
- Numeric coercion to non-negative decimals
- Date coercion (store timestamps, calendar dates, rejection)
- Required-field validation with the offending field named
- Bulk normalization dropping and counting invalid rows
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest

from domain.exceptions import ValidationError
from domain.normalization import (
    client_from_raw,
    coerce_bool,
    coerce_decimal,
    normalize_bulk,
    resin_lot_from_raw,
    sale_item_from_raw,
)
from domain.resin_lot import ResinLotStatus
from domain.sale_item import SaleLocation


class TestCoerceDecimal:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("12.50", Decimal("12.50")),
            ("12,50", Decimal("12.50")),
            (7, Decimal("7")),
            (None, Decimal("0")),
            ("", Decimal("0")),
            ("abc", Decimal("0")),
            ("-5", Decimal("0")),
            ("NaN", Decimal("0")),
            (True, Decimal("0")),
        ],
    )
    def test_optional_values(self, value, expected):
        assert coerce_decimal(value, "price") == expected

    def test_required_missing_value_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            coerce_decimal(None, "cost", required=True)
        assert exc_info.value.field == "cost"


@pytest.mark.parametrize("value", [True, "true", "Sí", "x", "1", " yes "])
def test_coerce_bool_true_values(value):
    assert coerce_bool(value) is True


@pytest.mark.parametrize("value", [False, None, "", "no", "0", 1])
def test_coerce_bool_false_values(value):
    assert coerce_bool(value) is False


class TestResinLotFromRaw:
    def test_full_record(self):
        lot = resin_lot_from_raw({
            "id": "00000000-0000-0000-0000-000000000001",
            "purchase_date": "2024-01-01T00:00:00Z",
            "end_date": date(2024, 1, 31),
            "quantity": "2",
            "cost": "50",
            "gross_revenue": "30",
            "status": "E",
        })

        assert lot.lot_id == UUID("00000000-0000-0000-0000-000000000001")
        assert lot.purchase_date == date(2024, 1, 1)
        assert lot.end_date == date(2024, 1, 31)
        assert lot.cost == Decimal("50")
        assert lot.status is ResinLotStatus.DELIVERED

    def test_defaults(self):
        lot = resin_lot_from_raw({"purchase_date": "2024-01-01"})

        assert lot.lot_id is None
        assert lot.status is ResinLotStatus.PENDING
        assert lot.quantity == Decimal("0")
        assert lot.end_date is None

    def test_status_by_member_name(self):
        lot = resin_lot_from_raw({"purchase_date": "2024-01-01", "status": "cancelled"})
        assert lot.status is ResinLotStatus.CANCELLED

    def test_missing_purchase_date(self):
        with pytest.raises(ValidationError) as exc_info:
            resin_lot_from_raw({"cost": "10"})
        assert exc_info.value.field == "purchase_date"

    def test_unparseable_date(self):
        with pytest.raises(ValidationError) as exc_info:
            resin_lot_from_raw({"purchase_date": "31/01/2024"})
        assert exc_info.value.field == "purchase_date"

    def test_end_before_start(self):
        with pytest.raises(ValidationError) as exc_info:
            resin_lot_from_raw({"purchase_date": "2024-02-01", "end_date": "2024-01-01"})
        assert exc_info.value.field == "end_date"

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            resin_lot_from_raw({"purchase_date": "2024-01-01", "status": "Z"})


class TestSaleItemFromRaw:
    def test_full_record(self):
        item = sale_item_from_raw({
            "item_name": "  Dragon  ",
            "price": "25",
            "location": "W",
            "sale_date": "2024-01-10",
            "buyer_name": " Ana ",
            "delivered": "true",
        })

        assert item.item_name == "Dragon"
        assert item.location is SaleLocation.MARKETPLACE
        assert item.buyer_name == "Ana"
        assert item.delivered is True
        assert item.client_id is None

    def test_location_defaults_to_personal(self):
        item = sale_item_from_raw({"item_name": "Ring", "sale_date": "2024-01-10"})
        assert item.location is SaleLocation.PERSONAL
        assert item.price == Decimal("0")

    def test_blank_buyer_becomes_none(self):
        item = sale_item_from_raw({"item_name": "Ring", "sale_date": "2024-01-10", "buyer_name": "  "})
        assert item.buyer_name is None

    @pytest.mark.parametrize("missing", ["item_name", "sale_date"])
    def test_required_fields(self, missing):
        raw = {"item_name": "Ring", "sale_date": "2024-01-10"}
        raw.pop(missing)

        with pytest.raises(ValidationError) as exc_info:
            sale_item_from_raw(raw)
        assert exc_info.value.field == missing

    def test_invalid_client_id(self):
        with pytest.raises(ValidationError) as exc_info:
            sale_item_from_raw({"item_name": "Ring", "sale_date": "2024-01-10", "client_id": "nope"})
        assert exc_info.value.field == "client_id"


class TestClientFromRaw:
    def test_blank_contact_fields_become_none(self):
        client = client_from_raw({"name": " Ana ", "email": "", "phone": "600"})

        assert client.name == "Ana"
        assert client.email is None
        assert client.phone == "600"

    def test_empty_name(self):
        with pytest.raises(ValidationError) as exc_info:
            client_from_raw({"name": "   "})
        assert exc_info.value.field == "name"


def test_normalize_bulk_drops_invalid_rows(caplog):
    rows = [
        {"item_name": "Ring", "sale_date": "2024-01-10"},
        {"item_name": "", "sale_date": "2024-01-10"},
        {"item_name": "Necklace"},
        {"item_name": "Bracelet", "sale_date": date(2024, 1, 12)},
    ]

    with caplog.at_level(logging.WARNING, logger="domain.normalization"):
        result = normalize_bulk(rows, sale_item_from_raw)

    assert [item.item_name for item in result.records] == ["Ring", "Bracelet"]
    assert result.dropped == 2
    assert "Dropped 2 invalid record(s)" in caplog.text


def test_normalize_bulk_all_valid_logs_nothing(caplog):
    with caplog.at_level(logging.WARNING, logger="domain.normalization"):
        result = normalize_bulk([{"name": "Ana"}], client_from_raw)

    assert result.dropped == 0
    assert caplog.text == ""
