"""
CSV export service for order data.

Produces one spreadsheet-friendly CSV per collection. Dates are written as
dd/mm/yyyy so that the import script (and spreadsheet tools in the shop's
locale) read them back as calendar dates.

Security:
- CSV Injection Prevention: free-text fields are sanitized so a spreadsheet
  never evaluates them as formulas
- Security Logging: logs when dangerous characters are stripped
"""

from __future__ import annotations

import csv
import logging
from datetime import date
from io import StringIO
from typing import Iterable, Optional

from domain.client import Client
from domain.resin_lot import ResinLot
from domain.sale_item import SaleItem

logger = logging.getLogger(__name__)

RESIN_LOT_COLUMNS = ["id", "purchase_date", "end_date", "quantity", "gross_revenue", "cost", "status"]
SALE_ITEM_COLUMNS = [
    "id",
    "item_name",
    "price",
    "location",
    "sale_date",
    "buyer_name",
    "client_id",
    "delivered",
]
CLIENT_COLUMNS = ["id", "name", "email", "phone", "address"]


def sanitize_csv_field(value: str | None, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    Example:
        sanitize_csv_field("=HYPERLINK(...)", "buyer_name")
        # Returns "HYPERLINK(...)" and logs a warning

        sanitize_csv_field("Ana", "buyer_name")
        # Returns "Ana" (unchanged, no logging)
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    dangerous_chars = {'=', '+', '-', '@', '\t', '\r'}

    stripped_chars = []
    while text and text[0] in dangerous_chars:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention",
            },
        )

    return text


def format_export_date(value: Optional[date]) -> str:
    """dd/mm/yyyy, or an empty cell for missing dates."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def _write(columns: list[str], rows: Iterable[list[str]]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(columns)
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def export_resin_lots_csv(lots: Iterable[ResinLot]) -> str:
    return _write(
        RESIN_LOT_COLUMNS,
        (
            [
                str(lot.lot_id or ""),
                format_export_date(lot.purchase_date),
                format_export_date(lot.end_date),
                str(lot.quantity),
                str(lot.gross_revenue),
                str(lot.cost),
                lot.status.value,
            ]
            for lot in lots
        ),
    )


def export_sale_items_csv(items: Iterable[SaleItem]) -> str:
    return _write(
        SALE_ITEM_COLUMNS,
        (
            [
                str(item.sale_item_id or ""),
                sanitize_csv_field(item.item_name, "item_name"),
                str(item.price),
                item.location.value,
                format_export_date(item.sale_date),
                sanitize_csv_field(item.buyer_name, "buyer_name"),
                str(item.client_id or ""),
                "true" if item.delivered else "false",
            ]
            for item in items
        ),
    )


def export_clients_csv(clients: Iterable[Client]) -> str:
    return _write(
        CLIENT_COLUMNS,
        (
            [
                str(client.client_id or ""),
                sanitize_csv_field(client.name, "name"),
                sanitize_csv_field(client.email, "email"),
                sanitize_csv_field(client.phone, "phone"),
                sanitize_csv_field(client.address, "address"),
            ]
            for client in clients
        ),
    )


__all__ = [
    "CLIENT_COLUMNS",
    "RESIN_LOT_COLUMNS",
    "SALE_ITEM_COLUMNS",
    "export_clients_csv",
    "export_resin_lots_csv",
    "export_sale_items_csv",
    "format_export_date",
    "sanitize_csv_field",
]
