"""
Sale item repository (persistence).

This module provides *only* persistence operations for the SaleItem domain
entity. It does not resolve buyer names into clients; callers bind client_id
before saving.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping
from uuid import UUID, uuid4

from domain.normalization import normalize_bulk, sale_item_from_raw
from domain.sale_item import SaleItem
from repositories.client import get_supabase
from repositories.rows import (
    date_to_row,
    decimal_to_row,
    execute_or_raise,
    id_to_row,
)

logger = logging.getLogger(__name__)

# Supabase table name for sale items.
# Keep this aligned with your database schema.
_SALE_ITEMS_TABLE: str = "sale_items"


def _item_to_row(item: SaleItem, owner_id: str) -> dict[str, Any]:
    """Convert a domain SaleItem to a Supabase row payload."""

    return {
        "sale_item_id": id_to_row(item.sale_item_id),
        "owner_id": owner_id,
        "item_name": item.item_name,
        "price": decimal_to_row(item.price),
        "location": item.location.value,
        "sale_date": date_to_row(item.sale_date),
        "buyer_name": item.buyer_name,
        "client_id": id_to_row(item.client_id),
        "delivered": item.delivered,
    }


def _row_to_raw(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": row.get("sale_item_id"),
        "item_name": row.get("item_name"),
        "price": row.get("price"),
        "location": row.get("location"),
        "sale_date": row.get("sale_date"),
        "buyer_name": row.get("buyer_name"),
        "client_id": row.get("client_id"),
        "delivered": row.get("delivered"),
    }


def list_sale_items(owner_id: str) -> List[SaleItem]:
    """Retrieve all sale items for an owner, most recent sale first."""

    query = (
        get_supabase()
        .table(_SALE_ITEMS_TABLE)
        .select("*")
        .eq("owner_id", owner_id)
        .order("sale_date", desc=True)
    )
    rows = execute_or_raise(query, "list sale items")
    return normalize_bulk((_row_to_raw(r) for r in rows), sale_item_from_raw).records


def upsert_sale_item(item: SaleItem, owner_id: str) -> SaleItem:
    """Insert or overwrite a sale item, assigning an id when absent."""

    stored = item if item.sale_item_id is not None else item.with_id(uuid4())
    query = get_supabase().table(_SALE_ITEMS_TABLE).upsert(_item_to_row(stored, owner_id))
    execute_or_raise(query, "save sale item")
    return stored


def delete_sale_item(sale_item_id: UUID) -> bool:
    """Delete a sale item. Returns False if the store rejected the delete."""

    try:
        query = (
            get_supabase()
            .table(_SALE_ITEMS_TABLE)
            .delete()
            .eq("sale_item_id", str(sale_item_id))
        )
        execute_or_raise(query, "delete sale item")
    except Exception:
        logger.exception("Failed to delete sale item", extra={"sale_item_id": str(sale_item_id)})
        return False
    return True


__all__ = ["list_sale_items", "upsert_sale_item", "delete_sale_item"]
