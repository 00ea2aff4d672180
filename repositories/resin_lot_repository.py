"""
Resin lot repository (persistence).

This module provides *only* persistence operations for the ResinLot domain
entity. Revenue attribution is not computed here; whatever gross_revenue the
lot carries is written as-is.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping
from uuid import UUID, uuid4

from domain.normalization import normalize_bulk, resin_lot_from_raw
from domain.resin_lot import ResinLot
from repositories.client import get_supabase
from repositories.rows import (
    date_to_row,
    decimal_to_row,
    execute_or_raise,
    id_to_row,
)

logger = logging.getLogger(__name__)

# Supabase table name for resin lots.
# Keep this aligned with your database schema.
_RESIN_LOTS_TABLE: str = "resin_lots"


def _lot_to_row(lot: ResinLot, owner_id: str) -> dict[str, Any]:
    """Convert a domain ResinLot to a Supabase row payload."""

    return {
        "lot_id": id_to_row(lot.lot_id),
        "owner_id": owner_id,
        "purchase_date": date_to_row(lot.purchase_date),
        "end_date": date_to_row(lot.end_date),
        "quantity": decimal_to_row(lot.quantity),
        "gross_revenue": decimal_to_row(lot.gross_revenue),
        "cost": decimal_to_row(lot.cost),
        "status": lot.status.value,
    }


def _row_to_raw(row: Mapping[str, Any]) -> dict[str, Any]:
    """Map column names onto the keys expected by the normalizer."""

    return {
        "id": row.get("lot_id"),
        "purchase_date": row.get("purchase_date"),
        "end_date": row.get("end_date"),
        "quantity": row.get("quantity"),
        "gross_revenue": row.get("gross_revenue"),
        "cost": row.get("cost"),
        "status": row.get("status"),
    }


def list_resin_lots(owner_id: str) -> List[ResinLot]:
    """
    Retrieve all resin lots for an owner, newest purchase first.

    Rows that no longer pass validation are dropped (and logged).
    """

    query = (
        get_supabase()
        .table(_RESIN_LOTS_TABLE)
        .select("*")
        .eq("owner_id", owner_id)
        .order("purchase_date", desc=True)
    )
    rows = execute_or_raise(query, "list resin lots")
    return normalize_bulk((_row_to_raw(r) for r in rows), resin_lot_from_raw).records


def upsert_resin_lot(lot: ResinLot, owner_id: str) -> ResinLot:
    """
    Insert or overwrite a resin lot (last write wins).

    Assigns a new lot_id when the lot has none.
    """

    stored = lot if lot.lot_id is not None else lot.with_id(uuid4())
    query = get_supabase().table(_RESIN_LOTS_TABLE).upsert(_lot_to_row(stored, owner_id))
    execute_or_raise(query, "save resin lot")
    return stored


def delete_resin_lot(lot_id: UUID) -> bool:
    """Delete a resin lot. Returns False if the store rejected the delete."""

    try:
        query = get_supabase().table(_RESIN_LOTS_TABLE).delete().eq("lot_id", str(lot_id))
        execute_or_raise(query, "delete resin lot")
    except Exception:
        logger.exception("Failed to delete resin lot", extra={"lot_id": str(lot_id)})
        return False
    return True


__all__ = ["list_resin_lots", "upsert_resin_lot", "delete_resin_lot"]
