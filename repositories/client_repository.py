"""
Client repository for the buyer directory.

Provides functions to list, save and delete clients. Duplicate detection and
merging live in the client resolution service; this module stores whatever it
is given.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping
from uuid import UUID, uuid4

from domain.client import Client
from domain.normalization import client_from_raw, normalize_bulk
from repositories.client import get_supabase
from repositories.rows import execute_or_raise, id_to_row

logger = logging.getLogger(__name__)

_CLIENTS_TABLE: str = "clients"


def _client_to_row(client: Client, owner_id: str) -> dict[str, Any]:
    return {
        "client_id": id_to_row(client.client_id),
        "owner_id": owner_id,
        "name": client.name,
        "email": client.email or "",
        "phone": client.phone or "",
        "address": client.address or "",
    }


def _row_to_raw(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": row.get("client_id"),
        "name": row.get("name"),
        "email": row.get("email"),
        "phone": row.get("phone"),
        "address": row.get("address"),
    }


def list_clients(owner_id: str) -> List[Client]:
    """
    Get all clients of an owner, sorted by name.

    Args:
        owner_id: Account that owns the directory

    Returns:
        List[Client] (possibly empty)
    """
    query = (
        get_supabase()
        .table(_CLIENTS_TABLE)
        .select("*")
        .eq("owner_id", owner_id)
        .order("name")
    )
    rows = execute_or_raise(query, "list clients")
    return normalize_bulk((_row_to_raw(r) for r in rows), client_from_raw).records


def upsert_client(client: Client, owner_id: str) -> Client:
    """
    Insert or overwrite a client, assigning a client_id when absent.

    Example:
        saved = upsert_client(Client(client_id=None, name="Ana"), owner_id)
    """
    stored = client if client.client_id is not None else client.with_id(uuid4())
    query = get_supabase().table(_CLIENTS_TABLE).upsert(_client_to_row(stored, owner_id))
    execute_or_raise(query, "save client")
    return stored


def delete_client(client_id: UUID) -> bool:
    """
    Delete a client.

    Sale items pointing at it keep their buyer_name and are not touched.
    """
    try:
        query = get_supabase().table(_CLIENTS_TABLE).delete().eq("client_id", str(client_id))
        execute_or_raise(query, "delete client")
    except Exception:
        logger.exception("Failed to delete client", extra={"client_id": str(client_id)})
        return False
    return True


__all__ = [
    "list_clients",
    "upsert_client",
    "delete_client",
]
