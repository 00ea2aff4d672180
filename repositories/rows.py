"""
Row helpers shared by the Supabase repositories.

Kept free of business rules: only request execution and value serialization.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from postgrest.exceptions import APIError

from domain.exceptions import PersistenceFailure


def execute_or_raise(query: Any, action: str) -> list[dict[str, Any]]:
    """
    Execute a postgrest query and return its rows.

    supabase-py reports failures either by raising APIError or, in older
    releases, through a `response.error` attribute; both become
    PersistenceFailure.
    """

    try:
        response = query.execute()
    except APIError as e:
        raise PersistenceFailure(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise PersistenceFailure(f"Failed to {action}: {error}")

    return getattr(response, "data", None) or []


def date_to_row(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def decimal_to_row(value: Decimal) -> str:
    return str(value)


def id_to_row(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


__all__ = ["execute_or_raise", "date_to_row", "decimal_to_row", "id_to_row"]
