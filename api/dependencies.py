"""
Request-scoped dependencies.

Every request gets its own OrderTrackingSession for the owner named in the
`X-Owner-Id` header, loaded from the store before the endpoint runs and
closed (pending derived writes flushed) afterwards.

Tests override `get_store` to run the API against an in-memory store.
"""

from typing import Iterator

from fastapi import Depends, Header, HTTPException

from domain.exceptions import PersistenceFailure
from repositories.order_store import OrderStore, SupabaseOrderStore
from services.notifications import NotificationLog
from services.order_session import OrderTrackingSession


def get_store() -> OrderStore:
    return SupabaseOrderStore()


def get_session(
    x_owner_id: str = Header(..., description="Owner whose orders are being managed"),
    store: OrderStore = Depends(get_store),
) -> Iterator[OrderTrackingSession]:
    owner_id = x_owner_id.strip()
    if not owner_id:
        raise HTTPException(status_code=400, detail="X-Owner-Id header must not be empty")

    session = OrderTrackingSession(store, owner_id, notify=NotificationLog())
    try:
        session.load()
    except PersistenceFailure as e:
        session.close()
        raise HTTPException(status_code=502, detail=f"Failed to load orders: {str(e)}")

    try:
        yield session
    finally:
        session.close()
