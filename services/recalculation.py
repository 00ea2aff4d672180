"""
Recalculation of derived order figures.

The controller owns no data of its own: it reacts to explicit "collection
changed" calls against an `OrderState` snapshot and keeps two derived values
current:

- ResinLot.gross_revenue, recomputed when sale items change
- the monthly profit map, recomputed after any order change

Every change is tagged with its origin. Writes produced by a recompute pass
carry ChangeOrigin.RECOMPUTE and never trigger attribution again, so a
revenue update cannot loop back into another recompute.

Derived writes are issued concurrently on a thread pool and are not awaited;
a failed write is logged and does not stop the rest of the batch. Writes for
the same lot are chained, so a later pass always lands last.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from domain.client import Client
from domain.resin_lot import ResinLot
from domain.sale_item import SaleItem
from repositories.order_store import OrderStore
from services.notifications import Notification, NotificationSink, Severity
from services.profit_aggregation import aggregate_monthly_profit
from services.revenue_attribution import RevenueUpdate, recompute_gross_revenue

logger = logging.getLogger(__name__)

_DEFAULT_MAX_WORKERS: int = int(os.getenv("RECALC_MAX_WORKERS", "8"))


class Collection(str, Enum):
    RESIN_LOTS = "resin_lots"
    SALE_ITEMS = "sale_items"
    CLIENTS = "clients"


class ChangeOrigin(str, Enum):
    USER = "user"
    RECOMPUTE = "recompute"


@dataclass
class OrderState:
    """
    In-memory snapshot of one owner's collections plus derived read models.

    Passed by reference to the controller and the session; mutated only
    after the corresponding store write succeeded, except for recomputed
    gross revenue which is applied immediately.
    """

    resin_lots: List[ResinLot] = field(default_factory=list)
    sale_items: List[SaleItem] = field(default_factory=list)
    clients: List[Client] = field(default_factory=list)
    monthly_profit: Dict[str, Decimal] = field(default_factory=dict)

    def put_resin_lot(self, lot: ResinLot) -> bool:
        """Replace the lot with the same id or append it. True if replaced."""
        return _put(self.resin_lots, lot, "lot_id")

    def put_sale_item(self, item: SaleItem) -> bool:
        return _put(self.sale_items, item, "sale_item_id")

    def put_client(self, client: Client) -> bool:
        return _put(self.clients, client, "client_id")

    def remove_resin_lot(self, lot_id: UUID) -> Optional[ResinLot]:
        return _remove(self.resin_lots, lot_id, "lot_id")

    def remove_sale_item(self, sale_item_id: UUID) -> Optional[SaleItem]:
        return _remove(self.sale_items, sale_item_id, "sale_item_id")

    def remove_client(self, client_id: UUID) -> Optional[Client]:
        return _remove(self.clients, client_id, "client_id")


def _put(records: list, record, id_attr: str) -> bool:
    record_id = getattr(record, id_attr)
    for index, existing in enumerate(records):
        if getattr(existing, id_attr) == record_id:
            records[index] = record
            return True
    records.append(record)
    return False


def _remove(records: list, record_id: UUID, id_attr: str):
    for index, existing in enumerate(records):
        if getattr(existing, id_attr) == record_id:
            return records.pop(index)
    return None


@dataclass(frozen=True, slots=True)
class RecalculationResult:
    """What a single reaction did."""

    attribution_ran: bool
    revenue_updates: List[RevenueUpdate]
    monthly_profit: Dict[str, Decimal]
    writes: List[Future] = field(default_factory=list)

    def wait_for_writes(self, timeout: Optional[float] = None) -> int:
        """Block until the derived writes finish; returns how many failed."""

        if not self.writes:
            return 0
        wait(self.writes, timeout=timeout)
        return sum(1 for f in self.writes if f.done() and not f.result())


class RecalculationController:
    """
    Reacts to collection changes for one owner.

    Example:
        controller = RecalculationController(state, store, owner_id, notify)
        state.put_sale_item(saved_item)
        controller.collection_changed(Collection.SALE_ITEMS)
    """

    def __init__(
        self,
        state: OrderState,
        store: OrderStore,
        owner_id: str,
        notify: Optional[NotificationSink] = None,
        executor: Optional[Executor] = None,
    ):
        self.state = state
        self.store = store
        self.owner_id = owner_id
        self._notify = notify or (lambda notification: None)
        self._executor = executor
        self._owns_executor = executor is None
        # Latest revenue write per lot; a newer write waits for it.
        self._pending_writes: Dict[UUID, Future] = {}

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=_DEFAULT_MAX_WORKERS,
                thread_name_prefix="recalc-write",
            )
        return self._executor

    def shutdown(self, wait_for_writes: bool = True) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=wait_for_writes)
            self._executor = None

    def collection_changed(
        self,
        collection: Collection,
        origin: ChangeOrigin = ChangeOrigin.USER,
    ) -> RecalculationResult:
        """
        Entry point for every change notification.

        - user change to sale items: attribution, then profit
        - any resin lot change, or a recompute-tagged sale item change: profit only
        - client changes: nothing derived depends on them
        """

        if collection is Collection.SALE_ITEMS and origin is ChangeOrigin.USER:
            return self._on_sale_items_changed()
        if collection is Collection.CLIENTS:
            return RecalculationResult(
                attribution_ran=False,
                revenue_updates=[],
                monthly_profit=self.state.monthly_profit,
            )
        return RecalculationResult(
            attribution_ran=False,
            revenue_updates=[],
            monthly_profit=self.refresh_monthly_profit(),
        )

    def refresh_monthly_profit(self) -> Dict[str, Decimal]:
        self.state.monthly_profit = aggregate_monthly_profit(
            self.state.sale_items, self.state.resin_lots
        )
        return self.state.monthly_profit

    def _on_sale_items_changed(self) -> RecalculationResult:
        updates = recompute_gross_revenue(self.state.resin_lots, self.state.sale_items)

        writes: List[Future] = []
        for update in updates:
            self.state.put_resin_lot(update.updated)
            lot_id = update.updated.lot_id
            future = self._get_executor().submit(
                self._persist_revenue, update.updated, self._pending_writes.get(lot_id)
            )
            self._pending_writes[lot_id] = future
            writes.append(future)

        if updates:
            logger.info(
                "Gross revenue recomputed",
                extra={"owner_id": self.owner_id, "updated_lots": len(updates)},
            )
            self._notify(
                Notification(
                    f"Gross revenue updated automatically for {len(updates)} resin lot(s)",
                    Severity.INFO,
                )
            )

        # Revenue writes are resin lot changes caused by this pass.
        self.collection_changed(Collection.RESIN_LOTS, ChangeOrigin.RECOMPUTE)

        return RecalculationResult(
            attribution_ran=True,
            revenue_updates=updates,
            monthly_profit=self.state.monthly_profit,
            writes=writes,
        )

    def _persist_revenue(self, lot: ResinLot, previous: Optional[Future] = None) -> bool:
        if previous is not None:
            # Submitted earlier, so already running or done on this pool.
            wait([previous])
        try:
            self.store.upsert_resin_lot(lot, self.owner_id)
        except Exception:
            logger.warning(
                "Failed to persist recomputed gross revenue",
                exc_info=True,
                extra={"lot_id": str(lot.lot_id), "gross_revenue": str(lot.gross_revenue)},
            )
            return False
        return True


__all__ = [
    "ChangeOrigin",
    "Collection",
    "OrderState",
    "RecalculationController",
    "RecalculationResult",
]
