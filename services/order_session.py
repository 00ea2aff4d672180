"""
Order tracking session for one owner.

Loads the owner's resin lots, sale items and clients into an OrderState and
exposes the save/delete operations the dashboard needs. Each successful
mutation updates the local snapshot, publishes a notification and reports
the change to the RecalculationController.

Error handling:
- ValidationError from normalization propagates to the caller untouched;
  nothing is written.
- PersistenceFailure on a direct edit publishes an error notification and is
  re-raised; the local snapshot is left unchanged.
- Auto-creating a client for a buyer name is silent, including when it fails.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from domain.client import CONTACT_FIELDS, Client
from domain.exceptions import PersistenceFailure
from domain.normalization import client_from_raw, resin_lot_from_raw, sale_item_from_raw
from domain.resin_lot import ResinLot
from domain.sale_item import SaleItem
from repositories.order_store import OrderStore
from services.client_resolution import (
    MergeResult,
    create_client_if_absent,
    find_client,
    merge_duplicates,
    relink_sale_items,
    sales_for_client,
)
from services.notifications import Notification, NotificationLog, NotificationSink, Severity
from services.profit_aggregation import (
    BuyerSpend,
    DashboardSummary,
    rank_buyers,
    summarize_dashboard,
)
from services.recalculation import (
    ChangeOrigin,
    Collection,
    OrderState,
    RecalculationController,
    RecalculationResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DuplicateCleanup:
    """Summary of a duplicate-client clean-up run."""
    merged: int
    deleted: int
    relinked_sale_items: int


class OrderTrackingSession:
    """
    Per-owner facade over the store, the snapshot and the recalculation rules.

    Example:
        session = OrderTrackingSession(SupabaseOrderStore(), owner_id="user-1")
        session.load()
        session.save_sale_item({"item_name": "Dragon", "price": "25", ...})
        session.monthly_profit
    """

    def __init__(
        self,
        store: OrderStore,
        owner_id: str,
        notify: Optional[NotificationSink] = None,
        executor: Optional[Executor] = None,
    ):
        self.store = store
        self.owner_id = owner_id
        self.notify: NotificationSink = notify or NotificationLog()
        self.state = OrderState()
        self.controller = RecalculationController(
            self.state, store, owner_id, notify=self.notify, executor=executor
        )
        self.last_recalculation: Optional[RecalculationResult] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Fetch all three collections and bring derived values up to date.

        Duplicate clients found while loading are merged, the losing records
        deleted from the store and their sale items re-pointed at the
        surviving client.
        """

        try:
            resin_lots = self.store.list_resin_lots(self.owner_id)
            sale_items = self.store.list_sale_items(self.owner_id)
            clients = self.store.list_clients(self.owner_id)
        except PersistenceFailure:
            logger.exception("Failed to load orders", extra={"owner_id": self.owner_id})
            self.notify(Notification("Failed to load data. Please try again.", Severity.ERROR))
            raise

        self.state.resin_lots[:] = resin_lots
        self.state.sale_items[:] = sale_items
        self.state.clients[:] = clients

        result = merge_duplicates(clients)
        if result.duplicates:
            self._apply_merge(result)
            self._relink_sale_items()
            self.notify(Notification("Duplicate clients were detected and merged", Severity.INFO))

        self._changed(Collection.SALE_ITEMS)

    # ------------------------------------------------------------------
    # Resin lots
    # ------------------------------------------------------------------

    def save_resin_lot(self, raw: Mapping[str, Any]) -> ResinLot:
        lot = resin_lot_from_raw(raw)
        try:
            saved = self.store.upsert_resin_lot(lot, self.owner_id)
        except PersistenceFailure:
            self._report_failure("Failed to save resin lot")
            raise

        replaced = self.state.put_resin_lot(saved)
        action = "updated" if replaced else "added"
        self.notify(Notification(f"Resin lot {action} successfully."))
        self._changed(Collection.RESIN_LOTS)
        return saved

    def delete_resin_lot(self, lot_id: UUID) -> bool:
        if not self.store.delete_resin_lot(lot_id):
            self.notify(Notification("Could not delete the resin lot.", Severity.ERROR))
            return False

        self.state.remove_resin_lot(lot_id)
        self.notify(Notification("Resin lot deleted successfully."))
        self._changed(Collection.RESIN_LOTS)
        return True

    # ------------------------------------------------------------------
    # Sale items
    # ------------------------------------------------------------------

    def save_sale_item(self, raw: Mapping[str, Any]) -> SaleItem:
        """
        Save a sale item, binding it to a client when it names a buyer.

        The buyer is resolved only if no client_id is bound yet; an unknown
        buyer name creates a new client silently.
        """

        item = sale_item_from_raw(raw)

        if item.has_buyer and item.client_id is None:
            client_id = self._resolve_buyer(item.buyer_name or "")
            if client_id is not None:
                item = item.with_client(client_id)

        try:
            saved = self.store.upsert_sale_item(item, self.owner_id)
        except PersistenceFailure:
            self._report_failure("Failed to save sale item")
            raise

        replaced = self.state.put_sale_item(saved)
        action = "updated" if replaced else "added"
        self.notify(Notification(f'Sale item "{saved.item_name}" {action} successfully.'))
        self._changed(Collection.SALE_ITEMS)
        return saved

    def delete_sale_item(self, sale_item_id: UUID) -> bool:
        if not self.store.delete_sale_item(sale_item_id):
            self.notify(Notification("Could not delete the sale item.", Severity.ERROR))
            return False

        removed = self.state.remove_sale_item(sale_item_id)
        if removed is not None:
            self.notify(Notification(f'Sale item "{removed.item_name}" deleted successfully.'))
        else:
            self.notify(Notification("Sale item deleted successfully."))
        self._changed(Collection.SALE_ITEMS)
        return True

    def _resolve_buyer(self, buyer_name: str) -> Optional[UUID]:
        try:
            resolution = create_client_if_absent(
                buyer_name, self.state.clients, self.store, self.owner_id
            )
        except PersistenceFailure:
            logger.warning(
                "Could not auto-create client for buyer",
                exc_info=True,
                extra={"buyer_name": buyer_name},
            )
            return None

        if resolution.created:
            self.state.put_client(resolution.client)
            self._changed(Collection.CLIENTS)
        return resolution.client.client_id

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def save_client(self, raw: Mapping[str, Any], *, notify: bool = True) -> Client:
        """
        Save a client from the directory screen.

        If another client already has the same normalized name, that client
        is updated instead: new non-empty contact fields replace its values.
        When there is nothing new, the existing client is returned as-is.
        """

        client = client_from_raw(raw)

        existing = find_client(
            client.name,
            (c for c in self.state.clients if c.client_id != client.client_id),
        )
        if existing is not None:
            updates = {
                name: getattr(client, name)
                for name in CONTACT_FIELDS
                if getattr(client, name) and getattr(client, name) != getattr(existing, name)
            }
            if not updates:
                return existing
            client = replace(existing, **updates)

        try:
            saved = self.store.upsert_client(client, self.owner_id)
        except PersistenceFailure:
            if notify:
                self._report_failure("Failed to save client")
            else:
                logger.exception("Failed to save client", extra={"owner_id": self.owner_id})
            raise

        replaced = self.state.put_client(saved)
        if notify:
            action = "updated" if replaced else "added"
            self.notify(Notification(f"Client {saved.name} {action} successfully."))
        self._changed(Collection.CLIENTS)
        return saved

    def delete_client(self, client_id: UUID) -> bool:
        """Delete a client; sale items keep their buyer_name and stale client_id."""

        if not self.store.delete_client(client_id):
            self.notify(Notification("Could not delete the client.", Severity.ERROR))
            return False

        removed = self.state.remove_client(client_id)
        if removed is not None:
            self.notify(Notification(f"Client {removed.name} deleted successfully."))
        else:
            self.notify(Notification("Client deleted successfully."))
        self._changed(Collection.CLIENTS)
        return True

    def clean_duplicate_clients(self) -> DuplicateCleanup:
        """
        Merge duplicate clients and re-point their sale items.

        Relinked sale items are written with origin RECOMPUTE: their dates and
        prices are unchanged, so attribution is not re-run.
        """

        result = merge_duplicates(self.state.clients)
        deleted = self._apply_merge(result) if result.duplicates else 0

        # Items can still point at a client deleted by an earlier merge.
        relinked = self._relink_sale_items()
        if relinked:
            self._changed(Collection.SALE_ITEMS, ChangeOrigin.RECOMPUTE)

        if not result.duplicates and not relinked:
            self.notify(Notification("No duplicate clients found", Severity.INFO))
            return DuplicateCleanup(merged=0, deleted=0, relinked_sale_items=0)

        self.notify(
            Notification(
                f"Merged {result.merged_count} duplicate clients and updated {relinked} sale items"
            )
        )
        return DuplicateCleanup(
            merged=result.merged_count, deleted=deleted, relinked_sale_items=relinked
        )

    def _apply_merge(self, result: MergeResult) -> int:
        """Persist filled survivors, delete losers, replace the local directory."""

        for survivor in result.changed:
            try:
                self.store.upsert_client(survivor, self.owner_id)
            except PersistenceFailure:
                logger.warning(
                    "Failed to save merged client",
                    exc_info=True,
                    extra={"client_id": str(survivor.client_id)},
                )

        deleted = 0
        for duplicate in result.duplicates:
            if self.store.delete_client(duplicate.client_id):
                deleted += 1
                logger.info(
                    "Duplicate client deleted",
                    extra={"client_id": str(duplicate.client_id), "client_name": duplicate.name},
                )

        self.state.clients[:] = result.survivors
        return deleted

    def _relink_sale_items(self) -> int:
        """Re-point sale items at the current directory; returns how many were written."""

        relinked = 0
        for item in relink_sale_items(self.state.sale_items, self.state.clients):
            try:
                saved = self.store.upsert_sale_item(item, self.owner_id)
            except PersistenceFailure:
                logger.warning(
                    "Failed to relink sale item",
                    exc_info=True,
                    extra={"sale_item_id": str(item.sale_item_id)},
                )
                continue
            self.state.put_sale_item(saved)
            relinked += 1
        return relinked

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    @property
    def monthly_profit(self) -> Dict[str, Decimal]:
        return dict(self.state.monthly_profit)

    def sales_for_client(self, client_id: UUID) -> List[SaleItem]:
        client = next((c for c in self.state.clients if c.client_id == client_id), None)
        if client is None:
            return []
        return sales_for_client(client, self.state.sale_items)

    def dashboard(self, today: Optional[date] = None) -> DashboardSummary:
        return summarize_dashboard(
            self.state.sale_items,
            self.state.resin_lots,
            self.state.monthly_profit,
            today=today,
        )

    def buyer_ranking(self) -> List[BuyerSpend]:
        return rank_buyers(self.state.sale_items)

    def close(self) -> None:
        self.controller.shutdown()

    # ------------------------------------------------------------------

    def _changed(
        self, collection: Collection, origin: ChangeOrigin = ChangeOrigin.USER
    ) -> None:
        self.last_recalculation = self.controller.collection_changed(collection, origin)

    def _report_failure(self, message: str) -> None:
        logger.exception(message, extra={"owner_id": self.owner_id})
        self.notify(Notification(message, Severity.ERROR))


__all__ = ["DuplicateCleanup", "OrderTrackingSession"]
