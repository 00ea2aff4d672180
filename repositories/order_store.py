"""
Order store: the persistence contract consumed by the services.

`OrderStore` is the collaborator interface the session and recalculation
controller depend on. `SupabaseOrderStore` satisfies it by delegating to the
per-entity repository modules.
"""

from __future__ import annotations

from typing import List, Protocol
from uuid import UUID

from domain.client import Client
from domain.resin_lot import ResinLot
from domain.sale_item import SaleItem
from repositories import client_repository, resin_lot_repository, sale_item_repository


class OrderStore(Protocol):
    """
    Persistence for the three order collections of one owner.

    Upserts return the stored record with an id assigned if it had none and
    raise PersistenceFailure on error. Deletes return False on error.
    """

    def list_resin_lots(self, owner_id: str) -> List[ResinLot]: ...

    def list_sale_items(self, owner_id: str) -> List[SaleItem]: ...

    def list_clients(self, owner_id: str) -> List[Client]: ...

    def upsert_resin_lot(self, lot: ResinLot, owner_id: str) -> ResinLot: ...

    def upsert_sale_item(self, item: SaleItem, owner_id: str) -> SaleItem: ...

    def upsert_client(self, client: Client, owner_id: str) -> Client: ...

    def delete_resin_lot(self, lot_id: UUID) -> bool: ...

    def delete_sale_item(self, sale_item_id: UUID) -> bool: ...

    def delete_client(self, client_id: UUID) -> bool: ...


class SupabaseOrderStore:
    """OrderStore backed by the Supabase tables."""

    def list_resin_lots(self, owner_id: str) -> List[ResinLot]:
        return resin_lot_repository.list_resin_lots(owner_id)

    def list_sale_items(self, owner_id: str) -> List[SaleItem]:
        return sale_item_repository.list_sale_items(owner_id)

    def list_clients(self, owner_id: str) -> List[Client]:
        return client_repository.list_clients(owner_id)

    def upsert_resin_lot(self, lot: ResinLot, owner_id: str) -> ResinLot:
        return resin_lot_repository.upsert_resin_lot(lot, owner_id)

    def upsert_sale_item(self, item: SaleItem, owner_id: str) -> SaleItem:
        return sale_item_repository.upsert_sale_item(item, owner_id)

    def upsert_client(self, client: Client, owner_id: str) -> Client:
        return client_repository.upsert_client(client, owner_id)

    def delete_resin_lot(self, lot_id: UUID) -> bool:
        return resin_lot_repository.delete_resin_lot(lot_id)

    def delete_sale_item(self, sale_item_id: UUID) -> bool:
        return sale_item_repository.delete_sale_item(sale_item_id)

    def delete_client(self, client_id: UUID) -> bool:
        return client_repository.delete_client(client_id)


__all__ = ["OrderStore", "SupabaseOrderStore"]
