"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so that tests can import the
domain, repositories, services, api and scripts packages, and provides an
in-memory OrderStore so that nothing here talks to Supabase.
"""

import sys
from concurrent.futures import Executor, Future
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Set
from uuid import UUID, uuid4

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.client import Client  # noqa: E402
from domain.exceptions import PersistenceFailure  # noqa: E402
from domain.resin_lot import ResinLot, ResinLotStatus  # noqa: E402
from domain.sale_item import SaleItem, SaleLocation  # noqa: E402


class InMemoryOrderStore:
    """
    OrderStore fake keeping records in dicts.

    Records whose id is in `failing_ids` fail: upserts raise
    PersistenceFailure and deletes return False. Set `fail_lists` to make
    every list call raise.
    """

    def __init__(self) -> None:
        self.resin_lots: Dict[UUID, ResinLot] = {}
        self.sale_items: Dict[UUID, SaleItem] = {}
        self.clients: Dict[UUID, Client] = {}
        self.owners: Dict[UUID, str] = {}
        self.failing_ids: Set[UUID] = set()
        self.fail_client_upserts = False
        self.fail_lists = False
        self.upserts: List[object] = []
        self.deleted: List[UUID] = []

    # Seeding helpers ---------------------------------------------------

    def seed(self, owner_id: str, *records) -> None:
        for record in records:
            if isinstance(record, ResinLot):
                self.resin_lots[record.lot_id] = record
                self.owners[record.lot_id] = owner_id
            elif isinstance(record, SaleItem):
                self.sale_items[record.sale_item_id] = record
                self.owners[record.sale_item_id] = owner_id
            else:
                self.clients[record.client_id] = record
                self.owners[record.client_id] = owner_id

    # OrderStore ---------------------------------------------------------

    def _owned(self, records: Dict[UUID, object], owner_id: str) -> list:
        if self.fail_lists:
            raise PersistenceFailure("store unavailable")
        return [r for key, r in records.items() if self.owners.get(key) == owner_id]

    def list_resin_lots(self, owner_id: str) -> List[ResinLot]:
        return self._owned(self.resin_lots, owner_id)

    def list_sale_items(self, owner_id: str) -> List[SaleItem]:
        return self._owned(self.sale_items, owner_id)

    def list_clients(self, owner_id: str) -> List[Client]:
        return self._owned(self.clients, owner_id)

    def upsert_resin_lot(self, lot: ResinLot, owner_id: str) -> ResinLot:
        stored = lot if lot.lot_id is not None else lot.with_id(uuid4())
        if stored.lot_id in self.failing_ids:
            raise PersistenceFailure(f"cannot save resin lot {stored.lot_id}")
        self.resin_lots[stored.lot_id] = stored
        self.owners[stored.lot_id] = owner_id
        self.upserts.append(stored)
        return stored

    def upsert_sale_item(self, item: SaleItem, owner_id: str) -> SaleItem:
        stored = item if item.sale_item_id is not None else item.with_id(uuid4())
        if stored.sale_item_id in self.failing_ids:
            raise PersistenceFailure(f"cannot save sale item {stored.sale_item_id}")
        self.sale_items[stored.sale_item_id] = stored
        self.owners[stored.sale_item_id] = owner_id
        self.upserts.append(stored)
        return stored

    def upsert_client(self, client: Client, owner_id: str) -> Client:
        stored = client if client.client_id is not None else client.with_id(uuid4())
        if self.fail_client_upserts or stored.client_id in self.failing_ids:
            raise PersistenceFailure(f"cannot save client {stored.client_id}")
        self.clients[stored.client_id] = stored
        self.owners[stored.client_id] = owner_id
        self.upserts.append(stored)
        return stored

    def _delete(self, records: Dict[UUID, object], record_id: UUID) -> bool:
        if record_id in self.failing_ids:
            return False
        records.pop(record_id, None)
        self.owners.pop(record_id, None)
        self.deleted.append(record_id)
        return True

    def delete_resin_lot(self, lot_id: UUID) -> bool:
        return self._delete(self.resin_lots, lot_id)

    def delete_sale_item(self, sale_item_id: UUID) -> bool:
        return self._delete(self.sale_items, sale_item_id)

    def delete_client(self, client_id: UUID) -> bool:
        return self._delete(self.clients, client_id)


class InlineExecutor(Executor):
    """Runs submitted calls immediately so derived writes are deterministic."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:  # noqa: BLE001
            future.set_exception(e)
        return future


# Factories ------------------------------------------------------------------


def make_lot(
    purchase_date: date,
    end_date: Optional[date] = None,
    *,
    cost: str = "0",
    gross_revenue: str = "0",
    status: ResinLotStatus = ResinLotStatus.PENDING,
    lot_id: Optional[UUID] = None,
) -> ResinLot:
    return ResinLot(
        lot_id=lot_id or uuid4(),
        purchase_date=purchase_date,
        end_date=end_date,
        quantity=Decimal("1"),
        cost=Decimal(cost),
        gross_revenue=Decimal(gross_revenue),
        status=status,
    )


def make_item(
    sale_date: date,
    price: str,
    *,
    delivered: bool = True,
    buyer_name: Optional[str] = None,
    client_id: Optional[UUID] = None,
    item_name: str = "Keychain",
    sale_item_id: Optional[UUID] = None,
) -> SaleItem:
    return SaleItem(
        sale_item_id=sale_item_id or uuid4(),
        item_name=item_name,
        price=Decimal(price),
        location=SaleLocation.SHOP,
        sale_date=sale_date,
        buyer_name=buyer_name,
        client_id=client_id,
        delivered=delivered,
    )


def make_client(name: str, **contact) -> Client:
    return Client(client_id=contact.pop("client_id", None) or uuid4(), name=name, **contact)


OWNER_ID = "owner-1"


@pytest.fixture
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def executor() -> InlineExecutor:
    return InlineExecutor()
