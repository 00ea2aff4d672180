"""
Tests for `services/order_session.py`.

Drives the session against the in-memory store and checks the snapshot,
the store contents, notifications and derived values after each operation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import OWNER_ID, make_client, make_item, make_lot
from domain.exceptions import PersistenceFailure, ValidationError
from domain.resin_lot import ResinLotStatus
from services.notifications import Severity
from services.order_session import OrderTrackingSession


@pytest.fixture
def session(store, executor):
    session = OrderTrackingSession(store, OWNER_ID, executor=executor)
    yield session
    session.close()


def _messages(session):
    return [n.message for n in session.notify.drain()]


class TestLoad:
    def test_load_computes_revenue_and_profit(self, store, session):
        lot = make_lot(date(2024, 3, 1), date(2024, 3, 20), cost="80", status=ResinLotStatus.DELIVERED)
        store.seed(OWNER_ID, lot, make_item(date(2024, 3, 15), "50"))

        session.load()

        assert session.state.resin_lots[0].gross_revenue == Decimal("50")
        assert store.resin_lots[lot.lot_id].gross_revenue == Decimal("50")
        assert session.monthly_profit == {"2024-03": Decimal("20")}

    def test_load_only_reads_own_records(self, store, session):
        store.seed("someone-else", make_client("Ana"))

        session.load()

        assert session.state.clients == []

    def test_load_merges_duplicate_clients(self, store, session):
        ana = make_client("Ana")
        dup = make_client(" ana ", email="a@x.com")
        store.seed(OWNER_ID, ana, dup)

        session.load()

        assert len(session.state.clients) == 1
        assert session.state.clients[0].email == "a@x.com"
        assert dup.client_id not in store.clients
        assert store.clients[ana.client_id].email == "a@x.com"
        assert "Duplicate clients were detected and merged" in _messages(session)

    def test_load_relinks_sale_items_of_merged_duplicates(self, store, session):
        ana = make_client("Ana")
        dup = make_client(" ana ", email="a@x.com")
        item = make_item(date(2024, 1, 10), "25", buyer_name="ana", client_id=dup.client_id)
        store.seed(OWNER_ID, ana, dup, item)

        session.load()

        assert store.sale_items[item.sale_item_id].client_id == ana.client_id
        assert session.state.sale_items[0].client_id == ana.client_id
        assert session.sales_for_client(ana.client_id) == [session.state.sale_items[0]]

    def test_load_failure_notifies_and_raises(self, store, session):
        store.fail_lists = True

        with pytest.raises(PersistenceFailure):
            session.load()

        notifications = session.notify.drain()
        assert notifications[-1].severity is Severity.ERROR


class TestSaleItems:
    def test_save_new_sale_item_recomputes_lot_revenue(self, store, session):
        lot = make_lot(date(2024, 1, 1), date(2024, 1, 31))
        store.seed(OWNER_ID, lot)
        session.load()

        saved = session.save_sale_item({
            "item_name": "Dragon",
            "price": "25",
            "sale_date": "2024-01-10",
            "delivered": True,
        })

        assert saved.sale_item_id is not None
        assert session.state.sale_items == [saved]
        assert session.state.resin_lots[0].gross_revenue == Decimal("25")
        assert store.resin_lots[lot.lot_id].gross_revenue == Decimal("25")
        assert session.last_recalculation.attribution_ran
        messages = _messages(session)
        assert 'Sale item "Dragon" added successfully.' in messages
        assert "Gross revenue updated automatically for 1 resin lot(s)" in messages

    def test_update_existing_sale_item(self, store, session):
        item = make_item(date(2024, 1, 10), "25")
        store.seed(OWNER_ID, item)
        session.load()

        session.save_sale_item({
            "id": str(item.sale_item_id),
            "item_name": item.item_name,
            "price": "30",
            "sale_date": "2024-01-10",
        })

        assert len(session.state.sale_items) == 1
        assert session.state.sale_items[0].price == Decimal("30")
        assert "updated successfully" in _messages(session)[-1]

    def test_unknown_buyer_creates_client_silently(self, store, session):
        session.load()

        saved = session.save_sale_item({"item_name": "Ring", "sale_date": "2024-01-10", "buyer_name": "Carla"})

        assert len(session.state.clients) == 1
        client = session.state.clients[0]
        assert client.name == "Carla"
        assert saved.client_id == client.client_id
        assert not any("Client" in m for m in _messages(session))

    def test_known_buyer_binds_existing_client(self, store, session):
        ana = make_client("Ana", email="a@x.com")
        store.seed(OWNER_ID, ana)
        session.load()

        saved = session.save_sale_item({"item_name": "Ring", "sale_date": "2024-01-10", "buyer_name": " ANA "})

        assert saved.client_id == ana.client_id
        assert session.state.clients == [ana]

    def test_client_creation_failure_still_saves_sale(self, store, session):
        store.fail_client_upserts = True
        session.load()

        saved = session.save_sale_item({"item_name": "Ring", "sale_date": "2024-01-10", "buyer_name": "Carla"})

        assert saved.client_id is None
        assert session.state.clients == []
        assert saved.sale_item_id in store.sale_items

    def test_validation_error_writes_nothing(self, store, session):
        session.load()

        with pytest.raises(ValidationError) as exc_info:
            session.save_sale_item({"item_name": "Ring"})

        assert exc_info.value.field == "sale_date"
        assert store.sale_items == {}
        assert session.state.sale_items == []

    def test_persistence_failure_leaves_state_unchanged(self, store, session):
        item = make_item(date(2024, 1, 10), "25")
        store.seed(OWNER_ID, item)
        session.load()
        session.notify.drain()
        store.failing_ids.add(item.sale_item_id)

        with pytest.raises(PersistenceFailure):
            session.save_sale_item({
                "id": str(item.sale_item_id),
                "item_name": "Changed",
                "sale_date": "2024-01-10",
            })

        assert session.state.sale_items == [item]
        notifications = session.notify.drain()
        assert notifications[-1].severity is Severity.ERROR

    def test_delete_sale_item_drops_revenue(self, store, session):
        lot = make_lot(date(2024, 1, 1))
        item = make_item(date(2024, 1, 10), "25")
        store.seed(OWNER_ID, lot, item)
        session.load()
        assert session.state.resin_lots[0].gross_revenue == Decimal("25")

        assert session.delete_sale_item(item.sale_item_id) is True

        assert session.state.sale_items == []
        assert session.state.resin_lots[0].gross_revenue == Decimal("0")
        assert store.resin_lots[lot.lot_id].gross_revenue == Decimal("0")

    def test_failed_delete_notifies_error(self, store, session):
        item = make_item(date(2024, 1, 10), "25")
        store.seed(OWNER_ID, item)
        session.load()
        store.failing_ids.add(item.sale_item_id)

        assert session.delete_sale_item(item.sale_item_id) is False

        assert session.state.sale_items == [item]
        assert session.notify.drain()[-1].severity is Severity.ERROR


class TestResinLots:
    def test_save_lot_refreshes_profit_without_attribution(self, store, session):
        store.seed(OWNER_ID, make_item(date(2024, 1, 10), "25"))
        session.load()

        lot = session.save_resin_lot({
            "purchase_date": "2024-01-01",
            "end_date": "2024-01-31",
            "cost": "10",
            "gross_revenue": "12",
            "status": "E",
        })

        assert lot.lot_id in store.resin_lots
        # The caller's estimate stands until the next sale item change.
        assert session.state.resin_lots[0].gross_revenue == Decimal("12")
        assert not session.last_recalculation.attribution_ran
        assert session.monthly_profit == {"2024-01": Decimal("27")}
        assert "Resin lot added successfully." in _messages(session)

    def test_delete_lot(self, store, session):
        lot = make_lot(date(2024, 1, 1), date(2024, 1, 31), cost="10", status=ResinLotStatus.DELIVERED)
        store.seed(OWNER_ID, lot)
        session.load()
        assert session.monthly_profit == {"2024-01": Decimal("-10")}

        assert session.delete_resin_lot(lot.lot_id) is True

        assert session.state.resin_lots == []
        assert session.monthly_profit == {}

    def test_missing_purchase_date(self, session):
        session.load()

        with pytest.raises(ValidationError):
            session.save_resin_lot({"cost": "10"})


class TestClients:
    def test_save_new_client(self, store, session):
        session.load()

        client = session.save_client({"name": "Ana", "email": "a@x.com"})

        assert store.clients[client.client_id] == client
        assert "Client Ana added successfully." in _messages(session)

    def test_save_duplicate_name_updates_existing_client(self, store, session):
        ana = make_client("Ana", email="old@x.com")
        store.seed(OWNER_ID, ana)
        session.load()

        saved = session.save_client({"name": " ana ", "email": "new@x.com", "phone": "600"})

        assert saved.client_id == ana.client_id
        assert saved.name == "Ana"
        assert saved.email == "new@x.com"
        assert saved.phone == "600"
        assert len(session.state.clients) == 1

    def test_save_duplicate_name_without_new_data_returns_existing(self, store, session):
        ana = make_client("Ana", email="a@x.com")
        store.seed(OWNER_ID, ana)
        session.load()
        session.notify.drain()

        saved = session.save_client({"name": "ANA", "email": "a@x.com"})

        assert saved is ana
        assert store.upserts == []
        assert session.notify.drain() == []

    def test_empty_name(self, session):
        session.load()

        with pytest.raises(ValidationError):
            session.save_client({"name": "  "})

    def test_delete_client_keeps_sale_items(self, store, session):
        ana = make_client("Ana")
        item = make_item(date(2024, 1, 10), "25", buyer_name="Ana", client_id=ana.client_id)
        store.seed(OWNER_ID, ana, item)
        session.load()

        assert session.delete_client(ana.client_id) is True

        assert session.state.clients == []
        assert session.state.sale_items[0].buyer_name == "Ana"
        assert "Client Ana deleted successfully." in _messages(session)

    def test_clean_duplicates_relinks_sale_items(self, store, session):
        session.load()
        ana = session.save_client({"name": "Ana"})
        # A second record added behind the session's back, as a concurrent
        # session would.
        dup = make_client("ANA", phone="600")
        session.state.clients.append(dup)
        item = make_item(date(2024, 1, 10), "25", buyer_name="ana", client_id=dup.client_id)
        store.seed(OWNER_ID, dup, item)
        session.state.sale_items.append(item)
        session.notify.drain()

        cleanup = session.clean_duplicate_clients()

        assert cleanup.merged == 1
        assert cleanup.deleted == 1
        assert cleanup.relinked_sale_items == 1
        assert store.sale_items[item.sale_item_id].client_id == ana.client_id
        assert store.clients[ana.client_id].phone == "600"
        assert dup.client_id not in store.clients
        assert not session.last_recalculation.attribution_ran
        assert _messages(session) == ["Merged 1 duplicate clients and updated 1 sale items"]

    def test_clean_duplicates_when_none(self, session):
        session.load()

        cleanup = session.clean_duplicate_clients()

        assert cleanup.merged == 0
        assert _messages(session) == ["No duplicate clients found"]

    def test_clean_duplicates_relinks_stale_links_without_duplicates(self, store, session):
        ana = make_client("Ana")
        item = make_item(date(2024, 1, 10), "25", buyer_name="Ana", client_id=uuid4())
        store.seed(OWNER_ID, ana, item)
        session.load()
        session.notify.drain()

        cleanup = session.clean_duplicate_clients()

        assert cleanup.merged == 0
        assert cleanup.relinked_sale_items == 1
        assert store.sale_items[item.sale_item_id].client_id == ana.client_id
        assert not session.last_recalculation.attribution_ran
        assert _messages(session) == ["Merged 0 duplicate clients and updated 1 sale items"]


class TestReadModels:
    def test_sales_for_client(self, store, session):
        ana = make_client("Ana")
        mine = make_item(date(2024, 1, 10), "25", buyer_name="ana")
        store.seed(OWNER_ID, ana, mine, make_item(date(2024, 1, 11), "5", buyer_name="Bea"))
        session.load()

        assert session.sales_for_client(ana.client_id) == [mine]
        assert session.sales_for_client(uuid4()) == []

    def test_dashboard_and_ranking(self, store, session):
        store.seed(
            OWNER_ID,
            make_item(date(2024, 3, 15), "50", buyer_name="Ana"),
            make_item(date(2024, 3, 16), "10", buyer_name="Bea", delivered=False),
            make_lot(date(2024, 3, 1)),
        )
        session.load()

        summary = session.dashboard(date(2024, 3, 31))
        ranking = session.buyer_ranking()

        assert summary.current_month_profit == Decimal("50")
        assert summary.total_pending == 2
        assert [b.buyer_name for b in ranking] == ["Ana", "Bea"]
