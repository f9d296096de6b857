"""Tests for OrderManager."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bistro.cart_store import CartStore
from bistro.document_store import SERVER_TIMESTAMP, DocumentStore
from bistro.errors import (
    DocumentStoreError,
    EmptyCartError,
    OrderInProgressError,
    OrderNotFoundError,
    OrderPlacementError,
)
from bistro.local_storage import GUEST_ID_KEY, ORDERS_KEY
from bistro.models import OrderDetails, OrderStatus, PaymentMethod
from bistro.order_store import ORDERS_COLLECTION, OrderManager, is_current_candidate

from .conftest import make_item

DETAILS = OrderDetails(
    customer_name="Ana Rossi",
    customer_email="ana@example.com",
    customer_phone="555-0101",
    table_number="4",
    payment_method=PaymentMethod.CARD,
)


class RecordingStore(DocumentStore):
    """Document store that remembers added documents."""

    def __init__(self):
        self.added = []

    def get_document(self, path):
        return None

    def add_document(self, collection, data):
        self.added.append((collection, data))
        return f"doc{len(self.added)}"


class FailingStore(RecordingStore):
    def add_document(self, collection, data):
        raise DocumentStoreError("add", "unavailable")


def _manager(storage, remote=None, now=None):
    cart = CartStore(storage)
    return cart, OrderManager(storage, cart, remote=remote, now=now)


def _stored_order(order_id, created_at, status="pending"):
    return {
        "id": order_id,
        "guestId": "guest_1",
        "items": [{"id": "1", "name": "Item 1", "price": "10", "quantity": 1}],
        "status": status,
        "total": "10.80",
        "createdAt": created_at,
        "updatedAt": created_at,
        "customerName": "Ana",
        "customerPhone": "555",
        "customerEmail": "ana@example.com",
        "paymentMethod": "cash",
        "paymentStatus": "pending",
    }


class TestPlaceOrder:
    def test_empty_cart_changes_nothing(self, storage):
        cart, manager = _manager(storage)
        with pytest.raises(EmptyCartError):
            manager.place_order(DETAILS)

        assert manager.orders == []
        assert manager.current_order is None
        assert manager.loading is False
        assert storage.get_item(ORDERS_KEY) is None

    def test_places_pending_order_with_tax(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1", "100", 1))

        order_id = manager.place_order(DETAILS)

        order = manager.get_order(order_id)
        assert order_id.startswith("order_")
        assert order.status == OrderStatus.PENDING
        assert order.total == Decimal("108.00")
        assert order.customer_name == "Ana Rossi"
        assert order.table_number == "4"
        assert order.payment_method == PaymentMethod.CARD
        assert manager.current_order == order
        assert manager.orders[0] == order

    def test_total_is_rounded_to_cents(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1", "9.99", 3))
        order_id = manager.place_order(DETAILS)
        assert manager.get_order(order_id).total == Decimal("32.37")

    def test_cart_is_cleared(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        manager.place_order(DETAILS)

        assert cart.is_empty()
        assert CartStore(storage).is_empty()

    def test_order_keeps_cart_snapshot(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1", "12.50", 2, options={"Size": "Large"}))
        order_id = manager.place_order(DETAILS)

        cart.add_item(make_item("1", "99", 5))
        item = manager.get_order(order_id).items[0]
        assert item.quantity == 2
        assert item.price == Decimal("12.50")
        assert item.options == {"Size": "Large"}

    def test_newest_order_first(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        first = manager.place_order(DETAILS)
        cart.add_item(make_item("2"))
        second = manager.place_order(DETAILS)

        assert [o.id for o in manager.orders] == [second, first]

    def test_orders_share_guest_id(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        manager.place_order(DETAILS)
        cart.add_item(make_item("2"))
        manager.place_order(DETAILS)

        guest_ids = {o.guest_id for o in manager.orders}
        assert guest_ids == {storage.get_item(GUEST_ID_KEY)}

    def test_in_progress_rejected(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        manager.loading = True

        with pytest.raises(OrderInProgressError):
            manager.place_order(DETAILS)
        assert cart.total_items == 1

    def test_loading_reset_after_placement(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        manager.place_order(DETAILS)
        assert manager.loading is False
        assert manager.error is None

    def test_cart_consumed_elsewhere(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        CartStore(storage).clear_cart()

        with pytest.raises(EmptyCartError):
            manager.place_order(DETAILS)
        assert manager.orders == []

    def test_mirrors_order_to_remote(self, storage):
        remote = RecordingStore()
        cart, manager = _manager(storage, remote=remote)
        cart.add_item(make_item("1"))
        order_id = manager.place_order(DETAILS)

        collection, data = remote.added[0]
        assert collection == ORDERS_COLLECTION
        assert data["id"] == order_id
        assert data["serverCreatedAt"] is SERVER_TIMESTAMP

    def test_remote_failure_leaves_state_untouched(self, storage):
        cart, manager = _manager(storage, remote=FailingStore())
        cart.add_item(make_item("1"))

        with pytest.raises(OrderPlacementError):
            manager.place_order(DETAILS)

        assert manager.orders == []
        assert manager.error == "Failed to place order"
        assert manager.loading is False
        assert cart.total_items == 1
        assert CartStore(storage).total_items == 1


class TestCancelOrder:
    def test_cancel_marks_cancelled(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        order_id = manager.place_order(DETAILS)

        manager.cancel_order(order_id)

        assert manager.get_order(order_id).status == OrderStatus.CANCELLED
        assert len(manager.orders) == 1
        assert manager.current_order is None

    def test_cancel_changes_only_status(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1", "12.50", 2, options={"Size": "Large"}))
        older = manager.place_order(DETAILS)
        cart.add_item(make_item("2", "7"))
        newer = manager.place_order(DETAILS)
        before = manager.get_order(newer)
        stored_before = storage.get_json(ORDERS_KEY)

        manager.cancel_order(newer)

        after = manager.get_order(newer)
        assert after == replace(before, status=OrderStatus.CANCELLED)
        assert after.updated_at == before.updated_at

        stored_after = storage.get_json(ORDERS_KEY)
        assert [o["id"] for o in stored_after] == [newer, older]
        assert stored_after[1] == stored_before[1]
        assert stored_after[0] == {**stored_before[0], "status": "cancelled"}

    def test_cancel_other_order_keeps_current(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        older = manager.place_order(DETAILS)
        cart.add_item(make_item("2"))
        newer = manager.place_order(DETAILS)

        manager.cancel_order(older)
        assert manager.current_order.id == newer

    def test_cancel_unknown_is_noop(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        order_id = manager.place_order(DETAILS)
        before = storage.get_item(ORDERS_KEY)

        manager.cancel_order("order_missing")

        assert storage.get_item(ORDERS_KEY) == before
        assert manager.current_order.id == order_id
        assert manager.loading is False

    def test_cancel_persists(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1"))
        order_id = manager.place_order(DETAILS)
        manager.cancel_order(order_id)

        _, restored = _manager(storage)
        assert restored.get_order(order_id).status == OrderStatus.CANCELLED


class TestRestore:
    def test_orders_roundtrip(self, storage):
        cart, manager = _manager(storage)
        cart.add_item(make_item("1", "12.50", 2, options={"Size": "Large"}))
        manager.place_order(DETAILS)

        _, restored = _manager(storage)
        assert restored.orders == manager.orders

    def test_recent_active_order_is_current(self, storage):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        storage.set_json(ORDERS_KEY, [_stored_order("order_a", "2024-05-01T11:00:00.000Z")])

        _, manager = _manager(storage, now=now)
        assert manager.current_order.id == "order_a"

    def test_old_order_is_not_current(self, storage):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        storage.set_json(ORDERS_KEY, [_stored_order("order_a", "2024-05-01T09:59:00.000Z")])

        _, manager = _manager(storage, now=now)
        assert manager.current_order is None
        assert len(manager.orders) == 1

    def test_cancelled_order_is_not_current(self, storage):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        storage.set_json(
            ORDERS_KEY,
            [_stored_order("order_a", "2024-05-01T11:30:00.000Z", status="cancelled")],
        )

        _, manager = _manager(storage, now=now)
        assert manager.current_order is None

    def test_only_newest_order_is_considered(self, storage):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        storage.set_json(
            ORDERS_KEY,
            [
                _stored_order("order_new", "2024-05-01T11:30:00.000Z", status="delivered"),
                _stored_order("order_old", "2024-05-01T11:00:00.000Z"),
            ],
        )

        _, manager = _manager(storage, now=now)
        assert manager.current_order is None

    def test_malformed_orders_restore_empty(self, storage):
        storage.set_item(ORDERS_KEY, "not json")
        _, manager = _manager(storage)
        assert manager.orders == []

    def test_bad_timestamp_restores_empty(self, storage):
        storage.set_json(ORDERS_KEY, [_stored_order("order_a", "yesterday")])
        _, manager = _manager(storage)
        assert manager.orders == []

    def test_is_current_candidate_window(self, storage):
        storage.set_json(ORDERS_KEY, [_stored_order("order_a", "2024-05-01T10:00:00.000Z")])
        _, manager = _manager(storage)
        order = manager.orders[0]

        created = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert is_current_candidate(order, created + timedelta(hours=1, minutes=59))
        assert not is_current_candidate(order, created + timedelta(hours=2))


class TestLookups:
    def test_guest_id_is_stable(self, storage):
        _, manager = _manager(storage)
        guest_id = manager.get_guest_id()
        assert guest_id.startswith("guest_")
        assert manager.get_guest_id() == guest_id
        _, other = _manager(storage)
        assert other.get_guest_id() == guest_id

    def test_get_unknown_order(self, storage):
        _, manager = _manager(storage)
        with pytest.raises(OrderNotFoundError):
            manager.get_order("order_nope")
