"""Order lifecycle management for bistro."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import structlog

from .cart_store import CartStore
from .document_store import SERVER_TIMESTAMP, DocumentStore
from .errors import (
    BistroError,
    EmptyCartError,
    InvalidStoredValueError,
    OrderCancellationError,
    OrderInProgressError,
    OrderNotFoundError,
    OrderPlacementError,
)
from .local_storage import GUEST_ID_KEY, ORDERS_KEY, LocalStorage
from .models import Order, OrderDetails, OrderStatus, _generate_id, parse_timestamp

logger = structlog.get_logger(__name__)

# How long the latest order stays "current" after it was placed
CURRENT_ORDER_WINDOW = timedelta(hours=2)

ORDERS_COLLECTION = "orders"


def is_current_candidate(order: Order, now: datetime | None = None) -> bool:
    """Whether an order is recent enough and still active to be the current order."""
    now = now or datetime.now(timezone.utc)
    created = parse_timestamp(order.created_at)
    return created > now - CURRENT_ORDER_WINDOW and order.is_active


class OrderManager:
    """
    Places and cancels orders for one visitor session.

    Orders are kept most-recent-first and persisted as a whole after every
    change. Placing an order consumes the session's cart.
    """

    def __init__(
        self,
        storage: LocalStorage,
        cart: CartStore,
        remote: DocumentStore | None = None,
        now: datetime | None = None,
    ):
        """
        Initialize OrderManager.

        Args:
            storage: Session storage holding orders and the guest ID.
            cart: The session's cart.
            remote: If given, placed orders are also appended to its
                "orders" collection.
            now: Override the clock used to pick the current order (for testing).
        """
        self.storage = storage
        self.cart = cart
        self.remote = remote
        self.loading = False
        self.error: str | None = None
        self._orders: list[Order] = self._restore()
        self._current: Order | None = None
        if self._orders and is_current_candidate(self._orders[0], now):
            self._current = self._orders[0]

    def _restore(self) -> list[Order]:
        """Load saved orders, falling back to none."""
        try:
            data = self.storage.get_json(ORDERS_KEY)
        except InvalidStoredValueError as e:
            logger.warning("orders_restore_failed", error=str(e))
            return []

        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("orders_restore_failed", error="stored orders are not a list")
            return []

        try:
            return [Order.from_dict(order) for order in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("orders_restore_failed", error=str(e))
            return []

    def _persist(self) -> None:
        self.storage.set_json(ORDERS_KEY, [order.to_dict() for order in self._orders])

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    @property
    def current_order(self) -> Order | None:
        return self._current

    def get_guest_id(self) -> str:
        """Return this session's guest ID, creating and saving it on first use."""
        guest_id = self.storage.get_item(GUEST_ID_KEY)
        if not guest_id:
            guest_id = _generate_id("guest")
            self.storage.set_item(GUEST_ID_KEY, guest_id)
        return guest_id

    def get_order(self, order_id: str) -> Order:
        """
        Get an order by ID.

        Raises:
            OrderNotFoundError: If no order has that ID.
        """
        for order in self._orders:
            if order.id == order_id:
                return order
        raise OrderNotFoundError(order_id)

    def place_order(self, details: OrderDetails) -> str:
        """
        Turn the current cart into a pending order.

        The cart is cleared once the order is recorded.

        Returns:
            The new order's ID.

        Raises:
            EmptyCartError: If the cart has no items (nothing is changed).
            OrderInProgressError: If a placement is already running.
            OrderPlacementError: If recording the order fails.
        """
        if self.cart.is_empty():
            raise EmptyCartError()
        if self.loading:
            raise OrderInProgressError()

        self.loading = True
        self.error = None
        try:
            with self.storage.lock():
                # Another request may have consumed the cart while we waited
                cart = CartStore(self.storage)
                if cart.is_empty():
                    raise EmptyCartError()

                order = Order.create(self.get_guest_id(), cart.items, details)
                if self.remote is not None:
                    self._mirror(order)

                self._orders = [order] + self._restore()
                self._current = order
                cart.clear_cart()
                self.cart.clear_cart()
                self._persist()

            logger.info(
                "order_placed",
                order_id=order.id,
                guest_id=order.guest_id,
                total=str(order.total),
                item_count=len(order.items),
            )
            return order.id
        except EmptyCartError:
            raise
        except Exception as e:
            logger.error("order_placement_failed", error=str(e))
            self.error = "Failed to place order"
            if isinstance(e, BistroError):
                raise OrderPlacementError(str(e)) from e
            raise OrderPlacementError() from e
        finally:
            self.loading = False

    def _mirror(self, order: Order) -> None:
        """Append the order to the remote orders collection."""
        data = order.to_dict()
        data["serverCreatedAt"] = SERVER_TIMESTAMP
        self.remote.add_document(ORDERS_COLLECTION, data)

    def cancel_order(self, order_id: str) -> None:
        """
        Mark an order cancelled. Unknown IDs are ignored.

        Only the status changes; the order is never removed.

        Raises:
            OrderCancellationError: If saving the change fails.
        """
        self.loading = True
        self.error = None
        try:
            found = False
            updated = []
            for order in self._orders:
                if order.id == order_id:
                    order = replace(order, status=OrderStatus.CANCELLED)
                    found = True
                updated.append(order)
            if not found:
                return

            self._orders = updated
            if self._current is not None and self._current.id == order_id:
                self._current = None
            self._persist()
            logger.info("order_cancelled", order_id=order_id)
        except Exception as e:
            logger.error("order_cancellation_failed", order_id=order_id, error=str(e))
            self.error = "Failed to cancel order"
            raise OrderCancellationError(order_id, str(e)) from e
        finally:
            self.loading = False
