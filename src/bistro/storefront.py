"""Per-session cart, orders and checkout flow for bistro."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .cart_store import CartStore
from .document_store import DocumentStore
from .errors import EmptyCartError
from .forms import require_valid, validate_checkout_details
from .local_storage import LocalStorage
from .models import OrderDetails
from .order_store import OrderManager


@dataclass
class Storefront:
    """The cart and order services of one visitor session."""

    storage: LocalStorage
    cart: CartStore
    orders: OrderManager

    @classmethod
    def open(
        cls,
        data_dir: Path,
        session_id: str,
        remote: DocumentStore | None = None,
    ) -> "Storefront":
        """
        Load a session's cart and orders from storage.

        Args:
            data_dir: Base data directory.
            session_id: Visitor session ID.
            remote: Document store to mirror placed orders into, if any.
        """
        storage = LocalStorage(data_dir, session_id)
        cart = CartStore(storage)
        orders = OrderManager(storage, cart, remote=remote)
        return cls(storage=storage, cart=cart, orders=orders)


class CheckoutStep(str, Enum):
    CART = "cart"
    DETAILS = "details"
    PAYMENT = "payment"


class CheckoutFlow:
    """
    The cart -> details -> payment checkout steps.

    Leaving the cart step needs items; leaving the details step needs
    valid customer details. Placing the order re-checks both.
    """

    def __init__(self, storefront: Storefront):
        self.storefront = storefront
        self.step = CheckoutStep.CART
        self.details = OrderDetails()

    def continue_to_details(self) -> CheckoutStep:
        if self.storefront.cart.is_empty():
            raise EmptyCartError()
        self.step = CheckoutStep.DETAILS
        return self.step

    def continue_to_payment(self, details: OrderDetails) -> CheckoutStep:
        """
        Record the customer's details and move on to payment.

        Raises:
            ValidationError: If name, email or phone are missing or invalid.
        """
        require_valid(validate_checkout_details(details))
        self.details = details
        self.step = CheckoutStep.PAYMENT
        return self.step

    def back(self) -> CheckoutStep:
        if self.step == CheckoutStep.PAYMENT:
            self.step = CheckoutStep.DETAILS
        elif self.step == CheckoutStep.DETAILS:
            self.step = CheckoutStep.CART
        return self.step

    def place_order(self, details: OrderDetails | None = None) -> str:
        """
        Validate the details and place the order.

        Returns:
            The new order's ID.

        Raises:
            ValidationError: If the details are invalid.
            EmptyCartError: If the cart is empty.
            OrderInProgressError: If an order is already being placed.
            OrderPlacementError: If recording the order fails.
        """
        details = details or self.details
        require_valid(validate_checkout_details(details))
        order_id = self.storefront.orders.place_order(details)
        self.step = CheckoutStep.CART
        self.details = OrderDetails()
        return order_id
