"""Shopping cart storage for bistro."""

from dataclasses import replace
from decimal import Decimal

import structlog

from .errors import InvalidStoredValueError, ValidationError
from .local_storage import CART_KEY, LocalStorage
from .models import CartItem

logger = structlog.get_logger(__name__)


class CartStore:
    """
    Holds the selected items of one visitor session.

    Items keep insertion order. Every mutation writes the full item list
    back to storage. ``add_item`` rejects lines that could not be restored
    on the next load; the other operations never raise.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self._items: list[CartItem] = self._restore()

    def _restore(self) -> list[CartItem]:
        """Load the saved cart, falling back to an empty one."""
        try:
            data = self.storage.get_json(CART_KEY)
        except InvalidStoredValueError as e:
            logger.warning("cart_restore_failed", error=str(e))
            return []

        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("cart_restore_failed", error="stored cart is not a list")
            return []

        try:
            return [CartItem.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("cart_restore_failed", error=str(e))
            return []

    def _persist(self) -> None:
        self.storage.set_json(CART_KEY, [item.to_dict() for item in self._items])

    @property
    def items(self) -> list[CartItem]:
        """A copy of the current lines, in display order."""
        return list(self._items)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self._items), Decimal("0"))

    def is_empty(self) -> bool:
        return not self._items

    def get_item(self, item_id: str) -> CartItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def add_item(self, item: CartItem) -> None:
        """
        Add an item, or overwrite the line that has the same ID.

        An existing line is replaced in place (price, quantity and options
        all come from the new item), so re-adding never increments.

        Raises:
            ValidationError: If the price isn't positive or the quantity is
                below 1 (the cart is left unchanged).
        """
        errors = {}
        if item.price <= 0:
            errors["price"] = f"{item.name or item.id} has no price"
        if item.quantity < 1:
            errors["quantity"] = "Quantity must be at least 1"
        if errors:
            raise ValidationError(errors)

        item = replace(item, options=dict(item.options))
        for i, existing in enumerate(self._items):
            if existing.id == item.id:
                self._items[i] = item
                break
        else:
            self._items.append(item)
        self._persist()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity. Quantities below 1 and unknown IDs are ignored."""
        if quantity < 1:
            return
        for i, item in enumerate(self._items):
            if item.id == item_id:
                self._items[i] = replace(item, quantity=quantity)
                self._persist()
                return

    def remove_item(self, item_id: str) -> None:
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return
        self._items = remaining
        self._persist()

    def clear_cart(self) -> None:
        self._items = []
        self._persist()
