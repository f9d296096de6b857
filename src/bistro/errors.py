"""Custom exceptions for bistro."""


class BistroError(Exception):
    """Base exception for all bistro errors."""

    pass


class ValidationError(BistroError):
    """Raised when submitted form fields are missing or malformed."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid fields: {fields}")


class EmptyCartError(BistroError):
    """Raised when checking out or placing an order with no items."""

    def __init__(self):
        super().__init__("Your cart is empty")


class OrderInProgressError(BistroError):
    """Raised when an order is placed while another placement is in flight."""

    def __init__(self):
        super().__init__("An order is already being placed")


class OrderNotFoundError(BistroError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderPlacementError(BistroError):
    """Raised when placing an order fails after validation."""

    def __init__(self, reason: str | None = None):
        self.reason = reason
        msg = "Failed to place order"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class OrderCancellationError(BistroError):
    """Raised when cancelling an order fails."""

    def __init__(self, order_id: str, reason: str | None = None):
        self.order_id = order_id
        self.reason = reason
        msg = f"Failed to cancel order {order_id}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class MenuItemNotFoundError(BistroError):
    """Raised when a menu item ID isn't in the catalog."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Menu item not found: {item_id}")


class DocumentStoreError(BistroError):
    """Raised when a read or write against the document store fails."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Document store {operation} failed: {detail}")


class InvalidStoredValueError(BistroError):
    """Raised when a persisted value can't be decoded."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid stored value for '{key}': {reason}")
