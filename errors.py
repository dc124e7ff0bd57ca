"""
Exceptions raised by the order core.

Every kind carries a stable ``code`` so the transport layer can map it to a
distinct response without parsing the message.
"""


class OrderError(Exception):
    """Base exception for order-related errors."""

    code = "order_error"


class ValidationError(OrderError):
    """Raised when input is malformed before any storage is touched."""

    code = "validation_error"

    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)


class ItemNotFound(OrderError):
    """Raised when a requested menu item does not exist in the catalog."""

    code = "item_not_found"

    def __init__(self, menu_item_id, message=None):
        self.menu_item_id = menu_item_id
        if message is None:
            message = f"Menu item {menu_item_id} not found"
        super().__init__(message)


class ItemUnavailable(OrderError):
    """Raised when a requested menu item exists but is disabled."""

    code = "item_unavailable"

    def __init__(self, menu_item_id, message=None):
        self.menu_item_id = menu_item_id
        if message is None:
            message = f"Menu item {menu_item_id} is not available"
        super().__init__(message)


class OrderNotFound(OrderError):
    code = "order_not_found"

    def __init__(self, order_id, message=None):
        self.order_id = order_id
        if message is None:
            message = f"Order {order_id} not found"
        super().__init__(message)


class InvalidTransition(OrderError):
    """Raised when the state machine forbids the requested status change."""

    code = "invalid_transition"

    def __init__(self, order_id, current_status, target_status, message=None):
        self.order_id = order_id
        self.current_status = current_status
        self.target_status = target_status
        if message is None:
            message = f"Cannot transition order {order_id} from {current_status} to {target_status}"
        super().__init__(message)


class ConflictError(OrderError):
    """Raised when a conditional status update lost a race."""

    code = "conflict"

    def __init__(self, order_id, expected_status, message=None):
        self.order_id = order_id
        self.expected_status = expected_status
        if message is None:
            message = (
                f"Order {order_id} is no longer {expected_status}; "
                "re-fetch its current status and retry"
            )
        super().__init__(message)


class PersistenceFailure(OrderError):
    """Raised when the store could not complete an atomic write or read."""

    code = "persistence_failure"


class CatalogUnavailable(PersistenceFailure):
    """Raised when the catalog could not be read while pricing an order."""

    code = "catalog_unavailable"
