"""
Order status state machine.

    pending -> confirmed -> preparing -> ready -> delivered

Every non-terminal state may also move to cancelled. delivered and
cancelled are terminal. Moves are single-step and forward-only; the table
here is the only source of truth for which moves are allowed.
"""

import logging
from typing import List, Optional, Union

from database import utc_now
from errors import ConflictError, InvalidTransition, ValidationError
from schemas import OrderStatus
from store import OrderStore

logger = logging.getLogger(__name__)

FORWARD_CHAIN = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
]

TERMINAL_STATUSES = frozenset([OrderStatus.DELIVERED, OrderStatus.CANCELLED])

# The narrower cancel operation (DELETE on an order) only applies before the kitchen starts
CUSTOMER_CANCELLABLE_STATUSES = frozenset([OrderStatus.PENDING, OrderStatus.CONFIRMED])


def parse_status(value: Union[str, OrderStatus, None]) -> Optional[OrderStatus]:
    if value is None or isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status '{value}'", field="status")


def next_statuses(status: OrderStatus) -> List[OrderStatus]:
    """Statuses reachable from ``status`` in one legal move."""
    status = OrderStatus(status)
    if status in TERMINAL_STATUSES:
        return []
    successor = FORWARD_CHAIN[FORWARD_CHAIN.index(status) + 1]
    return [successor, OrderStatus.CANCELLED]


def is_valid_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in next_statuses(current)


class StatusEngine:
    def __init__(self, store: OrderStore):
        self.store = store

    def advance(self, order_id: str, target_status: Union[str, OrderStatus]) -> None:
        """
        Move an order one legal step.

        Raises ValidationError for an unknown status, OrderNotFound,
        InvalidTransition when the table forbids the move, and ConflictError
        when another change landed between our read and our write.
        """
        target = parse_status(target_status)
        if target is None:
            raise ValidationError("Status is required", field="status")

        order = self.store.get_order(order_id)
        if not is_valid_transition(order.status, target):
            logger.warning(f"Rejected transition of order {order_id} from {order.status.value} to {target.value}")
            raise InvalidTransition(order_id, order.status.value, target.value)

        self._compare_and_set(order_id, order.status, target)

    def cancel(self, order_id: str) -> None:
        """Cancel an order that the kitchen has not started on yet."""
        order = self.store.get_order(order_id)
        if order.status not in CUSTOMER_CANCELLABLE_STATUSES:
            logger.warning(f"Rejected cancel of order {order_id} in status {order.status.value}")
            raise InvalidTransition(
                order_id, order.status.value, OrderStatus.CANCELLED.value,
                message=f"Order {order_id} cannot be cancelled once it is {order.status.value}",
            )
        self._compare_and_set(order_id, order.status, OrderStatus.CANCELLED)

    def _compare_and_set(self, order_id: str, expected: OrderStatus, target: OrderStatus) -> None:
        if self.store.update_status(order_id, expected, target, utc_now()):
            logger.info(f"Order {order_id} status {expected.value} -> {target.value}")
            return

        # Raises OrderNotFound if the order is gone rather than changed
        self.store.get_order(order_id)
        logger.warning(f"Lost status race on order {order_id}: expected {expected.value}, wanted {target.value}")
        raise ConflictError(order_id, expected.value)
