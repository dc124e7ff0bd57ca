"""
Order creation and order read paths.

OrderBuilder turns a cart into a persisted, priced order. Prices always
come from the catalog at the moment of creation; whatever the client sent
is never consulted. All catalog lookups happen before the single store
write, so a missing or disabled item rejects the whole order and nothing
is written.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from catalog import CatalogReader
from errors import ItemNotFound, ItemUnavailable, ValidationError
from schemas import MAX_LINE_QUANTITY, CustomerInfo, Order, OrderDetail, OrderLineRequest, OrderStatus, OrderSummary
from status_engine import next_statuses, parse_status
from store import OrderStore, PricedLine

logger = logging.getLogger(__name__)


def _validate_request(customer: CustomerInfo, lines: Sequence[OrderLineRequest]) -> None:
    if not customer.customer_name or not customer.customer_name.strip():
        raise ValidationError("Customer name is required", field="customer_name")
    if not lines:
        raise ValidationError("At least one item is required", field="items")
    for index, line in enumerate(lines):
        if not line.menu_item_id:
            raise ValidationError("Valid menu item ID is required", field=f"items.{index}.menu_item_id")
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
            raise ValidationError("Quantity must be at least 1", field=f"items.{index}.quantity")
        if line.quantity > MAX_LINE_QUANTITY:
            raise ValidationError(f"Quantity must be at most {MAX_LINE_QUANTITY}", field=f"items.{index}.quantity")


class OrderBuilder:
    def __init__(self, catalog: CatalogReader, store: OrderStore):
        self.catalog = catalog
        self.store = store

    def price_lines(self, lines: Sequence[OrderLineRequest]) -> List[PricedLine]:
        """
        Snapshot the catalog price for every line.

        Duplicate menu_item_id entries stay separate lines; quantities are
        never merged here.
        """
        refs = self.catalog.get_many(line.menu_item_id for line in lines)
        priced = []
        for line in lines:
            ref = refs.get(line.menu_item_id)
            if ref is None:
                raise ItemNotFound(line.menu_item_id)
            if not ref.is_available:
                raise ItemUnavailable(line.menu_item_id)
            priced.append(PricedLine(
                menu_item_id=ref.id,
                quantity=line.quantity,
                unit_price=ref.price,
                special_instructions=line.special_instructions,
            ))
        return priced

    def create(self, customer: CustomerInfo, lines: Sequence[OrderLineRequest]) -> Order:
        _validate_request(customer, lines)
        priced = self.price_lines(lines)
        total_amount = sum((line.unit_price * line.quantity for line in priced), Decimal("0"))

        order = self.store.begin_order_write(customer, priced, total_amount)
        logger.info(f"Created order {order.id} with {len(order.items)} line(s), total {order.total_amount}")
        return order


class OrderQueries:
    """Read-only views of orders for fetch and list requests."""

    def __init__(self, catalog: CatalogReader, store: OrderStore, default_limit: int = 50, max_limit: int = 200):
        self.catalog = catalog
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    def get_order(self, order_id: str) -> OrderDetail:
        """
        Full order with its lines. Item name, description and preparation
        time are looked up from the catalog for display only; stored prices
        and totals are returned untouched.
        """
        order = self.store.get_order(order_id)
        refs = self.catalog.get_many(line.menu_item_id for line in order.items)
        items = []
        for line in order.items:
            ref = refs.get(line.menu_item_id)
            if ref is not None:
                line = line.model_copy(update={
                    "name": ref.name,
                    "description": ref.description,
                    "preparation_time": ref.preparation_time,
                })
            items.append(line)
        return OrderDetail(
            **order.model_dump(exclude={"items"}),
            items=items,
            next_statuses=next_statuses(order.status),
        )

    def list_orders(self, status: Union[str, OrderStatus, None] = None, limit: Optional[int] = None) -> List[OrderSummary]:
        if limit is None:
            limit = self.default_limit
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        limit = min(limit, self.max_limit)

        orders = self.store.list_orders(status=parse_status(status), limit=limit)
        return [
            OrderSummary(
                id=order.id,
                customer_name=order.customer_name,
                status=order.status,
                total_amount=order.total_amount,
                item_count=len(order.items),
                created_at=order.created_at,
            )
            for order in orders
        ]
