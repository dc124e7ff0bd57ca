"""
Order Store: durable record of orders and their line items.

An order and its lines are one MongoDB document (lines embedded under
"items"), so the single insert_one in begin_order_write is the atomic
multi-row write: every line is visible together with its order, or nothing
is. Status changes are compare-and-set updates on the stored status.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from bson import ObjectId
from bson.errors import InvalidDocument
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import as_utc, create_document, get_documents, object_id, to_decimal, to_decimal128, utc_now
from errors import OrderNotFound, PersistenceFailure
from schemas import CustomerInfo, Order, Orderitem, OrderStatus

logger = logging.getLogger(__name__)

ORDER_COLLECTION = "order"
LIST_SORT = [("created_at", DESCENDING), ("_id", DESCENDING)]


class PricedLine(NamedTuple):
    """A cart line after its unit price has been taken from the catalog."""
    menu_item_id: str
    quantity: int
    unit_price: Decimal
    special_instructions: Optional[str] = None


def _order_from_document(doc: Dict[str, Any]) -> Order:
    order_id = str(doc["_id"])
    items = [
        Orderitem(
            id=line["id"],
            order_id=order_id,
            menu_item_id=line["menu_item_id"],
            quantity=line["quantity"],
            unit_price=to_decimal(line["unit_price"]),
            special_instructions=line.get("special_instructions"),
        )
        for line in doc.get("items", [])
    ]
    return Order(
        id=order_id,
        customer_name=doc["customer_name"],
        customer_phone=doc.get("customer_phone"),
        customer_email=doc.get("customer_email"),
        table_number=doc.get("table_number"),
        total_amount=to_decimal(doc["total_amount"]),
        status=doc["status"],
        notes=doc.get("notes"),
        items=items,
        created_at=as_utc(doc["created_at"]),
        updated_at=as_utc(doc["updated_at"]),
    )


class OrderStore:
    def __init__(self, db: Database, max_time_ms: Optional[int] = None):
        self.collection_name = ORDER_COLLECTION
        self.db = db
        self.max_time_ms = max_time_ms

    @property
    def collection(self):
        return self.db[self.collection_name]

    def ensure_indexes(self) -> None:
        self.collection.create_index(LIST_SORT, name="created_at_desc_id_desc")
        self.collection.create_index("status", name="status")

    def begin_order_write(self, customer: CustomerInfo, lines: Sequence[PricedLine], total_amount: Decimal) -> Order:
        """
        Persist a new pending order together with all of its lines.

        Raises PersistenceFailure if the write did not commit; in that case
        no part of the order is stored.
        """
        if not lines:
            raise PersistenceFailure("Refusing to write an order without lines")

        order_oid = ObjectId()
        now = utc_now()
        doc = {
            "_id": order_oid,
            "customer_name": customer.customer_name,
            "customer_phone": customer.customer_phone,
            "customer_email": customer.customer_email,
            "table_number": customer.table_number,
            "notes": customer.notes,
            "total_amount": to_decimal128(total_amount),
            "status": OrderStatus.PENDING.value,
            "items": [
                {
                    "id": str(ObjectId()),
                    "menu_item_id": line.menu_item_id,
                    "quantity": line.quantity,
                    "unit_price": to_decimal128(line.unit_price),
                    "special_instructions": line.special_instructions,
                }
                for line in lines
            ],
            "created_at": now,
            "updated_at": now,
        }

        try:
            create_document(self.db, self.collection_name, doc)
        except (PyMongoError, InvalidDocument, OverflowError) as e:
            logger.error(f"Order write failed for customer '{customer.customer_name}': {e}")
            raise PersistenceFailure("Order could not be saved") from e

        return _order_from_document(doc)

    def get_order(self, order_id: str) -> Order:
        oid = object_id(order_id)
        if oid is None:
            raise OrderNotFound(order_id)
        try:
            docs = get_documents(self.db, self.collection_name, {"_id": oid}, limit=1, max_time_ms=self.max_time_ms)
        except PyMongoError as e:
            logger.error(f"Reading order {order_id} failed: {e}")
            raise PersistenceFailure(f"Order {order_id} could not be read") from e
        if not docs:
            raise OrderNotFound(order_id)
        return _order_from_document(docs[0])

    def update_status(self, order_id: str, expected_status: OrderStatus, status: OrderStatus,
                      updated_at: datetime) -> bool:
        """
        Set status only if the stored status still equals expected_status.

        Returns False when nothing matched (status moved on, or no such order).
        """
        oid = object_id(order_id)
        if oid is None:
            return False
        try:
            res = self.collection.update_one(
                {"_id": oid, "status": OrderStatus(expected_status).value},
                {"$set": {"status": OrderStatus(status).value, "updated_at": updated_at}},
            )
        except PyMongoError as e:
            logger.error(f"Status update of order {order_id} to {status} failed: {e}")
            raise PersistenceFailure(f"Order {order_id} status could not be updated") from e
        return res.matched_count == 1

    def list_orders(self, status: Optional[OrderStatus] = None, limit: int = 50) -> List[Order]:
        """Newest first, ties broken by id descending."""
        filter_dict = {}
        if status is not None:
            filter_dict["status"] = OrderStatus(status).value
        try:
            docs = get_documents(self.db, self.collection_name, filter_dict, limit=limit, sort=LIST_SORT,
                                 max_time_ms=self.max_time_ms)
        except PyMongoError as e:
            logger.error(f"Listing orders failed: {e}")
            raise PersistenceFailure("Orders could not be listed") from e
        return [_order_from_document(doc) for doc in docs]

    def orders_created_between(self, start: datetime, end: datetime) -> List[Order]:
        """Orders with start <= created_at < end (naive UTC bounds)."""
        try:
            docs = get_documents(
                self.db,
                self.collection_name,
                {"created_at": {"$gte": start, "$lt": end}},
                sort=LIST_SORT,
                max_time_ms=self.max_time_ms,
            )
        except PyMongoError as e:
            logger.error(f"Reading orders between {start} and {end} failed: {e}")
            raise PersistenceFailure("Orders could not be read") from e
        return [_order_from_document(doc) for doc in docs]
