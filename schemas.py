"""
Data Schemas for Restaurant Orders

Pydantic models for the wire contract and for the documents kept in MongoDB.

This app manages:
- Menu items (read-only here; owned by the catalog, collection "menuitem")
- Orders with their embedded line items (collection "order")
- Status updates and daily statistics derived from orders
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, PlainSerializer, field_validator

# Money stays Decimal in Python and goes out as a JSON number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

MAX_LINE_QUANTITY = 1000


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Menuitem(BaseModel):
    """
    Restaurant menu items
    Collection name: "menuitem"
    """
    name: str = Field(..., description="Dish name")
    description: Optional[str] = Field(None, description="Short description")
    category: str = Field(..., description="Category like Appetizers, Main Courses, Desserts")
    price: Money = Field(..., ge=0, description="Unit price")
    is_available: bool = Field(True, description="Available to order")
    preparation_time: int = Field(15, ge=0, description="Minutes to prepare")


class MenuItemRef(BaseModel):
    """Read-only view of a catalog entry as consumed by order creation."""
    id: str
    price: Money = Field(..., ge=0)
    is_available: bool
    name: Optional[str] = None
    description: Optional[str] = None
    preparation_time: Optional[int] = None


class OrderLineRequest(BaseModel):
    """One cart line; any client-supplied price is ignored."""
    menu_item_id: str = Field(..., min_length=1, description="Referenced menu item _id as string")
    quantity: int = Field(..., ge=1, le=MAX_LINE_QUANTITY, description="Quantity ordered")
    special_instructions: Optional[str] = Field(None, description="Kitchen notes for this line")


class CustomerInfo(BaseModel):
    customer_name: str = Field(..., min_length=1, description="Name provided with the order")
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    table_number: Optional[int] = Field(None, ge=1, description="Table the order is served to")
    notes: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value


class CreateOrder(CustomerInfo):
    items: List[OrderLineRequest] = Field(..., min_length=1, description="At least one item is required")


class Orderitem(BaseModel):
    """
    Embedded order line (not a collection). unit_price is the catalog
    price snapshotted when the order was created.
    """
    id: str
    order_id: str
    menu_item_id: str
    quantity: int = Field(..., ge=1)
    unit_price: Money = Field(..., ge=0)
    special_instructions: Optional[str] = None
    # Display-only, filled from the catalog at read time
    name: Optional[str] = None
    description: Optional[str] = None
    preparation_time: Optional[int] = None


class Order(BaseModel):
    """
    Orders placed in the restaurant
    Collection name: "order"
    """
    id: str
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    table_number: Optional[int] = None
    total_amount: Money = Field(..., ge=0, description="Sum of unit_price x quantity over items")
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    items: List[Orderitem] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class OrderDetail(Order):
    next_statuses: List[OrderStatus] = Field(default_factory=list, description="Statuses this order may move to")


class OrderCreated(BaseModel):
    id: str
    total_amount: Money
    status: OrderStatus
    message: str = "Order created successfully"


class OrderSummary(BaseModel):
    id: str
    customer_name: str
    status: OrderStatus
    total_amount: Money
    item_count: int
    created_at: datetime


class StatusUpdate(BaseModel):
    status: OrderStatus


class OrderStats(BaseModel):
    day: date
    total_orders: int = 0
    pending_orders: int = 0
    preparing_orders: int = 0
    ready_orders: int = 0
    delivered_orders: int = 0
    total_revenue: Money = Decimal("0.00")
    average_order_value: Optional[Money] = None


class MessageResponse(BaseModel):
    message: str
