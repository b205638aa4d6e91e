"""Order model type definitions for database operations."""

from datetime import datetime
from typing import Literal, TypedDict
from uuid import UUID


# Order status enum values matching the orders.status check constraint
OrderStatus = Literal["pending", "payment_pending", "paid", "completed", "cancelled", "refunded"]

ItemType = Literal["course", "product", "event"]


class OrderItem(TypedDict):
    """Row in the order_items table.

    Items are written once, together with their order, and never updated.
    """

    id: UUID
    order_id: UUID
    item_type: ItemType
    item_id: UUID
    item_title: str
    price: int
    quantity: int
    created_at: datetime


class Order(TypedDict):
    """Orders table row representation.

    Money columns are integer cents in the order currency.
    """

    id: UUID
    user_id: UUID
    status: OrderStatus
    subtotal: int
    tax: int
    total: int
    currency: str
    payment_intent_id: str | None
    payment_method: str | None
    cancellation_reason: str | None
    refund_reason: str | None
    created_at: datetime
    updated_at: datetime
    paid_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    refunded_at: datetime | None


class OrderWithItems(Order):
    """Order row with its embedded order_items."""

    order_items: list[OrderItem]


class OrderUpdate(TypedDict, total=False):
    """Columns that change after an order is created."""

    status: OrderStatus
    payment_intent_id: str
    payment_method: str
    cancellation_reason: str
    refund_reason: str
    updated_at: str
    paid_at: str
    completed_at: str
    cancelled_at: str
    refunded_at: str
