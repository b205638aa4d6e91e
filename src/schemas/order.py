"""Order Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.common import PaginationMeta

OrderStatus = Literal["pending", "payment_pending", "paid", "completed", "cancelled", "refunded"]
ItemType = Literal["course", "product", "event"]


class CartItem(BaseModel):
    """A single cart line submitted with an order."""

    item_type: ItemType = Field(description="Catalog item type")
    item_id: UUID = Field(description="Catalog item UUID")
    quantity: int = Field(default=1, ge=1, le=100, description="Quantity (attendees for events)")


class OrderCreateRequest(BaseModel):
    """Schema for creating an order via POST /orders.

    Prices are looked up from the catalog; the cart only carries what to buy.
    """

    items: list[CartItem] = Field(description="Cart contents")
    currency: str | None = Field(default=None, min_length=3, max_length=3, description="ISO 4217 currency code")


class OrderItemResponse(BaseModel):
    """Schema for an order line item."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    item_type: ItemType
    item_id: UUID
    item_title: str
    price: int = Field(description="Unit price in cents")
    quantity: int


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Order unique identifier")
    user_id: UUID = Field(description="Owning user")
    status: OrderStatus = Field(description="Order status")
    subtotal: int = Field(description="Sum of line items in cents")
    tax: int = Field(description="Tax in cents")
    total: int = Field(description="Total in cents")
    currency: str = Field(description="Currency code")
    formatted_total: str | None = Field(default=None, description="Total formatted for the request locale")
    payment_intent_id: str | None = None
    payment_method: str | None = None
    cancellation_reason: str | None = None
    refund_reason: str | None = None
    user_email: str | None = None
    user_name: str | None = None
    items: list[OrderItemResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None
    paid_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None


class OrderSummary(BaseModel):
    """Order row as shown in listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: OrderStatus
    total: int
    currency: str
    formatted_total: str | None = None
    item_count: int = 0
    created_at: datetime


class OrderListResponse(BaseModel):
    """Paginated order listing."""

    orders: list[OrderSummary]
    pagination: PaginationMeta


class OrderSearchResponse(BaseModel):
    """Admin order search results."""

    orders: list[OrderResponse]


class OrderStatusUpdate(BaseModel):
    """Schema for PATCH /admin/orders/{id}/status."""

    status: OrderStatus
    reason: str | None = Field(default=None, max_length=500)


class OrderReasonRequest(BaseModel):
    """Optional reason for cancellations and refunds."""

    reason: str | None = Field(default=None, max_length=500)


class TopItem(BaseModel):
    item_type: ItemType
    item_id: UUID
    item_title: str
    quantity: int
    revenue: int = Field(description="Revenue in cents")


class OrderStatsResponse(BaseModel):
    """Sales statistics over completed orders."""

    total_revenue: int = Field(description="Revenue of completed orders in cents")
    completed_orders: int
    average_order_value: Decimal = Field(description="Average completed order total in cents")
    orders_by_status: dict[str, int]
    top_items: list[TopItem]
