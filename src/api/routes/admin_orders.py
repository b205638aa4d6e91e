"""Administrator order management API routes."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Query

from src.api.deps import AdminUser, RequestLocale
from src.api.routes.orders import to_order_response
from src.models.order import ItemType, OrderStatus
from src.schemas.order import (
    OrderReasonRequest,
    OrderResponse,
    OrderSearchResponse,
    OrderStatsResponse,
    OrderStatusUpdate,
)
from src.services.order_service import OrderService
from src.services.payment_service import PaymentService

router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get(
    "",
    response_model=OrderSearchResponse,
    summary="Search orders",
    description="Search orders by ID or customer email, with status, date and item type filters.",
)
async def search_orders(
    admin: AdminUser,
    locale: RequestLocale,
    q: Annotated[str, Query(max_length=200, description="Order UUID or customer email fragment")] = "",
    status_filter: Annotated[OrderStatus | None, Query(alias="status")] = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    item_type: ItemType | None = None,
) -> OrderSearchResponse:
    """Search all orders, newest first."""
    orders = await OrderService().search_orders(
        query=q,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        item_type=item_type,
    )
    return OrderSearchResponse(orders=[to_order_response(order, locale) for order in orders])


@router.get(
    "/stats",
    response_model=OrderStatsResponse,
    summary="Order statistics",
    description="Revenue, order counts by status and top items over an optional date window.",
)
async def get_order_stats(
    admin: AdminUser,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> OrderStatsResponse:
    """Summarize sales over an optional created_at window."""
    stats = await OrderService().get_order_stats(start_date=start_date, end_date=end_date)
    return OrderStatsResponse(**stats)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Change order status",
    description="Moves an order along the status lifecycle, applying access and capacity side effects.",
    responses={
        409: {"description": "Order changed concurrently"},
        422: {"description": "Transition not allowed"},
    },
)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    admin: AdminUser,
    locale: RequestLocale,
) -> OrderResponse:
    """Change an order's status as an administrator."""
    order = await OrderService().update_order_status(
        order_id,
        data.status,
        requester_id=admin.user_id,
        reason=data.reason,
    )
    return to_order_response(order, locale)


@router.post(
    "/{order_id}/refund",
    response_model=OrderResponse,
    summary="Refund an order",
    description="Refunds the order's payment through Stripe and marks the order refunded.",
)
async def refund_order(
    order_id: UUID,
    admin: AdminUser,
    locale: RequestLocale,
    data: Annotated[OrderReasonRequest | None, Body()] = None,
) -> OrderResponse:
    """Refund a paid or completed order.

    Raises:
        NotFoundError: 404 if the order does not exist.
        ValidationError: 422 if the order is not refundable.
        PaymentError: 502 if Stripe rejects the refund.
    """
    order = await PaymentService().refund_payment(order_id, reason=data.reason if data else None)
    return to_order_response(order, locale)
