"""Order API routes for the authenticated customer."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from src.api.deps import CurrentUser, RequestLocale
from src.core.i18n import Locale
from src.models.order import OrderStatus
from src.schemas.common import PaginationMeta
from src.schemas.order import (
    OrderCreateRequest,
    OrderItemResponse,
    OrderListResponse,
    OrderReasonRequest,
    OrderResponse,
    OrderSummary,
)
from src.services.currency_format import format_cents
from src.services.order_service import OrderService
from src.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


def to_order_response(order: dict[str, Any], locale: Locale) -> OrderResponse:
    """Build the API model of an order row with embedded ``order_items``."""
    data = {key: value for key, value in order.items() if key != "order_items"}
    return OrderResponse(
        **data,
        items=[OrderItemResponse(**item) for item in order.get("order_items") or []],
        formatted_total=format_cents(order["total"], locale, order["currency"]),
    )


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
    description="Creates a pending order from cart items priced from the catalog.",
    responses={
        404: {"description": "User or catalog item not found"},
        409: {"description": "Not enough event spots"},
        422: {"description": "Empty cart or item not purchasable"},
    },
)
async def create_order(data: OrderCreateRequest, user: CurrentUser, locale: RequestLocale) -> OrderResponse:
    """Create a pending order for the authenticated user.

    Args:
        data: Cart items and optional currency.
        user: The authenticated user context.
        locale: Locale used for formatted amounts.

    Returns:
        OrderResponse: The created order with items.
    """
    order = await OrderService().create_order(user.user_id, data.items, data.currency)
    return to_order_response(order, locale)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List my orders",
    description="Returns the authenticated user's orders, newest first.",
)
async def list_orders(
    user: CurrentUser,
    locale: RequestLocale,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    status_filter: Annotated[OrderStatus | None, Query(alias="status")] = None,
) -> OrderListResponse:
    """List the authenticated user's orders with pagination."""
    result = await OrderService().list_user_orders(user.user_id, page=page, limit=limit, status=status_filter)

    orders = [
        OrderSummary(**row, formatted_total=format_cents(row["total"], locale, row["currency"]))
        for row in result["orders"]
    ]
    return OrderListResponse(
        orders=orders,
        pagination=PaginationMeta(
            total=result["total"],
            page=result["page"],
            limit=result["limit"],
            pages=result["pages"],
        ),
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="Returns a single order. Only accessible by the order owner or an admin.",
)
async def get_order(order_id: UUID, user: CurrentUser, locale: RequestLocale) -> OrderResponse:
    """Get a single order by ID.

    Raises:
        NotFoundError: 404 if the order does not exist.
        AuthorizationError: 403 if the user may not view the order.
    """
    order = await OrderService().get_order(order_id, user.user_id)
    return to_order_response(order, locale)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel an order",
    description="Cancels an unpaid order, voiding its payment and releasing any reserved event spots.",
    responses={502: {"description": "Payment provider refused to void the payment"}},
)
async def cancel_order(
    order_id: UUID,
    user: CurrentUser,
    locale: RequestLocale,
    data: Annotated[OrderReasonRequest | None, Body()] = None,
) -> OrderResponse:
    """Cancel a pending or payment_pending order.

    Raises:
        NotFoundError: 404 if the order does not exist.
        AuthorizationError: 403 if the user may not cancel the order.
        ValidationError: 422 if the order is past payment.
        PaymentError: 502 if Stripe refuses to cancel the PaymentIntent.
    """
    reason = data.reason if data else None
    order = await PaymentService().cancel_order(order_id, user.user_id, reason=reason)
    return to_order_response(order, locale)
