"""Checkout API routes for Stripe integration."""

from fastapi import APIRouter, status

from src.api.deps import CurrentUser, RequestLocale
from src.core.config import get_settings
from src.schemas.checkout import PaymentIntentCreate, PaymentIntentResponse
from src.services.currency_format import format_cents
from src.services.payment_service import PaymentService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post(
    "/payment-intent",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Stripe PaymentIntent",
    description="Starts payment of a pending order. The client confirms it with Stripe.js.",
    responses={
        403: {"description": "Order belongs to another user"},
        409: {"description": "A payment is already attached to the order"},
        502: {"description": "Stripe rejected the request"},
        503: {"description": "Payments are not configured"},
    },
)
async def create_payment_intent(
    data: PaymentIntentCreate,
    user: CurrentUser,
    locale: RequestLocale,
) -> PaymentIntentResponse:
    """Create a PaymentIntent for a pending order.

    The order moves to payment_pending; the webhook completes it once
    Stripe reports the payment.

    Args:
        data: The order to pay for.
        user: The authenticated user context.
        locale: Locale used for the formatted amount.

    Returns:
        PaymentIntentResponse: Client secret and amount.
    """
    result = await PaymentService().create_payment_intent(data.order_id, user.user_id)
    return PaymentIntentResponse(
        **result,
        formatted_amount=format_cents(result["amount"], locale, result["currency"]),
        publishable_key=get_settings().stripe_publishable_key or None,
    )
