"""Inbound Stripe webhooks driving order payment state."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Header, HTTPException, Request, status

from src.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post(
    "/stripe",
    status_code=status.HTTP_200_OK,
    summary="Handle Stripe webhooks",
    responses={400: {"description": "Missing or invalid Stripe-Signature header"}},
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Annotated[str | None, Header(alias="stripe-signature")] = None,
) -> dict[str, Any]:
    """Verify a Stripe event and apply it to the matching order.

    ``payment_intent.succeeded`` pays, fulfills and confirms the order,
    ``payment_intent.payment_failed`` cancels it and ``charge.refunded``
    refunds it. Other event types are acknowledged and ignored. Replays are
    acknowledged too since each handler checks the order status first.

    Raises:
        HTTPException: 400 if the signature is missing or does not verify.
    """
    if not stripe_signature:
        logger.error("Stripe webhook rejected: no Stripe-Signature header")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Stripe-Signature header")

    # Signature covers the exact bytes sent
    payload = await request.body()
    service = PaymentService()

    try:
        event = service.verify_webhook_signature(payload, stripe_signature)
    except ValueError as e:
        logger.error("Stripe webhook rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature") from e

    handled = await service.handle_event(event)
    logger.info("Stripe event %s (%s) %s", event["id"], event["type"], "applied" if handled else "ignored")
    return {"status": "received", "handled": handled}
