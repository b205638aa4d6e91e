"""Stripe payment integration: PaymentIntents, webhooks and refunds."""

import logging
from typing import Any
from uuid import UUID

import stripe
from fastapi import status

from src.api.middleware.error_handler import APIError, NotFoundError, ServiceUnavailableError, ValidationError
from src.core.config import get_settings
from src.core.stripe import get_stripe, idempotency_key
from src.services.email_service import EmailService
from src.services.order_service import OrderService
from src.services.preference_service import UserPreferenceService

logger = logging.getLogger(__name__)


class PaymentError(APIError):
    """The payment provider rejected or failed a request."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_type = "payment_error"
    default_message = "Payment provider error"


class PaymentService:
    """Service connecting orders to Stripe payments."""

    def __init__(self) -> None:
        """Initialize payment service with clients and collaborators."""
        self.stripe = get_stripe()
        self.settings = get_settings()
        self.orders = OrderService()
        self.preferences = UserPreferenceService()
        self.email = EmailService()

    def _require_stripe(self) -> None:
        if not self.settings.stripe_secret_key:
            raise ServiceUnavailableError("Payments are not configured")

    async def create_payment_intent(self, order_id: UUID, user_id: UUID) -> dict[str, Any]:
        """Create a Stripe PaymentIntent for an order and attach it.

        The idempotency key is derived from the order, so retries return the
        same PaymentIntent instead of charging twice.

        Args:
            order_id: The order to pay for.
            user_id: The requesting user; must own the order or be an admin.

        Returns:
            dict: order_id, payment_intent_id, client_secret, amount, currency.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the user may not see the order.
            ConflictError: If a payment is already attached.
            ValidationError: If the order is not pending.
            PaymentError: If Stripe rejects the request.
        """
        self._require_stripe()
        order = await self.orders.get_order(order_id, user_id)

        if order["status"] != "pending":
            raise ValidationError(f"Order cannot be paid in status {order['status']}")

        try:
            intent = self.stripe.PaymentIntent.create(
                amount=order["total"],
                currency=order["currency"].lower(),
                automatic_payment_methods={"enabled": True},
                metadata={"order_id": str(order["id"]), "user_id": str(order["user_id"])},
                idempotency_key=idempotency_key("order", order["id"]),
            )
        except stripe.StripeError as e:
            logger.error("Stripe error creating payment intent for order %s: %s", order_id, str(e))
            raise PaymentError("Could not start the payment") from e

        await self.orders.attach_payment_intent(order_id, intent.id, payment_method="card")

        return {
            "order_id": order["id"],
            "payment_intent_id": intent.id,
            "client_secret": intent.client_secret,
            "amount": order["total"],
            "currency": order["currency"],
        }

    def verify_webhook_signature(self, payload: bytes, sig_header: str) -> Any:
        """Verify Stripe webhook signature and return the event.

        Args:
            payload: Raw webhook payload bytes.
            sig_header: Stripe-Signature header value.

        Returns:
            stripe.Event: Verified event.

        Raises:
            ValueError: If the signature or payload is invalid, or no webhook
                secret is configured.
        """
        if not self.settings.stripe_webhook_secret:
            raise ValueError("Stripe webhook secret is not configured")

        try:
            return self.stripe.Webhook.construct_event(
                payload, sig_header, self.settings.stripe_webhook_secret
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise ValueError("Invalid webhook signature") from e

    async def handle_event(self, event: Any) -> bool:
        """Dispatch a verified webhook event.

        Returns:
            bool: True if the event type is handled.
        """
        event_type = event["type"]
        if event_type == "payment_intent.succeeded":
            await self.handle_payment_succeeded(event)
        elif event_type == "payment_intent.payment_failed":
            await self.handle_payment_failed(event)
        elif event_type == "charge.refunded":
            await self.handle_charge_refunded(event)
        else:
            logger.debug("Unhandled webhook event type: %s", event_type)
            return False
        return True

    async def _find_order(self, payment_intent_id: str | None, metadata: dict[str, Any] | None) -> dict[str, Any] | None:
        if payment_intent_id:
            order = await self.orders.get_order_by_payment_intent(payment_intent_id)
            if order:
                return order

        order_id = (metadata or {}).get("order_id")
        if order_id:
            return await self.orders.fetch_order(order_id)
        return None

    async def handle_payment_succeeded(self, event: Any) -> None:
        """Mark the order paid, fulfill it and send the confirmation email.

        Orders already paid only need fulfilling. A payment that lands on an
        order cancelled in the meantime is refunded; any other status means
        the event is a replay and is ignored.
        """
        intent = event["data"]["object"]
        order = await self._find_order(intent["id"], intent.get("metadata"))
        if not order:
            logger.warning("No order found for payment intent %s", intent["id"])
            return

        order_id = order["id"]
        if order["status"] == "cancelled":
            await self._refund_cancelled_order(order_id, intent["id"])
            return

        if order["status"] not in ("payment_pending", "paid"):
            logger.info("Order %s is %s, ignoring payment success", order_id, order["status"])
            return

        if order["status"] == "payment_pending":
            await self.orders.update_order_status(order_id, "paid")

        order = await self.orders.fulfill_order(order_id)
        await self._send_confirmation(order)

    async def handle_payment_failed(self, event: Any) -> None:
        """Cancel the order of a failed payment, releasing reserved spots."""
        intent = event["data"]["object"]
        order = await self._find_order(intent["id"], intent.get("metadata"))
        if not order:
            logger.warning("No order found for payment intent %s", intent["id"])
            return

        if order["status"] not in ("pending", "payment_pending"):
            logger.info("Order %s is %s, ignoring payment failure", order["id"], order["status"])
            return

        error = intent.get("last_payment_error") or {}
        reason = f"Payment failed: {error.get('message', 'unknown error')}"
        await self.orders.cancel_order(order["id"], reason=reason)

    async def handle_charge_refunded(self, event: Any) -> None:
        """Refund the order of a charge refunded in Stripe."""
        charge = event["data"]["object"]
        order = await self._find_order(charge.get("payment_intent"), charge.get("metadata"))
        if not order:
            logger.warning("No order found for refunded charge %s", charge["id"])
            return

        if order["status"] not in ("paid", "completed"):
            logger.info("Order %s is %s, ignoring refund event", order["id"], order["status"])
            return

        await self.orders.refund_order(order["id"], reason="Refunded through payment provider")

    async def cancel_order(self, order_id: UUID, user_id: UUID, reason: str | None = None) -> dict[str, Any]:
        """Cancel an unpaid order, voiding its PaymentIntent first.

        Args:
            order_id: The order to cancel.
            user_id: The requesting user; must own the order or be an admin.
            reason: Optional cancellation reason.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the user may not cancel the order.
            ValidationError: If the order is past payment.
            PaymentError: If Stripe refuses to cancel the PaymentIntent.
        """
        order = await self.orders.get_order(order_id, user_id)
        if order["status"] not in ("pending", "payment_pending"):
            raise ValidationError(f"Order cannot be cancelled in status {order['status']}")

        payment_intent_id = order.get("payment_intent_id")
        if payment_intent_id:
            self._require_stripe()
            try:
                self.stripe.PaymentIntent.cancel(
                    payment_intent_id,
                    cancellation_reason="requested_by_customer",
                    idempotency_key=idempotency_key("cancel", order["id"]),
                )
            except stripe.StripeError as e:
                logger.error("Stripe error cancelling payment for order %s: %s", order_id, str(e))
                raise PaymentError("Could not cancel the payment") from e

        return await self.orders.cancel_order(order_id, reason=reason, requester_id=user_id)

    async def refund_payment(self, order_id: UUID, reason: str | None = None) -> dict[str, Any]:
        """Refund an order's payment in Stripe and mark the order refunded.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the order is not refundable or has no payment.
            PaymentError: If Stripe rejects the refund.
        """
        self._require_stripe()
        order = await self.orders.fetch_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        if order["status"] not in ("paid", "completed"):
            raise ValidationError(f"Order cannot be refunded in status {order['status']}")

        if not order.get("payment_intent_id"):
            raise ValidationError("Order has no payment to refund")

        try:
            self.stripe.Refund.create(
                payment_intent=order["payment_intent_id"],
                idempotency_key=idempotency_key("refund", order["id"]),
            )
        except stripe.StripeError as e:
            logger.error("Stripe error refunding order %s: %s", order_id, str(e))
            raise PaymentError("Could not refund the payment") from e

        return await self.orders.refund_order(order_id, reason=reason)

    async def _refund_cancelled_order(self, order_id: str, payment_intent_id: str) -> None:
        try:
            self.stripe.Refund.create(
                payment_intent=payment_intent_id,
                idempotency_key=idempotency_key("refund", order_id),
            )
        except stripe.StripeError as e:
            if e.code == "charge_already_refunded":
                logger.info("Cancelled order %s was already refunded", order_id)
                return
            logger.error("Stripe error refunding cancelled order %s: %s", order_id, str(e))
            raise PaymentError("Could not refund the payment") from e

        logger.warning("Payment %s succeeded for cancelled order %s, refunded", payment_intent_id, order_id)

    async def _send_confirmation(self, order: dict[str, Any]) -> None:
        email = order.get("user_email")
        if not email:
            logger.warning("Order %s has no customer email, skipping confirmation", order["id"])
            return

        locale = await self.preferences.get_user_language_preference(order["user_id"])
        await self.email.send_order_confirmation(
            to_email=email,
            order=order,
            customer_name=order.get("user_name"),
            locale=locale,
        )
