"""Stripe SDK setup shared by checkout, webhooks and refunds."""

import logging

import stripe

from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Retries reuse the idempotency key, so they never double charge.
MAX_NETWORK_RETRIES = 2


def configure_stripe() -> None:
    """Set the API key and client identity once at startup."""
    settings = get_settings()
    if not settings.stripe_secret_key:
        logger.warning("Stripe secret key not configured; checkout and refunds are disabled")
        return

    stripe.api_key = settings.stripe_secret_key
    stripe.max_network_retries = MAX_NETWORK_RETRIES
    stripe.set_app_info(settings.app_name, version="0.1.0")
    logger.info("Stripe configured (%s mode)", "test" if settings.is_stripe_test_mode else "live")


def get_stripe() -> stripe:
    """Return the module-level Stripe client configured by ``configure_stripe``."""
    return stripe


def idempotency_key(operation: str, order_id: str) -> str:
    """Stable Stripe idempotency key for one operation on one order.

    Args:
        operation: Short operation name, e.g. "order" or "refund".
        order_id: The order the operation applies to.

    Returns:
        str: Key of the form ``<operation>-<order_id>``.
    """
    return f"{operation}-{order_id}"
