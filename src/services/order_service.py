"""Order lifecycle business logic service."""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError as PostgrestAPIError

from src.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.core.config import get_settings
from src.core.supabase import get_supabase_client, raised_by_function
from src.models.order import OrderStatus
from src.schemas.order import CartItem
from src.services.catalog_service import CatalogService
from src.services.currency_format import SUPPORTED_CURRENCIES, calculate_tax_cents
from src.services.fulfillment_service import FulfillmentService
from src.services.user_service import UserService

logger = logging.getLogger(__name__)

ORDER_WITH_ITEMS = "*, order_items(*), users(email, name)"

# Order state machine
_VALID_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"payment_pending", "cancelled"},
    "payment_pending": {"paid", "cancelled"},
    "paid": {"completed", "refunded"},
    "completed": {"refunded"},
    "cancelled": set(),  # Terminal
    "refunded": set(),  # Terminal
}

_CANCELLABLE_STATES = {"pending", "payment_pending"}
_REFUNDABLE_STATES = {"paid", "completed"}

_STATUS_TIMESTAMPS = {
    "paid": "paid_at",
    "completed": "completed_at",
    "cancelled": "cancelled_at",
    "refunded": "refunded_at",
}

_STATUS_REASONS = {
    "cancelled": "cancellation_reason",
    "refunded": "refund_reason",
}

SEARCH_LIMIT = 50
TOP_ITEMS_LIMIT = 10
# Inner-joined alias used only to filter orders by item type
ITEM_MATCH_EMBED = "item_match:order_items!inner(item_type)"


@dataclass(frozen=True)
class OrderTotals:
    """Order money amounts in integer cents."""

    subtotal: int
    tax: int
    total: int


def can_transition(current: str, target: str) -> bool:
    """Check whether the order state machine allows current -> target."""
    return target in _VALID_TRANSITIONS.get(current, set())


def assert_can_transition(current: str, target: str) -> None:
    """Raise ValidationError unless current -> target is a legal transition."""
    if not can_transition(current, target):
        raise ValidationError(f"Invalid status transition from {current} to {target}")


def to_cents(amount: Decimal | int | float | str) -> int:
    """Convert a major-unit price to integer cents, rounding half-up."""
    cents = (Decimal(str(amount)) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(cents)


def compute_order_totals(items: list[dict[str, Any]], tax_rate: Decimal) -> OrderTotals:
    """Compute subtotal, tax and total for priced line items.

    Args:
        items: Line items with integer-cent ``price`` and ``quantity``.
        tax_rate: Tax rate as a fraction, e.g. 0.08.

    Returns:
        OrderTotals: total == subtotal + tax, all in cents.
    """
    subtotal = sum(item["price"] * item["quantity"] for item in items)
    tax = calculate_tax_cents(subtotal, tax_rate)
    return OrderTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def _flatten_order(order: dict[str, Any]) -> dict[str, Any]:
    """Lift the embedded owner row into user_email/user_name."""
    owner = order.pop("users", None) or {}
    order["user_email"] = owner.get("email")
    order["user_name"] = owner.get("name")
    return order


def _merge_cart(cart_items: list[CartItem]) -> list[CartItem]:
    """Combine duplicate cart lines for the same catalog item."""
    merged: dict[tuple[str, UUID], CartItem] = {}
    for item in cart_items:
        key = (item.item_type, item.item_id)
        if key in merged:
            merged[key] = item.model_copy(update={"quantity": merged[key].quantity + item.quantity})
        else:
            merged[key] = item
    return list(merged.values())


class OrderService:
    """Service for creating orders and driving their status lifecycle."""

    def __init__(self) -> None:
        """Initialize order service with clients and collaborators."""
        self.client = get_supabase_client()
        self.settings = get_settings()
        self.catalog = CatalogService()
        self.users = UserService()
        self.fulfillment = FulfillmentService()

    async def create_order(
        self,
        user_id: UUID,
        cart_items: list[CartItem],
        currency: str | None = None,
    ) -> dict[str, Any]:
        """Create a pending order from cart contents.

        Items are priced from the catalog. The order, its items and the
        event spot reservations are written in one database transaction.

        Args:
            user_id: The purchasing user's UUID.
            cart_items: Cart lines to buy.
            currency: Optional currency code; defaults to the store currency.

        Returns:
            dict: The created order with items.

        Raises:
            ValidationError: If the cart is empty or an item cannot be sold.
            NotFoundError: If the user or a catalog item does not exist.
            ConflictError: If an event does not have enough spots left, or the
                user already holds spots on it.
        """
        if not cart_items:
            raise ValidationError("Cart is empty")

        if any(item.quantity < 1 for item in cart_items):
            raise ValidationError("Item quantity must be at least 1")

        store_currency = self.settings.store_currency.upper()
        order_currency = (currency or store_currency).upper()
        if order_currency not in SUPPORTED_CURRENCIES:
            raise ValidationError(f"Unsupported currency: {order_currency}")
        # Catalog prices are stored in the store currency; there is no conversion
        if order_currency != store_currency:
            raise ValidationError(f"Orders must be placed in {store_currency}")

        user = await self.users.get_active_user(user_id)
        if not user:
            raise NotFoundError("User not found")

        line_items = [await self._price_item(item, user_id) for item in _merge_cart(cart_items)]
        totals = compute_order_totals(line_items, self.settings.tax_rate)

        try:
            response = self.client.rpc(
                "create_order_with_items",
                {
                    "p_user_id": str(user_id),
                    "p_currency": order_currency,
                    "p_subtotal": totals.subtotal,
                    "p_tax": totals.tax,
                    "p_total": totals.total,
                    "p_items": line_items,
                },
            ).execute()
        except PostgrestAPIError as e:
            if raised_by_function(e, "insufficient_capacity"):
                raise ConflictError("Not enough spots available for this event") from e
            raise

        order_id = response.data
        logger.info(
            "Created order %s for user %s (%d items, total %d %s)",
            order_id,
            user_id,
            len(line_items),
            totals.total,
            order_currency,
        )

        order = await self.fetch_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def _price_item(self, item: CartItem, user_id: UUID) -> dict[str, Any]:
        """Resolve a cart line against the catalog and price it in cents."""
        row = await self.catalog.get_catalog_item(item.item_type, item.item_id)
        if not row:
            raise NotFoundError(f"{item.item_type.capitalize()} {item.item_id} not found")

        if not row.get("is_published", False):
            raise ValidationError(f"{row['title']} is not available for purchase")

        if item.item_type == "event":
            event_date = datetime.fromisoformat(str(row["event_date"]))
            if event_date.tzinfo is None:
                event_date = event_date.replace(tzinfo=timezone.utc)
            if event_date <= datetime.now(timezone.utc):
                raise ValidationError(f"{row['title']} has already taken place")
            if row.get("available_spots", 0) < item.quantity:
                raise ConflictError(f"Not enough spots available for {row['title']}")
            # Bookings are unique per user and event
            if await self.fulfillment.holds_event_spots(user_id, item.item_id):
                raise ConflictError(f"You already have a booking for {row['title']}")

        return {
            "item_type": item.item_type,
            "item_id": str(item.item_id),
            "item_title": row["title"],
            "price": to_cents(row["price"]),
            "quantity": item.quantity,
        }

    async def fetch_order(self, order_id: UUID | str) -> dict[str, Any] | None:
        """Load an order with its items and owner contact details."""
        response = (
            self.client.table("orders")
            .select(ORDER_WITH_ITEMS)
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            return None
        return _flatten_order(response.data)

    async def _require_order(self, order_id: UUID | str) -> dict[str, Any]:
        order = await self.fetch_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def get_order(self, order_id: UUID, requester_id: UUID) -> dict[str, Any]:
        """Get an order the requester is allowed to see.

        Args:
            order_id: The order's UUID.
            requester_id: UUID of the user asking.

        Returns:
            dict: The order with items, user_email and user_name.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the requester is neither owner nor admin.
        """
        order = await self._require_order(order_id)

        if order["user_id"] != str(requester_id) and not await self.users.is_admin(requester_id):
            raise AuthorizationError("You do not have access to this order")

        return order

    async def list_user_orders(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int | None = None,
        status: OrderStatus | None = None,
    ) -> dict[str, Any]:
        """List a user's orders, newest first.

        Args:
            user_id: The owner's UUID.
            page: 1-based page number.
            limit: Page size; defaults to the configured page size.
            status: Optional status filter.

        Returns:
            dict: ``orders`` (each with ``item_count``), ``total``, ``page``,
            ``limit`` and ``pages``.
        """
        if page < 1:
            raise ValidationError("Page must be at least 1")

        page_size = limit or self.settings.orders_page_size
        if page_size < 1:
            raise ValidationError("Limit must be at least 1")
        page_size = min(page_size, self.settings.orders_max_page_size)
        offset = (page - 1) * page_size

        query = (
            self.client.table("orders")
            .select("*, order_items(count)", count="exact")
            .eq("user_id", str(user_id))
        )
        if status:
            query = query.eq("status", status)

        response = query.order("created_at", desc=True).range(offset, offset + page_size - 1).execute()

        orders = []
        for row in response.data or []:
            counts = row.pop("order_items", None) or []
            row["item_count"] = counts[0]["count"] if counts else 0
            orders.append(row)

        total = response.count or 0
        return {
            "orders": orders,
            "total": total,
            "page": page,
            "limit": page_size,
            "pages": math.ceil(total / page_size) if total else 0,
        }

    async def update_order_status(
        self,
        order_id: UUID,
        new_status: OrderStatus,
        requester_id: UUID | None = None,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """Move an order to a new status and apply the side effects.

        Completing grants access to every item; refunding revokes it (or
        releases event reservations when the order was never fulfilled);
        cancelling releases event reservations.

        Args:
            order_id: The order's UUID.
            new_status: Target status.
            requester_id: When given, must belong to an admin.
            reason: Cancellation or refund reason.

        Returns:
            dict: The updated order with items.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the requester is not an admin.
            ValidationError: If the transition is not allowed.
            ConflictError: If the order changed status concurrently.
        """
        if requester_id is not None and not await self.users.is_admin(requester_id):
            raise AuthorizationError("Only administrators can change order status")

        order = await self._require_order(order_id)
        current = order["status"]
        assert_can_transition(current, new_status)

        now = datetime.now(timezone.utc).isoformat()
        update_data: dict[str, Any] = {"status": new_status, "updated_at": now}
        if new_status in _STATUS_TIMESTAMPS:
            update_data[_STATUS_TIMESTAMPS[new_status]] = now
        if reason and new_status in _STATUS_REASONS:
            update_data[_STATUS_REASONS[new_status]] = reason

        # Grants are idempotent and run while the order is still paid, so a
        # failed grant leaves it paid for the payment webhook retry to finish
        if new_status == "completed":
            await self.fulfillment.grant_access(order)

        # Conditional on the status read above; a concurrent transition wins
        response = (
            self.client.table("orders")
            .update(update_data)
            .eq("id", str(order_id))
            .eq("status", current)
            .execute()
        )
        if not response.data:
            raise ConflictError("Order status was changed by another request")

        order.update(update_data)

        if new_status == "refunded":
            if current == "completed":
                await self.fulfillment.revoke_access(order)
            else:
                await self.fulfillment.release_reservations(order)
        elif new_status == "cancelled":
            await self.fulfillment.release_reservations(order)

        logger.info("Order %s status changed: %s -> %s", order_id, current, new_status)
        return order

    async def attach_payment_intent(
        self,
        order_id: UUID,
        payment_intent_id: str,
        payment_method: str | None = None,
    ) -> dict[str, Any]:
        """Attach a payment reference and move the order to payment_pending.

        Raises:
            NotFoundError: If the order does not exist.
            ConflictError: If a payment reference is already attached.
            ValidationError: If the order is not pending.
        """
        order = await self._require_order(order_id)

        if order.get("payment_intent_id"):
            raise ConflictError("A payment is already attached to this order")

        assert_can_transition(order["status"], "payment_pending")

        update_data = {
            "payment_intent_id": payment_intent_id,
            "payment_method": payment_method,
            "status": "payment_pending",
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        response = (
            self.client.table("orders")
            .update(update_data)
            .eq("id", str(order_id))
            .is_("payment_intent_id", "null")
            .execute()
        )
        if not response.data:
            raise ConflictError("A payment is already attached to this order")

        logger.info("Attached payment intent %s to order %s", payment_intent_id, order_id)
        order.update(update_data)
        return order

    async def fulfill_order(self, order_id: UUID) -> dict[str, Any]:
        """Complete a paid order, granting access to its items.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the order is not paid.
        """
        order = await self._require_order(order_id)
        if order["status"] != "paid":
            raise ValidationError("Order must be paid before fulfillment")

        return await self.update_order_status(order_id, "completed")

    async def cancel_order(
        self,
        order_id: UUID,
        reason: str | None = None,
        requester_id: UUID | None = None,
    ) -> dict[str, Any]:
        """Cancel an order that has not been paid.

        Args:
            order_id: The order's UUID.
            reason: Optional cancellation reason.
            requester_id: When given, must own the order or be an admin.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the requester may not cancel the order.
            ValidationError: If the order is past payment.
        """
        order = await self._require_order(order_id)

        if (
            requester_id is not None
            and order["user_id"] != str(requester_id)
            and not await self.users.is_admin(requester_id)
        ):
            raise AuthorizationError("You do not have access to this order")

        if order["status"] not in _CANCELLABLE_STATES:
            raise ValidationError(f"Order cannot be cancelled in status {order['status']}")

        return await self.update_order_status(order_id, "cancelled", reason=reason)

    async def refund_order(self, order_id: UUID, reason: str | None = None) -> dict[str, Any]:
        """Mark a paid or completed order as refunded.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the order was never paid or is already closed.
        """
        order = await self._require_order(order_id)
        if order["status"] not in _REFUNDABLE_STATES:
            raise ValidationError(f"Order cannot be refunded in status {order['status']}")

        return await self.update_order_status(order_id, "refunded", reason=reason)

    async def get_order_by_payment_intent(self, payment_intent_id: str) -> dict[str, Any] | None:
        """Find the order a payment intent is attached to."""
        response = (
            self.client.table("orders")
            .select(ORDER_WITH_ITEMS)
            .eq("payment_intent_id", payment_intent_id)
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            return None
        return _flatten_order(response.data)

    async def get_order_stats(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> dict[str, Any]:
        """Summarize sales over an optional created_at window.

        Returns:
            dict: ``total_revenue``, ``completed_orders`` and
            ``average_order_value`` over completed orders, ``orders_by_status``
            for all orders, and the ten ``top_items`` by revenue.
        """
        query = self.client.table("orders").select(
            "id, status, total, order_items(item_type, item_id, item_title, price, quantity)"
        )
        if start_date:
            query = query.gte("created_at", start_date.isoformat())
        if end_date:
            query = query.lte("created_at", end_date.isoformat())

        orders = query.execute().data or []

        by_status = Counter(order["status"] for order in orders)
        completed = [order for order in orders if order["status"] == "completed"]
        revenue = sum(order["total"] for order in completed)

        items: dict[tuple[str, str], dict[str, Any]] = {}
        for order in completed:
            for item in order.get("order_items") or []:
                key = (item["item_type"], item["item_id"])
                entry = items.setdefault(
                    key,
                    {
                        "item_type": item["item_type"],
                        "item_id": item["item_id"],
                        "item_title": item["item_title"],
                        "quantity": 0,
                        "revenue": 0,
                    },
                )
                entry["quantity"] += item["quantity"]
                entry["revenue"] += item["price"] * item["quantity"]

        top_items = sorted(items.values(), key=lambda entry: entry["revenue"], reverse=True)

        average = Decimal(0)
        if completed:
            average = (Decimal(revenue) / len(completed)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        return {
            "total_revenue": revenue,
            "completed_orders": len(completed),
            "average_order_value": average,
            "orders_by_status": dict(by_status),
            "top_items": top_items[:TOP_ITEMS_LIMIT],
        }

    async def search_orders(
        self,
        query: str = "",
        status: OrderStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        item_type: str | None = None,
    ) -> list[dict[str, Any]]:
        """Search orders by id or customer email fragment, newest first.

        Args:
            query: Full order UUID, or part of the customer's email.
            status: Optional status filter.
            start_date: Optional lower created_at bound.
            end_date: Optional upper created_at bound.
            item_type: Only orders containing an item of this type.

        Returns:
            list[dict]: Up to 50 matching orders with items.
        """
        query = query.strip()
        users_embed = "users!inner(email, name)" if query else "users(email, name)"
        columns = f"*, order_items(*), {users_embed}"
        if item_type:
            columns += f", {ITEM_MATCH_EMBED}"
        builder = self.client.table("orders").select(columns)

        if query:
            try:
                builder = builder.eq("id", str(UUID(query)))
            except ValueError:
                builder = builder.ilike("users.email", f"%{query}%")
        if status:
            builder = builder.eq("status", status)
        if start_date:
            builder = builder.gte("created_at", start_date.isoformat())
        if end_date:
            builder = builder.lte("created_at", end_date.isoformat())
        if item_type:
            builder = builder.eq("item_match.item_type", item_type)

        response = builder.order("created_at", desc=True).limit(SEARCH_LIMIT).execute()
        orders = response.data or []
        for order in orders:
            order.pop("item_match", None)
        return [_flatten_order(order) for order in orders]
