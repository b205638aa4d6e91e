"""Grant and revoke purchased access for order items."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from src.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)

# Orders that hold event spots without a confirmed booking yet
OPEN_ORDER_STATES = ["pending", "payment_pending", "paid"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FulfillmentService:
    """Service applying per-item side effects of order status changes.

    Courses are granted through course_progress rows, events through
    confirmed bookings, digital products through download_logs. Event spots
    are reserved when the order is created, so granting an event item only
    confirms the booking.
    """

    def __init__(self) -> None:
        """Initialize fulfillment service with Supabase client."""
        self.client = get_supabase_client()

    async def grant_access(self, order: dict[str, Any]) -> None:
        """Grant access to every item of a completed order.

        Args:
            order: Order row with embedded ``order_items``.
        """
        user_id = order["user_id"]
        for item in order.get("order_items") or []:
            item_type = item["item_type"]
            if item_type == "course":
                await self._enroll(user_id, item["item_id"])
            elif item_type == "event":
                await self._confirm_booking(user_id, order["id"], item)
            elif item_type == "product":
                await self._grant_download(user_id, order["id"], item["item_id"])
            else:
                logger.warning("Order %s has unknown item type %s", order["id"], item_type)

        logger.info("Granted access for order %s", order["id"])

    async def revoke_access(self, order: dict[str, Any]) -> None:
        """Revoke access previously granted for a refunded order.

        Args:
            order: Order row with embedded ``order_items``.
        """
        user_id = order["user_id"]
        for item in order.get("order_items") or []:
            item_type = item["item_type"]
            if item_type == "course":
                await self._unenroll(user_id, item["item_id"])
            elif item_type == "event":
                await self._cancel_booking(user_id, order["id"], item["item_id"])
            elif item_type == "product":
                self.client.rpc(
                    "adjust_download_count",
                    {"p_product_id": item["item_id"], "p_delta": -1},
                ).execute()

        logger.info("Revoked access for order %s", order["id"])

    async def release_reservations(self, order: dict[str, Any]) -> None:
        """Release event spots reserved by an order that was never fulfilled."""
        for item in order.get("order_items") or []:
            if item["item_type"] == "event":
                self.client.rpc(
                    "release_event_spots",
                    {"p_event_id": item["item_id"], "p_count": item["quantity"]},
                ).execute()

    async def holds_event_spots(self, user_id: UUID | str, event_id: UUID | str) -> bool:
        """Check whether a user already holds spots on an event.

        Spots are held by any booking that is not cancelled, or by an open
        order for the event whose booking has not been confirmed yet.
        """
        bookings = (
            self.client.table("bookings")
            .select("id")
            .eq("user_id", str(user_id))
            .eq("event_id", str(event_id))
            .neq("status", "cancelled")
            .limit(1)
            .execute()
        )
        if bookings.data:
            return True

        open_orders = (
            self.client.table("order_items")
            .select("id, orders!inner(user_id, status)")
            .eq("item_type", "event")
            .eq("item_id", str(event_id))
            .eq("orders.user_id", str(user_id))
            .in_("orders.status", OPEN_ORDER_STATES)
            .limit(1)
            .execute()
        )
        return bool(open_orders.data)

    async def _enroll(self, user_id: str, course_id: str) -> None:
        response = (
            self.client.table("course_progress")
            .select("id, status")
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .maybe_single()
            .execute()
        )
        existing = response.data if response and response.data else None

        if existing and existing.get("status") == "enrolled":
            return

        if existing:
            self.client.table("course_progress").update(
                {"status": "enrolled", "enrollment_date": _now()}
            ).eq("id", existing["id"]).execute()
        else:
            self.client.table("course_progress").insert(
                {
                    "user_id": user_id,
                    "course_id": course_id,
                    "status": "enrolled",
                    "progress_percentage": 0,
                    "enrollment_date": _now(),
                }
            ).execute()

        self.client.rpc("adjust_enrollment_count", {"p_course_id": course_id, "p_delta": 1}).execute()

    async def _unenroll(self, user_id: str, course_id: str) -> None:
        response = (
            self.client.table("course_progress")
            .update({"status": "cancelled"})
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .eq("status", "enrolled")
            .execute()
        )
        if response.data:
            self.client.rpc("adjust_enrollment_count", {"p_course_id": course_id, "p_delta": -1}).execute()

    async def _confirm_booking(self, user_id: str, order_id: str, item: dict[str, Any]) -> None:
        total_price = Decimal(item["price"]) * item["quantity"] / 100
        self.client.table("bookings").upsert(
            {
                "user_id": user_id,
                "event_id": item["item_id"],
                "order_id": order_id,
                "status": "confirmed",
                "attendees": item["quantity"],
                "total_price": str(total_price),
                "updated_at": _now(),
            },
            on_conflict="user_id,event_id",
        ).execute()

    async def _cancel_booking(self, user_id: str, order_id: str, event_id: str) -> None:
        response = (
            self.client.table("bookings")
            .update({"status": "cancelled", "updated_at": _now()})
            .eq("user_id", user_id)
            .eq("event_id", event_id)
            .eq("order_id", order_id)
            .eq("status", "confirmed")
            .execute()
        )
        for booking in response.data or []:
            self.client.rpc(
                "release_event_spots",
                {"p_event_id": event_id, "p_count": booking["attendees"]},
            ).execute()

    async def _grant_download(self, user_id: str, order_id: str, product_id: str) -> None:
        existing = (
            self.client.table("download_logs")
            .select("id")
            .eq("user_id", user_id)
            .eq("digital_product_id", product_id)
            .eq("order_id", order_id)
            .limit(1)
            .execute()
        )
        if existing.data:
            return

        self.client.table("download_logs").insert(
            {
                "user_id": user_id,
                "digital_product_id": product_id,
                "order_id": order_id,
            }
        ).execute()
        self.client.rpc("adjust_download_count", {"p_product_id": product_id, "p_delta": 1}).execute()
