"""Direct event booking and cancellation."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError as PostgrestAPIError

from src.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.core.supabase import get_supabase_client, is_unique_violation
from src.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


class BookingService:
    """Service for booking event spots outside the order flow."""

    def __init__(self) -> None:
        """Initialize booking service with Supabase client."""
        self.client = get_supabase_client()
        self.catalog = CatalogService()

    async def book_event(self, user_id: UUID, event_id: UUID, attendees: int = 1) -> dict[str, Any]:
        """Book spots on an event for a user.

        Spots are taken with a conditional decrement in the database, so
        two concurrent requests cannot oversell the event.

        Args:
            user_id: The booking user's UUID.
            event_id: The event's UUID.
            attendees: Number of spots to book.

        Returns:
            dict: The created booking row.

        Raises:
            ValidationError: If attendees < 1 or the event cannot be booked.
            NotFoundError: If the event does not exist.
            ConflictError: If the user already booked or spots ran out.
        """
        if attendees < 1:
            raise ValidationError("Number of attendees must be at least 1")

        event = await self.catalog.get_catalog_item("event", event_id)
        if not event:
            raise NotFoundError("Event not found")

        if not event.get("is_published", False):
            raise ValidationError("Event is not available for booking")

        event_date = datetime.fromisoformat(str(event["event_date"]))
        if event_date.tzinfo is None:
            event_date = event_date.replace(tzinfo=timezone.utc)
        if event_date < datetime.now(timezone.utc):
            raise ValidationError("Cannot book past events")

        existing = await self._get_user_booking(user_id, event_id)
        if existing and existing["status"] != "cancelled":
            raise ConflictError("You already have a booking for this event")

        reserved = self.client.rpc(
            "reserve_event_spots",
            {"p_event_id": str(event_id), "p_count": attendees},
        ).execute()
        if not reserved.data:
            raise ConflictError(
                f"Insufficient capacity. Only {event.get('available_spots', 0)} spot(s) available"
            )

        booking_data = {
            "user_id": str(user_id),
            "event_id": str(event_id),
            "status": "pending",
            "attendees": attendees,
            "total_price": str(Decimal(str(event["price"])) * attendees),
        }

        try:
            if existing:
                # Reuse the cancelled row; (user_id, event_id) is unique
                response = (
                    self.client.table("bookings")
                    .update({**booking_data, "updated_at": datetime.now(timezone.utc).isoformat()})
                    .eq("id", existing["id"])
                    .eq("status", "cancelled")
                    .execute()
                )
            else:
                response = self.client.table("bookings").insert(booking_data).execute()
        except PostgrestAPIError as e:
            self._release(event_id, attendees)
            if is_unique_violation(e):
                raise ConflictError("You already have a booking for this event") from e
            raise

        if not response.data:
            self._release(event_id, attendees)
            raise ConflictError("You already have a booking for this event")

        booking = response.data[0]
        logger.info("User %s booked %d spot(s) on event %s", user_id, attendees, event_id)
        return booking

    async def cancel_booking(self, booking_id: UUID, user_id: UUID) -> dict[str, Any]:
        """Cancel a user's booking and give its spots back to the event.

        Raises:
            NotFoundError: If the booking does not exist.
            AuthorizationError: If the booking belongs to someone else.
            ValidationError: If the booking is already cancelled or attended.
        """
        response = (
            self.client.table("bookings")
            .select("*")
            .eq("id", str(booking_id))
            .maybe_single()
            .execute()
        )
        booking = response.data if response and response.data else None
        if not booking:
            raise NotFoundError("Booking not found")

        if booking["user_id"] != str(user_id):
            raise AuthorizationError("You do not have access to this booking")

        if booking["status"] in ("cancelled", "attended"):
            raise ValidationError(f"Booking cannot be cancelled in status {booking['status']}")

        update_response = (
            self.client.table("bookings")
            .update({"status": "cancelled", "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", str(booking_id))
            .eq("status", booking["status"])
            .execute()
        )
        if not update_response.data:
            raise ConflictError("Booking was changed by another request")

        self._release(booking["event_id"], booking["attendees"])
        logger.info("Booking %s cancelled by user %s", booking_id, user_id)
        return update_response.data[0]

    async def _get_user_booking(self, user_id: UUID, event_id: UUID) -> dict[str, Any] | None:
        response = (
            self.client.table("bookings")
            .select("id, status")
            .eq("user_id", str(user_id))
            .eq("event_id", str(event_id))
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None

    def _release(self, event_id: UUID | str, count: int) -> None:
        self.client.rpc(
            "release_event_spots",
            {"p_event_id": str(event_id), "p_count": count},
        ).execute()
