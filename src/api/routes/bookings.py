"""Booking management API routes."""

from uuid import UUID

from fastapi import APIRouter

from src.api.deps import CurrentUser
from src.schemas.booking import BookingResponse
from src.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    description="Cancels the authenticated user's booking and releases its spots.",
)
async def cancel_booking(booking_id: UUID, user: CurrentUser) -> BookingResponse:
    """Cancel a booking owned by the authenticated user.

    Raises:
        NotFoundError: 404 if the booking does not exist.
        AuthorizationError: 403 if the booking belongs to another user.
        ValidationError: 422 if the booking is already cancelled or attended.
    """
    booking = await BookingService().cancel_booking(booking_id, user.user_id)
    return BookingResponse(**booking)
