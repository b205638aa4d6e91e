"""Event catalog and booking API routes."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.deps import CurrentUser, RequestLocale
from src.schemas.booking import BookingCreate, BookingResponse
from src.schemas.catalog import EventDetailResponse
from src.services.booking_service import BookingService
from src.services.catalog_service import CatalogService

router = APIRouter(prefix="/events", tags=["events"])


@router.get(
    "/{identifier}",
    response_model=EventDetailResponse,
    summary="Get event detail",
    description="Returns a published event by UUID or slug, with capacity and booking state.",
)
async def get_event(identifier: str, locale: RequestLocale) -> EventDetailResponse:
    """Get the detail page model of a published event.

    Args:
        identifier: Event UUID or URL slug.
        locale: Locale resolved for the request.

    Raises:
        NotFoundError: 404 if no published event matches.
    """
    return await CatalogService().get_event_detail(identifier, locale)


@router.post(
    "/{event_id}/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an event",
    description="Reserves spots on an event for the authenticated user.",
    responses={
        404: {"description": "Event not found"},
        409: {"description": "Already booked or not enough spots"},
        422: {"description": "Event is unpublished or already took place"},
    },
)
async def book_event(event_id: UUID, data: BookingCreate, user: CurrentUser) -> BookingResponse:
    """Book spots on an event.

    Args:
        event_id: The event's UUID.
        data: Number of attendees.
        user: The authenticated user context.

    Returns:
        BookingResponse: The created booking.
    """
    booking = await BookingService().book_event(user.user_id, event_id, data.attendees)
    return BookingResponse(**booking)
