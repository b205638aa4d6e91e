"""Event capacity and booking-urgency helpers.

Pure functions used by the event detail read path and the booking
button. An event is limited when at most ``LIMITED_SPOTS_THRESHOLD``
percent of its capacity is still available.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from src.core.i18n import Locale

CapacityStatus = Literal["sold-out", "limited", "available"]

LIMITED_SPOTS_THRESHOLD = 20.0

_BUTTON_TEXT: dict[Locale, dict[str, str]] = {
    "en": {"book": "Book Now", "sold_out": "Sold Out"},
    "es": {"book": "Reservar ahora", "sold_out": "Agotado"},
}

_LIMITED_MESSAGE: dict[Locale, str] = {
    "en": "⚠️ Only {spots} spots left!",
    "es": "⚠️ ¡Solo quedan {spots} lugares!",
}

_SPOTS_TEXT: dict[Locale, dict[str, str]] = {
    "en": {
        "sold_out": "Sold Out",
        "limited": "Only {spots} spots left!",
        "available": "{spots} spots available",
    },
    "es": {
        "sold_out": "Agotado",
        "limited": "¡Solo quedan {spots} lugares!",
        "available": "{spots} lugares disponibles",
    },
}

_STATUS_COLOR: dict[CapacityStatus, str] = {
    "sold-out": "error",
    "limited": "warning",
    "available": "success",
}


@dataclass(frozen=True)
class BookingData:
    """Booking button attributes as rendered on the event page."""

    event_id: str
    event_slug: str
    event_title: str
    available_spots: int
    capacity: int
    price: str


def calculate_capacity_percentage(available_spots: int, capacity: int) -> float:
    """Return available spots as a percentage of capacity.

    A non-positive capacity yields 0.0.
    """
    if capacity <= 0:
        return 0.0
    return available_spots / capacity * 100


def has_available_spots(available_spots: int) -> bool:
    return available_spots > 0


def is_sold_out(available_spots: int) -> bool:
    """Negative spot counts are data errors and count as sold out."""
    return available_spots <= 0


def is_limited_spots(available_spots: int, capacity: int) -> bool:
    """Check if spots remain but no more than 20% of capacity is left."""
    if available_spots <= 0:
        return False
    return calculate_capacity_percentage(available_spots, capacity) <= LIMITED_SPOTS_THRESHOLD


def get_capacity_status(available_spots: int, capacity: int) -> CapacityStatus:
    """Classify an event as sold-out, limited or available, in that order."""
    if is_sold_out(available_spots):
        return "sold-out"
    if is_limited_spots(available_spots, capacity):
        return "limited"
    return "available"


def format_booking_url(slug: str) -> str:
    return f"/events/{slug}/book"


def should_show_book_button(available_spots: int) -> bool:
    return has_available_spots(available_spots)


def get_button_text(available_spots: int, locale: Locale = "en") -> str:
    copy = _BUTTON_TEXT[locale]
    return copy["sold_out"] if is_sold_out(available_spots) else copy["book"]


def get_limited_spots_message(available_spots: int, locale: Locale = "en") -> str:
    return _LIMITED_MESSAGE[locale].format(spots=available_spots)


def get_spots_status(available_spots: int, capacity: int, locale: Locale = "en") -> dict[str, str]:
    """Return the capacity badge text and its color token.

    Returns:
        dict: ``{"status", "text", "color"}``, e.g. the limited state gives
        ``"Only 3 spots left!"`` with color ``"warning"``.
    """
    status = get_capacity_status(available_spots, capacity)
    copy = _SPOTS_TEXT[locale][status.replace("-", "_")]
    return {
        "status": status,
        "text": copy.format(spots=available_spots),
        "color": _STATUS_COLOR[status],
    }


def capacity_bar_width(available_spots: int, capacity: int) -> float:
    """Return the booked share of capacity (0-100) for the capacity bar fill."""
    if capacity <= 0:
        return 100.0
    booked = (capacity - available_spots) / capacity * 100
    return round(min(max(booked, 0.0), 100.0), 1)


def _parse_int(value: str | None) -> int:
    if not value:
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_booking_data(dataset: Mapping[str, str | None]) -> BookingData:
    """Build BookingData from the booking button's data attributes.

    Missing text fields default to "", missing or malformed counts to 0
    and a missing price to "0".
    """
    return BookingData(
        event_id=dataset.get("event_id") or "",
        event_slug=dataset.get("event_slug") or "",
        event_title=dataset.get("event_title") or "",
        available_spots=_parse_int(dataset.get("available_spots")),
        capacity=_parse_int(dataset.get("capacity")),
        price=dataset.get("price") or "0",
    )
