"""Build localized course and event detail page models from catalog rows."""

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote_plus

from babel.dates import format_date, format_time

from src.core.i18n import Locale
from src.schemas.catalog import (
    CapacityInfo,
    CourseDetailResponse,
    DurationParts,
    EventDetailResponse,
    VenueInfo,
)
from src.services import booking_capacity
from src.services.currency_format import format_currency, to_decimal

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="

_TIME_PATTERNS: dict[Locale, str] = {
    "en": "h:mm a",
    "es": "H:mm",
}

_FREE_LABEL: dict[Locale, str] = {
    "en": "Free",
    "es": "Gratis",
}

_HOUR_UNITS: dict[Locale, tuple[str, str]] = {
    "en": ("hour", "hours"),
    "es": ("hora", "horas"),
}


def localized_field(row: dict[str, Any], field: str, locale: Locale) -> Any:
    """Return the Spanish variant of a field when requested and present."""
    if locale == "es":
        translated = row.get(f"{field}_es")
        if translated:
            return translated
    return row.get(field)


def split_duration(hours: Decimal | float | int) -> DurationParts:
    """Split a fractional hour count into whole hours and minutes."""
    total_minutes = int((to_decimal(hours) * 60).to_integral_value())
    return DurationParts(hours=total_minutes // 60, minutes=total_minutes % 60)


def format_duration(hours: Decimal | float | int, locale: Locale = "en") -> str:
    """Format a duration, e.g. "1 hour", "2.5 hours"."""
    value = to_decimal(hours).normalize()
    singular, plural = _HOUR_UNITS[locale]
    unit = singular if value == 1 else plural
    return f"{format(value, 'f')} {unit}"


def calculate_end_time(start: datetime, duration_hours: Decimal | float | int) -> datetime:
    return start + timedelta(hours=float(duration_hours))


def format_event_date(value: datetime, locale: Locale = "en") -> str:
    """Long date with weekday, e.g. "Friday, November 15, 2024"."""
    return format_date(value, format="full", locale=locale)


def format_event_time(value: datetime, locale: Locale = "en") -> str:
    """Clock time: 12-hour for English ("6:00 PM"), 24-hour for Spanish."""
    return format_time(value, format=_TIME_PATTERNS[locale], locale=locale)


def format_price(price: Decimal | float | int | str, locale: Locale = "en", currency: str = "USD") -> str:
    """Format a catalog price, showing the localized "Free" label for zero."""
    amount = Decimal(price) if isinstance(price, str) else to_decimal(price)
    if amount == 0:
        return _FREE_LABEL[locale]
    return format_currency(amount, locale, currency)


def has_valid_coordinates(lat: Any, lng: Any) -> bool:
    """Check that lat/lng are present, numeric and within range."""
    if lat is None or lng is None or lat == "" or lng == "":
        return False
    try:
        lat_value = Decimal(str(lat))
        lng_value = Decimal(str(lng))
    except InvalidOperation:
        return False
    if not (lat_value.is_finite() and lng_value.is_finite()):
        return False
    return -90 <= lat_value <= 90 and -180 <= lng_value <= 180


def build_map_url(
    lat: Any,
    lng: Any,
    address: str = "",
    city: str = "",
    country: str = "",
) -> str:
    """Build a Google Maps search link.

    Coordinates are used when valid; otherwise the URL-encoded address.
    """
    if has_valid_coordinates(lat, lng):
        return f"{MAPS_SEARCH_URL}{lat},{lng}"
    full_address = ", ".join(part for part in (address, city, country) if part)
    return f"{MAPS_SEARCH_URL}{quote_plus(full_address)}"


def build_course_detail(course: dict[str, Any], locale: Locale, currency: str) -> CourseDetailResponse:
    """Build the localized course detail model from a courses row."""
    price = Decimal(str(course["price"]))
    duration_hours = course.get("duration_hours")

    return CourseDetailResponse(
        id=course["id"],
        slug=course["slug"],
        locale=locale,
        title=localized_field(course, "title", locale),
        description=localized_field(course, "description", locale) or "",
        long_description=localized_field(course, "long_description", locale),
        price=price,
        formatted_price=format_price(price, locale, currency),
        currency=currency,
        image_url=course.get("image_url"),
        instructor=course.get("instructor"),
        level=course.get("level"),
        category=course.get("category"),
        duration_hours=duration_hours,
        duration=split_duration(Decimal(str(duration_hours))) if duration_hours is not None else None,
        enrollment_count=course.get("enrollment_count") or 0,
    )


def build_capacity_info(available_spots: int, capacity: int, locale: Locale) -> CapacityInfo:
    status = booking_capacity.get_capacity_status(available_spots, capacity)
    return CapacityInfo(
        capacity=capacity,
        available_spots=available_spots,
        percentage=booking_capacity.calculate_capacity_percentage(available_spots, capacity),
        status=status,
        is_sold_out=status == "sold-out",
        is_limited=status == "limited",
        message=(
            booking_capacity.get_limited_spots_message(available_spots, locale) if status == "limited" else None
        ),
        bar_width=booking_capacity.capacity_bar_width(available_spots, capacity),
    )


def build_event_detail(event: dict[str, Any], locale: Locale, currency: str) -> EventDetailResponse:
    """Build the localized event detail model from an events row."""
    start = event["event_date"]
    if isinstance(start, str):
        start = datetime.fromisoformat(start)
    duration_hours = Decimal(str(event["duration_hours"]))
    end = calculate_end_time(start, duration_hours)
    price = Decimal(str(event["price"]))
    available_spots = int(event["available_spots"])
    capacity = int(event["capacity"])

    return EventDetailResponse(
        id=event["id"],
        slug=event["slug"],
        locale=locale,
        title=localized_field(event, "title", locale),
        description=localized_field(event, "description", locale) or "",
        image_url=event.get("image_url"),
        event_date=start,
        end_date=end,
        formatted_date=format_event_date(start, locale),
        start_time=format_event_time(start, locale),
        end_time=format_event_time(end, locale),
        duration_hours=duration_hours,
        duration_text=format_duration(duration_hours, locale),
        price=price,
        formatted_price=format_price(price, locale, currency),
        capacity=build_capacity_info(available_spots, capacity, locale),
        venue=VenueInfo(
            name=event.get("venue_name") or "",
            address=event.get("venue_address") or "",
            city=event.get("venue_city") or "",
            country=event.get("venue_country") or "",
            lat=event.get("venue_lat"),
            lng=event.get("venue_lng"),
            map_url=build_map_url(
                event.get("venue_lat"),
                event.get("venue_lng"),
                event.get("venue_address") or "",
                event.get("venue_city") or "",
                event.get("venue_country") or "",
            ),
        ),
        booking_url=booking_capacity.format_booking_url(event["slug"]),
        show_book_button=booking_capacity.should_show_book_button(available_spots),
        button_text=booking_capacity.get_button_text(available_spots, locale),
    )
