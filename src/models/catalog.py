"""Catalog and access-grant row definitions."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, TypedDict
from uuid import UUID

BookingStatus = Literal["pending", "confirmed", "cancelled", "attended"]
ProgressStatus = Literal["enrolled", "cancelled"]


class Course(TypedDict):
    """Courses table row. Price is in major currency units."""

    id: UUID
    slug: str
    title: str
    description: str
    long_description: str | None
    price: Decimal
    image_url: str | None
    instructor: str | None
    duration_hours: Decimal | None
    level: str | None
    category: str | None
    enrollment_count: int
    is_published: bool
    title_es: str | None
    description_es: str | None
    long_description_es: str | None
    created_at: datetime
    updated_at: datetime


class Event(TypedDict):
    """Events table row.

    available_spots is decremented when spots are reserved or booked and
    restored on cancellation; 0 <= available_spots <= capacity.
    """

    id: UUID
    slug: str
    title: str
    description: str
    price: Decimal
    event_date: datetime
    duration_hours: Decimal
    venue_name: str
    venue_address: str
    venue_city: str
    venue_country: str
    venue_lat: Decimal | None
    venue_lng: Decimal | None
    capacity: int
    available_spots: int
    image_url: str | None
    is_published: bool
    title_es: str | None
    description_es: str | None
    created_at: datetime
    updated_at: datetime


class DigitalProduct(TypedDict):
    """Digital_products table row."""

    id: UUID
    slug: str
    title: str
    price: Decimal
    download_count: int
    is_published: bool


class Booking(TypedDict):
    """Bookings table row. One booking per (user_id, event_id)."""

    id: UUID
    user_id: UUID
    event_id: UUID
    order_id: UUID | None
    status: BookingStatus
    attendees: int
    total_price: Decimal
    created_at: datetime
    updated_at: datetime


class CourseProgress(TypedDict):
    """Course_progress table row. One row per (user_id, course_id)."""

    id: UUID
    user_id: UUID
    course_id: UUID
    status: ProgressStatus
    progress_percentage: int
    enrollment_date: datetime
