"""Course and event detail Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DurationParts(BaseModel):
    """Duration split into whole hours and remaining minutes."""

    hours: int = Field(ge=0)
    minutes: int = Field(ge=0, lt=60)


class CourseDetailResponse(BaseModel):
    """Localized course detail page model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    locale: str = Field(description="Locale the text fields are rendered in")
    title: str
    description: str
    long_description: str | None = None
    price: Decimal = Field(description="Price in major currency units")
    formatted_price: str = Field(description="Price formatted for the locale")
    currency: str
    image_url: str | None = None
    instructor: str | None = None
    level: str | None = None
    category: str | None = None
    duration_hours: Decimal | None = None
    duration: DurationParts | None = None
    enrollment_count: int = 0


class CapacityInfo(BaseModel):
    """Capacity block shown next to the booking button."""

    capacity: int
    available_spots: int
    percentage: float = Field(description="Available spots as a percentage of capacity")
    status: Literal["sold-out", "limited", "available"]
    is_sold_out: bool
    is_limited: bool
    message: str | None = Field(default=None, description="Limited-spots warning, when limited")
    bar_width: float = Field(description="Booked share of capacity for the capacity bar")


class VenueInfo(BaseModel):
    """Event venue with a map link."""

    name: str
    address: str
    city: str
    country: str
    lat: Decimal | None = None
    lng: Decimal | None = None
    map_url: str


class EventDetailResponse(BaseModel):
    """Localized event detail page model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    locale: str
    title: str
    description: str
    image_url: str | None = None
    event_date: datetime
    end_date: datetime
    formatted_date: str
    start_time: str
    end_time: str
    duration_hours: Decimal
    duration_text: str
    price: Decimal
    formatted_price: str
    capacity: CapacityInfo
    venue: VenueInfo
    booking_url: str
    show_book_button: bool
    button_text: str
