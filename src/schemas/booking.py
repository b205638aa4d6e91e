"""Event booking Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

BookingStatus = Literal["pending", "confirmed", "cancelled", "attended"]


class BookingCreate(BaseModel):
    """Schema for POST /events/{event_id}/bookings."""

    attendees: int = Field(default=1, ge=1, le=50, description="Number of attendees")


class BookingResponse(BaseModel):
    """Schema for booking API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Booking unique identifier")
    user_id: UUID
    event_id: UUID
    order_id: UUID | None = None
    status: BookingStatus
    attendees: int
    total_price: Decimal = Field(description="Total price in major currency units")
    created_at: datetime | None = None
