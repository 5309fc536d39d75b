import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class BookingCreateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    date: str | None = None
    time: str | None = None
    message: str | None = None


class BookingItem(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: str
    booking_datetime: datetime
    message: str = ""
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    success: bool = True
    booking: BookingItem
    message: str | None = None


class BookingListResponse(BaseModel):
    success: bool = True
    bookings: list[BookingItem]


class BookingStatusRequest(BaseModel):
    status: Literal["pending", "confirmed", "completed", "cancelled"]
