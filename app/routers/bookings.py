import logging
import re
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import require_role
from app.core.errors import NotFound, ValidationError
from app.models.booking import Booking
from app.models.user import User
from app.schemas.booking import (
    BookingCreateRequest,
    BookingItem,
    BookingListResponse,
    BookingResponse,
    BookingStatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    description="`date` as `YYYY-MM-DD`, `time` as `HH:MM`. A confirmation mail is sent to `email`.",
)
async def create_booking(body: BookingCreateRequest, db: AsyncSession = Depends(get_db)):
    if not (body.name and body.email and body.phone and body.date and body.time):
        raise ValidationError("All required fields must be filled.")

    email = body.email.strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format.")

    try:
        booking_datetime = datetime.strptime(f"{body.date.strip()}T{body.time.strip()}", "%Y-%m-%dT%H:%M")
    except ValueError:
        raise ValidationError("Invalid date or time format.")

    booking = Booking(
        name=body.name.strip(),
        email=email,
        phone=body.phone.strip(),
        booking_datetime=booking_datetime,
        message=(body.message or "").strip(),
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)

    from app.services import mail

    sent = await mail.send_booking_confirmation(booking)
    if not sent:
        logger.warning("Booking %s saved without confirmation mail", booking.id)

    return BookingResponse(
        booking=BookingItem.model_validate(booking),
        message="Booking created and confirmation email sent." if sent else "Booking created.",
    )


@router.get("", response_model=BookingListResponse, summary="All bookings (admin)")
async def list_bookings(
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Booking).order_by(Booking.created_at.desc()))
    return BookingListResponse(bookings=[BookingItem.model_validate(b) for b in result.scalars().all()])


@router.put("/{booking_id}/status", response_model=BookingResponse, summary="Update booking status (admin)")
async def update_booking_status(
    booking_id: uuid.UUID,
    body: BookingStatusRequest,
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    booking = await db.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")

    booking.status = body.status
    await db.commit()
    await db.refresh(booking)
    return BookingResponse(booking=BookingItem.model_validate(booking))
