from uuid import UUID
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from bayline.db.session import get_db
from bayline.api.deps import get_current_staff
from bayline.api.v1.public.bookings import serialize_booking
from bayline.models.booking import Booking, BookingStatus, ResourceReservation
from bayline.schemas.booking import Booking as BookingSchema, BookingReschedule, ReassignRequest
from bayline.schemas.common import PaginatedResponse
from bayline.services.booking_changes import cancel_booking, reschedule_booking
from bayline.services.reassignment import reassign_resources
from bayline.utils.venue_time import to_absolute

router = APIRouter(prefix="/admin/bookings", tags=["Admin - Bookings"])


@router.get("", response_model=PaginatedResponse[BookingSchema])
def list_bookings(
    date_key: date = Query(..., description="Venue-local date (YYYY-MM-DD)"),
    status: Optional[BookingStatus] = Query(None, description="Filter by booking status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    """Bookings starting on one venue-local day, earliest first."""
    query = (
        db.query(Booking)
        .options(joinedload(Booking.reservations).joinedload(ResourceReservation.resource))
        .filter(
            Booking.start_ts >= to_absolute(date_key, 0),
            Booking.start_ts < to_absolute(date_key + timedelta(days=1), 0),
        )
    )
    if status:
        query = query.filter(Booking.status == status)

    total = query.count()
    bookings = query.order_by(Booking.start_ts).offset((page - 1) * limit).limit(limit).all()

    return PaginatedResponse(
        data=[serialize_booking(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.post("/{booking_id}/cancel", response_model=BookingSchema)
def cancel(
    booking_id: UUID,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    return serialize_booking(cancel_booking(db, booking_id))


@router.post("/{booking_id}/reschedule", response_model=BookingSchema)
def reschedule(
    booking_id: UUID,
    data: BookingReschedule,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    """Shift the booking to a new date/start; 409 if any reservation cannot move."""
    booking = reschedule_booking(db, booking_id, data.date_key, data.start_min)
    return serialize_booking(booking)


@router.post("/{booking_id}/reassign", response_model=BookingSchema)
def reassign(
    booking_id: UUID,
    data: ReassignRequest,
    db: Session = Depends(get_db),
    staff_id: str = Depends(get_current_staff),
):
    """Swap reservations onto other resources of the same type. All or nothing."""
    booking = reassign_resources(
        db,
        booking_id,
        [(item.reservation_id, item.resource_id) for item in data.updates],
    )
    return serialize_booking(booking)
