from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from bayline.db.session import get_db
from bayline.models.booking import Booking
from bayline.schemas.booking import (
    BookingCreate,
    BookingCreated,
    Booking as BookingSchema,
    ReservationOut,
    ResourceNeedsOut,
)
from bayline.schemas.common import ErrorResponse
from bayline.services.allocator import AllocationResult, create_booking as allocate_booking

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def serialize_booking(booking: Booking) -> BookingSchema:
    """Convert a Booking ORM object to its schema representation."""
    reservations_out = [
        ReservationOut(
            id=r.id,
            resource_id=r.resource_id,
            resource_name=r.resource.name if r.resource else None,
            resource_type=r.resource.type if r.resource else None,
            start_ts=r.start_ts,
            end_ts=r.end_ts,
            released=r.released,
        )
        for r in booking.reservations
    ]

    return BookingSchema(
        id=booking.id,
        booking_number=booking.booking_number,
        activity=booking.activity,
        status=booking.status,
        party_size=booking.party_size,
        duration_minutes=booking.duration_minutes,
        start_ts=booking.start_ts,
        end_ts=booking.end_ts,
        combo_order=booking.combo_order,
        total_cents=booking.total_cents,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        customer_id=booking.customer_id,
        paid=booking.paid,
        waiver_required=booking.waiver_required,
        cancelled_at=booking.cancelled_at,
        reservations=reservations_out,
    )


def _serialize_created(result: AllocationResult) -> BookingCreated:
    area_error = None
    if result.party_area_error is not None:
        area_error = ErrorResponse(**result.party_area_error.to_dict())

    base = serialize_booking(result.booking)
    return BookingCreated(
        **base.model_dump(),
        needs=ResourceNeedsOut(
            axe_bays=result.needs.axe_bays,
            duckpin_lanes=result.needs.duckpin_lanes,
        ),
        replayed=result.replayed,
        party_areas=result.party_areas,
        party_area_error=area_error,
    )


# ---------------------------------------------------------------------------
# POST /bookings — allocate resources and confirm
# ---------------------------------------------------------------------------


@router.post("", response_model=BookingCreated, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Create one booking and reserve its resources atomically.

    409 when the slot was taken since availability was read. A repeated
    ``idempotency_key`` returns the original booking with status 200.
    """
    result = allocate_booking(db, data)
    if result.replayed:
        response.status_code = status.HTTP_200_OK
    return _serialize_created(result)
