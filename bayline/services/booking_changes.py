"""Staff-initiated changes to committed bookings: cancel and reschedule."""
import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bayline.core.errors import (
    BookingValidationError,
    NotFoundError,
    SlotConflictError,
    StoreUnavailableError,
    is_exclusion_violation,
)
from bayline.models.booking import Booking, BookingStatus, ResourceReservation
from bayline.services.allocator import check_not_in_past
from bayline.services.reservations import free_resources, overlaps
from bayline.services.rules import blackout_hits, load_blackouts
from bayline.utils.venue_time import MINUTES_PER_DAY, format_minutes, to_absolute

logger = logging.getLogger(__name__)


def get_booking(db: Session, booking_id: UUID) -> Booking:
    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Booking lookup failed")
        raise StoreUnavailableError() from e
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_exclusion_violation(e):
            logger.warning("Exclusion constraint rejected %s", what)
            raise SlotConflictError() from e
        logger.exception("%s failed", what)
        raise StoreUnavailableError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("%s failed", what)
        raise StoreUnavailableError() from e


# ---------------------------------------------------------------------------
# Cancel
# ---------------------------------------------------------------------------


def cancel_booking(db: Session, booking_id: UUID) -> Booking:
    """Cancel a booking and release its reservations. Cancelling twice is a no-op."""
    booking = get_booking(db, booking_id)
    if booking.status == BookingStatus.CANCELLED:
        return booking

    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = datetime.now(timezone.utc)
    for reservation in booking.reservations:
        reservation.released = True

    _commit(db, f"cancel of {booking.booking_number}")
    logger.info("Booking %s cancelled", booking.booking_number)
    db.refresh(booking)
    return booking


# ---------------------------------------------------------------------------
# Reschedule
# ---------------------------------------------------------------------------


def _minutes_between(a: datetime, b: datetime) -> int:
    return int((b - a).total_seconds() // 60)


def _shifted_window(booking: Booking, reservation: ResourceReservation, day: date, start_min: int) -> Tuple[datetime, datetime]:
    # Offsets in venue minutes: the wall-clock layout survives a DST change
    offset = _minutes_between(booking.start_ts, reservation.start_ts)
    length = _minutes_between(reservation.start_ts, reservation.end_ts)
    return (
        to_absolute(day, start_min + offset),
        to_absolute(day, start_min + offset + length),
    )


def reschedule_booking(
    db: Session,
    booking_id: UUID,
    day: date,
    start_min: int,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Move a booking to a new date/start, keeping its reservation layout.

    Each reservation keeps its resource if that resource is free in the
    shifted window; otherwise another free active resource of the same type
    is taken. If any reservation cannot be placed nothing changes.
    """
    booking = get_booking(db, booking_id)
    if booking.status == BookingStatus.CANCELLED:
        raise BookingValidationError("Cancelled bookings cannot be rescheduled.")
    number = booking.booking_number

    end_min = start_min + booking.duration_minutes
    if end_min > MINUTES_PER_DAY:
        raise BookingValidationError("Booking must end by midnight")
    check_not_in_past(day, start_min, now)

    blackouts = load_blackouts(db, day, booking.activity)
    if blackout_hits(blackouts, start_min, end_min, 0, MINUTES_PER_DAY):
        raise BookingValidationError("That time is unavailable.")

    free_by_reservation: Dict[UUID, List] = {}
    try:
        live = [r for r in booking.reservations if not r.released]
        windows = {r.id: _shifted_window(booking, r, day, start_min) for r in live}
        for r in live:
            new_start, new_end = windows[r.id]
            free_by_reservation[r.id] = free_resources(
                db, r.resource.type, new_start, new_end, exclude_booking_id=booking.id, lock=True
            )
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Reschedule of %s failed reading resources", number)
        raise StoreUnavailableError() from e

    # (resource_id, start, end) already claimed by this reschedule
    claimed: List[Tuple[UUID, datetime, datetime]] = []

    def is_claimed(resource_id: UUID, start: datetime, end: datetime) -> bool:
        return any(rid == resource_id and overlaps(start, end, s, e) for rid, s, e in claimed)

    targets: Dict[UUID, UUID] = {}
    # Keeping the current resource wins over moving to a new one
    for r in live:
        new_start, new_end = windows[r.id]
        free_ids = {res.id for res in free_by_reservation[r.id]}
        if r.resource_id in free_ids and not is_claimed(r.resource_id, new_start, new_end):
            targets[r.id] = r.resource_id
            claimed.append((r.resource_id, new_start, new_end))

    for r in live:
        if r.id in targets:
            continue
        new_start, new_end = windows[r.id]
        choice = next(
            (res.id for res in free_by_reservation[r.id] if not is_claimed(res.id, new_start, new_end)),
            None,
        )
        if choice is None:
            logger.warning("Reschedule of %s failed: no free %s", number, r.resource.type.value)
            db.rollback()
            raise SlotConflictError()
        targets[r.id] = choice
        claimed.append((choice, new_start, new_end))

    # Release first so rows moving through each other's old windows do not collide
    for r in live:
        r.released = True
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Reschedule of %s failed", number)
        raise StoreUnavailableError() from e

    for r in live:
        r.resource_id = targets[r.id]
        r.start_ts, r.end_ts = windows[r.id]
        r.released = False
    booking.start_ts = to_absolute(day, start_min)
    booking.end_ts = to_absolute(day, end_min)

    _commit(db, f"reschedule of {number}")
    logger.info("Booking %s rescheduled to %s %s", number, day.isoformat(), format_minutes(start_min))
    db.refresh(booking)
    return booking
