import logging
from typing import Iterable, List, Tuple
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
from bayline.models.resource import Resource
from bayline.services.booking_changes import get_booking
from bayline.services.reservations import has_conflict

logger = logging.getLogger(__name__)

MSG_ALREADY_BOOKED = "That resource is already booked for this time."

Move = Tuple[ResourceReservation, Resource]


def _plan_moves(db: Session, booking: Booking, updates: List[Tuple[UUID, UUID]]) -> List[Move]:
    owned = {r.id: r for r in booking.reservations}
    planned: List[Move] = []

    for reservation_id, resource_id in updates:
        reservation = owned.get(reservation_id)
        if reservation is None:
            raise BookingValidationError("Reservation does not belong to this booking.")
        if reservation.released:
            raise BookingValidationError("Reservation has been released.")

        resource = db.query(Resource).filter(Resource.id == resource_id).first()
        if not resource:
            raise NotFoundError("Resource not found")
        if not resource.is_active:
            raise BookingValidationError(f"Resource {resource.name} is inactive.")
        if resource.type != reservation.resource.type:
            raise BookingValidationError(
                f"Cannot replace a {reservation.resource.type.value} with a {resource.type.value}."
            )

        if resource.id != reservation.resource_id and has_conflict(
            db, resource.id, reservation.start_ts, reservation.end_ts, exclude_reservation_id=reservation.id
        ):
            logger.warning("Reassign of %s onto %s rejected: already booked", booking.booking_number, resource.name)
            raise SlotConflictError(MSG_ALREADY_BOOKED)

        planned.append((reservation, resource))

    # Two pairs in one batch may not land on the same resource over overlapping windows
    for i, (a, ra) in enumerate(planned):
        for b, rb in planned[i + 1:]:
            if ra.id == rb.id and a.start_ts < b.end_ts and a.end_ts > b.start_ts:
                raise SlotConflictError(MSG_ALREADY_BOOKED)
    return planned


def reassign_resources(db: Session, booking_id: UUID, updates: Iterable[Tuple[UUID, UUID]]) -> Booking:
    """
    Move reservations of one booking onto other resources of the same type.

    ``updates`` is a sequence of (reservation_id, new_resource_id). Every
    pair is validated before anything is written; one bad pair rejects the
    whole batch.
    """
    updates = list(updates)
    booking = get_booking(db, booking_id)
    if booking.status == BookingStatus.CANCELLED:
        raise BookingValidationError("Cancelled bookings cannot be reassigned.")
    number = booking.booking_number

    try:
        planned = _plan_moves(db, booking, updates)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Reassign of %s failed reading resources", number)
        raise StoreUnavailableError() from e

    try:
        for reservation, resource in planned:
            reservation.resource_id = resource.id
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_exclusion_violation(e):
            logger.warning("Exclusion constraint rejected reassign of %s", number)
            raise SlotConflictError(MSG_ALREADY_BOOKED) from e
        logger.exception("Reassign of %s failed", number)
        raise StoreUnavailableError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Reassign of %s failed", number)
        raise StoreUnavailableError() from e

    logger.info("Booking %s: %d reservation(s) reassigned", number, len(planned))
    db.refresh(booking)
    return booking
