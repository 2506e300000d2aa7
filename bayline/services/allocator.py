"""
Reservation allocator: one booking plus its resource reservations, atomically.

Inside a single transaction the booking row is inserted, then for every
needed resource type (and combo segment) enough free active resources are
picked and reserved. Missing capacity aborts the whole transaction. Two
requests racing for the last unit both pass their reads; the store's
per-resource exclusion constraint rejects the loser at flush/commit and
that rejection is surfaced as a SlotConflictError.
"""
import logging
import random
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bayline.core.errors import (
    BookingValidationError,
    PartyAreaUnavailableError,
    SlotConflictError,
    StoreUnavailableError,
    is_exclusion_violation,
    is_unique_violation,
)
from bayline.models.booking import Activity, Booking, BookingStatus, ResourceReservation
from bayline.models.resource import Resource, ResourceType
from bayline.schemas.booking import BookingCreate
from bayline.services.availability import combo_segments
from bayline.services.customers import link_customer, normalize_email
from bayline.services.pricing import ResourceNeeds, needed_resources, total_cents
from bayline.services.reservations import free_resources
from bayline.utils.venue_time import MINUTES_PER_DAY, format_minutes, to_absolute, venue_now

logger = logging.getLogger(__name__)

PARTY_AREA_MIN_MINUTES = 60
PARTY_AREA_MAX_MINUTES = 8 * 60

# (resource type, how many, window start, window end)
AllocationStep = Tuple[ResourceType, int, datetime, datetime]


@dataclass
class AllocationResult:
    booking: Booking
    needs: ResourceNeeds
    replayed: bool = False
    customer_id: Optional[UUID] = None
    party_areas: List[str] = field(default_factory=list)
    party_area_error: Optional[PartyAreaUnavailableError] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _generate_booking_number(db: Session) -> str:
    """Generate a unique 'BAY-XXXXXXXX' booking reference."""
    chars = string.ascii_uppercase + string.digits
    while True:
        number = "BAY-" + "".join(random.choices(chars, k=8))
        if not db.query(Booking.id).filter(Booking.booking_number == number).first():
            return number


def check_not_in_past(day, start_min: int, now: Optional[datetime] = None) -> None:
    local_now = venue_now(now)
    today = local_now.date()
    if day < today:
        raise BookingValidationError("Cannot book past dates.")
    if day == today and start_min < local_now.hour * 60 + local_now.minute:
        raise BookingValidationError("Cannot book a time in the past.")


def allocation_plan(req: BookingCreate, needs: ResourceNeeds) -> List[AllocationStep]:
    """Per resource type: how many units over which absolute window."""
    day = req.date_key
    if req.activity == Activity.COMBO:
        segments = combo_segments(req.start_min, req.combo_order, req.combo_durations)
    else:
        segments = {t: (req.start_min, req.end_min) for t in needs.by_type()}
    return [
        (resource_type, count, to_absolute(day, segments[resource_type][0]), to_absolute(day, segments[resource_type][1]))
        for resource_type, count in needs.by_type().items()
    ]


def _find_by_idempotency_key(db: Session, key: Optional[str]) -> Optional[Booking]:
    if not key:
        return None
    try:
        return db.query(Booking).filter(Booking.idempotency_key == key).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Idempotency lookup failed")
        raise StoreUnavailableError() from e


def _reserve(db: Session, booking: Booking, plan: List[AllocationStep]) -> List[ResourceReservation]:
    reservations = []
    for resource_type, count, start_ts, end_ts in plan:
        candidates = free_resources(db, resource_type, start_ts, end_ts, lock=True)
        if len(candidates) < count:
            raise SlotConflictError()
        for resource in candidates[:count]:
            reservation = ResourceReservation(
                booking_id=booking.id,
                resource_id=resource.id,
                start_ts=start_ts,
                end_ts=end_ts,
            )
            db.add(reservation)
            reservations.append(reservation)
    return reservations


# ---------------------------------------------------------------------------
# createBooking
# ---------------------------------------------------------------------------


def create_booking(db: Session, req: BookingCreate, now: Optional[datetime] = None) -> AllocationResult:
    needs = needed_resources(req.activity, req.party_size)

    existing = _find_by_idempotency_key(db, req.idempotency_key)
    if existing is not None:
        logger.info("Replaying booking %s for idempotency key", existing.booking_number)
        return AllocationResult(booking=existing, needs=needs, replayed=True, customer_id=existing.customer_id)

    check_not_in_past(req.date_key, req.start_min, now)

    price = total_cents(req.activity, req.party_size, req.duration_minutes, req.combo_durations)
    plan = allocation_plan(req, needs)
    combo = req.activity == Activity.COMBO

    booking = Booking(
        idempotency_key=req.idempotency_key,
        activity=req.activity,
        party_size=req.party_size,
        duration_minutes=req.duration_minutes,
        start_ts=to_absolute(req.date_key, req.start_min),
        end_ts=to_absolute(req.date_key, req.end_min),
        combo_order=req.combo_order if combo else None,
        combo_axe_minutes=req.combo_axe_minutes if combo else None,
        combo_duckpin_minutes=req.combo_duckpin_minutes if combo else None,
        total_cents=price,
        customer_name=req.customer_name,
        customer_email=normalize_email(req.customer_email),
        customer_phone=req.customer_phone,
        status=BookingStatus.CONFIRMED,
        paid=False,
    )

    try:
        booking.booking_number = _generate_booking_number(db)
        db.add(booking)
        db.flush()  # get booking.id
        _reserve(db, booking, plan)
        booking.waiver_required = any(step[0] == ResourceType.AXE_BAY for step in plan)
        db.flush()
        db.commit()
    except SlotConflictError:
        db.rollback()
        logger.warning("No free resources for %s at %s on %s", req.activity.value, format_minutes(req.start_min), req.date_key)
        raise
    except IntegrityError as e:
        db.rollback()
        if is_exclusion_violation(e):
            logger.warning("Exclusion constraint rejected booking for %s at %s on %s",
                           req.activity.value, format_minutes(req.start_min), req.date_key)
            raise SlotConflictError() from e
        if req.idempotency_key and is_unique_violation(e, "idempotency_key"):
            # A concurrent duplicate won; hand back its booking
            winner = _find_by_idempotency_key(db, req.idempotency_key)
            if winner is not None:
                return AllocationResult(booking=winner, needs=needs, replayed=True, customer_id=winner.customer_id)
        logger.exception("Booking insert failed")
        raise StoreUnavailableError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Booking transaction failed")
        raise StoreUnavailableError() from e

    logger.info("Booking %s created: %s x%d, %d cents", booking.booking_number,
                booking.activity.value, booking.party_size, booking.total_cents)

    result = AllocationResult(booking=booking, needs=needs)
    result.customer_id = link_customer(db, booking)

    if req.party_areas:
        start_min, minutes = party_area_window(req)
        try:
            reserve_party_areas(db, booking, req.party_areas, req.date_key, start_min, minutes)
            result.party_areas = list(req.party_areas)
        except PartyAreaUnavailableError as e:
            logger.warning("Party area add-on failed for %s: %s", booking.booking_number, e.message)
            result.party_area_error = e

    db.refresh(booking)
    return result


# ---------------------------------------------------------------------------
# Party-area add-on
# ---------------------------------------------------------------------------


def party_area_window(req: BookingCreate) -> Tuple[int, int]:
    """(start minute, length) for the add-on: whole hours, 1 to 8 of them, ending by midnight."""
    start_min = req.start_min if req.party_area_start_min is None else req.party_area_start_min
    if req.party_area_minutes is None:
        minutes = req.duration_minutes
    else:
        hours = (req.party_area_minutes + 30) // 60
        minutes = min(PARTY_AREA_MAX_MINUTES, max(PARTY_AREA_MIN_MINUTES, hours * 60))
    return start_min, min(minutes, MINUTES_PER_DAY - start_min)


def reserve_party_areas(db: Session, booking: Booking, names: List[str], day, start_min: int, minutes: int) -> None:
    """
    Reserve named party areas for an already-committed booking.

    Runs in its own transaction; failure leaves the core booking intact and
    raises PartyAreaUnavailableError.
    """
    if not names:
        return
    start_ts = to_absolute(day, start_min)
    end_ts = to_absolute(day, start_min + minutes)

    try:
        known = {
            r.name
            for r in db.query(Resource).filter(
                Resource.type == ResourceType.PARTY_AREA,
                Resource.name.in_(names),
                Resource.is_active,
            )
        }
        if len(known) != len(names):
            raise PartyAreaUnavailableError("Selected party area is unavailable.")

        free = {
            r.name: r
            for r in free_resources(db, ResourceType.PARTY_AREA, start_ts, end_ts, lock=True)
            if r.name in known
        }
        if len(free) != len(names):
            raise PartyAreaUnavailableError("Selected party area is already booked.")

        for name in names:
            db.add(ResourceReservation(
                booking_id=booking.id,
                resource_id=free[name].id,
                start_ts=start_ts,
                end_ts=end_ts,
            ))
        db.commit()
    except PartyAreaUnavailableError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        if is_exclusion_violation(e):
            raise PartyAreaUnavailableError("Selected party area is already booked.") from e
        logger.exception("Party area insert failed")
        raise StoreUnavailableError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Party area transaction failed")
        raise StoreUnavailableError() from e
