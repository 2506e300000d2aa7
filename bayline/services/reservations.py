"""
Store queries shared by availability, allocation and reassignment.

Reservations of cancelled bookings are ignored everywhere; so are
reservations flagged ``released``.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bayline.core.errors import StoreUnavailableError
from bayline.models.booking import Booking, BookingStatus, ResourceReservation
from bayline.models.resource import Resource, ResourceType

logger = logging.getLogger(__name__)

Interval = Tuple[datetime, datetime]


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open intervals: touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


def _live_reservation_filters(start: datetime, end: datetime) -> list:
    return [
        ResourceReservation.released == False,  # noqa: E712
        ResourceReservation.start_ts < end,
        ResourceReservation.end_ts > start,
        Booking.status != BookingStatus.CANCELLED,
    ]


def active_resources(db: Session, types: Iterable[ResourceType]) -> List[Resource]:
    types = list(types)
    if not types:
        return []
    try:
        return (
            db.query(Resource)
            .filter(Resource.type.in_(types), Resource.is_active)
            .order_by(Resource.sort_order, Resource.name)
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("resources query failed")
        raise StoreUnavailableError("Database error (resources)") from e


def busy_intervals(
    db: Session,
    resource_ids: Sequence[UUID],
    window_start: datetime,
    window_end: datetime,
) -> Dict[UUID, List[Interval]]:
    """resource_id -> live reservation intervals overlapping the window."""
    if not resource_ids:
        return {}
    try:
        rows = (
            db.query(
                ResourceReservation.resource_id,
                ResourceReservation.start_ts,
                ResourceReservation.end_ts,
            )
            .join(Booking, Booking.id == ResourceReservation.booking_id)
            .filter(
                ResourceReservation.resource_id.in_(list(resource_ids)),
                *_live_reservation_filters(window_start, window_end),
            )
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("reservations query failed")
        raise StoreUnavailableError("Database error (reservations)") from e

    by_resource: Dict[UUID, List[Interval]] = defaultdict(list)
    for resource_id, start_ts, end_ts in rows:
        by_resource[resource_id].append((start_ts, end_ts))
    return by_resource


def count_free(
    resource_ids: Sequence[UUID],
    intervals: Dict[UUID, List[Interval]],
    start: datetime,
    end: datetime,
) -> int:
    """How many of the resources have no interval overlapping [start, end)."""
    free = 0
    for resource_id in resource_ids:
        if not any(overlaps(start, end, s, e) for s, e in intervals.get(resource_id, ())):
            free += 1
    return free


def _conflict_clause(start: datetime, end: datetime, exclude_booking_id: Optional[UUID] = None):
    filters = [ResourceReservation.resource_id == Resource.id, *_live_reservation_filters(start, end)]
    if exclude_booking_id is not None:
        filters.append(ResourceReservation.booking_id != exclude_booking_id)
    return (
        exists()
        .where(and_(*filters))
        .where(Booking.id == ResourceReservation.booking_id)
    )


def free_resources(
    db: Session,
    resource_type: ResourceType,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[UUID] = None,
    lock: bool = False,
) -> List[Resource]:
    """
    Active resources of one type with no live reservation overlapping [start, end).

    With ``lock`` the candidate rows are locked FOR UPDATE so two allocating
    transactions serialize on the same resource; the exclusion constraint
    remains the final arbiter.
    """
    query = (
        db.query(Resource)
        .filter(
            Resource.type == resource_type,
            Resource.is_active,
            ~_conflict_clause(start, end, exclude_booking_id),
        )
        .order_by(Resource.sort_order, Resource.name)
    )
    if lock:
        query = query.with_for_update(of=Resource)
    return query.all()


def has_conflict(
    db: Session,
    resource_id: UUID,
    start: datetime,
    end: datetime,
    exclude_reservation_id: Optional[UUID] = None,
) -> bool:
    query = (
        db.query(ResourceReservation.id)
        .join(Booking, Booking.id == ResourceReservation.booking_id)
        .filter(
            ResourceReservation.resource_id == resource_id,
            *_live_reservation_filters(start, end),
        )
    )
    if exclude_reservation_id is not None:
        query = query.filter(ResourceReservation.id != exclude_reservation_id)
    return db.query(query.exists()).scalar()
