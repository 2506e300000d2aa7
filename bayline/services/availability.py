"""
Availability engine: which start times on one day cannot be booked.

The computation is a read-only, lock-free snapshot. It may be stale by the
time a booking is submitted; the allocator re-checks inside its own
transaction.
"""
import logging
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from bayline.models.booking import Activity, ComboOrder
from bayline.models.resource import ResourceType
from bayline.schemas.availability import AvailabilityRequest
from bayline.services.pricing import ComboDurations, needed_resources
from bayline.services.reservations import active_resources, busy_intervals, count_free
from bayline.services.rules import blackout_hits, load_blackouts, load_buffer_padding
from bayline.utils.venue_time import to_absolute

logger = logging.getLogger(__name__)

Segment = Tuple[int, int]


def combo_segments(start_min: int, order: ComboOrder, durations: ComboDurations) -> Dict[ResourceType, Segment]:
    """Split a combo booking into its duckpin and axe sub-windows (minutes from midnight)."""
    if order == ComboOrder.AXE_FIRST:
        axe = (start_min, start_min + durations.axe_minutes)
        duckpin = (axe[1], axe[1] + durations.duckpin_minutes)
    else:
        duckpin = (start_min, start_min + durations.duckpin_minutes)
        axe = (duckpin[1], duckpin[1] + durations.axe_minutes)
    return {ResourceType.DUCKPIN_LANE: duckpin, ResourceType.AXE_BAY: axe}


def candidate_starts(open_start_min: int, open_end_min: int, duration_minutes: int, step: int) -> List[int]:
    return list(range(open_start_min, open_end_min - duration_minutes + 1, step))


def compute_blocked_starts(db: Session, req: AvailabilityRequest) -> List[int]:
    """
    Blocked start minutes for one day, ascending.

    A start is blocked when its padded window touches a blackout, or when
    fewer free resources than needed remain for any resource type. Combo
    bookings check each resource type only against its own segment.
    """
    needs = needed_resources(req.activity, req.party_size)
    if needs.is_empty:
        return []

    needed = needs.by_type()
    duration = req.duration_minutes
    open_start, open_end = req.open_start_min, req.open_end_min
    candidates = candidate_starts(open_start, open_end, duration, req.slot_step_minutes)

    resources = active_resources(db, needed.keys())
    ids_by_type: Dict[ResourceType, list] = {t: [] for t in needed}
    for resource in resources:
        ids_by_type[resource.type].append(resource.id)

    short = [t.value for t, count in needed.items() if len(ids_by_type[t]) < count]
    if short:
        logger.info("Not enough active %s for party of %d; all slots blocked", ", ".join(short), req.party_size)
        return candidates

    blackouts = load_blackouts(db, req.date_key, req.activity)
    buffer_before, buffer_after = load_buffer_padding(db, req.activity)

    day = req.date_key
    intervals = busy_intervals(
        db,
        [rid for ids in ids_by_type.values() for rid in ids],
        to_absolute(day, open_start),
        to_absolute(day, open_end),
    )

    def padded(start_min: int, end_min: int) -> Segment:
        return max(open_start, start_min - buffer_before), min(open_end, end_min + buffer_after)

    def enough_free(resource_type: ResourceType, segment: Segment) -> bool:
        check_start, check_end = padded(*segment)
        free = count_free(
            ids_by_type[resource_type],
            intervals,
            to_absolute(day, check_start),
            to_absolute(day, check_end),
        )
        return free >= needed[resource_type]

    combo = req.activity == Activity.COMBO
    blocked: List[int] = []
    for start_min in candidates:
        if blackout_hits(blackouts, *padded(start_min, start_min + duration), open_start, open_end):
            blocked.append(start_min)
            continue

        if combo:
            segments = combo_segments(start_min, req.combo_order, req.combo_durations)
        else:
            segments = {t: (start_min, start_min + duration) for t in needed}

        if not all(enough_free(t, segments[t]) for t in needed):
            blocked.append(start_min)

    return blocked
