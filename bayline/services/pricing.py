"""
Resource sizing and pricing. Pure functions, no I/O.

This module is the only place prices are computed; anything a client
displays is advisory.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from bayline.models.booking import Activity
from bayline.models.resource import ResourceType

MAX_PARTY_SIZES: Dict[Activity, int] = {
    Activity.AXE: 16,
    Activity.DUCKPIN: 24,
    Activity.COMBO: 24,
}

DURATIONS_MINUTES: Dict[Activity, tuple] = {
    Activity.AXE: (30, 60, 120),
    Activity.DUCKPIN: (30, 60, 120),
}
# Each combo segment (axe, duckpin) picks independently from this set
COMBO_SEGMENT_MINUTES = (30, 60, 120)
DEFAULT_COMBO_SEGMENT_MINUTES = 60

SLOT_STEP_MINUTES = (30, 60)

AXE_PER_PERSON_HOUR_CENTS = 2000
DUCKPIN_PER_LANE_HOUR_CENTS = 4000

# Combo flat rates per segment length
COMBO_LANE_CENTS = {30: 3000, 60: 4000, 120: 7500}
COMBO_PERSON_CENTS = {30: 1500, 60: 2000, 120: 3500}


@dataclass(frozen=True)
class ResourceNeeds:
    axe_bays: int = 0
    duckpin_lanes: int = 0

    @property
    def is_empty(self) -> bool:
        return self.axe_bays <= 0 and self.duckpin_lanes <= 0

    def by_type(self) -> Dict[ResourceType, int]:
        counts = {}
        if self.axe_bays > 0:
            counts[ResourceType.AXE_BAY] = self.axe_bays
        if self.duckpin_lanes > 0:
            counts[ResourceType.DUCKPIN_LANE] = self.duckpin_lanes
        return counts


@dataclass(frozen=True)
class ComboDurations:
    axe_minutes: int = DEFAULT_COMBO_SEGMENT_MINUTES
    duckpin_minutes: int = DEFAULT_COMBO_SEGMENT_MINUTES

    @property
    def total_minutes(self) -> int:
        return self.axe_minutes + self.duckpin_minutes


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def axe_bays_for_party(party_size: int) -> int:
    # 1 bay up to 8 throwers, 2 bays for 9-16
    return 2 if party_size >= 9 else 1


def duckpin_lanes_for_party(party_size: int) -> int:
    # 1-6, 7-12, 13-18, 19-24
    if party_size >= 19:
        return 4
    if party_size >= 13:
        return 3
    if party_size >= 7:
        return 2
    return 1


def needed_resources(activity: Activity, party_size: int) -> ResourceNeeds:
    if activity == Activity.AXE:
        return ResourceNeeds(axe_bays=axe_bays_for_party(party_size))
    if activity == Activity.DUCKPIN:
        return ResourceNeeds(duckpin_lanes=duckpin_lanes_for_party(party_size))
    # Combo reserves both
    return ResourceNeeds(
        axe_bays=axe_bays_for_party(party_size),
        duckpin_lanes=duckpin_lanes_for_party(party_size),
    )


def combo_lane_cents(minutes: int) -> int:
    if minutes in COMBO_LANE_CENTS:
        return COMBO_LANE_CENTS[minutes]
    return _round_cents(Decimal(COMBO_LANE_CENTS[60]) * minutes / 60)


def combo_person_cents(minutes: int) -> int:
    if minutes in COMBO_PERSON_CENTS:
        return COMBO_PERSON_CENTS[minutes]
    return _round_cents(Decimal(COMBO_PERSON_CENTS[60]) * minutes / 60)


def total_cents(
    activity: Activity,
    party_size: int,
    duration_minutes: int,
    combo: Optional[ComboDurations] = None,
) -> int:
    """Authoritative price in cents for one booking."""
    if activity == Activity.AXE:
        return _round_cents(Decimal(party_size * AXE_PER_PERSON_HOUR_CENTS * duration_minutes) / 60)

    lanes = duckpin_lanes_for_party(party_size)
    if activity == Activity.DUCKPIN:
        return _round_cents(Decimal(lanes * DUCKPIN_PER_LANE_HOUR_CENTS * duration_minutes) / 60)

    combo = combo or ComboDurations()
    duckpin_portion = lanes * combo_lane_cents(combo.duckpin_minutes)
    axe_portion = party_size * combo_person_cents(combo.axe_minutes)
    return duckpin_portion + axe_portion
