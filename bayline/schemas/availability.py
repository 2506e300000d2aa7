from __future__ import annotations

from typing import List, Optional
from datetime import date
from pydantic import BaseModel, Field, field_validator, model_validator

from bayline.core.config import settings
from bayline.core.errors import BookingValidationError
from bayline.models.booking import Activity, ComboOrder
from bayline.services.pricing import (
    COMBO_SEGMENT_MINUTES,
    DEFAULT_COMBO_SEGMENT_MINUTES,
    DURATIONS_MINUTES,
    MAX_PARTY_SIZES,
    SLOT_STEP_MINUTES,
    ComboDurations,
)
from bayline.utils.venue_time import MINUTES_PER_DAY, parse_date_key

ACTIVITY_LABELS = {
    "axe throwing": Activity.AXE,
    "duckpin bowling": Activity.DUCKPIN,
    "combo package": Activity.COMBO,
}


# Shared by availability queries and booking requests
class ActivityRequest(BaseModel):
    activity: Activity
    party_size: int = Field(ge=1)
    date_key: date
    duration_minutes: Optional[int] = None
    combo_order: ComboOrder = ComboOrder.DUCKPIN_FIRST
    combo_axe_minutes: int = DEFAULT_COMBO_SEGMENT_MINUTES
    combo_duckpin_minutes: int = DEFAULT_COMBO_SEGMENT_MINUTES

    @field_validator("activity", mode="before")
    @classmethod
    def map_activity_label(cls, v):
        if isinstance(v, str):
            return ACTIVITY_LABELS.get(v.strip().lower(), v.strip().upper())
        return v

    @field_validator("date_key", mode="before")
    @classmethod
    def require_iso_date(cls, v):
        try:
            return parse_date_key(v)
        except BookingValidationError as e:
            raise ValueError(e.message) from None

    @field_validator("combo_order", mode="before")
    @classmethod
    def default_empty_order(cls, v):
        if v in (None, ""):
            return ComboOrder.DUCKPIN_FIRST
        return v

    @model_validator(mode="after")
    def check_activity_limits(self):
        max_party = MAX_PARTY_SIZES[self.activity]
        if self.party_size > max_party:
            raise ValueError(f"party_size must be at most {max_party} for {self.activity.value}")

        if self.activity == Activity.COMBO:
            for minutes in (self.combo_axe_minutes, self.combo_duckpin_minutes):
                if minutes not in COMBO_SEGMENT_MINUTES:
                    raise ValueError(f"combo segment minutes must be one of {COMBO_SEGMENT_MINUTES}")
            total = self.combo_axe_minutes + self.combo_duckpin_minutes
            if self.duration_minutes is None:
                self.duration_minutes = total
            elif self.duration_minutes != total:
                raise ValueError("duration_minutes must equal combo_axe_minutes + combo_duckpin_minutes")
        elif self.duration_minutes not in DURATIONS_MINUTES[self.activity]:
            raise ValueError(f"duration_minutes must be one of {DURATIONS_MINUTES[self.activity]}")
        return self

    @property
    def combo_durations(self) -> Optional[ComboDurations]:
        if self.activity != Activity.COMBO:
            return None
        return ComboDurations(
            axe_minutes=self.combo_axe_minutes,
            duckpin_minutes=self.combo_duckpin_minutes,
        )


# POST /availability
class AvailabilityRequest(ActivityRequest):
    open_start_min: int = Field(default_factory=lambda: settings.DEFAULT_OPEN_START_MIN)
    open_end_min: int = Field(default_factory=lambda: settings.DEFAULT_OPEN_END_MIN)
    slot_step_minutes: int = Field(default_factory=lambda: settings.DEFAULT_SLOT_STEP_MINUTES)

    @model_validator(mode="after")
    def check_window(self):
        if not 0 <= self.open_start_min < self.open_end_min <= MINUTES_PER_DAY:
            raise ValueError("Invalid time window")
        if self.slot_step_minutes not in SLOT_STEP_MINUTES:
            raise ValueError(f"slot_step_minutes must be one of {SLOT_STEP_MINUTES}")
        return self


class AvailabilityResponse(BaseModel):
    date_key: date
    blocked_start_mins: List[int]
