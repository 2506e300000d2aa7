from __future__ import annotations

from typing import Annotated, List, Optional
from datetime import date, datetime
from pydantic import BaseModel, EmailStr, Field, UUID4, field_validator, model_validator

from bayline.core.errors import BookingValidationError
from bayline.models.booking import Activity, BookingStatus, ComboOrder
from bayline.models.resource import ResourceType
from bayline.schemas.availability import ActivityRequest
from bayline.schemas.common import ErrorResponse
from bayline.utils.venue_time import MINUTES_PER_DAY, parse_date_key, parse_start_time


def _start_min_from(start_time: Optional[str], start_min: Optional[int]) -> int:
    if start_min is None:
        if not start_time:
            raise ValueError("start_time or start_min is required")
        start_min = parse_start_time(start_time)
        if start_min is None:
            raise ValueError("Invalid start_time")
    if not 0 <= start_min < MINUTES_PER_DAY:
        raise ValueError("start_min must be within the day")
    return start_min


# Booking — Create (POST /bookings)
class BookingCreate(ActivityRequest):
    start_time: Optional[str] = None
    start_min: Optional[int] = None
    customer_name: Annotated[str, Field(min_length=2, max_length=255)]
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    party_areas: Annotated[List[str], Field(max_length=5)] = []
    party_area_start_min: Optional[int] = None
    party_area_minutes: Optional[int] = None
    idempotency_key: Optional[Annotated[str, Field(min_length=8, max_length=100)]] = None

    @field_validator("customer_name", "customer_phone", "idempotency_key", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("party_areas", mode="before")
    @classmethod
    def dedupe_party_areas(cls, v):
        if not v:
            return []
        seen = []
        for name in v:
            name = str(name or "").strip()
            if name and name not in seen:
                seen.append(name)
        return seen

    @model_validator(mode="after")
    def resolve_start(self):
        self.start_min = _start_min_from(self.start_time, self.start_min)
        duration = self.duration_minutes or self.combo_axe_minutes + self.combo_duckpin_minutes
        if self.start_min + duration > MINUTES_PER_DAY:
            raise ValueError("Booking must end by midnight")
        if self.party_area_start_min is not None and not 0 <= self.party_area_start_min < MINUTES_PER_DAY:
            raise ValueError("party_area_start_min must be within the day")
        if self.party_area_minutes is not None and self.party_area_minutes <= 0:
            raise ValueError("party_area_minutes must be positive")
        return self

    @property
    def end_min(self) -> int:
        return self.start_min + self.duration_minutes


# Booking — Reschedule (POST /admin/bookings/{id}/reschedule)
class BookingReschedule(BaseModel):
    date_key: date
    start_time: Optional[str] = None
    start_min: Optional[int] = None

    @field_validator("date_key", mode="before")
    @classmethod
    def require_iso_date(cls, v):
        try:
            return parse_date_key(v)
        except BookingValidationError as e:
            raise ValueError(e.message) from None

    @model_validator(mode="after")
    def resolve_start(self):
        self.start_min = _start_min_from(self.start_time, self.start_min)
        return self


# Reassignment (POST /admin/bookings/{id}/reassign)
class ReassignmentItem(BaseModel):
    reservation_id: UUID4
    resource_id: UUID4


class ReassignRequest(BaseModel):
    updates: Annotated[List[ReassignmentItem], Field(min_length=1)]


# Nested response objects
class ResourceNeedsOut(BaseModel):
    axe_bays: int
    duckpin_lanes: int


class ReservationOut(BaseModel):
    id: UUID4
    resource_id: UUID4
    resource_name: Optional[str] = None
    resource_type: Optional[ResourceType] = None
    start_ts: datetime
    end_ts: datetime
    released: bool = False


# Booking — Full response
class Booking(BaseModel):
    id: UUID4
    booking_number: str
    activity: Activity
    status: BookingStatus
    party_size: int
    duration_minutes: int
    start_ts: datetime
    end_ts: datetime
    combo_order: Optional[ComboOrder] = None
    total_cents: int
    customer_name: str
    customer_email: str
    customer_id: Optional[UUID4] = None
    paid: bool
    waiver_required: bool
    cancelled_at: Optional[datetime] = None
    reservations: List[ReservationOut] = []


# Booking — Create response
class BookingCreated(Booking):
    needs: ResourceNeedsOut
    replayed: bool = False
    party_areas: List[str] = []
    party_area_error: Optional[ErrorResponse] = None
