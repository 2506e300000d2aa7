from typing import Optional
from pydantic import BaseModel, Field, UUID4, field_validator, model_validator
from datetime import date

from bayline.core.errors import BookingValidationError
from bayline.models.rules import RuleScope
from bayline.utils.venue_time import MINUTES_PER_DAY, parse_date_key


# Blackout Schemas
class BlackoutRuleCreate(BaseModel):
    date_key: date
    start_min: Optional[int] = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    end_min: Optional[int] = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    activity: RuleScope = RuleScope.ALL
    reason: Optional[str] = None

    @field_validator("date_key", mode="before")
    @classmethod
    def require_iso_date(cls, v):
        try:
            return parse_date_key(v)
        except BookingValidationError as e:
            raise ValueError(e.message) from None

    @model_validator(mode="after")
    def check_range(self):
        if self.start_min is not None and self.end_min is not None and self.end_min <= self.start_min:
            raise ValueError("end_min must be after start_min")
        return self


class BlackoutRule(BlackoutRuleCreate):
    id: UUID4

    class Config:
        from_attributes = True


# Buffer Schemas
class BufferRuleCreate(BaseModel):
    activity: RuleScope = RuleScope.ALL
    before_min: int = Field(default=0, ge=0, le=240)
    after_min: int = Field(default=0, ge=0, le=240)
    active: bool = True


class BufferRuleUpdate(BaseModel):
    before_min: Optional[int] = Field(default=None, ge=0, le=240)
    after_min: Optional[int] = Field(default=None, ge=0, le=240)
    active: Optional[bool] = None


class BufferRule(BufferRuleCreate):
    id: UUID4

    class Config:
        from_attributes = True
