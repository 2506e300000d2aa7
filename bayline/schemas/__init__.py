from bayline.schemas.common import PaginatedResponse, ErrorResponse, OkResponse
from bayline.schemas.availability import ActivityRequest, AvailabilityRequest, AvailabilityResponse
from bayline.schemas.booking import (
    Booking, BookingCreate, BookingCreated, BookingReschedule,
    ReassignRequest, ReassignmentItem, ReservationOut, ResourceNeedsOut,
)
from bayline.schemas.resource import Resource, ResourceCreate, ResourceUpdate
from bayline.schemas.rules import (
    BlackoutRule, BlackoutRuleCreate,
    BufferRule, BufferRuleCreate, BufferRuleUpdate,
)
