from bayline.models.resource import Resource, ResourceType
from bayline.models.customer import Customer
from bayline.models.booking import Booking, ResourceReservation, Activity, ComboOrder, BookingStatus
from bayline.models.rules import BlackoutRule, BufferRule, RuleScope
