from bayline.db.session import Base
from bayline.models.resource import Resource
from bayline.models.customer import Customer
from bayline.models.booking import Booking, ResourceReservation
from bayline.models.rules import BlackoutRule, BufferRule
