import uuid
import enum
from sqlalchemy import (
    Column, String, Boolean, Integer, ForeignKey, CheckConstraint, DDL,
    Uuid, event, func, Enum as SAEnum,
)
from sqlalchemy.orm import relationship
from bayline.db.session import Base
from bayline.db.types import UTCDateTime


class Activity(str, enum.Enum):
    AXE = "AXE"
    DUCKPIN = "DUCKPIN"
    COMBO = "COMBO"


class ComboOrder(str, enum.Enum):
    DUCKPIN_FIRST = "DUCKPIN_FIRST"
    AXE_FIRST = "AXE_FIRST"


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_number = Column(String(20), unique=True, nullable=False, index=True)
    idempotency_key = Column(String(100), unique=True, nullable=True)
    activity = Column(SAEnum(Activity, native_enum=False), nullable=False)
    party_size = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    start_ts = Column(UTCDateTime, nullable=False, index=True)
    end_ts = Column(UTCDateTime, nullable=False)
    combo_order = Column(SAEnum(ComboOrder, native_enum=False), nullable=True)
    combo_axe_minutes = Column(Integer, nullable=True)
    combo_duckpin_minutes = Column(Integer, nullable=True)
    total_cents = Column(Integer, nullable=False)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=True, index=True)
    paid = Column(Boolean, nullable=False, default=False)
    waiver_required = Column(Boolean, nullable=False, default=False)
    status = Column(SAEnum(BookingStatus, native_enum=False), nullable=False, default=BookingStatus.CONFIRMED, index=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    # Relationships
    customer = relationship("Customer", back_populates="bookings")
    reservations = relationship(
        "ResourceReservation",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="ResourceReservation.start_ts",
    )


class ResourceReservation(Base):
    __tablename__ = "resource_reservations"
    __table_args__ = (
        CheckConstraint("end_ts > start_ts", name="resource_reservations_valid_window"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    resource_id = Column(Uuid, ForeignKey("resources.id"), nullable=False, index=True)
    booking_id = Column(Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    start_ts = Column(UTCDateTime, nullable=False)
    end_ts = Column(UTCDateTime, nullable=False)
    # Mirrors the owning booking's cancellation so the store constraint can skip it
    released = Column(Boolean, nullable=False, default=False)

    booking = relationship("Booking", back_populates="reservations")
    resource = relationship("Resource")


# ---------------------------------------------------------------------------
# Per-resource non-overlap, enforced by the store at commit time
# ---------------------------------------------------------------------------

NO_OVERLAP_CONSTRAINT = "resource_reservations_no_overlap"

_table = ResourceReservation.__table__

event.listen(
    _table,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    _table,
    "after_create",
    DDL(
        f"ALTER TABLE resource_reservations ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (resource_id WITH =, tstzrange(start_ts, end_ts, '[)') WITH &&) "
        "WHERE (NOT released)"
    ).execute_if(dialect="postgresql"),
)

# SQLite has no EXCLUDE; triggers give the same guarantee for dev and tests
_SQLITE_OVERLAP = (
    "SELECT 1 FROM resource_reservations r "
    "WHERE r.resource_id = NEW.resource_id AND r.released = 0 "
    "AND r.start_ts < NEW.end_ts AND r.end_ts > NEW.start_ts"
)
_SQLITE_RAISE = (
    f"SELECT RAISE(ABORT, 'conflicting key value violates exclusion constraint "
    f"\"{NO_OVERLAP_CONSTRAINT}\"')"
)

event.listen(
    _table,
    "after_create",
    DDL(
        f"CREATE TRIGGER {NO_OVERLAP_CONSTRAINT}_insert BEFORE INSERT ON resource_reservations "
        f"WHEN NEW.released = 0 AND EXISTS ({_SQLITE_OVERLAP}) "
        f"BEGIN {_SQLITE_RAISE}; END"
    ).execute_if(dialect="sqlite"),
)
event.listen(
    _table,
    "after_create",
    DDL(
        f"CREATE TRIGGER {NO_OVERLAP_CONSTRAINT}_update BEFORE UPDATE ON resource_reservations "
        f"WHEN NEW.released = 0 AND EXISTS ({_SQLITE_OVERLAP} AND r.id != NEW.id) "
        f"BEGIN {_SQLITE_RAISE}; END"
    ).execute_if(dialect="sqlite"),
)
