import os
import tempfile
import uuid
from datetime import date, datetime, timezone

# Point the app at a throwaway SQLite file before anything imports settings
_DB_DIR = tempfile.mkdtemp(prefix="bayline-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'bayline.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["VENUE_TIMEZONE"] = "America/New_York"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from bayline.core.security import create_access_token
from bayline.db.base import Base
from bayline.db.session import SessionLocal, engine
from bayline.main import app
from bayline.models import (
    Activity,
    Booking,
    BookingStatus,
    Resource,
    ResourceReservation,
    ResourceType,
)
from bayline.utils.venue_time import to_absolute

# A Saturday in EDT (UTC-4), safely in the future
DAY = date(2030, 6, 15)
NOW = datetime(2030, 6, 1, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def staff_headers():
    return {"Authorization": f"Bearer {create_access_token('staff-1')}"}


@pytest.fixture
def make_resource(db):
    counter = {"n": 0}

    def _make(resource_type: ResourceType, name=None, active=True) -> Resource:
        counter["n"] += 1
        resource = Resource(
            type=resource_type,
            name=name or f"{resource_type.value.replace('_', ' ').title()} {counter['n']}",
            active=active,
            sort_order=counter["n"],
        )
        db.add(resource)
        db.commit()
        db.refresh(resource)
        return resource

    return _make


@pytest.fixture
def make_booking(db):
    """Insert a booking with reservations directly, bypassing the allocator."""

    def _make(
        resources,
        start_min: int,
        end_min: int,
        day: date = DAY,
        activity: Activity = Activity.DUCKPIN,
        status: BookingStatus = BookingStatus.CONFIRMED,
    ) -> Booking:
        start_ts, end_ts = to_absolute(day, start_min), to_absolute(day, end_min)
        booking = Booking(
            booking_number=f"BAY-T{uuid.uuid4().hex[:7].upper()}",
            activity=activity,
            party_size=4,
            duration_minutes=end_min - start_min,
            start_ts=start_ts,
            end_ts=end_ts,
            total_cents=0,
            customer_name="Existing Guest",
            customer_email="guest@example.com",
            status=status,
            cancelled_at=NOW if status == BookingStatus.CANCELLED else None,
        )
        db.add(booking)
        db.flush()
        for resource in resources:
            db.add(ResourceReservation(
                booking_id=booking.id,
                resource_id=resource.id,
                start_ts=start_ts,
                end_ts=end_ts,
                released=status == BookingStatus.CANCELLED,
            ))
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def failing_query(db, monkeypatch):
    """Make ``db.query`` raise OperationalError whenever it selects from ``model``."""

    def _break(model):
        real_query = db.query

        def query(*entities, **kwargs):
            first = entities[0] if entities else None
            if first is model or getattr(first, "class_", None) is model:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return real_query(*entities, **kwargs)

        monkeypatch.setattr(db, "query", query)

    return _break
