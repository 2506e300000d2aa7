from datetime import timedelta

from sqlalchemy.exc import OperationalError

from bayline.api.v1.public import bookings as public_bookings
from bayline.core.errors import MSG_SLOT_TAKEN, MSG_STORE_UNAVAILABLE
from bayline.core.security import create_access_token, decode_token
from bayline.models import Booking, ResourceType

from conftest import DAY

LANE = ResourceType.DUCKPIN_LANE
BAY = ResourceType.AXE_BAY

API = "/api/v1"


def booking_payload(**overrides):
    data = {
        "activity": "Duckpin Bowling",
        "party_size": 4,
        "date_key": DAY.isoformat(),
        "duration_minutes": 60,
        "start_time": "6:00 PM",
        "customer_name": "Dana Guest",
        "customer_email": "dana@example.com",
    }
    data.update(overrides)
    return data


class TestAvailabilityEndpoint:
    def test_returns_blocked_starts(self, client, make_resource, make_booking):
        lane = make_resource(LANE)
        make_booking([lane], 1080, 1140)

        response = client.post(f"{API}/availability", json={
            "activity": "DUCKPIN",
            "party_size": 2,
            "date_key": DAY.isoformat(),
            "duration_minutes": 60,
        })
        assert response.status_code == 200
        assert response.json() == {"date_key": "2030-06-15", "blocked_start_mins": [1080]}

    def test_validation_error_shape(self, client):
        response = client.post(f"{API}/availability", json={
            "activity": "DUCKPIN",
            "party_size": 2,
            "date_key": "06/15/2030",
            "duration_minutes": 60,
        })
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation"
        assert "YYYY-MM-DD" in body["message"]

    def test_unknown_activity(self, client):
        response = client.post(f"{API}/availability", json={
            "activity": "LASER_TAG",
            "party_size": 2,
            "date_key": DAY.isoformat(),
            "duration_minutes": 60,
        })
        assert response.status_code == 400


class TestBookingEndpoint:
    def test_create(self, client, make_resource):
        make_resource(LANE)
        make_resource(LANE, name="Lane 2")

        response = client.post(f"{API}/bookings", json=booking_payload(party_size=7))
        assert response.status_code == 201
        body = response.json()
        assert body["booking_number"].startswith("BAY-")
        assert body["total_cents"] == 8000
        assert body["needs"] == {"axe_bays": 0, "duckpin_lanes": 2}
        assert body["waiver_required"] is False
        assert body["replayed"] is False
        assert body["customer_id"] is not None
        assert len(body["reservations"]) == 2

    def test_conflict_is_409(self, client, make_resource):
        make_resource(LANE)
        assert client.post(f"{API}/bookings", json=booking_payload()).status_code == 201

        response = client.post(f"{API}/bookings", json=booking_payload(customer_email="late@example.com"))
        assert response.status_code == 409
        assert response.json() == {"error": "conflict", "message": MSG_SLOT_TAKEN}

    def test_idempotent_replay_is_200(self, client, db, make_resource):
        make_resource(LANE)
        payload = booking_payload(idempotency_key="checkout-0001")
        first = client.post(f"{API}/bookings", json=payload)
        again = client.post(f"{API}/bookings", json=payload)

        assert first.status_code == 201
        assert again.status_code == 200
        assert again.json()["replayed"] is True
        assert again.json()["id"] == first.json()["id"]
        assert db.query(Booking).count() == 1

    def test_party_area_failure_still_books(self, client, make_resource):
        make_resource(LANE)
        response = client.post(f"{API}/bookings", json=booking_payload(party_areas=["Nowhere Room"]))

        assert response.status_code == 201
        body = response.json()
        assert body["party_areas"] == []
        assert body["party_area_error"]["error"] == "area_unavailable"

    def test_party_too_large(self, client, make_resource):
        make_resource(BAY)
        response = client.post(f"{API}/bookings", json=booking_payload(activity="AXE", party_size=20))
        assert response.status_code == 400
        assert response.json()["error"] == "validation"

    def test_must_end_by_midnight(self, client, make_resource):
        make_resource(LANE)
        response = client.post(
            f"{API}/bookings", json=booking_payload(start_time="11:30 PM", duration_minutes=60)
        )
        assert response.status_code == 400


class TestAdminAuth:
    def test_requires_token(self, client):
        assert client.get(f"{API}/admin/resources").status_code == 401

    def test_rejects_bad_token(self, client):
        headers = {"Authorization": "Bearer not-a-token"}
        assert client.get(f"{API}/admin/resources", headers=headers).status_code == 401

    def test_rejects_expired_token(self, client):
        token = create_access_token("staff-1", expires_delta=timedelta(minutes=-1))
        headers = {"Authorization": f"Bearer {token}"}
        assert client.get(f"{API}/admin/resources", headers=headers).status_code == 401

    def test_token_round_trip(self):
        assert decode_token(create_access_token("staff-7")) == "staff-7"


class TestAdminResources:
    def test_create_list_deactivate(self, client, staff_headers):
        created = client.post(
            f"{API}/admin/resources",
            json={"type": "DUCKPIN_LANE", "name": "Lane 1", "sort_order": 1},
            headers=staff_headers,
        )
        assert created.status_code == 201
        resource_id = created.json()["id"]
        assert created.json()["is_active"] is True

        duplicate = client.post(
            f"{API}/admin/resources",
            json={"type": "DUCKPIN_LANE", "name": "Lane 1"},
            headers=staff_headers,
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "conflict"

        updated = client.patch(
            f"{API}/admin/resources/{resource_id}", json={"active": False}, headers=staff_headers
        )
        assert updated.json()["is_active"] is False

        listed = client.get(f"{API}/admin/resources?active_only=true", headers=staff_headers)
        assert listed.json() == []


class TestAdminRules:
    def test_blackout_blocks_availability(self, client, staff_headers, make_resource):
        make_resource(LANE)
        response = client.post(
            f"{API}/admin/blackouts",
            json={"date_key": DAY.isoformat(), "start_min": 720, "end_min": 840, "activity": "ALL"},
            headers=staff_headers,
        )
        assert response.status_code == 201

        availability = client.post(f"{API}/availability", json={
            "activity": "DUCKPIN", "party_size": 2, "date_key": DAY.isoformat(), "duration_minutes": 60,
        })
        assert availability.json()["blocked_start_mins"] == [720, 780]

        rule_id = response.json()["id"]
        assert client.delete(f"{API}/admin/blackouts/{rule_id}", headers=staff_headers).json()["ok"] is True

    def test_blackout_range_validated(self, client, staff_headers):
        response = client.post(
            f"{API}/admin/blackouts",
            json={"date_key": DAY.isoformat(), "start_min": 840, "end_min": 720},
            headers=staff_headers,
        )
        assert response.status_code == 400

    def test_buffer_create_and_update(self, client, staff_headers):
        created = client.post(
            f"{API}/admin/buffers", json={"activity": "AXE", "before_min": 15}, headers=staff_headers
        )
        assert created.status_code == 201
        rule_id = created.json()["id"]

        updated = client.patch(
            f"{API}/admin/buffers/{rule_id}", json={"after_min": 30}, headers=staff_headers
        )
        assert updated.json()["before_min"] == 15
        assert updated.json()["after_min"] == 30


class TestAdminBookings:
    def test_list_cancel_reassign_reschedule(self, client, staff_headers, make_resource):
        make_resource(LANE)
        spare = make_resource(LANE)
        created = client.post(f"{API}/bookings", json=booking_payload()).json()
        booking_id = created["id"]

        listed = client.get(f"{API}/admin/bookings?date_key={DAY.isoformat()}", headers=staff_headers)
        assert listed.json()["total"] == 1

        reservation_id = created["reservations"][0]["id"]
        reassigned = client.post(
            f"{API}/admin/bookings/{booking_id}/reassign",
            json={"updates": [{"reservation_id": reservation_id, "resource_id": str(spare.id)}]},
            headers=staff_headers,
        )
        assert reassigned.status_code == 200
        assert reassigned.json()["reservations"][0]["resource_id"] == str(spare.id)

        rescheduled = client.post(
            f"{API}/admin/bookings/{booking_id}/reschedule",
            json={"date_key": DAY.isoformat(), "start_time": "8:00 PM"},
            headers=staff_headers,
        )
        assert rescheduled.status_code == 200
        assert rescheduled.json()["reservations"][0]["resource_id"] == str(spare.id)

        cancelled = client.post(f"{API}/admin/bookings/{booking_id}/cancel", headers=staff_headers)
        assert cancelled.json()["status"] == "CANCELLED"
        assert cancelled.json()["reservations"][0]["released"] is True

    def test_reassign_conflict_is_409(self, client, staff_headers, make_resource, make_booking):
        lane1, lane2 = make_resource(LANE), make_resource(LANE)
        booking = make_booking([lane1], 1080, 1140)
        make_booking([lane2], 1080, 1140)

        response = client.post(
            f"{API}/admin/bookings/{booking.id}/reassign",
            json={"updates": [{"reservation_id": str(booking.reservations[0].id), "resource_id": str(lane2.id)}]},
            headers=staff_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_missing_booking_is_404(self, client, staff_headers):
        response = client.post(
            f"{API}/admin/bookings/00000000-0000-4000-8000-000000000000/cancel", headers=staff_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestAdminNotFound:
    def test_missing_resource_is_structured_404(self, client, staff_headers):
        response = client.patch(
            f"{API}/admin/resources/00000000-0000-4000-8000-000000000000",
            json={"active": False},
            headers=staff_headers,
        )
        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "message": "Resource not found"}

    def test_missing_rule_is_structured_404(self, client, staff_headers):
        response = client.delete(
            f"{API}/admin/blackouts/00000000-0000-4000-8000-000000000000", headers=staff_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestStoreErrors:
    def test_unhandled_store_error_is_structured_503(self, client, make_resource, monkeypatch):
        make_resource(LANE)

        def broken_allocate(db, data):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        monkeypatch.setattr(public_bookings, "allocate_booking", broken_allocate)
        response = client.post(f"{API}/bookings", json=booking_payload())

        assert response.status_code == 503
        assert response.json() == {"error": "store_unavailable", "message": MSG_STORE_UNAVAILABLE}
