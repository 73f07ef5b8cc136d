"""
Integration tests for the appointment API endpoints.

Tests booking, lookup, reschedule, status changes and cancellation, and the
mapping of allocation failures onto HTTP status codes.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from main import app
from core.constants import MAX_NOTES_LENGTH
from core.database import get_db
from services.allocation_planner import AllocationPlanner
from tests.conftest import allocation_rows, create_professional, create_resource, create_service


@pytest.fixture
def client(db_session):
    """Create test client with database override."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def clinic(db_session):
    """One professional, one chamber and a chamber session plus a consultation."""
    professional = create_professional(db_session, "Dr. Vera")
    chamber = create_resource(db_session, "Chamber 1", "chamber")
    chamber_session = create_service(
        db_session, "Kinesiology + chamber", phases=[(30, 1.0, None), (60, 0.5, "chamber")]
    )
    consultation = create_service(db_session, "Consultation", duration_minutes=60)
    return professional, chamber, chamber_session, consultation


def _book(client: TestClient, service_id: int, starts_at: str = "2030-01-07T12:00:00Z", **extra):
    return client.post("/api/v1/appointments", json={"service_id": service_id, "starts_at": starts_at, **extra})


class TestCreateAppointment:
    """Test POST /api/v1/appointments."""

    def test_create_multiphase(self, client: TestClient, db_session: Session, clinic):
        professional, chamber, chamber_session, _ = clinic

        response = _book(client, chamber_session.id, patient_id=7, notes="  First visit  ")

        assert response.status_code == 201
        body = response.json()
        appointment = body["appointment"]
        assert appointment["status"] == "scheduled"
        assert appointment["notes"] == "First visit"
        assert appointment["starts_at"] == "2030-01-07T12:00:00Z"
        assert appointment["ends_at"] == "2030-01-07T13:30:00Z"
        assert [a["physical_resource_id"] for a in appointment["allocations"]] == [None, chamber.id]
        assert body["plan"]["professional_id"] == professional.id
        assert len(allocation_rows(db_session, appointment["id"])) == 2

    def test_conflict(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        _book(client, consultation.id)

        response = _book(client, consultation.id, starts_at="2030-01-07T12:30:00Z")

        assert response.status_code == 409
        assert response.json()["detail"] == {
            "code": "PROFESSIONAL_BUSY",
            "message": "No professional has available capacity",
        }

    def test_resource_busy(self, client: TestClient, db_session: Session, clinic):
        _, _, chamber_session, _ = clinic
        create_professional(db_session, "Dr. Ruiz")
        _book(client, chamber_session.id)

        response = _book(client, chamber_session.id)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "RESOURCE_BUSY"

    def test_out_of_schedule(self, client: TestClient, clinic):
        _, _, _, consultation = clinic

        response = _book(client, consultation.id, starts_at="2030-01-08T12:00:00Z")

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "OUT_OF_SCHEDULE"

    def test_past_start(self, client: TestClient, clinic):
        _, _, _, consultation = clinic

        response = _book(client, consultation.id, starts_at="2020-01-06T12:00:00Z")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_TIME_RANGE"

    def test_unknown_service(self, client: TestClient, clinic):
        response = _book(client, 999)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"

    def test_notes_too_long(self, client: TestClient, clinic):
        _, _, _, consultation = clinic

        response = _book(client, consultation.id, notes="x" * (MAX_NOTES_LENGTH + 1))

        assert response.status_code == 422

    def test_storage_error_is_internal(self, client: TestClient, clinic, monkeypatch):
        """A storage failure is reported as INTERNAL, never as unavailable."""
        _, _, _, consultation = clinic

        def broken_allocate(self, service_id, start_time, exclude_appointment_id=None):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        monkeypatch.setattr(AllocationPlanner, "allocate", broken_allocate)

        response = _book(client, consultation.id)

        assert response.status_code == 500
        assert response.json()["detail"]["code"] == "INTERNAL"


class TestGetAppointment:
    """Test GET /api/v1/appointments/{appointment_id}."""

    def test_get(self, client: TestClient, clinic):
        _, _, chamber_session, _ = clinic
        appointment_id = _book(client, chamber_session.id).json()["appointment"]["id"]

        response = client.get(f"/api/v1/appointments/{appointment_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == appointment_id
        assert [a["starts_at"] for a in body["allocations"]] == ["2030-01-07T12:00:00Z", "2030-01-07T12:30:00Z"]

    def test_missing(self, client: TestClient, clinic):
        response = client.get("/api/v1/appointments/9999")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"


class TestUpdateAppointment:
    """Test PATCH /api/v1/appointments/{appointment_id}."""

    def test_reschedule(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        appointment_id = _book(client, consultation.id).json()["appointment"]["id"]

        response = client.patch(
            f"/api/v1/appointments/{appointment_id}",
            json={"starts_at": "2030-01-07T12:30:00Z"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["starts_at"] == "2030-01-07T12:30:00Z"
        assert body["allocations"][0]["starts_at"] == "2030-01-07T12:30:00Z"

    def test_failed_reschedule_keeps_original(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        first_id = _book(client, consultation.id).json()["appointment"]["id"]
        _book(client, consultation.id, starts_at="2030-01-07T14:00:00Z")

        response = client.patch(
            f"/api/v1/appointments/{first_id}",
            json={"starts_at": "2030-01-07T13:30:00Z"}
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "PROFESSIONAL_BUSY"
        body = client.get(f"/api/v1/appointments/{first_id}").json()
        assert body["starts_at"] == "2030-01-07T12:00:00Z"
        assert body["allocations"][0]["starts_at"] == "2030-01-07T12:00:00Z"

    def test_confirm(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        appointment_id = _book(client, consultation.id).json()["appointment"]["id"]

        response = client.patch(f"/api/v1/appointments/{appointment_id}", json={"status": "confirmed"})

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

    def test_invalid_transition(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        appointment_id = _book(client, consultation.id).json()["appointment"]["id"]
        client.patch(f"/api/v1/appointments/{appointment_id}", json={"status": "confirmed"})

        response = client.patch(f"/api/v1/appointments/{appointment_id}", json={"status": "scheduled"})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_unknown_status_value(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        appointment_id = _book(client, consultation.id).json()["appointment"]["id"]

        response = client.patch(f"/api/v1/appointments/{appointment_id}", json={"status": "postponed"})

        assert response.status_code == 422

    def test_missing(self, client: TestClient, clinic):
        response = client.patch("/api/v1/appointments/9999", json={"notes": "Hello"})

        assert response.status_code == 404


class TestCancelAppointment:
    """Test DELETE /api/v1/appointments/{appointment_id}."""

    def test_cancel_frees_slot(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        appointment_id = _book(client, consultation.id).json()["appointment"]["id"]

        response = client.delete(f"/api/v1/appointments/{appointment_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["cancelled_at"] is not None
        assert body["allocations"] == []
        assert _book(client, consultation.id).status_code == 201

    def test_cancel_twice(self, client: TestClient, clinic):
        _, _, _, consultation = clinic
        appointment_id = _book(client, consultation.id).json()["appointment"]["id"]
        client.delete(f"/api/v1/appointments/{appointment_id}")

        response = client.delete(f"/api/v1/appointments/{appointment_id}")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_cancel_missing(self, client: TestClient, clinic):
        response = client.delete("/api/v1/appointments/9999")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"
