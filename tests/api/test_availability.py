import pytest
from fastapi.testclient import TestClient

from src.live_sessions_backend.models import availability as availability_models
from src.live_sessions_backend.services.scheduling_engine import SchedulingEngine
from tests.constants import TEST_INSTRUCTOR_ID, TEST_UNKNOWN_ID
from tests.factories import AvailabilityWindowCreateFactory, BookingRequestCreateFactory


def window_payload(**overrides) -> dict:
    return AvailabilityWindowCreateFactory(**overrides).model_dump(mode="json")


def test_health_check(client: TestClient):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.anyio
class TestAvailabilityAPICreate:
    """Test class for POST endpoints of the Availability API."""

    async def test_create_window_success(self, client: TestClient):
        """Test creating a window and reading back its generated slots."""
        print("\n--- Testing POST /availability/ ---")
        response = client.post("/availability/", json=window_payload(title="Morning block"))

        assert response.status_code == 201, response.json()
        window = availability_models.AvailabilityWindow(**response.json())
        assert window.title == "Morning block"

        slots_response = client.get(f"/availability/{window.id}/slots")
        assert slots_response.status_code == 200
        slots = slots_response.json()
        assert len(slots) == 3
        assert all(s["status"] == "available" and s["available_spots"] == 1 for s in slots)
        print(f"Created window {window.id} with {len(slots)} slots.")

    async def test_create_window_reports_every_error(self, client: TestClient):
        """Test that all validation messages come back together with a 422."""
        response = client.post("/availability/", json=window_payload(
            start_time="12:00:00", end_time="09:00:00", max_bookings_per_slot=0
        ))

        assert response.status_code == 422
        body = response.json()
        assert body["kind"] == "WindowValidationError"
        assert body["errors"] == [
            "Start time must be before end time",
            "Maximum sessions per slot must be at least 1",
        ]

    async def test_import_and_export(self, client: TestClient, window: availability_models.AvailabilityWindow):
        """Test the CSV round trip through the API."""
        print("\n--- Testing CSV export and import ---")
        export_response = client.get("/availability/export")

        assert export_response.status_code == 200
        assert export_response.headers["content-type"].startswith("text/csv")
        assert export_response.text.startswith("Date,Start Time,End Time,Title,Status,Max Sessions,Duration,Notes")

        import_response = client.post("/availability/import", json={
            "instructor_id": str(TEST_INSTRUCTOR_ID),
            "csv_data": export_response.text
        })

        assert import_response.status_code == 201, import_response.json()
        assert import_response.json()["count"] == 1
        assert len(client.get("/availability/").json()) == 2

    async def test_import_with_bad_row(self, client: TestClient):
        csv_data = "Date,Start Time,End Time,Title,Status,Max Sessions,Duration,Notes\n2024-06-10,10:00,09:00,,Active,1,60,\n"

        response = client.post("/availability/import", json={"instructor_id": str(TEST_INSTRUCTOR_ID), "csv_data": csv_data})

        assert response.status_code == 422
        assert response.json()["errors"] == ["Row 2: Start time must be before end time"]


@pytest.mark.anyio
class TestAvailabilityAPIGET:
    """Test class for GET endpoints of the Availability API."""

    async def test_get_window(self, client: TestClient, window: availability_models.AvailabilityWindow):
        response = client.get(f"/availability/{window.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(window.id)

    async def test_get_window_not_found(self, client: TestClient):
        response = client.get(f"/availability/{TEST_UNKNOWN_ID}")

        assert response.status_code == 404
        assert response.json()["kind"] == "WindowNotFoundError"

    async def test_list_windows_by_range(self, client: TestClient, window: availability_models.AvailabilityWindow):
        inside = client.get("/availability/", params={"start_date": "2024-06-10", "end_date": "2024-06-10"})
        outside = client.get("/availability/", params={"start_date": "2024-06-11"})

        assert [w["id"] for w in inside.json()] == [str(window.id)]
        assert outside.json() == []

    async def test_upcoming_and_weekly_summary(self, client: TestClient, window: availability_models.AvailabilityWindow):
        upcoming = client.get("/availability/upcoming", params={"days": 7})
        summary = client.get("/availability/weekly-summary")

        assert len(upcoming.json()) == 1
        assert summary.json() == [{"day_of_week": 0, "day_name": "Monday", "count": 1, "total_hours": 3.0}]

    async def test_stats(self, client: TestClient, window: availability_models.AvailabilityWindow):
        response = client.get(f"/availability/{window.id}/stats")

        assert response.status_code == 200
        assert response.json()["total_slots"] == 3
        assert response.json()["available_slots"] == 3
        assert client.get("/availability/stats").json()["total_slots"] == 3


@pytest.mark.anyio
class TestAvailabilityAPIUpdateDelete:
    """Test class for PATCH and DELETE endpoints of the Availability API."""

    async def test_update_window(self, client: TestClient, window: availability_models.AvailabilityWindow):
        response = client.patch(f"/availability/{window.id}", json={"end_time": "13:00:00"})

        assert response.status_code == 200, response.json()
        assert response.json()["end_time"] == "13:00:00"
        assert len(client.get(f"/availability/{window.id}/slots").json()) == 4

    async def test_update_window_invalid(self, client: TestClient, window: availability_models.AvailabilityWindow):
        response = client.patch(f"/availability/{window.id}", json={"slot_duration_minutes": 5})

        assert response.status_code == 422
        assert response.json()["errors"] == ["Slot duration must be at least 15 minutes"]

    async def test_delete_window(self, client: TestClient, window: availability_models.AvailabilityWindow):
        response = client.delete(f"/availability/{window.id}")

        assert response.status_code == 204
        assert client.get(f"/availability/{window.id}").status_code == 404

    async def test_delete_window_with_reservation(
        self,
        client: TestClient,
        engine: SchedulingEngine,
        window: availability_models.AvailabilityWindow,
        window_slots
    ):
        """Test that a window holding a reservation cannot be deleted."""
        request = await engine.submit_request(BookingRequestCreateFactory(slot_id=window_slots[0].id))
        await engine.accept_request(request.id)

        response = client.delete(f"/availability/{window.id}")

        assert response.status_code == 409
        assert response.json()["kind"] == "ConflictError"
        assert len(response.json()["conflicts"]) == 1
