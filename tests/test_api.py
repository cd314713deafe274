"""HTTP-level tests: slot listing, booking, status changes and error mapping."""

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from telecare.core.db import get_session
from telecare.core.security import create_access_token
from telecare.main import app
from telecare.models.appointment import AppointmentStatus

from tests.conftest import MONDAY, TUESDAY, make_appointment, seed


def _auth(uid: str, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(uid, role)}"}


PATIENT = _auth("patient-1", "patient")
DOCTOR = _auth("doc-1", "doctor")


@pytest_asyncio.fixture
async def client(clinic):
    async def override_session():
        async with clinic() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def _booking(**overrides) -> dict:
    body = {
        "user_name": "Lucia Rojas",
        "doctor_id": "doc-1",
        "appointment_date": "2024-06-03T09:30",
        "conversation_id": "conv-1",
    }
    body.update(overrides)
    return body


class TestSlots:
    @pytest.mark.asyncio
    async def test_monday(self, client):
        r = await client.get("/api/v1/doctors/doc-1/slots", params={"date": MONDAY})
        assert r.status_code == 200
        assert r.json() == {"doctor_id": "doc-1", "date": MONDAY, "slots": ["09:00", "09:30"]}

    @pytest.mark.asyncio
    async def test_tuesday_empty(self, client):
        r = await client.get("/api/v1/doctors/doc-1/slots", params={"date": TUESDAY})
        assert r.json()["slots"] == []

    @pytest.mark.asyncio
    async def test_bad_date(self, client):
        r = await client.get("/api/v1/doctors/doc-1/slots", params={"date": "06/03/2024"})
        assert r.status_code == 422
        assert r.json()["error"] == "ValidationFailure"

    @pytest.mark.asyncio
    async def test_unknown_doctor(self, client):
        r = await client.get("/api/v1/doctors/ghost/slots", params={"date": MONDAY})
        assert r.status_code == 404


class TestBooking:
    @pytest.mark.asyncio
    async def test_book_then_check_live(self, client):
        r = await client.get("/api/v1/appointments/live", params={"doctor_id": "doc-1"}, headers=PATIENT)
        assert r.json() == {"doctor_id": "doc-1", "has_live_appointment": False}

        r = await client.post("/api/v1/appointments", json=_booking(), headers=PATIENT)
        assert r.status_code == 201
        body = r.json()
        assert body["status"] == "pending"
        assert body["user_id"] == "patient-1"
        assert body["doctor_name"] == "Dr. Ana Quispe"
        assert body["appointment_date"] == "2024-06-03T09:30:00"

        r = await client.get("/api/v1/appointments/live", params={"doctor_id": "doc-1"}, headers=PATIENT)
        assert r.json()["has_live_appointment"] is True

        r = await client.get("/api/v1/doctors/doc-1/slots", params={"date": MONDAY})
        assert r.json()["slots"] == ["09:00"]

    @pytest.mark.asyncio
    async def test_taken_slot_is_conflict(self, client, clinic):
        await seed(clinic, make_appointment("a1", datetime(2024, 6, 3, 9, 30)))
        r = await client.post("/api/v1/appointments", json=_booking(), headers=PATIENT)
        assert r.status_code == 409
        assert r.json()["error"] == "SlotUnavailable"

    @pytest.mark.asyncio
    async def test_malformed_datetime(self, client):
        r = await client.post(
            "/api/v1/appointments", json=_booking(appointment_date="soon"), headers=PATIENT
        )
        assert r.status_code == 422

    @pytest.mark.asyncio
    async def test_requires_patient_token(self, client):
        r = await client.post("/api/v1/appointments", json=_booking())
        assert r.status_code == 401
        r = await client.post("/api/v1/appointments", json=_booking(), headers=DOCTOR)
        assert r.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        r = await client.post(
            "/api/v1/appointments", json=_booking(), headers={"Authorization": "Bearer nope"}
        )
        assert r.status_code == 401


class TestDoctorActions:
    @pytest.mark.asyncio
    async def test_confirm_and_complete(self, client, clinic):
        await seed(clinic, make_appointment("a1", datetime(2024, 6, 3, 9, 0), AppointmentStatus.PENDING))
        r = await client.patch("/api/v1/appointments/a1/status", json={"status": "confirmed"}, headers=DOCTOR)
        assert r.status_code == 200
        assert r.json()["status"] == "confirmed"
        r = await client.patch("/api/v1/appointments/a1/status", json={"status": "completed"}, headers=DOCTOR)
        assert r.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_illegal_transition(self, client, clinic):
        await seed(clinic, make_appointment("a1", datetime(2024, 6, 3, 9, 0), AppointmentStatus.DECLINED))
        r = await client.patch("/api/v1/appointments/a1/status", json={"status": "confirmed"}, headers=DOCTOR)
        assert r.status_code == 422
        assert r.json()["error"] == "InvalidStatusTransition"

    @pytest.mark.asyncio
    async def test_other_doctors_appointment(self, client, clinic):
        await seed(clinic, make_appointment("a1", datetime(2024, 6, 3, 9, 0), AppointmentStatus.PENDING))
        r = await client.patch(
            "/api/v1/appointments/a1/status",
            json={"status": "confirmed"},
            headers=_auth("doc-2", "doctor"),
        )
        assert r.status_code == 404

    @pytest.mark.asyncio
    async def test_agenda_and_patient_list(self, client, clinic):
        await seed(
            clinic,
            make_appointment("a1", datetime(2024, 6, 3, 9, 0), user_id="patient-1"),
            make_appointment("a2", datetime(2024, 6, 3, 9, 30), AppointmentStatus.PENDING),
        )
        r = await client.get("/api/v1/appointments", headers=DOCTOR)
        assert [a["id"] for a in r.json()] == ["a1", "a2"]
        r = await client.get("/api/v1/appointments", params={"status": "pending"}, headers=DOCTOR)
        assert [a["id"] for a in r.json()] == ["a2"]
        r = await client.get("/api/v1/appointments", headers=PATIENT)
        assert [a["id"] for a in r.json()] == ["a1"]

    @pytest.mark.asyncio
    async def test_replace_working_hours(self, client):
        template = {
            "working_hours": [
                {"day_of_week": 2, "slots": [{"start": "14:00", "end": "15:00"}]},
            ]
        }
        r = await client.put("/api/v1/doctors/doc-1/working-hours", json=template, headers=DOCTOR)
        assert r.status_code == 200
        assert r.json()["working_hours"] == template["working_hours"]

        r = await client.get("/api/v1/doctors/doc-1/slots", params={"date": TUESDAY})
        assert r.json()["slots"] == ["14:00", "14:30"]
        r = await client.get("/api/v1/doctors/doc-1/slots", params={"date": MONDAY})
        assert r.json()["slots"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "working_hours",
        [
            [{"day_of_week": 1, "slots": [{"start": "10:00", "end": "09:00"}]}],
            [{"day_of_week": 1, "slots": []}, {"day_of_week": 1, "slots": []}],
            [{"day_of_week": 7, "slots": []}],
            [{"day_of_week": 1, "slots": [{"start": "9am", "end": "10:00"}]}],
        ],
    )
    async def test_invalid_template_rejected(self, client, working_hours):
        r = await client.put(
            "/api/v1/doctors/doc-1/working-hours",
            json={"working_hours": working_hours},
            headers=DOCTOR,
        )
        assert r.status_code == 422

    @pytest.mark.asyncio
    async def test_cannot_edit_other_schedule(self, client):
        r = await client.put(
            "/api/v1/doctors/doc-1/working-hours",
            json={"working_hours": []},
            headers=_auth("doc-2", "doctor"),
        )
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_read_doctor(client):
    r = await client.get("/api/v1/doctors/doc-1")
    assert r.status_code == 200
    body = r.json()
    assert body["uid"] == "doc-1"
    assert body["working_hours"] == [
        {"day_of_week": 1, "slots": [{"start": "09:00", "end": "10:00"}]}
    ]
