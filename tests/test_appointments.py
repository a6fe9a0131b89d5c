"""Tests for the patient's appointment list and cancellation."""

from datetime import timedelta

import pytest

from app.core.utils import utcnow
from app.db.models import Appointment
from app.services.slot_service import SlotService


class TestListAppointments:
    @pytest.mark.asyncio
    async def test_includes_booked_and_merged_appointments(self, client, make_user, make_appointment, auth_headers):
        user, patient = await make_user("me@example.com")
        other, other_patient = await make_user("other@example.com")
        own = await make_appointment(patient, user)
        booked_for_other = await make_appointment(
            other_patient, user, when=own.appointment_date + timedelta(hours=1), booked_by_patient_id=patient.id
        )
        await make_appointment(other_patient, other, when=own.appointment_date + timedelta(hours=2))

        response = await client.get("/api/v1/appointments/patient", headers=auth_headers(user))

        assert response.status_code == 200
        body = response.json()
        assert {a["id"] for a in body["appointments"]} == {str(own.id), str(booked_for_other.id)}
        assert body["upcomingCount"] == 2
        assert body["totalCount"] == 2

    @pytest.mark.asyncio
    async def test_past_filter(self, client, make_user, make_appointment, auth_headers):
        user, patient = await make_user("past@example.com")
        await make_appointment(patient, user)
        old = await make_appointment(patient, user, when=utcnow() - timedelta(days=3), status="COMPLETED")

        response = await client.get("/api/v1/appointments/patient", params={"status": "past"}, headers=auth_headers(user))

        assert [a["id"] for a in response.json()["appointments"]] == [str(old.id)]


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_frees_the_slot(self, client, session, doctor, make_user, make_appointment, auth_headers, fetch):
        user, patient = await make_user("cancel@example.com")
        appointment = await make_appointment(patient, user)

        response = await client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "CANCELLED"
        stored = await fetch(Appointment, appointment.id)
        assert stored.cancelled_at is not None
        assert await SlotService(session).is_slot_taken(doctor.id, appointment.appointment_date) is False

    @pytest.mark.asyncio
    async def test_short_notice_is_rejected(self, client, make_user, make_appointment, auth_headers):
        user, patient = await make_user("late@example.com")
        appointment = await make_appointment(patient, user, when=utcnow() + timedelta(hours=3))

        response = await client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(user))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Cancellation policy violation"
        assert body["hoursUntilAppointment"] == 3

    @pytest.mark.asyncio
    async def test_already_cancelled(self, client, make_user, make_appointment, auth_headers):
        user, patient = await make_user("twice@example.com")
        appointment = await make_appointment(patient, user, status="CANCELLED")

        response = await client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["error"] == "Appointment already cancelled"

    @pytest.mark.asyncio
    async def test_other_patients_appointment_is_hidden(self, client, make_user, make_appointment, auth_headers):
        owner, owner_patient = await make_user("owner@example.com")
        appointment = await make_appointment(owner_patient, owner)
        intruder, _ = await make_user("intruder@example.com")

        response = await client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(intruder))

        assert response.status_code == 404
