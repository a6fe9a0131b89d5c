"""Tests for slot bucketing and conflict checks."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from app.db.models import Appointment
from app.services.slot_service import SlotService, slot_bucket

FUTURE_MONDAY = datetime(2030, 1, 7, 10, 0)


class TestSlotBucket:
    def test_minutes_in_same_half_hour_share_bucket(self):
        first = slot_bucket(datetime(2030, 1, 7, 10, 17))
        second = slot_bucket(datetime(2030, 1, 7, 10, 25))
        assert first == second
        assert first[0] == datetime(2030, 1, 7, 10, 0)
        assert first[1] == datetime(2030, 1, 7, 10, 30)

    def test_buckets_are_fixed_not_sliding(self):
        assert slot_bucket(datetime(2030, 1, 7, 10, 29))[0] == datetime(2030, 1, 7, 10, 0)
        assert slot_bucket(datetime(2030, 1, 7, 10, 31))[0] == datetime(2030, 1, 7, 10, 30)

    def test_seconds_and_micros_are_dropped(self):
        start, _ = slot_bucket(datetime(2030, 1, 7, 10, 45, 59, 999))
        assert start == datetime(2030, 1, 7, 10, 30)

    def test_aware_datetimes_are_bucketed_in_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        start, _ = slot_bucket(datetime(2030, 1, 7, 15, 50, tzinfo=ist))
        assert start == datetime(2030, 1, 7, 10, 0)
        assert start.tzinfo is None


class TestIsSlotTaken:
    @pytest.mark.asyncio
    async def test_free_slot(self, session, doctor):
        assert await SlotService(session).is_slot_taken(doctor.id, FUTURE_MONDAY) is False

    @pytest.mark.asyncio
    async def test_same_bucket_is_taken(self, session, doctor, make_user, make_appointment):
        user, patient = await make_user("slot@example.com")
        await make_appointment(patient, user, when=FUTURE_MONDAY.replace(minute=17))

        service = SlotService(session)
        assert await service.is_slot_taken(doctor.id, FUTURE_MONDAY.replace(minute=25)) is True
        assert await service.is_slot_taken(doctor.id, FUTURE_MONDAY.replace(minute=31)) is False

    @pytest.mark.asyncio
    async def test_cancelled_appointments_free_the_slot(self, session, doctor, make_user, make_appointment):
        user, patient = await make_user("cancelled@example.com")
        await make_appointment(patient, user, status="CANCELLED")

        assert await SlotService(session).is_slot_taken(doctor.id, FUTURE_MONDAY) is False

    @pytest.mark.asyncio
    async def test_database_rejects_second_live_appointment_in_bucket(self, session, make_user, make_appointment):
        user, patient = await make_user("race@example.com")
        await make_appointment(patient, user, when=FUTURE_MONDAY.replace(minute=5))

        with pytest.raises(IntegrityError):
            await make_appointment(patient, user, when=FUTURE_MONDAY.replace(minute=20))
        await session.rollback()

    @pytest.mark.asyncio
    async def test_cancelled_row_does_not_hold_the_index(self, session, make_user, make_appointment, count_rows):
        user, patient = await make_user("rebook@example.com")
        await make_appointment(patient, user, status="CANCELLED")
        await make_appointment(patient, user, when=FUTURE_MONDAY.replace(minute=10))

        assert await count_rows(Appointment) == 2


class TestAvailableSlots:
    @pytest.mark.asyncio
    async def test_lists_open_slots_and_skips_booked_bucket(self, session, doctor, make_user, make_appointment):
        user, patient = await make_user("avail@example.com")
        await make_appointment(patient, user, when=FUTURE_MONDAY.replace(minute=10))

        slots = await SlotService(session).available_slots(doctor.id, FUTURE_MONDAY.date())

        assert slots == ["09:00", "09:30", "10:30", "11:00", "11:30"]

    @pytest.mark.asyncio
    async def test_no_availability_on_other_days(self, session, doctor):
        tuesday = (FUTURE_MONDAY + timedelta(days=1)).date()
        assert await SlotService(session).available_slots(doctor.id, tuesday) == []

    @pytest.mark.asyncio
    async def test_inactive_doctor(self, session, doctor):
        doctor.is_active = False
        session.add(doctor)
        await session.commit()

        with pytest.raises(HTTPException) as exc:
            await SlotService(session).available_slots(doctor.id, FUTURE_MONDAY.date())
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_availability_endpoint(self, client, doctor):
        response = await client.get(
            "/api/v1/appointments/availability",
            params={"doctorId": str(doctor.id), "date": FUTURE_MONDAY.date().isoformat()},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["availableSlots"][0] == "09:00"
