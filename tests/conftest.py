"""Shared pytest fixtures.

The app reads its settings at import time, so the test database URL is
exported before anything from ``app`` is imported.
"""

import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="clinicbook-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/test.db"
os.environ["SECRET_KEY"] = "test-secret-key"

from datetime import datetime, time

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlmodel import SQLModel, select, func

from app.core.security import create_access_token
from app.db.models import Appointment, Doctor, DoctorAvailability, FamilyMember, Patient, User
from app.db.session import async_session, engine
from app.main import app

# Monday, far enough ahead to stay bookable and cancellable
FUTURE_MONDAY = datetime(2030, 1, 7, 10, 0)


@pytest_asyncio.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    # Pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(database):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    async def _make_user(email, name="Test User", phone="9876543210", with_patient=True):
        user = User(email=email, name=name, phone=phone, role="PATIENT")
        session.add(user)
        await session.flush()
        patient = None
        if with_patient:
            patient = Patient(user_id=user.id)
            session.add(patient)
        await session.commit()
        return user, patient
    return _make_user


@pytest.fixture
def make_family_member(session):
    async def _make_family_member(patient, name="Anna", relationship="CHILD", **fields):
        member = FamilyMember(patient_id=patient.id, name=name, relationship=relationship, **fields)
        session.add(member)
        await session.commit()
        return member
    return _make_family_member


@pytest_asyncio.fixture
async def doctor(session):
    doctor = Doctor(name="Dr. Kavitha Thomas", specialization="Homoeopathy")
    session.add(doctor)
    await session.flush()
    session.add(DoctorAvailability(
        doctor_id=doctor.id,
        day_of_week=1,
        start_time=time(9, 0),
        end_time=time(12, 0),
    ))
    await session.commit()
    return doctor


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def fetch():
    """Load a row through a fresh session so API-side writes are visible."""
    async def _fetch(model, ident):
        async with async_session() as fresh:
            return await fresh.get(model, ident)
    return _fetch


@pytest.fixture
def count_rows():
    async def _count_rows(model, *where):
        async with async_session() as fresh:
            result = await fresh.execute(select(func.count()).select_from(model).where(*where))
            return result.scalar()
    return _count_rows


@pytest.fixture
def booking_payload(doctor):
    def _booking_payload(booking_for="MYSELF", when=FUTURE_MONDAY, **fields):
        payload = {
            "doctorId": str(doctor.id),
            "appointmentDate": when.isoformat(),
            "appointmentType": "IN_PERSON",
            "serviceType": "GENERAL_CONSULTATION",
            "bookingFor": booking_for,
            "symptoms": "Recurring headaches",
            "agreeToTerms": True,
        }
        payload.update(fields)
        return payload
    return _booking_payload


@pytest.fixture
def make_appointment(session, doctor):
    async def _make_appointment(patient, booked_by, when=FUTURE_MONDAY, status="CONFIRMED", **fields):
        from app.services.slot_service import slot_bucket

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_date=when,
            slot_start=slot_bucket(when)[0],
            appointment_type="IN_PERSON",
            service_type="GENERAL_CONSULTATION",
            status=status,
            symptoms="Seasonal allergy",
            booked_by_user_id=booked_by.id,
            **fields,
        )
        session.add(appointment)
        await session.commit()
        return appointment
    return _make_appointment
