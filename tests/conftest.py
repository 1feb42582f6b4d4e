from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional
import uuid

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from app.application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentQuery,
    AppointmentStatus,
    FeedbackDto,
    PrescriptionDto,
)
from app.application.ports.user_repo import UserDto


class FakeUserRepo:
    def __init__(self):
        self.users: Dict[str, UserDto] = {}

    def add(self, user_id: str, role: str, first_name: str = "Test", last_name: str = "User") -> UserDto:
        u = UserDto(user_id, f"{user_id}@meditrack.local", role, first_name, last_name, datetime.now(timezone.utc))
        self.users[user_id] = u
        return u

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        return self.users.get(user_id)

    def list_by_role(self, role: str) -> List[UserDto]:
        return [u for u in self.users.values() if u.role == role]

    def create(self, user_id: str, email: str, role: str, first_name: str, last_name: str) -> UserDto:
        u = UserDto(user_id, email, role, first_name, last_name, datetime.now(timezone.utc))
        self.users[user_id] = u
        return u


class FakeApptRepo(AppointmentsRepository):
    def __init__(self):
        self.appts: Dict[str, AppointmentDto] = {}
        self.writes = 0

    def create(self, patient_id, doctor_id, patient_name, doctor_name, appointment_date, appointment_time, note):
        a = AppointmentDto(
            id=str(uuid.uuid4()),
            patient_id=patient_id,
            doctor_id=doctor_id,
            patient_name=patient_name,
            doctor_name=doctor_name,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            note=note,
            status=AppointmentStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        self.appts[a.id] = a
        self.writes += 1
        return replace(a)

    def get_by_id(self, appointment_id):
        a = self.appts.get(appointment_id)
        return replace(a) if a else None

    def count_for_patient_on(self, patient_id, appointment_date):
        return sum(1 for a in self.appts.values() if a.patient_id == patient_id and a.appointment_date == appointment_date)

    def query(self, query: AppointmentQuery):
        return [replace(a) for a in self.appts.values() if query.matches(a)]

    def transition(self, appointment_id, expected, new, prescription: Optional[PrescriptionDto] = None):
        a = self.appts.get(appointment_id)
        if not a or a.status != expected:
            return False
        a.status = new
        if prescription is not None:
            a.prescription = prescription
        self.writes += 1
        return True

    def attach_feedback(self, appointment_id, feedback: FeedbackDto):
        a = self.appts.get(appointment_id)
        if not a or a.status != AppointmentStatus.COMPLETED or a.feedback is not None:
            return False
        a.feedback = feedback
        self.writes += 1
        return True

    def force(self, appointment_id, **fields):
        """Overwrite stored fields directly, bypassing the services."""
        a = self.appts[appointment_id]
        for k, v in fields.items():
            setattr(a, k, v)


@pytest.fixture
def users():
    repo = FakeUserRepo()
    repo.add("doc-1", "doctor", "Gregory", "House")
    repo.add("doc-2", "doctor", "Lisa", "Cuddy")
    repo.add("pat-1", "patient", "Jane", "Doe")
    repo.add("pat-2", "patient", "John", "Roe")
    return repo


@pytest.fixture
def appts():
    return FakeApptRepo()


@pytest.fixture
def sql_engine():
    from app.db import models  # noqa: F401  registers tables

    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()
