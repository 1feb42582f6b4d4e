from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
from datetime import datetime, date
import logging

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, AppointmentQuery
from ..ports.user_repo import UserRepository, UserDto, Role
from ...core.config import DEFAULT_TIME_SLOTS
from ...exceptions import (
    AppointmentNotFound,
    DailyLimitExceeded,
    InvalidDate,
    InvalidSlot,
    NotOwner,
    PastDate,
    UnknownDoctor,
)
from .live_updates import AppointmentFeed
from .dashboard_stats import sort_appointments

logger = logging.getLogger(__name__)


def parse_appointment_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidDate()


@dataclass
class AppointmentsService:
    """Admits new bookings and serves appointment lists to their parties."""

    repo: AppointmentsRepository
    user_repo: UserRepository
    daily_limit: int = 2
    time_slots: Sequence[str] = tuple(DEFAULT_TIME_SLOTS)
    feed: Optional[AppointmentFeed] = None
    today: Callable[[], date] = date.today

    def book(self, patient: UserDto, doctor_id: str, appointment_date, appointment_time: str, note: Optional[str] = None) -> AppointmentDto:
        doctor = self.user_repo.get_by_id(doctor_id)
        if not doctor or doctor.role != Role.DOCTOR.value:
            logger.warning(f"Booking rejected for patient {patient.id}: unknown doctor {doctor_id}")
            raise UnknownDoctor(doctor_id)

        requested = parse_appointment_date(appointment_date)
        if requested < self.today():
            raise PastDate()

        if appointment_time not in self.time_slots:
            raise InvalidSlot(appointment_time)

        # Read-then-write: concurrent bookings may both pass this check
        booked = self.repo.count_for_patient_on(patient.id, requested)
        if booked >= self.daily_limit:
            logger.warning(f"Daily limit reached for patient {patient.id} on {requested}")
            raise DailyLimitExceeded(self.daily_limit)

        appt = self.repo.create(
            patient.id,
            doctor.id,
            patient.display_name,
            doctor.display_name,
            requested,
            appointment_time,
            (note or "").strip(),
        )
        logger.info(f"Appointment {appt.id} booked for {requested} {appointment_time}")
        if self.feed:
            self.feed.publish(appt)
        return appt

    def remaining_today(self, patient_id: str, appointment_date) -> int:
        booked = self.repo.count_for_patient_on(patient_id, parse_appointment_date(appointment_date))
        return max(self.daily_limit - booked, 0)

    def booked_on(self, patient_id: str, appointment_date) -> int:
        return self.repo.count_for_patient_on(patient_id, parse_appointment_date(appointment_date))

    def list_for_user(self, user: UserDto) -> List[AppointmentDto]:
        if user.role == Role.DOCTOR.value:
            query = AppointmentQuery(doctor_id=user.id)
        else:
            query = AppointmentQuery(patient_id=user.id)
        return sort_appointments(self.repo.query(query))

    def get_for_user(self, user_id: str, appointment_id: str) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise AppointmentNotFound(appointment_id)
        if user_id not in (appt.patient_id, appt.doctor_id):
            raise NotOwner()
        return appt
