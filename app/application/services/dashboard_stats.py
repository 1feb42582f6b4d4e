from dataclasses import dataclass
from typing import Iterable, List

from ..ports.appointments_repo import AppointmentDto, AppointmentStatus

ACTIVE_STATUSES = (AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS)
UPCOMING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS)
PAST_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)


@dataclass
class DoctorStats:
    pending_count: int
    active_count: int
    completed_count: int
    average_rating: float


@dataclass
class PatientStats:
    upcoming_count: int
    prescription_count: int
    completed_count: int


def sort_appointments(appointments: Iterable[AppointmentDto]) -> List[AppointmentDto]:
    """Latest (date, time) first."""
    return sorted(appointments, key=lambda a: (a.appointment_date, a.appointment_time), reverse=True)


def doctor_stats(appointments: Iterable[AppointmentDto]) -> DoctorStats:
    appointments = list(appointments)
    ratings = [a.feedback.rating for a in appointments if a.feedback is not None]
    return DoctorStats(
        pending_count=sum(1 for a in appointments if a.status == AppointmentStatus.PENDING),
        active_count=sum(1 for a in appointments if a.status in ACTIVE_STATUSES),
        completed_count=sum(1 for a in appointments if a.status == AppointmentStatus.COMPLETED),
        average_rating=(sum(ratings) / len(ratings)) if ratings else 0.0,
    )


def patient_stats(appointments: Iterable[AppointmentDto]) -> PatientStats:
    appointments = list(appointments)
    return PatientStats(
        upcoming_count=sum(1 for a in appointments if a.status in UPCOMING_STATUSES),
        prescription_count=sum(1 for a in appointments if a.prescription is not None),
        completed_count=sum(1 for a in appointments if a.status == AppointmentStatus.COMPLETED),
    )


def split_upcoming_past(appointments: Iterable[AppointmentDto]):
    ordered = sort_appointments(appointments)
    upcoming = [a for a in ordered if a.status in UPCOMING_STATUSES]
    past = [a for a in ordered if a.status in PAST_STATUSES]
    return upcoming, past
