from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from datetime import datetime, date


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)


@dataclass(frozen=True)
class PrescriptionDto:
    medicine: str
    dosage: str = ""
    frequency: str = ""
    instructions: str = ""


@dataclass(frozen=True)
class FeedbackDto:
    rating: int
    comment: Optional[str] = None


@dataclass
class AppointmentDto:
    id: str
    patient_id: str
    doctor_id: str
    patient_name: str
    doctor_name: str
    appointment_date: date
    appointment_time: str
    note: str
    status: AppointmentStatus
    created_at: datetime
    prescription: Optional[PrescriptionDto] = None
    feedback: Optional[FeedbackDto] = None


@dataclass(frozen=True)
class AppointmentQuery:
    """Equality filter over patient, doctor and date; unset fields match anything."""

    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    appointment_date: Optional[date] = None

    def matches(self, appt: AppointmentDto) -> bool:
        if self.patient_id is not None and appt.patient_id != self.patient_id:
            return False
        if self.doctor_id is not None and appt.doctor_id != self.doctor_id:
            return False
        if self.appointment_date is not None and appt.appointment_date != self.appointment_date:
            return False
        return True


class AppointmentsRepository:
    def create(self, patient_id: str, doctor_id: str, patient_name: str, doctor_name: str, appointment_date: date, appointment_time: str, note: str) -> AppointmentDto:
        ...

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        ...

    def count_for_patient_on(self, patient_id: str, appointment_date: date) -> int:
        ...

    def query(self, query: AppointmentQuery) -> List[AppointmentDto]:
        ...

    def transition(self, appointment_id: str, expected: AppointmentStatus, new: AppointmentStatus, prescription: Optional[PrescriptionDto] = None) -> bool:
        """Move status from `expected` to `new` in one conditional write.

        Returns False when the record is missing or no longer in `expected`.
        """
        ...

    def attach_feedback(self, appointment_id: str, feedback: FeedbackDto) -> bool:
        """Attach feedback iff the record is completed and has none yet."""
        ...
