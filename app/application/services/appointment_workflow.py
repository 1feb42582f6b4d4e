from dataclasses import dataclass
from typing import Optional
import logging

from ..ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentStatus,
    PrescriptionDto,
)
from ...exceptions import AppointmentNotFound, InvalidTransition, MissingMedicine, NotAssignedDoctor
from .live_updates import AppointmentFeed

logger = logging.getLogger(__name__)

# action -> (required current status, resulting status)
TRANSITIONS = {
    "accept": (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED),
    "decline": (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED),
    "start": (AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS),
    "complete": (AppointmentStatus.IN_PROGRESS, AppointmentStatus.COMPLETED),
}


@dataclass
class AppointmentWorkflow:
    """Drives an appointment through its states on behalf of the assigned doctor.

    pending -> confirmed -> in-progress -> completed, or pending -> cancelled.
    Completed and cancelled are terminal. Every step is a single conditional
    write, so a step that loses a race is reported as an invalid transition
    and leaves the record as the winner wrote it.
    """

    repo: AppointmentsRepository
    feed: Optional[AppointmentFeed] = None

    def accept(self, appointment_id: str, doctor_id: str) -> AppointmentDto:
        return self._advance(appointment_id, doctor_id, "accept")

    def decline(self, appointment_id: str, doctor_id: str) -> AppointmentDto:
        return self._advance(appointment_id, doctor_id, "decline")

    def start(self, appointment_id: str, doctor_id: str) -> AppointmentDto:
        return self._advance(appointment_id, doctor_id, "start")

    def complete_with_prescription(self, appointment_id: str, doctor_id: str, prescription: PrescriptionDto) -> AppointmentDto:
        appt = self._load_assigned(appointment_id, doctor_id)
        self._check_from(appt, "complete")
        medicine = (prescription.medicine or "").strip()
        if not medicine:
            raise MissingMedicine()
        clean = PrescriptionDto(
            medicine=medicine,
            dosage=(prescription.dosage or "").strip(),
            frequency=(prescription.frequency or "").strip(),
            instructions=(prescription.instructions or "").strip(),
        )
        return self._commit(appt, "complete", clean)

    def _advance(self, appointment_id: str, doctor_id: str, action: str) -> AppointmentDto:
        appt = self._load_assigned(appointment_id, doctor_id)
        self._check_from(appt, action)
        return self._commit(appt, action)

    def _load_assigned(self, appointment_id: str, doctor_id: str) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise AppointmentNotFound(appointment_id)
        if appt.doctor_id != doctor_id:
            logger.warning(f"User {doctor_id} is not the doctor assigned to appointment {appointment_id}")
            raise NotAssignedDoctor()
        return appt

    def _check_from(self, appt: AppointmentDto, action: str) -> None:
        required, _ = TRANSITIONS[action]
        if appt.status != required:
            logger.warning(f"Rejected {action} on appointment {appt.id} in state {appt.status.value}")
            raise InvalidTransition(action, appt.status.value)

    def _commit(self, appt: AppointmentDto, action: str, prescription: Optional[PrescriptionDto] = None) -> AppointmentDto:
        required, target = TRANSITIONS[action]
        if not self.repo.transition(appt.id, required, target, prescription=prescription):
            current = self.repo.get_by_id(appt.id)
            raise InvalidTransition(action, current.status.value if current else "missing")
        updated = self.repo.get_by_id(appt.id)
        logger.info(f"Appointment {appt.id}: {required.value} -> {target.value}")
        if self.feed:
            self.feed.publish(updated)
        return updated
