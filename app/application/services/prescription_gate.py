from dataclasses import dataclass
from typing import Optional

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, AppointmentStatus, PrescriptionDto
from ...exceptions import AppointmentNotFound


def visible_prescription(appt: AppointmentDto, requester_id: str) -> Optional[PrescriptionDto]:
    """Prescription as seen by `requester_id`, or None when not available to them."""
    if appt.status != AppointmentStatus.COMPLETED:
        return None
    if requester_id not in (appt.patient_id, appt.doctor_id):
        return None
    return appt.prescription


@dataclass
class PrescriptionGate:
    repo: AppointmentsRepository

    def view_prescription(self, appointment_id: str, requester_id: str) -> Optional[PrescriptionDto]:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise AppointmentNotFound(appointment_id)
        return visible_prescription(appt, requester_id)
