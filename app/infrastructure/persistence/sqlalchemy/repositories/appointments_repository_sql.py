from dataclasses import asdict
from datetime import date
from typing import List, Optional
import logging

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .....db.models import Appointment
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentQuery,
    AppointmentStatus,
    FeedbackDto,
    PrescriptionDto,
)
from .....exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            patient_id=a.patient_id,
            doctor_id=a.doctor_id,
            patient_name=a.patient_name,
            doctor_name=a.doctor_name,
            appointment_date=a.appointment_date,
            appointment_time=a.appointment_time,
            note=a.note or "",
            status=AppointmentStatus(a.status),
            created_at=a.created_at,
            prescription=PrescriptionDto(**a.prescription) if a.prescription else None,
            feedback=FeedbackDto(**a.feedback) if a.feedback else None,
        )

    def _read(self, description: str, fn):
        try:
            return fn()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error {description}: {e}")
            raise StoreUnavailable()

    def _write(self, description: str, fn):
        try:
            result = fn()
            self.session.commit()
            return result
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error {description}: {e}")
            raise StoreUnavailable()

    def create(self, patient_id: str, doctor_id: str, patient_name: str, doctor_name: str, appointment_date: date, appointment_time: str, note: str) -> AppointmentDto:
        appt = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            patient_name=patient_name,
            doctor_name=doctor_name,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            note=note,
            status=AppointmentStatus.PENDING.value,
        )
        self._write("creating appointment", lambda: self.session.add(appt))
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        a = self._read(
            f"loading appointment {appointment_id}",
            lambda: self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first(),
        )
        return self._appt_to_dto(a) if a else None

    def count_for_patient_on(self, patient_id: str, appointment_date: date) -> int:
        stmt = (
            select(func.count())
            .select_from(Appointment)
            .where(Appointment.patient_id == patient_id)
            .where(Appointment.appointment_date == appointment_date)
        )
        return int(self._read(f"counting bookings for {patient_id}", lambda: self.session.exec(stmt).one()))

    def query(self, query: AppointmentQuery) -> List[AppointmentDto]:
        stmt = select(Appointment)
        if query.patient_id is not None:
            stmt = stmt.where(Appointment.patient_id == query.patient_id)
        if query.doctor_id is not None:
            stmt = stmt.where(Appointment.doctor_id == query.doctor_id)
        if query.appointment_date is not None:
            stmt = stmt.where(Appointment.appointment_date == query.appointment_date)
        stmt = stmt.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        rows = self._read("querying appointments", lambda: self.session.exec(stmt).all())
        return [self._appt_to_dto(r) for r in rows]

    def transition(self, appointment_id: str, expected: AppointmentStatus, new: AppointmentStatus, prescription: Optional[PrescriptionDto] = None) -> bool:
        values = {"status": new.value}
        if prescription is not None:
            values["prescription"] = asdict(prescription)
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self._write(f"updating appointment {appointment_id}", lambda: self.session.execute(stmt))
        return result.rowcount == 1

    def attach_feedback(self, appointment_id: str, feedback: FeedbackDto) -> bool:
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.status == AppointmentStatus.COMPLETED.value)
            .where(Appointment.feedback.is_(None))
            .values(feedback=asdict(feedback))
            .execution_options(synchronize_session=False)
        )
        result = self._write(f"saving feedback for appointment {appointment_id}", lambda: self.session.execute(stmt))
        return result.rowcount == 1
