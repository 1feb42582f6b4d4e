from dataclasses import asdict
from typing import List, Optional, Union
import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection
from sqlmodel import Session

from ..core.config import settings
from ..database import get_session
from ..auth import get_current_user, require_doctor, require_patient
from ..application.ports.appointments_repo import AppointmentDto, AppointmentQuery, PrescriptionDto
from ..application.ports.user_repo import UserDto, Role
from ..application.services.appointments_service import AppointmentsService, parse_appointment_date
from ..application.services.appointment_workflow import AppointmentWorkflow
from ..application.services.feedback_service import FeedbackService
from ..application.services.prescription_gate import PrescriptionGate, visible_prescription
from ..application.services.live_updates import AppointmentFeed
from ..application.services import dashboard_stats
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from ..schemas.appointments.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    DailyLimitResponse,
    DoctorStatsResponse,
    FeedbackCreate,
    FeedbackResponse,
    PatientAppointmentsResponse,
    PatientStatsResponse,
    PrescriptionPayload,
    PrescriptionView,
)
from ..schemas.common.common import ERROR_RESPONSES
from ..services.auth import resolve_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"], responses=ERROR_RESPONSES)


def get_feed(connection: HTTPConnection) -> Optional[AppointmentFeed]:
    return getattr(connection.app.state, "appointment_feed", None)


def get_appointments_service(session: Session = Depends(get_session), feed: Optional[AppointmentFeed] = Depends(get_feed)) -> AppointmentsService:
    return AppointmentsService(
        repo=SqlAppointmentsRepository(session),
        user_repo=SqlUserRepository(session),
        daily_limit=settings.DAILY_BOOKING_LIMIT,
        time_slots=tuple(settings.CLINIC_TIME_SLOTS),
        feed=feed,
    )


def get_workflow(session: Session = Depends(get_session), feed: Optional[AppointmentFeed] = Depends(get_feed)) -> AppointmentWorkflow:
    return AppointmentWorkflow(repo=SqlAppointmentsRepository(session), feed=feed)


def get_feedback_service(session: Session = Depends(get_session), feed: Optional[AppointmentFeed] = Depends(get_feed)) -> FeedbackService:
    return FeedbackService(repo=SqlAppointmentsRepository(session), feed=feed)


def get_prescription_gate(session: Session = Depends(get_session)) -> PrescriptionGate:
    return PrescriptionGate(repo=SqlAppointmentsRepository(session))


def to_response(a: AppointmentDto, viewer_id: str) -> AppointmentResponse:
    prescription = visible_prescription(a, viewer_id)
    return AppointmentResponse(
        id=a.id,
        patient_id=a.patient_id,
        patient_name=a.patient_name,
        doctor_id=a.doctor_id,
        doctor_name=a.doctor_name,
        appointment_date=a.appointment_date.strftime("%Y-%m-%d"),
        appointment_time=a.appointment_time,
        note=a.note,
        status=a.status.value,
        prescription=PrescriptionPayload(**asdict(prescription)) if prescription else None,
        feedback=FeedbackResponse(rating=a.feedback.rating, comment=a.feedback.comment) if a.feedback else None,
        created_at=a.created_at,
    )


@router.post("/", response_model=AppointmentResponse)
def book_appointment(
    appointment_data: AppointmentCreate,
    patient: UserDto = Depends(require_patient),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.book(
        patient,
        appointment_data.doctor_id,
        appointment_data.appointment_date,
        appointment_data.appointment_time,
        appointment_data.note,
    )
    return to_response(appt, patient.id)


@router.get("/", response_model=List[AppointmentResponse])
def get_user_appointments(
    current_user: UserDto = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return [to_response(a, current_user.id) for a in appt_service.list_for_user(current_user)]


@router.get("/grouped", response_model=PatientAppointmentsResponse)
def get_grouped_appointments(
    patient: UserDto = Depends(require_patient),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    upcoming, past = dashboard_stats.split_upcoming_past(appt_service.list_for_user(patient))
    return PatientAppointmentsResponse(
        upcoming=[to_response(a, patient.id) for a in upcoming],
        past=[to_response(a, patient.id) for a in past],
    )


@router.get("/limit", response_model=DailyLimitResponse)
def get_daily_limit(
    date: str = Query(..., description="YYYY-MM-DD"),
    patient: UserDto = Depends(require_patient),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    day = parse_appointment_date(date)
    booked = appt_service.booked_on(patient.id, day)
    return DailyLimitResponse(
        date=day.strftime("%Y-%m-%d"),
        booked=booked,
        remaining=appt_service.remaining_today(patient.id, day),
        limit=appt_service.daily_limit,
    )


@router.get("/stats", response_model=Union[DoctorStatsResponse, PatientStatsResponse])
def get_stats(
    current_user: UserDto = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appts = appt_service.list_for_user(current_user)
    if current_user.role == Role.DOCTOR.value:
        return DoctorStatsResponse(**asdict(dashboard_stats.doctor_stats(appts)))
    return PatientStatsResponse(**asdict(dashboard_stats.patient_stats(appts)))


@router.websocket("/live")
async def live_appointments(
    websocket: WebSocket,
    token: str = Query(...),
    session: Session = Depends(get_session),
    feed: Optional[AppointmentFeed] = Depends(get_feed),
):
    """Push the caller's full appointment list on every change."""
    uid = await run_in_threadpool(resolve_token, token)
    user = None
    if uid:
        user = await run_in_threadpool(SqlUserRepository(session).get_by_id, uid)
    # the socket may stay open for hours; do not pin a pooled connection
    session.close()
    if user is None or feed is None:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def listener(snapshot: List[AppointmentDto]) -> None:
        payload = [to_response(a, user.id).model_dump(mode="json") for a in snapshot]
        loop.call_soon_threadsafe(queue.put_nowait, payload)

    if user.role == Role.DOCTOR.value:
        query = AppointmentQuery(doctor_id=user.id)
    else:
        query = AppointmentQuery(patient_id=user.id)

    async def pump() -> None:
        while True:
            await websocket.send_json(await queue.get())

    subscription = await run_in_threadpool(feed.subscribe, query, listener)
    sender = asyncio.create_task(pump())
    logger.info(f"Live appointments subscription opened for {user.id}")
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Live appointments subscription closed for {user.id}")
    finally:
        subscription.cancel()
        sender.cancel()
        with contextlib.suppress(Exception, asyncio.CancelledError):
            await sender


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    current_user: UserDto = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return to_response(appt_service.get_for_user(current_user.id, appointment_id), current_user.id)


@router.put("/{appointment_id}/accept", response_model=AppointmentResponse)
def accept_appointment(
    appointment_id: str,
    doctor: UserDto = Depends(require_doctor),
    workflow: AppointmentWorkflow = Depends(get_workflow),
):
    return to_response(workflow.accept(appointment_id, doctor.id), doctor.id)


@router.put("/{appointment_id}/decline", response_model=AppointmentResponse)
def decline_appointment(
    appointment_id: str,
    doctor: UserDto = Depends(require_doctor),
    workflow: AppointmentWorkflow = Depends(get_workflow),
):
    return to_response(workflow.decline(appointment_id, doctor.id), doctor.id)


@router.put("/{appointment_id}/start", response_model=AppointmentResponse)
def start_appointment(
    appointment_id: str,
    doctor: UserDto = Depends(require_doctor),
    workflow: AppointmentWorkflow = Depends(get_workflow),
):
    return to_response(workflow.start(appointment_id, doctor.id), doctor.id)


@router.put("/{appointment_id}/complete", response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: str,
    prescription: PrescriptionPayload,
    doctor: UserDto = Depends(require_doctor),
    workflow: AppointmentWorkflow = Depends(get_workflow),
):
    appt = workflow.complete_with_prescription(appointment_id, doctor.id, PrescriptionDto(**prescription.model_dump()))
    return to_response(appt, doctor.id)


@router.get("/{appointment_id}/prescription", response_model=PrescriptionView)
def view_prescription(
    appointment_id: str,
    current_user: UserDto = Depends(get_current_user),
    gate: PrescriptionGate = Depends(get_prescription_gate),
):
    prescription = gate.view_prescription(appointment_id, current_user.id)
    if prescription is None:
        return PrescriptionView(available=False)
    return PrescriptionView(available=True, prescription=PrescriptionPayload(**asdict(prescription)))


@router.post("/{appointment_id}/feedback", response_model=AppointmentResponse)
def submit_feedback(
    appointment_id: str,
    feedback: FeedbackCreate,
    patient: UserDto = Depends(require_patient),
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    appt = feedback_service.submit_feedback(appointment_id, patient.id, feedback.rating, feedback.comment)
    return to_response(appt, patient.id)
