from datetime import date, timedelta

import jwt
import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from sqlmodel import Session

from app.auth import get_current_uid
from app.core.config import settings
from app.database import get_session
from app.exceptions import http_exception_handler
from app.application.services.live_updates import AppointmentFeed
from app.infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from app.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from app.routers import appointments_router, doctors_router, users_router
from app.schemas.common.common import ErrorResponse

TOMORROW = (date.today() + timedelta(days=1)).strftime("%Y-%m-%d")


@pytest.fixture
def client(sql_engine):
    app = FastAPI()
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.include_router(users_router.router)
    app.include_router(doctors_router.router)
    app.include_router(appointments_router.router)

    def load_snapshot(query):
        with Session(sql_engine) as session:
            return SqlAppointmentsRepository(session).query(query)

    app.state.appointment_feed = AppointmentFeed(load_snapshot)

    def override_session():
        with Session(sql_engine) as session:
            yield session

    def override_uid(request: Request) -> str:
        uid = request.headers.get("X-Test-User")
        if not uid:
            raise HTTPException(status_code=401, detail="Authentication required")
        return uid

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_current_uid] = override_uid

    with Session(sql_engine) as session:
        users = SqlUserRepository(session)
        users.create("doc-1", "house@meditrack.local", "doctor", "Gregory", "House")
        users.create("pat-1", "jane@meditrack.local", "patient", "Jane", "Doe")
        users.create("pat-2", "john@meditrack.local", "patient", "John", "Roe")

    return TestClient(app)


def as_user(uid):
    return {"X-Test-User": uid}


def book(client, time="09:00", patient="pat-1"):
    return client.post(
        "/appointments/",
        json={"doctor_id": "doc-1", "appointment_date": TOMORROW, "appointment_time": time, "note": "fever"},
        headers=as_user(patient),
    )


def test_register_profile_and_me(client):
    resp = client.post(
        "/users/profile",
        json={"email": "new@meditrack.local", "role": "patient", "first_name": "New", "last_name": "Person"},
        headers=as_user("new-1"),
    )
    assert resp.status_code == 200
    assert resp.json()["display_name"] == "New Person"
    assert client.get("/users/me", headers=as_user("new-1")).json()["role"] == "patient"


def test_register_profile_rejects_foreign_domain(client):
    resp = client.post(
        "/users/profile",
        json={"email": "new@example.com", "role": "patient", "first_name": "New", "last_name": "Person"},
        headers=as_user("new-1"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_EMAIL_DOMAIN"


def test_list_doctors(client):
    resp = client.get("/doctors/", headers=as_user("pat-1"))
    assert resp.json() == [{"id": "doc-1", "display_name": "Gregory House"}]


def test_booking_and_daily_limit(client):
    first = book(client, "09:00")
    assert first.status_code == 200
    assert first.json()["status"] == "pending"
    assert first.json()["doctor_name"] == "Gregory House"
    assert book(client, "09:30").status_code == 200

    third = book(client, "10:00")
    assert third.status_code == 400
    assert third.json()["code"] == "DAILY_LIMIT_EXCEEDED"
    assert third.json()["success"] is False

    limit = client.get(f"/appointments/limit?date={TOMORROW}", headers=as_user("pat-1")).json()
    assert limit == {"date": TOMORROW, "booked": 2, "remaining": 0, "limit": 2}


def test_doctor_cannot_book(client):
    resp = client.post(
        "/appointments/",
        json={"doctor_id": "doc-1", "appointment_date": TOMORROW, "appointment_time": "09:00"},
        headers=as_user("doc-1"),
    )
    assert resp.status_code == 403


def test_invalid_slot_and_unknown_doctor(client):
    resp = book(client, "12:15")
    assert resp.json()["code"] == "INVALID_SLOT"
    resp = client.post(
        "/appointments/",
        json={"doctor_id": "pat-2", "appointment_date": TOMORROW, "appointment_time": "09:00"},
        headers=as_user("pat-1"),
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "UNKNOWN_DOCTOR"


def test_full_lifecycle_with_prescription_and_feedback(client):
    appt_id = book(client).json()["id"]
    doctor = as_user("doc-1")
    patient = as_user("pat-1")

    assert client.get(f"/appointments/{appt_id}/prescription", headers=patient).json() == {"available": False, "prescription": None}
    assert client.put(f"/appointments/{appt_id}/accept", headers=doctor).json()["status"] == "confirmed"
    assert client.put(f"/appointments/{appt_id}/start", headers=doctor).json()["status"] == "in-progress"

    missing = client.put(f"/appointments/{appt_id}/complete", json={"medicine": " "}, headers=doctor)
    assert missing.json()["code"] == "MISSING_MEDICINE"

    done = client.put(f"/appointments/{appt_id}/complete", json={"medicine": "Amoxicillin", "dosage": "500mg"}, headers=doctor)
    assert done.json()["status"] == "completed"

    view = client.get(f"/appointments/{appt_id}/prescription", headers=patient).json()
    assert view["available"] is True
    assert view["prescription"]["medicine"] == "Amoxicillin"

    again = client.put(f"/appointments/{appt_id}/complete", json={"medicine": "Other"}, headers=doctor)
    assert again.status_code == 409
    assert again.json()["code"] == "INVALID_TRANSITION"
    assert again.json()["current"] == "completed"

    bad = client.post(f"/appointments/{appt_id}/feedback", json={"rating": 6}, headers=patient)
    assert bad.json()["code"] == "INVALID_RATING"
    ok = client.post(f"/appointments/{appt_id}/feedback", json={"rating": 5, "comment": "Great"}, headers=patient)
    assert ok.json()["feedback"] == {"rating": 5, "comment": "Great"}
    dup = client.post(f"/appointments/{appt_id}/feedback", json={"rating": 3}, headers=patient)
    assert dup.json()["code"] == "FEEDBACK_ALREADY_SUBMITTED"

    stats = client.get("/appointments/stats", headers=doctor).json()
    assert stats == {"pending_count": 0, "active_count": 0, "completed_count": 1, "average_rating": 5.0}
    patient_stats = client.get("/appointments/stats", headers=patient).json()
    assert patient_stats == {"upcoming_count": 0, "prescription_count": 1, "completed_count": 1}


def test_decline_then_start(client):
    appt_id = book(client).json()["id"]
    assert client.put(f"/appointments/{appt_id}/decline", headers=as_user("doc-1")).json()["status"] == "cancelled"
    resp = client.put(f"/appointments/{appt_id}/start", headers=as_user("doc-1"))
    assert resp.status_code == 409
    assert resp.json()["attempted"] == "start"


def test_patients_cannot_drive_transitions(client):
    appt_id = book(client).json()["id"]
    resp = client.put(f"/appointments/{appt_id}/accept", headers=as_user("pat-1"))
    assert resp.status_code == 403


def test_appointment_visible_to_parties_only(client):
    appt_id = book(client).json()["id"]
    assert client.get(f"/appointments/{appt_id}", headers=as_user("doc-1")).status_code == 200
    assert client.get(f"/appointments/{appt_id}", headers=as_user("pat-2")).status_code == 403
    assert client.get("/appointments/missing", headers=as_user("pat-1")).status_code == 404


def test_lists_and_grouping(client):
    book(client, "09:00")
    book(client, "16:30")
    listed = client.get("/appointments/", headers=as_user("pat-1")).json()
    assert [a["appointment_time"] for a in listed] == ["16:30", "09:00"]
    assert len(client.get("/appointments/", headers=as_user("doc-1")).json()) == 2
    grouped = client.get("/appointments/grouped", headers=as_user("pat-1")).json()
    assert len(grouped["upcoming"]) == 2 and grouped["past"] == []


def test_missing_identity(client):
    assert client.get("/appointments/").status_code == 401


def bearer_token(uid):
    return jwt.encode({"sub": uid}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def test_error_bodies_match_documented_model(client):
    appt_id = book(client).json()["id"]
    client.put(f"/appointments/{appt_id}/decline", headers=as_user("doc-1"))
    body = client.put(f"/appointments/{appt_id}/accept", headers=as_user("doc-1")).json()
    err = ErrorResponse.model_validate(body)
    assert (err.code, err.attempted, err.current) == ("INVALID_TRANSITION", "accept", "cancelled")

    schema = client.get("/openapi.json").json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    accept_responses = schema["paths"]["/appointments/{appointment_id}/accept"]["put"]["responses"]
    assert "409" in accept_responses


def test_live_feed_pushes_snapshots_to_the_doctor(client):
    feed = client.app.state.appointment_feed
    with client.websocket_connect(f"/appointments/live?token={bearer_token('doc-1')}") as ws:
        assert ws.receive_json() == []

        appt_id = book(client).json()["id"]
        pushed = ws.receive_json()
        assert [(a["id"], a["status"]) for a in pushed] == [(appt_id, "pending")]

        client.put(f"/appointments/{appt_id}/accept", headers=as_user("doc-1"))
        assert ws.receive_json()[0]["status"] == "confirmed"
        assert feed.subscriber_count() == 1
    assert feed.subscriber_count() == 0


def test_live_feed_is_scoped_to_the_patient(client):
    book(client, "09:00", patient="pat-2")
    with client.websocket_connect(f"/appointments/live?token={bearer_token('pat-1')}") as ws:
        assert ws.receive_json() == []
        appt_id = book(client, "10:00").json()["id"]
        assert [a["id"] for a in ws.receive_json()] == [appt_id]


@pytest.mark.parametrize("token", ["not-a-token", "__unregistered__"])
def test_live_feed_rejects_unverified_callers(client, token):
    if token == "__unregistered__":
        token = bearer_token("nobody")
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"/appointments/live?token={token}") as ws:
            ws.receive_json()
    assert exc.value.code == 1008
    assert client.app.state.appointment_feed.subscriber_count() == 0
