# app/schemas/appointments/appointment.py
from pydantic import BaseModel, Field, StrictInt
from typing import List, Optional
from datetime import datetime

class AppointmentCreate(BaseModel):
    doctor_id: str
    appointment_date: str  # YYYY-MM-DD
    appointment_time: str  # HH:MM, one of the clinic slots
    note: Optional[str] = Field(default=None, max_length=2000)

class PrescriptionPayload(BaseModel):
    medicine: str = ""
    dosage: str = ""
    frequency: str = ""
    instructions: str = ""

class FeedbackCreate(BaseModel):
    # Range is checked by the feedback service (INVALID_RATING)
    rating: StrictInt
    comment: Optional[str] = Field(default=None, max_length=2000)

class FeedbackResponse(BaseModel):
    rating: StrictInt
    comment: Optional[str] = None

class AppointmentResponse(BaseModel):
    id: str
    patient_id: str
    patient_name: str
    doctor_id: str
    doctor_name: str
    appointment_date: str
    appointment_time: str
    note: str
    status: str
    prescription: Optional[PrescriptionPayload] = None
    feedback: Optional[FeedbackResponse] = None
    created_at: datetime

class PrescriptionView(BaseModel):
    available: bool
    prescription: Optional[PrescriptionPayload] = None

class DailyLimitResponse(BaseModel):
    date: str
    booked: int
    remaining: int
    limit: int

class DoctorStatsResponse(BaseModel):
    pending_count: int
    active_count: int
    completed_count: int
    average_rating: float

class PatientStatsResponse(BaseModel):
    upcoming_count: int
    prescription_count: int
    completed_count: int

class PatientAppointmentsResponse(BaseModel):
    upcoming: List[AppointmentResponse]
    past: List[AppointmentResponse]
