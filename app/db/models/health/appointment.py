# app/db/models/health/appointment.py
from typing import Optional, Dict, Any
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime, date, timezone
import uuid

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    patient_id: str = Field(foreign_key="users.id", index=True)
    doctor_id: str = Field(foreign_key="users.id", index=True)
    patient_name: str
    doctor_name: str
    appointment_date: date = Field(index=True)
    appointment_time: str = Field(max_length=5)
    note: str = Field(default="")
    status: str = Field(default="pending", max_length=16)
    # none_as_null keeps "absent" as SQL NULL so conditional updates can test IS NULL
    prescription: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON(none_as_null=True)))
    feedback: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON(none_as_null=True)))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
