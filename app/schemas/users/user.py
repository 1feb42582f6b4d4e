# app/schemas/users/user.py
from pydantic import BaseModel, Field
from datetime import datetime

class ProfileCreate(BaseModel):
    email: str = Field(max_length=100)
    role: str
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)

class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    first_name: str
    last_name: str
    display_name: str
    created_at: datetime

class DoctorSummary(BaseModel):
    id: str
    display_name: str
