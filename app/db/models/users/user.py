# app/db/models/users/user.py
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime
from datetime import datetime, timezone

class User(SQLModel, table=True):
    __tablename__ = "users"
    # uid issued by the identity provider
    id: str = Field(primary_key=True, max_length=128)
    email: str = Field(max_length=100, index=True)
    role: str = Field(max_length=16, index=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
