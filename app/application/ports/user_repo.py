from typing import Protocol, Optional, List
from datetime import datetime
from enum import Enum

class Role(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"

class UserDto:
    def __init__(self, id: str, email: str, role: str, first_name: str, last_name: str, created_at: datetime):
        self.id = id
        self.email = email
        self.role = role
        self.first_name = first_name
        self.last_name = last_name
        self.created_at = created_at

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

class UserRepository(Protocol):
    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def list_by_role(self, role: str) -> List[UserDto]:
        ...

    def create(self, user_id: str, email: str, role: str, first_name: str, last_name: str) -> UserDto:
        ...
