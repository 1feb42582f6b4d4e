from dataclasses import dataclass
from typing import List, Optional
import logging

from ..ports.user_repo import UserRepository, UserDto, Role
from ...exceptions import InvalidEmailDomain, InvalidRequest, InvalidRole, ProfileAlreadyExists

logger = logging.getLogger(__name__)


@dataclass
class ProfileService:
    user_repo: UserRepository
    email_domain: str = "@meditrack.local"

    def register_profile(self, user_id: str, email: str, role: str, first_name: str, last_name: str) -> UserDto:
        if role not in (Role.DOCTOR.value, Role.PATIENT.value):
            raise InvalidRole(role)
        email = (email or "").strip().lower()
        if self.email_domain and not email.endswith(self.email_domain.lower()):
            raise InvalidEmailDomain(self.email_domain)
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        if not first_name or not last_name:
            raise InvalidRequest("First and last name are required")
        if self.user_repo.get_by_id(user_id):
            raise ProfileAlreadyExists()
        user = self.user_repo.create(user_id, email, role, first_name, last_name)
        logger.info(f"Registered {role} profile {user_id}")
        return user

    def get_profile(self, user_id: str) -> Optional[UserDto]:
        return self.user_repo.get_by_id(user_id)

    def list_doctors(self) -> List[UserDto]:
        return self.user_repo.list_by_role(Role.DOCTOR.value)
