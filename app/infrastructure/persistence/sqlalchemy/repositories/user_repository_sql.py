from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
import logging

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto
from .....exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            email=user.email,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
            created_at=user.created_at,
        )

    def _run(self, description: str, fn, commit: bool = False):
        try:
            result = fn()
            if commit:
                self.session.commit()
            return result
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error {description}: {e}")
            raise StoreUnavailable()

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self._run(
            f"loading profile {user_id}",
            lambda: self.session.exec(select(User).where(User.id == user_id)).first(),
        )
        return self._to_dto(user) if user else None

    def list_by_role(self, role: str) -> List[UserDto]:
        rows = self._run(
            f"listing {role} profiles",
            lambda: self.session.exec(
                select(User).where(User.role == role).order_by(User.last_name, User.first_name)
            ).all(),
        )
        return [self._to_dto(u) for u in rows]

    def create(self, user_id: str, email: str, role: str, first_name: str, last_name: str) -> UserDto:
        user = User(id=user_id, email=email, role=role, first_name=first_name, last_name=last_name)
        self._run(f"creating profile {user_id}", lambda: self.session.add(user), commit=True)
        self.session.refresh(user)
        return self._to_dto(user)
