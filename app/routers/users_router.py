import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..core.config import settings
from ..database import get_session
from ..auth import get_current_uid, get_current_user
from ..application.ports.user_repo import UserDto
from ..application.services.profile_service import ProfileService
from ..infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from ..schemas.users.user import ProfileCreate, UserResponse
from ..schemas.common.common import ERROR_RESPONSES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"], responses=ERROR_RESPONSES)


def get_profile_service(session: Session = Depends(get_session)) -> ProfileService:
    return ProfileService(user_repo=SqlUserRepository(session), email_domain=settings.ALLOWED_EMAIL_DOMAIN)


def to_user_response(u: UserDto) -> UserResponse:
    return UserResponse(
        id=u.id,
        email=u.email,
        role=u.role,
        first_name=u.first_name,
        last_name=u.last_name,
        display_name=u.display_name,
        created_at=u.created_at,
    )


@router.post("/profile", response_model=UserResponse)
def register_profile(
    profile: ProfileCreate,
    uid: str = Depends(get_current_uid),
    profile_service: ProfileService = Depends(get_profile_service),
):
    user = profile_service.register_profile(uid, profile.email, profile.role, profile.first_name, profile.last_name)
    return to_user_response(user)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: UserDto = Depends(get_current_user)):
    return to_user_response(current_user)
