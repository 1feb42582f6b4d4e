from typing import List
from fastapi import APIRouter, Depends

from ..auth import get_current_user
from ..application.ports.user_repo import UserDto
from ..application.services.profile_service import ProfileService
from ..schemas.users.user import DoctorSummary
from ..schemas.common.common import ERROR_RESPONSES
from .users_router import get_profile_service

router = APIRouter(prefix="/doctors", tags=["Doctors"], responses=ERROR_RESPONSES)


@router.get("/", response_model=List[DoctorSummary])
def get_doctors(
    current_user: UserDto = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
):
    return [DoctorSummary(id=d.id, display_name=d.display_name) for d in profile_service.list_doctors()]
