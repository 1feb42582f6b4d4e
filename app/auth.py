# app/auth.py
from typing import Optional
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from .database import get_session
from .application.ports.user_repo import UserDto, Role
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .services.auth import resolve_token
from .exceptions import RoleRequired

logger = logging.getLogger(__name__)

# Auth scheme
oauth2_scheme = HTTPBearer(auto_error=False)


def get_current_uid(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme)) -> str:
    """Identity Gate: resolve the bearer token to the caller's uid."""
    token = credentials.credentials if credentials and credentials.credentials else None
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")
    uid = resolve_token(token)
    if not uid:
        logger.warning("Token verification failed - invalid or expired token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return uid


def get_current_user(uid: str = Depends(get_current_uid), session: Session = Depends(get_session)) -> UserDto:
    user = SqlUserRepository(session).get_by_id(uid)
    if not user:
        raise HTTPException(status_code=404, detail="Profile not found. Complete registration first")
    return user


def require_role(role: Role):
    def _dependency(user: UserDto = Depends(get_current_user)) -> UserDto:
        if user.role != role.value:
            raise RoleRequired()
        return user
    return _dependency


require_doctor = require_role(Role.DOCTOR)
require_patient = require_role(Role.PATIENT)
