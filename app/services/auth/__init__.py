from typing import Optional, Dict, Any
import logging

import jwt

from app.core.config import settings
from .firebase_service import verify_firebase_id_token, extract_user_info_from_claims

logger = logging.getLogger(__name__)

def decode_jwt_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

def resolve_token(token: str) -> Optional[str]:
    """Return the caller's uid for a bearer token, or None if it cannot be verified."""
    if settings.firebase_enabled:
        claims = verify_firebase_id_token(token)
    else:
        claims = decode_jwt_token(token)
    if not claims:
        return None
    return extract_user_info_from_claims(claims)["uid"]
