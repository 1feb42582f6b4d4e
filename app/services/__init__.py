# Services package (re-export identity helpers for stable imports)
from .auth import decode_jwt_token, resolve_token

__all__ = [
    "decode_jwt_token",
    "resolve_token",
]
