# app/schemas/common/common.py
from pydantic import BaseModel
from typing import Optional

class ErrorResponse(BaseModel):
    """Body of every error reply; `attempted`/`current` accompany state conflicts."""
    success: bool = False
    data: None = None
    error: str
    code: Optional[str] = None
    attempted: Optional[str] = None
    current: Optional[str] = None
    request_id: Optional[str] = None


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Missing or invalid identity"},
    403: {"model": ErrorResponse, "description": "Not allowed"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "State conflict"},
    503: {"model": ErrorResponse, "description": "Store unavailable, retry"},
}
