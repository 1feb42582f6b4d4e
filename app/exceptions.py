from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Optional

class APIException(HTTPException):
    code: str = "ERROR"

    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


# Validation errors: nothing is written

class InvalidRequest(APIException):
    code = "INVALID_REQUEST"

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class UnknownDoctor(APIException):
    code = "UNKNOWN_DOCTOR"

    def __init__(self, doctor_id: str):
        self.doctor_id = doctor_id
        super().__init__(status_code=404, detail="Doctor not found")

class PastDate(InvalidRequest):
    code = "PAST_DATE"

    def __init__(self):
        super().__init__("Appointment date cannot be in the past")

class InvalidDate(InvalidRequest):
    code = "INVALID_DATE"

    def __init__(self):
        super().__init__("Invalid appointment date format. Use YYYY-MM-DD")

class InvalidSlot(InvalidRequest):
    code = "INVALID_SLOT"

    def __init__(self, slot: str):
        self.slot = slot
        super().__init__(f"Time {slot!r} is not a clinic time slot")

class DailyLimitExceeded(InvalidRequest):
    code = "DAILY_LIMIT_EXCEEDED"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"You can only book a maximum of {limit} appointments per day")

class MissingMedicine(InvalidRequest):
    code = "MISSING_MEDICINE"

    def __init__(self):
        super().__init__("Please enter medicine name")

class InvalidRating(InvalidRequest):
    code = "INVALID_RATING"

    def __init__(self):
        super().__init__("Rating must be an integer between 1 and 5")

class InvalidRole(InvalidRequest):
    code = "INVALID_ROLE"

    def __init__(self, role: str):
        super().__init__(f"Invalid role {role!r}. Must be 'doctor' or 'patient'")

class InvalidEmailDomain(InvalidRequest):
    code = "INVALID_EMAIL_DOMAIN"

    def __init__(self, domain: str):
        super().__init__(f"Email must end with {domain}")


# Authorization errors: surfaced as a generic denial

class Forbidden(APIException):
    code = "FORBIDDEN"

    def __init__(self):
        super().__init__(status_code=403, detail="You are not allowed to perform this action")

class NotOwner(Forbidden):
    code = "NOT_OWNER"

class NotAssignedDoctor(Forbidden):
    code = "NOT_ASSIGNED_DOCTOR"

class RoleRequired(Forbidden):
    code = "ROLE_REQUIRED"


# State errors: carry the attempted and current state

class StateError(APIException):
    def __init__(self, detail: str, attempted: Optional[str] = None, current: Optional[str] = None):
        self.attempted = attempted
        self.current = current
        super().__init__(status_code=409, detail=detail)

class InvalidTransition(StateError):
    code = "INVALID_TRANSITION"

    def __init__(self, attempted: str, current: str):
        super().__init__(f"Cannot {attempted} an appointment that is {current}", attempted=attempted, current=current)

class FeedbackAlreadySubmitted(StateError):
    code = "FEEDBACK_ALREADY_SUBMITTED"

    def __init__(self):
        super().__init__("Feedback has already been submitted for this appointment", attempted="submit_feedback", current="completed")

class AppointmentNotCompleted(StateError):
    code = "APPOINTMENT_NOT_COMPLETED"

    def __init__(self, current: str):
        super().__init__("Feedback can only be given for completed appointments", attempted="submit_feedback", current=current)

class ProfileAlreadyExists(StateError):
    code = "PROFILE_ALREADY_EXISTS"

    def __init__(self):
        super().__init__("Profile already exists")

class AppointmentNotFound(APIException):
    code = "APPOINTMENT_NOT_FOUND"

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(status_code=404, detail="Appointment not found")


# Infrastructure errors: transient, caller retries

class StoreUnavailable(APIException):
    code = "STORE_UNAVAILABLE"

    def __init__(self, detail: str = "The operation failed. Please try again."):
        super().__init__(status_code=503, detail=detail)


def create_error_response(error_message: str, status_code: int = 400, code: Optional[str] = None, extra: Optional[dict] = None) -> dict:
    """Create a standardized error response"""
    body = {
        "success": False,
        "data": None,
        "error": error_message,
        "code": code,
    }
    if extra:
        body.update(extra)
    return body

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", 401, code="NOT_AUTHENTICATED")
        )

    extra = None
    if isinstance(exc, StateError) and exc.attempted is not None:
        extra = {"attempted": exc.attempted, "current": exc.current}

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code, code=getattr(exc, "code", None), extra=extra)
    )
