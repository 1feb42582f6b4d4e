# Models package (re-export feature modules for stable imports)
from .users.user import User
from .health.appointment import Appointment

__all__ = [
    "User",
    "Appointment",
]
