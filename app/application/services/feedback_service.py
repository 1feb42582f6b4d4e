from dataclasses import dataclass
from typing import Optional
import logging

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, AppointmentStatus, FeedbackDto
from ...exceptions import (
    AppointmentNotCompleted,
    AppointmentNotFound,
    FeedbackAlreadySubmitted,
    InvalidRating,
    NotOwner,
)
from .live_updates import AppointmentFeed

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _valid_rating(rating) -> bool:
    # bool is an int subclass; True is not a rating
    return isinstance(rating, int) and not isinstance(rating, bool) and MIN_RATING <= rating <= MAX_RATING


@dataclass
class FeedbackService:
    repo: AppointmentsRepository
    feed: Optional[AppointmentFeed] = None

    def submit_feedback(self, appointment_id: str, requester_id: str, rating, comment: Optional[str] = None) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise AppointmentNotFound(appointment_id)
        if appt.patient_id != requester_id:
            raise NotOwner()
        if appt.status != AppointmentStatus.COMPLETED:
            raise AppointmentNotCompleted(appt.status.value)
        if appt.feedback is not None:
            raise FeedbackAlreadySubmitted()
        if not _valid_rating(rating):
            raise InvalidRating()

        comment = (comment or "").strip() or None
        if not self.repo.attach_feedback(appt.id, FeedbackDto(rating=rating, comment=comment)):
            # another submission won the race
            raise FeedbackAlreadySubmitted()
        updated = self.repo.get_by_id(appt.id)
        logger.info(f"Feedback ({rating}/5) recorded for appointment {appt.id}")
        if self.feed:
            self.feed.publish(updated)
        return updated
