import logging
from dataclasses import dataclass, field

from django.db import transaction

from . import cache
from .eligibility import check_eligibility
from .models import Enrollment

logger = logging.getLogger(__name__)


class EnrollmentRejected(Exception):
    """The eligibility rules refused a new enrollment."""

    def __init__(self, eligibility):
        self.eligibility = eligibility
        super().__init__(eligibility.message)

    @property
    def reason(self):
        return self.eligibility.reason


class ScheduleUnavailable(Exception):
    pass


@dataclass
class ToggleResult:
    enrolled: bool
    enrollment: Enrollment = None
    enrollments: list = field(default_factory=list)


def is_enrolled(user, schedule):
    return Enrollment.objects.for_pair(user, schedule).exists()


def enroll(user, schedule, now=None):
    """Create one active enrollment if the eligibility rules allow it."""
    if not schedule.is_active:
        raise ScheduleUnavailable("This schedule is not available for enrollment.")

    eligibility = check_eligibility(user, now)
    if not eligibility.approved:
        logger.info(f"Enrollment of user {user.pk} in schedule {schedule.pk} rejected: {eligibility.reason}")
        raise EnrollmentRejected(eligibility)

    with transaction.atomic():
        enrollment = Enrollment.objects.create(
            user=user,
            schedule=schedule,
            status=Enrollment.STATUS_ACTIVE,
        )
    cache.invalidate(user.pk)
    logger.info(f"User {user.pk} enrolled in schedule {schedule.pk} ({schedule}).")
    return enrollment


def unenroll(user, schedule):
    """Remove the oldest active enrollment of the pair. Never gated by eligibility."""
    with transaction.atomic():
        enrollment = Enrollment.objects.for_pair(user, schedule).order_by('enrolled_at').first()
        if enrollment is None:
            return False
        enrollment.delete()
    cache.invalidate(user.pk)
    logger.info(f"User {user.pk} unenrolled from schedule {schedule.pk} ({schedule}).")
    return True


def remove_enrollment(enrollment):
    user_id = enrollment.user_id
    enrollment.delete()
    cache.invalidate(user_id)
    logger.info(f"Enrollment of user {user_id} in schedule {enrollment.schedule_id} removed.")


def toggle_enrollment(user, schedule, now=None):
    if is_enrolled(user, schedule):
        unenroll(user, schedule)
        result = ToggleResult(enrolled=False)
    else:
        result = ToggleResult(enrolled=True, enrollment=enroll(user, schedule, now))

    result.enrollments = cache.get_active_enrollments(user.pk)
    return result
