"""
Rules deciding whether a student may take one more class this week.

During the first days of the month (the grace period) every request is
approved so students can sign up before their payment is recorded. After
that the student must have paid in the current month, must have a weekly
allowance (``cant_por_semana``) and must not have used it up in the current
Monday-to-Sunday week.
"""
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from dateutil.relativedelta import relativedelta, MO
from django.conf import settings
from django.utils import timezone

from .models import Enrollment

PAYMENT_OVERDUE = 'payment_overdue'
NO_VALID_PLAN = 'no_valid_plan'
WEEKLY_LIMIT_REACHED = 'weekly_limit_reached'

REJECTION_MESSAGES = {
    PAYMENT_OVERDUE: "Your monthly payment is overdue. Please pay this month's fee before enrolling.",
    NO_VALID_PLAN: "You don't have a valid plan assigned. Please contact the school.",
    WEEKLY_LIMIT_REACHED: "You have reached the number of classes allowed by your plan this week.",
}


@dataclass(frozen=True)
class Eligibility:
    approved: bool
    reason: str = None

    @property
    def message(self):
        return REJECTION_MESSAGES.get(self.reason, '')


APPROVED = Eligibility(approved=True)


def grace_days():
    return getattr(settings, 'ENROLLMENT_GRACE_DAYS', 7)


def _local(now):
    if timezone.is_aware(now):
        return timezone.localtime(now)
    return now


def week_bounds(now):
    """
    Return ``(start, end)`` of the Monday-to-Sunday week containing ``now``:
    Monday 00:00 local time and the following Monday 00:00, end excluded.
    """
    monday = _local(now).date() + relativedelta(weekday=MO(-1))
    start = timezone.make_aware(datetime.combine(monday, time.min))
    end = timezone.make_aware(datetime.combine(monday + timedelta(days=7), time.min))
    return start, end


def paid_in_month(last_payment_date, today):
    if last_payment_date is None:
        return False
    return (last_payment_date.year, last_payment_date.month) == (today.year, today.month)


def weekly_allowance(value):
    """Parse ``cant_por_semana``; anything missing, non numeric or not positive is no plan."""
    if value is None or isinstance(value, bool):
        return None
    try:
        allowance = int(value)
    except (TypeError, ValueError):
        return None
    return allowance if allowance > 0 else None


def evaluate(last_payment_date, allowance, now, weekly_count):
    today = _local(now).date()
    if 1 <= today.day <= grace_days():
        return APPROVED

    if not paid_in_month(last_payment_date, today):
        return Eligibility(approved=False, reason=PAYMENT_OVERDUE)

    limit = weekly_allowance(allowance)
    if limit is None:
        return Eligibility(approved=False, reason=NO_VALID_PLAN)

    if weekly_count >= limit:
        return Eligibility(approved=False, reason=WEEKLY_LIMIT_REACHED)
    return APPROVED


def count_weekly_enrollments(user, now):
    start, end = week_bounds(now)
    return Enrollment.objects.active().filter(user=user).enrolled_between(start, end).count()


def check_eligibility(user, now=None):
    now = now or timezone.now()
    return evaluate(
        user.last_payment_date,
        user.cant_por_semana,
        now,
        count_weekly_enrollments(user, now),
    )
