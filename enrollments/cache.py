"""
Read-through cache of each profile's active enrollments.

Entries are keyed by user id and dropped explicitly after every write that
touches that user's enrollments. A cached list is a convenience for reads,
never the source of truth for eligibility checks.
"""
import logging

from django.conf import settings
from django.core.cache import cache

from .models import Enrollment

logger = logging.getLogger(__name__)


def cache_key(user_id):
    return f"enrollments:user:{user_id}"


def get_active_enrollments(user_id):
    key = cache_key(user_id)
    enrollments = cache.get(key)
    if enrollments is None:
        enrollments = list(
            Enrollment.objects.active()
            .filter(user_id=user_id)
            .select_related('schedule')
            .order_by('enrolled_at')
        )
        cache.set(key, enrollments, getattr(settings, 'ENROLLMENT_CACHE_TIMEOUT', 300))
    return enrollments


def get_enrolled_schedule_ids(user_id):
    return {enrollment.schedule_id for enrollment in get_active_enrollments(user_id)}


def invalidate(user_id):
    cache.delete(cache_key(user_id))


def invalidate_many(user_ids):
    keys = [cache_key(user_id) for user_id in set(user_ids)]
    if keys:
        cache.delete_many(keys)
        logger.debug(f"Dropped cached enrollments for {len(keys)} user(s).")
