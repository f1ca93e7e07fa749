from datetime import date, datetime, timezone as dt_timezone
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from rest_framework.test import APIClient
from rest_framework import status

from enrollments import eligibility
from enrollments.eligibility import (
    NO_VALID_PLAN,
    PAYMENT_OVERDUE,
    WEEKLY_LIMIT_REACHED,
    check_eligibility,
    count_weekly_enrollments,
    evaluate,
    week_bounds,
)
from enrollments.models import Enrollment
from schedules.models import TrainingSchedule


def local(*args):
    return timezone.make_aware(datetime(*args))


# Wednesday 10 June 2026, past the grace period
MID_MONTH = local(2026, 6, 10, 12, 0)
# Wednesday 3 June 2026, inside the grace period
EARLY_MONTH = local(2026, 6, 3, 12, 0)


class EligibilityRulesTest(SimpleTestCase):

    def test_grace_period_approves_everything(self):
        for day in range(1, 8):
            now = local(2026, 6, day, 9, 30)
            result = evaluate(None, None, now, weekly_count=50)
            self.assertTrue(result.approved, f"day {day} should be inside the grace period")
            self.assertIsNone(result.reason)

    def test_unpaid_month_is_overdue_after_grace_period(self):
        for last_payment in (None, date(2026, 5, 31), date(2025, 6, 10)):
            for day in (8, 15, 30):
                result = evaluate(last_payment, 3, local(2026, 6, day, 10, 0), weekly_count=0)
                self.assertFalse(result.approved)
                self.assertEqual(result.reason, PAYMENT_OVERDUE)
                self.assertTrue(result.message)

    def test_missing_or_invalid_allowance_is_no_plan(self):
        for allowance in (None, 0, -2, 'abc', ''):
            result = evaluate(date(2026, 6, 1), allowance, MID_MONTH, weekly_count=0)
            self.assertFalse(result.approved)
            self.assertEqual(result.reason, NO_VALID_PLAN)

    def test_weekly_limit(self):
        paid = date(2026, 6, 2)
        self.assertEqual(evaluate(paid, 2, MID_MONTH, weekly_count=2).reason, WEEKLY_LIMIT_REACHED)
        self.assertEqual(evaluate(paid, 2, MID_MONTH, weekly_count=3).reason, WEEKLY_LIMIT_REACHED)
        self.assertTrue(evaluate(paid, 2, MID_MONTH, weekly_count=1).approved)
        # numeric text is still a valid allowance
        self.assertTrue(evaluate(paid, '3', MID_MONTH, weekly_count=2).approved)

    @override_settings(ENROLLMENT_GRACE_DAYS=3)
    def test_grace_period_length_is_configurable(self):
        self.assertTrue(evaluate(None, None, local(2026, 6, 3, 10, 0), 0).approved)
        self.assertEqual(evaluate(None, None, local(2026, 6, 4, 10, 0), 0).reason, PAYMENT_OVERDUE)

    def test_week_bounds_midweek(self):
        start, end = week_bounds(local(2026, 10, 14, 15, 0))
        self.assertEqual(start, local(2026, 10, 12, 0, 0))
        self.assertEqual(end, local(2026, 10, 19, 0, 0))

    def test_week_bounds_on_monday_midnight_starts_new_week(self):
        start, end = week_bounds(local(2026, 10, 12, 0, 0, 0))
        self.assertEqual(start, local(2026, 10, 12, 0, 0))
        self.assertEqual(end, local(2026, 10, 19, 0, 0))

    def test_week_bounds_on_sunday_night(self):
        start, _ = week_bounds(local(2026, 10, 18, 23, 59, 59))
        self.assertEqual(start, local(2026, 10, 12, 0, 0))

    def test_week_bounds_uses_local_time_for_utc_input(self):
        # 02:00 UTC on Monday is still Sunday evening in Buenos Aires (UTC-3)
        utc_now = datetime(2026, 10, 12, 2, 0, tzinfo=dt_timezone.utc)
        start, _ = week_bounds(utc_now)
        self.assertEqual(start, local(2026, 10, 5, 0, 0))


class WeeklyCountTest(TestCase):
    def setUp(self):
        cache.clear()
        User = get_user_model()
        self.user = User.objects.create_user(
            email='ana@example.com', password='testpass123', first_name='Ana',
            last_payment_date=date(2026, 6, 2), cant_por_semana=2,
        )
        self.monday = TrainingSchedule.objects.create(day_of_week='Lunes', time_slot='17:00')
        self.wednesday = TrainingSchedule.objects.create(day_of_week='Miércoles', time_slot='17:00')
        self.friday = TrainingSchedule.objects.create(day_of_week='Viernes', time_slot='17:00')

    def enroll_at(self, schedule, when, user=None):
        enrollment = Enrollment.objects.create(user=user or self.user, schedule=schedule)
        Enrollment.objects.filter(pk=enrollment.pk).update(enrolled_at=when)
        return enrollment

    def test_monday_midnight_counts_toward_new_week(self):
        self.enroll_at(self.monday, local(2026, 6, 8, 0, 0, 0))
        self.enroll_at(self.friday, local(2026, 6, 7, 23, 59, 59))
        self.assertEqual(count_weekly_enrollments(self.user, MID_MONTH), 1)

    def test_next_monday_is_excluded(self):
        self.enroll_at(self.monday, local(2026, 6, 15, 0, 0, 0))
        self.assertEqual(count_weekly_enrollments(self.user, MID_MONTH), 0)

    def test_other_users_do_not_count(self):
        other = get_user_model().objects.create_user(email='otro@example.com', password='testpass123')
        self.enroll_at(self.monday, local(2026, 6, 8, 18, 0), user=other)
        self.assertEqual(count_weekly_enrollments(self.user, MID_MONTH), 0)

    def test_limit_reached_with_two_enrollments_this_week(self):
        self.enroll_at(self.monday, local(2026, 6, 8, 17, 0))
        second = self.enroll_at(self.wednesday, local(2026, 6, 9, 10, 0))

        result = check_eligibility(self.user, MID_MONTH)
        self.assertFalse(result.approved)
        self.assertEqual(result.reason, WEEKLY_LIMIT_REACHED)

        second.delete()
        self.assertTrue(check_eligibility(self.user, MID_MONTH).approved)


class EnrollmentAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        User = get_user_model()
        self.student = User.objects.create_user(
            email='student@example.com', password='testpass123',
            first_name='Juan', last_name='Perez',
        )
        self.other = User.objects.create_user(email='other@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='testpass123', role='admin')

        self.monday = TrainingSchedule.objects.create(day_of_week='Lunes', time_slot='17:00', max_capacity=1)
        self.tuesday = TrainingSchedule.objects.create(day_of_week='Martes', time_slot='18:00')
        self.wednesday = TrainingSchedule.objects.create(day_of_week='Miércoles', time_slot='17:00')
        self.closed = TrainingSchedule.objects.create(day_of_week='Sábado', time_slot='10:00', is_active=False)

        self.toggle_url = reverse('enrollment-toggle')
        self.client.force_authenticate(self.student)

    def toggle(self, schedule, now):
        with patch('django.utils.timezone.now', return_value=now):
            return self.client.post(self.toggle_url, {'schedule': schedule.pk}, format='json')

    def set_plan(self, paid_on=date(2026, 6, 2), per_week=2):
        self.student.last_payment_date = paid_on
        self.student.cant_por_semana = per_week
        self.student.save()

    def test_enroll_during_grace_period_without_payment(self):
        resp = self.toggle(self.tuesday, EARLY_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['enrolled'])
        self.assertEqual(len(resp.data['enrollments']), 1)
        self.assertTrue(Enrollment.objects.for_pair(self.student, self.tuesday).exists())

    def test_overdue_payment_is_rejected_without_write(self):
        resp = self.toggle(self.tuesday, MID_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['reason'], PAYMENT_OVERDUE)
        self.assertIn('error', resp.data)
        self.assertFalse(Enrollment.objects.exists())

    def test_paid_without_plan_is_rejected(self):
        self.set_plan(per_week=None)
        resp = self.toggle(self.tuesday, MID_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['reason'], NO_VALID_PLAN)

    def test_weekly_limit_blocks_third_class(self):
        self.set_plan(per_week=2)
        self.assertEqual(self.toggle(self.monday, MID_MONTH).status_code, status.HTTP_200_OK)
        self.assertEqual(self.toggle(self.tuesday, MID_MONTH).status_code, status.HTTP_200_OK)

        resp = self.toggle(self.wednesday, MID_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['reason'], WEEKLY_LIMIT_REACHED)
        self.assertEqual(Enrollment.objects.filter(user=self.student).count(), 2)

    def test_unenroll_is_never_gated(self):
        Enrollment.objects.create(user=self.student, schedule=self.tuesday)
        # overdue and without a plan, but leaving a class is always allowed
        resp = self.toggle(self.tuesday, MID_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(resp.data['enrolled'])
        self.assertEqual(resp.data['enrollments'], [])
        self.assertFalse(Enrollment.objects.filter(user=self.student).exists())

    def test_unenroll_removes_exactly_one_row(self):
        Enrollment.objects.create(user=self.student, schedule=self.tuesday)
        Enrollment.objects.create(user=self.student, schedule=self.tuesday)
        Enrollment.objects.create(user=self.student, schedule=self.wednesday)

        resp = self.toggle(self.tuesday, MID_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(Enrollment.objects.for_pair(self.student, self.tuesday).count(), 1)
        self.assertEqual(Enrollment.objects.for_pair(self.student, self.wednesday).count(), 1)

    def test_full_schedule_still_accepts_enrollment(self):
        Enrollment.objects.create(user=self.other, schedule=self.monday)
        resp = self.toggle(self.monday, EARLY_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(Enrollment.objects.filter(schedule=self.monday).count(), 2)

    def test_inactive_schedule_cannot_be_joined(self):
        resp = self.toggle(self.closed, EARLY_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Enrollment.objects.exists())

    def test_unknown_schedule_is_a_validation_error(self):
        resp = self.client.post(self.toggle_url, {'schedule': 9999}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('schedule', resp.data)

    def test_storage_failure_is_reported_and_nothing_changes(self):
        with patch.object(Enrollment.objects, 'create', side_effect=DatabaseError('disk full')):
            resp = self.toggle(self.tuesday, EARLY_MONTH)
        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(resp.data['error'], 'disk full')
        self.assertFalse(Enrollment.objects.exists())

    def test_list_is_refreshed_after_toggle(self):
        resp = self.client.get(reverse('enrollment-list'))
        self.assertEqual(resp.data, [])

        self.toggle(self.tuesday, EARLY_MONTH)

        resp = self.client.get(reverse('enrollment-list'))
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]['schedule'], self.tuesday.pk)
        self.assertEqual(resp.data[0]['schedule_details']['day_of_week'], 'Martes')

    def test_students_only_see_their_own_enrollments(self):
        Enrollment.objects.create(user=self.student, schedule=self.tuesday)
        Enrollment.objects.create(user=self.other, schedule=self.wednesday)

        resp = self.client.get(reverse('enrollment-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([e['schedule'] for e in resp.data], [self.tuesday.pk])
        self.assertIsNone(resp.data[0]['user_details'])

    def test_admin_sees_all_enrollments_with_profiles(self):
        Enrollment.objects.create(user=self.student, schedule=self.tuesday)
        Enrollment.objects.create(user=self.other, schedule=self.wednesday)

        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse('enrollment-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data), 2)
        emails = {e['user_details']['email'] for e in resp.data}
        self.assertEqual(emails, {'student@example.com', 'other@example.com'})

        resp = self.client.get(reverse('enrollment-list'), {'schedule': self.tuesday.pk})
        self.assertEqual(len(resp.data), 1)

    def test_delete_own_enrollment(self):
        enrollment = Enrollment.objects.create(user=self.student, schedule=self.tuesday)
        resp = self.client.delete(reverse('enrollment-detail', args=[enrollment.pk]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Enrollment.objects.filter(pk=enrollment.pk).exists())

    def test_cannot_delete_someone_elses_enrollment(self):
        enrollment = Enrollment.objects.create(user=self.other, schedule=self.tuesday)
        resp = self.client.delete(reverse('enrollment-detail', args=[enrollment.pk]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Enrollment.objects.filter(pk=enrollment.pk).exists())

    def test_eligibility_endpoint(self):
        with patch('django.utils.timezone.now', return_value=MID_MONTH):
            resp = self.client.get(reverse('enrollment-eligibility'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(resp.data['approved'])
        self.assertEqual(resp.data['reason'], PAYMENT_OVERDUE)

    def test_requires_authentication(self):
        self.client.force_authenticate(None)
        resp = self.client.post(self.toggle_url, {'schedule': self.tuesday.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class EnrollmentCacheTest(TestCase):
    def setUp(self):
        cache.clear()
        self.user = get_user_model().objects.create_user(email='cache@example.com', password='testpass123')
        self.schedule = TrainingSchedule.objects.create(day_of_week='Jueves', time_slot='17:00')

    def test_cached_list_is_reused_until_invalidated(self):
        from enrollments import cache as enrollment_cache

        self.assertEqual(enrollment_cache.get_active_enrollments(self.user.pk), [])
        # bulk_create sends no signals, so the cached entry survives until dropped
        Enrollment.objects.bulk_create([Enrollment(user=self.user, schedule=self.schedule)])
        self.assertEqual(enrollment_cache.get_active_enrollments(self.user.pk), [])

        enrollment_cache.invalidate(self.user.pk)
        self.assertEqual(enrollment_cache.get_enrolled_schedule_ids(self.user.pk), {self.schedule.pk})

    def test_eligibility_ignores_the_cache(self):
        from enrollments import cache as enrollment_cache

        self.user.last_payment_date = date(2026, 6, 1)
        self.user.cant_por_semana = 1
        self.user.save()
        enrollment_cache.get_active_enrollments(self.user.pk)

        enrollment = Enrollment.objects.create(user=self.user, schedule=self.schedule)
        Enrollment.objects.filter(pk=enrollment.pk).update(enrolled_at=local(2026, 6, 9, 17, 0))
        self.assertEqual(eligibility.check_eligibility(self.user, MID_MONTH).reason, WEEKLY_LIMIT_REACHED)


class EnrollmentCacheSignalsTest(TestCase):
    """Writes made outside the enrollment services still drop the cached lists."""

    def setUp(self):
        cache.clear()
        User = get_user_model()
        self.student = User.objects.create_user(email='alumna@example.com', password='testpass123')
        self.other = User.objects.create_user(email='otra@example.com', password='testpass123')
        self.schedule = TrainingSchedule.objects.create(day_of_week='Viernes', time_slot='18:00')

    def cached_ids(self, user):
        from enrollments import cache as enrollment_cache
        return enrollment_cache.get_enrolled_schedule_ids(user.pk)

    def test_direct_create_and_delete(self):
        self.assertEqual(self.cached_ids(self.student), set())
        enrollment = Enrollment.objects.create(user=self.student, schedule=self.schedule)
        self.assertEqual(self.cached_ids(self.student), {self.schedule.pk})

        enrollment.delete()
        self.assertEqual(self.cached_ids(self.student), set())

    def test_reassigning_an_enrollment_refreshes_both_users(self):
        enrollment = Enrollment.objects.create(user=self.student, schedule=self.schedule)
        self.assertEqual(self.cached_ids(self.student), {self.schedule.pk})
        self.assertEqual(self.cached_ids(self.other), set())

        enrollment.user = self.other
        enrollment.save()
        self.assertEqual(self.cached_ids(self.student), set())
        self.assertEqual(self.cached_ids(self.other), {self.schedule.pk})

    def test_user_cascade_delete(self):
        Enrollment.objects.create(user=self.student, schedule=self.schedule)
        self.assertEqual(self.cached_ids(self.student), {self.schedule.pk})

        student_id = self.student.pk
        self.student.delete()
        from enrollments import cache as enrollment_cache
        self.assertEqual(enrollment_cache.get_active_enrollments(student_id), [])

    def test_django_admin_delete(self):
        enrollment = Enrollment.objects.create(user=self.student, schedule=self.schedule)
        self.assertEqual(self.cached_ids(self.student), {self.schedule.pk})

        superuser = get_user_model().objects.create_superuser(email='root@example.com', password='testpass123')
        self.client.force_login(superuser)
        resp = self.client.post(
            reverse('admin:enrollments_enrollment_delete', args=[enrollment.pk]), {'post': 'yes'}
        )
        self.assertEqual(resp.status_code, 302)
        self.assertFalse(Enrollment.objects.filter(pk=enrollment.pk).exists())
        self.assertEqual(self.cached_ids(self.student), set())
