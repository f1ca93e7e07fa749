from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse

from rest_framework.test import APIClient
from rest_framework import status

from dashboard.views import collect_statistics
from enrollments.models import Enrollment
from payments.models import Payment
from schedules.models import TrainingSchedule

TODAY = date(2026, 6, 15)


class StatisticsTest(TestCase):
    def setUp(self):
        cache.clear()
        User = get_user_model()
        payment_dates = [date(2026, 6, 1), date(2026, 6, 14), date(2026, 5, 30), None, date(2025, 6, 10)]
        self.students = [
            User.objects.create_user(email=f'alumno{i}@example.com', password='testpass123', last_payment_date=paid)
            for i, paid in enumerate(payment_dates)
        ]
        # admins are never counted, even when they have a payment date
        self.admin = User.objects.create_user(
            email='admin@example.com', password='testpass123', role='admin', last_payment_date=date(2026, 6, 2),
        )
        schedule = TrainingSchedule.objects.create(day_of_week='Lunes', time_slot='17:00')
        Enrollment.objects.create(user=self.students[0], schedule=schedule)
        Enrollment.objects.create(user=self.students[1], schedule=schedule)
        Enrollment.objects.create(user=self.students[1], schedule=schedule)

        Payment.objects.create(user=self.students[0], amount=Decimal('31000'), status=Payment.STATUS_VERIFIED)
        Payment.objects.create(user=self.students[1], amount=Decimal('26000'), status=Payment.STATUS_VERIFIED)
        Payment.objects.create(user=self.students[2], amount=Decimal('26000'))

    def test_counts(self):
        stats = collect_statistics(TODAY)
        self.assertEqual(stats['total_users'], 5)
        self.assertEqual(stats['paid_this_month'], 2)
        self.assertEqual(stats['total_active_enrollments'], 3)
        self.assertEqual(stats['pending_payments'], 1)
        self.assertEqual(stats['total_revenue'], Decimal('57000'))

    def test_month_boundaries(self):
        stats = collect_statistics(date(2026, 5, 31))
        self.assertEqual(stats['paid_this_month'], 1)

    def test_empty_database(self):
        Payment.objects.all().delete()
        Enrollment.objects.all().delete()
        get_user_model().objects.all().delete()
        self.assertEqual(collect_statistics(TODAY), {
            'total_users': 0,
            'paid_this_month': 0,
            'total_active_enrollments': 0,
            'pending_payments': 0,
            'total_revenue': 0,
        })


class AnalyticsAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        User = get_user_model()
        self.admin = User.objects.create_user(email='admin@example.com', password='testpass123', role='admin')
        self.student = User.objects.create_user(email='student@example.com', password='testpass123')

    def test_admin_gets_statistics(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse('dashboard:analytics'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['total_users'], 1)
        self.assertEqual(resp.data['paid_this_month'], 0)

    def test_students_are_forbidden(self):
        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('dashboard:analytics'))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
