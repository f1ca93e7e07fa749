from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.cache import cache
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from rest_framework.test import APIClient
from rest_framework import status

from payments.models import Payment, Plan
from payments.views import (
    STANDING_GRACE_PERIOD,
    STANDING_OVERDUE,
    STANDING_PAID,
    payment_standing,
)


class PaymentStandingTest(SimpleTestCase):

    def test_paid_this_month(self):
        user = SimpleNamespace(last_payment_date=date(2026, 6, 2))
        self.assertEqual(payment_standing(user, date(2026, 6, 20)), STANDING_PAID)

    def test_unpaid_inside_grace_period(self):
        user = SimpleNamespace(last_payment_date=date(2026, 5, 3))
        self.assertEqual(payment_standing(user, date(2026, 6, 7)), STANDING_GRACE_PERIOD)

    def test_unpaid_after_grace_period(self):
        user = SimpleNamespace(last_payment_date=None)
        self.assertEqual(payment_standing(user, date(2026, 6, 8)), STANDING_OVERDUE)


class PlanAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        User = get_user_model()
        self.student = User.objects.create_user(email='student@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='testpass123', role='admin')
        self.plan = Plan.objects.create(title='2 veces por semana', sessions_per_week=2, price=Decimal('26000'))
        self.retired = Plan.objects.create(title='Plan viejo', price=Decimal('5000'), active=False)

    def test_plans_are_public(self):
        resp = self.client.get(reverse('plans-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([p['id'] for p in resp.data], [self.plan.pk])

    def test_admin_sees_inactive_plans(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse('plans-list'))
        self.assertEqual(len(resp.data), 2)

    def test_only_admin_creates_plans(self):
        payload = {'title': 'Clase personalizada', 'price': '10000.00'}
        self.client.force_authenticate(self.student)
        resp = self.client.post(reverse('plans-list'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        resp = self.client.post(reverse('plans-list'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Plan.objects.filter(title='Clase personalizada').exists())

    def test_negative_price_is_rejected(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.post(reverse('plans-list'), {'title': 'Gratis', 'price': '-1'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', resp.data)

    def test_seed_plans_is_idempotent(self):
        call_command('seed_plans')
        call_command('seed_plans')
        self.assertEqual(Plan.objects.filter(title='3 veces por semana').count(), 1)
        self.assertEqual(Plan.objects.get(title='3 veces por semana').price, Decimal('31000'))
        self.assertIsNone(Plan.objects.get(title='Clase personalizada').sessions_per_week)


class PaymentAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        User = get_user_model()
        self.student = User.objects.create_user(
            email='student@example.com', password='testpass123', first_name='Camila',
        )
        self.other = User.objects.create_user(email='other@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='testpass123', role='admin')
        self.plan = Plan.objects.create(title='3 veces por semana', sessions_per_week=3, price=Decimal('31000'))

    def test_student_reports_payment_for_plan(self):
        self.client.force_authenticate(self.student)
        resp = self.client.post(
            reverse('payments-list'), {'plan': self.plan.pk, 'reference': 'TRF-001'}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

        payment = Payment.objects.get()
        self.assertEqual(payment.user, self.student)
        self.assertEqual(payment.amount, Decimal('31000'))
        self.assertEqual(payment.status, Payment.STATUS_PENDING)

    def test_amount_or_plan_is_required(self):
        self.client.force_authenticate(self.student)
        resp = self.client.post(reverse('payments-list'), {'reference': 'TRF-002'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', resp.data)

    def test_students_only_list_their_payments(self):
        Payment.objects.create(user=self.student, amount=Decimal('10000'))
        Payment.objects.create(user=self.other, amount=Decimal('10000'))

        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('payments-list'))
        self.assertEqual(len(resp.data), 1)

        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse('payments-list'), {'status': Payment.STATUS_PENDING})
        self.assertEqual(len(resp.data), 2)

    def test_verify_records_payment_date_and_notifies(self):
        payment = Payment.objects.create(user=self.student, plan=self.plan, amount=Decimal('31000'))

        self.client.force_authenticate(self.admin)
        resp = self.client.post(reverse('payments-verify', args=[payment.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['status'], Payment.STATUS_VERIFIED)

        payment.refresh_from_db()
        self.assertEqual(payment.verified_by, self.admin)
        self.assertIsNotNone(payment.verified_at)
        self.student.refresh_from_db()
        self.assertEqual(self.student.last_payment_date, timezone.localdate())

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['student@example.com'])

    def test_reject_leaves_payment_date_alone(self):
        payment = Payment.objects.create(user=self.student, amount=Decimal('31000'))

        self.client.force_authenticate(self.admin)
        resp = self.client.post(reverse('payments-reject', args=[payment.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_REJECTED)
        self.student.refresh_from_db()
        self.assertIsNone(self.student.last_payment_date)

    def test_students_cannot_verify(self):
        payment = Payment.objects.create(user=self.student, amount=Decimal('31000'))
        self.client.force_authenticate(self.student)
        resp = self.client.post(reverse('payments-verify', args=[payment.pk]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_PENDING)

    def test_payment_notice(self):
        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('payment-notice'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        for key in ('cbu', 'alias', 'holder', 'whatsapp', 'standing', 'grace_period_days'):
            self.assertIn(key, resp.data)
        self.assertEqual(resp.data['alias'], 'escuela.daprotis')
        self.assertIn(resp.data['standing'], (STANDING_GRACE_PERIOD, STANDING_OVERDUE))

    def test_payment_notice_requires_login(self):
        resp = self.client.get(reverse('payment-notice'))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
