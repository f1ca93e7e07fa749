from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from rest_framework.test import APIClient
from rest_framework import status

from user.permissions import is_admin

User = get_user_model()

STRONG_PASSWORD = 'Arena-Pelota-2026'


class RegisterAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse('user:register')
        self.payload = {
            'email': 'nuevo@example.com',
            'password': STRONG_PASSWORD,
            'confirm_password': STRONG_PASSWORD,
            'first_name': 'Sofia',
            'last_name': 'Martinez',
            'phone': '+54 9 223 555-0101',
            'date_of_birth': '1998-04-21',
        }

    def test_register_creates_student(self):
        resp = self.client.post(self.url, self.payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password', resp.data)

        user = User.objects.get(email='nuevo@example.com')
        self.assertEqual(user.role, User.ROLE_USER)
        self.assertTrue(user.check_password(STRONG_PASSWORD))
        self.assertIsNone(user.last_payment_date)
        self.assertIsNone(user.cant_por_semana)

    def test_register_cannot_choose_role(self):
        resp = self.client.post(self.url, {**self.payload, 'role': 'admin'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(email='nuevo@example.com').role, User.ROLE_USER)

    def test_passwords_must_match(self):
        resp = self.client.post(self.url, {**self.payload, 'confirm_password': 'Otra-Cosa-2026'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('confirm_password', resp.data)
        self.assertFalse(User.objects.exists())

    def test_short_password_is_rejected(self):
        resp = self.client.post(
            self.url, {**self.payload, 'password': 'abc12', 'confirm_password': 'abc12'}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', resp.data)

    def test_phone_needs_seven_digits(self):
        resp = self.client.post(self.url, {**self.payload, 'phone': '123-45'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', resp.data)

    def test_required_profile_fields(self):
        payload = {k: v for k, v in self.payload.items() if k not in ('last_name', 'date_of_birth')}
        resp = self.client.post(self.url, payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('last_name', resp.data)
        self.assertIn('date_of_birth', resp.data)

    def test_duplicate_email_is_case_insensitive(self):
        User.objects.create_user(email='nuevo@example.com', password=STRONG_PASSWORD)
        resp = self.client.post(self.url, {**self.payload, 'email': 'NUEVO@example.com'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', resp.data)


class AuthAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(
            email='login@example.com', password=STRONG_PASSWORD,
            first_name='Mateo', last_name='Lopez',
        )

    def login(self, password=STRONG_PASSWORD):
        return self.client.post(
            reverse('user:token_obtain'),
            {'email': 'login@example.com', 'password': password},
            format='json',
        )

    def test_login_returns_tokens_and_profile(self):
        resp = self.login()
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        for key in ('access', 'refresh', 'user_id', 'email', 'full_name', 'role'):
            self.assertIn(key, resp.data)
        self.assertEqual(resp.data['full_name'], 'Mateo Lopez')
        self.assertEqual(resp.data['role'], User.ROLE_USER)

    def test_login_with_wrong_password(self):
        resp = self.login(password='incorrecta-123')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_access_token_identifies_the_caller(self):
        access = self.login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        resp = self.client.get(reverse('user:user-profile'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['email'], 'login@example.com')

    def test_logout_blacklists_refresh_token(self):
        refresh = self.login().data['refresh']
        resp = self.client.post(reverse('user:logout'), {'refresh': refresh}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        resp = self.client.post(reverse('user:token_refresh'), {'refresh': refresh}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class ProfileAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(
            email='perfil@example.com', password=STRONG_PASSWORD,
            first_name='Valentina', last_name='Ruiz', phone='2234567890',
            date_of_birth=date(2000, 1, 15),
        )
        self.url = reverse('user:user-profile')
        self.client.force_authenticate(self.user)

    def test_get_profile(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['full_name'], 'Valentina Ruiz')
        self.assertNotIn('password', resp.data)

    def test_update_profile(self):
        resp = self.client.patch(self.url, {'address': 'Av. Costanera 123', 'phone': '2239876543'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.address, 'Av. Costanera 123')
        self.assertEqual(self.user.phone, '2239876543')

    def test_required_fields_cannot_be_blanked(self):
        resp = self.client.patch(self.url, {'first_name': ''}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('first_name', resp.data)

    def test_students_cannot_set_their_own_plan(self):
        resp = self.client.patch(
            self.url,
            {'last_payment_date': '2026-06-01', 'cant_por_semana': 5, 'role': 'admin'},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertIsNone(self.user.last_payment_date)
        self.assertIsNone(self.user.cant_por_semana)
        self.assertEqual(self.user.role, User.ROLE_USER)

    def test_password_change(self):
        resp = self.client.patch(self.url, {'password': 'Nueva-Clave-2026'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Nueva-Clave-2026'))

    def test_profile_cannot_be_deleted(self):
        resp = self.client.delete(self.url)
        self.assertEqual(resp.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)


class UserAdminAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = User.objects.create_user(email='admin@example.com', password=STRONG_PASSWORD, role=User.ROLE_ADMIN)
        self.student = User.objects.create_user(
            email='alumno@example.com', password=STRONG_PASSWORD,
            first_name='Tomas', last_name='Fernandez',
        )
        self.client.force_authenticate(self.admin)

    def test_students_are_forbidden(self):
        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('user:admin-users-list'))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.patch(
            reverse('user:admin-users-detail', args=[self.student.pk]), {'cant_por_semana': 3}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_and_filter_by_role(self):
        resp = self.client.get(reverse('user:admin-users-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data), 2)

        resp = self.client.get(reverse('user:admin-users-list'), {'role': User.ROLE_USER})
        self.assertEqual([u['email'] for u in resp.data], ['alumno@example.com'])

    def test_search(self):
        resp = self.client.get(reverse('user:admin-users-list'), {'search': 'Fernandez'})
        self.assertEqual(len(resp.data), 1)

    def test_admin_sets_payment_and_allowance(self):
        today = timezone.localdate()
        resp = self.client.patch(
            reverse('user:admin-users-detail', args=[self.student.pk]),
            {'last_payment_date': today.isoformat(), 'cant_por_semana': 3},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['paid_this_month'])
        self.student.refresh_from_db()
        self.assertEqual(self.student.last_payment_date, today)
        self.assertEqual(self.student.cant_por_semana, 3)

    def test_allowance_must_be_positive(self):
        resp = self.client.patch(
            reverse('user:admin-users-detail', args=[self.student.pk]), {'cant_por_semana': 0}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cant_por_semana', resp.data)

    def test_mark_paid_defaults_to_today(self):
        resp = self.client.post(reverse('user:admin-users-mark-paid', args=[self.student.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.student.refresh_from_db()
        self.assertEqual(self.student.last_payment_date, timezone.localdate())

    def test_mark_paid_with_explicit_date(self):
        resp = self.client.post(
            reverse('user:admin-users-mark-paid', args=[self.student.pk]), {'date': '2026-03-02'}, format='json'
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.student.refresh_from_db()
        self.assertEqual(self.student.last_payment_date, date(2026, 3, 2))

    def test_users_cannot_be_deleted(self):
        resp = self.client.delete(reverse('user:admin-users-detail', args=[self.student.pk]))
        self.assertEqual(resp.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(User.objects.filter(pk=self.student.pk).exists())

    def test_paid_this_month_follows_calendar_month(self):
        last_month = timezone.localdate().replace(day=1) - timedelta(days=1)
        self.student.last_payment_date = last_month
        self.student.save()
        resp = self.client.get(reverse('user:admin-users-detail', args=[self.student.pk]))
        self.assertFalse(resp.data['paid_this_month'])


class AdminRoleTest(SimpleTestCase):

    def test_is_admin_uses_role(self):
        self.assertTrue(is_admin(User(email='a@example.com', role=User.ROLE_ADMIN)))
        self.assertFalse(is_admin(User(email='b@example.com', role=User.ROLE_USER)))
        self.assertFalse(is_admin(AnonymousUser()))
        self.assertFalse(is_admin(None))
