from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse

from rest_framework.test import APIClient
from rest_framework import status

from enrollments import cache as enrollment_cache
from enrollments.models import Enrollment
from schedules.models import TrainingSchedule


class TrainingScheduleAPITest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        User = get_user_model()
        self.student = User.objects.create_user(
            email='student@example.com', password='testpass123',
            first_name='Lucia', last_name='Gomez', phone='2231234567',
        )
        self.other = User.objects.create_user(
            email='other@example.com', password='testpass123',
            first_name='Pedro', last_name='Diaz',
        )
        self.admin = User.objects.create_user(email='admin@example.com', password='testpass123', role='admin')

        self.friday = TrainingSchedule.objects.create(day_of_week='Viernes', time_slot='19:00', max_capacity=2)
        self.monday_late = TrainingSchedule.objects.create(day_of_week='Lunes', time_slot='19:00')
        self.monday_early = TrainingSchedule.objects.create(day_of_week='Lunes', time_slot='17:00')
        self.closed = TrainingSchedule.objects.create(day_of_week='Jueves', time_slot='18:00', is_active=False)

    def test_students_see_active_slots_in_week_order(self):
        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('schedule-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        ids = [item['id'] for item in resp.data]
        self.assertEqual(ids, [self.monday_early.pk, self.monday_late.pk, self.friday.pk])
        for key in ('id', 'day_of_week', 'time_slot', 'max_capacity', 'enrolled', 'is_full', 'is_enrolled', 'actions'):
            self.assertIn(key, resp.data[0])

    def test_admin_sees_inactive_slots(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse('schedule-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data), 4)
        self.assertIsNone(resp.data[0]['is_enrolled'])

    def test_enrolled_count_and_full_flag(self):
        Enrollment.objects.create(user=self.student, schedule=self.friday)
        Enrollment.objects.create(user=self.other, schedule=self.friday)
        Enrollment.objects.create(user=self.other, schedule=self.monday_early)

        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('schedule-list'))
        by_id = {item['id']: item for item in resp.data}

        self.assertEqual(by_id[self.friday.pk]['enrolled'], 2)
        self.assertTrue(by_id[self.friday.pk]['is_full'])
        self.assertTrue(by_id[self.friday.pk]['is_enrolled'])

        self.assertEqual(by_id[self.monday_early.pk]['enrolled'], 1)
        self.assertFalse(by_id[self.monday_early.pk]['is_full'])
        self.assertFalse(by_id[self.monday_early.pk]['is_enrolled'])

        self.assertEqual(by_id[self.monday_late.pk]['enrolled'], 0)

    def test_retrieve_counts_without_annotation(self):
        Enrollment.objects.create(user=self.student, schedule=self.monday_late)
        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('schedule-detail', args=[self.monday_late.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['enrolled'], 1)

    def test_admin_creates_schedule(self):
        self.client.force_authenticate(self.admin)
        payload = {'day_of_week': 'Sábado', 'time_slot': '1030'}
        resp = self.client.post(reverse('schedule-list'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        created = TrainingSchedule.objects.get(pk=resp.data['id'])
        self.assertEqual(created.time_slot, '10:30')
        self.assertEqual(created.max_capacity, 15)
        self.assertTrue(created.is_active)
        self.assertEqual(resp.data['enrolled'], 0)

    def test_create_rejects_unknown_day_and_bad_capacity(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.post(
            reverse('schedule-list'),
            {'day_of_week': 'Domingo', 'time_slot': '10:00', 'max_capacity': 0},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('day_of_week', resp.data)
        self.assertIn('max_capacity', resp.data)

    def test_students_cannot_manage_schedules(self):
        self.client.force_authenticate(self.student)
        resp = self.client.post(reverse('schedule-list'), {'day_of_week': 'Martes', 'time_slot': '17:00'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.patch(reverse('schedule-detail', args=[self.friday.pk]), {'max_capacity': 30}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.delete(reverse('schedule-detail', args=[self.friday.pk]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(TrainingSchedule.objects.filter(pk=self.friday.pk).exists())

    def test_requires_authentication(self):
        resp = self.client.get(reverse('schedule-list'))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_update_schedule(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.patch(reverse('schedule-detail', args=[self.friday.pk]), {'max_capacity': 20}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.friday.refresh_from_db()
        self.assertEqual(self.friday.max_capacity, 20)

    def test_toggle_status(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.post(reverse('schedule-toggle-status', args=[self.closed.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['is_active'])
        self.closed.refresh_from_db()
        self.assertTrue(self.closed.is_active)

    def test_delete_removes_enrollments_first(self):
        Enrollment.objects.create(user=self.student, schedule=self.friday)
        Enrollment.objects.create(user=self.other, schedule=self.friday)
        kept = Enrollment.objects.create(user=self.student, schedule=self.monday_early)
        # prime the student's cached list so the delete has to drop it
        self.assertEqual(len(enrollment_cache.get_active_enrollments(self.student.pk)), 2)

        self.client.force_authenticate(self.admin)
        resp = self.client.delete(reverse('schedule-detail', args=[self.friday.pk]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

        self.assertFalse(TrainingSchedule.objects.filter(pk=self.friday.pk).exists())
        self.assertEqual(list(Enrollment.objects.values_list('pk', flat=True)), [kept.pk])
        self.assertEqual(enrollment_cache.get_enrolled_schedule_ids(self.student.pk), {self.monday_early.pk})

    def test_students_action_lists_oldest_first(self):
        first = Enrollment.objects.create(user=self.other, schedule=self.friday)
        second = Enrollment.objects.create(user=self.student, schedule=self.friday)

        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse('schedule-students', args=[self.friday.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row['enrollment_id'] for row in resp.data], [first.pk, second.pk])
        self.assertEqual(resp.data[1]['full_name'], 'Lucia Gomez')
        self.assertEqual(resp.data[1]['phone'], '2231234567')

        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('schedule-students', args=[self.friday.pk]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_slot_edits_reach_cached_enrollment_lists(self):
        Enrollment.objects.create(user=self.student, schedule=self.friday)
        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('enrollment-list'))
        self.assertEqual(resp.data[0]['schedule_details']['time_slot'], '19:00')

        self.client.force_authenticate(self.admin)
        resp = self.client.patch(reverse('schedule-detail', args=[self.friday.pk]), {'time_slot': '20:00'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        resp = self.client.post(reverse('schedule-toggle-status', args=[self.friday.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        self.client.force_authenticate(self.student)
        resp = self.client.get(reverse('enrollment-list'))
        self.assertEqual(resp.data[0]['schedule_details']['time_slot'], '20:00')
        self.assertFalse(resp.data[0]['schedule_details']['is_active'])
