import logging

from django.db import transaction
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from enrollments import cache
from enrollments.models import Enrollment
from user.permissions import IsAdmin, is_admin
from .models import TrainingSchedule
from .serializers import EnrolledStudentSerializer, TrainingScheduleSerializer

logger = logging.getLogger(__name__)


class TrainingScheduleViewSet(viewsets.ModelViewSet):
    """Weekly training slots. Students read the active ones, admins manage all of them."""
    serializer_class = TrainingScheduleSerializer
    filter_backends = (DjangoFilterBackend,)
    filterset_fields = ['day_of_week', 'is_active']

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [permissions.IsAuthenticated()]
        return [IsAdmin()]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return TrainingSchedule.objects.none()

        queryset = TrainingSchedule.objects.with_enrollment_count().in_week_order()
        if is_admin(self.request.user):
            return queryset
        return queryset.active()

    def get_serializer_context(self):
        context = super().get_serializer_context()
        user = getattr(self.request, 'user', None)
        if user is not None and user.is_authenticated and not is_admin(user):
            context['enrolled_schedule_ids'] = cache.get_enrolled_schedule_ids(user.pk)
        return context

    def perform_destroy(self, instance):
        with transaction.atomic():
            enrollments = Enrollment.objects.filter(schedule=instance)
            affected_users = list(enrollments.values_list('user_id', flat=True).distinct())
            removed, _ = enrollments.delete()
            instance.delete()
        cache.invalidate_many(affected_users)
        logger.info(f"Schedule {instance} deleted together with {removed} enrollment(s).")

    @action(detail=True, methods=['post'], url_path='toggle-status')
    def toggle_status(self, request, pk=None):
        schedule = self.get_object()
        schedule.is_active = not schedule.is_active
        schedule.save(update_fields=['is_active', 'updated_at'])
        serializer = self.get_serializer(self.get_queryset().get(pk=schedule.pk))
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        responses=EnrolledStudentSerializer(many=True),
        description="Students enrolled in a schedule, oldest enrollment first"
    )
    @action(detail=True, methods=['get'])
    def students(self, request, pk=None):
        schedule = self.get_object()
        enrollments = (
            Enrollment.objects.active()
            .filter(schedule=schedule)
            .select_related('user')
            .order_by('enrolled_at')
        )
        serializer = EnrolledStudentSerializer(enrollments, many=True)
        return Response(serializer.data)
