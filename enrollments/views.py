import logging

from django.db import DatabaseError
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiTypes

from user.permissions import IsOwnerOrAdmin, is_admin
from . import cache
from .eligibility import check_eligibility
from .models import Enrollment
from .serializers import EnrollmentSerializer, ToggleEnrollmentSerializer
from .services import (
    EnrollmentRejected,
    ScheduleUnavailable,
    remove_enrollment,
    toggle_enrollment,
)

logger = logging.getLogger(__name__)


class EnrollmentViewSet(mixins.ListModelMixin,
                        mixins.RetrieveModelMixin,
                        mixins.DestroyModelMixin,
                        viewsets.GenericViewSet):
    """
    Students see and toggle their own enrollments; admins see every
    active enrollment joined with its profile and schedule.
    """
    serializer_class = EnrollmentSerializer
    permission_classes = [IsOwnerOrAdmin]
    filter_backends = (DjangoFilterBackend, OrderingFilter)
    filterset_fields = {
        'schedule': ['exact'],
        'user': ['exact'],
        'schedule__day_of_week': ['exact'],
    }
    ordering_fields = ['enrolled_at']

    def get_queryset(self):
        # During schema generation (swagger_fake_view) self.request may be a dummy
        if getattr(self, 'swagger_fake_view', False):
            return Enrollment.objects.none()

        base_qs = Enrollment.objects.active().select_related('user', 'schedule').order_by('-enrolled_at')
        if is_admin(self.request.user):
            return base_qs
        return base_qs.filter(user=self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['include_user'] = is_admin(self.request.user)
        return context

    def list(self, request, *args, **kwargs):
        if is_admin(request.user):
            return super().list(request, *args, **kwargs)
        enrollments = cache.get_active_enrollments(request.user.pk)
        return Response(self.get_serializer(enrollments, many=True).data)

    def perform_destroy(self, instance):
        remove_enrollment(instance)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        try:
            self.perform_destroy(instance)
        except DatabaseError as e:
            logger.error(f"Error removing enrollment {instance.pk}: {e}")
            return Response({"error": str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        request=ToggleEnrollmentSerializer,
        responses={
            200: OpenApiTypes.OBJECT,
            400: OpenApiResponse(OpenApiTypes.OBJECT, description='Enrollment rejected'),
            500: OpenApiResponse(OpenApiTypes.OBJECT, description='Storage failure'),
        },
        description="Enroll in a schedule, or unenroll when already enrolled."
    )
    @action(detail=False, methods=['post'])
    def toggle(self, request):
        serializer = ToggleEnrollmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        schedule = serializer.validated_data['schedule']

        try:
            result = toggle_enrollment(request.user, schedule)
        except EnrollmentRejected as e:
            return Response(
                {"error": e.eligibility.message, "reason": e.reason},
                status=status.HTTP_400_BAD_REQUEST
            )
        except ScheduleUnavailable as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except DatabaseError as e:
            logger.error(f"Error toggling enrollment of user {request.user.pk} in schedule {schedule.pk}: {e}")
            return Response({"error": str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        action_text = 'enrolled in' if result.enrolled else 'unenrolled from'
        return Response({
            "enrolled": result.enrolled,
            "detail": f"You {action_text} {schedule.day_of_week} - {schedule.time_slot}.",
            "enrollment": EnrollmentSerializer(result.enrollment).data if result.enrollment else None,
            "enrollments": EnrollmentSerializer(result.enrollments, many=True).data,
        }, status=status.HTTP_200_OK)

    @extend_schema(responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=['get'])
    def eligibility(self, request):
        """Whether the signed-in user could enroll in one more class right now."""
        result = check_eligibility(request.user)
        return Response({
            "approved": result.approved,
            "reason": result.reason,
            "message": result.message,
        })
