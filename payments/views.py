import logging

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import permissions, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet, GenericViewSet
from rest_framework import mixins
from drf_spectacular.utils import extend_schema, OpenApiTypes

from enrollments.eligibility import grace_days, paid_in_month
from user.permissions import IsAdmin, IsAdminOrReadOnly, is_admin
from .models import Plan, Payment
from .serializers import PlanSerializer, PaymentSerializer

logger = logging.getLogger(__name__)

STANDING_GRACE_PERIOD = 'grace_period'
STANDING_PAID = 'paid'
STANDING_OVERDUE = 'overdue'


def payment_standing(user, today):
    """Where a student stands with this month's fee, mirroring the enrollment rules."""
    if paid_in_month(user.last_payment_date, today):
        return STANDING_PAID
    if today.day <= grace_days():
        return STANDING_GRACE_PERIOD
    return STANDING_OVERDUE


class PlanViewSet(ModelViewSet):
    """Training plans shown on the landing page."""
    queryset = Plan.objects.all()
    serializer_class = PlanSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        if is_admin(self.request.user):
            return Plan.objects.all()
        return Plan.objects.filter(active=True)


class PaymentViewSet(mixins.CreateModelMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     GenericViewSet):
    """
    Students report the bank transfer of their monthly fee; an admin then
    verifies or rejects it. Verifying records the payment date on the profile.
    """
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = (DjangoFilterBackend,)
    filterset_fields = ['status', 'user']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Payment.objects.none()

        base_qs = Payment.objects.select_related('user', 'plan')
        if is_admin(self.request.user):
            return base_qs
        return base_qs.filter(user=self.request.user)

    def perform_create(self, serializer):
        payment = serializer.save(user=self.request.user, status=Payment.STATUS_PENDING)
        logger.info(f"User {payment.user_id} reported payment {payment.pk} of {payment.amount}.")

    @action(detail=True, methods=['post'], permission_classes=[IsAdmin])
    def verify(self, request, pk=None):
        """Admin-only endpoint to verify a payment"""
        return self._change_payment_status(Payment.STATUS_VERIFIED, request)

    @action(detail=True, methods=['post'], permission_classes=[IsAdmin])
    def reject(self, request, pk=None):
        """Admin-only endpoint to reject a payment"""
        return self._change_payment_status(Payment.STATUS_REJECTED, request)

    def _change_payment_status(self, new_status, request):
        payment = self.get_object()

        with transaction.atomic():
            payment.status = new_status
            if new_status == Payment.STATUS_VERIFIED:
                payment.verified_at = timezone.now()
                payment.verified_by = request.user
                payment.user.last_payment_date = timezone.localdate()
                payment.user.save(update_fields=['last_payment_date'])
            else:
                payment.verified_at = None
                payment.verified_by = None
            payment.save()

        logger.info(f"Admin {request.user.email} set payment {payment.pk} to {new_status}.")
        self._send_status_notification(payment)

        serializer = self.get_serializer(payment)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def _send_status_notification(self, payment):
        label = 'verified' if payment.status == Payment.STATUS_VERIFIED else 'rejected'
        subject = f"Payment {label}"
        message = (
            f"Hello {payment.user.first_name or payment.user.email},\n\n"
            f"Your payment of ${payment.amount} has been {label}.\n\n"
            "Escuela Futvoley Daprotis"
        )
        try:
            send_mail(
                subject,
                message,
                settings.DEFAULT_FROM_EMAIL,
                [payment.user.email],
                fail_silently=False,
            )
        except Exception as e:
            # the status change is already committed; a mail failure must not undo it
            logger.error(f"Error sending payment notification for payment {payment.pk}: {e}")


@extend_schema(responses={200: OpenApiTypes.OBJECT})
@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def payment_notice(request):
    """Bank details for the monthly transfer and the caller's standing this month."""
    today = timezone.localdate()
    notice = dict(settings.PAYMENT_NOTICE)
    return Response({
        **notice,
        "standing": payment_standing(request.user, today),
        "last_payment_date": request.user.last_payment_date,
        "grace_period_days": grace_days(),
    })
