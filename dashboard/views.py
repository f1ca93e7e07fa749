from dateutil.relativedelta import relativedelta
from django.contrib.auth import get_user_model
from django.db.models import Sum
from django.utils import timezone
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiTypes

from enrollments.models import Enrollment
from payments.models import Payment
from user.permissions import IsAdmin

User = get_user_model()


def collect_statistics(today):
    """
    Counters for the admin landing view, recomputed on every call:

    {
        "total_users": int,               # non-admin profiles
        "paid_this_month": int,           # non-admin profiles with last_payment_date in today's month
        "total_active_enrollments": int,
        "pending_payments": int,
        "total_revenue": "decimal string" # sum of verified payments
    }
    """
    month_start = today.replace(day=1)
    next_month_start = month_start + relativedelta(months=1)

    students = User.objects.students()
    revenue = Payment.objects.filter(status=Payment.STATUS_VERIFIED).aggregate(total=Sum('amount'))['total']

    return {
        "total_users": students.count(),
        "paid_this_month": students.filter(
            last_payment_date__gte=month_start,
            last_payment_date__lt=next_month_start,
        ).count(),
        "total_active_enrollments": Enrollment.objects.active().count(),
        "pending_payments": Payment.objects.filter(status=Payment.STATUS_PENDING).count(),
        "total_revenue": revenue or 0,
    }


class AnalyticsView(APIView):
    permission_classes = [IsAdmin]

    @extend_schema(responses={200: OpenApiTypes.OBJECT})
    def get(self, request):
        return Response(collect_statistics(timezone.localdate()))
