import logging

from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, mixins, viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.filters import SearchFilter, OrderingFilter
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes

from user.models import User
from .permissions import IsAdmin
from user.serializers import (
    CustomTokenObtainPairSerializer,
    MarkPaidSerializer,
    ProfileSerializer,
    RegisterSerializer,
    UserAdminSerializer,
)

logger = logging.getLogger(__name__)


class CustomTokenObtainView(TokenObtainPairView):
    """Email + password login returning a JWT pair and the profile basics."""
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [permissions.AllowAny]


class CreateUserView(generics.CreateAPIView):
    serializer_class = RegisterSerializer
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info(f"Registered new student {user.email} (id={user.pk}).")


class ManageUserView(generics.RetrieveUpdateAPIView):
    serializer_class = ProfileSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user


class UserAdminViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       viewsets.GenericViewSet):
    """Admin user management. Profiles are never deleted through the API."""
    queryset = User.objects.all()
    serializer_class = UserAdminSerializer
    permission_classes = [IsAdmin]
    filter_backends = (DjangoFilterBackend, SearchFilter, OrderingFilter)
    filterset_fields = ['role', 'is_active']
    search_fields = ['first_name', 'last_name', 'email', 'phone']
    ordering_fields = ['date_joined', 'last_payment_date', 'last_name']

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name='role',
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                description='Filter users by role',
                enum=[User.ROLE_USER, User.ROLE_ADMIN],
            ),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    def get_queryset(self):
        return self.queryset.order_by('-date_joined')

    def perform_update(self, serializer):
        user = serializer.save()
        logger.info(
            f"Admin {self.request.user.email} updated user {user.pk}: "
            f"last_payment_date={user.last_payment_date}, cant_por_semana={user.cant_por_semana}"
        )

    @extend_schema(
        request=MarkPaidSerializer,
        responses={status.HTTP_200_OK: UserAdminSerializer},
        description="Record the monthly payment of a user. Defaults to today's date."
    )
    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        user = self.get_object()
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user.last_payment_date = serializer.validated_data.get('date') or timezone.localdate()
        user.save(update_fields=['last_payment_date'])
        logger.info(f"Admin {request.user.email} marked user {user.pk} as paid on {user.last_payment_date}.")
        return Response(self.get_serializer(user).data)
