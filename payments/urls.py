from django.urls import path
from rest_framework.routers import DefaultRouter
from .views import PlanViewSet, PaymentViewSet, payment_notice

router = DefaultRouter()
router.register(r"plans", PlanViewSet, basename="plans")
router.register(r"payments", PaymentViewSet, basename="payments")

urlpatterns = [
    path('notice/', payment_notice, name='payment-notice'),
] + router.urls
