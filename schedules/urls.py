from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import TrainingScheduleViewSet

router = SimpleRouter()
router.register(r'', TrainingScheduleViewSet, basename='schedule')

urlpatterns = [
    path('', include(router.urls)),
]
