from django.urls import path
from .views import AnalyticsView

app_name = 'dashboard'

urlpatterns = [
    path('analytics/', AnalyticsView.as_view(), name='analytics'),
]
