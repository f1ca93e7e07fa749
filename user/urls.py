from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenBlacklistView, TokenRefreshView
from .views import (
    CreateUserView,
    ManageUserView,
    CustomTokenObtainView,
    UserAdminViewSet,
)
app_name = 'user'

router = DefaultRouter()
router.register(r'users', UserAdminViewSet, basename='admin-users')


urlpatterns = [
    path('register/', CreateUserView.as_view(), name='register'),
    path('me/', ManageUserView.as_view(), name='user-profile'),
    path('login/', CustomTokenObtainView.as_view(), name='token_obtain'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('logout/', TokenBlacklistView.as_view(), name='logout'),
    path('', include(router.urls)),
]
