from rest_framework import permissions
from user.models import User


def is_admin(user):
    return bool(user and user.is_authenticated and getattr(user, 'role', None) == User.ROLE_ADMIN)


class IsAdmin(permissions.BasePermission):
    """Capability check for admin-only operations."""
    message = 'Only administrators can perform this action.'

    def has_permission(self, request, view):
        return is_admin(request.user)

    def has_object_permission(self, request, view, obj):
        return is_admin(request.user)


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    - Anyone can READ (GET, HEAD, OPTIONS)
    - Only admin can WRITE (POST, PUT, PATCH, DELETE)
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_admin(request.user)


class IsOwnerOrAdmin(permissions.BasePermission):
    """Admins reach every object, everybody else only the ones they own through ``obj.user``."""

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return is_admin(request.user) or obj.user_id == request.user.pk
