# permissions.py
from rest_framework.permissions import BasePermission

from .models import Role


class IsForumUser(BasePermission):
    """Any authenticated, active user."""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_active)


class IsAdminRole(BasePermission):
    """Users with the Admin role."""

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return getattr(user, "role", None) == Role.ADMIN
