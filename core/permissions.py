# core/permissions.py
from rest_framework.permissions import BasePermission


class IsSocietyAdmin(BasePermission):
    """Admin flag from the Kratos session claims."""

    message = "You don't have access to the admin area"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and getattr(user, "is_authenticated", False) and getattr(user, "is_admin", False))
