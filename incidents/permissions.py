"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission

from .models import User


class IsDriverRole(BasePermission):
    """Allow access only to users with the driver role."""
    message = 'Only drivers can file incident reports.'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) == User.ROLE_DRIVER)


class IsHospitalRole(BasePermission):
    """Allow access only to users with the hospital role."""
    message = 'Only hospitals can view and decide incident reports.'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) == User.ROLE_HOSPITAL)
