"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    message = "Access denied. Admin privileges required."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "admin"


class IsDoctorRole(BasePermission):
    """Allow access only to doctor accounts."""
    message = "Access denied. Doctor account required."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "doctor"


class IsPatientRole(BasePermission):
    """Allow access only to regular (patient) accounts."""
    message = "Access denied. Patient account required."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "user"


class IsDoctorOrAdmin(BasePermission):
    def has_permission(self, request, view) -> bool:
        return _role(request) in {"doctor", "admin"}
