"""
Role based permission classes.

Each class admits authenticated users whose ``role`` is in its set.
"""
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"admin"}
STAFF_ROLES = {"admin", "doctor", "nurse", "pharmacist", "receptionist", "lab"}
BILLING_ROLES = {"admin", "receptionist"}
PHARMACY_ROLES = {"admin", "pharmacist"}
CLINICAL_ROLES = {"admin", "doctor"}


class _RolePermission(BasePermission):
    roles: set[str] = set()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in self.roles)


class IsAdminRole(_RolePermission):
    """Hospital administrators only."""
    roles = ADMIN_ROLES


class IsStaffRole(_RolePermission):
    """Any hospital staff member, i.e. everyone except patients."""
    roles = STAFF_ROLES


class CanBill(_RolePermission):
    """Administrators and front-desk receptionists."""
    roles = BILLING_ROLES


class IsPharmacyRole(_RolePermission):
    roles = PHARMACY_ROLES


class IsClinician(_RolePermission):
    roles = CLINICAL_ROLES
