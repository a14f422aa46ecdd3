"""
Authz permissions: clinic staff vs. patients.

Roles are read from UserRole rows, never from Django groups.
"""
from rest_framework import permissions
from apps.authz.models import RoleChoices


def user_role_names(user):
    """Set of role names held by `user` (empty for anonymous users)."""
    if not user or not user.is_authenticated:
        return set()
    return set(user.user_roles.values_list('role__name', flat=True))


class IsClinicAdmin(permissions.BasePermission):
    """
    Allows clinic admins attached to a clinic.

    Used for protocol authoring, patient onboarding, assignments,
    medications, appointments and document uploads.
    """
    message = 'Clinic admin role required.'

    def has_permission(self, request, view):
        user = request.user
        if RoleChoices.CLINIC_ADMIN not in user_role_names(user):
            return False
        # A clinic admin without a clinic cannot scope any query
        return user.clinic_id is not None

    def has_object_permission(self, request, view, obj):
        clinic_id = getattr(obj, 'clinic_id', None)
        return clinic_id is None or clinic_id == request.user.clinic_id


class IsPatient(permissions.BasePermission):
    """
    Allows patients only.

    Used for the patient dashboard: protocol schedule, completions,
    symptom logs, own appointments and documents.
    """
    message = 'Patient role required.'

    def has_permission(self, request, view):
        return RoleChoices.PATIENT in user_role_names(request.user)

    def has_object_permission(self, request, view, obj):
        patient_id = getattr(obj, 'patient_id', None)
        return patient_id is None or patient_id == request.user.id
