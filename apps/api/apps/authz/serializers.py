"""
Authz serializers: clinic registration, password setup, patients.
"""
from django.utils import timezone
from rest_framework import serializers

from apps.authz.models import User
from apps.clinical.serializers import AppointmentSerializer, DocumentListSerializer
from apps.core.serializers import ClinicSummarySerializer


class RegisterClinicSerializer(serializers.Serializer):
    """Input for POST /api/v1/auth/register-clinic/."""
    clinic_name = serializers.CharField(max_length=255)
    full_name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})


class SetPasswordSerializer(serializers.Serializer):
    """Input for POST /api/v1/auth/set-password/."""
    token = serializers.CharField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})


class ClinicUserSerializer(serializers.ModelSerializer):
    clinic = ClinicSummarySerializer(read_only=True)
    roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'clinic', 'roles', 'created_at']
        read_only_fields = fields

    def get_roles(self, obj):
        return list(obj.user_roles.values_list('role__name', flat=True))


class PatientListSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/v1/patients/ - Patients of the admin's clinic
    """
    has_password = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'date_of_birth', 'has_password', 'created_at']
        read_only_fields = fields

    def get_has_password(self, obj):
        return obj.has_usable_password()


class PatientWriteSerializer(serializers.ModelSerializer):
    """
    Used for:
    - POST /api/v1/patients/ - Create patient (setup link returned once)
    - PATCH /api/v1/patients/{id}/ - Update name, email, date of birth
    """
    name = serializers.CharField(max_length=255)

    class Meta:
        model = User
        fields = ['name', 'email', 'date_of_birth']
        extra_kwargs = {
            # uniqueness is checked by the service so it maps to 409
            'email': {'validators': []},
        }


class PatientDetailSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/v1/patients/{id}/ - Patient with current protocol, documents, appointments
    """
    current_protocol = serializers.SerializerMethodField()
    appointments = AppointmentSerializer(many=True, read_only=True)
    documents = DocumentListSerializer(many=True, read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'name',
            'email',
            'date_of_birth',
            'current_protocol',
            'appointments',
            'documents',
            'created_at',
        ]
        read_only_fields = fields

    def get_current_protocol(self, obj):
        from apps.protocols.serializers import AssignmentOverviewSerializer
        from apps.protocols.services import assignment_overview, current_assignment

        today = timezone.localdate()
        assignment = current_assignment(obj, today)
        if assignment is None:
            return None
        return AssignmentOverviewSerializer(assignment_overview(assignment, today)).data
