"""
Clinical serializers: medications, appointments, documents.
"""
from rest_framework import serializers

from apps.clinical.models import Appointment, Document, Medication


class MedicationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Medication
        fields = ['id', 'name', 'description', 'created_at']
        read_only_fields = ['id', 'created_at']
        # per-clinic uniqueness is enforced by the service (409)
        validators = []


class AppointmentSerializer(serializers.ModelSerializer):
    """
    Used for:
    - POST /api/v1/appointments/ - {patient_id, type, date, notes}
    - GET /api/v1/appointments/ and /api/v1/patient/appointments/
    """
    patient_id = serializers.UUIDField()
    date = serializers.DateTimeField(source='scheduled_at')

    class Meta:
        model = Appointment
        fields = ['id', 'patient_id', 'type', 'date', 'notes', 'created_at']
        read_only_fields = ['id', 'created_at']


class DocumentListSerializer(serializers.ModelSerializer):
    """Metadata only; the data URI is served by the detail endpoints."""
    content_type = serializers.CharField(read_only=True)

    class Meta:
        model = Document
        fields = ['id', 'patient', 'filename', 'content_type', 'uploaded_by', 'created_at']
        read_only_fields = fields


class DocumentSerializer(serializers.ModelSerializer):
    content_type = serializers.CharField(read_only=True)

    class Meta:
        model = Document
        fields = ['id', 'patient', 'filename', 'content_type', 'content', 'uploaded_by', 'created_at']
        read_only_fields = fields


class DocumentUploadSerializer(serializers.Serializer):
    """Input for POST /api/v1/documents/."""
    patient_id = serializers.UUIDField()
    filename = serializers.CharField(max_length=255)
    file_data = serializers.CharField(trim_whitespace=True)
    file_type = serializers.CharField(max_length=100)
