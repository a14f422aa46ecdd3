"""
Clinical views.

Clinic admin endpoints:
- /api/v1/medications/
- /api/v1/appointments/
- /api/v1/documents/

Patient endpoints (own rows only):
- /api/v1/patient/appointments/
- /api/v1/patient/documents/
"""
from rest_framework import mixins, status, viewsets
from rest_framework.response import Response

from apps.authz.permissions import IsClinicAdmin, IsPatient
from apps.clinical import services
from apps.clinical.serializers import (
    AppointmentSerializer,
    DocumentListSerializer,
    DocumentSerializer,
    DocumentUploadSerializer,
    MedicationSerializer,
)


class MedicationViewSet(mixins.ListModelMixin,
                        mixins.CreateModelMixin,
                        viewsets.GenericViewSet):
    """
    - GET /api/v1/medications/ - Clinic catalogue ordered by name
    - POST /api/v1/medications/ - Add medication (409 on duplicate name)
    """
    permission_classes = [IsClinicAdmin]
    serializer_class = MedicationSerializer

    def get_queryset(self):
        return services.clinic_medications(self.request.user.clinic)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        medication = services.create_medication(
            clinic=request.user.clinic,
            name=serializer.validated_data['name'],
            description=serializer.validated_data.get('description'),
        )
        return Response(MedicationSerializer(medication).data, status=status.HTTP_201_CREATED)


class AppointmentViewSet(mixins.ListModelMixin,
                         mixins.CreateModelMixin,
                         viewsets.GenericViewSet):
    """
    - GET /api/v1/appointments/ - Clinic appointments ordered by date
    - POST /api/v1/appointments/ - Book for a patient of the clinic (404 otherwise)
    """
    permission_classes = [IsClinicAdmin]
    serializer_class = AppointmentSerializer

    def get_queryset(self):
        return services.clinic_appointments(self.request.user.clinic)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        appointment = services.create_appointment(
            clinic=request.user.clinic,
            patient_id=data['patient_id'],
            appointment_type=data['type'],
            scheduled_at=data['scheduled_at'],
            notes=data.get('notes'),
        )
        return Response(AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED)


class DocumentViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      viewsets.GenericViewSet):
    """
    - GET /api/v1/documents/?patient_id= - Clinic documents (metadata)
    - GET /api/v1/documents/{id}/ - Document with data URI
    - POST /api/v1/documents/ - Upload {patient_id, filename, file_data, file_type}
    """
    permission_classes = [IsClinicAdmin]

    def get_queryset(self):
        return services.clinic_documents(
            self.request.user.clinic,
            patient_id=self.request.query_params.get('patient_id'),
        )

    def get_serializer_class(self):
        if self.action == 'list':
            return DocumentListSerializer
        elif self.action == 'create':
            return DocumentUploadSerializer
        return DocumentSerializer

    def create(self, request, *args, **kwargs):
        serializer = DocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        document = services.upload_document(
            clinic=request.user.clinic,
            uploaded_by=request.user,
            patient_id=data['patient_id'],
            filename=data['filename'],
            file_data=data['file_data'],
            file_type=data['file_type'],
        )
        return Response(DocumentListSerializer(document).data, status=status.HTTP_201_CREATED)


class PatientAppointmentViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """GET /api/v1/patient/appointments/ - Own appointments ordered by date."""
    permission_classes = [IsPatient]
    serializer_class = AppointmentSerializer

    def get_queryset(self):
        return services.patient_appointments(self.request.user)


class PatientDocumentViewSet(mixins.ListModelMixin,
                             mixins.RetrieveModelMixin,
                             viewsets.GenericViewSet):
    """
    - GET /api/v1/patient/documents/ - Own documents (newest first)
    - GET /api/v1/patient/documents/{id}/ - Own document with data URI
    """
    permission_classes = [IsPatient]

    def get_queryset(self):
        return services.patient_documents(self.request.user)

    def get_serializer_class(self):
        if self.action == 'list':
            return DocumentListSerializer
        return DocumentSerializer
