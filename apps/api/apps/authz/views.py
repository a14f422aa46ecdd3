"""
Authz views: clinic registration, password setup, clinic patient management.
"""
from django.db import transaction
from rest_framework import mixins, status, viewsets
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz import services
from apps.authz.models import User
from apps.authz.permissions import IsClinicAdmin
from apps.authz.serializers import (
    ClinicUserSerializer,
    PatientDetailSerializer,
    PatientListSerializer,
    PatientWriteSerializer,
    RegisterClinicSerializer,
    SetPasswordSerializer,
)
from apps.core.exceptions import Conflict


class RegisterClinicView(APIView):
    """
    POST /api/v1/auth/register-clinic/ - Create a clinic and its first admin.

    Returns 201 with the admin profile, 409 when the email is taken.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = RegisterClinicSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        clinic, admin = services.register_clinic(
            clinic_name=data['clinic_name'],
            admin_name=data['full_name'],
            email=data['email'],
            password=data['password'],
        )
        return Response(ClinicUserSerializer(admin).data, status=status.HTTP_201_CREATED)


class SetPasswordView(APIView):
    """
    POST /api/v1/auth/set-password/ - Consume a setup token from the patient's link.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = SetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        services.set_password(
            serializer.validated_data['token'],
            serializer.validated_data['password'],
        )
        return Response(
            {'message': 'Password updated successfully. You can now log in.'},
            status=status.HTTP_200_OK
        )


class PatientViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.DestroyModelMixin,
                     viewsets.GenericViewSet):
    """
    Patients of the requesting admin's clinic.

    Endpoints:
    - GET /api/v1/patients/ - List patients (ordered by name)
    - POST /api/v1/patients/ - Create patient, returns one-time setup link
    - GET /api/v1/patients/{id}/ - Detail with current protocol, documents, appointments
    - PATCH /api/v1/patients/{id}/ - Update name, email, date of birth
    - DELETE /api/v1/patients/{id}/ - Remove patient

    Patients of other clinics are reported as 404.
    """
    permission_classes = [IsClinicAdmin]
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def get_queryset(self):
        return services.clinic_patients(self.request.user.clinic)

    def get_serializer_class(self):
        if self.action == 'list':
            return PatientListSerializer
        elif self.action == 'retrieve':
            return PatientDetailSerializer
        return PatientWriteSerializer

    def create(self, request, *args, **kwargs):
        serializer = PatientWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        onboarding = services.create_patient(
            clinic=request.user.clinic,
            name=serializer.validated_data['name'],
            email=serializer.validated_data['email'],
            date_of_birth=serializer.validated_data.get('date_of_birth'),
            created_by=request.user,
        )

        if onboarding.setup_link:
            message = 'Patient created successfully. Please share this setup link with them.'
        else:
            message = 'Patient created, but FRONTEND_URL is not set. Cannot generate setup link.'

        return Response(
            {
                'message': message,
                'patient': PatientListSerializer(onboarding.patient).data,
                'setup_link': onboarding.setup_link,
                'setup_token': onboarding.setup_token,
            },
            status=status.HTTP_201_CREATED
        )

    @transaction.atomic
    def partial_update(self, request, *args, **kwargs):
        patient = services.get_clinic_patient(request.user.clinic, kwargs['pk'])
        serializer = PatientWriteSerializer(patient, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data.get('email')
        if email and User.objects.filter(email__iexact=email).exclude(pk=patient.pk).exists():
            raise Conflict('User with this email already exists', details={'field': 'email'})

        patient = serializer.save()
        return Response(PatientListSerializer(patient).data)
