"""
Protocol views.

Clinic admin endpoints:
- /api/v1/protocols/
- /api/v1/patients/{id}/assign-protocol/
- /api/v1/patients/{id}/protocol-history/

Patient endpoints:
- /api/v1/patient/protocol/?date=YYYY-MM-DD
- /api/v1/patient/protocol-history/
- /api/v1/patient/calendar/
- /api/v1/patient/injection-completions/
- /api/v1/patient/injection-completions/{id}/mood/
- /api/v1/patient/injection-completions/{id}/retry-analysis/
"""
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import IsClinicAdmin, IsPatient
from apps.authz.services import get_clinic_patient
from apps.protocols import services
from apps.protocols.serializers import (
    AssignmentOverviewSerializer,
    AssignProtocolSerializer,
    InjectionCompletionSerializer,
    LogSymptomSerializer,
    ProtocolAssignmentSerializer,
    ProtocolSerializer,
    ProtocolWriteSerializer,
    RecordCompletionSerializer,
    ScheduledDoseSerializer,
)


class ProtocolViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      viewsets.GenericViewSet):
    """
    Protocol templates of the admin's clinic.

    Endpoints:
    - GET /api/v1/protocols/ - Latest version of each protocol
    - GET /api/v1/protocols/?include_superseded=true - Every version
    - GET /api/v1/protocols/{id}/ - Protocol detail
    - POST /api/v1/protocols/ - Create protocol
    - PATCH /api/v1/protocols/{id}/ - Revise; returns a new version when already assigned
    """
    permission_classes = [IsClinicAdmin]
    serializer_class = ProtocolSerializer

    def get_queryset(self):
        include_superseded = self.request.query_params.get('include_superseded', 'false').lower() == 'true'
        return services.clinic_protocols(self.request.user.clinic, include_superseded=include_superseded)

    def create(self, request, *args, **kwargs):
        serializer = ProtocolWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        protocol = services.create_protocol(
            clinic=request.user.clinic,
            name=data['name'],
            description=data.get('description'),
            phases=data['phases'],
            created_by=request.user,
        )
        return Response(ProtocolSerializer(protocol).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        protocol = services.get_clinic_protocol(request.user.clinic, kwargs['pk'])
        serializer = ProtocolWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        revised = services.revise_protocol(protocol, changed_by=request.user, **serializer.validated_data)
        response_status = status.HTTP_200_OK if revised.pk == protocol.pk else status.HTTP_201_CREATED
        return Response(ProtocolSerializer(revised).data, status=response_status)


class AssignProtocolView(APIView):
    """
    POST /api/v1/patients/{id}/assign-protocol/ - {protocol_id, start_date}

    Adds an assignment; earlier ones stay in the patient's history.
    """
    permission_classes = [IsClinicAdmin]

    def post(self, request, patient_id):
        serializer = AssignProtocolSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        assignment = services.assign_protocol(
            patient_id=patient_id,
            protocol_id=serializer.validated_data['protocol_id'],
            start_date=serializer.validated_data['start_date'],
            assigned_by=request.user,
        )
        return Response(ProtocolAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)


class PatientProtocolHistoryAdminView(APIView):
    """GET /api/v1/patients/{id}/protocol-history/ - Assignment history of a clinic patient."""
    permission_classes = [IsClinicAdmin]

    def get(self, request, patient_id):
        patient = get_clinic_patient(request.user.clinic, patient_id)
        history = services.protocol_history(patient, timezone.localdate())
        return Response(AssignmentOverviewSerializer(history, many=True).data)


class PatientProtocolView(APIView):
    """
    GET /api/v1/patient/protocol/?date=YYYY-MM-DD

    Current assignment with status and progress, plus the doses due on
    `date` (default today). 404 when no protocol is assigned.
    """
    permission_classes = [IsPatient]

    def get(self, request):
        today = timezone.localdate()
        raw_date = request.query_params.get('date')
        reference_date = services.coerce_date(raw_date, 'date') if raw_date else today

        overview, doses = services.daily_schedule(request.user, reference_date, today)
        context = {'medication_names': overview.medication_names}
        return Response({
            'assignment': AssignmentOverviewSerializer(overview).data,
            'date': reference_date.isoformat(),
            'injections': ScheduledDoseSerializer(doses, many=True, context=context).data,
        })


class PatientProtocolHistoryView(APIView):
    """GET /api/v1/patient/protocol-history/ - Every assignment, most recent first."""
    permission_classes = [IsPatient]

    def get(self, request):
        history = services.protocol_history(request.user, timezone.localdate())
        return Response(AssignmentOverviewSerializer(history, many=True).data)


class PatientCalendarView(APIView):
    """GET /api/v1/patient/calendar/ - Full dated schedule of the current assignment."""
    permission_classes = [IsPatient]

    def get(self, request):
        overview, doses = services.patient_calendar(request.user, timezone.localdate())
        context = {'medication_names': overview.medication_names}
        return Response({
            'assignment': AssignmentOverviewSerializer(overview).data,
            'injections': ScheduledDoseSerializer(doses, many=True, context=context).data,
        })


class InjectionCompletionViewSet(mixins.ListModelMixin,
                                 mixins.RetrieveModelMixin,
                                 viewsets.GenericViewSet):
    """
    The patient's injection completion ledger.

    Endpoints:
    - GET /api/v1/patient/injection-completions/?protocol_id= - Own completions
    - POST /api/v1/patient/injection-completions/ - {protocol_id, injection_date, injection_time}
    - PUT /api/v1/patient/injection-completions/{id}/mood/ - {mood}
    - POST /api/v1/patient/injection-completions/{id}/retry-analysis/
    """
    permission_classes = [IsPatient]
    serializer_class = InjectionCompletionSerializer
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def get_queryset(self):
        return services.list_completions(
            self.request.user,
            protocol_id=self.request.query_params.get('protocol_id'),
        )

    def create(self, request, *args, **kwargs):
        serializer = RecordCompletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        completion = services.record_completion(
            request.user,
            protocol_id=data['protocol_id'],
            injection_date=data['injection_date'],
            injection_time=data['injection_time'],
        )
        return Response(InjectionCompletionSerializer(completion).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['put'], url_path='mood')
    def mood(self, request, pk=None):
        """
        Save the mood, then request AI commentary.

        Always 200 once the mood is saved; `mood_analysis_status` is 'failed'
        when the assistant was unavailable.
        """
        serializer = LogSymptomSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        completion = services.log_symptom(pk, request.user, serializer.validated_data['mood'])
        return Response(InjectionCompletionSerializer(completion).data)

    @action(detail=True, methods=['post'], url_path='retry-analysis')
    def retry_analysis(self, request, pk=None):
        completion = services.retry_mood_analysis(pk, request.user)
        return Response(InjectionCompletionSerializer(completion).data)
