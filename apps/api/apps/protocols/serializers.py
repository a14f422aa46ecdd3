"""
Protocol serializers: templates, assignments, schedules, completion ledger.
"""
from rest_framework import serializers

from .definitions import format_time_of_day
from .models import InjectionCompletion, Protocol, ProtocolAssignment


def medication_ref(medication_id, medication_names):
    if not medication_id:
        return None
    name = medication_names.get(medication_id)
    if name is None:
        return None
    return {'id': medication_id, 'name': name}


def enriched_phases(definition, medication_names):
    """Phases as JSON with each injection's medication resolved to {id, name} (or null)."""
    phases = []
    for phase in definition.phases:
        phase_json = phase.to_json()
        for spec_json, spec in zip(phase_json['injections'], phase.injections):
            spec_json['medication'] = medication_ref(spec.medication_id, medication_names)
        phases.append(phase_json)
    return phases


# ============================================================================
# Protocol templates
# ============================================================================

class ProtocolSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/v1/protocols/ and /api/v1/protocols/{id}/
    - Responses of create and revise
    """
    is_referenced = serializers.BooleanField(read_only=True)
    total_days = serializers.SerializerMethodField()

    class Meta:
        model = Protocol
        fields = [
            'id',
            'name',
            'description',
            'phases',
            'version',
            'previous_version',
            'total_days',
            'is_referenced',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_total_days(self, obj):
        return sum(int(phase.get('duration') or 0) for phase in obj.phases or [])


class ProtocolWriteSerializer(serializers.Serializer):
    """
    Input for POST /api/v1/protocols/ and PATCH /api/v1/protocols/{id}/.

    Phase structure is validated by the service so every problem is reported
    with its path (e.g. 'phases[0].injections[1].time').
    """
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    phases = serializers.JSONField()


class AssignProtocolSerializer(serializers.Serializer):
    """Input for POST /api/v1/patients/{id}/assign-protocol/."""
    protocol_id = serializers.UUIDField()
    start_date = serializers.CharField()


class ProtocolAssignmentSerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    protocol_id = serializers.UUIDField(read_only=True)
    protocol_name = serializers.CharField(source='protocol.name', read_only=True)
    protocol_version = serializers.IntegerField(source='protocol.version', read_only=True)
    assigned_by_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ProtocolAssignment
        fields = [
            'id',
            'patient_id',
            'protocol_id',
            'protocol_name',
            'protocol_version',
            'start_date',
            'assigned_by_id',
            'created_at',
        ]
        read_only_fields = fields


# ============================================================================
# Dashboards
# ============================================================================

class AssignmentOverviewSerializer(serializers.Serializer):
    """
    Renders apps.protocols.services.AssignmentOverview:

    {
        "assignment_id": "uuid",
        "start_date": "2024-01-01",
        "protocol": {"id", "name", "description", "version", "phases": [...]},
        "status": {"state", "day_number", "total_days", "end_date",
                   "phase_index", "phase_name", "day_of_phase"},
        "progress": {"total_injections", "completed_injections", "progress_percent"}
    }
    """
    assignment_id = serializers.UUIDField(source='assignment.id')
    start_date = serializers.DateField(source='assignment.start_date')
    protocol = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()

    def get_protocol(self, obj):
        protocol = obj.protocol
        return {
            'id': str(protocol.id),
            'name': protocol.name,
            'description': protocol.description,
            'version': protocol.version,
            'phases': enriched_phases(obj.definition, obj.medication_names),
        }

    def get_status(self, obj):
        status = obj.status
        return {
            'state': status.state.value,
            'day_number': status.day_number,
            'total_days': status.total_days,
            'end_date': status.end_date.isoformat() if status.end_date else None,
            'phase_index': status.phase_index,
            'phase_name': status.phase_name,
            'day_of_phase': status.day_of_phase,
        }

    def get_progress(self, obj):
        progress = obj.progress
        return {
            'total_injections': progress.total_injections,
            'completed_injections': progress.completed_injections,
            'progress_percent': round(progress.progress_percent, 2),
        }


class ScheduledDoseSerializer(serializers.Serializer):
    """One dose of a projected schedule with its completion state."""
    date = serializers.DateField(source='scheduled.calendar_date')
    time = serializers.SerializerMethodField()
    dosage = serializers.CharField(source='scheduled.dosage')
    medication = serializers.SerializerMethodField()
    phase_index = serializers.IntegerField(source='scheduled.phase_index')
    phase_name = serializers.CharField(source='scheduled.phase_name')
    day_number = serializers.IntegerField(source='scheduled.day_number')
    day_of_phase = serializers.IntegerField(source='scheduled.day_of_phase')
    completed = serializers.BooleanField()
    completion_id = serializers.SerializerMethodField()

    def get_time(self, obj):
        return format_time_of_day(obj.scheduled.time)

    def get_medication(self, obj):
        return medication_ref(obj.scheduled.medication_id, self.context.get('medication_names', {}))

    def get_completion_id(self, obj):
        return str(obj.completion.id) if obj.completion else None


# ============================================================================
# Completion ledger
# ============================================================================

class InjectionCompletionSerializer(serializers.ModelSerializer):
    protocol_id = serializers.UUIDField(read_only=True)
    injection_time = serializers.TimeField(format='%H:%M', read_only=True)

    class Meta:
        model = InjectionCompletion
        fields = [
            'id',
            'protocol_id',
            'injection_date',
            'injection_time',
            'mood',
            'mood_logged_at',
            'mood_analysis',
            'mood_analysis_status',
            'mood_analysis_error',
            'created_at',
        ]
        read_only_fields = fields


class RecordCompletionSerializer(serializers.Serializer):
    """Input for POST /api/v1/patient/injection-completions/."""
    protocol_id = serializers.UUIDField()
    injection_date = serializers.CharField()
    injection_time = serializers.CharField()


class LogSymptomSerializer(serializers.Serializer):
    """Input for PUT /api/v1/patient/injection-completions/{id}/mood/."""
    mood = serializers.CharField(allow_blank=True, trim_whitespace=True, max_length=2000)
