"""
Protocol services: authoring, assignment, completion ledger, symptom logs.

Views call these functions and let the domain errors from
apps.core.exceptions propagate to the DRF exception handler.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, Dict, Iterable, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Exists, OuterRef, Q
from django.utils import timezone
from django.utils.dateparse import parse_date

from apps.authz.services import get_clinic_patient
from apps.clinical.services import medication_name_map
from apps.core.exceptions import Conflict, Forbidden, NotFound, UpstreamFailure, ValidationError
from apps.core.observability import metrics
from apps.core.observability.events import (
    log_completion_conflict,
    log_completion_recorded,
    log_mood_analysis,
    log_protocol_assigned,
    log_protocol_revised,
)

from .definitions import ProtocolDefinition, parse_phases, parse_time_of_day
from .models import InjectionCompletion, MoodAnalysisStatusChoices, Protocol, ProtocolAssignment
from .progress import ProtocolProgress, compute_progress
from .reminders import ReminderCandidate
from .scheduling import (
    ScheduledInjection,
    ScheduleStatus,
    full_calendar,
    injections_on_date,
    schedule_status,
)

logger = logging.getLogger(__name__)

# analyzer(mood_text, medication_name) -> commentary; raises UpstreamFailure
MoodAnalyzer = Callable[[str, Optional[str]], str]

REVISABLE_FIELDS = ('name', 'description', 'phases')


# ============================================================================
# Input coercion
# ============================================================================

def coerce_date(value, field_name='date') -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_date(value.strip())
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError(f'{field_name} must be a valid YYYY-MM-DD date', details={field_name: value})
    return parsed


def coerce_uuid(value, field_name='id') -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f'{field_name} must be a valid UUID', details={field_name: value})


def coerce_time(value, field_name='time') -> time:
    try:
        return parse_time_of_day(value)
    except ValidationError:
        raise ValidationError(f'{field_name} must use the HH:MM 24-hour format', details={field_name: value})


# ============================================================================
# Authoring
# ============================================================================

def _check_medications(clinic, phases):
    known = medication_name_map(clinic)
    definition = ProtocolDefinition(phases=phases)
    unknown = [medication_id for medication_id in definition.medication_ids() if medication_id not in known]
    if unknown:
        raise ValidationError(
            'Protocol references medications outside this clinic',
            details={'medication_ids': unknown}
        )


def create_protocol(clinic, name, description=None, phases=None, created_by=None) -> Protocol:
    """
    Validate and store a protocol template.

    Raises:
        ValidationError: missing name, malformed phases, unknown medication
    """
    if not name or not str(name).strip():
        raise ValidationError('Protocol name is required', details={'name': 'Required'})

    parsed = parse_phases(phases, strict=True)
    _check_medications(clinic, parsed)

    protocol = Protocol.objects.create(
        clinic=clinic,
        name=str(name).strip(),
        description=description or None,
        phases=ProtocolDefinition(phases=parsed).phases_to_json(),
        created_by=created_by,
    )

    logger.info(
        'Protocol created',
        extra={
            'event': 'protocol_created',
            'protocol_id': str(protocol.id),
            'clinic_id': str(clinic.id),
            'phase_count': len(parsed),
        }
    )
    return protocol


@transaction.atomic
def revise_protocol(protocol, changed_by=None, **changes) -> Protocol:
    """
    Apply edits to a protocol.

    Unreferenced protocols are edited in place. Once any assignment points at
    the protocol, a new row is created with version + 1 and previous_version
    set, leaving existing assignments on the old definition.

    Raises:
        ValidationError: unknown field or invalid phases
        Conflict: the protocol was already superseded by a newer version
    """
    unknown = set(changes) - set(REVISABLE_FIELDS)
    if unknown:
        raise ValidationError('Unsupported protocol fields', details={'fields': sorted(unknown)})

    protocol = Protocol.objects.select_for_update().get(pk=protocol.pk)
    if Protocol.objects.filter(previous_version=protocol).exists():
        raise Conflict('Protocol has a newer version; revise the latest one', details={'protocol_id': str(protocol.id)})

    name = changes.get('name', protocol.name)
    if not name or not str(name).strip():
        raise ValidationError('Protocol name is required', details={'name': 'Required'})

    description = changes.get('description', protocol.description)
    if 'phases' in changes:
        parsed = parse_phases(changes['phases'], strict=True)
        _check_medications(protocol.clinic, parsed)
        phases = ProtocolDefinition(phases=parsed).phases_to_json()
    else:
        phases = protocol.phases

    if not protocol.is_referenced:
        protocol.name = str(name).strip()
        protocol.description = description or None
        protocol.phases = phases
        protocol.save(update_fields=['name', 'description', 'phases', 'updated_at'])
        metrics.protocol_revisions_total.labels(mode='in_place').inc()
        log_protocol_revised(protocol, protocol)
        return protocol

    revised = Protocol.objects.create(
        clinic=protocol.clinic,
        name=str(name).strip(),
        description=description or None,
        phases=phases,
        version=protocol.version + 1,
        previous_version=protocol,
        created_by=changed_by or protocol.created_by,
    )
    metrics.protocol_revisions_total.labels(mode='new_version').inc()
    log_protocol_revised(protocol, revised)
    return revised


def clinic_protocols(clinic, include_superseded=False):
    queryset = Protocol.objects.filter(clinic=clinic).annotate(
        has_assignments=Exists(ProtocolAssignment.objects.filter(protocol=OuterRef('pk')))
    )
    if not include_superseded:
        queryset = queryset.filter(next_version__isnull=True)
    return queryset.order_by('name', '-version')


def get_clinic_protocol(clinic, protocol_id) -> Protocol:
    protocol = Protocol.objects.filter(clinic=clinic, pk=protocol_id).first()
    if protocol is None:
        raise NotFound('Protocol not found', details={'protocol_id': str(protocol_id)})
    return protocol


# ============================================================================
# Assignment
# ============================================================================

def assign_protocol(patient_id, protocol_id, start_date, assigned_by) -> ProtocolAssignment:
    """
    Add an assignment of `protocol_id` to `patient_id` from `start_date`.

    Both must belong to the assigning admin's clinic. Previous assignments
    are kept as history.

    Raises:
        ValidationError: missing protocol or malformed start date
        NotFound: patient or protocol not in the admin's clinic
    """
    if not protocol_id:
        raise ValidationError('Protocol is required', details={'protocol_id': 'Required'})
    if start_date in (None, ''):
        raise ValidationError('Start date is required', details={'start_date': 'Required'})
    start_date = coerce_date(start_date, 'start_date')

    clinic = assigned_by.clinic
    patient = get_clinic_patient(clinic, patient_id)
    protocol = get_clinic_protocol(clinic, protocol_id)

    assignment = ProtocolAssignment.objects.create(
        patient=patient,
        protocol=protocol,
        start_date=start_date,
        assigned_by=assigned_by,
    )

    metrics.protocol_assignments_total.inc()
    log_protocol_assigned(assignment, assigned_by=str(assigned_by.id))
    return assignment


def _assignments_of(patient):
    return (
        ProtocolAssignment.objects
        .filter(patient=patient)
        .select_related('protocol')
        .order_by('-start_date', '-created_at')
    )


def current_assignment(patient, today: date) -> Optional[ProtocolAssignment]:
    """
    Most recent assignment with start_date <= today.

    When none has started yet, the nearest upcoming one is returned; its
    schedule status reports NOT_STARTED.
    """
    started = _assignments_of(patient).filter(start_date__lte=today).first()
    if started is not None:
        return started
    return (
        ProtocolAssignment.objects
        .filter(patient=patient, start_date__gt=today)
        .select_related('protocol')
        .order_by('start_date', 'created_at')
        .first()
    )


def require_current_assignment(patient, today: date) -> ProtocolAssignment:
    assignment = current_assignment(patient, today)
    if assignment is None:
        raise NotFound('No protocol assigned')
    return assignment


@dataclass
class AssignmentOverview:
    """An assignment with everything the dashboards show about it."""
    assignment: ProtocolAssignment
    definition: ProtocolDefinition
    status: ScheduleStatus
    progress: ProtocolProgress
    medication_names: Dict[str, str]

    @property
    def protocol(self):
        return self.assignment.protocol


def _completion_counts(patient, protocol_ids: Iterable) -> Dict:
    rows = (
        InjectionCompletion.objects
        .filter(patient=patient, protocol_id__in=list(protocol_ids))
        .values('protocol_id')
        .annotate(total=Count('id'))
    )
    return {row['protocol_id']: row['total'] for row in rows}


def assignment_overview(assignment, today: date, medication_names=None, completed_count=None) -> AssignmentOverview:
    definition = assignment.protocol.to_definition()
    if medication_names is None:
        medication_names = medication_name_map(assignment.protocol.clinic)
    if completed_count is None:
        completed_count = InjectionCompletion.objects.filter(
            patient_id=assignment.patient_id,
            protocol_id=assignment.protocol_id,
        ).count()

    return AssignmentOverview(
        assignment=assignment,
        definition=definition,
        status=schedule_status(definition, assignment.start_date, today),
        progress=compute_progress(definition, assignment.start_date, completed_count),
        medication_names=medication_names,
    )


def protocol_history(patient, today: date) -> List[AssignmentOverview]:
    """
    Every assignment of the patient, most recent start first, with
    schedule status and progress.
    """
    assignments = list(_assignments_of(patient))
    if not assignments:
        return []

    counts = _completion_counts(patient, {a.protocol_id for a in assignments})
    names = medication_name_map(patient.clinic) if patient.clinic_id else {}

    return [
        assignment_overview(
            assignment,
            today,
            medication_names=names,
            completed_count=counts.get(assignment.protocol_id, 0),
        )
        for assignment in assignments
    ]


# ============================================================================
# Schedules with completion state
# ============================================================================

@dataclass
class ScheduledDose:
    scheduled: ScheduledInjection
    completion: Optional[InjectionCompletion]

    @property
    def completed(self):
        return self.completion is not None


def _with_completions(patient, protocol, scheduled: List[ScheduledInjection]) -> List[ScheduledDose]:
    if not scheduled:
        return []
    dates = {item.calendar_date for item in scheduled}
    ledger = {
        (c.injection_date, c.injection_time.replace(second=0, microsecond=0)): c
        for c in InjectionCompletion.objects.filter(
            patient=patient, protocol=protocol, injection_date__in=dates
        )
    }
    return [
        ScheduledDose(scheduled=item, completion=ledger.get((item.calendar_date, item.time)))
        for item in scheduled
    ]


def daily_schedule(patient, reference_date: date, today: date):
    """
    (overview, doses due on reference_date) for the patient's current assignment.

    Raises NotFound when no protocol is assigned.
    """
    assignment = require_current_assignment(patient, today)
    overview = assignment_overview(assignment, today)
    due = injections_on_date(overview.definition, assignment.start_date, reference_date)
    return overview, _with_completions(patient, assignment.protocol, due)


def patient_calendar(patient, today: date):
    """(overview, every dose of the current assignment) with completion state."""
    assignment = require_current_assignment(patient, today)
    overview = assignment_overview(assignment, today)
    calendar = full_calendar(overview.definition, assignment.start_date)
    return overview, _with_completions(patient, assignment.protocol, calendar)


# ============================================================================
# Completion ledger
# ============================================================================

def record_completion(patient, protocol_id, injection_date, injection_time) -> InjectionCompletion:
    """
    Mark the dose at (injection_date, injection_time) as taken.

    The unique constraint decides duplicates; there is no read-before-write.

    Raises:
        ValidationError: malformed date or time
        NotFound: the patient was never assigned this protocol
        Conflict: already recorded
    """
    if not protocol_id:
        raise ValidationError('Protocol is required', details={'protocol_id': 'Required'})
    protocol_id = coerce_uuid(protocol_id, 'protocol_id')
    injection_date = coerce_date(injection_date, 'injection_date')
    injection_time = coerce_time(injection_time, 'injection_time')

    assignment = (
        ProtocolAssignment.objects
        .filter(patient=patient, protocol_id=protocol_id)
        .select_related('protocol')
        .first()
    )
    if assignment is None:
        metrics.injection_completions_total.labels(result='rejected').inc()
        raise NotFound('Protocol not assigned to this patient', details={'protocol_id': str(protocol_id)})

    try:
        with transaction.atomic():
            completion = InjectionCompletion.objects.create(
                patient=patient,
                protocol=assignment.protocol,
                injection_date=injection_date,
                injection_time=injection_time,
            )
    except IntegrityError:
        metrics.injection_completions_total.labels(result='duplicate').inc()
        log_completion_conflict(patient.id, protocol_id, injection_date, injection_time)
        raise Conflict(
            'This injection has already been marked as complete',
            details={
                'injection_date': injection_date.isoformat(),
                'injection_time': injection_time.strftime('%H:%M'),
            }
        )

    metrics.injection_completions_total.labels(result='recorded').inc()
    log_completion_recorded(completion)
    return completion


def list_completions(patient, protocol_id=None):
    queryset = InjectionCompletion.objects.filter(patient=patient).select_related('protocol')
    if protocol_id:
        queryset = queryset.filter(protocol_id=coerce_uuid(protocol_id, 'protocol_id'))
    return queryset.order_by('-injection_date', '-injection_time')


def _get_own_completion(completion_id, patient) -> InjectionCompletion:
    completion = (
        InjectionCompletion.objects
        .select_related('protocol', 'protocol__clinic')
        .filter(pk=completion_id)
        .first()
    )
    if completion is None:
        raise NotFound('Injection completion not found', details={'completion_id': str(completion_id)})
    if completion.patient_id != patient.id:
        raise Forbidden('This injection completion belongs to another patient')
    return completion


def resolve_medication_name(completion) -> Optional[str]:
    """
    Name of the medication scheduled at the completion's date and time.

    Projects the date through the assignment that covered it; None when the
    slot is not on the schedule or has no medication.
    """
    assignment = (
        ProtocolAssignment.objects
        .filter(
            patient_id=completion.patient_id,
            protocol_id=completion.protocol_id,
            start_date__lte=completion.injection_date,
        )
        .order_by('-start_date', '-created_at')
        .first()
    )
    if assignment is None:
        return None

    definition = completion.protocol.to_definition()
    slot_time = completion.injection_time.replace(second=0, microsecond=0)
    for scheduled in injections_on_date(definition, assignment.start_date, completion.injection_date):
        if scheduled.time == slot_time and scheduled.medication_id:
            return medication_name_map(completion.protocol.clinic).get(scheduled.medication_id)
    return None


def _default_analyzer() -> MoodAnalyzer:
    from apps.assistant.services import analyze_mood
    return analyze_mood


def _enrich_mood(completion, analyzer: MoodAnalyzer) -> InjectionCompletion:
    try:
        analysis = analyzer(completion.mood, resolve_medication_name(completion))
    except UpstreamFailure as e:
        completion.mood_analysis_status = MoodAnalysisStatusChoices.FAILED
        completion.mood_analysis_error = e.message
        completion.save(update_fields=['mood_analysis_status', 'mood_analysis_error', 'updated_at'])
        metrics.mood_analysis_total.labels(result='failed').inc()
        log_mood_analysis(completion, result='warning', error=e.message)
        return completion

    completion.mood_analysis = analysis
    completion.mood_analysis_status = MoodAnalysisStatusChoices.COMPLETED
    completion.mood_analysis_error = None
    completion.save(update_fields=['mood_analysis', 'mood_analysis_status', 'mood_analysis_error', 'updated_at'])
    metrics.mood_analysis_total.labels(result='completed').inc()
    log_mood_analysis(completion, result='success')
    return completion


def log_symptom(completion_id, patient, mood_text, analyzer: Optional[MoodAnalyzer] = None) -> InjectionCompletion:
    """
    Attach a mood to a completion, then ask the analyzer for commentary.

    The mood is committed before the analyzer runs; an upstream failure only
    marks the analysis as failed.

    Raises:
        NotFound: unknown completion
        Forbidden: completion of another patient
        ValidationError: blank mood
        Conflict: a mood was already logged
    """
    completion = _get_own_completion(completion_id, patient)

    mood_text = (mood_text or '').strip()
    if not mood_text:
        raise ValidationError('Mood is required', details={'mood': 'Required'})

    # Claim the mood slot in one statement; a concurrent writer sees zero rows
    now = timezone.now()
    claimed = (
        InjectionCompletion.objects
        .filter(pk=completion.pk)
        .filter(Q(mood__isnull=True) | Q(mood=''))
        .update(
            mood=mood_text,
            mood_logged_at=now,
            mood_analysis_status=MoodAnalysisStatusChoices.PENDING,
            mood_analysis_error=None,
            updated_at=now,
        )
    )
    if not claimed:
        raise Conflict('A mood has already been logged for this injection')

    completion.mood = mood_text
    completion.mood_logged_at = now
    completion.mood_analysis_status = MoodAnalysisStatusChoices.PENDING
    completion.mood_analysis_error = None
    return _enrich_mood(completion, analyzer or _default_analyzer())


def retry_mood_analysis(completion_id, patient, analyzer: Optional[MoodAnalyzer] = None) -> InjectionCompletion:
    """
    Re-run the commentary step for a pending or failed analysis.

    Raises:
        NotFound / Forbidden: as for log_symptom
        ValidationError: no mood logged
        Conflict: analysis already completed
    """
    completion = _get_own_completion(completion_id, patient)
    if not completion.mood:
        raise ValidationError('No mood has been logged for this injection')
    if completion.mood_analysis_status == MoodAnalysisStatusChoices.COMPLETED:
        raise Conflict('Mood analysis already completed')

    completion.mood_analysis_status = MoodAnalysisStatusChoices.PENDING
    completion.save(update_fields=['mood_analysis_status', 'updated_at'])
    return _enrich_mood(completion, analyzer or _default_analyzer())


# ============================================================================
# Reminder candidates
# ============================================================================

def _reminder_candidate(assignment, names_by_clinic: Dict) -> ReminderCandidate:
    clinic_id = assignment.protocol.clinic_id
    if clinic_id not in names_by_clinic:
        names_by_clinic[clinic_id] = medication_name_map(assignment.protocol.clinic)

    return ReminderCandidate(
        patient_id=str(assignment.patient_id),
        email=assignment.patient.email,
        patient_name=assignment.patient.name,
        definition=assignment.protocol.to_definition(),
        start_date=assignment.start_date,
        medication_names=names_by_clinic[clinic_id],
    )


def collect_reminder_candidates(today: date) -> List[ReminderCandidate]:
    """
    One candidate per active patient with an assignment started on or before today.

    A patient whose protocol or medications cannot be loaded is logged and
    left out; the other patients are still collected.
    """
    assignments = (
        ProtocolAssignment.objects
        .filter(start_date__lte=today, patient__is_active=True)
        .select_related('patient', 'protocol')
        .order_by('patient_id', '-start_date', '-created_at')
    )

    candidates = []
    seen_patients = set()
    names_by_clinic: Dict = {}

    for assignment in assignments:
        if assignment.patient_id in seen_patients:
            continue
        seen_patients.add(assignment.patient_id)

        try:
            candidates.append(_reminder_candidate(assignment, names_by_clinic))
        except Exception as e:
            logger.error(
                'Reminder candidate could not be loaded; patient skipped',
                exc_info=True,
                extra={
                    'event': 'reminder_candidate_skipped',
                    'protocol_id': str(assignment.protocol_id),
                    'patient_id': str(assignment.patient_id),
                    'exception_type': e.__class__.__name__,
                }
            )

    return candidates
