"""
Protocol models: templates, patient assignments, injection completion ledger.
"""
import uuid
from django.conf import settings
from django.db import models

from .definitions import ProtocolDefinition, parse_phases


class Protocol(models.Model):
    """
    Clinic-authored treatment protocol template.

    Fields:
    - id: UUID PK
    - clinic_id: FK -> clinic
    - name, description
    - phases: JSON list (see apps.protocols.definitions)
    - version: starts at 1
    - previous_version_id: FK -> protocol (the row this one revises)
    - created_by_id: FK -> auth_user nullable

    BUSINESS RULE: once an assignment references a protocol its phases are
    frozen; edits produce a new row with version + 1.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='protocols'
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    phases = models.JSONField(default=list)
    version = models.PositiveIntegerField(default=1)
    previous_version = models.OneToOneField(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='next_version'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_protocols'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'protocol'
        verbose_name = 'Protocol'
        verbose_name_plural = 'Protocols'
        indexes = [
            models.Index(fields=['clinic', 'name'], name='idx_protocol_clinic_name'),
        ]

    def __str__(self):
        return f"{self.name} v{self.version}"

    def to_definition(self) -> ProtocolDefinition:
        return ProtocolDefinition(
            phases=parse_phases(self.phases, strict=False),
            name=self.name,
            description=self.description,
            id=str(self.id),
        )

    @property
    def is_referenced(self):
        # Querysets from services.clinic_protocols carry it as an annotation
        annotated = getattr(self, 'has_assignments', None)
        if annotated is not None:
            return annotated
        return self.assignments.exists()


class ProtocolAssignment(models.Model):
    """
    A patient following a protocol from `start_date`.

    Append-only: reassigning adds a row. History is ordered by start_date
    descending, then created_at descending.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='protocol_assignments'
    )
    protocol = models.ForeignKey(
        Protocol,
        on_delete=models.PROTECT,
        related_name='assignments'
    )
    start_date = models.DateField()
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='made_protocol_assignments'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'protocol_assignment'
        verbose_name = 'Protocol Assignment'
        verbose_name_plural = 'Protocol Assignments'
        ordering = ['-start_date', '-created_at']
        indexes = [
            models.Index(fields=['patient', 'start_date'], name='idx_assignment_patient_start'),
        ]

    def __str__(self):
        return f"{self.patient_id} -> {self.protocol_id} from {self.start_date}"


class MoodAnalysisStatusChoices(models.TextChoices):
    """
    Enrichment state of a symptom log:
    - none: no mood logged yet
    - pending: mood saved, commentary not yet produced
    - completed: commentary stored
    - failed: upstream error; mood kept, analysis can be retried
    """
    NONE = 'none', 'None'
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


class InjectionCompletion(models.Model):
    """
    Ledger row: the patient took the dose due at (injection_date, injection_time).

    BUSINESS RULE: at most one row per (patient, protocol, date, time),
    enforced by the database.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='injection_completions'
    )
    protocol = models.ForeignKey(
        Protocol,
        on_delete=models.PROTECT,
        related_name='completions'
    )
    injection_date = models.DateField()
    injection_time = models.TimeField()
    mood = models.TextField(blank=True, null=True)
    mood_logged_at = models.DateTimeField(blank=True, null=True)
    mood_analysis = models.TextField(blank=True, null=True)
    mood_analysis_status = models.CharField(
        max_length=20,
        choices=MoodAnalysisStatusChoices.choices,
        default=MoodAnalysisStatusChoices.NONE
    )
    mood_analysis_error = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'injection_completion'
        verbose_name = 'Injection Completion'
        verbose_name_plural = 'Injection Completions'
        ordering = ['-injection_date', '-injection_time']
        constraints = [
            models.UniqueConstraint(
                fields=['patient', 'protocol', 'injection_date', 'injection_time'],
                name='uniq_completion_patient_protocol_slot'
            ),
        ]
        indexes = [
            models.Index(fields=['patient', 'protocol'], name='idx_completion_patient_proto'),
        ]

    def __str__(self):
        return f"{self.patient_id} {self.injection_date} {self.injection_time:%H:%M}"
