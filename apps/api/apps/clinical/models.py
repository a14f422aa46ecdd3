"""
Clinical resource models: medication catalogue, appointments, documents.

All rows are scoped to a clinic. Patients are `authz.User` rows holding the
`patient` role.
"""
import uuid
from django.db import models
from django.conf import settings


class Medication(models.Model):
    """
    Clinic medication catalogue entry, referenced by id from protocol phases.

    Fields:
    - id: UUID PK
    - clinic_id: FK -> clinic
    - name: unique within the clinic
    - description: nullable
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='medications'
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'medication'
        verbose_name = 'Medication'
        verbose_name_plural = 'Medications'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(
                fields=['clinic', 'name'],
                name='uniq_medication_clinic_name'
            ),
        ]

    def __str__(self):
        return self.name


class Appointment(models.Model):
    """
    Appointment booked by clinic staff for one of their patients.

    Fields:
    - id: UUID PK
    - clinic_id: FK -> clinic
    - patient_id: FK -> auth_user (patient role)
    - type: free text (e.g. 'Ultrasound', 'Egg retrieval')
    - scheduled_at: datetime
    - notes: nullable
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='appointments'
    )
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='appointments'
    )
    type = models.CharField(max_length=100)
    scheduled_at = models.DateTimeField()
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointment'
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['scheduled_at']
        indexes = [
            models.Index(fields=['patient', 'scheduled_at'], name='idx_appointment_patient_date'),
            models.Index(fields=['clinic'], name='idx_appointment_clinic'),
        ]

    def __str__(self):
        return f"{self.type} @ {self.scheduled_at:%Y-%m-%d %H:%M}"


class Document(models.Model):
    """
    Patient document stored inline as a data URI (`data:<type>;base64,<data>`).

    Fields:
    - id: UUID PK
    - clinic_id: FK -> clinic
    - patient_id: FK -> auth_user
    - uploaded_by_id: FK -> auth_user (clinic admin), nullable
    - filename
    - content: data URI
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='documents'
    )
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='uploaded_documents'
    )
    filename = models.CharField(max_length=255)
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'document'
        verbose_name = 'Document'
        verbose_name_plural = 'Documents'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='idx_document_patient_created'),
            models.Index(fields=['clinic'], name='idx_document_clinic'),
        ]

    def __str__(self):
        return self.filename

    @property
    def content_type(self):
        # 'data:application/pdf;base64,...' -> 'application/pdf'
        if self.content.startswith('data:') and ';' in self.content:
            return self.content[5:self.content.index(';')]
        return None
