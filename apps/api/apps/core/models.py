"""
Core models: clinic (tenant root).
"""
import uuid
from django.db import models


class Clinic(models.Model):
    """
    A fertility clinic: the tenant every user, protocol and clinical record belongs to.

    Fields:
    - id: UUID PK
    - name
    - timezone: local wall-clock zone used for patient-facing dates
    - is_active: bool default true
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    timezone = models.CharField(max_length=64, default='UTC')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic'
        verbose_name = 'Clinic'
        verbose_name_plural = 'Clinics'
        indexes = [
            models.Index(fields=['is_active'], name='idx_clinic_active'),
        ]

    def __str__(self):
        return self.name
