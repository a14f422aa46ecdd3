"""
Clinic resource services: medication catalogue, appointments, documents.
"""
import binascii
import base64
import logging
from typing import Dict

from django.db import IntegrityError, transaction

from apps.authz.services import get_clinic_patient
from apps.clinical.models import Appointment, Document, Medication
from apps.core.exceptions import Conflict, ValidationError

logger = logging.getLogger(__name__)


def clinic_medications(clinic):
    return Medication.objects.filter(clinic=clinic).order_by('name')


def create_medication(clinic, name, description=None):
    """
    Add a medication to the clinic catalogue.

    Raises:
        ValidationError: blank name
        Conflict: the clinic already has a medication with this name
    """
    name = (name or '').strip()
    if not name:
        raise ValidationError('Medication name is required')

    try:
        with transaction.atomic():
            medication = Medication.objects.create(
                clinic=clinic,
                name=name,
                description=description or None,
            )
    except IntegrityError:
        raise Conflict('A medication with this name already exists', details={'name': name})

    logger.info(
        'Medication created',
        extra={
            'event': 'medication_created',
            'medication_id': str(medication.id),
            'clinic_id': str(clinic.id),
        }
    )
    return medication


def medication_name_map(clinic) -> Dict[str, str]:
    """{medication id (str): name} for every medication of the clinic."""
    return {
        str(medication_id): name
        for medication_id, name in Medication.objects.filter(clinic=clinic).values_list('id', 'name')
    }


def create_appointment(clinic, patient_id, appointment_type, scheduled_at, notes=None):
    """
    Book an appointment for a patient of `clinic`.

    Raises:
        ValidationError: missing type or date
        NotFound: patient not in the clinic
    """
    if not appointment_type or scheduled_at is None:
        raise ValidationError('Missing patient, type, or date')

    patient = get_clinic_patient(clinic, patient_id)
    appointment = Appointment.objects.create(
        clinic=clinic,
        patient=patient,
        type=appointment_type,
        scheduled_at=scheduled_at,
        notes=notes or None,
    )

    logger.info(
        'Appointment created',
        extra={
            'event': 'appointment_created',
            'appointment_id': str(appointment.id),
            'patient_id': str(patient.id),
        }
    )
    return appointment


def clinic_appointments(clinic):
    return Appointment.objects.filter(clinic=clinic).select_related('patient').order_by('scheduled_at')


def patient_appointments(patient):
    return Appointment.objects.filter(patient=patient).order_by('scheduled_at')


def build_data_uri(file_type, file_data):
    """
    `data:<type>;base64,<data>`; raises ValidationError when `file_data` is not base64.
    """
    if not file_type or '/' not in file_type:
        raise ValidationError('File type must be a MIME type', details={'file_type': file_type})

    try:
        base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError('File data must be base64 encoded')

    return f'data:{file_type};base64,{file_data}'


def upload_document(clinic, uploaded_by, patient_id, filename, file_data, file_type):
    """
    Store a document for a patient of `clinic` as an inline data URI.

    Raises:
        ValidationError: missing fields or malformed payload
        NotFound: patient not in the clinic
    """
    if not filename or not file_data or not file_type:
        raise ValidationError('Missing required fields')

    patient = get_clinic_patient(clinic, patient_id)
    document = Document.objects.create(
        clinic=clinic,
        patient=patient,
        uploaded_by=uploaded_by,
        filename=filename,
        content=build_data_uri(file_type, file_data),
    )

    logger.info(
        'Document uploaded',
        extra={
            'event': 'document_uploaded',
            'document_id': str(document.id),
            'patient_id': str(patient.id),
            'size_chars': len(document.content),
        }
    )
    return document


def clinic_documents(clinic, patient_id=None):
    queryset = Document.objects.filter(clinic=clinic).select_related('patient')
    if patient_id:
        queryset = queryset.filter(patient_id=patient_id)
    return queryset.order_by('-created_at')


def patient_documents(patient):
    return Document.objects.filter(patient=patient).order_by('-created_at')
