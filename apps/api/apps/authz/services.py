"""
Tenancy and onboarding services: clinic registration, patient creation,
password setup.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from apps.authz.models import (
    PasswordSetupToken,
    Role,
    RoleChoices,
    User,
    UserRole,
    hash_setup_token,
)
from apps.core.exceptions import Conflict, NotFound, ValidationError
from apps.core.models import Clinic
from apps.core.observability import log_domain_event

logger = logging.getLogger(__name__)


@dataclass
class PatientOnboarding:
    """Result of creating a patient: the user and the one-time setup credentials."""
    patient: User
    setup_token: str
    setup_link: Optional[str]


def grant_role(user, role_name):
    role, _ = Role.objects.get_or_create(name=role_name)
    UserRole.objects.get_or_create(user=user, role=role)
    return role


def _ensure_email_available(email):
    if User.objects.filter(email__iexact=email).exists():
        raise Conflict('User with this email already exists', details={'field': 'email'})


def _check_password(password, user=None):
    try:
        validate_password(password, user=user)
    except DjangoValidationError as e:
        raise ValidationError('Password does not meet requirements', details={'password': list(e.messages)})


@transaction.atomic
def register_clinic(clinic_name, admin_name, email, password):
    """
    Create a clinic and its first clinic admin in one transaction.

    Raises:
        ValidationError: missing clinic name or weak password
        Conflict: email already registered
    """
    if not clinic_name or not clinic_name.strip():
        raise ValidationError('Clinic name is required for clinic accounts')

    email = User.objects.normalize_email(email)
    _ensure_email_available(email)

    clinic = Clinic.objects.create(name=clinic_name.strip())
    admin = User(email=email, name=admin_name, clinic=clinic)
    _check_password(password, user=admin)
    admin.set_password(password)
    admin.save()
    grant_role(admin, RoleChoices.CLINIC_ADMIN)

    log_domain_event(
        'clinic_registered',
        entity_type='Clinic',
        entity_id=str(clinic.id),
        entity_ids={'admin_user_id': str(admin.id)},
    )
    return clinic, admin


def issue_setup_token(user):
    """
    Create a single-use password setup token for `user`.

    Returns the raw token; only its SHA-256 digest is stored.
    """
    raw_token = secrets.token_hex(32)
    PasswordSetupToken.objects.create(
        user=user,
        token_hash=hash_setup_token(raw_token),
        expires_at=timezone.now() + timedelta(minutes=settings.PASSWORD_SETUP_TOKEN_TTL_MINUTES),
    )
    return raw_token


def build_setup_link(raw_token):
    base_url = getattr(settings, 'FRONTEND_URL', '')
    if not base_url:
        return None
    return f"{base_url.rstrip('/')}/auth/set-password?token={raw_token}"


@transaction.atomic
def create_patient(clinic, name, email, date_of_birth=None, created_by=None):
    """
    Create a patient without a usable password, plus a setup token.

    Raises:
        ValidationError: missing name or email
        Conflict: email already registered
    """
    if not name or not email:
        raise ValidationError('Name and email are required')

    email = User.objects.normalize_email(email)
    _ensure_email_available(email)

    patient = User.objects.create_user(
        email=email,
        password=None,
        name=name,
        date_of_birth=date_of_birth,
        clinic=clinic,
    )
    grant_role(patient, RoleChoices.PATIENT)
    raw_token = issue_setup_token(patient)

    log_domain_event(
        'patient_created',
        entity_type='User',
        entity_id=str(patient.id),
        entity_ids={
            'clinic_id': str(clinic.id),
            'created_by': str(created_by.id) if created_by else None,
        },
    )
    return PatientOnboarding(patient=patient, setup_token=raw_token, setup_link=build_setup_link(raw_token))


@transaction.atomic
def set_password(raw_token, password):
    """
    Consume a setup token and set the user's password.

    Raises:
        NotFound: no token matches
        ValidationError: token already used or expired, or weak password
    """
    if not raw_token or not password:
        raise ValidationError('Token and password are required')

    token = (
        PasswordSetupToken.objects
        .select_for_update()
        .select_related('user')
        .filter(token_hash=hash_setup_token(raw_token))
        .first()
    )
    if token is None:
        raise NotFound('Invalid token')
    if token.used_at is not None:
        raise ValidationError('Token has already been used')
    if token.expires_at <= timezone.now():
        raise ValidationError('Token has expired')

    user = token.user
    _check_password(password, user=user)
    user.set_password(password)
    user.save(update_fields=['password', 'updated_at'])

    token.used_at = timezone.now()
    token.save(update_fields=['used_at'])

    logger.info(
        'Password set from setup token',
        extra={'event': 'password_setup_completed', 'target_user_id': str(user.id)}
    )
    return user


def clinic_patients(clinic):
    return (
        User.objects
        .filter(clinic=clinic, user_roles__role__name=RoleChoices.PATIENT)
        .distinct()
        .order_by('name', 'email')
    )


def get_clinic_patient(clinic, patient_id):
    """Resolve a patient inside `clinic`; patients of other clinics are NotFound."""
    patient = clinic_patients(clinic).filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Patient not found or not in your clinic', details={'patient_id': str(patient_id)})
    return patient
