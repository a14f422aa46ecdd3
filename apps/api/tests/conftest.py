"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Clinic, clinic admin and patient users
- Authenticated API clients by role
- Medications, a two-phase Stim protocol and its assignment
"""
from datetime import date

import pytest
from rest_framework.test import APIClient

from apps.authz.models import Role, RoleChoices, User, UserRole
from apps.clinical.models import Medication
from apps.core.models import Clinic
from apps.protocols.models import Protocol, ProtocolAssignment

STIM_START = date(2024, 1, 1)


def make_user(email, role_name, clinic=None, name='Test User', password='testpass123'):
    user = User.objects.create_user(
        email=email,
        password=password,
        name=name,
        clinic=clinic,
        is_active=True,
    )
    role, _ = Role.objects.get_or_create(name=role_name)
    UserRole.objects.create(user=user, role=role)
    return user


def authenticated_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# Tenancy
# ============================================================================

@pytest.fixture
def clinic(db):
    return Clinic.objects.create(name='Sunrise Fertility')


@pytest.fixture
def other_clinic(db):
    return Clinic.objects.create(name='Harbor IVF Center')


@pytest.fixture
def clinic_admin(clinic):
    return make_user('admin@sunrise.test', RoleChoices.CLINIC_ADMIN, clinic=clinic, name='Dana Admin')


@pytest.fixture
def patient(clinic):
    return make_user('patient@sunrise.test', RoleChoices.PATIENT, clinic=clinic, name='Jane Patient')


@pytest.fixture
def other_patient(other_clinic):
    return make_user('patient@harbor.test', RoleChoices.PATIENT, clinic=other_clinic, name='Other Patient')


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_client(clinic_admin):
    """Authenticated API client with the clinic_admin role."""
    return authenticated_client(clinic_admin)


@pytest.fixture
def patient_client(patient):
    """Authenticated API client with the patient role."""
    return authenticated_client(patient)


# ============================================================================
# Protocol data
# ============================================================================

@pytest.fixture
def gonal_f(clinic):
    return Medication.objects.create(clinic=clinic, name='Gonal-F', description='Follitropin alfa')


@pytest.fixture
def stim_phases(gonal_f):
    """
    Stim: 10 days, Gonal-F 150 IU at 20:00 on days 1 and 2.
    Trigger: 1 day, no medication, 250 mcg at 22:00.
    """
    return [
        {
            'name': 'Stim',
            'duration': 10,
            'injections': [
                {'day_of_phase': 1, 'medication_id': str(gonal_f.id), 'dosage': '150 IU', 'time': '20:00'},
                {'day_of_phase': 2, 'medication_id': str(gonal_f.id), 'dosage': '150 IU', 'time': '20:00'},
            ],
        },
        {
            'name': 'Trigger',
            'duration': 1,
            'injections': [
                {'day_of_phase': 1, 'medication_id': None, 'dosage': '250 mcg', 'time': '22:00'},
            ],
        },
    ]


@pytest.fixture
def stim_protocol(clinic, clinic_admin, stim_phases):
    return Protocol.objects.create(
        clinic=clinic,
        name='Stim Protocol',
        description='Antagonist cycle',
        phases=stim_phases,
        created_by=clinic_admin,
    )


@pytest.fixture
def stim_assignment(patient, stim_protocol, clinic_admin):
    return ProtocolAssignment.objects.create(
        patient=patient,
        protocol=stim_protocol,
        start_date=STIM_START,
        assigned_by=clinic_admin,
    )


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def user_factory(db):
    """Create a user with one role: user_factory(email, role_name, clinic=None, name=...)."""
    return make_user


@pytest.fixture
def client_for():
    """Build an authenticated API client for an arbitrary user."""
    return authenticated_client
