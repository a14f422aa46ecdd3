"""
Management command to seed a demo clinic for local development.

Usage:
    python manage.py seed_demo_clinic
    python manage.py seed_demo_clinic --start-date 2026-01-05

Idempotent: existing clinic, users, medications and protocol are reused.
Creates a clinic admin, a patient with a password, two medications and a
short antagonist protocol assigned to the patient.
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from apps.authz.models import RoleChoices, User
from apps.authz.services import grant_role
from apps.clinical.models import Medication
from apps.core.exceptions import DomainError
from apps.core.models import Clinic
from apps.protocols import services as protocol_services
from apps.protocols.models import Protocol, ProtocolAssignment

DEMO_CLINIC_NAME = 'AIVF Demo Clinic'
DEMO_PASSWORD = 'demo-pass-2024'
DEMO_PROTOCOL_NAME = 'Short Antagonist (demo)'


class Command(BaseCommand):
    help = 'Create a demo clinic with an admin, a patient and an assigned protocol'

    def add_arguments(self, parser):
        parser.add_argument('--start-date', help='Assignment start date (YYYY-MM-DD), default today')

    @transaction.atomic
    def handle(self, *args, **options):
        try:
            start_date = protocol_services.coerce_date(options['start_date'] or timezone.localdate(), 'start_date')
        except DomainError as e:
            raise CommandError(e.message)

        clinic, created = Clinic.objects.get_or_create(name=DEMO_CLINIC_NAME)
        self._report('clinic', clinic.name, created)

        admin = self._ensure_user('admin@aivf.example', 'Demo Admin', clinic, RoleChoices.CLINIC_ADMIN)
        patient = self._ensure_user('patient@aivf.example', 'Demo Patient', clinic, RoleChoices.PATIENT)

        medications = {}
        for name, description in [
            ('Gonal-F', 'Follitropin alfa'),
            ('Cetrotide', 'Cetrorelix, GnRH antagonist'),
        ]:
            medication, created = Medication.objects.get_or_create(
                clinic=clinic, name=name, defaults={'description': description}
            )
            medications[name] = str(medication.id)
            self._report('medication', name, created)

        protocol = Protocol.objects.filter(clinic=clinic, name=DEMO_PROTOCOL_NAME).order_by('-version').first()
        if protocol is None:
            protocol = protocol_services.create_protocol(
                clinic=clinic,
                name=DEMO_PROTOCOL_NAME,
                description='Ten days of stimulation followed by trigger day.',
                phases=[
                    {
                        'name': 'Stimulation',
                        'duration': 10,
                        'injections': [
                            {'day_of_phase': day, 'medication_id': medications['Gonal-F'],
                             'dosage': '150 IU', 'time': '20:00'}
                            for day in range(1, 11)
                        ] + [
                            {'day_of_phase': day, 'medication_id': medications['Cetrotide'],
                             'dosage': '0.25 mg', 'time': '08:00'}
                            for day in range(6, 11)
                        ],
                    },
                    {
                        'name': 'Trigger',
                        'duration': 1,
                        'injections': [
                            {'day_of_phase': 1, 'medication_id': None, 'dosage': '250 mcg', 'time': '22:00'},
                        ],
                    },
                ],
                created_by=admin,
            )
            self._report('protocol', protocol.name, True)
        else:
            self._report('protocol', protocol.name, False)

        if ProtocolAssignment.objects.filter(patient=patient, protocol=protocol).exists():
            self._report('assignment', patient.email, False)
        else:
            protocol_services.assign_protocol(patient.id, protocol.id, start_date, assigned_by=admin)
            self._report('assignment', f'{patient.email} from {start_date.isoformat()}', True)

        self.stdout.write(self.style.SUCCESS(f'\nDemo clinic ready. Password for both users: {DEMO_PASSWORD}'))

    def _ensure_user(self, email, name, clinic, role_name):
        user, created = User.objects.get_or_create(
            email=email,
            defaults={'name': name, 'clinic': clinic, 'is_active': True},
        )
        if created:
            user.set_password(DEMO_PASSWORD)
            user.save()
        grant_role(user, role_name)
        self._report(role_name, email, created)
        return user

    def _report(self, kind, label, created):
        if created:
            self.stdout.write(self.style.SUCCESS(f'  ✓ Created {kind}: {label}'))
        else:
            self.stdout.write(f'  - {kind} exists: {label}')
