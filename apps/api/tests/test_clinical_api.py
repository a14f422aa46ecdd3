"""
Tests for clinic resources: medications, appointments, documents.
"""
import base64

import pytest

from apps.clinical.models import Appointment, Document, Medication

PDF_BYTES = base64.b64encode(b'%PDF-1.4 consent form').decode()


@pytest.mark.django_db
class TestMedicationAPI:

    def test_create_and_list(self, admin_client):
        created = admin_client.post('/api/v1/medications/', {
            'name': 'Menopur',
            'description': 'Menotropins',
        }, format='json')
        admin_client.post('/api/v1/medications/', {'name': 'Cetrotide'}, format='json')

        response = admin_client.get('/api/v1/medications/')

        assert created.status_code == 201
        assert [row['name'] for row in response.data] == ['Cetrotide', 'Menopur']

    def test_duplicate_name_returns_409(self, admin_client, gonal_f):
        response = admin_client.post('/api/v1/medications/', {'name': 'Gonal-F'}, format='json')

        assert response.status_code == 409
        assert Medication.objects.filter(name='Gonal-F').count() == 1

    def test_same_name_in_other_clinic_is_allowed(self, admin_client, other_clinic):
        Medication.objects.create(clinic=other_clinic, name='Gonal-F')

        response = admin_client.post('/api/v1/medications/', {'name': 'Gonal-F'}, format='json')

        assert response.status_code == 201

    def test_list_excludes_other_clinics(self, admin_client, gonal_f, other_clinic):
        Medication.objects.create(clinic=other_clinic, name='Menopur')

        response = admin_client.get('/api/v1/medications/')

        assert [row['name'] for row in response.data] == ['Gonal-F']


@pytest.mark.django_db
class TestAppointmentAPI:

    def test_book_appointment(self, admin_client, patient):
        response = admin_client.post('/api/v1/appointments/', {
            'patient_id': str(patient.id),
            'type': 'Baseline ultrasound',
            'date': '2024-01-03T09:30:00Z',
            'notes': 'Fasting not required',
        }, format='json')

        assert response.status_code == 201
        assert Appointment.objects.filter(patient=patient).count() == 1

    def test_book_for_other_clinic_patient_returns_404(self, admin_client, other_patient):
        response = admin_client.post('/api/v1/appointments/', {
            'patient_id': str(other_patient.id),
            'type': 'Consultation',
            'date': '2024-01-03T09:30:00Z',
        }, format='json')

        assert response.status_code == 404

    def test_patient_sees_own_appointments(self, admin_client, patient_client, patient, clinic, other_patient):
        Appointment.objects.create(clinic=clinic, patient=patient, type='Egg retrieval', scheduled_at='2024-01-13T08:00:00Z')
        Appointment.objects.create(
            clinic=other_patient.clinic, patient=other_patient, type='Consultation', scheduled_at='2024-01-13T08:00:00Z'
        )

        response = patient_client.get('/api/v1/patient/appointments/')

        assert response.status_code == 200
        assert [row['type'] for row in response.data] == ['Egg retrieval']


@pytest.mark.django_db
class TestDocumentAPI:

    def test_upload_stores_data_uri(self, admin_client, patient):
        response = admin_client.post('/api/v1/documents/', {
            'patient_id': str(patient.id),
            'filename': 'consent.pdf',
            'file_data': PDF_BYTES,
            'file_type': 'application/pdf',
        }, format='json')

        assert response.status_code == 201
        assert response.data['content_type'] == 'application/pdf'
        assert 'content' not in response.data

        document = Document.objects.get(pk=response.data['id'])
        assert document.content == f'data:application/pdf;base64,{PDF_BYTES}'

    def test_invalid_base64_returns_400(self, admin_client, patient):
        response = admin_client.post('/api/v1/documents/', {
            'patient_id': str(patient.id),
            'filename': 'consent.pdf',
            'file_data': 'not base64!!',
            'file_type': 'application/pdf',
        }, format='json')

        assert response.status_code == 400
        assert not Document.objects.exists()

    def test_patient_reads_own_document(self, patient_client, patient, clinic, clinic_admin):
        document = Document.objects.create(
            clinic=clinic,
            patient=patient,
            uploaded_by=clinic_admin,
            filename='results.pdf',
            content=f'data:application/pdf;base64,{PDF_BYTES}',
        )

        listing = patient_client.get('/api/v1/patient/documents/')
        detail = patient_client.get(f'/api/v1/patient/documents/{document.id}/')

        assert [row['filename'] for row in listing.data] == ['results.pdf']
        assert detail.status_code == 200
        assert detail.data['content'].startswith('data:application/pdf;base64,')

    def test_patient_cannot_read_other_patients_document(self, patient_client, other_patient):
        document = Document.objects.create(
            clinic=other_patient.clinic,
            patient=other_patient,
            filename='private.pdf',
            content=f'data:application/pdf;base64,{PDF_BYTES}',
        )

        response = patient_client.get(f'/api/v1/patient/documents/{document.id}/')

        assert response.status_code == 404
