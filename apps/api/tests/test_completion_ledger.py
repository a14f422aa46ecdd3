"""
Tests for the injection completion ledger and symptom logging.

Covers:
- Recording completions and the duplicate guard
- Ownership checks
- Mood logging with AI enrichment (success, upstream failure, retry)
"""
from datetime import date, time
from unittest.mock import Mock, patch

import pytest

from apps.core.exceptions import Conflict, Forbidden, NotFound, UpstreamFailure, ValidationError
from apps.protocols import services
from apps.protocols.models import InjectionCompletion, MoodAnalysisStatusChoices


COMPLETIONS_URL = '/api/v1/patient/injection-completions/'


def mood_url(completion):
    return f'{COMPLETIONS_URL}{completion.id}/mood/'


def retry_url(completion):
    return f'{COMPLETIONS_URL}{completion.id}/retry-analysis/'


@pytest.fixture
def completion(patient, stim_assignment):
    return services.record_completion(patient, stim_assignment.protocol_id, '2024-01-01', '20:00')


@pytest.mark.django_db
class TestRecordCompletion:
    """Test the record_completion service."""

    def test_records_completion(self, patient, stim_assignment):
        completion = services.record_completion(
            patient, stim_assignment.protocol_id, date(2024, 1, 1), '20:00'
        )

        assert completion.injection_date == date(2024, 1, 1)
        assert completion.injection_time == time(20, 0)
        assert completion.mood_analysis_status == MoodAnalysisStatusChoices.NONE

    def test_duplicate_slot_is_conflict(self, patient, stim_assignment, completion):
        with pytest.raises(Conflict):
            services.record_completion(patient, stim_assignment.protocol_id, '2024-01-01', '20:00')

        assert InjectionCompletion.objects.filter(patient=patient).count() == 1

    def test_same_date_different_time_is_allowed(self, patient, stim_assignment, completion):
        services.record_completion(patient, stim_assignment.protocol_id, '2024-01-01', '08:00')

        assert InjectionCompletion.objects.filter(patient=patient).count() == 2

    def test_malformed_protocol_id_is_validation_error(self, patient, stim_assignment):
        with pytest.raises(ValidationError):
            services.record_completion(patient, 'not-a-uuid', '2024-01-01', '20:00')

    def test_unassigned_protocol_is_not_found(self, patient, stim_protocol):
        with pytest.raises(NotFound):
            services.record_completion(patient, stim_protocol.id, '2024-01-01', '20:00')

    @pytest.mark.parametrize('injection_date,injection_time', [
        ('2024-13-01', '20:00'),
        ('yesterday', '20:00'),
        ('2024-01-01', '25:00'),
        ('2024-01-01', '8pm'),
    ])
    def test_malformed_slot_is_validation_error(self, patient, stim_assignment, injection_date, injection_time):
        with pytest.raises(ValidationError):
            services.record_completion(patient, stim_assignment.protocol_id, injection_date, injection_time)


@pytest.mark.django_db
class TestLogSymptom:
    """Test mood logging and enrichment."""

    def test_stores_mood_and_analysis(self, patient, completion):
        analyzer = Mock(return_value='Mild bloating is common with Gonal-F.')

        result = services.log_symptom(completion.id, patient, '  Slightly bloated  ', analyzer=analyzer)

        assert result.mood == 'Slightly bloated'
        assert result.mood_logged_at is not None
        assert result.mood_analysis == 'Mild bloating is common with Gonal-F.'
        assert result.mood_analysis_status == MoodAnalysisStatusChoices.COMPLETED
        analyzer.assert_called_once_with('Slightly bloated', 'Gonal-F')

    def test_upstream_failure_keeps_mood(self, patient, completion):
        analyzer = Mock(side_effect=UpstreamFailure('AI assistant is unavailable'))

        result = services.log_symptom(completion.id, patient, 'Headache', analyzer=analyzer)

        completion.refresh_from_db()
        assert completion.mood == 'Headache'
        assert completion.mood_analysis is None
        assert completion.mood_analysis_status == MoodAnalysisStatusChoices.FAILED
        assert completion.mood_analysis_error == 'AI assistant is unavailable'
        assert result.mood_analysis_status == MoodAnalysisStatusChoices.FAILED

    def test_blank_mood_is_validation_error(self, patient, completion):
        with pytest.raises(ValidationError):
            services.log_symptom(completion.id, patient, '   ', analyzer=Mock())

    def test_second_mood_is_conflict(self, patient, completion):
        services.log_symptom(completion.id, patient, 'Tired', analyzer=Mock(return_value='ok'))

        with pytest.raises(Conflict):
            services.log_symptom(completion.id, patient, 'Still tired', analyzer=Mock(return_value='ok'))

    def test_mood_written_after_read_is_conflict(self, patient, completion):
        stale = InjectionCompletion.objects.get(pk=completion.pk)
        InjectionCompletion.objects.filter(pk=completion.pk).update(mood='Written first')
        analyzer = Mock(return_value='ok')

        with patch('apps.protocols.services._get_own_completion', return_value=stale):
            with pytest.raises(Conflict):
                services.log_symptom(completion.id, patient, 'Written second', analyzer=analyzer)

        completion.refresh_from_db()
        assert completion.mood == 'Written first'
        analyzer.assert_not_called()

    def test_other_patients_completion_is_forbidden(self, clinic, completion, user_factory):
        intruder = user_factory('intruder@sunrise.test', 'patient', clinic=clinic)

        with pytest.raises(Forbidden):
            services.log_symptom(completion.id, intruder, 'Fine', analyzer=Mock())

    def test_unknown_completion_is_not_found(self, patient, stim_assignment):
        with pytest.raises(NotFound):
            services.log_symptom('00000000-0000-0000-0000-000000000000', patient, 'Fine', analyzer=Mock())

    def test_medication_name_is_none_when_slot_has_no_medication(self, patient, stim_assignment):
        trigger = services.record_completion(patient, stim_assignment.protocol_id, '2024-01-11', '22:00')
        analyzer = Mock(return_value='ok')

        services.log_symptom(trigger.id, patient, 'Nervous', analyzer=analyzer)

        analyzer.assert_called_once_with('Nervous', None)


@pytest.mark.django_db
class TestRetryMoodAnalysis:

    def test_retry_after_failure(self, patient, completion):
        services.log_symptom(
            completion.id, patient, 'Cramps',
            analyzer=Mock(side_effect=UpstreamFailure('timeout')),
        )

        result = services.retry_mood_analysis(completion.id, patient, analyzer=Mock(return_value='Cramps are common.'))

        assert result.mood_analysis == 'Cramps are common.'
        assert result.mood_analysis_status == MoodAnalysisStatusChoices.COMPLETED
        assert result.mood_analysis_error is None

    def test_retry_without_mood_is_validation_error(self, patient, completion):
        with pytest.raises(ValidationError):
            services.retry_mood_analysis(completion.id, patient, analyzer=Mock())

    def test_retry_after_success_is_conflict(self, patient, completion):
        services.log_symptom(completion.id, patient, 'Fine', analyzer=Mock(return_value='ok'))

        with pytest.raises(Conflict):
            services.retry_mood_analysis(completion.id, patient, analyzer=Mock())


@pytest.mark.django_db
class TestCompletionAPI:
    """Test /api/v1/patient/injection-completions/."""

    def test_create_completion(self, patient_client, stim_assignment):
        response = patient_client.post(COMPLETIONS_URL, {
            'protocol_id': str(stim_assignment.protocol_id),
            'injection_date': '2024-01-01',
            'injection_time': '20:00',
        }, format='json')

        assert response.status_code == 201
        assert response.data['injection_date'] == '2024-01-01'
        assert response.data['injection_time'] == '20:00'
        assert response.data['mood_analysis_status'] == 'none'

    def test_duplicate_returns_409_envelope(self, patient_client, stim_assignment, completion):
        response = patient_client.post(COMPLETIONS_URL, {
            'protocol_id': str(stim_assignment.protocol_id),
            'injection_date': '2024-01-01',
            'injection_time': '20:00',
        }, format='json')

        assert response.status_code == 409
        assert response.data['error']['code'] == 'CONFLICT'
        assert response.data['error']['details'] == {'injection_date': '2024-01-01', 'injection_time': '20:00'}

    def test_malformed_time_returns_400(self, patient_client, stim_assignment):
        response = patient_client.post(COMPLETIONS_URL, {
            'protocol_id': str(stim_assignment.protocol_id),
            'injection_date': '2024-01-01',
            'injection_time': 'tonight',
        }, format='json')

        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'

    def test_list_only_own_completions(self, clinic, patient_client, completion, stim_protocol, clinic_admin, user_factory):
        other = user_factory('second@sunrise.test', 'patient', clinic=clinic)
        services.assign_protocol(other.id, stim_protocol.id, '2024-01-01', assigned_by=clinic_admin)
        services.record_completion(other, stim_protocol.id, '2024-01-02', '20:00')

        response = patient_client.get(COMPLETIONS_URL)

        assert response.status_code == 200
        assert [row['id'] for row in response.data] == [str(completion.id)]

    def test_list_filtered_by_protocol(self, patient_client, completion, stim_protocol):
        response = patient_client.get(COMPLETIONS_URL, {'protocol_id': str(stim_protocol.id)})

        assert response.status_code == 200
        assert [row['id'] for row in response.data] == [str(completion.id)]

    def test_list_with_malformed_protocol_id_returns_400(self, patient_client, completion):
        response = patient_client.get(COMPLETIONS_URL, {'protocol_id': 'abc'})

        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'
        assert response.data['error']['details'] == {'protocol_id': 'abc'}

    def test_clinic_admin_cannot_record(self, admin_client, stim_assignment):
        response = admin_client.post(COMPLETIONS_URL, {
            'protocol_id': str(stim_assignment.protocol_id),
            'injection_date': '2024-01-01',
            'injection_time': '20:00',
        }, format='json')

        assert response.status_code == 403

    def test_put_mood_with_analysis(self, patient_client, completion):
        with patch('apps.assistant.services.analyze_mood', return_value='This is common.') as analyze:
            response = patient_client.put(mood_url(completion), {'mood': 'Bloated'}, format='json')

        assert response.status_code == 200
        assert response.data['mood'] == 'Bloated'
        assert response.data['mood_analysis'] == 'This is common.'
        assert response.data['mood_analysis_status'] == 'completed'
        analyze.assert_called_once_with('Bloated', 'Gonal-F')

    def test_put_mood_without_ai_key_still_saves(self, patient_client, completion):
        # Test settings leave OPENAI_API_KEY empty, so the assistant is unavailable
        response = patient_client.put(mood_url(completion), {'mood': 'Anxious'}, format='json')

        assert response.status_code == 200
        assert response.data['mood'] == 'Anxious'
        assert response.data['mood_analysis'] is None
        assert response.data['mood_analysis_status'] == 'failed'

        completion.refresh_from_db()
        assert completion.mood == 'Anxious'

    def test_put_blank_mood_returns_400(self, patient_client, completion):
        response = patient_client.put(mood_url(completion), {'mood': ''}, format='json')

        assert response.status_code == 400

    def test_put_mood_on_foreign_completion_returns_403(self, clinic, completion, user_factory, client_for):
        intruder = user_factory('intruder@sunrise.test', 'patient', clinic=clinic)

        response = client_for(intruder).put(mood_url(completion), {'mood': 'Fine'}, format='json')

        assert response.status_code == 403
        assert response.data['error']['code'] == 'FORBIDDEN'

    def test_retry_analysis_endpoint(self, patient_client, patient, completion):
        services.log_symptom(completion.id, patient, 'Cramps', analyzer=Mock(side_effect=UpstreamFailure('down')))

        with patch('apps.assistant.services.analyze_mood', return_value='Cramps are common.'):
            response = patient_client.post(retry_url(completion))

        assert response.status_code == 200
        assert response.data['mood_analysis_status'] == 'completed'
        assert response.data['mood_analysis'] == 'Cramps are common.'
