"""
Tests for the AI assistant: completion client, prompts and endpoints.

The OpenAI SDK is never called; a mock stands in for the SDK client.
"""
from unittest.mock import Mock, patch

import openai
import pytest

from apps.assistant import services
from apps.assistant.client import TextCompletionClient
from apps.assistant.prompts import CHAT_SYSTEM_MESSAGE, DEFAULT_MEDICATION_PHRASE, mood_analysis_prompt
from apps.core.exceptions import UpstreamFailure, ValidationError


def fake_sdk(content='A reassuring answer.'):
    sdk = Mock()
    sdk.chat.completions.create.return_value = Mock(choices=[Mock(message=Mock(content=content))])
    return sdk


def client_with(sdk):
    return TextCompletionClient(api_key='sk-test', model='gpt-3.5-turbo', timeout=5, sdk_client=sdk)


class TestTextCompletionClient:

    def test_returns_stripped_text(self):
        sdk = fake_sdk('  Hello there.  ')

        text = client_with(sdk).complete('Hi', purpose='test')

        assert text == 'Hello there.'
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs['model'] == 'gpt-3.5-turbo'
        assert kwargs['messages'] == [{'role': 'user', 'content': 'Hi'}]
        assert 'max_tokens' not in kwargs

    def test_system_message_and_limits(self):
        sdk = fake_sdk()

        client_with(sdk).complete('Q', system='S', model='gpt-4', max_tokens=500, temperature=0.7)

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs['messages'][0] == {'role': 'system', 'content': 'S'}
        assert kwargs['model'] == 'gpt-4'
        assert kwargs['max_tokens'] == 500
        assert kwargs['temperature'] == 0.7

    def test_missing_api_key(self):
        client = TextCompletionClient(api_key='')

        with pytest.raises(UpstreamFailure) as exc:
            client.complete('Hi')
        assert exc.value.details == {'reason': 'missing_api_key'}

    def test_sdk_client_is_built_without_retries(self):
        with patch('apps.assistant.client.openai.OpenAI') as sdk_class:
            sdk_class.return_value = fake_sdk()

            TextCompletionClient(api_key='sk-test', timeout=15).complete('Hi')

        sdk_class.assert_called_once_with(api_key='sk-test', timeout=15, max_retries=0)

    def test_sdk_error_becomes_upstream_failure(self):
        sdk = Mock()
        sdk.chat.completions.create.side_effect = openai.OpenAIError('connection reset')

        with pytest.raises(UpstreamFailure) as exc:
            client_with(sdk).complete('Hi')
        assert exc.value.details == {'reason': 'upstream_error'}

    def test_empty_answer_is_upstream_failure(self):
        with pytest.raises(UpstreamFailure):
            client_with(fake_sdk('   ')).complete('Hi')

    def test_no_choices_is_upstream_failure(self):
        sdk = Mock()
        sdk.chat.completions.create.return_value = Mock(choices=[])

        with pytest.raises(UpstreamFailure):
            client_with(sdk).complete('Hi')


class TestPrompts:

    def test_mood_prompt_names_medication(self):
        prompt = mood_analysis_prompt('Bloated and tired', 'Gonal-F')

        assert 'injection of "Gonal-F"' in prompt
        assert '"Bloated and tired"' in prompt
        assert 'maximum of 3-4 sentences' in prompt

    def test_mood_prompt_without_medication(self):
        prompt = mood_analysis_prompt('Bloated', None)

        assert f'injection of "{DEFAULT_MEDICATION_PHRASE}"' in prompt


class TestAssistantServices:

    def test_analyze_mood(self):
        sdk = fake_sdk('This is common with Gonal-F.')

        analysis = services.analyze_mood('Bloated', 'Gonal-F', client=client_with(sdk))

        assert analysis == 'This is common with Gonal-F.'
        prompt = sdk.chat.completions.create.call_args.kwargs['messages'][0]['content']
        assert 'Gonal-F' in prompt

    def test_analyze_blank_mood(self):
        with pytest.raises(ValidationError):
            services.analyze_mood('  ', 'Gonal-F', client=client_with(fake_sdk()))

    def test_explain_dosage_splits_diagram(self):
        content = 'Wash your hands and stay calm.\n---\ngraph TD\n    A["Wash Hands"] --> B["Inject"];'

        result = services.explain_dosage('Gonal-F', '150 IU', client=client_with(fake_sdk(content)))

        assert result.explanation == 'Wash your hands and stay calm.'
        assert result.diagram.startswith('graph TD')
        assert result.images == []

    def test_explain_dosage_without_diagram(self):
        result = services.explain_dosage('Gonal-F', '150 IU', client=client_with(fake_sdk('Just a summary.')))

        assert result.explanation == 'Just a summary.'
        assert result.diagram is None

    def test_explain_dosage_requires_inputs(self):
        with pytest.raises(ValidationError) as exc:
            services.explain_dosage('', '', client=client_with(fake_sdk()))
        assert set(exc.value.details) == {'medication_name', 'dosage'}

    def test_answer_question_uses_chat_settings(self):
        sdk = fake_sdk('IVF stands for in vitro fertilization.')

        answer = services.answer_question('What is IVF?', client=client_with(sdk))

        assert answer == 'IVF stands for in vitro fertilization.'
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs['messages'][0] == {'role': 'system', 'content': CHAT_SYSTEM_MESSAGE}
        assert 'Question: What is IVF?' in kwargs['messages'][1]['content']
        assert kwargs['max_tokens'] == 500


@pytest.mark.django_db
class TestAssistantAPI:

    def test_chat(self, patient_client):
        with patch.object(TextCompletionClient, 'complete', return_value='Happy to help.'):
            response = patient_client.post('/api/v1/assistant/chat/', {'question': 'Is bloating normal?'}, format='json')

        assert response.status_code == 200
        assert response.data == {'answer': 'Happy to help.'}

    def test_explain_dosage(self, patient_client):
        content = 'Summary.\n---\ngraph TD\n    A --> B;'
        with patch.object(TextCompletionClient, 'complete', return_value=content):
            response = patient_client.post('/api/v1/assistant/explain-dosage/', {
                'medication_name': 'Gonal-F',
                'dosage': '150 IU',
            }, format='json')

        assert response.status_code == 200
        assert response.data['explanation'] == 'Summary.'
        assert response.data['diagram'] == 'graph TD\n    A --> B;'
        assert response.data['images'] == []

    def test_analyze_mood(self, patient_client):
        with patch.object(TextCompletionClient, 'complete', return_value='Common side effect.'):
            response = patient_client.post('/api/v1/assistant/analyze-mood/', {'mood': 'Headache'}, format='json')

        assert response.status_code == 200
        assert response.data == {'analysis': 'Common side effect.'}

    def test_unconfigured_assistant_returns_502(self, patient_client):
        response = patient_client.post('/api/v1/assistant/chat/', {'question': 'Hello?'}, format='json')

        assert response.status_code == 502
        assert response.data['error']['code'] == 'UPSTREAM_FAILURE'

    def test_missing_fields_return_400(self, admin_client):
        response = admin_client.post('/api/v1/assistant/explain-dosage/', {'dosage': '150 IU'}, format='json')

        assert response.status_code == 400

    def test_requires_authentication(self, api_client):
        response = api_client.post('/api/v1/assistant/chat/', {'question': 'Hello?'}, format='json')

        assert response.status_code == 401
