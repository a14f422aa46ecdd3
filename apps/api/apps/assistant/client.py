"""
Thin wrapper over the OpenAI chat completions API.

Every failure mode surfaces as UpstreamFailure so callers handle a single
error type: missing API key, SDK/network errors, timeouts and empty answers.
"""
import logging
import time
from typing import Optional

import openai
from django.conf import settings

from apps.core.exceptions import UpstreamFailure
from apps.core.observability import metrics

logger = logging.getLogger(__name__)


class TextCompletionClient:
    """
    Usage:
        client = TextCompletionClient()
        text = client.complete(prompt, purpose='mood_analysis')
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 timeout: Optional[float] = None, max_retries: Optional[int] = None, sdk_client=None):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout or settings.AI_REQUEST_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.AI_MAX_RETRIES
        self._sdk_client = sdk_client

    def _get_sdk_client(self):
        if self._sdk_client is None:
            if not self.api_key:
                raise UpstreamFailure('AI assistant is not configured', details={'reason': 'missing_api_key'})
            self._sdk_client = openai.OpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._sdk_client

    def complete(self, prompt: str, system: Optional[str] = None, model: Optional[str] = None,
                 max_tokens: Optional[int] = None, temperature: Optional[float] = None,
                 purpose: str = 'completion') -> str:
        messages = []
        if system:
            messages.append({'role': 'system', 'content': system})
        messages.append({'role': 'user', 'content': prompt})

        params = {'model': model or self.model, 'messages': messages}
        if max_tokens is not None:
            params['max_tokens'] = max_tokens
        if temperature is not None:
            params['temperature'] = temperature

        started = time.monotonic()
        try:
            response = self._get_sdk_client().chat.completions.create(**params)
            text = (response.choices[0].message.content or '').strip() if response.choices else ''
        except UpstreamFailure:
            metrics.ai_requests_total.labels(purpose=purpose, result='failure').inc()
            raise
        except openai.OpenAIError as e:
            metrics.ai_requests_total.labels(purpose=purpose, result='failure').inc()
            logger.error(
                'Text completion request failed',
                extra={
                    'event': 'ai_request_failed',
                    'purpose': purpose,
                    'exception_type': e.__class__.__name__,
                }
            )
            reason = 'timeout' if isinstance(e, openai.APITimeoutError) else 'upstream_error'
            raise UpstreamFailure('AI assistant is unavailable', details={'reason': reason}) from e
        finally:
            metrics.ai_request_duration_seconds.labels(purpose=purpose).observe(time.monotonic() - started)

        if not text:
            metrics.ai_requests_total.labels(purpose=purpose, result='failure').inc()
            logger.warning('Text completion returned no content', extra={'event': 'ai_empty_answer', 'purpose': purpose})
            raise UpstreamFailure('AI assistant returned an empty answer', details={'reason': 'empty_answer'})

        metrics.ai_requests_total.labels(purpose=purpose, result='success').inc()
        return text
