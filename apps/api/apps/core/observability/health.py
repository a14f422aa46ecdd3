"""
Health check endpoints.

Provides /healthz and /readyz endpoints for monitoring.
"""
import logging

import redis
from django.conf import settings
from django.db import connection
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


class HealthzView(View):
    """
    Liveness: returns 200 while the process can serve requests.
    Does not check dependencies.
    """

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness: 200 when the database and the reminder broker answer, 503 otherwise.

    A non-redis broker (the in-memory one used in tests) is reported as 'skipped'.
    """

    def get(self, request):
        checks = {
            'database': self._check_database(),
            'broker': self._check_broker(),
        }

        all_healthy = all(value in (True, 'skipped') for value in checks.values())

        response_data = {
            'status': 'ready' if all_healthy else 'not_ready',
            'checks': checks,
        }

        return JsonResponse(response_data, status=200 if all_healthy else 503)

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
                return True
        except Exception as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error': str(e)
                }
            )
            return False

    def _check_broker(self):
        broker_url = getattr(settings, 'CELERY_BROKER_URL', '') or ''
        if not broker_url.startswith(('redis://', 'rediss://')):
            return 'skipped'

        try:
            client = redis.Redis.from_url(broker_url, socket_connect_timeout=2, socket_timeout=2)
            return bool(client.ping())
        except redis.RedisError as e:
            logger.error(
                'Broker health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'broker',
                    'error': str(e)
                }
            )
            return False
