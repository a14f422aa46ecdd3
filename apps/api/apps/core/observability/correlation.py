"""
Request correlation middleware.

Generates/propagates X-Request-ID and injects it, together with the caller's
id and roles, into every log record emitted while the request is served.
"""
import uuid
import time
import logging
from threading import local

from django.utils.deprecation import MiddlewareMixin

# Thread-local storage for request context
_request_context = local()

_CONTEXT_ATTRS = ('request_id', 'trace_id', 'user_id', 'user_roles')

logger = logging.getLogger(__name__)


def get_request_id():
    return getattr(_request_context, 'request_id', None)


def get_trace_id():
    return getattr(_request_context, 'trace_id', None)


def get_user_id():
    return getattr(_request_context, 'user_id', None)


def get_user_roles():
    return getattr(_request_context, 'user_roles', [])


def bind_request_context(request_id=None, trace_id=None, user_id=None, user_roles=None):
    """
    Set correlation context outside of a request, e.g. in a Celery task.
    """
    _request_context.request_id = request_id or str(uuid.uuid4())
    _request_context.trace_id = trace_id
    _request_context.user_id = user_id
    _request_context.user_roles = list(user_roles or [])
    return _request_context.request_id


def clear_request_context():
    """Clear thread-local request context."""
    for attr in _CONTEXT_ATTRS:
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)


def _roles_of(user):
    # Roles live on UserRole rows; see apps.authz.models
    return list(user.user_roles.values_list('role__name', flat=True))


class RequestCorrelationMiddleware(MiddlewareMixin):
    """
    - Generates/propagates X-Request-ID (and passes X-Trace-ID through)
    - Stores context in thread-local for logging
    - Logs request completion with duration
    - Clears the context when the response leaves
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    TRACE_ID_HEADER = 'HTTP_X_TRACE_ID'

    def process_request(self, request):
        request_id = request.META.get(self.REQUEST_ID_HEADER) or str(uuid.uuid4())
        trace_id = request.META.get(self.TRACE_ID_HEADER)

        request.request_id = request_id
        request.trace_id = trace_id
        request.start_time = time.time()

        # JWT auth runs inside DRF, so only session users are known here
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            bind_request_context(request_id, trace_id, str(user.id), _roles_of(user))
        else:
            bind_request_context(request_id, trace_id)

    def process_response(self, request, response):
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id

        if getattr(request, 'trace_id', None):
            response['X-Trace-ID'] = request.trace_id

        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000
            logger.info(
                'Request completed',
                extra={
                    'event': 'http_request_completed',
                    'path': request.path,
                    'method': request.method,
                    'status_code': response.status_code,
                    'duration_ms': round(duration_ms, 2),
                }
            )

        clear_request_context()
        return response

    def process_exception(self, request, exception):
        duration_ms = 0
        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000

        logger.error(
            f'Request failed: {exception.__class__.__name__}',
            exc_info=True,
            extra={
                'event': 'http_request_exception',
                'path': request.path,
                'method': request.method,
                'exception_type': exception.__class__.__name__,
                'duration_ms': round(duration_ms, 2),
            }
        )
