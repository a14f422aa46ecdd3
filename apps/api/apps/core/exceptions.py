"""
Domain errors shared by all services, and the DRF handler that renders them.

Services raise these; views let them propagate. The handler turns each kind
into a stable HTTP status and the error envelope used across the API:

    {"error": {"code": "CONFLICT", "message": "...", "details": {...}}}
"""
import logging
from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.core.observability import metrics

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for errors that carry a user-facing message."""
    code = 'ERROR'
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """Malformed input: missing protocol/start date, non-positive duration, bad time."""
    code = 'VALIDATION_ERROR'
    http_status = status.HTTP_400_BAD_REQUEST


class NotFound(DomainError):
    """A referenced entity (patient, protocol, medication, completion) does not resolve."""
    code = 'NOT_FOUND'
    http_status = status.HTTP_404_NOT_FOUND


class Conflict(DomainError):
    """Duplicate record, e.g. an injection already marked complete."""
    code = 'CONFLICT'
    http_status = status.HTTP_409_CONFLICT


class Forbidden(DomainError):
    """Ownership or role violation."""
    code = 'FORBIDDEN'
    http_status = status.HTTP_403_FORBIDDEN


class UpstreamFailure(DomainError):
    """An external collaborator (AI completion, mail) failed or timed out."""
    code = 'UPSTREAM_FAILURE'
    http_status = status.HTTP_502_BAD_GATEWAY


def domain_exception_handler(exc, context):
    """
    DRF exception handler: DomainError -> error envelope, everything else -> DRF default.
    """
    if isinstance(exc, DomainError):
        view = context.get('view')
        location = view.__class__.__name__ if view else 'unknown'
        metrics.exceptions_total.labels(exception_type=exc.code, location=location).inc()
        logger.info(
            'Domain error returned to client',
            extra={
                'event': 'domain_error',
                'error_code': exc.code,
                'view': location,
            }
        )
        return Response(
            {
                'error': {
                    'code': exc.code,
                    'message': exc.message,
                    'details': exc.details,
                }
            },
            status=exc.http_status
        )

    return exception_handler(exc, context)
