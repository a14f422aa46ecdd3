"""
Structured logging with PHI/PII protection.

Patient moods, AI commentary, document bodies and contact details must never
reach the log stream. Everything that goes through the JSON formatter or
`sanitize_dict` has those keys replaced by '[REDACTED]'.
"""
import logging
import json
from datetime import datetime, timezone
from .correlation import get_request_id, get_trace_id, get_user_id, get_user_roles


REDACTED = '[REDACTED]'

# Fields that should NEVER be logged (PHI/PII)
SENSITIVE_FIELDS = {
    'password',
    'token',
    'raw_token',
    'token_hash',
    'secret',
    'api_key',
    'mood',
    'mood_analysis',
    'mood_text',
    'prompt',
    'question',
    'answer',
    'content',
    'file_data',
    'notes',
    'name',
    'email',
    'recipient',
    'phone',
    'address',
    'date_of_birth',
}

# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
])


def _is_sensitive(key):
    return isinstance(key, str) and key.lower() in SENSITIVE_FIELDS


class CorrelationFilter(logging.Filter):
    """
    Logging filter that injects correlation context into log records.
    """

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        record.trace_id = get_trace_id() or '-'
        record.user_id = get_user_id() or '-'
        record.user_roles = ','.join(get_user_roles()) or '-'
        return True


class SanitizedJSONFormatter(logging.Formatter):
    """
    One JSON object per line, with correlation fields and redacted extras.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'request_id': getattr(record, 'request_id', '-'),
            'trace_id': getattr(record, 'trace_id', '-'),
            'user_id': getattr(record, 'user_id', '-'),
            'user_roles': getattr(record, 'user_roles', '-'),
        }

        # Extra fields (from extra={} in logging calls)
        for key, value in record.__dict__.items():
            if key in log_data or key.startswith('_') or key in _RECORD_ATTRS:
                continue
            log_data[key] = REDACTED if _is_sensitive(key) else _sanitize_value(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def _sanitize_value(value):
    if isinstance(value, dict):
        return sanitize_dict(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(v) for v in value]
    return value


def get_sanitized_logger(name):
    """
    Get a logger with correlation filter applied.

    Usage:
        logger = get_sanitized_logger(__name__)
        logger.info('Completion recorded', extra={'event': 'completion_recorded'})
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())

    return logger


def sanitize_dict(data):
    """
    Return a copy of `data` with sensitive keys redacted at every depth.

    Non-dict input is returned unchanged.
    """
    if not isinstance(data, dict):
        return data

    return {
        key: REDACTED if _is_sensitive(key) else _sanitize_value(value)
        for key, value in data.items()
    }
