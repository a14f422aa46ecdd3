"""
Domain events logging helpers.

Provides structured event logging for protocol, ledger and reminder
operations. Only identifiers and outcomes are logged; free-text patient
input is redacted by `sanitize_dict`.
"""
from typing import Dict, Any, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields: Any
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'protocol_assigned')
        entity_type: Type of entity (e.g., 'ProtocolAssignment')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, duplicate, ...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'injection_completion_recorded',
            entity_type='InjectionCompletion',
            entity_id=str(completion.id),
            entity_ids={'patient_id': str(patient.id)},
            injection_date='2024-01-01',
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'duplicate', 'partial']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_protocol_assigned(assignment, **extra):
    log_domain_event(
        'protocol_assigned',
        entity_type='ProtocolAssignment',
        entity_id=str(assignment.id),
        entity_ids={
            'patient_id': str(assignment.patient_id),
            'protocol_id': str(assignment.protocol_id),
        },
        start_date=assignment.start_date.isoformat(),
        **extra
    )


def log_protocol_revised(old_protocol, new_protocol):
    """Log a protocol revision; `new_protocol` may be the same row when edited in place."""
    log_domain_event(
        'protocol_revised',
        entity_type='Protocol',
        entity_id=str(new_protocol.id),
        entity_ids={'previous_protocol_id': str(old_protocol.id)},
        version=new_protocol.version,
        in_place=old_protocol.pk == new_protocol.pk,
    )


def log_completion_recorded(completion):
    log_domain_event(
        'injection_completion_recorded',
        entity_type='InjectionCompletion',
        entity_id=str(completion.id),
        entity_ids={
            'patient_id': str(completion.patient_id),
            'protocol_id': str(completion.protocol_id),
        },
        injection_date=completion.injection_date.isoformat(),
        injection_time=completion.injection_time.strftime('%H:%M'),
    )


def log_completion_conflict(patient_id, protocol_id, injection_date, injection_time):
    """Log a duplicate completion attempt (same patient/protocol/date/time)."""
    log_domain_event(
        'injection_completion_conflict',
        entity_type='InjectionCompletion',
        entity_ids={
            'patient_id': str(patient_id),
            'protocol_id': str(protocol_id),
        },
        result='duplicate',
        injection_date=injection_date.isoformat(),
        injection_time=injection_time.strftime('%H:%M'),
    )


def log_mood_analysis(completion, result, error=None):
    """Log the outcome of the mood enrichment step. The mood itself is never logged."""
    extra = {'analysis_status': completion.mood_analysis_status}
    if error:
        extra['error'] = error

    log_domain_event(
        'mood_analysis',
        entity_type='InjectionCompletion',
        entity_id=str(completion.id),
        entity_ids={'patient_id': str(completion.patient_id)},
        result=result,
        **extra
    )


def log_reminder_sweep(sweep_date, candidates, sent, skipped, failed, duration_ms=None):
    extra = {
        'sweep_date': sweep_date.isoformat(),
        'candidates': candidates,
        'sent': sent,
        'skipped': skipped,
        'failed': failed,
    }
    if duration_ms is not None:
        extra['duration_ms'] = duration_ms

    log_domain_event(
        'reminder_sweep_completed',
        entity_type='ReminderSweep',
        result='partial' if failed else 'success',
        **extra
    )
