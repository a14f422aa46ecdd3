"""
Daily injection reminder sweep.

`run_reminder_sweep` is the whole algorithm: it gets the date, the
candidates and a `send_notification` callable, and does no database or mail
I/O of its own. The Celery task in `apps.protocols.tasks` supplies the real
collaborators.

One failing patient never stops the sweep; there are no retries.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from django.utils.html import format_html, format_html_join

from apps.core.observability import metrics
from apps.core.observability.events import log_reminder_sweep

from .definitions import ProtocolDefinition, format_time_of_day
from .scheduling import ScheduledInjection, injections_on_date

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = 'Your Daily AIVF Protocol Reminder'
FALLBACK_MEDICATION_NAME = 'Medication'


@dataclass(frozen=True)
class ReminderCandidate:
    """A patient whose current assignment has started."""
    patient_id: str
    email: Optional[str]
    patient_name: str
    definition: ProtocolDefinition
    start_date: date
    medication_names: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Reminder:
    recipient: str
    subject: str
    body_html: str
    patient_id: str
    injection_count: int


@dataclass
class SweepResult:
    sweep_date: date
    candidates: int = 0
    sent: int = 0
    no_injections: int = 0
    skipped: int = 0
    failed: int = 0
    failed_patient_ids: List[str] = field(default_factory=list)


def render_reminder_html(patient_name, doses: List[ScheduledInjection], medication_names) -> str:
    items = format_html_join(
        '\n',
        '<li>Take {} of {} at {}</li>',
        (
            (
                dose.dosage,
                medication_names.get(dose.medication_id) or FALLBACK_MEDICATION_NAME,
                format_time_of_day(dose.time),
            )
            for dose in doses
        ),
    )
    return format_html(
        '<h1>Your Daily Protocol Reminder</h1>\n'
        '<p>Hello {},</p>\n'
        '<p>This is a reminder for your injections today:</p>\n'
        '<ul>\n{}\n</ul>\n'
        '<p>Best regards,<br/>The AIVF Team</p>',
        patient_name or 'there',
        items,
    )


def build_reminder(candidate: ReminderCandidate, today: date) -> Optional[Reminder]:
    """Reminder for today's doses, or None when nothing is due."""
    doses = injections_on_date(candidate.definition, candidate.start_date, today)
    if not doses:
        return None

    return Reminder(
        recipient=candidate.email,
        subject=REMINDER_SUBJECT,
        body_html=render_reminder_html(candidate.patient_name, doses, candidate.medication_names),
        patient_id=candidate.patient_id,
        injection_count=len(doses),
    )


def run_reminder_sweep(
    today: date,
    candidates: Iterable[ReminderCandidate],
    send_notification: Callable[[Reminder], bool],
) -> SweepResult:
    """
    Notify every candidate with doses due `today`.

    `send_notification` returns True when the message was handed off. A False
    return or an exception counts the patient as failed and the sweep moves on.
    """
    started = time.monotonic()
    result = SweepResult(sweep_date=today)

    for candidate in candidates:
        result.candidates += 1

        if not candidate.email:
            result.skipped += 1
            metrics.reminders_sent_total.labels(result='skipped').inc()
            logger.warning(
                'Reminder skipped: patient has no email',
                extra={'event': 'reminder_skipped', 'patient_id': candidate.patient_id}
            )
            continue

        try:
            reminder = build_reminder(candidate, today)
            if reminder is None:
                result.no_injections += 1
                continue
            delivered = send_notification(reminder)
        except Exception as e:
            delivered = False
            logger.error(
                'Reminder failed for patient',
                exc_info=True,
                extra={
                    'event': 'reminder_failed',
                    'patient_id': candidate.patient_id,
                    'exception_type': e.__class__.__name__,
                }
            )

        if delivered:
            result.sent += 1
            metrics.reminders_sent_total.labels(result='sent').inc()
        else:
            result.failed += 1
            result.failed_patient_ids.append(candidate.patient_id)
            metrics.reminders_sent_total.labels(result='failed').inc()

    duration = time.monotonic() - started
    metrics.reminder_sweep_runs_total.inc()
    metrics.reminder_sweep_duration_seconds.observe(duration)
    log_reminder_sweep(
        today,
        candidates=result.candidates,
        sent=result.sent,
        skipped=result.skipped,
        failed=result.failed,
        duration_ms=round(duration * 1000, 2),
    )
    return result
