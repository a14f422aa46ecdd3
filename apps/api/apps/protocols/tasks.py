"""
Celery tasks for protocol reminders.
"""
from dataclasses import asdict

from celery import shared_task
from django.utils import timezone

from apps.core.mail import MailChannel
from apps.core.observability.correlation import bind_request_context, clear_request_context


def sweep_reminders(today, mail_channel=None):
    """
    Collect candidates for `today` and notify them over one mail channel.

    Shared by the Celery task and the management command.
    """
    from .reminders import run_reminder_sweep
    from .services import collect_reminder_candidates

    channel = mail_channel or MailChannel.from_settings()
    return run_reminder_sweep(
        today,
        collect_reminder_candidates(today),
        lambda reminder: channel.send(reminder.recipient, reminder.subject, reminder.body_html),
    )


@shared_task(name='apps.protocols.tasks.send_protocol_reminders')
def send_protocol_reminders(sweep_date=None):
    """
    Daily reminder sweep (Celery beat, see CELERY_BEAT_SCHEDULE).

    Args:
        sweep_date: ISO date to sweep for; defaults to today's local date
    """
    from .services import coerce_date

    today = coerce_date(sweep_date, 'sweep_date') if sweep_date else timezone.localdate()

    bind_request_context(user_roles=['system'])
    try:
        result = sweep_reminders(today)
    finally:
        clear_request_context()

    summary = asdict(result)
    summary['sweep_date'] = today.isoformat()
    return summary
