"""
Run the protocol reminder sweep once, outside Celery beat.

Usage:
    python manage.py send_protocol_reminders
    python manage.py send_protocol_reminders --date 2024-01-03
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.core.exceptions import ValidationError
from apps.protocols.services import coerce_date
from apps.protocols.tasks import sweep_reminders


class Command(BaseCommand):
    help = 'Send injection reminder emails for the given date (default: today)'

    def add_arguments(self, parser):
        parser.add_argument('--date', dest='sweep_date', help='Sweep date as YYYY-MM-DD')

    def handle(self, *args, **options):
        try:
            today = coerce_date(options['sweep_date'], 'date') if options['sweep_date'] else timezone.localdate()
        except ValidationError as e:
            raise CommandError(e.message)

        result = sweep_reminders(today)

        style = self.style.SUCCESS if not result.failed else self.style.WARNING
        self.stdout.write(style(
            f'Reminder sweep for {today.isoformat()}: '
            f'{result.candidates} candidates, {result.sent} sent, '
            f'{result.no_injections} with nothing due, {result.skipped} skipped, {result.failed} failed'
        ))
