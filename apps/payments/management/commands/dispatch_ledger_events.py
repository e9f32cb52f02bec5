import logging

from django.core.management.base import BaseCommand

from apps.payments.models import LedgerEvent
from apps.payments.settlement import dispatch_event

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Dispatch settlement events whose post-commit side effects never ran'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=100, help='Maximum number of events to dispatch')

    def handle(self, *args, **options):
        pending = LedgerEvent.objects.filter(dispatched_at__isnull=True).order_by('created_at')[:options['limit']]
        count = 0
        for event in pending:
            dispatch_event(event)
            count += 1
        logger.info(f"Dispatched {count} pending ledger events")
        self.stdout.write(self.style.SUCCESS(f"Dispatched {count} ledger event(s)"))
