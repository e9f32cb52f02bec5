from decimal import Decimal

from django.db import transaction
from django.dispatch import receiver

from apps.payments.signals import job_settled
from .stats import record_settlement


@receiver(job_settled)
def update_settlement_stats(sender, event, **kwargs):
    """Roll a settled job into the tasker's and customer's stats."""
    payload = event.payload
    with transaction.atomic():
        record_settlement(
            tasker_id=payload['tasker_id'],
            customer_id=payload['customer_id'],
            total_amount=Decimal(payload['total_amount']),
            net_amount=Decimal(payload['net_amount']),
        )
