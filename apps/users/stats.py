"""
Stats aggregator.

Rollups are upserted with F() increments so concurrent settlements never lose
an update. Callers treat every function here as best-effort.
"""
import logging

from django.db.models import F
from django.utils import timezone

from .models import UserStats

logger = logging.getLogger(__name__)


def _increment(user_id, **deltas):
    UserStats.objects.get_or_create(user_id=user_id)
    updates = {field: F(field) + delta for field, delta in deltas.items()}
    UserStats.objects.filter(user_id=user_id).update(updated_at=timezone.now(), **updates)


def record_job_posted(customer_id):
    _increment(customer_id, jobs_posted=1)


def record_settlement(tasker_id, customer_id, total_amount, net_amount):
    _increment(tasker_id, completed_jobs=1, total_earnings=net_amount)
    _increment(customer_id, total_spent=total_amount)
    logger.info(
        f"Stats updated: tasker {tasker_id} earned {net_amount}, customer {customer_id} spent {total_amount}"
    )


def get_stats(user):
    return UserStats.objects.filter(user=user).first()
