"""
Settlement engine.

Runs when a customer confirms a completed job. Customers pay taskers directly,
the platform records the payment in the ledger and takes its fee out of the
tasker's wallet. Everything that must agree (confirmation stamp, ledger row,
wallet debit, outbox event) is written in one transaction after all checks
have passed. Audit trail, stats and notifications run once it has committed and
can fail without affecting the settlement.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.jobs.models import Job
from apps.jobs.state_machine import record_transition
from core import exceptions as errors
from core.constants import JobStatus, PaymentStatus
from .models import LedgerEvent, Transaction, WalletTransaction
from .signals import job_settled
from .wallet import get_balance_writer, revert_detached_change

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
JOB_SETTLED = 'job_settled'


def quantize(amount):
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_amounts(total_amount, fee_rate):
    """Return (total, platform fee, tasker net), all rounded to cents."""
    total = quantize(total_amount)
    fee = quantize(total * Decimal(str(fee_rate)))
    return total, fee, total - fee


@dataclass
class SettlementResult:
    job_id: int
    already_settled: bool = False
    transaction_id: int = None
    total_amount: Decimal = None
    platform_fee: Decimal = None
    net_amount: Decimal = None
    tasker_balance: Decimal = None

    def as_dict(self):
        def money(value):
            return None if value is None else str(value)

        return {
            'job_id': self.job_id,
            'already_settled': self.already_settled,
            'transaction_id': self.transaction_id,
            'total_amount': money(self.total_amount),
            'platform_fee': money(self.platform_fee),
            'net_amount': money(self.net_amount),
            'tasker_balance': money(self.tasker_balance),
        }


class SettlementEngine:

    def __init__(self, balance_writer=None, fee_rate=None):
        self.balance_writer = balance_writer or get_balance_writer()
        self.fee_rate = Decimal(str(fee_rate if fee_rate is not None else settings.PLATFORM_FEE_RATE))

    def settle(self, job_id, actor=None):
        debit = None
        try:
            with transaction.atomic():
                job = Job.objects.select_for_update().filter(pk=job_id).first()
                if job is None:
                    raise errors.NotFoundError('Job not found')
                if job.customer_confirmed_at is not None:
                    logger.info(f"Job {job_id} already settled, nothing to do")
                    return SettlementResult(job_id=job.pk, already_settled=True)
                if job.status != JobStatus.COMPLETED or job.completed_at is None:
                    raise errors.StateConflictError('Only completed jobs can be confirmed')
                if job.assigned_tasker_id is None:
                    raise errors.StateConflictError('Job has no assigned tasker')

                total, fee, net = calculate_amounts(job.settlement_amount, self.fee_rate)
                tasker_id = job.assigned_tasker_id

                balance = self.balance_writer.read_balance(tasker_id, lock=True)
                if balance - fee < 0:
                    logger.info(f"Job {job_id}: tasker {tasker_id} balance {balance} cannot cover fee {fee}")
                    raise errors.InsufficientFundsError(
                        f"Tasker wallet balance {balance} is below the platform fee {fee} {job.currency}"
                    )

                now = timezone.now()
                stamped = Job.objects.filter(
                    pk=job.pk,
                    customer_confirmed_at__isnull=True,
                    status=JobStatus.COMPLETED,
                    completed_at__isnull=False,
                ).update(customer_confirmed_at=now, updated_at=now)
                if not stamped:
                    return SettlementResult(job_id=job.pk, already_settled=True)

                debit = self.balance_writer.debit(tasker_id, balance, fee)
                new_balance = debit.balance

                ledger = Transaction.objects.create(
                    job=job,
                    payer_id=job.customer_id,
                    payee_id=tasker_id,
                    transaction_type='job_payment',
                    amount=total,
                    platform_fee=fee,
                    currency=job.currency,
                    payment_status=PaymentStatus.PAID,
                    payment_method='cash',
                    processed_at=now,
                )
                event = LedgerEvent.objects.create(
                    event_type=JOB_SETTLED,
                    transaction=ledger,
                    payload={
                        'job_id': job.pk,
                        'transaction_id': ledger.pk,
                        'customer_id': job.customer_id,
                        'tasker_id': tasker_id,
                        'total_amount': str(total),
                        'platform_fee': str(fee),
                        'net_amount': str(net),
                        'currency': job.currency,
                        'tasker_balance': str(new_balance),
                    },
                )
                record_transition(job, 'confirm', job.status, job.status, actor)
                transaction.on_commit(lambda: dispatch_event(event))
        except Exception:
            # A debit committed on the elevated connection does not roll back with the job
            revert_detached_change(debit, f"failed settlement of job {job_id}")
            raise

        logger.info(
            f"Job {job.pk} settled: transaction {ledger.pk}, amount {total}, fee {fee}, tasker {tasker_id} balance {new_balance}"
        )
        return SettlementResult(
            job_id=job.pk,
            transaction_id=ledger.pk,
            total_amount=total,
            platform_fee=fee,
            net_amount=net,
            tasker_balance=new_balance,
        )


def record_wallet_entry(event):
    """Append the fee deduction to the tasker's wallet history. Best-effort."""
    payload = event.payload
    try:
        with transaction.atomic():
            WalletTransaction.objects.get_or_create(
                related_transaction_id=event.transaction_id,
                transaction_type='fee_deduction',
                defaults={
                    'user_id': payload['tasker_id'],
                    'amount': -Decimal(payload['platform_fee']),
                    'related_job_id': payload['job_id'],
                    'notes': f"Platform fee for job {payload['job_id']}",
                },
            )
    except Exception as e:
        logger.error(f"Failed to record wallet entry for job {payload['job_id']}: {str(e)}")


def dispatch_event(event):
    """Run the post-commit side effects of a settlement and mark the event dispatched."""
    record_wallet_entry(event)
    for receiver, response in job_settled.send_robust(sender=LedgerEvent, event=event):
        if isinstance(response, Exception):
            logger.error(
                f"{receiver.__name__} failed for settled job {event.payload['job_id']}: {str(response)}"
            )
    LedgerEvent.objects.filter(pk=event.pk, dispatched_at__isnull=True).update(dispatched_at=timezone.now())
