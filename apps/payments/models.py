from decimal import Decimal

from django.db import models
from django.conf import settings

from core.constants import (
    PaymentStatus, TRANSACTION_TYPE_CHOICES, WALLET_TRANSACTION_TYPE_CHOICES, PAYMENT_METHOD_CHOICES,
    WalletRefundStatus
)


class Transaction(models.Model):
    """Ledger entry. Written once per settled job and never edited afterwards."""
    job = models.ForeignKey('jobs.Job', on_delete=models.PROTECT, related_name='transactions')
    payer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='payments_made')
    payee = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='payments_received')
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES, default='job_payment')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='MAD')
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['job', 'transaction_type'], name='unique_transaction_per_job_and_type'),
        ]

    def __str__(self):
        return f"{self.transaction_type} {self.amount} {self.currency} for job {self.job_id}"

    @property
    def net_amount(self):
        return self.amount - self.platform_fee


class WalletTransaction(models.Model):
    """Audit trail of wallet balance changes. User.wallet_balance is authoritative."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='wallet_transactions')
    amount = models.DecimalField(max_digits=12, decimal_places=2)  # signed, negative for deductions
    transaction_type = models.CharField(max_length=20, choices=WALLET_TRANSACTION_TYPE_CHOICES)
    related_job = models.ForeignKey(
        'jobs.Job', on_delete=models.SET_NULL, null=True, blank=True, related_name='wallet_transactions'
    )
    related_transaction = models.ForeignKey(
        Transaction, on_delete=models.SET_NULL, null=True, blank=True, related_name='wallet_entries'
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.transaction_type} {self.amount} for {self.user.username}"


class LedgerEvent(models.Model):
    """
    Outbox row committed together with a settlement. Receivers of the matching
    signal run after commit, ``dispatched_at`` marks that they were invoked.
    """
    event_type = models.CharField(max_length=50)
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='events')
    payload = models.JSONField(default=dict)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.event_type} for transaction {self.transaction_id}"


class WalletRefundRequest(models.Model):
    """
    A tasker asking to withdraw part of their wallet balance. The wallet is
    only debited when an administrator approves the request.
    """
    tasker = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='wallet_refund_requests'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reference_code = models.CharField(max_length=30, unique=True)
    status = models.CharField(max_length=20, choices=WalletRefundStatus.choices, default=WalletRefundStatus.PENDING)
    receipt_url = models.URLField(max_length=500, blank=True, null=True)
    admin = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    admin_notes = models.TextField(blank=True, null=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Refund {self.reference_code} ({self.status})"
