"""
Wallet refunds and top-ups.

A tasker asks to withdraw part of their wallet balance, attaches the payment
receipt, and an administrator approves or rejects the request. Status changes
are conditional updates on the current status, so two administrators acting on
the same request cannot both win. The balance only moves on approval (or on an
administrator top-up), through the same balance writers as settlement.
"""
import logging
import string
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from django.utils.crypto import get_random_string

from apps.notifications.dispatcher import notify_admins, notify_on_commit
from core import exceptions as errors
from core.constants import OPEN_REFUND_STATUSES, WalletRefundStatus
from core.utils import require_principal
from .models import WalletRefundRequest, WalletTransaction
from .settlement import quantize
from .wallet import get_balance_writer, revert_detached_change

User = get_user_model()

logger = logging.getLogger(__name__)

REFERENCE_CHARS = string.ascii_uppercase + string.digits
VERIFIABLE_STATUSES = (WalletRefundStatus.PENDING, WalletRefundStatus.PAYMENT_CONFIRMED)
APPROVABLE_STATUSES = (WalletRefundStatus.PAYMENT_CONFIRMED, WalletRefundStatus.ADMIN_VERIFYING)


def generate_reference_code():
    """REF-YYYYMMDD-XXXXXX"""
    return f"REF-{timezone.localdate():%Y%m%d}-{get_random_string(6, REFERENCE_CHARS)}"


def _unique_reference_code(attempts=5):
    for _ in range(attempts):
        code = generate_reference_code()
        if not WalletRefundRequest.objects.filter(reference_code=code).exists():
            return code
    raise errors.IntegrityError('Could not generate a unique refund reference')


def _parse_amount(amount):
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise errors.ValidationError('amount must be a number')
    if not amount.is_finite() or amount <= 0:
        raise errors.ValidationError('amount must be greater than zero')
    return quantize(amount)


def _require_admin(principal):
    principal = require_principal(principal)
    if not principal.is_admin:
        raise errors.AuthorizationError('Only administrators can manage wallet refunds')
    return principal


def _refund_context(refund, **extra):
    return {
        'refund_id': refund.pk,
        'reference_code': refund.reference_code,
        'amount': str(refund.amount),
        'currency': settings.DEFAULT_CURRENCY,
        **extra,
    }


def get_refund_request(request_id):
    refund = WalletRefundRequest.objects.select_related('tasker').filter(pk=request_id).first()
    if refund is None:
        raise errors.NotFoundError('Refund request not found')
    return refund


def _move(refund, allowed, to_status, **fields):
    """Move ``refund`` to ``to_status`` if it is still in one of ``allowed``."""
    if refund.status not in allowed:
        raise errors.StateConflictError(
            f"Refund request {refund.reference_code} is {refund.status} and cannot become {to_status}"
        )
    now = timezone.now()
    updated = WalletRefundRequest.objects.filter(pk=refund.pk, status=refund.status).update(
        status=to_status, updated_at=now, **fields
    )
    if not updated:
        raise errors.StateConflictError('This refund request was changed by another request')
    logger.info(f"Refund request {refund.reference_code} moved from {refund.status} to {to_status}")
    refund.refresh_from_db()
    return refund


def create_refund_request(principal, amount):
    principal = require_principal(principal)
    if not principal.is_tasker:
        raise errors.AuthorizationError('Only taskers can request a wallet refund')

    amount = _parse_amount(amount)
    minimum = settings.WALLET_REFUND_MIN_AMOUNT
    maximum = settings.WALLET_REFUND_MAX_AMOUNT
    if amount < minimum:
        raise errors.ValidationError(f"The minimum refund amount is {minimum} {settings.DEFAULT_CURRENCY}")
    if amount > maximum:
        raise errors.ValidationError(f"The maximum refund amount is {maximum} {settings.DEFAULT_CURRENCY}")

    with transaction.atomic():
        # Requests from the same tasker queue up behind this lock
        balance = User.objects.select_for_update().filter(pk=principal.pk).values_list(
            'wallet_balance', flat=True
        ).first()
        if balance is None:
            raise errors.NotFoundError('User not found')
        if balance < amount:
            raise errors.InsufficientFundsError(
                f"Wallet balance {balance} is below the requested refund of {amount} {settings.DEFAULT_CURRENCY}"
            )
        if WalletRefundRequest.objects.filter(tasker=principal, status__in=OPEN_REFUND_STATUSES).exists():
            raise errors.StateConflictError('You already have a refund request in progress')

        refund = WalletRefundRequest.objects.create(
            tasker=principal, amount=amount, reference_code=_unique_reference_code()
        )

    logger.info(f"User {principal.pk} requested a wallet refund of {amount}, reference {refund.reference_code}")
    context = _refund_context(refund, tasker_name=principal.get_full_name() or principal.username)
    transaction.on_commit(lambda: notify_admins('wallet_refund_requested', context, related_user=principal))
    return refund


def confirm_refund_payment(principal, request_id, receipt_url):
    principal = require_principal(principal)
    refund = get_refund_request(request_id)
    if refund.tasker_id != principal.pk:
        raise errors.AuthorizationError('Only the tasker who made this request can confirm its payment')
    if not receipt_url:
        raise errors.ValidationError('A payment receipt is required')

    refund = _move(
        refund, (WalletRefundStatus.PENDING,), WalletRefundStatus.PAYMENT_CONFIRMED,
        receipt_url=receipt_url, confirmed_at=timezone.now(),
    )
    context = _refund_context(refund, tasker_name=principal.get_full_name() or principal.username)
    transaction.on_commit(lambda: notify_admins('wallet_refund_confirmed', context, related_user=principal))
    return refund


def mark_refund_verifying(principal, request_id, admin_notes=None):
    principal = _require_admin(principal)
    refund = get_refund_request(request_id)
    fields = {'admin': principal}
    if admin_notes:
        fields['admin_notes'] = admin_notes
    return _move(refund, VERIFIABLE_STATUSES, WalletRefundStatus.ADMIN_VERIFYING, **fields)


def approve_refund_request(principal, request_id, admin_notes=None, balance_writer=None):
    """Debit the tasker's wallet by the requested amount and close the request."""
    principal = _require_admin(principal)
    writer = balance_writer or get_balance_writer()
    debit = None
    try:
        with transaction.atomic():
            refund = WalletRefundRequest.objects.select_for_update().filter(pk=request_id).first()
            if refund is None:
                raise errors.NotFoundError('Refund request not found')
            if refund.status not in APPROVABLE_STATUSES:
                raise errors.StateConflictError(
                    f"Refund request {refund.reference_code} is {refund.status} and cannot be approved"
                )

            balance = writer.read_balance(refund.tasker_id, lock=True)
            if balance - refund.amount < 0:
                raise errors.InsufficientFundsError(
                    f"Wallet balance {balance} is below the refund of {refund.amount} {settings.DEFAULT_CURRENCY}"
                )

            fields = {'admin': principal, 'approved_at': timezone.now()}
            if admin_notes:
                fields['admin_notes'] = admin_notes
            refund = _move(refund, APPROVABLE_STATUSES, WalletRefundStatus.APPROVED, **fields)

            debit = writer.debit(refund.tasker_id, balance, refund.amount)
            WalletTransaction.objects.create(
                user_id=refund.tasker_id,
                amount=-refund.amount,
                transaction_type='withdrawal',
                notes=f"Wallet refund approved. Reference: {refund.reference_code}",
            )
    except Exception:
        revert_detached_change(debit, f"failed approval of refund request {request_id}")
        raise

    logger.info(
        f"Refund {refund.reference_code} approved by {principal.pk}, tasker {refund.tasker_id} balance {debit.balance}"
    )
    notify_on_commit(
        refund.tasker, 'wallet_refund_approved', _refund_context(refund, balance=str(debit.balance)),
        related_user=principal,
    )
    return refund


def reject_refund_request(principal, request_id, admin_notes):
    principal = _require_admin(principal)
    if not admin_notes or not admin_notes.strip():
        raise errors.ValidationError('A reason is required to reject a refund request')
    refund = get_refund_request(request_id)
    refund = _move(
        refund, OPEN_REFUND_STATUSES, WalletRefundStatus.REJECTED, admin=principal, admin_notes=admin_notes.strip()
    )
    notify_on_commit(
        refund.tasker, 'wallet_refund_rejected', _refund_context(refund, admin_notes=refund.admin_notes),
        related_user=principal,
    )
    return refund


def list_refund_requests(principal, status=None):
    """Administrators see every request, taskers their own."""
    principal = require_principal(principal)
    if status and status not in WalletRefundStatus.values:
        raise errors.ValidationError(f"status must be one of {', '.join(WalletRefundStatus.values)}")

    queryset = WalletRefundRequest.objects.select_related('tasker', 'admin')
    if not principal.is_admin:
        if not principal.is_tasker:
            raise errors.AuthorizationError('Only taskers have wallet refund requests')
        queryset = queryset.filter(tasker=principal)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at')


def top_up_wallet(principal, user_id, amount, notes=None, balance_writer=None):
    """Credit a user's wallet. Administrators only."""
    principal = _require_admin(principal)
    amount = _parse_amount(amount)
    user = User.objects.filter(pk=user_id, is_active=True).first()
    if user is None:
        raise errors.NotFoundError('User not found')

    writer = balance_writer or get_balance_writer()
    credit = None
    try:
        with transaction.atomic():
            balance = writer.read_balance(user.pk, lock=True)
            credit = writer.credit(user.pk, balance, amount)
            entry = WalletTransaction.objects.create(
                user=user,
                amount=amount,
                transaction_type='top_up',
                notes=notes or f"Wallet top-up by administrator {principal.username}",
            )
    except Exception:
        revert_detached_change(credit, f"failed top-up of user {user.pk}")
        raise

    logger.info(f"Wallet of user {user.pk} topped up by {amount} by {principal.pk}, balance {credit.balance}")
    notify_on_commit(
        user, 'wallet_topped_up',
        {'amount': str(amount), 'currency': settings.DEFAULT_CURRENCY, 'balance': str(credit.balance)},
        related_user=principal,
    )
    return entry
