"""
Wallet balance writers.

Settlement debits the tasker's wallet, a row the customer who confirms a job
does not own. Writers are tried in order: the normal connection first, inside
the caller's transaction, then the elevated database role when one is
configured and the normal path was refused. Every writer does a compare-and-set
on the balance it was handed and reads the row back, so a lost update raises
IntegrityError instead of passing silently.

The elevated role writes on its own connection and commits before the caller
does. Callers keep the returned ``BalanceChange`` and hand it to
``revert_detached_change`` when their own transaction fails afterwards.
"""
import logging
from collections import namedtuple

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections, transaction

from core import exceptions as errors

User = get_user_model()

logger = logging.getLogger(__name__)

BalanceChange = namedtuple('BalanceChange', ['user_id', 'delta', 'balance', 'writer'])


class PrincipalBalanceWriter:
    """Writes through the default connection, inside the caller's transaction."""
    name = 'principal'
    alias = DEFAULT_DB_ALIAS

    @property
    def commits_independently(self):
        return self.alias != DEFAULT_DB_ALIAS

    def is_available(self):
        return True

    def _users(self):
        return User.objects.using(self.alias)

    def read_balance(self, user_id, lock=False):
        # Savepoint, so a refused lock leaves the caller's transaction usable
        with transaction.atomic(using=self.alias):
            queryset = self._users().filter(pk=user_id)
            if lock:
                queryset = queryset.select_for_update()
            balance = queryset.values_list('wallet_balance', flat=True).first()
        if balance is None:
            raise errors.NotFoundError(f"User {user_id} not found")
        return balance

    def adjust(self, user_id, expected_balance, delta):
        """Move the balance from ``expected_balance`` by ``delta``. Returns a BalanceChange."""
        new_balance = expected_balance + delta
        with transaction.atomic(using=self.alias):
            updated = self._users().filter(pk=user_id, wallet_balance=expected_balance).update(
                wallet_balance=new_balance
            )
            if not updated:
                raise errors.IntegrityError(f"Wallet balance of user {user_id} changed concurrently")
            stored = self.read_balance(user_id)
            if stored != new_balance:
                raise errors.IntegrityError(
                    f"Wallet balance of user {user_id} is {stored} after update, expected {new_balance}"
                )
        logger.info(f"Wallet of user {user_id} changed by {delta} via {self.name} writer, balance {new_balance}")
        return BalanceChange(user_id, delta, new_balance, self)

    def debit(self, user_id, expected_balance, amount):
        return self.adjust(user_id, expected_balance, -amount)

    def credit(self, user_id, expected_balance, amount):
        return self.adjust(user_id, expected_balance, amount)


class ElevatedBalanceWriter(PrincipalBalanceWriter):
    """
    Writes through a separate database alias connected with a role allowed to
    update any wallet. Its transaction commits on its own connection before the
    caller's transaction does.
    """
    name = 'elevated'

    def __init__(self, alias=None):
        self.alias = alias or settings.PRIVILEGED_DATABASE_ALIAS

    def is_available(self):
        return self.alias in connections.databases

    def read_balance(self, user_id, lock=False):
        # Rows are never locked from the second connection, the compare-and-set guards them
        return super().read_balance(user_id, lock=False)


class FallbackBalanceWriter:
    """Try each writer in turn, moving on when one is unavailable or hits a database error."""

    def __init__(self, writers):
        self.writers = list(writers)

    def available_writers(self):
        return [writer for writer in self.writers if writer.is_available()]

    def _first_success(self, action, user_id, call):
        for writer in self.available_writers():
            try:
                return call(writer)
            except DatabaseError as e:
                logger.warning(f"{writer.name} balance writer failed for user {user_id}, trying next: {str(e)}")
        raise errors.IntegrityError(f"No balance writer could {action} the wallet of user {user_id}")

    def read_balance(self, user_id, lock=False):
        return self._first_success('read', user_id, lambda writer: writer.read_balance(user_id, lock=lock))

    def adjust(self, user_id, expected_balance, delta):
        return self._first_success(
            'update', user_id, lambda writer: writer.adjust(user_id, expected_balance, delta)
        )

    def debit(self, user_id, expected_balance, amount):
        return self._first_success('debit', user_id, lambda writer: writer.debit(user_id, expected_balance, amount))

    def credit(self, user_id, expected_balance, amount):
        return self._first_success(
            'credit', user_id, lambda writer: writer.credit(user_id, expected_balance, amount)
        )


def revert_detached_change(change, reason):
    """
    Undo a balance change that already committed on its own connection while
    the transaction it belonged to rolled back. Changes made inside the caller's
    transaction roll back with it and are left alone.
    """
    if change is None or not change.writer.commits_independently:
        return False
    try:
        change.writer.adjust(change.user_id, change.balance, -change.delta)
    except Exception as e:
        logger.error(
            f"Could not revert wallet change of {change.delta} for user {change.user_id} after {reason}, "
            f"balance needs manual correction: {str(e)}"
        )
        return False
    logger.warning(f"Reverted wallet change of {change.delta} for user {change.user_id} after {reason}")
    return True


def get_balance_writer():
    return FallbackBalanceWriter([PrincipalBalanceWriter(), ElevatedBalanceWriter()])
