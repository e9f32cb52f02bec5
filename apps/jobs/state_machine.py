"""
Job lifecycle rules.

Every status change goes through the ``TRANSITIONS`` table: which statuses an
action may start from, the status it leads to and who is allowed to trigger it.
``check_transition`` is the only place that decides whether a caller may run an
action, ``apply_transition`` performs it as a conditional update so two
concurrent requests can never both move the same job.
"""
import logging
from collections import namedtuple

from django.db import transaction
from django.utils import timezone

from core import exceptions as errors
from core.constants import JobStatus, OPEN_STATUSES
from .models import Job, JobStateTransition

logger = logging.getLogger(__name__)

ADMIN = 'admin'
CUSTOMER = 'customer'
ASSIGNED_TASKER = 'assigned_tasker'

Transition = namedtuple('Transition', ['sources', 'target', 'actor'])

TRANSITIONS = {
    'approve': Transition((JobStatus.UNDER_REVIEW,), JobStatus.ACTIVE, ADMIN),
    'assign': Transition(OPEN_STATUSES, JobStatus.ASSIGNED, CUSTOMER),
    'start': Transition((JobStatus.ASSIGNED,), JobStatus.IN_PROGRESS, ASSIGNED_TASKER),
    'complete': Transition((JobStatus.IN_PROGRESS,), JobStatus.COMPLETED, ASSIGNED_TASKER),
    # Confirmation keeps the job completed, settlement stamps customer_confirmed_at
    'confirm': Transition((JobStatus.COMPLETED,), JobStatus.COMPLETED, CUSTOMER),
    'cancel': Transition(OPEN_STATUSES, JobStatus.CANCELLED, CUSTOMER),
}

_ROLE_MESSAGES = {
    ADMIN: 'Only an administrator can {action} a job',
    CUSTOMER: 'Only the job owner can {action} this job',
    ASSIGNED_TASKER: 'Only the assigned tasker can {action} this job',
}


def is_actor(job, role, principal):
    if role == ADMIN:
        return principal.is_admin
    if role == CUSTOMER:
        return job.customer_id == principal.pk
    if role == ASSIGNED_TASKER:
        return job.assigned_tasker_id is not None and job.assigned_tasker_id == principal.pk
    return False


def _state_conflict_message(job, action):
    if action in ('assign', 'cancel'):
        if job.status == JobStatus.ASSIGNED:
            return 'Job is already assigned'
        if job.status in (JobStatus.IN_PROGRESS, JobStatus.COMPLETED):
            return 'Job is already in progress or completed'
    if job.status == JobStatus.CANCELLED:
        return 'Job has been cancelled'
    return f"Cannot {action} a job with status '{job.status}'"


def check_transition(job, action, principal):
    """
    Raise AuthorizationError if ``principal`` may not run ``action`` on ``job``
    and StateConflictError if the job is not in a status the action accepts.
    """
    transition = TRANSITIONS[action]
    if not is_actor(job, transition.actor, principal):
        raise errors.AuthorizationError(_ROLE_MESSAGES[transition.actor].format(action=action))

    if job.status not in transition.sources:
        raise errors.StateConflictError(_state_conflict_message(job, action))

    if action in ('assign', 'cancel') and job.assigned_tasker_id is not None:
        raise errors.StateConflictError('Job is already assigned')

    if action == 'confirm' and job.completed_at is None:
        raise errors.StateConflictError('Job has no completion timestamp')
    return transition


def record_transition(job, action, from_status, to_status, actor):
    return JobStateTransition.objects.create(
        job=job,
        action=action,
        from_status=from_status,
        to_status=to_status,
        actor=actor,
    )


def apply_transition(job, action, actor, filters=None, **fields):
    """
    Move ``job`` to the target status of ``action``.

    The update only matches while the job is still in the status it was read
    with (plus any extra ``filters``), zero matched rows means another request
    got there first.
    """
    transition = TRANSITIONS[action]
    from_status = job.status
    with transaction.atomic():
        updated = Job.objects.filter(pk=job.pk, status=from_status, **(filters or {})).update(
            status=transition.target, updated_at=timezone.now(), **fields
        )
        if not updated:
            logger.info(f"Job {job.pk}: concurrent change rejected {action} from {from_status}")
            raise errors.StateConflictError('Job was changed by another request, please retry')
        record_transition(job, action, from_status, transition.target, actor)

    job.refresh_from_db()
    logger.info(f"Job {job.pk}: {action} by user {actor.pk} ({from_status} -> {transition.target})")
    return job
