"""
Job lifecycle operations.

Each function takes the authenticated caller as ``principal`` and raises a
``core.exceptions`` error when the call is refused. Status changes go through
``state_machine``; confirmation hands over to the settlement engine.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.notifications.dispatcher import notify_admins, notify_on_commit
from apps.payments.settlement import SettlementEngine
from apps.users.stats import record_job_posted
from core import exceptions as errors
from core.constants import ApplicationStatus, JobStatus, OPEN_STATUSES
from core.utils import format_validation_errors, require_principal
from . import state_machine
from .models import Job
from .serializers import JobUpdateSerializer, JobWriteSerializer

User = get_user_model()

logger = logging.getLogger(__name__)


def get_job(job_id):
    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        raise errors.NotFoundError('Job not found')
    return job


def _job_context(job, **extra):
    return {'job_id': job.pk, 'job_title': job.title, **extra}


def _validated(data, instance=None):
    serializer_class = JobUpdateSerializer if instance is not None else JobWriteSerializer
    serializer = serializer_class(instance, data=data, partial=instance is not None)
    if not serializer.is_valid():
        raise errors.ValidationError(format_validation_errors(serializer.errors))
    return serializer.validated_data


def _after_job_posted(job):
    try:
        record_job_posted(job.customer_id)
    except Exception as e:
        logger.error(f"Failed to update posting stats for job {job.pk}: {str(e)}")
    notify_admins('job_created', _job_context(job), related_job=job, related_user=job.customer)


def create_job(principal, data):
    principal = require_principal(principal)
    fields = _validated(data)
    fields.setdefault('currency', settings.DEFAULT_CURRENCY)
    fields.setdefault('max_applications', settings.DEFAULT_MAX_APPLICATIONS)

    with transaction.atomic():
        job = Job.objects.create(customer=principal, status=JobStatus.UNDER_REVIEW, **fields)
        transaction.on_commit(lambda: _after_job_posted(job))

    logger.info(f"Job {job.pk} created by user {principal.pk}")
    return job


def update_job(principal, job_id, changes):
    principal = require_principal(principal)
    job = get_job(job_id)
    if job.customer_id != principal.pk:
        raise errors.AuthorizationError('Only the job owner can edit this job')
    if job.status not in OPEN_STATUSES or job.assigned_tasker_id is not None:
        raise errors.StateConflictError('Job can no longer be edited')

    fields = _validated(changes, instance=job)
    updated = Job.objects.filter(pk=job.pk, status__in=OPEN_STATUSES, assigned_tasker__isnull=True).update(
        updated_at=timezone.now(), **fields
    )
    if not updated:
        raise errors.StateConflictError('Job can no longer be edited')

    job.refresh_from_db()
    logger.info(f"Job {job.pk} updated by user {principal.pk}: {', '.join(fields) or 'no changes'}")
    return job


def approve_job(principal, job_id):
    principal = require_principal(principal)
    job = get_job(job_id)
    state_machine.check_transition(job, 'approve', principal)
    job = state_machine.apply_transition(job, 'approve', principal)
    notify_on_commit(job.customer, 'job_approved', _job_context(job), related_job=job)
    return job


def assign_tasker_direct(principal, job_id, tasker_id):
    principal = require_principal(principal)
    job = get_job(job_id)
    state_machine.check_transition(job, 'assign', principal)

    tasker = User.objects.filter(pk=tasker_id, is_active=True).first()
    if tasker is None:
        raise errors.ValidationError('Tasker not found')
    if not tasker.is_tasker:
        raise errors.ValidationError('Selected user is not a tasker')
    if tasker.pk == job.customer_id:
        raise errors.ValidationError('You cannot assign your own job to yourself')

    job = state_machine.apply_transition(
        job, 'assign', principal, filters={'assigned_tasker__isnull': True}, assigned_tasker=tasker
    )
    notify_on_commit(tasker, 'job_assigned', _job_context(job), related_job=job, related_user=principal)
    return job


def start_job(principal, job_id):
    principal = require_principal(principal)
    job = get_job(job_id)
    state_machine.check_transition(job, 'start', principal)
    job = state_machine.apply_transition(job, 'start', principal, started_at=timezone.now())
    notify_on_commit(job.customer, 'job_started', _job_context(job), related_job=job, related_user=principal)
    return job


def complete_job(principal, job_id):
    principal = require_principal(principal)
    job = get_job(job_id)
    state_machine.check_transition(job, 'complete', principal)
    job = state_machine.apply_transition(job, 'complete', principal, completed_at=timezone.now())
    notify_on_commit(job.customer, 'job_completed', _job_context(job), related_job=job, related_user=principal)
    return job


def confirm_job_completion(principal, job_id, engine=None):
    """Confirm a completed job and settle it. Confirming twice settles once."""
    principal = require_principal(principal)
    job = get_job(job_id)
    state_machine.check_transition(job, 'confirm', principal)
    return (engine or SettlementEngine()).settle(job.pk, actor=principal)


def _pending_taskers(job):
    return list(
        User.objects.filter(job_applications__job=job, job_applications__status=ApplicationStatus.PENDING)
    )


def cancel_job(principal, job_id):
    principal = require_principal(principal)
    job = get_job(job_id)
    state_machine.check_transition(job, 'cancel', principal)

    with transaction.atomic():
        taskers = _pending_taskers(job)
        job = state_machine.apply_transition(
            job, 'cancel', principal, filters={'assigned_tasker__isnull': True}, cancelled_at=timezone.now()
        )
        job.applications.filter(status=ApplicationStatus.PENDING).update(
            status=ApplicationStatus.REJECTED, updated_at=timezone.now()
        )

    for tasker in taskers:
        notify_on_commit(tasker, 'job_cancelled', _job_context(job), related_job=job, related_user=principal)
    return job


def delete_job(principal, job_id):
    principal = require_principal(principal)
    job = get_job(job_id)
    state_machine.check_transition(job, 'cancel', principal)

    context = _job_context(job)
    with transaction.atomic():
        taskers = _pending_taskers(job)
        deleted, _ = Job.objects.filter(
            pk=job.pk, status=job.status, assigned_tasker__isnull=True
        ).delete()
        if not deleted:
            raise errors.StateConflictError('Job was changed by another request, please retry')

    for tasker in taskers:
        notify_on_commit(tasker, 'job_cancelled', context, related_user=principal)
    logger.info(f"Job {job_id} deleted by user {principal.pk}")
    return {'id': job_id, 'deleted': True}
