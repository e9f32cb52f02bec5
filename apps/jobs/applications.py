"""
Applications (bids) from taskers against open jobs.

``current_applications`` only ever moves through conditional F() updates, so
the application limit holds under concurrent submissions. Accepting an
application claims the job with a conditional update as well: at most one
application per job can win.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.notifications.dispatcher import notify_on_commit
from core import exceptions as errors
from core.constants import ApplicationStatus, OPEN_STATUSES
from core.utils import require_principal
from . import state_machine
from .models import Job, JobApplication

logger = logging.getLogger(__name__)


def _tasker_name(user):
    return user.get_full_name() or user.username


def _get_open_job(job_id):
    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        raise errors.NotFoundError('Job not found')
    if job.status not in OPEN_STATUSES:
        raise errors.StateConflictError('This job is no longer accepting applications')
    if job.assigned_tasker_id is not None:
        raise errors.StateConflictError('This job has already been assigned')
    return job


def _has_applied(job, tasker):
    return JobApplication.objects.filter(job=job, tasker=tasker).exists()


def apply_to_job(principal, job_id, proposed_price, message=None, estimated_duration=None):
    principal = require_principal(principal)
    job = _get_open_job(job_id)
    if job.customer_id == principal.pk:
        raise errors.ValidationError('You cannot apply to your own job')
    if not principal.is_tasker:
        raise errors.AuthorizationError('Only taskers can apply to jobs')

    try:
        proposed_price = Decimal(str(proposed_price))
    except (InvalidOperation, ValueError):
        raise errors.ValidationError('proposed_price must be a number')
    if not proposed_price.is_finite() or proposed_price <= 0:
        raise errors.ValidationError('proposed_price must be greater than zero')

    if _has_applied(job, principal):
        raise errors.StateConflictError('You have already applied to this job')

    now = timezone.now()
    with transaction.atomic():
        # Take a slot first, the whole block rolls back if the insert fails
        slot_taken = Job.objects.filter(
            Q(max_applications__isnull=True) | Q(current_applications__lt=F('max_applications')),
            pk=job.pk,
            status__in=OPEN_STATUSES,
            assigned_tasker__isnull=True,
        ).update(current_applications=F('current_applications') + 1, updated_at=now)
        if not slot_taken:
            # Full, or the job left the open states after it was read
            _get_open_job(job.pk)
            raise errors.CapacityError('This job has reached its maximum number of applications')

        try:
            with transaction.atomic():
                application = JobApplication.objects.create(
                    job=job,
                    tasker=principal,
                    proposed_price=proposed_price,
                    message=message,
                    estimated_duration=estimated_duration,
                )
        except IntegrityError:
            raise errors.StateConflictError('You have already applied to this job')

    logger.info(f"User {principal.pk} applied to job {job.pk} for {proposed_price}")
    notify_on_commit(
        job.customer,
        'application_received',
        {
            'job_id': job.pk,
            'job_title': job.title,
            'tasker_name': _tasker_name(principal),
            'proposed_price': str(proposed_price),
        },
        related_job=job,
        related_user=principal,
    )
    return application


def withdraw_application(principal, job_id):
    principal = require_principal(principal)
    with transaction.atomic():
        application = (
            JobApplication.objects.select_for_update()
            .select_related('job')
            .filter(job_id=job_id, tasker=principal, status=ApplicationStatus.PENDING)
            .first()
        )
        if application is None:
            raise errors.NotFoundError('No pending application for this job')
        job = application.job
        application.delete()
        Job.objects.filter(pk=job.pk, current_applications__gt=0).update(
            current_applications=F('current_applications') - 1, updated_at=timezone.now()
        )

    logger.info(f"User {principal.pk} withdrew their application to job {job.pk}")
    notify_on_commit(
        job.customer,
        'application_withdrawn',
        {'job_id': job.pk, 'job_title': job.title, 'tasker_name': _tasker_name(principal)},
        related_job=job,
        related_user=principal,
    )
    return {'job_id': job.pk, 'withdrawn': True}


def _get_owned_application(principal, application_id):
    application = JobApplication.objects.select_related('job', 'tasker').filter(pk=application_id).first()
    if application is None:
        raise errors.NotFoundError('Application not found')
    if application.job.customer_id != principal.pk:
        raise errors.AuthorizationError('Only the job owner can respond to applications')
    return application


def accept_application(principal, application_id):
    principal = require_principal(principal)
    application = _get_owned_application(principal, application_id)
    if application.status != ApplicationStatus.PENDING:
        raise errors.StateConflictError(f"Application is already {application.status}")

    job = application.job
    state_machine.check_transition(job, 'assign', principal)

    now = timezone.now()
    with transaction.atomic():
        accepted = JobApplication.objects.filter(pk=application.pk, status=ApplicationStatus.PENDING).update(
            status=ApplicationStatus.ACCEPTED, updated_at=now
        )
        if not accepted:
            raise errors.StateConflictError('Application was changed by another request')

        job = state_machine.apply_transition(
            job,
            'assign',
            principal,
            filters={'assigned_tasker__isnull': True},
            assigned_tasker=application.tasker,
            final_price=application.proposed_price,
        )

        losers = job.applications.filter(status=ApplicationStatus.PENDING).exclude(pk=application.pk)
        rejected_taskers = [other.tasker for other in losers.select_related('tasker')]
        losers.update(status=ApplicationStatus.REJECTED, updated_at=now)

    application.refresh_from_db()
    logger.info(
        f"Application {application.pk} accepted for job {job.pk}, {len(rejected_taskers)} other(s) rejected"
    )
    context = {'job_id': job.pk, 'job_title': job.title}
    notify_on_commit(application.tasker, 'application_accepted', context, related_job=job, related_user=principal)
    for tasker in rejected_taskers:
        notify_on_commit(tasker, 'application_rejected', context, related_job=job, related_user=principal)
    return application


def reject_application(principal, application_id):
    principal = require_principal(principal)
    application = _get_owned_application(principal, application_id)

    rejected = JobApplication.objects.filter(pk=application.pk, status=ApplicationStatus.PENDING).update(
        status=ApplicationStatus.REJECTED, updated_at=timezone.now()
    )
    if not rejected:
        raise errors.StateConflictError(f"Application is already {application.status}")

    application.refresh_from_db()
    job = application.job
    logger.info(f"Application {application.pk} rejected for job {job.pk}")
    notify_on_commit(
        application.tasker,
        'application_rejected',
        {'job_id': job.pk, 'job_title': job.title},
        related_job=job,
        related_user=principal,
    )
    return application


def get_job_applications(principal, job_id):
    principal = require_principal(principal)
    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        raise errors.NotFoundError('Job not found')
    if job.customer_id != principal.pk and not principal.is_admin:
        raise errors.AuthorizationError('Only the job owner can view its applications')
    return job.applications.select_related('tasker').order_by('-created_at')
