"""Tests for applying to jobs and choosing between applications."""
from decimal import Decimal

import pytest

from apps.jobs import applications
from apps.jobs.models import Job, JobApplication
from apps.notifications.models import Notification
from core import exceptions as errors
from core.constants import ApplicationStatus, JobStatus

pytestmark = pytest.mark.django_db


class TestApply:

    def test_apply_success(self, customer, tasker, make_job, django_capture_on_commit_callbacks):
        job = make_job()
        with django_capture_on_commit_callbacks(execute=True):
            application = applications.apply_to_job(
                tasker, job.pk, '480.00', message='I can come tomorrow', estimated_duration=3
            )

        assert application.status == ApplicationStatus.PENDING
        assert application.proposed_price == Decimal('480.00')
        assert application.estimated_duration == 3
        job.refresh_from_db()
        assert job.current_applications == 1

        notification = Notification.objects.get(user=customer)
        assert notification.notification_type == 'application_received'
        assert notification.related_user == tasker

    def test_apply_while_under_review(self, tasker, make_job):
        job = make_job(status=JobStatus.UNDER_REVIEW)
        assert applications.apply_to_job(tasker, job.pk, 100).status == ApplicationStatus.PENDING

    def test_apply_missing_job(self, tasker):
        with pytest.raises(errors.NotFoundError):
            applications.apply_to_job(tasker, 9999, 100)

    @pytest.mark.parametrize('status', [JobStatus.ASSIGNED, JobStatus.COMPLETED, JobStatus.CANCELLED])
    def test_apply_to_closed_job(self, tasker, other_tasker, make_job, status):
        assigned = other_tasker if status != JobStatus.CANCELLED else None
        job = make_job(status=status, tasker=assigned)
        with pytest.raises(errors.StateConflictError, match='no longer accepting'):
            applications.apply_to_job(tasker, job.pk, 100)

    def test_apply_to_own_job(self, customer, make_job):
        job = make_job()
        with pytest.raises(errors.ValidationError, match='own job'):
            applications.apply_to_job(customer, job.pk, 100)

    def test_tasker_and_customer_cannot_apply_to_own_job(self, make_user, make_job):
        owner = make_user('both_roles', role='both')
        job = make_job(owner=owner)
        with pytest.raises(errors.ValidationError, match='own job'):
            applications.apply_to_job(owner, job.pk, 100)

    def test_customer_role_cannot_apply(self, make_user, make_job):
        job = make_job()
        other_customer = make_user('other_customer', role='customer')
        with pytest.raises(errors.AuthorizationError, match='Only taskers'):
            applications.apply_to_job(other_customer, job.pk, 100)

    @pytest.mark.parametrize('price', [0, '-5', 'abc'])
    def test_apply_with_invalid_price(self, tasker, make_job, price):
        job = make_job()
        with pytest.raises(errors.ValidationError, match='proposed_price'):
            applications.apply_to_job(tasker, job.pk, price)
        assert not JobApplication.objects.exists()

    def test_apply_twice(self, tasker, make_job):
        job = make_job()
        applications.apply_to_job(tasker, job.pk, 100)
        with pytest.raises(errors.StateConflictError, match='already applied'):
            applications.apply_to_job(tasker, job.pk, 90)

        job.refresh_from_db()
        assert job.current_applications == 1

    def test_capacity_reached(self, tasker, other_tasker, make_job):
        job = make_job(max_applications=1)
        applications.apply_to_job(tasker, job.pk, 100)

        with pytest.raises(errors.CapacityError):
            applications.apply_to_job(other_tasker, job.pk, 100)

        job.refresh_from_db()
        assert job.current_applications == 1
        assert job.applications.count() == 1

    @pytest.mark.parametrize('status, assigned, message', [
        (JobStatus.ASSIGNED, True, 'already been assigned'),
        (JobStatus.CANCELLED, False, 'no longer accepting applications'),
    ])
    def test_job_closed_between_checks_and_slot(self, tasker, other_tasker, make_job, monkeypatch,
                                                status, assigned, message):
        job = make_job(max_applications=3)

        def closed_meanwhile(checked_job, applicant):
            # Another request accepts or cancels right after the job was read
            Job.objects.filter(pk=checked_job.pk).update(
                status=status, assigned_tasker=other_tasker if assigned else None
            )
            return False

        monkeypatch.setattr(applications, '_has_applied', closed_meanwhile)

        with pytest.raises(errors.StateConflictError, match=message):
            applications.apply_to_job(tasker, job.pk, 100)

        job.refresh_from_db()
        assert job.current_applications == 0
        assert not job.applications.exists()

    def test_no_limit_when_max_applications_unset(self, make_user, make_job):
        job = make_job(max_applications=None)
        for i in range(5):
            applications.apply_to_job(make_user(f"tasker_{i}", role='tasker'), job.pk, 100 + i)

        job.refresh_from_db()
        assert job.current_applications == 5


class TestWithdraw:

    def test_withdraw_frees_a_slot(self, customer, tasker, other_tasker, make_job,
                                   django_capture_on_commit_callbacks):
        job = make_job(max_applications=1)
        applications.apply_to_job(tasker, job.pk, 100)

        with django_capture_on_commit_callbacks(execute=True):
            result = applications.withdraw_application(tasker, job.pk)

        assert result == {'job_id': job.pk, 'withdrawn': True}
        job.refresh_from_db()
        assert job.current_applications == 0
        assert Notification.objects.filter(user=customer, notification_type='application_withdrawn').exists()

        applications.apply_to_job(other_tasker, job.pk, 100)
        job.refresh_from_db()
        assert job.current_applications == 1

    def test_withdraw_without_application(self, tasker, make_job):
        job = make_job()
        with pytest.raises(errors.NotFoundError):
            applications.withdraw_application(tasker, job.pk)

    def test_cannot_withdraw_accepted_application(self, tasker, make_job, make_application):
        job = make_job()
        make_application(job, tasker, status=ApplicationStatus.ACCEPTED)
        with pytest.raises(errors.NotFoundError, match='pending'):
            applications.withdraw_application(tasker, job.pk)


class TestAccept:

    def test_accept_picks_one_winner(self, customer, make_user, make_job, django_capture_on_commit_callbacks):
        job = make_job()
        taskers = [make_user(f"bidder_{i}", role='tasker') for i in range(3)]
        apps = [applications.apply_to_job(t, job.pk, price) for t, price in zip(taskers, ['400', '450', '480'])]

        with django_capture_on_commit_callbacks(execute=True):
            accepted = applications.accept_application(customer, apps[1].pk)

        assert accepted.status == ApplicationStatus.ACCEPTED
        statuses = dict(JobApplication.objects.values_list('pk', 'status'))
        assert statuses == {
            apps[0].pk: ApplicationStatus.REJECTED,
            apps[1].pk: ApplicationStatus.ACCEPTED,
            apps[2].pk: ApplicationStatus.REJECTED,
        }

        job.refresh_from_db()
        assert job.status == JobStatus.ASSIGNED
        assert job.assigned_tasker == taskers[1]
        assert job.final_price == Decimal('450.00')
        assert JobApplication.objects.filter(job=job, status=ApplicationStatus.ACCEPTED).count() == 1

        assert Notification.objects.get(user=taskers[1]).notification_type == 'application_accepted'
        for loser in (taskers[0], taskers[2]):
            assert Notification.objects.get(user=loser).notification_type == 'application_rejected'

    def test_accept_by_non_owner(self, tasker, other_tasker, make_job, make_application):
        application = make_application(make_job(), tasker)
        with pytest.raises(errors.AuthorizationError):
            applications.accept_application(other_tasker, application.pk)

    def test_accept_missing_application(self, customer):
        with pytest.raises(errors.NotFoundError):
            applications.accept_application(customer, 9999)

    def test_accept_rejected_application(self, customer, tasker, make_job, make_application):
        application = make_application(make_job(), tasker, status=ApplicationStatus.REJECTED)
        with pytest.raises(errors.StateConflictError, match='already rejected'):
            applications.accept_application(customer, application.pk)

    def test_accept_when_job_already_assigned(self, customer, tasker, other_tasker, make_job, make_application):
        job = make_job(status=JobStatus.ASSIGNED, tasker=other_tasker)
        application = make_application(job, tasker)

        with pytest.raises(errors.StateConflictError, match='already assigned'):
            applications.accept_application(customer, application.pk)

        application.refresh_from_db()
        assert application.status == ApplicationStatus.PENDING
        assert Job.objects.get(pk=job.pk).assigned_tasker == other_tasker

    def test_accept_on_cancelled_job(self, customer, tasker, make_job, make_application):
        job = make_job(status=JobStatus.CANCELLED)
        application = make_application(job, tasker)
        with pytest.raises(errors.StateConflictError):
            applications.accept_application(customer, application.pk)


class TestReject:

    def test_reject_leaves_job_untouched(self, customer, tasker, make_job, make_application,
                                         django_capture_on_commit_callbacks):
        job = make_job()
        application = make_application(job, tasker)

        with django_capture_on_commit_callbacks(execute=True):
            rejected = applications.reject_application(customer, application.pk)

        assert rejected.status == ApplicationStatus.REJECTED
        job.refresh_from_db()
        assert job.status == JobStatus.ACTIVE
        assert job.assigned_tasker is None
        assert Notification.objects.get(user=tasker).notification_type == 'application_rejected'

    def test_reject_twice(self, customer, tasker, make_job, make_application):
        application = make_application(make_job(), tasker)
        applications.reject_application(customer, application.pk)
        with pytest.raises(errors.StateConflictError):
            applications.reject_application(customer, application.pk)

    def test_reject_by_non_owner(self, tasker, make_job, make_application):
        application = make_application(make_job(), tasker)
        with pytest.raises(errors.AuthorizationError):
            applications.reject_application(tasker, application.pk)


class TestListApplications:

    def test_newest_first(self, customer, tasker, other_tasker, make_job):
        job = make_job()
        first = applications.apply_to_job(tasker, job.pk, 100)
        second = applications.apply_to_job(other_tasker, job.pk, 120)
        JobApplication.objects.filter(pk=first.pk).update(created_at=second.created_at.replace(year=2020))

        listed = list(applications.get_job_applications(customer, job.pk))
        assert [a.pk for a in listed] == [second.pk, first.pk]

    def test_only_owner_lists(self, tasker, make_job):
        job = make_job()
        with pytest.raises(errors.AuthorizationError):
            applications.get_job_applications(tasker, job.pk)

    def test_missing_job(self, customer):
        with pytest.raises(errors.NotFoundError):
            applications.get_job_applications(customer, 9999)
