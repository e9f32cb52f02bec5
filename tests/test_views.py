"""API tests: response envelopes, status codes and the full job flow over HTTP."""
from decimal import Decimal

import pytest
from django.urls import reverse

from apps.jobs.models import Job
from apps.payments.models import Transaction
from core.constants import JobStatus

pytestmark = pytest.mark.django_db


class TestAuthentication:

    def test_requires_authentication(self, api_client, make_job):
        job = make_job()
        assert api_client.get(reverse('job_detail', args=[job.pk])).status_code == 401
        assert api_client.post(reverse('job_create'), {}, format='json').status_code == 401
        assert api_client.get(reverse('earnings_summary')).status_code == 401


class TestEnvelope:

    def test_create_returns_envelope(self, customer, client_for):
        response = client_for(customer).post(reverse('job_create'), {
            'title': 'Paint the fence',
            'description': 'Two coats, white.',
            'customer_budget': '300.00',
        }, format='json')

        assert response.status_code == 201
        assert response.data['success'] is True
        assert response.data['data']['status'] == JobStatus.UNDER_REVIEW
        assert response.data['data']['customer']['username'] == customer.username

    def test_invalid_input(self, customer, client_for):
        response = client_for(customer).post(reverse('job_create'), {
            'title': 'Paint the fence',
            'description': 'Two coats, white.',
            'customer_budget': '-1',
        }, format='json')

        assert response.status_code == 400
        assert response.data['success'] is False
        assert response.data['error']['code'] == 'validation_error'
        assert 'customer_budget' in response.data['error']['message']
        assert not Job.objects.exists()

    def test_apply_to_own_job(self, customer, client_for, make_job):
        job = make_job()
        response = client_for(customer).post(reverse('job_apply', args=[job.pk]), {'proposed_price': '100'},
                                             format='json')
        assert response.status_code == 400
        assert response.data['error']['code'] == 'validation_error'

    def test_capacity_reached(self, tasker, other_tasker, client_for, make_job, make_application):
        job = make_job(max_applications=1, current_applications=1)
        make_application(job, tasker)

        response = client_for(other_tasker).post(reverse('job_apply', args=[job.pk]), {'proposed_price': '100'},
                                                 format='json')
        assert response.status_code == 409
        assert response.data['error']['code'] == 'capacity_reached'

    def test_not_found(self, tasker, client_for):
        response = client_for(tasker).post(reverse('job_start', args=[9999]))
        assert response.status_code == 404
        assert response.data == {'success': False, 'error': {'code': 'not_found', 'message': 'Job not found'}}

    def test_wrong_actor(self, tasker, client_for, make_job):
        job = make_job(status=JobStatus.UNDER_REVIEW)
        response = client_for(tasker).post(reverse('job_approve', args=[job.pk]))
        assert response.status_code == 403
        assert response.data['error']['code'] == 'not_authorized'

    def test_detail_read_is_plain(self, tasker, client_for, make_job):
        job = make_job()
        response = client_for(tasker).get(reverse('job_detail', args=[job.pk]))
        assert response.status_code == 200
        assert response.data['id'] == job.pk


class TestFullFlow:

    def test_post_to_confirm(self, customer, tasker, admin_user, client_for, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            job_id = client_for(customer).post(reverse('job_create'), {
                'title': 'Move a sofa',
                'description': 'Third floor, no lift.',
                'customer_budget': '500.00',
            }, format='json').data['data']['id']

            client_for(admin_user).post(reverse('job_approve', args=[job_id]))

            applied = client_for(tasker).post(reverse('job_apply', args=[job_id]), {
                'proposed_price': '480.00', 'estimated_duration': 2,
            }, format='json')
            assert applied.status_code == 201

            listed = client_for(customer).get(reverse('job_applications', args=[job_id]))
            assert [a['tasker']['username'] for a in listed.data['data']] == [tasker.username]

            accepted = client_for(customer).post(reverse('application_accept', args=[applied.data['data']['id']]))
            assert accepted.data['data']['status'] == 'accepted'

            assert client_for(tasker).post(reverse('job_start', args=[job_id])).status_code == 200
            assert client_for(tasker).post(reverse('job_complete', args=[job_id])).status_code == 200

            confirmed = client_for(customer).post(reverse('job_confirm', args=[job_id]))

        assert confirmed.status_code == 200
        data = confirmed.data['data']
        assert data['already_settled'] is False
        assert data['total_amount'] == '480.00'
        assert data['platform_fee'] == '48.00'
        assert data['net_amount'] == '432.00'
        assert data['tasker_balance'] == '52.00'

        tasker.refresh_from_db()
        assert tasker.wallet_balance == Decimal('52.00')
        assert Transaction.objects.filter(job_id=job_id).count() == 1

        again = client_for(customer).post(reverse('job_confirm', args=[job_id]))
        assert again.status_code == 200
        assert again.data['data']['already_settled'] is True
        assert Transaction.objects.filter(job_id=job_id).count() == 1

        summary = client_for(tasker).get(reverse('earnings_summary'), {'period': 'all'})
        assert summary.json()['data']['current'] == '432.00'

        notifications = client_for(tasker).get(reverse('notification_list'), {'unread': 'true'})
        assert 'job_confirmed' in [n['notification_type'] for n in notifications.data]

    def test_insufficient_funds(self, customer, make_user, client_for, make_job):
        poor = make_user('poor_tasker', role='tasker', wallet_balance='10.00')
        job = make_job(status=JobStatus.COMPLETED, tasker=poor, final_price=Decimal('480.00'))

        response = client_for(customer).post(reverse('job_confirm', args=[job.pk]))

        assert response.status_code == 402
        assert response.data['error']['code'] == 'insufficient_funds'
        job.refresh_from_db()
        assert job.customer_confirmed_at is None
        assert not Transaction.objects.exists()


class TestApplicationsList:

    def test_owner_gets_envelope(self, customer, tasker, client_for, make_job, make_application):
        job = make_job()
        make_application(job, tasker)

        response = client_for(customer).get(reverse('job_applications', args=[job.pk]))

        assert response.status_code == 200
        assert response.data['success'] is True
        assert [a['tasker']['username'] for a in response.data['data']] == [tasker.username]

    def test_non_owner_forbidden(self, tasker, client_for, make_job):
        job = make_job()
        response = client_for(tasker).get(reverse('job_applications', args=[job.pk]))
        assert response.status_code == 403
        assert response.data['success'] is False
        assert response.data['error']['code'] == 'not_authorized'

    def test_missing_job(self, customer, client_for):
        response = client_for(customer).get(reverse('job_applications', args=[9999]))
        assert response.status_code == 404
        assert response.data['error']['code'] == 'not_found'


class TestEarningsEndpoints:

    def test_summary_defaults_to_month(self, tasker, client_for):
        response = client_for(tasker).get(reverse('earnings_summary'))
        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['data']['period'] == 'month'
        assert body['data']['current'] == '0.00'
        assert body['data']['windows']['all']['change'] == '0.00'

    def test_invalid_period(self, tasker, client_for):
        response = client_for(tasker).get(reverse('earnings_summary'), {'period': 'decade'})
        assert response.status_code == 400
        assert response.data['success'] is False
        assert response.data['error']['code'] == 'validation_error'
        assert 'period must be one of' in response.data['error']['message']

    def test_chart(self, tasker, client_for):
        response = client_for(tasker).get(reverse('earnings_chart'), {'period': 'week', 'limit': '5'})
        assert response.status_code == 200
        assert response.data == {'success': True, 'data': []}

    @pytest.mark.parametrize('limit', ['many', '0', '-3'])
    def test_chart_bad_limit(self, tasker, client_for, limit):
        response = client_for(tasker).get(reverse('earnings_chart'), {'limit': limit})
        assert response.status_code == 400
        assert response.data == {
            'success': False,
            'error': {'code': 'validation_error', 'message': 'limit must be a positive integer'},
        }

    def test_chart_bad_period(self, tasker, client_for):
        response = client_for(tasker).get(reverse('earnings_chart'), {'period': 'hour'})
        assert response.status_code == 400
        assert response.data['error']['code'] == 'validation_error'


class TestNotificationEndpoints:

    def test_mark_as_read(self, customer, tasker, client_for):
        from apps.notifications.dispatcher import notify_user
        notification = notify_user(customer, 'job_approved', {'job_title': 'Sink'})

        assert client_for(tasker).post(reverse('notification_read', args=[notification.pk])).status_code == 404

        response = client_for(customer).post(reverse('notification_read', args=[notification.pk]))
        assert response.status_code == 200
        assert response.data['data']['is_read'] is True
        assert client_for(customer).get(reverse('notification_list'), {'unread': '1'}).data == []
