"""
Shared fixtures for the marketplace tests.
"""
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.jobs.models import Job, JobApplication
from apps.users.models import User
from core.constants import JobStatus


@pytest.fixture
def make_user(db):
    """Factory creating users with a role and a wallet balance."""
    def _make(username, role='customer', wallet_balance='0.00', **extra):
        return User.objects.create_user(
            username=username,
            password='secret-pass-123',
            email=f"{username}@example.com",
            role=role,
            wallet_balance=Decimal(wallet_balance),
            **extra,
        )
    return _make


@pytest.fixture
def customer(make_user):
    return make_user('customer', role='customer')


@pytest.fixture
def tasker(make_user):
    return make_user('tasker', role='tasker', wallet_balance='100.00')


@pytest.fixture
def other_tasker(make_user):
    return make_user('other_tasker', role='tasker', wallet_balance='100.00')


@pytest.fixture
def admin_user(make_user):
    return make_user('admin', role='admin')


@pytest.fixture
def make_job(customer):
    """Create a job directly in a given status, with the timestamps that status implies."""
    def _make(status=JobStatus.ACTIVE, tasker=None, owner=None, **fields):
        now = timezone.now()
        values = {
            'title': 'Fix the kitchen sink',
            'description': 'The sink has been leaking since Monday.',
            'customer_budget': Decimal('500.00'),
        }
        if status in (JobStatus.IN_PROGRESS, JobStatus.COMPLETED):
            values['started_at'] = now
        if status == JobStatus.COMPLETED:
            values['completed_at'] = now
        values.update(fields)
        return Job.objects.create(customer=owner or customer, assigned_tasker=tasker, status=status, **values)
    return _make


@pytest.fixture
def make_application():
    def _make(job, tasker, price='450.00', **fields):
        return JobApplication.objects.create(job=job, tasker=tasker, proposed_price=Decimal(price), **fields)
    return _make


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    """Authenticated API client for the given user."""
    def _client(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _client
