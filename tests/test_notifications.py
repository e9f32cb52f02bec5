"""Tests for notification rendering, storage and delivery."""
import pytest
from twilio.base.exceptions import TwilioException, TwilioRestException

from apps.jobs import services
from apps.jobs.models import Job
from apps.notifications import dispatcher
from apps.notifications.models import Notification, NotificationTemplate
from core.constants import JobStatus

pytestmark = pytest.mark.django_db


class BrokenRenderer:
    def render(self, user, event_type, context):
        raise RuntimeError('renderer offline')


class FakeMessages:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def create(self, **kwargs):
        if self.error:
            raise self.error
        self.sent.append(kwargs)


@pytest.fixture
def fake_twilio(monkeypatch):
    messages = FakeMessages()

    class FakeClient:
        def __init__(self, account_sid, auth_token):
            self.messages = messages

    monkeypatch.setattr(dispatcher, 'TwilioClient', FakeClient)
    return messages


class TestRenderer:

    def test_default_message(self, customer):
        rendered = dispatcher.TemplateRenderer().render(customer, 'job_approved', {'job_title': 'Fix the sink'})
        assert rendered['title'] == 'Job approved'
        assert 'Fix the sink' in rendered['message']

    def test_missing_context_renders_blank(self, customer):
        rendered = dispatcher.TemplateRenderer().render(customer, 'job_approved', {})
        assert rendered['message'] == 'Your job "" is now open for applications.'

    def test_stored_template_in_user_language(self, customer):
        NotificationTemplate.objects.create(
            notification_type='job_approved',
            language='fr',
            title='Mission approuvée',
            body='Votre mission "{job_title}" est publiée.',
        )
        rendered = dispatcher.TemplateRenderer().render(customer, 'job_approved', {'job_title': 'Peinture'})
        assert rendered == {'title': 'Mission approuvée', 'message': 'Votre mission "Peinture" est publiée.'}

    def test_template_with_unknown_variable_falls_back(self, customer):
        NotificationTemplate.objects.create(
            notification_type='job_approved', language='fr', title='{missing}', body='{missing}'
        )
        rendered = dispatcher.TemplateRenderer().render(customer, 'job_approved', {'job_title': 'Peinture'})
        assert rendered['title'] == 'Job approved'


class TestNotifyUser:

    def test_stores_notification(self, customer, tasker):
        notification = dispatcher.notify_user(
            customer, 'application_received', {'job_title': 'Sink', 'tasker_name': 'tasker', 'proposed_price': '90'},
            related_user=tasker,
        )
        assert notification.pk is not None
        assert notification.user == customer
        assert notification.related_user == tasker
        assert not notification.is_read
        assert 'tasker applied to "Sink" for 90' in notification.message

    def test_renderer_failure_is_swallowed(self, customer, settings, caplog):
        settings.NOTIFICATION_RENDERER = 'tests.test_notifications.BrokenRenderer'

        assert dispatcher.notify_user(customer, 'job_approved', {}) is None
        assert not Notification.objects.exists()
        assert 'renderer offline' in caplog.text

    def test_notify_admins(self, admin_user, make_user):
        superuser = make_user('root', role='customer', is_superuser=True)
        make_user('plain', role='customer')

        dispatcher.notify_admins('job_created', {'job_title': 'Sink'})

        assert set(Notification.objects.values_list('user__username', flat=True)) == {
            admin_user.username, superuser.username
        }

    def test_on_commit_only(self, customer, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            dispatcher.notify_on_commit(customer, 'job_approved', {'job_title': 'Sink'})
            assert not Notification.objects.exists()

        assert len(callbacks) == 1
        callbacks[0]()
        assert Notification.objects.filter(user=customer).count() == 1


class TestDelivery:

    def test_delivery_disabled_by_default(self, customer, mailoutbox, settings):
        settings.NOTIFICATION_DELIVERY_ENABLED = False
        dispatcher.notify_user(customer, 'job_approved', {'job_title': 'Sink'})
        assert mailoutbox == []

    def test_email_when_no_phone(self, customer, mailoutbox, settings):
        settings.NOTIFICATION_DELIVERY_ENABLED = True
        dispatcher.notify_user(customer, 'job_approved', {'job_title': 'Sink'})

        assert len(mailoutbox) == 1
        assert mailoutbox[0].subject == 'Job approved'
        assert mailoutbox[0].to == [customer.email]

    def test_sms_when_phone_is_valid(self, make_user, mailoutbox, settings, fake_twilio):
        settings.NOTIFICATION_DELIVERY_ENABLED = True
        user = make_user('with_phone', phone_number='+212600000000')

        dispatcher.notify_user(user, 'job_approved', {'job_title': 'Sink'})

        assert len(fake_twilio.sent) == 1
        assert fake_twilio.sent[0]['to'] == '+212600000000'
        assert mailoutbox == []

    def test_sms_failure_falls_back_to_email(self, make_user, mailoutbox, settings, fake_twilio):
        settings.NOTIFICATION_DELIVERY_ENABLED = True
        fake_twilio.error = TwilioRestException(500, 'https://api.twilio.com/Messages', msg='unavailable')
        user = make_user('sms_down', phone_number='+212600000001')

        notification = dispatcher.notify_user(user, 'job_approved', {'job_title': 'Sink'})

        assert notification is not None
        assert len(mailoutbox) == 1

    def test_invalid_phone_uses_email(self, make_user, mailoutbox, settings, fake_twilio):
        settings.NOTIFICATION_DELIVERY_ENABLED = True
        user = make_user('bad_phone', phone_number='0600')

        dispatcher.notify_user(user, 'job_approved', {'job_title': 'Sink'})

        assert fake_twilio.sent == []
        assert len(mailoutbox) == 1

    def test_twilio_client_error_falls_back_to_email(self, make_user, mailoutbox, settings, fake_twilio, caplog):
        settings.NOTIFICATION_DELIVERY_ENABLED = True
        fake_twilio.error = TwilioException('Credentials are required to create a TwilioClient')
        user = make_user('no_credentials', phone_number='+212600000002')

        notification = dispatcher.notify_user(user, 'job_approved', {'job_title': 'Sink'})

        assert notification is not None
        assert len(mailoutbox) == 1
        assert 'Credentials are required' in caplog.text

    def test_network_error_falls_back_to_email(self, make_user, mailoutbox, settings, fake_twilio):
        settings.NOTIFICATION_DELIVERY_ENABLED = True
        fake_twilio.error = ConnectionError('Connection refused')
        user = make_user('offline', phone_number='+212600000003')

        assert dispatcher.notify_user(user, 'job_approved', {'job_title': 'Sink'}) is not None
        assert len(mailoutbox) == 1

    def test_delivery_crash_keeps_notification(self, customer, settings, monkeypatch, caplog):
        settings.NOTIFICATION_DELIVERY_ENABLED = True

        def explode(user, subject, message):
            raise RuntimeError('mail backend misconfigured')

        monkeypatch.setattr(dispatcher, 'deliver', explode)

        notification = dispatcher.notify_user(customer, 'job_approved', {'job_title': 'Sink'})

        assert notification is not None
        assert Notification.objects.filter(user=customer).count() == 1
        assert 'mail backend misconfigured' in caplog.text

    def test_sms_outage_does_not_fail_committed_operation(self, make_user, make_job, admin_user, settings,
                                                          fake_twilio, mailoutbox,
                                                          django_capture_on_commit_callbacks):
        settings.NOTIFICATION_DELIVERY_ENABLED = True
        fake_twilio.error = ConnectionError('Connection reset by peer')
        owner = make_user('phone_owner', phone_number='+212600000001')
        job = make_job(status=JobStatus.UNDER_REVIEW, owner=owner)

        with django_capture_on_commit_callbacks(execute=True):
            approved = services.approve_job(admin_user, job.pk)

        assert approved.status == JobStatus.ACTIVE
        assert Job.objects.get(pk=job.pk).status == JobStatus.ACTIVE
        assert Notification.objects.filter(user=owner, notification_type='job_approved').exists()
        assert len(mailoutbox) == 1
