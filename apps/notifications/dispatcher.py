"""
Notification dispatcher.

A renderer turns an event into ``{"title", "message"}``, the dispatcher stores
the resulting ``Notification`` and, when delivery is enabled, forwards it by
email and SMS. Notifications are a side channel: every failure here is logged
and swallowed so the operation that triggered it keeps its result.
"""
import logging
import re

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Q
from django.utils.module_loading import import_string
from twilio.rest import Client as TwilioClient

from .models import Notification, NotificationTemplate

User = get_user_model()

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES = {
    'job_created': ('New job awaiting review', 'The job "{job_title}" was posted and is waiting for approval.'),
    'job_approved': ('Job approved', 'Your job "{job_title}" is now open for applications.'),
    'job_assigned': ('New job assigned', 'You have been assigned to "{job_title}".'),
    'job_started': ('Job started', 'Work on "{job_title}" has started.'),
    'job_completed': ('Job completed', '"{job_title}" was marked as completed. Please confirm it.'),
    'job_confirmed': (
        'Job confirmed',
        'The customer confirmed "{job_title}". You earned {net_amount} {currency} '
        '(platform fee {platform_fee} {currency}).',
    ),
    'job_cancelled': ('Job cancelled', 'The job "{job_title}" was cancelled by its owner.'),
    'application_received': ('New application', '{tasker_name} applied to "{job_title}" for {proposed_price}.'),
    'application_withdrawn': ('Application withdrawn', '{tasker_name} withdrew their application to "{job_title}".'),
    'application_accepted': ('Application accepted', 'Your application to "{job_title}" was accepted.'),
    'application_rejected': ('Application rejected', 'Your application to "{job_title}" was not selected.'),
    'payment_recorded': ('Payment recorded', 'A payment of {amount} {currency} for "{job_title}" was recorded.'),
    'wallet_topped_up': (
        'Wallet topped up',
        'Your wallet was credited with {amount} {currency}. New balance: {balance} {currency}.',
    ),
    'wallet_refund_requested': (
        'New wallet refund request',
        '{tasker_name} asked for a refund of {amount} {currency} (reference {reference_code}).',
    ),
    'wallet_refund_confirmed': (
        'Refund payment confirmed',
        '{tasker_name} attached the receipt for refund {reference_code} ({amount} {currency}).',
    ),
    'wallet_refund_approved': (
        'Wallet refund approved',
        'Your refund {reference_code} of {amount} {currency} was approved. New balance: {balance} {currency}.',
    ),
    'wallet_refund_rejected': ('Wallet refund rejected', 'Your refund {reference_code} was rejected: {admin_notes}'),
}


class _Context(dict):
    def __missing__(self, key):
        return ''


class TemplateRenderer:
    """
    Render from a stored NotificationTemplate in the user's language, falling
    back to the built-in messages when none matches.
    """

    def render(self, user, event_type, context):
        language = getattr(user, 'preferred_language', None) or 'fr'
        template = NotificationTemplate.objects.filter(notification_type=event_type, language=language).first()
        if template is not None:
            try:
                title, message = template.render(context)
                return {'title': title, 'message': message}
            except ValueError as e:
                logger.warning(f"Template {template} could not be rendered, using default: {e}")

        title, message = DEFAULT_MESSAGES.get(event_type, (event_type.replace('_', ' ').capitalize(), ''))
        values = _Context(context)
        return {'title': title.format_map(values), 'message': message.format_map(values)}


def get_renderer():
    return import_string(settings.NOTIFICATION_RENDERER)()


def deliver(user, subject, message):
    """Send by SMS when the user has a valid number, by email otherwise or when SMS fails."""
    if user.phone_number and re.match(r'^\+\d{9,15}$', user.phone_number):
        try:
            twilio_client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
            twilio_client.messages.create(
                body=message,
                from_=settings.TWILIO_PHONE_NUMBER,
                to=user.phone_number
            )
            return
        except Exception as e:
            logger.error(f"Failed to send SMS to {user.phone_number}: {str(e)}")
    elif user.phone_number:
        logger.warning(f"Invalid phone number format for user {user.id}: {user.phone_number}")

    if not user.email:
        return
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send email to {user.email}: {str(e)}")


def notify_user(user, notification_type, context=None, related_job=None, related_user=None):
    """Store a notification for ``user``. Returns it, or None when anything failed."""
    try:
        with transaction.atomic():
            rendered = get_renderer().render(user, notification_type, context or {})
            notification = Notification.objects.create(
                user=user,
                notification_type=notification_type,
                title=rendered['title'],
                message=rendered['message'],
                related_job=related_job,
                related_user=related_user,
            )
    except Exception as e:
        logger.error(f"Failed to create {notification_type} notification for user {user.pk}: {str(e)}")
        return None

    if settings.NOTIFICATION_DELIVERY_ENABLED:
        try:
            deliver(user, notification.title, notification.message)
        except Exception as e:
            logger.error(f"Failed to deliver notification {notification.pk} to user {user.pk}: {str(e)}")
    return notification


def notify_on_commit(user, notification_type, context=None, related_job=None, related_user=None):
    """Notify once the surrounding transaction commits, never for rolled back work."""
    transaction.on_commit(
        lambda: notify_user(user, notification_type, context, related_job=related_job, related_user=related_user)
    )


def notify_admins(notification_type, context=None, related_job=None, related_user=None):
    admins = User.objects.filter(Q(role='admin') | Q(is_superuser=True), is_active=True)
    for admin in admins:
        notify_user(admin, notification_type, context, related_job=related_job, related_user=related_user)
