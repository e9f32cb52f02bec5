from django.db import models
from django.conf import settings

from core.constants import NOTIFICATION_TYPE_CHOICES


class Notification(models.Model):
    """In-app notification addressed to a single user."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    notification_type = models.CharField(max_length=30, choices=NOTIFICATION_TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    related_job = models.ForeignKey(
        'jobs.Job', on_delete=models.SET_NULL, null=True, blank=True, related_name='notifications'
    )
    related_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Notification to {self.user.username} - {self.notification_type}"

    def mark_as_read(self):
        self.is_read = True
        self.save(update_fields=['is_read'])


class NotificationTemplate(models.Model):
    """Store notification templates for different types of notifications."""
    notification_type = models.CharField(max_length=30, choices=NOTIFICATION_TYPE_CHOICES)
    language = models.CharField(max_length=5, default='fr')
    title = models.CharField(max_length=200)
    body = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('notification_type', 'language')
        ordering = ['notification_type', 'language']

    def __str__(self):
        return f"{self.notification_type} ({self.language})"

    def render(self, context):
        """Render the template with the given context variables."""
        try:
            title = self.title.format(**context)
            body = self.body.format(**context)
            return title, body
        except KeyError as e:
            raise ValueError(f"Missing required variable: {e}")
