from django.db import models
from django.conf import settings

from core.constants import JobStatus, ApplicationStatus


class Job(models.Model):
    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='posted_jobs')
    assigned_tasker = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, null=True, blank=True, related_name='assigned_jobs'
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    requirements = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=JobStatus.choices, default=JobStatus.UNDER_REVIEW)
    customer_budget = models.DecimalField(max_digits=10, decimal_places=2)
    final_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default='MAD')
    max_applications = models.PositiveIntegerField(null=True, blank=True, default=3)
    current_applications = models.PositiveIntegerField(default=0)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    customer_confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} - {self.customer.username}"

    @property
    def settlement_amount(self):
        """Agreed price, or the customer's budget when no price was agreed."""
        return self.final_price if self.final_price is not None else self.customer_budget

    @property
    def is_settled(self):
        return self.customer_confirmed_at is not None


class JobApplication(models.Model):
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='applications')
    tasker = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='job_applications')
    proposed_price = models.DecimalField(max_digits=10, decimal_places=2)
    estimated_duration = models.PositiveIntegerField(null=True, blank=True)  # hours
    message = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=ApplicationStatus.choices, default=ApplicationStatus.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('job', 'tasker')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.tasker.username} applied to {self.job.title}"


class JobStateTransition(models.Model):
    """Audit trail of every accepted status change."""
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='transitions')
    action = models.CharField(max_length=20)
    from_status = models.CharField(max_length=20, choices=JobStatus.choices)
    to_status = models.CharField(max_length=20, choices=JobStatus.choices)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"Job {self.job_id}: {self.from_status} -> {self.to_status} ({self.action})"
