from django.contrib.auth import get_user_model
from django.dispatch import receiver

from apps.jobs.models import Job
from apps.payments.signals import job_settled
from .dispatcher import notify_user

User = get_user_model()


@receiver(job_settled)
def notify_settlement(sender, event, **kwargs):
    """Tell the customer the payment was recorded and the tasker the job was confirmed."""
    payload = event.payload
    job = Job.objects.filter(pk=payload['job_id']).first()
    customer = User.objects.get(pk=payload['customer_id'])
    tasker = User.objects.get(pk=payload['tasker_id'])
    context = {
        'job_title': job.title if job else '',
        'amount': payload['total_amount'],
        'platform_fee': payload['platform_fee'],
        'net_amount': payload['net_amount'],
        'currency': payload['currency'],
    }
    notify_user(customer, 'payment_recorded', context, related_job=job, related_user=tasker)
    notify_user(tasker, 'job_confirmed', context, related_job=job, related_user=customer)
