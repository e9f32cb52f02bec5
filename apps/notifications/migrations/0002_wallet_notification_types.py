from django.db import migrations, models


NOTIFICATION_TYPE_CHOICES = [
    ('job_created', 'Job Created'),
    ('job_approved', 'Job Approved'),
    ('job_assigned', 'Job Assigned'),
    ('job_started', 'Job Started'),
    ('job_completed', 'Job Completed'),
    ('job_confirmed', 'Job Confirmed'),
    ('job_cancelled', 'Job Cancelled'),
    ('application_received', 'Application Received'),
    ('application_withdrawn', 'Application Withdrawn'),
    ('application_accepted', 'Application Accepted'),
    ('application_rejected', 'Application Rejected'),
    ('payment_recorded', 'Payment Recorded'),
    ('wallet_topped_up', 'Wallet Topped Up'),
    ('wallet_refund_requested', 'Wallet Refund Requested'),
    ('wallet_refund_confirmed', 'Wallet Refund Payment Confirmed'),
    ('wallet_refund_approved', 'Wallet Refund Approved'),
    ('wallet_refund_rejected', 'Wallet Refund Rejected'),
]


class Migration(migrations.Migration):

    dependencies = [
        ('notifications', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='notification',
            name='notification_type',
            field=models.CharField(choices=NOTIFICATION_TYPE_CHOICES, max_length=30),
        ),
        migrations.AlterField(
            model_name='notificationtemplate',
            name='notification_type',
            field=models.CharField(choices=NOTIFICATION_TYPE_CHOICES, max_length=30),
        ),
    ]
