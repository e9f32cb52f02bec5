import django.db.models.deletion
from django.conf import settings
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
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('jobs', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='NotificationTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('notification_type', models.CharField(choices=NOTIFICATION_TYPE_CHOICES, max_length=30)),
                ('language', models.CharField(default='fr', max_length=5)),
                ('title', models.CharField(max_length=200)),
                ('body', models.TextField()),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['notification_type', 'language'],
                'unique_together': {('notification_type', 'language')},
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('notification_type', models.CharField(choices=NOTIFICATION_TYPE_CHOICES, max_length=30)),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('related_job', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='notifications', to='jobs.job')),
                ('related_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
