from decimal import Decimal

from django.db import models
from django.contrib.auth.models import AbstractUser

from core.constants import USER_ROLE_CHOICES


class User(AbstractUser):
    email = models.EmailField(blank=True, null=True, unique=True)
    phone_number = models.CharField(max_length=15, blank=True, null=True, unique=True)
    is_verified = models.BooleanField(default=False)
    role = models.CharField(max_length=10, choices=USER_ROLE_CHOICES, default='customer')
    preferred_language = models.CharField(max_length=5, default='fr')
    # Platform fees are deducted from this balance when a customer confirms a job
    wallet_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    @property
    def is_customer(self):
        return self.role in ('customer', 'both')

    @property
    def is_tasker(self):
        return self.role in ('tasker', 'both')

    @property
    def is_admin(self):
        return self.role == 'admin' or self.is_superuser

    def __str__(self):
        return self.username


class UserStats(models.Model):
    """Per-user rollups. Updated after settlement, the ledger stays authoritative."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name='stats')
    completed_jobs = models.PositiveIntegerField(default=0)
    total_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    jobs_posted = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'User Stats'

    def __str__(self):
        return f"Stats for {self.user.username}"
