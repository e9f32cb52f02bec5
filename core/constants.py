# core/constants.py
from django.db import models


class JobStatus(models.TextChoices):
    UNDER_REVIEW = 'under_review', 'Under Review'  # Posted, waiting for admin approval
    ACTIVE = 'active', 'Active'                    # Approved, open for applications
    ASSIGNED = 'assigned', 'Assigned'              # A tasker has been selected
    IN_PROGRESS = 'in_progress', 'In Progress'     # Tasker started the work
    COMPLETED = 'completed', 'Completed'           # Tasker finished, awaiting customer confirmation
    CANCELLED = 'cancelled', 'Cancelled'           # Withdrawn by the customer before assignment


class ApplicationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'      # Tasker applied, awaiting customer response
    ACCEPTED = 'accepted', 'Accepted'   # Customer picked this application
    REJECTED = 'rejected', 'Rejected'   # Customer declined, or another application won


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PAID = 'paid', 'Paid'
    FAILED = 'failed', 'Failed'
    REFUNDED = 'refunded', 'Refunded'


class WalletRefundStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'                               # Tasker asked to withdraw
    PAYMENT_CONFIRMED = 'payment_confirmed', 'Payment Confirmed'  # Tasker attached the receipt
    ADMIN_VERIFYING = 'admin_verifying', 'Admin Verifying'
    APPROVED = 'approved', 'Approved'                            # Wallet debited
    REJECTED = 'rejected', 'Rejected'


# Statuses in which a job carries an assigned tasker
ASSIGNED_STATUSES = (JobStatus.ASSIGNED, JobStatus.IN_PROGRESS, JobStatus.COMPLETED)

# Statuses in which a job still takes applications
OPEN_STATUSES = (JobStatus.UNDER_REVIEW, JobStatus.ACTIVE)

# Refund requests still waiting for a decision, at most one per tasker
OPEN_REFUND_STATUSES = (
    WalletRefundStatus.PENDING, WalletRefundStatus.PAYMENT_CONFIRMED, WalletRefundStatus.ADMIN_VERIFYING
)

USER_ROLE_CHOICES = (
    ('customer', 'Customer'),
    ('tasker', 'Tasker'),
    ('both', 'Customer & Tasker'),
    ('admin', 'Admin'),
)

TRANSACTION_TYPE_CHOICES = (
    ('job_payment', 'Job Payment'),
    ('refund', 'Refund'),
)

WALLET_TRANSACTION_TYPE_CHOICES = (
    ('fee_deduction', 'Platform Fee Deduction'),
    ('top_up', 'Top Up'),
    ('withdrawal', 'Withdrawal'),
)

PAYMENT_METHOD_CHOICES = (
    ('cash', 'Cash'),
    ('wallet', 'Wallet'),
    ('online', 'Online'),
)

NOTIFICATION_TYPE_CHOICES = (
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
)
