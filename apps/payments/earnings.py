"""
Earnings reports for taskers.

Earnings are the net amounts (amount minus platform fee) of paid ledger
transactions the user received, dated by ``processed_at`` or ``created_at``
when a transaction was never processed. Windows follow the server's local
time: weeks start on Sunday, months are calendar months.
"""
from collections import OrderedDict
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db.models import DateTimeField, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.users.stats import get_stats
from core import exceptions as errors
from core.constants import PaymentStatus
from .models import Transaction

ZERO = Decimal('0.00')
CENT = Decimal('0.01')

SUMMARY_PERIODS = ('today', 'week', 'month', 'all')
CHART_PERIODS = ('day', 'week', 'month')


def percentage_change(current, previous):
    if previous == 0:
        return Decimal('100.00') if current > 0 else ZERO
    return ((current - previous) / previous * 100).quantize(CENT)


def _start_of(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def window_boundaries(now=None):
    today = timezone.localdate(now)
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    month_start = today.replace(day=1)
    last_month_start = (month_start - timedelta(days=1)).replace(day=1)
    return {
        'today': _start_of(today),
        'yesterday': _start_of(today - timedelta(days=1)),
        'week': _start_of(week_start),
        'last_week': _start_of(week_start - timedelta(days=7)),
        'month': _start_of(month_start),
        'last_month': _start_of(last_month_start),
    }


def earnings_queryset(user):
    return Transaction.objects.filter(payee=user, payment_status=PaymentStatus.PAID).annotate(
        earned_at=Coalesce('processed_at', 'created_at', output_field=DateTimeField()),
        net=ExpressionWrapper(
            F('amount') - F('platform_fee'), output_field=DecimalField(max_digits=12, decimal_places=2)
        ),
    )


def _window(current, previous):
    current = (current or ZERO).quantize(CENT)
    previous = (previous or ZERO).quantize(CENT)
    return {'current': current, 'previous': previous, 'change': percentage_change(current, previous)}


def get_earnings_windows(user, now=None):
    bounds = window_boundaries(now)
    totals = earnings_queryset(user).aggregate(
        today=Sum('net', filter=Q(earned_at__gte=bounds['today'])),
        yesterday=Sum('net', filter=Q(earned_at__gte=bounds['yesterday'], earned_at__lt=bounds['today'])),
        week=Sum('net', filter=Q(earned_at__gte=bounds['week'])),
        last_week=Sum('net', filter=Q(earned_at__gte=bounds['last_week'], earned_at__lt=bounds['week'])),
        month=Sum('net', filter=Q(earned_at__gte=bounds['month'])),
        last_month=Sum('net', filter=Q(earned_at__gte=bounds['last_month'], earned_at__lt=bounds['month'])),
        all=Sum('net'),
    )
    return {
        'today': _window(totals['today'], totals['yesterday']),
        'week': _window(totals['week'], totals['last_week']),
        'month': _window(totals['month'], totals['last_month']),
        # Nothing precedes all-time
        'all': {'current': (totals['all'] or ZERO).quantize(CENT), 'previous': ZERO, 'change': ZERO},
    }


def get_earnings_summary(user, period='month', now=None):
    if period not in SUMMARY_PERIODS:
        raise errors.ValidationError(f"period must be one of {', '.join(SUMMARY_PERIODS)}")

    windows = get_earnings_windows(user, now)
    stats = get_stats(user)
    return {
        'period': period,
        **windows[period],
        'windows': windows,
        'stats': {
            'completed_jobs': stats.completed_jobs,
            'total_earnings': stats.total_earnings,
            'jobs_posted': stats.jobs_posted,
            'total_spent': stats.total_spent,
        } if stats else None,
    }


def bucket_key(moment, period):
    day = timezone.localtime(moment).date()
    if period == 'day':
        return day.isoformat()
    if period == 'week':
        year, week, _ = day.isocalendar()
        return f"{year}-W{week:02d}"
    return f"{day.year}-{day.month:02d}"


def get_chart_data(user, period='month', limit=30):
    if period not in CHART_PERIODS:
        raise errors.ValidationError(f"period must be one of {', '.join(CHART_PERIODS)}")
    if limit < 1:
        raise errors.ValidationError('limit must be a positive integer')

    buckets = OrderedDict()
    for earned_at, net in earnings_queryset(user).order_by('earned_at').values_list('earned_at', 'net'):
        key = bucket_key(earned_at, period)
        buckets[key] = buckets.get(key, ZERO) + net

    points = [{'date': key, 'earnings': amount.quantize(CENT)} for key, amount in sorted(buckets.items())]
    return points[-limit:]
