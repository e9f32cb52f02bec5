from decimal import Decimal

from rest_framework import serializers

from apps.users.models import User
from .models import WalletRefundRequest


def money():
    return serializers.DecimalField(max_digits=12, decimal_places=2)


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name']
        ref_name = 'PaymentsUserSummary'


class EarningsWindowSerializer(serializers.Serializer):
    current = money()
    previous = money()
    # Percentage, unbounded
    change = serializers.DecimalField(max_digits=None, decimal_places=2)


class EarningsWindowsSerializer(serializers.Serializer):
    today = EarningsWindowSerializer()
    week = EarningsWindowSerializer()
    month = EarningsWindowSerializer()
    all = EarningsWindowSerializer()


class EarningsStatsSerializer(serializers.Serializer):
    completed_jobs = serializers.IntegerField()
    total_earnings = money()
    jobs_posted = serializers.IntegerField()
    total_spent = money()


class EarningsSummarySerializer(EarningsWindowSerializer):
    period = serializers.CharField()
    windows = EarningsWindowsSerializer()
    stats = EarningsStatsSerializer(allow_null=True)


class ChartPointSerializer(serializers.Serializer):
    date = serializers.CharField()
    earnings = money()


class WalletRefundRequestSerializer(serializers.ModelSerializer):
    tasker = UserSummarySerializer(read_only=True)

    class Meta:
        model = WalletRefundRequest
        fields = [
            'id', 'tasker', 'amount', 'reference_code', 'status', 'receipt_url', 'admin_notes',
            'confirmed_at', 'approved_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class RefundCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))


class RefundConfirmSerializer(serializers.Serializer):
    receipt_url = serializers.URLField(max_length=500)


class RefundReviewSerializer(serializers.Serializer):
    admin_notes = serializers.CharField(required=False, allow_blank=True)


class WalletTopUpSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    notes = serializers.CharField(required=False, allow_blank=True)

