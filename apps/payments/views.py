from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status

from core import exceptions as errors
from core.utils import ENVELOPE_RESPONSES, OperationView, envelope, parse
from . import refunds
from .earnings import CHART_PERIODS, SUMMARY_PERIODS, get_chart_data, get_earnings_summary
from .serializers import (
    ChartPointSerializer, EarningsSummarySerializer, RefundConfirmSerializer, RefundCreateSerializer,
    RefundReviewSerializer, WalletRefundRequestSerializer, WalletTopUpSerializer
)


class EarningsSummaryView(OperationView):

    @swagger_auto_schema(
        operation_description="Net earnings of the authenticated user for today, this week, this month and "
                              "all time, with the change against the previous window.",
        manual_parameters=[
            openapi.Parameter('period', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=list(SUMMARY_PERIODS),
                              default='month', required=False),
        ],
        responses={200: envelope('Earnings summary'), **ENVELOPE_RESPONSES}
    )
    def get(self, request):
        period = request.query_params.get('period', 'month')
        return self.run(lambda: EarningsSummarySerializer(get_earnings_summary(request.user, period)).data)


class EarningsChartView(OperationView):

    @swagger_auto_schema(
        operation_description="Net earnings of the authenticated user grouped by day, ISO week or month.",
        manual_parameters=[
            openapi.Parameter('period', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=list(CHART_PERIODS),
                              default='month', required=False),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, default=30, required=False),
        ],
        responses={200: envelope('List of {date, earnings}'), **ENVELOPE_RESPONSES}
    )
    def get(self, request):
        def operation():
            period = request.query_params.get('period', 'month')
            try:
                limit = int(request.query_params.get('limit', 30))
            except ValueError:
                raise errors.ValidationError('limit must be a positive integer')
            return ChartPointSerializer(get_chart_data(request.user, period, limit), many=True).data

        return self.run(operation)


class WalletRefundListView(OperationView):

    @swagger_auto_schema(
        operation_description="Wallet refund requests, newest first. Administrators see every request, "
                              "taskers their own.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False),
        ],
        responses={200: envelope('Refund requests'), **ENVELOPE_RESPONSES}
    )
    def get(self, request):
        return self.run(lambda: WalletRefundRequestSerializer(
            refunds.list_refund_requests(request.user, request.query_params.get('status')), many=True
        ).data)

    @swagger_auto_schema(
        operation_description="Ask to withdraw part of your wallet balance (taskers only). Only one request "
                              "can be in progress at a time.",
        request_body=RefundCreateSerializer,
        responses={201: envelope('Created refund request'), 402: 'Insufficient Funds', **ENVELOPE_RESPONSES}
    )
    def post(self, request):
        def operation():
            data = parse(RefundCreateSerializer, request.data)
            return WalletRefundRequestSerializer(refunds.create_refund_request(request.user, data['amount'])).data

        return self.run(operation, success_status=status.HTTP_201_CREATED)


class WalletRefundConfirmView(OperationView):

    @swagger_auto_schema(
        operation_description="Attach the payment receipt to your pending refund request.",
        request_body=RefundConfirmSerializer,
        responses={200: envelope('Refund request'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        def operation():
            data = parse(RefundConfirmSerializer, request.data)
            return WalletRefundRequestSerializer(
                refunds.confirm_refund_payment(request.user, pk, data['receipt_url'])
            ).data

        return self.run(operation)


class WalletRefundVerifyView(OperationView):

    @swagger_auto_schema(
        operation_description="Mark a refund request as being verified (administrators only).",
        request_body=RefundReviewSerializer,
        responses={200: envelope('Refund request'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        def operation():
            data = parse(RefundReviewSerializer, request.data)
            return WalletRefundRequestSerializer(
                refunds.mark_refund_verifying(request.user, pk, data.get('admin_notes'))
            ).data

        return self.run(operation)


class WalletRefundApproveView(OperationView):

    @swagger_auto_schema(
        operation_description="Approve a confirmed refund request and debit the tasker's wallet "
                              "(administrators only).",
        request_body=RefundReviewSerializer,
        responses={200: envelope('Approved refund request'), 402: 'Insufficient Funds', **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        def operation():
            data = parse(RefundReviewSerializer, request.data)
            return WalletRefundRequestSerializer(
                refunds.approve_refund_request(request.user, pk, data.get('admin_notes'))
            ).data

        return self.run(operation)


class WalletRefundRejectView(OperationView):

    @swagger_auto_schema(
        operation_description="Reject a refund request with a reason (administrators only).",
        request_body=RefundReviewSerializer,
        responses={200: envelope('Rejected refund request'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        def operation():
            data = parse(RefundReviewSerializer, request.data)
            return WalletRefundRequestSerializer(
                refunds.reject_refund_request(request.user, pk, data.get('admin_notes'))
            ).data

        return self.run(operation)


class WalletTopUpView(OperationView):

    @swagger_auto_schema(
        operation_description="Credit a user's wallet (administrators only).",
        request_body=WalletTopUpSerializer,
        responses={201: envelope('Wallet entry'), **ENVELOPE_RESPONSES}
    )
    def post(self, request):
        def operation():
            data = parse(WalletTopUpSerializer, request.data)
            entry = refunds.top_up_wallet(request.user, data['user_id'], data['amount'], data.get('notes'))
            entry.user.refresh_from_db(fields=['wallet_balance'])
            return {
                'id': entry.pk,
                'user_id': entry.user_id,
                'amount': str(entry.amount),
                'transaction_type': entry.transaction_type,
                'balance': str(entry.user.wallet_balance),
            }

        return self.run(operation, success_status=status.HTTP_201_CREATED)
