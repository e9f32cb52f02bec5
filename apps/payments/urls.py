from django.urls import path

from .views import (
    EarningsChartView, EarningsSummaryView, WalletRefundApproveView, WalletRefundConfirmView, WalletRefundListView,
    WalletRefundRejectView, WalletRefundVerifyView, WalletTopUpView
)

urlpatterns = [
    path('earnings/summary/', EarningsSummaryView.as_view(), name='earnings_summary'),
    path('earnings/chart/', EarningsChartView.as_view(), name='earnings_chart'),
    path('wallet/refunds/', WalletRefundListView.as_view(), name='wallet_refunds'),
    path('wallet/refunds/<int:pk>/confirm/', WalletRefundConfirmView.as_view(), name='wallet_refund_confirm'),
    path('wallet/refunds/<int:pk>/verify/', WalletRefundVerifyView.as_view(), name='wallet_refund_verify'),
    path('wallet/refunds/<int:pk>/approve/', WalletRefundApproveView.as_view(), name='wallet_refund_approve'),
    path('wallet/refunds/<int:pk>/reject/', WalletRefundRejectView.as_view(), name='wallet_refund_reject'),
    path('wallet/top-up/', WalletTopUpView.as_view(), name='wallet_top_up'),
]
