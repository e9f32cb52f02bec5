from django.contrib import admin

from .models import LedgerEvent, Transaction, WalletRefundRequest, WalletTransaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'job', 'payer', 'payee', 'amount', 'platform_fee', 'currency', 'payment_status', 'processed_at')
    list_filter = ('payment_status', 'transaction_type', 'currency')
    search_fields = ('payer__username', 'payee__username', 'job__title')

    # Ledger rows are append-only
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ('user', 'transaction_type', 'amount', 'related_job', 'created_at')
    list_filter = ('transaction_type',)


@admin.register(LedgerEvent)
class LedgerEventAdmin(admin.ModelAdmin):
    list_display = ('event_type', 'transaction', 'dispatched_at', 'created_at')
    list_filter = ('event_type',)


@admin.register(WalletRefundRequest)
class WalletRefundRequestAdmin(admin.ModelAdmin):
    list_display = ('reference_code', 'tasker', 'amount', 'status', 'confirmed_at', 'approved_at', 'created_at')
    list_filter = ('status',)
    search_fields = ('reference_code', 'tasker__username')
    # Status and balance move through the refund services only
    readonly_fields = ('tasker', 'amount', 'reference_code', 'status', 'confirmed_at', 'approved_at', 'admin')
