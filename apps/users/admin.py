from django.contrib import admin
from .models import User, UserStats


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'phone_number', 'role', 'wallet_balance', 'is_superuser', 'is_verified')
    list_filter = ('role', 'is_superuser', 'is_verified')
    search_fields = ('username', 'email', 'phone_number')
    readonly_fields = ('wallet_balance',)


@admin.register(UserStats)
class UserStatsAdmin(admin.ModelAdmin):
    list_display = ('user', 'completed_jobs', 'total_earnings', 'jobs_posted', 'total_spent', 'updated_at')
    search_fields = ('user__username', 'user__email')
