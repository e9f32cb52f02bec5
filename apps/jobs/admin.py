from django.contrib import admin

from .models import Job, JobApplication, JobStateTransition


class JobApplicationInline(admin.TabularInline):
    model = JobApplication
    extra = 0
    readonly_fields = ('tasker', 'proposed_price', 'status', 'created_at')


class JobStateTransitionInline(admin.TabularInline):
    model = JobStateTransition
    extra = 0
    readonly_fields = ('action', 'from_status', 'to_status', 'actor', 'created_at')
    can_delete = False


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('title', 'customer', 'assigned_tasker', 'status', 'customer_budget', 'final_price', 'created_at')
    list_filter = ('status', 'currency')
    search_fields = ('title', 'customer__username')
    # Status only moves through the job services
    readonly_fields = ('status', 'current_applications', 'customer_confirmed_at')
    inlines = [JobApplicationInline, JobStateTransitionInline]


@admin.register(JobApplication)
class JobApplicationAdmin(admin.ModelAdmin):
    list_display = ('job', 'tasker', 'proposed_price', 'status', 'created_at')
    list_filter = ('status',)
