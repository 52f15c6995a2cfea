"""
Admin configuration for adapter models.
"""
from django.contrib import admin
from .models import RawAPIResponse, AdapterStatus


@admin.register(RawAPIResponse)
class RawAPIResponseAdmin(admin.ModelAdmin):
    list_display = ['source', 'endpoint', 'status_code', 'response_time_ms', 'is_error', 'created_at']
    list_filter = ['source', 'is_error', 'status_code']
    search_fields = ['endpoint', 'error_message']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'


@admin.register(AdapterStatus)
class AdapterStatusAdmin(admin.ModelAdmin):
    list_display = ['source', 'is_active', 'success_rate_display', 'health_display', 'consecutive_failures', 'last_success_at', 'last_failure_at']
    list_filter = ['is_active']
    search_fields = ['source', 'status_message']
    readonly_fields = ['created_at', 'updated_at', 'success_rate']
    ordering = ['source']
    actions = ['reactivate']

    def success_rate_display(self, obj):
        return f"{obj.success_rate:.1f}%"
    success_rate_display.short_description = 'Success Rate'

    def health_display(self, obj):
        return obj.is_healthy
    health_display.short_description = 'Healthy'
    health_display.boolean = True

    def reactivate(self, request, queryset):
        updated = queryset.update(is_active=True, consecutive_failures=0)
        self.message_user(request, f"Re-enabled {updated} adapter(s)")
    reactivate.short_description = 'Re-enable selected adapters'
