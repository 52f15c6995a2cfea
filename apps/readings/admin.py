"""
Admin configuration for readings.
"""
from django.contrib import admin
from .models import Reading


@admin.register(Reading)
class ReadingAdmin(admin.ModelAdmin):
    list_display = ['location_name', 'source_name', 'captured_at', 'temperature', 'humidity', 'aqi', 'pm25', 'quality_score']
    list_filter = ['source_name', 'location_name']
    search_fields = ['location_name', 'source_name']
    ordering = ['-captured_at']
    date_hierarchy = 'captured_at'

    def has_change_permission(self, request, obj=None):
        return False
