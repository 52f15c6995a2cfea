"""
Admin configuration for aggregates.
"""
from django.contrib import admin
from .models import DailyAggregate


@admin.register(DailyAggregate)
class DailyAggregateAdmin(admin.ModelAdmin):
    list_display = ['location', 'date', 'granularity', 'avg_temperature', 'avg_aqi', 'aqi_category', 'completeness', 'reading_count']
    list_filter = ['granularity', 'aqi_category']
    search_fields = ['location__name', 'location__location_id']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-date']
    date_hierarchy = 'date'
