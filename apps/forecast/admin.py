"""
Admin configuration for forecast models.
"""
from django.contrib import admin
from .models import ForecastPoint


@admin.register(ForecastPoint)
class ForecastPointAdmin(admin.ModelAdmin):
    list_display = ['location', 'forecast_date', 'source_api', 'generation_method', 'temperature', 'aqi', 'confidence', 'generated_at']
    list_filter = ['source_api', 'generation_method']
    search_fields = ['location__name', 'location__location_id']
    readonly_fields = ['created_at', 'updated_at', 'generated_at']
    ordering = ['forecast_date']
    date_hierarchy = 'forecast_date'
