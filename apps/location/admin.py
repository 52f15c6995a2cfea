"""
Admin configuration for location models.
"""
from django.contrib import admin
from .models import Location


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ['location_id', 'name', 'state', 'latitude', 'longitude', 'is_active']
    list_filter = ['state', 'is_active']
    search_fields = ['location_id', 'name', 'state']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['location_id']
