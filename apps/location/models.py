"""
Models for the location registry.
"""
from django.db import models
from apps.core.models import TimeStampedModel


class Location(TimeStampedModel):
    """
    A city the collectors report on.
    """
    location_id = models.CharField(max_length=50, unique=True, db_index=True)
    name = models.CharField(max_length=100)
    state = models.CharField(max_length=100, blank=True)

    latitude = models.FloatField()
    longitude = models.FloatField()

    timezone = models.CharField(max_length=50, default='Asia/Kolkata')
    population = models.BigIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = 'Location'
        verbose_name_plural = 'Locations'
        ordering = ['location_id']

    def __str__(self):
        return f"{self.name} ({self.location_id})"

    def as_contract(self):
        """Inbound shape handed to the collection orchestrator."""
        return {
            'locationId': self.location_id,
            'locationName': self.name,
            'latitude': self.latitude,
            'longitude': self.longitude,
        }
