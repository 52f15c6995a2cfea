"""
Per-source reading storage.
"""
from django.db import models

from apps.core.constants import READING_FIELDS


class Reading(models.Model):
    """
    One measurement snapshot from one source for one location.

    Rows are insert-only; a newer reading supersedes an older one.
    """
    location = models.ForeignKey(
        'location.Location',
        on_delete=models.CASCADE,
        related_name='readings',
    )
    location_name = models.CharField(max_length=100)
    captured_at = models.DateTimeField(db_index=True)
    source_name = models.CharField(max_length=50, db_index=True)

    # Weather
    temperature = models.FloatField(null=True, blank=True)
    feels_like = models.FloatField(null=True, blank=True)
    humidity = models.FloatField(null=True, blank=True)
    pressure = models.FloatField(null=True, blank=True)
    wind_speed = models.FloatField(null=True, blank=True)
    wind_direction = models.CharField(max_length=4, null=True, blank=True)
    cloud_cover = models.FloatField(null=True, blank=True)
    rainfall = models.FloatField(null=True, blank=True)
    snowfall = models.FloatField(null=True, blank=True)
    uv_index = models.FloatField(null=True, blank=True)

    # Air quality
    aqi = models.IntegerField(null=True, blank=True)
    pm25 = models.FloatField(null=True, blank=True)
    pm10 = models.FloatField(null=True, blank=True)
    no2 = models.FloatField(null=True, blank=True)
    o3 = models.FloatField(null=True, blank=True)
    so2 = models.FloatField(null=True, blank=True)
    co = models.FloatField(null=True, blank=True)

    quality_score = models.FloatField(default=0)
    alerts = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Reading'
        verbose_name_plural = 'Readings'
        ordering = ['-captured_at']
        indexes = [
            models.Index(fields=['location', 'captured_at']),
            models.Index(fields=['source_name', 'captured_at']),
        ]

    def __str__(self):
        return f"{self.source_name} @ {self.location_name} - {self.captured_at}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Readings are immutable once stored")
        super().save(*args, **kwargs)

    @property
    def location_key(self):
        return self.location.location_id

    def metrics(self):
        """Present metric values only."""
        return {
            name: getattr(self, name)
            for name in READING_FIELDS
            if getattr(self, name) is not None
        }
