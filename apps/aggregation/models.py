"""
Time-bucketed rollups of stored readings.
"""
from django.db import models
from apps.core.models import TimeStampedModel


class DailyAggregate(TimeStampedModel):
    """
    Summary of one location over one period.

    Despite the name, rows exist for every granularity; ``date`` is the
    first day of the period. Rows are only ever replaced wholesale.
    """
    GRANULARITY_CHOICES = [
        ('hourly', 'Hourly'),
        ('daily', 'Daily'),
        ('monthly', 'Monthly'),
        ('yearly', 'Yearly'),
    ]

    location = models.ForeignKey(
        'location.Location',
        on_delete=models.CASCADE,
        related_name='aggregates',
    )
    date = models.DateField(db_index=True)
    granularity = models.CharField(max_length=10, choices=GRANULARITY_CHOICES, default='daily')

    min_temperature = models.FloatField(null=True, blank=True)
    avg_temperature = models.FloatField(null=True, blank=True)
    max_temperature = models.FloatField(null=True, blank=True)

    avg_humidity = models.FloatField(null=True, blank=True)
    avg_aqi = models.FloatField(null=True, blank=True)
    avg_pm25 = models.FloatField(null=True, blank=True)
    avg_pm10 = models.FloatField(null=True, blank=True)
    avg_no2 = models.FloatField(null=True, blank=True)
    avg_o3 = models.FloatField(null=True, blank=True)
    avg_so2 = models.FloatField(null=True, blank=True)
    avg_co = models.FloatField(null=True, blank=True)
    avg_wind_speed = models.FloatField(null=True, blank=True)
    total_rainfall = models.FloatField(null=True, blank=True)

    aqi_category = models.CharField(max_length=50, blank=True)

    completeness = models.FloatField(default=0)
    sources_observed = models.JSONField(default=list)
    reading_count = models.IntegerField(default=0)

    class Meta:
        verbose_name = 'Aggregate'
        verbose_name_plural = 'Aggregates'
        ordering = ['-date']
        unique_together = [['location', 'date', 'granularity']]
        indexes = [
            models.Index(fields=['location', 'granularity', 'date']),
        ]

    def __str__(self):
        return f"{self.location_id} {self.granularity} {self.date} ({self.completeness:.0%})"
