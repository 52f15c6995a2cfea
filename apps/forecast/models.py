"""
Models for stored forecasts.
"""
from django.db import models
from apps.core.models import TimeStampedModel


class ForecastPoint(TimeStampedModel):
    """
    One predicted day for one location from one method.
    """
    API_FORECAST = 'api_forecast'
    HISTORICAL_PREDICTION = 'historical_prediction'
    GENERATION_METHODS = [
        (API_FORECAST, 'Provider forecast'),
        (HISTORICAL_PREDICTION, 'Historical prediction'),
    ]

    location = models.ForeignKey(
        'location.Location',
        on_delete=models.CASCADE,
        related_name='forecasts',
    )
    forecast_date = models.DateField(db_index=True)
    generated_at = models.DateTimeField(db_index=True)

    source_api = models.CharField(max_length=50, db_index=True)
    generation_method = models.CharField(max_length=30, choices=GENERATION_METHODS)

    temperature = models.FloatField(null=True, blank=True)
    temperature_min = models.FloatField(null=True, blank=True)
    temperature_max = models.FloatField(null=True, blank=True)
    humidity = models.FloatField(null=True, blank=True)
    precipitation = models.FloatField(null=True, blank=True)
    rainfall = models.FloatField(null=True, blank=True)
    precipitation_probability = models.FloatField(null=True, blank=True)
    pm25 = models.FloatField(null=True, blank=True)
    aqi = models.IntegerField(null=True, blank=True)
    wind_speed = models.FloatField(null=True, blank=True)

    confidence = models.FloatField(default=0)

    class Meta:
        verbose_name = 'Forecast Point'
        verbose_name_plural = 'Forecast Points'
        ordering = ['forecast_date']
        indexes = [
            models.Index(fields=['location', 'forecast_date']),
            models.Index(fields=['source_api', 'forecast_date']),
            models.Index(fields=['-generated_at']),
        ]

    def __str__(self):
        return f"{self.location_id} {self.forecast_date} ({self.source_api}, {self.confidence:.2f})"
