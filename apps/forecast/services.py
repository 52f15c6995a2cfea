"""
Forecast generation, storage and scoring.
"""
import logging
from datetime import timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.adapters.openmeteo import OpenMeteoAdapter
from apps.aggregation.models import DailyAggregate
from apps.core.exceptions import ForecastUnavailable, InsufficientData, InvalidInput
from apps.location.services import LocationRegistry

from .models import ForecastPoint
from .prediction import evaluate_forecast_accuracy, generate_simple_prediction

logger = logging.getLogger(__name__)

HISTORICAL_SOURCE = 'Historical'

# Forecast field -> DailyAggregate column used as ground truth
ACCURACY_METRICS = {
    'temperature': 'avg_temperature',
    'humidity': 'avg_humidity',
    'pm25': 'avg_pm25',
    'aqi': 'avg_aqi',
}

FORECAST_FIELDS = [
    'temperature',
    'temperature_min',
    'temperature_max',
    'humidity',
    'precipitation',
    'rainfall',
    'precipitation_probability',
    'pm25',
    'aqi',
    'wind_speed',
]


class ForecastService:
    """
    Produces per-location forecasts.

    The provider forecast is preferred; when it is unavailable a prediction
    is made from recent daily aggregates. If neither is possible nothing is
    stored.
    """

    def __init__(self, adapter: Optional[OpenMeteoAdapter] = None, registry: Optional[LocationRegistry] = None):
        self.adapter = adapter or OpenMeteoAdapter()
        self.registry = registry or LocationRegistry()
        self.settings = settings.URBAN_CLIMATE_SETTINGS
        self.days = self.settings.get('FORECAST_DAYS', 7)

    def fetch_api_forecast(self, location) -> List[Dict]:
        """Provider forecast with confidence falling 0.05 per day from 0.85."""
        try:
            days = self.adapter.fetch_forecast(location.latitude, location.longitude, days=self.days)
        except Exception as e:
            logger.error(f"{self.adapter.SOURCE_NAME} forecast error for {location.name}: {e}")
            return []

        return [
            {**day, 'confidence': round(max(0.0, 0.85 - i * 0.05), 2)}
            for i, day in enumerate(days)
        ]

    def predict_from_history(self, location) -> List[Dict]:
        """Prediction from up to 30 recent daily aggregates; min/max are the mean -/+ 3."""
        today = timezone.localdate()
        history = list(DailyAggregate.objects.filter(
            location=location,
            granularity='daily',
            date__gte=today - timedelta(days=30),
            date__lte=today,
        ).order_by('date'))

        predictions = generate_simple_prediction(history, days_ahead=self.days, start_date=today)

        forecasts = []
        for prediction in predictions:
            temperature = prediction['temperature']
            forecasts.append({
                'forecast_date': prediction['date'],
                'temperature': temperature,
                'temperature_min': round(temperature - 3, 1) if temperature is not None else None,
                'temperature_max': round(temperature + 3, 1) if temperature is not None else None,
                'humidity': prediction['humidity'],
                'pm25': prediction['pm25'],
                'aqi': prediction['aqi'],
                'confidence': prediction['confidence'],
            })
        return forecasts

    def generate_for_location(self, location) -> List[ForecastPoint]:
        """
        Generate and store a forecast for one location.

        Returns:
            Stored ForecastPoints, empty when no forecast could be produced
        """
        forecasts = self.fetch_api_forecast(location)
        if forecasts:
            return self.store_forecast(location, forecasts, self.adapter.SOURCE_NAME, ForecastPoint.API_FORECAST)

        forecasts = self.predict_from_history(location)
        if forecasts:
            logger.warning(f"{location.name}: Using historical predictions ({len(forecasts)})")
            return self.store_forecast(location, forecasts, HISTORICAL_SOURCE, ForecastPoint.HISTORICAL_PREDICTION)

        logger.error(f"{location.name}: No forecast generated")
        return []

    def store_forecast(self, location, forecasts: List[Dict], source_api: str, generation_method: str) -> List[ForecastPoint]:
        """
        Replace every stored point on the forecast's dates with the new set,
        in one transaction.
        """
        generated_at = timezone.now()
        points = [
            ForecastPoint(
                location=location,
                forecast_date=forecast['forecast_date'],
                generated_at=generated_at,
                source_api=source_api,
                generation_method=generation_method,
                confidence=forecast.get('confidence', 0.75),
                **{name: forecast.get(name) for name in FORECAST_FIELDS}
            )
            for forecast in forecasts
        ]
        dates = [point.forecast_date for point in points]

        with transaction.atomic():
            ForecastPoint.objects.filter(location=location, forecast_date__in=dates).delete()
            created = ForecastPoint.objects.bulk_create(points)

        logger.debug(f"Stored {len(created)} forecast points for {location.name}")
        return created

    def get_forecast(self, location_id: str, days: int = 7) -> List[ForecastPoint]:
        """
        Upcoming stored forecast points.

        Raises:
            ForecastUnavailable: nothing stored from today onwards
        """
        location = self.registry.get(location_id)
        points = list(
            ForecastPoint.objects.filter(location=location, forecast_date__gte=timezone.localdate())
            .order_by('forecast_date')[:days]
        )
        if not points:
            raise ForecastUnavailable(f"No forecast available for {location_id}")
        return points

    def evaluate_location_accuracy(self, location_id: str, metric: str = 'temperature') -> Dict:
        """
        Score past forecast points against the daily aggregates recorded
        for the same dates.

        Raises:
            InvalidInput: unsupported metric
            InsufficientData: no forecast day has a matching aggregate
        """
        if metric not in ACCURACY_METRICS:
            raise InvalidInput(f"Unsupported accuracy metric: {metric}")

        location = self.registry.get(location_id)
        column = ACCURACY_METRICS[metric]

        past = ForecastPoint.objects.filter(
            location=location,
            forecast_date__lt=timezone.localdate(),
        ).order_by('forecast_date')
        actuals = {
            row.date: getattr(row, column)
            for row in DailyAggregate.objects.filter(
                location=location,
                granularity='daily',
                date__in=[point.forecast_date for point in past],
            )
        }

        pairs = [
            (getattr(point, metric), actuals.get(point.forecast_date))
            for point in past
            if getattr(point, metric) is not None and actuals.get(point.forecast_date) is not None
        ]
        if not pairs:
            raise InsufficientData(f"No verifiable forecast days for {location_id}", required=1, available=0)

        accuracy = evaluate_forecast_accuracy([p for p, _ in pairs], [a for _, a in pairs])
        return {
            'locationId': location_id,
            'metric': metric,
            **accuracy,
        }

    def generate_all(self, locations=None) -> Dict:
        """Generate forecasts for every active location; failures are per location."""
        locations = self.registry.active() if locations is None else list(locations)
        results = {
            'total_locations': len(locations),
            'successful_locations': 0,
            'failed_locations': 0,
            'total_points': 0,
        }

        for location in locations:
            try:
                points = self.generate_for_location(location)
            except Exception as e:
                logger.error(f"Forecast generation failed for {location.name}: {e}")
                points = []

            if points:
                results['successful_locations'] += 1
                results['total_points'] += len(points)
            else:
                results['failed_locations'] += 1

        logger.info(
            f"Forecast generation complete: {results['successful_locations']}/{results['total_locations']} "
            f"locations, {results['total_points']} points"
        )
        return results
