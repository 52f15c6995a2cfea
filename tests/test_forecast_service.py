from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest
from django.utils import timezone

from apps.aggregation.models import DailyAggregate
from apps.core.exceptions import ForecastUnavailable, InsufficientData, InvalidInput
from apps.forecast.models import ForecastPoint
from apps.forecast.services import ForecastService

pytestmark = pytest.mark.django_db


def provider(days):
    adapter = MagicMock()
    adapter.SOURCE_NAME = 'OpenMeteo'
    adapter.fetch_forecast.return_value = days
    return adapter


def api_days(count, start=None, temperature=30.0):
    start = start or timezone.localdate()
    return [
        {
            'forecast_date': start + timedelta(days=i),
            'temperature': temperature,
            'temperature_min': temperature - 5,
            'temperature_max': temperature + 5,
            'humidity': 60,
            'precipitation': 0.0,
            'rainfall': 0.0,
            'precipitation_probability': 10,
            'wind_speed': 12.0,
        }
        for i in range(count)
    ]


def add_history(location, days=10, temperature=25.0):
    today = timezone.localdate()
    for i in range(1, days + 1):
        DailyAggregate.objects.create(
            location=location,
            date=today - timedelta(days=i),
            granularity='daily',
            avg_temperature=temperature,
            avg_humidity=55,
            avg_pm25=20.0,
        )


def test_provider_forecast_is_preferred(location):
    service = ForecastService(adapter=provider(api_days(3)))

    points = service.generate_for_location(location)

    assert [p.confidence for p in points] == [0.85, 0.8, 0.75]
    assert {p.source_api for p in points} == {'OpenMeteo'}
    assert {p.generation_method for p in points} == {ForecastPoint.API_FORECAST}
    assert ForecastPoint.objects.filter(location=location).count() == 3


def test_history_is_used_when_the_provider_has_nothing(location):
    add_history(location)
    service = ForecastService(adapter=provider([]))

    points = service.generate_for_location(location)

    assert len(points) == 7
    assert {p.source_api for p in points} == {'Historical'}
    assert {p.generation_method for p in points} == {ForecastPoint.HISTORICAL_PREDICTION}
    assert points[0].forecast_date == timezone.localdate() + timedelta(days=1)
    assert points[0].temperature == 25.0
    assert points[0].temperature_min == 22.0
    assert points[0].temperature_max == 28.0
    assert points[0].confidence == 0.95
    assert points[-1].confidence == 0.65


def test_provider_error_falls_back_to_history(location):
    add_history(location)
    adapter = provider([])
    adapter.fetch_forecast.side_effect = RuntimeError('boom')

    points = ForecastService(adapter=adapter).generate_for_location(location)

    assert {p.source_api for p in points} == {'Historical'}


def test_nothing_is_stored_without_any_source(location):
    add_history(location, days=3)

    points = ForecastService(adapter=provider([])).generate_for_location(location)

    assert points == []
    assert not ForecastPoint.objects.exists()


def test_new_forecast_replaces_overlapping_dates(location):
    service = ForecastService(adapter=provider(api_days(3, temperature=30.0)))
    service.generate_for_location(location)

    service.adapter = provider(api_days(2, temperature=32.0))
    service.generate_for_location(location)

    stored = list(ForecastPoint.objects.filter(location=location).order_by('forecast_date'))
    assert [p.temperature for p in stored] == [32.0, 32.0, 30.0]
    assert len({p.forecast_date for p in stored}) == 3


def test_get_forecast(location):
    service = ForecastService(adapter=provider(api_days(5)))

    with pytest.raises(ForecastUnavailable):
        service.get_forecast(location.location_id)

    service.generate_for_location(location)
    points = service.get_forecast(location.location_id, days=3)

    assert len(points) == 3
    assert points[0].forecast_date == timezone.localdate()


def test_accuracy_against_recorded_days(location):
    yesterday = timezone.localdate() - timedelta(days=1)
    service = ForecastService(adapter=provider(api_days(2, start=yesterday - timedelta(days=1))))
    service.generate_for_location(location)

    with pytest.raises(InsufficientData):
        service.evaluate_location_accuracy(location.location_id)

    DailyAggregate.objects.create(location=location, date=yesterday, granularity='daily', avg_temperature=28.0)
    DailyAggregate.objects.create(location=location, date=yesterday - timedelta(days=1), granularity='daily', avg_temperature=30.0)

    result = service.evaluate_location_accuracy(location.location_id)

    assert result['locationId'] == location.location_id
    assert result['sample_size'] == 2
    assert result['mae'] == 1.0


def test_accuracy_rejects_unknown_metric(location):
    with pytest.raises(InvalidInput):
        ForecastService(adapter=provider([])).evaluate_location_accuracy(location.location_id, 'visibility')


def test_generate_all_counts_per_location(location, other_location):
    add_history(location)
    results = ForecastService(adapter=provider([])).generate_all()

    assert results == {
        'total_locations': 2,
        'successful_locations': 1,
        'failed_locations': 1,
        'total_points': 7,
    }
