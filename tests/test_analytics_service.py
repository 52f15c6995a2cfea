from datetime import timedelta

import pytest
from django.utils import timezone

from apps.aggregation.models import DailyAggregate
from apps.analytics.services import AnalyticsService
from apps.core.cache import TTLCache
from apps.core.exceptions import InsufficientData, InvalidInput

from .conftest import local_dt

pytestmark = pytest.mark.django_db


@pytest.fixture
def service():
    return AnalyticsService(cache=TTLCache())


def add_days(location, values, **extra):
    """One daily aggregate per value, oldest first, ending yesterday."""
    today = timezone.localdate()
    for offset, value in enumerate(reversed(values), start=1):
        if value is None:
            continue
        fields = {key: series[len(values) - offset] for key, series in extra.items()}
        DailyAggregate.objects.create(
            location=location,
            date=today - timedelta(days=offset),
            granularity='daily',
            avg_temperature=value,
            sources_observed=['OpenMeteo'],
            **fields
        )


def test_trends_without_data(service, location):
    with pytest.raises(InsufficientData):
        service.get_trends(location.location_id)


def test_trends_and_cached_flag(service, location):
    add_days(location, [20, 21, 22, 26, 27, 28])

    first = service.get_trends(location.location_id, 'temperature', days=30)
    second = service.get_trends(location.location_id, 'temperature', days=30)

    assert first['cached'] is False
    assert second['cached'] is True
    assert first['statistics']['trend'] == 'increasing'
    assert first['statistics']['average'] == 24.0
    assert first['statistics']['count'] == 6
    assert [p['value'] for p in first['data']] == [20, 21, 22, 26, 27, 28]
    assert first['movingAverage'][-1] is None


def test_trends_fill_gaps(service, location):
    add_days(location, [10, None, 20])

    result = service.get_trends(location.location_id, 'temperature', days=3, fill_gaps=True)

    values = [p['value'] for p in result['data']]
    assert values == [10, 15.0, 20, None]
    assert result['data'][1]['interpolated'] is True


def test_trends_reject_unknown_location_and_metric(service, location):
    with pytest.raises(InvalidInput):
        service.get_trends('city_999')
    with pytest.raises(InvalidInput):
        service.get_trends(location.location_id, 'visibility')
    with pytest.raises(InvalidInput):
        service.get_trends(location.location_id, days=0)


def test_correlation(service, location):
    temperatures = [20 + i for i in range(12)]
    add_days(location, temperatures, avg_aqi=[50 + 2 * t for t in temperatures])

    result = service.get_correlation(location.location_id, 'temperature', 'aqi', days=30)

    assert result['correlation'] == {'coefficient': 1.0, 'strength': 'strong', 'direction': 'positive'}
    assert result['dataPoints'] == 12


def test_correlation_needs_ten_paired_days(service, location):
    add_days(location, [20, 21, 22, 23, 24], avg_aqi=[60, 61, 62, 63, 64])

    with pytest.raises(InsufficientData) as excinfo:
        service.get_correlation(location.location_id, 'temperature', 'aqi')

    assert excinfo.value.required == 10
    assert excinfo.value.available == 5


def test_heatmap_orders_locations_by_mean(service, store, location, other_location, add_reading):
    today = timezone.localdate()
    at = local_dt(today.year, today.month, today.day, 1)
    add_reading(location, at, aqi=80)
    add_reading(location, at, source_name='OpenAQ', aqi=100)
    add_reading(other_location, at, aqi=160)
    add_reading(other_location, at, source_name='IMD', temperature=30.0)

    result = service.get_heatmap('aqi', today)

    cells = result['locations']
    assert [c['locationId'] for c in cells] == ['city_001', 'city_003']
    assert cells[0]['value'] == 160.0
    assert cells[0]['category'] == 'Unhealthy'
    assert cells[1]['value'] == 90.0
    assert cells[1]['dataPoints'] == 2
    assert result['summary']['highest']['locationId'] == 'city_001'
    assert result['cached'] is False


def test_compare_needs_two_locations(service, location):
    with pytest.raises(InvalidInput):
        service.compare_locations([location.location_id])
    with pytest.raises(InvalidInput):
        service.compare_locations([location.location_id, ' '])


def test_compare_locations(service, location, other_location):
    add_days(location, [20, 22])
    add_days(other_location, [30, 32])

    result = service.compare_locations([location.location_id, other_location.location_id], 'temperature')

    averages = {c['locationId']: c['average'] for c in result['locations']}
    assert averages == {'city_003': 21.0, 'city_001': 31.0}


def test_comparison_cache_is_invalidated_per_location(service, location, other_location):
    add_days(location, [20, 22])
    add_days(other_location, [30, 32])
    ids = [location.location_id, other_location.location_id]

    service.compare_locations(ids, 'temperature')
    service.cache.invalidate_pattern(f"*:{location.location_id}:*")

    assert service.compare_locations(ids, 'temperature')['cached'] is False


def test_anomalies(service, location):
    add_days(location, [20.0, 20.5, 19.5, 20.0, 21.0, 19.0, 20.0, 20.5, 19.5, 20.0, 45.0])

    result = service.get_anomalies(location.location_id, 'temperature')

    assert [a['value'] for a in result['anomalies']] == [45.0]
    assert result['threshold'] == 3.0
    assert result['dataPoints'] == 11


def test_trends_filtered_to_one_source(service, location, add_reading):
    today = timezone.localdate()
    for offset, (ours, theirs) in enumerate([(22.0, 34.0), (20.0, 30.0)], start=1):
        day = today - timedelta(days=offset)
        at = local_dt(day.year, day.month, day.day, 10)
        add_reading(location, at, source_name='OpenMeteo', temperature=ours)
        add_reading(location, at, source_name='WeatherUnion', temperature=theirs)

    result = service.get_trends(location.location_id, 'temperature', source='WeatherUnion')
    other = service.get_trends(location.location_id, 'temperature', source='OpenMeteo')

    assert [p['value'] for p in result['data']] == [30.0, 34.0]
    assert result['sourceFilter'] == 'WeatherUnion'
    assert result['statistics']['average'] == 32.0
    assert other['cached'] is False
    assert [p['value'] for p in other['data']] == [20.0, 22.0]


def test_heatmap_filtered_to_one_source(service, location, other_location, add_reading):
    today = timezone.localdate()
    at = local_dt(today.year, today.month, today.day, 1)
    add_reading(location, at, aqi=80)
    add_reading(location, at, source_name='OpenAQ', aqi=100)
    add_reading(other_location, at, aqi=160)

    result = service.get_heatmap('aqi', today, source='OpenAQ')

    assert [(c['locationId'], c['value']) for c in result['locations']] == [('city_003', 100.0)]


def test_mutating_a_result_leaves_the_cache_intact(service, location):
    add_days(location, [20, 21, 22])

    first = service.get_trends(location.location_id, 'temperature')
    first['data'].clear()
    first['statistics']['average'] = -1

    second = service.get_trends(location.location_id, 'temperature')

    assert second['cached'] is True
    assert [p['value'] for p in second['data']] == [20, 21, 22]
    assert second['statistics']['average'] == 21.0
