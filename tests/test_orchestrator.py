import threading

import pytest

from apps.adapters.schemas import NormalizedReading
from apps.collection.orchestrator import CollectionOrchestrator
from apps.core.cache import TTLCache
from apps.core.constants import AIR_QUALITY, WEATHER
from apps.readings.models import Reading


class FakeAdapter:
    """Stands in for a source adapter without touching the network."""

    def __init__(self, name, result=None, families=(WEATHER,), fallback_for=None,
                 available=True, error=None, block=None):
        self.SOURCE_NAME = name
        self.SOURCE_CODE = name.upper()
        self.FALLBACK_FOR = fallback_for
        self.result = result
        self.families = set(families)
        self.available = available
        self.error = error
        self.block = block
        self.calls = []

    def capabilities(self):
        return self.families

    def is_available(self):
        return self.available

    def fetch_reading(self, lat, lon, location_name='', families=None):
        self.calls.append((lat, lon, location_name, families))
        if self.block is not None:
            self.block.wait(5)
        if self.error:
            raise self.error
        if self.result is None:
            return None
        return NormalizedReading(source_name=self.SOURCE_NAME, **self.result)


CONTRACT = {
    'locationId': 'city_003',
    'locationName': 'Bangalore',
    'latitude': 12.9716,
    'longitude': 77.5946,
}


def names(records):
    return sorted(record.source_name for record in records)


def test_failing_sources_only_remove_their_own_record():
    orchestrator = CollectionOrchestrator(adapters=[
        FakeAdapter('OpenMeteo', {'temperature': 28.0}),
        FakeAdapter('WeatherUnion', {'temperature': 28.5}),
        FakeAdapter('IMD', error=RuntimeError('parse failure')),
        FakeAdapter('KSNDMC (Karnataka)'),
    ])

    records = orchestrator.collect(CONTRACT)

    assert names(records) == ['OpenMeteo', 'WeatherUnion']


def test_each_source_keeps_its_own_values():
    orchestrator = CollectionOrchestrator(adapters=[
        FakeAdapter('OpenMeteo', {'temperature': 28.0}),
        FakeAdapter('WeatherUnion', {'temperature': 28.5}),
    ])

    values = {record.source_name: record.temperature for record in orchestrator.collect(CONTRACT)}

    assert values == {'OpenMeteo': 28.0, 'WeatherUnion': 28.5}


def test_slow_source_is_abandoned_at_the_deadline():
    release = threading.Event()
    slow = FakeAdapter('OpenAQ', {'aqi': 90}, block=release)
    orchestrator = CollectionOrchestrator(adapters=[
        FakeAdapter('OpenMeteo', {'temperature': 28.0}),
        slow,
    ])
    orchestrator.timeout = 0.2

    try:
        records, errors = orchestrator._collect(CONTRACT)
    finally:
        release.set()

    assert names(records) == ['OpenMeteo']
    assert errors == ['OpenAQ: timed out']


def test_unavailable_adapters_are_not_called():
    disabled = FakeAdapter('WeatherUnion', {'temperature': 28.5}, available=False)
    orchestrator = CollectionOrchestrator(adapters=[FakeAdapter('OpenMeteo', {'temperature': 28.0}), disabled])

    assert names(orchestrator.collect(CONTRACT)) == ['OpenMeteo']
    assert disabled.calls == []


def test_fallback_runs_only_when_primary_produced_nothing():
    fallback = FakeAdapter('IMD (via OpenMeteo)', {'temperature': 27.9}, fallback_for='IMD')

    orchestrator = CollectionOrchestrator(adapters=[FakeAdapter('IMD', {'temperature': 28.2}), fallback])
    assert names(orchestrator.collect(CONTRACT)) == ['IMD']
    assert fallback.calls == []

    orchestrator = CollectionOrchestrator(adapters=[FakeAdapter('IMD'), fallback])
    assert names(orchestrator.collect(CONTRACT)) == ['IMD (via OpenMeteo)']


def test_families_filter_adapters():
    weather = FakeAdapter('IMD', {'temperature': 28.2})
    air = FakeAdapter('OpenAQ', {'pm25': 40.0}, families=(AIR_QUALITY,))
    orchestrator = CollectionOrchestrator(adapters=[weather, air])

    records = orchestrator.collect(CONTRACT, families=[AIR_QUALITY])

    assert names(records) == ['OpenAQ']
    assert weather.calls == []
    assert air.calls[0][3] == {AIR_QUALITY}


def test_adapters_receive_location_name_and_coordinates():
    adapter = FakeAdapter('OpenMeteo', {'temperature': 28.0})
    CollectionOrchestrator(adapters=[adapter]).collect(CONTRACT)

    assert adapter.calls == [(12.9716, 77.5946, 'Bangalore', None)]


def test_no_sources_means_empty_result():
    orchestrator = CollectionOrchestrator(adapters=[FakeAdapter('IMD'), FakeAdapter('OpenAQ', error=ValueError('bad'))])
    assert orchestrator.collect(CONTRACT) == []


@pytest.mark.django_db
def test_collect_location_stores_one_row_per_source(location):
    cache = TTLCache()
    cache.set('trends:city_003:temperature:30:False', {'data': []})
    orchestrator = CollectionOrchestrator(
        adapters=[
            FakeAdapter('OpenMeteo', {'temperature': 28.0}),
            FakeAdapter('WeatherUnion', {'temperature': 28.5}),
            FakeAdapter('IMD'),
        ],
        cache=cache,
    )

    result = orchestrator.collect_location(location)

    assert result['records_stored'] == 2
    assert result['errors'] == ['IMD: no data']
    assert sorted(result['sources']) == ['OpenMeteo', 'WeatherUnion']

    rows = Reading.objects.filter(location=location)
    assert rows.count() == 2
    assert len({row.captured_at for row in rows}) == 1
    assert cache.keys() == []


@pytest.mark.django_db
def test_collect_location_clears_heatmaps_but_not_other_locations(location):
    cache = TTLCache()
    cache.set('heatmap:all:aqi:2024-06-01', {'locations': []})
    cache.set('trends:city_001:all:aqi:30:0', {'data': []})
    orchestrator = CollectionOrchestrator(
        adapters=[FakeAdapter('OpenMeteo', {'aqi': 80})],
        cache=cache,
    )

    orchestrator.collect_location(location)

    assert cache.keys() == ['trends:city_001:all:aqi:30:0']


@pytest.mark.django_db
def test_collect_location_accepts_contract(location):
    orchestrator = CollectionOrchestrator(adapters=[FakeAdapter('OpenMeteo', {'temperature': 28.0})])

    result = orchestrator.collect_location(CONTRACT)

    assert result['location_id'] == 'city_003'
    assert Reading.objects.get().location == location


@pytest.mark.django_db
def test_collect_all_continues_past_empty_locations(location, other_location):
    orchestrator = CollectionOrchestrator(adapters=[FakeAdapter('OpenMeteo', {'temperature': 28.0})])

    results = orchestrator.collect_all()

    assert results['total_locations'] == 2
    assert results['successful_locations'] == 2
    assert results['total_records'] == 2

    stats = orchestrator.get_statistics()
    assert stats['total_readings'] == 2
    assert stats['by_source'][0]['source'] == 'OpenMeteo'
