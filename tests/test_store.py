import pytest

from apps.adapters.schemas import NormalizedReading
from apps.core.exceptions import InvalidInput
from apps.readings.models import Reading

from .conftest import local_dt

pytestmark = pytest.mark.django_db


def test_append_keeps_the_source_record_verbatim(store, location):
    record = NormalizedReading(
        source_name='WeatherUnion',
        quality_score=92,
        temperature=28.5,
        humidity=61.0,
        alerts=[{'category': 'heat', 'severity': 'moderate', 'message': 'hot'}],
    )

    reading = store.append(location, record, captured_at=local_dt(2024, 3, 10, 12))

    stored = Reading.objects.get(pk=reading.pk)
    assert stored.source_name == 'WeatherUnion'
    assert stored.location_name == 'Bangalore'
    assert stored.temperature == 28.5
    assert stored.aqi is None
    assert stored.metrics() == {'temperature': 28.5, 'humidity': 61.0}
    assert stored.alerts[0]['category'] == 'heat'


def test_readings_are_immutable(store, location):
    reading = store.append(location, NormalizedReading(source_name='IMD', temperature=30.0))
    reading.temperature = 31.0

    with pytest.raises(ValueError):
        reading.save()


def test_append_many_shares_the_cycle_timestamp(store, location):
    records = [
        NormalizedReading(source_name='OpenMeteo', temperature=28.0),
        NormalizedReading(source_name='IMD', temperature=28.5),
    ]
    at = local_dt(2024, 3, 10, 12)

    store.append_many(location, records, captured_at=at)

    assert Reading.objects.filter(location=location, captured_at=at).count() == 2
    assert store.append_many(location, []) == []


def test_range_is_half_open(store, location, add_reading):
    add_reading(location, local_dt(2024, 3, 10, 0))
    add_reading(location, local_dt(2024, 3, 10, 12))
    add_reading(location, local_dt(2024, 3, 11, 0))

    readings = store.range(location.location_id, local_dt(2024, 3, 10), local_dt(2024, 3, 11))

    assert [r.captured_at for r in readings] == [local_dt(2024, 3, 10, 0), local_dt(2024, 3, 10, 12)]


def test_range_descending(store, location, add_reading):
    add_reading(location, local_dt(2024, 3, 10, 1))
    add_reading(location, local_dt(2024, 3, 10, 2))

    readings = store.range(location.location_id, local_dt(2024, 3, 10), local_dt(2024, 3, 11), descending=True)

    assert readings[0].captured_at == local_dt(2024, 3, 10, 2)


def test_range_rejects_reversed_bounds(store, location):
    with pytest.raises(InvalidInput):
        store.range(location.location_id, local_dt(2024, 3, 11), local_dt(2024, 3, 10))


def test_range_is_scoped_to_location(store, location, other_location, add_reading):
    add_reading(location, local_dt(2024, 3, 10, 5))
    add_reading(other_location, local_dt(2024, 3, 10, 5))

    readings = store.range(location.location_id, local_dt(2024, 3, 10), local_dt(2024, 3, 11))

    assert len(readings) == 1


def test_latest_per_source(store, location, add_reading):
    add_reading(location, local_dt(2024, 3, 10, 1), source_name='IMD', temperature=20.0)
    add_reading(location, local_dt(2024, 3, 10, 2), source_name='IMD', temperature=21.0)
    add_reading(location, local_dt(2024, 3, 10, 1), source_name='OpenAQ', aqi=90)

    newest = {r.source_name: r for r in store.latest_per_source(location.location_id)}

    assert newest['IMD'].temperature == 21.0
    assert newest['OpenAQ'].aqi == 90
    assert len(store.latest(location.location_id, limit=2)) == 2
