import pytest

from apps.adapters.schemas import NormalizedReading
from apps.consensus.resolver import ConsensusResolver
from apps.core.exceptions import InvalidInput

PRIORITY = ['IMD', 'OpenMeteo', 'WeatherUnion', 'OpenAQ']


@pytest.fixture
def resolver():
    return ConsensusResolver(priority=PRIORITY)


def reading(source, **values):
    return NormalizedReading(source_name=source, **values)


def test_first_present_value_by_priority(resolver):
    readings = [
        reading('WeatherUnion', temperature=28.5),
        reading('OpenMeteo', temperature=28.0),
        reading('IMD'),
    ]
    assert resolver.resolve(readings, 'temperature') == 28.0


def test_preferred_source_wins_when_present(resolver):
    readings = [
        reading('IMD', temperature=27.0),
        reading('WeatherUnion', temperature=28.5),
    ]
    assert resolver.resolve(readings, 'temperature', preferred_source='WeatherUnion') == 28.5


def test_preferred_source_without_value_falls_back(resolver):
    readings = [
        reading('IMD', temperature=27.0),
        reading('WeatherUnion', humidity=60),
    ]
    assert resolver.resolve(readings, 'temperature', preferred_source='WeatherUnion') == 27.0


def test_unlisted_sources_rank_last_alphabetically(resolver):
    readings = [
        reading('Zeta', aqi=90),
        reading('Alpha', aqi=80),
    ]
    assert resolver.resolve(readings, 'aqi') == 80

    readings.append(reading('OpenAQ', aqi=70))
    assert resolver.resolve(readings, 'aqi') == 70


def test_zero_is_a_present_value(resolver):
    readings = [reading('IMD', rainfall=0.0), reading('OpenMeteo', rainfall=1.2)]
    assert resolver.resolve(readings, 'rainfall') == 0.0


def test_absent_when_no_source_reports(resolver):
    assert resolver.resolve([reading('IMD')], 'aqi') is None
    assert resolver.resolve([], 'aqi') is None


def test_resolve_with_source_keeps_alternatives(resolver):
    readings = [
        reading('WeatherUnion', temperature=28.5),
        reading('OpenMeteo', temperature=28.0),
        reading('IMD'),
    ]
    result = resolver.resolve_with_source(readings, 'temperature')

    assert result == {
        'value': 28.0,
        'source': 'OpenMeteo',
        'alternatives': [{'source': 'WeatherUnion', 'value': 28.5}],
    }


def test_unknown_metric_is_rejected(resolver):
    with pytest.raises(InvalidInput):
        resolver.resolve([reading('IMD')], 'visibility')


def test_resolve_reading_snapshot(resolver):
    readings = [
        reading('OpenAQ', pm25=40.0, aqi=112),
        reading('OpenMeteo', temperature=31.0, aqi=95),
    ]
    snapshot = resolver.resolve_reading(readings)

    assert snapshot['temperature'] == 31.0
    assert snapshot['aqi'] == 95
    assert snapshot['pm25'] == 40.0
    assert snapshot['aqi_category'] == 'Moderate'
    assert snapshot['sources'] == {'temperature': 'OpenMeteo', 'aqi': 'OpenMeteo', 'pm25': 'OpenAQ'}
    assert snapshot['source_count'] == 2
    assert 'humidity' not in snapshot


def test_default_priority_comes_from_settings(settings):
    settings.URBAN_CLIMATE_SETTINGS = {'SOURCE_PRIORITY': ['OpenAQ', 'IMD']}
    resolver = ConsensusResolver()
    readings = [reading('IMD', aqi=50), reading('OpenAQ', aqi=60)]
    assert resolver.resolve(readings, 'aqi') == 60
