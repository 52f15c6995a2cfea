from datetime import datetime

import pytest
from django.utils import timezone

from apps.adapters.schemas import NormalizedReading
from apps.location.models import Location
from apps.readings.store import ReadingStore


@pytest.fixture
def location(db):
    return Location.objects.create(
        location_id='city_003',
        name='Bangalore',
        state='Karnataka',
        latitude=12.9716,
        longitude=77.5946,
    )


@pytest.fixture
def other_location(db):
    return Location.objects.create(
        location_id='city_001',
        name='Mumbai',
        state='Maharashtra',
        latitude=19.0760,
        longitude=72.8777,
    )


def local_dt(*args):
    return timezone.make_aware(datetime(*args))


@pytest.fixture
def store():
    return ReadingStore()


@pytest.fixture
def add_reading(store):
    """Append a single-source reading at a local timestamp."""
    def _add(location, captured_at, source_name='OpenMeteo', **values):
        record = NormalizedReading(source_name=source_name, quality_score=90, **values)
        return store.append(location, record, captured_at=captured_at)
    return _add
