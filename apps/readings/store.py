"""
Append-only access to stored readings.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from django.utils import timezone

from apps.core.constants import READING_FIELDS
from apps.core.exceptions import InvalidInput
from apps.adapters.schemas import NormalizedReading

from .models import Reading

logger = logging.getLogger(__name__)


class ReadingStore:
    """
    Insert-only store of per-source readings.

    There is no update path. Storage errors (DatabaseError) propagate to
    the caller.
    """

    def append(self, location, normalized: NormalizedReading, captured_at: Optional[datetime] = None) -> Reading:
        """
        Persist one source's record verbatim.

        Args:
            location: Location model instance
            normalized: Record from an adapter
            captured_at: Cycle timestamp (defaults to now)

        Returns:
            The stored Reading
        """
        reading = self._build(location, normalized, captured_at or timezone.now())
        reading.save()
        return reading

    def append_many(self, location, records: Iterable[NormalizedReading], captured_at: Optional[datetime] = None) -> List[Reading]:
        """Persist every record of one collection cycle under a shared timestamp."""
        captured_at = captured_at or timezone.now()
        readings = [self._build(location, record, captured_at) for record in records]
        if not readings:
            return []

        created = Reading.objects.bulk_create(readings)
        logger.debug(f"Stored {len(created)} readings for {location.location_id}")
        return created

    def _build(self, location, normalized: NormalizedReading, captured_at: datetime) -> Reading:
        values = {name: getattr(normalized, name) for name in READING_FIELDS}
        return Reading(
            location=location,
            location_name=location.name,
            captured_at=captured_at,
            source_name=normalized.source_name,
            quality_score=normalized.quality_score,
            alerts=list(normalized.alerts),
            **values
        )

    def range(self, location_id: str, start: datetime, end: datetime, descending: bool = False,
              source: Optional[str] = None) -> List[Reading]:
        """
        Readings captured in [start, end), optionally from one source only.

        Raises:
            InvalidInput: if start is after end
        """
        if start > end:
            raise InvalidInput("start must not be after end")

        ordering = '-captured_at' if descending else 'captured_at'
        readings = Reading.objects.filter(
            location__location_id=location_id,
            captured_at__gte=start,
            captured_at__lt=end,
        )
        if source:
            readings = readings.filter(source_name=source)
        return list(readings.order_by(ordering, 'source_name'))

    def latest(self, location_id: str, limit: int = 10) -> List[Reading]:
        """Most recent readings, newest first."""
        return list(
            Reading.objects.filter(location__location_id=location_id)
            .order_by('-captured_at', 'source_name')[:limit]
        )

    def latest_per_source(self, location_id: str) -> List[Reading]:
        """Newest reading of each source for a location."""
        seen = set()
        newest = []
        for reading in Reading.objects.filter(location__location_id=location_id).order_by('-captured_at', '-id'):
            if reading.source_name in seen:
                continue
            seen.add(reading.source_name)
            newest.append(reading)
        return newest
