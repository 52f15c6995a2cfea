"""
Pick one value per metric from several sources' readings.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings

from apps.core.constants import READING_FIELDS
from apps.core.exceptions import InvalidInput
from apps.core.utils import get_aqi_category

logger = logging.getLogger(__name__)


class ConsensusResolver:
    """
    Priority-based value selection across sources.

    A preferred source's present value always wins; otherwise the first
    present value in priority order is used. Sources not in the priority
    list rank after every listed source, alphabetically. Values are never
    averaged.

    Works with any objects exposing ``source_name`` and metric attributes
    (Reading rows or NormalizedReading records).
    """

    def __init__(self, priority: Optional[List[str]] = None):
        if priority is None:
            priority = settings.URBAN_CLIMATE_SETTINGS.get('SOURCE_PRIORITY', [])
        self.priority = list(priority)

    def _rank(self, source_name: str):
        try:
            return (0, self.priority.index(source_name), '')
        except ValueError:
            return (1, 0, source_name)

    def _ordered(self, readings: Iterable, preferred_source: Optional[str] = None) -> List:
        ordered = sorted(readings, key=lambda r: self._rank(r.source_name))
        if preferred_source:
            preferred = [r for r in ordered if r.source_name == preferred_source]
            others = [r for r in ordered if r.source_name != preferred_source]
            ordered = preferred + others
        return ordered

    def _check_metric(self, metric: str):
        if metric not in READING_FIELDS:
            raise InvalidInput(f"Unknown metric: {metric}")

    def resolve(self, readings: Iterable, metric: str, preferred_source: Optional[str] = None) -> Optional[Any]:
        """
        Consensus value for a metric, or None if no source reported it.
        """
        return self.resolve_with_source(readings, metric, preferred_source)['value']

    def resolve_with_source(self, readings: Iterable, metric: str, preferred_source: Optional[str] = None) -> Dict:
        """
        Consensus value plus provenance.

        Returns:
            {value, source, alternatives} where alternatives lists every other
            source's present value as {source, value}
        """
        self._check_metric(metric)

        chosen = None
        alternatives = []
        for reading in self._ordered(readings, preferred_source):
            value = getattr(reading, metric, None)
            if value is None:
                continue
            if chosen is None:
                chosen = reading
            else:
                alternatives.append({'source': reading.source_name, 'value': value})

        if chosen is None:
            return {'value': None, 'source': None, 'alternatives': []}

        return {
            'value': getattr(chosen, metric),
            'source': chosen.source_name,
            'alternatives': alternatives,
        }

    def resolve_reading(self, readings: Iterable, preferred_source: Optional[str] = None) -> Dict:
        """
        Consensus snapshot across every metric.

        Returns:
            Dict with one key per reported metric, plus ``aqi_category``,
            ``sources`` (metric -> chosen source) and ``source_count``
        """
        readings = list(readings)
        snapshot = {}
        chosen_sources = {}

        for metric in READING_FIELDS:
            result = self.resolve_with_source(readings, metric, preferred_source)
            if result['value'] is None:
                continue
            snapshot[metric] = result['value']
            chosen_sources[metric] = result['source']

        category = get_aqi_category(snapshot.get('aqi'))
        snapshot['aqi_category'] = category['category'] if category else None
        snapshot['sources'] = chosen_sources
        snapshot['source_count'] = len({r.source_name for r in readings})

        return snapshot
