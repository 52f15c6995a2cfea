"""
Collection orchestrator: fans a location out to every source adapter and
stores what comes back.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from typing import Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.db.models import Avg, Count, Max
from django.utils import timezone

from apps.adapters.registry import build_adapters
from apps.adapters.schemas import NormalizedReading
from apps.core.cache import TTLCache
from apps.location.services import LocationRegistry
from apps.readings.models import Reading
from apps.readings.store import ReadingStore

logger = logging.getLogger(__name__)


def _location_fields(location) -> Tuple[str, str, float, float]:
    """(location_id, name, latitude, longitude) from a Location or its contract dict."""
    if isinstance(location, dict):
        return (
            location.get('locationId'),
            location.get('locationName', ''),
            location.get('latitude'),
            location.get('longitude'),
        )
    return location.location_id, location.name, location.latitude, location.longitude


class CollectionOrchestrator:
    """
    Coordinates one collection cycle:
    1. Dispatch primary adapters concurrently, each bounded by a deadline
    2. Run fallback adapters for primaries that produced nothing
    3. Append each source's record to the reading store
    4. Invalidate cached results for the location

    A failing, slow or empty adapter only removes its own record.
    """

    def __init__(self, adapters: Optional[List] = None, store: Optional[ReadingStore] = None,
                 cache: Optional[TTLCache] = None, registry: Optional[LocationRegistry] = None):
        self.settings = settings.URBAN_CLIMATE_SETTINGS
        self.adapters = build_adapters() if adapters is None else list(adapters)
        self.store = store or ReadingStore()
        self.cache = cache
        self.registry = registry or LocationRegistry()
        self.timeout = self.settings.get('COLLECTION_TIMEOUT', 10)
        self.max_workers = self.settings.get('COLLECTION_MAX_WORKERS', 8)

    @property
    def primary_adapters(self) -> List:
        return [a for a in self.adapters if not a.FALLBACK_FOR]

    @property
    def fallback_adapters(self) -> List:
        return [a for a in self.adapters if a.FALLBACK_FOR]

    def collect(self, location, families: Optional[Iterable[str]] = None) -> List[NormalizedReading]:
        """
        Gather one record per responding source.

        Args:
            location: Location model or {locationId, locationName, latitude, longitude}
            families: Restrict to adapters implementing 'weather' and/or 'air_quality'

        Returns:
            List of NormalizedReading, one per source that returned data
        """
        records, _ = self._collect(location, families)
        return records

    def _collect(self, location, families=None) -> Tuple[List[NormalizedReading], List[str]]:
        families = set(families) if families is not None else None
        _, name, lat, lon = _location_fields(location)

        primaries = self._eligible(self.primary_adapters, families)
        records, errors = self._dispatch(primaries, lat, lon, name, families)

        produced = {record.source_name for record in records}
        fallbacks = [
            adapter for adapter in self._eligible(self.fallback_adapters, families)
            if adapter.FALLBACK_FOR not in produced
        ]
        if fallbacks:
            logger.debug(f"Running fallbacks for {name}: {[a.SOURCE_NAME for a in fallbacks]}")
            fallback_records, fallback_errors = self._dispatch(fallbacks, lat, lon, name, families)
            records.extend(fallback_records)
            errors.extend(fallback_errors)

        logger.info(f"Collected {len(records)} source records for {name}")
        return records, errors

    def _eligible(self, adapters: List, families) -> List:
        eligible = []
        for adapter in adapters:
            if families is not None and not (adapter.capabilities() & families):
                continue
            try:
                available = adapter.is_available()
            except Exception as e:
                logger.error(f"Availability check failed for {adapter.SOURCE_NAME}: {e}")
                available = False
            if not available:
                logger.debug(f"Skipping unavailable adapter {adapter.SOURCE_NAME}")
                continue
            eligible.append(adapter)
        return eligible

    def _dispatch(self, adapters: List, lat, lon, name, families) -> Tuple[List[NormalizedReading], List[str]]:
        """
        Run adapters in parallel. Anything not finished by the deadline is
        abandoned; the pool is shut down without waiting for it.
        """
        records = []
        errors = []
        if not adapters:
            return records, errors

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        future_to_adapter = {
            executor.submit(self._safe_fetch, adapter, lat, lon, name, families): adapter
            for adapter in adapters
        }

        try:
            for future in as_completed(future_to_adapter, timeout=self.timeout):
                adapter = future_to_adapter[future]
                record = future.result()
                if record is None:
                    errors.append(f"{adapter.SOURCE_NAME}: no data")
                    continue
                records.append(record)
                logger.debug(f"Fetched {adapter.SOURCE_NAME} for {name}")
        except FuturesTimeout:
            for future, adapter in future_to_adapter.items():
                if not future.done():
                    logger.warning(f"{adapter.SOURCE_NAME} timed out after {self.timeout}s for {name}")
                    errors.append(f"{adapter.SOURCE_NAME}: timed out")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return records, errors

    def _safe_fetch(self, adapter, lat, lon, name, families) -> Optional[NormalizedReading]:
        """Safely fetch data with error handling."""
        try:
            return adapter.fetch_reading(lat, lon, name, families=families)
        except Exception as e:
            logger.error(f"Error in {adapter.SOURCE_NAME}: {e}")
            return None

    def collect_location(self, location, families: Optional[Iterable[str]] = None) -> Dict:
        """
        Collect and store one cycle for a location.

        Returns:
            {location_id, location_name, sources, records_stored, errors}
        """
        if isinstance(location, dict):
            location = self.registry.get(location.get('locationId'))

        records, errors = self._collect(location, families)
        stored = self.store.append_many(location, records, captured_at=timezone.now())

        if stored and self.cache is not None:
            self.cache.invalidate_pattern(f"*:{location.location_id}:*")
            # Heatmaps span every location
            self.cache.invalidate_pattern("heatmap:*")

        return {
            'location_id': location.location_id,
            'location_name': location.name,
            'sources': [record.source_name for record in records],
            'records_stored': len(stored),
            'errors': errors,
        }

    def collect_all(self, locations=None) -> Dict:
        """
        Collect every active location in turn. One location's failure
        never stops the others.
        """
        locations = self.registry.active() if locations is None else list(locations)
        results = {
            'total_locations': len(locations),
            'successful_locations': 0,
            'failed_locations': 0,
            'total_records': 0,
            'errors': [],
        }

        for location in locations:
            _, name, _, _ = _location_fields(location)
            try:
                stats = self.collect_location(location)
            except Exception as e:
                logger.error(f"Collection failed for {name}: {e}")
                results['failed_locations'] += 1
                results['errors'].append(f"{name}: {e}")
                continue

            if stats['records_stored']:
                results['successful_locations'] += 1
                results['total_records'] += stats['records_stored']
            else:
                results['failed_locations'] += 1
                results['errors'].append(f"{name}: no source returned data")

        logger.info(
            f"Collection complete: {results['successful_locations']}/{results['total_locations']} "
            f"locations, {results['total_records']} records"
        )
        return results

    def get_statistics(self) -> Dict:
        """Stored reading counts per source."""
        per_source = list(
            Reading.objects.values('source_name')
            .annotate(count=Count('id'), avg_quality=Avg('quality_score'))
            .order_by('-count', 'source_name')
        )
        latest = Reading.objects.aggregate(latest=Max('captured_at'))['latest']

        return {
            'by_source': [
                {
                    'source': row['source_name'],
                    'count': row['count'],
                    'avg_quality_score': round(row['avg_quality'], 1) if row['avg_quality'] is not None else None,
                }
                for row in per_source
            ],
            'total_readings': sum(row['count'] for row in per_source),
            'latest_capture': latest.isoformat() if latest else None,
        }
