"""
Time-scoped aggregation over stored readings.
"""
import calendar
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.cache import TTLCache
from apps.core.constants import AGGREGATE_METRICS, GRANULARITIES
from apps.core.exceptions import InvalidInput
from apps.core.utils import day_bounds, get_aqi_category, round_to
from apps.location.services import LocationRegistry
from apps.readings.store import ReadingStore

from .models import DailyAggregate

logger = logging.getLogger(__name__)

# Reading field -> (aggregate column, decimals) for plain means
MEAN_FIELDS = {
    'humidity': ('avg_humidity', 0),
    'aqi': ('avg_aqi', 0),
    'pm25': ('avg_pm25', 1),
    'pm10': ('avg_pm10', 1),
    'no2': ('avg_no2', 1),
    'o3': ('avg_o3', 1),
    'so2': ('avg_so2', 1),
    'co': ('avg_co', 0),
    'wind_speed': ('avg_wind_speed', 1),
}

AVERAGE_COLUMNS = ['avg_temperature'] + [column for column, _ in MEAN_FIELDS.values()]


def _mean(values):
    return sum(values) / len(values) if values else None


def _to_date(value):
    if isinstance(value, datetime):
        return timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    return value


class AggregationEngine:
    """
    Builds daily, monthly and yearly summaries and serves metric series.

    Aggregates are recomputed from scratch and replaced atomically; missing
    data produces no row rather than zeros.
    """

    def __init__(self, store: Optional[ReadingStore] = None, cache: Optional[TTLCache] = None,
                 registry: Optional[LocationRegistry] = None):
        self.store = store or ReadingStore()
        self.cache = cache
        self.registry = registry or LocationRegistry()
        self.settings = settings.URBAN_CLIMATE_SETTINGS
        self.expected_intervals = self.settings.get('EXPECTED_READINGS_PER_DAY', 24)

    # Daily

    def aggregate_day(self, location_id: str, day) -> Optional[Dict]:
        """
        Summarise one calendar day of readings.

        Args:
            location_id: Location identifier
            day: date (or datetime, reduced to its local date)

        Returns:
            Dict of DailyAggregate field values, or None if there were no readings
        """
        day = _to_date(day)
        start, end = day_bounds(day)
        readings = self.store.range(location_id, start, end)

        if not readings:
            logger.debug(f"No readings for {location_id} on {day}")
            return None

        return self._summarize_day(day, readings)

    def _summarize_day(self, day: date, readings) -> Dict:
        temperatures = [r.temperature for r in readings if r.temperature is not None]

        summary = {
            'date': day,
            'granularity': 'daily',
            'min_temperature': round_to(min(temperatures), 1) if temperatures else None,
            'avg_temperature': round_to(_mean(temperatures), 1),
            'max_temperature': round_to(max(temperatures), 1) if temperatures else None,
        }

        for field_name, (column, decimals) in MEAN_FIELDS.items():
            values = [getattr(r, field_name) for r in readings if getattr(r, field_name) is not None]
            summary[column] = round_to(_mean(values), decimals)

        summary['total_rainfall'] = self._total_rainfall(readings)

        hours = {timezone.localtime(r.captured_at).hour for r in readings}
        summary['completeness'] = round(min(len(hours) / self.expected_intervals, 1.0), 4)
        summary['sources_observed'] = sorted({r.source_name for r in readings})
        summary['reading_count'] = len(readings)
        summary['aqi_category'] = self._category_label(summary['avg_aqi'])

        return summary

    def _total_rainfall(self, readings) -> Optional[float]:
        """Sum over hours of the mean rainfall reported within each hour."""
        per_hour = defaultdict(list)
        for reading in readings:
            if reading.rainfall is not None:
                per_hour[timezone.localtime(reading.captured_at).hour].append(reading.rainfall)

        if not per_hour:
            return None
        return round_to(sum(_mean(values) for values in per_hour.values()), 1)

    def _category_label(self, avg_aqi) -> str:
        category = get_aqi_category(avg_aqi)
        return category['category'] if category else ''

    def regenerate_day(self, location_id: str, day) -> Optional[DailyAggregate]:
        """
        Replace the stored daily aggregate for a date.

        With no readings any stale row is removed and nothing is created.
        """
        day = _to_date(day)
        location = self.registry.get(location_id)
        summary = self.aggregate_day(location_id, day)
        return self._replace(location, day, 'daily', summary)

    # Monthly / yearly rollups

    def aggregate_month(self, location_id: str, year: int, month: int) -> Optional[Dict]:
        """Roll up stored daily aggregates for one month."""
        first = date(year, month, 1)
        days_in_month = calendar.monthrange(year, month)[1]
        last = first + timedelta(days=days_in_month - 1)

        daily = list(DailyAggregate.objects.filter(
            location__location_id=location_id,
            granularity='daily',
            date__gte=first,
            date__lte=last,
        ).order_by('date'))

        return self._rollup(daily, first, 'monthly', days_in_month)

    def regenerate_month(self, location_id: str, year: int, month: int) -> Optional[DailyAggregate]:
        location = self.registry.get(location_id)
        summary = self.aggregate_month(location_id, year, month)
        return self._replace(location, date(year, month, 1), 'monthly', summary)

    def aggregate_year(self, location_id: str, year: int) -> Optional[Dict]:
        """Roll up stored monthly aggregates for one year."""
        monthly = list(DailyAggregate.objects.filter(
            location__location_id=location_id,
            granularity='monthly',
            date__year=year,
        ).order_by('date'))

        return self._rollup(monthly, date(year, 1, 1), 'yearly', 12)

    def regenerate_year(self, location_id: str, year: int) -> Optional[DailyAggregate]:
        location = self.registry.get(location_id)
        summary = self.aggregate_year(location_id, year)
        return self._replace(location, date(year, 1, 1), 'yearly', summary)

    def _rollup(self, rows: List[DailyAggregate], period_start: date, granularity: str, expected: int) -> Optional[Dict]:
        if not rows:
            return None

        summary = {
            'date': period_start,
            'granularity': granularity,
        }

        minimums = [row.min_temperature for row in rows if row.min_temperature is not None]
        maximums = [row.max_temperature for row in rows if row.max_temperature is not None]
        summary['min_temperature'] = min(minimums) if minimums else None
        summary['max_temperature'] = max(maximums) if maximums else None

        for column in AVERAGE_COLUMNS:
            values = [getattr(row, column) for row in rows if getattr(row, column) is not None]
            summary[column] = round_to(_mean(values), 1)

        rainfall = [row.total_rainfall for row in rows if row.total_rainfall is not None]
        summary['total_rainfall'] = round_to(sum(rainfall), 1) if rainfall else None

        summary['completeness'] = round(min(len(rows) / expected, 1.0), 4)
        summary['sources_observed'] = sorted({s for row in rows for s in row.sources_observed})
        summary['reading_count'] = sum(row.reading_count for row in rows)
        summary['aqi_category'] = self._category_label(summary['avg_aqi'])

        return summary

    def _replace(self, location, period_start: date, granularity: str, summary: Optional[Dict]) -> Optional[DailyAggregate]:
        with transaction.atomic():
            deleted, _ = DailyAggregate.objects.filter(
                location=location,
                date=period_start,
                granularity=granularity,
            ).delete()

            if summary is None:
                if deleted:
                    logger.info(f"Removed stale {granularity} aggregate for {location.location_id} {period_start}")
                return None

            aggregate = DailyAggregate.objects.create(location=location, **summary)

        if self.cache is not None:
            self.cache.invalidate_pattern(f"*:{location.location_id}:*")

        logger.info(f"Regenerated {granularity} aggregate for {location.location_id} {period_start}")
        return aggregate

    # Series

    def get_series(self, location_id: str, metric: str, start, end, granularity: str = 'daily',
                   source: Optional[str] = None) -> List[Dict]:
        """
        Ordered metric series for a location.

        Args:
            location_id: Location identifier
            metric: One of AGGREGATE_METRICS
            start: First date (inclusive)
            end: Last date (inclusive)
            granularity: hourly, daily, monthly or yearly
            source: Only use readings from this source. Daily values are then
                computed from raw readings, since stored aggregates mix sources.

        Returns:
            List of {date, value, sourceCount}
        """
        if metric not in AGGREGATE_METRICS:
            raise InvalidInput(f"Unknown metric: {metric}")
        if granularity not in GRANULARITIES:
            raise InvalidInput(f"Unknown granularity: {granularity}")
        if source and granularity not in ('hourly', 'daily'):
            raise InvalidInput("Source filtering is only available for hourly and daily series")

        start, end = _to_date(start), _to_date(end)
        if start > end:
            raise InvalidInput("startDate must not be after endDate")

        def build():
            if granularity == 'hourly':
                return self._hourly_series(location_id, metric, start, end, source)
            if source:
                return self._source_daily_series(location_id, metric, start, end, source)
            return self._stored_series(location_id, metric, start, end, granularity)

        if self.cache is None:
            return build()

        key = (
            f"series:{location_id}:{source or 'all'}:{metric}:{granularity}:"
            f"{start.isoformat()}:{end.isoformat()}"
        )
        ttl = self.settings.get('CACHE_TTL', {}).get('SERIES')
        series, _ = self.cache.get_or_set(key, build, ttl)
        return series

    def _hourly_series(self, location_id, metric, start, end, source=None) -> List[Dict]:
        range_start, _ = day_bounds(start)
        _, range_end = day_bounds(end)

        buckets = defaultdict(list)
        for reading in self.store.range(location_id, range_start, range_end, source=source):
            value = getattr(reading, metric)
            if value is None:
                continue
            hour = timezone.localtime(reading.captured_at).replace(minute=0, second=0, microsecond=0)
            buckets[hour].append((reading.source_name, value))

        return [
            {
                'date': hour.isoformat(),
                'value': round_to(_mean([value for _, value in entries]), 2),
                'sourceCount': len({source for source, _ in entries}),
            }
            for hour, entries in sorted(buckets.items())
        ]

    def _source_daily_series(self, location_id, metric, start, end, source) -> List[Dict]:
        range_start, _ = day_bounds(start)
        _, range_end = day_bounds(end)

        by_day = defaultdict(list)
        for reading in self.store.range(location_id, range_start, range_end, source=source):
            by_day[timezone.localtime(reading.captured_at).date()].append(reading)

        column = AGGREGATE_METRICS[metric]
        return [
            {
                'date': day.isoformat(),
                'value': self._summarize_day(day, readings)[column],
                'sourceCount': 1,
            }
            for day, readings in sorted(by_day.items())
        ]

    def _stored_series(self, location_id, metric, start, end, granularity) -> List[Dict]:
        column = AGGREGATE_METRICS[metric]
        rows = DailyAggregate.objects.filter(
            location__location_id=location_id,
            granularity=granularity,
            date__gte=start,
            date__lte=end,
        ).order_by('date')

        return [
            {
                'date': row.date.isoformat(),
                'value': getattr(row, column),
                'sourceCount': len(row.sources_observed),
            }
            for row in rows
        ]
