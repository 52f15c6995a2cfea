"""
Analytics over aggregated series: trends, correlation, heatmaps,
comparisons and anomalies.
"""
import copy
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.db.models import Avg, Count, Max, Min
from django.utils import timezone

from apps.aggregation.engine import AggregationEngine
from apps.aggregation.series import (
    calculate_moving_average,
    detect_anomalies,
    fill_missing_data,
)
from apps.core.cache import TTLCache, cache_from_settings
from apps.core.constants import AGGREGATE_METRICS
from apps.core.exceptions import InsufficientData, InvalidInput
from apps.core.utils import day_bounds, get_category_for_metric, round_to
from apps.location.services import LocationRegistry
from apps.readings.models import Reading

from .statistics import (
    calculate_correlation,
    calculate_trend,
    correlation_direction,
    correlation_strength,
    summarize,
)

logger = logging.getLogger(__name__)

MIN_CORRELATION_POINTS = 10


class AnalyticsService:
    """
    Cached analytics over daily aggregates.

    Every public method returns a dict carrying the computed statistics, the
    underlying series and a ``cached`` flag.
    """

    def __init__(self, cache: Optional[TTLCache] = None, engine: Optional[AggregationEngine] = None,
                 registry: Optional[LocationRegistry] = None):
        self.cache = cache if cache is not None else cache_from_settings()
        self.registry = registry or LocationRegistry()
        self.engine = engine or AggregationEngine(registry=self.registry)
        self.settings = settings.URBAN_CLIMATE_SETTINGS
        self.ttl = self.settings.get('CACHE_TTL', {})

    def _check_metric(self, metric: str):
        if metric not in AGGREGATE_METRICS:
            raise InvalidInput(f"Unknown metric: {metric}")

    def _check_days(self, days) -> int:
        try:
            days = int(days)
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid number of days: {days}")
        if days < 1:
            raise InvalidInput("days must be at least 1")
        return days

    def _period(self, days: int) -> Dict:
        end = timezone.localdate()
        start = end - timedelta(days=days)
        return {'startDate': start, 'endDate': end, 'days': days}

    def _daily_series(self, location_id: str, metric: str, period: Dict, source: Optional[str] = None) -> List[Dict]:
        return self.engine.get_series(
            location_id, metric, period['startDate'], period['endDate'], 'daily', source=source
        )

    def _cached(self, key: str, factory, ttl_name: str) -> Dict:
        result, cached = self.cache.get_or_set(key, factory, self.ttl.get(ttl_name))
        # Callers get their own copy; the cached entry is never handed out
        return {**copy.deepcopy(result), 'cached': cached}

    # Trends

    def get_trends(self, location_id: str, metric: str = 'temperature', days: int = 30,
                   fill_gaps: bool = False, source: Optional[str] = None) -> Dict:
        """
        Daily series for a metric with summary statistics and direction.

        Args:
            location_id: Location identifier
            metric: Aggregate metric name
            days: Look-back window
            fill_gaps: Pad missing days and interpolate interior gaps
            source: Restrict to readings from one source

        Raises:
            InvalidInput: unknown location or metric
            InsufficientData: no aggregated data in the window
        """
        self._check_metric(metric)
        days = self._check_days(days)
        location = self.registry.get(location_id)

        def build():
            period = self._period(days)
            series = self._daily_series(location_id, metric, period, source)
            values = [point['value'] for point in series if point['value'] is not None]
            if not values:
                raise InsufficientData(
                    f"No {metric} data for {location_id} in the last {days} days",
                    required=1,
                    available=0,
                )

            if fill_gaps:
                series = fill_missing_data(self._pad_days(series, period))

            return {
                'locationId': location_id,
                'locationName': location.name,
                'metric': metric,
                'sourceFilter': source,
                'period': self._format_period(period),
                'data': series,
                'movingAverage': calculate_moving_average([point['value'] for point in series]),
                'statistics': {
                    **summarize(values),
                    'trend': calculate_trend(values),
                },
            }

        key = f"trends:{location_id}:{source or 'all'}:{metric}:{days}:{int(fill_gaps)}"
        return self._cached(key, build, 'TRENDS')

    def _pad_days(self, series: List[Dict], period: Dict) -> List[Dict]:
        by_date = {point['date']: point for point in series}
        padded = []
        day = period['startDate']
        while day <= period['endDate']:
            key = day.isoformat()
            padded.append(by_date.get(key, {'date': key, 'value': None, 'sourceCount': 0}))
            day += timedelta(days=1)
        return padded

    def _format_period(self, period: Dict) -> Dict:
        return {
            'startDate': period['startDate'].isoformat(),
            'endDate': period['endDate'].isoformat(),
            'days': period['days'],
        }

    # Correlation

    def get_correlation(self, location_id: str, metric1: str = 'temperature', metric2: str = 'aqi',
                        days: int = 30, source: Optional[str] = None) -> Dict:
        """
        Pearson correlation between two metrics over paired daily values.

        Raises:
            InsufficientData: fewer than 10 days carry both metrics
        """
        self._check_metric(metric1)
        self._check_metric(metric2)
        days = self._check_days(days)
        self.registry.get(location_id)

        def build():
            period = self._period(days)
            first = {p['date']: p['value'] for p in self._daily_series(location_id, metric1, period, source)}
            second = {p['date']: p['value'] for p in self._daily_series(location_id, metric2, period, source)}

            scatter = [
                {'date': day, 'x': first[day], 'y': second[day]}
                for day in sorted(first)
                if first[day] is not None and second.get(day) is not None
            ]

            if len(scatter) < MIN_CORRELATION_POINTS:
                raise InsufficientData(
                    f"Correlation needs at least {MIN_CORRELATION_POINTS} paired points",
                    required=MIN_CORRELATION_POINTS,
                    available=len(scatter),
                )

            r = calculate_correlation([p['x'] for p in scatter], [p['y'] for p in scatter])

            return {
                'locationId': location_id,
                'metric1': metric1,
                'metric2': metric2,
                'sourceFilter': source,
                'period': self._format_period(period),
                'correlation': {
                    'coefficient': r,
                    'strength': correlation_strength(r),
                    'direction': correlation_direction(r),
                },
                'scatterData': scatter,
                'dataPoints': len(scatter),
            }

        key = f"correlation:{location_id}:{source or 'all'}:{metric1}:{metric2}:{days}"
        return self._cached(key, build, 'CORRELATION')

    # Heatmap

    def get_heatmap(self, metric: str = 'aqi', day: Optional[date] = None, source: Optional[str] = None) -> Dict:
        """
        Per-location mean/min/max of raw readings within a day either side
        of ``day``, highest mean first.
        """
        self._check_metric(metric)
        day = day or timezone.localdate()

        def build():
            day_start, _ = day_bounds(day)
            window_start = day_start - timedelta(days=1)
            window_end = day_start + timedelta(days=1)

            readings = Reading.objects.filter(
                captured_at__gte=window_start,
                captured_at__lte=window_end,
                **{f"{metric}__isnull": False}
            )
            if source:
                readings = readings.filter(source_name=source)

            rows = (
                readings
                .values('location__location_id', 'location__name')
                .annotate(
                    avg_value=Avg(metric),
                    min_value=Min(metric),
                    max_value=Max(metric),
                    data_points=Count('id'),
                )
                .order_by('-avg_value')
            )

            cells = [
                {
                    'locationId': row['location__location_id'],
                    'locationName': row['location__name'],
                    'value': round_to(row['avg_value'], 1),
                    'min': round_to(row['min_value'], 1),
                    'max': round_to(row['max_value'], 1),
                    'category': get_category_for_metric(metric, row['avg_value']),
                    'dataPoints': row['data_points'],
                }
                for row in rows
            ]

            return {
                'metric': metric,
                'sourceFilter': source,
                'date': day.isoformat(),
                'locations': cells,
                'summary': {
                    'totalLocations': len(cells),
                    'avgValue': summarize([cell['value'] for cell in cells])['average'],
                    'highest': cells[0] if cells else None,
                    'lowest': cells[-1] if cells else None,
                },
            }

        key = f"heatmap:{source or 'all'}:{metric}:{day.isoformat()}"
        return self._cached(key, build, 'HEATMAP')

    # Comparison

    def compare_locations(self, location_ids: List[str], metric: str = 'aqi', days: int = 7,
                          source: Optional[str] = None) -> Dict:
        """
        Side-by-side statistics for two or more locations.

        Raises:
            InvalidInput: fewer than two locations, or an unknown one
        """
        location_ids = [i.strip() for i in (location_ids or []) if i and i.strip()]
        if len(location_ids) < 2:
            raise InvalidInput("At least 2 locations are required for comparison")
        self._check_metric(metric)
        days = self._check_days(days)
        locations = self.registry.get_many(location_ids)

        def build():
            period = self._period(days)
            comparisons = []
            for location in locations:
                series = self._daily_series(location.location_id, metric, period, source)
                values = [point['value'] for point in series if point['value'] is not None]
                comparisons.append({
                    'locationId': location.location_id,
                    'locationName': location.name,
                    **summarize(values),
                    'trend': calculate_trend(values),
                    'timeSeries': series,
                })

            return {
                'metric': metric,
                'sourceFilter': source,
                'period': self._format_period(period),
                'locations': comparisons,
            }

        key = f"compare:{source or 'all'}:{metric}:{days}:{':'.join(location_ids)}:"
        return self._cached(key, build, 'COMPARISON')

    # Anomalies

    def get_anomalies(self, location_id: str, metric: str = 'aqi', days: int = 30,
                      threshold: Optional[float] = None, source: Optional[str] = None) -> Dict:
        """Days whose value lies more than ``threshold`` std devs from the mean."""
        self._check_metric(metric)
        days = self._check_days(days)
        self.registry.get(location_id)
        if threshold is None:
            threshold = self.settings.get('ANOMALY_THRESHOLD', 3.0)

        def build():
            period = self._period(days)
            series = self._daily_series(location_id, metric, period, source)
            return {
                'locationId': location_id,
                'metric': metric,
                'sourceFilter': source,
                'threshold': threshold,
                'period': self._format_period(period),
                'anomalies': detect_anomalies(series, threshold),
                'data': series,
                'dataPoints': len(series),
            }

        key = f"anomalies:{location_id}:{source or 'all'}:{metric}:{days}:{threshold}"
        return self._cached(key, build, 'ANOMALIES')
