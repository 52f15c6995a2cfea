"""
In-memory record produced by every source adapter.
"""
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from apps.core.constants import READING_FIELDS


@dataclass
class NormalizedReading:
    """
    One source's view of current conditions at a location.

    Every metric is optional; a provider that does not report a metric
    leaves it as None rather than zero.
    """
    source_name: str
    quality_score: float = 0

    # Weather
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[str] = None
    cloud_cover: Optional[float] = None
    rainfall: Optional[float] = None
    snowfall: Optional[float] = None
    uv_index: Optional[float] = None

    # Air quality
    aqi: Optional[int] = None
    pm25: Optional[float] = None
    pm10: Optional[float] = None
    no2: Optional[float] = None
    o3: Optional[float] = None
    so2: Optional[float] = None
    co: Optional[float] = None

    alerts: List[Dict] = field(default_factory=list)

    def metrics(self) -> Dict[str, Any]:
        """Present metric values only."""
        return {
            name: getattr(self, name)
            for name in READING_FIELDS
            if getattr(self, name) is not None
        }

    def has_data(self) -> bool:
        return bool(self.metrics())

    def merge(self, other: 'NormalizedReading') -> 'NormalizedReading':
        """
        Combine two partial records from the same source.

        Values already present on self win over other's.
        """
        if other.source_name != self.source_name:
            raise ValueError(
                f"Cannot merge {other.source_name} into {self.source_name}"
            )

        missing = {
            name: value
            for name, value in other.metrics().items()
            if getattr(self, name) is None
        }
        return replace(self, alerts=self.alerts + other.alerts, **missing)

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
