"""
OpenAQ adapter: averages the latest measurements of nearby stations.
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from apps.core.utils import calculate_aqi_from_pm25, round_to, to_float

from .base import AirQualitySource, BaseAdapter
from .schemas import NormalizedReading

logger = logging.getLogger(__name__)

OPENAQ_PARAMETERS = ['pm25', 'pm10', 'no2', 'o3', 'so2', 'co']

SEARCH_RADIUS_M = 25000


class OpenAQAdapter(BaseAdapter, AirQualitySource):
    """
    Adapter for OpenAQ /v2/latest.
    Stations within 25 km are averaged per pollutant.
    """

    SOURCE_NAME = "OpenAQ"
    SOURCE_CODE = "OPENAQ"
    API_BASE_URL = "https://api.openaq.org/v2/"
    QUALITY_SCORE = 88

    def fetch_air_quality(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        params = {
            'coordinates': f"{lat},{lon}",
            'radius': SEARCH_RADIUS_M,
            'limit': 100,
            'order_by': 'distance',
        }

        raw_data = self._make_request('latest', params=params)

        if not raw_data or not raw_data.get('results'):
            logger.debug(f"{self.SOURCE_NAME}: No stations near {location_name}")
            return None

        averages = self.average_measurements(raw_data['results'])

        # A reading needs at least one of the primary pollutants
        if all(averages.get(p) is None for p in ('pm25', 'pm10', 'no2')):
            return None

        pm25 = averages.get('pm25')
        return self._new_reading(
            aqi=calculate_aqi_from_pm25(pm25) if pm25 is not None else None,
            **averages
        )

    def average_measurements(self, results: List[Dict]) -> Dict:
        """
        Mean of every station's latest value per pollutant, 1 dp.

        Returns:
            Dict with a key per pollutant; None where no station reported it
        """
        collected = defaultdict(list)

        for result in results:
            for measurement in result.get('measurements') or []:
                parameter = measurement.get('parameter')
                value = to_float(measurement.get('value'))
                if parameter in OPENAQ_PARAMETERS and value is not None and value >= 0:
                    collected[parameter].append(value)

        return {
            parameter: round_to(sum(collected[parameter]) / len(collected[parameter]), 1)
            if collected[parameter] else None
            for parameter in OPENAQ_PARAMETERS
        }
