"""
India-only air quality estimators.

UrbanEmissions.info and OpenCity publish no public API; both are served
from Open-Meteo air quality for locations inside India and reported under
their own source names with lower quality scores.
"""
import logging
from typing import Optional

from apps.core.constants import INDIA_BOUNDS
from apps.core.utils import is_within_bounds

from .base import AirQualitySource, BaseAdapter
from .openmeteo import AIR_QUALITY_URL, parse_current_air_quality
from .schemas import NormalizedReading

logger = logging.getLogger(__name__)


class IndiaEstimateAdapter(BaseAdapter, AirQualitySource):
    """
    Shared behaviour for the estimate sources.
    Subclasses choose which pollutants they report.
    """

    API_BASE_URL = "https://air-quality-api.open-meteo.com/v1/"
    POLLUTANT_FIELDS = []
    REPORTED_FIELDS = []

    def fetch_air_quality(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        if not is_within_bounds(lat, lon, INDIA_BOUNDS):
            logger.debug(f"{self.SOURCE_NAME}: {location_name or (lat, lon)} is not in India, skipping")
            return None

        params = {
            'latitude': lat,
            'longitude': lon,
            'current': ','.join(self.POLLUTANT_FIELDS + ['us_aqi']),
            'timezone': 'Asia/Kolkata',
        }

        raw_data = self._make_request(AIR_QUALITY_URL, params=params)

        if not raw_data or not raw_data.get('current'):
            return None

        values = parse_current_air_quality(raw_data['current'], prefer_us_aqi=True)
        # Drop fields this source does not report (uv_index, unrequested pollutants)
        values = {
            name: value for name, value in values.items()
            if name == 'aqi' or name in self.REPORTED_FIELDS
        }
        return self._new_reading(**values)


class UrbanEmissionAdapter(IndiaEstimateAdapter):
    SOURCE_NAME = "UrbanEmission"
    SOURCE_CODE = "URBAN_EMISSION"
    QUALITY_SCORE = 75
    POLLUTANT_FIELDS = ['pm10', 'pm2_5', 'carbon_monoxide', 'nitrogen_dioxide', 'sulphur_dioxide']
    REPORTED_FIELDS = ['pm25', 'pm10', 'no2', 'so2', 'co']


class OpenCityAdapter(IndiaEstimateAdapter):
    SOURCE_NAME = "OpenCity"
    SOURCE_CODE = "OPENCITY"
    QUALITY_SCORE = 78
    POLLUTANT_FIELDS = ['pm10', 'pm2_5', 'nitrogen_dioxide', 'sulphur_dioxide', 'ozone', 'carbon_monoxide']
    REPORTED_FIELDS = ['pm25', 'pm10', 'no2', 'o3', 'so2', 'co']
