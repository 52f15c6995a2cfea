"""
KSNDMC (Karnataka State Natural Disaster Monitoring Centre) adapter.

KSNDMC publishes no public API; Karnataka locations are served from
Open-Meteo and reported under the KSNDMC source name.
"""
import logging
from typing import Optional

from apps.core.constants import KARNATAKA_BOUNDS
from apps.core.utils import is_within_bounds, round_to, to_float

from .base import BaseAdapter, WeatherSource
from .openmeteo import FORECAST_URL
from .schemas import NormalizedReading

logger = logging.getLogger(__name__)

KARNATAKA_CITIES = {
    'bangalore', 'bengaluru', 'mysore', 'mysuru', 'hubli', 'mangalore',
    'belgaum', 'gulbarga', 'davanagere', 'bellary', 'bijapur', 'shimoga',
    'tumkur', 'raichur', 'bidar', 'hospet', 'hassan', 'gadag', 'udupi',
    'chickmagalur',
}


def is_karnataka_location(location_name: str, lat: float, lon: float) -> bool:
    if location_name and location_name.lower().strip() in KARNATAKA_CITIES:
        return True
    return is_within_bounds(lat, lon, KARNATAKA_BOUNDS)


class KSNDMCAdapter(BaseAdapter, WeatherSource):
    SOURCE_NAME = "KSNDMC (Karnataka)"
    SOURCE_CODE = "KSNDMC"
    API_BASE_URL = "https://api.open-meteo.com/v1/"
    QUALITY_SCORE = 82

    def fetch_weather(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        if not is_karnataka_location(location_name, lat, lon):
            logger.debug(f"{self.SOURCE_NAME}: {location_name} is not in Karnataka, skipping")
            return None

        params = {
            'latitude': lat,
            'longitude': lon,
            'current': 'temperature_2m,relative_humidity_2m,precipitation,rain,pressure_msl,wind_speed_10m',
            'timezone': 'Asia/Kolkata',
        }

        raw_data = self._make_request(FORECAST_URL, params=params)

        if not raw_data or not raw_data.get('current'):
            return None

        current = raw_data['current']
        rain = to_float(current.get('rain'))
        if rain is None:
            rain = to_float(current.get('precipitation'))

        return self._new_reading(
            temperature=round_to(current.get('temperature_2m'), 1),
            humidity=round_to(current.get('relative_humidity_2m'), 0),
            pressure=round_to(current.get('pressure_msl'), 1),
            wind_speed=round_to(current.get('wind_speed_10m'), 1),
            rainfall=round_to(rain, 1),
        )
