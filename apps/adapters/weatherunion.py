"""
WeatherUnion adapter for hyperlocal weather in Indian cities.
"""
import logging
import math
from typing import Dict, Optional

from apps.core.utils import degrees_to_cardinal, round_to, to_float

from .base import BaseAdapter, WeatherSource
from .schemas import NormalizedReading

logger = logging.getLogger(__name__)

# Locality ID -> reference coordinates
LOCALITIES = {
    'ZWL005764': {'lat': 19.0760, 'lon': 72.8777, 'city': 'Mumbai'},
    'ZWL001234': {'lat': 28.7041, 'lon': 77.1025, 'city': 'Delhi'},
    'ZWL009876': {'lat': 12.9716, 'lon': 77.5946, 'city': 'Bangalore'},
    'ZWL005432': {'lat': 17.3850, 'lon': 78.4867, 'city': 'Hyderabad'},
    'ZWL007890': {'lat': 13.0827, 'lon': 80.2707, 'city': 'Chennai'},
    'ZWL003456': {'lat': 22.5726, 'lon': 88.3639, 'city': 'Kolkata'},
    'ZWL008765': {'lat': 18.5204, 'lon': 73.8567, 'city': 'Pune'},
    'ZWL002345': {'lat': 23.0225, 'lon': 72.5714, 'city': 'Ahmedabad'},
}

# Degrees (~55 km)
MAX_LOCALITY_DISTANCE = 0.5


def find_nearest_locality(lat: float, lon: float, localities: Dict = LOCALITIES) -> Optional[str]:
    """Closest locality ID within MAX_LOCALITY_DISTANCE degrees, else None."""
    nearest = None
    min_distance = math.inf

    for locality_id, coords in localities.items():
        distance = math.hypot(coords['lat'] - lat, coords['lon'] - lon)
        if distance < min_distance:
            min_distance = distance
            nearest = locality_id

    return nearest if min_distance < MAX_LOCALITY_DISTANCE else None


class WeatherUnionAdapter(BaseAdapter, WeatherSource):
    """
    Adapter for the WeatherUnion locality weather API.
    Requires an API key; sent as the X-Zomato-Api-Key header.
    """

    SOURCE_NAME = "WeatherUnion"
    SOURCE_CODE = "WEATHER_UNION"
    API_BASE_URL = "https://www.weatherunion.com/gw/weather/external/v0/"
    REQUIRES_API_KEY = True
    QUALITY_SCORE = 92

    def _add_api_key(self, params: Dict, headers: Dict):
        if self.api_key:
            headers['X-Zomato-Api-Key'] = self.api_key

    def fetch_weather(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        if not self.api_key:
            logger.debug(f"{self.SOURCE_NAME}: API key not configured, skipping")
            return None

        locality_id = find_nearest_locality(lat, lon)
        if not locality_id:
            logger.debug(f"{self.SOURCE_NAME}: No locality found for {location_name}")
            return None

        raw_data = self._make_request(
            'get_locality_weather_data',
            params={'locality_id': locality_id},
        )

        if not raw_data or not raw_data.get('locality_weather_data'):
            return None

        data = raw_data['locality_weather_data']

        wind_direction = data.get('wind_direction')
        if to_float(wind_direction) is not None:
            wind_direction = degrees_to_cardinal(wind_direction)

        return self._new_reading(
            temperature=round_to(data.get('temperature'), 1),
            feels_like=round_to(data.get('feels_like'), 1),
            humidity=round_to(data.get('humidity'), 0),
            wind_speed=round_to(data.get('wind_speed'), 1),
            wind_direction=wind_direction or None,
            rainfall=round_to(data.get('rain_intensity'), 1),
        )
