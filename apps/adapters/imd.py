"""
India Meteorological Department adapters.

IMD publishes no JSON API; current conditions are read from the city
weather page. When IMD has nothing for a city, ``IMDFallbackAdapter``
stands in using Open-Meteo and reports under its own source name.
"""
import logging
import re
from typing import Dict, Optional

from bs4 import BeautifulSoup

from apps.core.exceptions import SourceUnavailable
from apps.core.utils import degrees_to_cardinal, round_to

from .base import BaseAdapter, WeatherSource
from .openmeteo import FORECAST_URL
from .schemas import NormalizedReading

logger = logging.getLogger(__name__)

# City name -> IMD city page code
IMD_CITY_CODES = {
    'mumbai': 'mumbai',
    'delhi': 'delhi',
    'new delhi': 'delhi',
    'bangalore': 'bengaluru',
    'bengaluru': 'bengaluru',
    'hyderabad': 'hyderabad',
    'chennai': 'chennai',
    'kolkata': 'kolkata',
    'pune': 'pune',
    'ahmedabad': 'ahmedabad',
    'jaipur': 'jaipur',
    'lucknow': 'lucknow',
    'kanpur': 'kanpur',
    'nagpur': 'nagpur',
    'indore': 'indore',
    'bhopal': 'bhopal',
    'patna': 'patna',
    'vadodara': 'vadodara',
    'ghaziabad': 'ghaziabad',
    'ludhiana': 'ludhiana',
}

# Reading field -> label fragments seen on the city page (first match wins)
IMD_LABELS = [
    ('temperature', ('current temperature', 'maximum temp', 'max temp')),
    ('humidity', ('relative humidity',)),
    ('rainfall', ('rainfall',)),
    ('pressure', ('pressure',)),
    ('wind_speed', ('wind speed',)),
]

NUMBER_RE = re.compile(r'-?\d+(?:\.\d+)?')

BROWSER_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36',
}


def get_imd_city_code(location_name: str) -> Optional[str]:
    if not location_name:
        return None
    return IMD_CITY_CODES.get(location_name.lower().strip())


def parse_city_page(html: str) -> Dict:
    """
    Extract labelled values from an IMD city weather page.

    Each table row is read as ``label | value``; the first number in the
    value cell is taken. Labels that do not appear, or whose value is NIL
    or blank, are left out.
    """
    soup = BeautifulSoup(html, 'html.parser')

    rows = []
    for tr in soup.find_all('tr'):
        cells = [cell.get_text(' ', strip=True) for cell in tr.find_all(['td', 'th'])]
        if len(cells) >= 2:
            rows.append((cells[0].lower(), cells[1]))

    values = {}
    for field_name, fragments in IMD_LABELS:
        for label, raw in rows:
            if not any(fragment in label for fragment in fragments):
                continue
            match = NUMBER_RE.search(raw)
            if match:
                values[field_name] = float(match.group())
                break

    return values


class IMDAdapter(BaseAdapter, WeatherSource):
    """
    Adapter for IMD city weather pages.
    Only cities with a known IMD code are queried.
    """

    SOURCE_NAME = "IMD"
    SOURCE_CODE = "IMD"
    API_BASE_URL = "https://city.imd.gov.in/citywx/"
    QUALITY_SCORE = 85

    def fetch_weather(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        city_code = get_imd_city_code(location_name)
        if not city_code:
            logger.debug(f"{self.SOURCE_NAME}: No city code for {location_name}")
            return None

        html = self._make_request(
            'city_weather_test.php',
            params={'city': city_code},
            headers=dict(BROWSER_HEADERS),
            response_format='text',
        )

        if not html:
            return None

        values = parse_city_page(html)
        if 'temperature' not in values:
            raise SourceUnavailable(self.SOURCE_NAME, f"could not parse city page for {location_name}")

        return self._new_reading(
            temperature=round_to(values.get('temperature'), 1),
            humidity=round_to(values.get('humidity'), 0),
            pressure=round_to(values.get('pressure'), 1),
            wind_speed=round_to(values.get('wind_speed'), 1),
            rainfall=round_to(values.get('rainfall'), 1),
        )


class IMDFallbackAdapter(BaseAdapter, WeatherSource):
    """
    Open-Meteo current conditions reported when IMD returns nothing.
    """

    SOURCE_NAME = "IMD (via OpenMeteo)"
    SOURCE_CODE = "IMD_FALLBACK"
    API_BASE_URL = "https://api.open-meteo.com/v1/"
    QUALITY_SCORE = 80
    FALLBACK_FOR = "IMD"

    def fetch_weather(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        params = {
            'latitude': lat,
            'longitude': lon,
            'current': 'temperature_2m,relative_humidity_2m,pressure_msl,wind_speed_10m,wind_direction_10m,precipitation',
            'timezone': 'Asia/Kolkata',
        }

        raw_data = self._make_request(FORECAST_URL, params=params)

        if not raw_data or not raw_data.get('current'):
            return None

        current = raw_data['current']
        return self._new_reading(
            temperature=round_to(current.get('temperature_2m'), 1),
            humidity=round_to(current.get('relative_humidity_2m'), 0),
            pressure=round_to(current.get('pressure_msl'), 1),
            wind_speed=round_to(current.get('wind_speed_10m'), 1),
            wind_direction=degrees_to_cardinal(current.get('wind_direction_10m')),
            rainfall=round_to(current.get('precipitation'), 1),
        )
