"""
Open-Meteo adapters for weather, air quality and daily forecasts.
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from apps.core.utils import (
    calculate_aqi_from_pm25,
    degrees_to_cardinal,
    round_to,
    to_float,
)

from .base import AirQualitySource, BaseAdapter, WeatherSource
from .schemas import NormalizedReading

logger = logging.getLogger(__name__)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
AIR_QUALITY_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"

CURRENT_WEATHER_FIELDS = [
    'temperature_2m',
    'relative_humidity_2m',
    'apparent_temperature',
    'precipitation',
    'rain',
    'snowfall',
    'cloud_cover',
    'pressure_msl',
    'wind_speed_10m',
    'wind_direction_10m',
]

CURRENT_AIR_QUALITY_FIELDS = [
    'pm10',
    'pm2_5',
    'carbon_monoxide',
    'nitrogen_dioxide',
    'sulphur_dioxide',
    'ozone',
    'uv_index',
    'us_aqi',
]

DAILY_FORECAST_FIELDS = [
    'temperature_2m_max',
    'temperature_2m_min',
    'temperature_2m_mean',
    'precipitation_sum',
    'rain_sum',
    'precipitation_probability_max',
    'wind_speed_10m_max',
    'relative_humidity_2m_mean',
]


def parse_current_weather(current: Dict) -> Dict:
    """Map an Open-Meteo ``current`` weather block to reading fields."""
    rain = to_float(current.get('rain'))
    if rain is None:
        rain = to_float(current.get('precipitation'))

    return {
        'temperature': round_to(current.get('temperature_2m'), 1),
        'feels_like': round_to(current.get('apparent_temperature'), 1),
        'humidity': round_to(current.get('relative_humidity_2m'), 0),
        'pressure': round_to(current.get('pressure_msl'), 1),
        'wind_speed': round_to(current.get('wind_speed_10m'), 1),
        'wind_direction': degrees_to_cardinal(current.get('wind_direction_10m')),
        'cloud_cover': round_to(current.get('cloud_cover'), 0),
        'rainfall': round_to(rain, 1),
        'snowfall': round_to(current.get('snowfall'), 1),
    }


def parse_current_air_quality(current: Dict, prefer_us_aqi: bool = False) -> Dict:
    """
    Map an Open-Meteo ``current`` air quality block to reading fields.

    AQI is derived from PM2.5 with the EPA table unless ``prefer_us_aqi`` is
    set and the upstream ``us_aqi`` is present. No PM2.5 means no AQI.
    """
    pm25 = round_to(current.get('pm2_5'), 1)

    aqi = None
    us_aqi = to_float(current.get('us_aqi'))
    if prefer_us_aqi and us_aqi is not None:
        aqi = int(round(us_aqi))
    elif pm25 is not None:
        aqi = calculate_aqi_from_pm25(pm25)

    return {
        'aqi': aqi,
        'pm25': pm25,
        'pm10': round_to(current.get('pm10'), 1),
        'no2': round_to(current.get('nitrogen_dioxide'), 1),
        'o3': round_to(current.get('ozone'), 1),
        'so2': round_to(current.get('sulphur_dioxide'), 1),
        'co': round_to(current.get('carbon_monoxide'), 0),
        'uv_index': round_to(current.get('uv_index'), 1),
    }


class OpenMeteoAdapter(BaseAdapter, WeatherSource, AirQualitySource):
    """
    Adapter for the Open-Meteo forecast and air quality APIs.
    Keyless, global coverage; also supplies the 7-day daily forecast.
    """

    SOURCE_NAME = "OpenMeteo"
    SOURCE_CODE = "OPENMETEO"
    API_BASE_URL = "https://api.open-meteo.com/v1/"
    QUALITY_SCORE = 95

    def fetch_weather(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        params = {
            'latitude': lat,
            'longitude': lon,
            'current': ','.join(CURRENT_WEATHER_FIELDS),
            'timezone': 'auto',
        }

        raw_data = self._make_request(FORECAST_URL, params=params)

        if not raw_data or not raw_data.get('current'):
            return None

        return self._new_reading(**parse_current_weather(raw_data['current']))

    def fetch_air_quality(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        params = {
            'latitude': lat,
            'longitude': lon,
            'current': ','.join(CURRENT_AIR_QUALITY_FIELDS),
            'timezone': 'auto',
        }

        raw_data = self._make_request(AIR_QUALITY_URL, params=params)

        if not raw_data or not raw_data.get('current'):
            return None

        return self._new_reading(**parse_current_air_quality(raw_data['current']))

    def fetch_forecast(self, lat: float, lon: float, days: int = 7) -> List[Dict]:
        """
        Fetch the daily forecast.

        Args:
            lat: Latitude
            lon: Longitude
            days: Number of days ahead

        Returns:
            List of dicts keyed by ForecastPoint field names, one per day
        """
        params = {
            'latitude': lat,
            'longitude': lon,
            'daily': ','.join(DAILY_FORECAST_FIELDS),
            'forecast_days': days,
            'timezone': 'Asia/Kolkata',
        }

        raw_data = self._make_request(FORECAST_URL, params=params)

        if not raw_data or not raw_data.get('daily'):
            return []

        return self._normalize_forecast(raw_data['daily'])

    def _normalize_forecast(self, daily: Dict) -> List[Dict]:
        forecasts = []

        for index, day in enumerate(daily.get('time') or []):
            def value(key, decimals=1):
                series = daily.get(key) or []
                return round_to(series[index], decimals) if index < len(series) else None

            try:
                forecast_date = date.fromisoformat(day)
            except (TypeError, ValueError):
                logger.error(f"Error parsing Open-Meteo forecast date: {day}")
                continue

            t_max = value('temperature_2m_max')
            t_min = value('temperature_2m_min')
            t_mean = value('temperature_2m_mean')
            if t_mean is None and t_max is not None and t_min is not None:
                t_mean = round_to((t_max + t_min) / 2, 1)

            forecasts.append({
                'forecast_date': forecast_date,
                'temperature': t_mean,
                'temperature_min': t_min,
                'temperature_max': t_max,
                'humidity': value('relative_humidity_2m_mean', 0),
                'precipitation': value('precipitation_sum'),
                'rainfall': value('rain_sum'),
                'precipitation_probability': value('precipitation_probability_max', 0),
                'wind_speed': value('wind_speed_10m_max'),
            })

        return forecasts


class OpenMeteoAQIAdapter(BaseAdapter, AirQualitySource):
    """
    Open-Meteo air quality, reporting the upstream US AQI directly.
    """

    SOURCE_NAME = "OpenMeteo-AQI"
    SOURCE_CODE = "OPENMETEO_AQI"
    API_BASE_URL = "https://air-quality-api.open-meteo.com/v1/"
    QUALITY_SCORE = 90

    def fetch_air_quality(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        params = {
            'latitude': lat,
            'longitude': lon,
            'current': ','.join(CURRENT_AIR_QUALITY_FIELDS),
            'timezone': 'auto',
        }

        raw_data = self._make_request('air-quality', params=params)

        if not raw_data or not raw_data.get('current'):
            return None

        return self._new_reading(
            **parse_current_air_quality(raw_data['current'], prefer_us_aqi=True)
        )
