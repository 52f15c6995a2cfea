"""
Utility functions for Urban Climate API.
"""
import math
from datetime import datetime, time, timedelta

from django.utils import timezone

from .constants import (
    AQI_CATEGORIES,
    PM25_BREAKPOINTS,
    WIND_DIRECTIONS,
    ALERT_THRESHOLDS,
)


def calculate_distance_km(lat1, lon1, lat2, lon2):
    """
    Calculate the distance between two coordinates using Haversine formula.
    Returns distance in kilometers.
    """
    R = 6371  # Earth's radius in kilometers

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def validate_coordinates(lat, lon):
    """
    Validate latitude and longitude values.

    Args:
        lat: latitude value
        lon: longitude value

    Returns:
        tuple: (is_valid, error_message)
    """
    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError):
        return False, "Invalid coordinate format"

    if math.isnan(lat) or math.isnan(lon):
        return False, "Invalid coordinate format"

    if not (-90 <= lat <= 90):
        return False, "Latitude must be between -90 and 90"

    if not (-180 <= lon <= 180):
        return False, "Longitude must be between -180 and 180"

    return True, None


def is_within_bounds(lat, lon, bounds):
    """Check whether coordinates fall inside a {min_lat, max_lat, min_lon, max_lon} box."""
    return (
        bounds['min_lat'] <= lat <= bounds['max_lat'] and
        bounds['min_lon'] <= lon <= bounds['max_lon']
    )


def round_to(value, decimals=2):
    """Round a number, passing None (and non-finite values) through as None."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return round(value, decimals)


def to_float(value):
    """Coerce an upstream value to float, or None when absent or malformed."""
    if value is None or value == '' or value == '-':
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def degrees_to_cardinal(degrees):
    """Convert wind direction in degrees to a 16-point cardinal direction."""
    if degrees is None:
        return None
    try:
        degrees = float(degrees)
    except (TypeError, ValueError):
        return None
    index = int(round(degrees / 22.5)) % 16
    return WIND_DIRECTIONS[index]


def calculate_aqi_from_pm25(pm25):
    """
    Calculate AQI from a PM2.5 concentration using the US EPA breakpoints.

    Concentrations are truncated to one decimal place before lookup, so values
    between two breakpoint rows (e.g. 12.05) land in the lower row.

    Args:
        pm25: PM2.5 concentration in µg/m³

    Returns:
        int: AQI value between 0 and 500
    """
    if pm25 is None:
        return 0

    try:
        pm25 = float(pm25)
    except (TypeError, ValueError):
        return 0

    if math.isnan(pm25) or pm25 <= 0:
        return 0

    concentration = math.floor(round(pm25 * 10, 6)) / 10

    for c_low, c_high, i_low, i_high in PM25_BREAKPOINTS:
        if c_low <= concentration <= c_high:
            aqi = ((i_high - i_low) / (c_high - c_low)) * (concentration - c_low) + i_low
            return int(math.floor(aqi + 0.5))

    return 500


def get_aqi_category(aqi):
    """
    Convert AQI value to category information.

    Args:
        aqi: AQI value

    Returns:
        dict: category information or None when aqi is None
    """
    if aqi is None:
        return None

    for category in AQI_CATEGORIES:
        if aqi <= category['max_value']:
            return category

    # Open-ended top band
    return AQI_CATEGORIES[-1]


def get_category_for_metric(metric, value):
    """Label a metric value for heatmaps."""
    if value is None:
        return 'Unknown'

    if metric == 'aqi':
        return get_aqi_category(value)['category']

    if metric == 'temperature':
        if value < 10:
            return 'Cold'
        if value < 20:
            return 'Cool'
        if value < 30:
            return 'Warm'
        return 'Hot'

    return 'Normal'


def build_alerts(reading):
    """
    Derive alerts from a single source's reading.

    Only the reading's own values are consulted.

    Returns:
        list of {category, severity, message} dicts
    """
    alerts = []

    temperature = getattr(reading, 'temperature', None)
    if temperature is not None and temperature >= ALERT_THRESHOLDS['heat']:
        alerts.append({
            'category': 'heat',
            'severity': 'high' if temperature >= ALERT_THRESHOLDS['heat'] + 5 else 'moderate',
            'message': f"Extreme heat: {temperature}°C",
        })

    aqi = getattr(reading, 'aqi', None)
    if aqi is not None and aqi >= ALERT_THRESHOLDS['air_quality']:
        category = get_aqi_category(aqi)
        alerts.append({
            'category': 'air_quality',
            'severity': 'high' if aqi > 200 else 'moderate',
            'message': f"AQI {aqi} ({category['category']})",
        })

    rainfall = getattr(reading, 'rainfall', None)
    if rainfall is not None and rainfall >= ALERT_THRESHOLDS['rainfall']:
        alerts.append({
            'category': 'rainfall',
            'severity': 'high',
            'message': f"Heavy rainfall: {rainfall} mm",
        })

    uv_index = getattr(reading, 'uv_index', None)
    if uv_index is not None and uv_index >= ALERT_THRESHOLDS['uv_index']:
        alerts.append({
            'category': 'uv',
            'severity': 'moderate',
            'message': f"Very high UV index: {uv_index}",
        })

    return alerts


def day_bounds(date):
    """Return aware [start, end) datetimes for a calendar date in the current timezone."""
    if isinstance(date, datetime):
        date = timezone.localtime(date).date() if timezone.is_aware(date) else date.date()
    start = timezone.make_aware(datetime.combine(date, time.min))
    end = timezone.make_aware(datetime.combine(date + timedelta(days=1), time.min))
    return start, end


def get_date_range(days):
    """Return (start, end) aware datetimes covering the last `days` days."""
    end = timezone.now()
    start = end - timedelta(days=days)
    return start, end
