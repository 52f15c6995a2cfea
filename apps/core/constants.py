"""
Constants and lookup data for Urban Climate API.
"""

# EPA AQI Categories (US Standard). The top band is open-ended.
AQI_CATEGORIES = [
    {
        'min_value': 0,
        'max_value': 50,
        'category': 'Good',
        'color_hex': '#00E400',
        'health_message': 'Air quality is satisfactory, and air pollution poses little or no risk.',
        'concern': 'None',
    },
    {
        'min_value': 51,
        'max_value': 100,
        'category': 'Moderate',
        'color_hex': '#FFFF00',
        'health_message': 'Air quality is acceptable. However, there may be a risk for some people, particularly those who are unusually sensitive to air pollution.',
        'concern': 'Unusually sensitive people',
    },
    {
        'min_value': 101,
        'max_value': 150,
        'category': 'Unhealthy for Sensitive Groups',
        'color_hex': '#FF7E00',
        'health_message': 'Members of sensitive groups may experience health effects. The general public is less likely to be affected.',
        'concern': 'Sensitive groups',
    },
    {
        'min_value': 151,
        'max_value': 200,
        'category': 'Unhealthy',
        'color_hex': '#FF0000',
        'health_message': 'Some members of the general public may experience health effects; members of sensitive groups may experience more serious health effects.',
        'concern': 'Everyone',
    },
    {
        'min_value': 201,
        'max_value': 300,
        'category': 'Very Unhealthy',
        'color_hex': '#8F3F97',
        'health_message': 'Health alert: The risk of health effects is increased for everyone.',
        'concern': 'Everyone',
    },
    {
        'min_value': 301,
        'max_value': 500,
        'category': 'Hazardous',
        'color_hex': '#7E0023',
        'health_message': 'Health warning of emergency conditions: everyone is more likely to be affected.',
        'concern': 'Everyone',
    },
]

# US EPA PM2.5 breakpoints: (conc_low, conc_high, index_low, index_high)
PM25_BREAKPOINTS = [
    (0.0, 12.0, 0, 50),
    (12.1, 35.4, 51, 100),
    (35.5, 55.4, 101, 150),
    (55.5, 150.4, 151, 200),
    (150.5, 250.4, 201, 300),
    (250.5, 500.4, 301, 500),
]

# Scalar metric fields carried by a Reading
WEATHER_FIELDS = [
    'temperature',
    'feels_like',
    'humidity',
    'pressure',
    'wind_speed',
    'wind_direction',
    'cloud_cover',
    'rainfall',
    'snowfall',
    'uv_index',
]

AIR_QUALITY_FIELDS = [
    'aqi',
    'pm25',
    'pm10',
    'no2',
    'o3',
    'so2',
    'co',
]

READING_FIELDS = WEATHER_FIELDS + AIR_QUALITY_FIELDS

# Numeric fields (wind_direction is a cardinal string)
NUMERIC_READING_FIELDS = [f for f in READING_FIELDS if f != 'wind_direction']

# Metric name -> DailyAggregate column
AGGREGATE_METRICS = {
    'temperature': 'avg_temperature',
    'humidity': 'avg_humidity',
    'aqi': 'avg_aqi',
    'pm25': 'avg_pm25',
    'pm10': 'avg_pm10',
    'no2': 'avg_no2',
    'o3': 'avg_o3',
    'so2': 'avg_so2',
    'co': 'avg_co',
    'wind_speed': 'avg_wind_speed',
    'rainfall': 'total_rainfall',
}

GRANULARITIES = ['hourly', 'daily', 'monthly', 'yearly']

# Capability families
WEATHER = 'weather'
AIR_QUALITY = 'air_quality'

# Pollutant names and properties
POLLUTANTS = {
    'pm25': {
        'name': 'PM2.5',
        'full_name': 'Fine Particulate Matter',
        'unit': 'µg/m³',
    },
    'pm10': {
        'name': 'PM10',
        'full_name': 'Particulate Matter',
        'unit': 'µg/m³',
    },
    'o3': {
        'name': 'O₃',
        'full_name': 'Ozone',
        'unit': 'µg/m³',
    },
    'no2': {
        'name': 'NO₂',
        'full_name': 'Nitrogen Dioxide',
        'unit': 'µg/m³',
    },
    'so2': {
        'name': 'SO₂',
        'full_name': 'Sulfur Dioxide',
        'unit': 'µg/m³',
    },
    'co': {
        'name': 'CO',
        'full_name': 'Carbon Monoxide',
        'unit': 'µg/m³',
    },
}

# Data source names
DATA_SOURCES = {
    'OpenMeteo': 'Open-Meteo weather and air quality',
    'IMD': 'India Meteorological Department',
    'IMD (via OpenMeteo)': 'IMD fallback served by Open-Meteo',
    'WeatherUnion': 'WeatherUnion hyperlocal weather',
    'KSNDMC (Karnataka)': 'Karnataka State Natural Disaster Monitoring Centre',
    'OpenAQ': 'OpenAQ monitoring stations',
    'OpenMeteo-AQI': 'Open-Meteo air quality (US AQI)',
    'UrbanEmission': 'UrbanEmissions.info estimates',
    'OpenCity': 'OpenCity urban environment estimates',
}

# Known locations seeded by init_data
CITIES = [
    {'location_id': 'city_001', 'name': 'Mumbai', 'state': 'Maharashtra', 'lat': 19.0760, 'lon': 72.8777, 'population': 20961472},
    {'location_id': 'city_002', 'name': 'Delhi', 'state': 'Delhi', 'lat': 28.7041, 'lon': 77.1025, 'population': 16787941},
    {'location_id': 'city_003', 'name': 'Bangalore', 'state': 'Karnataka', 'lat': 12.9716, 'lon': 77.5946, 'population': 8436675},
    {'location_id': 'city_004', 'name': 'Hyderabad', 'state': 'Telangana', 'lat': 17.3850, 'lon': 78.4867, 'population': 6809970},
    {'location_id': 'city_005', 'name': 'Kolkata', 'state': 'West Bengal', 'lat': 22.5726, 'lon': 88.3639, 'population': 14681900},
    {'location_id': 'city_006', 'name': 'Chennai', 'state': 'Tamil Nadu', 'lat': 13.0827, 'lon': 80.2707, 'population': 7088000},
    {'location_id': 'city_007', 'name': 'Pune', 'state': 'Maharashtra', 'lat': 18.5204, 'lon': 73.8567, 'population': 6430400},
    {'location_id': 'city_008', 'name': 'Ahmedabad', 'state': 'Gujarat', 'lat': 23.0225, 'lon': 72.5714, 'population': 8450570},
]

# India bounding box
INDIA_BOUNDS = {
    'min_lat': 8.0,
    'max_lat': 37.0,
    'min_lon': 68.0,
    'max_lon': 97.0,
}

# Karnataka bounding box (approximate)
KARNATAKA_BOUNDS = {
    'min_lat': 11.5,
    'max_lat': 18.5,
    'min_lon': 74.0,
    'max_lon': 78.6,
}

WIND_DIRECTIONS = [
    'N', 'NNE', 'NE', 'ENE', 'E', 'ESE', 'SE', 'SSE',
    'S', 'SSW', 'SW', 'WSW', 'W', 'WNW', 'NW', 'NNW',
]

# Per-reading alert thresholds
ALERT_THRESHOLDS = {
    'heat': 40.0,          # °C
    'air_quality': 151,    # AQI (Unhealthy and above)
    'rainfall': 50.0,      # mm
    'uv_index': 8.0,
}
