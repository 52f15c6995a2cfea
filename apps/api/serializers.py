"""
DRF serializers for the outbound data contracts and query validation.
"""
from rest_framework import serializers

from apps.core.constants import AGGREGATE_METRICS, GRANULARITIES, READING_FIELDS
from apps.core.exceptions import InvalidInput


def _camel(name):
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


class ReadingSerializer(serializers.Serializer):
    """
    One stored reading in the outbound shape.

    Metrics a source did not report are omitted rather than sent as null.
    """
    locationId = serializers.CharField(source='location.location_id')
    locationName = serializers.CharField(source='location_name')
    sourceApi = serializers.CharField(source='source_name')
    timestamp = serializers.DateTimeField(source='captured_at')

    temperature = serializers.FloatField(required=False, allow_null=True)
    feelsLike = serializers.FloatField(source='feels_like', required=False, allow_null=True)
    humidity = serializers.FloatField(required=False, allow_null=True)
    pressure = serializers.FloatField(required=False, allow_null=True)
    windSpeed = serializers.FloatField(source='wind_speed', required=False, allow_null=True)
    windDirection = serializers.CharField(source='wind_direction', required=False, allow_null=True)
    cloudCover = serializers.FloatField(source='cloud_cover', required=False, allow_null=True)
    rainfall = serializers.FloatField(required=False, allow_null=True)
    snowfall = serializers.FloatField(required=False, allow_null=True)
    uvIndex = serializers.FloatField(source='uv_index', required=False, allow_null=True)

    aqi = serializers.IntegerField(required=False, allow_null=True)
    pm25 = serializers.FloatField(required=False, allow_null=True)
    pm10 = serializers.FloatField(required=False, allow_null=True)
    no2 = serializers.FloatField(required=False, allow_null=True)
    o3 = serializers.FloatField(required=False, allow_null=True)
    so2 = serializers.FloatField(required=False, allow_null=True)
    co = serializers.FloatField(required=False, allow_null=True)

    qualityScore = serializers.FloatField(source='quality_score')
    alerts = serializers.ListField(child=serializers.DictField(), required=False)

    METRIC_KEYS = {_camel(name) for name in READING_FIELDS}

    def to_representation(self, instance):
        data = super().to_representation(instance)
        return {
            key: value for key, value in data.items()
            if not (key in self.METRIC_KEYS and value is None)
        }


class AggregationQuerySerializer(serializers.Serializer):
    """Validates an aggregated-series query."""
    locationId = serializers.CharField()
    metric = serializers.ChoiceField(choices=sorted(AGGREGATE_METRICS))
    startDate = serializers.DateField()
    endDate = serializers.DateField()
    granularity = serializers.ChoiceField(choices=GRANULARITIES, default='daily')

    def validate(self, attrs):
        if attrs['startDate'] > attrs['endDate']:
            raise serializers.ValidationError('startDate must not be after endDate')
        return attrs


class AnalyticsQuerySerializer(serializers.Serializer):
    """Validates analytics parameters; locationIds is comma-separated."""
    locationId = serializers.CharField(required=False)
    locationIds = serializers.CharField(required=False)
    metric = serializers.ChoiceField(choices=sorted(AGGREGATE_METRICS), default='temperature')
    metric2 = serializers.ChoiceField(choices=sorted(AGGREGATE_METRICS), required=False)
    days = serializers.IntegerField(min_value=1, max_value=366, default=30)
    date = serializers.DateField(required=False)
    threshold = serializers.FloatField(min_value=0, required=False)
    sourceFilter = serializers.CharField(required=False)

    def validate_locationIds(self, value):
        ids = [item.strip() for item in value.split(',') if item.strip()]
        if len(ids) < 2:
            raise serializers.ValidationError('At least 2 locations are required for comparison')
        return ids


class ForecastPointSerializer(serializers.Serializer):
    date = serializers.DateField(source='forecast_date')
    generatedAt = serializers.DateTimeField(source='generated_at')
    sourceApi = serializers.CharField(source='source_api')
    generationMethod = serializers.CharField(source='generation_method')

    temperature = serializers.FloatField(allow_null=True)
    temperatureMin = serializers.FloatField(source='temperature_min', allow_null=True)
    temperatureMax = serializers.FloatField(source='temperature_max', allow_null=True)
    humidity = serializers.FloatField(allow_null=True)
    precipitation = serializers.FloatField(allow_null=True)
    rainfall = serializers.FloatField(allow_null=True)
    precipitationProbability = serializers.FloatField(source='precipitation_probability', allow_null=True)
    pm25 = serializers.FloatField(allow_null=True)
    aqi = serializers.IntegerField(allow_null=True)
    windSpeed = serializers.FloatField(source='wind_speed', allow_null=True)

    confidence = serializers.FloatField()


def validate_query(serializer_class, data):
    """
    Validate inbound query parameters.

    Returns:
        The serializer's validated_data

    Raises:
        InvalidInput: with the field errors flattened into the message
    """
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        messages = []
        for field, errors in serializer.errors.items():
            for error in errors:
                messages.append(f"{field}: {error}" if field != 'non_field_errors' else str(error))
        raise InvalidInput('; '.join(messages))
    return serializer.validated_data
