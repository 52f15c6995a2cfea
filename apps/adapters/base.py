"""
Base adapter classes for all weather and air quality sources.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

import requests
from django.conf import settings
from django.utils import timezone
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from apps.core.constants import AIR_QUALITY, WEATHER
from apps.core.exceptions import SourceUnavailable
from apps.core.utils import build_alerts, validate_coordinates

from .models import AdapterStatus, RawAPIResponse
from .schemas import NormalizedReading

logger = logging.getLogger(__name__)


class WeatherSource(ABC):
    """Capability: the adapter can report current weather."""

    @abstractmethod
    def fetch_weather(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        pass


class AirQualitySource(ABC):
    """Capability: the adapter can report current air quality."""

    @abstractmethod
    def fetch_air_quality(self, lat: float, lon: float, location_name: str = '') -> Optional[NormalizedReading]:
        pass


class BaseAdapter(ABC):
    """
    Abstract base class for all data source adapters.

    Provides the HTTP session, request bookkeeping and the combined
    ``fetch_reading`` contract. Concrete adapters add one or both of the
    capability interfaces above; a capability an adapter lacks is never
    called.
    """

    # Subclasses must define these
    SOURCE_NAME = None
    SOURCE_CODE = None
    API_BASE_URL = None
    REQUIRES_API_KEY = False
    QUALITY_SCORE = 0

    # Name of the primary source this adapter stands in for, if any
    FALLBACK_FOR = None

    def __init__(self):
        if not all([self.SOURCE_NAME, self.SOURCE_CODE, self.API_BASE_URL]):
            raise ValueError("Adapter must define SOURCE_NAME, SOURCE_CODE, and API_BASE_URL")

        self.settings = settings.URBAN_CLIMATE_SETTINGS
        self.api_key = self._get_api_key()
        self.session = self._create_session()

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.SOURCE_NAME}>"

    def _get_api_key(self) -> Optional[str]:
        """Get API key from settings."""
        if not self.REQUIRES_API_KEY:
            return None

        api_key = settings.API_KEYS.get(self.SOURCE_CODE.replace('_', '').lower())
        if not api_key:
            logger.warning(f"No API key found for {self.SOURCE_NAME}")

        return api_key or None

    def _create_session(self) -> requests.Session:
        """Create requests session; retries are off unless MAX_RETRIES is set."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.settings.get('MAX_RETRIES', 0),
            backoff_factor=self.settings.get('RETRY_BACKOFF_FACTOR', 1),
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def capabilities(self) -> Set[str]:
        families = set()
        if isinstance(self, WeatherSource):
            families.add(WEATHER)
        if isinstance(self, AirQualitySource):
            families.add(AIR_QUALITY)
        return families

    def _make_request(
        self,
        endpoint: str,
        params: Dict = None,
        headers: Dict = None,
        response_format: str = 'json',
    ):
        """
        Make HTTP GET request with error handling and logging.

        Args:
            endpoint: API endpoint path, or an absolute URL
            params: Query parameters
            headers: HTTP headers
            response_format: 'json' or 'text'

        Returns:
            Parsed JSON, response text, or None on error
        """
        if endpoint.startswith('http'):
            url = endpoint
        else:
            url = f"{self.API_BASE_URL.rstrip('/')}/{endpoint.lstrip('/')}"
        params = params or {}
        headers = headers or {}

        start_time = time.time()

        try:
            self._add_api_key(params, headers)

            timeout = self.settings.get('REQUEST_TIMEOUT', 10)
            response = self.session.get(
                url,
                params=params,
                headers=headers,
                timeout=timeout
            )

            response_time_ms = int((time.time() - start_time) * 1000)

            self._log_response(
                endpoint=endpoint,
                params=params,
                response=response,
                response_time_ms=response_time_ms
            )

            response.raise_for_status()

            data = response.text if response_format == 'text' else response.json()

            self._update_status(success=True)

            return data

        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"{self.SOURCE_NAME} API error: {e}")

            response_time_ms = int((time.time() - start_time) * 1000)

            self._log_response(
                endpoint=endpoint,
                params=params,
                response=getattr(e, 'response', None),
                response_time_ms=response_time_ms,
                error=str(e)
            )

            self._update_status(success=False, error_message=str(e))

            return None

    def _add_api_key(self, params: Dict, headers: Dict):
        """
        Add API key to request. Override in subclass if needed.
        Default: adds to query params as 'api_key'.
        """
        if self.REQUIRES_API_KEY and self.api_key:
            params['api_key'] = self.api_key

    def _log_response(
        self,
        endpoint: str,
        params: Dict,
        response: Optional[requests.Response],
        response_time_ms: int,
        error: str = None
    ):
        """Record the call in the audit table."""
        try:
            status_code = response.status_code if response is not None else 0
            is_error = bool(error) or (status_code >= 400)

            # Keys never reach the audit trail
            safe_params = {k: v for k, v in params.items() if 'key' not in k.lower()}

            RawAPIResponse.objects.create(
                source=self.SOURCE_CODE,
                endpoint=endpoint[:200],
                params=safe_params,
                status_code=status_code,
                response_time_ms=response_time_ms,
                is_error=is_error,
                error_message=error or ''
            )
        except Exception as e:
            logger.error(f"Failed to log API response: {e}")

    def _update_status(self, success: bool, error_message: str = ''):
        """Update adapter health counters."""
        try:
            status, created = AdapterStatus.objects.get_or_create(
                source=self.SOURCE_CODE,
                defaults={'is_active': True}
            )

            status.total_requests += 1

            if success:
                status.last_success_at = timezone.now()
                status.consecutive_failures = 0
            else:
                status.last_failure_at = timezone.now()
                status.consecutive_failures += 1
                status.total_failures += 1
                status.status_message = error_message

            limit = self.settings.get('ADAPTER_FAILURE_LIMIT', 10)
            if status.consecutive_failures >= limit and status.is_active:
                status.is_active = False
                logger.error(f"{self.SOURCE_NAME} auto-disabled after {limit} consecutive failures")

            status.save()

        except Exception as e:
            logger.error(f"Failed to update adapter status: {e}")

    def fetch_reading(
        self,
        lat: float,
        lon: float,
        location_name: str = '',
        families: Optional[Set[str]] = None
    ) -> Optional[NormalizedReading]:
        """
        Fetch everything this source reports for a location.

        Args:
            lat: Latitude
            lon: Longitude
            location_name: Human-readable name used by name-keyed providers
            families: Restrict to 'weather' and/or 'air_quality'

        Returns:
            One NormalizedReading for this source, or None when nothing came back
        """
        is_valid, error = validate_coordinates(lat, lon)
        if not is_valid:
            logger.warning(f"{self.SOURCE_NAME}: {error} for {location_name or (lat, lon)}")
            return None

        lat, lon = float(lat), float(lon)
        wanted = self.capabilities() if families is None else self.capabilities() & set(families)

        parts: List[NormalizedReading] = []

        if WEATHER in wanted:
            parts.append(self._safe_call(self.fetch_weather, lat, lon, location_name))
        if AIR_QUALITY in wanted:
            parts.append(self._safe_call(self.fetch_air_quality, lat, lon, location_name))

        parts = [part for part in parts if part is not None and part.has_data()]
        if not parts:
            return None

        reading = parts[0]
        for part in parts[1:]:
            reading = reading.merge(part)

        reading.quality_score = self.QUALITY_SCORE
        reading.alerts = build_alerts(reading)
        return reading

    def _safe_call(self, method, lat, lon, location_name) -> Optional[NormalizedReading]:
        try:
            return method(lat, lon, location_name)
        except SourceUnavailable as e:
            logger.warning(str(e))
            return None
        except Exception as e:
            logger.error(f"{self.SOURCE_NAME} failed for {location_name or (lat, lon)}: {e}")
            return None

    def _new_reading(self, **values) -> NormalizedReading:
        return NormalizedReading(
            source_name=self.SOURCE_NAME,
            quality_score=self.QUALITY_SCORE,
            **values
        )

    def fetch_forecast(self, lat: float, lon: float, days: int = 7) -> List[Dict]:
        """
        Fetch daily forecast data (optional, override if supported).

        Returns:
            List of per-day forecast dictionaries
        """
        return []

    def is_available(self) -> bool:
        """Check the adapter has its key and has not been auto-disabled."""
        if self.REQUIRES_API_KEY and not self.api_key:
            return False

        try:
            status = AdapterStatus.objects.get(source=self.SOURCE_CODE)
            return status.is_active
        except AdapterStatus.DoesNotExist:
            return True
