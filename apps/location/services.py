"""
Location registry lookups.
"""
import logging
from typing import Iterable, List

from apps.core.exceptions import InvalidInput
from apps.core.utils import validate_coordinates

from .models import Location

logger = logging.getLogger(__name__)


class LocationRegistry:
    """
    Supplies the known locations to collectors and analytics.
    """

    def active(self) -> List[Location]:
        return list(Location.objects.filter(is_active=True).order_by('location_id'))

    def get(self, location_id: str) -> Location:
        """
        Fetch a location by its stable identifier.

        Raises:
            InvalidInput: if the location is unknown
        """
        if not location_id:
            raise InvalidInput("Location ID is required")

        try:
            return Location.objects.get(location_id=location_id)
        except Location.DoesNotExist:
            raise InvalidInput(f"Unknown location: {location_id}")

    def get_many(self, location_ids: Iterable[str]) -> List[Location]:
        return [self.get(location_id) for location_id in location_ids]

    def register(self, location_id, name, latitude, longitude, **extra) -> Location:
        """Create or update a registry entry after validating its coordinates."""
        is_valid, error = validate_coordinates(latitude, longitude)
        if not is_valid:
            raise InvalidInput(f"{name}: {error}")

        location, created = Location.objects.update_or_create(
            location_id=location_id,
            defaults={
                'name': name,
                'latitude': float(latitude),
                'longitude': float(longitude),
                **extra,
            }
        )
        if created:
            logger.info(f"Registered location {location}")
        return location
