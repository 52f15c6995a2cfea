"""
Management command to initialize database with default data.
"""
from django.core.management.base import BaseCommand

from apps.adapters.models import AdapterStatus
from apps.adapters.registry import ADAPTER_CLASSES
from apps.core.constants import CITIES
from apps.location.services import LocationRegistry


class Command(BaseCommand):
    help = 'Initialize database with the known locations and adapter status rows'

    def handle(self, *args, **options):
        self.stdout.write('Initializing database with default data...\n')

        self.init_locations()
        self.init_adapter_statuses()

        self.stdout.write(self.style.SUCCESS('\nDatabase initialization complete!'))

    def init_locations(self):
        """Register the seeded cities."""
        self.stdout.write('Creating locations...')

        registry = LocationRegistry()
        for city in CITIES:
            registry.register(
                city['location_id'],
                city['name'],
                city['lat'],
                city['lon'],
                state=city['state'],
                population=city['population'],
            )

        self.stdout.write(self.style.SUCCESS(f'  Registered {len(CITIES)} locations'))

    def init_adapter_statuses(self):
        """Create a health row for every registered adapter."""
        self.stdout.write('Creating adapter statuses...')

        count = 0
        for adapter_class in ADAPTER_CLASSES:
            _, created = AdapterStatus.objects.get_or_create(
                source=adapter_class.SOURCE_CODE,
                defaults={'is_active': True}
            )
            if created:
                count += 1

        self.stdout.write(self.style.SUCCESS(f'  Created {count} adapter statuses'))
