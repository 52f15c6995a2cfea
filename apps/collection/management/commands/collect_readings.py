"""
Run one collection cycle across all active locations.
"""
from django.core.management.base import BaseCommand, CommandError

from apps.collection.orchestrator import CollectionOrchestrator
from apps.core.exceptions import InvalidInput
from apps.location.services import LocationRegistry


class Command(BaseCommand):
    help = 'Collect current readings from every source for each active location'

    def add_arguments(self, parser):
        parser.add_argument(
            '--location',
            action='append',
            dest='locations',
            help='Location ID to collect (repeatable; defaults to all active)',
        )
        parser.add_argument(
            '--family',
            action='append',
            dest='families',
            choices=['weather', 'air_quality'],
            help='Restrict to one capability family',
        )

    def handle(self, *args, **options):
        registry = LocationRegistry()
        try:
            locations = registry.get_many(options['locations']) if options['locations'] else registry.active()
        except InvalidInput as e:
            raise CommandError(str(e))

        if not locations:
            raise CommandError('No active locations; run init_data first')

        orchestrator = CollectionOrchestrator(registry=registry)

        if options['families']:
            for location in locations:
                stats = orchestrator.collect_location(location, families=options['families'])
                self.stdout.write(f"{stats['location_name']}: {stats['records_stored']} records")
            return

        results = orchestrator.collect_all(locations)

        for error in results['errors']:
            self.stdout.write(self.style.WARNING(f'  {error}'))

        self.stdout.write(self.style.SUCCESS(
            f"Collected {results['total_records']} records "
            f"({results['successful_locations']}/{results['total_locations']} locations)"
        ))
