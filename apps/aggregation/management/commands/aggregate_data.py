"""
Regenerate aggregates for a date, month or year.
"""
from datetime import date, timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.aggregation.engine import AggregationEngine
from apps.core.exceptions import InvalidInput
from apps.location.services import LocationRegistry


class Command(BaseCommand):
    help = 'Recompute daily, monthly or yearly aggregates for every active location'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            help='Target date (YYYY-MM-DD); defaults to yesterday',
        )
        parser.add_argument(
            '--granularity',
            default='daily',
            choices=['daily', 'monthly', 'yearly'],
        )
        parser.add_argument(
            '--location',
            action='append',
            dest='locations',
            help='Location ID (repeatable; defaults to all active)',
        )

    def handle(self, *args, **options):
        if options['date']:
            try:
                target = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid date: {options['date']}")
        else:
            target = timezone.localdate() - timedelta(days=1)

        registry = LocationRegistry()
        try:
            locations = registry.get_many(options['locations']) if options['locations'] else registry.active()
        except InvalidInput as e:
            raise CommandError(str(e))

        engine = AggregationEngine(registry=registry)
        granularity = options['granularity']

        created = 0
        for location in locations:
            if granularity == 'daily':
                aggregate = engine.regenerate_day(location.location_id, target)
            elif granularity == 'monthly':
                aggregate = engine.regenerate_month(location.location_id, target.year, target.month)
            else:
                aggregate = engine.regenerate_year(location.location_id, target.year)

            if aggregate is None:
                self.stdout.write(self.style.WARNING(f'  {location.name}: no data'))
            else:
                created += 1
                self.stdout.write(f'  {location.name}: completeness {aggregate.completeness:.0%}')

        self.stdout.write(self.style.SUCCESS(
            f'Regenerated {created}/{len(locations)} {granularity} aggregates for {target}'
        ))
