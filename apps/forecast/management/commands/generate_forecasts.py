"""
Generate forecasts for every active location.
"""
from django.core.management.base import BaseCommand

from apps.forecast.services import ForecastService


class Command(BaseCommand):
    help = 'Fetch or predict the next days of weather for each active location'

    def handle(self, *args, **options):
        results = ForecastService().generate_all()

        self.stdout.write(self.style.SUCCESS(
            f"Stored {results['total_points']} forecast points "
            f"({results['successful_locations']}/{results['total_locations']} locations)"
        ))
        if results['failed_locations']:
            self.stdout.write(self.style.WARNING(f"  {results['failed_locations']} locations without a forecast"))
