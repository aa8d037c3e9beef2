# projections/management/commands/run_projections.py
"""
Management command to run projections.

Usage:
    # Process pending events for all companies, all projections
    python manage.py run_projections

    # Process specific projection for one company
    python manage.py run_projections --projection stock_level --company acme

    # Run continuously (deployments without a Celery worker)
    python manage.py run_projections --daemon --interval 5
"""

import time

from django.core.management.base import BaseCommand, CommandError

from accounts.models import Company
from projections.base import projection_registry


class Command(BaseCommand):
    help = "Process pending events through projections"

    def add_arguments(self, parser):
        parser.add_argument("--projection", type=str, help="Specific projection to run (default: all)")
        parser.add_argument("--company", type=str, help="Company slug (default: all active companies)")
        parser.add_argument("--limit", type=int, default=1000, help="Maximum events per projection per pass")
        parser.add_argument("--daemon", action="store_true", help="Keep polling for new events")
        parser.add_argument("--interval", type=int, default=5, help="Seconds between daemon passes")

    def handle(self, *args, **options):
        if options["projection"]:
            projection = projection_registry.get(options["projection"])
            if projection is None:
                raise CommandError(
                    f"Unknown projection '{options['projection']}'. "
                    f"Available: {', '.join(projection_registry.names())}"
                )
            projections = [projection]
        else:
            projections = projection_registry.all()

        while True:
            total = self._run_once(projections, options)
            if not options["daemon"]:
                self.stdout.write(self.style.SUCCESS(f"Processed {total} events."))
                return
            time.sleep(options["interval"])

    def _companies(self, options):
        if options["company"]:
            try:
                return [Company.objects.get(slug=options["company"])]
            except Company.DoesNotExist:
                raise CommandError(f"Company '{options['company']}' not found.")
        return list(Company.objects.filter(is_active=True))

    def _run_once(self, projections, options) -> int:
        total = 0
        for company in self._companies(options):
            for projection in projections:
                processed = projection.process_pending(company, limit=options["limit"])
                if processed:
                    self.stdout.write(f"  {company.slug} / {projection.name}: {processed} events")
                total += processed
        return total
