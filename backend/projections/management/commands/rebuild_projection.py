# projections/management/commands/rebuild_projection.py
"""
Rebuild projections from the event store.

Events are the source of truth; every read model (ledger, account
balances, stock levels) can be dropped and replayed.

Usage:
    python manage.py rebuild_projection --projection account_balance --company acme
    python manage.py rebuild_projection --all --all-companies
    python manage.py rebuild_projection --all --company acme --verify
    python manage.py rebuild_projection --list
"""

import time

from django.core.management.base import BaseCommand, CommandError

from accounts.models import Company
from projections.base import projection_registry


class Command(BaseCommand):
    help = "Rebuild projections from the event store"

    def add_arguments(self, parser):
        parser.add_argument("--projection", type=str, help="Name of the projection to rebuild")
        parser.add_argument("--all", action="store_true", dest="all_projections", help="Rebuild every projection")
        parser.add_argument("--company", type=str, help="Company slug to rebuild for")
        parser.add_argument("--all-companies", action="store_true", help="Rebuild for all active companies")
        parser.add_argument("--verify", action="store_true", help="Compare read models with events after rebuilding")
        parser.add_argument("--dry-run", action="store_true", help="Show the plan without writing")
        parser.add_argument("--list", action="store_true", help="List available projections")

    def handle(self, *args, **options):
        if options["list"]:
            self.stdout.write("\nAvailable projections:\n")
            for name in projection_registry.names():
                self.stdout.write(f"  - {name}")
            return

        projections = self._get_projections(options)
        companies = self._get_companies(options)

        for company in companies:
            for projection in projections:
                lag = projection.get_lag(company)
                self.stdout.write(f"{company.slug} / {projection.name} (pending: {lag})")
                if options["dry_run"]:
                    continue
                started = time.time()
                processed = projection.rebuild(company)
                self.stdout.write(
                    self.style.SUCCESS(f"  rebuilt from {processed} events in {time.time() - started:.2f}s")
                )

            if options["verify"] and not options["dry_run"]:
                self._verify(company, projections)

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("\n[DRY RUN] No changes made."))

    def _get_projections(self, options):
        if options["all_projections"] == bool(options["projection"]):
            raise CommandError("Specify exactly one of --projection <name> or --all")
        if options["all_projections"]:
            return projection_registry.all()
        projection = projection_registry.get(options["projection"])
        if projection is None:
            raise CommandError(
                f"Unknown projection '{options['projection']}'. "
                f"Available: {', '.join(projection_registry.names())}"
            )
        return [projection]

    def _get_companies(self, options):
        if options["all_companies"] == bool(options["company"]):
            raise CommandError("Specify exactly one of --company <slug> or --all-companies")
        if options["all_companies"]:
            return list(Company.objects.filter(is_active=True))
        try:
            return [Company.objects.get(slug=options["company"])]
        except Company.DoesNotExist:
            raise CommandError(f"Company '{options['company']}' not found.")

    def _verify(self, company, projections):
        for projection in projections:
            if projection.name == "account_balance":
                report = projection.verify_all_balances(company)
            elif projection.name == "stock_level":
                report = projection.verify(company)
            else:
                continue
            if report["mismatches"]:
                self.stdout.write(self.style.ERROR(
                    f"  {projection.name}: {len(report['mismatches'])} mismatches"
                ))
                for mismatch in report["mismatches"][:10]:
                    self.stdout.write(f"    {mismatch}")
            else:
                self.stdout.write(self.style.SUCCESS(f"  {projection.name}: {report['verified']} rows verified"))
