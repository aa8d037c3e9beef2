# accounts/management/commands/seed_permissions.py

from django.core.management.base import BaseCommand

from accounts.permissions import ensure_permission_rows
from projections.write_barrier import bootstrap_writes_allowed


class Command(BaseCommand):
    help = "Create AppPermission rows for every known permission code"

    def handle(self, *args, **options):
        with bootstrap_writes_allowed():
            created = ensure_permission_rows()

        self.stdout.write(self.style.SUCCESS(f"Done! Created {created} permissions."))
