from django.core.management.base import BaseCommand
from django.db import transaction

from ledger_core.services.chart import ensure_default_chart


class Command(BaseCommand):
    help = "Create the default chart of accounts (safe to run repeatedly)."

    @transaction.atomic
    def handle(self, *args, **options):
        accounts = ensure_default_chart()
        for account in accounts:
            self.stdout.write(f"  {account.code:<8} {account.name}")
        self.stdout.write(self.style.SUCCESS(
            f"Chart of accounts ready ({len(accounts)} system accounts)"))
