from django.core.management.base import BaseCommand

from ledger_core.services.auditor import balance_sheet_variance
from ledger_core.services.chart import trial_balance, verify_account_balances


class Command(BaseCommand):
    help = "Recompute account balances from posted lines and report drift."

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Rewrite drifted balances from the posted history.",
        )
        parser.add_argument(
            "--trial-balance",
            action="store_true",
            help="Also print posted debit/credit totals per account.",
        )

    def handle(self, *args, **options):
        drift = verify_account_balances(fix=options["fix"])
        if not drift:
            self.stdout.write(self.style.SUCCESS(
                "All account balances match their posted lines."))
        for row in drift:
            self.stdout.write(self.style.WARNING(
                f"{row['code']}: stored {row['stored']} "
                f"expected {row['expected']} (diff {row['difference']})"))

        variance = balance_sheet_variance()
        style = self.style.SUCCESS if variance["balanced"] \
            else self.style.ERROR
        self.stdout.write(style(f"Balance sheet variance: {variance['variance']}"))

        if options["trial_balance"]:
            for row in trial_balance():
                self.stdout.write(
                    f"{row['account__code']:<10} {row['account__name']:<30} "
                    f"Dr {row['debit']:>14} Cr {row['credit']:>14}")
