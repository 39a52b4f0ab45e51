from decimal import Decimal
from io import StringIO
from django.core.management import CommandError, call_command
from django.test import TestCase
from django.utils import timezone
from ..models import Account, JournalEntry, PurchaseOrder, Vendor


class ManagementCommandTests(TestCase):

    def run_command(self, *args, **kwargs):
        out = StringIO()
        call_command(*args, stdout=out, **kwargs)
        return out.getvalue()

    def test_seed_chart_twice(self):
        self.run_command("seed_chart")
        output = self.run_command("seed_chart")
        self.assertIn("12 system accounts", output)
        self.assertEqual(Account.objects.count(), 12)

    def test_auto_balance_dry_run_then_post(self):
        vendor = Vendor.objects.create(name="Sheesham Traders")
        po = PurchaseOrder.objects.create(
            po_number="PO-CMD", vendor=vendor, total=Decimal("45.00"),
            created_at=timezone.now())

        output = self.run_command("auto_balance", "PURCHASE_ORDER",
                                  "--dry-run")
        self.assertIn(f"1 missing [{po.pk}]", output)
        self.assertFalse(JournalEntry.objects.exists())

        output = self.run_command("auto_balance", "PURCHASE_ORDER")
        self.assertIn("successful=1", output)
        self.assertTrue(JournalEntry.objects.filter(
            source_document_type="PURCHASE_ORDER").exists())

    def test_auto_balance_unknown_type(self):
        with self.assertRaises(CommandError):
            self.run_command("auto_balance", "GIFT_CARD")

    def test_audit_balances_fix(self):
        self.run_command("seed_chart")
        Account.objects.filter(code="1010").update(
            current_balance=Decimal("3.00"))

        with self.assertLogs("ledger_core.services.chart", level="WARNING"):
            output = self.run_command("audit_balances", "--fix")
        self.assertIn("1010: stored 3.00 expected 0.00", output)
        self.assertIn("All account balances match",
                      self.run_command("audit_balances"))

    def test_seed_demo(self):
        output = self.run_command("seed_demo", "--username", "tester")
        self.assertIn("Demo ledger seeded successfully", output)
        self.assertEqual(JournalEntry.objects.count(), 3)

    def test_trial_balance_listing(self):
        self.run_command("seed_demo")
        output = self.run_command("audit_balances", "--trial-balance")
        self.assertIn("1400", output)
        self.assertIn("120000.00", output)
