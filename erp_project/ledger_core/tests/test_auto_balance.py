import datetime
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone
from ..models import (Customer, Investment, Invoice, JournalEntry, Partner,
                      PurchaseOrder, ReconciliationGap, SalesOrder, Vendor,
                      VendorBill)
from ..services import (create_missing_journals, deactivate_account,
                        ensure_default_chart, find_missing_journals,
                        get_account, record_customer_payment)
from ..services.auditor import REGISTRY, run_all
from ..tasks import run_auto_balance, verify_account_balances


class FindMissingJournalsTests(TestCase):

    def setUp(self):
        ensure_default_chart()
        self.vendor = Vendor.objects.create(name="Oak & Ash")
        self.po = PurchaseOrder.objects.create(
            po_number="PO-1", vendor=self.vendor, total=Decimal("400.00"),
            created_at=timezone.now())
        PurchaseOrder.objects.create(
            po_number="PO-2", vendor=self.vendor, total=Decimal("90.00"),
            status="cancelled", created_at=timezone.now())
        PurchaseOrder.objects.create(
            po_number="PO-3", vendor=self.vendor, total=Decimal("0.00"),
            created_at=timezone.now())

    def test_only_eligible_documents_are_missing(self):
        missing = find_missing_journals("PURCHASE_ORDER")
        self.assertEqual(list(missing), [self.po])

    def test_bills_linked_to_an_order_are_covered_by_it(self):
        VendorBill.objects.create(
            bill_number="VB-1", vendor=self.vendor, purchase_order=self.po,
            bill_date=datetime.date(2025, 4, 1),
            total_amount=Decimal("400.00"))
        standalone = VendorBill.objects.create(
            bill_number="VB-2", vendor=self.vendor,
            bill_date=datetime.date(2025, 4, 2),
            total_amount=Decimal("75.00"))

        self.assertEqual(list(find_missing_journals("VENDOR_BILL")),
                         [standalone])

    def test_unsupported_type(self):
        with self.assertRaises(ValidationError):
            find_missing_journals("GIFT_CARD")

    def test_create_then_rerun_is_a_no_op(self):
        result = create_missing_journals("PURCHASE_ORDER")

        self.assertEqual(result.processed, 1)
        self.assertEqual(result.successful, 1)
        self.assertEqual(result.failed, 0)
        row = result.results[0]
        self.assertEqual(row["document_id"], self.po.pk)
        self.assertEqual(row["status"], "success")
        self.assertEqual(row["total"], "400.00")
        entry = JournalEntry.objects.get(pk=row["journal_entry_id"])
        self.assertEqual(entry.source_reference, str(self.po.pk))
        self.assertEqual(get_account("1400").current_balance,
                         Decimal("400.00"))

        again = create_missing_journals("PURCHASE_ORDER")
        self.assertEqual(again.processed, 0)
        self.assertEqual(JournalEntry.objects.count(), 1)

    def test_ids_narrow_the_run(self):
        other = PurchaseOrder.objects.create(
            po_number="PO-4", vendor=self.vendor, total=Decimal("10.00"),
            created_at=timezone.now())

        result = create_missing_journals("PURCHASE_ORDER", ids=[other.pk])
        self.assertEqual(result.processed, 1)
        self.assertEqual(list(find_missing_journals("PURCHASE_ORDER")),
                         [self.po])


class AutoBalanceFailureTests(TestCase):

    def setUp(self):
        ensure_default_chart()
        partner = Partner.objects.create(name="Rhea Menon")
        today = datetime.date(2025, 4, 5)
        self.by_cash = Investment.objects.create(
            partner=partner, investment_date=today,
            amount=Decimal("700.00"), payment_method="cash")
        self.by_bank = Investment.objects.create(
            partner=partner, investment_date=today,
            amount=Decimal("300.00"), payment_method="bank_transfer")

    def test_one_failure_does_not_stop_the_batch(self):
        deactivate_account("1010")

        with self.assertLogs("ledger_core.services.auditor", level="WARNING"):
            result = create_missing_journals("PARTNER_INVESTMENT")

        self.assertEqual(result.processed, 2)
        self.assertEqual(result.successful, 1)
        self.assertEqual(result.failed, 1)
        by_id = {r["document_id"]: r for r in result.results}
        self.assertEqual(by_id[self.by_cash.pk]["status"], "failed")
        self.assertIn("inactive", by_id[self.by_cash.pk]["error"])
        self.assertEqual(by_id[self.by_bank.pk]["status"], "success")

        # still missing, picked up on the next run
        self.assertEqual(list(find_missing_journals("PARTNER_INVESTMENT")),
                         [self.by_cash])

    def test_result_serializes(self):
        data = create_missing_journals("PARTNER_INVESTMENT").to_dict()
        self.assertEqual(data["document_type"], "PARTNER_INVESTMENT")
        self.assertEqual(data["successful"], 2)


class GapResolutionTests(TestCase):

    def setUp(self):
        ensure_default_chart()
        customer = Customer.objects.create(name="Studio Nine")
        order = SalesOrder.objects.create(
            order_number="SO-9", customer=customer,
            grand_total=Decimal("500.00"), status="confirmed",
            created_at=timezone.now())
        self.invoice = Invoice.objects.create(
            invoice_number="INV-9", sales_order=order, customer=customer,
            invoice_date=datetime.date(2025, 4, 1), total=Decimal("500.00"))

    def test_auditor_closes_the_gap(self):
        cash = deactivate_account("1010")
        with self.assertLogs("ledger_core.services.payment", level="WARNING"):
            outcome = record_customer_payment(self.invoice.pk, "500.00")
        gap = outcome.accounting.gap
        self.assertTrue(gap.is_open)

        cash.is_active = True
        cash.save(update_fields=["is_active"])
        result = create_missing_journals("CUSTOMER_PAYMENT")
        self.assertEqual(result.successful, 1)

        gap.refresh_from_db()
        self.assertFalse(gap.is_open)
        self.assertEqual(gap.resolved_entry.source_reference,
                         str(outcome.primary.pk))
        self.assertFalse(ReconciliationGap.objects.filter(
            resolved_at__isnull=True).exists())
        self.assertEqual(get_account("1010").current_balance,
                         Decimal("500.00"))


class AutoBalanceTaskTests(TestCase):

    def setUp(self):
        ensure_default_chart()
        vendor = Vendor.objects.create(name="Rattan Works")
        PurchaseOrder.objects.create(
            po_number="PO-T1", vendor=vendor, total=Decimal("60.00"),
            created_at=timezone.now())

    def test_run_all_covers_every_type(self):
        results = run_all()
        self.assertEqual(set(results), set(REGISTRY))
        self.assertEqual(results["PURCHASE_ORDER"].successful, 1)

    def test_tasks(self):
        summary = run_auto_balance(["PURCHASE_ORDER"])
        self.assertEqual(summary["PURCHASE_ORDER"]["successful"], 1)

        report = verify_account_balances()
        self.assertEqual(report["drift"], [])
        self.assertTrue(report["balance_sheet"]["balanced"])
