import datetime
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone
from ..exceptions import DocumentNotFound
from ..models import (AuditLog, Customer, Invoice, JournalEntry, Partner,
                      Payment, PurchaseOrder, ReconciliationGap, SalesOrder,
                      Vendor)
from ..services import (compute_outstanding, deactivate_account,
                        ensure_default_chart, get_account,
                        record_customer_payment, record_loan_disbursement,
                        record_loan_repayment, record_partner_investment,
                        record_purchase_order, record_refund,
                        record_supplier_payment, record_vendor_bill,
                        record_waiver, record_withdrawal, rules)
from ..services.outcomes import AccountingGap, AccountingOk
from ..services.payment import post_plan_best_effort


def balance(code):
    return get_account(code).current_balance


class CustomerPaymentTests(TestCase):

    def setUp(self):
        ensure_default_chart()
        self.customer = Customer.objects.create(
            name="Meera Interiors", phone="98450 11223")
        self.order = SalesOrder.objects.create(
            order_number="SO-1001", customer=self.customer,
            grand_total=Decimal("1000.00"), status="confirmed",
            created_at=timezone.now())
        self.invoice = Invoice.objects.create(
            invoice_number="INV-1001", sales_order=self.order,
            customer=self.customer, invoice_date=datetime.date(2025, 3, 1),
            total=Decimal("1000.00"))

    def test_payment_updates_invoice_and_posts_journal(self):
        outcome = record_customer_payment(
            self.invoice.pk, "400.00", method="upi", reference="UTR-88")

        self.assertTrue(outcome.accounting_ok)
        payment = outcome.primary
        self.assertEqual(payment.amount, Decimal("400.00"))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_amount, Decimal("400.00"))
        self.assertEqual(self.invoice.status, "partial")

        entry = outcome.accounting.entry
        self.assertEqual(entry.source_document_type, "CUSTOMER_PAYMENT")
        self.assertEqual(entry.source_reference, str(payment.pk))
        # Dr Bank, Cr Accounts Receivable
        self.assertEqual(balance("1020"), Decimal("400.00"))
        self.assertEqual(balance("1200"), Decimal("-400.00"))

    def test_full_payment_marks_invoice_paid(self):
        record_customer_payment(self.invoice.pk, "1000.00")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "paid")
        self.assertEqual(balance("1010"), Decimal("1000.00"))

    def test_overpayment_is_rejected(self):
        with self.assertRaises(ValidationError):
            record_customer_payment(self.invoice.pk, "1000.01")
        self.assertFalse(Payment.objects.exists())

    def test_overpayment_guard_counts_recorded_receipts(self):
        # receipt on file that the cached paid amount never picked up
        Payment.objects.create(
            invoice=self.invoice, payment_date=timezone.now(),
            amount=Decimal("600.00"))

        with self.assertRaises(ValidationError):
            record_customer_payment(self.invoice.pk, "500.00")
        outcome = record_customer_payment(self.invoice.pk, "400.00")
        self.assertTrue(outcome.accounting_ok)

    def test_draft_journal_for_the_payment_is_a_gap(self):
        payment = Payment.objects.create(
            invoice=self.invoice, payment_date=timezone.now(),
            amount=Decimal("50.00"))
        JournalEntry.objects.create(
            journal_number="JE-20250302-DRAFT001",
            entry_date=datetime.date(2025, 3, 2),
            source_document_type="CUSTOMER_PAYMENT",
            source_reference=str(payment.pk))

        with self.assertLogs("ledger_core.services.payment", level="WARNING"):
            accounting = post_plan_best_effort(
                "CUSTOMER_PAYMENT", rules.customer_payment, payment,
                payment.amount)

        self.assertIsInstance(accounting, AccountingGap)
        self.assertIn("draft", accounting.reason)
        self.assertTrue(accounting.gap.is_open)
        self.assertEqual(balance("1010"), Decimal("0.00"))

    def test_posted_journal_for_the_payment_is_reused(self):
        outcome = record_customer_payment(self.invoice.pk, "50.00")

        again = post_plan_best_effort(
            "CUSTOMER_PAYMENT", rules.customer_payment, outcome.primary,
            outcome.primary.amount)
        self.assertIsInstance(again, AccountingOk)
        self.assertEqual(again.entry, outcome.accounting.entry)
        self.assertEqual(balance("1010"), Decimal("50.00"))

    def test_non_positive_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            record_customer_payment(self.invoice.pk, "0")

    def test_cancelled_invoice_takes_no_payment(self):
        self.invoice.status = "cancelled"
        self.invoice.save()
        with self.assertRaises(ValidationError):
            record_customer_payment(self.invoice.pk, "10.00")

    def test_unknown_invoice(self):
        with self.assertRaises(DocumentNotFound):
            record_customer_payment(424242, "10.00")

    def test_failed_posting_keeps_payment_and_records_gap(self):
        deactivate_account("1010")

        with self.assertLogs("ledger_core.services.payment", level="WARNING"):
            outcome = record_customer_payment(self.invoice.pk, "250.00")

        self.assertFalse(outcome.accounting_ok)
        self.assertIn("inactive", outcome.accounting.reason)

        # the business write stands
        payment = outcome.primary
        self.assertTrue(Payment.objects.filter(pk=payment.pk).exists())
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_amount, Decimal("250.00"))

        gap = ReconciliationGap.objects.get()
        self.assertEqual(gap.source_document_type, "CUSTOMER_PAYMENT")
        self.assertEqual(gap.source_reference, str(payment.pk))
        self.assertEqual(gap.amount, Decimal("250.00"))
        self.assertEqual(gap.attempted_accounts, ["1010", "1200"])
        self.assertTrue(gap.is_open)
        self.assertFalse(JournalEntry.objects.exists())

    def test_refund_reduces_paid_amount_and_cash(self):
        record_customer_payment(self.invoice.pk, "400.00")
        outcome = record_refund(self.invoice.pk, "100.00", reason="scratched")

        self.assertTrue(outcome.accounting_ok)
        self.assertEqual(outcome.primary.customer_name, "Meera Interiors")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_amount, Decimal("300.00"))
        # Dr Refund Expense, Cr Cash
        self.assertEqual(balance("6500"), Decimal("100.00"))
        self.assertEqual(balance("1010"), Decimal("300.00"))

    def test_store_credit_refund_credits_the_liability(self):
        record_customer_payment(self.invoice.pk, "400.00")
        record_refund(self.invoice.pk, "150.00", method="store_credit")
        self.assertEqual(balance("2150"), Decimal("150.00"))
        self.assertEqual(balance("1010"), Decimal("400.00"))

    def test_refund_cannot_exceed_paid(self):
        record_customer_payment(self.invoice.pk, "100.00")
        with self.assertRaises(ValidationError):
            record_refund(self.invoice.pk, "100.01")


class WaiverTests(TestCase):

    def setUp(self):
        customer = Customer.objects.create(name="Rosewood Lodge")
        self.order = SalesOrder.objects.create(
            order_number="SO-W1", customer=customer,
            grand_total=Decimal("1000.00"), status="delivered",
            created_at=timezone.now())
        self.invoice = Invoice.objects.create(
            invoice_number="INV-W1", sales_order=self.order,
            customer=customer, invoice_date=datetime.date(2025, 4, 1),
            total=Decimal("1000.00"), paid_amount=Decimal("700.00"),
            status="partial")

    def test_partial_waiver(self):
        invoice = record_waiver(self.invoice.pk, "100.00",
                                reason="scratched tabletop")

        self.assertEqual(invoice.waived_amount, Decimal("100.00"))
        self.assertEqual(invoice.status, "partial")
        doc = compute_outstanding(self.order.pk, "receivable")
        self.assertEqual(doc.waived, Decimal("100.00"))
        self.assertEqual(doc.outstanding, Decimal("200.00"))

        log = AuditLog.objects.get(action="waive")
        self.assertEqual(log.object_id, str(self.invoice.pk))
        self.assertEqual(log.changes["amount"], "100.00")
        self.assertEqual(log.changes["reason"], "scratched tabletop")
        # no cash moved, so nothing is journaled
        self.assertFalse(JournalEntry.objects.exists())

    def test_waiving_the_rest_settles_the_invoice(self):
        record_waiver(self.invoice.pk, "120.00")
        invoice = record_waiver(self.invoice.pk, "180.00")

        self.assertEqual(invoice.waived_amount, Decimal("300.00"))
        self.assertEqual(invoice.status, "paid")
        doc = compute_outstanding(self.order.pk, "receivable")
        self.assertEqual(doc.outstanding, Decimal("0.00"))
        self.assertFalse(doc.is_open)

    def test_cannot_waive_more_than_outstanding(self):
        with self.assertRaises(ValidationError):
            record_waiver(self.invoice.pk, "300.01")

        # receipts the cache missed count as paid
        Payment.objects.create(
            invoice=self.invoice, payment_date=timezone.now(),
            amount=Decimal("900.00"))
        with self.assertRaises(ValidationError):
            record_waiver(self.invoice.pk, "150.00")

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.waived_amount, Decimal("0.00"))
        self.assertFalse(AuditLog.objects.filter(action="waive").exists())

    def test_rejected_waivers(self):
        with self.assertRaises(ValidationError):
            record_waiver(self.invoice.pk, "0")
        with self.assertRaises(DocumentNotFound):
            record_waiver(424242, "10.00")

        Invoice.objects.filter(pk=self.invoice.pk).update(status="cancelled")
        with self.assertRaises(ValidationError):
            record_waiver(self.invoice.pk, "10.00")


class PurchasingTests(TestCase):

    def setUp(self):
        ensure_default_chart()
        self.vendor = Vendor.objects.create(
            name="Teak House", email="accounts@teakhouse.example")

    def test_purchase_order_posts_inventory_against_payables(self):
        outcome = record_purchase_order(self.vendor.pk, "PO-77", "500.00")

        self.assertTrue(outcome.accounting_ok)
        self.assertEqual(balance("1400"), Decimal("500.00"))
        self.assertEqual(balance("2000"), Decimal("500.00"))

    def test_bill_from_purchase_order_shares_its_journal(self):
        po = record_purchase_order(self.vendor.pk, "PO-78", "500.00")
        outcome = record_vendor_bill(
            self.vendor.pk, "BILL-78", "500.00",
            purchase_order_id=po.primary.pk)

        self.assertTrue(outcome.accounting_ok)
        self.assertEqual(outcome.accounting.entry, po.accounting.entry)
        self.assertFalse(JournalEntry.objects.filter(
            source_document_type="VENDOR_BILL").exists())
        # AP counted once
        self.assertEqual(balance("2000"), Decimal("500.00"))

    def test_bill_from_unjournaled_purchase_order_is_a_gap(self):
        po = PurchaseOrder.objects.create(
            po_number="PO-79", vendor=self.vendor, total=Decimal("80.00"),
            created_at=timezone.now())

        outcome = record_vendor_bill(
            self.vendor.pk, "BILL-79", "80.00", purchase_order_id=po.pk)

        self.assertFalse(outcome.accounting_ok)
        gap = outcome.accounting.gap
        self.assertEqual(gap.source_document_type, "PURCHASE_ORDER")
        self.assertEqual(gap.source_reference, str(po.pk))

    def test_standalone_bill_gets_its_own_journal(self):
        outcome = record_vendor_bill(self.vendor.pk, "BILL-80", "300.00")
        self.assertEqual(outcome.accounting.entry.source_document_type,
                         "VENDOR_BILL")
        self.assertEqual(balance("2000"), Decimal("300.00"))

    def test_supplier_payment(self):
        bill = record_vendor_bill(self.vendor.pk, "BILL-81", "300.00").primary

        outcome = record_supplier_payment(bill.pk, "100.00")

        self.assertTrue(outcome.accounting_ok)
        bill.refresh_from_db()
        self.assertEqual(bill.paid_amount, Decimal("100.00"))
        self.assertEqual(bill.status, "partial")
        # Dr AP, Cr Bank
        self.assertEqual(balance("2000"), Decimal("200.00"))
        self.assertEqual(balance("1020"), Decimal("-100.00"))

        with self.assertRaises(ValidationError):
            record_supplier_payment(bill.pk, "200.01")

        record_supplier_payment(bill.pk, "200.00")
        bill.refresh_from_db()
        self.assertEqual(bill.status, "paid")

    def test_unknown_vendor(self):
        with self.assertRaises(DocumentNotFound):
            record_purchase_order(424242, "PO-X", "10.00")


class EquityAndLoanTests(TestCase):

    def setUp(self):
        ensure_default_chart()
        self.partner = Partner.objects.create(name="Vikram Shah")

    def test_investment_and_withdrawal_move_partner_equity(self):
        inv = record_partner_investment(self.partner.pk, "1000.00")
        self.assertTrue(inv.accounting_ok)
        code = f"3015-{self.partner.pk}"
        self.assertEqual(balance(code), Decimal("1000.00"))
        self.assertEqual(balance("1010"), Decimal("1000.00"))

        wd = record_withdrawal(self.partner.pk, "200.00")
        self.assertTrue(wd.accounting_ok)
        self.assertEqual(balance(code), Decimal("800.00"))
        self.assertEqual(balance("1010"), Decimal("800.00"))

    def test_loan_disbursement_and_repayment(self):
        loan = record_loan_disbursement("State Bank", "5000.00").primary
        self.assertEqual(balance("2500"), Decimal("5000.00"))
        self.assertEqual(balance("1020"), Decimal("5000.00"))

        record_loan_repayment(loan.pk, "1000.00")
        self.assertEqual(balance("2500"), Decimal("4000.00"))
        self.assertEqual(balance("1020"), Decimal("4000.00"))

        with self.assertRaises(ValidationError):
            record_loan_repayment(loan.pk, "4000.01")
