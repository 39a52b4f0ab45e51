import datetime
import threading
from decimal import Decimal
from unittest import skipUnless
from django.db import connection
from django.test import TransactionTestCase
from django.utils import timezone
from ..models import Customer, Invoice, JournalEntry, SalesOrder
from ..services import (ensure_default_chart, get_account,
                        post_journal_entry, record_customer_payment,
                        verify_account_balances)
from ..services.chart import apply_balance_deltas


class StaleInstanceTests(TransactionTestCase):
    """Balance increments never read the in-memory value."""

    def test_increments_from_two_stale_copies_both_land(self):
        ensure_default_chart()
        first = get_account("1010")
        second = get_account("1010")

        apply_balance_deltas({first.pk: Decimal("10.00")})
        apply_balance_deltas({second.pk: Decimal("15.00")})

        self.assertEqual(get_account("1010").current_balance,
                         Decimal("25.00"))

    def test_two_payments_raise_cash_by_exactly_their_sum(self):
        ensure_default_chart()
        customer = Customer.objects.create(name="Nair Furnishings")
        order = SalesOrder.objects.create(
            order_number="SO-C1", customer=customer,
            grand_total=Decimal("2000.00"), status="confirmed",
            created_at=timezone.now())
        invoice = Invoice.objects.create(
            invoice_number="INV-C1", sales_order=order, customer=customer,
            invoice_date=datetime.date(2025, 5, 1),
            total=Decimal("2000.00"))
        stale = get_account("1010")

        record_customer_payment(invoice.pk, "1000.00")
        record_customer_payment(invoice.pk, "1000.00")

        stale.refresh_from_db()
        self.assertEqual(stale.current_balance, Decimal("2000.00"))
        invoice.refresh_from_db()
        self.assertEqual(invoice.paid_amount, Decimal("2000.00"))
        self.assertEqual(invoice.status, "paid")


@skipUnless(connection.vendor == "postgresql",
            "row locks need a real server")
class ConcurrentPostingTests(TransactionTestCase):

    WORKERS = 8

    def setUp(self):
        ensure_default_chart()

    def test_parallel_postings_to_one_account_sum_exactly(self):
        errors = []

        def worker(n):
            try:
                post_journal_entry(
                    "CUSTOMER_PAYMENT", n, datetime.date(2025, 5, 1),
                    f"counter sale {n}",
                    [{"account": "1010", "debit": "12.50"},
                     {"account": "1200", "credit": "12.50"}],
                )
            except Exception as exc:  # surfaced through the assertion below
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(n,))
                   for n in range(self.WORKERS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(get_account("1010").current_balance,
                         Decimal("12.50") * self.WORKERS)
        self.assertEqual(verify_account_balances(), [])

    def test_racing_duplicates_post_once(self):
        outcomes = []

        def worker():
            try:
                post_journal_entry(
                    "PURCHASE_ORDER", 1, datetime.date(2025, 5, 1), "PO-1",
                    [{"account": "1400", "debit": "99.00"},
                     {"account": "2000", "credit": "99.00"}],
                )
                outcomes.append("posted")
            except Exception as exc:
                outcomes.append(type(exc).__name__)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(outcomes.count("posted"), 1)
        self.assertEqual(
            set(outcomes) - {"posted"}, {"DuplicateJournalError"})
        self.assertEqual(JournalEntry.objects.count(), 1)
        self.assertEqual(get_account("1400").current_balance,
                         Decimal("99.00"))
