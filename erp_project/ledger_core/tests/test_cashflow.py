import datetime
from dataclasses import replace
from decimal import Decimal
from unittest import mock
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from ..models import (Customer, Expense, Invoice, InvoiceRefund,
                      LoanOpeningBalance, Partner, Payment, SalesOrder,
                      Withdrawal)
from ..services import build_cash_flow_trend, build_day_sheet
from ..services import cashflow
from ..services.cashflow import coerce_timestamp

DAY = datetime.date(2025, 3, 10)


def at(hour, minute=0, day=DAY):
    return timezone.make_aware(datetime.datetime.combine(
        day, datetime.time(hour, minute)))


class CashEventFixtureMixin:
    """One day of mixed cash movements on 2025-03-10."""

    def setUp(self):
        customer = Customer.objects.create(name="Walk-in")
        order = SalesOrder.objects.create(
            order_number="SO-CF1", customer=customer,
            grand_total=Decimal("2000.00"), status="delivered",
            created_at=at(8))
        self.invoice = Invoice.objects.create(
            invoice_number="INV-CF1", sales_order=order, customer=customer,
            invoice_date=DAY, total=Decimal("2000.00"))

        Payment.objects.create(
            invoice=self.invoice, payment_date=at(9), amount=Decimal("1000.00"),
            method="cash")
        # store credit is not cash
        Payment.objects.create(
            invoice=self.invoice, payment_date=at(9, 30),
            amount=Decimal("50.00"), method="store_credit")
        Expense.objects.create(
            date=DAY, amount=Decimal("200.00"), category="Rent")
        Expense.objects.create(
            date=DAY, amount=Decimal("300.00"), category="CAPEX",
            payment_method="bank_transfer", description="CNC router")
        LoanOpeningBalance.objects.create(
            lender_name="State Bank", disbursement_date=DAY,
            original_amount=Decimal("5000.00"))
        InvoiceRefund.objects.create(
            invoice=self.invoice, refund_date=DAY,
            refund_amount=Decimal("80.00"), refund_method="cash")
        InvoiceRefund.objects.create(
            invoice=self.invoice, refund_date=DAY,
            refund_amount=Decimal("40.00"), status="pending")
        partner = Partner.objects.create(name="Vikram Shah")
        Withdrawal.objects.create(
            partner=partner, withdrawal_date=DAY, amount=Decimal("100.00"))


class DaySheetTests(CashEventFixtureMixin, TestCase):

    def test_events_are_time_ordered_with_running_balance(self):
        sheet = build_day_sheet(DAY)

        kinds = [e.source_kind for e in sheet.transactions]
        self.assertEqual(kinds, [
            "sales_payment", "expense", "expense", "loan_disbursement",
            "refund", "withdrawal",
        ])
        balances = [e.balance for e in sheet.transactions]
        self.assertEqual(balances, [
            Decimal("1000.00"), Decimal("800.00"), Decimal("500.00"),
            Decimal("5500.00"), Decimal("5420.00"), Decimal("5320.00"),
        ])
        # date-only sources sit at midday
        self.assertEqual(sheet.transactions[1].time.hour, 12)

    def test_summary(self):
        summary = build_day_sheet(DAY).summary

        self.assertEqual(summary["total_receipts"], Decimal("6000.00"))
        self.assertEqual(summary["total_payments"], Decimal("680.00"))
        self.assertEqual(summary["net_cash_flow"], Decimal("5320.00"))
        self.assertEqual(summary["transaction_count"], 6)
        self.assertEqual(summary["unavailable_sources"], [])

        by_category = summary["by_category"]
        self.assertEqual(by_category["operating"]["receipts"],
                         Decimal("1000.00"))
        self.assertEqual(by_category["operating"]["payments"],
                         Decimal("200.00"))
        self.assertEqual(by_category["investing"]["payments"],
                         Decimal("300.00"))
        self.assertEqual(by_category["financing"]["receipts"],
                         Decimal("5000.00"))
        self.assertEqual(by_category["financing"]["payments"],
                         Decimal("180.00"))

        self.assertEqual(summary["by_payment_method"]["bank_transfer"],
                         Decimal("5300.00"))

    def test_filters(self):
        financing = build_day_sheet(DAY, category="Financing")
        self.assertEqual(len(financing.transactions), 3)
        self.assertEqual(financing.transactions[-1].balance,
                         Decimal("4820.00"))

        bank = build_day_sheet(DAY, payment_method="bank_transfer")
        self.assertEqual([e.source_kind for e in bank.transactions],
                         ["expense", "loan_disbursement"])

    def test_other_days_are_empty(self):
        sheet = build_day_sheet(DAY + datetime.timedelta(days=1))
        self.assertEqual(sheet.transactions, [])
        self.assertEqual(sheet.summary["net_cash_flow"], Decimal("0.00"))

    def test_unreadable_source_is_named_and_the_rest_still_report(self):
        def broken(start, end):
            raise DatabaseError("relation expenses does not exist")

        patched = replace(cashflow.SOURCES["expense"], fetch=broken)
        with mock.patch.dict(cashflow.SOURCES, {"expense": patched}), \
                self.assertLogs("ledger_core.services.cashflow",
                                level="ERROR"):
            sheet = build_day_sheet(DAY)

        self.assertEqual(sheet.summary["unavailable_sources"], ["expense"])
        self.assertEqual(sheet.summary["transaction_count"], 4)

    def test_to_dict(self):
        data = build_day_sheet(DAY).to_dict()
        self.assertEqual(data["date"], "2025-03-10")
        self.assertEqual(data["transactions"][0]["debit"], "1000.00")
        self.assertEqual(data["transactions"][0]["category"], "Operating")


class CashFlowTrendTests(CashEventFixtureMixin, TestCase):

    def test_range_must_be_configured(self):
        with self.assertRaises(ValidationError):
            build_cash_flow_trend(14, as_of=DAY)

    def test_daily_rows_cover_every_day(self):
        trend = build_cash_flow_trend(7, as_of=datetime.date(2025, 3, 12))

        self.assertEqual(trend.start_date, datetime.date(2025, 3, 6))
        self.assertEqual(len(trend.daily), 7)
        self.assertEqual(trend.daily[0]["date"], "2025-03-06")
        self.assertEqual(trend.daily[0]["net_flow"], Decimal("0.00"))
        self.assertEqual(trend.daily[4]["net_flow"], Decimal("5320.00"))
        self.assertEqual(trend.daily[-1]["running_balance"],
                         Decimal("5320.00"))

    def test_summary(self):
        summary = build_cash_flow_trend(
            7, as_of=datetime.date(2025, 3, 12)).summary

        self.assertEqual(summary["total_inflows"], Decimal("6000.00"))
        self.assertEqual(summary["total_outflows"], Decimal("680.00"))
        self.assertEqual(summary["net_cash_flow"], Decimal("5320.00"))
        self.assertEqual(summary["cash_flow_ratio"], Decimal("8.82"))
        self.assertEqual(summary["avg_daily_inflow"], Decimal("857.14"))
        self.assertEqual(summary["avg_daily_outflow"], Decimal("97.14"))
        self.assertEqual(summary["positive_flow_days"], 1)
        self.assertEqual(summary["volatility"], Decimal("1861.61"))

    def test_breakdowns(self):
        trend = build_cash_flow_trend(7, as_of=datetime.date(2025, 3, 12))

        self.assertEqual(
            [(r["category"], r["amount"]) for r in trend.expense_breakdown],
            [("CAPEX", Decimal("300.00")), ("Rent", Decimal("200.00"))])

        methods = {r["payment_method"]: r for r in
                   trend.payment_method_breakdown}
        self.assertEqual(methods["cash"]["inflows"], Decimal("1000.00"))
        self.assertEqual(methods["cash"]["outflows"], Decimal("380.00"))
        self.assertEqual(methods["cash"]["count"], 4)

        self.assertEqual(len(trend.monthly), 1)
        month = trend.monthly[0]
        self.assertEqual(month["month"], "2025-03")
        self.assertEqual(month["inflow_count"], 2)
        self.assertEqual(month["outflow_count"], 4)

    def test_month_rows_span_the_range(self):
        trend = build_cash_flow_trend(30, as_of=datetime.date(2025, 3, 12))
        self.assertEqual([m["month"] for m in trend.monthly],
                         ["2025-02", "2025-03"])


class CoerceTimestampTests(TestCase):

    def test_dates_land_at_midday(self):
        ts = coerce_timestamp(DAY)
        self.assertEqual((ts.hour, ts.minute), (12, 0))
        self.assertTrue(timezone.is_aware(ts))

    def test_strings(self):
        self.assertEqual(coerce_timestamp("2025-03-10").date(), DAY)
        self.assertEqual(coerce_timestamp("2025-03-10T08:15:00").hour, 8)

    def test_unusable_values(self):
        for value in (None, "", "not-a-date", "2025-13-45"):
            with self.subTest(value=value):
                self.assertIsNone(coerce_timestamp(value))
