"""
Cash position: one normalized event stream over every cash source.

Each source kind registers a fetch (rows in a date window) and a
normalizer (row → CashEvent). Reports only ever see CashEvents, so a new
source is one more registration, not another report branch.
"""
import logging
import statistics
from collections import OrderedDict
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..models import (Expense, Investment, InvoiceRefund, LiabilityPayment,
                      LoanOpeningBalance, Payment, Withdrawal)
from .chart import ledger_setting

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

OPERATING = "Operating"
INVESTING = "Investing"
FINANCING = "Financing"
CATEGORIES = (OPERATING, INVESTING, FINANCING)

# Sources that only carry a date are placed at midday
DATE_ONLY_TIME = time(12, 0)

# store credit moves no cash
NON_CASH_METHODS = ("store_credit",)


@dataclass(frozen=True)
class CashEvent:
    time: datetime
    source_kind: str
    category: str
    payment_method: str
    debit: Decimal  # cash in
    credit: Decimal  # cash out
    reference: str
    source_id: int
    description: str = ""
    type_label: str = ""
    subcategory: str = ""
    balance: Optional[Decimal] = None

    @property
    def amount(self):
        return self.debit or self.credit

    @property
    def net(self):
        return self.debit - self.credit

    def to_dict(self):
        data = asdict(self)
        data["time"] = self.time.isoformat()
        for key in ("debit", "credit", "balance"):
            if data[key] is not None:
                data[key] = str(data[key])
        return data


@dataclass(frozen=True)
class CashSource:
    kind: str
    fetch: Callable  # (start_date, end_date) -> iterable of rows
    normalize: Callable  # row -> CashEvent | None


SOURCES = OrderedDict()


def cash_source(kind, fetch):
    """Register ``normalize`` as the CashEvent constructor for ``kind``."""
    def register(normalize):
        SOURCES[kind] = CashSource(kind, fetch, normalize)
        return normalize
    return register


def coerce_timestamp(value):
    """
    Aware local datetime for a datetime, date or ISO string.
    Date-only values land at 12:00. Anything unparseable → None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value) or parse_date(value)
        except ValueError:
            return None
        if parsed is None:
            return None
        value = parsed
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            value = timezone.make_aware(value)
        return timezone.localtime(value)
    if isinstance(value, date):
        return timezone.make_aware(datetime.combine(value, DATE_ONLY_TIME))
    return None


def _event(row, kind, when, category, method, amount, inflow, reference,
           description, type_label, subcategory=""):
    ts = coerce_timestamp(when)
    if ts is None:
        logger.debug("Skipping %s %s with unusable date %r",
                     kind, row.pk, when)
        return None
    amount = amount or ZERO
    return CashEvent(
        time=ts,
        source_kind=kind,
        category=category,
        payment_method=method or "cash",
        debit=amount if inflow else ZERO,
        credit=ZERO if inflow else amount,
        reference=reference,
        source_id=row.pk,
        description=description or "",
        type_label=type_label,
        subcategory=subcategory,
    )


# ----------------------------
# Source registrations
# ----------------------------
def _payments(start, end):
    return Payment.objects.select_related("invoice__customer").filter(
        payment_date__date__gte=start, payment_date__date__lte=end,
    ).exclude(method__in=NON_CASH_METHODS)


@cash_source("sales_payment", _payments)
def _from_payment(p):
    return _event(
        p, "sales_payment", p.payment_date, OPERATING, p.method, p.amount,
        True, p.reference or p.invoice.invoice_number,
        p.description or f"Payment from {p.invoice.customer.name}",
        "Sales Payment",
    )


def _expenses(start, end):
    return Expense.objects.filter(date__gte=start, date__lte=end)


@cash_source("expense", _expenses)
def _from_expense(e):
    category = INVESTING if e.is_capital else OPERATING
    return _event(
        e, "expense", e.date, category, e.payment_method, e.amount, False,
        e.receipt_number or f"EXP-{e.pk}", e.description, "Expense",
        e.category or "Uncategorized",
    )


def _loans(start, end):
    return LoanOpeningBalance.objects.filter(
        disbursement_date__gte=start, disbursement_date__lte=end)


@cash_source("loan_disbursement", _loans)
def _from_loan(loan):
    return _event(
        loan, "loan_disbursement", loan.disbursement_date, FINANCING,
        loan.payment_method, loan.original_amount, True,
        loan.reference_number or f"LOAN-{loan.pk}",
        loan.description or f"Loan from {loan.lender_name}",
        "Loan Disbursement",
    )


def _loan_payments(start, end):
    return LiabilityPayment.objects.select_related("loan").filter(
        payment_date__gte=start, payment_date__lte=end)


@cash_source("loan_repayment", _loan_payments)
def _from_loan_payment(lp):
    return _event(
        lp, "loan_repayment", lp.payment_date, FINANCING, lp.payment_method,
        lp.payment_amount, False, lp.reference_number or f"LP-{lp.pk}",
        lp.description or f"Loan repayment to {lp.loan.lender_name}",
        "Loan Repayment",
    )


def _investments(start, end):
    return Investment.objects.select_related("partner").filter(
        investment_date__gte=start, investment_date__lte=end)


@cash_source("investment", _investments)
def _from_investment(inv):
    return _event(
        inv, "investment", inv.investment_date, FINANCING, inv.payment_method,
        inv.amount, True, inv.reference_number or f"INV-{inv.pk}",
        inv.description or f"Investment by {inv.partner.name}",
        "Partner Investment",
    )


def _withdrawals(start, end):
    return Withdrawal.objects.select_related("partner").filter(
        withdrawal_date__gte=start, withdrawal_date__lte=end)


@cash_source("withdrawal", _withdrawals)
def _from_withdrawal(wd):
    return _event(
        wd, "withdrawal", wd.withdrawal_date, FINANCING, wd.payment_method,
        wd.amount, False, wd.reference_number or f"WD-{wd.pk}",
        wd.description or f"Withdrawal by {wd.partner.name}",
        "Partner Withdrawal",
    )


def _refunds(start, end):
    return InvoiceRefund.objects.select_related("invoice").filter(
        refund_date__gte=start, refund_date__lte=end, status="processed",
    ).exclude(refund_method__in=NON_CASH_METHODS)


# refunds are reported under Financing, as the finance team reads them
@cash_source("refund", _refunds)
def _from_refund(r):
    return _event(
        r, "refund", r.refund_date, FINANCING, r.refund_method,
        r.refund_amount, False, f"REF-{r.pk}",
        r.reason or f"Refund to {r.customer_name or 'customer'}",
        "Invoice Refund",
    )


# ----------------------------
# Collection
# ----------------------------
def collect_cash_events(start_date, end_date):
    """
    Every cash event in [start_date, end_date], sorted by time.

    A source that cannot be read is logged and named in the second
    return value; the other sources still report.
    """
    events, unavailable = [], []
    for kind, source in SOURCES.items():
        try:
            with transaction.atomic():
                rows = list(source.fetch(start_date, end_date))
        except DatabaseError:
            logger.exception("Cash source %s unavailable", kind,
                             extra={"source_kind": kind})
            unavailable.append(kind)
            continue
        for row in rows:
            event = source.normalize(row)
            if event is not None:
                events.append(event)
    events.sort(key=lambda e: (e.time, e.source_kind, e.source_id))
    return events, unavailable


def _q(value):
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ----------------------------
# Day sheet
# ----------------------------
@dataclass
class DaySheet:
    day: date
    transactions: list
    summary: dict

    def to_dict(self):
        return {
            "date": self.day.isoformat(),
            "transactions": [e.to_dict() for e in self.transactions],
            "summary": self.summary,
        }


def build_day_sheet(day: date, category=None, payment_method=None) -> DaySheet:
    events, unavailable = collect_cash_events(day, day)
    if category:
        events = [e for e in events if e.category == category]
    if payment_method:
        events = [e for e in events if e.payment_method == payment_method]

    balance = ZERO
    rows = []
    for event in events:
        balance += event.debit - event.credit
        rows.append(replace(event, balance=balance))

    by_category = {
        name.lower(): {"receipts": ZERO, "payments": ZERO, "net": ZERO}
        for name in CATEGORIES
    }
    by_method = {}
    for event in rows:
        bucket = by_category[event.category.lower()]
        bucket["receipts"] += event.debit
        bucket["payments"] += event.credit
        bucket["net"] += event.net
        by_method[event.payment_method] = \
            by_method.get(event.payment_method, ZERO) + event.amount

    total_receipts = sum((e.debit for e in rows), ZERO)
    total_payments = sum((e.credit for e in rows), ZERO)
    summary = {
        "total_receipts": total_receipts,
        "total_payments": total_payments,
        "net_cash_flow": total_receipts - total_payments,
        "transaction_count": len(rows),
        "by_category": by_category,
        "by_payment_method": by_method,
        "unavailable_sources": unavailable,
    }
    return DaySheet(day=day, transactions=rows, summary=summary)


# ----------------------------
# Trend
# ----------------------------
@dataclass
class CashFlowTrend:
    range_days: int
    start_date: date
    end_date: date
    daily: list
    monthly: list
    summary: dict
    expense_breakdown: list
    payment_method_breakdown: list
    unavailable_sources: list


def build_cash_flow_trend(range_days: int, as_of: date = None) -> CashFlowTrend:
    allowed = ledger_setting("CASH_FLOW_TREND_RANGES", [7, 30, 90, 365])
    if range_days not in allowed:
        raise ValidationError(
            f"range_days must be one of {', '.join(map(str, allowed))}")

    end = as_of or timezone.localdate()
    start = end - timedelta(days=range_days - 1)
    events, unavailable = collect_cash_events(start, end)

    # one row per calendar day, even when nothing happened
    days = OrderedDict()
    for offset in range(range_days):
        d = start + timedelta(days=offset)
        days[d] = {"inflows": ZERO, "outflows": ZERO}
    months = OrderedDict()
    for d in days:
        months.setdefault(f"{d:%Y-%m}", {
            "inflows": ZERO, "outflows": ZERO,
            "inflow_count": 0, "outflow_count": 0,
        })

    expenses = {}
    methods = {}
    for event in events:
        d = event.time.date()
        if d not in days:
            continue
        day = days[d]
        month = months[f"{d:%Y-%m}"]
        day["inflows"] += event.debit
        day["outflows"] += event.credit
        month["inflows"] += event.debit
        month["outflows"] += event.credit
        if event.debit:
            month["inflow_count"] += 1
        else:
            month["outflow_count"] += 1

        method = methods.setdefault(event.payment_method, {
            "payment_method": event.payment_method,
            "inflows": ZERO, "outflows": ZERO, "count": 0,
        })
        method["inflows"] += event.debit
        method["outflows"] += event.credit
        method["count"] += 1

        if event.source_kind == "expense":
            row = expenses.setdefault(event.subcategory, {
                "category": event.subcategory, "amount": ZERO, "count": 0,
            })
            row["amount"] += event.credit
            row["count"] += 1

    daily = []
    running = ZERO
    for d, row in days.items():
        net = row["inflows"] - row["outflows"]
        running += net
        daily.append({
            "date": d.isoformat(),
            "inflows": row["inflows"],
            "outflows": row["outflows"],
            "net_flow": net,
            "running_balance": running,
        })

    monthly = [
        {"month": key, "net_flow": row["inflows"] - row["outflows"], **row}
        for key, row in months.items()
    ]

    total_in = sum((r["inflows"] for r in daily), ZERO)
    total_out = sum((r["outflows"] for r in daily), ZERO)
    nets = [r["net_flow"] for r in daily]
    summary = {
        "total_inflows": total_in,
        "total_outflows": total_out,
        "net_cash_flow": total_in - total_out,
        "cash_flow_ratio": _q(total_in / total_out) if total_out else ZERO,
        "avg_daily_inflow": _q(total_in / range_days),
        "avg_daily_outflow": _q(total_out / range_days),
        "positive_flow_days": sum(1 for n in nets if n > 0),
        # population std-dev of daily net flow
        "volatility": _q(statistics.pstdev(nets)),
    }

    expense_breakdown = sorted(
        expenses.values(), key=lambda r: r["amount"], reverse=True)[:10]

    return CashFlowTrend(
        range_days=range_days,
        start_date=start,
        end_date=end,
        daily=daily,
        monthly=monthly,
        summary=summary,
        expense_breakdown=expense_breakdown,
        payment_method_breakdown=sorted(
            methods.values(), key=lambda r: r["payment_method"]),
        unavailable_sources=unavailable,
    )
