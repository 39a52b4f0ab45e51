"""
Outstanding balances of receivable and payable documents.

The cached ``paid_amount`` columns drift (partial updates, manual
edits), so every figure here is reconciled against the payment history:
paid = max(cached, history). A negative outstanding is reported as an
InvariantViolation and never clamped to zero.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from django.core.exceptions import ValidationError
from django.db.models import DecimalField, OuterRef, Subquery, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..exceptions import DocumentNotFound
from ..models import (Invoice, InvoiceRefund, Payment, SalesOrder, VendorBill,
                      VendorPaymentHistory)
from ..models.purchasing import OPEN_BILL_STATUSES
from ..models.sales import ACTIVE_ORDER_STATUSES
from .outcomes import InvariantViolation
from .posting import to_money

ZERO = Decimal("0.00")

RECEIVABLE = "receivable"
PAYABLE = "payable"

_KIND_ALIASES = {
    "receivable": RECEIVABLE,
    "receivables": RECEIVABLE,
    "payable": PAYABLE,
    "payables": PAYABLE,
}


def normalize_kind(kind):
    try:
        return _KIND_ALIASES[kind]
    except KeyError:
        raise ValidationError(
            f"Unknown document kind '{kind}' (use receivables or payables)") from None


@dataclass(frozen=True)
class ReconciledDocument:
    kind: str
    document_id: int
    document_number: str
    party_id: int
    party_name: str
    contact: str
    total: Decimal
    paid: Decimal
    waived: Decimal
    outstanding: Decimal
    origin_date: date
    status: str
    violation: Optional[InvariantViolation] = None

    @property
    def is_open(self):
        return self.outstanding > 0


@dataclass(frozen=True)
class OpenDocuments:
    documents: list
    violations: list

    def __iter__(self):
        return iter(self.documents)

    def __len__(self):
        return len(self.documents)


def _sum_of(queryset, group_by, field):
    """Correlated SUM(field) subquery, 0 when there are no rows."""
    subquery = (
        queryset.order_by()
        .values(group_by)
        .annotate(total=Sum(field))
        .values("total")
    )
    money = DecimalField(max_digits=18, decimal_places=2)
    return Coalesce(Subquery(subquery, output_field=money),
                    Value(ZERO), output_field=money)


def _receivable_queryset():
    live = Invoice.objects.filter(sales_order=OuterRef("pk")) \
        .exclude(status="cancelled")
    payments = Payment.objects.filter(invoice__sales_order=OuterRef("pk")) \
        .exclude(invoice__status="cancelled")
    refunds = InvoiceRefund.objects.filter(
        invoice__sales_order=OuterRef("pk"), status="processed"
    ).exclude(invoice__status="cancelled")
    return SalesOrder.objects.select_related("customer").annotate(
        cached_paid=_sum_of(live, "sales_order", "paid_amount"),
        waived=_sum_of(live, "sales_order", "waived_amount"),
        payments_total=_sum_of(payments, "invoice__sales_order", "amount"),
        refunds_total=_sum_of(refunds, "invoice__sales_order",
                              "refund_amount"),
    )


def _payable_queryset():
    history = VendorPaymentHistory.objects.filter(
        vendor_bill=OuterRef("pk"), status="completed")
    return VendorBill.objects.select_related("vendor").annotate(
        history_paid=_sum_of(history, "vendor_bill", "amount"),
    )


def _local_date(value):
    if hasattr(value, "hour"):
        if timezone.is_aware(value):
            return timezone.localtime(value).date()
        return value.date()
    return value


def _violation(doc_type, doc_id, total, paid, waived, outstanding):
    return InvariantViolation(
        kind="negative_outstanding",
        document_type=doc_type,
        document_id=doc_id,
        detail=f"paid {paid} + waived {waived} exceeds total {total}",
        amount=outstanding,
    )


def _reconcile_order(order) -> ReconciledDocument:
    total = to_money(order.grand_total)
    history_paid = to_money(order.payments_total) - \
        to_money(order.refunds_total)
    paid = max(to_money(order.cached_paid), history_paid)
    waived = to_money(order.waived)
    outstanding = total - paid - waived
    violation = None
    if outstanding < 0:
        violation = _violation("sales_order", order.pk, total, paid, waived,
                               outstanding)
    customer = order.customer
    return ReconciledDocument(
        kind=RECEIVABLE,
        document_id=order.pk,
        document_number=order.order_number,
        party_id=customer.pk,
        party_name=customer.name,
        contact=customer.contact,
        total=total,
        paid=paid,
        waived=waived,
        outstanding=outstanding,
        origin_date=_local_date(order.created_at),
        status=order.status,
        violation=violation,
    )


def _reconcile_bill(bill) -> ReconciledDocument:
    total = to_money(bill.total_amount)
    paid = max(to_money(bill.paid_amount), to_money(bill.history_paid))
    outstanding = total - paid
    violation = None
    if outstanding < 0:
        violation = _violation("vendor_bill", bill.pk, total, paid, ZERO,
                               outstanding)
    vendor = bill.vendor
    return ReconciledDocument(
        kind=PAYABLE,
        document_id=bill.pk,
        document_number=bill.bill_number,
        party_id=vendor.pk,
        party_name=vendor.name,
        contact=vendor.contact,
        total=total,
        paid=paid,
        waived=ZERO,
        outstanding=outstanding,
        origin_date=bill.bill_date,
        status=bill.status,
        violation=violation,
    )


def compute_outstanding(document_id, kind) -> ReconciledDocument:
    """Reconciled figures for one sales order or vendor bill."""
    kind = normalize_kind(kind)
    if kind == RECEIVABLE:
        doc = _receivable_queryset().filter(pk=document_id).first()
        if doc is None:
            raise DocumentNotFound(f"Sales order {document_id} does not exist")
        return _reconcile_order(doc)
    doc = _payable_queryset().filter(pk=document_id).first()
    if doc is None:
        raise DocumentNotFound(f"Vendor bill {document_id} does not exist")
    return _reconcile_bill(doc)


def _split(reconciled: list[Any]) -> OpenDocuments:
    open_docs, violations = [], []
    for doc in reconciled:
        if doc.violation is not None:
            violations.append(doc.violation)
        if doc.is_open:
            open_docs.append(doc)
    return OpenDocuments(documents=open_docs, violations=violations)


def open_receivables() -> OpenDocuments:
    orders = _receivable_queryset().filter(
        status__in=ACTIVE_ORDER_STATUSES).order_by("created_at", "pk")
    return _split([_reconcile_order(o) for o in orders])


def open_payables() -> OpenDocuments:
    bills = _payable_queryset().filter(
        status__in=OPEN_BILL_STATUSES).order_by("bill_date", "pk")
    return _split([_reconcile_bill(b) for b in bills])


def open_documents(kind) -> OpenDocuments:
    if normalize_kind(kind) == RECEIVABLE:
        return open_receivables()
    return open_payables()
