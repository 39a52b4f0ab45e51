"""
Auto-balance: find business documents with no posted journal and post
the missing entries.

The missing set is always re-derived from the ledger, so running the
auditor twice never double-posts.
"""
import logging
from dataclasses import dataclass
from typing import Callable

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import DatabaseError, transaction
from django.db.models import CharField, Exists, OuterRef
from django.db.models.functions import Cast
from django.utils import timezone

from ..models import (Investment, InvoiceRefund, JournalEntry,
                      LiabilityPayment, LoanOpeningBalance, Payment,
                      PurchaseOrder, ReconciliationGap, VendorBill,
                      VendorPaymentHistory, Withdrawal)
from . import rules
from .chart import ledger_setting, totals_by_type
from .outcomes import AutoBalanceResult
from .posting import post_journal_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditedDocument:
    source_type: str
    eligible: Callable  # () -> QuerySet of documents that need a journal
    rule: Callable  # document -> PostingPlan
    amount_field: str


REGISTRY = {
    doc.source_type: doc for doc in (
        AuditedDocument(
            "PURCHASE_ORDER",
            lambda: PurchaseOrder.objects.select_related("vendor")
            .filter(total__gt=0).exclude(status="cancelled"),
            rules.purchase_order, "total",
        ),
        # bills raised from a PO are covered by the PO's journal
        AuditedDocument(
            "VENDOR_BILL",
            lambda: VendorBill.objects.select_related("vendor")
            .filter(total_amount__gt=0, purchase_order__isnull=True)
            .exclude(status="cancelled"),
            rules.vendor_bill, "total_amount",
        ),
        AuditedDocument(
            "PARTNER_INVESTMENT",
            lambda: Investment.objects.select_related("partner")
            .filter(amount__gt=0),
            rules.partner_investment, "amount",
        ),
        AuditedDocument(
            "CUSTOMER_PAYMENT",
            lambda: Payment.objects.select_related("invoice__customer")
            .filter(amount__gt=0),
            rules.customer_payment, "amount",
        ),
        AuditedDocument(
            "SUPPLIER_PAYMENT",
            lambda: VendorPaymentHistory.objects
            .select_related("vendor_bill__vendor")
            .filter(amount__gt=0, status="completed"),
            rules.supplier_payment, "amount",
        ),
        AuditedDocument(
            "REFUND",
            lambda: InvoiceRefund.objects.select_related("invoice")
            .filter(refund_amount__gt=0, status="processed"),
            rules.refund, "refund_amount",
        ),
        AuditedDocument(
            "WITHDRAWAL",
            lambda: Withdrawal.objects.select_related("partner")
            .filter(amount__gt=0),
            rules.partner_withdrawal, "amount",
        ),
        AuditedDocument(
            "LOAN_DISBURSEMENT",
            lambda: LoanOpeningBalance.objects.filter(original_amount__gt=0),
            rules.loan_disbursement, "original_amount",
        ),
        AuditedDocument(
            "LOAN_REPAYMENT",
            lambda: LiabilityPayment.objects.select_related("loan")
            .filter(payment_amount__gt=0),
            rules.loan_repayment, "payment_amount",
        ),
    )
}


def audited_document(document_type) -> AuditedDocument:
    try:
        return REGISTRY[document_type]
    except KeyError:
        raise ValidationError(
            f"Unsupported document type '{document_type}'") from None


def find_missing_journals(document_type):
    """Eligible documents with no posted entry pointing at them."""
    doc = audited_document(document_type)
    posted = JournalEntry.objects.filter(
        source_document_type=doc.source_type,
        status="posted",
        source_reference=Cast(OuterRef("pk"), output_field=CharField()),
    )
    return doc.eligible().filter(~Exists(posted)).order_by("pk")


def create_missing_journals(document_type, ids=None, user=None):
    """
    Post a journal for every document still missing one.

    Each document posts in its own transaction: one failure is recorded
    in the result and the rest carry on.
    """
    doc = audited_document(document_type)
    missing = find_missing_journals(document_type)
    if ids is not None:
        missing = missing.filter(pk__in=list(ids))

    result = AutoBalanceResult(document_type=doc.source_type)
    for document in list(missing):
        result.processed += 1
        amount = getattr(document, doc.amount_field)
        try:
            plan = doc.rule(document)
            with transaction.atomic():
                entry = post_journal_entry(
                    plan.source_type, plan.source_id, plan.entry_date,
                    plan.description, plan.lines, user=user, tag=plan.tag,
                )
                ReconciliationGap.objects.filter(
                    source_document_type=doc.source_type,
                    source_reference=str(document.pk),
                    resolved_at__isnull=True,
                ).update(resolved_at=timezone.now(), resolved_entry=entry)
        except (ValidationError, ObjectDoesNotExist, DatabaseError) as exc:
            error = "; ".join(exc.messages) \
                if isinstance(exc, ValidationError) else str(exc)
            result.failed += 1
            result.results.append({
                "document_id": document.pk,
                "status": "failed",
                "error": error,
                "total": str(amount),
            })
            logger.warning(
                "Auto-balance failed for %s %s", doc.source_type, document.pk,
                extra={"source_document_type": doc.source_type,
                       "source_reference": str(document.pk),
                       "error": error},
            )
            continue

        result.successful += 1
        result.results.append({
            "document_id": document.pk,
            "status": "success",
            "journal_entry_id": entry.pk,
            "journal_number": entry.journal_number,
            "total": str(amount),
        })

    logger.info(
        "Auto-balance %s: processed=%s successful=%s failed=%s",
        doc.source_type, result.processed, result.successful, result.failed,
        extra={"source_document_type": doc.source_type,
               "processed": result.processed,
               "successful": result.successful,
               "failed": result.failed},
    )
    return result


def run_all(user=None):
    """create_missing_journals for every configured document type."""
    types = ledger_setting("AUTO_BALANCE_DOCUMENT_TYPES", list(REGISTRY))
    return {t: create_missing_journals(t, user=user) for t in types}


def balance_sheet_variance():
    """
    assets − (liabilities + equity + revenue − expenses).

    Zero when every posted entry balanced. Reported only; the auditor
    never posts a plug entry to force it.
    """
    totals = totals_by_type()
    variance = totals["asset"] - (
        totals["liability"] + totals["equity"]
        + totals["revenue"] - totals["expense"]
    )
    return {
        **{k: str(v) for k, v in totals.items()},
        "variance": str(variance),
        "balanced": variance == 0,
    }
