import logging
from decimal import Decimal
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import DatabaseError, models, transaction
from django.db.models import F
from django.utils import timezone

from ..exceptions import DocumentNotFound, DuplicateJournalError
from ..models import (Investment, Invoice, InvoiceRefund, JournalEntry,
                      LiabilityPayment, LoanOpeningBalance, Partner, Payment,
                      PurchaseOrder, ReconciliationGap, Vendor, VendorBill,
                      VendorPaymentHistory, Withdrawal)
from . import rules
from .audit_helper import log_action, snapshot
from .outcomes import AccountingGap, AccountingOk, PostingOutcome
from .posting import post_journal_entry, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _positive(amount, label="Amount"):
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError(f"{label} must be positive")
    return amount


def _locked(model, pk, label):
    obj = model.objects.select_for_update().filter(pk=pk).first()
    if obj is None:
        raise DocumentNotFound(f"{label} {pk} does not exist")
    return obj


def _error_text(exc):
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc) or exc.__class__.__name__


def record_gap(source_type, source_id, amount, reason, attempted=None):
    """Persist and log a business write whose journal is missing."""
    gap = ReconciliationGap.objects.create(
        source_document_type=source_type,
        source_reference=str(source_id),
        amount=amount,
        attempted_accounts=attempted or [],
        reason=reason,
    )
    logger.warning(
        "Journal posting failed for %s %s; business record kept",
        source_type, source_id,
        extra={"source_document_type": source_type,
               "source_reference": str(source_id),
               "amount": str(amount),
               "attempted_accounts": attempted or [],
               "reason": reason},
    )
    return gap


def post_plan_best_effort(source_type, build_plan, document, amount,
                          user=None):
    """
    Post the document's journal; never undo the document itself.

    Returns AccountingOk on success (or when the journal was
    already posted), AccountingGap with a stored ReconciliationGap otherwise.
    """
    attempted = []
    try:
        plan = build_plan(document)
        attempted = plan.account_codes
        entry = post_journal_entry(
            plan.source_type, plan.source_id, plan.entry_date,
            plan.description, plan.lines, user=user, tag=plan.tag,
        )
    except DuplicateJournalError:
        entry = JournalEntry.objects.filter(
            source_document_type=source_type,
            source_reference=str(document.pk),
            status="posted",
        ).first()
        if entry is not None:
            return AccountingOk(entry)
        reason = (f"Only a draft journal exists for "
                  f"{source_type} {document.pk}")
        gap = record_gap(source_type, document.pk, amount, reason, attempted)
        return AccountingGap(reason=reason, gap=gap)
    except (ValidationError, ObjectDoesNotExist, DatabaseError) as exc:
        reason = _error_text(exc)
        gap = record_gap(source_type, document.pk, amount, reason, attempted)
        return AccountingGap(reason=reason, gap=gap)
    return AccountingOk(entry)


# ----------------------------
# Receivables
# ----------------------------
def _invoice_paid(inv):
    """Cached paid amount, or receipts net of processed refunds if higher."""
    received = inv.payments.aggregate(
        total=models.Sum("amount"))["total"] or ZERO
    refunded = inv.refunds.filter(status="processed").aggregate(
        total=models.Sum("refund_amount"))["total"] or ZERO
    return max(inv.paid_amount, received - refunded)


def record_customer_payment(invoice_id, amount, method="cash",
                            payment_date=None, reference="", description="",
                            user=None) -> PostingOutcome:
    """
    Receive money against an invoice, then journal it.
    Locks the invoice row during the primary write.
    """
    amount = _positive(amount, "Payment amount")
    with transaction.atomic():
        inv = _locked(Invoice, invoice_id, "Invoice")
        if inv.status == "cancelled":
            raise ValidationError("Cannot take payment on a cancelled invoice")
        outstanding = inv.total - _invoice_paid(inv) - inv.waived_amount
        if amount > outstanding:
            raise ValidationError("Payment exceeds invoice outstanding amount")

        payment = Payment(
            invoice=inv,
            payment_date=payment_date or timezone.now(),
            amount=amount,
            method=method,
            reference=reference,
            description=description,
        )
        payment.full_clean()
        payment.save()

        Invoice.objects.filter(pk=inv.pk).update(
            paid_amount=F("paid_amount") + amount)
        inv.refresh_from_db()
        inv.refresh_status()
        inv.save(update_fields=["status"])
        log_action(action="create", instance=payment, user=user,
                   changes=snapshot(payment))

    accounting = post_plan_best_effort(
        "CUSTOMER_PAYMENT", rules.customer_payment, payment, amount, user)
    return PostingOutcome(payment, accounting)


def record_refund(invoice_id, amount, method="cash", refund_date=None,
                  reason="", user=None) -> PostingOutcome:
    amount = _positive(amount, "Refund amount")
    with transaction.atomic():
        inv = _locked(Invoice, invoice_id, "Invoice")
        if amount > inv.paid_amount:
            raise ValidationError("Refund exceeds amount paid on invoice")

        refund = InvoiceRefund(
            invoice=inv,
            refund_date=refund_date or timezone.localdate(),
            refund_amount=amount,
            refund_method=method,
            status="processed",
            customer_name=inv.customer.name,
            reason=reason,
        )
        refund.full_clean()
        refund.save()

        Invoice.objects.filter(pk=inv.pk).update(
            paid_amount=F("paid_amount") - amount)
        inv.refresh_from_db()
        inv.refresh_status()
        inv.save(update_fields=["status"])
        log_action(action="create", instance=refund, user=user,
                   changes=snapshot(refund))

    accounting = post_plan_best_effort(
        "REFUND", rules.refund, refund, amount, user)
    return PostingOutcome(refund, accounting)


def record_waiver(invoice_id, amount, reason="", user=None):
    """
    Write off part of an invoice the customer will not pay.

    No cash moves and no journal is posted; the waived amount only
    reduces what the reconciler and aging report treat as outstanding.
    """
    amount = _positive(amount, "Waived amount")
    with transaction.atomic():
        inv = _locked(Invoice, invoice_id, "Invoice")
        if inv.status == "cancelled":
            raise ValidationError("Cannot waive a cancelled invoice")
        before = snapshot(inv, fields=["paid_amount", "waived_amount",
                                       "status"])
        outstanding = inv.total - _invoice_paid(inv) - inv.waived_amount
        if amount > outstanding:
            raise ValidationError(
                f"Cannot waive {amount}; only {outstanding} is outstanding")

        Invoice.objects.filter(pk=inv.pk).update(
            waived_amount=F("waived_amount") + amount)
        inv.refresh_from_db()
        inv.refresh_status()
        inv.save(update_fields=["status"])
        log_action(action="waive", instance=inv, user=user,
                   changes={"before": before,
                            "after": snapshot(inv, fields=[
                                "paid_amount", "waived_amount", "status"]),
                            "amount": str(amount),
                            "reason": reason})
    logger.info(
        "Waived %s on invoice %s", amount, inv.invoice_number,
        extra={"invoice_id": inv.pk, "amount": str(amount),
               "reason": reason},
    )
    return inv


# ----------------------------
# Payables
# ----------------------------
def record_purchase_order(vendor_id, po_number, total, description="",
                          created_at=None, user=None) -> PostingOutcome:
    total = _positive(total, "Purchase order total")
    with transaction.atomic():
        vendor = Vendor.objects.filter(pk=vendor_id).first()
        if vendor is None:
            raise DocumentNotFound(f"Vendor {vendor_id} does not exist")
        po = PurchaseOrder.objects.create(
            po_number=po_number,
            vendor=vendor,
            total=total,
            description=description,
            created_at=created_at or timezone.now(),
            created_by=user,
        )
        log_action(action="create", instance=po, user=user,
                   changes=snapshot(po))

    accounting = post_plan_best_effort(
        "PURCHASE_ORDER", rules.purchase_order, po, total, user)
    return PostingOutcome(po, accounting)


def record_vendor_bill(vendor_id, bill_number, total_amount, bill_date=None,
                       due_date=None, purchase_order_id=None,
                       user=None) -> PostingOutcome:
    """
    Book a supplier bill.

    A bill raised from a purchase order shares the order's journal, so
    only stand-alone bills get their own Dr Inventory / Cr AP entry.
    """
    total_amount = _positive(total_amount, "Bill total")
    with transaction.atomic():
        vendor = Vendor.objects.filter(pk=vendor_id).first()
        if vendor is None:
            raise DocumentNotFound(f"Vendor {vendor_id} does not exist")
        po = None
        if purchase_order_id is not None:
            po = PurchaseOrder.objects.filter(pk=purchase_order_id).first()
            if po is None:
                raise DocumentNotFound(
                    f"Purchase order {purchase_order_id} does not exist")
        bill = VendorBill.objects.create(
            bill_number=bill_number,
            vendor=vendor,
            purchase_order=po,
            bill_date=bill_date or timezone.localdate(),
            due_date=due_date,
            total_amount=total_amount,
        )
        log_action(action="create", instance=bill, user=user,
                   changes=snapshot(bill))

    if po is None:
        accounting = post_plan_best_effort(
            "VENDOR_BILL", rules.vendor_bill, bill, total_amount, user)
        return PostingOutcome(bill, accounting)

    entry = JournalEntry.objects.filter(
        source_document_type="PURCHASE_ORDER",
        source_reference=str(po.pk),
        status="posted",
    ).first()
    if entry is not None:
        return PostingOutcome(bill, AccountingOk(entry))
    reason = f"Purchase order {po.po_number} has no journal"
    gap = record_gap("PURCHASE_ORDER", po.pk, po.total, reason)
    return PostingOutcome(bill, AccountingGap(reason=reason, gap=gap))


def record_supplier_payment(bill_id, amount, method="bank_transfer",
                            payment_date=None, reference="",
                            user=None) -> PostingOutcome:
    """Pay a vendor bill. Locks the bill row during the primary write."""
    amount = _positive(amount, "Payment amount")
    with transaction.atomic():
        bill = _locked(VendorBill, bill_id, "Vendor bill")
        if bill.status in ("paid", "cancelled"):
            raise ValidationError(f"Bill is already {bill.status}")
        history = bill.payment_history.filter(status="completed").aggregate(
            total=models.Sum("amount"))["total"] or ZERO
        outstanding = bill.total_amount - max(bill.paid_amount, history)
        if amount > outstanding:
            raise ValidationError("Payment exceeds bill outstanding amount")

        payment = VendorPaymentHistory.objects.create(
            vendor_bill=bill,
            amount=amount,
            payment_date=payment_date or timezone.localdate(),
            payment_method=method,
            reference=reference,
            status="completed",
        )
        VendorBill.objects.filter(pk=bill.pk).update(
            paid_amount=F("paid_amount") + amount)
        bill.refresh_from_db()
        bill.refresh_status()
        bill.save(update_fields=["status"])
        log_action(action="create", instance=payment, user=user,
                   changes=snapshot(payment))

    accounting = post_plan_best_effort(
        "SUPPLIER_PAYMENT", rules.supplier_payment, payment, amount, user)
    return PostingOutcome(payment, accounting)


# ----------------------------
# Equity
# ----------------------------
def record_partner_investment(partner_id, amount, method="cash",
                              investment_date=None, reference_number="",
                              description="", user=None) -> PostingOutcome:
    amount = _positive(amount, "Investment amount")
    with transaction.atomic():
        partner = Partner.objects.filter(pk=partner_id).first()
        if partner is None:
            raise DocumentNotFound(f"Partner {partner_id} does not exist")
        investment = Investment.objects.create(
            partner=partner,
            investment_date=investment_date or timezone.localdate(),
            amount=amount,
            payment_method=method,
            reference_number=reference_number,
            description=description,
        )
        log_action(action="create", instance=investment, user=user,
                   changes=snapshot(investment))

    accounting = post_plan_best_effort(
        "PARTNER_INVESTMENT", rules.partner_investment, investment, amount,
        user)
    return PostingOutcome(investment, accounting)


def record_withdrawal(partner_id, amount, method="cash",
                      withdrawal_date=None, reference_number="",
                      description="", user=None) -> PostingOutcome:
    amount = _positive(amount, "Withdrawal amount")
    with transaction.atomic():
        partner = Partner.objects.filter(pk=partner_id).first()
        if partner is None:
            raise DocumentNotFound(f"Partner {partner_id} does not exist")
        withdrawal = Withdrawal.objects.create(
            partner=partner,
            withdrawal_date=withdrawal_date or timezone.localdate(),
            amount=amount,
            payment_method=method,
            reference_number=reference_number,
            description=description,
        )
        log_action(action="create", instance=withdrawal, user=user,
                   changes=snapshot(withdrawal))

    accounting = post_plan_best_effort(
        "WITHDRAWAL", rules.partner_withdrawal, withdrawal, amount, user)
    return PostingOutcome(withdrawal, accounting)


# ----------------------------
# Loans
# ----------------------------
def record_loan_disbursement(lender_name, amount, method="bank_transfer",
                             disbursement_date=None, reference_number="",
                             description="", user=None) -> PostingOutcome:
    amount = _positive(amount, "Loan amount")
    with transaction.atomic():
        loan = LoanOpeningBalance.objects.create(
            lender_name=lender_name,
            disbursement_date=disbursement_date or timezone.localdate(),
            original_amount=amount,
            payment_method=method,
            reference_number=reference_number,
            description=description,
        )
        log_action(action="create", instance=loan, user=user,
                   changes=snapshot(loan))

    accounting = post_plan_best_effort(
        "LOAN_DISBURSEMENT", rules.loan_disbursement, loan, amount, user)
    return PostingOutcome(loan, accounting)


def record_loan_repayment(loan_id, amount, method="bank_transfer",
                          payment_date=None, reference_number="",
                          description="", user=None) -> PostingOutcome:
    amount = _positive(amount, "Repayment amount")
    with transaction.atomic():
        loan = _locked(LoanOpeningBalance, loan_id, "Loan")
        repaid = loan.payments.aggregate(
            total=models.Sum("payment_amount"))["total"] or ZERO
        if amount > loan.original_amount - repaid:
            raise ValidationError("Repayment exceeds loan balance")
        payment = LiabilityPayment.objects.create(
            loan=loan,
            payment_date=payment_date or timezone.localdate(),
            payment_amount=amount,
            payment_method=method,
            reference_number=reference_number,
            description=description,
        )
        log_action(action="create", instance=payment, user=user,
                   changes=snapshot(payment))

    accounting = post_plan_best_effort(
        "LOAN_REPAYMENT", rules.loan_repayment, payment, amount, user)
    return PostingOutcome(payment, accounting)
