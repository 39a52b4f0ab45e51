"""
Derived postings: which accounts a business document moves.

Each rule turns one document into a PostingPlan. Rules never write; the
journal engine posts the plan.
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from django.utils import timezone

from .chart import (cash_account_for_method, partner_equity_account,
                    system_account)


@dataclass(frozen=True)
class PostingPlan:
    source_type: str
    source_id: int
    entry_date: date
    description: str
    amount: Decimal
    lines: list
    tag: str = None

    @property
    def account_codes(self):
        return [line["account"].code for line in self.lines]


def _as_date(value):
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            return timezone.localtime(value).date()
        return value.date()
    return value


def _pair(debit_account, credit_account, amount, description, reference=""):
    """Two-line Dr/Cr entry for a single amount."""
    return [
        {"account": debit_account, "debit": amount,
         "description": description, "reference": reference},
        {"account": credit_account, "credit": amount,
         "description": description, "reference": reference},
    ]


def partner_investment(investment):
    """Dr Cash/Bank, Cr Partner Equity 3015-<partner>."""
    partner = investment.partner
    desc = f"Capital investment by {partner.name}"
    if investment.description:
        desc = f"{desc} - {investment.description}"
    return PostingPlan(
        source_type="PARTNER_INVESTMENT",
        source_id=investment.pk,
        entry_date=investment.investment_date,
        description=desc,
        amount=investment.amount,
        lines=_pair(
            cash_account_for_method(investment.payment_method),
            partner_equity_account(partner),
            investment.amount,
            desc,
            investment.reference_number,
        ),
        tag="INV",
    )


def partner_withdrawal(withdrawal):
    """Dr Partner Equity, Cr Cash/Bank."""
    partner = withdrawal.partner
    desc = f"Withdrawal by {partner.name}"
    return PostingPlan(
        source_type="WITHDRAWAL",
        source_id=withdrawal.pk,
        entry_date=withdrawal.withdrawal_date,
        description=desc,
        amount=withdrawal.amount,
        lines=_pair(
            partner_equity_account(partner),
            cash_account_for_method(withdrawal.payment_method),
            withdrawal.amount,
            desc,
            withdrawal.reference_number,
        ),
        tag="WD",
    )


def purchase_order(po):
    """Dr Inventory, Cr Accounts Payable."""
    desc = f"Purchase Order {po.po_number} - {po.vendor.name}"
    return PostingPlan(
        source_type="PURCHASE_ORDER",
        source_id=po.pk,
        entry_date=_as_date(po.created_at),
        description=desc,
        amount=po.total,
        lines=_pair(
            system_account("inventory"),
            system_account("accounts_payable"),
            po.total,
            desc,
            po.po_number,
        ),
        tag="PO",
    )


def vendor_bill(bill):
    """Dr Inventory, Cr Accounts Payable (bills raised without a PO)."""
    desc = f"Vendor bill {bill.bill_number} - {bill.vendor.name}"
    return PostingPlan(
        source_type="VENDOR_BILL",
        source_id=bill.pk,
        entry_date=bill.bill_date,
        description=desc,
        amount=bill.total_amount,
        lines=_pair(
            system_account("inventory"),
            system_account("accounts_payable"),
            bill.total_amount,
            desc,
            bill.bill_number,
        ),
        tag="BILL",
    )


def supplier_payment(payment):
    """Dr Accounts Payable, Cr Cash/Bank."""
    bill = payment.vendor_bill
    desc = f"Payment to {bill.vendor.name} for bill {bill.bill_number}"
    return PostingPlan(
        source_type="SUPPLIER_PAYMENT",
        source_id=payment.pk,
        entry_date=payment.payment_date,
        description=desc,
        amount=payment.amount,
        lines=_pair(
            system_account("accounts_payable"),
            cash_account_for_method(payment.payment_method),
            payment.amount,
            desc,
            payment.reference,
        ),
        tag="SP",
    )


def customer_payment(payment):
    """Dr Cash/Bank, Cr Accounts Receivable."""
    invoice = payment.invoice
    desc = f"Payment from {invoice.customer.name} for {invoice.invoice_number}"
    return PostingPlan(
        source_type="CUSTOMER_PAYMENT",
        source_id=payment.pk,
        entry_date=_as_date(payment.payment_date),
        description=desc,
        amount=payment.amount,
        lines=_pair(
            cash_account_for_method(payment.method),
            system_account("accounts_receivable"),
            payment.amount,
            desc,
            payment.reference,
        ),
        tag="PAY",
    )


def refund(invoice_refund):
    """Dr Refund Expense, Cr Cash/Bank/Store Credit."""
    invoice = invoice_refund.invoice
    desc = f"Refund on invoice {invoice.invoice_number}"
    return PostingPlan(
        source_type="REFUND",
        source_id=invoice_refund.pk,
        entry_date=invoice_refund.refund_date,
        description=desc,
        amount=invoice_refund.refund_amount,
        lines=_pair(
            system_account("refund_expense"),
            cash_account_for_method(invoice_refund.refund_method),
            invoice_refund.refund_amount,
            desc,
            invoice.invoice_number,
        ),
        tag="REF",
    )


def loan_disbursement(loan):
    """Dr Cash/Bank, Cr Loans Payable."""
    desc = f"Loan from {loan.lender_name}"
    return PostingPlan(
        source_type="LOAN_DISBURSEMENT",
        source_id=loan.pk,
        entry_date=loan.disbursement_date,
        description=desc,
        amount=loan.original_amount,
        lines=_pair(
            cash_account_for_method(loan.payment_method),
            system_account("loans_payable"),
            loan.original_amount,
            desc,
            loan.reference_number,
        ),
        tag="LOAN",
    )


def loan_repayment(payment):
    """Dr Loans Payable, Cr Cash/Bank."""
    desc = f"Loan repayment to {payment.loan.lender_name}"
    return PostingPlan(
        source_type="LOAN_REPAYMENT",
        source_id=payment.pk,
        entry_date=payment.payment_date,
        description=desc,
        amount=payment.payment_amount,
        lines=_pair(
            system_account("loans_payable"),
            cash_account_for_method(payment.payment_method),
            payment.payment_amount,
            desc,
            payment.reference_number,
        ),
        tag="LP",
    )
