import logging
from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Q, Sum

from ..exceptions import AccountNotFound
from ..models import Account, JournalLine

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# role → (default code, name, ac_type, is_control_account)
DEFAULT_CHART = {
    "cash": ("1010", "Cash", "asset", False),
    "bank": ("1020", "Bank", "asset", False),
    "accounts_receivable": ("1200", "Accounts Receivable", "asset", True),
    "inventory": ("1400", "Inventory", "asset", False),
    "accounts_payable": ("2000", "Accounts Payable", "liability", True),
    "store_credit": ("2150", "Customer Store Credit", "liability", False),
    "loans_payable": ("2500", "Loans Payable", "liability", False),
    "owner_equity": ("3000", "Owner's Equity", "equity", False),
    "partner_equity_prefix": ("3015", "Partner Equity", "equity", False),
    "sales_revenue": ("4000", "Sales Revenue", "revenue", False),
    "purchases": ("5000", "Purchases & Expenses", "expense", False),
    "refund_expense": ("6500", "Refund Expense", "expense", False),
}

# payment method → cash-side role
METHOD_ROLES = {
    "cash": "cash",
    "bank_transfer": "bank",
    "upi": "bank",
    "card": "bank",
    "cheque": "bank",
    "store_credit": "store_credit",
}


def ledger_setting(key, default=None):
    """Read a key from settings.LEDGER (override_settings friendly)."""
    return getattr(settings, "LEDGER", {}).get(key, default)


def account_code_for(role):
    codes = ledger_setting("ACCOUNT_CODES", {}) or {}
    if role in codes:
        return codes[role]
    if role in DEFAULT_CHART:
        return DEFAULT_CHART[role][0]
    raise ValidationError(f"Unknown ledger account role '{role}'")


# ----------------------------
# Lookups
# ----------------------------
def get_account(ref):
    """Accept an Account, a primary key or a chart code."""
    if isinstance(ref, Account):
        return ref
    if isinstance(ref, int):
        found = Account.objects.filter(pk=ref).first()
    else:
        found = Account.objects.filter(code=str(ref)).first()
    if found is None:
        raise AccountNotFound(f"Account '{ref}' does not exist")
    return found


def get_account_balance(account_id) -> Decimal:
    row = Account.objects.filter(pk=account_id).values(
        "current_balance").first()
    if row is None:
        raise AccountNotFound(f"Account '{account_id}' does not exist")
    return row["current_balance"]


def list_accounts(ac_type=None, is_active=None, code_prefix=None,
                  search=None):
    qs = Account.objects.all()
    if ac_type:
        qs = qs.filter(ac_type=ac_type)
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    if code_prefix:
        qs = qs.filter(code__startswith=code_prefix)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(code__icontains=search))
    return qs.order_by("code")


# ----------------------------
# Lazy creation
# ----------------------------
def get_or_create_account(code, name, ac_type, normal_balance=None,
                          parent=None, is_control_account=False):
    """
    Return the account with this code, creating it on first use.

    Concurrent first use is safe: the unique code makes the loser of the
    race fall back to a read.
    """
    account, created = Account.objects.get_or_create(
        code=code,
        defaults={
            "name": name,
            "ac_type": ac_type,
            "normal_balance": normal_balance or "",
            "parent": parent,
            "is_control_account": is_control_account,
        },
    )
    if created:
        logger.info("Created ledger account %s %s", code, name,
                    extra={"account_code": code, "ac_type": ac_type})
    return account


def system_account(role):
    """Resolve a system role ("cash", "accounts_payable", ...) to its account."""
    code = account_code_for(role)
    _, name, ac_type, control = DEFAULT_CHART.get(
        role, (code, role.replace("_", " ").title(), "asset", False))
    return get_or_create_account(code, name, ac_type,
                                 is_control_account=control)


def partner_equity_account(partner):
    """Per-partner capital account, 3015-<partner id>."""
    parent = system_account("partner_equity_prefix")
    code = f"{parent.code}-{partner.pk}"
    return get_or_create_account(
        code,
        f"Partner Equity - {partner.name}",
        "equity",
        normal_balance="credit",
        parent=parent,
    )


def cash_account_for_method(method):
    method = method or ledger_setting("DEFAULT_PAYMENT_METHOD", "cash")
    role = METHOD_ROLES.get(method)
    if role is None:
        raise ValidationError(f"Unsupported payment method '{method}'")
    return system_account(role)


def ensure_default_chart():
    """Seed every system account. Idempotent."""
    return [system_account(role) for role in DEFAULT_CHART]


def deactivate_account(ref):
    account = get_account(ref)
    if account.is_active:
        account.is_active = False
        account.save(update_fields=["is_active"])
    return account


# ----------------------------
# Balances
# ----------------------------
def signed_amount(account, debit, credit):
    return account.signed(debit or ZERO, credit or ZERO)


def apply_balance_delta(account_id, delta):
    """
    UPDATE ... SET current_balance = current_balance + delta.

    The only write path to current_balance; the journal engine calls it
    inside its posting transaction.
    """
    if delta:
        Account.objects.filter(pk=account_id).update(
            current_balance=F("current_balance") + delta)


def apply_balance_deltas(deltas):
    """One increment per account id, in id order so concurrent postings
    lock rows in the same order."""
    for account_id in sorted(deltas):
        apply_balance_delta(account_id, deltas[account_id])


def posted_movement(account):
    agg = JournalLine.objects.filter(
        account=account, entry__status="posted"
    ).aggregate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
    return signed_amount(account, agg["debit"], agg["credit"])


def recompute_balance(account):
    """opening_balance + signed sum of posted lines."""
    return account.opening_balance + posted_movement(account)


def verify_account_balances(fix=False):
    """
    Compare every account's stored balance with its posted history.

    Returns a list of drift dicts. With fix=True the stored balance is
    rewritten from history.
    """
    drift = []
    for account in Account.objects.order_by("code"):
        expected = recompute_balance(account)
        if expected == account.current_balance:
            continue
        row = {
            "account_id": account.pk,
            "code": account.code,
            "stored": account.current_balance,
            "expected": expected,
            "difference": account.current_balance - expected,
        }
        drift.append(row)
        logger.warning(
            "Account balance drift on %s", account.code,
            extra={k: str(v) for k, v in row.items()},
        )
        if fix:
            with transaction.atomic():
                Account.objects.select_for_update().filter(pk=account.pk) \
                    .update(current_balance=expected)
    return drift


def totals_by_type():
    """Sum of current balances per ac_type."""
    rows = Account.objects.values("ac_type").annotate(
        total=Sum("current_balance"))
    totals = dict.fromkeys(
        ("asset", "liability", "equity", "revenue", "expense"), ZERO)
    for row in rows:
        totals[row["ac_type"]] = row["total"] or ZERO
    return totals


def trial_balance():
    """Posted debit/credit totals per account."""
    return (
        JournalLine.objects.filter(entry__status="posted")
        .values("account__code", "account__name")
        .annotate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
        .order_by("account__code")
    )
