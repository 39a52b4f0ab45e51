from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models, transaction

# Choice Lists
AC_TYPES = [
    # Used in Account model to classify general ledger accounts
    ("asset", "Asset"),
    ("liability", "Liability"),
    ("equity", "Equity"),
    ("revenue", "Revenue"),
    ("expense", "Expense"),
]

# Define whether the account normally increases
# on the debit side or credit side
NORMAL_BALANCE = [
    ("debit", "Debit"),
    ("credit", "Credit"),
]

# Assets/Expenses → Debit, Liabilities/Equity/Revenue → Credit.
DEFAULT_NORMAL_BALANCE = {
    "asset": "debit",
    "expense": "debit",
    "liability": "credit",
    "equity": "credit",
    "revenue": "credit",
}


class Account(models.Model):
    """
    Ledger account in the Chart of Accounts.
    - code is unique and may be hierarchical ("3015-12")
    - ac_type: determines reporting -BS vs P&L
    - normal_balance: the side on which the account grows
    - current_balance is only ever moved by the journal engine
    """

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=200)  # "Cash", "Accounts Payable"

    ac_type = models.CharField(max_length=10, choices=AC_TYPES)
    normal_balance = models.CharField(
        max_length=6,
        choices=NORMAL_BALANCE,
        blank=True,
        # left blank → derived from ac_type on save
    )
    # Optional hierarchy (3015 Partner Equity → 3015-7 Partner #7)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )

    opening_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # opening_balance + signed sum of posted lines
    current_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # “soft deactivate” accounts (stop new postings) without deleting history
    is_active = models.BooleanField(default=True)
    # marker for accounts that must reconcile with subledgers (AR, AP)
    is_control_account = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "chart_of_accounts"
        ordering = ["code"]
        indexes = [
            models.Index(fields=["ac_type"], name="coa_ac_type_idx"),
            models.Index(fields=["parent"], name="coa_parent_idx"),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def is_debit_normal(self):
        return self.normal_balance == "debit"

    def signed(self, debit, credit):
        """Balance effect of a debit/credit pair on this account."""
        if self.is_debit_normal:
            return debit - credit
        return credit - debit

    def clean(self):
        if self.parent_id and self.parent_id == self.pk:
            raise ValidationError("Account cannot be its own parent.")
        if self.parent and self.parent.ac_type != self.ac_type:
            raise ValidationError(
                "Parent & child accounts must share the same account type.")

    def save(self, *args, **kwargs):
        if not self.normal_balance:
            self.normal_balance = DEFAULT_NORMAL_BALANCE.get(
                self.ac_type, "debit")
        # a new account starts at its opening balance
        if self._state.adding:
            if not self.current_balance:
                self.current_balance = self.opening_balance
            return super().save(*args, **kwargs)

        # updates never write current_balance from a possibly stale instance
        update_fields = kwargs.get("update_fields")
        if update_fields is None:
            update_fields = [f.name for f in self._meta.concrete_fields
                             if not f.primary_key]
        kwargs["update_fields"] = [
            f for f in update_fields if f != "current_balance"]

        from ..services.chart import apply_balance_delta

        with transaction.atomic():
            previous = (type(self).objects.select_for_update()
                        .filter(pk=self.pk)
                        .values_list("opening_balance", flat=True).first())
            result = super().save(*args, **kwargs)
            if (previous is not None
                    and "opening_balance" in kwargs["update_fields"]):
                apply_balance_delta(self.pk, self.opening_balance - previous)
                self.refresh_from_db(fields=["current_balance"])
        return result
