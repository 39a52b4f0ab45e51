from decimal import Decimal
from django.db import models
from .sales import PAYMENT_METHODS

# categories reported under Investing rather than Operating
CAPITAL_EXPENSE_CATEGORIES = ("CAPEX", "Capital Expenditure")


class Expense(models.Model):
    date = models.DateField()
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    category = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="cash")
    receipt_number = models.CharField(max_length=100, blank=True, default="")
    entity_type = models.CharField(max_length=50, blank=True, default="")

    class Meta:
        indexes = [models.Index(fields=["date"], name="expense_date_idx")]

    def __str__(self):
        return f"Expense {self.pk} {self.category} ({self.amount})"

    @property
    def is_capital(self):
        return self.category in CAPITAL_EXPENSE_CATEGORIES
