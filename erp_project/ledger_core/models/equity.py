from decimal import Decimal
from django.db import models
from .sales import PAYMENT_METHODS


class Partner(models.Model):
    """Business owner/partner contributing or drawing capital."""

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class Investment(models.Model):
    partner = models.ForeignKey(
        Partner, on_delete=models.PROTECT, related_name="investments")
    investment_date = models.DateField()
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="cash")
    reference_number = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    def __str__(self):
        return f"Investment {self.pk} by {self.partner_id} ({self.amount})"


class Withdrawal(models.Model):
    partner = models.ForeignKey(
        Partner, on_delete=models.PROTECT, related_name="withdrawals")
    withdrawal_date = models.DateField()
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="cash")
    reference_number = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    def __str__(self):
        return f"Withdrawal {self.pk} by {self.partner_id} ({self.amount})"
