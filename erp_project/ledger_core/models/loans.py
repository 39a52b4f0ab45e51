from decimal import Decimal
from django.db import models
from .sales import PAYMENT_METHODS


class LoanOpeningBalance(models.Model):
    """A loan taken by the business; disbursement brings cash in."""

    lender_name = models.CharField(max_length=200)
    disbursement_date = models.DateField()
    original_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="bank_transfer")
    reference_number = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    def __str__(self):
        return f"Loan {self.pk} from {self.lender_name}"


class LiabilityPayment(models.Model):
    """Repayment against a loan."""

    loan = models.ForeignKey(
        LoanOpeningBalance, on_delete=models.PROTECT, related_name="payments")
    payment_date = models.DateField()
    payment_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="bank_transfer")
    reference_number = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    def __str__(self):
        return f"LoanPayment {self.pk} → {self.loan_id}"
