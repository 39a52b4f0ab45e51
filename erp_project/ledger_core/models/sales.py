from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from .customer import Customer

SALES_ORDER_STATUS = [
    ("draft", "Draft"),
    ("confirmed", "Confirmed"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("ready_for_delivery", "Ready for delivery"),
    ("partial_delivery_ready", "Partial delivery ready"),
    ("cancelled", "Cancelled"),
]

# Orders that still carry a receivable
ACTIVE_ORDER_STATUSES = (
    "confirmed",
    "shipped",
    "delivered",
    "ready_for_delivery",
    "partial_delivery_ready",
)

INVOICE_STATUS = [
    ("unpaid", "Unpaid"),
    ("partial", "Partially paid"),
    ("paid", "Paid"),
    ("cancelled", "Cancelled"),
]

PAYMENT_METHODS = [
    ("cash", "Cash"),
    ("bank_transfer", "Bank transfer"),
    ("upi", "UPI"),
    ("card", "Card"),
    ("cheque", "Cheque"),
    ("store_credit", "Store credit"),
]

REFUND_STATUS = [
    ("pending", "Pending"),
    ("processed", "Processed"),
    ("rejected", "Rejected"),
]


def _money(**kwargs):
    return models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"), **kwargs)


# ---------- Sales order → Invoice → Payment / Refund ----------
class SalesOrder(models.Model):
    order_number = models.CharField(max_length=64, unique=True)
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="sales_orders")
    grand_total = _money()
    status = models.CharField(
        max_length=32, choices=SALES_ORDER_STATUS, default="draft")
    # origin of the receivable for aging
    created_at = models.DateTimeField()

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="so_status_idx"),
            models.Index(fields=["customer"], name="so_customer_idx"),
        ]

    def __str__(self):
        return f"SO {self.order_number}"


class Invoice(models.Model):
    invoice_number = models.CharField(max_length=64, unique=True)
    sales_order = models.ForeignKey(
        SalesOrder, on_delete=models.PROTECT, related_name="invoices")
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="invoices")
    invoice_date = models.DateField()
    total = _money()
    # cached; the reconciler never trusts it alone
    paid_amount = _money()
    # written off, no cash will arrive
    waived_amount = _money()
    status = models.CharField(
        max_length=16, choices=INVOICE_STATUS, default="unpaid")

    class Meta:
        indexes = [models.Index(fields=["sales_order", "status"],
                                 name="invoice_order_status_idx")]

    def __str__(self):
        return f"Invoice: {self.invoice_number}"

    def clean(self):
        if self.paid_amount < 0 or self.waived_amount < 0:
            raise ValidationError("Paid and waived amounts must be >= 0")

    def refresh_status(self):
        settled = self.paid_amount + self.waived_amount
        if self.status == "cancelled":
            return self.status
        if settled >= self.total and self.total > 0:
            self.status = "paid"
        elif settled > 0:
            self.status = "partial"
        else:
            self.status = "unpaid"
        return self.status


class Payment(models.Model):
    """Customer receipt against an invoice."""

    invoice = models.ForeignKey(
        Invoice, on_delete=models.PROTECT, related_name="payments")
    payment_date = models.DateTimeField()
    amount = _money()
    method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="cash")
    reference = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        indexes = [models.Index(fields=["payment_date"],
                                 name="payment_date_idx")]

    def __str__(self):
        return f"Payment {self.pk} → {self.invoice_id} ({self.amount})"

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError("Payment amount must be positive")


class InvoiceRefund(models.Model):
    invoice = models.ForeignKey(
        Invoice, on_delete=models.PROTECT, related_name="refunds")
    refund_date = models.DateField()
    refund_amount = _money()
    refund_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="cash")
    status = models.CharField(
        max_length=16, choices=REFUND_STATUS, default="processed")
    customer_name = models.CharField(max_length=200, blank=True, default="")
    reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        indexes = [models.Index(fields=["refund_date", "status"],
                                 name="refund_date_status_idx")]

    def __str__(self):
        return f"Refund {self.pk} on {self.invoice_id} ({self.refund_amount})"

    def clean(self):
        if self.refund_amount is None or self.refund_amount <= 0:
            raise ValidationError("Refund amount must be positive")
