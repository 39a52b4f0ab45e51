from decimal import Decimal
from django.conf import settings
from django.db import models
from .sales import PAYMENT_METHODS
from .vendor import Vendor

PURCHASE_ORDER_STATUS = [
    ("draft", "Draft"),
    ("ordered", "Ordered"),
    ("received", "Received"),
    ("cancelled", "Cancelled"),
]

BILL_STATUS = [
    ("pending", "Pending"),
    ("partial", "Partially paid"),
    ("overdue", "Overdue"),
    ("paid", "Paid"),
    ("cancelled", "Cancelled"),
]

# Bills that still carry a payable
OPEN_BILL_STATUSES = ("pending", "partial", "overdue")

VENDOR_PAYMENT_STATUS = [
    ("completed", "Completed"),
    ("pending", "Pending"),
    ("failed", "Failed"),
]


class PurchaseOrder(models.Model):
    po_number = models.CharField(max_length=64, unique=True)
    vendor = models.ForeignKey(
        Vendor, on_delete=models.PROTECT, related_name="purchase_orders")
    total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(
        max_length=16, choices=PURCHASE_ORDER_STATUS, default="ordered")
    description = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField()
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )

    def __str__(self):
        return f"PO {self.po_number}"


# ---------- Vendor bills (Accounts Payable documents) ----------
class VendorBill(models.Model):
    bill_number = models.CharField(max_length=64, unique=True)
    vendor = models.ForeignKey(
        Vendor, on_delete=models.PROTECT, related_name="bills")
    # bill raised from a PO shares the PO's journal
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name="bills",
    )
    bill_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)
    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # cached; reconciled against payment history
    paid_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(
        max_length=16, choices=BILL_STATUS, default="pending")

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="bill_status_idx"),
            models.Index(fields=["vendor"], name="bill_vendor_idx"),
        ]

    def __str__(self):
        return f"Bill: {self.bill_number}"

    def refresh_status(self):
        if self.status == "cancelled":
            return self.status
        if self.paid_amount >= self.total_amount:
            self.status = "paid"
        elif self.paid_amount > 0:
            self.status = "partial"
        return self.status


class VendorPaymentHistory(models.Model):
    """Supplier payment applied to a bill."""

    vendor_bill = models.ForeignKey(
        VendorBill, on_delete=models.PROTECT, related_name="payment_history")
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    payment_date = models.DateField()
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default="bank_transfer")
    reference = models.CharField(max_length=100, blank=True, default="")
    status = models.CharField(
        max_length=16, choices=VENDOR_PAYMENT_STATUS, default="completed")

    class Meta:
        verbose_name_plural = "vendor payment history"

    def __str__(self):
        return f"VendorPayment {self.pk} → {self.vendor_bill_id}"
