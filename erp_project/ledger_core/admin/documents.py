from django.contrib import admin

from ledger_core.models import (Customer, Expense, Investment, Invoice,
                                InvoiceRefund, LiabilityPayment,
                                LoanOpeningBalance, Partner, Payment,
                                PurchaseOrder, SalesOrder, Vendor, VendorBill,
                                VendorPaymentHistory, Withdrawal)


# Business documents are owned by their workflows; the admin is for lookup.
@admin.register(Customer, Vendor, Partner)
class PartyAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email")
    search_fields = ("name", "phone", "email")


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "customer", "grand_total", "status",
                    "created_at")
    list_filter = ("status",)
    search_fields = ("order_number", "customer__name")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "customer", "total", "paid_amount",
                    "waived_amount", "status")
    list_filter = ("status",)
    search_fields = ("invoice_number", "customer__name")


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("po_number", "vendor", "total", "status", "created_at")
    list_filter = ("status",)


@admin.register(VendorBill)
class VendorBillAdmin(admin.ModelAdmin):
    list_display = ("bill_number", "vendor", "total_amount", "paid_amount",
                    "bill_date", "status")
    list_filter = ("status",)


@admin.register(Payment, VendorPaymentHistory, InvoiceRefund, Investment,
                Withdrawal, LoanOpeningBalance, LiabilityPayment, Expense)
class CashDocumentAdmin(admin.ModelAdmin):
    list_per_page = 50
