import decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

PAYMENT_METHODS = [
    ("cash", "Cash"),
    ("bank_transfer", "Bank transfer"),
    ("upi", "UPI"),
    ("card", "Card"),
    ("cheque", "Cheque"),
    ("store_credit", "Store credit"),
]


def money():
    return models.DecimalField(
        decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("ac_type", models.CharField(choices=[("asset", "Asset"), ("liability", "Liability"), ("equity", "Equity"), ("revenue", "Revenue"), ("expense", "Expense")], max_length=10)),
                ("normal_balance", models.CharField(blank=True, choices=[("debit", "Debit"), ("credit", "Credit")], max_length=6)),
                ("opening_balance", money()),
                ("current_balance", money()),
                ("is_active", models.BooleanField(default=True)),
                ("is_control_account", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="ledger_core.account")),
            ],
            options={
                "db_table": "chart_of_accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["ac_type"], name="coa_ac_type_idx"),
                    models.Index(fields=["parent"], name="coa_parent_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["object_type", "object_id"], name="auditlog_object_idx"),
                    models.Index(fields=["created_at"], name="auditlog_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [models.Index(fields=["name"], name="customer_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("contact_person", models.CharField(blank=True, default="", max_length=200)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [models.Index(fields=["name"], name="vendor_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="Partner",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("is_active", models.BooleanField(default=True)),
            ],
        ),
        migrations.CreateModel(
            name="Expense",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("amount", money()),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=20)),
                ("receipt_number", models.CharField(blank=True, default="", max_length=100)),
                ("entity_type", models.CharField(blank=True, default="", max_length=50)),
            ],
            options={
                "indexes": [models.Index(fields=["date"], name="expense_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("journal_number", models.CharField(max_length=64, unique=True)),
                ("entry_date", models.DateField()),
                ("description", models.TextField(blank=True, default="")),
                ("entry_type", models.CharField(choices=[("AUTO", "Automatic"), ("MANUAL", "Manual"), ("REVERSAL", "Reversal"), ("ADJUSTMENT", "Adjustment")], default="AUTO", max_length=12)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("posted", "Posted")], default="draft", max_length=10)),
                ("total_debit", money()),
                ("total_credit", money()),
                ("source_document_type", models.CharField(blank=True, max_length=50, null=True)),
                ("source_reference", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("posting_fingerprint", models.CharField(blank=True, max_length=64, null=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
                ("reverses", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="reversed_by", to="ledger_core.journalentry")),
            ],
            options={
                "verbose_name_plural": "journal entries",
                "db_table": "journal_entries",
                "indexes": [
                    models.Index(fields=["entry_date"], name="je_entry_date_idx"),
                    models.Index(fields=["status"], name="je_status_idx"),
                    models.Index(fields=["source_document_type", "source_reference"], name="je_source_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("source_reference__isnull", False)), fields=("source_document_type", "source_reference"), name="uq_je_source_document"),
                    models.CheckConstraint(condition=models.Q(models.Q(("status", "posted"), _negated=True), ("total_debit", models.F("total_credit")), _connector="OR"), name="je_posted_totals_balanced"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_number", models.PositiveIntegerField(default=1)),
                ("debit_amount", money()),
                ("credit_amount", money()),
                ("description", models.CharField(blank=True, default="", max_length=400)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="journal_lines", to="ledger_core.account")),
                ("entry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.journalentry")),
            ],
            options={
                "db_table": "journal_entry_lines",
                "ordering": ["entry_id", "line_number"],
                "indexes": [
                    models.Index(fields=["account"], name="jl_account_idx"),
                    models.Index(fields=["entry", "line_number"], name="jl_entry_line_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("debit_amount__gte", 0), ("credit_amount__gte", 0)), name="jl_non_negative_amounts"),
                    models.CheckConstraint(condition=models.Q(models.Q(("debit_amount__gt", 0), ("credit_amount", 0)), models.Q(("debit_amount", 0), ("credit_amount__gt", 0)), _connector="OR"), name="jl_debit_xor_credit"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationGap",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("source_document_type", models.CharField(max_length=50)),
                ("source_reference", models.CharField(max_length=64)),
                ("amount", money()),
                ("attempted_accounts", models.JSONField(blank=True, default=list)),
                ("reason", models.TextField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("resolved_entry", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="resolved_gaps", to="ledger_core.journalentry")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["source_document_type", "source_reference"], name="gap_source_idx"),
                    models.Index(fields=["resolved_at"], name="gap_resolved_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Investment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("investment_date", models.DateField()),
                ("amount", money()),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=20)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("partner", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="investments", to="ledger_core.partner")),
            ],
        ),
        migrations.CreateModel(
            name="Withdrawal",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("withdrawal_date", models.DateField()),
                ("amount", money()),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=20)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("partner", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="withdrawals", to="ledger_core.partner")),
            ],
        ),
        migrations.CreateModel(
            name="LoanOpeningBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("lender_name", models.CharField(max_length=200)),
                ("disbursement_date", models.DateField()),
                ("original_amount", money()),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="bank_transfer", max_length=20)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
            ],
        ),
        migrations.CreateModel(
            name="LiabilityPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateField()),
                ("payment_amount", money()),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="bank_transfer", max_length=20)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("loan", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.loanopeningbalance")),
            ],
        ),
        migrations.CreateModel(
            name="PurchaseOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("po_number", models.CharField(max_length=64, unique=True)),
                ("total", money()),
                ("status", models.CharField(choices=[("draft", "Draft"), ("ordered", "Ordered"), ("received", "Received"), ("cancelled", "Cancelled")], default="ordered", max_length=16)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField()),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="purchase_orders", to="ledger_core.vendor")),
            ],
        ),
        migrations.CreateModel(
            name="VendorBill",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("bill_number", models.CharField(max_length=64, unique=True)),
                ("bill_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("total_amount", money()),
                ("paid_amount", money()),
                ("status", models.CharField(choices=[("pending", "Pending"), ("partial", "Partially paid"), ("overdue", "Overdue"), ("paid", "Paid"), ("cancelled", "Cancelled")], default="pending", max_length=16)),
                ("purchase_order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="bills", to="ledger_core.purchaseorder")),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bills", to="ledger_core.vendor")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="bill_status_idx"),
                    models.Index(fields=["vendor"], name="bill_vendor_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VendorPaymentHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", money()),
                ("payment_date", models.DateField()),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="bank_transfer", max_length=20)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("status", models.CharField(choices=[("completed", "Completed"), ("pending", "Pending"), ("failed", "Failed")], default="completed", max_length=16)),
                ("vendor_bill", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payment_history", to="ledger_core.vendorbill")),
            ],
            options={
                "verbose_name_plural": "vendor payment history",
            },
        ),
        migrations.CreateModel(
            name="SalesOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=64, unique=True)),
                ("grand_total", money()),
                ("status", models.CharField(choices=[("draft", "Draft"), ("confirmed", "Confirmed"), ("shipped", "Shipped"), ("delivered", "Delivered"), ("ready_for_delivery", "Ready for delivery"), ("partial_delivery_ready", "Partial delivery ready"), ("cancelled", "Cancelled")], default="draft", max_length=32)),
                ("created_at", models.DateTimeField()),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sales_orders", to="ledger_core.customer")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="so_status_idx"),
                    models.Index(fields=["customer"], name="so_customer_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=64, unique=True)),
                ("invoice_date", models.DateField()),
                ("total", money()),
                ("paid_amount", money()),
                ("waived_amount", money()),
                ("status", models.CharField(choices=[("unpaid", "Unpaid"), ("partial", "Partially paid"), ("paid", "Paid"), ("cancelled", "Cancelled")], default="unpaid", max_length=16)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger_core.customer")),
                ("sales_order", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger_core.salesorder")),
            ],
            options={
                "indexes": [models.Index(fields=["sales_order", "status"], name="invoice_order_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateTimeField()),
                ("amount", money()),
                ("method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=20)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.invoice")),
            ],
            options={
                "indexes": [models.Index(fields=["payment_date"], name="payment_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="InvoiceRefund",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("refund_date", models.DateField()),
                ("refund_amount", money()),
                ("refund_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=20)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("processed", "Processed"), ("rejected", "Rejected")], default="processed", max_length=16)),
                ("customer_name", models.CharField(blank=True, default="", max_length=200)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="refunds", to="ledger_core.invoice")),
            ],
            options={
                "indexes": [models.Index(fields=["refund_date", "status"], name="refund_date_status_idx")],
            },
        ),
    ]
