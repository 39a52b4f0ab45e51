import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.utils import timezone

from ledger_core.models import Customer, Invoice, Partner, SalesOrder, Vendor
from ledger_core.services.payment import (record_customer_payment,
                                          record_partner_investment,
                                          record_purchase_order)

User = get_user_model()


class Command(BaseCommand):
    help = "Seeds the database with a small furniture-store ledger."

    # Define command-line argument
    def add_arguments(self, parser):
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user.")

    def handle(self, *args, **options):
        self.stdout.write(self.style.NOTICE("Seeding demo ledger..."))
        call_command("seed_chart", stdout=self.stdout)

        user, created = User.objects.get_or_create(
            username=options["username"],
            defaults={"email": f"{options['username']}@example.com"},
        )
        if created:
            user.set_unusable_password()
            user.save()

        now = timezone.now()
        partner, _ = Partner.objects.get_or_create(name="Demo Partner")
        outcome = record_partner_investment(
            partner.pk, Decimal("500000.00"), method="bank_transfer",
            description="Opening capital", user=user)
        self._report("Partner investment", outcome)

        vendor, _ = Vendor.objects.get_or_create(
            name="Teak Timber Supplies", defaults={"phone": "9800000001"})
        outcome = record_purchase_order(
            vendor.pk, f"PO-DEMO-{now:%Y%m%d%H%M%S}", Decimal("120000.00"),
            description="Teak planks", user=user)
        self._report("Purchase order", outcome)

        customer, _ = Customer.objects.get_or_create(
            name="Sharma Interiors", defaults={"phone": "9800000002"})
        order = SalesOrder.objects.create(
            order_number=f"SO-DEMO-{now:%Y%m%d%H%M%S}",
            customer=customer,
            grand_total=Decimal("85000.00"),
            status="confirmed",
            created_at=now - datetime.timedelta(days=40),
        )
        invoice = Invoice.objects.create(
            invoice_number=f"INV-DEMO-{now:%Y%m%d%H%M%S}",
            sales_order=order,
            customer=customer,
            invoice_date=order.created_at.date(),
            total=order.grand_total,
        )
        outcome = record_customer_payment(
            invoice.pk, Decimal("25000.00"), method="upi", user=user)
        self._report("Customer payment", outcome)

        self.stdout.write(self.style.SUCCESS("Demo ledger seeded successfully!"))

    def _report(self, label, outcome):
        if outcome.accounting_ok:
            self.stdout.write(self.style.SUCCESS(
                f"{label}: {outcome.accounting.entry.journal_number}"))
        else:
            self.stdout.write(self.style.WARNING(
                f"{label}: journal missing ({outcome.accounting.reason})"))
