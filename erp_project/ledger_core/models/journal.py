import hashlib
import json
import uuid
from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone
from ..exceptions import AlreadyPostedDifferentPayload, UnbalancedJournalError
from .account import Account

JOURNAL_STATUS = [
    ("draft", "Draft"),  # still editable
    ("posted", "Posted"),  # finalized, immutable
]

ENTRY_TYPES = [
    ("AUTO", "Automatic"),  # derived from a business document
    ("MANUAL", "Manual"),
    ("REVERSAL", "Reversal"),  # cancels a posted entry
    ("ADJUSTMENT", "Adjustment"),
]

# Header fields that may never change once an entry is posted
FROZEN_FIELDS = (
    "journal_number", "entry_date", "description", "entry_type",
    "total_debit", "total_credit",
    "source_document_type", "source_reference", "reverses_id",
)


def generate_journal_number(entry_date, tag=None):
    """JE-20260115-9F2C41AB, or JE-INV-20260115-9F2C41AB with a tag."""
    suffix = uuid.uuid4().hex[:8].upper()
    parts = ["JE"]
    if tag:
        parts.append(tag)
    parts.append(f"{entry_date:%Y%m%d}")
    parts.append(suffix)
    return "-".join(parts)


# ---------- Journal (Header) & JournalLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    journal_number = models.CharField(max_length=64, unique=True)
    entry_date = models.DateField()
    description = models.TextField(blank=True, default="")
    entry_type = models.CharField(
        max_length=12, choices=ENTRY_TYPES, default="AUTO")
    status = models.CharField(
        max_length=10, choices=JOURNAL_STATUS, default="draft")

    # Cached on post, always equal to the line sums
    total_debit = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # Where the JE originated ("PURCHASE_ORDER", "42")
    source_document_type = models.CharField(
        max_length=50, null=True, blank=True)
    source_reference = models.CharField(max_length=64, null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)
    posted_at = models.DateTimeField(null=True, blank=True)
    # Fingerprint-based idempotency (safe to call twice if nothing has changed)
    posting_fingerprint = models.CharField(
        max_length=64, null=True, blank=True)

    # Set on a REVERSAL entry; the reversed entry itself is never touched
    reverses = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversed_by",
    )

    class Meta:
        db_table = "journal_entries"
        verbose_name_plural = "journal entries"
        indexes = [
            models.Index(fields=["entry_date"], name="je_entry_date_idx"),
            models.Index(fields=["status"], name="je_status_idx"),
            models.Index(fields=["source_document_type", "source_reference"],
                         name="je_source_idx"),
        ]
        constraints = [
            # One journal per business document
            models.UniqueConstraint(
                fields=["source_document_type", "source_reference"],
                condition=models.Q(source_reference__isnull=False),
                name="uq_je_source_document",
            ),
            models.CheckConstraint(
                condition=~models.Q(status="posted") |
                models.Q(total_debit=models.F("total_credit")),
                name="je_posted_totals_balanced",
            ),
        ]

    def __str__(self):
        return f"{self.journal_number} {self.entry_date} [{self.status}]"

    @property
    def is_posted(self):
        return self.status == "posted"

    # Aggregate all debit and credit amounts across entry’s lines
    def compute_totals(self):
        """Return debits, credits sums for lines"""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    # True if double-entry rule holds: total debits = total credits
    def is_balanced(self):
        debit, credit = self.compute_totals()
        return debit == credit

    def _posting_payload(self):
        """Deterministic JSON snapshot of what matters for posting.

        Same data → same string, so a later call can tell whether this
        exact version has already been posted.
        """
        lines = [
            {
                "acct": line.account_id,
                "debit": str(line.debit_amount),
                "credit": str(line.credit_amount),
                "desc": line.description or "",
            }
            for line in self.lines.order_by("line_number", "id")
        ]
        payload = {
            "number": self.journal_number,
            "date": self.entry_date.isoformat(),
            "lines": lines,
        }
        return json.dumps(payload, separators=(",", ":"), sort_keys=True)

    def _fingerprint(self):
        return hashlib.sha256(self._posting_payload().encode()).hexdigest()

    # Post the entry safely inside a database transaction
    @transaction.atomic
    def post(self, user=None):
        """
        Post a draft entry: validate, freeze and move account balances.

        Re-posting an unchanged posted entry is a no-op. Re-posting one
        whose lines were altered behind the model raises
        AlreadyPostedDifferentPayload.
        """
        # Lock row + lines to prevent concurrent modifications
        je = JournalEntry.objects.select_for_update().get(pk=self.pk)
        lines = list(
            je.lines.select_for_update(of=("self",)).select_related("account")
            .order_by("line_number", "id")
        )

        # lazy import to avoid circular import at module load time
        from ..services.chart import apply_balance_deltas

        if not lines:  # Prevent posting an empty entry
            raise ValidationError(
                "JournalEntry must have at least one JournalLine.")

        # Recompute totals fresh from DB & ignore any stale cached values
        td, tc = je.compute_totals()
        fp = je._fingerprint()

        """ Idempotency & immutability """
        if je.status == "posted":
            if je.posting_fingerprint == fp:
                return je
            raise AlreadyPostedDifferentPayload(
                "Journal already posted with different payload."
            )

        # Enforce double-entry rule: debits = credits
        if td != tc:
            raise UnbalancedJournalError(
                f"Journal not balanced: debits={td}, credits={tc}"
            )

        inactive = sorted({ln.account.code for ln in lines
                           if not ln.account.is_active})
        if inactive:
            raise ValidationError(
                f"Cannot post to inactive account(s): {', '.join(inactive)}")

        """ Update state """
        je.status = "posted"
        je.posted_at = timezone.now()
        je.total_debit = td
        je.total_credit = tc
        if user and not je.created_by_id:
            je.created_by = user
        je.posting_fingerprint = fp
        # bypass the frozen-field check, totals are set in this same step
        super(JournalEntry, je).save(
            update_fields=[
                "status", "posted_at", "created_by", "posting_fingerprint",
                "total_debit", "total_credit",
            ]
        )

        # One atomic increment per touched account
        deltas = {}
        for line in lines:
            delta = line.account.signed(line.debit_amount, line.credit_amount)
            deltas[line.account_id] = deltas.get(
                line.account_id, Decimal("0.00")) + delta
        apply_balance_deltas(deltas)

        # keep the caller's instance in sync
        for f in ("status", "posted_at", "created_by_id",
                  "posting_fingerprint", "total_debit", "total_credit"):
            setattr(self, f, getattr(je, f))
        return je

    def clean(self):
        """Don't modify posted journals"""
        if not self.pk:
            return
        orig = JournalEntry.objects.filter(pk=self.pk).first()
        if orig is None or orig.status != "posted":
            return
        if self.status != "posted":
            raise ValidationError("Cannot unpost a posted journal")
        changed = [f for f in FROZEN_FIELDS
                   if getattr(orig, f) != getattr(self, f)]
        if changed:
            raise ValidationError(
                "Cannot modify a posted JournalEntry. It is immutable "
                f"(changed: {', '.join(changed)})."
            )

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.pk and JournalEntry.objects.filter(
                pk=self.pk, status="posted").exists():
            raise ValidationError(
                "Cannot delete a posted JournalEntry; reverse it instead.")
        return super().delete(*args, **kwargs)


class JournalLine(models.Model):  # Stores Lines ( credits / debits )
    """
    One debit or one credit against a single account.
    Frozen together with its entry once the entry is posted.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_number = models.PositiveIntegerField(default=1)

    # can’t delete account if lines exist → PROTECT
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="journal_lines")

    debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    description = models.CharField(max_length=400, blank=True, default="")
    reference = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        db_table = "journal_entry_lines"
        ordering = ["entry_id", "line_number"]
        indexes = [
            models.Index(fields=["account"], name="jl_account_idx"),
            models.Index(fields=["entry", "line_number"],
                         name="jl_entry_line_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="jl_non_negative_amounts",
            ),
            # exactly one side carries the amount
            models.CheckConstraint(
                condition=(
                    (models.Q(debit_amount__gt=0) &
                     models.Q(credit_amount=0)) |
                    (models.Q(debit_amount=0) &
                     models.Q(credit_amount__gt=0))
                ),
                name="jl_debit_xor_credit",
            ),
        ]

    def __str__(self):
        return (f"{self.entry_id} | {self.account.code} {self.account.name} "
                f"| D:{self.debit_amount} C:{self.credit_amount}")

    def clean(self):
        # redundant with CheckConstraint but useful at app-level
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if self.debit_amount > 0 and self.credit_amount > 0:
            raise ValidationError(
                "JournalLine should not have both debit and credit > 0")
        if self.debit_amount == 0 and self.credit_amount == 0:
            raise ValidationError(
                "JournalLine requires a non-0 amount on either debit or credit")

        if self.entry_id and JournalEntry.objects.filter(
                pk=self.entry_id, status="posted").exists():
            if not self.pk:
                raise ValidationError(
                    "Cannot add JournalLine: parent journal is posted.")
            orig = JournalLine.objects.filter(pk=self.pk).first()
            changed = orig is None or (
                orig.debit_amount != self.debit_amount
                or orig.credit_amount != self.credit_amount
                or orig.account_id != self.account_id
                or orig.description != self.description
            )
            if changed:
                raise ValidationError(
                    "Cannot modify JournalLine: parent JournalEntry is posted.")

    def delete(self, *args, **kwargs):
        if self.entry_id and JournalEntry.objects.filter(
                pk=self.entry_id, status="posted").exists():
            raise ValidationError(
                "Cannot delete JournalLine: parent JournalEntry is posted.")
        return super().delete(*args, **kwargs)

    def save(self, *args, **kwargs):
        # clean()+field validation always run whenever
        # you save a JournalLine programmatically
        self.full_clean()
        return super().save(*args, **kwargs)
