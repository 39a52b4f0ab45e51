from decimal import Decimal
from django.db import models


class ReconciliationGap(models.Model):
    """
    A business action that committed without its journal.

    Written when the best-effort posting fails; closed by the
    auto-balance auditor once the missing entry is posted.
    """

    source_document_type = models.CharField(max_length=50)
    source_reference = models.CharField(max_length=64)
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    attempted_accounts = models.JSONField(default=list, blank=True)
    reason = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_entry = models.ForeignKey(
        "JournalEntry",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="resolved_gaps",
    )

    class Meta:
        indexes = [
            models.Index(fields=["source_document_type", "source_reference"],
                         name="gap_source_idx"),
            models.Index(fields=["resolved_at"], name="gap_resolved_idx"),
        ]

    def __str__(self):
        state = "resolved" if self.resolved_at else "open"
        return (f"Gap {self.source_document_type}:{self.source_reference} "
                f"({self.amount}) [{state}]")

    @property
    def is_open(self):
        return self.resolved_at is None
