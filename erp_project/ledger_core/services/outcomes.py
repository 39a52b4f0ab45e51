"""Value types returned by ledger workflows and reports."""
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class AccountingOk:
    entry: Any  # JournalEntry

    ok = True

    def to_dict(self):
        return {
            "status": "posted",
            "journal_entry_id": self.entry.pk,
            "journal_number": self.entry.journal_number,
        }


@dataclass(frozen=True)
class AccountingGap:
    """The business write committed, its journal did not."""

    reason: str
    gap: Any = None  # ReconciliationGap row

    ok = False

    def to_dict(self):
        return {
            "status": "gap",
            "reason": self.reason,
            "gap_id": getattr(self.gap, "pk", None),
        }


@dataclass(frozen=True)
class PostingOutcome:
    primary: Any
    accounting: Any  # AccountingOk | AccountingGap

    @property
    def accounting_ok(self):
        return self.accounting.ok


@dataclass(frozen=True)
class InvariantViolation:
    """A stored fact the ledger says cannot be true (e.g. overpaid order)."""

    kind: str
    document_type: str
    document_id: Any
    detail: str
    amount: Optional[Decimal] = None

    def to_dict(self):
        data = asdict(self)
        if self.amount is not None:
            data["amount"] = str(self.amount)
        return data


@dataclass
class AutoBalanceResult:
    document_type: str
    processed: int = 0
    successful: int = 0
    failed: int = 0
    results: list = field(default_factory=list)

    def to_dict(self):
        return asdict(self)
