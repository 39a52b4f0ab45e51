"""
Receivable / payable aging.

Each open document's reconciled outstanding amount lands in exactly one
bucket by days since its origin date; documents roll up per customer or
vendor, largest total due first.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from .reconciliation import PAYABLE, RECEIVABLE, normalize_kind, open_documents

ZERO = Decimal("0.00")

BUCKETS = ("current", "days_1_30", "days_31_60", "days_61_90",
           "days_90_plus")


def bucket_for(days_outstanding: int) -> str:
    """≤0 current, ≤30, ≤60, ≤90, then 90+."""
    if days_outstanding <= 0:
        return "current"
    if days_outstanding <= 30:
        return "days_1_30"
    if days_outstanding <= 60:
        return "days_31_60"
    if days_outstanding <= 90:
        return "days_61_90"
    return "days_90_plus"


@dataclass
class AgingBucket:
    current: Decimal = ZERO
    days_1_30: Decimal = ZERO
    days_31_60: Decimal = ZERO
    days_61_90: Decimal = ZERO
    days_90_plus: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return sum((getattr(self, name) for name in BUCKETS), ZERO)

    def add(self, bucket, amount):
        setattr(self, bucket, getattr(self, bucket) + amount)

    def to_dict(self):
        data = {name: str(getattr(self, name)) for name in BUCKETS}
        data["total"] = str(self.total)
        return data


@dataclass
class PartyAgingRow:
    party_id: int
    party_name: str
    contact: str
    buckets: AgingBucket = field(default_factory=AgingBucket)
    document_total: Decimal = ZERO
    paid_amount: Decimal = ZERO
    document_count: int = 0
    oldest_days: int = 0
    oldest_date: Optional[date] = None

    @property
    def total_due(self) -> Decimal:
        return self.buckets.total

    def to_dict(self):
        data = {
            "party_id": self.party_id,
            "party_name": self.party_name,
            "contact": self.contact,
            "total_due": str(self.total_due),
            "document_total": str(self.document_total),
            "paid_amount": str(self.paid_amount),
            "document_count": self.document_count,
            "oldest_days": self.oldest_days,
            "oldest_date": self.oldest_date.isoformat()
            if self.oldest_date else None,
        }
        data.update(self.buckets.to_dict())
        data.pop("total")
        return data


@dataclass
class AgingReport:
    as_of_date: date
    kind: str
    summary: AgingBucket
    details: list
    violations: list

    def to_dict(self):
        return {
            "as_of_date": self.as_of_date.isoformat(),
            "kind": self.kind,
            "summary": self.summary.to_dict(),
            "details": [row.to_dict() for row in self.details],
            "violations": [v.to_dict() for v in self.violations],
        }


def build_aging_report(as_of_date: date, kind) -> AgingReport:
    kind = normalize_kind(kind)
    open_set = open_documents(kind)

    summary = AgingBucket()
    rows = {}
    for doc in open_set.documents:
        days = (as_of_date - doc.origin_date).days
        bucket = bucket_for(days)
        summary.add(bucket, doc.outstanding)

        row = rows.get(doc.party_id)
        if row is None:
            row = rows[doc.party_id] = PartyAgingRow(
                party_id=doc.party_id,
                party_name=doc.party_name,
                contact=doc.contact,
            )
        row.buckets.add(bucket, doc.outstanding)
        row.document_total += doc.total
        row.paid_amount += doc.paid
        row.document_count += 1
        # running max over every document of the party
        if row.oldest_date is None or days > row.oldest_days:
            row.oldest_days = days
            row.oldest_date = doc.origin_date

    details = sorted(rows.values(), key=lambda r: r.total_due, reverse=True)
    return AgingReport(
        as_of_date=as_of_date,
        kind="receivables" if kind == RECEIVABLE else "payables",
        summary=summary,
        details=details,
        violations=list(open_set.violations),
    )


def build_aging_reports(as_of_date: date):
    """Both sides at once, keyed "receivables" / "payables"."""
    return {
        "receivables": build_aging_report(as_of_date, RECEIVABLE),
        "payables": build_aging_report(as_of_date, PAYABLE),
    }
