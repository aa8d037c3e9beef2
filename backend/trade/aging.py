# trade/aging.py
"""
Aging buckets for receivables and payables.

    bucket 0  current   not yet due
    bucket 1  1-30      days past due
    bucket 2  31-60
    bucket 3  61-90
    bucket 4  over_90
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List

from accounting.posting_rules import q2


BUCKET_LABELS = ("current", "1-30", "31-60", "61-90", "over_90")


def bucket_index(due_date: date, as_of: date) -> int:
    days_past = (as_of - due_date).days
    if days_past <= 0:
        return 0
    if days_past <= 30:
        return 1
    if days_past <= 60:
        return 2
    if days_past <= 90:
        return 3
    return 4


@dataclass
class AgingBucket:
    label: str
    amount: Decimal = Decimal("0.00")
    count: int = 0


@dataclass
class AgingRow:
    document_public_id: str
    number: str
    party_name: str
    due_date: date
    outstanding: Decimal
    days_overdue: int
    bucket: str


@dataclass
class AgingReport:
    as_of: date
    buckets: List[AgingBucket] = field(default_factory=lambda: [AgingBucket(label) for label in BUCKET_LABELS])
    rows: List[AgingRow] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((b.amount for b in self.buckets), Decimal("0.00"))

    def to_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat(),
            "total": str(self.total),
            "buckets": [
                {"label": b.label, "amount": str(b.amount), "count": b.count}
                for b in self.buckets
            ],
            "rows": [
                {
                    "document_public_id": r.document_public_id,
                    "number": r.number,
                    "party_name": r.party_name,
                    "due_date": r.due_date.isoformat(),
                    "outstanding": str(r.outstanding),
                    "days_overdue": r.days_overdue,
                    "bucket": r.bucket,
                }
                for r in self.rows
            ],
        }


def compute_aging(documents: Iterable, as_of: date) -> AgingReport:
    """
    Bucket every open document by days past due.

    ``documents`` are Invoice/Bill rows or anything with number,
    party_name, due_date, outstanding_amount, status and public_id.
    Cancelled documents and documents with nothing outstanding are skipped.
    """
    report = AgingReport(as_of=as_of)
    for doc in documents:
        outstanding = q2(doc.outstanding_amount)
        if outstanding <= 0 or str(doc.status) == "cancelled":
            continue
        idx = bucket_index(doc.due_date, as_of)
        bucket = report.buckets[idx]
        bucket.amount += outstanding
        bucket.count += 1
        report.rows.append(AgingRow(
            document_public_id=str(doc.public_id),
            number=doc.number,
            party_name=doc.party_name,
            due_date=doc.due_date,
            outstanding=outstanding,
            days_overdue=max(0, (as_of - doc.due_date).days),
            bucket=bucket.label,
        ))
    report.rows.sort(key=lambda r: (-r.days_overdue, r.number))
    return report
