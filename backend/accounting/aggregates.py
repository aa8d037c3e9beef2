"""
Aggregate definitions for event sourcing.

Aggregates are reconstituted by replaying events from their event stream.
Each aggregate type has a dedicated stream identified by (aggregate_type, aggregate_id).

All events that modify a journal entry are emitted with
aggregate_type="JournalEntry" and the entry's public_id, so the reversal
check can be answered from the stream alone, without waiting for the
ledger projection.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, List, Any

from events.emitter import get_aggregate_events
from events.types import EventTypes


@dataclass
class JournalEntryAggregate:
    public_id: str
    company: Any
    entry_number: str = ""
    date: Optional[str] = None
    description: str = ""
    kind: str = "normal"
    status: str = "posted"
    reference_type: str = ""
    reference_id: str = ""
    lines: List[dict] = field(default_factory=list)
    reversed: bool = False
    reversal_entry_public_id: Optional[str] = None

    def apply(self, event) -> None:
        data = event.data

        if event.event_type == EventTypes.JOURNAL_ENTRY_POSTED:
            self.entry_number = data.get("entry_number", "")
            self.date = data.get("date")
            self.description = data.get("description", "")
            self.kind = data.get("kind", self.kind)
            self.reference_type = data.get("reference_type", "")
            self.reference_id = data.get("reference_id", "")
            self.lines = data.get("lines", [])
            self.status = "posted"
            return

        if event.event_type == EventTypes.JOURNAL_ENTRY_REVERSED:
            self.status = "reversed"
            self.reversed = True
            self.reversal_entry_public_id = data.get("reversal_entry_public_id")

    @property
    def total_debit(self) -> Decimal:
        return sum((Decimal(str(line.get("debit", "0"))) for line in self.lines), Decimal("0.00"))

    @property
    def total_credit(self) -> Decimal:
        return sum((Decimal(str(line.get("credit", "0"))) for line in self.lines), Decimal("0.00"))


def load_journal_entry_aggregate(company, public_id: str) -> Optional[JournalEntryAggregate]:
    """Load a JournalEntry aggregate by replaying its event stream."""
    events = get_aggregate_events(company, "JournalEntry", str(public_id))
    if not events:
        return None

    aggregate = JournalEntryAggregate(public_id=str(public_id), company=company)
    for event in events:
        aggregate.apply(event)

    return aggregate
