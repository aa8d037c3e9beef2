# projections/ledger.py
"""
Journal ledger projection.

Materializes JournalEntry / JournalLine from journal_entry.posted and
flips the original entry to REVERSED on journal_entry.reversed. This is
the only code that writes those tables.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from accounting.models import Account, JournalEntry, JournalLine
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry


logger = logging.getLogger(__name__)


def _parse_date(value):
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def _parse_datetime(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class JournalLedgerProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "journal_ledger"

    @property
    def consumes(self):
        return [
            EventTypes.JOURNAL_ENTRY_POSTED,
            EventTypes.JOURNAL_ENTRY_REVERSED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.get_data()

        if event.event_type == EventTypes.JOURNAL_ENTRY_POSTED:
            self._handle_posted(event, data)
        elif event.event_type == EventTypes.JOURNAL_ENTRY_REVERSED:
            self._handle_reversed(event, data)
        else:
            logger.warning("Unhandled event type for %s: %s", self.name, event.event_type)

    def _handle_posted(self, event: BusinessEvent, data: dict) -> None:
        if JournalEntry.objects.filter(company=event.company, public_id=data["entry_public_id"]).exists():
            return

        reverses = None
        if data.get("reverses_entry_public_id"):
            reverses = JournalEntry.objects.filter(
                company=event.company,
                public_id=data["reverses_entry_public_id"],
            ).first()

        entry = JournalEntry.objects.projection().create(
            company=event.company,
            public_id=data["entry_public_id"],
            entry_number=data["entry_number"],
            date=_parse_date(data["date"]),
            description=data.get("description", ""),
            reference_type=data.get("reference_type", ""),
            reference_id=data.get("reference_id", ""),
            kind=data.get("kind", JournalEntry.Kind.NORMAL),
            status=JournalEntry.Status.POSTED,
            posted_at=_parse_datetime(data.get("posted_at")),
            posted_by_id=data.get("posted_by_id"),
            reverses_entry=reverses,
        )

        accounts = {
            str(a.public_id): a
            for a in Account.objects.filter(
                company=event.company,
                public_id__in=[line["account_public_id"] for line in data.get("lines", [])],
            )
        }

        line_objects = []
        for line in data.get("lines", []):
            account = accounts.get(line["account_public_id"])
            if account is None:
                raise RuntimeError(
                    f"Account {line['account_public_id']} missing for entry {entry.entry_number}"
                )
            line_objects.append(JournalLine(
                entry=entry,
                company=event.company,
                line_no=line["line_no"],
                account=account,
                description=line.get("description", ""),
                debit=Decimal(line.get("debit", "0")),
                credit=Decimal(line.get("credit", "0")),
            ))
        JournalLine.objects.projection().bulk_create(line_objects)

    def _handle_reversed(self, event: BusinessEvent, data: dict) -> None:
        JournalEntry.objects.projection().filter(
            company=event.company,
            public_id=data["original_entry_public_id"],
        ).update(
            status=JournalEntry.Status.REVERSED,
            reversed_at=_parse_datetime(data.get("reversed_at")),
            reversed_by_id=data.get("reversed_by_id"),
        )

    def _clear_projected_data(self, company) -> None:
        JournalEntry.objects.projection().filter(company=company).update(reverses_entry=None)
        JournalLine.objects.projection().filter(company=company).delete()
        JournalEntry.objects.projection().filter(company=company).delete()


projection_registry.register(JournalLedgerProjection())
