# accounting/ledger.py
"""
Journal ledger: the single mutation path for ledger state.

post() validates a draft entry and emits journal_entry.posted; the ledger
projection materializes JournalEntry/JournalLine from that event. Nothing
else writes those tables.

Callers must be inside transaction.atomic(): a rejected posting raises
before anything is emitted, and a failure after emission rolls back with
the caller's own writes.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from django.utils import timezone

from accounting.aggregates import load_journal_entry_aggregate
from accounting.exceptions import LedgerError, UnbalancedEntry
from accounting.models import Account
from accounting.numbering import next_document_number
from accounting.policies import can_post_to_account, can_post_to_period, can_reverse_entry
from accounting.posting_rules import LineDraft, q2, reversal_lines
from events.emitter import emit_event
from events.models import BusinessEvent
from events.types import (
    EventTypes,
    JournalEntryPostedData,
    JournalEntryReversedData,
    JournalLineData,
)
from ops.metrics import record_posting


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class EntryDraft:
    date: date
    description: str
    lines: List[LineDraft] = field(default_factory=list)
    reference_type: str = ""
    reference_id: str = ""
    idempotency_key: Optional[str] = None


def validate_draft(actor, draft: EntryDraft) -> Tuple[Decimal, Decimal]:
    """
    Check every ledger precondition. Returns (total_debit, total_credit).

    Raises:
        LedgerError: structural or account/period violations
        UnbalancedEntry: debits and credits differ
    """
    if len(draft.lines) < 2:
        raise LedgerError("A journal entry needs at least two lines.")

    total_debit = ZERO
    total_credit = ZERO
    for idx, line in enumerate(draft.lines, start=1):
        debit = Decimal(line.debit or 0)
        credit = Decimal(line.credit or 0)
        if debit < 0 or credit < 0:
            raise LedgerError(f"Line {idx}: amounts cannot be negative.")
        if (debit > 0) == (credit > 0):
            raise LedgerError(f"Line {idx}: exactly one of debit or credit must be positive.")
        if q2(debit) != debit or q2(credit) != credit:
            raise LedgerError(f"Line {idx}: amounts must have at most two decimal places.")

        account = line.account
        if account is None or account.company_id != actor.company.id:
            raise LedgerError(f"Line {idx}: account does not belong to this company.")
        allowed, reason = can_post_to_account(account)
        if not allowed:
            raise LedgerError(f"Line {idx}: {reason}")

        total_debit += debit
        total_credit += credit

    if total_debit != total_credit:
        raise UnbalancedEntry(total_debit, total_credit)

    allowed, reason = can_post_to_period(actor, draft.date)
    if not allowed:
        raise LedgerError(reason)

    return total_debit, total_credit


def _post(actor, draft: EntryDraft, *, kind: str, reverses_entry_public_id: Optional[str] = None) -> BusinessEvent:
    entry_public_id = str(uuid.uuid4())
    # Without a caller key every posting is a new entry.
    idempotency_key = draft.idempotency_key or f"journal_entry.posted:{entry_public_id}"

    existing = BusinessEvent.objects.filter(
        company=actor.company,
        idempotency_key=idempotency_key,
    ).first()
    if existing:
        return existing

    try:
        total_debit, total_credit = validate_draft(actor, draft)
    except LedgerError as exc:
        record_posting("rejected", draft.reference_type or "manual")
        logger.warning(
            "Journal posting rejected: %s",
            exc,
            extra={
                "company": actor.company.slug,
                "reference_type": draft.reference_type,
                "reference_id": draft.reference_id,
            },
        )
        raise

    entry_number = next_document_number(actor.company, "JE", draft.date)
    posted_at = timezone.now()

    lines = [
        JournalLineData(
            line_no=idx,
            account_public_id=str(line.account.public_id),
            account_code=line.account.code,
            debit=str(q2(line.debit)),
            credit=str(q2(line.credit)),
            description=line.description,
        ).to_dict()
        for idx, line in enumerate(draft.lines, start=1)
    ]

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        aggregate_type="JournalEntry",
        aggregate_id=entry_public_id,
        idempotency_key=idempotency_key,
        data=JournalEntryPostedData(
            entry_public_id=entry_public_id,
            entry_number=entry_number,
            date=draft.date.isoformat(),
            description=draft.description,
            kind=kind,
            posted_at=posted_at.isoformat(),
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            lines=lines,
            reference_type=draft.reference_type,
            reference_id=draft.reference_id,
            posted_by_id=actor.user.id if actor.user else None,
            posted_by_email=getattr(actor.user, "email", "") or "",
            reverses_entry_public_id=reverses_entry_public_id,
        ),
    )

    record_posting("posted", draft.reference_type or "manual")
    logger.info(
        "Posted journal entry %s",
        entry_number,
        extra={
            "company": actor.company.slug,
            "entry_public_id": entry_public_id,
            "reference_type": draft.reference_type,
            "reference_id": draft.reference_id,
            "total": str(total_debit),
        },
    )
    return event


def post(actor, draft: EntryDraft) -> BusinessEvent:
    """
    Post a balanced entry.

    Returns the journal_entry.posted event (the existing one when the
    draft's idempotency key was already used).
    """
    return _post(actor, draft, kind="normal")


def posted_entry_id(event: BusinessEvent) -> str:
    return event.data["entry_public_id"]


def reverse(actor, entry_public_id: str, reason: str = "", on_date: Optional[date] = None) -> Tuple[BusinessEvent, BusinessEvent]:
    """
    Reverse a posted entry with a mirrored REVERSAL entry.

    Returns (reversal journal_entry.posted event, journal_entry.reversed event).

    Raises:
        LedgerError: unknown entry, already reversed, reversal of a reversal,
            or the reversal date falls in a closed period
    """
    aggregate = load_journal_entry_aggregate(actor.company, str(entry_public_id))
    allowed, why = can_reverse_entry(actor, aggregate)
    if not allowed:
        raise LedgerError(why)

    accounts = {
        str(a.public_id): a
        for a in Account.objects.filter(
            company=actor.company,
            public_id__in=[line["account_public_id"] for line in aggregate.lines],
        )
    }
    original = [
        LineDraft(
            account=accounts[line["account_public_id"]],
            debit=Decimal(line["debit"]),
            credit=Decimal(line["credit"]),
            description=line.get("description", ""),
        )
        for line in aggregate.lines
    ]

    draft = EntryDraft(
        date=on_date or timezone.localdate(),
        description=f"Reversal of {aggregate.entry_number}" + (f": {reason}" if reason else ""),
        lines=reversal_lines(original),
        reference_type=aggregate.reference_type,
        reference_id=aggregate.reference_id,
        idempotency_key=f"journal_entry.reversal:{entry_public_id}",
    )
    posted = _post(actor, draft, kind="reversal", reverses_entry_public_id=str(entry_public_id))

    reversed_event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_REVERSED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry_public_id),
        idempotency_key=f"journal_entry.reversed:{entry_public_id}",
        data=JournalEntryReversedData(
            original_entry_public_id=str(entry_public_id),
            reversal_entry_public_id=posted.data["entry_public_id"],
            reversed_at=timezone.now().isoformat(),
            reversed_by_id=actor.user.id if actor.user else None,
            reason=reason,
        ),
    )
    return posted, reversed_event
