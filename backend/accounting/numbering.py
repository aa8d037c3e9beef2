# accounting/numbering.py
"""
Document numbers: ``PREFIX-YYYYMM-NNNN``.

Counters live in CompanySequence, one row per (company, prefix, month),
so numbering restarts each month. Callers must already be inside a
transaction; the counter row is locked until it commits.
"""

from datetime import date

from django.db import IntegrityError, transaction

from accounting.models import CompanySequence
from projections.write_barrier import command_writes_allowed


DOCUMENT_PREFIXES = {
    "sales_order": "SO",
    "purchase_order": "PO",
    "invoice": "INV",
    "bill": "BILL",
    "payment_incoming": "PAY-IN",
    "payment_outgoing": "PAY-OUT",
    "journal_entry": "JE",
    "goods_receipt": "GR",
    "down_payment": "DP",
    "stock_transfer": "TRF",
    "stock_opname": "OPN",
    "pos_transaction": "POS",
    "pos_deposit": "DEP",
    "cash_session": "CS",
}


def next_sequence_value(company, name: str) -> int:
    """
    Allocate the next value for a company/name counter.
    Uses select_for_update to avoid concurrent duplicates.
    """
    with command_writes_allowed():
        try:
            seq = CompanySequence.objects.select_for_update().get(company=company, name=name)
        except CompanySequence.DoesNotExist:
            try:
                with transaction.atomic():
                    seq = CompanySequence.objects.create(company=company, name=name, next_value=1)
            except IntegrityError:
                seq = CompanySequence.objects.select_for_update().get(company=company, name=name)

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value", "updated_at"])
        return value


def format_document_number(prefix: str, on_date: date, value: int) -> str:
    return f"{prefix}-{on_date:%Y%m}-{value:04d}"


def next_document_number(company, prefix: str, on_date: date) -> str:
    """
    >>> next_document_number(company, "INV", date(2024, 3, 5))  # doctest: +SKIP
    'INV-202403-0001'
    """
    value = next_sequence_value(company, f"{prefix}-{on_date:%Y%m}")
    return format_document_number(prefix, on_date, value)
