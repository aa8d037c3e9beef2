# trade/outstanding.py
"""
Outstanding balance arithmetic for invoices and bills.

apply_allocation() is pure: it validates one payment allocation against a
document's current state and returns the new state. Commands persist it.
"""

from dataclasses import dataclass
from decimal import Decimal

from accounting.posting_rules import q2
from trade.models import InvoiceStatus


class AllocationError(Exception):
    """An allocation amount is not acceptable for the target document."""


@dataclass(frozen=True)
class OutstandingState:
    paid: Decimal
    outstanding: Decimal
    status: str


def apply_allocation(total, paid, outstanding, status, amount) -> OutstandingState:
    """
    Apply ``amount`` to a document.

    Raises:
        AllocationError: amount <= 0 or amount > outstanding

    The returned status is ``paid`` when nothing remains, ``partial`` when
    something was paid but not everything, otherwise the input status.
    paid + outstanding == total is preserved.
    """
    total = q2(total)
    amount = q2(amount)
    outstanding = q2(outstanding)

    if amount <= 0:
        raise AllocationError("Allocation amount must be greater than zero.")
    if amount > outstanding:
        raise AllocationError(
            f"Allocation {amount} exceeds outstanding balance {outstanding}."
        )

    new_outstanding = outstanding - amount
    new_paid = total - new_outstanding

    if new_outstanding == 0:
        new_status = InvoiceStatus.PAID.value
    elif new_outstanding < total:
        new_status = InvoiceStatus.PARTIAL.value
    else:
        new_status = str(status)

    return OutstandingState(paid=new_paid, outstanding=new_outstanding, status=new_status)


def allocatable_statuses():
    return {
        InvoiceStatus.SENT.value,
        InvoiceStatus.PARTIAL.value,
        InvoiceStatus.OVERDUE.value,
    }
