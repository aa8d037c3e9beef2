# pos/sessions.py
"""Cash session reconciliation rules."""

from decimal import Decimal
from typing import Iterable, Tuple

from accounting.fsm import Rejected, StateMachine
from accounting.posting_rules import q2


OPEN = "open"
CLOSED = "closed"
CLOSE = "close"

SESSION_MACHINE = StateMachine("cash session", {(OPEN, CLOSE): CLOSED}, terminal=(CLOSED,))


def transition(current: str, event: str):
    return SESSION_MACHINE.transition(current, event)


def expected_balance(opening, cash_payments: Iterable, change_given: Iterable = ()) -> Decimal:
    """
    Cash that should be in the drawer: the opening float plus every cash
    tender taken in the session, less the change handed back.

    cash_payments are the amounts actually tendered, not the ledger debits
    scaled to the sale total.
    """
    total = Decimal(opening)
    for amount in cash_payments:
        total += Decimal(amount)
    for amount in change_given:
        total -= Decimal(amount)
    return q2(total)


def reconcile(opening, cash_payments: Iterable, closing, change_given: Iterable = ()) -> Tuple[Decimal, Decimal]:
    """Return (expected, difference); a negative difference is a shortage."""
    expected = expected_balance(opening, cash_payments, change_given)
    return expected, q2(Decimal(closing) - expected)


__all__ = ["Rejected", "transition", "expected_balance", "reconcile"]
