# trade/fsm.py
"""
Order status machine.

    draft --confirm--> confirmed --invoice--> invoiced --pay--> paid
    draft|confirmed --cancel--> cancelled
    invoiced --uninvoice--> confirmed      (its invoice/bill was cancelled)
"""

from accounting.fsm import Rejected, StateMachine
from trade.models import OrderStatus


DRAFT = OrderStatus.DRAFT.value
CONFIRMED = OrderStatus.CONFIRMED.value
INVOICED = OrderStatus.INVOICED.value
PAID = OrderStatus.PAID.value
CANCELLED = OrderStatus.CANCELLED.value

CONFIRM = "confirm"
INVOICE = "invoice"
PAY = "pay"
CANCEL = "cancel"
UNINVOICE = "uninvoice"

ORDER_MACHINE = StateMachine(
    "order",
    {
        (DRAFT, CONFIRM): CONFIRMED,
        (CONFIRMED, INVOICE): INVOICED,
        (INVOICED, PAY): PAID,
        (DRAFT, CANCEL): CANCELLED,
        (CONFIRMED, CANCEL): CANCELLED,
        (INVOICED, UNINVOICE): CONFIRMED,
    },
    terminal=(PAID, CANCELLED),
)


def transition(current: str, event: str):
    return ORDER_MACHINE.transition(current, event)


__all__ = ["Rejected", "transition", "ORDER_MACHINE"]
