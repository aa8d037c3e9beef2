# inventory/transfers.py
"""
Stock transfer status machine.

    draft --submit--> pending --approve--> approved --complete--> completed
                      pending --reject-->  rejected

rejected and completed are terminal.
"""

from accounting.fsm import Rejected, StateMachine


DRAFT = "draft"
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
COMPLETED = "completed"

SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
COMPLETE = "complete"

TRANSFER_MACHINE = StateMachine(
    "stock transfer",
    {
        (DRAFT, SUBMIT): PENDING,
        (PENDING, APPROVE): APPROVED,
        (PENDING, REJECT): REJECTED,
        (APPROVED, COMPLETE): COMPLETED,
    },
    terminal=(REJECTED, COMPLETED),
)


def transition(current: str, event: str):
    """Return the next status, or Rejected(reason)."""
    return TRANSFER_MACHINE.transition(current, event)


__all__ = ["Rejected", "transition", "TRANSFER_MACHINE"]
