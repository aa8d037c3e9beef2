# accounting/exceptions.py
"""
Domain exceptions raised by the ledger and the account registry.

Commands catch these and turn them into CommandResult.fail(); the
surrounding transaction.atomic() block rolls back anything already written.
"""


class LedgerError(Exception):
    """An entry violates a ledger precondition and was not posted."""


class UnbalancedEntry(LedgerError):
    def __init__(self, total_debit, total_credit):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Entry is not balanced. Debit={total_debit} Credit={total_credit}"
        )


class ResolutionGap(LedgerError):
    """No account could be resolved for one or more posting roles."""

    def __init__(self, roles):
        if isinstance(roles, str):
            roles = [roles]
        self.roles = list(roles)
        super().__init__(
            "Account setup incomplete: no account mapped for "
            + ", ".join(self.roles)
        )


class PolicyViolation(Exception):
    """A business policy refused the operation."""
