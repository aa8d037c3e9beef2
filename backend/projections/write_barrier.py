# projections/write_barrier.py
"""
Write barrier between commands and projections.

Every table has one owner. Command-owned tables (documents, stock
movements, sequences, memberships) change only inside
command_writes_allowed(); projection-owned tables (journal rows, account
balances, stock levels) only inside projection_writes_allowed(). The
active context is a per-thread stack, so contexts nest.

Under settings.TESTING the model guards are off and fixtures may save
directly.
"""

from contextlib import contextmanager
import threading

from django.conf import settings


COMMAND = "command"
PROJECTION = "projection"
BOOTSTRAP = "bootstrap"

COMMAND_CONTEXTS = frozenset({COMMAND, BOOTSTRAP})
PROJECTION_CONTEXTS = frozenset({PROJECTION})

_OWNER_LABELS = {
    COMMAND_CONTEXTS: ("command-owned write model", "command_writes_allowed()"),
    PROJECTION_CONTEXTS: ("projection-owned read model", "projection_writes_allowed()"),
}

_state = threading.local()


def _stack() -> list:
    if not hasattr(_state, "stack"):
        _state.stack = []
    return _state.stack


def current_write_context():
    stack = _stack()
    return stack[-1] if stack else None


def write_context_allowed(allowed_contexts) -> bool:
    return current_write_context() in allowed_contexts


def guard_write(instance_or_model, allowed_contexts, action: str = "saves") -> None:
    """Raise RuntimeError unless the current context may write this model."""
    if getattr(settings, "TESTING", False) or write_context_allowed(allowed_contexts):
        return
    name = getattr(instance_or_model, "__name__", type(instance_or_model).__name__)
    owner, context = _OWNER_LABELS.get(frozenset(allowed_contexts), ("guarded model", "an allowed write context"))
    raise RuntimeError(f"{name} is a {owner}. Direct {action} are only allowed within {context}.")


@contextmanager
def _writes_allowed(name: str):
    stack = _stack()
    stack.append(name)
    try:
        yield
    finally:
        stack.pop()


def command_writes_allowed():
    return _writes_allowed(COMMAND)


def projection_writes_allowed():
    return _writes_allowed(PROJECTION)


def bootstrap_writes_allowed():
    """Company creation and permission seeding, before any actor exists."""
    return _writes_allowed(BOOTSTRAP)

