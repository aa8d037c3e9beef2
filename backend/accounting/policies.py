# accounting/policies.py
"""
Business policy functions for accounting operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job.

Usage:
    from accounting.policies import can_post_to_account, can_reverse_entry

    # Option 1: Check and get boolean + reason
    allowed, reason = can_reverse_entry(actor, aggregate)
    if not allowed:
        return CommandResult.fail(reason)

    # Option 2: Assert and raise on failure
    assert_tenant_boundary(actor, invoice)  # raises PermissionDenied

Design Principles:
1. Policies never write
2. Policies return (bool, str) tuples for clear error messages
3. Policies check ONE thing conceptually
4. Commands compose policies as needed
"""

from django.core.exceptions import PermissionDenied

from accounting.exceptions import PolicyViolation


# =============================================================================
# Tenant Boundary Policies
# =============================================================================

def check_tenant_boundary(actor, entity) -> bool:
    """
    Verify entity belongs to actor's company.
    This is the fundamental multi-tenant security check.
    """
    entity_company_id = getattr(entity, "company_id", None)
    if entity_company_id is None:
        company = getattr(entity, "company", None)
        entity_company_id = getattr(company, "id", None) if company else None
    return entity_company_id == actor.company.id


def assert_tenant_boundary(actor, entity) -> None:
    """Raise PermissionDenied if entity doesn't belong to actor's company."""
    if not check_tenant_boundary(actor, entity):
        raise PermissionDenied("Cross-company action denied.")


# =============================================================================
# Account Policies
# =============================================================================

def can_change_account_type(actor, account) -> tuple[bool, str]:
    """
    Rules:
    - Cannot change type once any posted journal line references the account
    """
    if not check_tenant_boundary(actor, account):
        return False, "Cross-company action denied."

    if account.has_postings():
        return False, "Cannot change type of an account with posted transactions."

    return True, ""


def can_set_parent(actor, account, parent) -> tuple[bool, str]:
    if parent is None:
        return True, ""
    if not check_tenant_boundary(actor, parent):
        return False, "Cross-company action denied."
    if account is not None and parent.pk == account.pk:
        return False, "An account cannot be its own parent."
    if parent.has_postings():
        return False, f"Account {parent.code} has postings and cannot become a header."
    ancestor = parent.parent
    while ancestor is not None:
        if account is not None and ancestor.pk == account.pk:
            return False, "Parent assignment would create a cycle."
        ancestor = ancestor.parent
    return True, ""


def can_post_to_account(account) -> tuple[bool, str]:
    """
    Rules:
    - Cannot post to header accounts
    - Cannot post to inactive accounts
    """
    if account.is_header:
        return False, f"Cannot post to header account: {account.code}"

    if not account.is_active:
        return False, f"Cannot post to inactive account: {account.code}"

    return True, ""


# =============================================================================
# Journal Entry Policies
# =============================================================================

def can_reverse_entry(actor, aggregate) -> tuple[bool, str]:
    """
    Check if a posted entry can be reversed.

    Takes the JournalEntryAggregate replayed from the event stream, so the
    answer does not depend on projection lag.

    Rules:
    - Must belong to actor's company
    - Must be POSTED (not already reversed)
    - Reversal entries themselves cannot be reversed
    """
    if aggregate is None:
        return False, "Journal entry not found."

    if aggregate.company.id != actor.company.id:
        return False, "Cross-company action denied."

    if aggregate.reversed:
        return False, "Entry has already been reversed."

    if aggregate.kind == "reversal":
        return False, "Cannot reverse a reversal entry."

    return True, ""


# =============================================================================
# Period Policies
# =============================================================================

def can_post_to_period(actor, entry_date) -> tuple[bool, str]:
    """
    Rules:
    - The date must not fall inside a closed period
    """
    if entry_date is None:
        return True, ""

    from datetime import date

    from accounting.models import PeriodClosing

    if isinstance(entry_date, str):
        entry_date = date.fromisoformat(entry_date)

    closed = PeriodClosing.objects.filter(
        company=actor.company,
        status=PeriodClosing.Status.CLOSED,
        period_start__lte=entry_date,
        period_end__gte=entry_date,
    ).first()
    if closed:
        return False, (
            f"Period {closed.period_start} to {closed.period_end} is closed. "
            "Reopen it before posting."
        )

    return True, ""


def can_close_period(actor, period_start, period_end) -> tuple[bool, str]:
    from accounting.models import PeriodClosing

    if period_end < period_start:
        return False, "Period end must not be before period start."

    overlapping = PeriodClosing.objects.filter(
        company=actor.company,
        status=PeriodClosing.Status.CLOSED,
        period_start__lte=period_end,
        period_end__gte=period_start,
    ).exists()
    if overlapping:
        return False, "An overlapping closed period already exists."

    return True, ""


def can_reopen_period(actor, period) -> tuple[bool, str]:
    if not check_tenant_boundary(actor, period):
        return False, "Cross-company action denied."
    if period.status != period.Status.CLOSED:
        return False, "Period is not closed."
    return True, ""


def assert_policy(result: tuple[bool, str]) -> None:
    """Raise PolicyViolation for a failed (allowed, reason) pair."""
    allowed, reason = result
    if not allowed:
        raise PolicyViolation(reason)
