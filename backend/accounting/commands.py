# accounting/commands.py
"""
Command layer for accounting operations.

Commands are the single point where business operations happen.
Views call commands; commands enforce rules and emit events.

Pattern:
1. Validate permissions (require)
2. Apply business policies (can_*)
3. Perform the operation (model changes inside command_writes_allowed)
4. Emit event (emit_event), or post through accounting.ledger
5. Return CommandResult

ALL state changes MUST go through commands to ensure events are emitted.
The helpers at the top (CommandResult, _idempotency_hash,
_process_projections, fail_and_rollback) are shared by the trade, pos,
inventory and assets command modules.
"""

import hashlib
import json
import logging
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting import coa, ledger, registry
from accounting.exceptions import LedgerError
from accounting.models import Account, AccountRoleMapping, PeriodClosing
from accounting.policies import (
    can_change_account_type,
    can_close_period,
    can_reopen_period,
    can_set_parent,
)
from accounting.posting_rules import LineDraft
from events.emitter import emit_event
from events.types import (
    AccountCreatedData,
    AccountRoleMappedData,
    AccountUpdatedData,
    ChartSeededData,
    EventTypes,
    PeriodClosedData,
    PeriodReopenedData,
)
from projections.write_barrier import command_writes_allowed


logger = logging.getLogger(__name__)


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = create_account(actor, code="1-1001", ...)
        if result.success:
            account = result.data
            event = result.event
        else:
            error_message = result.error
    """

    def __init__(self, success: bool, data=None, error: str = None, event=None):
        self.success = success
        self.data = data
        self.error = error
        self.event = event  # The emitted event, if any

    @classmethod
    def ok(cls, data=None, event=None):
        return cls(success=True, data=data, event=event)

    @classmethod
    def fail(cls, error: str):
        return cls(success=False, error=error)

    def __repr__(self):
        if self.success:
            return f"<CommandResult ok {self.data!r}>"
        return f"<CommandResult fail {self.error!r}>"


def fail_and_rollback(error: str) -> CommandResult:
    """Fail a command that may already have written; the atomic block rolls back."""
    transaction.set_rollback(True)
    return CommandResult.fail(error)


def _changes_hash(changes: dict) -> str:
    payload = json.dumps(changes, sort_keys=True, separators=(",", ":"), default=str).encode()
    return hashlib.sha256(payload).hexdigest()[:12]


def _idempotency_hash(prefix: str, payload: dict) -> str:
    normalized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode()
    digest = hashlib.sha256(normalized).hexdigest()[:16]
    return f"{prefix}:{digest}"


def _process_projections(company, exclude: set[str] | None = None) -> None:
    if not settings.PROJECTIONS_SYNC:
        return

    from projections.base import projection_registry

    excluded = exclude or set()
    for projection in projection_registry.all():
        if projection.name in excluded:
            continue
        projection.process_pending(company, limit=1000)


def _to_decimal(value, field: str) -> Decimal:
    try:
        return Decimal(str(value if value not in (None, "") else "0"))
    except (InvalidOperation, ValueError):
        raise LedgerError(f"Invalid amount for {field}: {value!r}")


# =============================================================================
# Account Commands
# =============================================================================

@transaction.atomic
def create_account(
    actor: ActorContext,
    code: str,
    name: str,
    account_type: str,
    parent_id: int = None,
    description: str = "",
) -> CommandResult:
    """
    Create a new account in the chart of accounts.

    Args:
        actor: The actor context (user + company)
        code: Account code (unique per company)
        name: Account name
        account_type: One of Account.AccountType choices
        parent_id: Optional parent account ID; the parent becomes a header
        description: Free text

    Returns:
        CommandResult with the created Account or error
    """
    require(actor, "accounts.manage")

    if account_type not in Account.AccountType.values:
        return CommandResult.fail(f"Unknown account type '{account_type}'.")

    if Account.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Account code '{code}' already exists.")

    parent = None
    if parent_id:
        try:
            parent = Account.objects.get(pk=parent_id, company=actor.company)
        except Account.DoesNotExist:
            return CommandResult.fail("Parent account not found.")
        allowed, reason = can_set_parent(actor, None, parent)
        if not allowed:
            return CommandResult.fail(reason)

    with command_writes_allowed():
        try:
            account = Account.objects.create(
                company=actor.company,
                code=code,
                name=name,
                account_type=account_type,
                parent=parent,
                description=description,
            )
        except ValidationError as exc:
            return fail_and_rollback("; ".join(exc.messages))

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_CREATED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=f"account.created:{account.public_id}",
        data=AccountCreatedData(
            account_public_id=str(account.public_id),
            code=code,
            name=name,
            account_type=account_type,
            normal_balance=account.normal_balance,
            parent_public_id=str(parent.public_id) if parent else None,
            description=description,
        ),
    )

    return CommandResult.ok(account, event=event)


@transaction.atomic
def update_account(
    actor: ActorContext,
    account_id: int,
    **updates,
) -> CommandResult:
    """
    Update an existing account.

    Allowed fields: code, name, description, account_type, is_active, parent_id.
    account_type is frozen once the account has posted lines.
    """
    require(actor, "accounts.manage")

    try:
        account = Account.objects.select_for_update().get(pk=account_id, company=actor.company)
    except Account.DoesNotExist:
        return CommandResult.fail("Account not found.")

    allowed_fields = {"code", "name", "description", "account_type", "is_active", "parent_id"}
    unknown = set(updates) - allowed_fields
    if unknown:
        return CommandResult.fail(f"Cannot update fields: {', '.join(sorted(unknown))}.")

    if "code" in updates and updates["code"] != account.code:
        if Account.objects.filter(
            company=actor.company,
            code=updates["code"],
        ).exclude(pk=account.pk).exists():
            return CommandResult.fail(f"Account code '{updates['code']}' already exists.")

    if "account_type" in updates and updates["account_type"] != account.account_type:
        if updates["account_type"] not in Account.AccountType.values:
            return CommandResult.fail(f"Unknown account type '{updates['account_type']}'.")
        allowed, reason = can_change_account_type(actor, account)
        if not allowed:
            return CommandResult.fail(reason)

    if "parent_id" in updates and updates["parent_id"] != account.parent_id:
        parent = None
        if updates["parent_id"]:
            parent = Account.objects.filter(pk=updates["parent_id"], company=actor.company).first()
            if parent is None:
                return CommandResult.fail("Parent account not found.")
        allowed, reason = can_set_parent(actor, account, parent)
        if not allowed:
            return CommandResult.fail(reason)

    changes = {}
    for field, value in updates.items():
        old_value = getattr(account, field)
        if old_value != value:
            changes[field] = {"old": old_value, "new": value}

    if not changes:
        return CommandResult.ok(account)  # No changes, no event

    with command_writes_allowed():
        for field, change in changes.items():
            setattr(account, field, change["new"])
        try:
            account.save()
        except ValidationError as exc:
            return fail_and_rollback("; ".join(exc.messages))

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_UPDATED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=f"account.updated:{account.public_id}:{_changes_hash(changes)}",
        data=AccountUpdatedData(
            account_public_id=str(account.public_id),
            changes=changes,
        ),
    )

    return CommandResult.ok(account, event=event)


@transaction.atomic
def set_account_role(actor: ActorContext, role: str, account_id: int) -> CommandResult:
    """Bind a posting role to an account, replacing any previous binding."""
    require(actor, "accounts.manage")

    if role not in AccountRoleMapping.Role.values:
        return CommandResult.fail(f"Unknown account role '{role}'.")

    account = Account.objects.filter(pk=account_id, company=actor.company).first()
    if account is None:
        return CommandResult.fail("Account not found.")
    if account.is_header:
        return CommandResult.fail(f"Cannot map a role to header account {account.code}.")

    mapping = AccountRoleMapping.objects.select_for_update().filter(company=actor.company, role=role).first()
    previous = mapping.account if mapping else None
    if previous is not None and previous.pk == account.pk:
        return CommandResult.ok(mapping)

    with command_writes_allowed():
        if mapping is None:
            mapping = AccountRoleMapping(company=actor.company, role=role)
        mapping.account = account
        try:
            mapping.full_clean()
        except ValidationError as exc:
            return fail_and_rollback("; ".join(exc.messages))
        mapping.save()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_ROLE_MAPPED,
        aggregate_type="AccountRoleMapping",
        aggregate_id=f"{actor.company.public_id}:{role}",
        idempotency_key=f"account.role_mapped:{role}:{account.public_id}:{mapping.updated_at.isoformat()}",
        data=AccountRoleMappedData(
            account_role=role,
            account_public_id=str(account.public_id),
            account_code=account.code,
            previous_account_public_id=str(previous.public_id) if previous else None,
        ),
    )
    return CommandResult.ok(mapping, event=event)


@transaction.atomic
def auto_map_roles(actor: ActorContext, overwrite: bool = False) -> CommandResult:
    """
    Fill the role mapping table from account-name suggestions.

    Existing mappings are kept unless overwrite=True. Returns the mapped
    roles as {role: account_code}.
    """
    require(actor, "accounts.manage")

    suggestions = registry.suggest_role_mappings(actor.company, only_unmapped=not overwrite)
    mapped = {}
    for role, account in suggestions.items():
        result = set_account_role(actor, role, account.pk)
        if not result.success:
            logger.warning(
                "Suggested mapping %s -> %s refused: %s",
                role,
                account.code,
                result.error,
                extra={"company": actor.company.slug},
            )
            continue
        mapped[role] = account.code

    return CommandResult.ok(mapped)


@transaction.atomic
def seed_default_chart(actor: ActorContext, business_type: str = None) -> CommandResult:
    """
    Create the default chart of accounts for the company's business type
    and apply the template's role mappings.

    Accounts whose code already exists are left untouched.
    """
    require(actor, "accounts.manage")

    business_type = business_type or actor.company.business_type
    template = coa.get_default_chart(business_type)
    by_code = {a.code: a for a in Account.objects.filter(company=actor.company)}

    created_codes = []
    with command_writes_allowed():
        for item in template:
            if item.code in by_code:
                continue
            account = Account.objects.create(
                company=actor.company,
                code=item.code,
                name=item.name,
                account_type=item.account_type,
                parent=by_code.get(item.parent_code) if item.parent_code else None,
                description=item.description,
            )
            by_code[item.code] = account
            created_codes.append(item.code)

    roles_mapped = []
    for role, code in coa.get_default_roles(business_type).items():
        account = by_code.get(code)
        if account is None:
            continue
        if AccountRoleMapping.objects.filter(company=actor.company, role=role).exists():
            continue
        result = set_account_role(actor, role, account.pk)
        if result.success:
            roles_mapped.append(role)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.CHART_SEEDED,
        aggregate_type="Company",
        aggregate_id=str(actor.company.public_id),
        idempotency_key=_idempotency_hash("chart.seeded", {
            "company": str(actor.company.public_id),
            "template": business_type,
            "codes": created_codes,
            "roles": roles_mapped,
        }),
        data=ChartSeededData(
            template=business_type,
            account_codes=created_codes,
            roles_mapped=roles_mapped,
        ),
    )

    logger.info(
        "Seeded default chart",
        extra={"company": actor.company.slug, "template": business_type, "accounts": len(created_codes)},
    )
    return CommandResult.ok({"accounts_created": created_codes, "roles_mapped": roles_mapped}, event=event)


# =============================================================================
# Journal Entry Commands
# =============================================================================

@transaction.atomic
def post_manual_entry(
    actor: ActorContext,
    date: date,
    description: str,
    lines: list,
    reference_type: str = "manual",
    reference_id: str = "",
) -> CommandResult:
    """
    Post a manual journal entry.

    Args:
        lines: [{"account_id": int, "debit": "100.00", "credit": "0", "description": ""}, ...]

    Returns:
        CommandResult with the posted JournalEntry (or the entry public_id
        when projections run asynchronously)
    """
    require(actor, "journal.post")

    account_ids = [line.get("account_id") for line in lines]
    accounts = {a.pk: a for a in Account.objects.filter(company=actor.company, pk__in=account_ids)}

    try:
        drafts = []
        for idx, line in enumerate(lines, start=1):
            account = accounts.get(line.get("account_id"))
            if account is None:
                return CommandResult.fail(f"Line {idx}: account not found.")
            drafts.append(LineDraft(
                account=account,
                debit=_to_decimal(line.get("debit"), "debit"),
                credit=_to_decimal(line.get("credit"), "credit"),
                description=line.get("description", ""),
            ))

        event = ledger.post(actor, ledger.EntryDraft(
            date=date,
            description=description,
            lines=drafts,
            reference_type=reference_type,
            reference_id=reference_id,
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    _process_projections(actor.company)
    return CommandResult.ok(_projected_entry(actor.company, event), event=event)


@transaction.atomic
def reverse_journal_entry(
    actor: ActorContext,
    entry_public_id: str,
    reason: str = "",
    on_date: date = None,
) -> CommandResult:
    """Reverse a posted entry. Returns the reversal entry."""
    require(actor, "journal.reverse")

    try:
        posted, reversed_event = ledger.reverse(actor, entry_public_id, reason=reason, on_date=on_date)
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    _process_projections(actor.company)
    return CommandResult.ok(_projected_entry(actor.company, posted), event=reversed_event)


def _projected_entry(company, event):
    from accounting.models import JournalEntry

    entry_public_id = event.data["entry_public_id"]
    entry = JournalEntry.objects.filter(company=company, public_id=entry_public_id).first()
    return entry if entry is not None else entry_public_id


# =============================================================================
# Period Commands
# =============================================================================

@transaction.atomic
def close_period(
    actor: ActorContext,
    period_start: date,
    period_end: date,
    notes: str = "",
) -> CommandResult:
    """Lock a date range against posting."""
    require(actor, "periods.close")

    allowed, reason = can_close_period(actor, period_start, period_end)
    if not allowed:
        return CommandResult.fail(reason)

    closed_at = timezone.now()
    with command_writes_allowed():
        period = PeriodClosing.objects.create(
            company=actor.company,
            period_start=period_start,
            period_end=period_end,
            notes=notes,
            closed_by=actor.user,
            closed_at=closed_at,
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PERIOD_CLOSED,
        aggregate_type="PeriodClosing",
        aggregate_id=str(period.public_id),
        idempotency_key=f"period.closed:{period.public_id}",
        data=PeriodClosedData(
            period_public_id=str(period.public_id),
            period_start=period_start.isoformat(),
            period_end=period_end.isoformat(),
            closed_at=closed_at.isoformat(),
        ),
    )
    return CommandResult.ok(period, event=event)


@transaction.atomic
def reopen_period(actor: ActorContext, period_id: int) -> CommandResult:
    require(actor, "periods.reopen")

    period = PeriodClosing.objects.select_for_update().filter(pk=period_id, company=actor.company).first()
    if period is None:
        return CommandResult.fail("Period not found.")

    allowed, reason = can_reopen_period(actor, period)
    if not allowed:
        return CommandResult.fail(reason)

    reopened_at = timezone.now()
    with command_writes_allowed():
        period.status = PeriodClosing.Status.REOPENED
        period.reopened_at = reopened_at
        period.save(update_fields=["status", "reopened_at"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PERIOD_REOPENED,
        aggregate_type="PeriodClosing",
        aggregate_id=str(period.public_id),
        idempotency_key=f"period.reopened:{period.public_id}",
        data=PeriodReopenedData(
            period_public_id=str(period.public_id),
            period_start=period.period_start.isoformat(),
            period_end=period.period_end.isoformat(),
            reopened_at=reopened_at.isoformat(),
        ),
    )
    return CommandResult.ok(period, event=event)


# =============================================================================
# Read helpers
# =============================================================================

def trial_balance(company) -> dict:
    """Trial balance from the account balance projection."""
    from projections.base import projection_registry

    return projection_registry.get("account_balance").get_trial_balance(company)
