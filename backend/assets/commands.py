# assets/commands.py
"""
Command layer for fixed assets.

run_depreciation() writes one AssetDepreciation row and posts one balanced
entry (Dr depreciation expense / Cr accumulated depreciation). Each asset
depreciates at most once per date.
"""

import logging
from datetime import date

from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting import ledger, registry
from accounting.commands import (
    CommandResult,
    _process_projections,
    _to_decimal,
    fail_and_rollback,
)
from accounting.exceptions import LedgerError, ResolutionGap
from accounting.models import Account
from accounting.posting_rules import depreciation_lines, q2
from assets.depreciation import apply_step
from assets.models import AssetDepreciation, FixedAsset
from events.emitter import emit_event
from events.types import (
    AssetDepreciatedData,
    AssetDisposedData,
    AssetRegisteredData,
    EventTypes,
)
from projections.write_barrier import command_writes_allowed


logger = logging.getLogger(__name__)


def _optional_account(actor, account_id, label):
    if not account_id:
        return None, None
    account = Account.objects.filter(company=actor.company, pk=account_id).first()
    if account is None:
        return None, f"{label} account not found."
    return account, None


@transaction.atomic
def register_asset(
    actor: ActorContext,
    code: str,
    name: str,
    purchase_date: date,
    purchase_price,
    useful_life_months: int,
    salvage_value="0",
    depreciation_method: str = FixedAsset.DepreciationMethod.STRAIGHT_LINE,
    category: str = "",
    location: str = "",
    asset_account_id: int = None,
    depreciation_expense_account_id: int = None,
    accumulated_depreciation_account_id: int = None,
) -> CommandResult:
    """
    Add an asset to the register. The acquisition itself is booked by the
    bill or manual entry that paid for it; no entry is posted here.
    """
    require(actor, "assets.manage")

    if FixedAsset.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Asset code '{code}' already exists.")
    if depreciation_method not in FixedAsset.DepreciationMethod.values:
        return CommandResult.fail(f"Unknown depreciation method '{depreciation_method}'.")

    try:
        purchase_price = q2(_to_decimal(purchase_price, "purchase_price"))
        salvage_value = q2(_to_decimal(salvage_value, "salvage_value"))
    except LedgerError as exc:
        return CommandResult.fail(str(exc))
    if purchase_price <= 0:
        return CommandResult.fail("Purchase price must be greater than zero.")
    if salvage_value < 0 or salvage_value > purchase_price:
        return CommandResult.fail("Salvage value must be between zero and the purchase price.")
    if int(useful_life_months) <= 0:
        return CommandResult.fail("Useful life must be at least one month.")

    links = {}
    for field, account_id, label in (
        ("asset_account", asset_account_id, "Asset"),
        ("depreciation_expense_account", depreciation_expense_account_id, "Depreciation expense"),
        ("accumulated_depreciation_account", accumulated_depreciation_account_id, "Accumulated depreciation"),
    ):
        account, error = _optional_account(actor, account_id, label)
        if error:
            return CommandResult.fail(error)
        links[field] = account

    with command_writes_allowed():
        asset = FixedAsset.objects.create(
            company=actor.company,
            code=code,
            name=name,
            category=category,
            location=location,
            purchase_date=purchase_date,
            purchase_price=purchase_price,
            useful_life_months=int(useful_life_months),
            salvage_value=salvage_value,
            depreciation_method=depreciation_method,
            current_value=purchase_price,
            created_by=actor.user,
            **links,
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ASSET_REGISTERED,
        aggregate_type="FixedAsset",
        aggregate_id=str(asset.public_id),
        idempotency_key=f"asset.registered:{asset.public_id}",
        data=AssetRegisteredData(
            asset_public_id=str(asset.public_id),
            code=code,
            name=name,
            purchase_date=purchase_date.isoformat(),
            purchase_price=str(purchase_price),
            useful_life_months=int(useful_life_months),
            salvage_value=str(salvage_value),
            depreciation_method=str(depreciation_method),
        ),
    )
    return CommandResult.ok(asset, event=event)


@transaction.atomic
def run_depreciation(actor: ActorContext, asset_id: int, depreciation_date: date = None) -> CommandResult:
    """
    Depreciate one asset for one period.

    Returns the AssetDepreciation. The asset becomes fully_depreciated
    once its value reaches salvage.
    """
    require(actor, "assets.depreciate")

    depreciation_date = depreciation_date or timezone.localdate()
    asset = FixedAsset.objects.select_for_update().filter(company=actor.company, pk=asset_id).first()
    if asset is None:
        return CommandResult.fail("Asset not found.")
    if asset.status != FixedAsset.Status.ACTIVE:
        return CommandResult.fail(f"Asset {asset.code} is {asset.status} and cannot be depreciated.")
    if depreciation_date < asset.purchase_date:
        return CommandResult.fail("Depreciation date is before the purchase date.")
    if asset.depreciations.filter(depreciation_date=depreciation_date).exists():
        return CommandResult.fail(f"Asset {asset.code} is already depreciated for {depreciation_date.isoformat()}.")

    step = apply_step(
        asset.depreciation_method,
        asset.purchase_price,
        asset.salvage_value,
        asset.useful_life_months,
        asset.current_value,
        asset.accumulated_depreciation,
    )
    if step.amount <= 0:
        return CommandResult.fail(f"Asset {asset.code} has nothing left to depreciate.")

    try:
        accounts = registry.resolve_roles(
            actor.company,
            ["depreciation_expense", "accumulated_depreciation"],
            explicit={
                "depreciation_expense": asset.depreciation_expense_account,
                "accumulated_depreciation": asset.accumulated_depreciation_account,
            },
        )
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))

    with command_writes_allowed():
        record = AssetDepreciation.objects.create(
            company=actor.company,
            asset=asset,
            depreciation_date=depreciation_date,
            amount=step.amount,
            value_after=step.current_value,
        )
        asset.current_value = step.current_value
        asset.accumulated_depreciation = step.accumulated_depreciation
        if step.fully_depreciated:
            asset.status = FixedAsset.Status.FULLY_DEPRECIATED
        asset.save(update_fields=["current_value", "accumulated_depreciation", "status", "updated_at"])

    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=depreciation_date,
            description=f"Depreciation {asset.code} {asset.name}",
            lines=depreciation_lines(
                step.amount,
                expense=accounts["depreciation_expense"],
                accumulated=accounts["accumulated_depreciation"],
            ),
            reference_type="asset_depreciation",
            reference_id=str(record.public_id),
            idempotency_key=f"asset.depreciation.posted:{asset.public_id}:{depreciation_date.isoformat()}",
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    with command_writes_allowed():
        record.journal_entry_id = ledger.posted_entry_id(posted)
        record.save(update_fields=["journal_entry_id"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ASSET_DEPRECIATED,
        aggregate_type="FixedAsset",
        aggregate_id=str(asset.public_id),
        idempotency_key=f"asset.depreciated:{asset.public_id}:{depreciation_date.isoformat()}",
        data=AssetDepreciatedData(
            asset_public_id=str(asset.public_id),
            depreciation_public_id=str(record.public_id),
            depreciation_date=depreciation_date.isoformat(),
            amount=str(step.amount),
            current_value=str(step.current_value),
            accumulated_depreciation=str(step.accumulated_depreciation),
            status=str(asset.status),
            journal_entry_public_id=ledger.posted_entry_id(posted),
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(record, event=event)


@transaction.atomic
def dispose_asset(actor: ActorContext, asset_id: int, disposal_date: date = None) -> CommandResult:
    """Take an asset out of service. Book any gain or loss with a manual entry."""
    require(actor, "assets.manage")

    asset = FixedAsset.objects.select_for_update().filter(company=actor.company, pk=asset_id).first()
    if asset is None:
        return CommandResult.fail("Asset not found.")
    if asset.status == FixedAsset.Status.DISPOSED:
        return CommandResult.fail(f"Asset {asset.code} is already disposed.")

    disposal_date = disposal_date or timezone.localdate()
    with command_writes_allowed():
        asset.status = FixedAsset.Status.DISPOSED
        asset.disposal_date = disposal_date
        asset.save(update_fields=["status", "disposal_date", "updated_at"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ASSET_DISPOSED,
        aggregate_type="FixedAsset",
        aggregate_id=str(asset.public_id),
        idempotency_key=f"asset.disposed:{asset.public_id}",
        data=AssetDisposedData(
            asset_public_id=str(asset.public_id),
            disposal_date=disposal_date.isoformat(),
            current_value=str(asset.current_value),
        ),
    )
    return CommandResult.ok(asset, event=event)


def run_monthly_depreciation(actor: ActorContext, depreciation_date: date = None) -> CommandResult:
    """
    Depreciate every active asset for one date.

    Assets already depreciated on that date, or bought after it, are
    skipped. A failing asset does not stop the others.
    Returns {"depreciated": [codes], "skipped": [codes], "failed": {code: reason}}.
    """
    require(actor, "assets.depreciate")

    depreciation_date = depreciation_date or timezone.localdate()
    assets = (
        FixedAsset.objects
        .filter(
            company=actor.company,
            status=FixedAsset.Status.ACTIVE,
            purchase_date__lte=depreciation_date,
        )
        .order_by("code")
    )

    summary = {"depreciated": [], "skipped": [], "failed": {}}
    for asset in assets:
        if asset.depreciations.filter(depreciation_date=depreciation_date).exists():
            summary["skipped"].append(asset.code)
            continue
        result = run_depreciation(actor, asset.pk, depreciation_date)
        if result.success:
            summary["depreciated"].append(asset.code)
        else:
            summary["failed"][asset.code] = result.error

    if summary["failed"]:
        logger.warning(
            "Depreciation run finished with failures",
            extra={"company": actor.company.slug, "failed": summary["failed"]},
        )
    logger.info(
        "Depreciation run for %s: %d posted",
        depreciation_date.isoformat(),
        len(summary["depreciated"]),
        extra={"company": actor.company.slug},
    )
    return CommandResult.ok(summary)
