# accounts/commands.py
"""
Command layer for tenancy: companies, memberships and the user's active
company.

Company and membership rows are bootstrap writes; everything else in the
system hangs off a company created here.
"""

import logging
import uuid

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils.text import slugify

from accounts.authz import ActorContext, actor_for, require
from accounts.models import Company, CompanyMembership
from accounts.permissions import grant_role_defaults
from accounting.commands import CommandResult, _idempotency_hash
from events.emitter import emit_event, emit_event_no_actor
from events.types import (
    CompanyCreatedData,
    EventTypes,
    MembershipCreatedData,
    UserCompanySwitchedData,
)
from projections.write_barrier import bootstrap_writes_allowed, command_writes_allowed


logger = logging.getLogger(__name__)

User = get_user_model()


def _unique_slug(name: str):
    base_slug = slugify(name) or "company"
    slug = base_slug
    for attempt in range(10):
        if not Company.objects.filter(slug=slug).exists():
            return slug
        slug = f"{base_slug}-{attempt + 1}"
    return None


@transaction.atomic
def create_company(
    user,
    company_name: str,
    default_currency: str = "IDR",
    business_type: str = Company.BusinessType.TRADING,
    seed_chart: bool = True,
) -> CommandResult:
    """
    Create a new company for an existing user.

    The user becomes the OWNER of the new company and their active
    company is switched to the new one. With seed_chart, the default
    chart of accounts for business_type is created and its posting roles
    mapped.
    """
    if not company_name or not company_name.strip():
        return CommandResult.fail("Company name is required.")
    if business_type not in Company.BusinessType.values:
        return CommandResult.fail(f"Unknown business type '{business_type}'.")

    slug = _unique_slug(company_name.strip())
    if slug is None:
        return CommandResult.fail("Could not generate unique company slug.")

    with bootstrap_writes_allowed():
        company = Company.objects.create(
            name=company_name.strip(),
            slug=slug,
            default_currency=default_currency,
            business_type=business_type,
        )
        membership = CompanyMembership.objects.create(
            company=company,
            user=user,
            role=CompanyMembership.Role.OWNER,
        )
        grant_role_defaults(membership, granted_by=user)
        user.active_company = company
        user.save(update_fields=["active_company"])

    emit_event_no_actor(
        company=company,
        user=user,
        event_type=EventTypes.COMPANY_CREATED,
        aggregate_type="Company",
        aggregate_id=str(company.public_id),
        idempotency_key=f"company.created:{company.public_id}",
        data=CompanyCreatedData(
            company_public_id=str(company.public_id),
            name=company.name,
            slug=slug,
            default_currency=default_currency,
            business_type=business_type,
        ),
    )
    emit_event_no_actor(
        company=company,
        user=user,
        event_type=EventTypes.MEMBERSHIP_CREATED,
        aggregate_type="CompanyMembership",
        aggregate_id=str(membership.public_id),
        idempotency_key=f"membership.created:{membership.public_id}",
        data=MembershipCreatedData(
            membership_public_id=str(membership.public_id),
            company_public_id=str(company.public_id),
            user_public_id=str(user.public_id),
            role=membership.role,
        ),
    )

    if seed_chart:
        from accounting.commands import seed_default_chart

        result = seed_default_chart(actor_for(user, company), business_type=business_type)
        if not result.success:
            transaction.set_rollback(True)
            return CommandResult.fail(result.error)

    logger.info("Company created", extra={"company": slug, "user": user.email})
    return CommandResult.ok({"company": company, "membership": membership})


@transaction.atomic
def add_user_to_company(
    actor: ActorContext,
    user_id: int,
    role: str = CompanyMembership.Role.USER,
) -> CommandResult:
    """
    Add an existing user to the actor's company, or reactivate a previous
    membership, with the role's default permissions.
    """
    require(actor, "company.manage_users")

    if role not in CompanyMembership.Role.values:
        return CommandResult.fail(f"Unknown role '{role}'.")
    if role == CompanyMembership.Role.OWNER and not actor.is_owner:
        return CommandResult.fail("Only an owner can add another owner.")

    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        return CommandResult.fail("User not found.")

    membership = CompanyMembership.objects.filter(user=user, company=actor.company).first()
    if membership and membership.is_active:
        return CommandResult.fail("User is already a member of this company.")

    with command_writes_allowed():
        if membership is None:
            membership = CompanyMembership.objects.create(
                company=actor.company,
                user=user,
                role=role,
            )
        else:
            membership.role = role
            membership.is_active = True
            membership.save(update_fields=["role", "is_active"])
        grant_role_defaults(membership, granted_by=actor.user, overwrite=True)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.MEMBERSHIP_CREATED,
        aggregate_type="CompanyMembership",
        aggregate_id=str(membership.public_id),
        idempotency_key=_idempotency_hash("membership.created", {
            "membership_public_id": str(membership.public_id),
            "role": role,
            "activated": True,
        }),
        data=MembershipCreatedData(
            membership_public_id=str(membership.public_id),
            company_public_id=str(actor.company.public_id),
            user_public_id=str(user.public_id),
            role=role,
        ),
    )
    return CommandResult.ok(membership, event=event)


@transaction.atomic
def switch_active_company(user, target_company_id: int) -> CommandResult:
    """
    Switch user's active company.

    Args:
        user: The user switching companies (not ActorContext; they may not have one yet)
        target_company_id: ID of company to switch to
    """
    if isinstance(user, ActorContext):
        user = user.user

    if not user or not user.is_authenticated:
        return CommandResult.fail("Authentication required.")

    try:
        target_company = Company.objects.get(pk=target_company_id, is_active=True)
    except Company.DoesNotExist:
        return CommandResult.fail("Company not found or inactive.")

    membership = CompanyMembership.objects.filter(
        user=user, company=target_company, is_active=True
    ).first()
    if membership is None:
        return CommandResult.fail("You do not have an active membership for that company.")

    old_company = user.active_company

    event = emit_event_no_actor(
        company=target_company,
        user=user,
        event_type=EventTypes.USER_COMPANY_SWITCHED,
        aggregate_type="User",
        aggregate_id=str(user.public_id),
        idempotency_key=f"user.company_switched:{user.public_id}:{uuid.uuid4()}",
        data=UserCompanySwitchedData(
            user_public_id=str(user.public_id),
            email=user.email,
            from_company_public_id=str(old_company.public_id) if old_company else None,
            to_company_public_id=str(target_company.public_id),
        ),
    )

    user.active_company = target_company
    with command_writes_allowed():
        user.save(update_fields=["active_company"])

    return CommandResult.ok({
        "company_id": target_company.id,
        "company_public_id": str(target_company.public_id),
        "company_name": str(target_company),
        "role": membership.role,
    }, event=event)
