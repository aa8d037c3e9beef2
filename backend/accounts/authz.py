# accounts/authz.py
"""
Authorization utilities.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- require: Check permissions and raise if not granted

Permissions are checked:
1. First by role (OWNER: implicit allow)
2. ADMIN/USER/VIEWER: explicit permissions only (defaults + manual)
"""

from dataclasses import dataclass
from typing import FrozenSet

from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.models import Company, CompanyMembership


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor (user + company).

    This is passed to commands and policies to provide context
    about who is performing an action and in which company.

    Attributes:
        user: The authenticated user
        company: The active company (tenant)
        membership: The user's membership in the company
        perms: Set of explicit permission codes the user has
    """
    user: object  # User model
    company: Company
    membership: CompanyMembership
    perms: FrozenSet[str]

    def has(self, code: str) -> bool:
        """
        Check if actor has a specific permission.

        Order of checks:
        1. inactive membership: deny
        2. OWNER: implicit allow
        3. everyone else: only codes in perms
        """
        if not self.membership.is_active:
            return False
        if self.membership.role == CompanyMembership.Role.OWNER:
            return True
        if code in self.perms:
            return True
        # Permissions may have changed after the context was built.
        return self.membership.permissions.filter(code=code).exists()

    @property
    def is_owner(self) -> bool:
        return self.membership.role == CompanyMembership.Role.OWNER

    @property
    def role(self) -> str:
        return self.membership.role


def actor_for(user, company) -> ActorContext:
    """
    Build an ActorContext for a user inside a company.

    Used by background tasks and by resolve_actor.

    Raises:
        PermissionDenied: If the user has no active membership in the company
    """
    try:
        membership = CompanyMembership.objects.select_related(
            "company"
        ).prefetch_related(
            "permissions"
        ).get(
            user=user,
            company=company,
            is_active=True,
        )
    except CompanyMembership.DoesNotExist:
        raise PermissionDenied("You are not an active member of the selected company.")

    perms = frozenset(membership.permissions.values_list("code", flat=True))
    return ActorContext(user=user, company=company, membership=membership, perms=perms)


def owner_actor(company):
    """
    ActorContext for the company's earliest active owner, or None.

    Scheduled tasks act on the owner's behalf so their events carry a user.
    """
    membership = (
        CompanyMembership.objects
        .filter(company=company, role=CompanyMembership.Role.OWNER, is_active=True)
        .select_related("user")
        .order_by("id")
        .first()
    )
    if membership is None:
        return None
    return actor_for(membership.user, company)


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    Membership and permissions are loaded fresh on every request so that
    permission changes take effect immediately.

    Raises:
        NotAuthenticated: If user is not authenticated
        PermissionDenied: If user has no active company or membership
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    company = getattr(user, "active_company", None)
    if not company:
        raise PermissionDenied("No active company selected. Please select a company first.")

    return actor_for(user, company)


def require(actor: ActorContext, code: str) -> None:
    """
    Require that the actor has a specific permission.

    Raises:
        PermissionDenied: If permission is not granted

    Example:
        require(actor, "journal.post")
    """
    if not actor.has(code):
        raise PermissionDenied(f"Permission denied: {code}")


def require_any(actor: ActorContext, *codes: str) -> None:
    """Require that the actor has AT LEAST ONE of the specified permissions."""
    for code in codes:
        if actor.has(code):
            return

    raise PermissionDenied(f"Permission denied: requires one of {', '.join(codes)}")
