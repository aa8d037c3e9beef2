# accounts/permissions.py
from __future__ import annotations

from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction

from accounts.models import AppPermission, CompanyMembership, CompanyMembershipPermission
from accounts.permission_defaults import ROLE_DEFAULTS, all_permission_codes
from projections.write_barrier import COMMAND_CONTEXTS, write_context_allowed

User = get_user_model()


def _require_write_context() -> None:
    if getattr(settings, "TESTING", False):
        return
    if not write_context_allowed(COMMAND_CONTEXTS):
        raise RuntimeError(
            "Permission grants can only be written within an allowed write context."
        )


def ensure_permission_rows(codes=None) -> int:
    """Create AppPermission rows for any missing codes. Returns rows created."""
    codes = set(codes) if codes is not None else all_permission_codes()
    existing = set(AppPermission.objects.filter(code__in=codes).values_list("code", flat=True))
    missing = sorted(codes - existing)
    if missing:
        AppPermission.objects.bulk_create(
            [AppPermission(code=c, name=c, module=c.split(".")[0]) for c in missing],
            ignore_conflicts=True,
        )
    return len(missing)


@transaction.atomic
def grant_role_defaults(
    membership: CompanyMembership,
    granted_by: Optional[User] = None,
    overwrite: bool = False,
) -> int:
    """
    Grant default permissions for the membership.role.

    - Idempotent by default: only grants missing codes.
    - If overwrite=True: first removes existing permissions then grants defaults.
    Returns number of permissions newly granted.
    """
    default_codes = ROLE_DEFAULTS.get(membership.role, set())

    _require_write_context()

    if overwrite:
        CompanyMembershipPermission.objects.filter(
            membership=membership,
            company=membership.company,
        ).delete()

    ensure_permission_rows(default_codes)
    perms = list(AppPermission.objects.filter(code__in=default_codes))

    already = set(
        CompanyMembershipPermission.objects.filter(
            membership=membership,
            company=membership.company,
            permission__in=perms,
        ).values_list("permission__code", flat=True)
    )

    to_grant = [p for p in perms if p.code not in already]
    if not to_grant:
        return 0

    CompanyMembershipPermission.objects.bulk_create(
        [
            CompanyMembershipPermission(
                membership=membership,
                company=membership.company,
                permission=p,
                granted_by=granted_by if (granted_by and granted_by.is_authenticated) else None,
            )
            for p in to_grant
        ],
        ignore_conflicts=True,
    )
    return len(to_grant)
