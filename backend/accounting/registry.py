# accounting/registry.py
"""
Account registry: which account does a posting role land on?

Resolution order for a role:
1. the explicit account carried by the document (product revenue account,
   payment method account, asset accounts)
2. the company's AccountRoleMapping row
3. ResolutionGap

Name matching is never used at posting time. It only backs
suggest_role_mappings(), which the auto_map_roles command uses to fill
the mapping table during setup.
"""

import logging
from typing import Dict, Iterable, List, Optional

from accounting.exceptions import ResolutionGap
from accounting.models import Account, AccountRoleMapping


logger = logging.getLogger(__name__)

Role = AccountRoleMapping.Role


ROLE_KEYWORDS = {
    Role.REVENUE: (("sales", "penjualan", "revenue", "pendapatan"), ("discount", "diskon", "potongan", "retur", "return", "lain")),
    Role.COGS: (("cogs", "cost of", "hpp", "pokok"), ()),
    Role.RECEIVABLE: (("receivable", "piutang"), ("cadangan", "allowance", "lain")),
    Role.PAYABLE: (("payable", "hutang usaha", "utang usaha"), ()),
    Role.TAX: (("output tax", "ppn keluaran", "tax", "pajak", "ppn", "pph"), ("masukan",)),
    Role.DISCOUNT: (("discount", "diskon", "potongan"), ("pembelian", "purchase")),
    Role.INVENTORY: (("inventory", "persediaan"), ("perjalanan", "transit")),
    Role.CASH: (("cash", "kas", "tunai"), ("kecil", "petty")),
    Role.CUSTOMER_DEPOSIT: (("uang muka", "deposit", "down payment", "advance"), ()),
    Role.SUPPLIER_ADVANCE: (("uang muka", "deposit", "down payment", "advance", "prepaid purchase"), ()),
    Role.DEPRECIATION_EXPENSE: (("depreciation", "penyusutan"), ()),
    Role.ACCUMULATED_DEPRECIATION: (("accumulated", "akumulasi"), ()),
    Role.FIXED_ASSET: (("equipment", "peralatan", "fixed asset", "aset tetap", "mesin"), ("akumulasi", "accumulated")),
}


def get_role_mapping(company, role: str) -> Optional[AccountRoleMapping]:
    return (
        AccountRoleMapping.objects
        .select_related("account")
        .filter(company=company, role=role)
        .first()
    )


def resolve_by_role(company, role: str, explicit: Optional[Account] = None) -> Account:
    """
    Return the account a posting for ``role`` should use.

    Raises:
        ResolutionGap: neither an explicit link nor a mapping exists
    """
    if explicit is not None:
        if explicit.company_id != company.id:
            raise ResolutionGap(role)
        return explicit

    mapping = get_role_mapping(company, role)
    if mapping is None:
        raise ResolutionGap(role)
    return mapping.account


def try_resolve(company, role: str, explicit: Optional[Account] = None) -> Optional[Account]:
    try:
        return resolve_by_role(company, role, explicit=explicit)
    except ResolutionGap:
        return None


def missing_roles(company, roles: Iterable[str]) -> List[str]:
    """Roles from ``roles`` that have no mapping for the company, in input order."""
    wanted = [str(r) for r in dict.fromkeys(roles)]
    mapped = set(
        AccountRoleMapping.objects.filter(company=company, role__in=wanted).values_list("role", flat=True)
    )
    return [role for role in wanted if role not in mapped]


def check_setup_complete(company, roles: Iterable[str]) -> None:
    """Raise ResolutionGap naming every unmapped role."""
    gaps = missing_roles(company, roles)
    if gaps:
        logger.warning(
            "Posting blocked by incomplete account setup",
            extra={"company": company.slug, "roles": gaps},
        )
        raise ResolutionGap(gaps)


def resolve_roles(company, roles: Iterable[str], explicit: Optional[Dict[str, Account]] = None) -> Dict[str, Account]:
    """
    Resolve several roles at once.

    Explicit links satisfy their role; every remaining role must be mapped,
    otherwise a single ResolutionGap lists them all.
    """
    explicit = explicit or {}
    roles = list(dict.fromkeys(roles))
    check_setup_complete(company, [r for r in roles if explicit.get(r) is None])
    return {role: resolve_by_role(company, role, explicit=explicit.get(role)) for role in roles}


def _matches(account: Account, include, exclude) -> bool:
    text = f"{account.name} {account.description}".lower()
    if any(word in text for word in exclude):
        return False
    return any(word in text for word in include)


def suggest_role_mappings(company, only_unmapped: bool = True) -> Dict[str, Account]:
    """
    Guess role -> account from account names (English and Indonesian).

    Only postable accounts of an allowed type are considered; the lowest
    code wins when several match.
    """
    accounts = [
        a for a in Account.objects.filter(company=company, is_active=True).order_by("code")
        if not a.is_header
    ]
    mapped = set()
    if only_unmapped:
        mapped = set(AccountRoleMapping.objects.filter(company=company).values_list("role", flat=True))

    suggestions: Dict[str, Account] = {}
    for role, (include, exclude) in ROLE_KEYWORDS.items():
        if role in mapped:
            continue
        allowed = AccountRoleMapping.ALLOWED_TYPES[role]
        for account in accounts:
            if account.account_type in allowed and _matches(account, include, exclude):
                suggestions[str(role)] = account
                break
    return suggestions
