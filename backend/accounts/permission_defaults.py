# accounts/permission_defaults.py

ROLE_DEFAULTS = {
    "OWNER": {
        # Company / security
        "company.view",
        "company.manage_users",

        # Chart of accounts & ledger
        "accounts.view",
        "accounts.manage",
        "journal.view",
        "journal.post",
        "journal.reverse",
        "periods.close",
        "periods.reopen",

        # Sales & purchases
        "sales.view",
        "sales.manage",
        "purchases.view",
        "purchases.manage",
        "payments.record",

        # Point of sale
        "pos.sell",
        "pos.manage_sessions",
        "pos.manage_methods",

        # Inventory
        "inventory.view",
        "inventory.manage",
        "inventory.transfer",

        # Fixed assets
        "assets.view",
        "assets.manage",
        "assets.depreciate",

        # Reports
        "reports.view",
    },
    "ADMIN": {
        "company.view",
        "company.manage_users",

        "accounts.view",
        "accounts.manage",
        "journal.view",
        "journal.post",
        "journal.reverse",
        "periods.close",

        "sales.view",
        "sales.manage",
        "purchases.view",
        "purchases.manage",
        "payments.record",

        "pos.sell",
        "pos.manage_sessions",
        "pos.manage_methods",

        "inventory.view",
        "inventory.manage",
        "inventory.transfer",

        "assets.view",
        "assets.manage",
        "assets.depreciate",

        "reports.view",
    },
    "USER": {
        "company.view",

        "accounts.view",
        "journal.view",

        "sales.view",
        "sales.manage",
        "purchases.view",
        "payments.record",

        "pos.sell",
        "pos.manage_sessions",

        "inventory.view",
        "inventory.transfer",

        "assets.view",
        "reports.view",
    },
    "VIEWER": {
        "company.view",
        "accounts.view",
        "journal.view",
        "sales.view",
        "purchases.view",
        "inventory.view",
        "assets.view",
        "reports.view",
    },
}


def all_permission_codes() -> set[str]:
    codes: set[str] = set()
    for s in ROLE_DEFAULTS.values():
        codes |= set(s)
    return codes
