# accounting/__init__.py
"""
Accounting app: the double-entry core.

- registry: account resolution by posting role
- ledger: the single mutation path for ledger state (post / reverse)
- posting_rules: pure document -> journal line rules
- commands: chart of accounts, role mappings, manual entries, period locks
"""
