# projections/account_balance.py
"""
Account Balance Projection.

Consumes journal_entry.posted. A reversal is itself a posted entry with
mirrored lines, so journal_entry.reversed needs no handling here.

This projection is the single source of truth for "what is the balance?"
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import List, Dict, Any
import logging

from accounts.models import Company
from accounting.models import Account
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry
from projections.models import AccountBalance


logger = logging.getLogger(__name__)


class AccountBalanceProjection(BaseProjection):
    """Maintains materialized account balances from posted journal entries."""

    @property
    def name(self) -> str:
        return "account_balance"

    @property
    def consumes(self) -> List[str]:
        return [EventTypes.JOURNAL_ENTRY_POSTED]

    def handle(self, event: BusinessEvent) -> None:
        data = event.get_data()
        lines = data.get("lines", [])
        if not lines:
            logger.warning("Posted entry %s has no lines", data.get("entry_public_id"))
            return

        entry_date = date.fromisoformat(data["date"]) if data.get("date") else None

        # Several lines of one entry may hit the same account.
        totals: Dict[str, Dict[str, Decimal]] = defaultdict(
            lambda: {"debit": Decimal("0.00"), "credit": Decimal("0.00")}
        )
        for line in lines:
            account_public_id = line.get("account_public_id")
            if not account_public_id:
                logger.warning("Line missing account_public_id in event %s", event.id)
                continue
            totals[account_public_id]["debit"] += Decimal(line.get("debit", "0"))
            totals[account_public_id]["credit"] += Decimal(line.get("credit", "0"))

        for account_public_id, amounts in totals.items():
            self._apply(event.company, account_public_id, amounts, entry_date, event)

    def _apply(self, company: Company, account_public_id: str, amounts, entry_date, event) -> None:
        try:
            account = Account.objects.get(public_id=account_public_id, company=company)
        except Account.DoesNotExist:
            raise RuntimeError(
                f"Account {account_public_id} not found for company {company.slug} in event {event.id}"
            )

        balance = AccountBalance.objects.select_for_update().filter(
            company=company,
            account=account,
        ).first()
        if balance is None:
            balance = AccountBalance.objects.create(company=company, account=account)

        if balance.last_event_id == event.id:
            return

        if amounts["debit"] > 0:
            balance.apply_debit(amounts["debit"])
        if amounts["credit"] > 0:
            balance.apply_credit(amounts["credit"])

        balance.entry_count += 1
        if entry_date and (not balance.last_entry_date or entry_date > balance.last_entry_date):
            balance.last_entry_date = entry_date
        balance.last_event = event
        balance.save()

    def _clear_projected_data(self, company: Company) -> None:
        AccountBalance.objects.filter(company=company).update(
            balance=Decimal("0.00"),
            debit_total=Decimal("0.00"),
            credit_total=Decimal("0.00"),
            entry_count=0,
            last_entry_date=None,
            last_event=None,
        )

    def get_balance(self, company: Company, account: Account) -> Decimal:
        try:
            return AccountBalance.objects.get(company=company, account=account).balance
        except AccountBalance.DoesNotExist:
            return Decimal("0.00")

    def get_trial_balance(self, company: Company) -> Dict[str, Any]:
        """
        Trial balance from projected balances.

        Each account shows its balance on its normal side (or the opposite
        side when negative). Totals must agree whenever every posted entry
        balanced.
        """
        balances = AccountBalance.objects.filter(
            company=company,
        ).select_related("account").order_by("account__code")

        accounts = []
        total_debit = Decimal("0.00")
        total_credit = Decimal("0.00")

        for bal in balances:
            account = bal.account
            debit_side = (account.normal_balance == Account.NormalBalance.DEBIT) == (bal.balance >= 0)
            debit = abs(bal.balance) if debit_side else Decimal("0.00")
            credit = Decimal("0.00") if debit_side else abs(bal.balance)

            accounts.append({
                "code": account.code,
                "name": account.name,
                "account_type": account.account_type,
                "debit": str(debit),
                "credit": str(credit),
                "balance": str(bal.balance),
                "normal_balance": account.normal_balance,
            })
            total_debit += debit
            total_credit += credit

        return {
            "as_of_date": date.today().isoformat(),
            "accounts": accounts,
            "total_debit": str(total_debit),
            "total_credit": str(total_credit),
            "is_balanced": total_debit == total_credit,
        }

    def verify_all_balances(self, company: Company) -> Dict[str, Any]:
        """Replay journal_entry.posted events and compare against every projected row."""
        expected: Dict[str, Dict[str, Decimal]] = defaultdict(
            lambda: {"debit": Decimal("0.00"), "credit": Decimal("0.00")}
        )
        events = BusinessEvent.objects.filter(
            company=company,
            event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        ).order_by("company_sequence")

        for event in events:
            for line in event.get_data().get("lines", []):
                account_public_id = line.get("account_public_id")
                if account_public_id:
                    expected[account_public_id]["debit"] += Decimal(line.get("debit", "0"))
                    expected[account_public_id]["credit"] += Decimal(line.get("credit", "0"))

        mismatches = []
        verified = 0
        seen = set()
        for bal in AccountBalance.objects.filter(company=company).select_related("account"):
            key = str(bal.account.public_id)
            seen.add(key)
            totals = expected.get(key, {"debit": Decimal("0.00"), "credit": Decimal("0.00")})
            if bal.debit_total != totals["debit"] or bal.credit_total != totals["credit"]:
                mismatches.append({
                    "account_code": bal.account.code,
                    "projected_debit": str(bal.debit_total),
                    "projected_credit": str(bal.credit_total),
                    "expected_debit": str(totals["debit"]),
                    "expected_credit": str(totals["credit"]),
                })
            else:
                verified += 1

        for key, totals in expected.items():
            if key not in seen:
                mismatches.append({
                    "account_code": "(missing projection)",
                    "projected_debit": "0.00",
                    "projected_credit": "0.00",
                    "expected_debit": str(totals["debit"]),
                    "expected_credit": str(totals["credit"]),
                })

        return {"verified": verified, "mismatches": mismatches}


projection_registry.register(AccountBalanceProjection())
