# projections/models.py
"""
Projection models (materialized views).

These tables are DERIVED from events. They can be:
- Rebuilt from scratch by replaying events
- Updated incrementally as new events arrive

Never modify these tables directly. They are owned by their projections.
"""

from decimal import Decimal
from django.db import models

from accounts.models import Company
from accounting.models import Account
from events.models import BusinessEvent
from projections.write_barrier import PROJECTION_CONTEXTS, guard_write


class ProjectionOwnedModel(models.Model):
    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        guard_write(self, PROJECTION_CONTEXTS)
        super().save(*args, **kwargs)


class AccountBalance(ProjectionOwnedModel):
    """
    Materialized account balance, built from journal_entry.posted events.

    - DEBIT-normal accounts (asset, cash_bank, expense): balance = debits - credits
    - CREDIT-normal accounts (liability, equity, revenue): balance = credits - debits
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="account_balances",
    )
    account = models.OneToOneField(
        Account,
        on_delete=models.CASCADE,
        related_name="projected_balance",
    )
    balance = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    debit_total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    entry_count = models.PositiveIntegerField(default=0)
    last_entry_date = models.DateField(null=True, blank=True)
    last_event = models.ForeignKey(
        BusinessEvent,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["company", "account"], name="balance_company_account_idx"),
        ]

    def __str__(self):
        return f"{self.account.code}: {self.balance}"

    def apply_debit(self, amount: Decimal):
        self.debit_total += amount
        self._recalculate_balance()

    def apply_credit(self, amount: Decimal):
        self.credit_total += amount
        self._recalculate_balance()

    def _recalculate_balance(self):
        if self.account.normal_balance == Account.NormalBalance.DEBIT:
            self.balance = self.debit_total - self.credit_total
        else:
            self.balance = self.credit_total - self.debit_total

    def verify_integrity(self) -> dict:
        """
        Compare this row against a replay of journal_entry.posted events.

        Returns a dict with is_valid and the expected/actual totals.
        """
        from events.types import EventTypes

        expected_debit = Decimal("0.00")
        expected_credit = Decimal("0.00")
        account_public_id = str(self.account.public_id)

        events = BusinessEvent.objects.filter(
            company=self.company,
            event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        ).order_by("company_sequence")

        for event in events:
            for line in event.get_data().get("lines", []):
                if line.get("account_public_id") != account_public_id:
                    continue
                expected_debit += Decimal(line.get("debit", "0"))
                expected_credit += Decimal(line.get("credit", "0"))

        return {
            "is_valid": self.debit_total == expected_debit and self.credit_total == expected_credit,
            "expected_debit": expected_debit,
            "expected_credit": expected_credit,
            "actual_debit": self.debit_total,
            "actual_credit": self.credit_total,
        }


class StockLevel(ProjectionOwnedModel):
    """On-hand quantity per (product, warehouse), built from stock.moved events."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="stock_levels",
    )
    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.CASCADE,
        related_name="stock_levels",
    )
    warehouse = models.ForeignKey(
        "inventory.Warehouse",
        on_delete=models.CASCADE,
        related_name="stock_levels",
    )
    quantity = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0"))
    last_event = models.ForeignKey(
        BusinessEvent,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["product", "warehouse"],
                name="uniq_stock_level_product_warehouse",
            ),
        ]

    def __str__(self):
        return f"{self.product_id}@{self.warehouse_id}: {self.quantity}"


class ProjectionAppliedEvent(ProjectionOwnedModel):
    """
    Tracks which events were applied by each projection to ensure idempotency.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="applied_projection_events",
    )
    projection_name = models.CharField(max_length=100)
    event = models.ForeignKey(
        BusinessEvent,
        on_delete=models.CASCADE,
        related_name="+",
    )
    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "projection_name", "event"],
                name="uniq_projection_event",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "projection_name"], name="applied_company_proj_idx"),
        ]

    def __str__(self):
        return f"{self.projection_name} applied {self.event_id}"
