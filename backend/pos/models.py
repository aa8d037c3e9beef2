# pos/models.py
"""
Point-of-sale write models: payment methods, cash sessions, sales and
customer deposits.
"""

from decimal import Decimal
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from accounts.models import Company
from accounting.models import Account, CommandOwnedModel


MONEY = dict(max_digits=18, decimal_places=2)
ZERO = Decimal("0.00")

CASH_KEYWORDS = ("cash", "tunai")


def looks_like_cash(name: str) -> bool:
    """Default for PaymentMethod.is_cash when the caller does not say."""
    lowered = (name or "").lower()
    return any(keyword in lowered for keyword in CASH_KEYWORDS)


class PaymentMethod(CommandOwnedModel):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="payment_methods")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    name = models.CharField(max_length=100)
    # Must be a cash_bank account; debited when this method takes money
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    is_cash = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["company", "name"], name="uniq_payment_method_name"),
        ]

    def __str__(self):
        return self.name


class CashSession(CommandOwnedModel):
    class Status(models.TextChoices):
        OPEN = "open", "Open"
        CLOSED = "closed", "Closed"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="cash_sessions")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    opened_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    opening_balance = models.DecimalField(default=ZERO, **MONEY)
    closing_balance = models.DecimalField(null=True, blank=True, **MONEY)
    expected_balance = models.DecimalField(null=True, blank=True, **MONEY)
    difference = models.DecimalField(null=True, blank=True, **MONEY)
    notes = models.TextField(blank=True, default="")
    opened_at = models.DateTimeField()
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-opened_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company"],
                condition=Q(status="open"),
                name="uniq_open_cash_session_per_company",
            ),
        ]

    def __str__(self):
        return f"{self.number} ({self.status})"


class POSTransaction(CommandOwnedModel):
    class Status(models.TextChoices):
        COMPLETED = "completed", "Completed"
        VOIDED = "voided", "Voided"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="pos_transactions")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    # Supplied by the till; replays with the same reference return the first sale
    client_reference = models.CharField(max_length=100)
    session = models.ForeignKey(
        CashSession,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    warehouse = models.ForeignKey(
        "inventory.Warehouse",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="+",
    )
    customer_name = models.CharField(max_length=255, blank=True, default="")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.COMPLETED)

    subtotal = models.DecimalField(default=ZERO, **MONEY)
    discount_amount = models.DecimalField(default=ZERO, **MONEY)
    tax_amount = models.DecimalField(default=ZERO, **MONEY)
    rounding_amount = models.DecimalField(default=ZERO, **MONEY)
    total_amount = models.DecimalField(default=ZERO, **MONEY)
    total_cogs = models.DecimalField(default=ZERO, **MONEY)
    amount_paid = models.DecimalField(default=ZERO, **MONEY)
    change_amount = models.DecimalField(default=ZERO, **MONEY)

    journal_entry_id = models.UUIDField(null=True, blank=True)
    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["company", "client_reference"], name="uniq_pos_client_reference"),
        ]

    def __str__(self):
        return f"{self.number} {self.total_amount}"


class POSTransactionItem(CommandOwnedModel):
    transaction = models.ForeignKey(POSTransaction, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("inventory.Product", on_delete=models.PROTECT, related_name="+")
    quantity = models.DecimalField(max_digits=18, decimal_places=3)
    unit_price = models.DecimalField(**MONEY)
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    tax_percent = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    subtotal = models.DecimalField(**MONEY)
    discount_amount = models.DecimalField(**MONEY)
    tax_amount = models.DecimalField(**MONEY)
    total = models.DecimalField(**MONEY)
    cost_price = models.DecimalField(default=ZERO, **MONEY)


class POSTransactionPayment(CommandOwnedModel):
    """One tender. amount is the ledger debit after change; tendered is what was handed over."""

    transaction = models.ForeignKey(POSTransaction, on_delete=models.CASCADE, related_name="payments")
    payment_method = models.ForeignKey(PaymentMethod, on_delete=models.PROTECT, related_name="+")
    amount = models.DecimalField(**MONEY)
    tendered = models.DecimalField(default=ZERO, **MONEY)


class POSDeposit(CommandOwnedModel):
    """Advance taken at the till for a future order or event."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="pos_deposits")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=50, blank=True, default="")
    event_name = models.CharField(max_length=255, blank=True, default="")
    event_date = models.DateField(null=True, blank=True)
    deposit_amount = models.DecimalField(**MONEY)
    total_estimated = models.DecimalField(default=ZERO, **MONEY)
    remaining_amount = models.DecimalField(default=ZERO, **MONEY)
    payment_method = models.ForeignKey(PaymentMethod, on_delete=models.PROTECT, related_name="+")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    notes = models.TextField(blank=True, default="")
    journal_entry_id = models.UUIDField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(deposit_amount__gt=0), name="chk_pos_deposit_positive"),
        ]

    def __str__(self):
        return f"{self.number} {self.customer_name}"
