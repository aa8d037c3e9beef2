# assets/models.py
from decimal import Decimal
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from accounts.models import Company
from accounting.models import Account, CommandOwnedModel


MONEY = dict(max_digits=18, decimal_places=2)
ZERO = Decimal("0.00")


class FixedAsset(CommandOwnedModel):
    """
    A depreciable asset.

    current_value only ever decreases and never goes below salvage_value;
    accumulated_depreciation + current_value == purchase_price.
    """

    class DepreciationMethod(models.TextChoices):
        STRAIGHT_LINE = "straight_line", "Straight line"
        DECLINING_BALANCE = "declining_balance", "Double declining balance"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        DISPOSED = "disposed", "Disposed"
        FULLY_DEPRECIATED = "fully_depreciated", "Fully depreciated"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="fixed_assets")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")
    purchase_date = models.DateField()
    purchase_price = models.DecimalField(**MONEY)
    useful_life_months = models.PositiveIntegerField()
    salvage_value = models.DecimalField(default=ZERO, **MONEY)
    depreciation_method = models.CharField(
        max_length=20,
        choices=DepreciationMethod.choices,
        default=DepreciationMethod.STRAIGHT_LINE,
    )
    current_value = models.DecimalField(**MONEY)
    accumulated_depreciation = models.DecimalField(default=ZERO, **MONEY)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    disposal_date = models.DateField(null=True, blank=True)

    # Explicit account links; each falls back to the company role mapping
    asset_account = models.ForeignKey(
        Account, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    depreciation_expense_account = models.ForeignKey(
        Account, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    accumulated_depreciation_account = models.ForeignKey(
        Account, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(fields=["company", "code"], name="uniq_fixed_asset_code"),
            models.CheckConstraint(condition=Q(useful_life_months__gt=0), name="chk_asset_useful_life"),
            models.CheckConstraint(
                condition=Q(salvage_value__lte=models.F("purchase_price")),
                name="chk_asset_salvage_le_price",
            ),
            models.CheckConstraint(
                condition=Q(current_value__gte=models.F("salvage_value")),
                name="chk_asset_value_ge_salvage",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"


class AssetDepreciation(CommandOwnedModel):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="asset_depreciations")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    asset = models.ForeignKey(FixedAsset, on_delete=models.PROTECT, related_name="depreciations")
    depreciation_date = models.DateField()
    amount = models.DecimalField(**MONEY)
    value_after = models.DecimalField(**MONEY)
    journal_entry_id = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["asset", "depreciation_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["asset", "depreciation_date"],
                name="uniq_asset_depreciation_date",
            ),
            models.CheckConstraint(condition=Q(amount__gt=0), name="chk_depreciation_positive"),
        ]

    def __str__(self):
        return f"{self.asset_id} {self.depreciation_date}: {self.amount}"
