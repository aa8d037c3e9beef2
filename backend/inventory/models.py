# inventory/models.py
"""
Inventory write models.

Stock is never stored as a mutable counter on the write side: every change
is an immutable StockMovement row (signed quantity). The StockLevel read
model in projections/ is built from the matching stock.moved events.
"""

from decimal import Decimal
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q, Sum

from accounts.models import Company
from accounting.models import Account, CommandOwnedModel


QUANTITY = dict(max_digits=18, decimal_places=3)
MONEY = dict(max_digits=18, decimal_places=2)


class Product(CommandOwnedModel):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="products")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    sku = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    unit_price = models.DecimalField(default=Decimal("0.00"), **MONEY)
    cost_price = models.DecimalField(default=Decimal("0.00"), **MONEY)
    # Overrides the company's revenue role for this product's sales
    revenue_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="+",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.UniqueConstraint(fields=["company", "sku"], name="uniq_product_sku_per_company"),
        ]

    def __str__(self):
        return f"{self.sku} - {self.name}"


class Warehouse(CommandOwnedModel):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="warehouses")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)
    # Person in charge: the only user who may approve transfers into this warehouse
    pic_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(fields=["company", "code"], name="uniq_warehouse_code_per_company"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"


class StockMovementQuerySet(models.QuerySet):
    def on_hand(self, product, warehouse) -> Decimal:
        total = self.filter(product=product, warehouse=warehouse).aggregate(q=Sum("quantity"))["q"]
        return total or Decimal("0")


class StockMovement(CommandOwnedModel):
    """Immutable signed quantity change at one (product, warehouse)."""

    class Reason(models.TextChoices):
        TRANSFER_OUT = "transfer_out", "Transfer out"
        TRANSFER_IN = "transfer_in", "Transfer in"
        GOODS_RECEIPT = "goods_receipt", "Goods receipt"
        POS_SALE = "pos_sale", "POS sale"
        OPNAME_ADJUSTMENT = "opname_adjustment", "Stock opname adjustment"

    objects = StockMovementQuerySet.as_manager()

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="stock_movements")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="movements")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="movements")
    quantity = models.DecimalField(**QUANTITY)
    reason = models.CharField(max_length=30, choices=Reason.choices)
    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["company", "product", "warehouse"], name="movement_company_stock_idx"),
            models.Index(fields=["company", "reference_type", "reference_id"], name="movement_company_ref_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=~Q(quantity=0), name="chk_stock_movement_nonzero"),
        ]

    def __str__(self):
        return f"{self.reason} {self.quantity} {self.product_id}@{self.warehouse_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Stock movements are immutable and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Stock movements are immutable and cannot be deleted.")


class StockTransfer(CommandOwnedModel):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"
        COMPLETED = "completed", "Completed"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="stock_transfers")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    from_warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="outgoing_transfers")
    to_warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="incoming_transfers")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    notes = models.TextField(blank=True, default="")
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(from_warehouse=models.F("to_warehouse")),
                name="chk_transfer_distinct_warehouses",
            ),
        ]

    def __str__(self):
        return f"{self.number} ({self.status})"


class StockTransferItem(CommandOwnedModel):
    transfer = models.ForeignKey(StockTransfer, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    quantity = models.DecimalField(**QUANTITY)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name="chk_transfer_item_positive"),
        ]


class GoodsReceipt(CommandOwnedModel):
    """Receipt of purchased goods into a warehouse against a purchase order."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="goods_receipts")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    purchase_order = models.ForeignKey(
        "trade.PurchaseOrder",
        on_delete=models.PROTECT,
        related_name="goods_receipts",
    )
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="goods_receipts")
    received_date = models.DateField()
    notes = models.TextField(blank=True, default="")
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.number


class GoodsReceiptItem(CommandOwnedModel):
    receipt = models.ForeignKey(GoodsReceipt, on_delete=models.CASCADE, related_name="items")
    order_line = models.ForeignKey("trade.PurchaseOrderLine", on_delete=models.PROTECT, related_name="+")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    quantity = models.DecimalField(**QUANTITY)


class StockOpname(CommandOwnedModel):
    """Physical stock count for one warehouse."""

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="stock_opnames")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="opnames")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.number} ({self.status})"


class StockOpnameItem(CommandOwnedModel):
    opname = models.ForeignKey(StockOpname, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    system_quantity = models.DecimalField(**QUANTITY)
    actual_quantity = models.DecimalField(null=True, blank=True, **QUANTITY)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["opname", "product"], name="uniq_opname_product"),
        ]

    @property
    def difference(self) -> Decimal:
        if self.actual_quantity is None:
            return Decimal("0")
        return self.actual_quantity - self.system_quantity
