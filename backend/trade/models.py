# trade/models.py
"""
Sales and purchase documents.

Orders carry lines and running down-payment totals; invoices and bills
carry the outstanding balance the payment allocator works against.
All of these are command-owned: only trade.commands writes them.
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


class OrderStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    CONFIRMED = "confirmed", "Confirmed"
    INVOICED = "invoiced", "Invoiced"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"


class InvoiceStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    SENT = "sent", "Sent"
    PARTIAL = "partial", "Partially paid"
    PAID = "paid", "Paid"
    OVERDUE = "overdue", "Overdue"
    CANCELLED = "cancelled", "Cancelled"


class TradeOrder(CommandOwnedModel):
    Status = OrderStatus

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="%(class)ss")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    party_name = models.CharField(max_length=255)
    order_date = models.DateField()
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.DRAFT)
    notes = models.TextField(blank=True, default="")

    subtotal = models.DecimalField(default=ZERO, **MONEY)
    discount_amount = models.DecimalField(default=ZERO, **MONEY)
    tax_amount = models.DecimalField(default=ZERO, **MONEY)
    total_amount = models.DecimalField(default=ZERO, **MONEY)
    dp_paid = models.DecimalField(default=ZERO, **MONEY)

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
        abstract = True
        ordering = ["-order_date", "-id"]

    def __str__(self):
        return f"{self.number} ({self.status})"

    @property
    def dp_remaining_capacity(self) -> Decimal:
        return self.total_amount - self.dp_paid


class SalesOrder(TradeOrder):
    class Meta(TradeOrder.Meta):
        constraints = [
            models.UniqueConstraint(fields=["company", "number"], name="uniq_sales_order_number"),
        ]


class PurchaseOrder(TradeOrder):
    class Meta(TradeOrder.Meta):
        constraints = [
            models.UniqueConstraint(fields=["company", "number"], name="uniq_purchase_order_number"),
        ]


class OrderLine(CommandOwnedModel):
    line_no = models.PositiveIntegerField()
    product = models.ForeignKey(
        "inventory.Product",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="+",
    )
    description = models.CharField(max_length=255, blank=True, default="")
    quantity = models.DecimalField(max_digits=18, decimal_places=3)
    unit_price = models.DecimalField(**MONEY)
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    tax_percent = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)

    # Stored at creation from accounting.posting_rules.line_amounts
    subtotal = models.DecimalField(default=ZERO, **MONEY)
    discount_amount = models.DecimalField(default=ZERO, **MONEY)
    tax_amount = models.DecimalField(default=ZERO, **MONEY)
    total = models.DecimalField(default=ZERO, **MONEY)

    class Meta:
        abstract = True
        ordering = ["line_no"]


class SalesOrderLine(OrderLine):
    order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name="lines")


class PurchaseOrderLine(OrderLine):
    order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name="lines")
    received_quantity = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0"))

    @property
    def remaining_quantity(self) -> Decimal:
        return self.quantity - self.received_quantity


class DownPayment(CommandOwnedModel):
    class PaymentType(models.TextChoices):
        SALES = "sales", "Sales"
        PURCHASE = "purchase", "Purchase"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="down_payments")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    payment_type = models.CharField(max_length=10, choices=PaymentType.choices)
    sales_order = models.ForeignKey(
        SalesOrder,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="down_payments",
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="down_payments",
    )
    amount = models.DecimalField(**MONEY)
    cash_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    date = models.DateField()
    notes = models.TextField(blank=True, default="")
    journal_entry_id = models.UUIDField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="chk_down_payment_positive"),
            models.CheckConstraint(
                condition=(
                    Q(sales_order__isnull=False, purchase_order__isnull=True)
                    | Q(sales_order__isnull=True, purchase_order__isnull=False)
                ),
                name="chk_down_payment_single_order",
            ),
        ]

    @property
    def order(self):
        return self.sales_order or self.purchase_order


class OutstandingDocument(CommandOwnedModel):
    """
    A document with an open balance: sales invoice or purchase bill.

    Invariant: paid_amount + outstanding_amount == total_amount.
    """

    Status = InvoiceStatus

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="%(class)ss")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    party_name = models.CharField(max_length=255)
    date = models.DateField()
    due_date = models.DateField()
    status = models.CharField(max_length=20, choices=InvoiceStatus.choices, default=InvoiceStatus.DRAFT)

    subtotal = models.DecimalField(default=ZERO, **MONEY)
    discount_amount = models.DecimalField(default=ZERO, **MONEY)
    tax_amount = models.DecimalField(default=ZERO, **MONEY)
    dp_applied = models.DecimalField(default=ZERO, **MONEY)
    total_amount = models.DecimalField(default=ZERO, **MONEY)
    paid_amount = models.DecimalField(default=ZERO, **MONEY)
    outstanding_amount = models.DecimalField(default=ZERO, **MONEY)

    journal_entry_id = models.UUIDField(null=True, blank=True)
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
        abstract = True
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"{self.number} ({self.status})"

    @property
    def is_open(self) -> bool:
        return self.status not in (InvoiceStatus.CANCELLED, InvoiceStatus.DRAFT, InvoiceStatus.PAID)


class Invoice(OutstandingDocument):
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.PROTECT, related_name="invoices")

    class Meta(OutstandingDocument.Meta):
        constraints = [
            models.UniqueConstraint(fields=["company", "number"], name="uniq_invoice_number"),
            models.UniqueConstraint(
                fields=["sales_order"],
                condition=~Q(status=InvoiceStatus.CANCELLED),
                name="uniq_live_invoice_per_order",
            ),
            models.CheckConstraint(condition=Q(outstanding_amount__gte=0), name="chk_invoice_outstanding_nonneg"),
        ]

    @property
    def order(self):
        return self.sales_order


class Bill(OutstandingDocument):
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.PROTECT, related_name="bills")

    class Meta(OutstandingDocument.Meta):
        constraints = [
            models.UniqueConstraint(fields=["company", "number"], name="uniq_bill_number"),
            models.UniqueConstraint(
                fields=["purchase_order"],
                condition=~Q(status=InvoiceStatus.CANCELLED),
                name="uniq_live_bill_per_order",
            ),
            models.CheckConstraint(condition=Q(outstanding_amount__gte=0), name="chk_bill_outstanding_nonneg"),
        ]

    @property
    def order(self):
        return self.purchase_order


class Payment(CommandOwnedModel):
    class PaymentType(models.TextChoices):
        INCOMING = "incoming", "Incoming"
        OUTGOING = "outgoing", "Outgoing"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="payments")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    payment_type = models.CharField(max_length=10, choices=PaymentType.choices)
    party_name = models.CharField(max_length=255)
    date = models.DateField()
    amount = models.DecimalField(**MONEY)
    allocated_amount = models.DecimalField(default=ZERO, **MONEY)
    cash_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    notes = models.TextField(blank=True, default="")
    journal_entry_id = models.UUIDField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["company", "number"], name="uniq_payment_number"),
            models.CheckConstraint(condition=Q(amount__gt=0), name="chk_payment_positive"),
            models.CheckConstraint(
                condition=Q(allocated_amount__lte=models.F("amount")),
                name="chk_payment_not_overallocated",
            ),
        ]

    def __str__(self):
        return f"{self.number} {self.payment_type} {self.amount}"

    @property
    def unallocated_amount(self) -> Decimal:
        return self.amount - self.allocated_amount


class PaymentAllocation(CommandOwnedModel):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="allocations")
    invoice = models.ForeignKey(
        Invoice,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    bill = models.ForeignKey(
        Bill,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    amount = models.DecimalField(**MONEY)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="chk_allocation_positive"),
            models.CheckConstraint(
                condition=(
                    Q(invoice__isnull=False, bill__isnull=True)
                    | Q(invoice__isnull=True, bill__isnull=False)
                ),
                name="chk_allocation_single_target",
            ),
        ]

    @property
    def document(self):
        return self.invoice or self.bill
