# trade/serializers.py
"""Input validation and output formatting for orders, invoices, bills and payments."""

from rest_framework import serializers

from .models import (
    Bill,
    DownPayment,
    Invoice,
    Payment,
    PaymentAllocation,
    PurchaseOrder,
    PurchaseOrderLine,
    SalesOrder,
    SalesOrderLine,
)

LINE_FIELDS = [
    "line_no", "product", "description", "quantity", "unit_price",
    "discount_percent", "tax_percent", "subtotal", "discount_amount", "tax_amount", "total",
]
ORDER_FIELDS = [
    "id", "public_id", "number", "party_name", "order_date", "status", "notes",
    "subtotal", "discount_amount", "tax_amount", "total_amount", "dp_paid", "lines",
    "created_at", "updated_at",
]
DOCUMENT_FIELDS = [
    "id", "public_id", "number", "party_name", "date", "due_date", "status",
    "subtotal", "discount_amount", "tax_amount", "dp_applied",
    "total_amount", "paid_amount", "outstanding_amount", "journal_entry_id",
    "created_at", "updated_at",
]


class SalesOrderLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalesOrderLine
        fields = LINE_FIELDS
        read_only_fields = fields


class PurchaseOrderLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchaseOrderLine
        fields = ["id"] + LINE_FIELDS + ["received_quantity"]
        read_only_fields = fields


class SalesOrderSerializer(serializers.ModelSerializer):
    lines = SalesOrderLineSerializer(many=True, read_only=True)

    class Meta:
        model = SalesOrder
        fields = ORDER_FIELDS
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    lines = PurchaseOrderLineSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = ORDER_FIELDS
        read_only_fields = fields


ORDER_SERIALIZERS = {"sales": SalesOrderSerializer, "purchase": PurchaseOrderSerializer}


class OrderLineInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.DecimalField(max_digits=18, decimal_places=3)
    unit_price = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default="0")
    tax_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default="0")


class OrderCreateSerializer(serializers.Serializer):
    party_name = serializers.CharField(max_length=255)
    order_date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    lines = OrderLineInputSerializer(many=True)


class DownPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = DownPayment
        fields = ["id", "public_id", "number", "payment_type", "amount", "cash_account", "date", "notes", "journal_entry_id"]
        read_only_fields = fields


class DownPaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    cash_account_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    on_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceSerializer(serializers.ModelSerializer):
    sales_order = serializers.CharField(source="sales_order.number", read_only=True)

    class Meta:
        model = Invoice
        fields = DOCUMENT_FIELDS + ["sales_order"]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    purchase_order = serializers.CharField(source="purchase_order.number", read_only=True)

    class Meta:
        model = Bill
        fields = DOCUMENT_FIELDS + ["purchase_order"]
        read_only_fields = fields


class GenerateDocumentSerializer(serializers.Serializer):
    date = serializers.DateField(required=False, allow_null=True, default=None)
    due_days = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)


class CancelDocumentSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentAllocationSerializer(serializers.ModelSerializer):
    document = serializers.SerializerMethodField()

    class Meta:
        model = PaymentAllocation
        fields = ["document", "amount", "created_at"]
        read_only_fields = fields

    def get_document(self, obj):
        return obj.document.number


class PaymentSerializer(serializers.ModelSerializer):
    allocations = PaymentAllocationSerializer(many=True, read_only=True)
    unallocated_amount = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id", "public_id", "number", "payment_type", "party_name", "date",
            "amount", "allocated_amount", "unallocated_amount", "cash_account",
            "notes", "journal_entry_id", "allocations",
        ]
        read_only_fields = fields


class AllocationInputSerializer(serializers.Serializer):
    document_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)


class PaymentCreateSerializer(serializers.Serializer):
    payment_type = serializers.ChoiceField(choices=Payment.PaymentType.choices)
    party_name = serializers.CharField(max_length=255)
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    allocations = AllocationInputSerializer(many=True, required=False, default=list)
    cash_account_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    on_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AllocatePaymentSerializer(serializers.Serializer):
    allocations = AllocationInputSerializer(many=True)
    on_date = serializers.DateField(required=False, allow_null=True, default=None)
