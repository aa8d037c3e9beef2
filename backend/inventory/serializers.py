# inventory/serializers.py

from rest_framework import serializers

from projections.models import StockLevel
from .models import (
    GoodsReceipt,
    GoodsReceiptItem,
    Product,
    StockOpname,
    StockOpnameItem,
    StockTransfer,
    StockTransferItem,
    Warehouse,
)

QTY = {"max_digits": 18, "decimal_places": 3}


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ["id", "public_id", "sku", "name", "unit_price", "cost_price", "revenue_account", "is_active"]
        read_only_fields = fields


class ProductCreateSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    unit_price = serializers.DecimalField(max_digits=18, decimal_places=2, default="0")
    cost_price = serializers.DecimalField(max_digits=18, decimal_places=2, default="0")
    revenue_account_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class WarehouseSerializer(serializers.ModelSerializer):
    pic_email = serializers.CharField(source="pic_user.email", read_only=True, default=None)

    class Meta:
        model = Warehouse
        fields = ["id", "public_id", "code", "name", "pic_user", "pic_email", "is_active"]
        read_only_fields = fields


class WarehouseCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=255)
    pic_user_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class StockLevelSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source="product.sku", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True)

    class Meta:
        model = StockLevel
        fields = ["product", "sku", "warehouse", "warehouse_code", "quantity", "updated_at"]
        read_only_fields = fields


class QuantityItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.DecimalField(**QTY)


class TransferItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockTransferItem
        fields = ["product", "quantity"]
        read_only_fields = fields


class StockTransferSerializer(serializers.ModelSerializer):
    items = TransferItemSerializer(many=True, read_only=True)

    class Meta:
        model = StockTransfer
        fields = [
            "id", "public_id", "number", "from_warehouse", "to_warehouse", "status", "notes",
            "requested_by", "approved_by", "approved_at", "rejection_reason", "created_at", "items",
        ]
        read_only_fields = fields


class TransferCreateSerializer(serializers.Serializer):
    from_warehouse_id = serializers.IntegerField()
    to_warehouse_id = serializers.IntegerField()
    items = QuantityItemInputSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class RejectTransferSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ReceiptItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = GoodsReceiptItem
        fields = ["order_line", "product", "quantity"]
        read_only_fields = fields


class GoodsReceiptSerializer(serializers.ModelSerializer):
    items = ReceiptItemSerializer(many=True, read_only=True)

    class Meta:
        model = GoodsReceipt
        fields = ["id", "public_id", "number", "purchase_order", "warehouse", "received_date", "notes", "items"]
        read_only_fields = fields


class ReceiptLineInputSerializer(serializers.Serializer):
    order_line_id = serializers.IntegerField()
    quantity = serializers.DecimalField(**QTY)


class GoodsReceiptCreateSerializer(serializers.Serializer):
    purchase_order_id = serializers.IntegerField()
    warehouse_id = serializers.IntegerField()
    items = ReceiptLineInputSerializer(many=True, allow_empty=False)
    received_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OpnameItemSerializer(serializers.ModelSerializer):
    difference = serializers.DecimalField(read_only=True, **QTY)

    class Meta:
        model = StockOpnameItem
        fields = ["product", "system_quantity", "actual_quantity", "difference"]
        read_only_fields = fields


class StockOpnameSerializer(serializers.ModelSerializer):
    items = OpnameItemSerializer(many=True, read_only=True)

    class Meta:
        model = StockOpname
        fields = ["id", "public_id", "number", "warehouse", "status", "notes", "started_at", "completed_at", "items"]
        read_only_fields = fields


class OpnameStartSerializer(serializers.Serializer):
    warehouse_id = serializers.IntegerField()
    product_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OpnameCountSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    actual_quantity = serializers.DecimalField(min_value=0, **QTY)
