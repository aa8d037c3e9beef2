# pos/serializers.py

from rest_framework import serializers

from .models import CashSession, PaymentMethod, POSDeposit, POSTransaction, POSTransactionItem, POSTransactionPayment


class PaymentMethodSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)

    class Meta:
        model = PaymentMethod
        fields = ["id", "public_id", "name", "account", "account_code", "is_cash", "is_active"]
        read_only_fields = fields


class PaymentMethodCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    account_id = serializers.IntegerField()
    # Omitted: inferred from the method name (cash / tunai)
    is_cash = serializers.BooleanField(required=False, allow_null=True, default=None)


class CashSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CashSession
        fields = [
            "id", "public_id", "number", "status", "opening_balance", "closing_balance",
            "expected_balance", "difference", "notes", "opened_at", "closed_at",
        ]
        read_only_fields = fields


class OpenSessionSerializer(serializers.Serializer):
    opening_balance = serializers.DecimalField(max_digits=18, decimal_places=2, default="0")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CloseSessionSerializer(serializers.Serializer):
    closing_balance = serializers.DecimalField(max_digits=18, decimal_places=2)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class POSItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = POSTransactionItem
        fields = [
            "product", "product_name", "quantity", "unit_price", "discount_percent", "tax_percent",
            "subtotal", "discount_amount", "tax_amount", "total",
        ]
        read_only_fields = fields


class POSPaymentSerializer(serializers.ModelSerializer):
    method = serializers.CharField(source="payment_method.name", read_only=True)

    class Meta:
        model = POSTransactionPayment
        fields = ["payment_method", "method", "amount", "tendered"]
        read_only_fields = fields


class POSTransactionSerializer(serializers.ModelSerializer):
    items = POSItemSerializer(many=True, read_only=True)
    payments = POSPaymentSerializer(many=True, read_only=True)

    class Meta:
        model = POSTransaction
        fields = [
            "id", "public_id", "number", "client_reference", "session", "warehouse",
            "customer_name", "status", "subtotal", "discount_amount", "tax_amount",
            "rounding_amount", "total_amount", "amount_paid", "change_amount",
            "journal_entry_id", "created_at", "items", "payments",
        ]
        read_only_fields = fields


class SaleItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=18, decimal_places=3)
    unit_price = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default="0")
    tax_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default="0")


class SalePaymentInputSerializer(serializers.Serializer):
    payment_method_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)


class SaleSerializer(serializers.Serializer):
    client_reference = serializers.CharField(max_length=100)
    items = SaleItemInputSerializer(many=True, allow_empty=False)
    payments = SalePaymentInputSerializer(many=True, allow_empty=False)
    warehouse_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    customer_name = serializers.CharField(required=False, allow_blank=True, default="")
    session_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class POSDepositSerializer(serializers.ModelSerializer):
    class Meta:
        model = POSDeposit
        fields = [
            "id", "public_id", "number", "customer_name", "customer_phone", "event_name", "event_date",
            "deposit_amount", "total_estimated", "remaining_amount", "payment_method", "status",
            "notes", "journal_entry_id",
        ]
        read_only_fields = fields


class DepositCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255)
    deposit_amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    payment_method_id = serializers.IntegerField()
    total_estimated = serializers.DecimalField(max_digits=18, decimal_places=2, default="0")
    event_name = serializers.CharField(required=False, allow_blank=True, default="")
    event_date = serializers.DateField(required=False, allow_null=True, default=None)
    customer_phone = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
