# assets/serializers.py

from rest_framework import serializers

from .models import AssetDepreciation, FixedAsset

MONEY = {"max_digits": 18, "decimal_places": 2}


class AssetDepreciationSerializer(serializers.ModelSerializer):
    class Meta:
        model = AssetDepreciation
        fields = ["id", "public_id", "depreciation_date", "amount", "value_after", "journal_entry_id"]
        read_only_fields = fields


class FixedAssetSerializer(serializers.ModelSerializer):
    class Meta:
        model = FixedAsset
        fields = [
            "id", "public_id", "code", "name", "category", "location",
            "purchase_date", "purchase_price", "useful_life_months", "salvage_value",
            "depreciation_method", "current_value", "accumulated_depreciation",
            "status", "disposal_date", "asset_account", "depreciation_expense_account",
            "accumulated_depreciation_account",
        ]
        read_only_fields = fields


class AssetCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    purchase_date = serializers.DateField()
    purchase_price = serializers.DecimalField(**MONEY)
    useful_life_months = serializers.IntegerField(min_value=1)
    salvage_value = serializers.DecimalField(default="0", **MONEY)
    depreciation_method = serializers.ChoiceField(
        choices=FixedAsset.DepreciationMethod.choices,
        default=FixedAsset.DepreciationMethod.STRAIGHT_LINE,
    )
    category = serializers.CharField(required=False, allow_blank=True, default="")
    location = serializers.CharField(required=False, allow_blank=True, default="")
    asset_account_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    depreciation_expense_account_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    accumulated_depreciation_account_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class DepreciationDateSerializer(serializers.Serializer):
    depreciation_date = serializers.DateField(required=False, allow_null=True, default=None)


class DisposeSerializer(serializers.Serializer):
    disposal_date = serializers.DateField(required=False, allow_null=True, default=None)
