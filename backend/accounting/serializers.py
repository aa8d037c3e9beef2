# accounting/serializers.py
"""
Serializers for accounting API.

Used for input validation and output formatting only. Business rules and
event emission live in commands.py.
"""

from rest_framework import serializers

from .models import Account, AccountRoleMapping, JournalEntry, JournalLine, PeriodClosing


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)
    is_header = serializers.BooleanField(read_only=True)
    is_postable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Account
        fields = [
            "id", "public_id", "code", "name", "account_type", "normal_balance",
            "parent", "parent_code", "is_active", "is_header", "is_postable",
            "description", "created_at", "updated_at",
        ]
        read_only_fields = fields


class AccountCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=255)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class AccountUpdateSerializer(serializers.Serializer):
    """Only the fields present in the request are passed to the command."""
    code = serializers.CharField(max_length=20, required=False)
    name = serializers.CharField(max_length=255, required=False)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices, required=False)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    is_active = serializers.BooleanField(required=False)
    description = serializers.CharField(required=False, allow_blank=True)


class RoleMappingSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = AccountRoleMapping
        fields = ["role", "account", "account_code", "account_name", "updated_at"]
        read_only_fields = fields


class SetRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=AccountRoleMapping.Role.choices)
    account_id = serializers.IntegerField()


# =============================================================================
# Journal Serializers
# =============================================================================

class JournalLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = ["line_no", "account", "account_code", "account_name", "description", "debit", "credit"]
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)
    reverses_entry = serializers.UUIDField(source="reverses_entry.public_id", read_only=True, default=None)

    class Meta:
        model = JournalEntry
        fields = [
            "id", "public_id", "entry_number", "date", "description",
            "reference_type", "reference_id", "kind", "status",
            "posted_at", "reversed_at", "reverses_entry", "lines",
        ]
        read_only_fields = fields


class ManualLineSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    debit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default="0")
    credit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default="0")
    description = serializers.CharField(required=False, allow_blank=True, default="")


class ManualEntrySerializer(serializers.Serializer):
    date = serializers.DateField()
    description = serializers.CharField(max_length=255, allow_blank=True, default="")
    reference_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    lines = ManualLineSerializer(many=True)

    def validate_lines(self, value):
        if len(value) < 2:
            raise serializers.ValidationError("A journal entry needs at least two lines.")
        return value


class ReverseEntrySerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    on_date = serializers.DateField(required=False, allow_null=True, default=None)


# =============================================================================
# Period Serializers
# =============================================================================

class PeriodClosingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PeriodClosing
        fields = ["id", "public_id", "period_start", "period_end", "status", "notes", "closed_at", "reopened_at"]
        read_only_fields = fields


class ClosePeriodSerializer(serializers.Serializer):
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["period_end"] < attrs["period_start"]:
            raise serializers.ValidationError("period_end must not be before period_start.")
        return attrs
