# projections/admin.py
"""Django admin for projection models. All rows are owned by their projection."""

from django.contrib import admin

from accounting.admin import ReadOnlyModelAdmin
from .models import AccountBalance, ProjectionAppliedEvent, StockLevel


@admin.register(AccountBalance)
class AccountBalanceAdmin(ReadOnlyModelAdmin):
    list_display = [
        "account_code", "account_name", "balance",
        "debit_total", "credit_total", "entry_count", "company",
    ]
    list_filter = ["company", "account__account_type"]
    search_fields = ["account__code", "account__name"]
    list_select_related = ["company", "account"]
    ordering = ["company", "account__code"]

    def account_code(self, obj):
        return obj.account.code
    account_code.short_description = "Code"
    account_code.admin_order_field = "account__code"

    def account_name(self, obj):
        return obj.account.name
    account_name.short_description = "Name"


@admin.register(StockLevel)
class StockLevelAdmin(ReadOnlyModelAdmin):
    list_display = ["product", "warehouse", "quantity", "updated_at", "company"]
    list_filter = ["company", "warehouse"]
    search_fields = ["product__sku", "product__name"]
    list_select_related = ["company", "product", "warehouse"]


@admin.register(ProjectionAppliedEvent)
class ProjectionAppliedEventAdmin(ReadOnlyModelAdmin):
    list_display = ["projection_name", "event_id_short", "applied_at", "company"]
    list_filter = ["company", "projection_name"]
    list_select_related = ["company", "event"]
    ordering = ["-applied_at"]

    def event_id_short(self, obj):
        return str(obj.event_id)[:8] + "..."
    event_id_short.short_description = "Event"
