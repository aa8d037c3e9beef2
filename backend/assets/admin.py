from django.contrib import admin

from accounting.admin import ReadOnlyInline, ReadOnlyModelAdmin
from .models import AssetDepreciation, FixedAsset


class AssetDepreciationInline(ReadOnlyInline):
    model = AssetDepreciation
    fields = ["depreciation_date", "amount", "value_after", "journal_entry_id"]
    readonly_fields = fields


@admin.register(FixedAsset)
class FixedAssetAdmin(ReadOnlyModelAdmin):
    list_display = ["code", "name", "depreciation_method", "purchase_price", "current_value", "status", "company"]
    list_filter = ["company", "status", "depreciation_method"]
    search_fields = ["code", "name"]
    inlines = [AssetDepreciationInline]
