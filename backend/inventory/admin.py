from django.contrib import admin

from accounting.admin import ReadOnlyInline, ReadOnlyModelAdmin
from .models import (
    GoodsReceipt,
    Product,
    StockMovement,
    StockOpname,
    StockOpnameItem,
    StockTransfer,
    StockTransferItem,
    Warehouse,
)


class StockTransferItemInline(ReadOnlyInline):
    model = StockTransferItem
    fields = ["product", "quantity"]
    readonly_fields = fields


class StockOpnameItemInline(ReadOnlyInline):
    model = StockOpnameItem
    fields = ["product", "system_quantity", "actual_quantity"]
    readonly_fields = fields


@admin.register(Product)
class ProductAdmin(ReadOnlyModelAdmin):
    list_display = ["sku", "name", "unit_price", "cost_price", "is_active", "company"]
    list_filter = ["company", "is_active"]
    search_fields = ["sku", "name"]


@admin.register(Warehouse)
class WarehouseAdmin(ReadOnlyModelAdmin):
    list_display = ["code", "name", "pic_user", "is_active", "company"]
    list_filter = ["company"]


@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyModelAdmin):
    list_display = ["product", "warehouse", "quantity", "reason", "reference_type", "created_at", "company"]
    list_filter = ["company", "reason", "warehouse"]
    search_fields = ["product__sku", "reference_id"]


@admin.register(StockTransfer)
class StockTransferAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "from_warehouse", "to_warehouse", "status", "approved_by", "created_at", "company"]
    list_filter = ["company", "status"]
    inlines = [StockTransferItemInline]


@admin.register(GoodsReceipt)
class GoodsReceiptAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "purchase_order", "warehouse", "received_date", "company"]
    list_filter = ["company", "warehouse"]


@admin.register(StockOpname)
class StockOpnameAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "warehouse", "status", "started_at", "completed_at", "company"]
    list_filter = ["company", "status"]
    inlines = [StockOpnameItemInline]
