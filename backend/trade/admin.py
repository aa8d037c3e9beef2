from django.contrib import admin

from accounting.admin import ReadOnlyInline, ReadOnlyModelAdmin
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


class SalesOrderLineInline(ReadOnlyInline):
    model = SalesOrderLine
    fields = ["line_no", "product", "quantity", "unit_price", "total"]
    readonly_fields = fields


class PurchaseOrderLineInline(ReadOnlyInline):
    model = PurchaseOrderLine
    fields = ["line_no", "product", "quantity", "received_quantity", "unit_price", "total"]
    readonly_fields = fields


class PaymentAllocationInline(ReadOnlyInline):
    model = PaymentAllocation
    fields = ["invoice", "bill", "amount"]
    readonly_fields = fields


@admin.register(SalesOrder)
class SalesOrderAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "party_name", "order_date", "status", "total_amount", "dp_paid", "company"]
    list_filter = ["company", "status"]
    search_fields = ["number", "party_name"]
    inlines = [SalesOrderLineInline]


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "party_name", "order_date", "status", "total_amount", "dp_paid", "company"]
    list_filter = ["company", "status"]
    search_fields = ["number", "party_name"]
    inlines = [PurchaseOrderLineInline]


@admin.register(Invoice, Bill)
class OutstandingDocumentAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "party_name", "date", "due_date", "status", "total_amount", "outstanding_amount", "company"]
    list_filter = ["company", "status"]
    search_fields = ["number", "party_name"]


@admin.register(DownPayment)
class DownPaymentAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "payment_type", "amount", "date", "company"]
    list_filter = ["company", "payment_type"]


@admin.register(Payment)
class PaymentAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "payment_type", "party_name", "date", "amount", "allocated_amount", "company"]
    list_filter = ["company", "payment_type"]
    search_fields = ["number", "party_name"]
    inlines = [PaymentAllocationInline]
