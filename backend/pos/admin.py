from django.contrib import admin

from accounting.admin import ReadOnlyInline, ReadOnlyModelAdmin
from .models import CashSession, PaymentMethod, POSDeposit, POSTransaction, POSTransactionItem, POSTransactionPayment


class POSTransactionItemInline(ReadOnlyInline):
    model = POSTransactionItem
    fields = ["product", "quantity", "unit_price", "total", "cost_price"]
    readonly_fields = fields


class POSTransactionPaymentInline(ReadOnlyInline):
    model = POSTransactionPayment
    fields = ["payment_method", "amount"]
    readonly_fields = fields


@admin.register(PaymentMethod)
class PaymentMethodAdmin(ReadOnlyModelAdmin):
    list_display = ["name", "account", "is_cash", "is_active", "company"]
    list_filter = ["company", "is_cash"]


@admin.register(CashSession)
class CashSessionAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "status", "opening_balance", "expected_balance", "closing_balance", "difference", "opened_at", "company"]
    list_filter = ["company", "status"]


@admin.register(POSTransaction)
class POSTransactionAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "client_reference", "total_amount", "amount_paid", "change_amount", "session", "created_at", "company"]
    list_filter = ["company", "status"]
    search_fields = ["number", "client_reference", "customer_name"]
    inlines = [POSTransactionItemInline, POSTransactionPaymentInline]


@admin.register(POSDeposit)
class POSDepositAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "customer_name", "deposit_amount", "status", "created_at", "company"]
    list_filter = ["company", "status"]
