# trade/urls.py
"""
URL configuration for sales & purchases API.

Endpoints:
- /orders/<sales|purchase>/ - Orders, confirm, cancel, down payments
- /orders/sales/<pk>/invoice/ - Generate invoice
- /orders/purchase/<pk>/bill/ - Generate bill
- /invoices/, /bills/ - Outstanding documents, cancel
- /payments/ - Receipts & supplier payments, allocation
- /aging/receivables/, /aging/payables/ - Aging reports
"""

from django.urls import path

from .views import (
    BillCancelView,
    BillListView,
    GenerateBillView,
    GenerateInvoiceView,
    InvoiceCancelView,
    InvoiceListView,
    OrderCancelView,
    OrderConfirmView,
    OrderDetailView,
    OrderDownPaymentView,
    OrderListCreateView,
    PayablesAgingView,
    PaymentAllocateView,
    PaymentListCreateView,
    ReceivablesAgingView,
)

app_name = "trade"

urlpatterns = [
    path("orders/sales/<int:pk>/invoice/", GenerateInvoiceView.as_view(), name="generate-invoice"),
    path("orders/purchase/<int:pk>/bill/", GenerateBillView.as_view(), name="generate-bill"),
    path("orders/<str:order_type>/", OrderListCreateView.as_view(), name="order-list-create"),
    path("orders/<str:order_type>/<int:pk>/", OrderDetailView.as_view(), name="order-detail"),
    path("orders/<str:order_type>/<int:pk>/confirm/", OrderConfirmView.as_view(), name="order-confirm"),
    path("orders/<str:order_type>/<int:pk>/cancel/", OrderCancelView.as_view(), name="order-cancel"),
    path("orders/<str:order_type>/<int:pk>/down-payments/", OrderDownPaymentView.as_view(), name="order-down-payment"),
    path("invoices/", InvoiceListView.as_view(), name="invoice-list"),
    path("invoices/<int:pk>/cancel/", InvoiceCancelView.as_view(), name="invoice-cancel"),
    path("bills/", BillListView.as_view(), name="bill-list"),
    path("bills/<int:pk>/cancel/", BillCancelView.as_view(), name="bill-cancel"),
    path("payments/", PaymentListCreateView.as_view(), name="payment-list-create"),
    path("payments/<int:pk>/allocate/", PaymentAllocateView.as_view(), name="payment-allocate"),
    path("aging/receivables/", ReceivablesAgingView.as_view(), name="aging-receivables"),
    path("aging/payables/", PayablesAgingView.as_view(), name="aging-payables"),
]
