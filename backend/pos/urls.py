# pos/urls.py
from django.urls import path

from .views import (
    CashSessionCloseView,
    CashSessionDetailView,
    CashSessionListOpenView,
    CurrentSessionView,
    DepositListCreateView,
    PaymentMethodListCreateView,
    SaleListCreateView,
)

app_name = "pos"

urlpatterns = [
    path("payment-methods/", PaymentMethodListCreateView.as_view(), name="payment-method-list-create"),
    path("sessions/", CashSessionListOpenView.as_view(), name="session-list-open"),
    path("sessions/current/", CurrentSessionView.as_view(), name="session-current"),
    path("sessions/<int:pk>/", CashSessionDetailView.as_view(), name="session-detail"),
    path("sessions/<int:pk>/close/", CashSessionCloseView.as_view(), name="session-close"),
    path("sales/", SaleListCreateView.as_view(), name="sale-list-create"),
    path("deposits/", DepositListCreateView.as_view(), name="deposit-list-create"),
]
