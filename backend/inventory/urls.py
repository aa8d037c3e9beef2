# inventory/urls.py
from django.urls import path

from .views import (
    GoodsReceiptCreateView,
    OpnameCompleteView,
    OpnameCountView,
    OpnameListStartView,
    ProductListCreateView,
    StockLevelListView,
    TransferApproveView,
    TransferListCreateView,
    TransferRejectView,
    WarehouseListCreateView,
)

app_name = "inventory"

urlpatterns = [
    path("products/", ProductListCreateView.as_view(), name="product-list-create"),
    path("warehouses/", WarehouseListCreateView.as_view(), name="warehouse-list-create"),
    path("stock-levels/", StockLevelListView.as_view(), name="stock-level-list"),
    path("transfers/", TransferListCreateView.as_view(), name="transfer-list-create"),
    path("transfers/<int:pk>/approve/", TransferApproveView.as_view(), name="transfer-approve"),
    path("transfers/<int:pk>/reject/", TransferRejectView.as_view(), name="transfer-reject"),
    path("goods-receipts/", GoodsReceiptCreateView.as_view(), name="goods-receipt-create"),
    path("opnames/", OpnameListStartView.as_view(), name="opname-list-start"),
    path("opnames/<int:pk>/count/", OpnameCountView.as_view(), name="opname-count"),
    path("opnames/<int:pk>/complete/", OpnameCompleteView.as_view(), name="opname-complete"),
]
