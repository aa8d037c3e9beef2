# inventory/views.py
"""Products, warehouses, stock levels, transfers, goods receipts and stock opname."""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from projections.models import StockLevel
from .commands import (
    approve_stock_transfer,
    complete_stock_opname,
    create_product,
    create_stock_transfer,
    create_warehouse,
    receive_goods,
    record_opname_count,
    reject_stock_transfer,
    start_stock_opname,
)
from .models import Product, StockOpname, StockTransfer, Warehouse
from .serializers import (
    GoodsReceiptCreateSerializer,
    GoodsReceiptSerializer,
    OpnameCountSerializer,
    OpnameStartSerializer,
    ProductCreateSerializer,
    ProductSerializer,
    RejectTransferSerializer,
    StockLevelSerializer,
    StockOpnameSerializer,
    StockTransferSerializer,
    TransferCreateSerializer,
    WarehouseCreateSerializer,
    WarehouseSerializer,
)


def _failed(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


class ProductListCreateView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "inventory.view")
        products = Product.objects.filter(company=actor.company).order_by("sku")
        return Response(ProductSerializer(products, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = ProductCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_product(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(ProductSerializer(result.data).data, status=status.HTTP_201_CREATED)


class WarehouseListCreateView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "inventory.view")
        warehouses = Warehouse.objects.filter(company=actor.company).select_related("pic_user").order_by("code")
        return Response(WarehouseSerializer(warehouses, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = WarehouseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_warehouse(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(WarehouseSerializer(result.data).data, status=status.HTTP_201_CREATED)


class StockLevelListView(APIView):
    """GET /api/inventory/stock-levels/?warehouse=&product= (stock_level projection)"""

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "inventory.view")
        levels = StockLevel.objects.filter(company=actor.company).select_related("product", "warehouse")
        if request.query_params.get("warehouse"):
            levels = levels.filter(warehouse_id=request.query_params["warehouse"])
        if request.query_params.get("product"):
            levels = levels.filter(product_id=request.query_params["product"])
        return Response(StockLevelSerializer(levels.order_by("warehouse__code", "product__sku"), many=True).data)


# =============================================================================
# Transfers
# =============================================================================

class TransferListCreateView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "inventory.view")
        transfers = StockTransfer.objects.filter(company=actor.company).prefetch_related("items").order_by("-id")
        if request.query_params.get("status"):
            transfers = transfers.filter(status=request.query_params["status"])
        return Response(StockTransferSerializer(transfers, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = TransferCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data["items"] = [dict(i) for i in data["items"]]

        result = create_stock_transfer(actor, **data)
        if not result.success:
            return _failed(result)
        return Response(StockTransferSerializer(result.data).data, status=status.HTTP_201_CREATED)


class TransferApproveView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        result = approve_stock_transfer(actor, pk)
        if not result.success:
            return _failed(result)
        return Response(StockTransferSerializer(result.data).data)


class TransferRejectView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = RejectTransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = reject_stock_transfer(actor, pk, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(StockTransferSerializer(result.data).data)


# =============================================================================
# Goods receipts & opname
# =============================================================================

class GoodsReceiptCreateView(APIView):
    def post(self, request):
        actor = resolve_actor(request)
        serializer = GoodsReceiptCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data["items"] = [dict(i) for i in data["items"]]

        result = receive_goods(actor, **data)
        if not result.success:
            return _failed(result)
        return Response(GoodsReceiptSerializer(result.data).data, status=status.HTTP_201_CREATED)


class OpnameListStartView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "inventory.view")
        opnames = StockOpname.objects.filter(company=actor.company).prefetch_related("items").order_by("-id")
        return Response(StockOpnameSerializer(opnames, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = OpnameStartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = start_stock_opname(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(StockOpnameSerializer(result.data).data, status=status.HTTP_201_CREATED)


class OpnameCountView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = OpnameCountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = record_opname_count(actor, pk, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(StockOpnameSerializer(result.data.opname).data)


class OpnameCompleteView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        result = complete_stock_opname(actor, pk)
        if not result.success:
            return _failed(result)
        return Response(StockOpnameSerializer(result.data).data)
