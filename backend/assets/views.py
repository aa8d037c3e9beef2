# assets/views.py

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from .commands import dispose_asset, register_asset, run_depreciation, run_monthly_depreciation
from .depreciation import schedule
from .models import FixedAsset
from .serializers import (
    AssetCreateSerializer,
    AssetDepreciationSerializer,
    DepreciationDateSerializer,
    DisposeSerializer,
    FixedAssetSerializer,
)


def _failed(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


class AssetListCreateView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "assets.view")
        assets = FixedAsset.objects.filter(company=actor.company).order_by("code")
        if request.query_params.get("status"):
            assets = assets.filter(status=request.query_params["status"])
        return Response(FixedAssetSerializer(assets, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = AssetCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = register_asset(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(FixedAssetSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AssetDetailView(APIView):
    """GET /api/assets/<pk>/ -> asset, posted depreciation and the remaining schedule"""

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "assets.view")
        asset = get_object_or_404(FixedAsset, company=actor.company, pk=pk)

        remaining = []
        if asset.status == FixedAsset.Status.ACTIVE:
            remaining = schedule(
                asset.depreciation_method,
                asset.purchase_price,
                asset.salvage_value,
                asset.useful_life_months,
                current_value=asset.current_value,
                accumulated=asset.accumulated_depreciation,
            )
        return Response({
            **FixedAssetSerializer(asset).data,
            "depreciations": AssetDepreciationSerializer(asset.depreciations.order_by("depreciation_date"), many=True).data,
            "remaining_schedule": [
                {"amount": str(step.amount), "current_value": str(step.current_value)}
                for step in remaining
            ],
        })


class AssetDepreciateView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = DepreciationDateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = run_depreciation(actor, pk, serializer.validated_data["depreciation_date"])
        if not result.success:
            return _failed(result)
        return Response(AssetDepreciationSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AssetDisposeView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = DisposeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = dispose_asset(actor, pk, serializer.validated_data["disposal_date"])
        if not result.success:
            return _failed(result)
        return Response(FixedAssetSerializer(result.data).data)


class DepreciationRunView(APIView):
    """POST /api/assets/depreciation-run/ -> depreciate every active asset for one date"""

    def post(self, request):
        actor = resolve_actor(request)
        serializer = DepreciationDateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = run_monthly_depreciation(actor, serializer.validated_data["depreciation_date"])
        if not result.success:
            return _failed(result)
        return Response(result.data)
