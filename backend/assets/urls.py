# assets/urls.py
from django.urls import path

from .views import (
    AssetDepreciateView,
    AssetDetailView,
    AssetDisposeView,
    AssetListCreateView,
    DepreciationRunView,
)

app_name = "assets"

urlpatterns = [
    path("", AssetListCreateView.as_view(), name="asset-list-create"),
    path("depreciation-run/", DepreciationRunView.as_view(), name="depreciation-run"),
    path("<int:pk>/", AssetDetailView.as_view(), name="asset-detail"),
    path("<int:pk>/depreciate/", AssetDepreciateView.as_view(), name="asset-depreciate"),
    path("<int:pk>/dispose/", AssetDisposeView.as_view(), name="asset-dispose"),
]
