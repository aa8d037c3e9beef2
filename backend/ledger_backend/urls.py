from django.contrib import admin
from django.urls import include, path

from ops.urls import metrics_patterns

urlpatterns = [
    # Operations endpoints (no auth required)
    path("_health/", include("ops.urls")),
    path("_metrics/", include(metrics_patterns)),

    # Admin and API
    path("admin/", admin.site.urls),
    path("api/", include("accounts.urls")),
    path("api/accounting/", include("accounting.urls")),
    path("api/trade/", include("trade.urls")),
    path("api/pos/", include("pos.urls")),
    path("api/inventory/", include("inventory.urls")),
    path("api/assets/", include("assets.urls")),
    path("api/events/", include("events.urls")),
]
