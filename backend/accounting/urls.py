# accounting/urls.py
"""
URL configuration for accounting API.

Endpoints:
- /accounts/ - Chart of accounts
- /roles/ - Posting role -> account mapping
- /journal-entries/ - Posted entries, manual posting, reversal
- /periods/ - Period close / reopen
- /reports/trial-balance/ - Trial balance
"""

from django.urls import path

from .views import (
    AccountDetailView,
    AccountListCreateView,
    AutoMapRolesView,
    JournalEntryDetailView,
    JournalEntryListCreateView,
    JournalReverseView,
    PeriodListCloseView,
    PeriodReopenView,
    RoleMappingView,
    SeedChartView,
    TrialBalanceView,
)

app_name = "accounting"

urlpatterns = [
    path("accounts/", AccountListCreateView.as_view(), name="account-list-create"),
    path("accounts/seed/", SeedChartView.as_view(), name="account-seed"),
    path("accounts/<int:pk>/", AccountDetailView.as_view(), name="account-detail"),
    path("roles/", RoleMappingView.as_view(), name="role-mapping"),
    path("roles/auto-map/", AutoMapRolesView.as_view(), name="role-auto-map"),
    path("journal-entries/", JournalEntryListCreateView.as_view(), name="journal-entry-list-create"),
    path("journal-entries/<uuid:public_id>/", JournalEntryDetailView.as_view(), name="journal-entry-detail"),
    path("journal-entries/<uuid:public_id>/reverse/", JournalReverseView.as_view(), name="journal-entry-reverse"),
    path("periods/", PeriodListCloseView.as_view(), name="period-list-close"),
    path("periods/<int:pk>/reopen/", PeriodReopenView.as_view(), name="period-reopen"),
    path("reports/trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
]
