# accounts/urls.py
"""
URL configuration for accounts/auth API.

Endpoints:
- /auth/ - Authentication (register, login, refresh, me, switch-company)
- /companies/ - Companies of the current user
- /memberships/ - Members of the active company
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    CompanyListCreateView,
    LoginView,
    LogoutView,
    MembershipListCreateView,
    MeView,
    RegisterView,
    SwitchCompanyView,
)

app_name = "accounts"

urlpatterns = [
    path("auth/register/", RegisterView.as_view(), name="register"),
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("auth/me/", MeView.as_view(), name="me"),
    path("auth/switch-company/", SwitchCompanyView.as_view(), name="switch-company"),
    path("companies/", CompanyListCreateView.as_view(), name="company-list"),
    path("memberships/", MembershipListCreateView.as_view(), name="membership-list"),
]
