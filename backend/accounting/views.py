# accounting/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, events.

All mutations go through commands so that events are emitted. Views never
call .save() on models.
"""

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from . import registry
from .commands import (
    auto_map_roles,
    close_period,
    create_account,
    post_manual_entry,
    reopen_period,
    reverse_journal_entry,
    seed_default_chart,
    set_account_role,
    trial_balance,
    update_account,
)
from .models import Account, AccountRoleMapping, JournalEntry, PeriodClosing
from .serializers import (
    AccountCreateSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
    ClosePeriodSerializer,
    JournalEntrySerializer,
    ManualEntrySerializer,
    PeriodClosingSerializer,
    ReverseEntrySerializer,
    RoleMappingSerializer,
    SetRoleSerializer,
)


def _failed(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


def _entry_payload(data):
    # Without synchronous projections the command returns the entry public_id.
    if isinstance(data, JournalEntry):
        return JournalEntrySerializer(data).data
    return {"public_id": str(data), "status": "pending"}


# =============================================================================
# Chart of Accounts
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET  /api/accounting/accounts/ -> chart of accounts for the active company
    POST /api/accounting/accounts/ -> create account
    """

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        accounts = Account.objects.filter(company=actor.company).select_related("parent").order_by("code")
        account_type = request.query_params.get("account_type")
        if account_type:
            accounts = accounts.filter(account_type=account_type)
        return Response(AccountSerializer(accounts, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = AccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_account(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(AccountSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AccountDetailView(APIView):
    """
    GET   /api/accounting/accounts/<pk>/
    PATCH /api/accounting/accounts/<pk>/
    """

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "accounts.view")
        account = get_object_or_404(Account, company=actor.company, pk=pk)
        return Response(AccountSerializer(account).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)
        serializer = AccountUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = update_account(actor, pk, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(AccountSerializer(result.data).data)


class SeedChartView(APIView):
    """POST /api/accounting/accounts/seed/ -> default chart for the business type."""

    def post(self, request):
        actor = resolve_actor(request)
        result = seed_default_chart(actor, business_type=request.data.get("business_type"))
        if not result.success:
            return _failed(result)
        return Response(result.data, status=status.HTTP_201_CREATED)


# =============================================================================
# Account roles
# =============================================================================

class RoleMappingView(APIView):
    """
    GET  /api/accounting/roles/ -> mapped roles plus the roles still missing
    POST /api/accounting/roles/ -> bind a role to an account
    """

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        mappings = AccountRoleMapping.objects.filter(company=actor.company).select_related("account").order_by("role")
        return Response({
            "mappings": RoleMappingSerializer(mappings, many=True).data,
            "missing": registry.missing_roles(actor.company, AccountRoleMapping.Role.values),
        })

    def post(self, request):
        actor = resolve_actor(request)
        serializer = SetRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = set_account_role(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(RoleMappingSerializer(result.data).data)


class AutoMapRolesView(APIView):
    """POST /api/accounting/roles/auto-map/ -> fill unmapped roles from account names."""

    def post(self, request):
        actor = resolve_actor(request)
        overwrite = str(request.data.get("overwrite", "")).lower() in ("1", "true", "yes")
        result = auto_map_roles(actor, overwrite=overwrite)
        if not result.success:
            return _failed(result)
        return Response({"mapped": result.data})


# =============================================================================
# Journal
# =============================================================================

class JournalEntryListCreateView(APIView):
    """
    GET  /api/accounting/journal-entries/?date_from=&date_to=&reference_type=
    POST /api/accounting/journal-entries/ -> post a manual entry
    """

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entries = JournalEntry.objects.filter(company=actor.company).prefetch_related("lines__account")
        params = request.query_params
        if params.get("date_from"):
            entries = entries.filter(date__gte=params["date_from"])
        if params.get("date_to"):
            entries = entries.filter(date__lte=params["date_to"])
        if params.get("reference_type"):
            entries = entries.filter(reference_type=params["reference_type"])
        return Response(JournalEntrySerializer(entries[:500], many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = ManualEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = post_manual_entry(
            actor,
            date=data["date"],
            description=data["description"],
            lines=[dict(line) for line in data["lines"]],
            reference_id=data["reference_id"],
        )
        if not result.success:
            return _failed(result)
        return Response(_entry_payload(result.data), status=status.HTTP_201_CREATED)


class JournalEntryDetailView(APIView):
    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "journal.view")
        entry = get_object_or_404(JournalEntry, company=actor.company, public_id=public_id)
        return Response(JournalEntrySerializer(entry).data)


class JournalReverseView(APIView):
    """POST /api/accounting/journal-entries/<public_id>/reverse/"""

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = ReverseEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = reverse_journal_entry(actor, str(public_id), **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(_entry_payload(result.data), status=status.HTTP_201_CREATED)


# =============================================================================
# Periods & reports
# =============================================================================

class PeriodListCloseView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.view")
        periods = PeriodClosing.objects.filter(company=actor.company).order_by("-period_start")
        return Response(PeriodClosingSerializer(periods, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = ClosePeriodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = close_period(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(PeriodClosingSerializer(result.data).data, status=status.HTTP_201_CREATED)


class PeriodReopenView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        result = reopen_period(actor, pk)
        if not result.success:
            return _failed(result)
        return Response(PeriodClosingSerializer(result.data).data)


class TrialBalanceView(APIView):
    """GET /api/accounting/reports/trial-balance/ (from the account balance projection)"""

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")
        return Response(trial_balance(actor.company))
