# pos/views.py
"""Point-of-sale endpoints: payment methods, cash sessions, sales and deposits."""

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from .commands import (
    close_cash_session,
    complete_sale,
    create_payment_method,
    current_session,
    open_cash_session,
    receive_pos_deposit,
    session_summary,
)
from .models import CashSession, PaymentMethod, POSDeposit, POSTransaction
from .serializers import (
    CashSessionSerializer,
    CloseSessionSerializer,
    DepositCreateSerializer,
    OpenSessionSerializer,
    PaymentMethodCreateSerializer,
    PaymentMethodSerializer,
    POSDepositSerializer,
    POSTransactionSerializer,
    SaleSerializer,
)


def _failed(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


class PaymentMethodListCreateView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "pos.sell")
        methods = PaymentMethod.objects.filter(company=actor.company, is_active=True).select_related("account")
        return Response(PaymentMethodSerializer(methods, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = PaymentMethodCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_payment_method(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(PaymentMethodSerializer(result.data).data, status=status.HTTP_201_CREATED)


# =============================================================================
# Cash sessions
# =============================================================================

class CashSessionListOpenView(APIView):
    """
    GET  /api/pos/sessions/ -> recent sessions
    POST /api/pos/sessions/ -> open a session
    """

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "pos.sell")
        sessions = CashSession.objects.filter(company=actor.company).order_by("-opened_at")[:100]
        return Response(CashSessionSerializer(sessions, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = OpenSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = open_cash_session(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(CashSessionSerializer(result.data).data, status=status.HTTP_201_CREATED)


class CurrentSessionView(APIView):
    """GET /api/pos/sessions/current/ -> the open session with its running summary"""

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "pos.sell")
        session = current_session(actor.company)
        if session is None:
            return Response({"detail": "No open cash session."}, status=status.HTTP_404_NOT_FOUND)
        return Response(session_summary(actor.company, session))


class CashSessionDetailView(APIView):
    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "pos.sell")
        session = get_object_or_404(CashSession, company=actor.company, pk=pk)
        return Response({
            **CashSessionSerializer(session).data,
            "summary": session_summary(actor.company, session),
        })


class CashSessionCloseView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = CloseSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = close_cash_session(actor, pk, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(CashSessionSerializer(result.data).data)


# =============================================================================
# Sales & deposits
# =============================================================================

class SaleListCreateView(APIView):
    """
    GET  /api/pos/sales/?session=
    POST /api/pos/sales/ -> ring up a sale (idempotent on client_reference)
    """

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "pos.sell")
        transactions = POSTransaction.objects.filter(company=actor.company).prefetch_related(
            "items__product", "payments__payment_method",
        ).order_by("-created_at")
        if request.query_params.get("session"):
            transactions = transactions.filter(session_id=request.query_params["session"])
        return Response(POSTransactionSerializer(transactions[:200], many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = SaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data["items"] = [dict(i) for i in data["items"]]
        data["payments"] = [dict(p) for p in data["payments"]]

        result = complete_sale(actor, **data)
        if not result.success:
            return _failed(result)
        return Response(POSTransactionSerializer(result.data).data, status=status.HTTP_201_CREATED)


class DepositListCreateView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "pos.sell")
        deposits = POSDeposit.objects.filter(company=actor.company).order_by("-id")
        return Response(POSDepositSerializer(deposits, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = DepositCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = receive_pos_deposit(actor, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(POSDepositSerializer(result.data).data, status=status.HTTP_201_CREATED)
