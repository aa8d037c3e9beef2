# trade/views.py
"""
Thin views over trade.commands.

Orders are addressed as /orders/<order_type>/ with order_type "sales" or
"purchase"; invoices belong to sales orders and bills to purchase orders.
"""

from datetime import date

from django.http import Http404
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from .commands import (
    ORDER_KINDS,
    allocate_payment,
    cancel_bill,
    cancel_invoice,
    cancel_order,
    confirm_order,
    create_purchase_order,
    create_sales_order,
    generate_bill,
    generate_invoice,
    payables_aging,
    receivables_aging,
    record_down_payment,
    record_payment,
)
from .models import Bill, Invoice, Payment
from .serializers import (
    ORDER_SERIALIZERS,
    AllocatePaymentSerializer,
    BillSerializer,
    CancelDocumentSerializer,
    DownPaymentCreateSerializer,
    DownPaymentSerializer,
    GenerateDocumentSerializer,
    InvoiceSerializer,
    OrderCreateSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
)

VIEW_PERMISSIONS = {"sales": "sales.view", "purchase": "purchases.view"}
CREATE_COMMANDS = {"sales": create_sales_order, "purchase": create_purchase_order}


def _failed(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


def _kind(order_type):
    if order_type not in ORDER_KINDS:
        raise Http404(f"Unknown order type '{order_type}'.")
    return ORDER_KINDS[order_type]


def _as_of(request):
    raw = request.query_params.get("as_of")
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError({"as_of": "Use YYYY-MM-DD."})


# =============================================================================
# Orders
# =============================================================================

class OrderListCreateView(APIView):
    """
    GET  /api/trade/orders/<order_type>/?status=
    POST /api/trade/orders/<order_type>/
    """

    def get(self, request, order_type):
        kind = _kind(order_type)
        actor = resolve_actor(request)
        require(actor, VIEW_PERMISSIONS[order_type])

        orders = kind.model.objects.filter(company=actor.company).prefetch_related("lines")
        if request.query_params.get("status"):
            orders = orders.filter(status=request.query_params["status"])
        return Response(ORDER_SERIALIZERS[order_type](orders, many=True).data)

    def post(self, request, order_type):
        _kind(order_type)
        actor = resolve_actor(request)
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = CREATE_COMMANDS[order_type](
            actor,
            party_name=data["party_name"],
            order_date=data["order_date"],
            lines=[dict(line) for line in data["lines"]],
            notes=data["notes"],
        )
        if not result.success:
            return _failed(result)
        return Response(ORDER_SERIALIZERS[order_type](result.data).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    def get(self, request, order_type, pk):
        kind = _kind(order_type)
        actor = resolve_actor(request)
        require(actor, VIEW_PERMISSIONS[order_type])
        order = get_object_or_404(kind.model, company=actor.company, pk=pk)
        return Response(ORDER_SERIALIZERS[order_type](order).data)


class OrderConfirmView(APIView):
    def post(self, request, order_type, pk):
        _kind(order_type)
        actor = resolve_actor(request)
        result = confirm_order(actor, order_type, pk)
        if not result.success:
            return _failed(result)
        return Response(ORDER_SERIALIZERS[order_type](result.data).data)


class OrderCancelView(APIView):
    def post(self, request, order_type, pk):
        _kind(order_type)
        actor = resolve_actor(request)
        result = cancel_order(actor, order_type, pk)
        if not result.success:
            return _failed(result)
        return Response(ORDER_SERIALIZERS[order_type](result.data).data)


class OrderDownPaymentView(APIView):
    """POST /api/trade/orders/<order_type>/<pk>/down-payments/"""

    def post(self, request, order_type, pk):
        _kind(order_type)
        actor = resolve_actor(request)
        serializer = DownPaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = record_down_payment(actor, order_type, pk, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(DownPaymentSerializer(result.data).data, status=status.HTTP_201_CREATED)


# =============================================================================
# Invoices & bills
# =============================================================================

class GenerateInvoiceView(APIView):
    """POST /api/trade/orders/sales/<pk>/invoice/"""

    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = GenerateDocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = generate_invoice(
            actor, pk,
            invoice_date=serializer.validated_data["date"],
            due_days=serializer.validated_data["due_days"],
        )
        if not result.success:
            return _failed(result)
        return Response(InvoiceSerializer(result.data).data, status=status.HTTP_201_CREATED)


class GenerateBillView(APIView):
    """POST /api/trade/orders/purchase/<pk>/bill/"""

    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = GenerateDocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = generate_bill(
            actor, pk,
            bill_date=serializer.validated_data["date"],
            due_days=serializer.validated_data["due_days"],
        )
        if not result.success:
            return _failed(result)
        return Response(BillSerializer(result.data).data, status=status.HTTP_201_CREATED)


class InvoiceListView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        invoices = Invoice.objects.filter(company=actor.company).select_related("sales_order")
        if request.query_params.get("status"):
            invoices = invoices.filter(status=request.query_params["status"])
        return Response(InvoiceSerializer(invoices, many=True).data)


class InvoiceCancelView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = CancelDocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cancel_invoice(actor, pk, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(InvoiceSerializer(result.data).data)


class BillListView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        bills = Bill.objects.filter(company=actor.company).select_related("purchase_order")
        if request.query_params.get("status"):
            bills = bills.filter(status=request.query_params["status"])
        return Response(BillSerializer(bills, many=True).data)


class BillCancelView(APIView):
    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = CancelDocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cancel_bill(actor, pk, **serializer.validated_data)
        if not result.success:
            return _failed(result)
        return Response(BillSerializer(result.data).data)


# =============================================================================
# Payments
# =============================================================================

class PaymentListCreateView(APIView):
    """
    GET  /api/trade/payments/?payment_type=
    POST /api/trade/payments/ -> record and allocate a receipt or payment
    """

    def get(self, request):
        actor = resolve_actor(request)
        payment_type = request.query_params.get("payment_type")
        require(actor, "purchases.view" if payment_type == Payment.PaymentType.OUTGOING else "sales.view")

        payments = Payment.objects.filter(company=actor.company).prefetch_related(
            "allocations__invoice", "allocations__bill",
        )
        if payment_type:
            payments = payments.filter(payment_type=payment_type)
        return Response(PaymentSerializer(payments, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data["allocations"] = [dict(a) for a in data["allocations"]]

        result = record_payment(actor, **data)
        if not result.success:
            return _failed(result)
        return Response(PaymentSerializer(result.data).data, status=status.HTTP_201_CREATED)


class PaymentAllocateView(APIView):
    """POST /api/trade/payments/<pk>/allocate/ -> apply the unallocated remainder"""

    def post(self, request, pk):
        actor = resolve_actor(request)
        serializer = AllocatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = allocate_payment(
            actor, pk,
            allocations=[dict(a) for a in serializer.validated_data["allocations"]],
            on_date=serializer.validated_data["on_date"],
        )
        if not result.success:
            return _failed(result)
        return Response(PaymentSerializer(result.data).data)


# =============================================================================
# Aging
# =============================================================================

class ReceivablesAgingView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")
        return Response(receivables_aging(actor.company, _as_of(request)).to_dict())


class PayablesAgingView(APIView):
    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")
        return Response(payables_aging(actor.company, _as_of(request)).to_dict())
