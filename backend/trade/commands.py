# trade/commands.py
"""
Command layer for sales and purchase documents.

Orders -> down payments -> invoices/bills -> payments. Every command that
touches the ledger resolves its posting roles first, so an incomplete
account setup fails before anything is written; the journal entry is then
posted through accounting.ledger in the same transaction as the document.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting import ledger, registry
from accounting.commands import (
    CommandResult,
    _idempotency_hash,
    _process_projections,
    _to_decimal,
    fail_and_rollback,
)
from accounting.exceptions import LedgerError, ResolutionGap
from accounting.models import Account
from accounting.numbering import DOCUMENT_PREFIXES, next_document_number
from accounting.posting_rules import (
    DocumentTotals,
    allocation_reclass_lines,
    document_totals,
    line_amounts,
    payment_lines,
    payment_roles,
    purchase_bill_lines,
    purchase_bill_roles,
    purchase_down_payment_lines,
    q2,
    revenue_account_for,
    sales_down_payment_lines,
    sales_invoice_lines,
    sales_invoice_roles,
)
from events.emitter import emit_event
from events.types import (
    DownPaymentReceivedData,
    EventTypes,
    InvoiceCancelledData,
    InvoiceGeneratedData,
    InvoiceOverdueData,
    OrderCreatedData,
    OrderStatusChangedData,
    PaymentAllocatedData,
    PaymentRecordedData,
)
from inventory.models import Product
from projections.write_barrier import command_writes_allowed
from trade import fsm
from trade.aging import AgingReport, compute_aging
from trade.models import (
    Bill,
    DownPayment,
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentAllocation,
    PurchaseOrder,
    PurchaseOrderLine,
    SalesOrder,
    SalesOrderLine,
)
from trade.outstanding import AllocationError, allocatable_statuses, apply_allocation


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class _OrderKind:
    name: str
    model: type
    line_model: type
    prefix: str
    aggregate_type: str
    permission: str
    created: str
    confirmed: str
    cancelled: str


ORDER_KINDS = {
    "sales": _OrderKind(
        name="sales",
        model=SalesOrder,
        line_model=SalesOrderLine,
        prefix=DOCUMENT_PREFIXES["sales_order"],
        aggregate_type="SalesOrder",
        permission="sales.manage",
        created=EventTypes.SALES_ORDER_CREATED,
        confirmed=EventTypes.SALES_ORDER_CONFIRMED,
        cancelled=EventTypes.SALES_ORDER_CANCELLED,
    ),
    "purchase": _OrderKind(
        name="purchase",
        model=PurchaseOrder,
        line_model=PurchaseOrderLine,
        prefix=DOCUMENT_PREFIXES["purchase_order"],
        aggregate_type="PurchaseOrder",
        permission="purchases.manage",
        created=EventTypes.PURCHASE_ORDER_CREATED,
        confirmed=EventTypes.PURCHASE_ORDER_CONFIRMED,
        cancelled=EventTypes.PURCHASE_ORDER_CANCELLED,
    ),
}


def _order_kind(order_type: str) -> _OrderKind:
    try:
        return ORDER_KINDS[order_type]
    except KeyError:
        raise ValueError(f"Unknown order type '{order_type}'.")


def _lock_order(actor, kind: _OrderKind, order_id):
    return kind.model.objects.select_for_update().filter(company=actor.company, pk=order_id).first()


# =============================================================================
# Orders
# =============================================================================

def _parse_lines(actor, kind: _OrderKind, lines: list):
    """
    Normalize raw line dicts.

    Returns (parsed, error). Prices default from the product: unit_price
    for sales, cost_price for purchases.
    """
    if not lines:
        return None, "An order needs at least one line."

    product_ids = [line.get("product_id") for line in lines if line.get("product_id")]
    products = {p.pk: p for p in Product.objects.filter(company=actor.company, pk__in=product_ids)}

    parsed = []
    for idx, line in enumerate(lines, start=1):
        product = None
        if line.get("product_id"):
            product = products.get(line["product_id"])
            if product is None:
                return None, f"Line {idx}: product not found."

        price = line.get("unit_price")
        if price in (None, "") and product is not None:
            price = product.unit_price if kind.name == "sales" else product.cost_price

        try:
            quantity = _to_decimal(line.get("quantity"), "quantity")
            unit_price = _to_decimal(price, "unit_price")
            discount_percent = _to_decimal(line.get("discount_percent"), "discount_percent")
            tax_percent = _to_decimal(line.get("tax_percent"), "tax_percent")
        except LedgerError as exc:
            return None, f"Line {idx}: {exc}"

        if quantity <= 0:
            return None, f"Line {idx}: quantity must be greater than zero."
        if unit_price < 0:
            return None, f"Line {idx}: unit price cannot be negative."
        if not (0 <= discount_percent <= HUNDRED):
            return None, f"Line {idx}: discount must be between 0 and 100 percent."
        if tax_percent < 0:
            return None, f"Line {idx}: tax cannot be negative."

        parsed.append({
            "line_no": idx,
            "product": product,
            "description": line.get("description") or (product.name if product else ""),
            "quantity": quantity,
            "unit_price": unit_price,
            "discount_percent": discount_percent,
            "tax_percent": tax_percent,
            "amounts": line_amounts(quantity, unit_price, discount_percent, tax_percent),
        })
    return parsed, None


@transaction.atomic
def _create_order(actor: ActorContext, kind: _OrderKind, party_name: str, order_date: date, lines: list, notes: str = "") -> CommandResult:
    require(actor, kind.permission)

    if not party_name:
        return CommandResult.fail("Party name is required.")

    parsed, error = _parse_lines(actor, kind, lines)
    if error:
        return CommandResult.fail(error)

    totals = document_totals(line["amounts"] for line in parsed)

    with command_writes_allowed():
        order = kind.model.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, kind.prefix, order_date),
            party_name=party_name,
            order_date=order_date,
            notes=notes,
            subtotal=totals.gross,
            discount_amount=totals.discount,
            tax_amount=totals.tax,
            total_amount=totals.total,
            created_by=actor.user,
        )
        for line in parsed:
            amounts = line["amounts"]
            kind.line_model.objects.create(
                order=order,
                line_no=line["line_no"],
                product=line["product"],
                description=line["description"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                discount_percent=line["discount_percent"],
                tax_percent=line["tax_percent"],
                subtotal=q2(amounts.subtotal),
                discount_amount=q2(amounts.discount),
                tax_amount=q2(amounts.tax),
                total=q2(amounts.total),
            )

    event = emit_event(
        actor=actor,
        event_type=kind.created,
        aggregate_type=kind.aggregate_type,
        aggregate_id=str(order.public_id),
        idempotency_key=f"{kind.name}_order.created:{order.public_id}",
        data=OrderCreatedData(
            order_public_id=str(order.public_id),
            order_number=order.number,
            party_name=party_name,
            order_date=order_date.isoformat(),
            subtotal=str(order.subtotal),
            discount_amount=str(order.discount_amount),
            tax_amount=str(order.tax_amount),
            total_amount=str(order.total_amount),
            lines=[
                {
                    "line_no": line["line_no"],
                    "product_public_id": str(line["product"].public_id) if line["product"] else None,
                    "description": line["description"],
                    "quantity": str(line["quantity"]),
                    "unit_price": str(line["unit_price"]),
                    "discount_percent": str(line["discount_percent"]),
                    "tax_percent": str(line["tax_percent"]),
                }
                for line in parsed
            ],
        ),
    )
    return CommandResult.ok(order, event=event)


def create_sales_order(actor: ActorContext, party_name: str, order_date: date, lines: list, notes: str = "") -> CommandResult:
    """
    Create a draft sales order.

    lines: [{"product_id": int?, "description": str, "quantity": "2",
             "unit_price": "15000", "discount_percent": "0", "tax_percent": "11"}]
    """
    return _create_order(actor, ORDER_KINDS["sales"], party_name, order_date, lines, notes)


def create_purchase_order(actor: ActorContext, party_name: str, order_date: date, lines: list, notes: str = "") -> CommandResult:
    return _create_order(actor, ORDER_KINDS["purchase"], party_name, order_date, lines, notes)


def _change_order_status(actor, kind: _OrderKind, order, event_name: str, event_type: str):
    nxt = fsm.transition(order.status, event_name)
    if not nxt:
        return None, nxt.reason

    previous = str(order.status)
    with command_writes_allowed():
        order.status = nxt
        order.save(update_fields=["status", "updated_at"])

    event = emit_event(
        actor=actor,
        event_type=event_type,
        aggregate_type=kind.aggregate_type,
        aggregate_id=str(order.public_id),
        idempotency_key=f"{event_type}:{order.public_id}",
        data=OrderStatusChangedData(
            order_public_id=str(order.public_id),
            order_number=order.number,
            from_status=previous,
            to_status=nxt,
        ),
    )
    return event, None


@transaction.atomic
def confirm_order(actor: ActorContext, order_type: str, order_id: int) -> CommandResult:
    kind = _order_kind(order_type)
    require(actor, kind.permission)

    order = _lock_order(actor, kind, order_id)
    if order is None:
        return CommandResult.fail("Order not found.")

    event, error = _change_order_status(actor, kind, order, fsm.CONFIRM, kind.confirmed)
    if error:
        return CommandResult.fail(error)
    return CommandResult.ok(order, event=event)


@transaction.atomic
def cancel_order(actor: ActorContext, order_type: str, order_id: int) -> CommandResult:
    """Cancel a draft or confirmed order. Orders holding a down payment stay."""
    kind = _order_kind(order_type)
    require(actor, kind.permission)

    order = _lock_order(actor, kind, order_id)
    if order is None:
        return CommandResult.fail("Order not found.")
    if order.dp_paid > 0:
        return CommandResult.fail(
            f"Order {order.number} holds a down payment of {order.dp_paid} and cannot be cancelled."
        )

    event, error = _change_order_status(actor, kind, order, fsm.CANCEL, kind.cancelled)
    if error:
        return CommandResult.fail(error)
    return CommandResult.ok(order, event=event)


# =============================================================================
# Down payments
# =============================================================================

@transaction.atomic
def record_down_payment(
    actor: ActorContext,
    order_type: str,
    order_id: int,
    amount,
    cash_account_id: int = None,
    on_date: date = None,
    notes: str = "",
) -> CommandResult:
    """
    Record a down payment against an open order and post it.

    sales:    Dr cash / Cr customer deposit
    purchase: Dr supplier advance / Cr cash

    The order's dp_paid never exceeds its total.
    """
    kind = _order_kind(order_type)
    require(actor, kind.permission)
    require(actor, "payments.record")

    try:
        amount = q2(_to_decimal(amount, "amount"))
    except LedgerError as exc:
        return CommandResult.fail(str(exc))

    order = _lock_order(actor, kind, order_id)
    if order is None:
        return CommandResult.fail("Order not found.")
    if str(order.status) not in (fsm.DRAFT, fsm.CONFIRMED):
        return CommandResult.fail(f"Cannot take a down payment on an order in status {order.status}.")
    if amount <= 0:
        return CommandResult.fail("Down payment must be greater than zero.")
    if amount > order.dp_remaining_capacity:
        return CommandResult.fail(
            f"Down payment {amount} exceeds remaining order amount {order.dp_remaining_capacity}."
        )

    explicit_cash = None
    if cash_account_id:
        explicit_cash = Account.objects.filter(company=actor.company, pk=cash_account_id).first()
        if explicit_cash is None:
            return CommandResult.fail("Cash account not found.")

    counter_role = "customer_deposit" if kind.name == "sales" else "supplier_advance"
    try:
        accounts = registry.resolve_roles(actor.company, ["cash", counter_role], explicit={"cash": explicit_cash})
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))

    on_date = on_date or timezone.localdate()
    with command_writes_allowed():
        down_payment = DownPayment.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["down_payment"], on_date),
            payment_type=kind.name,
            sales_order=order if kind.name == "sales" else None,
            purchase_order=order if kind.name == "purchase" else None,
            amount=amount,
            cash_account=accounts["cash"],
            date=on_date,
            notes=notes,
            created_by=actor.user,
        )
        order.dp_paid = order.dp_paid + amount
        order.save(update_fields=["dp_paid", "updated_at"])

    if kind.name == "sales":
        lines = sales_down_payment_lines(amount, cash=accounts["cash"], customer_deposit=accounts["customer_deposit"])
    else:
        lines = purchase_down_payment_lines(amount, cash=accounts["cash"], supplier_advance=accounts["supplier_advance"])

    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=on_date,
            description=f"Down payment {down_payment.number} for {order.number}",
            lines=lines,
            reference_type="down_payment",
            reference_id=str(down_payment.public_id),
            idempotency_key=f"down_payment.posted:{down_payment.public_id}",
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    with command_writes_allowed():
        down_payment.journal_entry_id = ledger.posted_entry_id(posted)
        down_payment.save(update_fields=["journal_entry_id"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.DOWN_PAYMENT_RECEIVED,
        aggregate_type="DownPayment",
        aggregate_id=str(down_payment.public_id),
        idempotency_key=f"down_payment.received:{down_payment.public_id}",
        data=DownPaymentReceivedData(
            down_payment_public_id=str(down_payment.public_id),
            number=down_payment.number,
            payment_type=kind.name,
            order_public_id=str(order.public_id),
            amount=str(amount),
            cash_account_public_id=str(accounts["cash"].public_id),
            date=on_date.isoformat(),
            journal_entry_public_id=ledger.posted_entry_id(posted),
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(down_payment, event=event)


# =============================================================================
# Invoices and bills
# =============================================================================

def _order_totals(order) -> DocumentTotals:
    return DocumentTotals(gross=order.subtotal, discount=order.discount_amount, tax=order.tax_amount)


def _due_date(on_date: date, due_days) -> date:
    if due_days is None:
        due_days = getattr(settings, "INVOICE_DUE_DAYS", 30)
    return on_date + timedelta(days=int(due_days))


def _emit_generated(actor, event_type, aggregate_type, doc, order, key_suffix):
    return emit_event(
        actor=actor,
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=str(doc.public_id),
        idempotency_key=f"{event_type}:{order.public_id}:{key_suffix}",
        data=InvoiceGeneratedData(
            document_public_id=str(doc.public_id),
            number=doc.number,
            order_public_id=str(order.public_id),
            party_name=doc.party_name,
            date=doc.date.isoformat(),
            due_date=doc.due_date.isoformat(),
            subtotal=str(doc.subtotal),
            discount_amount=str(doc.discount_amount),
            tax_amount=str(doc.tax_amount),
            dp_applied=str(doc.dp_applied),
            total_amount=str(doc.total_amount),
            journal_entry_public_id=str(doc.journal_entry_id),
        ),
    )


def _mark_order_invoiced(order, fully_paid: bool):
    nxt = fsm.transition(order.status, fsm.INVOICE)
    if fully_paid and nxt:
        nxt = fsm.transition(nxt, fsm.PAY)
    with command_writes_allowed():
        order.status = nxt
        order.save(update_fields=["status", "updated_at"])


@transaction.atomic
def generate_invoice(
    actor: ActorContext,
    order_id: int,
    invoice_date: date = None,
    due_days: int = None,
) -> CommandResult:
    """
    Invoice a confirmed sales order and post it.

    The invoice total is the order total less the down payments already
    received. Calling this again for an order that already has a live
    invoice returns that invoice.
    """
    require(actor, "sales.manage")

    order = SalesOrder.objects.select_for_update().filter(company=actor.company, pk=order_id).first()
    if order is None:
        return CommandResult.fail("Sales order not found.")

    existing = order.invoices.exclude(status=InvoiceStatus.CANCELLED).first()
    if existing is not None:
        return CommandResult.ok(existing)

    nxt = fsm.transition(order.status, fsm.INVOICE)
    if not nxt:
        return CommandResult.fail(nxt.reason)

    doc = _order_totals(order)
    dp_applied = q2(order.dp_paid)
    invoice_total = doc.total - dp_applied

    order_lines = list(order.lines.select_related("product__revenue_account"))
    needs_default_revenue = any(
        line.product is None or line.product.revenue_account is None for line in order_lines
    )
    roles = [
        role for role in sales_invoice_roles(doc, dp_applied)
        if role != "revenue" or needs_default_revenue
    ]
    try:
        accounts = registry.resolve_roles(actor.company, roles)
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))

    revenue_parts = [
        (
            revenue_account_for(line.product, accounts.get("revenue")),
            line_amounts(line.quantity, line.unit_price).subtotal,
        )
        for line in order_lines
    ]

    invoice_date = invoice_date or timezone.localdate()
    cancelled_before = order.invoices.filter(status=InvoiceStatus.CANCELLED).count()
    fully_paid = invoice_total <= 0

    with command_writes_allowed():
        invoice = Invoice.objects.create(
            company=actor.company,
            sales_order=order,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["invoice"], invoice_date),
            party_name=order.party_name,
            date=invoice_date,
            due_date=_due_date(invoice_date, due_days),
            status=InvoiceStatus.PAID if fully_paid else InvoiceStatus.SENT,
            subtotal=doc.gross,
            discount_amount=doc.discount,
            tax_amount=doc.tax,
            dp_applied=dp_applied,
            total_amount=invoice_total,
            paid_amount=ZERO,
            outstanding_amount=invoice_total,
            created_by=actor.user,
        )
    _mark_order_invoiced(order, fully_paid)

    lines = sales_invoice_lines(
        doc,
        dp_applied,
        receivable=accounts.get("receivable"),
        revenue_parts=revenue_parts,
        customer_deposit=accounts.get("customer_deposit"),
        discount=accounts.get("discount"),
        tax=accounts.get("tax"),
    )
    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=invoice_date,
            description=f"Invoice {invoice.number} for {order.number}",
            lines=lines,
            reference_type="invoice",
            reference_id=str(invoice.public_id),
            idempotency_key=f"invoice.posted:{invoice.public_id}",
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    with command_writes_allowed():
        invoice.journal_entry_id = ledger.posted_entry_id(posted)
        invoice.save(update_fields=["journal_entry_id", "updated_at"])

    event = _emit_generated(actor, EventTypes.INVOICE_GENERATED, "Invoice", invoice, order, cancelled_before)

    _process_projections(actor.company)
    logger.info(
        "Generated invoice %s",
        invoice.number,
        extra={"company": actor.company.slug, "order": order.number, "total": str(invoice_total)},
    )
    return CommandResult.ok(invoice, event=event)


@transaction.atomic
def generate_bill(
    actor: ActorContext,
    order_id: int,
    bill_date: date = None,
    due_days: int = None,
) -> CommandResult:
    """Bill a confirmed purchase order: Dr inventory / Cr payable (+ supplier advance)."""
    require(actor, "purchases.manage")

    order = PurchaseOrder.objects.select_for_update().filter(company=actor.company, pk=order_id).first()
    if order is None:
        return CommandResult.fail("Purchase order not found.")

    existing = order.bills.exclude(status=InvoiceStatus.CANCELLED).first()
    if existing is not None:
        return CommandResult.ok(existing)

    nxt = fsm.transition(order.status, fsm.INVOICE)
    if not nxt:
        return CommandResult.fail(nxt.reason)

    doc = _order_totals(order)
    order_total = q2(order.total_amount)
    dp_applied = q2(order.dp_paid)
    bill_total = order_total - dp_applied

    try:
        accounts = registry.resolve_roles(actor.company, purchase_bill_roles(order_total, dp_applied))
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))

    bill_date = bill_date or timezone.localdate()
    cancelled_before = order.bills.filter(status=InvoiceStatus.CANCELLED).count()
    fully_paid = bill_total <= 0

    with command_writes_allowed():
        bill = Bill.objects.create(
            company=actor.company,
            purchase_order=order,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["bill"], bill_date),
            party_name=order.party_name,
            date=bill_date,
            due_date=_due_date(bill_date, due_days),
            status=InvoiceStatus.PAID if fully_paid else InvoiceStatus.SENT,
            subtotal=doc.gross,
            discount_amount=doc.discount,
            tax_amount=doc.tax,
            dp_applied=dp_applied,
            total_amount=bill_total,
            paid_amount=ZERO,
            outstanding_amount=bill_total,
            created_by=actor.user,
        )
    _mark_order_invoiced(order, fully_paid)

    lines = purchase_bill_lines(
        order_total,
        dp_applied,
        inventory=accounts["inventory"],
        payable=accounts.get("payable"),
        supplier_advance=accounts.get("supplier_advance"),
    )
    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=bill_date,
            description=f"Bill {bill.number} for {order.number}",
            lines=lines,
            reference_type="bill",
            reference_id=str(bill.public_id),
            idempotency_key=f"bill.posted:{bill.public_id}",
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    with command_writes_allowed():
        bill.journal_entry_id = ledger.posted_entry_id(posted)
        bill.save(update_fields=["journal_entry_id", "updated_at"])

    event = _emit_generated(actor, EventTypes.BILL_GENERATED, "Bill", bill, order, cancelled_before)

    _process_projections(actor.company)
    return CommandResult.ok(bill, event=event)


def _cancel_document(actor, model, document_id, event_type, aggregate_type, reason):
    doc = model.objects.select_for_update().filter(company=actor.company, pk=document_id).first()
    if doc is None:
        return CommandResult.fail(f"{aggregate_type} not found.")
    if doc.status == InvoiceStatus.CANCELLED:
        return CommandResult.fail(f"{aggregate_type} {doc.number} is already cancelled.")
    if doc.paid_amount > 0 or doc.allocations.exists():
        return CommandResult.fail(
            f"{aggregate_type} {doc.number} has payments allocated and cannot be cancelled."
        )

    order = type(doc.order).objects.select_for_update().get(pk=doc.order.pk)
    nxt = fsm.transition(order.status, fsm.UNINVOICE)
    if not nxt:
        return CommandResult.fail(nxt.reason)

    reversal_id = None
    if doc.journal_entry_id:
        try:
            posted, _ = ledger.reverse(actor, str(doc.journal_entry_id), reason=reason or f"Cancel {doc.number}")
        except LedgerError as exc:
            return fail_and_rollback(str(exc))
        reversal_id = ledger.posted_entry_id(posted)

    with command_writes_allowed():
        doc.status = InvoiceStatus.CANCELLED
        doc.save(update_fields=["status", "updated_at"])
        order.status = nxt
        order.save(update_fields=["status", "updated_at"])

    event = emit_event(
        actor=actor,
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=str(doc.public_id),
        idempotency_key=f"{event_type}:{doc.public_id}",
        data=InvoiceCancelledData(
            document_public_id=str(doc.public_id),
            number=doc.number,
            reversal_entry_public_id=reversal_id,
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(doc, event=event)


@transaction.atomic
def cancel_invoice(actor: ActorContext, invoice_id: int, reason: str = "") -> CommandResult:
    """
    Cancel an unpaid invoice: its journal entry is reversed and the sales
    order returns to confirmed so it can be invoiced again.
    """
    require(actor, "sales.manage")
    require(actor, "journal.reverse")
    return _cancel_document(actor, Invoice, invoice_id, EventTypes.INVOICE_CANCELLED, "Invoice", reason)


@transaction.atomic
def cancel_bill(actor: ActorContext, bill_id: int, reason: str = "") -> CommandResult:
    require(actor, "purchases.manage")
    require(actor, "journal.reverse")
    return _cancel_document(actor, Bill, bill_id, EventTypes.BILL_CANCELLED, "Bill", reason)


# =============================================================================
# Payments
# =============================================================================

def _document_model(payment_type: str):
    return Invoice if payment_type == Payment.PaymentType.INCOMING else Bill


def _plan_allocations(actor, payment_type: str, allocations: list, available: Decimal):
    """
    Lock the target documents and compute their new outstanding state.

    Returns (plan, error); plan is [(document, amount, OutstandingState)].
    Nothing is written here.
    """
    model = _document_model(payment_type)
    label = model.__name__.lower()

    parsed = []
    for idx, alloc in enumerate(allocations or [], start=1):
        try:
            amount = q2(_to_decimal(alloc.get("amount"), "amount"))
        except LedgerError as exc:
            return None, f"Allocation {idx}: {exc}"
        parsed.append((alloc.get("document_id"), amount))

    total = sum((amount for _, amount in parsed), ZERO)
    if total > available:
        return None, f"Allocations total {total} exceeds the available payment amount {available}."

    ids = [doc_id for doc_id, _ in parsed]
    docs = {
        d.pk: d
        for d in model.objects.select_for_update().filter(company=actor.company, pk__in=ids).order_by("pk")
    }

    plan = []
    running = {}
    for idx, (doc_id, amount) in enumerate(parsed, start=1):
        doc = docs.get(doc_id)
        if doc is None:
            return None, f"Allocation {idx}: {label} not found."
        state = running.get(doc.pk)
        status = state.status if state else doc.status
        if state is None and str(status) not in allocatable_statuses():
            return None, f"Allocation {idx}: {label} {doc.number} is {doc.status} and cannot take payments."
        try:
            new_state = apply_allocation(
                doc.total_amount,
                state.paid if state else doc.paid_amount,
                state.outstanding if state else doc.outstanding_amount,
                status,
                amount,
            )
        except AllocationError as exc:
            return None, f"Allocation {idx} ({doc.number}): {exc}"
        running[doc.pk] = new_state
        plan.append((doc, amount, new_state))
    return plan, None


def _apply_plan(payment, plan):
    """Persist allocations and document states; settle orders that became paid."""
    for doc, amount, _ in plan:
        PaymentAllocation.objects.create(
            payment=payment,
            invoice=doc if isinstance(doc, Invoice) else None,
            bill=doc if isinstance(doc, Bill) else None,
            amount=amount,
        )

    final = {}
    for doc, _, state in plan:
        final[doc.pk] = (doc, state)

    for doc, state in final.values():
        doc.paid_amount = state.paid
        doc.outstanding_amount = state.outstanding
        doc.status = state.status
        doc.save(update_fields=["paid_amount", "outstanding_amount", "status", "updated_at"])
        if state.status == InvoiceStatus.PAID.value:
            order = type(doc.order).objects.select_for_update().get(pk=doc.order.pk)
            nxt = fsm.transition(order.status, fsm.PAY)
            if nxt:
                order.status = nxt
                order.save(update_fields=["status", "updated_at"])


def _allocation_payload(plan):
    return [
        {
            "document_public_id": str(doc.public_id),
            "number": doc.number,
            "amount": str(amount),
            "outstanding": str(state.outstanding),
            "status": state.status,
        }
        for doc, amount, state in plan
    ]


@transaction.atomic
def record_payment(
    actor: ActorContext,
    payment_type: str,
    party_name: str,
    amount,
    allocations: list = None,
    cash_account_id: int = None,
    on_date: date = None,
    notes: str = "",
) -> CommandResult:
    """
    Record a customer receipt (incoming) or supplier payment (outgoing),
    allocate it to invoices/bills and post it in one write-set.

    allocations: [{"document_id": <invoice or bill pk>, "amount": "150000"}]

    The unallocated remainder is held as a customer deposit or supplier
    advance until allocate_payment() applies it.
    """
    require(actor, "payments.record")

    if payment_type not in Payment.PaymentType.values:
        return CommandResult.fail(f"Unknown payment type '{payment_type}'.")
    try:
        amount = q2(_to_decimal(amount, "amount"))
    except LedgerError as exc:
        return CommandResult.fail(str(exc))
    if amount <= 0:
        return CommandResult.fail("Payment amount must be greater than zero.")

    plan, error = _plan_allocations(actor, payment_type, allocations, amount)
    if error:
        return CommandResult.fail(error)
    allocated = sum((a for _, a, _ in plan), ZERO)

    explicit_cash = None
    if cash_account_id:
        explicit_cash = Account.objects.filter(company=actor.company, pk=cash_account_id).first()
        if explicit_cash is None:
            return CommandResult.fail("Cash account not found.")

    try:
        accounts = registry.resolve_roles(
            actor.company,
            ["cash"] + payment_roles(payment_type, amount, allocated),
            explicit={"cash": explicit_cash},
        )
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))

    on_date = on_date or timezone.localdate()
    prefix = DOCUMENT_PREFIXES[f"payment_{payment_type}"]
    with command_writes_allowed():
        payment = Payment.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, prefix, on_date),
            payment_type=payment_type,
            party_name=party_name,
            date=on_date,
            amount=amount,
            allocated_amount=allocated,
            cash_account=accounts["cash"],
            notes=notes,
            created_by=actor.user,
        )
        _apply_plan(payment, plan)

    lines = payment_lines(
        payment_type,
        amount,
        allocated,
        cash=accounts["cash"],
        receivable=accounts.get("receivable"),
        payable=accounts.get("payable"),
        customer_deposit=accounts.get("customer_deposit"),
        supplier_advance=accounts.get("supplier_advance"),
    )
    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=on_date,
            description=f"Payment {payment.number} {party_name}".strip(),
            lines=lines,
            reference_type="payment",
            reference_id=str(payment.public_id),
            idempotency_key=f"payment.posted:{payment.public_id}",
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    with command_writes_allowed():
        payment.journal_entry_id = ledger.posted_entry_id(posted)
        payment.save(update_fields=["journal_entry_id"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PAYMENT_RECORDED,
        aggregate_type="Payment",
        aggregate_id=str(payment.public_id),
        idempotency_key=f"payment.recorded:{payment.public_id}",
        data=PaymentRecordedData(
            payment_public_id=str(payment.public_id),
            number=payment.number,
            payment_type=payment_type,
            party_name=party_name,
            date=on_date.isoformat(),
            amount=str(amount),
            cash_account_public_id=str(accounts["cash"].public_id),
            allocations=_allocation_payload(plan),
            journal_entry_public_id=ledger.posted_entry_id(posted),
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(payment, event=event)


@transaction.atomic
def allocate_payment(actor: ActorContext, payment_id: int, allocations: list, on_date: date = None) -> CommandResult:
    """
    Apply the unallocated part of an earlier payment to invoices or bills.

    Posts the reclassification from customer deposit to receivable
    (incoming) or from payable to supplier advance (outgoing).
    """
    require(actor, "payments.record")

    payment = Payment.objects.select_for_update().filter(company=actor.company, pk=payment_id).first()
    if payment is None:
        return CommandResult.fail("Payment not found.")
    if not allocations:
        return CommandResult.fail("Nothing to allocate.")

    plan, error = _plan_allocations(actor, payment.payment_type, allocations, payment.unallocated_amount)
    if error:
        return CommandResult.fail(error)
    amount = sum((a for _, a, _ in plan), ZERO)

    if payment.payment_type == Payment.PaymentType.INCOMING:
        roles = ["customer_deposit", "receivable"]
    else:
        roles = ["payable", "supplier_advance"]
    try:
        accounts = registry.resolve_roles(actor.company, roles)
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))

    allocated_before = payment.allocated_amount
    with command_writes_allowed():
        _apply_plan(payment, plan)
        payment.allocated_amount = allocated_before + amount
        payment.save(update_fields=["allocated_amount"])

    on_date = on_date or timezone.localdate()
    key = _idempotency_hash("payment.allocation", {
        "payment": str(payment.public_id),
        "before": str(allocated_before),
        "allocations": _allocation_payload(plan),
    })
    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=on_date,
            description=f"Allocation of {payment.number}",
            lines=allocation_reclass_lines(
                payment.payment_type,
                amount,
                receivable=accounts.get("receivable"),
                payable=accounts.get("payable"),
                customer_deposit=accounts.get("customer_deposit"),
                supplier_advance=accounts.get("supplier_advance"),
            ),
            reference_type="payment",
            reference_id=str(payment.public_id),
            idempotency_key=key,
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PAYMENT_ALLOCATED,
        aggregate_type="Payment",
        aggregate_id=str(payment.public_id),
        idempotency_key=key.replace("payment.allocation", "payment.allocated", 1),
        data=PaymentAllocatedData(
            payment_public_id=str(payment.public_id),
            number=payment.number,
            allocations=_allocation_payload(plan),
            journal_entry_public_id=ledger.posted_entry_id(posted),
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(payment, event=event)


# =============================================================================
# Overdue & aging
# =============================================================================

@transaction.atomic
def mark_overdue_invoices(actor: ActorContext, as_of: date = None) -> CommandResult:
    """Flip sent/partial invoices past their due date to overdue. Returns the count."""
    require(actor, "sales.manage")

    as_of = as_of or timezone.localdate()
    invoices = list(
        Invoice.objects.select_for_update()
        .filter(
            company=actor.company,
            status__in=[InvoiceStatus.SENT, InvoiceStatus.PARTIAL],
            due_date__lt=as_of,
            outstanding_amount__gt=0,
        )
        .order_by("pk")
    )

    for invoice in invoices:
        with command_writes_allowed():
            invoice.status = InvoiceStatus.OVERDUE
            invoice.save(update_fields=["status", "updated_at"])
        emit_event(
            actor=actor,
            event_type=EventTypes.INVOICE_OVERDUE,
            aggregate_type="Invoice",
            aggregate_id=str(invoice.public_id),
            idempotency_key=f"invoice.overdue:{invoice.public_id}",
            data=InvoiceOverdueData(
                invoice_public_id=str(invoice.public_id),
                number=invoice.number,
                due_date=invoice.due_date.isoformat(),
                as_of=as_of.isoformat(),
            ),
        )

    if invoices:
        logger.info(
            "Marked %d invoices overdue",
            len(invoices),
            extra={"company": actor.company.slug, "as_of": as_of.isoformat()},
        )
    return CommandResult.ok(len(invoices))


def _open_documents(model, company):
    return (
        model.objects
        .filter(company=company, outstanding_amount__gt=0)
        .exclude(status__in=[InvoiceStatus.CANCELLED, InvoiceStatus.DRAFT])
    )


def receivables_aging(company, as_of: date = None) -> AgingReport:
    return compute_aging(_open_documents(Invoice, company), as_of or timezone.localdate())


def payables_aging(company, as_of: date = None) -> AgingReport:
    return compute_aging(_open_documents(Bill, company), as_of or timezone.localdate())
