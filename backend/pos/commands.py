# pos/commands.py
"""
Command layer for the point of sale.

complete_sale() is the till's single write-set: the transaction, its items
and payments, stock issues and the journal entry commit together or not
at all. It is idempotent on the till's client_reference.
"""

import logging
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting import ledger, registry
from accounting.commands import (
    CommandResult,
    _process_projections,
    _to_decimal,
    fail_and_rollback,
)
from accounting.exceptions import LedgerError, ResolutionGap
from accounting.models import Account
from accounting.numbering import DOCUMENT_PREFIXES, next_document_number
from accounting.posting_rules import pos_sale_lines, q2, sales_down_payment_lines
from events.emitter import emit_event
from events.types import (
    CashSessionClosedData,
    CashSessionOpenedData,
    EventTypes,
    PaymentMethodCreatedData,
    POSDepositReceivedData,
    POSSaleCompletedData,
)
from inventory.commands import InsufficientStock, record_movement
from inventory.models import Product, StockMovement, Warehouse
from pos import sessions
from pos.engine import PaymentShortfall, apportion_payments, compute_cart, compute_line, settle
from pos.models import (
    CashSession,
    PaymentMethod,
    POSDeposit,
    POSTransaction,
    POSTransactionItem,
    POSTransactionPayment,
    looks_like_cash,
)
from projections.write_barrier import command_writes_allowed


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


# =============================================================================
# Payment methods
# =============================================================================

@transaction.atomic
def create_payment_method(actor: ActorContext, name: str, account_id: int, is_cash: bool = None) -> CommandResult:
    """
    Register a tender type. is_cash defaults from the name (cash/tunai)
    and decides whether the method counts toward the drawer at close.
    """
    require(actor, "pos.manage_methods")

    if not name:
        return CommandResult.fail("Payment method name is required.")
    if PaymentMethod.objects.filter(company=actor.company, name=name).exists():
        return CommandResult.fail(f"Payment method '{name}' already exists.")

    account = Account.objects.filter(company=actor.company, pk=account_id).first()
    if account is None:
        return CommandResult.fail("Account not found.")
    if account.account_type != Account.AccountType.CASH_BANK:
        return CommandResult.fail(f"Account {account.code} is not a cash/bank account.")
    if not account.is_postable:
        return CommandResult.fail(f"Account {account.code} cannot receive postings.")

    if is_cash is None:
        is_cash = looks_like_cash(name)

    with command_writes_allowed():
        method = PaymentMethod.objects.create(
            company=actor.company,
            name=name,
            account=account,
            is_cash=is_cash,
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PAYMENT_METHOD_CREATED,
        aggregate_type="PaymentMethod",
        aggregate_id=str(method.public_id),
        idempotency_key=f"pos.payment_method_created:{method.public_id}",
        data=PaymentMethodCreatedData(
            payment_method_public_id=str(method.public_id),
            name=name,
            account_public_id=str(account.public_id),
            is_cash=is_cash,
        ),
    )
    return CommandResult.ok(method, event=event)


# =============================================================================
# Cash sessions
# =============================================================================

def current_session(company):
    return CashSession.objects.filter(company=company, status=CashSession.Status.OPEN).first()


def _drawer_flows(session):
    """(cash tendered, change given) for the completed sales of a session."""
    completed = {"transaction__session": session, "transaction__status": POSTransaction.Status.COMPLETED}
    tendered = POSTransactionPayment.objects.filter(payment_method__is_cash=True, **completed).values_list(
        "tendered", flat=True
    )
    change = POSTransaction.objects.filter(
        session=session,
        status=POSTransaction.Status.COMPLETED,
        change_amount__gt=0,
    ).values_list("change_amount", flat=True)
    return list(tendered), list(change)


@transaction.atomic
def open_cash_session(actor: ActorContext, opening_balance="0", notes: str = "") -> CommandResult:
    """Open the till. A company has at most one open session."""
    require(actor, "pos.manage_sessions")

    try:
        opening_balance = q2(_to_decimal(opening_balance, "opening_balance"))
    except LedgerError as exc:
        return CommandResult.fail(str(exc))
    if opening_balance < 0:
        return CommandResult.fail("Opening balance cannot be negative.")

    existing = current_session(actor.company)
    if existing is not None:
        return CommandResult.fail(f"Cash session {existing.number} is still open.")

    opened_at = timezone.now()
    try:
        with transaction.atomic(), command_writes_allowed():
            session = CashSession.objects.create(
                company=actor.company,
                number=next_document_number(actor.company, DOCUMENT_PREFIXES["cash_session"], opened_at.date()),
                opened_by=actor.user,
                opening_balance=opening_balance,
                notes=notes,
                opened_at=opened_at,
            )
    except IntegrityError:
        return CommandResult.fail("Another cash session was opened at the same time.")

    event = emit_event(
        actor=actor,
        event_type=EventTypes.CASH_SESSION_OPENED,
        aggregate_type="CashSession",
        aggregate_id=str(session.public_id),
        idempotency_key=f"pos.session_opened:{session.public_id}",
        data=CashSessionOpenedData(
            session_public_id=str(session.public_id),
            number=session.number,
            opening_balance=str(opening_balance),
            opened_at=opened_at.isoformat(),
        ),
    )
    return CommandResult.ok(session, event=event)


@transaction.atomic
def close_cash_session(actor: ActorContext, session_id: int, closing_balance, notes: str = "") -> CommandResult:
    """
    Close the till against a physical count.

    expected = opening + cash tendered on completed sales in the session
    - change handed back; difference = counted - expected (negative means
    short).
    """
    require(actor, "pos.manage_sessions")

    session = CashSession.objects.select_for_update().filter(company=actor.company, pk=session_id).first()
    if session is None:
        return CommandResult.fail("Cash session not found.")

    nxt = sessions.transition(session.status, sessions.CLOSE)
    if not nxt:
        return CommandResult.fail(nxt.reason)

    try:
        closing_balance = q2(_to_decimal(closing_balance, "closing_balance"))
    except LedgerError as exc:
        return CommandResult.fail(str(exc))
    if closing_balance < 0:
        return CommandResult.fail("Closing balance cannot be negative.")

    cash_in, change_out = _drawer_flows(session)
    expected, difference = sessions.reconcile(session.opening_balance, cash_in, closing_balance, change_out)
    closed_at = timezone.now()

    with command_writes_allowed():
        session.status = nxt
        session.closing_balance = closing_balance
        session.expected_balance = expected
        session.difference = difference
        session.closed_by = actor.user
        session.closed_at = closed_at
        if notes:
            session.notes = notes
        session.save()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.CASH_SESSION_CLOSED,
        aggregate_type="CashSession",
        aggregate_id=str(session.public_id),
        idempotency_key=f"pos.session_closed:{session.public_id}",
        data=CashSessionClosedData(
            session_public_id=str(session.public_id),
            number=session.number,
            opening_balance=str(session.opening_balance),
            closing_balance=str(closing_balance),
            expected_balance=str(expected),
            difference=str(difference),
            closed_at=closed_at.isoformat(),
            notes=notes,
        ),
    )

    if difference != 0:
        logger.warning(
            "Cash session %s closed with difference %s",
            session.number,
            difference,
            extra={"company": actor.company.slug, "expected": str(expected), "counted": str(closing_balance)},
        )
    return CommandResult.ok(session, event=event)


def session_summary(company, session) -> dict:
    """Totals, per-method breakdown and the cash expected in the drawer so far."""
    transactions = POSTransaction.objects.filter(
        company=company,
        session=session,
        status=POSTransaction.Status.COMPLETED,
    )
    totals = transactions.aggregate(
        count=Count("id"),
        subtotal=Sum("subtotal"),
        discount=Sum("discount_amount"),
        tax=Sum("tax_amount"),
        rounding=Sum("rounding_amount"),
        total=Sum("total_amount"),
    )
    by_method = (
        POSTransactionPayment.objects.filter(transaction__in=transactions)
        .values("payment_method__name", "payment_method__is_cash")
        .annotate(amount=Sum("amount"), count=Count("id"))
        .order_by("payment_method__name")
    )

    def money(value):
        return str(q2(value or ZERO))

    cash_in, change_out = _drawer_flows(session)
    return {
        "session_public_id": str(session.public_id),
        "number": session.number,
        "status": session.status,
        "transaction_count": totals["count"] or 0,
        "subtotal": money(totals["subtotal"]),
        "discount_amount": money(totals["discount"]),
        "tax_amount": money(totals["tax"]),
        "rounding_amount": money(totals["rounding"]),
        "total_amount": money(totals["total"]),
        "change_given": money(sum((Decimal(c) for c in change_out), ZERO)),
        "payments": [
            {
                "method": row["payment_method__name"],
                "is_cash": row["payment_method__is_cash"],
                "amount": money(row["amount"]),
                "count": row["count"],
            }
            for row in by_method
        ],
        "opening_balance": money(session.opening_balance),
        "expected_cash": str(sessions.expected_balance(session.opening_balance, cash_in, change_out)),
    }


# =============================================================================
# Sales
# =============================================================================

def _parse_items(actor, items):
    products = {
        p.pk: p
        for p in Product.objects.filter(
            company=actor.company,
            pk__in=[i.get("product_id") for i in items],
            is_active=True,
        )
    }
    parsed = []
    for idx, item in enumerate(items, start=1):
        product = products.get(item.get("product_id"))
        if product is None:
            return None, f"Item {idx}: product not found."
        price = item.get("unit_price")
        try:
            quantity = _to_decimal(item.get("quantity"), "quantity")
            unit_price = _to_decimal(product.unit_price if price in (None, "") else price, "unit_price")
            discount_percent = _to_decimal(item.get("discount_percent"), "discount_percent")
            tax_percent = _to_decimal(item.get("tax_percent"), "tax_percent")
        except LedgerError as exc:
            return None, f"Item {idx}: {exc}"
        if quantity <= 0:
            return None, f"Item {idx}: quantity must be greater than zero."
        if unit_price < 0 or tax_percent < 0 or not (0 <= discount_percent <= 100):
            return None, f"Item {idx}: invalid price, discount or tax."
        parsed.append((product, compute_line(quantity, unit_price, discount_percent, tax_percent)))
    return parsed, None


def _parse_payments(actor, payments):
    methods = {
        m.pk: m
        for m in PaymentMethod.objects.select_related("account").filter(
            company=actor.company,
            pk__in=[p.get("payment_method_id") for p in payments],
            is_active=True,
        )
    }
    parsed = []
    for idx, payment in enumerate(payments, start=1):
        method = methods.get(payment.get("payment_method_id"))
        if method is None:
            return None, f"Payment {idx}: payment method not found."
        try:
            amount = q2(_to_decimal(payment.get("amount"), "amount"))
        except LedgerError as exc:
            return None, f"Payment {idx}: {exc}"
        if amount <= 0:
            return None, f"Payment {idx}: amount must be greater than zero."
        parsed.append((method, amount))
    return parsed, None


@transaction.atomic
def complete_sale(
    actor: ActorContext,
    items: list,
    payments: list,
    client_reference: str,
    warehouse_id: int = None,
    customer_name: str = "",
    session_id: int = None,
) -> CommandResult:
    """
    Ring up a sale.

    items:    [{"product_id": int, "quantity": "2", "unit_price"?: "15000",
                "discount_percent"?: "0", "tax_percent"?: "0"}]
    payments: [{"payment_method_id": int, "amount": "100000"}]

    The grand total is the cart total rounded down to a whole unit. When
    the tender exceeds it, change is returned and each method's ledger
    debit is scaled to the grand total. With a warehouse, sold quantities
    are issued from it and the sale fails on insufficient stock.
    """
    require(actor, "pos.sell")

    if not client_reference:
        return CommandResult.fail("client_reference is required.")
    existing = POSTransaction.objects.filter(company=actor.company, client_reference=client_reference).first()
    if existing is not None:
        return CommandResult.ok(existing)

    session = None
    if session_id:
        session = CashSession.objects.filter(company=actor.company, pk=session_id).first()
        if session is None or session.status != CashSession.Status.OPEN:
            return CommandResult.fail("Cash session is not open.")
    else:
        session = current_session(actor.company)
    if session is None and getattr(settings, "POS_REQUIRE_OPEN_SESSION", True):
        return CommandResult.fail("No open cash session. Open the till before selling.")

    warehouse = None
    if warehouse_id:
        warehouse = Warehouse.objects.filter(company=actor.company, pk=warehouse_id, is_active=True).first()
        if warehouse is None:
            return CommandResult.fail("Warehouse not found.")

    if not items:
        return CommandResult.fail("A sale needs at least one item.")
    if not payments:
        return CommandResult.fail("A sale needs at least one payment.")

    cart, error = _parse_items(actor, items)
    if error:
        return CommandResult.fail(error)
    tenders, error = _parse_payments(actor, payments)
    if error:
        return CommandResult.fail(error)

    totals = compute_cart([line for _, line in cart])
    if totals.rounded_total <= 0:
        return CommandResult.fail("Sale total must be greater than zero.")
    try:
        settlement = settle(totals, [amount for _, amount in tenders])
    except PaymentShortfall as exc:
        return CommandResult.fail(str(exc))

    grand_total = q2(totals.rounded_total)
    debits = apportion_payments(grand_total, tenders)
    total_cogs = sum((q2(product.cost_price * line.quantity) for product, line in cart), ZERO)

    try:
        revenue = registry.resolve_by_role(actor.company, "revenue")
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))
    cogs = registry.try_resolve(actor.company, "cogs")
    inventory = registry.try_resolve(actor.company, "inventory")
    if total_cogs > 0 and (cogs is None or inventory is None):
        logger.warning(
            "POS sale posted without cost of goods: cogs/inventory role unmapped",
            extra={"company": actor.company.slug, "client_reference": client_reference},
        )

    now = timezone.now()
    with command_writes_allowed():
        txn = POSTransaction.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["pos_transaction"], now.date()),
            client_reference=client_reference,
            session=session,
            warehouse=warehouse,
            customer_name=customer_name,
            subtotal=q2(totals.subtotal),
            discount_amount=q2(totals.discount_amount),
            tax_amount=q2(totals.tax_amount),
            rounding_amount=q2(totals.rounding_amount),
            total_amount=grand_total,
            total_cogs=total_cogs,
            amount_paid=settlement.total_paid,
            change_amount=settlement.change,
            cashier=actor.user,
        )
        for product, line in cart:
            POSTransactionItem.objects.create(
                transaction=txn,
                product=product,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount_percent=line.discount_percent,
                tax_percent=line.tax_percent,
                subtotal=q2(line.subtotal),
                discount_amount=q2(line.discount_amount),
                tax_amount=q2(line.tax_amount),
                total=q2(line.total),
                cost_price=product.cost_price,
            )
        for (method, tendered), (_, amount) in zip(tenders, debits):
            POSTransactionPayment.objects.create(
                transaction=txn,
                payment_method=method,
                amount=amount,
                tendered=tendered,
            )

    if warehouse is not None:
        try:
            for product, line in cart:
                record_movement(
                    actor,
                    product,
                    warehouse,
                    -line.quantity,
                    StockMovement.Reason.POS_SALE,
                    reference_type="pos_transaction",
                    reference_id=str(txn.public_id),
                )
        except InsufficientStock as exc:
            return fail_and_rollback(str(exc))

    lines = pos_sale_lines(
        grand_total,
        [(method.account, amount) for method, amount in tenders],
        revenue=revenue,
        total_cogs=total_cogs,
        cogs=cogs,
        inventory=inventory,
    )
    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=timezone.localdate(),
            description=f"POS sale {txn.number}",
            lines=lines,
            reference_type="pos_transaction",
            reference_id=str(txn.public_id),
            idempotency_key=f"pos.sale.posted:{txn.public_id}",
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    with command_writes_allowed():
        txn.journal_entry_id = ledger.posted_entry_id(posted)
        txn.save(update_fields=["journal_entry_id"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.POS_SALE_COMPLETED,
        aggregate_type="POSTransaction",
        aggregate_id=str(txn.public_id),
        idempotency_key=f"pos.sale_completed:{client_reference}",
        data=POSSaleCompletedData(
            transaction_public_id=str(txn.public_id),
            number=txn.number,
            client_reference=client_reference,
            subtotal=str(txn.subtotal),
            discount_amount=str(txn.discount_amount),
            tax_amount=str(txn.tax_amount),
            rounding_amount=str(txn.rounding_amount),
            total_amount=str(grand_total),
            total_cogs=str(total_cogs),
            amount_paid=str(settlement.total_paid),
            change_amount=str(settlement.change),
            items=[
                {
                    "product_public_id": str(product.public_id),
                    "quantity": str(line.quantity),
                    "unit_price": str(line.unit_price),
                    "total": str(q2(line.total)),
                }
                for product, line in cart
            ],
            payments=[
                {"payment_method_public_id": str(method.public_id), "amount": str(amount)}
                for method, amount in debits
            ],
            journal_entry_public_id=ledger.posted_entry_id(posted),
            session_public_id=str(session.public_id) if session else None,
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(txn, event=event)


# =============================================================================
# Deposits
# =============================================================================

@transaction.atomic
def receive_pos_deposit(
    actor: ActorContext,
    customer_name: str,
    deposit_amount,
    payment_method_id: int,
    total_estimated="0",
    event_name: str = "",
    event_date: date = None,
    customer_phone: str = "",
    notes: str = "",
) -> CommandResult:
    """Take an advance at the till: Dr payment method account / Cr customer deposit."""
    require(actor, "pos.sell")

    try:
        deposit_amount = q2(_to_decimal(deposit_amount, "deposit_amount"))
        total_estimated = q2(_to_decimal(total_estimated, "total_estimated"))
    except LedgerError as exc:
        return CommandResult.fail(str(exc))
    if deposit_amount <= 0:
        return CommandResult.fail("Deposit amount must be greater than zero.")
    if not customer_name:
        return CommandResult.fail("Customer name is required.")

    method = PaymentMethod.objects.select_related("account").filter(
        company=actor.company,
        pk=payment_method_id,
        is_active=True,
    ).first()
    if method is None:
        return CommandResult.fail("Payment method not found.")

    try:
        customer_deposit = registry.resolve_by_role(actor.company, "customer_deposit")
    except ResolutionGap as exc:
        return CommandResult.fail(str(exc))

    today = timezone.localdate()
    with command_writes_allowed():
        deposit = POSDeposit.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["pos_deposit"], today),
            customer_name=customer_name,
            customer_phone=customer_phone,
            event_name=event_name,
            event_date=event_date,
            deposit_amount=deposit_amount,
            total_estimated=total_estimated,
            remaining_amount=max(total_estimated - deposit_amount, ZERO),
            payment_method=method,
            notes=notes,
            created_by=actor.user,
        )

    try:
        posted = ledger.post(actor, ledger.EntryDraft(
            date=today,
            description=f"Deposit {deposit.number} {customer_name}",
            lines=sales_down_payment_lines(deposit_amount, cash=method.account, customer_deposit=customer_deposit),
            reference_type="pos_deposit",
            reference_id=str(deposit.public_id),
            idempotency_key=f"pos.deposit.posted:{deposit.public_id}",
        ))
    except LedgerError as exc:
        return fail_and_rollback(str(exc))

    with command_writes_allowed():
        deposit.journal_entry_id = ledger.posted_entry_id(posted)
        deposit.save(update_fields=["journal_entry_id"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.POS_DEPOSIT_RECEIVED,
        aggregate_type="POSDeposit",
        aggregate_id=str(deposit.public_id),
        idempotency_key=f"pos.deposit_received:{deposit.public_id}",
        data=POSDepositReceivedData(
            deposit_public_id=str(deposit.public_id),
            number=deposit.number,
            customer_name=customer_name,
            deposit_amount=str(deposit_amount),
            total_estimated=str(total_estimated),
            remaining_amount=str(deposit.remaining_amount),
            payment_method_public_id=str(method.public_id),
            journal_entry_public_id=ledger.posted_entry_id(posted),
            event_name=event_name,
            event_date=event_date.isoformat() if event_date else None,
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(deposit, event=event)
