# inventory/commands.py
"""
Command layer for inventory: products, warehouses, stock movements,
stock transfers, goods receipts and stock opname.

Stock only changes through record_movement(), which writes an immutable
StockMovement and emits stock.moved for the stock level projection.
"""

import logging
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounts.models import CompanyMembership
from accounting.commands import (
    CommandResult,
    _idempotency_hash,
    _process_projections,
    _to_decimal,
    fail_and_rollback,
)
from accounting.exceptions import LedgerError
from accounting.fsm import StateMachine
from accounting.models import Account
from accounting.numbering import DOCUMENT_PREFIXES, next_document_number
from events.emitter import emit_event
from events.types import (
    EventTypes,
    GoodsReceivedData,
    ProductCreatedData,
    StockMovedData,
    StockOpnameCompletedData,
    StockOpnameCountedData,
    StockOpnameStartedData,
    StockTransferCreatedData,
    StockTransferStatusData,
    WarehouseCreatedData,
)
from inventory import transfers
from inventory.models import (
    GoodsReceipt,
    GoodsReceiptItem,
    Product,
    StockMovement,
    StockOpname,
    StockOpnameItem,
    StockTransfer,
    StockTransferItem,
    Warehouse,
)
from projections.write_barrier import command_writes_allowed


logger = logging.getLogger(__name__)


class InsufficientStock(Exception):
    def __init__(self, product, warehouse, available, requested):
        self.product = product
        self.warehouse = warehouse
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product.sku} at {warehouse.code}: "
            f"available {available}, requested {requested}."
        )


OPNAME_MACHINE = StateMachine(
    "stock opname",
    {
        ("draft", "start"): "in_progress",
        ("in_progress", "complete"): "completed",
    },
    terminal=("completed",),
)


# =============================================================================
# Master data
# =============================================================================

@transaction.atomic
def create_product(
    actor: ActorContext,
    sku: str,
    name: str,
    unit_price="0",
    cost_price="0",
    revenue_account_id: int = None,
) -> CommandResult:
    require(actor, "inventory.manage")

    if Product.objects.filter(company=actor.company, sku=sku).exists():
        return CommandResult.fail(f"Product SKU '{sku}' already exists.")

    try:
        unit_price = _to_decimal(unit_price, "unit_price")
        cost_price = _to_decimal(cost_price, "cost_price")
    except LedgerError as exc:
        return CommandResult.fail(str(exc))
    if unit_price < 0 or cost_price < 0:
        return CommandResult.fail("Prices cannot be negative.")

    revenue_account = None
    if revenue_account_id:
        revenue_account = Account.objects.filter(company=actor.company, pk=revenue_account_id).first()
        if revenue_account is None:
            return CommandResult.fail("Revenue account not found.")
        if revenue_account.account_type != Account.AccountType.REVENUE:
            return CommandResult.fail(f"Account {revenue_account.code} is not a revenue account.")

    with command_writes_allowed():
        product = Product.objects.create(
            company=actor.company,
            sku=sku,
            name=name,
            unit_price=unit_price,
            cost_price=cost_price,
            revenue_account=revenue_account,
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PRODUCT_CREATED,
        aggregate_type="Product",
        aggregate_id=str(product.public_id),
        idempotency_key=f"product.created:{product.public_id}",
        data=ProductCreatedData(
            product_public_id=str(product.public_id),
            sku=sku,
            name=name,
            unit_price=str(unit_price),
            cost_price=str(cost_price),
            revenue_account_public_id=str(revenue_account.public_id) if revenue_account else None,
        ),
    )
    return CommandResult.ok(product, event=event)


@transaction.atomic
def create_warehouse(actor: ActorContext, code: str, name: str, pic_user_id: int = None) -> CommandResult:
    """The PIC (person in charge) must be an active member of the company."""
    require(actor, "inventory.manage")

    if Warehouse.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Warehouse code '{code}' already exists.")

    pic_user = None
    if pic_user_id:
        membership = CompanyMembership.objects.select_related("user").filter(
            company=actor.company,
            user_id=pic_user_id,
            is_active=True,
        ).first()
        if membership is None:
            return CommandResult.fail("Person in charge is not an active member of this company.")
        pic_user = membership.user

    with command_writes_allowed():
        warehouse = Warehouse.objects.create(
            company=actor.company,
            code=code,
            name=name,
            pic_user=pic_user,
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.WAREHOUSE_CREATED,
        aggregate_type="Warehouse",
        aggregate_id=str(warehouse.public_id),
        idempotency_key=f"warehouse.created:{warehouse.public_id}",
        data=WarehouseCreatedData(
            warehouse_public_id=str(warehouse.public_id),
            code=code,
            name=name,
            pic_user_public_id=str(pic_user.public_id) if pic_user else None,
        ),
    )
    return CommandResult.ok(warehouse, event=event)


# =============================================================================
# Movements
# =============================================================================

def available_quantity(product, warehouse) -> Decimal:
    return StockMovement.objects.on_hand(product, warehouse)


def record_movement(
    actor: ActorContext,
    product: Product,
    warehouse: Warehouse,
    quantity: Decimal,
    reason: str,
    reference_type: str = "",
    reference_id: str = "",
    check_available: bool = True,
) -> StockMovement:
    """
    Write one signed stock movement and emit stock.moved.

    Must run inside the caller's transaction. The product row is locked so
    concurrent issues of the same product serialize on the availability check.

    Raises:
        InsufficientStock: an issue would take on-hand below zero
    """
    quantity = Decimal(quantity)
    if quantity == 0:
        raise ValueError("Stock movement quantity cannot be zero.")

    Product.objects.select_for_update().filter(pk=product.pk).first()
    if quantity < 0 and check_available:
        available = available_quantity(product, warehouse)
        if available + quantity < 0:
            raise InsufficientStock(product, warehouse, available, -quantity)

    with command_writes_allowed():
        movement = StockMovement.objects.create(
            company=actor.company,
            product=product,
            warehouse=warehouse,
            quantity=quantity,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=actor.user,
        )

    emit_event(
        actor=actor,
        event_type=EventTypes.STOCK_MOVED,
        aggregate_type="StockMovement",
        aggregate_id=str(movement.public_id),
        idempotency_key=f"stock.moved:{movement.public_id}",
        data=StockMovedData(
            movement_public_id=str(movement.public_id),
            product_public_id=str(product.public_id),
            warehouse_public_id=str(warehouse.public_id),
            quantity=str(quantity),
            movement_reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        ),
    )
    return movement


# =============================================================================
# Stock transfers
# =============================================================================

@transaction.atomic
def create_stock_transfer(
    actor: ActorContext,
    from_warehouse_id: int,
    to_warehouse_id: int,
    items: list,
    notes: str = "",
) -> CommandResult:
    """
    Request a transfer between two warehouses. The transfer is submitted
    immediately and waits in pending for the destination PIC.

    items: [{"product_id": int, "quantity": "10"}]
    """
    require(actor, "inventory.transfer")

    if from_warehouse_id == to_warehouse_id:
        return CommandResult.fail("Source and destination warehouse must be different.")
    if not items:
        return CommandResult.fail("A transfer needs at least one item.")

    warehouses = {
        w.pk: w
        for w in Warehouse.objects.filter(
            company=actor.company,
            pk__in=[from_warehouse_id, to_warehouse_id],
            is_active=True,
        )
    }
    source = warehouses.get(from_warehouse_id)
    destination = warehouses.get(to_warehouse_id)
    if source is None or destination is None:
        return CommandResult.fail("Warehouse not found.")

    products = {
        p.pk: p
        for p in Product.objects.filter(company=actor.company, pk__in=[i.get("product_id") for i in items])
    }
    parsed = []
    for idx, item in enumerate(items, start=1):
        product = products.get(item.get("product_id"))
        if product is None:
            return CommandResult.fail(f"Item {idx}: product not found.")
        try:
            quantity = _to_decimal(item.get("quantity"), "quantity")
        except LedgerError as exc:
            return CommandResult.fail(f"Item {idx}: {exc}")
        if quantity <= 0:
            return CommandResult.fail(f"Item {idx}: quantity must be greater than zero.")
        parsed.append((product, quantity))

    status = transfers.transition(transfers.DRAFT, transfers.SUBMIT)
    with command_writes_allowed():
        transfer = StockTransfer.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["stock_transfer"], timezone.localdate()),
            from_warehouse=source,
            to_warehouse=destination,
            status=status,
            notes=notes,
            requested_by=actor.user,
        )
        for product, quantity in parsed:
            StockTransferItem.objects.create(transfer=transfer, product=product, quantity=quantity)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.STOCK_TRANSFER_CREATED,
        aggregate_type="StockTransfer",
        aggregate_id=str(transfer.public_id),
        idempotency_key=f"stock_transfer.created:{transfer.public_id}",
        data=StockTransferCreatedData(
            transfer_public_id=str(transfer.public_id),
            number=transfer.number,
            from_warehouse_public_id=str(source.public_id),
            to_warehouse_public_id=str(destination.public_id),
            items=[
                {"product_public_id": str(product.public_id), "quantity": str(quantity)}
                for product, quantity in parsed
            ],
        ),
    )
    return CommandResult.ok(transfer, event=event)


def _lock_transfer(actor, transfer_id):
    return (
        StockTransfer.objects.select_for_update()
        .select_related("from_warehouse", "to_warehouse")
        .filter(company=actor.company, pk=transfer_id)
        .first()
    )


def _check_destination_pic(actor, transfer):
    pic_id = transfer.to_warehouse.pic_user_id
    if pic_id is None:
        return f"Warehouse {transfer.to_warehouse.code} has no person in charge to approve transfers."
    if pic_id != actor.user.id:
        return f"Only the person in charge of {transfer.to_warehouse.code} can decide on this transfer."
    return None


def _set_transfer_status(actor, transfer, event, event_type, reason=""):
    nxt = transfers.transition(transfer.status, event)
    if not nxt:
        return None, nxt.reason

    previous = str(transfer.status)
    with command_writes_allowed():
        transfer.status = nxt
        transfer.save(update_fields=["status", "approved_by", "approved_at", "rejection_reason"])

    emitted = emit_event(
        actor=actor,
        event_type=event_type,
        aggregate_type="StockTransfer",
        aggregate_id=str(transfer.public_id),
        idempotency_key=f"{event_type}:{transfer.public_id}",
        data=StockTransferStatusData(
            transfer_public_id=str(transfer.public_id),
            number=transfer.number,
            from_status=previous,
            to_status=nxt,
            reason=reason,
        ),
    )
    return emitted, None


@transaction.atomic
def approve_stock_transfer(actor: ActorContext, transfer_id: int) -> CommandResult:
    """
    Approve a pending transfer as the destination PIC.

    Paired movements (-qty at source, +qty at destination) are written and
    the transfer completes in the same transaction. Fails without any
    change when the source lacks stock for any item.
    """
    require(actor, "inventory.transfer")

    transfer = _lock_transfer(actor, transfer_id)
    if transfer is None:
        return CommandResult.fail("Stock transfer not found.")

    error = _check_destination_pic(actor, transfer)
    if error:
        return CommandResult.fail(error)

    transfer.approved_by = actor.user
    transfer.approved_at = timezone.now()
    _, error = _set_transfer_status(actor, transfer, transfers.APPROVE, EventTypes.STOCK_TRANSFER_APPROVED)
    if error:
        return CommandResult.fail(error)

    reference_id = str(transfer.public_id)
    try:
        for item in transfer.items.select_related("product"):
            record_movement(
                actor,
                item.product,
                transfer.from_warehouse,
                -item.quantity,
                StockMovement.Reason.TRANSFER_OUT,
                reference_type="stock_transfer",
                reference_id=reference_id,
            )
            record_movement(
                actor,
                item.product,
                transfer.to_warehouse,
                item.quantity,
                StockMovement.Reason.TRANSFER_IN,
                reference_type="stock_transfer",
                reference_id=reference_id,
            )
    except InsufficientStock as exc:
        logger.warning(
            "Transfer %s refused: %s",
            transfer.number,
            exc,
            extra={"company": actor.company.slug},
        )
        return fail_and_rollback(str(exc))

    event, error = _set_transfer_status(actor, transfer, transfers.COMPLETE, EventTypes.STOCK_TRANSFER_COMPLETED)
    if error:
        return fail_and_rollback(error)

    _process_projections(actor.company)
    logger.info(
        "Completed stock transfer %s",
        transfer.number,
        extra={
            "company": actor.company.slug,
            "from": transfer.from_warehouse.code,
            "to": transfer.to_warehouse.code,
        },
    )
    return CommandResult.ok(transfer, event=event)


@transaction.atomic
def reject_stock_transfer(actor: ActorContext, transfer_id: int, reason: str = "") -> CommandResult:
    require(actor, "inventory.transfer")

    transfer = _lock_transfer(actor, transfer_id)
    if transfer is None:
        return CommandResult.fail("Stock transfer not found.")

    error = _check_destination_pic(actor, transfer)
    if error:
        return CommandResult.fail(error)

    transfer.rejection_reason = reason
    event, error = _set_transfer_status(
        actor, transfer, transfers.REJECT, EventTypes.STOCK_TRANSFER_REJECTED, reason=reason
    )
    if error:
        return CommandResult.fail(error)
    return CommandResult.ok(transfer, event=event)


# =============================================================================
# Goods receipt
# =============================================================================

@transaction.atomic
def receive_goods(
    actor: ActorContext,
    purchase_order_id: int,
    warehouse_id: int,
    items: list,
    received_date: date = None,
    notes: str = "",
) -> CommandResult:
    """
    Receive purchased goods into a warehouse.

    items: [{"order_line_id": int, "quantity": "5"}]; a line can be
    received in several receipts but never beyond its ordered quantity.
    """
    from trade.models import OrderStatus, PurchaseOrder

    require(actor, "inventory.manage")

    order = PurchaseOrder.objects.select_for_update().filter(company=actor.company, pk=purchase_order_id).first()
    if order is None:
        return CommandResult.fail("Purchase order not found.")
    if order.status in (OrderStatus.DRAFT, OrderStatus.CANCELLED):
        return CommandResult.fail(f"Cannot receive goods for a purchase order in status {order.status}.")

    warehouse = Warehouse.objects.filter(company=actor.company, pk=warehouse_id, is_active=True).first()
    if warehouse is None:
        return CommandResult.fail("Warehouse not found.")
    if not items:
        return CommandResult.fail("A goods receipt needs at least one item.")

    order_lines = {line.pk: line for line in order.lines.select_for_update().select_related("product")}
    parsed = []
    for idx, item in enumerate(items, start=1):
        line = order_lines.get(item.get("order_line_id"))
        if line is None:
            return CommandResult.fail(f"Item {idx}: order line not found on {order.number}.")
        if line.product is None:
            return CommandResult.fail(f"Item {idx}: order line {line.line_no} has no product to stock.")
        try:
            quantity = _to_decimal(item.get("quantity"), "quantity")
        except LedgerError as exc:
            return CommandResult.fail(f"Item {idx}: {exc}")
        if quantity <= 0:
            return CommandResult.fail(f"Item {idx}: quantity must be greater than zero.")
        if quantity > line.remaining_quantity:
            return CommandResult.fail(
                f"Item {idx}: receiving {quantity} exceeds remaining {line.remaining_quantity} on line {line.line_no}."
            )
        parsed.append((line, quantity))

    received_date = received_date or timezone.localdate()
    with command_writes_allowed():
        receipt = GoodsReceipt.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["goods_receipt"], received_date),
            purchase_order=order,
            warehouse=warehouse,
            received_date=received_date,
            notes=notes,
            received_by=actor.user,
        )
        for line, quantity in parsed:
            GoodsReceiptItem.objects.create(
                receipt=receipt,
                order_line=line,
                product=line.product,
                quantity=quantity,
            )
            line.received_quantity = line.received_quantity + quantity
            line.save(update_fields=["received_quantity"])

    for line, quantity in parsed:
        record_movement(
            actor,
            line.product,
            warehouse,
            quantity,
            StockMovement.Reason.GOODS_RECEIPT,
            reference_type="goods_receipt",
            reference_id=str(receipt.public_id),
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.GOODS_RECEIVED,
        aggregate_type="GoodsReceipt",
        aggregate_id=str(receipt.public_id),
        idempotency_key=f"goods.received:{receipt.public_id}",
        data=GoodsReceivedData(
            receipt_public_id=str(receipt.public_id),
            number=receipt.number,
            order_public_id=str(order.public_id),
            warehouse_public_id=str(warehouse.public_id),
            items=[
                {"product_public_id": str(line.product.public_id), "quantity": str(quantity)}
                for line, quantity in parsed
            ],
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(receipt, event=event)


# =============================================================================
# Stock opname
# =============================================================================

@transaction.atomic
def start_stock_opname(actor: ActorContext, warehouse_id: int, product_ids: list = None, notes: str = "") -> CommandResult:
    """
    Snapshot system quantities for a warehouse and open the count.

    Without product_ids every active product is counted.
    """
    require(actor, "inventory.manage")

    warehouse = Warehouse.objects.filter(company=actor.company, pk=warehouse_id, is_active=True).first()
    if warehouse is None:
        return CommandResult.fail("Warehouse not found.")
    if StockOpname.objects.filter(
        company=actor.company,
        warehouse=warehouse,
        status=StockOpname.Status.IN_PROGRESS,
    ).exists():
        return CommandResult.fail(f"A stock opname is already in progress for {warehouse.code}.")

    products = Product.objects.filter(company=actor.company, is_active=True)
    if product_ids:
        products = products.filter(pk__in=product_ids)
    products = list(products)
    if not products:
        return CommandResult.fail("No products to count.")

    status = OPNAME_MACHINE.transition("draft", "start")
    started_at = timezone.now()
    snapshot = [(product, available_quantity(product, warehouse)) for product in products]

    with command_writes_allowed():
        opname = StockOpname.objects.create(
            company=actor.company,
            number=next_document_number(actor.company, DOCUMENT_PREFIXES["stock_opname"], started_at.date()),
            warehouse=warehouse,
            status=status,
            notes=notes,
            created_by=actor.user,
            started_at=started_at,
        )
        for product, quantity in snapshot:
            StockOpnameItem.objects.create(opname=opname, product=product, system_quantity=quantity)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.STOCK_OPNAME_STARTED,
        aggregate_type="StockOpname",
        aggregate_id=str(opname.public_id),
        idempotency_key=f"stock_opname.started:{opname.public_id}",
        data=StockOpnameStartedData(
            opname_public_id=str(opname.public_id),
            number=opname.number,
            warehouse_public_id=str(warehouse.public_id),
            items=[
                {"product_public_id": str(product.public_id), "system_quantity": str(quantity)}
                for product, quantity in snapshot
            ],
        ),
    )
    return CommandResult.ok(opname, event=event)


@transaction.atomic
def record_opname_count(actor: ActorContext, opname_id: int, product_id: int, actual_quantity) -> CommandResult:
    require(actor, "inventory.manage")

    opname = StockOpname.objects.select_for_update().filter(company=actor.company, pk=opname_id).first()
    if opname is None:
        return CommandResult.fail("Stock opname not found.")
    if opname.status != StockOpname.Status.IN_PROGRESS:
        return CommandResult.fail(f"Stock opname {opname.number} is {opname.status}.")

    item = opname.items.select_related("product").filter(product_id=product_id).first()
    if item is None:
        return CommandResult.fail("Product is not part of this stock opname.")

    try:
        actual_quantity = _to_decimal(actual_quantity, "actual_quantity")
    except LedgerError as exc:
        return CommandResult.fail(str(exc))
    if actual_quantity < 0:
        return CommandResult.fail("Counted quantity cannot be negative.")

    with command_writes_allowed():
        item.actual_quantity = actual_quantity
        item.save(update_fields=["actual_quantity"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.STOCK_OPNAME_COUNTED,
        aggregate_type="StockOpname",
        aggregate_id=str(opname.public_id),
        idempotency_key=_idempotency_hash("stock_opname.counted", {
            "opname": str(opname.public_id),
            "product": str(item.product.public_id),
            "actual": str(actual_quantity),
            "at": timezone.now().isoformat(),
        }),
        data=StockOpnameCountedData(
            opname_public_id=str(opname.public_id),
            product_public_id=str(item.product.public_id),
            actual_quantity=str(actual_quantity),
        ),
    )
    return CommandResult.ok(item, event=event)


@transaction.atomic
def complete_stock_opname(actor: ActorContext, opname_id: int) -> CommandResult:
    """
    Close the count. Every counted item whose actual quantity differs from
    the snapshot gets an opname_adjustment movement for the difference;
    uncounted items are left alone.
    """
    require(actor, "inventory.manage")

    opname = (
        StockOpname.objects.select_for_update()
        .select_related("warehouse")
        .filter(company=actor.company, pk=opname_id)
        .first()
    )
    if opname is None:
        return CommandResult.fail("Stock opname not found.")

    nxt = OPNAME_MACHINE.transition(opname.status, "complete")
    if not nxt:
        return CommandResult.fail(nxt.reason)

    adjustments = []
    for item in opname.items.select_related("product"):
        difference = item.difference
        if difference == 0:
            continue
        record_movement(
            actor,
            item.product,
            opname.warehouse,
            difference,
            StockMovement.Reason.OPNAME_ADJUSTMENT,
            reference_type="stock_opname",
            reference_id=str(opname.public_id),
            check_available=False,
        )
        adjustments.append({
            "product_public_id": str(item.product.public_id),
            "system_quantity": str(item.system_quantity),
            "actual_quantity": str(item.actual_quantity),
            "quantity": str(difference),
        })

    with command_writes_allowed():
        opname.status = nxt
        opname.completed_at = timezone.now()
        opname.save(update_fields=["status", "completed_at"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.STOCK_OPNAME_COMPLETED,
        aggregate_type="StockOpname",
        aggregate_id=str(opname.public_id),
        idempotency_key=f"stock_opname.completed:{opname.public_id}",
        data=StockOpnameCompletedData(
            opname_public_id=str(opname.public_id),
            number=opname.number,
            adjustments=adjustments,
        ),
    )

    _process_projections(actor.company)
    return CommandResult.ok(opname, event=event)
