# inventory/tests/test_commands.py
"""
Stock movements, warehouse transfers with PIC approval, goods receipts
against purchase orders, and stock opname.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from inventory import transfers
from inventory.commands import (
    InsufficientStock,
    approve_stock_transfer,
    available_quantity,
    complete_stock_opname,
    create_product,
    create_stock_transfer,
    create_warehouse,
    receive_goods,
    record_movement,
    record_opname_count,
    reject_stock_transfer,
    start_stock_opname,
)
from inventory.models import StockMovement, StockTransfer
from projections.models import StockLevel
from trade.commands import confirm_order, create_purchase_order


@pytest.mark.django_db
class TestMasterData:
    def test_duplicate_sku(self, actor, product):
        result = create_product(actor, sku="SKU-001", name="Kopi Lagi")
        assert not result.success

    def test_revenue_account_must_be_revenue(self, actor, cash_account):
        result = create_product(actor, sku="SKU-9", name="X", revenue_account_id=cash_account.id)
        assert not result.success
        assert "not a revenue account" in result.error

    def test_pic_must_be_member(self, actor, other_actor):
        result = create_warehouse(actor, code="WH-X", name="X", pic_user_id=other_actor.user.id)
        assert not result.success
        assert "not an active member" in result.error

    def test_staff_cannot_create_products(self, staff_actor):
        with pytest.raises(PermissionDenied):
            create_product(staff_actor, sku="SKU-9", name="X")


@pytest.mark.django_db
class TestMovements:
    def test_on_hand_is_sum_of_movements(self, product, main_warehouse, stock_in):
        stock_in(product, main_warehouse, "10")
        stock_in(product, main_warehouse, "5")
        assert available_quantity(product, main_warehouse) == Decimal("15")

    def test_issue_beyond_on_hand_raises(self, actor, product, main_warehouse, stock_in):
        stock_in(product, main_warehouse, "3")
        with pytest.raises(InsufficientStock) as excinfo:
            record_movement(actor, product, main_warehouse, Decimal("-4"), StockMovement.Reason.POS_SALE)
        assert excinfo.value.available == Decimal("3")
        assert excinfo.value.requested == Decimal("4")

    def test_zero_quantity_is_refused(self, actor, product, main_warehouse):
        with pytest.raises(ValueError):
            record_movement(actor, product, main_warehouse, Decimal("0"), StockMovement.Reason.GOODS_RECEIPT)

    def test_stock_level_projection_follows_movements(self, product, main_warehouse, stock_in):
        from accounting.commands import _process_projections

        stock_in(product, main_warehouse, "7")
        _process_projections(product.company)

        level = StockLevel.objects.get(product=product, warehouse=main_warehouse)
        assert level.quantity == Decimal("7")


@pytest.mark.django_db
class TestStockTransfer:
    @pytest.fixture
    def transfer(self, actor, product, main_warehouse, store_warehouse, stock_in):
        stock_in(product, main_warehouse, "10")
        result = create_stock_transfer(
            actor,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=store_warehouse.id,
            items=[{"product_id": product.id, "quantity": "4"}],
        )
        assert result.success, result.error
        return result.data

    def test_created_pending(self, transfer):
        assert transfer.status == transfers.PENDING
        assert transfer.number.startswith("TRF-")

    def test_destination_pic_approves_and_stock_moves(self, staff_actor, transfer, product, main_warehouse, store_warehouse):
        result = approve_stock_transfer(staff_actor, transfer.id)

        assert result.success, result.error
        transfer.refresh_from_db()
        assert transfer.status == StockTransfer.Status.COMPLETED
        assert transfer.approved_by == staff_actor.user
        assert available_quantity(product, main_warehouse) == Decimal("6")
        assert available_quantity(product, store_warehouse) == Decimal("4")

        reasons = set(
            StockMovement.objects.filter(reference_id=str(transfer.public_id)).values_list("reason", flat=True)
        )
        assert reasons == {StockMovement.Reason.TRANSFER_OUT, StockMovement.Reason.TRANSFER_IN}

    def test_only_destination_pic_can_approve(self, actor, transfer):
        result = approve_stock_transfer(actor, transfer.id)
        assert not result.success
        assert "Only the person in charge" in result.error

    def test_only_destination_pic_can_reject(self, actor, transfer):
        assert not reject_stock_transfer(actor, transfer.id, reason="Tidak perlu").success

    def test_reject(self, staff_actor, transfer, product, main_warehouse):
        result = reject_stock_transfer(staff_actor, transfer.id, reason="Rak penuh")

        assert result.success, result.error
        transfer.refresh_from_db()
        assert transfer.status == StockTransfer.Status.REJECTED
        assert transfer.rejection_reason == "Rak penuh"
        assert available_quantity(product, main_warehouse) == Decimal("10")

    def test_rejected_transfer_cannot_be_approved(self, staff_actor, transfer):
        reject_stock_transfer(staff_actor, transfer.id)
        result = approve_stock_transfer(staff_actor, transfer.id)
        assert not result.success

    def test_completed_transfer_cannot_be_approved_again(self, staff_actor, transfer, product, store_warehouse):
        approve_stock_transfer(staff_actor, transfer.id)
        assert not approve_stock_transfer(staff_actor, transfer.id).success
        assert available_quantity(product, store_warehouse) == Decimal("4")

    def test_insufficient_stock_leaves_transfer_pending(self, actor, staff_actor, product, main_warehouse, store_warehouse):
        transfer = create_stock_transfer(
            actor,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=store_warehouse.id,
            items=[{"product_id": product.id, "quantity": "4"}],
        ).data

        result = approve_stock_transfer(staff_actor, transfer.id)

        assert not result.success
        assert "Insufficient stock" in result.error
        transfer.refresh_from_db()
        assert transfer.status == StockTransfer.Status.PENDING
        assert transfer.approved_by is None
        assert not StockMovement.objects.filter(reference_id=str(transfer.public_id)).exists()

    def test_same_warehouse_is_refused(self, actor, product, main_warehouse):
        result = create_stock_transfer(
            actor,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=main_warehouse.id,
            items=[{"product_id": product.id, "quantity": "1"}],
        )
        assert not result.success

    def test_transfer_machine(self):
        assert transfers.transition(transfers.PENDING, transfers.APPROVE) == transfers.APPROVED
        assert not transfers.transition(transfers.PENDING, transfers.COMPLETE)
        assert not transfers.transition(transfers.COMPLETED, transfers.REJECT)


@pytest.mark.django_db
class TestGoodsReceipt:
    @pytest.fixture
    def purchase_order(self, actor, product):
        order = create_purchase_order(
            actor,
            party_name="CV Sumber Makmur",
            order_date=date(2025, 3, 1),
            lines=[{"product_id": product.id, "quantity": "10"}],
        ).data
        return order

    def test_draft_order_cannot_be_received(self, actor, purchase_order, main_warehouse):
        line = purchase_order.lines.get()
        result = receive_goods(actor, purchase_order.id, main_warehouse.id, [{"order_line_id": line.id, "quantity": "1"}])
        assert not result.success
        assert "draft" in result.error

    def test_partial_receipts_up_to_ordered_quantity(self, actor, purchase_order, product, main_warehouse):
        confirm_order(actor, "purchase", purchase_order.id)
        line = purchase_order.lines.get()

        first = receive_goods(
            actor, purchase_order.id, main_warehouse.id, [{"order_line_id": line.id, "quantity": "6"}],
            received_date=date(2025, 3, 10),
        )
        assert first.success, first.error
        assert first.data.number == "GR-202503-0001"

        too_many = receive_goods(actor, purchase_order.id, main_warehouse.id, [{"order_line_id": line.id, "quantity": "5"}])
        assert not too_many.success
        assert "exceeds remaining" in too_many.error

        rest = receive_goods(actor, purchase_order.id, main_warehouse.id, [{"order_line_id": line.id, "quantity": "4"}])
        assert rest.success, rest.error

        line.refresh_from_db()
        assert line.received_quantity == Decimal("10")
        assert line.remaining_quantity == Decimal("0")
        assert available_quantity(product, main_warehouse) == Decimal("10")

    def test_line_from_another_order(self, actor, purchase_order, main_warehouse):
        confirm_order(actor, "purchase", purchase_order.id)
        result = receive_goods(actor, purchase_order.id, main_warehouse.id, [{"order_line_id": 999999, "quantity": "1"}])
        assert not result.success


@pytest.mark.django_db
class TestStockOpname:
    def test_counted_differences_are_adjusted(self, actor, product, second_product, main_warehouse, stock_in):
        stock_in(product, main_warehouse, "10")
        stock_in(second_product, main_warehouse, "5")
        opname = start_stock_opname(actor, main_warehouse.id).data

        assert record_opname_count(actor, opname.id, product.id, "8").success

        result = complete_stock_opname(actor, opname.id)

        assert result.success, result.error
        assert available_quantity(product, main_warehouse) == Decimal("8")
        # second_product was never counted
        assert available_quantity(second_product, main_warehouse) == Decimal("5")
        adjustment = StockMovement.objects.get(reason=StockMovement.Reason.OPNAME_ADJUSTMENT)
        assert adjustment.quantity == Decimal("-2")

    def test_surplus_count(self, actor, product, main_warehouse, stock_in):
        stock_in(product, main_warehouse, "2")
        opname = start_stock_opname(actor, main_warehouse.id, product_ids=[product.id]).data
        record_opname_count(actor, opname.id, product.id, "3")

        complete_stock_opname(actor, opname.id)

        assert available_quantity(product, main_warehouse) == Decimal("3")

    def test_one_opname_per_warehouse(self, actor, product, main_warehouse):
        assert start_stock_opname(actor, main_warehouse.id).success
        result = start_stock_opname(actor, main_warehouse.id)
        assert not result.success
        assert "already in progress" in result.error

    def test_completed_opname_is_closed(self, actor, product, main_warehouse):
        opname = start_stock_opname(actor, main_warehouse.id).data
        complete_stock_opname(actor, opname.id)

        assert not record_opname_count(actor, opname.id, product.id, "1").success
        assert not complete_stock_opname(actor, opname.id).success

    def test_negative_count_is_refused(self, actor, product, main_warehouse):
        opname = start_stock_opname(actor, main_warehouse.id).data
        assert not record_opname_count(actor, opname.id, product.id, "-1").success
