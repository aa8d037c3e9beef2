# trade/tests/test_outstanding.py
"""
Pure tests for the outstanding balance arithmetic, aging buckets and the
order status machine. No database.
"""

from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from trade import fsm
from trade.aging import BUCKET_LABELS, bucket_index, compute_aging
from trade.outstanding import AllocationError, allocatable_statuses, apply_allocation


class TestApplyAllocation:
    def test_partial_payment(self):
        state = apply_allocation("199800", "0", "199800", "sent", "100000")
        assert state.paid == Decimal("100000.00")
        assert state.outstanding == Decimal("99800.00")
        assert state.status == "partial"

    def test_settling_payment(self):
        state = apply_allocation("199800", "100000", "99800", "partial", "99800")
        assert state.outstanding == Decimal("0.00")
        assert state.paid == Decimal("199800.00")
        assert state.status == "paid"

    def test_overdue_stays_partial_not_overdue_after_part_payment(self):
        state = apply_allocation("1000", "0", "1000", "overdue", "1")
        assert state.status == "partial"

    def test_paid_plus_outstanding_equals_total(self):
        total = Decimal("1000.00")
        paid, outstanding, status = Decimal("0"), total, "sent"
        for amount in ("333.33", "333.33", "333.34"):
            state = apply_allocation(total, paid, outstanding, status, amount)
            paid, outstanding, status = state.paid, state.outstanding, state.status
            assert paid + outstanding == total
        assert status == "paid"

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_is_refused(self, amount):
        with pytest.raises(AllocationError, match="greater than zero"):
            apply_allocation("100", "0", "100", "sent", amount)

    def test_amount_above_outstanding_is_refused(self):
        with pytest.raises(AllocationError, match="exceeds outstanding"):
            apply_allocation("100", "60", "40", "partial", "40.01")

    def test_allocatable_statuses(self):
        assert allocatable_statuses() == {"sent", "partial", "overdue"}


class TestAgingBuckets:
    @pytest.mark.parametrize(
        "days_past,expected",
        [(-5, 0), (0, 0), (1, 1), (30, 1), (31, 2), (60, 2), (61, 3), (90, 3), (91, 4), (400, 4)],
    )
    def test_bucket_boundaries(self, days_past, expected):
        as_of = date(2025, 6, 30)
        assert bucket_index(as_of - timedelta(days=days_past), as_of) == expected

    def _doc(self, number, due_date, outstanding, status="sent"):
        return SimpleNamespace(
            public_id=uuid4(),
            number=number,
            party_name="PT Maju",
            due_date=due_date,
            outstanding_amount=Decimal(outstanding),
            status=status,
        )

    def test_compute_aging(self):
        as_of = date(2025, 6, 30)
        report = compute_aging(
            [
                self._doc("INV-1", date(2025, 7, 10), "100"),
                self._doc("INV-2", date(2025, 6, 15), "200"),
                self._doc("INV-3", date(2025, 3, 1), "300", status="overdue"),
                self._doc("INV-4", date(2025, 6, 1), "999", status="cancelled"),
                self._doc("INV-5", date(2025, 6, 1), "0", status="paid"),
            ],
            as_of,
        )

        amounts = {b.label: b.amount for b in report.buckets}
        assert amounts == {
            "current": Decimal("100.00"),
            "1-30": Decimal("200.00"),
            "31-60": Decimal("0.00"),
            "61-90": Decimal("0.00"),
            "over_90": Decimal("300.00"),
        }
        assert report.total == Decimal("600.00")
        assert [row.number for row in report.rows] == ["INV-3", "INV-2", "INV-1"]
        assert report.rows[0].days_overdue == 121

    def test_to_dict_shape(self):
        report = compute_aging([self._doc("INV-1", date(2025, 1, 1), "50")], date(2025, 1, 2))
        data = report.to_dict()
        assert data["total"] == "50.00"
        assert [b["label"] for b in data["buckets"]] == list(BUCKET_LABELS)
        assert data["rows"][0]["bucket"] == "1-30"


class TestOrderStatusMachine:
    def test_happy_path(self):
        status = fsm.transition(fsm.DRAFT, fsm.CONFIRM)
        status = fsm.transition(status, fsm.INVOICE)
        status = fsm.transition(status, fsm.PAY)
        assert status == fsm.PAID

    def test_cannot_invoice_draft(self):
        result = fsm.transition(fsm.DRAFT, fsm.INVOICE)
        assert not result
        assert "Cannot invoice" in result.reason

    def test_terminal_states_are_final(self):
        assert not fsm.transition(fsm.PAID, fsm.CANCEL)
        assert not fsm.transition(fsm.CANCELLED, fsm.CONFIRM)

    def test_invoiced_order_cannot_be_cancelled(self):
        assert not fsm.transition(fsm.INVOICED, fsm.CANCEL)

    def test_uninvoice_returns_to_confirmed(self):
        assert fsm.transition(fsm.INVOICED, fsm.UNINVOICE) == fsm.CONFIRMED
