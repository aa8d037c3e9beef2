# pos/tests/test_engine.py
"""Cart arithmetic and drawer reconciliation. No database."""

from decimal import Decimal

import pytest

from pos import sessions
from pos.engine import PaymentShortfall, apportion_payments, compute_cart, compute_line, settle


class TestCart:
    def test_line_with_discount_and_tax(self):
        line = compute_line("2", "15000", "10", "11")
        assert line.subtotal == Decimal("30000")
        assert line.discount_amount == Decimal("3000")
        assert line.tax_amount == Decimal("2970")
        assert line.total == Decimal("29970")

    def test_total_is_rounded_down_to_whole_unit(self):
        cart = compute_cart([compute_line("1", "10000.50"), compute_line("3", "0.25")])
        assert cart.raw_total == Decimal("10001.25")
        assert cart.rounded_total == Decimal("10001")
        assert cart.rounding_amount == Decimal("0.25")

    def test_whole_totals_have_no_rounding(self):
        cart = compute_cart([compute_line("2", "15000")])
        assert cart.rounded_total == Decimal("30000")
        assert cart.rounding_amount == 0

    def test_fractional_total_drops_the_cents(self):
        cart = compute_cart([compute_line("1", "100250.75")])
        assert cart.rounded_total == Decimal("100250")
        assert cart.rounding_amount == Decimal("0.75")


class TestSettle:
    def test_exact_payment(self):
        cart = compute_cart([compute_line("1", "15000")])
        settlement = settle(cart, [Decimal("15000")])
        assert settlement.change == Decimal("0.00")

    def test_change_from_split_tender(self):
        cart = compute_cart([compute_line("2", "15000")])
        settlement = settle(cart, [Decimal("20000"), Decimal("20000")])
        assert settlement.total_paid == Decimal("40000.00")
        assert settlement.change == Decimal("10000.00")

    def test_shortfall(self):
        cart = compute_cart([compute_line("1", "15000")])
        with pytest.raises(PaymentShortfall) as excinfo:
            settle(cart, [Decimal("10000")])
        assert excinfo.value.amount_due == Decimal("15000")

    def test_apportion_scales_to_grand_total(self):
        debits = apportion_payments(Decimal("30000"), [("cash", Decimal("20000")), ("card", Decimal("20000"))])
        assert debits == [("cash", Decimal("15000.00")), ("card", Decimal("15000.00"))]

    def test_apportion_keeps_exact_payments(self):
        debits = apportion_payments(Decimal("30000"), [("cash", Decimal("10000")), ("card", Decimal("20000"))])
        assert [amount for _, amount in debits] == [Decimal("10000.00"), Decimal("20000.00")]

    def test_overpaid_cash_debits_only_the_sale(self):
        cart = compute_cart([compute_line("1", "85000")])
        settlement = settle(cart, [Decimal("100000")])
        assert settlement.change == Decimal("15000.00")
        assert apportion_payments(cart.rounded_total, [("cash", Decimal("100000"))]) == [("cash", Decimal("85000.00"))]


class TestReconcile:
    def test_shortage_is_negative(self):
        expected, difference = sessions.reconcile("100000", ["50000", "25000"], "170000")
        assert expected == Decimal("175000.00")
        assert difference == Decimal("-5000.00")

    def test_no_sales(self):
        assert sessions.reconcile("50000", [], "50000") == (Decimal("50000.00"), Decimal("0.00"))

    def test_change_reduces_expected_cash(self):
        # card 20000 + cash 20000 on a 30000 sale
        expected, difference = sessions.reconcile("100000", ["20000"], "110000", change_given=["10000"])
        assert expected == Decimal("110000.00")
        assert difference == Decimal("0.00")

    def test_closed_session_cannot_close_again(self):
        assert sessions.transition(sessions.OPEN, sessions.CLOSE) == sessions.CLOSED
        assert not sessions.transition(sessions.CLOSED, sessions.CLOSE)
