# accounting/tests/test_posting_rules.py
"""
Posting rules are pure: they take amounts and resolved accounts and return
journal lines. Every rule must balance for any input.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from accounting.posting_rules import (
    LineDraft,
    allocation_reclass_lines,
    depreciation_amount,
    document_totals,
    group_revenue,
    is_balanced,
    line_amounts,
    payment_lines,
    payment_roles,
    pos_sale_lines,
    purchase_bill_lines,
    purchase_bill_roles,
    q2,
    reversal_lines,
    revenue_account_for,
    sales_invoice_lines,
    sales_invoice_roles,
    scale_to_total,
    totals,
)


def _acct(pk, code):
    return SimpleNamespace(pk=pk, code=code)


CASH = _acct(1, "1-1001")
BANK = _acct(2, "1-1100")
AR = _acct(3, "1-2100")
AP = _acct(4, "2-1100")
DEPOSIT = _acct(5, "2-1300")
ADVANCE = _acct(6, "1-2300")
REVENUE = _acct(7, "4-1100")
OTHER_REVENUE = _acct(8, "7-1100")
DISCOUNT = _acct(9, "4-1200")
TAX = _acct(10, "2-1600")
INVENTORY = _acct(11, "1-2600")
COGS = _acct(12, "5-1100")


def _by_role(lines):
    out = {}
    for line in lines:
        out.setdefault(line.role, []).append(line)
    return out


class TestAmountHelpers:
    def test_q2_rounds_half_up(self):
        assert q2("0.005") == Decimal("0.01")
        assert q2("2.344") == Decimal("2.34")
        assert q2(10) == Decimal("10.00")

    def test_line_amounts_discount_then_tax(self):
        amounts = line_amounts("2", "100000", "10", "11")
        assert amounts.subtotal == Decimal("200000")
        assert amounts.discount == Decimal("20000")
        assert amounts.tax == Decimal("19800")
        assert amounts.total == Decimal("199800")

    def test_document_totals_round_once(self):
        """Three lines of 0.333 tax round to 1.00 together, not 0.99."""
        doc = document_totals([line_amounts(1, "3.33", 0, 10)] * 3)
        assert doc.tax == Decimal("1.00")
        assert doc.total == doc.gross - doc.discount + doc.tax

    def test_totals_and_is_balanced(self):
        lines = [LineDraft.dr(CASH, 100), LineDraft.cr(REVENUE, 100)]
        assert totals(lines) == (Decimal("100.00"), Decimal("100.00"))
        assert is_balanced(lines)
        assert not is_balanced(lines + [LineDraft.cr(TAX, "0.01")])


class TestScaleToTotal:
    def test_under_or_exact_payment_is_unchanged(self):
        assert scale_to_total([Decimal("40000"), Decimal("60000")], Decimal("100000")) == [
            Decimal("40000.00"),
            Decimal("60000.00"),
        ]

    def test_overpayment_scales_to_target(self):
        scaled = scale_to_total([Decimal("60000"), Decimal("50000")], Decimal("100000"))
        assert sum(scaled) == Decimal("100000.00")
        assert scaled[0] > scaled[1]

    def test_residual_goes_to_largest_share(self):
        scaled = scale_to_total([Decimal("33.33"), Decimal("33.33"), Decimal("33.34")], Decimal("50"))
        assert sum(scaled) == Decimal("50.00")
        assert scaled == [Decimal("16.67"), Decimal("16.67"), Decimal("16.66")]


class TestSalesInvoiceRule:
    """Dr AR + deposit + discount / Cr revenue + tax."""

    def _doc(self):
        return document_totals([line_amounts("2", "100000", "10", "11")])

    def test_roles_follow_amounts(self):
        doc = self._doc()
        assert sales_invoice_roles(doc, 0) == ["revenue", "receivable", "discount", "tax"]
        assert "customer_deposit" in sales_invoice_roles(doc, "50000")
        assert "receivable" not in sales_invoice_roles(doc, doc.total)

    def test_lines_with_down_payment(self):
        doc = self._doc()
        lines = sales_invoice_lines(
            doc,
            Decimal("50000"),
            receivable=AR,
            revenue_parts=[(REVENUE, Decimal("200000"))],
            customer_deposit=DEPOSIT,
            discount=DISCOUNT,
            tax=TAX,
        )
        roles = _by_role(lines)

        assert is_balanced(lines)
        assert roles["receivable"][0].debit == Decimal("149800.00")
        assert roles["customer_deposit"][0].debit == Decimal("50000.00")
        assert roles["discount"][0].debit == Decimal("20000.00")
        assert roles["revenue"][0].credit == Decimal("200000.00")
        assert roles["tax"][0].credit == Decimal("19800.00")

    def test_fully_prepaid_invoice_has_no_receivable_line(self):
        doc = document_totals([line_amounts("1", "100000")])
        lines = sales_invoice_lines(
            doc,
            doc.total,
            receivable=None,
            revenue_parts=[(REVENUE, Decimal("100000"))],
            customer_deposit=DEPOSIT,
        )
        assert is_balanced(lines)
        assert "receivable" not in _by_role(lines)

    def test_revenue_is_grouped_per_account(self):
        doc = document_totals([line_amounts(1, 100), line_amounts(1, 50), line_amounts(1, 25)])
        lines = sales_invoice_lines(
            doc,
            0,
            receivable=AR,
            revenue_parts=[(REVENUE, Decimal("100")), (OTHER_REVENUE, Decimal("50")), (REVENUE, Decimal("25"))],
        )
        revenue = _by_role(lines)["revenue"]
        assert [(line.account.code, line.credit) for line in revenue] == [
            ("4-1100", Decimal("125.00")),
            ("7-1100", Decimal("50.00")),
        ]
        assert is_balanced(lines)

    def test_group_revenue_absorbs_rounding(self):
        groups = group_revenue([(REVENUE, Decimal("0.005")), (OTHER_REVENUE, Decimal("0.005"))], Decimal("0.01"))
        assert sum(amount for _, amount in groups) == Decimal("0.01")

    def test_revenue_account_for_prefers_product_account(self):
        product = SimpleNamespace(revenue_account=OTHER_REVENUE)
        assert revenue_account_for(product, REVENUE) is OTHER_REVENUE
        assert revenue_account_for(SimpleNamespace(revenue_account=None), REVENUE) is REVENUE
        assert revenue_account_for(None, REVENUE) is REVENUE


class TestPurchaseBillRule:
    def test_bill_with_supplier_advance(self):
        lines = purchase_bill_lines(
            Decimal("500000"),
            Decimal("100000"),
            inventory=INVENTORY,
            payable=AP,
            supplier_advance=ADVANCE,
        )
        roles = _by_role(lines)
        assert is_balanced(lines)
        assert roles["inventory"][0].debit == Decimal("500000.00")
        assert roles["payable"][0].credit == Decimal("400000.00")
        assert roles["supplier_advance"][0].credit == Decimal("100000.00")

    def test_roles(self):
        assert purchase_bill_roles(500, 0) == ["inventory", "payable"]
        assert purchase_bill_roles(500, 500) == ["inventory", "supplier_advance"]


class TestPaymentRules:
    def test_incoming_partial_allocation_holds_remainder_as_deposit(self):
        lines = payment_lines("incoming", "150000", "100000", cash=CASH, receivable=AR, customer_deposit=DEPOSIT)
        roles = _by_role(lines)
        assert is_balanced(lines)
        assert roles["cash"][0].debit == Decimal("150000.00")
        assert roles["receivable"][0].credit == Decimal("100000.00")
        assert roles["customer_deposit"][0].credit == Decimal("50000.00")

    def test_outgoing_fully_allocated(self):
        lines = payment_lines("outgoing", "80000", "80000", cash=CASH, payable=AP)
        assert is_balanced(lines)
        assert {line.role for line in lines} == {"payable", "cash"}

    def test_payment_roles(self):
        assert payment_roles("incoming", 100, 100) == ["receivable"]
        assert payment_roles("incoming", 100, 0) == ["customer_deposit"]
        assert payment_roles("outgoing", 100, 40) == ["payable", "supplier_advance"]

    def test_allocation_reclass(self):
        incoming = allocation_reclass_lines("incoming", "5000", receivable=AR, customer_deposit=DEPOSIT)
        outgoing = allocation_reclass_lines("outgoing", "5000", payable=AP, supplier_advance=ADVANCE)
        assert is_balanced(incoming) and is_balanced(outgoing)
        assert incoming[0].account is DEPOSIT and incoming[0].debit == Decimal("5000.00")
        assert outgoing[1].account is ADVANCE and outgoing[1].credit == Decimal("5000.00")


class TestPOSSaleRule:
    def test_split_tender_with_change(self):
        lines = pos_sale_lines(
            Decimal("100000"),
            [(CASH, Decimal("60000")), (BANK, Decimal("50000"))],
            revenue=REVENUE,
            total_cogs=Decimal("40000"),
            cogs=COGS,
            inventory=INVENTORY,
        )
        roles = _by_role(lines)
        assert is_balanced(lines)
        assert sum(line.debit for line in roles["payment"]) == Decimal("100000.00")
        assert roles["revenue"][0].credit == Decimal("100000.00")
        assert roles["cogs"][0].debit == Decimal("40000.00")
        assert roles["inventory"][0].credit == Decimal("40000.00")

    def test_cash_overpayment_debits_the_sale_not_the_tender(self):
        lines = pos_sale_lines(Decimal("85000"), [(CASH, Decimal("100000"))], revenue=REVENUE)
        roles = _by_role(lines)
        assert is_balanced(lines)
        assert roles["payment"][0].account is CASH
        assert roles["payment"][0].debit == Decimal("85000.00")
        assert roles["revenue"][0].credit == Decimal("85000.00")

    def test_cogs_skipped_when_accounts_missing(self):
        lines = pos_sale_lines(
            Decimal("15000"),
            [(CASH, Decimal("15000"))],
            revenue=REVENUE,
            total_cogs=Decimal("9000"),
            cogs=None,
            inventory=INVENTORY,
        )
        assert is_balanced(lines)
        assert "cogs" not in _by_role(lines)


class TestDepreciationAmount:
    def test_straight_line(self):
        assert depreciation_amount("straight_line", "12000000", "0", 12, "12000000") == Decimal("1000000.00")

    def test_straight_line_with_salvage(self):
        assert depreciation_amount("straight_line", "12000000", "1200000", 12, "12000000") == Decimal("900000.00")

    def test_declining_balance_uses_current_value(self):
        assert depreciation_amount("declining_balance", "12000000", "0", 24, "6000000") == Decimal("500000.00")

    def test_never_below_salvage(self):
        assert depreciation_amount("straight_line", "12000000", "1000000", 12, "1500000") == Decimal("500000.00")
        assert depreciation_amount("straight_line", "12000000", "1000000", 12, "1000000") == Decimal("0.00")

    def test_uneven_cost_finishes_in_useful_life(self):
        current, runs = Decimal("1000"), 0
        while True:
            amount = depreciation_amount("straight_line", "1000", "0", 3, current)
            if amount == 0:
                break
            current -= amount
            runs += 1
        assert runs == 3
        assert current == Decimal("0.00")

    def test_rounded_up_step_is_capped_at_the_end(self):
        assert depreciation_amount("straight_line", "2000", "0", 3, "1333.33") == Decimal("666.67")
        assert depreciation_amount("straight_line", "2000", "0", 3, "666.66") == Decimal("666.66")

    @pytest.mark.parametrize("months", [0, -1])
    def test_no_useful_life_means_nothing(self, months):
        assert depreciation_amount("straight_line", "100", "0", months, "100") == Decimal("0.00")


class TestReversal:
    def test_mirrors_every_line(self):
        original = [LineDraft.dr(CASH, 100, role="cash"), LineDraft.cr(REVENUE, 100, role="revenue")]
        mirrored = reversal_lines(original)
        assert [(line.debit, line.credit) for line in mirrored] == [
            (Decimal("0.00"), Decimal("100.00")),
            (Decimal("100.00"), Decimal("0.00")),
        ]
        assert is_balanced(mirrored)
