# pos/engine.py
"""
POS cart arithmetic.

Line amounts keep full precision; the cart total is rounded down to the
whole currency unit and the dropped fraction is reported as rounding.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import List, Sequence, Tuple

from accounting.posting_rules import line_amounts, q2, scale_to_total


class PaymentShortfall(Exception):
    def __init__(self, total_paid, amount_due):
        self.total_paid = total_paid
        self.amount_due = amount_due
        super().__init__(f"Payment {total_paid} is less than amount due {amount_due}.")


@dataclass(frozen=True)
class CartLine:
    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal
    tax_percent: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    raw_total: Decimal
    rounded_total: Decimal
    rounding_amount: Decimal


@dataclass(frozen=True)
class Settlement:
    total_paid: Decimal
    change: Decimal


def compute_line(quantity, unit_price, discount_percent=0, tax_percent=0) -> CartLine:
    amounts = line_amounts(quantity, unit_price, discount_percent, tax_percent)
    return CartLine(
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        discount_percent=Decimal(discount_percent),
        tax_percent=Decimal(tax_percent),
        subtotal=amounts.subtotal,
        discount_amount=amounts.discount,
        tax_amount=amounts.tax,
        total=amounts.total,
    )


def compute_cart(lines: Sequence[CartLine]) -> CartTotals:
    subtotal = sum((line.subtotal for line in lines), Decimal("0"))
    discount = sum((line.discount_amount for line in lines), Decimal("0"))
    tax = sum((line.tax_amount for line in lines), Decimal("0"))
    raw_total = sum((line.total for line in lines), Decimal("0"))
    rounded = raw_total.to_integral_value(rounding=ROUND_FLOOR)
    return CartTotals(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        raw_total=raw_total,
        rounded_total=rounded,
        rounding_amount=raw_total - rounded,
    )


def settle(totals: CartTotals, payments: Sequence) -> Settlement:
    """
    Raises:
        PaymentShortfall: the payments do not cover the rounded total
    """
    total_paid = sum((Decimal(p) for p in payments), Decimal("0"))
    if total_paid < totals.rounded_total:
        raise PaymentShortfall(total_paid, totals.rounded_total)
    return Settlement(total_paid=q2(total_paid), change=q2(total_paid - totals.rounded_total))


def apportion_payments(grand_total, payments: Sequence[Tuple[object, Decimal]]) -> List[Tuple[object, Decimal]]:
    """
    Ledger debit per payment method once change is given back.

    When the customer over-pays, every payment is scaled by
    grand_total / total_paid; the rounding residual goes to the largest
    payment so the debits sum to grand_total exactly.
    """
    scaled = scale_to_total([amount for _, amount in payments], grand_total)
    return [(method, amount) for (method, _), amount in zip(payments, scaled)]
