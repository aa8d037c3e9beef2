# accounting/posting_rules.py
"""
Document posting rules.

Each rule is a pure function from document amounts and already-resolved
accounts to a list of LineDraft. Rules never touch the database; commands
resolve accounts through accounting.registry and hand the result to
accounting.ledger.post(), which re-checks the balance.

Every rule balances by construction: posted amounts are quantized first
and derived totals are computed from the quantized parts.
"""

from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple


ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def q2(value) -> Decimal:
    """Quantize to 2dp, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class LineDraft:
    account: object
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""
    role: str = ""

    @classmethod
    def dr(cls, account, amount, description="", role=""):
        return cls(account=account, debit=q2(amount), credit=ZERO, description=description, role=role)

    @classmethod
    def cr(cls, account, amount, description="", role=""):
        return cls(account=account, debit=ZERO, credit=q2(amount), description=description, role=role)


def totals(lines: Iterable[LineDraft]) -> Tuple[Decimal, Decimal]:
    debit = ZERO
    credit = ZERO
    for line in lines:
        debit += line.debit
        credit += line.credit
    return debit, credit


def is_balanced(lines: Sequence[LineDraft]) -> bool:
    debit, credit = totals(lines)
    return debit == credit


def _nonzero(lines: List[LineDraft]) -> List[LineDraft]:
    return [line for line in lines if line.debit > 0 or line.credit > 0]


# =============================================================================
# Amount helpers
# =============================================================================

@dataclass(frozen=True)
class LineAmounts:
    """Per-line amounts at full precision."""
    subtotal: Decimal
    discount: Decimal
    after_discount: Decimal
    tax: Decimal
    total: Decimal


def line_amounts(quantity, unit_price, discount_percent=ZERO, tax_percent=ZERO) -> LineAmounts:
    subtotal = Decimal(quantity) * Decimal(unit_price)
    discount = subtotal * Decimal(discount_percent) / HUNDRED
    after_discount = subtotal - discount
    tax = after_discount * Decimal(tax_percent) / HUNDRED
    return LineAmounts(
        subtotal=subtotal,
        discount=discount,
        after_discount=after_discount,
        tax=tax,
        total=after_discount + tax,
    )


@dataclass(frozen=True)
class DocumentTotals:
    gross: Decimal
    discount: Decimal
    tax: Decimal

    @property
    def total(self) -> Decimal:
        return self.gross - self.discount + self.tax


def document_totals(amounts: Iterable[LineAmounts]) -> DocumentTotals:
    """Sum full-precision line amounts, then round each total once."""
    gross = discount = tax = Decimal("0")
    for amount in amounts:
        gross += amount.subtotal
        discount += amount.discount
        tax += amount.tax
    return DocumentTotals(gross=q2(gross), discount=q2(discount), tax=q2(tax))


def scale_to_total(amounts: Sequence[Decimal], target: Decimal) -> List[Decimal]:
    """
    Scale ``amounts`` down so they sum exactly to ``target``.

    Used when a customer over-pays: each share is amount * target / sum,
    rounded to 2dp, and the rounding residual goes to the largest share.
    Amounts already summing to at most ``target`` are returned quantized.
    """
    amounts = [Decimal(a) for a in amounts]
    target = q2(target)
    paid = sum(amounts, Decimal("0"))
    if not amounts or paid <= target:
        return [q2(a) for a in amounts]

    scaled = [q2(a * target / paid) for a in amounts]
    residual = target - sum(scaled, ZERO)
    if residual:
        largest = max(range(len(amounts)), key=lambda i: amounts[i])
        scaled[largest] += residual
    return scaled


def depreciation_amount(
    method: str,
    purchase_price,
    salvage_value,
    useful_life_months: int,
    current_value,
) -> Decimal:
    """
    One period's depreciation, capped so current value never drops below salvage.

    straight_line:     (cost - salvage) / months
    declining_balance: current_value * 2 / months
    """
    purchase_price = Decimal(purchase_price)
    salvage_value = Decimal(salvage_value)
    current_value = Decimal(current_value)
    if useful_life_months <= 0:
        return ZERO

    if method == "declining_balance":
        raw = max(current_value * 2 / Decimal(useful_life_months), Decimal("0"))
    else:
        raw = (purchase_price - salvage_value) / Decimal(useful_life_months)

    headroom = max(current_value - salvage_value, Decimal("0"))
    step = q2(min(raw, headroom))
    if method != "declining_balance":
        # Per-period rounding leaves at most a cent per month behind; the last
        # period takes it so the asset finishes in exactly useful_life_months.
        leftover = headroom - step
        if 0 < leftover < min(step, CENT * useful_life_months):
            return q2(headroom)
    return step


# =============================================================================
# Rules
# =============================================================================

def sales_invoice_roles(doc: DocumentTotals, dp_applied) -> List[str]:
    """Roles the sales-invoice rule needs for these amounts."""
    roles = ["revenue"]
    if doc.total - q2(dp_applied) > 0:
        roles.append("receivable")
    if q2(dp_applied) > 0:
        roles.append("customer_deposit")
    if doc.discount > 0:
        roles.append("discount")
    if doc.tax > 0:
        roles.append("tax")
    return roles


def group_revenue(revenue_parts: Iterable[Tuple[object, Decimal]], gross: Decimal) -> List[Tuple[object, Decimal]]:
    """
    Collapse (account, amount) pairs per account and make them sum to ``gross``.

    The rounding residual lands on the largest group.
    """
    grouped = OrderedDict()
    for account, amount in revenue_parts:
        key = getattr(account, "pk", None) or id(account)
        if key not in grouped:
            grouped[key] = [account, Decimal("0")]
        grouped[key][1] += Decimal(amount)

    groups = [(account, amount) for account, amount in grouped.values()]
    if not groups:
        return []
    rounded = [q2(amount) for _, amount in groups]
    residual = q2(gross) - sum(rounded, ZERO)
    if residual:
        largest = max(range(len(groups)), key=lambda i: groups[i][1])
        rounded[largest] += residual
    return [(groups[i][0], rounded[i]) for i in range(len(groups))]


def sales_invoice_lines(
    doc: DocumentTotals,
    dp_applied,
    *,
    receivable,
    revenue_parts: Sequence[Tuple[object, Decimal]],
    customer_deposit=None,
    discount=None,
    tax=None,
) -> List[LineDraft]:
    """
    Dr Receivable        invoice total (order total - DP applied)
    Dr Customer deposit  DP applied
    Dr Discount          total discount
        Cr Revenue       gross, per revenue account
        Cr Tax           total tax
    """
    dp_applied = q2(dp_applied)
    invoice_total = doc.total - dp_applied

    lines = [
        LineDraft.dr(receivable, invoice_total, "Accounts receivable", "receivable"),
    ]
    if dp_applied > 0:
        lines.append(LineDraft.dr(customer_deposit, dp_applied, "Down payment applied", "customer_deposit"))
    if doc.discount > 0:
        lines.append(LineDraft.dr(discount, doc.discount, "Sales discount", "discount"))
    for account, amount in group_revenue(revenue_parts, doc.gross):
        lines.append(LineDraft.cr(account, amount, "Sales revenue", "revenue"))
    if doc.tax > 0:
        lines.append(LineDraft.cr(tax, doc.tax, "Output tax", "tax"))
    return _nonzero(lines)


def purchase_bill_roles(order_total, dp_applied) -> List[str]:
    roles = ["inventory"]
    if q2(order_total) - q2(dp_applied) > 0:
        roles.append("payable")
    if q2(dp_applied) > 0:
        roles.append("supplier_advance")
    return roles


def purchase_bill_lines(order_total, dp_applied, *, inventory, payable, supplier_advance=None) -> List[LineDraft]:
    """
    Dr Inventory              order total
        Cr Payable            bill total (order total - DP applied)
        Cr Supplier advance   DP applied
    """
    order_total = q2(order_total)
    dp_applied = q2(dp_applied)
    lines = [
        LineDraft.dr(inventory, order_total, "Inventory purchased", "inventory"),
        LineDraft.cr(payable, order_total - dp_applied, "Accounts payable", "payable"),
    ]
    if dp_applied > 0:
        lines.append(LineDraft.cr(supplier_advance, dp_applied, "Down payment applied", "supplier_advance"))
    return _nonzero(lines)


def pos_sale_lines(
    grand_total,
    payments: Sequence[Tuple[object, Decimal]],
    *,
    revenue,
    total_cogs=ZERO,
    cogs=None,
    inventory=None,
) -> List[LineDraft]:
    """
    Dr <payment method account>  per payment, scaled to the grand total
        Cr Revenue               grand total
    Dr COGS                      total cost   (only when both accounts exist)
        Cr Inventory             total cost
    """
    grand_total = q2(grand_total)
    debits = scale_to_total([amount for _, amount in payments], grand_total)

    lines = [
        LineDraft.dr(account, amount, "POS payment", "payment")
        for (account, _), amount in zip(payments, debits)
    ]
    lines.append(LineDraft.cr(revenue, grand_total, "POS sales", "revenue"))

    total_cogs = q2(total_cogs)
    if total_cogs > 0 and cogs is not None and inventory is not None:
        lines.append(LineDraft.dr(cogs, total_cogs, "Cost of goods sold", "cogs"))
        lines.append(LineDraft.cr(inventory, total_cogs, "Inventory issued", "inventory"))
    return _nonzero(lines)


def depreciation_lines(amount, *, expense, accumulated) -> List[LineDraft]:
    return _nonzero([
        LineDraft.dr(expense, amount, "Depreciation expense", "depreciation_expense"),
        LineDraft.cr(accumulated, amount, "Accumulated depreciation", "accumulated_depreciation"),
    ])


def sales_down_payment_lines(amount, *, cash, customer_deposit) -> List[LineDraft]:
    return _nonzero([
        LineDraft.dr(cash, amount, "Down payment received", "cash"),
        LineDraft.cr(customer_deposit, amount, "Customer deposit", "customer_deposit"),
    ])


def purchase_down_payment_lines(amount, *, cash, supplier_advance) -> List[LineDraft]:
    return _nonzero([
        LineDraft.dr(supplier_advance, amount, "Supplier advance", "supplier_advance"),
        LineDraft.cr(cash, amount, "Down payment paid", "cash"),
    ])


def payment_roles(payment_type: str, amount, allocated) -> List[str]:
    remainder = q2(amount) - q2(allocated)
    if payment_type == "incoming":
        roles = ["receivable"] if q2(allocated) > 0 else []
        if remainder > 0:
            roles.append("customer_deposit")
    else:
        roles = ["payable"] if q2(allocated) > 0 else []
        if remainder > 0:
            roles.append("supplier_advance")
    return roles


def payment_lines(
    payment_type: str,
    amount,
    allocated,
    *,
    cash,
    receivable=None,
    payable=None,
    customer_deposit=None,
    supplier_advance=None,
) -> List[LineDraft]:
    """
    incoming: Dr Cash amount / Cr Receivable allocated / Cr Customer deposit remainder
    outgoing: Dr Payable allocated / Dr Supplier advance remainder / Cr Cash amount
    """
    amount = q2(amount)
    allocated = q2(allocated)
    remainder = amount - allocated

    if payment_type == "incoming":
        lines = [
            LineDraft.dr(cash, amount, "Payment received", "cash"),
            LineDraft.cr(receivable, allocated, "Receivable settled", "receivable"),
            LineDraft.cr(customer_deposit, remainder, "Unallocated customer payment", "customer_deposit"),
        ]
    else:
        lines = [
            LineDraft.dr(payable, allocated, "Payable settled", "payable"),
            LineDraft.dr(supplier_advance, remainder, "Unallocated supplier payment", "supplier_advance"),
            LineDraft.cr(cash, amount, "Payment made", "cash"),
        ]
    return _nonzero(lines)


def allocation_reclass_lines(
    payment_type: str,
    amount,
    *,
    receivable=None,
    payable=None,
    customer_deposit=None,
    supplier_advance=None,
) -> List[LineDraft]:
    """Move a previously unallocated payment onto the documents it now settles."""
    if payment_type == "incoming":
        return _nonzero([
            LineDraft.dr(customer_deposit, amount, "Deposit applied", "customer_deposit"),
            LineDraft.cr(receivable, amount, "Receivable settled", "receivable"),
        ])
    return _nonzero([
        LineDraft.dr(payable, amount, "Payable settled", "payable"),
        LineDraft.cr(supplier_advance, amount, "Advance applied", "supplier_advance"),
    ])


def reversal_lines(lines: Iterable[LineDraft]) -> List[LineDraft]:
    """Mirror every line: debits become credits and vice versa."""
    return [
        LineDraft(
            account=line.account,
            debit=line.credit,
            credit=line.debit,
            description=line.description,
            role=line.role,
        )
        for line in lines
    ]


def revenue_account_for(product, default_revenue) -> Optional[object]:
    explicit = getattr(product, "revenue_account", None) if product is not None else None
    return explicit or default_revenue
