# assets/depreciation.py
"""
Pure depreciation stepping.

apply_step() computes one period for an asset's current state; the
amount comes from accounting.posting_rules.depreciation_amount, so the
capping rule (never below salvage) lives in one place.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List

from accounting.posting_rules import depreciation_amount, q2


@dataclass(frozen=True)
class DepreciationStep:
    amount: Decimal
    current_value: Decimal
    accumulated_depreciation: Decimal
    fully_depreciated: bool


def apply_step(method, purchase_price, salvage_value, useful_life_months, current_value, accumulated) -> DepreciationStep:
    amount = depreciation_amount(method, purchase_price, salvage_value, useful_life_months, current_value)
    new_value = q2(Decimal(current_value) - amount)
    return DepreciationStep(
        amount=amount,
        current_value=new_value,
        accumulated_depreciation=q2(Decimal(accumulated) + amount),
        fully_depreciated=new_value <= q2(salvage_value),
    )


def schedule(method, purchase_price, salvage_value, useful_life_months, current_value=None, accumulated="0", max_periods=None) -> List[DepreciationStep]:
    """
    Project the remaining steps until the asset is fully depreciated or the
    period amount rounds to zero (declining balance with no salvage).
    """
    current = Decimal(purchase_price if current_value is None else current_value)
    accumulated = Decimal(accumulated)
    limit = max_periods or int(useful_life_months) * 3

    steps = []
    for _ in range(limit):
        step = apply_step(method, purchase_price, salvage_value, useful_life_months, current, accumulated)
        if step.amount <= 0:
            break
        steps.append(step)
        if step.fully_depreciated:
            break
        current = step.current_value
        accumulated = step.accumulated_depreciation
    return steps
