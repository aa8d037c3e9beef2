# assets/tests/test_depreciation.py
"""Fixed asset register, depreciation runs and the monthly task."""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from accounting.models import Account, JournalEntry
from assets.commands import dispose_asset, register_asset, run_depreciation, run_monthly_depreciation
from assets.depreciation import apply_step, schedule
from assets.models import AssetDepreciation, FixedAsset
from assets.tasks import run_monthly_depreciation_task


MONTH_ENDS = [
    date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30),
    date(2025, 5, 31), date(2025, 6, 30), date(2025, 7, 31), date(2025, 8, 31),
    date(2025, 9, 30), date(2025, 10, 31), date(2025, 11, 30), date(2025, 12, 31),
]


def _account(company, code):
    return Account.objects.get(company=company, code=code)


def _register(actor, code="AST-001", price="12000000", months=12, **kwargs):
    result = register_asset(
        actor,
        code=code,
        name="Mesin Espresso",
        purchase_date=date(2025, 1, 1),
        purchase_price=price,
        useful_life_months=months,
        category="Peralatan",
        **kwargs,
    )
    assert result.success, result.error
    return result.data


class TestSchedule:
    def test_straight_line_reaches_salvage(self):
        steps = schedule("straight_line", "1200", "200", 10)
        assert len(steps) == 10
        assert all(step.amount == Decimal("100.00") for step in steps)
        assert steps[-1].current_value == Decimal("200.00")
        assert steps[-1].fully_depreciated
        assert not steps[-2].fully_depreciated

    def test_sixty_million_over_sixty_months(self):
        steps = schedule("straight_line", "60000000", "0", 60)
        assert len(steps) == 60
        assert all(step.amount == Decimal("1000000.00") for step in steps)
        assert steps[-1].current_value == Decimal("0.00")
        assert steps[-1].fully_depreciated

    def test_uneven_cost_takes_the_residual_last(self):
        steps = schedule("straight_line", "1000", "0", 3)
        assert [step.amount for step in steps] == [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]
        assert steps[-1].fully_depreciated

    def test_declining_balance_step(self):
        step = apply_step("declining_balance", "12000000", "0", 24, "12000000", "0")
        assert step.amount == Decimal("1000000.00")
        assert step.current_value == Decimal("11000000.00")
        assert step.accumulated_depreciation == Decimal("1000000.00")

    def test_declining_balance_is_capped_by_periods(self):
        steps = schedule("declining_balance", "1000", "0", 4)
        assert len(steps) <= 12
        assert steps[0].amount == Decimal("500.00")


@pytest.mark.django_db
class TestRegisterAsset:
    def test_register(self, actor):
        asset = _register(actor)
        assert asset.status == FixedAsset.Status.ACTIVE
        assert asset.current_value == Decimal("12000000.00")
        assert asset.accumulated_depreciation == Decimal("0.00")

    def test_duplicate_code(self, actor):
        _register(actor)
        result = register_asset(actor, code="AST-001", name="X", purchase_date=date(2025, 1, 1),
                                purchase_price="100", useful_life_months=1)
        assert not result.success

    def test_salvage_above_price(self, actor):
        result = register_asset(actor, code="AST-9", name="X", purchase_date=date(2025, 1, 1),
                                purchase_price="100", useful_life_months=12, salvage_value="150")
        assert not result.success

    def test_zero_useful_life(self, actor):
        result = register_asset(actor, code="AST-9", name="X", purchase_date=date(2025, 1, 1),
                                purchase_price="100", useful_life_months=0)
        assert not result.success

    def test_unknown_method(self, actor):
        result = register_asset(actor, code="AST-9", name="X", purchase_date=date(2025, 1, 1),
                                purchase_price="100", useful_life_months=12, depreciation_method="sum_of_years")
        assert not result.success

    def test_staff_cannot_register(self, staff_actor):
        with pytest.raises(PermissionDenied):
            register_asset(staff_actor, code="AST-9", name="X", purchase_date=date(2025, 1, 1),
                           purchase_price="100", useful_life_months=12)


@pytest.mark.django_db
class TestRunDepreciation:
    def test_posts_expense_against_accumulated(self, actor, company, balance_of):
        asset = _register(actor)

        result = run_depreciation(actor, asset.id, date(2025, 1, 31))

        assert result.success, result.error
        record = result.data
        assert isinstance(record, AssetDepreciation)
        assert record.amount == Decimal("1000000.00")
        assert record.value_after == Decimal("11000000.00")
        asset.refresh_from_db()
        assert asset.current_value == Decimal("11000000.00")
        assert asset.accumulated_depreciation == Decimal("1000000.00")

        assert balance_of(_account(company, "6-2000")) == Decimal("1000000.00")
        assert balance_of(_account(company, "1-3401")) == Decimal("-1000000.00")
        entry = JournalEntry.objects.get(company=company, public_id=record.journal_entry_id)
        assert entry.reference_type == "asset_depreciation"

    def test_once_per_date(self, actor):
        asset = _register(actor)
        run_depreciation(actor, asset.id, date(2025, 1, 31))

        result = run_depreciation(actor, asset.id, date(2025, 1, 31))

        assert not result.success
        assert "already depreciated for 2025-01-31" in result.error
        assert asset.depreciations.count() == 1

    def test_date_before_purchase(self, actor):
        asset = _register(actor)
        result = run_depreciation(actor, asset.id, date(2024, 12, 31))
        assert not result.success

    def test_fully_depreciated_after_useful_life(self, actor):
        asset = _register(actor, salvage_value="1200000")
        for month_end in MONTH_ENDS:
            assert run_depreciation(actor, asset.id, month_end).success

        asset.refresh_from_db()
        assert asset.status == FixedAsset.Status.FULLY_DEPRECIATED
        assert asset.current_value == Decimal("1200000.00")
        assert asset.accumulated_depreciation == Decimal("10800000.00")

        result = run_depreciation(actor, asset.id, date(2026, 1, 31))
        assert not result.success

    def test_uneven_cost_is_done_after_useful_life(self, actor):
        asset = _register(actor, code="AST-002", price="1000", months=3)
        results = [run_depreciation(actor, asset.id, month_end) for month_end in MONTH_ENDS[:6]]

        assert [r.success for r in results] == [True, True, True, False, False, False]
        asset.refresh_from_db()
        assert asset.status == FixedAsset.Status.FULLY_DEPRECIATED
        assert asset.current_value == Decimal("0.00")
        assert asset.depreciations.count() == 3

    def test_explicit_accounts_on_asset(self, actor, company, expense_account, balance_of):
        asset = _register(actor, depreciation_expense_account_id=expense_account.id)
        run_depreciation(actor, asset.id, date(2025, 1, 31))
        assert balance_of(expense_account) == Decimal("1000000.00")
        assert balance_of(_account(company, "6-2000")) == Decimal("0.00")

    def test_dispose(self, actor):
        asset = _register(actor)

        result = dispose_asset(actor, asset.id, date(2025, 6, 1))

        assert result.success, result.error
        asset.refresh_from_db()
        assert asset.status == FixedAsset.Status.DISPOSED
        assert asset.disposal_date == date(2025, 6, 1)
        assert not run_depreciation(actor, asset.id, date(2025, 6, 30)).success
        assert not dispose_asset(actor, asset.id).success


@pytest.mark.django_db
class TestMonthlyRun:
    def test_run_skips_already_depreciated(self, actor):
        first = _register(actor, code="AST-001")
        _register(actor, code="AST-002", price="2400000", months=24)
        run_depreciation(actor, first.id, date(2025, 1, 31))

        result = run_monthly_depreciation(actor, date(2025, 1, 31))

        assert result.data == {"depreciated": ["AST-002"], "skipped": ["AST-001"], "failed": {}}

    def test_assets_bought_later_are_not_touched(self, actor):
        register_asset(actor, code="AST-LATE", name="Kulkas", purchase_date=date(2025, 3, 1),
                       purchase_price="6000000", useful_life_months=12)
        result = run_monthly_depreciation(actor, date(2025, 1, 31))
        assert result.data["depreciated"] == []

    def test_task_runs_for_every_company(self, actor, company):
        _register(actor)

        summary = run_monthly_depreciation_task("2025-01-31")

        assert summary["companies"][company.slug]["depreciated"] == ["AST-001"]
