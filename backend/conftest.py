# conftest.py
"""
Pytest fixtures shared by every app's tests.

The company fixture goes through create_company(), so each test starts
with the trading chart of accounts seeded and every posting role mapped.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model

from accounts.authz import actor_for
from accounts.commands import add_user_to_company, create_company
from accounting.models import Account


User = get_user_model()


@pytest.fixture(autouse=True, scope="session")
def _testing_settings():
    """Read-model guards and event validation follow the test settings."""
    settings.TESTING = True
    settings.DISABLE_EVENT_VALIDATION = True
    settings.PROJECTIONS_SYNC = True


# =============================================================================
# Company & User Fixtures
# =============================================================================

@pytest.fixture
def user(db):
    """The company owner."""
    return User.objects.create_user(
        email="owner@test.com",
        password="testpass123",
        name="Test Owner",
    )


@pytest.fixture
def company(db, user):
    """A trading company with the default chart and role mappings."""
    result = create_company(user, "Test Co")
    assert result.success, result.error
    return result.data["company"]


@pytest.fixture
def actor(user, company):
    """ActorContext for the owner."""
    return actor_for(user, company)


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        email="staff@test.com",
        password="testpass123",
        name="Test Staff",
    )


@pytest.fixture
def staff_actor(actor, staff_user):
    """ActorContext for a USER-role member of the same company."""
    result = add_user_to_company(actor, staff_user.id, role="USER")
    assert result.success, result.error
    return actor_for(staff_user, actor.company)


@pytest.fixture
def viewer_actor(actor, db):
    viewer = User.objects.create_user(
        email="viewer@test.com",
        password="testpass123",
        name="Test Viewer",
    )
    result = add_user_to_company(actor, viewer.id, role="VIEWER")
    assert result.success, result.error
    return actor_for(viewer, actor.company)


@pytest.fixture
def other_actor(db):
    """Owner of a second, unrelated company."""
    other = User.objects.create_user(
        email="other@test.com",
        password="testpass123",
        name="Other Owner",
    )
    result = create_company(other, "Other Co")
    assert result.success, result.error
    return actor_for(other, result.data["company"])


# =============================================================================
# Account Fixtures
# =============================================================================

def _account(company, code):
    return Account.objects.get(company=company, code=code)


@pytest.fixture
def cash_account(company):
    return _account(company, "1-1001")


@pytest.fixture
def bank_account(company):
    return _account(company, "1-1100")


@pytest.fixture
def receivable_account(company):
    return _account(company, "1-2100")


@pytest.fixture
def payable_account(company):
    return _account(company, "2-1100")


@pytest.fixture
def revenue_account(company):
    return _account(company, "4-1100")


@pytest.fixture
def expense_account(company):
    return _account(company, "6-1200")


@pytest.fixture
def capital_account(company):
    return _account(company, "3-1100")


@pytest.fixture
def balance_of():
    """Projected balance of an account, zero when nothing was posted."""
    from projections.models import AccountBalance

    def _balance(account):
        row = AccountBalance.objects.filter(account=account).first()
        return row.balance if row else Decimal("0.00")

    return _balance


# =============================================================================
# Inventory & POS Fixtures
# =============================================================================

@pytest.fixture
def product(actor):
    from inventory.commands import create_product

    result = create_product(actor, sku="SKU-001", name="Kopi Bubuk", unit_price="15000", cost_price="9000")
    assert result.success, result.error
    return result.data


@pytest.fixture
def second_product(actor):
    from inventory.commands import create_product

    result = create_product(actor, sku="SKU-002", name="Teh Celup", unit_price="8000", cost_price="5000")
    assert result.success, result.error
    return result.data


@pytest.fixture
def main_warehouse(actor):
    """Main warehouse; the owner is its person in charge."""
    from inventory.commands import create_warehouse

    result = create_warehouse(actor, code="WH-MAIN", name="Gudang Utama", pic_user_id=actor.user.id)
    assert result.success, result.error
    return result.data


@pytest.fixture
def store_warehouse(actor, staff_actor):
    """Store warehouse; the staff member is its person in charge."""
    from inventory.commands import create_warehouse

    result = create_warehouse(actor, code="WH-TOKO", name="Gudang Toko", pic_user_id=staff_actor.user.id)
    assert result.success, result.error
    return result.data


@pytest.fixture
def stock_in(actor):
    """Put opening stock into a warehouse."""
    from django.db import transaction

    from inventory.commands import record_movement
    from inventory.models import StockMovement

    def _stock_in(product, warehouse, quantity):
        with transaction.atomic():
            return record_movement(
                actor,
                product,
                warehouse,
                Decimal(quantity),
                StockMovement.Reason.GOODS_RECEIPT,
                reference_type="opening",
            )

    return _stock_in


@pytest.fixture
def cash_method(actor, cash_account):
    from pos.commands import create_payment_method

    result = create_payment_method(actor, name="Cash", account_id=cash_account.id)
    assert result.success, result.error
    return result.data


@pytest.fixture
def card_method(actor, bank_account):
    from pos.commands import create_payment_method

    result = create_payment_method(actor, name="Debit BCA", account_id=bank_account.id)
    assert result.success, result.error
    return result.data


# =============================================================================
# Misc
# =============================================================================

@pytest.fixture
def today():
    return date(2025, 3, 15)


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    """Create a DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user, company):
    """API client logged in as the owner, with the test company active."""
    user.refresh_from_db()
    api_client.force_authenticate(user=user)
    return api_client
