# tests/test_write_barrier.py
"""
Tests for write barrier enforcement.

Command-owned write models only save inside command_writes_allowed();
projection-owned read models only inside projection_writes_allowed().
"""

from decimal import Decimal

import pytest

from accounting.models import CompanySequence
from inventory.models import Product
from projections.models import AccountBalance
from projections.write_barrier import (
    command_writes_allowed,
    current_write_context,
    projection_writes_allowed,
)


@pytest.mark.django_db
def test_command_model_save_outside_context_raises(settings, company):
    settings.TESTING = False

    with pytest.raises(RuntimeError, match="command_writes_allowed"):
        CompanySequence.objects.create(company=company, name="barrier_check")

    with command_writes_allowed():
        seq = CompanySequence.objects.create(company=company, name="barrier_check")

    assert seq.company_id == company.id


@pytest.mark.django_db
def test_document_update_outside_context_raises(settings, product):
    settings.TESTING = False

    product.unit_price = Decimal("1")
    with pytest.raises(RuntimeError, match="command-owned write model"):
        product.save()

    assert Product.objects.get(pk=product.pk).unit_price == Decimal("15000.00")


@pytest.mark.django_db
def test_projection_context_does_not_open_command_models(settings, company):
    settings.TESTING = False

    with projection_writes_allowed():
        with pytest.raises(RuntimeError):
            CompanySequence.objects.create(company=company, name="wrong_context")


@pytest.mark.django_db
def test_read_model_save_outside_projection_raises(settings, company, cash_account):
    settings.TESTING = False

    with command_writes_allowed():
        with pytest.raises(RuntimeError, match="projection-owned read model"):
            AccountBalance.objects.create(company=company, account=cash_account)


def test_contexts_nest_and_unwind():
    assert current_write_context() is None
    with command_writes_allowed():
        with projection_writes_allowed():
            assert current_write_context() == "projection"
        assert current_write_context() == "command"
    assert current_write_context() is None
