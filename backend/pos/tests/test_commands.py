# pos/tests/test_commands.py
"""
Till commands: payment methods, cash sessions, sales and deposits.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from accounting.models import Account, JournalEntry
from inventory.commands import available_quantity
from pos.commands import (
    close_cash_session,
    complete_sale,
    create_payment_method,
    open_cash_session,
    receive_pos_deposit,
    session_summary,
)
from pos.models import CashSession, PaymentMethod, POSTransaction


def _account(company, code):
    return Account.objects.get(company=company, code=code)


@pytest.fixture
def session(actor):
    result = open_cash_session(actor, opening_balance="100000")
    assert result.success, result.error
    return result.data


def _sell(actor, product, payments, ref="till-1-0001", quantity="2", **kwargs):
    return complete_sale(
        actor,
        items=[{"product_id": product.id, "quantity": quantity}],
        payments=[{"payment_method_id": method.id, "amount": amount} for method, amount in payments],
        client_reference=ref,
        **kwargs,
    )


@pytest.mark.django_db
class TestPaymentMethods:
    def test_cash_flag_guessed_from_name(self, cash_method, card_method):
        assert cash_method.is_cash is True
        assert card_method.is_cash is False

    def test_explicit_flag_wins(self, actor, bank_account):
        method = create_payment_method(actor, name="QRIS", account_id=bank_account.id, is_cash=False).data
        assert method.is_cash is False

    def test_account_must_be_cash_or_bank(self, actor, revenue_account):
        result = create_payment_method(actor, name="Voucher", account_id=revenue_account.id)
        assert not result.success
        assert "not a cash/bank account" in result.error

    def test_header_account_is_refused(self, actor, company):
        header = _account(company, "1-1000")
        result = create_payment_method(actor, name="Kas Besar", account_id=header.id)
        assert not result.success
        assert "cannot receive postings" in result.error

    def test_duplicate_name(self, actor, cash_method, cash_account):
        result = create_payment_method(actor, name="Cash", account_id=cash_account.id)
        assert not result.success

    def test_staff_cannot_manage_methods(self, staff_actor, cash_account):
        with pytest.raises(PermissionDenied):
            create_payment_method(staff_actor, name="Tunai", account_id=cash_account.id)


@pytest.mark.django_db
class TestCashSessions:
    def test_only_one_open_session(self, actor, session):
        result = open_cash_session(actor, opening_balance="0")
        assert not result.success
        assert "still open" in result.error

    def test_negative_opening_is_refused(self, actor):
        assert not open_cash_session(actor, opening_balance="-1").success

    def test_close_reports_shortage(self, actor, session, product, cash_method, card_method):
        _sell(actor, product, [(cash_method, "50000")], ref="r-1")
        _sell(actor, product, [(card_method, "15000")], ref="r-2", quantity="1")

        result = close_cash_session(actor, session.id, closing_balance="125000", notes="Kurang 5rb")

        assert result.success, result.error
        session.refresh_from_db()
        assert session.status == CashSession.Status.CLOSED
        assert session.expected_balance == Decimal("130000.00")
        assert session.difference == Decimal("-5000.00")
        assert session.closed_by == actor.user

    def test_closed_session_cannot_close_again(self, actor, session):
        close_cash_session(actor, session.id, closing_balance="100000")
        result = close_cash_session(actor, session.id, closing_balance="100000")
        assert not result.success

    def test_new_session_after_close(self, actor, session):
        close_cash_session(actor, session.id, closing_balance="100000")
        assert open_cash_session(actor).success

    def test_summary(self, actor, session, product, cash_method, card_method):
        _sell(actor, product, [(cash_method, "50000")], ref="r-1")
        _sell(actor, product, [(card_method, "15000")], ref="r-2", quantity="1")

        summary = session_summary(actor.company, session)

        assert summary["transaction_count"] == 2
        assert summary["total_amount"] == "45000.00"
        assert summary["expected_cash"] == "130000.00"
        assert {row["method"]: row["amount"] for row in summary["payments"]} == {
            "Cash": "30000.00",
            "Debit BCA": "15000.00",
        }

    def test_change_on_mixed_tender_comes_out_of_the_drawer(self, actor, session, product, cash_method, card_method):
        # 30000 sale paid 20000 by card and 20000 in cash: 10000 change leaves 10000 in the drawer
        result = _sell(actor, product, [(card_method, "20000"), (cash_method, "20000")])
        assert result.success, result.error
        txn = result.data
        assert txn.change_amount == Decimal("10000.00")
        assert sum(p.amount for p in txn.payments.all()) == Decimal("30000.00")
        assert txn.payments.get(payment_method=cash_method).tendered == Decimal("20000.00")

        summary = session_summary(actor.company, session)
        assert summary["expected_cash"] == "110000.00"
        assert summary["change_given"] == "10000.00"

        closed = close_cash_session(actor, session.id, closing_balance="110000")
        assert closed.success, closed.error
        session.refresh_from_db()
        assert session.expected_balance == Decimal("110000.00")
        assert session.difference == Decimal("0.00")

    def test_staff_can_run_the_till(self, staff_actor):
        assert open_cash_session(staff_actor, opening_balance="50000").success


@pytest.mark.django_db
class TestCompleteSale:
    def test_cash_sale_with_change(self, actor, company, session, product, cash_method, balance_of):
        result = _sell(actor, product, [(cash_method, "50000")])

        assert result.success, result.error
        txn = result.data
        assert txn.total_amount == Decimal("30000.00")
        assert txn.amount_paid == Decimal("50000.00")
        assert txn.change_amount == Decimal("20000.00")
        assert txn.total_cogs == Decimal("18000.00")
        assert txn.session == session
        assert txn.payments.get().amount == Decimal("30000.00")

        assert balance_of(_account(company, "1-1001")) == Decimal("30000.00")
        assert balance_of(_account(company, "4-1100")) == Decimal("30000.00")
        assert balance_of(_account(company, "5-1100")) == Decimal("18000.00")
        assert balance_of(_account(company, "1-2600")) == Decimal("-18000.00")

        entry = JournalEntry.objects.get(company=company, public_id=txn.journal_entry_id)
        assert entry.reference_type == "pos_transaction"

    def test_split_tender_debits_are_scaled(self, actor, company, session, product, cash_method, card_method, balance_of):
        result = _sell(actor, product, [(cash_method, "20000"), (card_method, "20000")])

        assert result.success, result.error
        assert sorted(p.amount for p in result.data.payments.all()) == [Decimal("15000.00"), Decimal("15000.00")]
        assert balance_of(_account(company, "1-1001")) == Decimal("15000.00")
        assert balance_of(_account(company, "1-1100")) == Decimal("15000.00")

    def test_same_client_reference_returns_same_sale(self, actor, session, product, cash_method):
        first = _sell(actor, product, [(cash_method, "30000")])
        second = _sell(actor, product, [(cash_method, "30000")])

        assert second.success
        assert second.data.pk == first.data.pk
        assert POSTransaction.objects.filter(company=actor.company).count() == 1

    def test_no_open_session(self, actor, product, cash_method):
        result = _sell(actor, product, [(cash_method, "30000")])
        assert not result.success
        assert "No open cash session" in result.error

    def test_selling_without_session_when_not_required(self, actor, product, cash_method, settings):
        settings.POS_REQUIRE_OPEN_SESSION = False
        result = _sell(actor, product, [(cash_method, "30000")])
        assert result.success, result.error
        assert result.data.session is None

    def test_underpayment(self, actor, session, product, cash_method):
        result = _sell(actor, product, [(cash_method, "20000")])
        assert not result.success
        assert "less than amount due" in result.error

    def test_stock_is_issued_from_warehouse(self, actor, session, product, main_warehouse, stock_in, cash_method):
        stock_in(product, main_warehouse, "10")

        result = _sell(actor, product, [(cash_method, "30000")], warehouse_id=main_warehouse.id)

        assert result.success, result.error
        assert available_quantity(product, main_warehouse) == Decimal("8")

    def test_insufficient_stock_rolls_back_the_sale(self, actor, company, session, product, main_warehouse, stock_in, cash_method, balance_of):
        stock_in(product, main_warehouse, "1")

        result = _sell(actor, product, [(cash_method, "30000")], warehouse_id=main_warehouse.id)

        assert not result.success
        assert "Insufficient stock" in result.error
        assert not POSTransaction.objects.filter(company=company).exists()
        assert available_quantity(product, main_warehouse) == Decimal("1")
        assert balance_of(_account(company, "1-1001")) == Decimal("0.00")

    def test_unknown_payment_method(self, actor, session, product):
        result = complete_sale(
            actor,
            items=[{"product_id": product.id, "quantity": "1"}],
            payments=[{"payment_method_id": PaymentMethod.objects.count() + 100, "amount": "15000"}],
            client_reference="x-1",
        )
        assert not result.success
        assert "payment method not found" in result.error

    def test_viewer_cannot_sell(self, viewer_actor, product, cash_method):
        with pytest.raises(PermissionDenied):
            _sell(viewer_actor, product, [(cash_method, "30000")])


@pytest.mark.django_db
class TestDeposits:
    def test_deposit_posts_to_customer_deposit(self, actor, company, cash_method, balance_of):
        result = receive_pos_deposit(
            actor,
            customer_name="Ibu Sari",
            deposit_amount="500000",
            payment_method_id=cash_method.id,
            total_estimated="2000000",
            event_name="Arisan",
        )

        assert result.success, result.error
        deposit = result.data
        assert deposit.remaining_amount == Decimal("1500000.00")
        assert deposit.number.startswith("DEP-")
        assert balance_of(_account(company, "2-1300")) == Decimal("500000.00")
        assert balance_of(_account(company, "1-1001")) == Decimal("500000.00")

    def test_deposit_needs_a_customer(self, actor, cash_method):
        result = receive_pos_deposit(actor, customer_name="", deposit_amount="1000", payment_method_id=cash_method.id)
        assert not result.success

    def test_deposit_must_be_positive(self, actor, cash_method):
        result = receive_pos_deposit(actor, customer_name="Budi", deposit_amount="0", payment_method_id=cash_method.id)
        assert not result.success
