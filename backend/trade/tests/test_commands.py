# trade/tests/test_commands.py
"""
Sales and purchase document commands: orders, down payments, invoices,
bills, payments and allocations, checked against the posted ledger.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from accounting.models import Account, AccountRoleMapping, JournalEntry
from accounting.commands import trial_balance
from trade.commands import (
    allocate_payment,
    cancel_bill,
    cancel_invoice,
    cancel_order,
    confirm_order,
    create_purchase_order,
    create_sales_order,
    generate_bill,
    generate_invoice,
    mark_overdue_invoices,
    payables_aging,
    receivables_aging,
    record_down_payment,
    record_payment,
)
from trade.models import Invoice, InvoiceStatus, OrderStatus, Payment


ORDER_DATE = date(2025, 3, 1)
INVOICE_DATE = date(2025, 3, 5)


def _account(company, code):
    return Account.objects.get(company=company, code=code)


@pytest.fixture
def sales_order(actor, product):
    """2 x 100,000 less 10% plus 11% tax = 199,800."""
    result = create_sales_order(
        actor,
        party_name="PT Maju Jaya",
        order_date=ORDER_DATE,
        lines=[{
            "product_id": product.id,
            "quantity": "2",
            "unit_price": "100000",
            "discount_percent": "10",
            "tax_percent": "11",
        }],
    )
    assert result.success, result.error
    return result.data


@pytest.fixture
def confirmed_order(actor, sales_order):
    assert confirm_order(actor, "sales", sales_order.id).success
    sales_order.refresh_from_db()
    return sales_order


@pytest.fixture
def invoice(actor, confirmed_order):
    result = generate_invoice(actor, confirmed_order.id, invoice_date=INVOICE_DATE, due_days=30)
    assert result.success, result.error
    return result.data


@pytest.fixture
def purchase_order(actor, product):
    result = create_purchase_order(
        actor,
        party_name="CV Sumber Makmur",
        order_date=ORDER_DATE,
        lines=[{"product_id": product.id, "quantity": "50"}],
    )
    assert result.success, result.error
    return result.data


def _pay(actor, amount, allocations=None, payment_type="incoming", on_date=date(2025, 3, 20)):
    return record_payment(
        actor,
        payment_type,
        party_name="PT Maju Jaya",
        amount=amount,
        allocations=allocations,
        on_date=on_date,
    )


@pytest.mark.django_db
class TestOrders:
    def test_create_sales_order_computes_totals(self, sales_order):
        assert sales_order.status == OrderStatus.DRAFT
        assert sales_order.number == "SO-202503-0001"
        assert sales_order.subtotal == Decimal("200000.00")
        assert sales_order.discount_amount == Decimal("20000.00")
        assert sales_order.tax_amount == Decimal("19800.00")
        assert sales_order.total_amount == Decimal("199800.00")
        assert sales_order.lines.count() == 1

    def test_purchase_price_defaults_to_cost(self, purchase_order):
        line = purchase_order.lines.get()
        assert line.unit_price == Decimal("9000.00")
        assert purchase_order.total_amount == Decimal("450000.00")

    def test_order_needs_lines(self, actor):
        result = create_sales_order(actor, party_name="PT X", order_date=ORDER_DATE, lines=[])
        assert not result.success

    def test_discount_above_hundred_is_refused(self, actor, product):
        result = create_sales_order(
            actor,
            party_name="PT X",
            order_date=ORDER_DATE,
            lines=[{"product_id": product.id, "quantity": "1", "discount_percent": "120"}],
        )
        assert not result.success
        assert "discount" in result.error

    def test_cancel_draft_order(self, actor, sales_order):
        result = cancel_order(actor, "sales", sales_order.id)
        assert result.success
        sales_order.refresh_from_db()
        assert sales_order.status == OrderStatus.CANCELLED

    def test_cancelled_order_cannot_be_confirmed(self, actor, sales_order):
        cancel_order(actor, "sales", sales_order.id)
        result = confirm_order(actor, "sales", sales_order.id)
        assert not result.success

    def test_viewer_cannot_create_orders(self, viewer_actor, product):
        with pytest.raises(PermissionDenied):
            create_sales_order(viewer_actor, party_name="PT X", order_date=ORDER_DATE, lines=[{"product_id": product.id, "quantity": "1"}])


@pytest.mark.django_db
class TestSalesInvoice:
    def test_invoice_posts_receivable_revenue_discount_and_tax(self, actor, company, invoice, balance_of):
        assert invoice.number == "INV-202503-0001"
        assert invoice.status == InvoiceStatus.SENT
        assert invoice.total_amount == Decimal("199800.00")
        assert invoice.outstanding_amount == Decimal("199800.00")
        assert invoice.due_date == date(2025, 4, 4)
        assert invoice.sales_order.status == OrderStatus.INVOICED

        entry = JournalEntry.objects.get(company=company, public_id=invoice.journal_entry_id)
        assert entry.reference_type == "invoice"
        assert entry.reference_id == str(invoice.public_id)

        assert balance_of(_account(company, "1-2100")) == Decimal("199800.00")
        assert balance_of(_account(company, "4-1100")) == Decimal("200000.00")
        assert balance_of(_account(company, "4-1200")) == Decimal("-20000.00")
        assert balance_of(_account(company, "2-1600")) == Decimal("19800.00")
        assert trial_balance(company)["is_balanced"]

    def test_second_generate_returns_existing_invoice(self, actor, invoice):
        again = generate_invoice(actor, invoice.sales_order_id)
        assert again.success
        assert again.data.pk == invoice.pk
        assert Invoice.objects.filter(company=actor.company).count() == 1

    def test_draft_order_cannot_be_invoiced(self, actor, sales_order):
        result = generate_invoice(actor, sales_order.id)
        assert not result.success
        assert "draft" in result.error

    def test_missing_tax_role_writes_nothing(self, actor, company, confirmed_order):
        AccountRoleMapping.objects.filter(company=company, role="tax").delete()

        result = generate_invoice(actor, confirmed_order.id, invoice_date=INVOICE_DATE)

        assert not result.success
        assert "tax" in result.error
        assert not Invoice.objects.filter(company=company).exists()
        confirmed_order.refresh_from_db()
        assert confirmed_order.status == OrderStatus.CONFIRMED

    def test_product_revenue_account_is_used(self, actor, company, product, confirmed_order, balance_of):
        other_revenue = _account(company, "7-1100")
        product.revenue_account = other_revenue
        product.save()

        generate_invoice(actor, confirmed_order.id, invoice_date=INVOICE_DATE)

        assert balance_of(other_revenue) == Decimal("200000.00")
        assert balance_of(_account(company, "4-1100")) == Decimal("0.00")


@pytest.mark.django_db
class TestCancelInvoice:
    def test_cancel_reverses_entry_and_reopens_order(self, actor, company, invoice, balance_of):
        result = cancel_invoice(actor, invoice.id, reason="Salah harga")

        assert result.success, result.error
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.sales_order.status == OrderStatus.CONFIRMED
        original = JournalEntry.objects.get(company=company, public_id=invoice.journal_entry_id)
        assert original.status == JournalEntry.Status.REVERSED
        assert balance_of(_account(company, "1-2100")) == Decimal("0.00")

    def test_order_can_be_invoiced_again(self, actor, invoice):
        cancel_invoice(actor, invoice.id)
        result = generate_invoice(actor, invoice.sales_order_id, invoice_date=date(2025, 3, 6))
        assert result.success, result.error
        assert result.data.pk != invoice.pk

    def test_paid_invoice_cannot_be_cancelled(self, actor, invoice):
        _pay(actor, "50000", [{"document_id": invoice.id, "amount": "50000"}])
        result = cancel_invoice(actor, invoice.id)
        assert not result.success
        assert "payments allocated" in result.error

    def test_cancelled_invoice_leaves_aging(self, actor, invoice):
        cancel_invoice(actor, invoice.id)
        report = receivables_aging(actor.company, as_of=date(2025, 6, 30))
        assert report.total == Decimal("0.00")


@pytest.mark.django_db
class TestIncomingPayments:
    def test_partial_then_full_payment(self, actor, company, invoice, balance_of):
        first = _pay(actor, "100000", [{"document_id": invoice.id, "amount": "100000"}])
        assert first.success, first.error
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PARTIAL
        assert invoice.paid_amount == Decimal("100000.00")
        assert invoice.outstanding_amount == Decimal("99800.00")

        second = _pay(actor, "99800", [{"document_id": invoice.id, "amount": "99800"}])
        assert second.success, second.error
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.outstanding_amount == Decimal("0.00")
        assert invoice.sales_order.status == OrderStatus.PAID

        assert balance_of(_account(company, "1-2100")) == Decimal("0.00")
        assert balance_of(_account(company, "1-1001")) == Decimal("199800.00")

    def test_allocation_above_outstanding_is_refused(self, actor, invoice):
        result = _pay(actor, "300000", [{"document_id": invoice.id, "amount": "250000"}])
        assert not result.success
        assert "exceeds outstanding" in result.error
        assert not Payment.objects.filter(company=actor.company).exists()

    def test_allocations_above_payment_amount_are_refused(self, actor, invoice):
        result = _pay(actor, "50000", [{"document_id": invoice.id, "amount": "60000"}])
        assert not result.success
        assert "exceeds the available payment amount" in result.error

    def test_two_allocations_to_one_invoice_accumulate(self, actor, invoice):
        result = _pay(actor, "150000", [
            {"document_id": invoice.id, "amount": "100000"},
            {"document_id": invoice.id, "amount": "50000"},
        ])
        assert result.success, result.error
        invoice.refresh_from_db()
        assert invoice.outstanding_amount == Decimal("49800.00")
        assert invoice.paid_amount + invoice.outstanding_amount == invoice.total_amount

    def test_unallocated_payment_is_held_as_customer_deposit(self, actor, company, invoice, balance_of):
        payment = _pay(actor, "300000").data
        deposit = _account(company, "2-1300")
        assert payment.allocated_amount == Decimal("0.00")
        assert balance_of(deposit) == Decimal("300000.00")

        result = allocate_payment(
            actor,
            payment.id,
            [{"document_id": invoice.id, "amount": "199800"}],
            on_date=date(2025, 3, 21),
        )

        assert result.success, result.error
        payment.refresh_from_db()
        invoice.refresh_from_db()
        assert payment.unallocated_amount == Decimal("100200.00")
        assert invoice.status == InvoiceStatus.PAID
        assert balance_of(deposit) == Decimal("100200.00")
        assert balance_of(_account(company, "1-2100")) == Decimal("0.00")

    def test_allocate_more_than_unallocated_is_refused(self, actor, invoice):
        payment = _pay(actor, "1000").data
        result = allocate_payment(actor, payment.id, [{"document_id": invoice.id, "amount": "2000"}])
        assert not result.success

    def test_payment_to_cancelled_invoice_is_refused(self, actor, invoice):
        cancel_invoice(actor, invoice.id)
        result = _pay(actor, "1000", [{"document_id": invoice.id, "amount": "1000"}])
        assert not result.success
        assert "cannot take payments" in result.error

    def test_explicit_cash_account(self, actor, company, invoice, bank_account, balance_of):
        result = record_payment(
            actor,
            "incoming",
            party_name="PT Maju Jaya",
            amount="199800",
            allocations=[{"document_id": invoice.id, "amount": "199800"}],
            cash_account_id=bank_account.id,
            on_date=date(2025, 3, 20),
        )
        assert result.success, result.error
        assert balance_of(bank_account) == Decimal("199800.00")


@pytest.mark.django_db
class TestDownPayments:
    def test_down_payment_is_applied_on_invoice(self, actor, company, sales_order, balance_of):
        dp = record_down_payment(actor, "sales", sales_order.id, "50000", on_date=date(2025, 3, 2))
        assert dp.success, dp.error
        deposit = _account(company, "2-1300")
        assert balance_of(deposit) == Decimal("50000.00")

        confirm_order(actor, "sales", sales_order.id)
        invoice = generate_invoice(actor, sales_order.id, invoice_date=INVOICE_DATE).data

        assert invoice.dp_applied == Decimal("50000.00")
        assert invoice.total_amount == Decimal("149800.00")
        assert balance_of(deposit) == Decimal("0.00")
        assert balance_of(_account(company, "1-2100")) == Decimal("149800.00")
        assert trial_balance(company)["is_balanced"]

    def test_down_payment_cannot_exceed_order_total(self, actor, sales_order):
        assert record_down_payment(actor, "sales", sales_order.id, "150000").success
        result = record_down_payment(actor, "sales", sales_order.id, "50000")
        assert not result.success
        assert "exceeds remaining order amount" in result.error

    def test_fully_prepaid_order_is_paid_on_invoice(self, actor, sales_order):
        record_down_payment(actor, "sales", sales_order.id, "199800")
        confirm_order(actor, "sales", sales_order.id)

        invoice = generate_invoice(actor, sales_order.id, invoice_date=INVOICE_DATE).data

        assert invoice.status == InvoiceStatus.PAID
        assert invoice.outstanding_amount == Decimal("0.00")
        sales_order.refresh_from_db()
        assert sales_order.status == OrderStatus.PAID

    def test_order_with_down_payment_cannot_be_cancelled(self, actor, sales_order):
        record_down_payment(actor, "sales", sales_order.id, "10000")
        result = cancel_order(actor, "sales", sales_order.id)
        assert not result.success
        assert "down payment" in result.error

    def test_no_down_payment_after_invoicing(self, actor, invoice):
        result = record_down_payment(actor, "sales", invoice.sales_order_id, "1000")
        assert not result.success

    def test_purchase_down_payment_posts_supplier_advance(self, actor, company, purchase_order, balance_of):
        result = record_down_payment(actor, "purchase", purchase_order.id, "100000", on_date=date(2025, 3, 2))
        assert result.success, result.error
        assert balance_of(_account(company, "1-2300")) == Decimal("100000.00")
        assert balance_of(_account(company, "1-1001")) == Decimal("-100000.00")


@pytest.mark.django_db
class TestBills:
    def test_bill_with_advance_and_supplier_payment(self, actor, company, purchase_order, balance_of):
        record_down_payment(actor, "purchase", purchase_order.id, "100000", on_date=date(2025, 3, 2))
        confirm_order(actor, "purchase", purchase_order.id)

        bill = generate_bill(actor, purchase_order.id, bill_date=INVOICE_DATE, due_days=14).data

        assert bill.number == "BILL-202503-0001"
        assert bill.total_amount == Decimal("350000.00")
        assert bill.due_date == date(2025, 3, 19)
        assert balance_of(_account(company, "1-2600")) == Decimal("450000.00")
        assert balance_of(_account(company, "2-1100")) == Decimal("350000.00")
        assert balance_of(_account(company, "1-2300")) == Decimal("0.00")

        paid = record_payment(
            actor,
            "outgoing",
            party_name="CV Sumber Makmur",
            amount="350000",
            allocations=[{"document_id": bill.id, "amount": "350000"}],
            on_date=date(2025, 3, 25),
        )
        assert paid.success, paid.error
        bill.refresh_from_db()
        assert bill.status == InvoiceStatus.PAID
        assert balance_of(_account(company, "2-1100")) == Decimal("0.00")
        assert trial_balance(company)["is_balanced"]

    def test_cancel_bill(self, actor, company, purchase_order, balance_of):
        confirm_order(actor, "purchase", purchase_order.id)
        bill = generate_bill(actor, purchase_order.id, bill_date=INVOICE_DATE).data

        result = cancel_bill(actor, bill.id)

        assert result.success, result.error
        purchase_order.refresh_from_db()
        assert purchase_order.status == OrderStatus.CONFIRMED
        assert balance_of(_account(company, "2-1100")) == Decimal("0.00")

    def test_payables_aging(self, actor, purchase_order):
        confirm_order(actor, "purchase", purchase_order.id)
        generate_bill(actor, purchase_order.id, bill_date=INVOICE_DATE, due_days=14)

        report = payables_aging(actor.company, as_of=date(2025, 4, 30))
        assert report.buckets[2].amount == Decimal("450000.00")


@pytest.mark.django_db
class TestOverdue:
    def test_mark_overdue(self, actor, invoice):
        assert mark_overdue_invoices(actor, as_of=date(2025, 4, 4)).data == 0

        result = mark_overdue_invoices(actor, as_of=date(2025, 4, 5))

        assert result.data == 1
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.OVERDUE

    def test_overdue_invoice_still_takes_payment(self, actor, invoice):
        mark_overdue_invoices(actor, as_of=date(2025, 5, 1))
        result = _pay(actor, "199800", [{"document_id": invoice.id, "amount": "199800"}], on_date=date(2025, 5, 2))
        assert result.success, result.error
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PAID

    def test_receivables_aging_buckets(self, actor, invoice):
        report = receivables_aging(actor.company, as_of=date(2025, 5, 20))
        assert report.total == Decimal("199800.00")
        assert report.rows[0].bucket == "31-60"
        assert report.rows[0].days_overdue == 46


@pytest.mark.django_db
class TestOverdueTask:
    def test_task_scans_every_company(self, actor, company, invoice):
        from trade.tasks import mark_overdue_invoices_task

        summary = mark_overdue_invoices_task()

        # invoice is due 2025-04-04, long before today
        assert summary["companies"][company.slug] == 1
