# accounting/tests/test_ledger.py
"""
Journal ledger tests: balanced posting, idempotency, reversal, closed
periods, and account role resolution.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.db import transaction

from accounting import ledger, registry
from accounting.commands import (
    close_period,
    create_account,
    post_manual_entry,
    reopen_period,
    reverse_journal_entry,
    set_account_role,
    trial_balance,
    update_account,
)
from accounting.exceptions import LedgerError, ResolutionGap, UnbalancedEntry
from accounting.models import Account, AccountRoleMapping, JournalEntry
from accounting.posting_rules import LineDraft
from events.models import BusinessEvent
from events.types import EventTypes


ENTRY_DATE = date(2025, 3, 10)


def _capital_injection(actor, cash_account, capital_account, amount="1000000", description="Setoran modal"):
    return post_manual_entry(
        actor,
        ENTRY_DATE,
        description,
        lines=[
            {"account_id": cash_account.id, "debit": amount, "credit": "0"},
            {"account_id": capital_account.id, "debit": "0", "credit": amount},
        ],
    )


@pytest.mark.django_db
class TestManualPosting:
    def test_balanced_entry_is_posted_and_projected(self, actor, cash_account, capital_account, balance_of):
        result = _capital_injection(actor, cash_account, capital_account)

        assert result.success, result.error
        entry = result.data
        assert isinstance(entry, JournalEntry)
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.entry_number.startswith("JE-202503-")
        assert entry.lines.count() == 2
        assert balance_of(cash_account) == Decimal("1000000.00")
        assert balance_of(capital_account) == Decimal("1000000.00")

    def test_unbalanced_entry_is_refused_without_event(self, actor, cash_account, capital_account):
        before = BusinessEvent.objects.filter(company=actor.company).count()

        result = post_manual_entry(
            actor,
            ENTRY_DATE,
            "Selisih",
            lines=[
                {"account_id": cash_account.id, "debit": "100", "credit": "0"},
                {"account_id": capital_account.id, "debit": "0", "credit": "90"},
            ],
        )

        assert not result.success
        assert "not balanced" in result.error
        assert BusinessEvent.objects.filter(company=actor.company).count() == before
        assert not JournalEntry.objects.filter(company=actor.company).exists()

    def test_line_needs_exactly_one_side(self, actor, cash_account, capital_account):
        result = post_manual_entry(
            actor,
            ENTRY_DATE,
            "Both sides",
            lines=[
                {"account_id": cash_account.id, "debit": "100", "credit": "100"},
                {"account_id": capital_account.id, "debit": "0", "credit": "0"},
            ],
        )
        assert not result.success
        assert "exactly one of debit or credit" in result.error

    def test_header_account_is_refused(self, actor, company, capital_account):
        header = Account.objects.get(company=company, code="1-1000")
        result = post_manual_entry(
            actor,
            ENTRY_DATE,
            "Header",
            lines=[
                {"account_id": header.id, "debit": "100", "credit": "0"},
                {"account_id": capital_account.id, "debit": "0", "credit": "100"},
            ],
        )
        assert not result.success
        assert "header account" in result.error

    def test_inactive_account_is_refused(self, actor, cash_account, capital_account):
        assert update_account(actor, cash_account.id, is_active=False).success
        result = _capital_injection(actor, cash_account, capital_account)
        assert not result.success
        assert "inactive account" in result.error

    def test_account_of_another_company_is_refused(self, actor, other_actor, cash_account):
        foreign = Account.objects.get(company=other_actor.company, code="3-1100")
        with transaction.atomic():
            with pytest.raises(LedgerError, match="does not belong"):
                ledger.post(actor, ledger.EntryDraft(
                    date=ENTRY_DATE,
                    description="Cross company",
                    lines=[LineDraft.dr(cash_account, 10), LineDraft.cr(foreign, 10)],
                ))

    def test_identical_entries_post_separately(self, actor, cash_account, capital_account, balance_of):
        first = _capital_injection(actor, cash_account, capital_account, amount="50000", description="Parkir harian")
        second = _capital_injection(actor, cash_account, capital_account, amount="50000", description="Parkir harian")

        assert first.success and second.success
        assert first.event.pk != second.event.pk
        assert JournalEntry.objects.filter(company=actor.company, description="Parkir harian").count() == 2
        assert balance_of(cash_account) == Decimal("100000.00")

    def test_viewer_cannot_post(self, viewer_actor, cash_account, capital_account):
        with pytest.raises(PermissionDenied):
            _capital_injection(viewer_actor, cash_account, capital_account)


@pytest.mark.django_db
class TestLedgerPost:
    def test_same_idempotency_key_posts_once(self, actor, cash_account, capital_account):
        draft = ledger.EntryDraft(
            date=ENTRY_DATE,
            description="Idempotent",
            lines=[LineDraft.dr(cash_account, 500), LineDraft.cr(capital_account, 500)],
            reference_type="test",
            reference_id="ref-1",
            idempotency_key="test.posted:ref-1",
        )
        with transaction.atomic():
            first = ledger.post(actor, draft)
            second = ledger.post(actor, draft)

        assert first.pk == second.pk
        assert BusinessEvent.objects.filter(
            company=actor.company,
            event_type=EventTypes.JOURNAL_ENTRY_POSTED,
            idempotency_key="test.posted:ref-1",
        ).count() == 1

    def test_validate_draft_raises_unbalanced(self, actor, cash_account, capital_account):
        draft = ledger.EntryDraft(
            date=ENTRY_DATE,
            description="Off by one cent",
            lines=[LineDraft.dr(cash_account, "10.00"), LineDraft.cr(capital_account, "9.99")],
        )
        with pytest.raises(UnbalancedEntry) as exc_info:
            ledger.validate_draft(actor, draft)
        assert exc_info.value.total_debit == Decimal("10.00")
        assert exc_info.value.total_credit == Decimal("9.99")

    def test_single_line_entry_is_refused(self, actor, cash_account):
        draft = ledger.EntryDraft(date=ENTRY_DATE, description="One line", lines=[LineDraft.dr(cash_account, 1)])
        with pytest.raises(LedgerError, match="at least two lines"):
            ledger.validate_draft(actor, draft)

    def test_posted_event_carries_lines(self, actor, cash_account, capital_account):
        result = _capital_injection(actor, cash_account, capital_account, amount="250000")
        data = result.event.data
        assert data["total_debit"] == "250000.00"
        assert data["total_credit"] == "250000.00"
        assert [line["account_code"] for line in data["lines"]] == ["1-1001", "3-1100"]


@pytest.mark.django_db
class TestReversal:
    def test_reversal_mirrors_and_marks_original(self, actor, cash_account, capital_account, balance_of):
        original = _capital_injection(actor, cash_account, capital_account).data

        result = reverse_journal_entry(actor, str(original.public_id), reason="Salah input", on_date=ENTRY_DATE)

        assert result.success, result.error
        reversal = result.data
        original.refresh_from_db()
        assert original.status == JournalEntry.Status.REVERSED
        assert reversal.kind == JournalEntry.Kind.REVERSAL
        assert reversal.reverses_entry_id == original.id
        assert balance_of(cash_account) == Decimal("0.00")
        assert balance_of(capital_account) == Decimal("0.00")

    def test_entry_cannot_be_reversed_twice(self, actor, cash_account, capital_account):
        original = _capital_injection(actor, cash_account, capital_account).data
        assert reverse_journal_entry(actor, str(original.public_id), on_date=ENTRY_DATE).success

        again = reverse_journal_entry(actor, str(original.public_id), on_date=ENTRY_DATE)
        assert not again.success
        assert "already been reversed" in again.error

    def test_reversal_cannot_be_reversed(self, actor, cash_account, capital_account):
        original = _capital_injection(actor, cash_account, capital_account).data
        reversal = reverse_journal_entry(actor, str(original.public_id), on_date=ENTRY_DATE).data

        result = reverse_journal_entry(actor, str(reversal.public_id), on_date=ENTRY_DATE)
        assert not result.success
        assert "reversal entry" in result.error

    def test_unknown_entry(self, actor):
        result = reverse_journal_entry(actor, "00000000-0000-0000-0000-000000000000")
        assert not result.success
        assert "not found" in result.error


@pytest.mark.django_db
class TestPeriodClosing:
    def test_closed_period_blocks_posting_until_reopened(self, actor, cash_account, capital_account):
        closed = close_period(actor, date(2025, 3, 1), date(2025, 3, 31), notes="Tutup buku Maret")
        assert closed.success, closed.error

        refused = _capital_injection(actor, cash_account, capital_account)
        assert not refused.success
        assert "closed" in refused.error

        assert reopen_period(actor, closed.data.id).success
        assert _capital_injection(actor, cash_account, capital_account).success

    def test_overlapping_close_is_refused(self, actor):
        assert close_period(actor, date(2025, 1, 1), date(2025, 1, 31)).success
        result = close_period(actor, date(2025, 1, 15), date(2025, 2, 15))
        assert not result.success
        assert "overlapping" in result.error

    def test_reversal_into_closed_period_is_refused(self, actor, cash_account, capital_account):
        original = _capital_injection(actor, cash_account, capital_account).data
        assert close_period(actor, date(2025, 3, 1), date(2025, 3, 31)).success

        result = reverse_journal_entry(actor, str(original.public_id), on_date=date(2025, 3, 20))
        assert not result.success
        original.refresh_from_db()
        assert original.status == JournalEntry.Status.POSTED

    def test_staff_cannot_close(self, staff_actor):
        with pytest.raises(PermissionDenied):
            close_period(staff_actor, date(2025, 1, 1), date(2025, 1, 31))


@pytest.mark.django_db
class TestTrialBalance:
    def test_balanced_after_postings(self, actor, cash_account, capital_account, expense_account):
        _capital_injection(actor, cash_account, capital_account)
        post_manual_entry(
            actor,
            ENTRY_DATE,
            "Bayar sewa",
            lines=[
                {"account_id": expense_account.id, "debit": "300000", "credit": "0"},
                {"account_id": cash_account.id, "debit": "0", "credit": "300000"},
            ],
        )

        report = trial_balance(actor.company)
        assert report["is_balanced"]
        assert Decimal(report["total_debit"]) == Decimal("1000000.00")


@pytest.mark.django_db
class TestAccountRegistry:
    def test_seeded_roles_resolve(self, company, cash_account, revenue_account):
        assert registry.resolve_by_role(company, "cash") == cash_account
        assert registry.resolve_by_role(company, "revenue") == revenue_account
        registry.check_setup_complete(company, AccountRoleMapping.Role.values)

    def test_missing_role_raises_resolution_gap(self, company):
        AccountRoleMapping.objects.filter(company=company, role__in=["tax", "discount"]).delete()

        with pytest.raises(ResolutionGap) as exc_info:
            registry.resolve_roles(company, ["revenue", "tax", "discount"])
        assert exc_info.value.roles == ["tax", "discount"]
        assert registry.try_resolve(company, "tax") is None

    def test_explicit_account_wins(self, company, bank_account):
        assert registry.resolve_by_role(company, "cash", explicit=bank_account) == bank_account

    def test_explicit_account_from_other_company_is_a_gap(self, company, other_actor):
        foreign = Account.objects.get(company=other_actor.company, code="1-1001")
        with pytest.raises(ResolutionGap):
            registry.resolve_by_role(company, "cash", explicit=foreign)

    def test_set_account_role_rebinds(self, actor, bank_account):
        result = set_account_role(actor, "cash", bank_account.id)
        assert result.success, result.error
        assert registry.resolve_by_role(actor.company, "cash") == bank_account
        assert result.event.data["previous_account_public_id"] is not None

    def test_header_cannot_take_a_role(self, actor, company):
        header = Account.objects.get(company=company, code="1-1000")
        result = set_account_role(actor, "cash", header.id)
        assert not result.success


@pytest.mark.django_db
class TestAccountCommands:
    def test_create_account_under_parent(self, actor, company):
        parent = Account.objects.get(company=company, code="1-1000")
        result = create_account(actor, "1-1200", "Bank BRI", Account.AccountType.CASH_BANK, parent_id=parent.id)

        assert result.success, result.error
        assert result.data.parent == parent
        assert result.data.normal_balance == Account.NormalBalance.DEBIT

    def test_duplicate_code_is_refused(self, actor):
        result = create_account(actor, "1-1001", "Kas Lagi", Account.AccountType.CASH_BANK)
        assert not result.success
        assert "already exists" in result.error

    def test_type_is_frozen_after_posting(self, actor, cash_account, capital_account):
        _capital_injection(actor, cash_account, capital_account)
        result = update_account(actor, cash_account.id, account_type=Account.AccountType.ASSET)
        assert not result.success

    def test_liability_is_credit_normal(self, actor):
        result = create_account(actor, "2-1700", "Hutang Lain", Account.AccountType.LIABILITY)
        assert result.data.normal_balance == Account.NormalBalance.CREDIT
