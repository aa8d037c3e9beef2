# accounting/models.py
"""
Accounting models.

Two kinds of tables live here:

WRITE MODELS (command-owned):
- Account: chart of accounts
- AccountRoleMapping: explicit role -> account table used by posting rules
- CompanySequence: per-company document number counters
- PeriodClosing: period locks

These are mutated only by accounting.commands inside command_writes_allowed().

READ MODELS (projection-owned):
- JournalEntry / JournalLine

The ledger is the event stream. journal_entry.posted events are the source
of truth; JournalEntry and JournalLine are materialized from them by
projections/ledger.py and must not be written anywhere else.
"""

from decimal import Decimal
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum

from accounts.models import Company
from projections.write_barrier import COMMAND_CONTEXTS, PROJECTION_CONTEXTS, guard_write


class ProjectionWriteQuerySet(models.QuerySet):
    """
    QuerySet for projection-owned tables.

    Bulk writes are refused outside projection_writes_allowed().
    """

    def _guard(self, operation: str):
        guard_write(self.model, PROJECTION_CONTEXTS, f"{operation} calls")

    def projection(self):
        self._guard("projection()")
        return self._chain()

    def create(self, **kwargs):
        self._guard("create")
        return super().create(**kwargs)

    def bulk_create(self, objs, *args, **kwargs):
        self._guard("bulk_create")
        return super().bulk_create(objs, *args, **kwargs)

    def update(self, **kwargs):
        self._guard("update")
        return super().update(**kwargs)

    def delete(self):
        self._guard("delete")
        return super().delete()


class ProjectionWriteManager(models.Manager.from_queryset(ProjectionWriteQuerySet)):
    """
    Usage in projections:
        JournalEntry.objects.projection().create(...)
        JournalLine.objects.projection().bulk_create(...)
    """


class AccountingReadModel(models.Model):
    """Journal rows. Posting goes through accounting.ledger, never save()."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        guard_write(self, PROJECTION_CONTEXTS)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        guard_write(self, PROJECTION_CONTEXTS, "deletes")
        return super().delete(*args, **kwargs)


class CommandOwnedModel(models.Model):
    """
    Abstract base for write models that only commands may mutate.

    Shared by every document app (trade, pos, inventory, assets).
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        guard_write(self, COMMAND_CONTEXTS)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        guard_write(self, COMMAND_CONTEXTS, "deletes")
        return super().delete(*args, **kwargs)


class CompanySequence(CommandOwnedModel):
    """
    Per-company counters for document numbers.

    ``name`` is the counter key, e.g. ``INV-202401``; numbering restarts
    every month per prefix.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=100)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                name="uniq_company_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.name}={self.next_value}"


class Account(CommandOwnedModel):
    """
    Chart of Accounts entry.

    Header/detail is derived: an account with children is a header and
    cannot receive postings. The balance lives in the AccountBalance
    projection.
    """

    class AccountType(models.TextChoices):
        ASSET = "asset", "Asset"
        LIABILITY = "liability", "Liability"
        EQUITY = "equity", "Equity"
        REVENUE = "revenue", "Revenue"
        EXPENSE = "expense", "Expense"
        CASH_BANK = "cash_bank", "Cash & Bank"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.CASH_BANK: NormalBalance.DEBIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.REVENUE: NormalBalance.CREDIT,
    }

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)
    account_type = models.CharField(max_length=20, choices=AccountType.choices)
    normal_balance = models.CharField(
        max_length=10,
        choices=NormalBalance.choices,
        editable=False,
    )
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_account_code_per_company",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["company", "account_type"], name="account_company_type_idx"),
            models.Index(fields=["company", "parent"], name="account_company_parent_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def clean(self):
        if self.parent_id:
            if self.parent.company_id != self.company_id:
                raise ValidationError("Parent account must belong to the same company.")
            if self.parent_id == self.pk:
                raise ValidationError("An account cannot be its own parent.")

    def save(self, *args, **kwargs):
        self.normal_balance = self.NORMAL_BALANCE_MAP.get(
            self.account_type,
            self.NormalBalance.DEBIT,
        )
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_header(self) -> bool:
        if self.pk is None:
            return False
        return self.children.exists()

    @property
    def is_postable(self) -> bool:
        return self.is_active and not self.is_header

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == self.NormalBalance.DEBIT

    def has_postings(self) -> bool:
        return self.journal_lines.exists()

    def get_balance(self) -> Decimal:
        """Current balance from the AccountBalance projection."""
        from projections.models import AccountBalance

        try:
            return AccountBalance.objects.get(company=self.company, account=self).balance
        except AccountBalance.DoesNotExist:
            return Decimal("0.00")


class AccountRoleMapping(CommandOwnedModel):
    """
    Explicit role -> account binding for a company.

    Posting rules never guess accounts: they resolve a role through the
    document's own link first, then through this table.
    """

    class Role(models.TextChoices):
        REVENUE = "revenue", "Revenue"
        COGS = "cogs", "Cost of goods sold"
        RECEIVABLE = "receivable", "Accounts receivable"
        PAYABLE = "payable", "Accounts payable"
        TAX = "tax", "Output tax"
        DISCOUNT = "discount", "Sales discount"
        INVENTORY = "inventory", "Inventory"
        CASH = "cash", "Cash"
        CUSTOMER_DEPOSIT = "customer_deposit", "Customer deposits"
        SUPPLIER_ADVANCE = "supplier_advance", "Supplier advances"
        DEPRECIATION_EXPENSE = "depreciation_expense", "Depreciation expense"
        ACCUMULATED_DEPRECIATION = "accumulated_depreciation", "Accumulated depreciation"
        FIXED_ASSET = "fixed_asset", "Fixed assets"

    ALLOWED_TYPES = {
        Role.REVENUE: {Account.AccountType.REVENUE},
        Role.COGS: {Account.AccountType.EXPENSE},
        Role.RECEIVABLE: {Account.AccountType.ASSET},
        Role.PAYABLE: {Account.AccountType.LIABILITY},
        Role.TAX: {Account.AccountType.LIABILITY},
        Role.DISCOUNT: {Account.AccountType.EXPENSE, Account.AccountType.REVENUE},
        Role.INVENTORY: {Account.AccountType.ASSET},
        Role.CASH: {Account.AccountType.CASH_BANK},
        Role.CUSTOMER_DEPOSIT: {Account.AccountType.LIABILITY},
        Role.SUPPLIER_ADVANCE: {Account.AccountType.ASSET},
        Role.DEPRECIATION_EXPENSE: {Account.AccountType.EXPENSE},
        Role.ACCUMULATED_DEPRECIATION: {Account.AccountType.ASSET},
        Role.FIXED_ASSET: {Account.AccountType.ASSET},
    }

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="account_roles",
    )
    role = models.CharField(max_length=40, choices=Role.choices)
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="role_mappings",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "role"],
                name="uniq_account_role_per_company",
            ),
        ]

    def __str__(self):
        return f"{self.role} -> {self.account.code}"

    def clean(self):
        if self.account.company_id != self.company_id:
            raise ValidationError("Mapped account must belong to the same company.")
        allowed = self.ALLOWED_TYPES.get(self.role, set())
        if self.account.account_type not in allowed:
            raise ValidationError(
                f"Role '{self.role}' cannot be mapped to a {self.account.account_type} account."
            )


class PeriodClosing(CommandOwnedModel):
    """A locked date range. No entry may be posted with a date inside a closed period."""

    class Status(models.TextChoices):
        CLOSED = "closed", "Closed"
        REOPENED = "reopened", "Reopened"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="period_closings",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    period_start = models.DateField()
    period_end = models.DateField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.CLOSED)
    notes = models.TextField(blank=True, default="")
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    closed_at = models.DateTimeField(null=True, blank=True)
    reopened_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-period_start"]
        constraints = [
            models.CheckConstraint(
                condition=Q(period_end__gte=models.F("period_start")),
                name="chk_period_closing_range",
            ),
        ]

    def __str__(self):
        return f"{self.period_start}..{self.period_end} ({self.status})"


class JournalEntry(AccountingReadModel):
    """
    Posted journal entry header.

    Entries are born posted. A posted entry is never edited; reversing it
    creates a new REVERSAL entry with mirrored lines and flips this one to
    REVERSED.
    """

    class Status(models.TextChoices):
        POSTED = "posted", "Posted"
        REVERSED = "reversed", "Reversed"

    class Kind(models.TextChoices):
        NORMAL = "normal", "Normal"
        REVERSAL = "reversal", "Reversal"

    objects = ProjectionWriteManager()

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    entry_number = models.CharField(max_length=50)
    date = models.DateField()
    description = models.CharField(max_length=255, blank=True, default="")

    # Source document, e.g. ("invoice", "<public_id>")
    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")

    kind = models.CharField(max_length=20, choices=Kind.choices, default=Kind.NORMAL)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.POSTED)

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journal_entries",
    )
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversed_journal_entries",
    )
    reverses_entry = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversal_entry",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["company", "date"], name="je_company_date_idx"),
            models.Index(fields=["company", "reference_type", "reference_id"], name="je_company_reference_idx"),
            models.Index(fields=["company", "entry_number"], name="je_company_number_idx"),
        ]
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"JE {self.entry_number} ({self.date}) {self.status}"

    @property
    def total_debit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("debit"))["total"] or Decimal("0.00")

    @property
    def total_credit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("credit"))["total"] or Decimal("0.00")

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class JournalLine(AccountingReadModel):
    """One debit or one credit against one account."""

    objects = ProjectionWriteManager()

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_lines",
    )
    line_no = models.PositiveIntegerField()
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )
    description = models.CharField(max_length=255, blank=True, default="")
    debit = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        ordering = ["entry", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_no"],
                name="uniq_journal_line_no",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_line_not_both_debit_credit",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__exact=0) & Q(credit__exact=0)),
                name="chk_line_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_line_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "account"], name="jl_company_account_idx"),
        ]

    def __str__(self):
        return f"JE#{self.entry_id} L{self.line_no}"

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    @property
    def is_debit(self) -> bool:
        return self.debit > 0
