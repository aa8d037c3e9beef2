import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


ACCOUNT_TYPES = [
    ('asset', 'Asset'),
    ('liability', 'Liability'),
    ('equity', 'Equity'),
    ('revenue', 'Revenue'),
    ('expense', 'Expense'),
    ('cash_bank', 'Cash & Bank'),
]

ACCOUNT_ROLES = [
    ('revenue', 'Revenue'),
    ('cogs', 'Cost of goods sold'),
    ('receivable', 'Accounts receivable'),
    ('payable', 'Accounts payable'),
    ('tax', 'Output tax'),
    ('discount', 'Sales discount'),
    ('inventory', 'Inventory'),
    ('cash', 'Cash'),
    ('customer_deposit', 'Customer deposits'),
    ('supplier_advance', 'Supplier advances'),
    ('depreciation_expense', 'Depreciation expense'),
    ('accumulated_depreciation', 'Accumulated depreciation'),
    ('fixed_asset', 'Fixed assets'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CompanySequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('next_value', models.BigIntegerField(default=1)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sequences', to='accounts.company')),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'name'), name='uniq_company_sequence_name'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Account',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('code', models.CharField(max_length=20)),
                ('name', models.CharField(max_length=255)),
                ('account_type', models.CharField(choices=ACCOUNT_TYPES, max_length=20)),
                ('normal_balance', models.CharField(choices=[('DEBIT', 'Debit'), ('CREDIT', 'Credit')], editable=False, max_length=10)),
                ('is_active', models.BooleanField(default=True)),
                ('description', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='accounts', to='accounts.company')),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='children', to='accounting.account')),
            ],
            options={
                'ordering': ['code'],
                'indexes': [
                    models.Index(fields=['company', 'account_type'], name='account_company_type_idx'),
                    models.Index(fields=['company', 'parent'], name='account_company_parent_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'code'), name='uniq_account_code_per_company'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AccountRoleMapping',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=ACCOUNT_ROLES, max_length=40)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='role_mappings', to='accounting.account')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='account_roles', to='accounts.company')),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'role'), name='uniq_account_role_per_company'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PeriodClosing',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('period_start', models.DateField()),
                ('period_end', models.DateField()),
                ('status', models.CharField(choices=[('closed', 'Closed'), ('reopened', 'Reopened')], default='closed', max_length=10)),
                ('notes', models.TextField(blank=True, default='')),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('reopened_at', models.DateTimeField(blank=True, null=True)),
                ('closed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='period_closings', to='accounts.company')),
            ],
            options={
                'ordering': ['-period_start'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('period_end__gte', models.F('period_start'))), name='chk_period_closing_range'),
                ],
            },
        ),
        migrations.CreateModel(
            name='JournalEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('entry_number', models.CharField(max_length=50)),
                ('date', models.DateField()),
                ('description', models.CharField(blank=True, default='', max_length=255)),
                ('reference_type', models.CharField(blank=True, default='', max_length=50)),
                ('reference_id', models.CharField(blank=True, default='', max_length=64)),
                ('kind', models.CharField(choices=[('normal', 'Normal'), ('reversal', 'Reversal')], default='normal', max_length=20)),
                ('status', models.CharField(choices=[('posted', 'Posted'), ('reversed', 'Reversed')], default='posted', max_length=12)),
                ('posted_at', models.DateTimeField(blank=True, null=True)),
                ('reversed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='journal_entries', to='accounts.company')),
                ('posted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='posted_journal_entries', to=settings.AUTH_USER_MODEL)),
                ('reversed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reversed_journal_entries', to=settings.AUTH_USER_MODEL)),
                ('reverses_entry', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reversal_entry', to='accounting.journalentry')),
            ],
            options={
                'ordering': ['-date', '-id'],
                'indexes': [
                    models.Index(fields=['company', 'date'], name='je_company_date_idx'),
                    models.Index(fields=['company', 'reference_type', 'reference_id'], name='je_company_reference_idx'),
                    models.Index(fields=['company', 'entry_number'], name='je_company_number_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='JournalLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('line_no', models.PositiveIntegerField()),
                ('description', models.CharField(blank=True, default='', max_length=255)),
                ('debit', models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ('credit', models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='journal_lines', to='accounting.account')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='journal_lines', to='accounts.company')),
                ('entry', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='accounting.journalentry')),
            ],
            options={
                'ordering': ['entry', 'line_no'],
                'indexes': [
                    models.Index(fields=['company', 'account'], name='jl_company_account_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('entry', 'line_no'), name='uniq_journal_line_no'),
                    models.CheckConstraint(condition=models.Q(('debit__gt', 0), ('credit__gt', 0), _negated=True), name='chk_line_not_both_debit_credit'),
                    models.CheckConstraint(condition=models.Q(('debit__exact', 0), ('credit__exact', 0), _negated=True), name='chk_line_not_both_zero'),
                    models.CheckConstraint(condition=models.Q(('debit__gte', 0), ('credit__gte', 0)), name='chk_line_non_negative'),
                ],
            },
        ),
    ]
