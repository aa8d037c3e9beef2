import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=18, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        ('accounting', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='FixedAsset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('code', models.CharField(max_length=50)),
                ('name', models.CharField(max_length=255)),
                ('category', models.CharField(blank=True, default='', max_length=100)),
                ('location', models.CharField(blank=True, default='', max_length=255)),
                ('purchase_date', models.DateField()),
                ('purchase_price', money()),
                ('useful_life_months', models.PositiveIntegerField()),
                ('salvage_value', money(default=Decimal('0.00'))),
                ('depreciation_method', models.CharField(
                    choices=[('straight_line', 'Straight line'), ('declining_balance', 'Double declining balance')],
                    default='straight_line',
                    max_length=20,
                )),
                ('current_value', money()),
                ('accumulated_depreciation', money(default=Decimal('0.00'))),
                ('status', models.CharField(
                    choices=[('active', 'Active'), ('disposed', 'Disposed'), ('fully_depreciated', 'Fully depreciated')],
                    default='active',
                    max_length=20,
                )),
                ('disposal_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('accumulated_depreciation_account', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='accounting.account')),
                ('asset_account', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='accounting.account')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='fixed_assets', to='accounts.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('depreciation_expense_account', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='accounting.account')),
            ],
            options={
                'ordering': ['code'],
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'code'), name='uniq_fixed_asset_code'),
                    models.CheckConstraint(condition=models.Q(('useful_life_months__gt', 0)), name='chk_asset_useful_life'),
                    models.CheckConstraint(condition=models.Q(('salvage_value__lte', models.F('purchase_price'))), name='chk_asset_salvage_le_price'),
                    models.CheckConstraint(condition=models.Q(('current_value__gte', models.F('salvage_value'))), name='chk_asset_value_ge_salvage'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssetDepreciation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('depreciation_date', models.DateField()),
                ('amount', money()),
                ('value_after', money()),
                ('journal_entry_id', models.UUIDField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='depreciations', to='assets.fixedasset')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='asset_depreciations', to='accounts.company')),
            ],
            options={
                'ordering': ['asset', 'depreciation_date'],
                'constraints': [
                    models.UniqueConstraint(fields=('asset', 'depreciation_date'), name='uniq_asset_depreciation_date'),
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='chk_depreciation_positive'),
                ],
            },
        ),
    ]
