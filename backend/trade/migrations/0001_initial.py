import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


ORDER_STATUSES = [
    ('draft', 'Draft'),
    ('confirmed', 'Confirmed'),
    ('invoiced', 'Invoiced'),
    ('paid', 'Paid'),
    ('cancelled', 'Cancelled'),
]

INVOICE_STATUSES = [
    ('draft', 'Draft'),
    ('sent', 'Sent'),
    ('partial', 'Partially paid'),
    ('paid', 'Paid'),
    ('overdue', 'Overdue'),
    ('cancelled', 'Cancelled'),
]


def money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=18, **kwargs)


def order_fields(related_name):
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
        ('number', models.CharField(max_length=50)),
        ('party_name', models.CharField(max_length=255)),
        ('order_date', models.DateField()),
        ('status', models.CharField(choices=ORDER_STATUSES, default='draft', max_length=20)),
        ('notes', models.TextField(blank=True, default='')),
        ('subtotal', money(default=Decimal('0.00'))),
        ('discount_amount', money(default=Decimal('0.00'))),
        ('tax_amount', money(default=Decimal('0.00'))),
        ('total_amount', money(default=Decimal('0.00'))),
        ('dp_paid', money(default=Decimal('0.00'))),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name=related_name, to='accounts.company')),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
    ]


def line_fields():
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('line_no', models.PositiveIntegerField()),
        ('description', models.CharField(blank=True, default='', max_length=255)),
        ('quantity', models.DecimalField(decimal_places=3, max_digits=18)),
        ('unit_price', money()),
        ('discount_percent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5)),
        ('tax_percent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5)),
        ('subtotal', money(default=Decimal('0.00'))),
        ('discount_amount', money(default=Decimal('0.00'))),
        ('tax_amount', money(default=Decimal('0.00'))),
        ('total', money(default=Decimal('0.00'))),
        ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='inventory.product')),
    ]


def document_fields(related_name):
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
        ('number', models.CharField(max_length=50)),
        ('party_name', models.CharField(max_length=255)),
        ('date', models.DateField()),
        ('due_date', models.DateField()),
        ('status', models.CharField(choices=INVOICE_STATUSES, default='draft', max_length=20)),
        ('subtotal', money(default=Decimal('0.00'))),
        ('discount_amount', money(default=Decimal('0.00'))),
        ('tax_amount', money(default=Decimal('0.00'))),
        ('dp_applied', money(default=Decimal('0.00'))),
        ('total_amount', money(default=Decimal('0.00'))),
        ('paid_amount', money(default=Decimal('0.00'))),
        ('outstanding_amount', money(default=Decimal('0.00'))),
        ('journal_entry_id', models.UUIDField(blank=True, null=True)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name=related_name, to='accounts.company')),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        ('accounting', '0001_initial'),
        ('inventory', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SalesOrder',
            fields=order_fields('salesorders'),
            options={
                'ordering': ['-order_date', '-id'],
                'abstract': False,
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'number'), name='uniq_sales_order_number'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrder',
            fields=order_fields('purchaseorders'),
            options={
                'ordering': ['-order_date', '-id'],
                'abstract': False,
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'number'), name='uniq_purchase_order_number'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SalesOrderLine',
            fields=line_fields() + [
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='trade.salesorder')),
            ],
            options={
                'ordering': ['line_no'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderLine',
            fields=line_fields() + [
                ('received_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=18)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='trade.purchaseorder')),
            ],
            options={
                'ordering': ['line_no'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='DownPayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('number', models.CharField(max_length=50)),
                ('payment_type', models.CharField(choices=[('sales', 'Sales'), ('purchase', 'Purchase')], max_length=10)),
                ('amount', money()),
                ('date', models.DateField()),
                ('notes', models.TextField(blank=True, default='')),
                ('journal_entry_id', models.UUIDField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('cash_account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='accounting.account')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='down_payments', to='accounts.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('purchase_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='down_payments', to='trade.purchaseorder')),
                ('sales_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='down_payments', to='trade.salesorder')),
            ],
            options={
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='chk_down_payment_positive'),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('sales_order__isnull', False), ('purchase_order__isnull', True)),
                            models.Q(('sales_order__isnull', True), ('purchase_order__isnull', False)),
                            _connector='OR',
                        ),
                        name='chk_down_payment_single_order',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Invoice',
            fields=document_fields('invoices') + [
                ('sales_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='invoices', to='trade.salesorder')),
            ],
            options={
                'ordering': ['-date', '-id'],
                'abstract': False,
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'number'), name='uniq_invoice_number'),
                    models.UniqueConstraint(condition=models.Q(('status', 'cancelled'), _negated=True), fields=('sales_order',), name='uniq_live_invoice_per_order'),
                    models.CheckConstraint(condition=models.Q(('outstanding_amount__gte', 0)), name='chk_invoice_outstanding_nonneg'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Bill',
            fields=document_fields('bills') + [
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bills', to='trade.purchaseorder')),
            ],
            options={
                'ordering': ['-date', '-id'],
                'abstract': False,
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'number'), name='uniq_bill_number'),
                    models.UniqueConstraint(condition=models.Q(('status', 'cancelled'), _negated=True), fields=('purchase_order',), name='uniq_live_bill_per_order'),
                    models.CheckConstraint(condition=models.Q(('outstanding_amount__gte', 0)), name='chk_bill_outstanding_nonneg'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('number', models.CharField(max_length=50)),
                ('payment_type', models.CharField(choices=[('incoming', 'Incoming'), ('outgoing', 'Outgoing')], max_length=10)),
                ('party_name', models.CharField(max_length=255)),
                ('date', models.DateField()),
                ('amount', money()),
                ('allocated_amount', money(default=Decimal('0.00'))),
                ('notes', models.TextField(blank=True, default='')),
                ('journal_entry_id', models.UUIDField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('cash_account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='accounting.account')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='accounts.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-date', '-id'],
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'number'), name='uniq_payment_number'),
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='chk_payment_positive'),
                    models.CheckConstraint(condition=models.Q(('allocated_amount__lte', models.F('amount'))), name='chk_payment_not_overallocated'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', money()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('bill', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='trade.bill')),
                ('invoice', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='trade.invoice')),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='trade.payment')),
            ],
            options={
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='chk_allocation_positive'),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('invoice__isnull', False), ('bill__isnull', True)),
                            models.Q(('invoice__isnull', True), ('bill__isnull', False)),
                            _connector='OR',
                        ),
                        name='chk_allocation_single_target',
                    ),
                ],
            },
        ),
    ]
