import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CompanyEventCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('last_sequence', models.BigIntegerField(default=0)),
                ('company', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='event_counter', to='accounts.company')),
            ],
            options={
                'verbose_name': 'Company Event Counter',
            },
        ),
        migrations.CreateModel(
            name='BusinessEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event_type', models.CharField(db_index=True, help_text="Event type name (e.g., 'journal_entry.posted')", max_length=100)),
                ('aggregate_type', models.CharField(db_index=True, help_text="Entity type (e.g., 'JournalEntry', 'StockTransfer')", max_length=50)),
                ('aggregate_id', models.CharField(db_index=True, max_length=64)),
                ('idempotency_key', models.CharField(db_index=True, editable=False, help_text='Unique idempotency key per company', max_length=255)),
                ('sequence', models.PositiveIntegerField(default=0, editable=False)),
                ('company_sequence', models.BigIntegerField(db_index=True, editable=False)),
                ('data', models.JSONField(default=dict)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional context (IP, user agent, etc.)')),
                ('schema_version', models.PositiveSmallIntegerField(default=1)),
                ('origin', models.CharField(
                    choices=[('human', 'Human'), ('api', 'External API'), ('system', 'Internal System Process')],
                    db_index=True,
                    default='human',
                    max_length=20,
                )),
                ('recorded_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('occurred_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('caused_by_event', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='child_events', to='events.businessevent')),
                ('caused_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='caused_events', to=settings.AUTH_USER_MODEL)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='events', to='accounts.company')),
            ],
            options={
                'ordering': ['company_id', 'company_sequence'],
                'indexes': [
                    models.Index(fields=['company', 'aggregate_type', 'aggregate_id', 'sequence'], name='event_company_aggregate_idx'),
                    models.Index(fields=['company', 'event_type', 'occurred_at'], name='event_company_type_time_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'aggregate_type', 'aggregate_id', 'sequence'), name='uniq_event_company_aggregate_sequence'),
                    models.UniqueConstraint(fields=('company', 'idempotency_key'), name='uniq_event_company_idempotency_key'),
                    models.UniqueConstraint(fields=('company', 'company_sequence'), name='uniq_event_company_sequence'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EventBookmark',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('consumer_name', models.CharField(max_length=100)),
                ('last_processed_at', models.DateTimeField(blank=True, null=True)),
                ('is_paused', models.BooleanField(default=False)),
                ('error_count', models.PositiveIntegerField(default=0)),
                ('last_error', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='event_bookmarks', to='accounts.company')),
                ('last_event', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='events.businessevent')),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('consumer_name', 'company'), name='uniq_bookmark_consumer_company'),
                ],
            },
        ),
    ]
