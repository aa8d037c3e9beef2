"""
Celery application configuration.

Runs async projection processing and the scheduled jobs (overdue invoice
scan, monthly depreciation, projection health).

Usage:
    # Start worker
    celery -A ledger_backend worker -l INFO

    # Start beat scheduler (for periodic tasks)
    celery -A ledger_backend beat -l INFO
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledger_backend.settings")

app = Celery("ledger_backend")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up projections.tasks, trade.tasks and assets.tasks
app.autodiscover_tasks()
