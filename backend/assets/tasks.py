"""
Monthly depreciation run.

Celery beat calls run_monthly_depreciation_task on the first day of each
month; every active asset of every active company is depreciated once for
that date.
"""
import logging
from datetime import date
from typing import Optional

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, time_limit=1800)
def run_monthly_depreciation_task(self, depreciation_date: Optional[str] = None) -> dict:
    from accounts.authz import owner_actor
    from accounts.models import Company
    from assets.commands import run_monthly_depreciation

    on_date = date.fromisoformat(depreciation_date) if depreciation_date else None

    results = {}
    for company in Company.objects.filter(is_active=True):
        actor = owner_actor(company)
        if actor is None:
            logger.warning("Skipping depreciation: company has no active owner", extra={"company": company.slug})
            continue
        result = run_monthly_depreciation(actor, on_date)
        results[company.slug] = result.data if result.success else result.error

    return {"companies": results}
