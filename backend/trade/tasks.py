"""
Scheduled receivables maintenance.

mark_overdue_invoices_task runs daily from celery beat and flips unpaid
invoices past their due date to overdue for every active company.
"""
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def mark_overdue_invoices_task(self) -> dict:
    from accounts.authz import owner_actor
    from accounts.models import Company
    from trade.commands import mark_overdue_invoices

    results = {}
    for company in Company.objects.filter(is_active=True):
        actor = owner_actor(company)
        if actor is None:
            logger.warning("Skipping overdue scan: company has no active owner", extra={"company": company.slug})
            continue
        result = mark_overdue_invoices(actor)
        results[company.slug] = result.data if result.success else result.error

    return {"companies": results}
