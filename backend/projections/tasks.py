"""
Celery tasks for async projection processing.

When PROJECTIONS_SYNC is off, commands only emit events; these tasks bring
the ledger, account balance and stock level read models up to date.

Tasks:
- process_company_projections: Process all projections for a company
- process_all_projections: Process projections for all active companies (beat)
- rebuild_projection: Rebuild a single projection from scratch
- check_projection_health: Report lag for alerting

Usage:
    from projections.tasks import process_company_projections
    process_company_projections.delay(company_id=company.id)
"""
import logging
from typing import Optional

from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def process_company_projections(
    self,
    company_id: int,
    projection_names: Optional[list] = None,
    limit: int = 1000,
) -> dict:
    """
    Process all pending projection events for a company.

    Returns:
        Dict with processing results per projection
    """
    from accounts.models import Company
    from projections.base import projection_registry

    try:
        company = Company.objects.get(id=company_id)
    except Company.DoesNotExist:
        logger.error("Company %s not found", company_id)
        return {"error": f"Company {company_id} not found"}

    if projection_names:
        projections = [
            projection_registry.get(name)
            for name in projection_names
            if projection_registry.get(name)
        ]
    else:
        projections = projection_registry.all()

    results = {}
    total_processed = 0

    for projection in projections:
        try:
            processed = projection.process_pending(company, limit=limit)
            results[projection.name] = {"processed": processed, "status": "success"}
            total_processed += processed
        except Exception as e:
            logger.exception("Error in projection %s", projection.name, extra={"company": company.slug})
            results[projection.name] = {"error": str(e), "status": "error"}

    logger.info(
        "Completed projections for %s: %d events processed",
        company.slug,
        total_processed,
    )

    return {
        "company_id": company_id,
        "total_processed": total_processed,
        "projections": results,
    }


@shared_task(bind=True)
def process_all_projections(self, limit: int = 1000) -> dict:
    """Catch up every active company. Scheduled by celery beat."""
    from accounts.models import Company

    results = {}
    total_processed = 0

    companies = list(Company.objects.filter(is_active=True))
    for company in companies:
        result = process_company_projections(company_id=company.id, limit=limit)
        results[company.slug] = result
        total_processed += result.get("total_processed", 0)

    return {
        "companies_processed": len(companies),
        "total_events_processed": total_processed,
        "results": results,
    }


@shared_task(bind=True, max_retries=1, time_limit=3600)
def rebuild_projection(self, company_id: int, projection_name: str) -> dict:
    """Reset the bookmark, clear projected rows and replay every event."""
    from accounts.models import Company
    from projections.base import projection_registry

    try:
        company = Company.objects.get(id=company_id)
    except Company.DoesNotExist:
        return {"error": f"Company {company_id} not found"}

    projection = projection_registry.get(projection_name)
    if not projection:
        return {"error": f"Projection {projection_name} not found"}

    processed = projection.rebuild(company)
    logger.info(
        "Rebuilt projection %s for %s: %d events processed",
        projection_name,
        company.slug,
        processed,
    )
    return {
        "company_id": company_id,
        "projection": projection_name,
        "events_processed": processed,
        "status": "success",
    }


@shared_task(bind=True)
def check_projection_health(self) -> dict:
    """Report lag across all projections; unhealthy at PROJECTION_LAG_THRESHOLD."""
    from accounts.models import Company
    from ops.metrics import PROJECTION_LAG
    from projections.base import projection_registry

    threshold = getattr(settings, "PROJECTION_LAG_THRESHOLD", 1000)
    report = {
        "healthy": True,
        "total_lag": 0,
        "companies_with_lag": [],
        "threshold": threshold,
    }

    for company in Company.objects.filter(is_active=True):
        company_lag = 0
        lagging = []
        for projection in projection_registry.all():
            lag = projection.get_lag(company)
            PROJECTION_LAG.labels(consumer=projection.name, company_slug=company.slug).set(lag)
            company_lag += lag
            if lag > 0:
                lagging.append({"projection": projection.name, "lag": lag})

        if company_lag > 0:
            report["companies_with_lag"].append({
                "company": company.slug,
                "total_lag": company_lag,
                "projections": lagging,
            })
        report["total_lag"] += company_lag

    if report["total_lag"] >= threshold:
        report["healthy"] = False
        logger.warning(
            "Projection lag threshold exceeded: %d >= %d",
            report["total_lag"],
            threshold,
        )

    return report
