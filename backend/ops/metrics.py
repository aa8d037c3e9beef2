"""
Prometheus metrics endpoint.

Metrics exposed:
- ledger_events_emitted_total: events written, by type
- ledger_events_total: events in the store, by type and company
- ledger_journal_postings_total: ledger postings by outcome (posted/rejected)
- ledger_projection_lag: projection consumer lag
- ledger_request_duration_seconds: HTTP request duration histogram
"""
import logging
import re
import time

from django.db import models
from django.http import HttpResponse
from django.views import View
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


EVENTS_EMITTED = Counter(
    "ledger_events_emitted_total",
    "Events written to the event store by this process",
    ["event_type"],
)

EVENTS_TOTAL = Gauge(
    "ledger_events_total",
    "Total number of events in the store",
    ["event_type", "company_slug"],
)

JOURNAL_POSTINGS = Counter(
    "ledger_journal_postings_total",
    "Journal entry posting attempts",
    ["outcome", "reference_type"],
)

PROJECTION_LAG = Gauge(
    "ledger_projection_lag",
    "Number of events pending processing",
    ["consumer", "company_slug"],
)

REQUEST_DURATION = Histogram(
    "ledger_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

ACTIVE_REQUESTS = Gauge(
    "ledger_active_requests",
    "Number of requests currently being processed",
)


def record_event_emitted(event_type: str) -> None:
    EVENTS_EMITTED.labels(event_type=event_type).inc()


def record_posting(outcome: str, reference_type: str = "") -> None:
    JOURNAL_POSTINGS.labels(outcome=outcome, reference_type=reference_type or "manual").inc()


def collect_metrics():
    """Refresh gauges from the database."""
    from events.models import BusinessEvent
    from projections.base import projection_registry
    from accounts.models import Company

    event_counts = (
        BusinessEvent.objects
        .values("event_type", "company__slug")
        .annotate(count=models.Count("id"))
    )
    for row in event_counts:
        EVENTS_TOTAL.labels(
            event_type=row["event_type"],
            company_slug=row["company__slug"] or "unknown",
        ).set(row["count"])

    for company in Company.objects.filter(is_active=True):
        for projection in projection_registry.all():
            PROJECTION_LAG.labels(
                consumer=projection.name,
                company_slug=company.slug,
            ).set(projection.get_lag(company))


class MetricsView(View):
    """
    Prometheus metrics endpoint at /_metrics.

    Should be protected in production (internal network only).
    """

    def get(self, request):
        try:
            collect_metrics()
        except Exception:
            logger.exception("Error collecting metrics")
        return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """

    def middleware(request):
        start = time.time()
        ACTIVE_REQUESTS.inc()
        status = 500
        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            ACTIVE_REQUESTS.dec()
            endpoint = re.sub(r"/\d+/", "/{id}/", request.path)
            endpoint = re.sub(r"/[0-9a-f-]{36}/", "/{uuid}/", endpoint)
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint[:50],
                status=f"{status // 100}xx",
            ).observe(time.time() - start)

    return middleware
