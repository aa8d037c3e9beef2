"""
Health check endpoints for operations monitoring.

Checks:
- Database connectivity (all configured databases)
- Redis/Celery connectivity
- Projection lag
- Ledger integrity (total debits equal total credits per company)

Endpoints:
- /_health/live    - liveness probe (is the process running?)
- /_health/ready   - readiness probe (can we serve traffic?)
- /_health/full    - full health report (for debugging/dashboards)
"""
import logging
import time
from typing import Dict, Any

from django.conf import settings
from django.db import connections
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


class HealthCheck:
    """Health check implementation."""

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        start = time.time()
        try:
            conn = connections[alias]
            conn.ensure_connection()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            duration_ms = (time.time() - start) * 1000
            return {
                "status": "healthy",
                "alias": alias,
                "duration_ms": round(duration_ms, 2),
            }
        except Exception as e:
            duration_ms = (time.time() - start) * 1000
            return {
                "status": "unhealthy",
                "alias": alias,
                "error": str(e),
                "duration_ms": round(duration_ms, 2),
            }

    @staticmethod
    def check_all_databases() -> Dict[str, Any]:
        results = {}
        all_healthy = True

        for alias in settings.DATABASES.keys():
            result = HealthCheck.check_database(alias)
            results[alias] = result
            if result["status"] != "healthy":
                all_healthy = False

        return {
            "status": "healthy" if all_healthy else "degraded",
            "databases": results,
        }

    @staticmethod
    def check_redis() -> Dict[str, Any]:
        """Ping the Celery broker when one is configured."""
        redis_url = getattr(settings, "CELERY_BROKER_URL", None)
        if not redis_url or not redis_url.startswith("redis"):
            return {"status": "skipped", "reason": "Redis not configured"}

        import redis

        start = time.time()
        try:
            client = redis.from_url(redis_url)
            client.ping()
            duration_ms = (time.time() - start) * 1000
            return {
                "status": "healthy",
                "duration_ms": round(duration_ms, 2),
            }
        except Exception as e:
            duration_ms = (time.time() - start) * 1000
            return {
                "status": "unhealthy",
                "error": str(e),
                "duration_ms": round(duration_ms, 2),
            }

    @staticmethod
    def check_projection_lag() -> Dict[str, Any]:
        try:
            from accounts.models import Company
            from projections.base import projection_registry

            total_lag = 0
            consumers = []
            for company in Company.objects.filter(is_active=True):
                for projection in projection_registry.all():
                    lag = projection.get_lag(company)
                    total_lag += lag
                    bookmark = projection.get_bookmark(company)
                    errors = bookmark.error_count if bookmark else 0
                    if lag > 0 or errors > 0:
                        consumers.append({
                            "consumer": projection.name,
                            "company": company.slug,
                            "lag": lag,
                            "errors": errors,
                            "paused": bookmark.is_paused if bookmark else False,
                        })

            lag_threshold = getattr(settings, "PROJECTION_LAG_THRESHOLD", 1000)
            status = "healthy" if total_lag < lag_threshold else "degraded"

            return {
                "status": status,
                "total_lag": total_lag,
                "threshold": lag_threshold,
                "consumers_with_lag": consumers[:10],
            }
        except Exception as e:
            return {
                "status": "error",
                "error": str(e),
            }

    @staticmethod
    def check_ledger_balance() -> Dict[str, Any]:
        """Every company's trial balance must agree."""
        try:
            from accounts.models import Company
            from accounting.commands import trial_balance

            unbalanced = []
            for company in Company.objects.filter(is_active=True):
                report = trial_balance(company)
                if not report["is_balanced"]:
                    unbalanced.append({
                        "company": company.slug,
                        "total_debit": report["total_debit"],
                        "total_credit": report["total_credit"],
                    })

            if unbalanced:
                logger.error("Unbalanced ledger detected", extra={"companies": unbalanced})
                return {"status": "unhealthy", "unbalanced": unbalanced}
            return {"status": "healthy"}
        except Exception as e:
            return {
                "status": "error",
                "error": str(e),
            }

    @staticmethod
    def get_full_health() -> Dict[str, Any]:
        checks = {
            "databases": HealthCheck.check_all_databases(),
            "redis": HealthCheck.check_redis(),
            "projection_lag": HealthCheck.check_projection_lag(),
            "ledger_balance": HealthCheck.check_ledger_balance(),
        }

        statuses = [c.get("status", "unknown") for c in checks.values()]
        if all(s == "healthy" or s == "skipped" for s in statuses):
            overall = "healthy"
        elif any(s == "unhealthy" for s in statuses):
            overall = "unhealthy"
        else:
            overall = "degraded"

        return {
            "status": overall,
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
            "environment": "production" if not settings.DEBUG else "development",
        }


class LivenessView(View):
    """Returns 200 while the process is running. No external checks."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """Returns 200 when the default database answers."""

    def get(self, request):
        db_check = HealthCheck.check_database("default")

        if db_check["status"] == "healthy":
            return JsonResponse({
                "status": "ready",
                "database": db_check,
            })
        return JsonResponse({
            "status": "not_ready",
            "database": db_check,
        }, status=503)


class FullHealthView(View):
    """
    Full health report for dashboards.

    Should be protected in production (internal network only).
    """

    def get(self, request):
        health = HealthCheck.get_full_health()

        status_code = 200 if health["status"] == "healthy" else 503
        return JsonResponse(health, status=status_code)
