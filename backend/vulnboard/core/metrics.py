"""
Prometheus Metrics Collection

HTTP request metrics plus counters for the knowledge lookups, CVSS parsing,
and report generation performed by the aggregation core.
"""

import logging
import re
import time
from contextlib import contextmanager
from importlib.metadata import version as get_version
from typing import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# =============================================================================
# Application Info Metrics
# =============================================================================

try:
    APP_VERSION = get_version("vulnboard")
except Exception:
    APP_VERSION = "unknown"

app_info = Info("vulnboard_app", "Application information")
app_info.info({"version": APP_VERSION, "app_name": "Vulnboard"})

# =============================================================================
# HTTP Request Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint and status",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# Database Metrics
# =============================================================================

db_operations_total = Counter(
    "db_operations_total",
    "Total database operations by collection and operation type",
    ["collection", "operation"],
)

db_operation_duration_seconds = Histogram(
    "db_operation_duration_seconds",
    "Database operation duration in seconds",
    ["collection", "operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

db_errors_total = Counter(
    "db_errors_total",
    "Total database errors by type",
    ["error_type"],
)

# =============================================================================
# Cache Metrics
# =============================================================================

cache_hits_total = Counter("cache_hits_total", "Total cache hits")

cache_misses_total = Counter("cache_misses_total", "Total cache misses")

# =============================================================================
# Aggregation Core Metrics
# =============================================================================

knowledge_lookups_total = Counter(
    "knowledge_lookups_total",
    "Knowledge-base lookups by kind and outcome (found, not_found, error)",
    ["kind", "outcome"],
)

cvss_parse_errors_total = Counter(
    "cvss_parse_errors_total",
    "CVSS vectors that failed to parse, by schema version",
    ["version"],
)

reports_generated_total = Counter(
    "reports_generated_total",
    "Vulnerability detail reports generated, by anchor source",
    ["anchor"],
)

uptime_seconds = Gauge("uptime_seconds", "Application uptime in seconds")

startup_time = time.time()


def update_uptime():
    """Update the uptime metric."""
    uptime_seconds.set(time.time() - startup_time)


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    update_uptime()
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_path(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        except Exception as e:
            logger.error(f"Error in PrometheusMiddleware: {e}")
            raise
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.time() - start_time
            )
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()

        return response

    def _normalize_path(self, path: str) -> str:
        """
        Normalize URL paths to prevent cardinality explosion.

        Examples:
          /api/v1/analyses/123/vulnerabilities -> /api/v1/analyses/{id}/vulnerabilities
          /api/v1/analyses/<uuid>/vulnerabilities/CVE-2024-1 -> .../{id}/vulnerabilities/{vuln}
        """
        path = re.sub(
            r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
            "/{id}",
            path,
            flags=re.IGNORECASE,
        )
        path = re.sub(r"/[0-9a-f]{24}", "/{id}", path, flags=re.IGNORECASE)
        path = re.sub(r"/(CVE|GHSA|OSV|PYSEC|GO|RUSTSEC|framework)-[^/]+", "/{vuln}", path)
        path = re.sub(r"/\d+", "/{id}", path)
        return path


def track_db_operation(collection: str, operation: str):
    """Context manager to track database operation metrics."""

    @contextmanager
    def _tracker():
        start_time = time.time()
        try:
            yield
            db_operations_total.labels(collection=collection, operation=operation).inc()
            db_operation_duration_seconds.labels(
                collection=collection, operation=operation
            ).observe(time.time() - start_time)
        except Exception as e:
            db_errors_total.labels(error_type=type(e).__name__).inc()
            raise

    return _tracker()
