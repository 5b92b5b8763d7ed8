import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from vulnboard.api import health
from vulnboard.api.v1.endpoints import dashboard, vulnerabilities
from vulnboard.core.cache import cache_service
from vulnboard.core.config import settings
from vulnboard.core.exceptions import (
    AnalysisNotFound,
    MissingAnchorItem,
    PluginFailed,
    PluginResultNotAvailable,
    UnknownWorkspace,
    VulnboardError,
    VulnerabilityNotFound,
)
from vulnboard.core.metrics import PrometheusMiddleware, metrics_endpoint
from vulnboard.db.mongodb import close_mongo_connection, connect_to_mongo

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Vulnboard API for browsing the vulnerability findings of project analyses.

    ## Features
    * **Merged Vulnerabilities**: One record per advisory with EPSS, model scores and policy blacklists.
    * **Filtering & Sorting**: Severity, OWASP Top 10, CIA impact and source-matching filters with facet counts.
    * **Detail Reports**: OSV- or NVD-anchored reports with CVSS 2/3/3.1 breakdowns and version reconciliation.
    * **Dashboard**: Weekly severity, attack vectors, CIA impact, licenses and project grades.

    """,
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

app.add_middleware(PrometheusMiddleware)

ERROR_STATUS = {
    AnalysisNotFound: status.HTTP_404_NOT_FOUND,
    UnknownWorkspace: status.HTTP_404_NOT_FOUND,
    PluginResultNotAvailable: status.HTTP_404_NOT_FOUND,
    MissingAnchorItem: status.HTTP_404_NOT_FOUND,
    VulnerabilityNotFound: status.HTTP_404_NOT_FOUND,
    PluginFailed: status.HTTP_409_CONFLICT,
}


@app.exception_handler(VulnboardError)
async def vulnboard_error_handler(request: Request, exc: VulnboardError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"Unhandled domain error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
    )


@app.on_event("startup")
async def startup_event():
    await connect_to_mongo()


@app.on_event("shutdown")
async def shutdown_event():
    await cache_service.close()
    await close_mongo_connection()


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(vulnerabilities.router, prefix=f"{settings.API_V1_STR}", tags=["vulnerabilities"])
app.include_router(dashboard.router, prefix=f"{settings.API_V1_STR}/dashboard", tags=["dashboard"])
app.add_route("/metrics", metrics_endpoint, include_in_schema=False)


@app.get("/")
async def root():
    return {"message": "Welcome to Vulnboard API"}
