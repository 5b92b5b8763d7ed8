from typing import Optional

from fastapi import Depends, Query

from vulnboard.api import deps
from vulnboard.api.router import CustomAPIRouter
from vulnboard.api.v1.helpers.responses import RESP_404, RESP_404_409
from vulnboard.models.report import VulnerabilityDetailsReport
from vulnboard.models.stats import AnalysisStats, AnalysisStatus
from vulnboard.schemas.vulnerability import VulnerabilityPage
from vulnboard.services.vulnerabilities import VulnerabilityService

router = CustomAPIRouter()


@router.get(
    "/analyses/{analysis_id}/vulnerabilities",
    response_model=VulnerabilityPage,
    summary="List merged vulnerabilities",
    responses={**RESP_404_409},
)
async def list_vulnerabilities(
    analysis_id: str,
    workspace: str = Query(".", description="Workspace of the analyzed project"),
    page: int = Query(0, description="0-based page number"),
    entries_per_page: Optional[int] = Query(None, description="Page size; capped at the configured maximum"),
    sort_by: Optional[str] = Query(None, description="Sort key, e.g. severity, epss, dep_name"),
    sort_direction: Optional[str] = Query(None, description="ASC or DESC"),
    active_filters: Optional[str] = Query(None, description="Comma-separated filter names"),
    search_key: Optional[str] = Query(None, description="Substring of the advisory id or a dependency name"),
    ecosystem_filter: Optional[str] = Query(None, description="npm or packagist"),
    show_blacklisted: bool = Query(True, description="Include advisories blacklisted by policies"),
    service: VulnerabilityService = Depends(deps.get_vulnerability_service),
):
    return await service.list_vulnerabilities(
        analysis_id,
        workspace,
        page=page,
        entries_per_page=entries_per_page,
        sort_by=sort_by,
        sort_direction=sort_direction,
        active_filters=active_filters,
        search_key=search_key,
        ecosystem_filter=ecosystem_filter,
        show_blacklisted=show_blacklisted,
    )


@router.get(
    "/analyses/{analysis_id}/vulnerabilities/stats",
    response_model=AnalysisStats,
    summary="Vulnerability statistics of a workspace",
    responses={**RESP_404_409},
)
async def get_vulnerability_stats(
    analysis_id: str,
    workspace: str = Query(".", description="Workspace of the analyzed project"),
    ecosystem_filter: Optional[str] = Query(None, description="npm or packagist"),
    previous_analysis_id: Optional[str] = Query(None, description="Analysis to compute differences against"),
    service: VulnerabilityService = Depends(deps.get_vulnerability_service),
):
    return await service.get_stats(analysis_id, workspace, ecosystem_filter, previous_analysis_id)


@router.get(
    "/analyses/{analysis_id}/vulnerabilities/status",
    response_model=AnalysisStatus,
    response_model_exclude_none=True,
    summary="Vulnerability analyzer status",
    responses={**RESP_404},
)
async def get_vulnerability_status(
    analysis_id: str,
    service: VulnerabilityService = Depends(deps.get_vulnerability_service),
):
    return await service.get_status(analysis_id)


@router.get(
    "/analyses/{analysis_id}/vulnerabilities/{vulnerability_id}",
    response_model=VulnerabilityDetailsReport,
    summary="Detail report of one vulnerability",
    responses={**RESP_404_409},
)
async def get_vulnerability_report(
    analysis_id: str,
    vulnerability_id: str,
    workspace: str = Query(".", description="Workspace of the analyzed project"),
    dependency: Optional[str] = Query(None, description="Restrict to findings of this dependency"),
    service: VulnerabilityService = Depends(deps.get_vulnerability_service),
):
    return await service.get_report(analysis_id, workspace, vulnerability_id, dependency)
