from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from vulnboard.api.router import CustomAPIRouter
from vulnboard.api.v1.helpers.dashboard import load_analysis_records, parse_project_ids, resolve_window
from vulnboard.core.config import settings
from vulnboard.db.mongodb import get_database
from vulnboard.models.dashboard import (
    AnalysisRecord,
    AttackVectorCount,
    CIAImpact,
    LatestVulns,
    WeeklySeverityBucket,
)
from vulnboard.services import dashboard as aggregations

router = CustomAPIRouter()

PROJECT_IDS_QUERY = Query(None, description="Comma-separated project ids; all projects when omitted")
START_QUERY = Query(None, description="Window start (ISO 8601)")
END_QUERY = Query(None, description="Window end (ISO 8601); defaults to now")


async def _records(
    db: AsyncIOMotorDatabase,
    project_ids: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
    default_months: int = settings.DASHBOARD_DEFAULT_MONTHS,
) -> List[AnalysisRecord]:
    start, end = resolve_window(start, end, default_months)
    return await load_analysis_records(db, start, end, parse_project_ids(project_ids))


@router.get("/severity-by-week", response_model=List[WeeklySeverityBucket], summary="Weekly severity histogram")
async def severity_by_week(
    project_ids: Optional[str] = PROJECT_IDS_QUERY,
    start: Optional[datetime] = START_QUERY,
    end: Optional[datetime] = END_QUERY,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    records = await _records(db, project_ids, start, end, settings.DASHBOARD_WEEKLY_DEFAULT_MONTHS)
    return aggregations.weekly_severity(records)


@router.get("/attack-vectors", response_model=List[AttackVectorCount], summary="Attack vector distribution")
async def attack_vectors(
    project_ids: Optional[str] = PROJECT_IDS_QUERY,
    start: Optional[datetime] = START_QUERY,
    end: Optional[datetime] = END_QUERY,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return aggregations.attack_vector_distribution(await _records(db, project_ids, start, end))


@router.get("/cia-impact", response_model=List[CIAImpact], summary="Summed CIA impact")
async def cia_impact(
    project_ids: Optional[str] = PROJECT_IDS_QUERY,
    start: Optional[datetime] = START_QUERY,
    end: Optional[datetime] = END_QUERY,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return aggregations.cia_impacts(await _records(db, project_ids, start, end))


@router.get("/licenses", response_model=Dict[str, int], summary="License distribution")
async def licenses(
    project_ids: Optional[str] = PROJECT_IDS_QUERY,
    start: Optional[datetime] = START_QUERY,
    end: Optional[datetime] = END_QUERY,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return aggregations.license_distribution(await _records(db, project_ids, start, end))


@router.get("/recent-vulnerabilities", response_model=LatestVulns, summary="Latest vulnerabilities")
async def recent_vulnerabilities(
    project_ids: Optional[str] = PROJECT_IDS_QUERY,
    start: Optional[datetime] = START_QUERY,
    end: Optional[datetime] = END_QUERY,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return aggregations.recent_vulnerabilities(await _records(db, project_ids, start, end))


@router.get("/quick-stats", summary="Quick stats and project grade")
async def quick_stats(
    project_ids: Optional[str] = PROJECT_IDS_QUERY,
    start: Optional[datetime] = START_QUERY,
    end: Optional[datetime] = END_QUERY,
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> Dict[str, Any]:
    stats = aggregations.quick_stats(await _records(db, project_ids, start, end))
    # Grade is rendered under its wire name "class"
    return stats.model_dump(by_alias=True, mode="json")
