"""
Dashboard Helper Functions

Date-window resolution and loading of analysis records for the dashboard
endpoints.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from vulnboard.core import ensure_utc
from vulnboard.core.constants import LICENSE_PLUGIN_NAMES, SBOM_PLUGIN_NAMES, VULN_PLUGIN_NAMES
from vulnboard.models.dashboard import AnalysisRecord
from vulnboard.repositories import AnalysisRepository, AnalysisResultRepository

DASHBOARD_PLUGIN_NAMES: List[str] = VULN_PLUGIN_NAMES + LICENSE_PLUGIN_NAMES + SBOM_PLUGIN_NAMES

DAYS_PER_MONTH = 30


def resolve_window(
    start: Optional[datetime],
    end: Optional[datetime],
    default_months: int,
) -> Tuple[datetime, datetime]:
    """Fill in a missing end with now and a missing start with ``default_months`` before end."""
    if end is None:
        end = datetime.now(timezone.utc)
    if start is None:
        start = end - timedelta(days=DAYS_PER_MONTH * default_months)
    return start, end


def parse_project_ids(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    ids = [pid.strip() for pid in raw.split(",") if pid.strip()]
    return ids or None


async def load_analysis_records(
    db: AsyncIOMotorDatabase,
    start: datetime,
    end: datetime,
    project_ids: Optional[List[str]] = None,
) -> List[AnalysisRecord]:
    """Analyses in [start, end], oldest first, each with its dashboard plugin results."""
    analyses = await AnalysisRepository(db).find_in_window(start, end, project_ids)
    if not analyses:
        return []

    results = await AnalysisResultRepository(db).find_by_analysis_ids(
        [analysis.id for analysis in analyses], DASHBOARD_PLUGIN_NAMES
    )
    by_analysis: Dict[str, Dict[str, dict]] = defaultdict(dict)
    for result in results:
        by_analysis[result.analysis_id][result.plugin] = result.result

    return [
        AnalysisRecord(
            id=analysis.id,
            project_id=analysis.project_id,
            created_on=ensure_utc(analysis.created_on),
            results=by_analysis.get(analysis.id, {}),
        )
        for analysis in analyses
    ]
