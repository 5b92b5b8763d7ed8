"""
Analysis Repository

Project analyses with their analyzer configuration.
"""

from datetime import datetime
from typing import List, Optional

from vulnboard.core.exceptions import AnalysisNotFound
from vulnboard.models.analysis import Analysis
from vulnboard.repositories.base import BaseRepository


class AnalysisRepository(BaseRepository[Analysis]):
    collection_name = "analyses"
    model_class = Analysis

    async def get_analysis(self, analysis_id: str) -> Analysis:
        """
        Raises:
            AnalysisNotFound: If no analysis has this id
        """
        analysis = await self.get_by_id(analysis_id)
        if analysis is None:
            raise AnalysisNotFound()
        return analysis

    async def find_in_window(
        self,
        start: datetime,
        end: datetime,
        project_ids: Optional[List[str]] = None,
        limit: int = 10000,
    ) -> List[Analysis]:
        """Analyses created within [start, end], oldest first."""
        query = {"created_on": {"$gte": start, "$lte": end}}
        if project_ids:
            query["project_id"] = {"$in": project_ids}
        return await self.find_many(query, limit=limit, sort_by="created_on", sort_order=1)
