from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, Field


class Analysis(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    project_id: str
    organization_id: str = ""
    created_on: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    # Per-plugin analyzer configuration, e.g. {"vuln-finder": {"vulnerabilityPolicy": [...]}}
    config: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class AnalysisInfo(BaseModel):
    status: str = "success"
    analysis_start_time: str = ""
    analysis_end_time: str = ""
    public_errors: List[Any] = Field(default_factory=list)
    private_errors: List[Any] = Field(default_factory=list)
    stats: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "allow"


class AnalysisResult(BaseModel):
    """One analyzer plugin's output for an analysis."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    analysis_id: str
    plugin: str
    result: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @property
    def analysis_info(self) -> AnalysisInfo:
        return AnalysisInfo(**(self.result.get("analysis_info") or {}))

    @property
    def workspaces(self) -> Dict[str, Any]:
        return self.result.get("workspaces") or {}
