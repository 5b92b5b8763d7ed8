from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProjectGradeClass(str, Enum):
    A_PLUS = "A+"
    A = "A"
    B_PLUS = "B+"
    B = "B"
    C_PLUS = "C+"
    C = "C"
    D_PLUS = "D+"
    D = "D"


class Trend(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    EQUAL = "EQUAL"


class AnalysisRecord(BaseModel):
    """One project analysis with its plugin results, as scanned by the dashboard."""

    id: str = ""
    project_id: str
    created_on: datetime
    results: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class WeekNumber(BaseModel):
    week: int
    year: int


class WeeklySeverityBucket(BaseModel):
    week_number: WeekNumber
    nmb_critical: int = 0
    nmb_high: int = 0
    nmb_medium: int = 0
    nmb_low: int = 0
    nmb_none: int = 0
    summed_severity: float = 0.0
    projects: List[str] = Field(default_factory=list)


class AttackVectorCount(BaseModel):
    attack_vector: str
    count: int = 0


class CIAImpact(BaseModel):
    cia: str  # "Confidentiality" | "Integrity" | "Availability"
    impact: float


class RecentVuln(BaseModel):
    severity: float
    severity_class: str = "LOW"
    cwe: str
    cwe_name: str


class SeverityCount(BaseModel):
    severity_class: str
    count: int = 0


class LatestVulns(BaseModel):
    vulns: Dict[str, RecentVuln] = Field(default_factory=dict)
    severity_count: List[SeverityCount] = Field(
        default_factory=lambda: [
            SeverityCount(severity_class="CRITICAL"),
            SeverityCount(severity_class="HIGH"),
            SeverityCount(severity_class="MEDIUM"),
        ]
    )


class Grade(BaseModel):
    score: float = 0.0
    # "class" is a keyword; exposed under its wire name via alias
    grade_class: ProjectGradeClass = Field(ProjectGradeClass.D, alias="class")

    class Config:
        populate_by_name = True


class TrendInfo(BaseModel):
    trend: Trend = Trend.EQUAL
    diff: float = 0.0


class QuickStats(BaseModel):
    max_grade: Grade = Field(default_factory=Grade)
    max_grade_trend: TrendInfo = Field(default_factory=TrendInfo)
    nmb_deprecated: int = 0
    nmb_deprecated_trend: TrendInfo = Field(default_factory=TrendInfo)
    owasp_top_10: Optional[str] = None
    most_affected_cia: Optional[str] = None
