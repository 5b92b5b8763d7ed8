from typing import Any, List, Optional

from pydantic import BaseModel, Field


class AnalysisStats(BaseModel):
    """Vulnerability statistics of one workspace, with deltas against a previous finding set."""

    number_of_issues: int = Field(0, description="Count of findings (advisory x dependency)")
    number_of_vulnerabilities: int = Field(0, description="Count of distinct advisories")
    number_of_vulnerable_dependencies: int = Field(0, description="Count of distinct affected dependencies")

    mean_severity: float = 0.0
    max_severity: float = 0.0
    mean_confidentiality_impact: float = 0.0
    mean_integrity_impact: float = 0.0
    mean_availability_impact: float = 0.0

    number_of_owasp_top_10_2021_a1: int = 0
    number_of_owasp_top_10_2021_a2: int = 0
    number_of_owasp_top_10_2021_a3: int = 0
    number_of_owasp_top_10_2021_a4: int = 0
    number_of_owasp_top_10_2021_a5: int = 0
    number_of_owasp_top_10_2021_a6: int = 0
    number_of_owasp_top_10_2021_a7: int = 0
    number_of_owasp_top_10_2021_a8: int = 0
    number_of_owasp_top_10_2021_a9: int = 0
    number_of_owasp_top_10_2021_a10: int = 0

    number_of_critical: int = 0
    number_of_high: int = 0
    number_of_medium: int = 0
    number_of_low: int = 0
    number_of_none: int = 0

    number_of_vulnerabilities_diff: int = 0
    number_of_vulnerable_dependencies_diff: int = 0
    mean_severity_diff: float = 0.0
    max_severity_diff: float = 0.0
    mean_confidentiality_impact_diff: float = 0.0
    mean_integrity_impact_diff: float = 0.0
    mean_availability_impact_diff: float = 0.0

    number_of_owasp_top_10_2021_a1_diff: int = 0
    number_of_owasp_top_10_2021_a2_diff: int = 0
    number_of_owasp_top_10_2021_a3_diff: int = 0
    number_of_owasp_top_10_2021_a4_diff: int = 0
    number_of_owasp_top_10_2021_a5_diff: int = 0
    number_of_owasp_top_10_2021_a6_diff: int = 0
    number_of_owasp_top_10_2021_a7_diff: int = 0
    number_of_owasp_top_10_2021_a8_diff: int = 0
    number_of_owasp_top_10_2021_a9_diff: int = 0
    number_of_owasp_top_10_2021_a10_diff: int = 0

    number_of_critical_diff: int = 0
    number_of_high_diff: int = 0
    number_of_medium_diff: int = 0
    number_of_low_diff: int = 0
    number_of_none_diff: int = 0


class AnalysisStatus(BaseModel):
    stage_start: str = ""
    stage_end: str = ""
    # Only populated when the analyzer recorded private errors
    public_errors: Optional[List[Any]] = None
    private_errors: Optional[List[Any]] = None
