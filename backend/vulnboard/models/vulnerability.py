from typing import List, Optional

from pydantic import BaseModel, Field

from vulnboard.models.finding import AffectedVuln, Conflict, SeverityScore, Source, Weakness


class VLAIScore(BaseModel):
    source: Source
    score: str = ""
    confidence: float = 0.0


class EPSSScore(BaseModel):
    score: float = 0.0
    percentile: float = 0.0


class MergedVulnerability(BaseModel):
    """One record per distinct advisory id across a workspace's findings."""

    id: str = ""
    vulnerability: str = Field(..., description="Advisory id (CVE, GHSA, ...)")
    sources: List[Source] = Field(default_factory=list)
    affected: List[AffectedVuln] = Field(default_factory=list)
    severity: Optional[SeverityScore] = Field(None, description="Severity of the first-seen finding")
    weaknesses: Optional[List[Weakness]] = None
    description: str = ""
    conflict: Conflict = Field(default_factory=Conflict)
    vlai: List[VLAIScore] = Field(default_factory=list)
    epss: EPSSScore = Field(default_factory=EPSSScore)
    is_blacklisted: bool = False
    blacklisted_by_policies: List[str] = Field(default_factory=list)

    @property
    def severity_value(self) -> float:
        return self.severity.severity if self.severity else 0.0
