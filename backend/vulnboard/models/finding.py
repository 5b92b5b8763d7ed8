"""
Finding Models

Per-dependency vulnerability findings as stored by the vulnerability analyzer.
The analyzer writes PascalCase keys; models accept both the stored aliases and
the Python field names.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Source(str, Enum):
    NVD = "NVD"
    OSV = "OSV"


class ConflictFlag(str, Enum):
    """
    Cross-source matching verdict.

    ``UNSET`` covers legacy records that carry an empty string; it is a
    compatibility shim and compares as ``NO_CONFLICT`` via ``is_no_conflict``.
    """

    UNSET = ""
    NO_CONFLICT = "NO_CONFLICT"
    MATCH_CORRECT = "MATCH_CORRECT"
    MATCH_INCORRECT = "MATCH_INCORRECT"
    MATCH_POSSIBLE_INCORRECT = "MATCH_POSSIBLE_INCORRECT"


def is_no_conflict(flag: Optional[str]) -> bool:
    """True for NO_CONFLICT and for the empty/unset legacy value."""
    return flag in (None, ConflictFlag.NO_CONFLICT, ConflictFlag.UNSET)


class SeverityType(str, Enum):
    CVSS_V2 = "CVSS_V2"
    CVSS_V3 = "CVSS_V3"
    CVSS_V31 = "CVSS_V31"


class SemVer(BaseModel):
    major: int = Field(0, alias="Major")
    minor: int = Field(0, alias="Minor")
    patch: int = Field(0, alias="Patch")
    pre_release_tag: str = Field("", alias="PreReleaseTag")
    metadata: str = Field("", alias="MetaData")

    class Config:
        populate_by_name = True

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre_release_tag:
            text += f"-{self.pre_release_tag}"
        return text


class VersionRange(BaseModel):
    introduced: SemVer = Field(default_factory=SemVer, alias="IntroducedSemver")
    fixed: SemVer = Field(default_factory=SemVer, alias="FixedSemver")

    class Config:
        populate_by_name = True


class ExactVersion(BaseModel):
    version_string: str = Field("", alias="VersionString")
    semver: Optional[SemVer] = Field(None, alias="VersionSemver")

    class Config:
        populate_by_name = True


class AffectedEvidence(BaseModel):
    """Abstracted affected-version evidence: ranges, an exact list, or universal."""

    ranges: List[VersionRange] = Field(default_factory=list, alias="Ranges")
    exact: List[ExactVersion] = Field(default_factory=list, alias="Exact")
    universal: bool = Field(False, alias="Universal")

    class Config:
        populate_by_name = True

    def is_empty(self) -> bool:
        return not self.ranges and not self.exact and not self.universal


class SourceMatch(BaseModel):
    """Per-source match metadata produced by the analyzer (OSVMatch / NVDMatch)."""

    vulnerability: Any = Field(None, alias="Vulnerability")
    affected_info: List[AffectedEvidence] = Field(default_factory=list, alias="AffectedInfo")

    class Config:
        populate_by_name = True
        extra = "allow"

    def vlai(self) -> Optional[Dict[str, Any]]:
        """Return the model score/confidence pair when the matched record carries one."""
        vuln = self.vulnerability
        if isinstance(vuln, dict) and "Vlai_score" in vuln:
            return {"score": vuln.get("Vlai_score"), "confidence": vuln.get("Vlai_confidence")}
        return None

    def first_evidence(self) -> Optional[AffectedEvidence]:
        return self.affected_info[0] if self.affected_info else None


class SeverityScore(BaseModel):
    severity: float = Field(0.0, alias="Severity")
    severity_class: str = Field("", alias="SeverityClass")
    severity_type: Optional[str] = Field(None, alias="SeverityType")
    vector: str = Field("", alias="Vector")
    impact: float = Field(0.0, alias="Impact")
    exploitability: float = Field(0.0, alias="Exploitability")
    confidentiality_impact: str = Field("", alias="ConfidentialityImpact")
    integrity_impact: str = Field("", alias="IntegrityImpact")
    availability_impact: str = Field("", alias="AvailabilityImpact")
    confidentiality_impact_numerical: float = Field(0.0, alias="ConfidentialityImpactNumerical")
    integrity_impact_numerical: float = Field(0.0, alias="IntegrityImpactNumerical")
    availability_impact_numerical: float = Field(0.0, alias="AvailabilityImpactNumerical")

    class Config:
        populate_by_name = True


class Weakness(BaseModel):
    weakness_id: str = Field("", alias="WeaknessId")
    weakness_name: str = Field("", alias="WeaknessName")
    weakness_description: str = Field("", alias="WeaknessDescription")
    extended_description: str = Field("", alias="WeaknessExtendedDescription")
    # Empty string means "uncategorized"
    owasp_top10_id: str = Field("", alias="OWASPTop10Id")
    owasp_top10_name: str = Field("", alias="OWASPTop10Name")

    class Config:
        populate_by_name = True

    @property
    def cwe_number(self) -> Optional[int]:
        digits = self.weakness_id.upper().replace("CWE-", "")
        return int(digits) if digits.isdigit() else None


class Conflict(BaseModel):
    winner: str = Field("", alias="ConflictWinner")
    flag: ConflictFlag = Field(ConflictFlag.NO_CONFLICT, alias="ConflictFlag")

    class Config:
        populate_by_name = True


class Finding(BaseModel):
    """One (advisory, dependency, installed version) occurrence."""

    id: str = Field("", alias="Id")
    vulnerability_id: str = Field(..., alias="VulnerabilityId")
    affected_dependency: str = Field("", alias="AffectedDependency")
    affected_version: str = Field("", alias="AffectedVersion")
    sources: List[Source] = Field(default_factory=list, alias="Sources")
    severity: Optional[SeverityScore] = Field(None, alias="Severity")
    weaknesses: Optional[List[Weakness]] = Field(None, alias="Weaknesses")
    osv_match: Optional[SourceMatch] = Field(None, alias="OSVMatch")
    nvd_match: Optional[SourceMatch] = Field(None, alias="NVDMatch")
    conflict: Conflict = Field(default_factory=Conflict, alias="Conflict")

    class Config:
        populate_by_name = True

    def evidence_for(self, source: Source) -> Optional[AffectedEvidence]:
        match = self.nvd_match if source == Source.NVD else self.osv_match
        return match.first_evidence() if match else None


class AffectedVuln(BaseModel):
    """One finding's contribution to a merged vulnerability."""

    vulnerability_id: str
    affected_dependency: str = ""
    affected_version: str = ""
    sources: List[Source] = Field(default_factory=list)
    severity: Optional[SeverityScore] = None
    weaknesses: Optional[List[Weakness]] = None
    osv_match: Optional[SourceMatch] = None
    nvd_match: Optional[SourceMatch] = None
    conflict: Conflict = Field(default_factory=Conflict)

    @classmethod
    def from_finding(cls, finding: Finding) -> "AffectedVuln":
        return cls(
            vulnerability_id=finding.vulnerability_id,
            affected_dependency=finding.affected_dependency,
            affected_version=finding.affected_version,
            sources=list(finding.sources),
            severity=finding.severity,
            weaknesses=finding.weaknesses,
            osv_match=finding.osv_match,
            nvd_match=finding.nvd_match,
            conflict=finding.conflict.model_copy(),
        )
