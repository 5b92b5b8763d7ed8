"""
Knowledge-Base Models

Advisory feed records (OSV, NVD, third-party), CWE and OWASP catalog entries,
EPSS scores, vulnerability policies, and package metadata, as read from the
knowledge database.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OSVEvent(BaseModel):
    introduced: Optional[str] = None
    fixed: Optional[str] = None
    last_affected: Optional[str] = None
    limit: Optional[str] = None


class OSVRange(BaseModel):
    type: Optional[str] = None
    events: List[OSVEvent] = Field(default_factory=list)


class OSVPackage(BaseModel):
    name: Optional[str] = None
    ecosystem: Optional[str] = None
    purl: Optional[str] = None


class OSVAffected(BaseModel):
    package: Optional[OSVPackage] = None
    versions: List[str] = Field(default_factory=list)
    ranges: List[OSVRange] = Field(default_factory=list)


class OSVSeverity(BaseModel):
    type: str
    score: str


class OSVReference(BaseModel):
    type: str = ""
    url: str


class OSVItem(BaseModel):
    osv_id: str
    cve: Optional[str] = None
    summary: str = ""
    details: str = ""
    published: Optional[str] = None
    modified: Optional[str] = None
    aliases: List[str] = Field(default_factory=list)
    affected: List[OSVAffected] = Field(default_factory=list)
    severity: List[OSVSeverity] = Field(default_factory=list)
    references: List[OSVReference] = Field(default_factory=list)
    vlai_score: Optional[str] = None
    vlai_confidence: Optional[float] = None

    class Config:
        extra = "allow"


class NVDDescription(BaseModel):
    lang: str
    value: str


class NVDCvssData(BaseModel):
    vectorString: str

    class Config:
        extra = "allow"


class NVDMetric(BaseModel):
    source: str = ""
    type: Optional[str] = None
    cvssData: NVDCvssData
    userInteractionRequired: Optional[bool] = None

    class Config:
        extra = "allow"


class NVDMetrics(BaseModel):
    cvssMetricV2: List[NVDMetric] = Field(default_factory=list)
    cvssMetricV30: List[NVDMetric] = Field(default_factory=list)
    cvssMetricV31: List[NVDMetric] = Field(default_factory=list)


class NVDCriteria(BaseModel):
    vendor: Optional[str] = None
    product: Optional[str] = None
    version: Optional[str] = None

    class Config:
        extra = "allow"


class NVDAffectedSource(BaseModel):
    versionStartIncluding: Optional[str] = None
    versionStartExcluding: Optional[str] = None
    versionEndIncluding: Optional[str] = None
    versionEndExcluding: Optional[str] = None
    criteriaDict: Optional[NVDCriteria] = None


class NVDAffected(BaseModel):
    sources: List[NVDAffectedSource] = Field(default_factory=list)


class NVDReference(BaseModel):
    url: str
    source: Optional[str] = None


class NVDItem(BaseModel):
    nvd_id: str
    published: Optional[str] = None
    lastModified: Optional[str] = None
    descriptions: List[NVDDescription] = Field(default_factory=list)
    metrics: NVDMetrics = Field(default_factory=NVDMetrics)
    affected: List[NVDAffected] = Field(default_factory=list)
    references: List[NVDReference] = Field(default_factory=list)
    vlai_score: Optional[str] = None
    vlai_confidence: Optional[float] = None

    class Config:
        extra = "allow"

    def english_description(self) -> str:
        for description in self.descriptions:
            if description.lang == "en":
                return description.value
        return ""


class ThirdPartyAdvisory(BaseModel):
    """Ecosystem advisory database entry (e.g. FriendsOfPHP security advisories)."""

    advisory_id: str
    name: str = "FriendsOfPHP"
    link: str
    title: Optional[str] = None


class CommonConsequence(BaseModel):
    scope: List[str] = Field(default_factory=list)
    impact: List[str] = Field(default_factory=list)
    note: str = ""


class CWEEntry(BaseModel):
    cwe_id: str
    name: str = ""
    description: str = ""
    extended_description: str = ""
    common_consequences: List[CommonConsequence] = Field(default_factory=list)


class OwaspTop10Info(BaseModel):
    id: str
    name: str
    description: str = ""


class EPSSEntry(BaseModel):
    score: float = 0.0
    percentile: float = 0.0


class PolicyContent(BaseModel):
    id: str = ""
    name: str
    content: List[str] = Field(default_factory=list)


class PackageVersionInfo(BaseModel):
    version: str
    time: Optional[str] = None


class PackageMetadata(BaseModel):
    name: str
    description: str = ""
    keywords: List[str] = Field(default_factory=list)
    homepage: Optional[str] = None
    versions: List[PackageVersionInfo] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict)

    def published_at(self, version: str) -> str:
        for entry in self.versions:
            if entry.version == version:
                return entry.time or ""
        return ""
