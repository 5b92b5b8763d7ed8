from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from vulnboard.models.cvss import SeverityInfo
from vulnboard.models.knowledge import OwaspTop10Info


class VulnSourceInfo(BaseModel):
    name: str
    vuln_url: str


class VersionStatus(BaseModel):
    version: str
    status: str  # "affected" | "not_affected"


class SourceComparison(BaseModel):
    nvd: str = ""
    osv: str = ""
    agree: bool = True
    nvdReason: str = ""
    osvReason: str = ""
    nvdAllVersions: str = ""
    osvAllVersions: str = ""


class VersionInfo(BaseModel):
    affected_versions_string: str = ""
    patched_versions_string: str = ""
    versions: List[VersionStatus] = Field(default_factory=list)
    source_comparison: Optional[SourceComparison] = None


class VulnerabilityInfo(BaseModel):
    vulnerability_id: str
    description: str = ""
    version_info: VersionInfo = Field(default_factory=VersionInfo)
    published: Optional[str] = None
    last_modified: Optional[str] = None
    sources: List[VulnSourceInfo] = Field(default_factory=list)
    aliases: List[str] = Field(default_factory=list)


class PackageManagerLink(BaseModel):
    package_manager: str
    url: str


class DependencyInfo(BaseModel):
    name: str = ""
    version: str = ""
    published: str = ""
    description: str = ""
    keywords: List[str] = Field(default_factory=list)
    homepage: Optional[str] = None
    package_manager_links: List[PackageManagerLink] = Field(default_factory=list)


class WeaknessInfo(BaseModel):
    id: str
    name: str = ""
    description: str = ""


class CommonConsequencesInfo(BaseModel):
    scope: List[str] = Field(default_factory=list)
    impact: List[str] = Field(default_factory=list)
    description: str = ""


class ReferenceInfo(BaseModel):
    url: str
    tags: List[str] = Field(default_factory=list)


class PatchInfo(BaseModel):
    fixed_versions: List[str] = Field(default_factory=list)


class OtherInfo(BaseModel):
    package_manager: str = ""


class VulnerabilityDetailsReport(BaseModel):
    """Presentation view of one (advisory, dependency) pair."""

    vulnerability_info: VulnerabilityInfo
    dependency_info: Optional[DependencyInfo] = None
    severities: SeverityInfo = Field(default_factory=SeverityInfo)
    owasp_top_10: Optional[OwaspTop10Info] = None
    weaknesses: List[WeaknessInfo] = Field(default_factory=list)
    common_consequences: Dict[str, List[CommonConsequencesInfo]] = Field(default_factory=dict)
    patch: PatchInfo = Field(default_factory=PatchInfo)
    references: List[ReferenceInfo] = Field(default_factory=list)
    location: List[str] = Field(default_factory=list)
    other: OtherInfo = Field(default_factory=OtherInfo)
