"""
Vulnerability Detail Reports

Builds the presentation report for one (advisory, dependency) pair, anchored
either on the OSV record or on the NVD record. Both variants are stateless
functions; the steps they share are the module-level helpers below.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from vulnboard.core.constants import FRAMEWORK_PREFIX, NVD_VULN_URL, OSV_VULN_URL
from vulnboard.core.exceptions import MissingAnchorItem
from vulnboard.core.metrics import reports_generated_total
from vulnboard.models.cvss import SeverityInfo
from vulnboard.models.finding import Finding, Source, Weakness
from vulnboard.models.knowledge import (
    NVDItem,
    OSVItem,
    OwaspTop10Info,
    PackageMetadata,
    ThirdPartyAdvisory,
)
from vulnboard.models.report import (
    CommonConsequencesInfo,
    DependencyInfo,
    OtherInfo,
    PackageManagerLink,
    PatchInfo,
    ReferenceInfo,
    VersionInfo,
    VulnerabilityDetailsReport,
    VulnerabilityInfo,
    VulnSourceInfo,
    WeaknessInfo,
)
from vulnboard.services.cvss import cvss_from_nvd, cvss_from_osv, severities_with_fallback
from vulnboard.services.lookups import KnowledgeLookups
from vulnboard.services.versions import (
    compare_sources,
    fixed_versions,
    patched_versions_string,
    reconcile_affected_versions,
    version_statuses,
)

logger = logging.getLogger(__name__)

NPM_FAMILY = ("NPM", "YARN")
CODE_FENCE = "```"

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]+")
_WHITESPACE = re.compile(r"\s+")


def clean_osv_description(description: str) -> str:
    """
    Strip boilerplate sections from an OSV markdown description.

    Runs of ``#`` start a new section and are dropped. The first section is
    always kept; later ones only when they contain a fenced code block.
    Trailing newlines of the last kept section are removed.
    """
    sections: List[str] = []
    parsing_header = False
    text = ""

    for char in description or "":
        if char == "#":
            if not parsing_header:
                if text:
                    sections.append(text)
                parsing_header = True
                text = ""
            continue
        parsing_header = False
        text += char

    if text:
        sections.append(text)

    selected = [section for index, section in enumerate(sections) if index == 0 or CODE_FENCE in section]
    if selected:
        selected[-1] = selected[-1].rstrip("\n")
    return "\n".join(selected)


def _sanitize(text: str) -> str:
    return _NON_PRINTABLE.sub("", _WHITESPACE.sub(" ", text or "")).strip()


def framework_display_name(
    dependency_name: str,
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
) -> str:
    """Real package name for synthetic ``framework-`` dependencies."""
    if not dependency_name.startswith(FRAMEWORK_PREFIX):
        return dependency_name

    if osv_item is not None and osv_item.affected:
        for affected in osv_item.affected:
            if affected.package is not None and affected.package.name:
                return affected.package.name
        return dependency_name

    if nvd_item is not None:
        for affected in nvd_item.affected:
            for source in affected.sources:
                criteria = source.criteriaDict
                if criteria is not None and criteria.vendor and criteria.product:
                    return f"{criteria.vendor}/{criteria.product}"

    return dependency_name


async def resolve_weaknesses(
    weaknesses: Optional[List[Weakness]],
    lookups: KnowledgeLookups,
) -> Tuple[List[WeaknessInfo], Dict[str, List[CommonConsequencesInfo]]]:
    """
    Resolve CWE names, descriptions and common consequences.

    Lookup failures are logged and skipped; CWE ids the knowledge base does
    not know keep the name carried by the finding.
    """
    infos: List[WeaknessInfo] = []
    consequences: Dict[str, List[CommonConsequencesInfo]] = {}
    if not weaknesses:
        return infos, consequences

    for weakness in weaknesses:
        try:
            entry = await lookups.lookup_cwe(weakness.weakness_id)
        except Exception as e:
            logger.warning(f"CWE lookup failed for {weakness.weakness_id}: {e}")
            continue

        if entry is None:
            logger.debug(f"No CWE entry for {weakness.weakness_id}")
            infos.append(
                WeaknessInfo(
                    id=weakness.weakness_id,
                    name=weakness.weakness_name,
                    description=_sanitize(weakness.weakness_description),
                )
            )
            continue

        infos.append(
            WeaknessInfo(
                id=weakness.weakness_id,
                name=entry.name,
                description=_sanitize(entry.description),
            )
        )
        if entry.common_consequences:
            consequences[weakness.weakness_id] = [
                CommonConsequencesInfo(
                    scope=consequence.scope,
                    impact=consequence.impact,
                    description=_sanitize(consequence.note),
                )
                for consequence in entry.common_consequences
            ]

    return infos, consequences


async def resolve_owasp_top10(
    weaknesses: Optional[List[Weakness]],
    lookups: KnowledgeLookups,
) -> Optional[OwaspTop10Info]:
    """OWASP Top 10 category of the first categorized weakness, if any."""
    if not weaknesses:
        return None
    for weakness in weaknesses:
        if weakness.owasp_top10_id:
            try:
                return await lookups.lookup_owasp_top10(weakness.owasp_top10_id)
            except Exception as e:
                logger.warning(f"OWASP Top 10 lookup failed for {weakness.owasp_top10_id}: {e}")
                return None
    return None


def build_dependency_info(
    finding: Finding,
    package_manager: str,
    metadata: Optional[PackageMetadata],
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
) -> DependencyInfo:
    info = DependencyInfo(
        name=framework_display_name(finding.affected_dependency, osv_item, nvd_item),
        version=finding.affected_version,
    )
    if not finding.affected_dependency or not finding.affected_version:
        logger.warning(f"Missing dependency info on finding for {finding.vulnerability_id}")

    if metadata is None:
        logger.debug(f"No package metadata for {finding.affected_dependency}")
        return info

    info.description = metadata.description
    info.keywords = list(metadata.keywords)
    info.published = metadata.published_at(finding.affected_version)
    if metadata.homepage:
        info.homepage = metadata.homepage

    if package_manager.upper() in NPM_FAMILY:
        name = finding.affected_dependency
        info.package_manager_links = [
            PackageManagerLink(package_manager="NPM", url=f"https://www.npmjs.com/package/{name}"),
            PackageManagerLink(package_manager="YARN", url=f"https://yarn.pm/{name}"),
        ]
    return info


def build_version_info(
    source: Source,
    finding: Finding,
    metadata: Optional[PackageMetadata],
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
) -> VersionInfo:
    evidence = finding.evidence_for(source)
    known_versions = [entry.version for entry in metadata.versions] if metadata else []
    return VersionInfo(
        affected_versions_string=reconcile_affected_versions(source, finding, osv_item, nvd_item),
        patched_versions_string=patched_versions_string(evidence),
        versions=version_statuses(known_versions, evidence),
        source_comparison=compare_sources(finding, osv_item, nvd_item),
    )


def _osv_source(osv_item: OSVItem) -> VulnSourceInfo:
    return VulnSourceInfo(name=Source.OSV.value, vuln_url=OSV_VULN_URL.format(osv_id=osv_item.osv_id))


def _nvd_source(nvd_item: NVDItem) -> VulnSourceInfo:
    return VulnSourceInfo(name=Source.NVD.value, vuln_url=NVD_VULN_URL.format(nvd_id=nvd_item.nvd_id))


async def _assemble(
    anchor: Source,
    finding: Finding,
    package_manager: str,
    lookups: KnowledgeLookups,
    vulnerability_info: VulnerabilityInfo,
    severities: SeverityInfo,
    references: List[ReferenceInfo],
    metadata: Optional[PackageMetadata],
    osv_item: Optional[OSVItem],
    nvd_item: Optional[NVDItem],
) -> VulnerabilityDetailsReport:
    vulnerability_info.version_info = build_version_info(anchor, finding, metadata, osv_item, nvd_item)
    weaknesses, consequences = await resolve_weaknesses(finding.weaknesses, lookups)
    owasp = await resolve_owasp_top10(finding.weaknesses, lookups)

    reports_generated_total.labels(anchor=anchor.value).inc()
    return VulnerabilityDetailsReport(
        vulnerability_info=vulnerability_info,
        dependency_info=build_dependency_info(finding, package_manager, metadata, osv_item, nvd_item),
        severities=severities,
        owasp_top_10=owasp,
        weaknesses=weaknesses,
        common_consequences=consequences,
        patch=PatchInfo(fixed_versions=fixed_versions(finding.evidence_for(anchor))),
        references=references,
        location=[],
        other=OtherInfo(package_manager=package_manager),
    )


async def generate_osv_report(
    finding: Finding,
    package_manager: str,
    lookups: KnowledgeLookups,
    dependency_metadata: Optional[PackageMetadata] = None,
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
    third_party: Optional[ThirdPartyAdvisory] = None,
) -> VulnerabilityDetailsReport:
    """
    Build a report anchored on the OSV record.

    Raises:
        MissingAnchorItem: If no OSV record is supplied
    """
    if osv_item is None:
        raise MissingAnchorItem(Source.OSV.value)

    info = VulnerabilityInfo(
        vulnerability_id=osv_item.cve or osv_item.osv_id,
        description=clean_osv_description(osv_item.details),
        published=osv_item.published,
        last_modified=osv_item.modified,
        sources=[_osv_source(osv_item)],
        aliases=[osv_item.osv_id],
    )
    if osv_item.cve:
        info.aliases.append(osv_item.cve)
    if nvd_item is not None:
        info.sources.append(_nvd_source(nvd_item))
    if third_party is not None:
        info.sources.append(VulnSourceInfo(name=third_party.name, vuln_url=third_party.link))

    severities = severities_with_fallback(cvss_from_osv(osv_item), cvss_from_nvd(nvd_item))
    references = [ReferenceInfo(url=ref.url, tags=[ref.type]) for ref in osv_item.references]

    return await _assemble(
        Source.OSV, finding, package_manager, lookups, info, severities, references,
        dependency_metadata, osv_item, nvd_item,
    )


async def generate_nvd_report(
    finding: Finding,
    package_manager: str,
    lookups: KnowledgeLookups,
    dependency_metadata: Optional[PackageMetadata] = None,
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
    third_party: Optional[ThirdPartyAdvisory] = None,
) -> VulnerabilityDetailsReport:
    """
    Build a report anchored on the NVD record.

    Raises:
        MissingAnchorItem: If no NVD record is supplied
    """
    if nvd_item is None:
        raise MissingAnchorItem(Source.NVD.value)

    info = VulnerabilityInfo(
        vulnerability_id=nvd_item.nvd_id,
        description=nvd_item.english_description(),
        published=nvd_item.published,
        last_modified=nvd_item.lastModified,
        sources=[_nvd_source(nvd_item)],
        aliases=[],
    )
    if osv_item is not None:
        info.aliases.append(osv_item.osv_id)
        info.sources.append(_osv_source(osv_item))
    if third_party is not None:
        info.sources.append(VulnSourceInfo(name=third_party.name, vuln_url=third_party.link))

    severities = severities_with_fallback(cvss_from_nvd(nvd_item), cvss_from_osv(osv_item))
    references = [ReferenceInfo(url=ref.url, tags=[]) for ref in nvd_item.references]

    return await _assemble(
        Source.NVD, finding, package_manager, lookups, info, severities, references,
        dependency_metadata, osv_item, nvd_item,
    )
