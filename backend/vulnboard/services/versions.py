"""
Affected Version Reconciliation

Turns per-source affected-version evidence into one human-readable range
description. Raw feed records (OSV ``affected[]``, NVD CPE ``sources[]``) are
preferred over the analyzer's abstracted ranges; the abstracted evidence is the
fallback, followed by a hint for synthetic framework advisories.
"""

import logging
import re
from typing import List, Optional

from packaging.version import InvalidVersion, Version
from packaging.version import parse as parse_version

from vulnboard.core.constants import FRAMEWORK_PREFIX
from vulnboard.models.finding import AffectedEvidence, Finding, Source
from vulnboard.models.knowledge import NVDItem, OSVItem
from vulnboard.models.report import SourceComparison, VersionStatus

logger = logging.getLogger(__name__)

UNKNOWN_REASON = "Unable to determine vulnerability reason"

_NUMERIC_VERSION = re.compile(r"\d+(?:\.\d+)*")


def strip_v(version: str) -> str:
    return version[1:] if version.startswith("v") else version


def to_version(text: Optional[str]) -> Version:
    """
    Parse a version string for ordering.

    Falls back to the leading numeric part for strings that are not valid
    versions, and to ``0.0.0`` when nothing numeric is present.
    """
    if not text:
        return Version("0.0.0")
    cleaned = strip_v(text.strip())
    try:
        return parse_version(cleaned)
    except InvalidVersion:
        match = _NUMERIC_VERSION.search(cleaned)
        if match:
            return Version(match.group(0))
        logger.debug(f"Unparseable version '{text}', ordering as 0.0.0")
        return Version("0.0.0")


def extract_nvd_affected_versions(nvd_item: Optional[NVDItem]) -> List[str]:
    """Describe each NVD CPE match entry, deduplicated textually, in feed order."""
    ranges: List[str] = []
    if nvd_item is None:
        return ranges

    for affected in nvd_item.affected:
        for source in affected.sources:
            start = source.versionStartIncluding or source.versionStartExcluding
            end = source.versionEndIncluding or source.versionEndExcluding
            criteria_version = source.criteriaDict.version if source.criteriaDict else None

            description = ""
            if start and end:
                start_marker = "" if source.versionStartIncluding else " (exclusive)"
                end_marker = " (inclusive)" if source.versionEndIncluding else ""
                description = f"{start}{start_marker} to {end}{end_marker}"
            elif end:
                description = f"before {end}" if source.versionEndExcluding else f"up to {end} (inclusive)"
            elif start:
                description = f"{start} and later" if source.versionStartIncluding else f"after {start}"
            elif criteria_version and criteria_version != "*":
                description = f"exactly {criteria_version}"
            elif criteria_version == "*":
                description = "all versions"

            if description and description not in ranges:
                ranges.append(description)

    return ranges


def extract_osv_affected_versions(osv_item: Optional[OSVItem]) -> List[str]:
    """Describe OSV explicit versions and event ranges, deduplicated."""
    if osv_item is None:
        return []

    specific_versions: List[str] = []
    ranges: List[str] = []

    for affected in osv_item.affected:
        for version in affected.versions:
            cleaned = strip_v(version)
            if cleaned not in specific_versions:
                specific_versions.append(cleaned)

        for osv_range in affected.ranges:
            introduced = fixed = last_affected = ""
            for event in osv_range.events:
                if event.introduced and event.introduced != "0":
                    introduced = event.introduced
                if event.fixed:
                    fixed = event.fixed
                if event.last_affected:
                    last_affected = event.last_affected

            if introduced and fixed:
                description = f"{introduced} up to (but not including) {fixed}"
            elif introduced and last_affected:
                description = f"{introduced} to {last_affected} (inclusive)"
            elif introduced:
                description = f"{introduced} and later"
            elif fixed:
                description = f"before {fixed} (excluding {fixed})"
            else:
                continue

            if description not in ranges:
                ranges.append(description)

    descriptions: List[str] = []
    if len(specific_versions) == 1:
        descriptions.append(f"exactly {specific_versions[0]}")
    elif specific_versions:
        descriptions.append(f"specific versions: {', '.join(specific_versions)}")

    for description in ranges:
        if description not in descriptions:
            descriptions.append(description)
    return descriptions


def render_evidence(evidence: Optional[AffectedEvidence]) -> str:
    """Render abstracted evidence: ranges, else exact versions, else universal."""
    if evidence is None:
        return ""
    if evidence.ranges:
        return " || ".join(f">= {r.introduced} < {r.fixed}" for r in evidence.ranges)
    if evidence.exact:
        return " || ".join(exact.version_string for exact in evidence.exact)
    if evidence.universal:
        return "*"
    return ""


def reconcile_affected_versions(
    source: Source,
    finding: Finding,
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
) -> str:
    """
    Produce the affected-version string for one finding from one source's view.

    Args:
        source: Which feed's perspective to render (NVD or OSV)
        finding: The finding carrying abstracted per-source evidence
        osv_item: Raw OSV record, preferred for the OSV view when present
        nvd_item: Raw NVD record, preferred for the NVD view when present

    Returns:
        A human-readable description; empty when nothing is known
    """
    if source == Source.NVD and nvd_item is not None:
        raw = extract_nvd_affected_versions(nvd_item)
        if raw:
            return ", ".join(raw)
    elif source == Source.OSV and osv_item is not None:
        raw = extract_osv_affected_versions(osv_item)
        if raw:
            return ", ".join(raw)

    rendered = render_evidence(finding.evidence_for(source))
    if rendered:
        return rendered

    if finding.affected_dependency.startswith(FRAMEWORK_PREFIX) and finding.affected_version:
        return f"{finding.affected_version} (check advisory for details)"
    return ""


def patched_versions_string(evidence: Optional[AffectedEvidence]) -> str:
    """Lower bounds of the patched versions implied by range evidence."""
    if evidence is None:
        return ""
    parts: List[str] = []
    for version_range in evidence.ranges:
        part = f">= {version_range.fixed}"
        if part not in parts:
            parts.append(part)
    return " || ".join(parts)


def fixed_versions(evidence: Optional[AffectedEvidence]) -> List[str]:
    if evidence is None:
        return []
    fixed: List[str] = []
    for version_range in evidence.ranges:
        text = str(version_range.fixed)
        if text not in fixed:
            fixed.append(text)
    return fixed


def is_version_affected(version: str, evidence: Optional[AffectedEvidence]) -> bool:
    if evidence is None:
        return False
    if evidence.universal:
        return True
    cleaned = strip_v(version)
    if any(strip_v(exact.version_string) == cleaned for exact in evidence.exact):
        return True
    candidate = to_version(cleaned)
    for version_range in evidence.ranges:
        if to_version(str(version_range.introduced)) <= candidate < to_version(str(version_range.fixed)):
            return True
    return False


def version_statuses(known_versions: List[str], evidence: Optional[AffectedEvidence]) -> List[VersionStatus]:
    """Status of every known release of the package against the evidence."""
    return [
        VersionStatus(
            version=version,
            status="affected" if is_version_affected(version, evidence) else "not_affected",
        )
        for version in known_versions
    ]


def explain_why_version_is_vulnerable(
    source: Source,
    installed_version: str,
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
) -> str:
    """Natural-language reason a source flags the installed version."""
    version = strip_v(installed_version)

    if source == Source.NVD and nvd_item is not None:
        for affected in nvd_item.affected:
            for entry in affected.sources:
                has_start = entry.versionStartIncluding or entry.versionStartExcluding
                if entry.versionEndExcluding and not has_start:
                    return (
                        f"All versions before {entry.versionEndExcluding} are affected "
                        f"(your v{version} < {entry.versionEndExcluding})"
                    )
                if entry.versionStartIncluding and entry.versionEndExcluding:
                    return f"Versions {entry.versionStartIncluding} to {entry.versionEndExcluding} are affected"
                if entry.criteriaDict is not None and entry.criteriaDict.version == "*":
                    return "All versions are affected"

    if source == Source.OSV and osv_item is not None:
        specific_versions: List[str] = []
        for affected in osv_item.affected:
            for listed in affected.versions:
                cleaned = strip_v(listed)
                if cleaned not in specific_versions:
                    specific_versions.append(cleaned)

        if specific_versions:
            specific_versions.sort()
            listing = ", ".join(specific_versions)
            if version in specific_versions:
                return f"Your version {version} is in the list of affected versions: {listing}"
            return f"Only specific versions are affected: {listing} (your v{version} is NOT in this list)"

    return UNKNOWN_REASON


def compare_sources(
    finding: Finding,
    osv_item: Optional[OSVItem] = None,
    nvd_item: Optional[NVDItem] = None,
) -> SourceComparison:
    """
    Compare why each source considers the installed version vulnerable.

    Sources agree when their justifications are identical or both empty.
    """
    installed = finding.affected_version or ""
    comparison = SourceComparison()

    if nvd_item is not None:
        comparison.nvdAllVersions = ", ".join(extract_nvd_affected_versions(nvd_item))
        comparison.nvdReason = explain_why_version_is_vulnerable(Source.NVD, installed, nvd_item=nvd_item)
        comparison.nvd = comparison.nvdReason

    if osv_item is not None:
        comparison.osvAllVersions = ", ".join(extract_osv_affected_versions(osv_item))
        comparison.osvReason = explain_why_version_is_vulnerable(Source.OSV, installed, osv_item=osv_item)
        comparison.osv = comparison.osvReason

    comparison.agree = comparison.nvdReason == comparison.osvReason or (
        not comparison.nvdReason and not comparison.osvReason
    )
    return comparison
