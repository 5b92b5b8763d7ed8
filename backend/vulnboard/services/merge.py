"""
Finding Merge

Collapses per-dependency findings into one record per advisory id and
attaches the advisory-level enrichment: EPSS, model scores, blacklisting,
descriptions, weakness details, and source-disagreement flags.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from vulnboard.core.config import settings
from vulnboard.core.constants import VULN_PLUGIN_NAMES
from vulnboard.models.finding import AffectedVuln, ConflictFlag, Finding, Source, is_no_conflict
from vulnboard.models.knowledge import NVDItem, OSVItem
from vulnboard.models.vulnerability import EPSSScore, MergedVulnerability, VLAIScore
from vulnboard.services.lookups import KnowledgeLookups
from vulnboard.services.report_generator import clean_osv_description

logger = logging.getLogger(__name__)

CODE_FENCE = "```"


def is_cve(advisory_id: str) -> bool:
    return "CVE-" in advisory_id


def is_ghsa(advisory_id: str) -> bool:
    return "GHSA-" in advisory_id


def _vlai_scores(finding: Finding) -> List[VLAIScore]:
    scores: List[VLAIScore] = []
    for source, match in ((Source.NVD, finding.nvd_match), (Source.OSV, finding.osv_match)):
        if match is None:
            continue
        vlai = match.vlai()
        if vlai is None:
            continue
        confidence = vlai.get("confidence")
        scores.append(
            VLAIScore(
                source=source,
                score=str(vlai.get("score")),
                confidence=float(confidence) if confidence is not None else 0.0,
            )
        )
    return scores


async def _fetch_epss(advisory_ids: List[str], lookups: KnowledgeLookups) -> Dict[str, EPSSScore]:
    semaphore = asyncio.Semaphore(settings.ENRICHMENT_CONCURRENCY)

    async def fetch(advisory_id: str) -> EPSSScore:
        async with semaphore:
            try:
                entry = await lookups.lookup_epss(advisory_id)
            except Exception as e:
                logger.warning(f"EPSS lookup failed for {advisory_id}: {e}")
                return EPSSScore()
        return EPSSScore(score=entry.score, percentile=entry.percentile)

    results = await asyncio.gather(*(fetch(advisory_id) for advisory_id in advisory_ids))
    return dict(zip(advisory_ids, results))


async def merge_findings(findings: List[Finding], lookups: KnowledgeLookups) -> List[MergedVulnerability]:
    """
    Merge findings into one record per advisory id, in first-seen order.

    The first finding of an id seeds severity, weaknesses, conflict and model
    scores; later findings only add to ``affected``. CVE findings with an NVD
    match and no recorded conflict are flagged ``MATCH_POSSIBLE_INCORRECT``,
    since some ecosystems never get an OSV match recorded.
    """
    merged: Dict[str, MergedVulnerability] = {}

    for finding in findings:
        affected = AffectedVuln.from_finding(finding)
        existing = merged.get(finding.vulnerability_id)
        if existing is not None:
            existing.affected.append(affected)
            continue

        record = MergedVulnerability(
            id=finding.id,
            vulnerability=finding.vulnerability_id,
            sources=list(finding.sources),
            affected=[affected],
            severity=finding.severity,
            weaknesses=[w.model_copy() for w in finding.weaknesses] if finding.weaknesses is not None else None,
            conflict=finding.conflict.model_copy(),
            vlai=_vlai_scores(finding),
        )
        if finding.nvd_match is not None and is_cve(finding.vulnerability_id) and is_no_conflict(record.conflict.flag):
            record.conflict.flag = ConflictFlag.MATCH_POSSIBLE_INCORRECT
        merged[finding.vulnerability_id] = record

    epss = await _fetch_epss(list(merged.keys()), lookups)
    for advisory_id, record in merged.items():
        record.epss = epss[advisory_id]

    return list(merged.values())


def extract_policy_ids(analysis_config: Optional[Dict[str, Any]]) -> List[str]:
    """Vulnerability policy ids configured for the vulnerability analyzer."""
    if not isinstance(analysis_config, dict):
        return []
    for plugin_name in VULN_PLUGIN_NAMES:
        plugin_config = analysis_config.get(plugin_name)
        if not isinstance(plugin_config, dict):
            continue
        policy_ids = plugin_config.get("vulnerabilityPolicy")
        if isinstance(policy_ids, list):
            return [pid for pid in policy_ids if isinstance(pid, str) and pid.strip()]
    return []


async def resolve_blacklist(
    org_id: str,
    policy_ids: List[str],
    lookups: KnowledgeLookups,
) -> Dict[str, List[str]]:
    """
    Map each blacklisted advisory id to the names of the policies listing it.

    Policies that cannot be loaded are skipped.
    """
    blacklist: Dict[str, List[str]] = {}
    for policy_id in policy_ids:
        try:
            policy = await lookups.lookup_policy_content(org_id, policy_id)
        except Exception as e:
            logger.warning(f"Could not fetch vulnerability policy {policy_id}: {e}")
            continue
        if policy is None:
            logger.warning(f"Vulnerability policy {policy_id} not found for organization {org_id}")
            continue
        for advisory_id in policy.content:
            names = blacklist.setdefault(advisory_id, [])
            if policy.name not in names:
                names.append(policy.name)
    return blacklist


def apply_blacklist(vulnerabilities: List[MergedVulnerability], blacklist: Dict[str, List[str]]) -> None:
    for vuln in vulnerabilities:
        policies = blacklist.get(vuln.vulnerability)
        vuln.is_blacklisted = policies is not None
        vuln.blacklisted_by_policies = list(policies) if policies else []


def _capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def build_description(osv_item: Optional[OSVItem], nvd_item: Optional[NVDItem]) -> str:
    """
    Merged description: the NVD text when OSV has none, otherwise the OSV
    summary as a heading followed by the cleaned OSV details.
    """
    nvd_description = nvd_item.descriptions[0].value if nvd_item is not None and nvd_item.descriptions else ""
    osv_description = osv_item.details if osv_item is not None else ""
    osv_summary = osv_item.summary if osv_item is not None else ""

    if not osv_description and nvd_description:
        return nvd_description

    summary = _capitalize_first(osv_summary)
    details = ""
    if osv_description:
        details = _capitalize_first(clean_osv_description(osv_description))
        if not details.endswith(".") and not details.endswith(CODE_FENCE):
            details += "."
    return f"#### {summary}.\n\n{details}"


def flag_source_disagreement(
    vuln: MergedVulnerability,
    osv_item: Optional[OSVItem],
    nvd_item: Optional[NVDItem],
) -> None:
    """Flag records whose OSV entry carries its own version evidence next to an NVD entry."""
    if osv_item is None or nvd_item is None or not is_no_conflict(vuln.conflict.flag):
        return
    if any(affected.ranges or affected.versions for affected in osv_item.affected):
        vuln.conflict.flag = ConflictFlag.MATCH_POSSIBLE_INCORRECT


async def enrich_weaknesses(vuln: MergedVulnerability, lookups: KnowledgeLookups) -> None:
    """Fill weakness names and descriptions from the CWE catalog; unknown CWEs get empty strings."""
    if not vuln.weaknesses:
        return
    for weakness in vuln.weaknesses:
        entry = None
        try:
            entry = await lookups.lookup_cwe(weakness.weakness_id)
        except Exception as e:
            logger.warning(f"CWE lookup failed for {weakness.weakness_id}: {e}")
        weakness.weakness_name = entry.name if entry else ""
        weakness.weakness_description = entry.description if entry else ""
        weakness.extended_description = entry.extended_description if entry else ""
