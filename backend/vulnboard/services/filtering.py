"""
Merged Vulnerability Filtering

Search-key matching, facet filters, and per-filter preview counts over the
merged vulnerability list.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from vulnboard.core.constants import (
    OWASP_TOP_10_2021_IDS,
    OWASP_UNCATEGORIZED_FILTER,
    POSSIBLE_FILTERS,
)
from vulnboard.models.finding import ConflictFlag
from vulnboard.models.vulnerability import MergedVulnerability
from vulnboard.services.severity import (
    is_critical,
    is_high,
    is_low,
    is_medium,
    is_none,
    severity_value,
)

OWASP_FILTER_IDS: Dict[str, str] = {
    f"owasp_top_10_2021_{key}": owasp_id for key, owasp_id in OWASP_TOP_10_2021_IDS.items()
}

SEVERITY_PREDICATES = {
    "severity_critical": is_critical,
    "severity_high": is_high,
    "severity_medium": is_medium,
    "severity_low": is_low,
    "severity_none": is_none,
}

IMPACT_FIELDS = {
    "availability_impact": "availability_impact",
    "confidentiality_impact": "confidentiality_impact",
    "integrity_impact": "integrity_impact",
}

HIDDEN_FLAGS = {
    "hide_correct_matching": ConflictFlag.MATCH_CORRECT,
    "hide_incorrect_matching": ConflictFlag.MATCH_INCORRECT,
    "hide_possibly_incorrect_matching": ConflictFlag.MATCH_POSSIBLE_INCORRECT,
}


def parse_active_filters(raw: Optional[str]) -> List[str]:
    """Parse ``"a,b"`` or ``"[a,b]"`` into filter names."""
    if not raw:
        return []
    cleaned = raw.replace("[", "").replace("]", "")
    return [name.strip() for name in cleaned.split(",") if name.strip()]


def matches_search(vuln: MergedVulnerability, search_key: str) -> bool:
    if not search_key:
        return True
    needle = search_key.lower()
    if needle in vuln.vulnerability.lower():
        return True
    return any(needle in (affected.affected_dependency or "").lower() for affected in vuln.affected)


def _passes_owasp(vuln: MergedVulnerability, filters: Iterable[str]) -> bool:
    # Records without weakness data are never excluded by OWASP filters
    if vuln.weaknesses is None:
        return True
    for name in filters:
        owasp_id = OWASP_FILTER_IDS.get(name)
        if owasp_id is not None and not any(w.owasp_top10_id == owasp_id for w in vuln.weaknesses):
            return False
        if name == OWASP_UNCATEGORIZED_FILTER and any(w.owasp_top10_id for w in vuln.weaknesses):
            return False
    return True


def _passes_severity(vuln: MergedVulnerability, filters: Iterable[str]) -> bool:
    score = severity_value(vuln.severity)
    for name in filters:
        predicate = SEVERITY_PREDICATES.get(name)
        if predicate is not None and not predicate(score):
            return False
    return True


def _passes_impact(vuln: MergedVulnerability, filters: Iterable[str]) -> bool:
    for name in filters:
        field = IMPACT_FIELDS.get(name)
        if field is None:
            continue
        impact = getattr(vuln.severity, field, "") if vuln.severity is not None else ""
        if not impact or impact == "NONE":
            return False
    return True


def _passes_conflict(vuln: MergedVulnerability, filters: Iterable[str]) -> bool:
    for name in filters:
        hidden = HIDDEN_FLAGS.get(name)
        if hidden is not None and vuln.conflict.flag == hidden:
            return False
    return True


def apply_filters(vulnerabilities: List[MergedVulnerability], filters: List[str]) -> List[MergedVulnerability]:
    return [
        vuln
        for vuln in vulnerabilities
        if _passes_owasp(vuln, filters)
        and _passes_severity(vuln, filters)
        and _passes_impact(vuln, filters)
        and _passes_conflict(vuln, filters)
    ]


def filter_merged(
    vulnerabilities: List[MergedVulnerability],
    search_key: Optional[str],
    active_filters: Optional[List[str]],
) -> Tuple[List[MergedVulnerability], Dict[str, int]]:
    """
    Filter merged vulnerabilities and compute facet counts.

    Returns:
        The records matching the search key and every active filter, and for
        each inactive filter the count the result would have with it enabled
    """
    active = list(active_filters or [])
    searched = [vuln for vuln in vulnerabilities if matches_search(vuln, search_key or "")]

    counts: Dict[str, int] = {}
    for name in POSSIBLE_FILTERS:
        if name in active:
            continue
        counts[name] = len(apply_filters(searched, [name] + active))

    return apply_filters(searched, active), counts
