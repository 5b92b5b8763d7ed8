"""
Analysis Statistics

Summary figures for one workspace's findings, with deltas against an
optional previous finding set.
"""

from typing import Dict, List, Optional

from vulnboard.core.constants import OWASP_TOP_10_2021_IDS
from vulnboard.models.finding import Finding
from vulnboard.models.stats import AnalysisStats
from vulnboard.services.severity import classify_severity, cia_continuous_value

OWASP_STATS_FIELDS: Dict[str, str] = {
    owasp_id: f"number_of_owasp_top_10_2021_{key}" for key, owasp_id in OWASP_TOP_10_2021_IDS.items()
}

SEVERITY_STATS_FIELDS: Dict[str, str] = {
    "critical": "number_of_critical",
    "high": "number_of_high",
    "medium": "number_of_medium",
    "low": "number_of_low",
    "none": "number_of_none",
}


def _mean(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


def _compute(findings: List[Finding]) -> AnalysisStats:
    stats = AnalysisStats(number_of_issues=len(findings))

    severity_total = 0.0
    confidentiality_total = integrity_total = availability_total = 0.0
    scored = 0
    max_severity = 0.0
    dependencies = set()
    advisories = set()

    for finding in findings:
        if finding.severity is not None:
            scored += 1
            severity_total += finding.severity.severity
            max_severity = max(max_severity, finding.severity.severity)
            confidentiality_total += cia_continuous_value(finding.severity.confidentiality_impact)
            integrity_total += cia_continuous_value(finding.severity.integrity_impact)
            availability_total += cia_continuous_value(finding.severity.availability_impact)

        dependencies.add(finding.affected_dependency)

        # OWASP and severity buckets count each advisory once
        if finding.vulnerability_id not in advisories:
            for weakness in finding.weaknesses or []:
                field = OWASP_STATS_FIELDS.get(weakness.owasp_top10_id)
                if field:
                    setattr(stats, field, getattr(stats, field) + 1)
            score = finding.severity.severity if finding.severity is not None else 0.0
            field = SEVERITY_STATS_FIELDS[classify_severity(score)]
            setattr(stats, field, getattr(stats, field) + 1)
        advisories.add(finding.vulnerability_id)

    stats.number_of_vulnerabilities = len(advisories)
    stats.number_of_vulnerable_dependencies = len(dependencies)
    stats.max_severity = max_severity
    stats.mean_severity = _mean(severity_total, scored)
    stats.mean_confidentiality_impact = _mean(confidentiality_total, scored)
    stats.mean_integrity_impact = _mean(integrity_total, scored)
    stats.mean_availability_impact = _mean(availability_total, scored)
    return stats


def compute_analysis_stats(
    findings: List[Finding],
    previous_findings: Optional[List[Finding]] = None,
) -> AnalysisStats:
    """Statistics of ``findings`` with every ``*_diff`` field taken against ``previous_findings``."""
    current = _compute(findings)
    before = _compute(previous_findings or [])

    for field in AnalysisStats.model_fields:
        if not field.endswith("_diff"):
            continue
        base = field[: -len("_diff")]
        setattr(current, field, getattr(current, base) - getattr(before, base))
    return current
