"""
Dashboard Aggregations

Organization-wide statistics computed from project analyses within a date
window: weekly severity histograms, attack-vector, CIA-impact and license
distributions, recent vulnerabilities, and quick stats with project grading.

Inputs are ``AnalysisRecord`` objects already selected by date range; all
functions here are pure.
"""

import logging
import math
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import ValidationError

from vulnboard.core.constants import LICENSE_PLUGIN_NAMES, SBOM_PLUGIN_NAMES, VULN_PLUGIN_NAMES
from vulnboard.models.dashboard import (
    AnalysisRecord,
    AttackVectorCount,
    CIAImpact,
    Grade,
    LatestVulns,
    ProjectGradeClass,
    QuickStats,
    RecentVuln,
    Trend,
    TrendInfo,
    WeeklySeverityBucket,
    WeekNumber,
)
from vulnboard.models.finding import Finding
from vulnboard.services.severity import (
    CRITICAL,
    HIGH,
    LOW,
    MEDIUM,
    classify_severity,
    severity_value,
)

logger = logging.getLogger(__name__)

UNKNOWN_ATTACK_VECTOR = "UNKNOWN"
CIA_DIMENSIONS = ("Confidentiality", "Integrity", "Availability")

# Upper bounds (exclusive) of each grade above the zero score
GRADE_THRESHOLDS: List[Tuple[float, ProjectGradeClass]] = [
    (0.1, ProjectGradeClass.A),
    (0.25, ProjectGradeClass.B_PLUS),
    (0.4, ProjectGradeClass.B),
    (0.55, ProjectGradeClass.C_PLUS),
    (0.7, ProjectGradeClass.C),
    (0.85, ProjectGradeClass.D_PLUS),
]


def grade_class(score: float) -> ProjectGradeClass:
    """Map a [0, 1] risk score to a letter grade; out-of-range scores grade D."""
    if score is None or math.isnan(score) or score < 0 or score > 1:
        return ProjectGradeClass.D
    if score == 0:
        return ProjectGradeClass.A_PLUS
    for upper, grade in GRADE_THRESHOLDS:
        if score < upper:
            return grade
    return ProjectGradeClass.D


def iso_week(moment: datetime) -> WeekNumber:
    """ISO-8601 week: Monday-based, week 1 contains January 4th."""
    calendar = moment.isocalendar()
    return WeekNumber(week=calendar[1], year=calendar[0])


def _plugin_results(record: AnalysisRecord, plugin_names: List[str]) -> Iterator[Dict[str, Any]]:
    for name in plugin_names:
        result = record.results.get(name)
        if isinstance(result, dict):
            yield result


def result_findings(result: Dict[str, Any]) -> Iterator[Finding]:
    """Findings of every workspace of one vulnerability result."""
    workspaces = result.get("workspaces") or {}
    for workspace_name, workspace in workspaces.items():
        for raw in (workspace or {}).get("Vulnerabilities") or []:
            try:
                yield Finding.model_validate(raw)
            except ValidationError as e:
                logger.debug(f"Skipping malformed finding in workspace {workspace_name}: {e}")


def record_findings(record: AnalysisRecord) -> Iterator[Finding]:
    for result in _plugin_results(record, VULN_PLUGIN_NAMES):
        yield from result_findings(result)


def weekly_severity(records: List[AnalysisRecord]) -> List[WeeklySeverityBucket]:
    """
    Severity histogram per ISO week.

    Analyses are scanned oldest first; within a week only the first analysis
    of a project that has findings is counted.
    """
    buckets: Dict[Tuple[int, int], WeeklySeverityBucket] = {}

    for record in sorted(records, key=lambda r: r.created_on):
        week = iso_week(record.created_on)
        key = (week.year, week.week)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = WeeklySeverityBucket(week_number=week)
            buckets[key] = bucket

        if record.project_id in bucket.projects:
            continue

        contributed = False
        for finding in record_findings(record):
            score = severity_value(finding.severity)
            bucket.summed_severity += score
            severity_class = classify_severity(score)
            if severity_class == CRITICAL:
                bucket.nmb_critical += 1
            elif severity_class == HIGH:
                bucket.nmb_high += 1
            elif severity_class == MEDIUM:
                bucket.nmb_medium += 1
            elif severity_class == LOW:
                bucket.nmb_low += 1
            else:
                bucket.nmb_none += 1
            contributed = True

        if contributed:
            bucket.projects.append(record.project_id)

    return list(buckets.values())


def attack_vector_distribution(records: List[AnalysisRecord]) -> List[AttackVectorCount]:
    counts: Dict[str, int] = {}
    for record in records:
        for finding in record_findings(record):
            vector = finding.severity.vector if finding.severity is not None and finding.severity.vector else None
            vector = vector or UNKNOWN_ATTACK_VECTOR
            counts[vector] = counts.get(vector, 0) + 1
    return [AttackVectorCount(attack_vector=vector, count=count) for vector, count in counts.items()]


def _cia_values(finding: Finding) -> Tuple[float, float, float]:
    if finding.severity is None:
        return 0.0, 0.0, 0.0
    return (
        finding.severity.confidentiality_impact_numerical,
        finding.severity.integrity_impact_numerical,
        finding.severity.availability_impact_numerical,
    )


def cia_impacts(records: List[AnalysisRecord]) -> List[CIAImpact]:
    """Three entries per finding occurrence, one per CIA dimension."""
    impacts: List[CIAImpact] = []
    for record in records:
        for finding in record_findings(record):
            for dimension, value in zip(CIA_DIMENSIONS, _cia_values(finding)):
                impacts.append(CIAImpact(cia=dimension, impact=value))
    return impacts


def license_distribution(records: List[AnalysisRecord]) -> Dict[str, int]:
    licenses: Dict[str, int] = {}
    for record in records:
        for result in _plugin_results(record, LICENSE_PLUGIN_NAMES):
            stats = (result.get("analysis_info") or {}).get("stats") or {}
            for license_id, count in (stats.get("license_dist") or {}).items():
                licenses[license_id] = licenses.get(license_id, 0) + count
    return licenses


def recent_vulnerabilities(records: List[AnalysisRecord]) -> LatestVulns:
    """Latest severity per advisory, with counts of critical, high and medium ones."""
    latest = LatestVulns()
    for record in records:
        for finding in record_findings(record):
            weakness = finding.weaknesses[0] if finding.weaknesses else None
            latest.vulns[finding.vulnerability_id] = RecentVuln(
                severity=severity_value(finding.severity),
                cwe=weakness.weakness_id if weakness and weakness.weakness_id else finding.vulnerability_id,
                cwe_name=weakness.weakness_name if weakness and weakness.weakness_name else finding.vulnerability_id,
            )

    counters = {entry.severity_class: entry for entry in latest.severity_count}
    for vuln in latest.vulns.values():
        severity_class = classify_severity(vuln.severity)
        if severity_class in (CRITICAL, HIGH, MEDIUM):
            vuln.severity_class = severity_class.upper()
            counters[vuln.severity_class].count += 1
    return latest


def project_score(record: AnalysisRecord) -> float:
    """Mean finding severity scaled to [0, 1]; 0 for an analysis without findings."""
    scores = [severity_value(finding.severity) for finding in record_findings(record)]
    if not scores:
        return 0.0
    return sum(scores) / len(scores) / 10


def _deprecated_count(record: AnalysisRecord) -> int:
    for result in _plugin_results(record, SBOM_PLUGIN_NAMES):
        stats = (result.get("analysis_info") or {}).get("stats") or {}
        count = stats.get("number_of_deprecated_dependencies")
        if isinstance(count, (int, float)):
            return int(count)
    return 0


def _trend(current: float, previous: Optional[float]) -> TrendInfo:
    if previous is None:
        return TrendInfo(trend=Trend.EQUAL, diff=0.0)
    diff = current - previous
    if diff > 0:
        return TrendInfo(trend=Trend.UP, diff=diff)
    if diff < 0:
        return TrendInfo(trend=Trend.DOWN, diff=diff)
    return TrendInfo(trend=Trend.EQUAL, diff=0.0)


def _latest_two_per_project(
    records: List[AnalysisRecord],
) -> Dict[str, Tuple[AnalysisRecord, Optional[AnalysisRecord]]]:
    by_project: Dict[str, List[AnalysisRecord]] = defaultdict(list)
    for record in records:
        by_project[record.project_id].append(record)

    latest: Dict[str, Tuple[AnalysisRecord, Optional[AnalysisRecord]]] = {}
    for project_id, project_records in by_project.items():
        ordered = sorted(project_records, key=lambda r: r.created_on, reverse=True)
        latest[project_id] = (ordered[0], ordered[1] if len(ordered) > 1 else None)
    return latest


def quick_stats(records: List[AnalysisRecord]) -> QuickStats:
    """
    Headline figures over each project's most recent analysis.

    Trends compare with the same project's previous analysis in the window.
    """
    stats = QuickStats()
    latest = _latest_two_per_project(records)
    if not latest:
        return stats

    best_score: Optional[float] = None
    best_previous: Optional[float] = None
    deprecated_now = 0
    deprecated_before = 0
    has_previous_deprecated = False
    owasp_counts: Counter = Counter()
    cia_totals = dict.fromkeys(CIA_DIMENSIONS, 0.0)

    for current, previous in latest.values():
        score = project_score(current)
        if best_score is None or score > best_score:
            best_score = score
            best_previous = project_score(previous) if previous is not None else None

        deprecated_now += _deprecated_count(current)
        if previous is not None:
            deprecated_before += _deprecated_count(previous)
            has_previous_deprecated = True

        for finding in record_findings(current):
            for weakness in finding.weaknesses or []:
                if weakness.owasp_top10_id:
                    owasp_counts[weakness.owasp_top10_id] += 1
            for dimension, value in zip(CIA_DIMENSIONS, _cia_values(finding)):
                cia_totals[dimension] += value

    stats.max_grade = Grade(score=best_score, grade_class=grade_class(best_score))
    stats.max_grade_trend = _trend(best_score, best_previous)
    stats.nmb_deprecated = deprecated_now
    stats.nmb_deprecated_trend = _trend(deprecated_now, deprecated_before if has_previous_deprecated else None)
    if owasp_counts:
        stats.owasp_top_10 = owasp_counts.most_common(1)[0][0]
    if any(cia_totals.values()):
        stats.most_affected_cia = max(CIA_DIMENSIONS, key=lambda dimension: cia_totals[dimension])
    return stats
