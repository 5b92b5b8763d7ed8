"""Tests for dashboard aggregations over analysis records."""

from datetime import datetime, timezone

import pytest

from vulnboard.models.dashboard import AnalysisRecord, ProjectGradeClass, Trend
from vulnboard.services.dashboard import (
    attack_vector_distribution,
    cia_impacts,
    grade_class,
    iso_week,
    license_distribution,
    project_score,
    quick_stats,
    recent_vulnerabilities,
    weekly_severity,
)


def vuln_result(*findings):
    return {"workspaces": {".": {"Vulnerabilities": list(findings)}}}


def raw_finding(advisory_id, score, vector="NETWORK", cwe=None, owasp="", confidentiality=0.0):
    finding = {
        "VulnerabilityId": advisory_id,
        "AffectedDependency": "lodash",
        "AffectedVersion": "4.17.20",
        "Severity": None,
        "Weaknesses": None,
    }
    if score is not None:
        finding["Severity"] = {
            "Severity": score,
            "Vector": vector,
            "ConfidentialityImpactNumerical": confidentiality,
        }
    if cwe:
        finding["Weaknesses"] = [{"WeaknessId": cwe, "WeaknessName": f"{cwe} name", "OWASPTop10Id": owasp}]
    return finding


def record(project_id, day, *findings, month=1, extra_results=None):
    results = {"vuln-finder": vuln_result(*findings)}
    results.update(extra_results or {})
    return AnalysisRecord(
        id=f"{project_id}-{month}-{day}",
        project_id=project_id,
        created_on=datetime(2024, month, day, 12, tzinfo=timezone.utc),
        results=results,
    )


class TestGradeClass:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (0.0, ProjectGradeClass.A_PLUS),
            (0.05, ProjectGradeClass.A),
            (0.1, ProjectGradeClass.B_PLUS),
            (0.3, ProjectGradeClass.B),
            (0.5, ProjectGradeClass.C_PLUS),
            (0.6, ProjectGradeClass.C),
            (0.8, ProjectGradeClass.D_PLUS),
            (1.0, ProjectGradeClass.D),
        ],
    )
    def test_thresholds(self, score, expected):
        assert grade_class(score) == expected

    def test_out_of_range_grades_d(self):
        assert grade_class(float("nan")) == ProjectGradeClass.D
        assert grade_class(-0.1) == ProjectGradeClass.D
        assert grade_class(1.5) == ProjectGradeClass.D


class TestIsoWeek:
    def test_year_boundary(self):
        # 2021-01-03 is a Sunday in ISO week 53 of 2020
        week = iso_week(datetime(2021, 1, 3))
        assert (week.year, week.week) == (2020, 53)

    def test_monday_starts_week(self):
        assert iso_week(datetime(2024, 1, 8)).week == 2


class TestWeeklySeverity:
    def test_counts_first_analysis_per_project_and_week(self):
        records = [
            record("p1", 2, raw_finding("CVE-1", 9.8), raw_finding("CVE-2", 5.0)),
            record("p1", 3, raw_finding("CVE-3", 9.9)),
            record("p2", 3, raw_finding("CVE-4", 1.5), raw_finding("CVE-5", None)),
            record("p1", 9, raw_finding("CVE-6", 3.0)),
        ]
        buckets = weekly_severity(records)

        assert [(b.week_number.year, b.week_number.week) for b in buckets] == [(2024, 1), (2024, 2)]
        first = buckets[0]
        assert (first.nmb_critical, first.nmb_high, first.nmb_medium, first.nmb_low, first.nmb_none) == (1, 1, 0, 1, 1)
        assert first.projects == ["p1", "p2"]
        assert abs(first.summed_severity - 16.3) < 1e-9
        assert buckets[1].nmb_medium == 1

    def test_analysis_without_findings_does_not_claim_the_week(self):
        records = [record("p1", 2), record("p1", 3, raw_finding("CVE-1", 8.0))]
        assert weekly_severity(records)[0].nmb_critical == 1


class TestDistributions:
    def test_attack_vectors(self):
        records = [record("p1", 2, raw_finding("CVE-1", 9.8), raw_finding("CVE-2", 5.0, "LOCAL"), raw_finding("CVE-3", None))]
        counts = {entry.attack_vector: entry.count for entry in attack_vector_distribution(records)}
        assert counts == {"NETWORK": 1, "LOCAL": 1, "UNKNOWN": 1}

    def test_cia_impacts(self):
        records = [record("p1", 2, raw_finding("CVE-1", 9.8, confidentiality=0.56), raw_finding("CVE-2", None))]
        impacts = cia_impacts(records)

        assert len(impacts) == 6
        assert impacts[0].cia == "Confidentiality"
        assert impacts[0].impact == 0.56
        assert all(entry.impact == 0.0 for entry in impacts[3:])

    def test_licenses(self):
        licenses = {"license-finder": {"analysis_info": {"stats": {"license_dist": {"MIT": 3, "ISC": 1}}}}}
        records = [
            record("p1", 2, extra_results=licenses),
            record("p2", 2, extra_results=licenses),
        ]
        assert license_distribution(records) == {"MIT": 6, "ISC": 2}


class TestRecentVulnerabilities:
    def test_classes_and_counts(self):
        records = [
            record(
                "p1",
                2,
                raw_finding("CVE-1", 9.8, cwe="CWE-79"),
                raw_finding("CVE-2", 5.0),
                raw_finding("CVE-3", 2.5),
                raw_finding("CVE-4", 1.0),
            )
        ]
        latest = recent_vulnerabilities(records)

        assert latest.vulns["CVE-1"].severity_class == "CRITICAL"
        assert latest.vulns["CVE-1"].cwe == "CWE-79"
        assert latest.vulns["CVE-2"].cwe == "CVE-2"
        assert latest.vulns["CVE-4"].severity_class == "LOW"
        counts = {entry.severity_class: entry.count for entry in latest.severity_count}
        assert counts == {"CRITICAL": 1, "HIGH": 1, "MEDIUM": 1}


class TestQuickStats:
    def test_grade_and_trend(self):
        records = [
            record("p1", 2, raw_finding("CVE-1", 4.0)),
            record("p1", 9, raw_finding("CVE-1", 8.0), raw_finding("CVE-2", 6.0, cwe="CWE-79", owasp="1347")),
            record("p2", 9, raw_finding("CVE-3", 1.0)),
        ]
        stats = quick_stats(records)

        assert abs(stats.max_grade.score - 0.7) < 1e-9
        assert stats.max_grade.grade_class == ProjectGradeClass.D_PLUS
        assert stats.max_grade_trend.trend == Trend.UP
        assert abs(stats.max_grade_trend.diff - 0.3) < 1e-9
        assert stats.owasp_top_10 == "1347"

    def test_deprecated_dependencies(self):
        sbom = {"js-sbom": {"analysis_info": {"stats": {"number_of_deprecated_dependencies": 4}}}}
        older = {"js-sbom": {"analysis_info": {"stats": {"number_of_deprecated_dependencies": 6}}}}
        records = [record("p1", 2, extra_results=older), record("p1", 9, extra_results=sbom)]
        stats = quick_stats(records)

        assert stats.nmb_deprecated == 4
        assert stats.nmb_deprecated_trend.trend == Trend.DOWN

    def test_most_affected_cia(self):
        records = [record("p1", 2, raw_finding("CVE-1", 9.8, confidentiality=0.56))]
        assert quick_stats(records).most_affected_cia == "Confidentiality"

    def test_no_records(self):
        stats = quick_stats([])
        assert stats.max_grade.score == 0.0
        assert stats.owasp_top_10 is None

    def test_project_score_without_findings(self):
        assert project_score(record("p1", 2)) == 0.0
