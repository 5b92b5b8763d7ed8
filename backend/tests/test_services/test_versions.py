"""Tests for affected-version reconciliation and version explanations."""

from packaging.version import Version

from vulnboard.models.finding import Source
from vulnboard.models.knowledge import NVDItem, OSVItem
from vulnboard.services.versions import (
    UNKNOWN_REASON,
    compare_sources,
    explain_why_version_is_vulnerable,
    extract_nvd_affected_versions,
    extract_osv_affected_versions,
    fixed_versions,
    patched_versions_string,
    reconcile_affected_versions,
    to_version,
    version_statuses,
)
from tests.mocks.findings import make_finding


def nvd_with_sources(*sources):
    return NVDItem(nvd_id="CVE-2021-23337", affected=[{"sources": list(sources)}])


def osv_with(versions=None, events=None):
    affected = {"versions": versions or []}
    if events:
        affected["ranges"] = [{"type": "SEMVER", "events": events}]
    return OSVItem(osv_id="GHSA-35jh-r3h4-6jhm", affected=[affected])


class TestToVersion:
    def test_strips_leading_v(self):
        assert to_version("v1.2.3") == Version("1.2.3")

    def test_falls_back_to_numeric_prefix(self):
        assert to_version("1.2.3-custom+build/7") == Version("1.2.3")

    def test_unparseable_orders_as_zero(self):
        assert to_version("latest") == Version("0.0.0")
        assert to_version(None) == Version("0.0.0")


class TestExtractNvdAffectedVersions:
    def test_inclusive_and_exclusive_bounds(self):
        nvd = nvd_with_sources(
            {"versionStartIncluding": "1.0.0", "versionEndExcluding": "2.0.0"},
            {"versionStartExcluding": "3.0.0", "versionEndIncluding": "3.5.0"},
        )
        assert extract_nvd_affected_versions(nvd) == [
            "1.0.0 to 2.0.0",
            "3.0.0 (exclusive) to 3.5.0 (inclusive)",
        ]

    def test_open_ended_bounds(self):
        nvd = nvd_with_sources(
            {"versionEndExcluding": "4.17.21"},
            {"versionEndIncluding": "4.17.21"},
            {"versionStartIncluding": "5.0.0"},
            {"versionStartExcluding": "6.0.0"},
        )
        assert extract_nvd_affected_versions(nvd) == [
            "before 4.17.21",
            "up to 4.17.21 (inclusive)",
            "5.0.0 and later",
            "after 6.0.0",
        ]

    def test_criteria_versions(self):
        nvd = nvd_with_sources(
            {"criteriaDict": {"vendor": "lodash", "product": "lodash", "version": "4.17.20"}},
            {"criteriaDict": {"vendor": "lodash", "product": "lodash", "version": "*"}},
        )
        assert extract_nvd_affected_versions(nvd) == ["exactly 4.17.20", "all versions"]

    def test_deduplicates(self):
        nvd = nvd_with_sources({"versionEndExcluding": "2.0.0"}, {"versionEndExcluding": "2.0.0"})
        assert extract_nvd_affected_versions(nvd) == ["before 2.0.0"]

    def test_missing_item(self):
        assert extract_nvd_affected_versions(None) == []


class TestExtractOsvAffectedVersions:
    def test_single_explicit_version(self):
        assert extract_osv_affected_versions(osv_with(versions=["v1.2.3"])) == ["exactly 1.2.3"]

    def test_several_explicit_versions(self):
        result = extract_osv_affected_versions(osv_with(versions=["1.0.0", "1.0.1", "1.0.0"]))
        assert result == ["specific versions: 1.0.0, 1.0.1"]

    def test_introduced_and_fixed(self):
        result = extract_osv_affected_versions(osv_with(events=[{"introduced": "1.0.0"}, {"fixed": "1.2.0"}]))
        assert result == ["1.0.0 up to (but not including) 1.2.0"]

    def test_introduced_zero_counts_as_unbounded(self):
        result = extract_osv_affected_versions(osv_with(events=[{"introduced": "0"}, {"fixed": "4.17.21"}]))
        assert result == ["before 4.17.21 (excluding 4.17.21)"]

    def test_last_affected(self):
        result = extract_osv_affected_versions(
            osv_with(events=[{"introduced": "2.0.0"}, {"last_affected": "2.3.1"}])
        )
        assert result == ["2.0.0 to 2.3.1 (inclusive)"]


class TestReconcileAffectedVersions:
    def test_prefers_raw_feed_record(self):
        finding = make_finding("CVE-2021-23337", nvd=True, ranges=[("0.0.0", "4.17.21")])
        nvd = nvd_with_sources({"versionEndExcluding": "4.17.21"})
        assert reconcile_affected_versions(Source.NVD, finding, nvd_item=nvd) == "before 4.17.21"

    def test_falls_back_to_evidence_ranges(self):
        finding = make_finding("CVE-2021-23337", nvd=True, ranges=[("1.0.0", "1.2.0"), ("2.0.0", "2.1.0")])
        assert reconcile_affected_versions(Source.NVD, finding) == ">= 1.0.0 < 1.2.0 || >= 2.0.0 < 2.1.0"

    def test_framework_hint(self):
        finding = make_finding("framework-symfony-2024", dependency="framework-symfony", version="5.4.0")
        result = reconcile_affected_versions(Source.OSV, finding)
        assert result == "5.4.0 (check advisory for details)"

    def test_nothing_known(self):
        finding = make_finding("GHSA-xxxx-yyyy-zzzz", osv=True)
        assert reconcile_affected_versions(Source.OSV, finding) == ""

    def test_repeated_calls_render_identically(self):
        finding = make_finding("CVE-2021-23337", nvd=True, osv=True, ranges=[("1.0.0", "1.2.0"), ("2.0.0", "2.1.0")])
        nvd = nvd_with_sources({"versionStartIncluding": "1.0.0", "versionEndExcluding": "1.2.0"})
        osv = osv_with(versions=["1.0.0", "1.1.0"])

        for source in (Source.NVD, Source.OSV):
            first = reconcile_affected_versions(source, finding, osv_item=osv, nvd_item=nvd)
            second = reconcile_affected_versions(source, finding, osv_item=osv, nvd_item=nvd)
            assert first == second
            assert first


class TestPatchedVersions:
    def test_one_lower_bound_per_distinct_fix(self):
        finding = make_finding("CVE-1", nvd=True, ranges=[("1.0.0", "1.2.0"), ("1.1.0", "1.2.0"), ("2.0.0", "2.1.0")])
        evidence = finding.evidence_for(Source.NVD)
        assert patched_versions_string(evidence) == ">= 1.2.0 || >= 2.1.0"
        assert fixed_versions(evidence) == ["1.2.0", "2.1.0"]

    def test_version_statuses(self):
        finding = make_finding("CVE-1", nvd=True, ranges=[("1.0.0", "1.2.0")])
        statuses = version_statuses(["0.9.0", "1.0.0", "1.1.5", "1.2.0"], finding.evidence_for(Source.NVD))
        assert [s.status for s in statuses] == ["not_affected", "affected", "affected", "not_affected"]


class TestExplainWhyVersionIsVulnerable:
    def test_nvd_upper_exclusive_only(self):
        nvd = nvd_with_sources({"versionEndExcluding": "4.17.21"})
        reason = explain_why_version_is_vulnerable(Source.NVD, "v4.17.20", nvd_item=nvd)
        assert reason == "All versions before 4.17.21 are affected (your v4.17.20 < 4.17.21)"

    def test_nvd_start_and_end(self):
        nvd = nvd_with_sources({"versionStartIncluding": "1.0.0", "versionEndExcluding": "2.0.0"})
        reason = explain_why_version_is_vulnerable(Source.NVD, "1.5.0", nvd_item=nvd)
        assert reason == "Versions 1.0.0 to 2.0.0 are affected"

    def test_nvd_wildcard(self):
        nvd = nvd_with_sources({"criteriaDict": {"version": "*"}})
        assert explain_why_version_is_vulnerable(Source.NVD, "1.0.0", nvd_item=nvd) == "All versions are affected"

    def test_osv_version_in_list(self):
        osv = osv_with(versions=["1.0.1", "1.0.0", "1.0.1"])
        reason = explain_why_version_is_vulnerable(Source.OSV, "1.0.0", osv_item=osv)
        assert reason == "Your version 1.0.0 is in the list of affected versions: 1.0.0, 1.0.1"

    def test_osv_version_not_in_list(self):
        osv = osv_with(versions=["1.0.0"])
        reason = explain_why_version_is_vulnerable(Source.OSV, "2.0.0", osv_item=osv)
        assert reason == "Only specific versions are affected: 1.0.0 (your v2.0.0 is NOT in this list)"

    def test_unknown(self):
        assert explain_why_version_is_vulnerable(Source.OSV, "1.0.0") == UNKNOWN_REASON


class TestCompareSources:
    def test_disagreeing_sources(self):
        finding = make_finding("CVE-2021-23337", version="4.17.20")
        nvd = nvd_with_sources({"versionEndExcluding": "4.17.21"})
        osv = osv_with(versions=["4.17.20"])

        comparison = compare_sources(finding, osv_item=osv, nvd_item=nvd)

        assert comparison.agree is False
        assert comparison.nvdAllVersions == "before 4.17.21"
        assert comparison.osvAllVersions == "exactly 4.17.20"
        assert comparison.osv.startswith("Your version 4.17.20")

    def test_no_sources_agree(self):
        comparison = compare_sources(make_finding("CVE-1"))
        assert comparison.agree is True
