"""Tests for the OSV- and NVD-anchored vulnerability detail reports."""

import asyncio

import pytest

from vulnboard.core.exceptions import MissingAnchorItem
from vulnboard.models.knowledge import (
    CWEEntry,
    NVDItem,
    OSVItem,
    PackageMetadata,
    ThirdPartyAdvisory,
)
from vulnboard.services.report_generator import (
    clean_osv_description,
    framework_display_name,
    generate_nvd_report,
    generate_osv_report,
    resolve_weaknesses,
)
from tests.mocks.findings import FakeLookups, make_finding, make_weakness

CWE_94 = CWEEntry(
    cwe_id="94",
    name="Improper Control of Generation of Code ('Code Injection')",
    description="The product constructs\tall or part\x00 of a code segment.",
    common_consequences=[{"scope": ["Integrity"], "impact": ["Execute Unauthorized Code"], "note": "Arbitrary\ncode."}],
)


def osv_item(**overrides):
    data = {
        "osv_id": "GHSA-35jh-r3h4-6jhm",
        "cve": "CVE-2021-23337",
        "summary": "Command injection in lodash",
        "details": "lodash versions prior to 4.17.21 are vulnerable.\n### References\n- link",
        "published": "2021-05-06T16:05:51Z",
        "modified": "2023-01-09T05:02:48Z",
        "affected": [
            {
                "package": {"name": "lodash", "ecosystem": "npm"},
                "ranges": [{"type": "SEMVER", "events": [{"introduced": "0"}, {"fixed": "4.17.21"}]}],
            }
        ],
        "severity": [{"type": "CVSS_V3", "score": "CVSS:3.1/AV:N/AC:L/PR:H/UI:N/S:U/C:H/I:H/A:H"}],
        "references": [{"type": "ADVISORY", "url": "https://nvd.nist.gov/vuln/detail/CVE-2021-23337"}],
    }
    data.update(overrides)
    return OSVItem(**data)


def nvd_item(**overrides):
    data = {
        "nvd_id": "CVE-2021-23337",
        "published": "2021-02-15T13:15:12.560",
        "lastModified": "2022-09-13T21:25:02.093",
        "descriptions": [
            {"lang": "es", "value": "Lodash es vulnerable."},
            {"lang": "en", "value": "Lodash versions prior to 4.17.21 are vulnerable to Command Injection."},
        ],
        "metrics": {
            "cvssMetricV31": [
                {
                    "source": "nvd@nist.gov",
                    "cvssData": {"vectorString": "CVSS:3.1/AV:N/AC:L/PR:H/UI:N/S:U/C:H/I:H/A:H"},
                }
            ]
        },
        "affected": [{"sources": [{"versionEndExcluding": "4.17.21"}]}],
        "references": [{"url": "https://github.com/lodash/lodash/commit/3469357", "source": "report@snyk.io"}],
    }
    data.update(overrides)
    return NVDItem(**data)


def lodash_finding():
    return make_finding(
        "CVE-2021-23337",
        weaknesses=[make_weakness("CWE-94", owasp="1347")],
        nvd=True,
        osv=True,
        ranges=[("0.0.0", "4.17.21")],
    )


LODASH_METADATA = PackageMetadata(
    name="lodash",
    description="Lodash modular utilities.",
    keywords=["modules", "stdlib"],
    homepage="https://lodash.com/",
    versions=[{"version": "4.17.20", "time": "2020-08-13T16:53:54.152Z"}, {"version": "4.17.21"}],
)


class TestCleanOsvDescription:
    def test_heading_only_text(self):
        assert clean_osv_description("# Header\n\nContent") == " Header\n\nContent"

    def test_trailing_blank_lines_stripped(self):
        assert clean_osv_description("# Header\n\nContent\n\n\n\n") == " Header\n\nContent"

    def test_drops_sections_without_code(self):
        text = "Intro\n## Details\nprose\n## PoC\n```js\nrun()\n```\n\n"
        assert clean_osv_description(text) == "Intro\n\n PoC\n```js\nrun()\n```"

    def test_empty(self):
        assert clean_osv_description("") == ""


class TestFrameworkDisplayName:
    def test_regular_dependency_unchanged(self):
        assert framework_display_name("lodash", osv_item()) == "lodash"

    def test_osv_package_name(self):
        osv = osv_item(affected=[{"package": {"name": "symfony/http-kernel"}}])
        assert framework_display_name("framework-symfony", osv) == "symfony/http-kernel"

    def test_nvd_vendor_product(self):
        nvd = nvd_item(affected=[{"sources": [{"criteriaDict": {"vendor": "laravel", "product": "framework"}}]}])
        assert framework_display_name("framework-laravel", nvd_item=nvd) == "laravel/framework"


class TestResolveWeaknesses:
    def test_sanitizes_and_collects_consequences(self):
        lookups = FakeLookups(cwes={"CWE-94": CWE_94})
        infos, consequences = asyncio.run(resolve_weaknesses([make_weakness("CWE-94")], lookups))

        assert infos[0].name.startswith("Improper Control")
        assert infos[0].description == "The product constructs all or part of a code segment."
        assert consequences["CWE-94"][0].description == "Arbitrary code."

    def test_unknown_cwe_keeps_finding_data(self):
        weakness = make_weakness("CWE-9999")
        weakness.weakness_name = "Custom weakness"
        infos, consequences = asyncio.run(resolve_weaknesses([weakness], FakeLookups()))

        assert infos[0].name == "Custom weakness"
        assert consequences == {}

    def test_failing_lookup_is_skipped(self):
        infos, _ = asyncio.run(resolve_weaknesses([make_weakness("CWE-94")], FakeLookups(failing=["cwe"])))
        assert infos == []


class TestGenerateOsvReport:
    def test_missing_anchor(self):
        with pytest.raises(MissingAnchorItem) as exc_info:
            asyncio.run(generate_osv_report(lodash_finding(), "NPM", FakeLookups(), nvd_item=nvd_item()))
        assert exc_info.value.anchor == "OSV"

    def test_full_report(self):
        third_party = ThirdPartyAdvisory(advisory_id="CVE-2021-23337", link="https://example.org/advisory")
        report = asyncio.run(
            generate_osv_report(
                lodash_finding(),
                "NPM",
                FakeLookups(cwes={"CWE-94": CWE_94}),
                dependency_metadata=LODASH_METADATA,
                osv_item=osv_item(),
                nvd_item=nvd_item(),
                third_party=third_party,
            )
        )

        info = report.vulnerability_info
        assert info.vulnerability_id == "CVE-2021-23337"
        assert info.aliases == ["GHSA-35jh-r3h4-6jhm", "CVE-2021-23337"]
        assert info.description == "lodash versions prior to 4.17.21 are vulnerable."
        assert [s.vuln_url for s in info.sources] == [
            "https://osv.dev/vulnerability/GHSA-35jh-r3h4-6jhm",
            "https://nvd.nist.gov/vuln/detail/CVE-2021-23337",
            "https://example.org/advisory",
        ]
        assert info.version_info.affected_versions_string == "before 4.17.21 (excluding 4.17.21)"
        assert info.version_info.patched_versions_string == ">= 4.17.21"
        assert [v.status for v in info.version_info.versions] == ["affected", "not_affected"]

        assert report.severities.cvss_31.base_score == 7.2
        assert report.references[0].tags == ["ADVISORY"]
        assert report.owasp_top_10.name == "A03:2021 - Injection"
        assert report.weaknesses[0].id == "CWE-94"
        assert report.patch.fixed_versions == ["4.17.21"]
        assert report.location == []
        assert report.other.package_manager == "NPM"

        dependency = report.dependency_info
        assert dependency.published == "2020-08-13T16:53:54.152Z"
        assert [link.url for link in dependency.package_manager_links] == [
            "https://www.npmjs.com/package/lodash",
            "https://yarn.pm/lodash",
        ]

    def test_falls_back_to_nvd_scores(self):
        report = asyncio.run(
            generate_osv_report(lodash_finding(), "COMPOSER", FakeLookups(), osv_item=osv_item(severity=[]), nvd_item=nvd_item())
        )
        assert report.severities.cvss_31.base_score == 7.2
        assert report.dependency_info.package_manager_links == []


class TestGenerateNvdReport:
    def test_missing_anchor(self):
        with pytest.raises(MissingAnchorItem):
            asyncio.run(generate_nvd_report(lodash_finding(), "NPM", FakeLookups(), osv_item=osv_item()))

    def test_nvd_anchored_fields(self):
        report = asyncio.run(
            generate_nvd_report(lodash_finding(), "NPM", FakeLookups(), osv_item=osv_item(), nvd_item=nvd_item())
        )

        info = report.vulnerability_info
        assert info.vulnerability_id == "CVE-2021-23337"
        assert info.aliases == ["GHSA-35jh-r3h4-6jhm"]
        assert info.description == "Lodash versions prior to 4.17.21 are vulnerable to Command Injection."
        assert info.last_modified == "2022-09-13T21:25:02.093"
        assert info.version_info.affected_versions_string == "before 4.17.21"
        assert info.version_info.source_comparison.nvd.startswith("All versions before 4.17.21")
        assert report.references[0].tags == []
        assert report.dependency_info.description == ""
