"""Tests for finding models parsed from analyzer output."""

from vulnboard.models.finding import ConflictFlag, Finding, SemVer, Source, is_no_conflict


class TestFindingParsing:
    def test_accepts_stored_aliases(self):
        finding = Finding.model_validate(
            {
                "VulnerabilityId": "CVE-2021-23337",
                "AffectedDependency": "lodash",
                "AffectedVersion": "4.17.20",
                "Sources": ["NVD", "OSV"],
                "Severity": {"Severity": 7.2, "Vector": "NETWORK", "ConfidentialityImpact": "HIGH"},
                "NVDMatch": {
                    "AffectedInfo": [{"Ranges": [{"FixedSemver": {"Major": 4, "Minor": 17, "Patch": 21}}]}]
                },
            }
        )

        assert finding.sources == [Source.NVD, Source.OSV]
        assert finding.severity.confidentiality_impact == "HIGH"
        evidence = finding.evidence_for(Source.NVD)
        assert str(evidence.ranges[0].fixed) == "4.17.21"
        assert finding.evidence_for(Source.OSV) is None

    def test_accepts_field_names(self):
        finding = Finding(vulnerability_id="GHSA-35jh-r3h4-6jhm", affected_dependency="lodash")
        assert finding.severity is None
        assert finding.weaknesses is None

    def test_vlai_from_matched_record(self):
        finding = Finding.model_validate(
            {"VulnerabilityId": "CVE-1", "OSVMatch": {"Vulnerability": {"Vlai_score": "high", "Vlai_confidence": 0.8}}}
        )
        assert finding.osv_match.vlai() == {"score": "high", "confidence": 0.8}


class TestConflictFlag:
    def test_legacy_empty_flag_is_no_conflict(self):
        assert is_no_conflict(ConflictFlag.UNSET)
        assert is_no_conflict("")
        assert is_no_conflict(None)
        assert not is_no_conflict(ConflictFlag.MATCH_INCORRECT)


class TestSemVer:
    def test_prerelease_rendered(self):
        assert str(SemVer(major=1, minor=0, patch=0, pre_release_tag="beta.1")) == "1.0.0-beta.1"
