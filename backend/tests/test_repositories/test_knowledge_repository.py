"""Tests for KnowledgeRepository lookups.

The shared Redis cache is bypassed by patching ``get_or_fetch`` to call the
fetch function directly.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from prometheus_client import REGISTRY

from vulnboard.core.cache import BoundedTTLCache
from vulnboard.models.knowledge import PolicyContent
from vulnboard.repositories.knowledge import KnowledgeRepository
from tests.mocks.mongodb import create_mock_collection, create_mock_db


async def passthrough(key, fetch, ttl_seconds=None):
    return await fetch()


@pytest.fixture(autouse=True)
def no_redis():
    with patch(
        "vulnboard.repositories.knowledge.cache_service.get_or_fetch",
        AsyncMock(side_effect=passthrough),
    ) as mock:
        yield mock


def make_repo(knowledge=None, app=None, package_cache=None):
    return KnowledgeRepository(create_mock_db(knowledge), create_mock_db(app), package_cache)


class TestAdvisoryLookups:
    def test_osv_found(self):
        osv = create_mock_collection(find_one={"osv_id": "GHSA-35jh-r3h4-6jhm", "summary": "Command injection"})
        repo = make_repo({"osv": osv})

        item = asyncio.run(repo.get_osv("GHSA-35jh-r3h4-6jhm"))

        assert item.summary == "Command injection"
        osv.find_one.assert_called_once_with({"osv_id": "GHSA-35jh-r3h4-6jhm"}, {"_id": 0})

    def test_osv_by_cve_matches_aliases(self):
        osv = create_mock_collection(find_one=None)
        repo = make_repo({"osv": osv})

        assert asyncio.run(repo.get_osv_by_cve("CVE-2021-23337")) is None
        osv.find_one.assert_called_once_with(
            {"$or": [{"cve": "CVE-2021-23337"}, {"aliases": "CVE-2021-23337"}]}, {"_id": 0}
        )

    def test_uses_cache_key(self, no_redis):
        repo = make_repo({"nvd": create_mock_collection(find_one={"nvd_id": "CVE-2021-23337"})})

        item = asyncio.run(repo.get_nvd("CVE-2021-23337"))

        assert item.nvd_id == "CVE-2021-23337"
        assert no_redis.call_args.args[0] == "nvd:CVE-2021-23337"

    def test_store_error_reads_as_missing(self):
        nvd = create_mock_collection()
        nvd.find_one = AsyncMock(side_effect=RuntimeError("connection reset"))
        repo = make_repo({"nvd": nvd})

        assert asyncio.run(repo.get_nvd("CVE-2021-23337")) is None

    def test_third_party_skips_shared_cache(self, no_redis):
        repo = make_repo(
            {"friends_of_php": create_mock_collection(find_one={"advisory_id": "CVE-1", "link": "https://x"})}
        )

        advisory = asyncio.run(repo.get_third_party_advisory("CVE-1"))

        assert advisory.name == "FriendsOfPHP"
        no_redis.assert_not_called()


class TestMalformedDocuments:
    def error_count(self, kind):
        return REGISTRY.get_sample_value("knowledge_lookups_total", {"kind": kind, "outcome": "error"}) or 0

    def test_invalid_osv_reads_as_missing(self):
        osv = create_mock_collection(
            find_one={"osv_id": "GHSA-x", "published": None, "severity": [{"type": "CVSS_V3"}]}
        )
        repo = make_repo({"osv": osv})
        before = self.error_count("osv")

        assert asyncio.run(repo.get_osv("GHSA-x")) is None
        assert self.error_count("osv") == before + 1

    def test_invalid_cwe_reads_as_missing(self):
        repo = make_repo({"cwe": create_mock_collection(find_one={"cwe_id": "79", "name": None})})
        assert asyncio.run(repo.lookup_cwe("CWE-79")) is None

    def test_invalid_nvd_reads_as_missing(self):
        repo = make_repo({"nvd": create_mock_collection(find_one={"nvd_id": "CVE-1", "descriptions": [{"lang": "en"}]})})
        assert asyncio.run(repo.get_nvd("CVE-1")) is None

    def test_invalid_package_is_not_cached(self):
        packages = create_mock_collection(find_one={"name": "lodash", "versions": [{"time": "2021-02-20"}]})
        cache = BoundedTTLCache(capacity=8, ttl_seconds=60)
        repo = make_repo({"packages": packages}, package_cache=cache)

        assert asyncio.run(repo.lookup_package_metadata("lodash")) is None
        assert len(cache) == 0


class TestEnrichmentLookups:
    def test_cwe_queries_by_number(self):
        cwe = create_mock_collection(find_one={"cwe_id": "79", "name": "Cross-site Scripting"})
        repo = make_repo({"cwe": cwe})

        entry = asyncio.run(repo.lookup_cwe("CWE-79"))

        assert entry.name == "Cross-site Scripting"
        cwe.find_one.assert_called_once_with({"cwe_id": "79"}, {"_id": 0})

    def test_owasp_from_catalog(self):
        repo = make_repo()
        assert asyncio.run(repo.lookup_owasp_top10("1347")).name == "A03:2021 - Injection"
        assert asyncio.run(repo.lookup_owasp_top10("0")) is None

    def test_epss_defaults_to_zero(self):
        repo = make_repo({"epss": create_mock_collection(find_one=None)})

        entry = asyncio.run(repo.lookup_epss("CVE-1999-0001"))

        assert entry.score == 0.0
        assert entry.percentile == 0.0

    def test_epss_found(self):
        repo = make_repo({"epss": create_mock_collection(find_one={"cve": "CVE-1", "score": 0.97, "percentile": 0.99})})
        assert asyncio.run(repo.lookup_epss("CVE-1")).score == 0.97

    def test_package_metadata_cached_in_process(self):
        packages = create_mock_collection(
            find_one={"name": "lodash", "description": "Utilities", "versions": [{"version": "4.17.21", "time": "2021-02-20"}]}
        )
        cache = BoundedTTLCache(capacity=8, ttl_seconds=60)
        repo = make_repo({"packages": packages}, package_cache=cache)

        first = asyncio.run(repo.lookup_package_metadata("lodash"))
        second = asyncio.run(repo.lookup_package_metadata("lodash"))

        assert first.published_at("4.17.21") == "2021-02-20"
        assert second is first
        packages.find_one.assert_called_once()

    def test_policy_scoped_to_organization(self):
        policies = create_mock_collection(find_one={"_id": "pol", "name": "Accepted", "content": ["CVE-1"]})
        repo = make_repo(app={"policies": policies})

        policy = asyncio.run(repo.lookup_policy_content("org", "pol"))

        assert policy == PolicyContent(id="pol", name="Accepted", content=["CVE-1"])
        policies.find_one.assert_called_once_with({"_id": "pol", "organization_id": "org"})
