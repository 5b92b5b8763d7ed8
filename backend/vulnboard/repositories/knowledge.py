"""
Knowledge Repository

MongoDB-backed point lookups into the knowledge database: OSV and NVD
advisories, third-party advisories, the CWE catalog, EPSS scores and package
metadata, plus vulnerability policies from the application database.

Advisory, CWE and EPSS lookups go through the shared Redis cache; package
metadata uses a per-process bounded cache. No lookup raises: store failures and
malformed documents are logged and reported as "not found".
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from vulnboard.core.cache import BoundedTTLCache, CacheKeys, CacheTTL, cache_service
from vulnboard.core.constants import OWASP_TOP_10_2021
from vulnboard.core.metrics import knowledge_lookups_total, track_db_operation
from vulnboard.models.knowledge import (
    CWEEntry,
    EPSSEntry,
    NVDItem,
    OSVItem,
    OwaspTop10Info,
    PackageMetadata,
    PolicyContent,
    ThirdPartyAdvisory,
)

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}

T = TypeVar("T")


class KnowledgeRepository:
    """Implements the knowledge lookups used by the aggregation services."""

    def __init__(
        self,
        knowledge_db: AsyncIOMotorDatabase,
        app_db: AsyncIOMotorDatabase,
        package_cache: Optional[BoundedTTLCache[str, PackageMetadata]] = None,
    ):
        self.knowledge_db = knowledge_db
        self.app_db = app_db
        self.package_cache = package_cache

    async def _find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with track_db_operation(collection, "find_one"):
            return await self.knowledge_db[collection].find_one(query, NO_ID)
    async def _lookup(
        self,
        kind: str,
        key: str,
        fetch: Callable[[], Awaitable[Optional[Dict[str, Any]]]],
        build: Callable[[Dict[str, Any]], T],
        cache_key: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> Optional[T]:
        """
        Fetch one document and build its model.

        Store errors and documents that fail validation are counted as errors
        and reported as "not found".
        """
        try:
            if cache_key is not None:
                doc = await cache_service.get_or_fetch(cache_key, fetch, ttl_seconds)
            else:
                doc = await fetch()
            item = build(doc) if doc else None
        except ValidationError as e:
            knowledge_lookups_total.labels(kind=kind, outcome="error").inc()
            logger.warning(f"Malformed {kind} entry for {key}: {e.error_count()} validation errors")
            return None
        except Exception as e:
            knowledge_lookups_total.labels(kind=kind, outcome="error").inc()
            logger.warning(f"{kind} lookup failed for {key}: {e}")
            return None

        if item is None:
            knowledge_lookups_total.labels(kind=kind, outcome="not_found").inc()
            logger.debug(f"No {kind} entry for {key}")
            return None
        knowledge_lookups_total.labels(kind=kind, outcome="found").inc()
        return item

    # ===================
    # Advisory feeds
    # ===================

    async def get_osv(self, osv_id: str) -> Optional[OSVItem]:
        return await self._lookup(
            "osv",
            osv_id,
            lambda: self._find_one("osv", {"osv_id": osv_id}),
            OSVItem.model_validate,
            CacheKeys.osv(osv_id),
            CacheTTL.OSV_VULNERABILITY,
        )

    async def get_osv_by_cve(self, cve_id: str) -> Optional[OSVItem]:
        return await self._lookup(
            "osv",
            cve_id,
            lambda: self._find_one("osv", {"$or": [{"cve": cve_id}, {"aliases": cve_id}]}),
            OSVItem.model_validate,
            CacheKeys.osv_by_cve(cve_id),
            CacheTTL.OSV_VULNERABILITY,
        )

    async def get_nvd(self, nvd_id: str) -> Optional[NVDItem]:
        return await self._lookup(
            "nvd",
            nvd_id,
            lambda: self._find_one("nvd", {"nvd_id": nvd_id}),
            NVDItem.model_validate,
            CacheKeys.nvd(nvd_id),
            CacheTTL.NVD_VULNERABILITY,
        )

    async def get_third_party_advisory(self, advisory_id: str) -> Optional[ThirdPartyAdvisory]:
        return await self._lookup(
            "third_party",
            advisory_id,
            lambda: self._find_one("friends_of_php", {"advisory_id": advisory_id}),
            ThirdPartyAdvisory.model_validate,
        )

    # ===================
    # Enrichment lookups
    # ===================

    async def lookup_cwe(self, cwe_id: str) -> Optional[CWEEntry]:
        number = cwe_id.upper().replace("CWE-", "")
        return await self._lookup(
            "cwe",
            cwe_id,
            lambda: self._find_one("cwe", {"cwe_id": number}),
            CWEEntry.model_validate,
            CacheKeys.cwe(number),
            CacheTTL.CWE_ENTRY,
        )

    async def lookup_owasp_top10(self, owasp_id: str) -> Optional[OwaspTop10Info]:
        category = OWASP_TOP_10_2021.get(owasp_id)
        if category is None:
            knowledge_lookups_total.labels(kind="owasp", outcome="not_found").inc()
            logger.debug(f"Unknown OWASP Top 10 category {owasp_id}")
            return None
        knowledge_lookups_total.labels(kind="owasp", outcome="found").inc()
        return OwaspTop10Info(id=owasp_id, **category)

    async def lookup_epss(self, advisory_id: str) -> EPSSEntry:
        """EPSS score of an advisory; unknown ids score zero."""
        entry = await self._lookup(
            "epss",
            advisory_id,
            lambda: self._find_one("epss", {"cve": advisory_id}),
            lambda doc: EPSSEntry(score=doc.get("score", 0.0), percentile=doc.get("percentile", 0.0)),
            CacheKeys.epss(advisory_id),
            CacheTTL.EPSS_SCORE,
        )
        return entry or EPSSEntry()

    async def lookup_package_metadata(self, name: str) -> Optional[PackageMetadata]:
        if self.package_cache is not None:
            cached = self.package_cache.get(name)
            if cached is not None:
                return cached

        def build(doc: Dict[str, Any]) -> PackageMetadata:
            return PackageMetadata(
                name=doc.get("name", name),
                description=doc.get("description") or "",
                keywords=doc.get("keywords") or [],
                homepage=doc.get("homepage"),
                versions=doc.get("versions") or [],
                raw=doc,
            )

        metadata = await self._lookup("package", name, lambda: self._find_one("packages", {"name": name}), build)
        if metadata is not None and self.package_cache is not None:
            self.package_cache.set(name, metadata)
        return metadata

    async def lookup_policy_content(self, org_id: str, policy_id: str) -> Optional[PolicyContent]:
        async def fetch() -> Optional[Dict[str, Any]]:
            with track_db_operation("policies", "find_one"):
                return await self.app_db["policies"].find_one(
                    {"_id": policy_id, "organization_id": org_id}
                )

        return await self._lookup(
            "policy",
            policy_id,
            fetch,
            lambda doc: PolicyContent(
                id=str(doc.get("_id", policy_id)), name=doc.get("name", ""), content=doc.get("content") or []
            ),
        )
