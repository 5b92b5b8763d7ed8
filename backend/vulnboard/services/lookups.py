"""
Knowledge Lookup Interface

The narrow set of point lookups the aggregation core needs from the host.
``vulnboard.repositories.knowledge.KnowledgeRepository`` is the MongoDB-backed
implementation; tests supply in-memory fakes.

Implementations should degrade instead of raising (``None`` for not-found,
zeroed EPSS for unknown ids), but callers still guard every call.
"""

from typing import Optional, Protocol

from vulnboard.models.knowledge import (
    CWEEntry,
    EPSSEntry,
    OwaspTop10Info,
    PackageMetadata,
    PolicyContent,
)


class KnowledgeLookups(Protocol):
    async def lookup_cwe(self, cwe_id: str) -> Optional[CWEEntry]: ...

    async def lookup_owasp_top10(self, owasp_id: str) -> Optional[OwaspTop10Info]: ...

    async def lookup_epss(self, advisory_id: str) -> EPSSEntry: ...

    async def lookup_package_metadata(self, name: str) -> Optional[PackageMetadata]: ...

    async def lookup_policy_content(self, org_id: str, policy_id: str) -> Optional[PolicyContent]: ...
