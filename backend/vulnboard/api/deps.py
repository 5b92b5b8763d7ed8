from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from vulnboard.core.cache import BoundedTTLCache
from vulnboard.core.config import settings
from vulnboard.db.mongodb import get_database, get_knowledge_database
from vulnboard.models.knowledge import PackageMetadata
from vulnboard.repositories import AnalysisRepository, AnalysisResultRepository, KnowledgeRepository
from vulnboard.services.vulnerabilities import VulnerabilityService

# Shared by all requests of this process
package_metadata_cache: BoundedTTLCache[str, PackageMetadata] = BoundedTTLCache(
    capacity=settings.PACKAGE_METADATA_CACHE_SIZE,
    ttl_seconds=settings.PACKAGE_METADATA_CACHE_TTL_SECONDS,
)


async def get_knowledge_repository(
    db: AsyncIOMotorDatabase = Depends(get_database),
    knowledge_db: AsyncIOMotorDatabase = Depends(get_knowledge_database),
) -> KnowledgeRepository:
    return KnowledgeRepository(knowledge_db, db, package_metadata_cache)


async def get_analysis_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AnalysisRepository:
    return AnalysisRepository(db)


async def get_result_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AnalysisResultRepository:
    return AnalysisResultRepository(db)


async def get_vulnerability_service(
    analyses: AnalysisRepository = Depends(get_analysis_repository),
    results: AnalysisResultRepository = Depends(get_result_repository),
    knowledge: KnowledgeRepository = Depends(get_knowledge_repository),
) -> VulnerabilityService:
    return VulnerabilityService(analyses, results, knowledge)
