import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from vulnboard.core.config import settings

logger = logging.getLogger(__name__)


class Database:
    client: AsyncIOMotorClient = None


db = Database()


async def get_database() -> AsyncIOMotorDatabase:
    return db.client[settings.DATABASE_NAME]


async def get_knowledge_database() -> AsyncIOMotorDatabase:
    """Advisory feeds, CWE catalog, EPSS scores and package metadata."""
    return db.client[settings.KNOWLEDGE_DATABASE_NAME]


async def connect_to_mongo():
    db.client = AsyncIOMotorClient(settings.MONGODB_URL)
    logger.info("Connected to MongoDB")


async def close_mongo_connection():
    if db.client is not None:
        db.client.close()
        logger.info("Closed MongoDB connection")
