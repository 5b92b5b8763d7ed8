"""
Base Repository Pattern

Generic read access to one MongoDB collection, with per-operation metrics.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel

from vulnboard.core.metrics import track_db_operation

# Type variable for the model class
T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Generic base repository providing common read operations.

    Type Parameters:
        T: The Pydantic model class this repository manages

    Usage:
        class AnalysisRepository(BaseRepository[Analysis]):
            collection_name = "analyses"
            model_class = Analysis
    """

    # Subclasses must define these
    collection_name: str
    model_class: Type[T]

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection: AsyncIOMotorCollection = db[self.collection_name]

    def _to_model(self, data: Optional[Dict[str, Any]]) -> Optional[T]:
        """Convert a raw document to a model instance."""
        if data is None:
            return None
        return self.model_class(**data)

    def _to_model_list(self, docs: List[Dict[str, Any]]) -> List[T]:
        return [self.model_class(**doc) for doc in docs]

    async def get_by_id(self, id: str) -> Optional[T]:
        """Get a document by ID and return as model instance."""
        return self._to_model(await self.get_raw_by_id(id))

    async def get_raw_by_id(self, id: str) -> Optional[Dict[str, Any]]:
        with track_db_operation(self.collection_name, "find_one"):
            return await self.collection.find_one({"_id": id})

    async def find_one_raw(
        self,
        query: Dict[str, Any],
        projection: Optional[Dict[str, int]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Find one raw document matching query."""
        with track_db_operation(self.collection_name, "find_one"):
            return await self.collection.find_one(query, projection)

    async def find_many_raw(
        self,
        query: Dict[str, Any],
        limit: int = 1000,
        sort_by: Optional[str] = None,
        sort_order: int = 1,
        projection: Optional[Dict[str, int]] = None,
    ) -> List[Dict[str, Any]]:
        """Find multiple raw documents."""
        with track_db_operation(self.collection_name, "find"):
            cursor = self.collection.find(query, projection)
            if sort_by:
                cursor = cursor.sort(sort_by, sort_order)
            cursor = cursor.limit(limit)
            return await cursor.to_list(limit)

    async def find_many(
        self,
        query: Dict[str, Any],
        limit: int = 1000,
        sort_by: Optional[str] = None,
        sort_order: int = 1,
    ) -> List[T]:
        """Find multiple documents and return as model instances."""
        return self._to_model_list(await self.find_many_raw(query, limit, sort_by, sort_order))
