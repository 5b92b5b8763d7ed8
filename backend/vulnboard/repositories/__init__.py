"""
Repository Pattern for Database Access

Provides a clean abstraction layer over MongoDB collections,
centralizing database operations and reducing code duplication.
"""

from vulnboard.repositories.base import BaseRepository
from vulnboard.repositories.analyses import AnalysisRepository
from vulnboard.repositories.analysis_results import AnalysisResultRepository
from vulnboard.repositories.knowledge import KnowledgeRepository

__all__ = [
    "BaseRepository",
    "AnalysisRepository",
    "AnalysisResultRepository",
    "KnowledgeRepository",
]
