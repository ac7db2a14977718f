"""Productivity memory with semantic retrieval and pattern insights."""

__version__ = "1.0.0"

from .models import (
    DashboardCard,
    DashboardInsights,
    MemoryDraft,
    MemoryEntry,
    PatternInsight,
    SimilarMemory,
    TrendReport,
)
from .embeddings import EmbeddingGenerator
from .storage import MemoryStorage
from .retrieval import SimilarityRetriever, build_prompt_context
from .patterns import PatternAnalyzer
from .trends import TrendCalculator
from .service import MemoryService, create_service
from .extraction import extract_completed_tasks
from .dashboard import build_dashboard_insights, format_for_dashboard
from .errors import EmbeddingFailed, PersistenceFailed, ProviderError

__all__ = [
    "DashboardCard",
    "DashboardInsights",
    "MemoryDraft",
    "MemoryEntry",
    "PatternInsight",
    "SimilarMemory",
    "TrendReport",
    "EmbeddingGenerator",
    "MemoryStorage",
    "SimilarityRetriever",
    "build_prompt_context",
    "PatternAnalyzer",
    "TrendCalculator",
    "MemoryService",
    "create_service",
    "extract_completed_tasks",
    "build_dashboard_insights",
    "format_for_dashboard",
    "EmbeddingFailed",
    "PersistenceFailed",
    "ProviderError",
]
