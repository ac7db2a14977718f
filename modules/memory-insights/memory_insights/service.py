"""Caller-facing memory and insight operations."""

import logging
from typing import Any, Optional, Union

from pydantic import ValidationError

from .dashboard import build_dashboard_insights, default_dashboard_insights
from .errors import EmbeddingFailed, PersistenceFailed
from .models import (
    DashboardInsights,
    MemoryDraft,
    PatternInsight,
    SimilarMemory,
    StoreResult,
    TrendReport,
)
from .patterns import PatternAnalyzer
from .retrieval import SimilarityRetriever
from .storage import MemoryStorage
from .trends import TrendCalculator

logger = logging.getLogger(__name__)


class MemoryService:
    """Entry point for the summary pipeline and the dashboard."""

    def __init__(
        self,
        storage: MemoryStorage,
        retriever: SimilarityRetriever,
        analyzer: PatternAnalyzer,
        trends: TrendCalculator,
        config: Optional[dict] = None,
    ):
        config = config or {}
        self.storage = storage
        self.retriever = retriever
        self.analyzer = analyzer
        self.trends = trends
        self.max_summary_chars = config.get("max_summary_chars", 10000)

    async def store_memory(
        self,
        summary_draft: Union[MemoryDraft, dict[str, Any]],
        user_id: str,
        session_id: Optional[str] = None,
    ) -> StoreResult:
        """Store one generated summary. Failures come back in the result."""
        try:
            draft = (
                summary_draft
                if isinstance(summary_draft, MemoryDraft)
                else MemoryDraft.model_validate(summary_draft)
            )
        except ValidationError as e:
            return self._failure("invalid_input", f"Invalid summary: {e.errors()[0]['msg']}")

        if len(draft.summary_text) > self.max_summary_chars:
            return self._failure(
                "invalid_input",
                f"Summary too long (max {self.max_summary_chars:,} chars)",
            )

        try:
            entry = await self.storage.store(draft, user_id, session_id)
        except ValueError as e:
            return self._failure("invalid_input", str(e))
        except EmbeddingFailed as e:
            return self._failure("embedding_failed", str(e))
        except PersistenceFailed as e:
            return self._failure("persistence_failed", str(e))

        return StoreResult(success=True, entry=entry)

    def _failure(self, kind: str, message: str) -> StoreResult:
        logger.warning("store_memory failed (%s): %s", kind, message)
        return StoreResult(success=False, error={"kind": kind, "message": message})

    async def retrieve_context(
        self, query_text: str, user_id: str, limit: Optional[int] = None
    ) -> list[SimilarMemory]:
        return await self.retriever.find_similar(query_text, user_id, limit=limit)

    async def get_insights(self, user_id: str, days: Optional[int] = None) -> list[PatternInsight]:
        return await self.analyzer.analyze(user_id, days=days)

    async def get_trend(self, user_id: str, days: Optional[int] = None) -> Optional[TrendReport]:
        return await self.trends.compute_trend(user_id, days=days)

    async def get_dashboard_insights(self, user_id: str) -> DashboardInsights:
        """Insights and trend condensed for the dashboard.

        The dashboard always gets something to show: if analysis fails the
        new-user defaults are returned.
        """
        try:
            insights = await self.get_insights(user_id)
            trend = await self.get_trend(user_id)
        except Exception:
            logger.exception("Dashboard insights failed for %s", user_id)
            return default_dashboard_insights()

        return build_dashboard_insights(insights, trend)


def create_service(config: Optional[dict] = None) -> MemoryService:
    """Build the embedding provider and store once and wire everything to them.

    Args:
        config: Optional configuration, see MemoryStorage plus:
            - embedding_model: OpenAI model (default: text-embedding-3-small)
            - embedding_dimensions: Vector length (default: 1536)
            - embedding_timeout: Seconds per embedding call (default: 30)
            - api_key: OpenAI key (default: OPENAI_API_KEY)
            - trend_dead_zone, trend_days, insight_days, max_summary_chars

    Returns:
        MemoryService
    """
    # Import here so tests can patch the classes at their module paths
    from .embeddings import EmbeddingGenerator
    from .storage import MemoryStorage

    config = config or {}

    embeddings = EmbeddingGenerator(
        model=config.get("embedding_model", "text-embedding-3-small"),
        api_key=config.get("api_key"),
        dimensions=config.get("embedding_dimensions", 1536),
        timeout=config.get("embedding_timeout", 30.0),
    )
    storage = MemoryStorage(embeddings, config)

    return MemoryService(
        storage=storage,
        retriever=SimilarityRetriever(embeddings, storage),
        analyzer=PatternAnalyzer(storage, config),
        trends=TrendCalculator(storage, config),
        config=config,
    )
