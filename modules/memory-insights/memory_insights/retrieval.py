"""Similar-memory retrieval for summary prompt context."""

import logging
from typing import Iterable, Optional

from .embeddings import EmbeddingGenerator
from .errors import ProviderError
from .models import PatternInsight, SimilarMemory
from .storage import MemoryStorage

logger = logging.getLogger(__name__)


class SimilarityRetriever:
    """Embeds new text and looks up the user's closest past summaries.

    Retrieval is best-effort context for the summary prompt: any failure
    is logged and yields no memories instead of an error.
    """

    def __init__(self, embeddings: EmbeddingGenerator, storage: MemoryStorage):
        self.embeddings = embeddings
        self.storage = storage

    async def find_similar(
        self, text: str, user_id: str, limit: Optional[int] = None
    ) -> list[SimilarMemory]:
        try:
            query_vector = await self.embeddings.generate(text)
        except (ProviderError, ValueError) as e:
            logger.warning("Retrieving without memory context for %s: %s", user_id, e)
            return []

        try:
            memories = await self.storage.query_by_similarity(
                user_id, query_vector, limit=limit
            )
        except Exception:
            logger.exception("Similarity query failed for %s", user_id)
            return []

        logger.info("Found %d similar memories for %s", len(memories), user_id)
        return memories


def build_prompt_context(
    memories: Iterable[SimilarMemory], insights: Iterable[PatternInsight] = ()
) -> str:
    """Format retrieved memories and insights for the summary prompt.

    Returns an empty string when there is nothing to add.
    """
    sections = []

    memories = list(memories)
    if memories:
        lines = ["**MEMORY CONTEXT - Similar Past Sessions:**"]
        for index, memory in enumerate(memories, start=1):
            score = (
                f"{round(memory.productivity_score)}% productive"
                if memory.productivity_score is not None
                else "productivity unknown"
            )
            lines.append(
                f"{index}. {memory.created_at.date().isoformat()}: {memory.summary_text} "
                f"({score}, similarity: {round(memory.similarity * 100)}%)"
            )
        sections.append("\n".join(lines))

    insights = list(insights)
    if insights:
        lines = ["**USER PATTERNS & INSIGHTS:**"]
        for insight in insights:
            lines.append(
                f"• {insight.insight} (confidence: {round(insight.confidence * 100)}%)"
            )
        sections.append("\n".join(lines))

    if not sections:
        return ""
    return "\n\n".join(sections) + "\n"
