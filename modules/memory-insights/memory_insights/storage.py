"""Qdrant-based memory storage scoped per user."""

import logging
import os
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Range,
    VectorParams,
)

from .embeddings import EmbeddingGenerator
from .errors import EmbeddingFailed, PersistenceFailed, ProviderError
from .models import MemoryDraft, MemoryEntry, SimilarMemory
from .similarity import clamp_similarity, cosine_similarity

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Append-only memory log with a cosine similarity index.

    Design decisions:
    - Qdrant embedded mode (local file storage) or in-memory location
    - One collection, every point carries user_id; all reads filter on it
    - Entries are written once under a fresh UUID and never updated
    - Qdrant's cosine index finds candidates, exact cosine ranks them
    - User ID validation prevents injection into filters and paths
    """

    USER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
    SCROLL_PAGE_SIZE = 256
    # Slack on similarity comparisons against float32 stored vectors
    SCORE_TOLERANCE = 1e-6

    def __init__(
        self,
        embeddings: EmbeddingGenerator,
        config: Optional[dict] = None,
        client: Optional[QdrantClient] = None,
    ):
        """Initialize storage.

        Args:
            embeddings: Embedding provider shared with the retriever
            config: Optional configuration:
                - location: Qdrant location, e.g. ":memory:" (overrides storage_root)
                - storage_root: Base directory (default: ~/.memory-insights)
                - collection: Collection name (default: ai_memory)
                - similarity_threshold: Minimum similarity (default: 0.7)
                - retrieval_limit: Max similar memories (default: 5)
                - timezone: Zone for hour/weekday context (default: UTC)
                - payload_indexes: Create user_id/created_ts indexes
                  (default: only for a server location)
            client: Pre-built Qdrant client, mainly for tests
        """
        config = config or {}
        self.embeddings = embeddings
        self.dimensions = embeddings.dimensions

        # Payload indexes only exist on a Qdrant server
        self.indexed = config.get("payload_indexes", False)

        if client is None:
            location = config.get("location")
            if location:
                client = QdrantClient(location=location)
                self.indexed = config.get("payload_indexes", location != ":memory:")
            else:
                storage_root = config.get(
                    "storage_root", os.path.expanduser("~/.memory-insights")
                )
                self.storage_path = Path(storage_root)
                self.storage_path.mkdir(parents=True, exist_ok=True)
                client = QdrantClient(path=str(self.storage_path / "qdrant.db"))
        self.client = client

        self.collection = config.get("collection", "ai_memory")
        self.similarity_threshold = config.get("similarity_threshold", 0.7)
        self.retrieval_limit = config.get("retrieval_limit", 5)
        tz_name = config.get("timezone")
        self.timezone = ZoneInfo(tz_name) if tz_name else timezone.utc

        self._ensure_collection()

    def _ensure_collection(self):
        """Create collection and payload indexes if they don't exist."""
        collections = self.client.get_collections().collections
        collection_names = [c.name for c in collections]

        if self.collection not in collection_names:
            self.client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(size=self.dimensions, distance=Distance.COSINE),
            )
            if self.indexed:
                self.client.create_payload_index(
                    collection_name=self.collection,
                    field_name="user_id",
                    field_schema=PayloadSchemaType.KEYWORD,
                )
                self.client.create_payload_index(
                    collection_name=self.collection,
                    field_name="created_ts",
                    field_schema=PayloadSchemaType.FLOAT,
                )
            logger.info(
                "Created collection %s (%d dimensions)", self.collection, self.dimensions
            )

    def _validate_user_id(self, user_id: str):
        if not isinstance(user_id, str) or not self.USER_ID_PATTERN.match(user_id):
            raise ValueError(
                f"Invalid user_id: {user_id}. "
                "Only alphanumeric, underscore, and hyphen allowed."
            )

    def _user_filter(self, user_id: str, *conditions: FieldCondition) -> Filter:
        self._validate_user_id(user_id)
        return Filter(
            must=[FieldCondition(key="user_id", match=MatchValue(value=user_id)), *conditions]
        )

    async def store(
        self, draft: MemoryDraft, user_id: str, session_id: Optional[str] = None
    ) -> MemoryEntry:
        """Embed a summary and append it to the user's memory.

        Args:
            draft: Summary text, score and app usage from the summary generator
            user_id: Owner of the memory
            session_id: Optional originating work session

        Returns:
            The stored entry

        Raises:
            ValueError: If user_id is invalid
            EmbeddingFailed: If the summary could not be embedded
            PersistenceFailed: If the write was rejected
        """
        self._validate_user_id(user_id)

        try:
            embedding = await self.embeddings.generate(draft.summary_text)
        except (ProviderError, ValueError) as e:
            logger.error("Not storing memory for %s: embedding failed: %s", user_id, e)
            raise EmbeddingFailed(str(e)) from e

        entry = MemoryEntry.from_draft(
            draft,
            user_id=user_id,
            embedding=embedding,
            session_id=session_id,
            tz=self.timezone,
        )
        await self.insert(entry)
        return entry

    async def insert(self, entry: MemoryEntry) -> None:
        """Persist a fully built entry in a single point write.

        Raises:
            PersistenceFailed: If the vector length is wrong or Qdrant rejects it
        """
        self._validate_user_id(entry.user_id)

        if len(entry.embedding_vector) != self.dimensions:
            raise PersistenceFailed(
                f"Vector has {len(entry.embedding_vector)} dimensions, "
                f"collection expects {self.dimensions}"
            )

        try:
            self.client.upsert(
                collection_name=self.collection,
                points=[
                    PointStruct(
                        id=entry.id,
                        vector=entry.embedding_vector,
                        payload=entry.dict_for_storage(),
                    )
                ],
                wait=True,
            )
        except Exception as e:
            logger.error("Failed to persist memory %s: %s", entry.id, e)
            raise PersistenceFailed(f"Failed to persist memory: {e}") from e

        logger.info("Stored memory %s for user %s", entry.id, entry.user_id)

    async def query_by_similarity(
        self,
        user_id: str,
        query_vector: list[float],
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> list[SimilarMemory]:
        """Find the user's memories closest to a query vector.

        Args:
            user_id: Owner whose memories are searched
            query_vector: Embedding of the query text
            threshold: Minimum similarity (default from config, 0.7)
            limit: Max results (default from config, 5)

        Returns:
            Memories ranked by similarity, most recent first on ties.
            Empty when nothing clears the threshold.
        """
        threshold = self.similarity_threshold if threshold is None else threshold
        limit = self.retrieval_limit if limit is None else limit
        query_filter = self._user_filter(user_id)

        if limit <= 0:
            return []
        if len(query_vector) != self.dimensions:
            logger.warning(
                "Query vector has %d dimensions, collection has %d; no comparable memories",
                len(query_vector),
                self.dimensions,
            )
            return []

        results = self._candidates(query_vector, query_filter, threshold, limit)
        ranked = self._rank_results(query_vector, results, threshold)
        return ranked[:limit]

    def _candidates(
        self, query_vector: list[float], query_filter: Filter, threshold: float, limit: int
    ) -> list:
        """Page through Qdrant hits until no later hit can tie the limit-th best.

        Qdrant orders equal scores arbitrarily, so every hit scoring within
        tolerance of the cut-off is fetched for the recency tie-break.
        """
        page_size = max(limit * 4, 20)
        score_threshold = threshold - self.SCORE_TOLERANCE if threshold > 0 else None

        candidates = []
        while True:
            page = self.client.query_points(
                collection_name=self.collection,
                query=query_vector,
                query_filter=query_filter,
                limit=page_size,
                offset=len(candidates),
                score_threshold=score_threshold,
                with_payload=True,
                with_vectors=True,
            ).points
            candidates.extend(page)

            if len(page) < page_size:
                return candidates
            cutoff = sorted((p.score for p in candidates), reverse=True)[limit - 1]
            if page[-1].score < cutoff - self.SCORE_TOLERANCE:
                return candidates

    def _rank_results(
        self, query_vector: list[float], results, threshold: float
    ) -> list[SimilarMemory]:
        """Exact cosine score, threshold, then similarity desc / created_at desc."""
        scored = []
        for result in results:
            similarity = cosine_similarity(query_vector, result.vector or [])
            if similarity is None or similarity < 0:
                continue
            similarity = clamp_similarity(similarity)
            if similarity < threshold - self.SCORE_TOLERANCE:
                continue

            memory = SimilarMemory.model_validate(
                {
                    **result.payload,
                    "embedding_vector": list(result.vector),
                    "similarity": similarity,
                }
            )
            scored.append(memory)

        # Float32 noise must not outrank recency
        scored.sort(key=lambda m: (round(m.similarity, 6), m.created_at), reverse=True)
        return scored

    async def fetch_history(
        self, user_id: str, since: Optional[datetime] = None
    ) -> list[MemoryEntry]:
        """All of the user's memories written at or after ``since``, oldest first."""
        conditions = []
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            conditions.append(FieldCondition(key="created_ts", range=Range(gte=since.timestamp())))

        entries = self._scroll(self._user_filter(user_id, *conditions))
        entries.sort(key=lambda m: m.created_at)
        return entries

    async def find_similar_time_contexts(
        self,
        user_id: str,
        hour: int,
        day_of_week: int,
        days: int = 30,
        limit: int = 10,
    ) -> list[MemoryEntry]:
        """Recent memories written at the same hour on the same weekday, newest first."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        query_filter = self._user_filter(
            user_id,
            FieldCondition(key="time_context.hour", match=MatchValue(value=hour)),
            FieldCondition(key="time_context.day_of_week", match=MatchValue(value=day_of_week)),
            FieldCondition(key="created_ts", range=Range(gte=since.timestamp())),
        )

        entries = self._scroll(query_filter)
        entries.sort(key=lambda m: m.created_at, reverse=True)
        return entries[:limit]

    def _scroll(self, query_filter: Filter) -> list[MemoryEntry]:
        entries = []
        offset = None
        while True:
            points, offset = self.client.scroll(
                collection_name=self.collection,
                scroll_filter=query_filter,
                limit=self.SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=True,
            )
            entries.extend(MemoryEntry.from_payload(p.payload, p.vector) for p in points)
            if offset is None:
                return entries

    async def get(self, memory_id: str) -> Optional[MemoryEntry]:
        """Get memory by ID.

        Args:
            memory_id: Memory identifier

        Returns:
            Memory if found, None otherwise
        """
        results = self.client.retrieve(
            collection_name=self.collection, ids=[memory_id], with_vectors=True
        )

        if not results:
            return None

        return MemoryEntry.from_payload(results[0].payload, results[0].vector)

    def count(self, user_id: Optional[str] = None) -> int:
        """Count stored memories, for one user or the whole collection."""
        if user_id is None:
            return self.client.get_collection(self.collection).points_count or 0

        return self.client.count(
            collection_name=self.collection,
            count_filter=self._user_filter(user_id),
            exact=True,
        ).count
