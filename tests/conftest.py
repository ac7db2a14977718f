"""Shared fixtures: a deterministic embedder and in-memory storage."""

from datetime import datetime, timedelta, timezone

import pytest

from memory_insights.models import AppContext, MemoryEntry
from memory_insights.storage import MemoryStorage

DIMENSIONS = 16


class FakeEmbedder:
    """Deterministic stand-in for EmbeddingGenerator.

    Each word bumps one vector component, so texts sharing words point in
    similar directions. Explicit vectors can be pinned per text.
    """

    def __init__(self, dimensions: int = DIMENSIONS):
        self.dimensions = dimensions
        self.vectors = {}
        self.calls = []

    async def generate(self, content: str) -> list[float]:
        self.calls.append(content)
        if not content or not content.strip():
            raise ValueError("Content cannot be empty")
        if content in self.vectors:
            return list(self.vectors[content])

        vector = [0.0] * self.dimensions
        for word in content.lower().split():
            vector[sum(ord(c) for c in word) % self.dimensions] += 1.0
        return vector


def basis(index: int, dimensions: int = DIMENSIONS) -> list[float]:
    vector = [0.0] * dimensions
    vector[index] = 1.0
    return vector


def make_entry(
    score=None,
    created_at=None,
    apps=None,
    user_id="user-1",
    vector=None,
    text="Worked on the quarterly report",
):
    return MemoryEntry(
        user_id=user_id,
        summary_text=text,
        embedding_vector=vector or basis(0),
        productivity_score=score,
        app_context=AppContext.from_usage(apps),
        created_at=created_at or datetime.now(timezone.utc),
    )


def at_hour(hour: int, days_ago: int = 1) -> datetime:
    day = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return day.replace(hour=hour, minute=0, second=0, microsecond=0)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def storage(embedder):
    """In-memory Qdrant storage for testing."""
    return MemoryStorage(embedder, {"location": ":memory:"})
