"""Exceptions raised by the memory and insight layers."""


class MemoryInsightsError(Exception):
    """Base class for memory-insights failures."""


class ProviderError(MemoryInsightsError):
    """Embedding provider was unreachable or returned a malformed response."""


class EmbeddingFailed(MemoryInsightsError):
    """A summary could not be embedded, so nothing was stored."""


class PersistenceFailed(MemoryInsightsError):
    """The store rejected the write."""
