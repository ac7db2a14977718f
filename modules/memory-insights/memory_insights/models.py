"""Data models for productivity memory and pattern insights."""

from datetime import date, datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AppContext(BaseModel):
    """Application usage attached to a memory.

    apps_used maps application name to seconds used during the interval.
    """

    apps_used: dict[str, float] = {}
    total_apps: int = 0
    primary_app: str = "Unknown"

    @classmethod
    def from_usage(cls, usage: Optional[dict[str, float]]) -> "AppContext":
        usage = usage or {}
        primary_app = "Unknown"
        most_used = 0.0
        for app, seconds in usage.items():
            if seconds > most_used:
                most_used = seconds
                primary_app = app
        return cls(apps_used=dict(usage), total_apps=len(usage), primary_app=primary_app)

    @property
    def total_seconds(self) -> float:
        return float(sum(self.apps_used.values()))


class TimeContext(BaseModel):
    """When a memory was written, in the store's configured time zone.

    day_of_week counts from Sunday (0) to Saturday (6).
    """

    hour: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=0, le=6)
    calendar_date: date
    timestamp: datetime

    @classmethod
    def from_datetime(cls, moment: datetime, tz: tzinfo = timezone.utc) -> "TimeContext":
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        local = moment.astimezone(tz)
        return cls(
            hour=local.hour,
            day_of_week=local.isoweekday() % 7,
            calendar_date=local.date(),
            timestamp=local,
        )


class MemoryDraft(BaseModel):
    """Summary generator output, before embedding.

    Accepts the key spellings the summary generator emits, so its raw
    output can be passed to ``MemoryDraft.model_validate`` directly.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary_text: str = Field(
        min_length=1,
        validation_alias=AliasChoices("summary_text", "summaryText", "summary"),
    )
    productivity_score: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("productivity_score", "productivityPct"),
    )
    app_usage: dict[str, float] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("app_usage", "appUsage", "app_usage_summary"),
    )
    memory_type: str = Field(
        default="interval",
        validation_alias=AliasChoices("memory_type", "summary_type"),
    )

    @field_validator("summary_text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("summary_text cannot be blank")
        return value

    @field_validator("productivity_score", mode="before")
    @classmethod
    def _score_in_range(cls, value: Any) -> Optional[float]:
        # Malformed scores are recorded as absent, not rejected
        if not _is_number(value) or not 0 <= value <= 100:
            return None
        return float(value)

    @field_validator("app_usage", mode="before")
    @classmethod
    def _numeric_usage(cls, value: Any) -> dict[str, float]:
        if not isinstance(value, dict):
            return {}
        return {
            str(app): float(seconds)
            for app, seconds in value.items()
            if _is_number(seconds) and seconds >= 0
        }

    @field_validator("memory_type", mode="before")
    @classmethod
    def _default_type(cls, value: Any) -> Any:
        return value or "interval"


class MemoryEntry(BaseModel):
    """One stored, immutable unit of a user's history.

    Design decisions:
    - id: Auto-generated UUID4 (Qdrant requires valid UUIDs)
    - user_id: Every query is scoped to exactly one owner
    - session_id: Weak back-reference to the work session
    - time_context: Derived from created_at when not given
    - Frozen: corrections are new entries, never edits
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    session_id: Optional[str] = None
    summary_text: str
    embedding_vector: list[float]
    memory_type: str = "interval"
    productivity_score: Optional[float] = None
    app_context: AppContext = Field(default_factory=AppContext)
    time_context: TimeContext
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _derive_time_context(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            created_at = data.get("created_at") or utcnow()
            if isinstance(created_at, str):
                created_at = datetime.fromisoformat(created_at)
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            data["created_at"] = created_at
            if data.get("time_context") is None:
                data["time_context"] = TimeContext.from_datetime(created_at)
        return data

    @classmethod
    def from_draft(
        cls,
        draft: MemoryDraft,
        user_id: str,
        embedding: list[float],
        session_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        tz: tzinfo = timezone.utc,
    ) -> "MemoryEntry":
        created_at = created_at or utcnow()
        return cls(
            user_id=user_id,
            session_id=session_id,
            summary_text=draft.summary_text,
            embedding_vector=embedding,
            memory_type=draft.memory_type,
            productivity_score=draft.productivity_score,
            app_context=AppContext.from_usage(draft.app_usage),
            time_context=TimeContext.from_datetime(created_at, tz),
            created_at=created_at,
        )

    @classmethod
    def from_payload(cls, payload: dict, vector: Optional[list[float]] = None) -> "MemoryEntry":
        """Rebuild an entry from a Qdrant payload and its stored vector."""
        return cls.model_validate({**payload, "embedding_vector": list(vector or [])})

    def dict_for_storage(self) -> dict:
        """Return dict without embedding for Qdrant payload.

        Embedding is stored separately in Qdrant's vector field.
        created_ts duplicates created_at as a number for range filters.
        """
        return {
            "id": self.id,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "summary_text": self.summary_text,
            "memory_type": self.memory_type,
            "productivity_score": self.productivity_score,
            "app_context": self.app_context.model_dump(),
            "time_context": self.time_context.model_dump(mode="json"),
            "created_at": self.created_at.isoformat(),
            "created_ts": self.created_at.timestamp(),
        }


class SimilarMemory(MemoryEntry):
    """A memory returned by a similarity query, with its cosine score."""

    similarity: float = Field(ge=0.0, le=1.0)


class InsightType(str, Enum):
    TIME_OF_DAY = "productivity_time"
    TREND = "productivity_trend"
    APP_USAGE = "app_usage"
    FOCUS_DURATION = "focus_pattern"


class PatternInsight(BaseModel):
    """Derived observation about a user's history. Never persisted."""

    type: InsightType
    insight: str
    confidence: float = Field(ge=0.0, le=1.0)
    data: dict[str, Any] = {}


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECLINING = "declining"
    STABLE = "stable"


class WeeklyMean(BaseModel):
    week: str
    mean: float
    count: int


class TrendReport(BaseModel):
    """Week-over-week comparison of mean productivity score."""

    current: float
    previous: float
    direction: TrendDirection
    percentage: float
    weekly: list[WeeklyMean] = []


class PeakHour(BaseModel):
    hour: int = Field(ge=0, le=23)
    productivity: int


class AppProductivity(BaseModel):
    app: str
    productivity: int


class DashboardInsights(BaseModel):
    """Pattern insights and trend condensed for the dashboard memory card."""

    peak_hour: Optional[PeakHour] = None
    best_apps: list[AppProductivity] = []
    focus_minutes: Optional[int] = None
    trend: TrendDirection = TrendDirection.STABLE
    trend_percentage: int = 0
    recommendations: list[str] = []
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class DashboardCard(BaseModel):
    primary_metric: str
    secondary_metrics: list[str] = []
    recommendation: str
    confidence: str


class StoreResult(BaseModel):
    """Outcome of ``store_memory``; error carries ``kind`` and ``message``."""

    success: bool
    entry: Optional[MemoryEntry] = None
    error: Optional[dict[str, str]] = None
