"""Statistical insights over a user's summary history.

Each analysis is a pure function over chronological history and returns
one PatternInsight or None when the history cannot support it. Entries
without a productivity score are ignored by all of them.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone, tzinfo
from functools import partial
from statistics import fmean
from typing import Optional

from .models import InsightType, MemoryEntry, PatternInsight
from .storage import MemoryStorage
from .trends import group_by_week, scored

logger = logging.getLogger(__name__)

TREND_WINDOW = 7
MIN_APP_ENTRIES = 3
HIGH_PRODUCTIVITY_SCORE = 80
MIN_FOCUS_ENTRIES = 3
DEFAULT_FOCUS_SECONDS = 30 * 60


def _confidence(count: int) -> float:
    return min(count, 10) / 10


def _time_range(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def analyze_time_of_day(history: list[MemoryEntry]) -> Optional[PatternInsight]:
    """Hour of day with the highest mean score; lowest hour wins ties."""
    hourly = defaultdict(list)
    for entry in scored(history):
        hourly[entry.time_context.hour].append(entry.productivity_score)

    if not hourly:
        return None

    means = {hour: fmean(scores) for hour, scores in hourly.items()}
    best_hour = min(means, key=lambda hour: (-means[hour], hour))
    best_score = means[best_hour]
    samples = len(hourly[best_hour])

    return PatternInsight(
        type=InsightType.TIME_OF_DAY,
        insight=(
            f"You're most productive at {best_hour}:00 ({_time_range(best_hour)}) "
            f"with {round(best_score)}% average productivity"
        ),
        confidence=_confidence(samples),
        data={
            "best_hour": best_hour,
            "best_score": best_score,
            "sample_count": samples,
            "hourly_means": dict(sorted(means.items())),
        },
    )


def analyze_trend(
    history: list[MemoryEntry], window: int = TREND_WINDOW, tz: tzinfo = timezone.utc
) -> Optional[PatternInsight]:
    """Last ``window`` scores against the ``window`` before them.

    Windows count entries, not calendar days. ``weekly`` means are bucketed
    in ``tz``, matching TrendCalculator.
    """
    entries = scored(history)
    if len(entries) < window:
        return None

    scores = [e.productivity_score for e in entries]
    recent = scores[-window:]
    previous = scores[-2 * window:-window]

    recent_mean = fmean(recent)
    previous_mean = fmean(previous) if previous else recent_mean
    change = recent_mean - previous_mean

    if change > 0:
        direction = "improving"
        statement = f"{abs(change):.1f} point increase"
    elif change < 0:
        direction = "declining"
        statement = f"{abs(change):.1f} point decrease"
    else:
        direction = "stable"
        statement = "no change"

    return PatternInsight(
        type=InsightType.TREND,
        insight=(
            f"Your productivity is {direction} ({statement} "
            f"over your last {len(recent)} summaries)"
        ),
        confidence=min(len(scores) / (2 * window), 1.0),
        data={
            "direction": direction,
            "recent_mean": recent_mean,
            "previous_mean": previous_mean,
            "change": abs(change),
            "weekly": [w.model_dump() for w in group_by_week(entries, tz)],
        },
    )


def analyze_app_usage(
    history: list[MemoryEntry], min_entries: int = MIN_APP_ENTRIES
) -> Optional[PatternInsight]:
    """Application whose entries have the highest mean score.

    Only applications seen in at least ``min_entries`` entries qualify.
    """
    per_app = defaultdict(list)
    for entry in scored(history):
        for app in entry.app_context.apps_used:
            per_app[app].append(entry.productivity_score)

    eligible = {
        app: fmean(scores) for app, scores in per_app.items() if len(scores) >= min_entries
    }
    if not eligible:
        return None

    best_app = min(eligible, key=lambda app: (-eligible[app], app))
    count = len(per_app[best_app])

    return PatternInsight(
        type=InsightType.APP_USAGE,
        insight=(
            f"You're most productive when using {best_app} "
            f"({round(eligible[best_app])}% average)"
        ),
        confidence=_confidence(count),
        data={
            "best_app": best_app,
            "best_score": eligible[best_app],
            "entry_count": count,
            "app_means": eligible,
        },
    )


def analyze_focus_duration(
    history: list[MemoryEntry], min_entries: int = MIN_FOCUS_ENTRIES
) -> Optional[PatternInsight]:
    """Typical tracked time of highly productive entries."""
    focused = [e for e in scored(history) if e.productivity_score > HIGH_PRODUCTIVITY_SCORE]
    if len(focused) < min_entries:
        return None

    # No usage data at all means a default-length interval
    durations = [e.app_context.total_seconds or DEFAULT_FOCUS_SECONDS for e in focused]
    average = fmean(durations)

    return PatternInsight(
        type=InsightType.FOCUS_DURATION,
        insight=f"Your best focus sessions last about {round(average / 60)} minutes on average",
        confidence=_confidence(len(focused)),
        data={
            "avg_duration_seconds": average,
            "high_productivity_count": len(focused),
        },
    )


def analyze_history(
    history: list[MemoryEntry], tz: tzinfo = timezone.utc
) -> list[PatternInsight]:
    """Run every analysis; one failing never drops the others' results."""
    analyses = (
        analyze_time_of_day,
        partial(analyze_trend, tz=tz),
        analyze_app_usage,
        analyze_focus_duration,
    )

    insights = []
    for analysis in analyses:
        try:
            insight = analysis(history)
        except Exception:
            name = getattr(analysis, "func", analysis).__name__
            logger.exception("Pattern analysis %s failed", name)
            continue
        if insight is not None:
            insights.append(insight)
    return insights


class PatternAnalyzer:
    """Derives pattern insights from a user's stored history."""

    def __init__(self, storage: MemoryStorage, config: Optional[dict] = None):
        config = config or {}
        self.storage = storage
        self.days = config.get("insight_days", 30)

    async def analyze(self, user_id: str, days: Optional[int] = None) -> list[PatternInsight]:
        days = self.days if days is None else days
        since = datetime.now(timezone.utc) - timedelta(days=days)

        history = await self.storage.fetch_history(user_id, since)
        if not history:
            logger.info("No history for %s in the last %d days", user_id, days)
            return []

        insights = analyze_history(history, self.storage.timezone)
        logger.info("Generated %d pattern insights for %s", len(insights), user_id)
        return insights
