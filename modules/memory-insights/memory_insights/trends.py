"""Week-over-week productivity trend."""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone, tzinfo
from statistics import fmean
from typing import Iterable, Optional

from .models import MemoryEntry, TrendDirection, TrendReport, WeeklyMean
from .storage import MemoryStorage

logger = logging.getLogger(__name__)


def scored(entries: Iterable[MemoryEntry]) -> list[MemoryEntry]:
    """Entries that carry a productivity score."""
    return [e for e in entries if e.productivity_score is not None]


def week_key(moment: datetime, tz: tzinfo = timezone.utc) -> str:
    """ISO year and week, e.g. ``2026-W07``; sorts chronologically as text."""
    year, week, _ = moment.astimezone(tz).isocalendar()
    return f"{year}-W{week:02d}"


def group_by_week(
    entries: Iterable[MemoryEntry], tz: tzinfo = timezone.utc
) -> list[WeeklyMean]:
    """Mean score per ISO week, oldest week first."""
    weeks = defaultdict(list)
    for entry in scored(entries):
        weeks[week_key(entry.created_at, tz)].append(entry.productivity_score)

    return [
        WeeklyMean(week=week, mean=fmean(scores), count=len(scores))
        for week, scores in sorted(weeks.items())
    ]


def calculate_trend(
    weekly: list[WeeklyMean], dead_zone: float = 2.0
) -> Optional[TrendReport]:
    """Compare the last two weekly means.

    Changes within ``dead_zone`` points either way are reported as stable.
    """
    if not weekly:
        return None

    current = weekly[-1].mean
    previous = weekly[-2].mean if len(weekly) > 1 else current
    change = current - previous

    if change > dead_zone:
        direction = TrendDirection.INCREASING
    elif change < -dead_zone:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    percentage = round(abs(change) / previous * 100, 1) if previous else 0.0

    return TrendReport(
        current=current,
        previous=previous,
        direction=direction,
        percentage=percentage,
        weekly=weekly,
    )


class TrendCalculator:
    """Builds trend reports from a user's stored history."""

    def __init__(self, storage: MemoryStorage, config: Optional[dict] = None):
        config = config or {}
        self.storage = storage
        self.dead_zone = config.get("trend_dead_zone", 2.0)
        self.days = config.get("trend_days", 14)

    async def compute_trend(
        self, user_id: str, days: Optional[int] = None
    ) -> Optional[TrendReport]:
        days = self.days if days is None else days
        since = datetime.now(timezone.utc) - timedelta(days=days)

        history = await self.storage.fetch_history(user_id, since)
        report = calculate_trend(group_by_week(history, self.storage.timezone), self.dead_zone)

        if report is None:
            logger.info("No scored history for %s in the last %d days", user_id, days)
        return report
