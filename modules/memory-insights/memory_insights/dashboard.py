"""Dashboard summary of a user's pattern insights and productivity trend."""

from statistics import fmean
from typing import Optional

from .models import (
    AppProductivity,
    DashboardCard,
    DashboardInsights,
    InsightType,
    PatternInsight,
    PeakHour,
    TrendDirection,
    TrendReport,
)

MAX_BEST_APPS = 3
MAX_RECOMMENDATIONS = 3
PATTERN_BONUS = 0.1
MAX_PATTERN_BONUS = 0.3

NEW_USER_RECOMMENDATION = "Start tracking sessions to build personalized insights"
DEFAULT_RECOMMENDATION = "Continue building consistent productivity habits"
FALLBACK_CARD_RECOMMENDATION = "Keep building productive habits"

TREND_LABELS = {
    TrendDirection.INCREASING: ("📈", "improving"),
    TrendDirection.DECLINING: ("📉", "declining"),
}


def _find(insights: list[PatternInsight], insight_type: InsightType) -> Optional[PatternInsight]:
    return next((i for i in insights if i.type == insight_type), None)


def default_dashboard_insights() -> DashboardInsights:
    """What a user with no usable history sees."""
    return DashboardInsights(recommendations=[NEW_USER_RECOMMENDATION])


def combined_confidence(insights: list[PatternInsight]) -> float:
    """Mean insight confidence plus 0.1 per insight, bonus capped at 0.3."""
    if not insights:
        return 0.0
    average = fmean(i.confidence for i in insights)
    bonus = min(len(insights) * PATTERN_BONUS, MAX_PATTERN_BONUS)
    return min(average + bonus, 1.0)


def _best_apps(insight: Optional[PatternInsight]) -> list[AppProductivity]:
    if insight is None:
        return []
    apps = [
        AppProductivity(app=app, productivity=round(mean))
        for app, mean in insight.data.get("app_means", {}).items()
    ]
    apps = [a for a in apps if a.productivity > 0]
    apps.sort(key=lambda a: (-a.productivity, a.app))
    return apps[:MAX_BEST_APPS]


def recommendations_for(
    insights: list[PatternInsight], trend: Optional[TrendReport]
) -> list[str]:
    recommendations = []

    peak = _find(insights, InsightType.TIME_OF_DAY)
    if peak is not None:
        recommendations.append(
            f"Schedule important work at {peak.data['best_hour']}:00 for peak performance"
        )

    app = _find(insights, InsightType.APP_USAGE)
    if app is not None:
        recommendations.append(f"Use {app.data['best_app']} for focused work sessions")

    focus = _find(insights, InsightType.FOCUS_DURATION)
    if focus is not None:
        minutes = round(focus.data["avg_duration_seconds"] / 60)
        recommendations.append(f"Aim for {minutes}-minute focused work blocks")

    direction = trend.direction if trend is not None else TrendDirection.STABLE
    if direction == TrendDirection.DECLINING:
        recommendations.append("Consider adjusting your work environment or schedule")
    elif direction == TrendDirection.INCREASING:
        recommendations.append("Keep up your current productivity habits")

    if not recommendations:
        recommendations.append(DEFAULT_RECOMMENDATION)
    return recommendations[:MAX_RECOMMENDATIONS]


def build_dashboard_insights(
    insights: list[PatternInsight], trend: Optional[TrendReport]
) -> DashboardInsights:
    """Condense pattern insights and the weekly trend for the dashboard.

    Args:
        insights: Output of PatternAnalyzer.analyze
        trend: Output of TrendCalculator.compute_trend, None without history

    Returns:
        DashboardInsights; the new-user defaults when there is nothing at all
    """
    if not insights and trend is None:
        return default_dashboard_insights()

    peak_hour = None
    peak = _find(insights, InsightType.TIME_OF_DAY)
    if peak is not None:
        peak_hour = PeakHour(
            hour=peak.data["best_hour"], productivity=round(peak.data["best_score"])
        )

    focus_minutes = None
    focus = _find(insights, InsightType.FOCUS_DURATION)
    if focus is not None:
        focus_minutes = round(focus.data["avg_duration_seconds"] / 60)

    return DashboardInsights(
        peak_hour=peak_hour,
        best_apps=_best_apps(_find(insights, InsightType.APP_USAGE)),
        focus_minutes=focus_minutes,
        trend=trend.direction if trend is not None else TrendDirection.STABLE,
        trend_percentage=round(trend.percentage) if trend is not None else 0,
        recommendations=recommendations_for(insights, trend),
        confidence=combined_confidence(insights),
    )


def format_for_dashboard(insights: DashboardInsights) -> DashboardCard:
    """Short strings for the dashboard memory card."""
    best_app = insights.best_apps[0] if insights.best_apps else None

    if insights.peak_hour is not None:
        primary = (
            f"Peak: {insights.peak_hour.hour}:00 ({insights.peak_hour.productivity}% avg)"
        )
    elif best_app is not None:
        primary = f"Best: {best_app.app} ({best_app.productivity}% productive)"
    elif insights.focus_minutes:
        primary = f"Focus: {insights.focus_minutes}min optimal"
    else:
        primary = "Building insights..."

    secondary = []
    if insights.trend in TREND_LABELS:
        icon, label = TREND_LABELS[insights.trend]
        secondary.append(f"{icon} {insights.trend_percentage}% {label}")
    if best_app is not None and insights.peak_hour is not None:
        secondary.append(f"{best_app.app}: {best_app.productivity}%")
    if insights.focus_minutes and not primary.startswith("Focus"):
        secondary.append(f"{insights.focus_minutes}min focus")

    if insights.confidence > 0.7:
        confidence = "High"
    elif insights.confidence > 0.4:
        confidence = "Medium"
    else:
        confidence = "Building..."

    return DashboardCard(
        primary_metric=primary,
        secondary_metrics=secondary,
        recommendation=(
            insights.recommendations[0]
            if insights.recommendations
            else FALLBACK_CARD_RECOMMENDATION
        ),
        confidence=confidence,
    )
