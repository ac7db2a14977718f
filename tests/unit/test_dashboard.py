"""Unit tests for dashboard insights."""

import pytest

from memory_insights.dashboard import (
    build_dashboard_insights,
    combined_confidence,
    format_for_dashboard,
    recommendations_for,
)
from memory_insights.models import (
    AppProductivity,
    DashboardInsights,
    InsightType,
    PatternInsight,
    PeakHour,
    TrendDirection,
    TrendReport,
)


def time_insight(hour=10, score=84.6, confidence=0.8):
    return PatternInsight(
        type=InsightType.TIME_OF_DAY,
        insight="peak",
        confidence=confidence,
        data={"best_hour": hour, "best_score": score},
    )


def app_insight(app_means, confidence=0.5):
    best = min(app_means, key=lambda app: (-app_means[app], app))
    return PatternInsight(
        type=InsightType.APP_USAGE,
        insight="apps",
        confidence=confidence,
        data={"best_app": best, "app_means": app_means},
    )


def focus_insight(seconds=2700, confidence=0.4):
    return PatternInsight(
        type=InsightType.FOCUS_DURATION,
        insight="focus",
        confidence=confidence,
        data={"avg_duration_seconds": seconds},
    )


def trend(direction, percentage=12.6):
    return TrendReport(current=80, previous=70, direction=direction, percentage=percentage)


class TestBuildDashboardInsights:
    def test_nothing_known_gives_new_user_defaults(self):
        dashboard = build_dashboard_insights([], None)

        assert dashboard.peak_hour is None
        assert dashboard.best_apps == []
        assert dashboard.focus_minutes is None
        assert dashboard.trend == TrendDirection.STABLE
        assert dashboard.trend_percentage == 0
        assert dashboard.confidence == 0
        assert dashboard.recommendations == [
            "Start tracking sessions to build personalized insights"
        ]

    def test_all_insights(self):
        insights = [
            time_insight(),
            app_insight({"VS Code": 88.4, "Slack": 61.0, "Figma": 75.2, "Mail": 40.0}),
            focus_insight(seconds=2700),
        ]

        dashboard = build_dashboard_insights(insights, trend(TrendDirection.INCREASING))

        assert dashboard.peak_hour == PeakHour(hour=10, productivity=85)
        assert [a.app for a in dashboard.best_apps] == ["VS Code", "Figma", "Slack"]
        assert dashboard.best_apps[0].productivity == 88
        assert dashboard.focus_minutes == 45
        assert dashboard.trend == TrendDirection.INCREASING
        assert dashboard.trend_percentage == 13

    def test_zero_scoring_apps_dropped(self):
        dashboard = build_dashboard_insights([app_insight({"Idle": 0.2, "Docs": 50.0})], None)

        assert [a.app for a in dashboard.best_apps] == ["Docs"]

    def test_trend_only(self):
        dashboard = build_dashboard_insights([], trend(TrendDirection.DECLINING))

        assert dashboard.trend == TrendDirection.DECLINING
        assert dashboard.confidence == 0
        assert dashboard.recommendations == [
            "Consider adjusting your work environment or schedule"
        ]


class TestCombinedConfidence:
    def test_empty(self):
        assert combined_confidence([]) == 0.0

    def test_bonus_per_pattern(self):
        assert combined_confidence([time_insight(confidence=0.5)]) == pytest.approx(0.6)

    def test_bonus_capped(self):
        insights = [time_insight(confidence=0.2)] * 5

        assert combined_confidence(insights) == pytest.approx(0.5)

    def test_never_above_one(self):
        insights = [time_insight(confidence=1.0), focus_insight(confidence=0.9)]

        assert combined_confidence(insights) == 1.0


class TestRecommendations:
    def test_at_most_three(self):
        insights = [time_insight(hour=9), app_insight({"VS Code": 80}), focus_insight(1500)]

        recommendations = recommendations_for(insights, trend(TrendDirection.DECLINING))

        assert recommendations == [
            "Schedule important work at 9:00 for peak performance",
            "Use VS Code for focused work sessions",
            "Aim for 25-minute focused work blocks",
        ]

    def test_improving_trend(self):
        recommendations = recommendations_for([], trend(TrendDirection.INCREASING))

        assert recommendations == ["Keep up your current productivity habits"]

    def test_stable_with_no_patterns(self):
        recommendations = recommendations_for([], trend(TrendDirection.STABLE))

        assert recommendations == ["Continue building consistent productivity habits"]


class TestFormatForDashboard:
    def test_peak_hour_is_primary(self):
        card = format_for_dashboard(
            DashboardInsights(
                peak_hour=PeakHour(hour=10, productivity=85),
                best_apps=[AppProductivity(app="VS Code", productivity=88)],
                focus_minutes=45,
                trend=TrendDirection.DECLINING,
                trend_percentage=8,
                recommendations=["Do the thing"],
                confidence=0.75,
            )
        )

        assert card.primary_metric == "Peak: 10:00 (85% avg)"
        assert card.secondary_metrics == ["📉 8% declining", "VS Code: 88%", "45min focus"]
        assert card.recommendation == "Do the thing"
        assert card.confidence == "High"

    def test_best_app_when_no_peak(self):
        card = format_for_dashboard(
            DashboardInsights(
                best_apps=[AppProductivity(app="Figma", productivity=77)], confidence=0.5
            )
        )

        assert card.primary_metric == "Best: Figma (77% productive)"
        assert card.secondary_metrics == []
        assert card.confidence == "Medium"

    def test_focus_primary_not_repeated(self):
        card = format_for_dashboard(
            DashboardInsights(focus_minutes=30, trend=TrendDirection.INCREASING, trend_percentage=5)
        )

        assert card.primary_metric == "Focus: 30min optimal"
        assert card.secondary_metrics == ["📈 5% improving"]

    def test_nothing_yet(self):
        card = format_for_dashboard(build_dashboard_insights([], None))

        assert card.primary_metric == "Building insights..."
        assert card.recommendation == "Start tracking sessions to build personalized insights"
        assert card.confidence == "Building..."

    def test_fallback_recommendation(self):
        card = format_for_dashboard(DashboardInsights())

        assert card.recommendation == "Keep building productive habits"
