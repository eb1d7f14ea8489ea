"""KPI score calculation.

A user's score is built from four weighted sub-scores:

* completion rate (0-40): share of assigned issues that were resolved
* productivity (0-30): average resolution speed plus a volume bonus
* quality (0-20): issue type, priority, AI difficulty and diversity
* consistency (0-10): spread of resolution times and work frequency

The displayed sub-scores are rounded independently, while the total is
rounded once from the raw sum, so the sub-scores may not add up exactly
to the total.
"""

import math
from collections.abc import Mapping, Sequence
from types import MappingProxyType

from jira_kpi.models import (
    DifficultyRating,
    Issue,
    KpiMetrics,
    KpiScoreBreakdown,
    KpiScoreDescription,
)

DEFAULT_ISSUE_TYPE = "Task"
DEFAULT_PRIORITY = "Medium"

ISSUE_TYPE_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "Epic": 3,
    "Story": 2.5,
    "New Feature": 2.5,
    "Improvement": 2,
    "Task": 2,
    "Bug": 2,
    "Sub-task": 1,
    "Documentation": 1,
})
UNKNOWN_ISSUE_TYPE_WEIGHT = 1.5

PRIORITY_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "Highest": 4,
    "High": 3,
    "Medium": 2,
    "Low": 1,
    "Lowest": 0.5,
})
UNKNOWN_PRIORITY_WEIGHT = 2

# (lower bound, grade, color), checked top-down
GRADE_BANDS: tuple[tuple[int, str, str], ...] = (
    (90, "S", "#9333ea"),  # purple
    (80, "A", "#22c55e"),  # green
    (70, "B", "#3b82f6"),  # blue
    (60, "C", "#f59e0b"),  # orange
)
LOWEST_GRADE = ("D", "#ef4444")  # red

NEUTRAL_TIME_CONSISTENCY = 5
HIGH_DIFFICULTY_THRESHOLD = 7

_SECONDS_PER_DAY = 60 * 60 * 24


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def resolution_days(issue: Issue) -> int | None:
    """Whole days from creation to resolution, rounded up. None if unresolved."""
    if issue.resolution_date is None:
        return None
    elapsed = (issue.resolution_date - issue.created).total_seconds()
    return math.ceil(elapsed / _SECONDS_PER_DAY)


def calculate_kpi_score(
    assigned_issues: Sequence[Issue],
    resolved_issues: Sequence[Issue],
    unresolved_issues: Sequence[Issue],
    avg_resolution_days: float,
    difficulty_by_key: Mapping[str, DifficultyRating] | None = None,
) -> KpiScoreBreakdown:
    """Calculate a user's KPI score.

    Args:
        assigned_issues: All issues assigned to the user
        resolved_issues: The resolved subset of the assigned issues
        unresolved_issues: The unresolved subset of the assigned issues
        avg_resolution_days: Mean resolution time of the resolved issues
        difficulty_by_key: Optional difficulty ratings keyed by issue key

    Returns:
        KpiScoreBreakdown. Never raises; empty input yields a zero score.
    """
    difficulties = difficulty_by_key or {}
    total_assigned = len(assigned_issues)
    total_resolved = len(resolved_issues)

    if total_assigned == 0:
        return _empty_breakdown()

    completion_rate_percent = total_resolved / total_assigned * 100
    completion_rate = min(40, completion_rate_percent / 100 * 40)
    productivity = _productivity_score(avg_resolution_days, resolved_issues)
    quality = _quality_score(resolved_issues, difficulties)
    consistency = _consistency_score(assigned_issues, resolved_issues)

    metrics = KpiMetrics(
        completion_rate_percent=round_half_up(completion_rate_percent),
        avg_resolution_days=avg_resolution_days,
        avg_difficulty_handled=_average_difficulty(resolved_issues, difficulties),
        work_frequency_score=_work_frequency(assigned_issues),
        issue_complexity_bonus=_complexity_bonus(resolved_issues, difficulties),
        time_consistency_score=_time_consistency(resolved_issues),
    )

    total_score = min(
        100, round_half_up(completion_rate + productivity + quality + consistency)
    )
    grade, grade_color = calculate_grade(total_score)

    return KpiScoreBreakdown(
        total_score=total_score,
        completion_rate=round_half_up(completion_rate),
        productivity=round_half_up(productivity),
        quality=round_half_up(quality),
        consistency=round_half_up(consistency),
        metrics=metrics,
        grade=grade,
        grade_color=grade_color,
    )


def calculate_grade(total_score: int) -> tuple[str, str]:
    """Map a total score to its (grade, color) pair."""
    for lower_bound, grade, color in GRADE_BANDS:
        if total_score >= lower_bound:
            return grade, color
    return LOWEST_GRADE


def _empty_breakdown() -> KpiScoreBreakdown:
    grade, grade_color = LOWEST_GRADE
    return KpiScoreBreakdown(
        total_score=0,
        completion_rate=0,
        productivity=0,
        quality=0,
        consistency=0,
        metrics=KpiMetrics(
            completion_rate_percent=0,
            avg_resolution_days=0,
            avg_difficulty_handled=0,
            work_frequency_score=0,
            issue_complexity_bonus=0,
            time_consistency_score=0,
        ),
        grade=grade,
        grade_color=grade_color,
    )


def _productivity_score(avg_resolution_days: float, resolved_issues: Sequence[Issue]) -> int:
    """Productivity score (0-30) from resolution speed and resolved volume."""
    if not resolved_issues or avg_resolution_days == 0:
        return 0

    if avg_resolution_days <= 7:
        base_score = 30
    elif avg_resolution_days <= 14:
        base_score = 25
    elif avg_resolution_days <= 21:
        base_score = 20
    elif avg_resolution_days <= 30:
        base_score = 15
    elif avg_resolution_days <= 45:
        base_score = 10
    else:
        base_score = 5

    volume_bonus = min(5, len(resolved_issues) // 5)
    return min(30, base_score + volume_bonus)


def _quality_score(
    resolved_issues: Sequence[Issue],
    difficulties: Mapping[str, DifficultyRating],
) -> int:
    """Quality score (0-20) from the kind of work that was resolved."""
    if not resolved_issues:
        return 0

    total = (
        _issue_type_score(resolved_issues)
        + _priority_score(resolved_issues)
        + _ai_difficulty_bonus(resolved_issues, difficulties)
        + _diversity_bonus(resolved_issues)
    )
    return min(20, round_half_up(total))


def _issue_type_name(issue: Issue) -> str:
    return issue.issue_type or DEFAULT_ISSUE_TYPE


def _priority_name(issue: Issue) -> str:
    return issue.priority or DEFAULT_PRIORITY


def _issue_type_score(resolved_issues: Sequence[Issue]) -> int:
    """Issue type term (0-8); complex issue types weigh more."""
    if not resolved_issues:
        return 0
    total = sum(
        ISSUE_TYPE_WEIGHTS.get(_issue_type_name(issue), UNKNOWN_ISSUE_TYPE_WEIGHT)
        for issue in resolved_issues
    )
    return min(8, round_half_up(total / len(resolved_issues) * 4))


def _priority_score(resolved_issues: Sequence[Issue]) -> int:
    """Priority term (0-6); urgent issues weigh more."""
    if not resolved_issues:
        return 0
    total = sum(
        PRIORITY_WEIGHTS.get(_priority_name(issue), UNKNOWN_PRIORITY_WEIGHT)
        for issue in resolved_issues
    )
    return min(6, round_half_up(total / len(resolved_issues) * 2))


def _analyzed_difficulties(
    resolved_issues: Sequence[Issue],
    difficulties: Mapping[str, DifficultyRating],
) -> list[int]:
    return [
        difficulties[issue.key].difficulty
        for issue in resolved_issues
        if issue.key in difficulties
    ]


def _ai_difficulty_bonus(
    resolved_issues: Sequence[Issue],
    difficulties: Mapping[str, DifficultyRating],
) -> int:
    """AI difficulty term (0-4). Issues without a rating earn nothing."""
    analyzed = _analyzed_difficulties(resolved_issues, difficulties)
    if not analyzed:
        return 0

    avg_difficulty = sum(analyzed) / len(analyzed)
    if avg_difficulty >= 8:
        return 4
    if avg_difficulty >= 6:
        return 3
    if avg_difficulty >= 4:
        return 2
    return 1


def _diversity_bonus(resolved_issues: Sequence[Issue]) -> float:
    """Diversity term (0-2) for resolving varied types and priorities."""
    if not resolved_issues:
        return 0

    unique_types = {_issue_type_name(issue) for issue in resolved_issues}
    unique_priorities = {_priority_name(issue) for issue in resolved_issues}

    score = 0.0
    if len(unique_types) >= 4:
        score += 1
    elif len(unique_types) >= 2:
        score += 0.5

    if len(unique_priorities) >= 3:
        score += 1
    elif len(unique_priorities) >= 2:
        score += 0.5

    return min(2, score)


def _consistency_score(assigned_issues: Sequence[Issue], resolved_issues: Sequence[Issue]) -> int:
    """Consistency score (0-10): mean of time consistency and work frequency."""
    if not assigned_issues:
        return 0
    time_consistency = _time_consistency(resolved_issues)
    work_frequency = _work_frequency(assigned_issues)
    return min(10, round_half_up((time_consistency + work_frequency) / 2))


def _time_consistency(resolved_issues: Sequence[Issue]) -> int:
    """Score (0-10) for how evenly spread resolution times are."""
    if len(resolved_issues) < 2:
        return NEUTRAL_TIME_CONSISTENCY

    durations = [
        days for days in (resolution_days(issue) for issue in resolved_issues)
        if days is not None
    ]
    if len(durations) < 2:
        return NEUTRAL_TIME_CONSISTENCY

    mean = sum(durations) / len(durations)
    variance = sum((days - mean) ** 2 for days in durations) / len(durations)
    standard_deviation = math.sqrt(variance)

    if standard_deviation <= 3:
        return 10
    if standard_deviation <= 7:
        return 8
    if standard_deviation <= 14:
        return 6
    return 3


def _work_frequency(assigned_issues: Sequence[Issue]) -> int:
    """Score (0-10) for issues per active day, based on creation dates."""
    if not assigned_issues:
        return 0

    active_days = {issue.created.date() for issue in assigned_issues}
    frequency = len(assigned_issues) / max(1, len(active_days))

    if frequency >= 2:
        return 10
    if frequency >= 1.5:
        return 8
    if frequency >= 1:
        return 6
    return 4


def _average_difficulty(
    resolved_issues: Sequence[Issue],
    difficulties: Mapping[str, DifficultyRating],
) -> float:
    """Mean difficulty of rated resolved issues, one decimal place."""
    analyzed = _analyzed_difficulties(resolved_issues, difficulties)
    if not analyzed:
        return 0
    return round_half_up(sum(analyzed) / len(analyzed) * 10) / 10


def _complexity_bonus(
    resolved_issues: Sequence[Issue],
    difficulties: Mapping[str, DifficultyRating],
) -> int:
    """Display metric: 2 points per highly difficult resolved issue, max 10."""
    hard_issues = [
        difficulty
        for difficulty in _analyzed_difficulties(resolved_issues, difficulties)
        if difficulty >= HIGH_DIFFICULTY_THRESHOLD
    ]
    return min(10, len(hard_issues) * 2)


def describe_kpi_score(score: KpiScoreBreakdown, language: str = "ko") -> KpiScoreDescription:
    """Build a title, description and recommendations for a KPI score.

    Raises:
        ValueError: If the language is not "ko" or "en"
    """
    metrics = score.metrics

    if language == "en":
        return KpiScoreDescription(
            title=f"KPI Score: {score.total_score}/100 (Grade {score.grade})",
            description=(
                "This score is calculated based on completion rate, productivity, "
                "quality, and consistency. "
                f"Completion rate: {metrics.completion_rate_percent}%, "
                f"Average resolution time: {_format_number(metrics.avg_resolution_days)} days, "
                f"Average difficulty handled: {_format_number(metrics.avg_difficulty_handled)}."
            ),
            recommendations=_recommendations(score, "en"),
        )
    if language == "ko":
        return KpiScoreDescription(
            title=f"KPI 점수: {score.total_score}/100점 ({score.grade}등급)",
            description=(
                "이 점수는 완료율, 생산성, 품질, 일관성을 종합하여 계산됩니다. "
                f"완료율: {metrics.completion_rate_percent}%, "
                f"평균 해결 시간: {_format_number(metrics.avg_resolution_days)}일, "
                f"처리한 평균 난이도: {_format_number(metrics.avg_difficulty_handled)}점."
            ),
            recommendations=_recommendations(score, "ko"),
        )
    raise ValueError(f"Unsupported language: {language!r}")


_RECOMMENDATIONS = {
    "en": {
        "completion": "Focus on completing assigned issues to improve completion rate.",
        "productivity": "Try to resolve issues more quickly to increase productivity score.",
        "quality": "Challenge yourself with more complex issues to improve quality score.",
        "consistency": "Maintain consistent work patterns for better consistency score.",
        "excellent": "Excellent performance! Keep up the great work.",
    },
    "ko": {
        "completion": "할당받은 이슈의 완료율을 높이는 데 집중해보세요.",
        "productivity": "이슈 해결 속도를 개선하여 생산성 점수를 높여보세요.",
        "quality": "더 복잡한 이슈에 도전하여 품질 점수를 향상시켜보세요.",
        "consistency": "일관된 작업 패턴을 유지하여 일관성 점수를 개선해보세요.",
        "excellent": "훌륭한 성과입니다! 계속 좋은 작업을 이어가세요.",
        "fallback": "전반적으로 좋은 성과를 보이고 있습니다.",
    },
}


def _recommendations(score: KpiScoreBreakdown, language: str) -> list[str]:
    messages = _RECOMMENDATIONS[language]
    recommendations: list[str] = []

    if score.completion_rate < 30:
        recommendations.append(messages["completion"])
    if score.productivity < 20:
        recommendations.append(messages["productivity"])
    if score.quality < 15:
        recommendations.append(messages["quality"])
    if score.consistency < 7:
        recommendations.append(messages["consistency"])
    if score.total_score >= 90:
        recommendations.append(messages["excellent"])

    # Only the Korean copy has a fallback line
    if not recommendations and "fallback" in messages:
        recommendations.append(messages["fallback"])

    return recommendations


def _format_number(value: float) -> str:
    """Render 5.0 as "5" and 3.5 as "3.5"."""
    return f"{value:g}"


def kpi_score_to_dict(score: KpiScoreBreakdown) -> dict:
    """Convert KpiScoreBreakdown to a JSON-serializable dict."""
    metrics = score.metrics
    return {
        "totalScore": score.total_score,
        "completionRate": score.completion_rate,
        "productivity": score.productivity,
        "quality": score.quality,
        "consistency": score.consistency,
        "metrics": {
            "completionRatePercent": metrics.completion_rate_percent,
            "avgResolutionDays": metrics.avg_resolution_days,
            "avgDifficultyHandled": metrics.avg_difficulty_handled,
            "workFrequencyScore": metrics.work_frequency_score,
            "issueComplexityBonus": metrics.issue_complexity_bonus,
            "timeConsistencyScore": metrics.time_consistency_score,
        },
        "grade": score.grade,
        "gradeColor": score.grade_color,
    }
