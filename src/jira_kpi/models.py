"""Data models for JIRA KPI."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Issue:
    """A JIRA issue normalized into the shape the scoring engine reads."""

    key: str
    created: datetime
    resolution_date: datetime | None = None
    issue_type: str | None = None
    priority: str | None = None
    summary: str = ""
    status: str = ""
    status_category: str = ""  # "new" | "indeterminate" | "done"
    assignee: str | None = None


@dataclass(frozen=True)
class DifficultyRating:
    """Externally computed difficulty (1-5) for a single issue."""

    difficulty: int
    estimated_hours: float | None = None
    reasoning: str = ""


@dataclass(frozen=True)
class KpiMetrics:
    """Detail metrics shown alongside the KPI sub-scores."""

    completion_rate_percent: int
    avg_resolution_days: float
    avg_difficulty_handled: float
    work_frequency_score: int
    issue_complexity_bonus: int
    time_consistency_score: int


@dataclass(frozen=True)
class KpiScoreBreakdown:
    """Composite KPI score for one user over one evaluation window."""

    total_score: int  # 0-100
    completion_rate: int  # 0-40
    productivity: int  # 0-30
    quality: int  # 0-20
    consistency: int  # 0-10
    metrics: KpiMetrics
    grade: str  # "S" | "A" | "B" | "C" | "D"
    grade_color: str


@dataclass(frozen=True)
class KpiScoreDescription:
    """Human-readable summary of a KPI score."""

    title: str
    description: str
    recommendations: list[str] = field(default_factory=list)


@dataclass
class IssueBuckets:
    """Issues of one assignee split by resolution state."""

    assigned: list[Issue] = field(default_factory=list)
    resolved: list[Issue] = field(default_factory=list)
    unresolved: list[Issue] = field(default_factory=list)


@dataclass
class UserKpi:
    """KPI figures for a single assignee."""

    user: str
    assigned: int
    resolved: int
    unresolved: int
    avg_resolution_days: float
    score: KpiScoreBreakdown


@dataclass
class TeamKpiResult:
    """Complete result of a team KPI fetch."""

    users: list[UserKpi]
    jql_query: str
    total_issues: int
    total_resolved: int
    total_unresolved: int
