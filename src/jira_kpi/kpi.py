"""Team KPI data fetching and processing."""

import logging
from collections.abc import Iterable, Mapping
from datetime import date

from jira_kpi.config import config_exists, load_config
from jira_kpi.difficulty_cache import DifficultyCache
from jira_kpi.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidJqlError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    NoIssuesFoundError,
)
from jira_kpi.issues import (
    average_resolution_days,
    is_resolved,
    issue_from_raw,
    partition_by_assignee,
)
from jira_kpi.jira_client import (
    AuthenticationError,
    JiraClient,
    RateLimitError,
)
from jira_kpi.jira_client import (
    ConnectionError as JiraClientConnectionError,
)
from jira_kpi.kpi_score import calculate_kpi_score, kpi_score_to_dict
from jira_kpi.models import DifficultyRating, Issue, TeamKpiResult, UserKpi

logger = logging.getLogger(__name__)


def build_kpi_jql(
    month: int | None = None,
    project: str | None = None,
    year: int | None = None,
) -> str:
    """Build the JQL used to fetch issues for KPI scoring.

    Args:
        month: Calendar month (1-12) to restrict issue creation to
        project: Project key; None or "all" means every project
        year: Year of the month filter, defaults to the current year

    Raises:
        ValueError: If month is outside 1-12
    """
    if month is not None:
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")
        year = year or date.today().year
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        jql = f'created >= "{start.isoformat()}" AND created < "{end.isoformat()}"'
    else:
        jql = "created >= -365d"

    if project and project != "all":
        jql = f"project = {project} AND {jql}"

    return f"{jql} ORDER BY created DESC"


def score_issues(
    issues: Iterable[Issue],
    difficulty_by_key: Mapping[str, DifficultyRating] | None = None,
    jql: str = "",
) -> TeamKpiResult:
    """Score every assignee found in a set of issues.

    Users are ordered by total score (highest first), then by name.
    """
    issues = list(issues)
    difficulties = difficulty_by_key or {}

    users: list[UserKpi] = []
    for user, buckets in partition_by_assignee(issues).items():
        avg_days = average_resolution_days(buckets.resolved)
        score = calculate_kpi_score(
            buckets.assigned,
            buckets.resolved,
            buckets.unresolved,
            avg_days,
            difficulties,
        )
        users.append(
            UserKpi(
                user=user,
                assigned=len(buckets.assigned),
                resolved=len(buckets.resolved),
                unresolved=len(buckets.unresolved),
                avg_resolution_days=avg_days,
                score=score,
            )
        )

    users.sort(key=lambda u: (-u.score.total_score, u.user))

    total_resolved = sum(1 for issue in issues if is_resolved(issue))

    return TeamKpiResult(
        users=users,
        jql_query=jql,
        total_issues=len(issues),
        total_resolved=total_resolved,
        total_unresolved=len(issues) - total_resolved,
    )


def fetch_team_kpis(month: int | None = None, project: str | None = None) -> TeamKpiResult:
    """Fetch issues from JIRA and score every assignee.

    Args:
        month: Optional calendar month of the current year
        project: Optional project key; falls back to the configured default

    Returns:
        TeamKpiResult with one UserKpi per assignee

    Raises:
        ConfigNotFoundError: If config file not found
        InvalidConfigError: If config is invalid
        JiraAuthError: If JIRA authentication fails
        JiraRateLimitError: If rate limited
        JiraConnectionError: If cannot connect
        InvalidJqlError: If JQL is invalid
        NoIssuesFoundError: If no issues match query
    """
    if not config_exists():
        raise ConfigNotFoundError(
            "Configuration not found. Create ~/.jira-kpi/config.toml to set up."
        )

    try:
        config = load_config()
    except ValueError as e:
        raise InvalidConfigError(f"Invalid configuration: {e}") from e

    try:
        jql = build_kpi_jql(month=month, project=project or config.default_project)
    except ValueError as e:
        raise InvalidJqlError(str(e)) from e

    client = JiraClient(config)

    try:
        raw_issues = client.search_issues(jql)
    except AuthenticationError as e:
        raise JiraAuthError(
            "JIRA authentication failed. Check your credentials in "
            "~/.jira-kpi/config.toml."
        ) from e
    except RateLimitError as e:
        raise JiraRateLimitError(
            "JIRA rate limit exceeded. Please wait a moment and try again."
        ) from e
    except JiraClientConnectionError as e:
        raise JiraConnectionError(str(e)) from e
    except ValueError as e:
        raise InvalidJqlError(f"Invalid JQL query: {e}. Check your query syntax.") from e

    if not raw_issues:
        raise NoIssuesFoundError("No issues found matching your query.")

    issues = [issue_from_raw(raw) for raw in raw_issues]
    difficulties = DifficultyCache(config.difficulty_cache).get_all()
    logger.info(
        "Scoring %d issues with %d cached difficulty ratings", len(issues), len(difficulties)
    )

    return score_issues(issues, difficulties, jql=jql)


def team_kpi_to_dict(result: TeamKpiResult) -> dict:
    """Convert TeamKpiResult to a JSON-serializable dict."""
    return {
        "users": [
            {
                "user": u.user,
                "assigned": u.assigned,
                "resolved": u.resolved,
                "unresolved": u.unresolved,
                "avgResolutionDays": u.avg_resolution_days,
                "score": kpi_score_to_dict(u.score),
            }
            for u in result.users
        ],
        "jqlQuery": result.jql_query,
        "totalIssues": result.total_issues,
        "totalResolved": result.total_resolved,
        "totalUnresolved": result.total_unresolved,
    }
