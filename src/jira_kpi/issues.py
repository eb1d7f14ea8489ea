"""Normalization of raw JIRA issues and per-assignee grouping."""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from jira_kpi.exceptions import InvalidIssueError
from jira_kpi.kpi_score import resolution_days, round_half_up
from jira_kpi.models import Issue, IssueBuckets

RESOLVED_STATUS_NAMES = frozenset({"Done", "Resolved", "Closed", "Complete", "Fixed"})

# JIRA Cloud timestamps look like "2024-01-15T10:30:00.000+0000"
_JIRA_DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)


def parse_jira_datetime(value: str) -> datetime:
    """Parse a JIRA timestamp or ISO-8601 string.

    Values without an offset are taken as UTC, so every result is aware.

    Raises:
        ValueError: If the value is not a recognizable timestamp
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")

    for fmt in _JIRA_DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    # Other ISO-8601 forms, including plain "YYYY-MM-DD"
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _name_of(field: dict | None, attr: str = "name") -> str | None:
    if not field:
        return None
    return field.get(attr) or None


def issue_from_raw(raw: dict) -> Issue:
    """Convert a raw JIRA issue dict ({"key", "fields"}) to an Issue.

    Raises:
        InvalidIssueError: If the key or creation timestamp is missing or malformed
    """
    key = raw.get("key")
    if not key:
        raise InvalidIssueError("Issue is missing its key")

    fields = raw.get("fields") or {}
    created_raw = fields.get("created")
    if not created_raw:
        raise InvalidIssueError(f"Issue {key} is missing its creation timestamp")

    try:
        created = parse_jira_datetime(created_raw)
        resolved_raw = fields.get("resolutiondate")
        resolution_date = parse_jira_datetime(resolved_raw) if resolved_raw else None
    except ValueError as e:
        raise InvalidIssueError(f"Issue {key} has a malformed timestamp: {e}") from e

    status = fields.get("status") or {}
    category = status.get("statusCategory") or {}

    return Issue(
        key=key,
        created=created,
        resolution_date=resolution_date,
        issue_type=_name_of(fields.get("issuetype")),
        priority=_name_of(fields.get("priority")),
        summary=fields.get("summary") or "",
        status=status.get("name", ""),
        status_category=category.get("key", ""),
        assignee=_name_of(fields.get("assignee"), "displayName"),
    )


def is_resolved(issue: Issue) -> bool:
    """True if the issue's status counts as resolved."""
    return issue.status_category == "done" or issue.status in RESOLVED_STATUS_NAMES


def partition_by_assignee(issues: Iterable[Issue]) -> dict[str, IssueBuckets]:
    """Group issues by assignee display name, splitting resolved from unresolved.

    Unassigned issues are skipped. Assignees keep first-seen order.
    """
    buckets: dict[str, IssueBuckets] = {}
    for issue in issues:
        if not issue.assignee:
            continue
        bucket = buckets.setdefault(issue.assignee, IssueBuckets())
        bucket.assigned.append(issue)
        if is_resolved(issue):
            bucket.resolved.append(issue)
        else:
            bucket.unresolved.append(issue)
    return buckets


def average_resolution_days(resolved_issues: Sequence[Issue]) -> int:
    """Mean whole-day resolution time over issues with a resolution date.

    Returns 0 when no issue has a resolution date.
    """
    durations = [
        days for days in (resolution_days(issue) for issue in resolved_issues)
        if days is not None
    ]
    if not durations:
        return 0
    return round_half_up(sum(durations) / len(durations))
