"""Tests for raw issue normalization and grouping."""

from datetime import datetime, timedelta, timezone

import pytest

from jira_kpi.exceptions import InvalidIssueError
from jira_kpi.issues import (
    average_resolution_days,
    is_resolved,
    issue_from_raw,
    parse_jira_datetime,
    partition_by_assignee,
)
from jira_kpi.kpi_score import calculate_kpi_score
from jira_kpi.models import Issue


def _raw_issue(
    key,
    assignee="Alice",
    status="In Progress",
    category="indeterminate",
    created="2026-03-01T09:00:00.000+0000",
    resolutiondate=None,
    issuetype="Story",
    priority="High",
):
    fields = {
        "summary": f"Summary of {key}",
        "status": {"name": status, "statusCategory": {"key": category, "name": status}},
        "created": created,
        "resolutiondate": resolutiondate,
        "issuetype": {"name": issuetype} if issuetype else None,
        "priority": {"name": priority} if priority else None,
        "assignee": {"displayName": assignee, "emailAddress": "x@example.com"} if assignee else None,
    }
    return {"key": key, "fields": fields}


class TestParseJiraDatetime:
    """Tests for parse_jira_datetime."""

    def test_parses_jira_cloud_format(self):
        parsed = parse_jira_datetime("2024-01-15T10:30:00.000+0000")
        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parses_offset_timestamp(self):
        parsed = parse_jira_datetime("2024-01-15T10:30:00.000+0900")
        assert parsed.utcoffset() == timedelta(hours=9)

    def test_parses_zulu_suffix(self):
        parsed = parse_jira_datetime("2024-01-15T10:30:00Z")
        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parses_plain_date(self):
        assert parse_jira_datetime("2024-01-15") == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_naive_iso_string_is_utc(self):
        parsed = parse_jira_datetime("2024-01-15T10:30:00")
        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["not-a-date", "", None, 20240115])
    def test_rejects_invalid_values(self, value):
        with pytest.raises(ValueError):
            parse_jira_datetime(value)


class TestIssueFromRaw:
    """Tests for issue_from_raw."""

    def test_builds_issue(self):
        issue = issue_from_raw(
            _raw_issue(
                "ENG-1",
                status="Done",
                category="done",
                resolutiondate="2026-03-04T12:00:00.000+0000",
            )
        )
        assert issue.key == "ENG-1"
        assert issue.summary == "Summary of ENG-1"
        assert issue.issue_type == "Story"
        assert issue.priority == "High"
        assert issue.status == "Done"
        assert issue.status_category == "done"
        assert issue.assignee == "Alice"
        assert issue.created == datetime(2026, 3, 1, 9, tzinfo=timezone.utc)
        assert issue.resolution_date == datetime(2026, 3, 4, 12, tzinfo=timezone.utc)

    def test_optional_fields_missing(self):
        issue = issue_from_raw(
            _raw_issue("ENG-2", assignee=None, issuetype=None, priority=None)
        )
        assert issue.assignee is None
        assert issue.issue_type is None
        assert issue.priority is None
        assert issue.resolution_date is None

    def test_minimal_payload(self):
        issue = issue_from_raw({"key": "ENG-3", "fields": {"created": "2026-03-01"}})
        assert issue.status == ""
        assert issue.status_category == ""

    def test_missing_key(self):
        with pytest.raises(InvalidIssueError, match="key"):
            issue_from_raw({"fields": {"created": "2026-03-01"}})

    def test_missing_created(self):
        with pytest.raises(InvalidIssueError, match="creation timestamp"):
            issue_from_raw({"key": "ENG-1", "fields": {}})

    def test_malformed_resolution_date(self):
        with pytest.raises(InvalidIssueError, match="malformed"):
            issue_from_raw(_raw_issue("ENG-1", resolutiondate="yesterday"))


class TestIsResolved:
    """Tests for is_resolved."""

    def test_done_category(self):
        issue = issue_from_raw(_raw_issue("ENG-1", status="Shipped", category="done"))
        assert is_resolved(issue)

    @pytest.mark.parametrize("status", ["Done", "Resolved", "Closed", "Complete", "Fixed"])
    def test_done_like_status_names(self, status):
        issue = issue_from_raw(_raw_issue("ENG-1", status=status, category="indeterminate"))
        assert is_resolved(issue)

    def test_in_progress(self):
        assert not is_resolved(issue_from_raw(_raw_issue("ENG-1")))


class TestPartitionByAssignee:
    """Tests for partition_by_assignee."""

    def test_groups_and_splits(self):
        issues = [
            issue_from_raw(_raw_issue("ENG-1", assignee="Bob")),
            issue_from_raw(_raw_issue("ENG-2", assignee="Alice", status="Done", category="done")),
            issue_from_raw(_raw_issue("ENG-3", assignee="Bob", status="Done", category="done")),
            issue_from_raw(_raw_issue("ENG-4", assignee=None)),
        ]

        buckets = partition_by_assignee(issues)

        assert list(buckets) == ["Bob", "Alice"]
        assert [i.key for i in buckets["Bob"].assigned] == ["ENG-1", "ENG-3"]
        assert [i.key for i in buckets["Bob"].resolved] == ["ENG-3"]
        assert [i.key for i in buckets["Bob"].unresolved] == ["ENG-1"]
        assert [i.key for i in buckets["Alice"].resolved] == ["ENG-2"]

    def test_empty(self):
        assert partition_by_assignee([]) == {}


class TestAverageResolutionDays:
    """Tests for average_resolution_days."""

    def test_mean_of_ceiled_durations(self):
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        issues = [
            Issue(key="A-1", created=base, resolution_date=base + timedelta(hours=36)),
            Issue(key="A-2", created=base, resolution_date=base + timedelta(days=3)),
            Issue(key="A-3", created=base),
        ]
        # ceil(1.5) = 2 and 3 -> mean 2.5 -> 3
        assert average_resolution_days(issues) == 3

    def test_no_dated_issues(self):
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert average_resolution_days([Issue(key="A-1", created=base)]) == 0
        assert average_resolution_days([]) == 0


class TestMixedTimestampFormats:
    """Issues mixing plain dates with offset timestamps."""

    def _issues(self):
        return [
            issue_from_raw(_raw_issue(
                "ENG-1", status="Done", category="done",
                created="2026-03-01", resolutiondate="2026-03-04T10:00:00.000+0000",
            )),
            issue_from_raw(_raw_issue(
                "ENG-2", status="Done", category="done",
                created="2026-03-02T00:00:00", resolutiondate="2026-03-06T00:00:00.000+0000",
            )),
        ]

    def test_average_resolution_days(self):
        assert average_resolution_days(self._issues()) == 4

    def test_scores_through_engine(self):
        issues = self._issues()
        score = calculate_kpi_score(issues, issues, [], average_resolution_days(issues))
        assert score.completion_rate == 40
        assert score.metrics.avg_resolution_days == 4
        assert 0 <= score.total_score <= 100
