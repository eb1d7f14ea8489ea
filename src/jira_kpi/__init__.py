"""Per-assignee KPI scoring for JIRA Cloud issues."""
