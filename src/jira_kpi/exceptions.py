"""Exception hierarchy for JIRA KPI."""


class KpiError(Exception):
    """Base exception for KPI errors."""


class ConfigNotFoundError(KpiError):
    """Configuration file not found."""


class InvalidConfigError(KpiError):
    """Configuration is invalid."""


class JiraAuthError(KpiError):
    """JIRA authentication failed."""


class JiraConnectionError(KpiError):
    """Cannot connect to JIRA server."""


class JiraRateLimitError(KpiError):
    """JIRA rate limit exceeded."""


class InvalidJqlError(KpiError):
    """Invalid JQL query."""


class NoIssuesFoundError(KpiError):
    """No issues found matching query."""


class InvalidIssueError(KpiError):
    """Raw issue payload cannot be normalized."""
