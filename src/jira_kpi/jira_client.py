"""JIRA API client with retry logic."""

import logging

from jira import JIRA, JIRAError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from jira_kpi.config import Config

logger = logging.getLogger(__name__)

ISSUE_FIELDS = [
    "summary",
    "status",
    "project",
    "created",
    "updated",
    "resolutiondate",
    "assignee",
    "priority",
    "issuetype",
]


class RateLimitError(Exception):
    """Raised when JIRA API rate limit is hit."""

    pass


class AuthenticationError(Exception):
    """Raised when JIRA authentication fails."""

    pass


class ConnectionError(Exception):
    """Raised when JIRA server cannot be reached."""

    pass


class JiraClient:
    """Client for interacting with JIRA Cloud API."""

    def __init__(self, config: Config) -> None:
        """Initialize JIRA client with configuration."""
        self.config = config
        self._client: JIRA | None = None

    def _get_client(self) -> JIRA:
        """Get or create JIRA client instance."""
        if self._client is None:
            try:
                self._client = JIRA(
                    server=self.config.jira_url,
                    basic_auth=(self.config.jira_email, self.config.jira_api_token),
                    timeout=15,
                )
            except JIRAError as e:
                if e.status_code == 401:
                    raise AuthenticationError(
                        "Authentication failed. Check your email and API token."
                    ) from e
                raise
            except Exception as e:
                error_msg = str(e).lower()
                if "connection" in error_msg or "resolve" in error_msg or "timeout" in error_msg:
                    raise ConnectionError(
                        f"Cannot connect to JIRA server at {self.config.jira_url}. "
                        "Check the URL and your network connection."
                    ) from e
                raise
        return self._client

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        reraise=True,
    )
    def search_issues(self, jql: str) -> list[dict]:
        """Fetch every issue matching a JQL query.

        Args:
            jql: JQL query string

        Returns:
            List of raw issue dicts ({"key", "fields"})

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
            ValueError: If the JQL is rejected by JIRA
            JIRAError: For other JIRA API errors
        """
        client = self._get_client()

        try:
            # maxResults=0 lets the library page through the whole result set
            result = client.enhanced_search_issues(
                jql,
                maxResults=0,
                fields=ISSUE_FIELDS,
            )
        except JIRAError as e:
            if e.status_code == 429:
                logger.warning("Rate limited by JIRA while searching issues")
                raise RateLimitError(
                    "Rate limited by JIRA. Retrying with exponential backoff..."
                ) from e
            if e.status_code == 401:
                raise AuthenticationError(
                    "Authentication failed. Check your email and API token."
                ) from e
            if e.status_code == 400:
                raise ValueError(f"Invalid JQL query: {e.text}") from e
            raise

        issues = [self._issue_to_dict(issue) for issue in result]
        logger.info("Fetched %d issues for JQL: %s", len(issues), jql)
        return issues

    def list_projects(self) -> list[dict[str, str]]:
        """List projects visible to the configured user.

        Returns:
            List of {"key", "name"} dicts sorted by key

        Raises:
            AuthenticationError: If authentication fails
        """
        client = self._get_client()
        try:
            projects = client.projects()
        except JIRAError as e:
            if e.status_code == 401:
                raise AuthenticationError(
                    "Authentication failed. Check your email and API token."
                ) from e
            raise
        return sorted(
            ({"key": p.key, "name": p.name} for p in projects),
            key=lambda p: p["key"],
        )

    def _issue_to_dict(self, issue) -> dict:
        """Convert JIRA issue object to dictionary."""
        return {
            "key": issue.key,
            "fields": issue.raw.get("fields", {}),
        }
