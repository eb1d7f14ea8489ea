"""HTTP route handlers for JIRA KPI web interface."""

import logging
import math

from flask import Blueprint, jsonify, request

from jira_kpi.config import config_exists, load_config
from jira_kpi.difficulty_cache import difficulty_from_dict
from jira_kpi.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidIssueError,
    InvalidJqlError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    KpiError,
    NoIssuesFoundError,
)
from jira_kpi.issues import average_resolution_days, is_resolved, issue_from_raw
from jira_kpi.jira_client import AuthenticationError, JiraClient
from jira_kpi.jira_client import ConnectionError as JiraClientConnectionError
from jira_kpi.kpi import fetch_team_kpis, team_kpi_to_dict
from jira_kpi.kpi_score import calculate_kpi_score, describe_kpi_score, kpi_score_to_dict

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)


@bp.route("/health")
def health():
    """Health check endpoint."""
    config_loaded = config_exists()
    if config_loaded:
        return jsonify({"status": "ok", "config_loaded": True})
    else:
        return jsonify({
            "status": "error",
            "config_loaded": False,
            "message": "Configuration not found",
        }), 503


@bp.route("/api/projects")
def api_projects():
    """Return the JIRA projects visible to the configured user."""
    if not config_exists():
        return jsonify({"error": "Configuration not found"}), 503

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as e:
        return jsonify({"error": str(e)}), 503

    try:
        client = JiraClient(config)
        projects = client.list_projects()
    except AuthenticationError as e:
        return jsonify({"error": str(e)}), 401
    except JiraClientConnectionError as e:
        return jsonify({"error": str(e)}), 503

    return jsonify(projects)


@bp.route("/api/kpi")
def api_kpi():
    """Fetch issues from JIRA and return per-assignee KPI scores."""
    month_str = request.args.get("month", "").strip()
    project = request.args.get("project", "").strip() or None

    month = None
    if month_str:
        try:
            month = int(month_str)
        except ValueError:
            return jsonify({"error": f"Invalid month: {month_str}"}), 400

    try:
        result = fetch_team_kpis(month=month, project=project)
    except ConfigNotFoundError as e:
        return jsonify({"error": str(e)}), 503
    except InvalidConfigError as e:
        return jsonify({"error": str(e)}), 503
    except JiraAuthError as e:
        return jsonify({"error": str(e)}), 401
    except JiraRateLimitError as e:
        return jsonify({"error": str(e)}), 429
    except JiraConnectionError as e:
        return jsonify({"error": str(e)}), 503
    except InvalidJqlError as e:
        return jsonify({"error": str(e)}), 400
    except NoIssuesFoundError as e:
        return jsonify({"warning": str(e), "users": []}), 200
    except KpiError as e:
        logger.exception("KPI fetch failed")
        return jsonify({"error": str(e)}), 500

    return jsonify(team_kpi_to_dict(result))


@bp.route("/api/kpi/score", methods=["POST"])
def api_kpi_score():
    """Score one user from issues supplied in the request body.

    Accepts either ``issues`` (split by resolution state here) or explicit
    ``assigned``/``resolved``/``unresolved`` lists of raw JIRA issues.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    language = body.get("language", "ko")
    if language not in ("ko", "en"):
        return jsonify({"error": f"Unsupported language: {language}"}), 400

    try:
        if "issues" in body:
            assigned = [issue_from_raw(raw) for raw in _as_list(body, "issues")]
            resolved = [i for i in assigned if is_resolved(i)]
            unresolved = [i for i in assigned if not is_resolved(i)]
        else:
            assigned = [issue_from_raw(raw) for raw in _as_list(body, "assigned")]
            resolved = [issue_from_raw(raw) for raw in _as_list(body, "resolved")]
            unresolved = [issue_from_raw(raw) for raw in _as_list(body, "unresolved")]

        difficulties = {
            key: difficulty_from_dict(value)
            for key, value in (body.get("difficulties") or {}).items()
        }

        avg_days = body.get("avgResolutionDays")
        if avg_days is None:
            avg_days = average_resolution_days(resolved)
        elif (
            isinstance(avg_days, bool)
            or not isinstance(avg_days, (int, float))
            or avg_days < 0
            or not math.isfinite(avg_days)
        ):
            raise ValueError("avgResolutionDays must be a non-negative finite number")
    except (InvalidIssueError, ValueError, TypeError, AttributeError) as e:
        return jsonify({"error": str(e)}), 400

    score = calculate_kpi_score(assigned, resolved, unresolved, avg_days, difficulties)
    description = describe_kpi_score(score, language)

    return jsonify({
        "score": kpi_score_to_dict(score),
        "description": {
            "title": description.title,
            "description": description.description,
            "recommendations": description.recommendations,
        },
    })


def _as_list(body: dict, name: str) -> list:
    value = body.get(name) or []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return value
