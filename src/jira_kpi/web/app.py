"""Flask application factory for JIRA KPI web interface."""

import logging

from flask import Flask


def create_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    app.json.sort_keys = False

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from jira_kpi.web.routes import bp
    app.register_blueprint(bp)

    return app
