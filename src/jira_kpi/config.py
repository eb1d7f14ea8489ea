"""Configuration management for JIRA KPI."""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import tomli_w


@dataclass
class Config:
    """Configuration for JIRA connection and KPI settings."""

    jira_url: str
    jira_email: str
    jira_api_token: str
    default_project: str | None = None
    difficulty_cache: str | None = None

    def validate(self) -> list[str]:
        """Validate configuration values. Returns list of error messages."""
        errors: list[str] = []

        if not self.jira_url:
            errors.append("JIRA URL is required")
        else:
            parsed = urlparse(self.jira_url)
            if parsed.scheme not in ("http", "https"):
                errors.append("JIRA URL must start with http:// or https://")
            if not parsed.netloc:
                errors.append("JIRA URL must include a domain")

        if not self.jira_email:
            errors.append("JIRA email is required")
        elif "@" not in self.jira_email:
            errors.append("JIRA email must be a valid email address")

        if not self.jira_api_token:
            errors.append("JIRA API token is required")

        return errors


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".jira-kpi"


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.toml"


ENV_VARS = {
    "jira_url": "JIRA_CLOUD_URL",
    "jira_email": "JIRA_USER_EMAIL",
    "jira_api_token": "JIRA_API_TOKEN",
}


def _env_overrides() -> dict[str, str]:
    """Connection settings set through environment variables."""
    return {field: os.environ[var] for field, var in ENV_VARS.items() if os.environ.get(var)}


def config_exists() -> bool:
    """Check if a configuration file exists or the environment provides one."""
    return get_config_path().exists() or len(_env_overrides()) == len(ENV_VARS)


def load_config() -> Config:
    """Load configuration from the TOML file and the environment.

    JIRA_CLOUD_URL, JIRA_USER_EMAIL and JIRA_API_TOKEN override the
    matching [jira] values. Without a config file all three must be set.

    Raises:
        FileNotFoundError: If neither the file nor the environment provide a config
        ValueError: If config is invalid
    """
    config_path = get_config_path()
    overrides = _env_overrides()

    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    elif len(overrides) == len(ENV_VARS):
        data = {}
    else:
        raise FileNotFoundError(
            f"Configuration not found at {config_path}. "
            "Create ~/.jira-kpi/config.toml or set "
            f"{', '.join(ENV_VARS.values())} to set up."
        )

    jira_section = data.get("jira", {})
    kpi_section = data.get("kpi", {})

    config = Config(
        jira_url=overrides.get("jira_url", jira_section.get("url", "")),
        jira_email=overrides.get("jira_email", jira_section.get("email", "")),
        jira_api_token=overrides.get("jira_api_token", jira_section.get("api_token", "")),
        default_project=kpi_section.get("default_project"),
        difficulty_cache=kpi_section.get("difficulty_cache"),
    )

    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return config


def save_config(config: Config) -> None:
    """Save configuration to TOML file."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path()

    data: dict = {
        "jira": {
            "url": config.jira_url,
            "email": config.jira_email,
            "api_token": config.jira_api_token,
        },
    }

    if config.default_project or config.difficulty_cache:
        kpi_data: dict[str, str] = {}
        if config.default_project:
            kpi_data["default_project"] = config.default_project
        if config.difficulty_cache:
            kpi_data["difficulty_cache"] = config.difficulty_cache
        data["kpi"] = kpi_data

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
