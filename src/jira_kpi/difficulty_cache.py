"""Local cache of issue difficulty ratings."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from jira_kpi.config import get_config_dir
from jira_kpi.models import DifficultyRating

logger = logging.getLogger(__name__)

CACHE_EXPIRY_DAYS = 7


def get_default_cache_path() -> Path:
    """Get the default difficulty cache file path."""
    return get_config_dir() / "difficulties.json"


def difficulty_from_dict(data: dict) -> DifficultyRating:
    """Build a DifficultyRating from its JSON form.

    Raises:
        ValueError: If the difficulty is missing or not an integer
    """
    difficulty = data.get("difficulty")
    if isinstance(difficulty, bool) or not isinstance(difficulty, int):
        raise ValueError(f"Invalid difficulty: {difficulty!r}")
    hours = data.get("estimatedHours")
    return DifficultyRating(
        difficulty=difficulty,
        estimated_hours=float(hours) if hours is not None else None,
        reasoning=data.get("reasoning", ""),
    )


def difficulty_to_dict(rating: DifficultyRating) -> dict:
    """Convert a DifficultyRating to its JSON form."""
    return {
        "difficulty": rating.difficulty,
        "estimatedHours": rating.estimated_hours,
        "reasoning": rating.reasoning,
    }


class DifficultyCache:
    """Difficulty ratings keyed by issue key, stored as a JSON file.

    Entries older than ``expiry_days`` are ignored on read. A missing or
    unreadable file behaves like an empty cache.
    """

    def __init__(self, path: Path | str | None = None, expiry_days: int = CACHE_EXPIRY_DAYS) -> None:
        self.path = Path(path) if path else get_default_cache_path()
        self.expiry = timedelta(days=expiry_days)

    def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable difficulty cache %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed difficulty cache %s", self.path)
            return {}
        return data

    def _write(self, data: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def _is_expired(self, cached_at: str | None) -> bool:
        if not cached_at:
            return True
        try:
            cached = datetime.fromisoformat(cached_at)
        except ValueError:
            return True
        if cached.tzinfo is None:
            cached = cached.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) - cached > self.expiry

    def _rating(self, key: str, entry: dict) -> DifficultyRating | None:
        if not isinstance(entry, dict) or self._is_expired(entry.get("cachedAt")):
            return None
        try:
            return difficulty_from_dict(entry)
        except ValueError as e:
            logger.warning("Skipping cached difficulty for %s: %s", key, e)
            return None

    def get(self, issue_key: str) -> DifficultyRating | None:
        """Return the cached rating for an issue, or None if absent or expired."""
        entry = self._read().get(issue_key)
        if entry is None:
            return None
        return self._rating(issue_key, entry)

    def set(self, issue_key: str, rating: DifficultyRating) -> None:
        """Store a rating for an issue, stamped with the current time."""
        data = self._read()
        entry = difficulty_to_dict(rating)
        entry["cachedAt"] = datetime.now(timezone.utc).isoformat()
        data[issue_key] = entry
        self._write(data)

    def get_all(self) -> dict[str, DifficultyRating]:
        """Return every non-expired rating."""
        ratings: dict[str, DifficultyRating] = {}
        for key, entry in self._read().items():
            rating = self._rating(key, entry)
            if rating is not None:
                ratings[key] = rating
        return ratings

    def clear(self) -> None:
        """Remove the cache file."""
        self.path.unlink(missing_ok=True)
