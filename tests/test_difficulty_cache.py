"""Tests for the local difficulty cache."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from jira_kpi.difficulty_cache import (
    DifficultyCache,
    difficulty_from_dict,
    difficulty_to_dict,
)
from jira_kpi.models import DifficultyRating


def _write_cache(path, entries):
    path.write_text(json.dumps(entries), encoding="utf-8")


def _stamp(days_ago):
    return (datetime.now(timezone.utc) - timedelta(days=days_ago)).isoformat()


class TestDifficultyFromDict:
    """Tests for difficulty_from_dict."""

    def test_parses_full_entry(self):
        rating = difficulty_from_dict({"difficulty": 4, "estimatedHours": 6, "reasoning": "API work"})
        assert rating == DifficultyRating(difficulty=4, estimated_hours=6.0, reasoning="API work")

    def test_optional_fields(self):
        assert difficulty_from_dict({"difficulty": 2}) == DifficultyRating(difficulty=2)

    @pytest.mark.parametrize("value", [None, "3", 2.5, True])
    def test_rejects_non_integer_difficulty(self, value):
        with pytest.raises(ValueError, match="Invalid difficulty"):
            difficulty_from_dict({"difficulty": value})

    def test_to_dict(self):
        rating = DifficultyRating(difficulty=3, estimated_hours=2.0, reasoning="small")
        assert difficulty_to_dict(rating) == {
            "difficulty": 3,
            "estimatedHours": 2.0,
            "reasoning": "small",
        }


class TestDifficultyCache:
    """Tests for DifficultyCache."""

    def test_missing_file_is_empty(self, tmp_path):
        cache = DifficultyCache(tmp_path / "missing.json")
        assert cache.get("ENG-1") is None
        assert cache.get_all() == {}

    def test_set_then_get(self, tmp_path):
        cache = DifficultyCache(tmp_path / "nested" / "difficulties.json")
        cache.set("ENG-1", DifficultyRating(difficulty=5, estimated_hours=16))

        assert cache.get("ENG-1") == DifficultyRating(difficulty=5, estimated_hours=16.0)
        stored = json.loads(cache.path.read_text(encoding="utf-8"))
        assert "cachedAt" in stored["ENG-1"]

    def test_expired_entries_are_ignored(self, tmp_path):
        path = tmp_path / "difficulties.json"
        _write_cache(path, {
            "ENG-1": {"difficulty": 3, "cachedAt": _stamp(1)},
            "ENG-2": {"difficulty": 4, "cachedAt": _stamp(8)},
            "ENG-3": {"difficulty": 2},
        })
        cache = DifficultyCache(path)

        assert cache.get_all() == {"ENG-1": DifficultyRating(difficulty=3)}
        assert cache.get("ENG-2") is None

    def test_custom_expiry(self, tmp_path):
        path = tmp_path / "difficulties.json"
        _write_cache(path, {"ENG-1": {"difficulty": 3, "cachedAt": _stamp(2)}})
        assert DifficultyCache(path, expiry_days=1).get("ENG-1") is None

    def test_invalid_entries_are_skipped(self, tmp_path):
        path = tmp_path / "difficulties.json"
        _write_cache(path, {
            "ENG-1": {"difficulty": "hard", "cachedAt": _stamp(0)},
            "ENG-2": "not an entry",
            "ENG-3": {"difficulty": 1, "cachedAt": _stamp(0)},
        })
        assert DifficultyCache(path).get_all() == {"ENG-3": DifficultyRating(difficulty=1)}

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "difficulties.json"
        path.write_text("{not json", encoding="utf-8")
        cache = DifficultyCache(path)
        assert cache.get_all() == {}

        cache.set("ENG-1", DifficultyRating(difficulty=2))
        assert cache.get("ENG-1") == DifficultyRating(difficulty=2)

    def test_clear(self, tmp_path):
        cache = DifficultyCache(tmp_path / "difficulties.json")
        cache.set("ENG-1", DifficultyRating(difficulty=2))
        cache.clear()
        assert not cache.path.exists()
        cache.clear()
