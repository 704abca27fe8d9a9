"""Unit tests for entry, progress and leaderboard models."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from toilet_tracker.models.entry import (
    GOAL,
    Entry,
    LeaderboardEntry,
    Progress,
    sort_by_visit,
    visit_streak,
)
from toilet_tracker.models.session import SessionStore


def _local_entry(entry_id: str, day: date, hour: int = 12) -> Entry:
    visited = datetime(day.year, day.month, day.day, hour, 0).astimezone()
    return Entry(id=entry_id, name=entry_id, latitude=1.0, longitude=2.0, visited_at=visited)


class TestEntryFromApi:
    """Tests for building entries from API payloads."""

    @pytest.mark.ai_generated
    def test_geojson_coordinates_are_lon_lat(self, make_entry) -> None:
        """Verify GeoJSON [lon, lat] is mapped to latitude/longitude."""
        entry = Entry.from_api(make_entry("a1", "Cafe", 40.7128, -74.006, "2025-01-15T08:00:00Z"))

        assert entry.latitude == 40.7128
        assert entry.longitude == -74.006
        assert entry.coordinates == (40.7128, -74.006)
        assert entry.id == "a1"

    @pytest.mark.ai_generated
    def test_visited_at_is_timezone_aware(self, make_entry) -> None:
        """Verify Z-suffixed timestamps parse as UTC."""
        entry = Entry.from_api(make_entry("a1", "Cafe", 1.0, 2.0, "2025-01-15T08:00:00.000Z"))

        assert entry.visited_at == datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.ai_generated
    def test_flat_coordinates_accepted(self) -> None:
        """Verify flat latitude/longitude keys are accepted."""
        entry = Entry.from_api({
            "id": "x",
            "name": "Flat",
            "latitude": 10.5,
            "longitude": 20.25,
            "visitedAt": "2025-01-15T08:00:00",
        })

        assert entry.coordinates == (10.5, 20.25)
        assert entry.is_golden_bowl is False
        assert entry.address is None

    @pytest.mark.ai_generated
    def test_missing_coordinates_rejected(self) -> None:
        """Verify entries without coordinates raise ValueError."""
        with pytest.raises(ValueError, match="no coordinates"):
            Entry.from_api({"_id": "x", "name": "Nowhere", "visitedAt": "2025-01-15T08:00:00Z"})

    @pytest.mark.ai_generated
    def test_non_numeric_coordinates_rejected(self, make_entry) -> None:
        """Verify string coordinates raise ValueError."""
        payload = make_entry("x", "Bad", 1.0, 2.0, "2025-01-15T08:00:00Z")
        payload["location"]["coordinates"] = ["east", "north"]

        with pytest.raises(ValueError, match="numeric"):
            Entry.from_api(payload)

    @pytest.mark.ai_generated
    def test_out_of_range_coordinates_not_validated(self, make_entry) -> None:
        """Verify coordinate range is left to the server."""
        entry = Entry.from_api(make_entry("x", "Far", 123.0, 456.0, "2025-01-15T08:00:00Z"))

        assert entry.coordinates == (123.0, 456.0)


class TestSortByVisit:
    """Tests for descending visit-time ordering."""

    @pytest.mark.ai_generated
    def test_sorted_newest_first_regardless_of_input_order(self, sample_entries) -> None:
        """Verify entries come out newest first for any input order."""
        entries = [Entry.from_api(e) for e in sample_entries]

        for ordering in (entries, list(reversed(entries)), entries[1:] + entries[:1]):
            result = sort_by_visit(ordering)
            assert [e.id for e in result] == ["e3", "e2", "e1"]

    @pytest.mark.ai_generated
    def test_input_not_mutated(self, sample_entries) -> None:
        """Verify sorting returns a new list."""
        entries = [Entry.from_api(e) for e in sample_entries]
        original_ids = [e.id for e in entries]

        sort_by_visit(entries)

        assert [e.id for e in entries] == original_ids


class TestVisitStreak:
    """Tests for consecutive-day streaks."""

    @pytest.mark.ai_generated
    def test_no_entries_is_zero(self) -> None:
        """Verify empty history has no streak."""
        assert visit_streak([], today=date(2025, 3, 10)) == 0

    @pytest.mark.ai_generated
    def test_same_day_visits_count_once(self) -> None:
        """Verify multiple visits on one day are deduplicated."""
        today = date(2025, 3, 10)
        entries = [_local_entry("a", today, 9), _local_entry("b", today, 15)]

        assert visit_streak(entries, today=today) == 1

    @pytest.mark.ai_generated
    def test_consecutive_days_ending_today(self) -> None:
        """Verify a run of days ending today is counted."""
        entries = [
            _local_entry("a", date(2025, 3, 8)),
            _local_entry("b", date(2025, 3, 9)),
            _local_entry("c", date(2025, 3, 10)),
            _local_entry("d", date(2025, 3, 5)),
        ]

        assert visit_streak(entries, today=date(2025, 3, 10)) == 3

    @pytest.mark.ai_generated
    def test_streak_survives_until_end_of_today(self) -> None:
        """Verify a streak ending yesterday still counts."""
        entries = [_local_entry("a", date(2025, 3, 8)), _local_entry("b", date(2025, 3, 9))]

        assert visit_streak(entries, today=date(2025, 3, 10)) == 2

    @pytest.mark.ai_generated
    def test_gap_breaks_streak(self) -> None:
        """Verify a streak older than yesterday is zero."""
        entries = [_local_entry("a", date(2025, 3, 7))]

        assert visit_streak(entries, today=date(2025, 3, 10)) == 0


class TestProgressAndLeaderboard:
    """Tests for the read-only summaries."""

    @pytest.mark.ai_generated
    def test_progress_from_api(self) -> None:
        """Verify progress fields are parsed."""
        progress = Progress.from_api(
            {"total": 10, "remaining": 390, "percentage": 2.5, "message": "Nice"}
        )

        assert progress.total == 10
        assert progress.remaining == 390
        assert progress.goal == GOAL == 400

    @pytest.mark.ai_generated
    def test_progress_remaining_defaults_from_goal(self) -> None:
        """Verify remaining is derived when the server omits it."""
        assert Progress.from_api({"total": 15}).remaining == 385

    @pytest.mark.ai_generated
    def test_leaderboard_display_name(self) -> None:
        """Verify the display name is the email local part."""
        row = LeaderboardEntry.from_api({"email": "carol@example.org", "total": 7})

        assert row.display_name == "carol"
        assert row.total == 7

    @pytest.mark.ai_generated
    def test_null_message_and_email_become_empty(self) -> None:
        """Verify JSON nulls never reach the views as None."""
        progress = Progress.from_api({"total": 1, "message": None})
        row = LeaderboardEntry.from_api({"email": None, "total": None})

        assert progress.message == ""
        assert row.email == ""
        assert row.display_name == ""
        assert row.total == 0

    @pytest.mark.ai_generated
    @pytest.mark.parametrize(
        ("model", "payload"),
        [
            (Progress, {"total": "many"}),
            (Progress, {"percentage": [1]}),
            (Progress, "oops"),
            (LeaderboardEntry, {"email": "x@y.z", "total": {}}),
            (LeaderboardEntry, None),
            (Entry, ["e1"]),
        ],
    )
    def test_malformed_payloads_raise_value_error(self, model, payload) -> None:
        """Verify bad shapes and types surface as ValueError."""
        with pytest.raises(ValueError):
            model.from_api(payload)


class TestSessionStore:
    """Tests for token persistence."""

    @pytest.mark.ai_generated
    def test_load_without_file(self, store: SessionStore) -> None:
        """Verify nothing stored means no token."""
        assert store.load() is None

    @pytest.mark.ai_generated
    def test_save_and_reload(self, data_dir: Path) -> None:
        """Verify a saved token survives a new store instance."""
        SessionStore(data_dir).save("abc")

        assert SessionStore(data_dir).load() == "abc"
        assert '"token"' in (data_dir / "session.json").read_text()

    @pytest.mark.ai_generated
    def test_clear_is_idempotent(self, store: SessionStore) -> None:
        """Verify clearing twice does not raise."""
        store.save("abc")
        store.clear()
        store.clear()

        assert store.load() is None

    @pytest.mark.ai_generated
    def test_corrupt_file_ignored(self, store: SessionStore) -> None:
        """Verify an unreadable session file is treated as logged out."""
        store.path.write_text("{not json")

        assert store.load() is None
