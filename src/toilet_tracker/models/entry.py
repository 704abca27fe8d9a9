"""Entry, progress and leaderboard models.

Converts the Toilet Tracker API payloads into typed records and provides the
small amount of client-side derivation the views need (ordering, streaks).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

GOAL = 400


def parse_timestamp(value: Any) -> datetime:
    """Parse an API timestamp into an aware datetime.

    Naive values are taken as UTC.

    Args:
        value: ISO 8601 string (``Z`` suffix allowed) or datetime.

    Returns:
        Timezone-aware datetime.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coordinate(value: Any, label: str) -> float:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"Entry {label} must be numeric, got {value!r}")
    return float(value)


def _number(data: dict[str, Any], key: str, default: Any, cast: type) -> Any:
    # null is treated as absent
    value = data.get(key)
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{key} must be numeric, got {value!r}") from e


def _payload(data: Any, kind: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"Expected {kind} object, got {type(data).__name__}")
    return data


@dataclass
class Entry:
    """A logged toilet visit."""

    id: str
    name: str
    latitude: float
    longitude: float
    visited_at: datetime
    address: str | None = None
    is_golden_bowl: bool = False

    @property
    def coordinates(self) -> tuple[float, float]:
        """(latitude, longitude) pair."""
        return (self.latitude, self.longitude)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Entry:
        """Create from an API payload.

        The service returns GeoJSON points (``location.coordinates`` is
        ``[lon, lat]``); flat ``latitude``/``longitude`` keys are accepted too.

        Args:
            data: Entry dictionary from the API.

        Returns:
            Entry instance.

        Raises:
            ValueError: If coordinates are missing or not numeric.
        """
        data = _payload(data, "entry")
        location = data.get("location")
        if isinstance(location, dict) and location.get("coordinates") is not None:
            coords = location["coordinates"]
            if not isinstance(coords, list | tuple) or len(coords) < 2:
                raise ValueError(f"Entry coordinates must be a [lon, lat] pair, got {coords!r}")
            longitude, latitude = coords[0], coords[1]
        elif "latitude" in data and "longitude" in data:
            latitude, longitude = data["latitude"], data["longitude"]
        else:
            raise ValueError("Entry has no coordinates")

        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            name=str(data.get("name") or "Unnamed toilet"),
            latitude=_coordinate(latitude, "latitude"),
            longitude=_coordinate(longitude, "longitude"),
            visited_at=parse_timestamp(data.get("visitedAt") or data.get("createdAt")),
            address=str(data["address"]) if data.get("address") else None,
            is_golden_bowl=bool(data.get("isGoldenBowl", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output.

        Returns:
            Dictionary representation.
        """
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "visited_at": self.visited_at.isoformat(),
            "is_golden_bowl": self.is_golden_bowl,
        }


@dataclass
class Progress:
    """Progress toward the 400 unique toilets goal, computed server-side."""

    total: int
    remaining: int
    percentage: float
    message: str = ""
    goal: int = GOAL

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Progress:
        data = _payload(data, "progress")
        total = _number(data, "total", 0, int)
        return cls(
            total=total,
            remaining=_number(data, "remaining", max(GOAL - total, 0), int),
            percentage=_number(data, "percentage", 0.0, float),
            message=str(data.get("message") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "remaining": self.remaining,
            "percentage": self.percentage,
            "message": self.message,
            "goal": self.goal,
        }


@dataclass
class LeaderboardEntry:
    """One leaderboard row, in server rank order."""

    email: str
    total: int

    @property
    def display_name(self) -> str:
        """The part of the email before ``@``."""
        return self.email.split("@")[0]

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> LeaderboardEntry:
        data = _payload(data, "leaderboard")
        return cls(email=str(data.get("email") or ""), total=_number(data, "total", 0, int))

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "total": self.total}


def sort_by_visit(entries: list[Entry]) -> list[Entry]:
    """Return entries ordered by visit time, newest first.

    Args:
        entries: Entries in any order (not modified).

    Returns:
        New sorted list.
    """
    return sorted(entries, key=lambda e: e.visited_at, reverse=True)


def visit_streak(entries: list[Entry], today: date | None = None) -> int:
    """Count consecutive days with at least one visit.

    The streak ends today, or yesterday if nothing was logged yet today.
    Visit times are compared as local calendar dates.

    Args:
        entries: Logged entries.
        today: Reference date (defaults to the local date).

    Returns:
        Number of consecutive days, 0 if the streak is broken.
    """
    if today is None:
        today = date.today()

    days = {e.visited_at.astimezone().date() for e in entries}
    if not days:
        return 0

    day = today if today in days else today - timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak
