"""Shared fixtures for toilet-tracker tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import responses
from click.testing import CliRunner

from toilet_tracker.lib.geolocation import StaticLocationProvider
from toilet_tracker.models.session import SessionStore
from toilet_tracker.services.api import TrackerClient
from toilet_tracker.services.tracker import Tracker


def entry_payload(
    entry_id: str,
    name: str,
    lat: float,
    lon: float,
    visited_at: str,
    golden: bool = False,
    address: str | None = None,
) -> dict[str, Any]:
    """Build an entry as the API returns it (GeoJSON [lon, lat])."""
    return {
        "_id": entry_id,
        "name": name,
        "address": address,
        "location": {"type": "Point", "coordinates": [lon, lat]},
        "visitedAt": visited_at,
        "isGoldenBowl": golden,
    }


SAMPLE_ENTRIES = [
    entry_payload("e2", "Station Restroom", 52.5200, 13.4050, "2025-01-16T09:00:00.000Z"),
    entry_payload(
        "e1", "Cafe Restroom", 40.7128, -74.0060, "2025-01-15T08:00:00.000Z", address="1 Main St"
    ),
    entry_payload("e3", "Museum", 48.8566, 2.3522, "2025-01-17T18:30:00.000Z", golden=True),
]

SAMPLE_PROGRESS = {
    "total": 3,
    "remaining": 397,
    "percentage": 0.75,
    "message": "Keep going!",
}

SAMPLE_LEADERBOARD = [
    {"email": "alice@example.com", "total": 42},
    {"email": "bob@example.com", "total": 3},
]


class MockApi:
    """Registers Toilet Tracker endpoints on the active ``responses`` mock."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def refresh(
        self,
        entries: list[dict[str, Any]] | None = None,
        progress: dict[str, Any] | None = None,
        leaderboard: list[dict[str, Any]] | None = None,
        status: int = 200,
    ) -> None:
        """Register the three refresh endpoints."""
        responses.add(
            responses.GET,
            self.url("/api/toilets/my-progress"),
            json=SAMPLE_PROGRESS if progress is None else progress,
            status=status,
        )
        responses.add(
            responses.GET,
            self.url("/api/toilets"),
            json=SAMPLE_ENTRIES if entries is None else entries,
            status=status,
        )
        responses.add(
            responses.GET,
            self.url("/api/toilets/leaderboard"),
            json=SAMPLE_LEADERBOARD if leaderboard is None else leaderboard,
            status=status,
        )

    def login(self, status: int = 200, token: str = "token-123", message: str = "") -> None:
        body = {"token": token} if status == 200 else {"message": message}
        responses.add(responses.POST, self.url("/api/auth/login"), json=body, status=status)

    def signup(self, status: int = 201, token: str = "token-new", message: str = "") -> None:
        body = {"token": token} if status < 400 else {"message": message}
        responses.add(responses.POST, self.url("/api/auth/signup"), json=body, status=status)

    def create(self, status: int = 201, body: dict[str, Any] | None = None) -> None:
        if body is None:
            body = entry_payload("new", "New", 1.0, 2.0, "2025-01-18T10:00:00Z")
        responses.add(responses.POST, self.url("/api/toilets"), json=body, status=status)

    def count(self, method: str, path: str) -> int:
        """Number of recorded calls for a method and exact path."""
        return sum(
            1
            for call in responses.calls
            if call.request.method == method and call.request.url == self.url(path)
        )


@pytest.fixture
def api_url() -> str:
    """Toilet Tracker test API URL."""
    return "https://tracker.example.com"


@pytest.fixture
def mock_api(api_url: str) -> MockApi:
    """Helper for registering API responses."""
    return MockApi(api_url)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory for session and logs."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def store(data_dir: Path) -> SessionStore:
    """Session store in the temporary data directory."""
    return SessionStore(data_dir)


@pytest.fixture
def tracker(api_url: str, store: SessionStore) -> Tracker:
    """Tracker wired to the mock API with a fixed device location."""
    return Tracker(
        client=TrackerClient(api_url),
        store=store,
        locator=StaticLocationProvider(51.5007, -0.1246),
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def cli_env(tmp_path: Path, data_dir: Path, api_url: str) -> dict[str, str]:
    """Environment isolating the CLI from user config and data."""
    return {
        "TOILET_TRACKER_CONFIG": str(tmp_path / "missing-config.toml"),
        "TOILET_TRACKER_DATA_DIR": str(data_dir),
        "TOILET_TRACKER_API_URL": api_url,
        "TOILET_TRACKER_GEOLOCATION": "none",
    }


@pytest.fixture
def make_entry():
    """Factory for API entry payloads."""
    return entry_payload


@pytest.fixture
def sample_entries() -> list[dict[str, Any]]:
    """Entry payloads in server order (not sorted by visit time)."""
    return [dict(e) for e in SAMPLE_ENTRIES]
