"""HTTP client for the Toilet Tracker REST API."""

from __future__ import annotations

import logging
from typing import Any

import requests

from toilet_tracker.models.entry import Entry, LeaderboardEntry, Progress

logger = logging.getLogger("toilet_tracker.api")

DEFAULT_TIMEOUT = 30.0


class ApiError(RuntimeError):
    """A request to the Toilet Tracker API failed.

    Attributes:
        message: Server-provided message when available, otherwise a
            description of the failure.
        status_code: HTTP status, or None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(ApiError):
    """The API rejected the bearer token (HTTP 401)."""


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return str(message)
    return response.reason or f"HTTP {response.status_code}"


class TrackerClient:
    """Client for the Toilet Tracker API.

    Each call is an independent ``requests`` request, so one client can be
    shared by the parallel fetches of a refresh.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if authenticated and self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        logger.debug("%s %s", method, path)
        try:
            response = requests.request(
                method,
                url,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.debug("%s %s failed: %s", method, path, e)
            raise ApiError(f"Could not reach {self.base_url}: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError(_error_message(response), status_code=401)
        if not response.ok:
            message = _error_message(response)
            logger.debug("%s %s -> %d %s", method, path, response.status_code, message)
            raise ApiError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {path}", status_code=response.status_code) from e

    def _auth(self, path: str, email: str, password: str) -> str:
        data = self._request(
            "POST",
            path,
            json_body={"email": email, "password": password},
            authenticated=False,
        )
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ApiError("No auth token in response")
        return token

    def login(self, email: str, password: str) -> str:
        """Sign in and return the bearer token."""
        return self._auth("/api/auth/login", email, password)

    def signup(self, email: str, password: str) -> str:
        """Register and return the bearer token."""
        return self._auth("/api/auth/signup", email, password)

    def get_progress(self) -> Progress:
        """Fetch the current user's progress summary."""
        return Progress.from_api(self._request("GET", "/api/toilets/my-progress") or {})

    def get_entries(self) -> list[Entry]:
        """Fetch the current user's logged toilets, in server order."""
        return [Entry.from_api(item) for item in self._get_list("/api/toilets")]

    def get_leaderboard(self) -> list[LeaderboardEntry]:
        """Fetch the leaderboard, in rank order."""
        data = self._get_list("/api/toilets/leaderboard")
        return [LeaderboardEntry.from_api(item) for item in data]

    def _get_list(self, path: str) -> list[Any]:
        data = self._request("GET", path) or []
        if not isinstance(data, list):
            raise ValueError(f"Expected a list from {path}, got {type(data).__name__}")
        return data

    def create_entry(
        self,
        name: str,
        latitude: float,
        longitude: float,
        address: str,
    ) -> Entry | None:
        """Log a toilet.

        Returns:
            The created entry, or None if the server response had no
            usable entry body.
        """
        data = self._request(
            "POST",
            "/api/toilets",
            json_body={
                "name": name,
                "latitude": latitude,
                "longitude": longitude,
                "address": address,
            },
        )
        if not isinstance(data, dict):
            return None
        try:
            return Entry.from_api(data)
        except ValueError:
            logger.debug("Create response is not an entry: %s", data)
            return None

    def toggle_golden(self, entry_id: str) -> str:
        """Flip the golden flag of an entry.

        Returns:
            The server's confirmation message.
        """
        data = self._request("PATCH", f"/api/toilets/{entry_id}/toggle-golden", json_body={})
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return "Golden status updated"
