"""Session controller for toilet-tracker.

Owns the view state shared by the CLI and the local web UI: the session
token, the fetched progress/entries/leaderboard, the map center and the
user-visible status message. Every operation catches its own failures and
reports them through ``message`` (inline status) or ``alert`` (blocking
notice) rather than raising.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from toilet_tracker.lib.geolocation import (
    DEFAULT_TIMEOUT,
    LocationUnavailableError,
    NoLocationProvider,
)
from toilet_tracker.services.api import ApiError, AuthenticationError

if TYPE_CHECKING:
    from toilet_tracker.lib.geolocation import LocationProvider
    from toilet_tracker.models.entry import Entry, LeaderboardEntry, Progress
    from toilet_tracker.models.session import SessionStore
    from toilet_tracker.services.api import TrackerClient

logger = logging.getLogger("toilet_tracker.tracker")

DEFAULT_MAP_CENTER = (51.505, -0.09)

GPS_ENTRY_NAME = "Toilet at Current Location"
GPS_ENTRY_ADDRESS = "Auto-detected via GPS"
MANUAL_ENTRY_ADDRESS = "Manual entry"

MISSING_FIELDS_MESSAGE = "Name, latitude, and longitude are required!"
NOT_NUMERIC_MESSAGE = "Latitude and longitude must be numbers!"
VALIDATION_MESSAGES = (MISSING_FIELDS_MESSAGE, NOT_NUMERIC_MESSAGE)


def _is_credentials_rejection(error: ApiError) -> bool:
    # Only an error status from the server counts; transport and decode
    # failures carry no status or a 2xx one
    if error.status_code is None or error.status_code < 400:
        return False
    return "invalid" in error.message.lower()


@dataclass
class ViewState:
    """Everything the views render from."""

    token: str | None = None
    logged_in: bool = False
    progress: Progress | None = None
    entries: list[Entry] = field(default_factory=list)
    leaderboard: list[LeaderboardEntry] = field(default_factory=list)
    map_center: tuple[float, float] = DEFAULT_MAP_CENTER
    loading: bool = False
    message: str = ""
    alert: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output (without the token).

        Returns:
            Dictionary representation.
        """
        return {
            "logged_in": self.logged_in,
            "progress": self.progress.to_dict() if self.progress else None,
            "entries": [e.to_dict() for e in self.entries],
            "leaderboard": [row.to_dict() for row in self.leaderboard],
            "map_center": list(self.map_center),
            "message": self.message,
        }


class Tracker:
    """Controller tying together the API client, session store and locator."""

    def __init__(
        self,
        client: TrackerClient,
        store: SessionStore,
        locator: LocationProvider | None = None,
        location_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the controller.

        Args:
            client: API client (its token is managed here).
            store: Persistent token storage.
            locator: Device location provider for the GPS path.
            location_timeout: Seconds to wait for a location fix.
        """
        self.client = client
        self.store = store
        self.locator = locator or NoLocationProvider()
        self.location_timeout = location_timeout
        self.state = ViewState()
        self._lock = threading.Lock()

    # Session

    def start(self) -> bool:
        """Resume a stored session, if any, and load its data.

        Returns:
            True if a session was resumed and refreshed.
        """
        token = self.store.load()
        if not token:
            return False
        self._set_token(token)
        return self.refresh()

    def _set_token(self, token: str | None) -> None:
        with self._lock:
            self.state.token = token
            self.client.token = token

    def login(self, email: str, password: str) -> bool:
        """Sign in, registering the account when the credentials are unknown.

        Args:
            email: Account email.
            password: Account password.

        Returns:
            True if a token was obtained.
        """
        email = email.strip()
        if not email or not password:
            self.state.alert = "Please enter email and password"
            return False

        try:
            token = self.client.login(email, password)
        except ApiError as e:
            if not _is_credentials_rejection(e):
                logger.info("Login failed: %s", e.message)
                self.state.alert = f"Login failed: {e.message or 'Error'}"
                return False
            logger.info("Login rejected, trying signup for %s", email)
            try:
                token = self.client.signup(email, password)
            except ApiError as signup_error:
                logger.info("Signup failed: %s", signup_error.message)
                self.state.alert = f"Signup failed: {signup_error.message or 'Error'}"
                return False

        self._handle_successful_auth(token)
        return True

    def _handle_successful_auth(self, token: str) -> None:
        self._set_token(token)
        self.store.save(token)
        self.state.alert = None
        logger.info("Authenticated")
        self.refresh()

    def logout(self) -> None:
        """Drop the session and all fetched data."""
        with self._lock:
            self.state = ViewState()
            self.client.token = None
        self.store.clear()
        logger.info("Logged out")

    # Data

    def refresh(self) -> bool:
        """Fetch progress, entries and leaderboard in parallel.

        All three must succeed for anything to be applied. A 401 on any of
        them ends the session; other failures leave it in place.

        Returns:
            True if new data was applied.
        """
        token = self.state.token
        if not token:
            return False

        logger.debug("Refreshing data")
        with ThreadPoolExecutor(max_workers=3) as pool:
            progress_future = pool.submit(self.client.get_progress)
            entries_future = pool.submit(self.client.get_entries)
            leaderboard_future = pool.submit(self.client.get_leaderboard)
            futures = (progress_future, entries_future, leaderboard_future)
            errors = [e for e in (f.exception() for f in futures) if e is not None]

        for error in errors:
            if isinstance(error, AuthenticationError):
                logger.warning("Session rejected by server (%s); logging out", error.message)
                if self.state.token == token:
                    self.logout()
                return False
        if errors:
            error = errors[0]
            # Malformed payloads surface as ValueError; anything else is a bug
            if not isinstance(error, ApiError | ValueError):
                raise error
            logger.error("Fetch error: %s", error)
            if self.state.token == token:
                self.state.message = f"Could not load data: {error}"
            return False

        progress = progress_future.result()
        entries = entries_future.result()
        leaderboard = leaderboard_future.result()

        with self._lock:
            # Logged out or re-authenticated while the requests were in flight
            if self.state.token != token:
                logger.debug("Discarding stale refresh results")
                return False
            self.state.progress = progress
            self.state.entries = entries
            self.state.leaderboard = leaderboard
            self.state.logged_in = True
            if entries:
                self.state.map_center = entries[0].coordinates

        logger.debug(
            "Loaded %d entries, %d leaderboard rows", len(entries), len(leaderboard)
        )
        return True

    # Logging entries

    def log_current_location(self) -> bool:
        """Log a toilet at the device's current location.

        Returns:
            True if the entry was created.
        """
        self.state.loading = True
        self.state.message = "Getting your location..."
        try:
            if not self.locator.supported:
                self.state.message = "Geolocation is not supported by your device"
                return False

            try:
                latitude, longitude = self.locator.locate(timeout=self.location_timeout)
            except LocationUnavailableError as e:
                logger.info("Location unavailable: %s", e)
                self.state.message = "Location access denied or timed out"
                return False

            self.state.map_center = (latitude, longitude)
            return self._submit_entry(
                GPS_ENTRY_NAME,
                latitude,
                longitude,
                GPS_ENTRY_ADDRESS,
                success="Toilet logged successfully!",
                fallback_error="Already logged here?",
            )
        finally:
            self.state.loading = False

    def log_manual_entry(
        self,
        name: str,
        latitude: str | float | None,
        longitude: str | float | None,
        address: str | None = "",
    ) -> bool:
        """Log a toilet at manually entered coordinates.

        Args:
            name: Display name.
            latitude: Latitude, as typed or numeric.
            longitude: Longitude, as typed or numeric.
            address: Optional address.

        Returns:
            True if the entry was created.
        """
        if not name or latitude in (None, "") or longitude in (None, ""):
            self.state.message = MISSING_FIELDS_MESSAGE
            return False
        try:
            lat = float(latitude)
            lon = float(longitude)
        except (TypeError, ValueError):
            self.state.message = NOT_NUMERIC_MESSAGE
            return False
        if not (math.isfinite(lat) and math.isfinite(lon)):
            self.state.message = NOT_NUMERIC_MESSAGE
            return False

        self.state.loading = True
        self.state.message = "Logging manual toilet..."
        try:
            return self._submit_entry(
                name,
                lat,
                lon,
                address or MANUAL_ENTRY_ADDRESS,
                success="Manual toilet logged!",
                fallback_error="Failed",
            )
        finally:
            self.state.loading = False

    def _submit_entry(
        self,
        name: str,
        latitude: float,
        longitude: float,
        address: str,
        success: str,
        fallback_error: str,
    ) -> bool:
        try:
            self.client.create_entry(name, latitude, longitude, address)
        except ApiError as e:
            logger.info("Entry not created: %s", e.message)
            self.state.message = f"Error: {e.message or fallback_error}"
            return False

        logger.info("Logged %s at %.5f, %.5f", name, latitude, longitude)
        self.state.message = success
        self.refresh()
        return True

    def toggle_golden(self, entry_id: str) -> bool:
        """Flip an entry's golden flag, then reload everything.

        Args:
            entry_id: Entry identifier.

        Returns:
            True if the server accepted the change.
        """
        try:
            message = self.client.toggle_golden(entry_id)
        except ApiError as e:
            logger.info("Golden toggle failed for %s: %s", entry_id, e.message)
            self.state.alert = f"Error: {e.message}"
            return False

        self.state.message = message
        self.refresh()
        return True
