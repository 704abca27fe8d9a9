"""Persisted session state for toilet-tracker.

The bearer token lives in a small JSON file in the data directory under a
fixed key, so it survives restarts until logout.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger("toilet_tracker.session")

TOKEN_KEY = "token"
SESSION_FILENAME = "session.json"


def get_session_path(data_dir: Path) -> Path:
    """Get path to the session file.

    Args:
        data_dir: Base data directory.

    Returns:
        Path to session.json.
    """
    return data_dir / SESSION_FILENAME


class SessionStore:
    """Reads and writes the stored bearer token."""

    def __init__(self, data_dir: Path) -> None:
        self.path = get_session_path(data_dir)

    def load(self) -> str | None:
        """Load the stored token.

        Returns:
            The token, or None if nothing usable is stored.
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return None

        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        return token or None

    def save(self, token: str) -> Path:
        """Persist a token.

        Args:
            token: Bearer token returned by login or signup.

        Returns:
            Path to saved file.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({TOKEN_KEY: token}, f)
        # Owner-only, it is a credential
        self.path.chmod(0o600)
        logger.debug("Session saved to %s", self.path)
        return self.path

    def clear(self) -> None:
        """Remove the stored token. Safe to call when nothing is stored."""
        self.path.unlink(missing_ok=True)
        logger.debug("Session cleared")
