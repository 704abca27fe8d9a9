"""Device location lookup.

A terminal has no GPS callback like a browser does, so the "current location"
is resolved by a provider chosen in the configuration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from toilet_tracker.config import GeolocationConfig

logger = logging.getLogger("toilet_tracker.geolocation")

DEFAULT_TIMEOUT = 15.0


class LocationUnavailableError(RuntimeError):
    """Raised when the location was denied, timed out, or could not be read."""


class LocationProvider:
    """Base class for location providers."""

    supported = True

    def locate(self, timeout: float = DEFAULT_TIMEOUT) -> tuple[float, float]:
        """Return the current (latitude, longitude).

        Args:
            timeout: Seconds to wait for a fix.

        Raises:
            LocationUnavailableError: If no fix could be obtained.
        """
        raise NotImplementedError


class NoLocationProvider(LocationProvider):
    """Location lookup disabled."""

    supported = False

    def locate(self, timeout: float = DEFAULT_TIMEOUT) -> tuple[float, float]:
        raise LocationUnavailableError("Geolocation is not supported")


class StaticLocationProvider(LocationProvider):
    """Always reports the configured coordinates."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self.latitude = latitude
        self.longitude = longitude

    def locate(self, timeout: float = DEFAULT_TIMEOUT) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class IPLocationProvider(LocationProvider):
    """Approximate location from an IP geolocation service.

    Understands both ``latitude``/``longitude`` (ipapi.co) and ``lat``/``lon``
    (ip-api.com) response keys.
    """

    def __init__(self, url: str) -> None:
        self.url = url

    def locate(self, timeout: float = DEFAULT_TIMEOUT) -> tuple[float, float]:
        logger.debug("Looking up location via %s (timeout %ss)", self.url, timeout)
        try:
            response = requests.get(self.url, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise LocationUnavailableError(f"Location lookup timed out after {timeout:g}s") from e
        except (requests.RequestException, ValueError) as e:
            raise LocationUnavailableError(f"Location lookup failed: {e}") from e

        if not isinstance(data, dict):
            raise LocationUnavailableError("Location service returned no coordinates")
        lat = data.get("latitude", data.get("lat"))
        lon = data.get("longitude", data.get("lon"))
        try:
            return (float(lat), float(lon))
        except (TypeError, ValueError) as e:
            raise LocationUnavailableError("Location service returned no coordinates") from e


def get_location_provider(config: GeolocationConfig) -> LocationProvider:
    """Build the provider named in the configuration.

    Args:
        config: Geolocation configuration section.

    Returns:
        LocationProvider instance.
    """
    if config.provider == "none":
        return NoLocationProvider()
    if config.provider == "static":
        if config.latitude is None or config.longitude is None:
            logger.warning("Static geolocation needs latitude and longitude; disabling")
            return NoLocationProvider()
        return StaticLocationProvider(config.latitude, config.longitude)
    return IPLocationProvider(config.url)
