# SPDX-License-Identifier: Apache-2.0

"""
Address geocoding against a Nominatim-compatible HTTP endpoint.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from opentelemetry import trace

from ..models.entities import GeoPoint
from ..domain.errors import UpstreamUnavailableException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/search"


@dataclass
class GeocodeResult:
    """A resolved address."""
    location: GeoPoint
    city: str = "Unknown"
    country: str = "Unknown"
    original_address: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GeocoderConfig:
    """Geocoding endpoint configuration."""
    url: str = DEFAULT_GEOCODER_URL
    user_agent: str = "hemolink/1.0"
    timeout: float = 5.0

    @classmethod
    def from_env(cls) -> "GeocoderConfig":
        return cls(
            url=os.getenv('GEOCODER_URL', DEFAULT_GEOCODER_URL),
            user_agent=os.getenv('GEOCODER_USER_AGENT', 'hemolink/1.0'),
            timeout=float(os.getenv('GEOCODER_TIMEOUT', '5'))
        )


class Geocoder:
    """Resolves free-form addresses to GeoJSON points."""

    def __init__(self, config: Optional[GeocoderConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or GeocoderConfig()
        self.session = session or requests.Session()

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        """
        Geocode an address.

        Returns:
            GeocodeResult, or None when the address is unknown or the
            service fails
        """
        if not address or not address.strip():
            return None

        with tracer.start_as_current_span("geocoding.geocode") as span:
            try:
                response = self.session.get(
                    self.config.url,
                    params={"format": "json", "q": address, "limit": 1, "addressdetails": 1},
                    headers={"User-Agent": self.config.user_agent},
                    timeout=self.config.timeout
                )
                response.raise_for_status()
                results = response.json()
            except (requests.RequestException, ValueError) as e:
                span.record_exception(e)
                logger.error(f"Geocoding request failed for address '{address}': {e}")
                return None

            if not results:
                span.set_attribute("geocoding.found", False)
                logger.warning(f"Address '{address}' not found by the geocoding service")
                return None

            first = results[0]
            try:
                location = GeoPoint.from_lng_lat(float(first["lon"]), float(first["lat"]))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Geocoding service returned malformed coordinates: {e}")
                return None

            details = first.get("address") or {}
            span.set_attribute("geocoding.found", True)
            return GeocodeResult(
                location=location,
                city=details.get("city") or details.get("town") or "Unknown",
                country=details.get("country") or "Unknown",
                original_address=address,
                properties={"displayName": first.get("display_name")}
            )

    def require_geocode(self, address: str) -> GeocodeResult:
        """Geocode an address the caller cannot proceed without."""
        result = self.geocode(address)
        if result is None:
            raise UpstreamUnavailableException(f"Could not geocode address: {address}")
        return result
