"""Address lookups against a Nominatim-compatible search endpoint."""

import logging
from typing import Optional, Tuple

import requests

from app.core.config import settings
from app.core.exceptions import GeocodingError

logger = logging.getLogger(__name__)


class Geocoder:
    def __init__(self, url: str = None, user_agent: str = None, timeout: float = None,
                 session: Optional[requests.Session] = None):
        self.url = url or settings.GEOCODER_URL
        self.timeout = timeout or settings.GEOCODER_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent or settings.GEOCODER_USER_AGENT

    def geocode(self, query: str) -> Optional[Tuple[float, float]]:
        """Return ``(lat, lng)`` of the best match, or None when nothing matches."""
        if not query or not query.strip():
            return None
        try:
            response = self.session.get(
                self.url,
                params={"q": query, "format": "json", "limit": 1},
                timeout=self.timeout,
            )
            response.raise_for_status()
            results = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GeocodingError(context={"query": query, "error": str(e)}) from e

        if not results:
            logger.info("No geocoding match for %r", query)
            return None
        return float(results[0]["lat"]), float(results[0]["lon"])


def get_geocoder() -> Geocoder:
    return Geocoder()
