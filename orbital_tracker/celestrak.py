"""
CelesTrak Client

Fetches TLE catalogs and SatCat metadata from CelesTrak, and proxies raw GP
queries for the service's ``/api/satellites`` route.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Union

from logging_config import get_logger
from orbital_tracker.catalog import Category
from orbital_tracker.exceptions import CelestrakQueryError, FeedError
from orbital_tracker.http_client import FeedClient
from orbital_tracker.models import SatelliteRecord
from orbital_tracker.tle_parser import TLEParser

logger = get_logger(__name__)

# Plain-text answers CelesTrak gives with a 200 status
QUERY_ERROR_PREFIXES = ("Invalid query", "No GP data found")


class CelestrakClient(FeedClient):
    """
    Client for the CelesTrak GP and SatCat endpoints.

    TLE and SatCat bodies are cached for ``TLE_CACHE_TTL`` seconds when a
    cache is configured.
    """

    source = "celestrak"

    def __init__(self, *args, parser: TLEParser = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.parser = parser or TLEParser()
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="celestrak")

    def fetch_satellites(self, category: Union[str, Category] = Category.STARLINK) -> List[SatelliteRecord]:
        """
        Fetch and parse the satellites of a category.

        The TLE catalog and the SatCat metadata are requested concurrently.
        Metadata is best effort: when it cannot be fetched or decoded, the
        records keep "Unknown" launch/owner fields.

        Raises:
            FeedError: if the TLE catalog cannot be fetched
        """
        category = Category.resolve(category)
        tle_future = self._executor.submit(self._fetch_tle, category)
        satcat_future = self._executor.submit(self._fetch_satcat, category)

        tle_text = tle_future.result()
        satcat = satcat_future.result()

        satellites = self.parser.parse_catalog(tle_text, category.value, satcat)
        logger.info(f"Fetched {len(satellites)} satellites from {category.value}")
        return satellites

    def _fetch_tle(self, category: Category) -> str:
        cache_key = f"tle:{category.value}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        text = self.get_text(category.tle_url(self.config.CELESTRAK_BASE))
        if text.strip().startswith(QUERY_ERROR_PREFIXES):
            raise CelestrakQueryError(text.strip())

        if self.cache is not None:
            self.cache.set(cache_key, text, self.config.TLE_CACHE_TTL)
        return text

    def _fetch_satcat(self, category: Category) -> List[Dict[str, Any]]:
        try:
            text = self.get_text(
                category.satcat_url(self.config.CELESTRAK_BASE),
                cache_key=f"satcat:{category.value}",
                ttl=self.config.TLE_CACHE_TTL,
            )
        except FeedError as e:
            logger.warning(f"SatCat unavailable for {category.value}: {e}")
            return []

        try:
            data = json.loads(text)
        except ValueError:
            logger.warning(f"Failed to parse SatCat JSON for {category.value}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Unexpected SatCat payload for {category.value}")
            return []
        return data

    def fetch_gp(self, group: str, fmt: str) -> Any:
        """
        Raw GP query, decoded as JSON.

        Raises:
            CelestrakQueryError: CelesTrak rejected the query
            FeedError: upstream failure or a body that is not JSON
        """
        url = f"{self.config.CELESTRAK_BASE.rstrip('/')}/NORAD/elements/gp.php"
        text = self.get_text(url, params={"GROUP": group, "FORMAT": fmt})

        stripped = text.strip()
        if stripped.startswith(QUERY_ERROR_PREFIXES):
            logger.error(f"CelesTrak returned error text: {stripped}")
            raise CelestrakQueryError(f"CelesTrak Error: {stripped}")

        try:
            return json.loads(text)
        except ValueError as e:
            logger.error(f"Failed to parse CelesTrak JSON: {stripped[:100]}")
            raise FeedError(self.source, "Received invalid JSON from CelesTrak") from e

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self.session.close()
