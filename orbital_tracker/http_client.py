"""
HTTP Feed Client

Shared plumbing for the upstream feeds (CelesTrak, NOAA SWPC): one
``requests`` session, a request timeout, exponential backoff retries on
transient failures, and optional caching of response bodies.
"""

import json
from typing import Any, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import ServiceConfig
from logging_config import get_logger
from orbital_tracker import __version__
from orbital_tracker.cache import FeedCache
from orbital_tracker.exceptions import FeedError

logger = get_logger(__name__)


class TransientHTTPError(requests.HTTPError):
    """HTTP status worth retrying (429 and 5xx)."""


TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout, TransientHTTPError)


class FeedClient:
    """
    Base class for upstream feed clients.

    Args:
        config: Service configuration (timeouts, retry policy, base URLs)
        session: requests session; a new one is created when omitted
        cache: FeedCache for response bodies; no caching when omitted
    """

    source = "feed"

    def __init__(self, config: Optional[ServiceConfig] = None,
                 session: Optional[requests.Session] = None,
                 cache: Optional[FeedCache] = None):
        self.config = config or ServiceConfig()
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", f"orbital-tracker/{__version__}")
        self.cache = cache
        self._retrying = Retrying(
            stop=stop_after_attempt(max(1, self.config.RETRY_ATTEMPTS)),
            wait=wait_exponential(
                multiplier=self.config.RETRY_BACKOFF_SECONDS,
                max=self.config.RETRY_MAX_WAIT_SECONDS,
            ),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=self._log_retry,
            reraise=True,
        )

    def get_text(self, url: str, params: Optional[dict] = None,
                 cache_key: Optional[str] = None, ttl: int = 0) -> str:
        """
        GET a URL and return the body, retrying transient failures.

        Raises:
            FeedError: once retries are exhausted or on a non-retryable status
        """
        if cache_key and self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {cache_key}")
                return cached

        try:
            text = self._retrying(self._request, url, params)
        except requests.RequestException as e:
            logger.error(f"{self.source} request failed for {url}: {e}")
            raise FeedError(self.source, f"request to {url} failed: {e}") from e

        if cache_key and self.cache is not None:
            self.cache.set(cache_key, text, ttl)
        return text

    def get_json(self, url: str, params: Optional[dict] = None,
                 cache_key: Optional[str] = None, ttl: int = 0) -> Any:
        """GET a URL and decode its JSON body."""
        text = self.get_text(url, params=params, cache_key=cache_key, ttl=ttl)
        try:
            return json.loads(text)
        except ValueError as e:
            raise FeedError(self.source, f"invalid JSON from {url}") from e

    def _request(self, url: str, params: Optional[dict]) -> str:
        response = self.session.get(url, params=params, timeout=self.config.REQUEST_TIMEOUT)
        if response.status_code == 429 or response.status_code >= 500:
            raise TransientHTTPError(
                f"{response.status_code} {response.reason} for {url}", response=response
            )
        response.raise_for_status()
        return response.text

    def _log_retry(self, retry_state) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            f"{self.source} request failed (attempt {retry_state.attempt_number}), retrying",
            error=str(exc),
            wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
        )
