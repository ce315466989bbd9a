"""Subscription client and on-disk cache.

Fetches the base64 subscription payload over HTTPS with retries and
exponential backoff, and keeps the last payload in a small JSON file so
repeated runs within the TTL skip the network.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path

import httpx

from proxyprobe.errors import ParseError, SubscriptionFetchError
from proxyprobe.parsers.base import decode_base64
from proxyprobe.resilience.retry import Sleep

logger = logging.getLogger(__name__)


class SubscriptionCache:
    """JSON file cache holding ``{"timestamp": <ms>, "data": <payload>}``.

    Parameters
    ----------
    path:
        Location of the cache file. Parent directories are created on write.
    ttl_seconds:
        Age after which a cached payload is ignored.
    """

    def __init__(self, path: str, ttl_seconds: float = 600) -> None:
        self._path = Path(path)
        self._ttl_ms = ttl_seconds * 1000

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        """Return the cached payload if present and fresh, else None."""
        if not self._path.exists():
            return None
        try:
            content = json.loads(self._path.read_text(encoding="utf-8"))
            timestamp = float(content["timestamp"])
            data = content["data"]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self._path, exc)
            return None

        if not isinstance(data, str):
            return None
        if _now_ms() - timestamp >= self._ttl_ms:
            logger.debug("Cache at %s expired", self._path)
            return None
        return data

    def write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps({"timestamp": _now_ms(), "data": payload}, indent=2),
            encoding="utf-8",
        )


class SubscriptionClient:
    """HTTP client for the subscription endpoint.

    Parameters
    ----------
    url:
        Subscription URL returning a base64 (or plain) list of share links.
    timeout_seconds:
        Per-request timeout.
    max_retries:
        Attempts on connect errors, timeouts and 5xx responses.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 15.0,
        max_retries: int = 3,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._sleep = sleep

    async def fetch(self) -> str:
        """Return the raw response body.

        Retry schedule: 1s, 2s, 4s (base 1s, factor 2).

        Raises
        ------
        SubscriptionFetchError
            On a 4xx response, or once every attempt has failed.
        """
        last_exception: Exception | None = None

        for attempt in range(self._max_retries):
            try:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(self._url, timeout=self._timeout)

                if 400 <= response.status_code < 500:
                    raise SubscriptionFetchError(
                        f"Subscription endpoint returned {response.status_code}",
                        url=self._url,
                        status_code=response.status_code,
                    )

                response.raise_for_status()
                return response.text

            except (httpx.ConnectError, httpx.TimeoutException) as exc:
                last_exception = exc
                reason = f"unreachable ({type(exc).__name__})"
            except httpx.HTTPStatusError as exc:
                last_exception = exc
                reason = f"status {exc.response.status_code}"

            backoff = 2**attempt
            logger.warning(
                "Subscription %s (attempt %d/%d), retrying in %ds",
                reason,
                attempt + 1,
                self._max_retries,
                backoff,
                extra={"attempt": attempt + 1, "max_attempts": self._max_retries},
            )
            if attempt < self._max_retries - 1:
                await self._sleep(backoff)

        logger.error("Failed to fetch subscription after %d attempts", self._max_retries)
        raise SubscriptionFetchError(
            f"Failed to fetch subscription after {self._max_retries} attempts",
            url=self._url,
        ) from last_exception


async def load_subscription(client: SubscriptionClient, cache: SubscriptionCache) -> str:
    """Return the cached payload when fresh, otherwise fetch and cache it."""
    cached = cache.read()
    if cached is not None:
        logger.info("Using cached subscription data from %s", cache.path)
        return cached

    logger.info("Fetching new subscription data")
    payload = await client.fetch()
    cache.write(payload)
    return payload


def decode_subscription(payload: str) -> list[str]:
    """Split a subscription payload into share-link lines.

    The payload is usually base64; a body that does not decode is taken
    as plain text.
    """
    try:
        text = decode_base64(payload.strip())
    except ParseError:
        logger.debug("Subscription payload is not base64, reading it as plain text")
        text = payload
    return [line.strip() for line in text.splitlines() if line.strip()]


def _now_ms() -> float:
    return time.time() * 1000
