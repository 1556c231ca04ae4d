"""
Road Trip Planner Backend — Upstream HTTP Adapter Base
=======================================================

What:  Shared httpx plumbing for the weather, places and directions adapters.
Why:   All three call a third-party JSON API with a bounded timeout and must
       translate transport failures the same way.
How:   One AsyncClient per call (with an injectable transport for tests).
       Single attempt, no retries: a slow provider costs at most its timeout.

Error Translation:
    httpx.TimeoutException   → UpstreamTimeoutError (408)
    HTTP 4xx/5xx from vendor → UpstreamServiceError(status_code) (500);
                               subclasses map vendor "not found" codes to 404
    other transport errors   → UpstreamServiceError (500)
    non-JSON body            → UpstreamServiceError (500)
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from roadtrip_api.exceptions import (
    ConfigurationError,
    UpstreamServiceError,
    UpstreamTimeoutError,
)
from roadtrip_api.services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class UpstreamAdapter:
    """
    Base class for read-through caching adapters.

    Subclasses set `service_name` and implement the public lookups on top
    of `_request_json()` and `self.cache`.
    """

    service_name = "Upstream"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        timeout: float,
        cache_ttl: float,
        clock: Callable[[], float] = time.monotonic,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.timeout = timeout
        self.cache: TTLCache[Any] = TTLCache(cache_ttl, clock=clock)
        self._transport = transport

    def _configured_key(self, settings_value: str) -> str:
        """Explicit constructor key wins; otherwise the current settings value."""
        key = self._api_key if self._api_key is not None else settings_value
        if not key:
            raise ConfigurationError(
                message=f"{self.service_name} API key not configured",
                context={"service": self.service_name},
            )
        return key

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        timeout = timeout or self.timeout
        url = f"{self.base_url}{path}"
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.request(
                    method, url, params=params, json=json, headers=headers
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.warning("%s request timed out after %.1fs: %s", self.service_name, timeout, path)
            raise UpstreamTimeoutError(service=self.service_name, timeout=timeout) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("%s returned HTTP %d for %s", self.service_name, status, path)
            raise UpstreamServiceError(
                message=f"Failed to fetch data from {self.service_name.lower()} service",
                status_code=status,
                context={"service": self.service_name, "path": path},
            ) from e
        except httpx.HTTPError as e:
            logger.error("%s request failed: %s", self.service_name, str(e))
            raise UpstreamServiceError(
                message=f"Failed to fetch data from {self.service_name.lower()} service",
                context={"service": self.service_name, "error": type(e).__name__},
            ) from e
        except ValueError as e:
            logger.error("%s returned a non-JSON body for %s", self.service_name, path)
            raise UpstreamServiceError(
                message=f"Invalid response from {self.service_name.lower()} service",
                context={"service": self.service_name},
            ) from e

        logger.info(
            "%s %s %s completed in %.0fms",
            self.service_name,
            method,
            path,
            (time.perf_counter() - start_time) * 1000,
        )
        return payload
