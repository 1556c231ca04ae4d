"""
Road Trip Planner Backend — Directions Adapter
===============================================

What:  Driving (or cycling/walking) route between two place names, via
       OpenRouteService.
How:   1. Geocode both names concurrently (GET /geocode/search, size=1)
       2. POST /v2/directions/{profile} with both coordinates
       3. Decode the encoded polyline geometry with `polyline`; if decoding
          fails, fall back to a straight two-point path [start, end]
       4. Convert units: km (2 dp), hours (2 dp), step minutes (1 dp)
       Results are cached for one hour per (start, end, profile).

Timeouts:
    Geocoding uses the lookup timeout (5s); route computation the longer
    route timeout (10s).
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import polyline

from roadtrip_api.config import settings
from roadtrip_api.exceptions import NotFoundError, UpstreamServiceError, ValidationError
from roadtrip_api.schemas.external import RouteInstruction, RouteLocation, RouteResult
from roadtrip_api.services.upstream import UpstreamAdapter

logger = logging.getLogger(__name__)

PROFILES = {
    "driving-car",
    "driving-hgv",
    "cycling-regular",
    "cycling-road",
    "cycling-mountain",
    "cycling-electric",
    "foot-walking",
    "foot-hiking",
    "wheelchair",
}
DEFAULT_PROFILE = "driving-car"


def decode_geometry(geometry: Any, start: List[float], end: List[float]) -> List[List[float]]:
    """
    Decodes an encoded polyline into [[lat, lon], ...].

    `start`/`end` are [lon, lat] (provider order); the fallback path flips
    them to [lat, lon] to match the decoded format.
    """
    try:
        points = polyline.decode(geometry)
        if not points:
            raise ValueError("empty geometry")
        return [[lat, lon] for lat, lon in points]
    except (TypeError, ValueError, IndexError) as e:
        logger.warning("Polyline decode failed (%s); using straight-line fallback", e)
        return [[start[1], start[0]], [end[1], end[0]]]


class DirectionsService(UpstreamAdapter):
    service_name = "Route"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        route_timeout: Optional[float] = None,
        cache_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=base_url or settings.ors_base_url,
            api_key=api_key,
            timeout=timeout or settings.upstream_lookup_timeout,
            cache_ttl=settings.route_cache_ttl if cache_ttl is None else cache_ttl,
            clock=clock,
            transport=transport,
        )
        self.route_timeout = route_timeout or settings.upstream_route_timeout

    async def geocode(self, name: str, api_key: str) -> List[float]:
        """Returns [lon, lat] for the best match of `name`."""
        data = await self._request_json(
            "GET",
            "/geocode/search",
            params={"api_key": api_key, "text": name, "size": 1},
        )
        features = data.get("features") or []
        if not features:
            raise NotFoundError(
                resource="location", message=f"Could not find coordinates for {name}"
            )
        return list(features[0]["geometry"]["coordinates"])

    async def route(
        self,
        start_name: Optional[str],
        end_name: Optional[str],
        profile: Optional[str] = None,
    ) -> RouteResult:
        """
        Raises:
            ValidationError:      a name is missing, both names are the same,
                                  or the profile is unknown
            ConfigurationError:   ORS_API_KEY missing
            NotFoundError:        a name could not be geocoded, or no route exists
            UpstreamTimeoutError: provider timeout
        """
        start_name = (start_name or "").strip()
        end_name = (end_name or "").strip()
        profile = (profile or DEFAULT_PROFILE).strip()
        if not start_name or not end_name:
            raise ValidationError("Start and end location names are required")
        if start_name.lower() == end_name.lower():
            raise ValidationError("Start and end locations cannot be the same")
        if profile not in PROFILES:
            raise ValidationError(
                f"Unsupported profile '{profile}'. Must be one of: {', '.join(sorted(PROFILES))}",
                field="profile",
            )

        key = self.cache.make_key(start_name, end_name, profile)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Route cache hit: %s", key)
            return cached

        api_key = self._configured_key(settings.ors_api_key)

        start_coords, end_coords = await asyncio.gather(
            self.geocode(start_name, api_key),
            self.geocode(end_name, api_key),
        )

        try:
            data = await self._request_json(
                "POST",
                f"/v2/directions/{profile}",
                json={
                    "coordinates": [start_coords, end_coords],
                    "format": "json",
                    "instructions": True,
                    "geometry": True,
                },
                headers={"Authorization": api_key},
                timeout=self.route_timeout,
            )
        except UpstreamServiceError as e:
            if e.upstream_status == 404:
                raise NotFoundError(
                    resource="route",
                    message="Route could not be calculated between these points.",
                ) from e
            raise

        routes = data.get("routes") or []
        if not routes:
            raise NotFoundError(
                resource="route", message="Route could not be calculated between these points."
            )
        route = routes[0]
        summary: Dict[str, Any] = route.get("summary") or {}
        segments = route.get("segments") or []
        steps = segments[0].get("steps", []) if segments else []

        result = RouteResult(
            distance=round(summary.get("distance", 0) / 1000, 2),
            duration=round(summary.get("duration", 0) / 3600, 2),
            polyline=decode_geometry(route.get("geometry"), start_coords, end_coords),
            instructions=[
                RouteInstruction(
                    instruction=step.get("instruction", ""),
                    distance=round(step.get("distance", 0) / 1000, 2),
                    duration=round(step.get("duration", 0) / 60, 1),
                )
                for step in steps
            ],
            start_location=RouteLocation(name=start_name, coordinates=start_coords),
            end_location=RouteLocation(name=end_name, coordinates=end_coords),
        )
        self.cache.set(key, result)
        return result


# ── Singleton Instance ────────────────────────────────────────────────────
directions_service = DirectionsService()


def get_directions_service() -> DirectionsService:
    return directions_service
