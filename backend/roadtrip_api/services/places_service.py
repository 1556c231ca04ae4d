"""
Road Trip Planner Backend — Nearby Places Adapter
==================================================

What:  Points of interest around a named location, via Geoapify.
How:   1. Geocode the name (GET /v1/geocode/search, limit=1)
       2. Query places in a circle around it (GET /v2/places), biased by
          proximity, limited to attractions, entertainment, restaurants and
          accommodation
       3. Drop unnamed places; cache the result for 30 minutes
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from roadtrip_api.config import settings
from roadtrip_api.exceptions import NotFoundError, ValidationError
from roadtrip_api.schemas.external import NearbyPlaces, Place
from roadtrip_api.services.upstream import UpstreamAdapter

logger = logging.getLogger(__name__)

PLACE_CATEGORIES = "tourism.attraction,entertainment,catering.restaurant,accommodation"
DEFAULT_RADIUS = 5000
DEFAULT_LIMIT = 6
MAX_RADIUS = 50_000
MAX_LIMIT = 50


def _category_of(properties: Dict[str, Any]) -> str:
    categories: List[str] = properties.get("categories") or []
    for category in categories:
        if category.startswith("tourism"):
            return category
    return categories[0] if categories else "Attraction"


def _place_from_feature(feature: Dict[str, Any]) -> Optional[Place]:
    properties = feature.get("properties") or {}
    name = properties.get("name")
    if not name:
        return None
    return Place(
        id=properties.get("place_id"),
        name=name,
        address=properties.get("address_line2") or properties.get("address_line1") or "",
        category=_category_of(properties),
        coordinates=(feature.get("geometry") or {}).get("coordinates") or [],
        distance=properties.get("distance"),
        rating=properties.get("rating"),
        opening_hours=properties.get("opening_hours"),
    )


class PlacesService(UpstreamAdapter):
    service_name = "Places"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=base_url or settings.geoapify_base_url,
            api_key=api_key,
            timeout=timeout or settings.upstream_lookup_timeout,
            cache_ttl=settings.places_cache_ttl if cache_ttl is None else cache_ttl,
            clock=clock,
            transport=transport,
        )

    async def nearby(
        self,
        location: Optional[str],
        radius: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> NearbyPlaces:
        """
        Raises:
            ValidationError:      empty location, radius/limit out of range
            ConfigurationError:   GEOAPIFY_API_KEY missing
            NotFoundError:        the location could not be geocoded
            UpstreamTimeoutError: provider timeout
        """
        if not location or not location.strip():
            raise ValidationError("Location is required", field="location")
        radius = DEFAULT_RADIUS if radius is None else radius
        limit = DEFAULT_LIMIT if limit is None else limit
        if not 1 <= radius <= MAX_RADIUS:
            raise ValidationError(f"Radius must be between 1 and {MAX_RADIUS} meters", field="radius")
        if not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}", field="limit")

        key = self.cache.make_key(location, radius, limit)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Places cache hit: %s", key)
            return cached

        api_key = self._configured_key(settings.geoapify_api_key)

        geo = await self._request_json(
            "GET",
            "/v1/geocode/search",
            params={"text": location.strip(), "apiKey": api_key, "limit": 1},
        )
        features = geo.get("features") or []
        if not features:
            raise NotFoundError(
                resource="location", message=f"Could not find location: {location.strip()}"
            )
        properties = features[0].get("properties") or {}
        lon, lat = properties.get("lon"), properties.get("lat")

        data = await self._request_json(
            "GET",
            "/v2/places",
            params={
                "categories": PLACE_CATEGORIES,
                "filter": f"circle:{lon},{lat},{radius}",
                "bias": f"proximity:{lon},{lat}",
                "limit": limit,
                "apiKey": api_key,
            },
        )
        places = [
            place
            for place in (_place_from_feature(f) for f in data.get("features") or [])
            if place is not None
        ]

        result = NearbyPlaces(
            location=properties.get("formatted") or location.strip(),
            coordinates=[lon, lat],
            places=places,
        )
        self.cache.set(key, result)
        return result


# ── Singleton Instance ────────────────────────────────────────────────────
places_service = PlacesService()


def get_places_service() -> PlacesService:
    return places_service
