"""
Road Trip Planner Backend — Weather Adapter
============================================

What:  Current conditions and multi-day forecasts from WeatherAPI.com.
How:   Read-through TTL cache (default 10 minutes) keyed by the normalized
       location (and day count for forecasts). Provider HTTP 400 means the
       location could not be resolved and becomes NotFoundError.

Endpoints used:
    GET {base}/current.json?key=&q=&aqi=no
    GET {base}/forecast.json?key=&q=&days=&aqi=no&alerts=no
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from roadtrip_api.config import settings
from roadtrip_api.exceptions import NotFoundError, UpstreamServiceError, ValidationError
from roadtrip_api.schemas.external import (
    CurrentWeather,
    ForecastDay,
    ForecastDayDetail,
    WeatherForecast,
)
from roadtrip_api.services.upstream import UpstreamAdapter

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS = 7
DEFAULT_FORECAST_DAYS = 3


def _current_from_payload(data: Dict[str, Any]) -> CurrentWeather:
    location = data.get("location") or {}
    current = data.get("current") or {}
    condition = current.get("condition") or {}
    return CurrentWeather(
        location=location.get("name", ""),
        region=location.get("region", ""),
        country=location.get("country", ""),
        temp_c=current.get("temp_c"),
        temp_f=current.get("temp_f"),
        condition=condition.get("text", ""),
        icon=condition.get("icon", ""),
        humidity=current.get("humidity"),
        wind_kph=current.get("wind_kph"),
        feels_like_c=current.get("feelslike_c"),
        last_updated=current.get("last_updated", ""),
    )


class WeatherService(UpstreamAdapter):
    service_name = "Weather"

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
            base_url=base_url or settings.weather_api_base_url,
            api_key=api_key,
            timeout=timeout or settings.upstream_lookup_timeout,
            cache_ttl=settings.weather_cache_ttl if cache_ttl is None else cache_ttl,
            clock=clock,
            transport=transport,
        )

    async def _fetch(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return await self._request_json("GET", path, params=params)
        except UpstreamServiceError as e:
            if e.upstream_status == 400:
                raise NotFoundError(resource="location", message="Location not found") from e
            raise

    async def current(self, location: Optional[str]) -> CurrentWeather:
        """
        Raises:
            ValidationError:      empty location
            ConfigurationError:   WEATHER_API_KEY missing (checked on cache miss)
            NotFoundError:        provider could not resolve the location
            UpstreamTimeoutError: provider did not answer within the timeout
        """
        if not location or not location.strip():
            raise ValidationError("Location query parameter is required", field="location")

        key = self.cache.make_key(location)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Weather cache hit: %s", key)
            return cached

        api_key = self._configured_key(settings.weather_api_key)
        data = await self._fetch(
            "/current.json", {"key": api_key, "q": location.strip(), "aqi": "no"}
        )
        result = _current_from_payload(data)
        self.cache.set(key, result)
        return result

    async def forecast(
        self, location: Optional[str], days: Optional[int] = None
    ) -> WeatherForecast:
        if not location or not location.strip():
            raise ValidationError("Location is required", field="location")
        days = days or DEFAULT_FORECAST_DAYS
        if days > MAX_FORECAST_DAYS:
            raise ValidationError(
                f"Forecast limited to {MAX_FORECAST_DAYS} days", field="days"
            )
        if days < 1:
            raise ValidationError("Days must be at least 1", field="days")

        key = self.cache.make_key(location, days)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Forecast cache hit: %s", key)
            return cached

        api_key = self._configured_key(settings.weather_api_key)
        data = await self._fetch(
            "/forecast.json",
            {"key": api_key, "q": location.strip(), "days": days, "aqi": "no", "alerts": "no"},
        )

        forecast_days = []
        for item in (data.get("forecast") or {}).get("forecastday", []):
            day = item.get("day") or {}
            condition = day.get("condition") or {}
            forecast_days.append(
                ForecastDay(
                    date=item.get("date", ""),
                    day=ForecastDayDetail(
                        maxtemp_c=day.get("maxtemp_c"),
                        mintemp_c=day.get("mintemp_c"),
                        condition=condition.get("text", ""),
                        icon=condition.get("icon", ""),
                        chance_of_rain=day.get("daily_chance_of_rain"),
                    ),
                )
            )

        location_data = data.get("location") or {}
        result = WeatherForecast(
            location=location_data.get("name", ""),
            country=location_data.get("country", ""),
            days=days,
            current=_current_from_payload(data) if data.get("current") else None,
            forecast=forecast_days,
        )
        self.cache.set(key, result)
        return result


# ── Singleton Instance ────────────────────────────────────────────────────
weather_service = WeatherService()


def get_weather_service() -> WeatherService:
    return weather_service
