"""
Road Trip Planner Backend — External Data Route Handlers
=========================================================

What:  GET /api/weather, GET /api/weather/forecast, GET /api/places (auth),
       POST /api/route (auth).
How:   Thin wrappers over the cached provider adapters. The adapters are
       injected with Depends(get_*_service) so tests can substitute ones
       backed by httpx.MockTransport.

Errors (via global handlers):
    400 missing/invalid parameters, 404 unknown location or no route,
    408 provider timeout, 500 missing API key or provider failure.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from roadtrip_api.dependencies import get_current_user
from roadtrip_api.models.user import User
from roadtrip_api.schemas.common import ErrorResponse, validate_payload
from roadtrip_api.schemas.external import (
    CurrentWeather,
    NearbyPlaces,
    RouteRequest,
    RouteResult,
    WeatherForecast,
)
from roadtrip_api.services.directions_service import DirectionsService, get_directions_service
from roadtrip_api.services.places_service import PlacesService, get_places_service
from roadtrip_api.services.weather_service import WeatherService, get_weather_service

router = APIRouter(prefix="/api", tags=["External Data"])

UPSTREAM_ERRORS = {
    400: {"description": "Missing or invalid parameters", "model": ErrorResponse},
    404: {"description": "Location or route not found", "model": ErrorResponse},
    408: {"description": "Provider timeout", "model": ErrorResponse},
    500: {"description": "Provider error or missing API key", "model": ErrorResponse},
}


@router.get(
    "/weather",
    response_model=CurrentWeather,
    responses=UPSTREAM_ERRORS,
    summary="Current weather for a location (cached 10 minutes)",
)
async def current_weather(
    location: Optional[str] = Query(default=None),
    weather: WeatherService = Depends(get_weather_service),
) -> CurrentWeather:
    return await weather.current(location)


@router.get(
    "/weather/forecast",
    response_model=WeatherForecast,
    responses=UPSTREAM_ERRORS,
    summary="Daily forecast, 1-7 days (default 3)",
)
async def weather_forecast(
    location: Optional[str] = Query(default=None),
    days: Optional[int] = Query(default=None),
    weather: WeatherService = Depends(get_weather_service),
) -> WeatherForecast:
    return await weather.forecast(location, days)


@router.get(
    "/places",
    response_model=NearbyPlaces,
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}, **UPSTREAM_ERRORS},
    summary="Tourist attractions near a location",
)
async def nearby_places(
    location: Optional[str] = Query(default=None),
    radius: Optional[int] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    _: User = Depends(get_current_user),
    places: PlacesService = Depends(get_places_service),
) -> NearbyPlaces:
    return await places.nearby(location, radius, limit)


@router.post(
    "/route",
    response_model=RouteResult,
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}, **UPSTREAM_ERRORS},
    summary="Driving/cycling/walking route between two place names",
)
async def compute_route(
    body: Any = Body(default=None),
    _: User = Depends(get_current_user),
    directions: DirectionsService = Depends(get_directions_service),
) -> RouteResult:
    request = validate_payload(RouteRequest, body)
    return await directions.route(
        request.start_location_name, request.end_location_name, request.profile
    )
