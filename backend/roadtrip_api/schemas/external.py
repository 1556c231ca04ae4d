"""
Road Trip Planner Backend — External Data Schemas
==================================================

What:  Stable output shapes of the weather, places and route adapters, plus
       the route request body.
Why:   Provider payloads are large and vendor-specific; clients only ever
       see these shapes, so a provider can be swapped without a client change.

Naming:
    Weather and places fields keep snake_case (`temp_c`, `opening_hours`)
    because that is the established shape the frontend consumes; route
    fields are camelCase like the rest of the API.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from roadtrip_api.schemas.common import CamelModel


# ── Weather ───────────────────────────────────────────────────────────────
class CurrentWeather(BaseModel):
    location: str
    region: str = ""
    country: str = ""
    temp_c: Optional[float] = None
    temp_f: Optional[float] = None
    condition: str = ""
    icon: str = ""
    humidity: Optional[float] = None
    wind_kph: Optional[float] = None
    feels_like_c: Optional[float] = None
    last_updated: str = ""


class ForecastDayDetail(BaseModel):
    maxtemp_c: Optional[float] = None
    mintemp_c: Optional[float] = None
    condition: str = ""
    icon: str = ""
    chance_of_rain: Optional[float] = None


class ForecastDay(BaseModel):
    date: str
    day: ForecastDayDetail


class WeatherForecast(BaseModel):
    location: str
    country: str = ""
    days: int
    current: Optional[CurrentWeather] = None
    forecast: List[ForecastDay]


# ── Places ────────────────────────────────────────────────────────────────
class Place(BaseModel):
    id: Optional[str] = None
    name: str
    address: str = ""
    category: str = "Attraction"
    coordinates: List[float] = Field(description="[lon, lat]")
    distance: Optional[float] = None
    rating: Optional[float] = None
    opening_hours: Optional[Any] = None


class NearbyPlaces(BaseModel):
    location: str
    coordinates: List[float] = Field(description="[lon, lat] of the geocoded location")
    places: List[Place]


# ── Route ─────────────────────────────────────────────────────────────────
class RouteRequest(CamelModel):
    start_location_name: Optional[str] = None
    end_location_name: Optional[str] = None
    profile: str = "driving-car"


class RouteLocation(CamelModel):
    name: str
    coordinates: List[float] = Field(description="[lon, lat]")


class RouteInstruction(CamelModel):
    instruction: str
    distance: float = Field(description="Kilometres, 2 decimals")
    duration: float = Field(description="Minutes, 1 decimal")


class RouteResult(CamelModel):
    distance: float = Field(description="Kilometres, 2 decimals")
    duration: float = Field(description="Hours, 2 decimals")
    polyline: List[List[float]] = Field(description="[[lat, lon], ...]")
    instructions: List[RouteInstruction]
    start_location: RouteLocation
    end_location: RouteLocation
