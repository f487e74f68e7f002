"""Weather-forecast adapter.

The forecast upstream is called directly; it needs no relay.
"""

import asyncio
import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from ..catalog import DEFAULT_LOCATIONS, LocationSpec
from ..errors import MalformedPayload
from ..records import WEATHER_UNAVAILABLE, DailyForecast, WeatherLocation
from ..retry import DIRECT_ROUTE, RetryExecutor, Sleep
from .base import BaseDataSource, Clock, DatasetKey, FetchOutcome, SourceResult

logger = logging.getLogger(__name__)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m,precipitation_probability"
DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min,precipitation_probability_max"

KMH_TO_MPH = 0.621371
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# (first code, last code, condition, icon)
WEATHER_CODES: Tuple[Tuple[int, int, str, str], ...] = (
    (0, 0, "Clear", "clear"),
    (1, 1, "Mainly Clear", "clear"),
    (2, 2, "Partly Cloudy", "partly-cloudy"),
    (3, 3, "Overcast", "cloudy"),
    (45, 48, "Foggy", "fog"),
    (51, 55, "Drizzle", "rain"),
    (56, 57, "Freezing Drizzle", "rain"),
    (61, 65, "Rain", "rain"),
    (66, 67, "Freezing Rain", "rain"),
    (71, 77, "Snow", "snow"),
    (80, 82, "Rain Showers", "rain"),
    (85, 86, "Snow Showers", "snow"),
    (95, 99, "Thunderstorm", "thunderstorm"),
)
UNKNOWN_CONDITION = ("Unknown", "unknown")


def weather_condition(code: Optional[int]) -> Tuple[str, str]:
    """Map a numeric weather code to ``(condition, icon)``."""
    if code is None:
        return UNKNOWN_CONDITION
    for first, last, condition, icon in WEATHER_CODES:
        if first <= code <= last:
            return condition, icon
    return UNKNOWN_CONDITION


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def celsius_to_fahrenheit(celsius: float) -> int:
    return round_half_up(celsius * 9 / 5 + 32)


def kmh_to_mph(speed: float) -> int:
    return round_half_up(speed * KMH_TO_MPH)


def day_name(day: str, index: int) -> str:
    if index == 0:
        return "Today"
    return DAY_NAMES[date.fromisoformat(day).weekday()]


def _at(values: Any, index: int) -> Any:
    if not isinstance(values, list) or index >= len(values):
        return None
    return values[index]


def parse_forecast(daily: Dict[str, Any]) -> List[DailyForecast]:
    forecast: List[DailyForecast] = []
    for index, day in enumerate(daily.get("time") or []):
        high = _at(daily.get("temperature_2m_max"), index)
        low = _at(daily.get("temperature_2m_min"), index)
        if high is None or low is None:
            raise MalformedPayload(f"Missing temperature range for {day}")
        condition, _ = weather_condition(_at(daily.get("weather_code"), index))
        forecast.append(DailyForecast(
            date=date.fromisoformat(day),
            day_name=day_name(day, index),
            high=celsius_to_fahrenheit(high),
            low=celsius_to_fahrenheit(low),
            condition=condition,
            precipitation_probability=int(_at(daily.get("precipitation_probability_max"), index) or 0),
        ))
    return forecast


class WeatherSource(BaseDataSource):
    """Fetch current conditions and a daily forecast per location."""

    dataset = DatasetKey.WEATHER

    def __init__(
        self,
        executor: RetryExecutor,
        locations: Sequence[LocationSpec] = DEFAULT_LOCATIONS,
        timezone_name: str = "America/Los_Angeles",
        forecast_days: int = 7,
        sleep: Optional[Sleep] = None,
        now: Optional[Clock] = None,
    ):
        super().__init__(executor, sleep=sleep, now=now)
        self.locations = tuple(locations)
        self.timezone_name = timezone_name
        self.forecast_days = forecast_days

    def forecast_url(self, location: LocationSpec) -> str:
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": CURRENT_FIELDS,
            "daily": DAILY_FIELDS,
            "timezone": self.timezone_name,
            "forecast_days": self.forecast_days,
        }
        return f"{FORECAST_URL}?{urlencode(params, safe=',/')}"

    async def fetch_all(self) -> SourceResult:
        outcomes = await asyncio.gather(*(self.fetch_one(loc) for loc in self.locations))
        return SourceResult.from_outcomes(self.dataset, outcomes)

    async def fetch_one(self, location: LocationSpec) -> FetchOutcome:
        return await self._outcome(
            location.name,
            lambda: self._fetch_location(location),
            lambda: self.fallback_record(location),
        )

    async def _fetch_location(self, location: LocationSpec) -> WeatherLocation:
        payload = await self.executor.fetch_json(self.forecast_url(location), routes=[DIRECT_ROUTE])
        record = self.parse_payload(location, payload)
        logger.info(f"Fetched weather for {location.name}: {record.temperature:.0f}F {record.condition}")
        return record

    def parse_payload(self, location: LocationSpec, payload: Any) -> WeatherLocation:
        """Build a live record from a forecast payload.

        Raises:
            MalformedPayload: if current temperature or wind speed is missing.
        """
        current = payload.get("current") if isinstance(payload, dict) else None
        if not isinstance(current, dict):
            raise MalformedPayload(f"No current conditions for {location.name}")
        temperature = current.get("temperature_2m")
        wind_speed = current.get("wind_speed_10m")
        if temperature is None or wind_speed is None:
            raise MalformedPayload(f"Incomplete current conditions for {location.name}")

        code = current.get("weather_code")
        code = None if code is None else int(code)
        condition, icon = weather_condition(code)
        humidity = current.get("relative_humidity_2m")
        precipitation = current.get("precipitation_probability")
        daily = payload.get("daily")

        return WeatherLocation(
            location=location.name,
            temperature=float(celsius_to_fahrenheit(temperature)),
            wind_speed=float(kmh_to_mph(wind_speed)),
            humidity=None if humidity is None else float(humidity),
            precipitation_probability=None if precipitation is None else float(precipitation),
            condition=condition,
            icon=icon,
            weather_code=code,
            time=self._now(),
            forecast=tuple(parse_forecast(daily)) if isinstance(daily, dict) else (),
        )

    def fallback_record(self, location: LocationSpec) -> WeatherLocation:
        return WeatherLocation(
            location=location.name,
            temperature=0.0,
            wind_speed=0.0,
            humidity=None,
            precipitation_probability=None,
            condition=WEATHER_UNAVAILABLE,
            icon="unknown",
            weather_code=None,
            time=self._now(),
            is_fallback=True,
        )

    def fallback_records(self) -> Tuple[WeatherLocation, ...]:
        return tuple(self.fallback_record(loc) for loc in self.locations)
