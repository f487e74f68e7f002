"""Configuration management and validation service."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
from dataclasses import dataclass, field

import yaml

from .catalog import (
    DEFAULT_BLOCKED_SOURCES,
    DEFAULT_INDICATORS,
    DEFAULT_INSTRUMENTS,
    DEFAULT_LOCATIONS,
    DEFAULT_NEWS_KEYWORDS,
    DEFAULT_NEWS_TICKERS,
    DEFAULT_RELAYS,
    DEFAULT_SUPPLIERS,
    DEFAULT_TOPIC_FEEDS,
    IndicatorSpec,
    InstrumentSpec,
    LocationSpec,
    SupplierSpec,
)
from .history import HistoryParameters
from .retry import RetryPolicy, RouteVariant, build_routes

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

PYTHON_TYPES = {
    "str": str,
    "int": int,
    "float": (int, float),
    "bool": bool,
    "list": list,
    "dict": dict,
}


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    path: str
    message: str


class ConfigValidationException(Exception):
    """Raised when config validation fails."""

    def __init__(self, errors: List[ConfigValidationError]):
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


def _value(kind: str, **rules: Any) -> Dict[str, Any]:
    return {"type": kind, **rules}


def _section(**properties: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "dict", "properties": properties}


def _catalog_section(**properties: Dict[str, Any]) -> Dict[str, Any]:
    return _section(
        request_pause_seconds=_value("float", min=0),
        catalog=_value("list", items="dict"),
        **properties,
    )


# Every key is optional; absent keys take the AcquisitionSettings defaults
CONFIG_SCHEMA = {
    "server": _section(
        host=_value("str"),
        port=_value("int", min=1, max=65535),
        debug=_value("bool"),
    ),
    "database": _section(url=_value("str")),
    "logging": _section(
        level=_value("str", options=LOG_LEVELS),
        format=_value("str"),
        fetch_log_dir=_value("str"),
    ),
    "retry": _section(
        max_attempts=_value("int", min=1, max=10),
        initial_backoff_seconds=_value("float", min=0),
        timeout_seconds=_value("float", min=0.1),
    ),
    "routes": _section(
        direct=_value("bool"),
        relays=_value("list", items="str"),
    ),
    "instruments": _catalog_section(),
    "suppliers": _catalog_section(
        batch_size=_value("int", min=1),
        batch_pause_seconds=_value("float", min=0),
    ),
    "indicators": _catalog_section(),
    "history": _section(
        days=_value("int", min=1),
        floor_ratio=_value("float", min=0, max=1),
        trading_days_per_year=_value("int", min=1),
    ),
    "news": _section(
        tickers=_value("list", items="str"),
        topic_feeds=_value("list", items="str"),
        blocked_sources=_value("list", items="str"),
        keywords=_value("list", items="str"),
        max_articles=_value("int", min=1),
        ticker_article_limit=_value("int", min=1),
    ),
    "weather": _section(
        locations=_value("list", items="dict"),
        timezone=_value("str"),
        forecast_days=_value("int", min=1, max=16),
    ),
}


@dataclass(frozen=True)
class NewsSettings:
    tickers: Tuple[str, ...] = DEFAULT_NEWS_TICKERS
    topic_feeds: Tuple[str, ...] = DEFAULT_TOPIC_FEEDS
    blocked_sources: Tuple[str, ...] = DEFAULT_BLOCKED_SOURCES
    keywords: Tuple[str, ...] = DEFAULT_NEWS_KEYWORDS
    max_articles: int = 25
    ticker_article_limit: int = 5


@dataclass(frozen=True)
class WeatherSettings:
    locations: Tuple[LocationSpec, ...] = DEFAULT_LOCATIONS
    timezone: str = "America/Los_Angeles"
    forecast_days: int = 7


@dataclass(frozen=True)
class AcquisitionSettings:
    """Immutable settings tree handed to the executor, adapters and orchestrator."""
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    routes: Tuple[RouteVariant, ...] = field(default_factory=lambda: tuple(build_routes(True, DEFAULT_RELAYS)))
    instruments: Tuple[InstrumentSpec, ...] = DEFAULT_INSTRUMENTS
    instrument_pause_seconds: float = 0.2
    suppliers: Tuple[SupplierSpec, ...] = DEFAULT_SUPPLIERS
    supplier_batch_size: int = 3
    supplier_batch_pause_seconds: float = 1.0
    indicators: Tuple[IndicatorSpec, ...] = DEFAULT_INDICATORS
    indicator_pause_seconds: float = 0.2
    history: HistoryParameters = field(default_factory=HistoryParameters)
    news: NewsSettings = field(default_factory=NewsSettings)
    weather: WeatherSettings = field(default_factory=WeatherSettings)
    fetch_log_dir: Optional[str] = None


def _child(path: str, key: Any) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else str(key)


def check_value(value: Any, rule: Dict[str, Any], path: str) -> Iterator[ConfigValidationError]:
    """Yield every way ``value`` breaks ``rule`` (recursing into sections and lists)."""
    kind = rule["type"]
    if not isinstance(value, PYTHON_TYPES[kind]) or (kind in ("int", "float") and isinstance(value, bool)):
        yield ConfigValidationError(path, f"Expected {kind}, got {type(value).__name__}")
        return

    if kind == "dict" and "properties" in rule:
        properties = rule["properties"]
        for key in value:
            if key not in properties:
                yield ConfigValidationError(_child(path, key), f"Unknown configuration key '{key}'")
        for key, child_rule in properties.items():
            if key in value:
                yield from check_value(value[key], child_rule, _child(path, key))

    elif kind == "list" and "items" in rule:
        for index, item in enumerate(value):
            yield from check_value(item, {"type": rule["items"]}, _child(path, index))

    if "min" in rule and value < rule["min"]:
        yield ConfigValidationError(path, f"Value {value} is below minimum {rule['min']}")
    if "max" in rule and value > rule["max"]:
        yield ConfigValidationError(path, f"Value {value} is above maximum {rule['max']}")
    if "options" in rule and value not in rule["options"]:
        yield ConfigValidationError(path, f"Value '{value}' not in allowed options: {rule['options']}")


class ConfigService:
    """Service for loading and validating configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize config service.

        Args:
            config_path: Path to config file. If None, uses backend/config.yaml.
        """
        if config_path is None:
            backend_dir = Path(__file__).parent.parent.parent
            config_path = str(backend_dir / "config.yaml")

        self.config_path = config_path
        self._config: Dict[str, Any] = {}

    def load_and_validate(self) -> Dict[str, Any]:
        """Load and validate the configuration file.

        A missing file is not an error: built-in defaults apply.

        Returns:
            Validated configuration dictionary.

        Raises:
            ConfigValidationException: If validation fails.
        """
        if not os.path.exists(self.config_path):
            logger.warning(f"Config file not found at {self.config_path}, using defaults")
            self._config = {}
            return self._config

        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationException([ConfigValidationError("", f"Invalid YAML syntax: {e}")])

        if config is None:
            config = {}

        errors = list(check_value(config, {"type": "dict", "properties": CONFIG_SCHEMA}, ""))
        if errors:
            raise ConfigValidationException(errors)

        self._config = config
        logger.info(f"Configuration loaded and validated from {self.config_path}")
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: Dot-notation key (e.g., "retry.max_attempts")
            default: Default value if not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def acquisition_settings(self) -> AcquisitionSettings:
        """Materialize the loaded configuration into an ``AcquisitionSettings`` tree.

        Raises:
            ConfigValidationException: If a catalog entry has unknown or missing fields.
        """
        defaults = AcquisitionSettings()
        default_news = defaults.news
        default_weather = defaults.weather
        default_history = defaults.history
        default_retry = defaults.retry

        return AcquisitionSettings(
            retry=RetryPolicy(
                max_attempts=self.get("retry.max_attempts", default_retry.max_attempts),
                initial_backoff_seconds=float(
                    self.get("retry.initial_backoff_seconds", default_retry.initial_backoff_seconds)
                ),
                timeout_seconds=float(self.get("retry.timeout_seconds", default_retry.timeout_seconds)),
            ),
            routes=self._routes(),
            instruments=self._catalog("instruments.catalog", InstrumentSpec, defaults.instruments),
            instrument_pause_seconds=float(
                self.get("instruments.request_pause_seconds", defaults.instrument_pause_seconds)
            ),
            suppliers=self._catalog("suppliers.catalog", SupplierSpec, defaults.suppliers),
            supplier_batch_size=self.get("suppliers.batch_size", defaults.supplier_batch_size),
            supplier_batch_pause_seconds=float(
                self.get("suppliers.batch_pause_seconds", defaults.supplier_batch_pause_seconds)
            ),
            indicators=self._catalog("indicators.catalog", IndicatorSpec, defaults.indicators),
            indicator_pause_seconds=float(
                self.get("indicators.request_pause_seconds", defaults.indicator_pause_seconds)
            ),
            history=HistoryParameters(
                days=self.get("history.days", default_history.days),
                floor_ratio=float(self.get("history.floor_ratio", default_history.floor_ratio)),
                trading_days_per_year=self.get(
                    "history.trading_days_per_year", default_history.trading_days_per_year
                ),
            ),
            news=NewsSettings(
                tickers=tuple(self.get("news.tickers", default_news.tickers)),
                topic_feeds=tuple(self.get("news.topic_feeds", default_news.topic_feeds)),
                blocked_sources=tuple(self.get("news.blocked_sources", default_news.blocked_sources)),
                keywords=tuple(self.get("news.keywords", default_news.keywords)),
                max_articles=self.get("news.max_articles", default_news.max_articles),
                ticker_article_limit=self.get("news.ticker_article_limit", default_news.ticker_article_limit),
            ),
            weather=WeatherSettings(
                locations=self._catalog("weather.locations", LocationSpec, default_weather.locations),
                timezone=self.get("weather.timezone", default_weather.timezone),
                forecast_days=self.get("weather.forecast_days", default_weather.forecast_days),
            ),
            fetch_log_dir=self.get("logging.fetch_log_dir"),
        )

    def _routes(self) -> Tuple[RouteVariant, ...]:
        try:
            routes = build_routes(
                direct=self.get("routes.direct", True),
                relays=self.get("routes.relays", list(DEFAULT_RELAYS)),
            )
        except ValueError as e:
            raise ConfigValidationException([ConfigValidationError(path="routes.relays", message=str(e))])
        if not routes:
            raise ConfigValidationException([
                ConfigValidationError(path="routes", message="At least one route must be enabled")
            ])
        return tuple(routes)

    def _catalog(self, key: str, spec_cls, default: Tuple[Any, ...]) -> Tuple[Any, ...]:
        entries = self.get(key)
        if entries is None:
            return default
        specs = []
        errors: List[ConfigValidationError] = []
        for index, entry in enumerate(entries):
            try:
                specs.append(spec_cls(**entry))
            except TypeError as e:
                errors.append(ConfigValidationError(path=f"{key}[{index}]", message=str(e)))
        if errors:
            raise ConfigValidationException(errors)
        return tuple(specs)


# Global config service instance
config_service = ConfigService()
