"""Tests for configuration loading and validation."""

import pytest

from market_intel.services.catalog import DEFAULT_INSTRUMENTS, LocationSpec
from market_intel.services.config import ConfigService, ConfigValidationException


def write_config(tmp_path, text: str) -> ConfigService:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return ConfigService(str(path))


def test_missing_file_uses_defaults(tmp_path):
    service = ConfigService(str(tmp_path / "absent.yaml"))

    assert service.load_and_validate() == {}
    settings = service.acquisition_settings()
    assert settings.retry.max_attempts == 3
    assert settings.retry.initial_backoff_seconds == 1.0
    assert settings.retry.timeout_seconds == 10.0
    assert settings.instruments == DEFAULT_INSTRUMENTS
    assert settings.supplier_batch_size == 3
    assert settings.routes[0].name == "direct"
    assert settings.fetch_log_dir is None


def test_values_override_defaults(tmp_path):
    service = write_config(tmp_path, """
retry:
  max_attempts: 2
  timeout_seconds: 5
routes:
  direct: false
  relays:
    - "https://relay.test/raw?url={url}"
weather:
  timezone: "UTC"
  locations:
    - {name: "Oxnard", latitude: 34.1975, longitude: -119.1771}
logging:
  level: DEBUG
  fetch_log_dir: "/tmp/fetches"
""")

    service.load_and_validate()
    settings = service.acquisition_settings()

    assert settings.retry.max_attempts == 2
    assert settings.retry.timeout_seconds == 5.0
    assert [r.name for r in settings.routes] == ["relay-1"]
    assert settings.routes[0].wrap("https://a.test/x") == "https://relay.test/raw?url=https%3A%2F%2Fa.test%2Fx"
    assert settings.weather.timezone == "UTC"
    assert settings.weather.locations == (LocationSpec("Oxnard", 34.1975, -119.1771),)
    assert settings.fetch_log_dir == "/tmp/fetches"
    assert service.get("logging.level") == "DEBUG"
    assert service.get("logging.nothing", "fallback") == "fallback"


@pytest.mark.parametrize("text,path", [
    ("retry:\n  max_attempts: 0\n", "retry.max_attempts"),
    ("retry:\n  timeout_seconds: fast\n", "retry.timeout_seconds"),
    ("logging:\n  level: LOUD\n", "logging.level"),
    ("routes:\n  relays: [1, 2]\n", "routes.relays[0]"),
    ("surprise: true\n", "surprise"),
    ("news:\n  max_articles: -1\n", "news.max_articles"),
])
def test_invalid_values_are_rejected(tmp_path, text, path):
    service = write_config(tmp_path, text)

    with pytest.raises(ConfigValidationException) as exc_info:
        service.load_and_validate()

    assert path in [error.path for error in exc_info.value.errors]


def test_invalid_yaml(tmp_path):
    service = write_config(tmp_path, "retry: [unclosed\n")

    with pytest.raises(ConfigValidationException):
        service.load_and_validate()


def test_non_mapping_root(tmp_path):
    service = write_config(tmp_path, "- just\n- a list\n")

    with pytest.raises(ConfigValidationException):
        service.load_and_validate()


@pytest.mark.parametrize("text,path", [
    ("routes:\n  direct: false\n  relays: []\n", "routes"),
    ("routes:\n  relays: ['https://relay.test/raw']\n", "routes.relays"),
])
def test_unusable_routes(tmp_path, text, path):
    service = write_config(tmp_path, text)
    service.load_and_validate()

    with pytest.raises(ConfigValidationException) as exc_info:
        service.acquisition_settings()

    assert exc_info.value.errors[0].path == path


def test_catalog_entry_with_unknown_field(tmp_path):
    service = write_config(tmp_path, """
weather:
  locations:
    - {name: "Oxnard", latitude: 34.1, longitude: -119.1, elevation: 15}
""")
    service.load_and_validate()

    with pytest.raises(ConfigValidationException) as exc_info:
        service.acquisition_settings()

    assert exc_info.value.errors[0].path == "weather.locations[0]"
