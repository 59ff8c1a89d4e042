import pytest

from marketplace.config.config import interpolate_config, load_settings, settings

CONFIG_YAML = """
General:
  SERVICE_NAME: marketplace
Database:
  URL: sqlite:///local.db
Offer:
  DEFAULT_EXPIRY_HOURS: 48
  COUNTER_EXPIRY_HOURS: ${Offer.DEFAULT_EXPIRY_HOURS}
  LABEL: expires in ${Offer.DEFAULT_EXPIRY_HOURS}h
Logging:
  LEVEL: INFO
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return str(path)


def test_interpolation_keeps_referenced_type(config_file, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    loaded = load_settings(config_file)

    assert loaded.Offer.COUNTER_EXPIRY_HOURS == 48
    assert loaded.Offer.LABEL == "expires in 48h"
    assert loaded.Database.URL == "sqlite:///local.db"


def test_environment_overrides(config_file, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@db:5432/marketplace")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    loaded = load_settings(config_file)

    assert loaded.Database.URL == "postgresql://user:pw@db:5432/marketplace"
    assert loaded.Logging.LEVEL == "DEBUG"


def test_circular_reference_is_rejected():
    config = {"A": {"X": "${A.Y}", "Y": "${A.X}"}}
    with pytest.raises(ValueError):
        interpolate_config(config)


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_settings("/nonexistent/config.yaml")


def test_packaged_defaults():
    assert settings.Booking.MAX_DURATION_MINUTES >= settings.Booking.DEFAULT_DURATION_MINUTES
    assert settings.Offer.COUNTER_EXPIRY_HOURS == settings.Offer.DEFAULT_EXPIRY_HOURS
    assert settings.Boost.RECOMPUTE_INTERVAL_MINUTES > 0
