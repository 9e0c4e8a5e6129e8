import pytest
from pydantic import ValidationError

from app.core.settings import Settings, validate_settings


def _settings(**overrides) -> Settings:
    values = {
        "secret_key": "x" * 40,
        "admin_email": "owner@practice.example.org",
        "admin_password": "a-strong-admin-password",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_development_defaults_only_warn(caplog):
    settings = Settings(_env_file=None, secret_key=None, app_env="development")
    validate_settings(settings)
    assert settings.secret_key == "change-me"
    assert "SECRET_KEY" in caplog.text


def test_production_rejects_weak_secret():
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        validate_settings(_settings(app_env="production", secret_key="short"))


def test_production_accepts_strong_settings():
    validate_settings(_settings(app_env="production"))


def test_point_value_must_be_positive():
    with pytest.raises(RuntimeError, match="POINT_VALUE"):
        validate_settings(_settings(point_value=0))


def test_revision_retention_cannot_be_negative():
    with pytest.raises(ValidationError):
        _settings(procedure_revision_retention=-1)


def test_health(api_client):
    res = api_client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
