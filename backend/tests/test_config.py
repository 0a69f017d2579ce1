"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from audittrail.core.config import AuditFailurePolicy, ConfigurationError, Environment, Settings


def _settings(**overrides):
    values = {
        "jwt_secret_key": "a" * 64,
        "cors_allowed_origins": "https://dms.example.com",
        "audit_failure_policy": AuditFailurePolicy.FAIL_CLOSED,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestProductionValidation:

    def test_secure_production_passes(self):
        _settings(environment=Environment.PRODUCTION).validate_production_config()

    def test_default_secret_blocks_production(self):
        settings = _settings(environment=Environment.PRODUCTION, jwt_secret_key="dev-insecure-key-change-me")
        with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
            settings.validate_production_config()

    def test_localhost_origin_blocks_production(self):
        settings = _settings(environment=Environment.PRODUCTION, cors_allowed_origins="http://localhost:3000")
        with pytest.raises(ConfigurationError, match="local origins"):
            settings.validate_production_config()

    def test_development_is_never_blocked(self):
        _settings(jwt_secret_key="dev-insecure-key-change-me").validate_production_config()

    def test_fail_open_is_a_warning_not_an_error(self):
        settings = _settings(environment=Environment.PRODUCTION, audit_failure_policy="fail_open")
        settings.validate_production_config()
        assert any("fail_open" in w for w in settings.startup_warnings())

    def test_fail_closed_has_no_warnings(self):
        assert _settings(environment=Environment.PRODUCTION).startup_warnings() == []


class TestFieldValidation:

    def test_lockout_defaults(self):
        settings = _settings()
        assert settings.max_failed_login_attempts == 5
        assert settings.lockout_years == 100
        assert settings.administrator_role_name == "Administrator"

    def test_log_level_normalised(self):
        assert _settings(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize("field,value", [
        ("log_level", "LOUD"),
        ("bcrypt_rounds", 3),
        ("max_failed_login_attempts", 0),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            _settings(**{field: value})

    def test_wildcard_cors_refused(self):
        with pytest.raises(ValueError):
            _settings(cors_allowed_origins="*").get_cors_origins()
