"""Unit tests for environment-driven configuration."""

import os
from unittest.mock import patch

import pytest

from clinic_registry.config import (
    ConfigError,
    ConfigManager,
    DatabaseConfig,
    validate_jwt_secret_key,
)


@pytest.mark.unit
class TestConfigManager:
    """Configuration assembled from CLINIC_REGISTRY_* variables."""

    def test_reads_prefixed_variables(self):
        env = {
            "CLINIC_REGISTRY_DATABASE_URL": "postgresql://db/clinics",
            "CLINIC_REGISTRY_PORT": "9000",
            "CLINIC_REGISTRY_JWT_SECRET": "Xk29-fjq8Lm3nB7vZp1Qw4Rt6Yu0Ii5Oo",
            "CLINIC_REGISTRY_JWT_ACCESS_TOKEN_TTL_MINUTES": "5",
            "CLINIC_REGISTRY_AUTH_BOOTSTRAP_EMAIL": "admin@example.com",
            "CLINIC_REGISTRY_CORS_ORIGINS": "http://a.test, http://b.test",
        }
        with patch.dict(os.environ, env):
            config = ConfigManager().create_config_from_env()

        assert config.database.url == "postgresql://db/clinics"
        assert config.server.port == 9000
        assert config.auth.jwt_secret_key == env["CLINIC_REGISTRY_JWT_SECRET"]
        assert config.auth.jwt_access_token_expires_minutes == 5
        assert config.auth.bootstrap_email == "admin@example.com"
        assert config.auth.bootstrap_password is None
        assert config.server.cors_origins == ["http://a.test", "http://b.test"]

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = ConfigManager().create_config_from_env()

        assert config.database.url == DatabaseConfig().url
        assert config.app.default_page_limit == 20
        assert config.app.max_page_limit == 100
        assert config.auth.jwt_issuer == "clinic-registry-api"
        # A secret is generated when none is configured
        assert len(config.auth.jwt_secret_key) >= 32

    def test_debug_forces_debug_logging(self):
        with patch.dict(os.environ, {"CLINIC_REGISTRY_DEBUG": "true"}):
            config = ConfigManager().create_config_from_env()
        assert config.server.debug is True
        assert config.app.log_level == "DEBUG"

    def test_non_integer_port_rejected(self):
        with patch.dict(os.environ, {"CLINIC_REGISTRY_PORT": "eighty"}):
            with pytest.raises(ConfigError):
                ConfigManager().create_config_from_env()

    def test_load_config_is_cached_until_reset(self):
        manager = ConfigManager()
        first = manager.load_config()
        assert manager.load_config() is first
        manager.reset()
        assert manager.load_config() is not first


@pytest.mark.unit
class TestJWTSecretValidation:
    def test_strong_secret_accepted(self):
        validate_jwt_secret_key("Xk29-fjq8Lm3nB7vZp1Qw4Rt6Yu0Ii5Oo")

    @pytest.mark.parametrize(
        "secret",
        ["", "short", "a" * 40, "changeme"],
    )
    def test_weak_secrets_rejected(self, secret):
        with pytest.raises(ConfigError):
            validate_jwt_secret_key(secret)
