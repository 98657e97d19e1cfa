"""
Configuration management for Clinic Registry.

Builds the runtime configuration from environment variables with sensible
defaults. Every section is a plain dataclass so tests can construct one
directly without touching the environment.
"""

import logging
import os
import secrets
import sys
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional, List

ENV_PREFIX = "CLINIC_REGISTRY_"

# List of known weak/default JWT secrets that should be rejected
WEAK_JWT_SECRETS = {
    "your-secret-key-change-in-production",
    "secret",
    "key",
    "password",
    "jwt-secret",
    "secret-key",
    "change-me",
    "changeme",
    "default",
    "test",
    "development",
    "dev",
    "demo",
    "example",
}


class ConfigError(Exception):
    """Raised when the configuration cannot be used safely."""

    pass


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read a prefixed environment variable."""
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from exc


def validate_jwt_secret_key(jwt_secret_key: str) -> None:
    """Validate JWT secret key security and reject weak/default keys.

    Args:
        jwt_secret_key: The JWT secret key to validate

    Raises:
        ConfigError: If the secret key is weak, default, or insecure
    """
    if not jwt_secret_key:
        raise ConfigError("JWT secret key is empty")

    if len(jwt_secret_key) < 32:
        raise ConfigError(
            f"JWT secret key is too short ({len(jwt_secret_key)} chars). "
            f"Minimum 32 characters required."
        )

    if jwt_secret_key.lower() in WEAK_JWT_SECRETS:
        raise ConfigError("JWT secret key is a known weak/default secret")

    unique_chars = len(set(jwt_secret_key))
    if unique_chars < 8:
        raise ConfigError(
            f"JWT secret key has insufficient entropy ({unique_chars} unique characters)"
        )

    if any(
        pattern in jwt_secret_key.lower()
        for pattern in ["123", "abc", "password", "secret", "qwerty", "admin"]
    ):
        logging.warning(
            "JWT secret key contains common patterns that may indicate weak security. "
            "Consider using a fully random key generated with secrets.token_urlsafe(64)."
        )


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///./clinic_registry.db"
    echo: bool = False
    pool_pre_ping: bool = True
    log_queries: bool = False  # Enable query logging for performance analysis


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    cors_origins: List[str] = field(default_factory=list)


@dataclass
class AuthConfig:
    """Authentication configuration."""

    jwt_secret_key: str = ""  # Must be set at runtime
    jwt_issuer: str = "clinic-registry-api"
    jwt_access_token_expires_minutes: int = 15
    password_hash_iterations: int = 120_000
    bootstrap_email: Optional[str] = None
    bootstrap_password: Optional[str] = None


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Clinic Registry"
    description: str = "Clinics, dentists and their affiliations"

    # Pagination
    default_page_limit: int = 20
    max_page_limit: int = 100

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"


@dataclass
class ClinicRegistryConfig:
    """Complete configuration for Clinic Registry."""

    app: AppConfig
    server: ServerConfig
    database: DatabaseConfig
    auth: AuthConfig

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "app": asdict(self.app),
            "server": asdict(self.server),
            "database": asdict(self.database),
            "auth": asdict(self.auth),
        }


class ConfigManager:
    """Loads configuration from the environment and caches it."""

    def __init__(self):
        self.config: Optional[ClinicRegistryConfig] = None

    def create_config_from_env(self) -> ClinicRegistryConfig:
        """Create configuration from CLINIC_REGISTRY_* environment variables."""
        debug = _env_bool("DEBUG", False)

        jwt_secret_key = _env("JWT_SECRET")
        if not jwt_secret_key:
            # Tokens signed with a generated key do not survive a restart
            jwt_secret_key = secrets.token_urlsafe(64)
            logging.info("Generated new JWT secret key (not from environment)")

        cors_origins = _env("CORS_ORIGINS")

        return ClinicRegistryConfig(
            app=AppConfig(
                log_level="DEBUG" if debug else _env("LOG_LEVEL", "INFO"),
                log_to_file=_env_bool("LOG_TO_FILE", True),
                log_dir=_env("LOG_DIR", "logs"),
            ),
            server=ServerConfig(
                host=_env("HOST", "127.0.0.1"),
                port=_env_int("PORT", 8080),
                debug=debug,
                cors_origins=[o.strip() for o in cors_origins.split(",")] if cors_origins else [],
            ),
            database=DatabaseConfig(
                url=_env("DATABASE_URL") or os.getenv("DATABASE_URL") or DatabaseConfig().url,
                echo=_env_bool("SQL_DEBUG", False),
                log_queries=_env_bool("LOG_QUERIES", False),
            ),
            auth=AuthConfig(
                jwt_secret_key=jwt_secret_key,
                jwt_issuer=_env("JWT_ISSUER", "clinic-registry-api"),
                jwt_access_token_expires_minutes=_env_int("JWT_ACCESS_TOKEN_TTL_MINUTES", 15),
                password_hash_iterations=_env_int("PASSWORD_HASH_ITERATIONS", 120_000),
                bootstrap_email=_env("AUTH_BOOTSTRAP_EMAIL"),
                bootstrap_password=_env("AUTH_BOOTSTRAP_PASSWORD"),
            ),
        )

    def load_config(self) -> ClinicRegistryConfig:
        """Load configuration once per process."""
        if self.config is None:
            self.config = self.create_config_from_env()
        return self.config

    def reset(self) -> None:
        """Forget the cached configuration (used by tests)."""
        self.config = None

    def validate_security_config(self) -> None:
        """Validate security-critical configuration at startup.

        Raises:
            SystemExit: If critical security issues are found
        """
        config = self.load_config()
        try:
            validate_jwt_secret_key(config.auth.jwt_secret_key)
        except ConfigError as e:
            logging.critical(f"Security configuration rejected: {e}")
            sys.exit(1)
        logging.info("Security configuration validation passed")


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> ClinicRegistryConfig:
    """Get the current configuration."""
    return config_manager.load_config()


def get_database_url() -> str:
    """Get the database URL."""
    return get_config().database.url


def validate_startup_security() -> None:
    """Validate security configuration at application startup."""
    config_manager.validate_security_config()
