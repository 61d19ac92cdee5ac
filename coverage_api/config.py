"""
Configuration management for the Coverage Ingestion API.

Usage:
    config = load_service_config()     # raises ConfigError on missing secrets
    config.turso_db_url                # "libsql://coverage-myorg.turso.io"
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from . import __version__


BASE_DIR: Path = Path(__file__).parent.parent

# Names of the secrets that must be present before the app is built
SECRET_PHRASE_VAR = "SECRET_PHRASE"
TURSO_DB_URL_VAR = "TURSO_DB_URL"
TURSO_DB_AUTH_TOKEN_VAR = "TURSO_DB_AUTH_TOKEN"
REQUIRED_VARS = (SECRET_PHRASE_VAR, TURSO_DB_URL_VAR, TURSO_DB_AUTH_TOKEN_VAR)


class Settings:
    """API server configuration."""

    # Server
    API_TITLE: str = "Coverage Ingestion API"
    API_DESCRIPTION: str = "Accepts statement-coverage reports and stores them in Turso"
    API_VERSION: str = __version__

    # Database
    COVERAGE_TABLE: str = "code_coverage"

    def __init__(self):
        # Environment overrides, read after .env has been loaded
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "8000"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.DB_TIMEOUT: float = float(os.getenv("DB_TIMEOUT", "10"))  # connect + insert, in seconds


def load_settings(env_file: str | None = None) -> Settings:
    """Populate the environment from ``.env`` and build the server settings."""
    load_dotenv(env_file or BASE_DIR / ".env")
    return Settings()


settings = load_settings()


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when a required secret is missing from the environment."""


# ---------------------------------------------------------------------------
# Service config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ServiceConfig:
    secret_phrase: str = field(repr=False)
    turso_db_url: str
    turso_auth_token: str = field(repr=False)


def load_service_config(env_file: str | None = None) -> ServiceConfig:
    """Read the three service secrets from the environment.

    Values already present in the environment win over those in the
    ``.env`` file.

    Raises:
        ConfigError: if any of SECRET_PHRASE, TURSO_DB_URL or
                     TURSO_DB_AUTH_TOKEN is absent or empty.
    """
    load_dotenv(env_file or BASE_DIR / ".env")

    values = {name: os.environ.get(name, "") for name in REQUIRED_VARS}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(
            "Environment variables not supplied: " + ", ".join(missing)
        )

    return ServiceConfig(
        secret_phrase=values[SECRET_PHRASE_VAR],
        turso_db_url=values[TURSO_DB_URL_VAR],
        turso_auth_token=values[TURSO_DB_AUTH_TOKEN_VAR],
    )
