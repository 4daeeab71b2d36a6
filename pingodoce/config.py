"""TOML configuration loader for the pingodoce tool."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

from .errors import AuthenticationError, ConfigurationError

DEFAULT_DATA_DIR = "data"
DEFAULT_TIMEOUT = 15

_PLACEHOLDER_PHONE = "+351..."


@dataclass
class APIConfig:
    phone_number: str = ""
    password: str = ""
    base_url: str = "https://app.pingodoce.pt"
    timeout: float = DEFAULT_TIMEOUT
    page_size: int = 20

    def validate(self) -> None:
        """Raise AuthenticationError if credentials are missing."""
        if (
            not self.phone_number
            or self.phone_number == _PLACEHOLDER_PHONE
            or not self.password
        ):
            raise AuthenticationError(
                "Please set PHONE_NUMBER and PASSWORD in your .env file\n"
                "Example:\n"
                "  PHONE_NUMBER=+351123456789\n"
                "  PASSWORD=your_password"
            )


@dataclass
class DatabaseConfig:
    path: str = ""


@dataclass
class EnrichmentConfig:
    store_id: str = "-1"
    batch_size: int = 50
    delay: float = 0.5


@dataclass
class LoggingConfig:
    level: str = "info"


@dataclass
class AppConfig:
    data_dir: str = DEFAULT_DATA_DIR
    api: APIConfig = field(default_factory=APIConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def db_path(self) -> Path:
        """Database file, defaulting to ``<data_dir>/pingodoce.db``."""
        if self.database.path:
            return Path(self.database.path).expanduser()
        return Path(self.data_dir).expanduser() / "pingodoce.db"


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    Credentials, data directory, timeout and log level can be supplied via
    environment variables when the file leaves them empty.

    Raises:
        ConfigurationError: If the file is not valid TOML or a numeric
            setting is not a number.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                try:
                    raw = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigurationError(f"Invalid TOML in {p}: {e}") from e

    api = raw.get("api", {})
    dbs = raw.get("database", {})
    enr = raw.get("enrichment", {})
    log = raw.get("logging", {})

    # Resolve values: config file → environment variable → default
    phone = api.get("phone_number", "") or os.environ.get("PHONE_NUMBER", "")
    password = api.get("password", "") or os.environ.get("PASSWORD", "")
    data_dir = raw.get("data_dir", "") or os.environ.get(
        "DATA_DIR", DEFAULT_DATA_DIR
    )
    timeout = api.get("timeout") or os.environ.get("TIMEOUT") or DEFAULT_TIMEOUT
    level = log.get("level", "") or os.environ.get("LOG_LEVEL", "info")

    return AppConfig(
        data_dir=data_dir,
        api=APIConfig(
            phone_number=phone,
            password=password,
            base_url=api.get("base_url", "https://app.pingodoce.pt"),
            timeout=_number(timeout, "api.timeout"),
            page_size=_number(api.get("page_size", 20), "api.page_size", int),
        ),
        database=DatabaseConfig(
            path=dbs.get("path", ""),
        ),
        enrichment=EnrichmentConfig(
            store_id=str(enr.get("store_id", "-1")),
            batch_size=_number(enr.get("batch_size", 50), "enrichment.batch_size", int),
            delay=_number(enr.get("delay", 0.5), "enrichment.delay"),
        ),
        logging=LoggingConfig(
            level=level.lower(),
        ),
    )


def _number(value, key: str, cast=float):
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from e
