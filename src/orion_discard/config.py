"""
Configuration for the discard station.

Settings come from an optional YAML file, overridden by environment
variables (a ``.env`` file is loaded first when present).

Expected YAML format:
```yaml
station:
  default_site: PRSA
  default_year: "2024"
  record_type: T1
options:
  url: http://orion.local/wp-json/orion-maps-fields/v1/fields
  timeout: 10
records:
  fetch_retries: 2
  fetch_retry_delay: 1.0
  max_records: 10000
database:
  host: localhost
  port: 5432
  name: orion
  user: orion
```
"""

import os
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# env var -> (section, key) in the YAML layout
ENV_OVERRIDES = {
    "ORION_DEFAULT_SITE": ("station", "default_site"),
    "ORION_DEFAULT_YEAR": ("station", "default_year"),
    "ORION_RECORD_TYPE": ("station", "record_type"),
    "ORION_ACTOR": ("station", "actor"),
    "ORION_OPTIONS_URL": ("options", "url"),
    "ORION_OPTIONS_TIMEOUT": ("options", "timeout"),
    "ORION_FETCH_RETRIES": ("records", "fetch_retries"),
    "ORION_FETCH_RETRY_DELAY": ("records", "fetch_retry_delay"),
    "ORION_MAX_RECORDS": ("records", "max_records"),
    "DB_HOST": ("database", "host"),
    "DB_PORT": ("database", "port"),
    "DB_NAME": ("database", "name"),
    "DB_USER": ("database", "user"),
    "DB_PASSWORD": ("database", "password"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
}


class DatabaseSettings(BaseModel):
    host: str = "localhost"
    port: int = 5432
    name: str = "orion"
    user: str = "orion"
    password: str | None = None
    min_size: int = 1
    max_size: int = 5


class Settings(BaseModel):
    """
    Station settings.

    Attributes:
        default_site: Site used when the operator has none configured
        default_year: Season year used when the operator has none configured
        record_type: Record type the station works on
        actor: Operator id stamped on discards
        options_url: Endpoint publishing farms, sections and fields
        options_timeout: Options request timeout in seconds
        fetch_retries: Extra attempts for a failed record fetch
        fetch_retry_delay: Fixed delay between record fetch attempts
        max_records: Largest record set the table accepts
        database: PostgreSQL connection settings
        log_level: Log level name
        log_format: "json" or "text"
    """

    default_site: str = "PRSA"
    default_year: str = Field(default_factory=lambda: str(date.today().year))
    record_type: str = "T1"
    actor: str = "0"
    options_url: str = "http://localhost:8080/orion/wp-json/orion-maps-fields/v1/fields"
    options_timeout: float = Field(10.0, gt=0)
    fetch_retries: int = Field(2, ge=0)
    fetch_retry_delay: float = Field(1.0, ge=0)
    max_records: int = Field(10000, gt=0)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    log_level: str = "INFO"
    log_format: str = "json"

    def resolve_site(self, user_site: str | None = None) -> str:
        """The operator's site if set, else the default."""
        return (user_site or "").strip() or self.default_site

    def resolve_year(self, user_year: str | None = None) -> str:
        return (str(user_year).strip() if user_year else "") or self.default_year


def _flatten(config: dict[str, Any]) -> dict[str, Any]:
    """Map the sectioned YAML layout onto Settings fields."""
    station = config.get("station") or {}
    options = config.get("options") or {}
    records = config.get("records") or {}
    logging_section = config.get("logging") or {}

    values: dict[str, Any] = {}
    for key in ("default_site", "default_year", "record_type", "actor"):
        if station.get(key) is not None:
            values[key] = str(station[key])
    if options.get("url"):
        values["options_url"] = options["url"]
    if options.get("timeout") is not None:
        values["options_timeout"] = options["timeout"]
    for key in ("fetch_retries", "fetch_retry_delay", "max_records"):
        if records.get(key) is not None:
            values[key] = records[key]
    if config.get("database"):
        values["database"] = {k: v for k, v in config["database"].items() if v is not None}
    if logging_section.get("level"):
        values["log_level"] = logging_section["level"]
    if logging_section.get("format"):
        values["log_format"] = logging_section["format"]
    return values


def load_settings(config_path: str | Path | None = None, env_file: str | Path | None = None) -> Settings:
    """
    Load settings from YAML and the environment.

    Args:
        config_path: YAML file (defaults to env var ORION_CONFIG; optional)
        env_file: ``.env`` file to load before reading the environment

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If an explicit config path does not exist
        ValueError: If the YAML is not a mapping
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    config: dict[str, Any] = {}
    path = config_path or os.getenv("ORION_CONFIG")
    if path:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")
        config = loaded

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None and value != "":
            config.setdefault(section, {})
            if config[section] is None:
                config[section] = {}
            config[section][key] = value

    return Settings(**_flatten(config))
