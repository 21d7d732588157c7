"""
Configuration Loader (``registrar_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into the frozen
``registrar_config.schema`` dataclasses, then applies environment
overrides.  Callers go through ``registrar_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown sections and keys are rejected, so a typo never silently falls
  back to a default.
* Integer settings must be integers (YAML booleans are refused) and
  non-negative; boolean settings must be booleans.
* Environment overrides win over the file.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad structure or values  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from registrar_config.schema import (
    DatabaseSettings,
    EngineSettings,
    IdentifierSettings,
    IntakeSettings,
    LoggingSettings,
    ReportingSettings,
)

ENV_CONFIG_PATH = "REGISTRAR_CONFIG"
ENV_DATABASE_URL = "REGISTRAR_DATABASE_URL"
ENV_LOG_LEVEL = "REGISTRAR_LOG_LEVEL"

_TOP_LEVEL_KEYS = frozenset(
    {"config_id", "version", "database", "intake", "identifiers", "reporting", "logging"}
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _check_keys(section: str, data: Mapping[str, Any], allowed: set[str] | frozenset[str]) -> None:
    unknown = set(data) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def parse_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return value


def parse_log_level(value: Any) -> str:
    level = str(value).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level {value!r}")
    return level


def parse_timezone(value: Any) -> str:
    try:
        ZoneInfo(str(value))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {value!r}") from exc
    return str(value)


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' must be a mapping")
    return section


def _parse_fields(section_name: str, data: Mapping[str, Any], cls: type) -> dict[str, Any]:
    """Validate a section against the dataclass fields of ``cls``."""
    fields = {f.name: f for f in dataclasses.fields(cls)}
    _check_keys(section_name, data, set(fields))
    parsed: dict[str, Any] = {}
    for key, value in data.items():
        qualified = f"{section_name}.{key}"
        default = fields[key].default
        if isinstance(default, bool):
            parsed[key] = parse_bool(value, qualified)
        elif isinstance(default, int):
            parsed[key] = parse_int(value, qualified)
        else:
            parsed[key] = value
    return parsed


def parse_database(data: Mapping[str, Any]) -> DatabaseSettings:
    if not data.get("url"):
        raise ValueError("database.url is required")
    parsed = _parse_fields("database", data, DatabaseSettings)
    parsed["url"] = str(parsed["url"])
    return DatabaseSettings(**parsed)


def parse_intake(data: Mapping[str, Any]) -> IntakeSettings:
    return IntakeSettings(**_parse_fields("intake", data, IntakeSettings))


def parse_identifiers(data: Mapping[str, Any]) -> IdentifierSettings:
    settings = IdentifierSettings(**_parse_fields("identifiers", data, IdentifierSettings))
    if settings.retry_limit < 1:
        raise ValueError("identifiers.retry_limit must be >= 1")
    return settings


def parse_reporting(data: Mapping[str, Any]) -> ReportingSettings:
    _check_keys("reporting", data, {"timezone"})
    return ReportingSettings(timezone=parse_timezone(data.get("timezone", "UTC")))


def parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    _check_keys("logging", data, {"level"})
    return LoggingSettings(level=parse_log_level(data.get("level", "INFO")))


def parse_settings(data: Mapping[str, Any], source: str | None = None) -> EngineSettings:
    """
    Parse a full settings document.

    Raises:
        ValueError: Unknown keys, missing required keys or bad values.
    """
    _check_keys("root", data, _TOP_LEVEL_KEYS)
    if not data.get("config_id"):
        raise ValueError("config_id is required")
    return EngineSettings(
        config_id=str(data["config_id"]),
        version=parse_int(data.get("version", 1), "version"),
        database=parse_database(_section(data, "database")),
        intake=parse_intake(_section(data, "intake")),
        identifiers=parse_identifiers(_section(data, "identifiers")),
        reporting=parse_reporting(_section(data, "reporting")),
        logging=parse_logging(_section(data, "logging")),
        source=source,
    )


def apply_env_overrides(settings: EngineSettings, environ: Mapping[str, str]) -> EngineSettings:
    """Return ``settings`` with REGISTRAR_* environment values applied."""
    database_url = environ.get(ENV_DATABASE_URL)
    if database_url:
        settings = dataclasses.replace(
            settings, database=dataclasses.replace(settings.database, url=database_url)
        )
    log_level = environ.get(ENV_LOG_LEVEL)
    if log_level:
        settings = dataclasses.replace(
            settings, logging=LoggingSettings(level=parse_log_level(log_level))
        )
    return settings
