"""
Registrar engine settings schema.

Frozen dataclasses the loader parses YAML into.  Nothing here touches the
kernel; ``registrar_config.bridges`` turns these into kernel inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings handed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    sqlite_busy_timeout: int = 30


@dataclass(frozen=True)
class IntakeSettings:
    """Limits applied when a request is submitted.  0 disables a limit."""

    cooldown_minutes: int = 5
    max_pending_requests: int = 3
    duplicate_guard: bool = True
    enforce_purpose_documents: bool = True


@dataclass(frozen=True)
class IdentifierSettings:
    retry_limit: int = 5


@dataclass(frozen=True)
class ReportingSettings:
    timezone: str = "UTC"  # IANA zone the report calendar dates are read in


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class EngineSettings:
    """The complete runtime configuration of a registrar deployment."""

    config_id: str
    version: int
    database: DatabaseSettings
    intake: IntakeSettings = field(default_factory=IntakeSettings)
    identifiers: IdentifierSettings = field(default_factory=IdentifierSettings)
    reporting: ReportingSettings = field(default_factory=ReportingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: str | None = None
