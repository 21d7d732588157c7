"""
registrar_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the only way to obtain settings at runtime through
    ``get_active_config()``.  Reads a YAML file (the packaged
    ``defaults.yaml`` unless told otherwise) and applies REGISTRAR_*
    environment overrides.

Architecture position:
    Configuration.  Sits above ``registrar_kernel``.  The kernel never
    imports from ``registrar_config``; ``registrar_config.bridges``
    translates settings into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``REGISTRAR_CONFIG_TRACE`` log entry naming the config id, version
    and source file, so the limits in force are recoverable from the log.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from sqlalchemy.engine import make_url

from registrar_config.loader import (
    ENV_CONFIG_PATH,
    apply_env_overrides,
    load_yaml_file,
    parse_settings,
)
from registrar_config.schema import EngineSettings

_logger = logging.getLogger("registrar_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """The only public configuration entrypoint.

    Args:
        config_path: Settings file.  Defaults to $REGISTRAR_CONFIG, then
            the packaged defaults.yaml.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Frozen EngineSettings.

    Raises:
        FileNotFoundError, yaml.YAMLError, ValueError.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get(ENV_CONFIG_PATH) or DEFAULT_CONFIG_PATH)

    settings = parse_settings(load_yaml_file(path), source=str(path))
    settings = apply_env_overrides(settings, env)

    _logger.info(
        "REGISTRAR_CONFIG_TRACE",
        extra={
            "trace_type": "REGISTRAR_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "config_source": settings.source,
            "database_backend": make_url(settings.database.url).get_backend_name(),
            "cooldown_minutes": settings.intake.cooldown_minutes,
            "max_pending_requests": settings.intake.max_pending_requests,
        },
    )
    return settings


__all__ = ["DEFAULT_CONFIG_PATH", "EngineSettings", "get_active_config"]
