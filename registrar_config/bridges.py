"""
Config -> Kernel Bridges.

Functions that convert EngineSettings into kernel inputs.  They live in
registrar_config (the producer) because the kernel must never import
registrar_config.

Usage:
    from registrar_config import get_active_config
    from registrar_config.bridges import build_request_engine

    engine = build_request_engine(get_active_config())
"""

from __future__ import annotations

from zoneinfo import ZoneInfo

from sqlalchemy.engine import Engine

from registrar_config.schema import EngineSettings
from registrar_kernel.db.engine import get_session_factory, init_engine_from_url
from registrar_kernel.domain.clock import Clock
from registrar_kernel.logging_config import configure_logging
from registrar_kernel.services.intake_service import IntakePolicy
from registrar_kernel.services.request_engine import (
    DocumentRequestEngine,
    RequestNotifier,
)


def build_intake_policy(settings: EngineSettings) -> IntakePolicy:
    return IntakePolicy(
        cooldown_minutes=settings.intake.cooldown_minutes,
        max_pending_requests=settings.intake.max_pending_requests,
        duplicate_guard=settings.intake.duplicate_guard,
        enforce_purpose_documents=settings.intake.enforce_purpose_documents,
        identifier_retry_limit=settings.identifiers.retry_limit,
    )


def init_database(settings: EngineSettings) -> Engine:
    """Initialize the kernel's engine and session factory from settings."""
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        sqlite_busy_timeout=db.sqlite_busy_timeout,
    )


def build_request_engine(
    settings: EngineSettings,
    clock: Clock | None = None,
    notifier: RequestNotifier | None = None,
) -> DocumentRequestEngine:
    """
    Wire a DocumentRequestEngine from settings.

    Configures logging at the configured level, initializes the database
    engine and returns a facade bound to its session factory.  Tables are
    not created here.
    """
    configure_logging(level=settings.logging.level)
    init_database(settings)
    return DocumentRequestEngine(
        get_session_factory(),
        clock=clock,
        policy=build_intake_policy(settings),
        notifier=notifier,
        report_timezone=ZoneInfo(settings.reporting.timezone),
    )
