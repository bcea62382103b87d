"""Utility modules for Praxis."""

from praxis.utils.logging import (
    PIPELINE_SOURCES,
    get_log_buffer,
    configure_logging,
    LogLevel,
    LogEntry,
    AppLogger,
    plan_logger,
    xp_logger,
    regen_logger,
    job_logger,
    provider_logger,
    api_logger,
)

__all__ = [
    "PIPELINE_SOURCES",
    "get_log_buffer",
    "configure_logging",
    "LogLevel",
    "LogEntry",
    "AppLogger",
    "plan_logger",
    "xp_logger",
    "regen_logger",
    "job_logger",
    "provider_logger",
    "api_logger",
]
