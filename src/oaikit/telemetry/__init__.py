"""
Telemetry layer - structured, credential-masking logging.
"""

from oaikit.telemetry.logger import (
    JsonFormatter,
    LogContext,
    LogLevel,
    OaiKitLogger,
    SensitiveDataMasker,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)

__all__ = [
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "OaiKitLogger",
    "SensitiveDataMasker",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "set_log_context",
]
