#!/usr/bin/env python3
"""
Click Battler Logging Configuration

Centralized logging setup for consistent formatting across the project.
Console output is coloured when the terminal supports it; set
BATTLER_LOG_FILE to also write a plain log file.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Connecting...")
    logger.warning("Dropped frame", extra={"phase": "synced", "msg_type": "WorldUpdate"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any
import os


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.COLORS['RESET']}"

        return _with_context(record, super().format)


class GenericFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        return _with_context(record, super().format)


def _with_context(record: logging.LogRecord, fmt) -> str:
    """Prefix the message with protocol context passed through ``extra``"""
    context = []

    if hasattr(record, 'player_id'):
        context.append(f"player={record.player_id}")
    if hasattr(record, 'msg_type'):
        context.append(f"msg={record.msg_type}")
    if hasattr(record, 'phase'):
        context.append(f"phase={record.phase}")
    if hasattr(record, 'endpoint'):
        context.append(f"endpoint={record.endpoint}")

    if not context:
        return fmt(record)

    prefix = f"[{' '.join(context)}] "
    if record.args:
        # The prefix goes through %-interpolation together with msg
        prefix = prefix.replace('%', '%%')

    # Restore the original message so a second handler does not prefix twice
    original = record.msg
    record.msg = f"{prefix}{record.msg}"
    try:
        return fmt(record)
    finally:
        record.msg = original


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Client starting")

        # With context
        logger.error("Bootstrap halted", extra={
            "phase": "awaiting_snapshot",
            "msg_type": "WorldUpdate",
        })
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    log_level = _get_log_level(level)
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    _add_console_handler(logger, colored=_is_development())

    log_file = os.getenv('BATTLER_LOG_FILE')
    if log_file:
        _add_file_handler(logger, Path(log_file))

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    level = level or os.getenv('BATTLER_LOG_LEVEL')
    if level:
        return getattr(logging, level.upper(), logging.INFO)

    # Default based on environment
    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return (
        os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development'] or
        'pytest' in sys.modules
    )


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stdout)

    if colored and _supports_color():
        formatter = ColoredFormatter(
            fmt=fmt,
            datefmt='%H:%M:%S'
        )
    else:
        formatter = GenericFormatter(
            fmt=fmt,
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger, log_file: Path) -> None:
    """Add file handler, creating the parent directory if needed"""

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)

    formatter = GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    # stdout must be a terminal
    if not (hasattr(sys.stdout, "isatty") and sys.stdout.isatty()):
        return False

    # TERM should not be dumb
    if os.getenv("TERM", "") == "dumb":
        return False

    # Windows-specific check
    if sys.platform == "win32":
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode" or "WindowsTerminal" in os.getenv("TERM", "")

    return True

# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)


def log_protocol_message(logger: logging.Logger, level: str, message: str,
                         envelope: Optional[Dict[str, Any]] = None,
                         **context: Any) -> None:
    """
    Log a game protocol message with structured context.

    Args:
        logger: Logger instance
        level: Log level ("debug", "info", "warning", "error")
        message: Log message
        envelope: Typed envelope dict for automatic context extraction
        **context: Additional context fields (phase, player_id, ...)

    Example:
        log_protocol_message(logger, "debug", "Dispatching",
                             envelope=envelope.value, phase="synced")
    """

    extra_context: Dict[str, Any] = {}

    if isinstance(envelope, dict) and envelope.get('type') is not None:
        extra_context['msg_type'] = envelope.get('type')

    extra_context.update(context)

    log_func = getattr(logger, level.lower())
    log_func(message, extra=extra_context)
