"""
Logging Configuration

Structured logging shared by the tax engine, the ledger loaders and the
report scripts:
- One line per record: [timestamp] [LEVEL] [module:function:line] message
- Optional tax context appended as {month=... asset_class=...}
- Timing of month replays and report generation
- Environment-based levels (LOG_LEVEL, LOG_FILE)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

DEFAULT_LEVEL = 'INFO'


class StructuredFormatter(logging.Formatter):
    """
    Structured log formatter for the tax engine.

    Format: [TIMESTAMP] [LEVEL] [MODULE:FUNCTION:LINE] MESSAGE {tax context}
    """

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        where = f"{record.module}:{record.funcName}:{record.lineno}"

        line = f"[{stamp}] [{record.levelname:8s}] [{where}] {record.getMessage()}"

        context = getattr(record, 'tax_context', '')
        if context:
            line += f" {{{context}}}"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


def tax_context(**fields) -> Dict[str, str]:
    """
    Build the `extra` mapping for a log call.

    Usage:
        logger.debug("Month computed", extra=tax_context(month="2024-03", asset_class="stock"))

    Fields that are None are left out.
    """
    text = " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)
    return {'tax_context': text}


class PerformanceLogger:
    """Times a block and warns when it exceeds a threshold."""

    def __init__(self, logger: logging.Logger, operation: str, threshold_ms: float = 1000):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self.started_at: Optional[datetime] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.started_at = datetime.now()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.started_at is None:
            return

        self.duration_ms = (datetime.now() - self.started_at).total_seconds() * 1000

        if exc_type is not None:
            self.logger.debug(f"{self.operation} failed after {self.duration_ms:.1f}ms")
        elif self.duration_ms > self.threshold_ms:
            self.logger.warning(
                f"SLOW: {self.operation} took {self.duration_ms:.1f}ms "
                f"(threshold {self.threshold_ms:.0f}ms)"
            )
        else:
            self.logger.debug(f"{self.operation} took {self.duration_ms:.1f}ms")


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with structured formatting and optional file output.

    Args:
        name: Logger name (usually __name__)
        level: DEBUG, INFO, WARNING or ERROR. Defaults to LOG_LEVEL env var or INFO
        log_file: Optional file path for logs. Defaults to LOG_FILE env var

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Configured once per name
    if logger.handlers:
        return logger

    level_name = (level or os.getenv('LOG_LEVEL', DEFAULT_LEVEL)).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(log_level)

    logger.addHandler(_handler(logging.StreamHandler(sys.stdout), log_level))

    log_file = log_file or os.getenv('LOG_FILE')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_handler(logging.FileHandler(log_file, encoding='utf-8'), log_level))

    logger.propagate = False

    return logger


def get_perf_logger(logger: logging.Logger, operation: str, threshold_ms: float = 1000):
    """
    Get a performance logger context manager.

    Usage:
        with get_perf_logger(logger, "Tax report 2024-06", threshold_ms=500):
            result = service.report("2024-06")

    Args:
        logger: Logger instance
        operation: Operation name for logging
        threshold_ms: Milliseconds threshold for SLOW warning

    Returns:
        PerformanceLogger context manager
    """
    return PerformanceLogger(logger, operation, threshold_ms)


def log_dataframe_info(logger: logging.Logger, df, name: str = "DataFrame"):
    """Log row/column counts of an export DataFrame."""
    if df is None:
        logger.warning(f"{name} is None")
    elif df.empty:
        logger.info(f"{name} is empty (0 rows)")
    else:
        logger.info(f"{name}: {len(df)} rows, {len(df.columns)} columns")
