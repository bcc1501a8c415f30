#!/usr/bin/env python3
"""
Logging configuration for the on-chain metrics engine

Library modules only create module loggers; handlers are installed by the
command line entry point through `setup_logging()`.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path

DEFAULT_LOGGER_NAME = "sentinel"


class JSONFormatter(logging.Formatter):
    """One JSON object per line for production log shipping"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Structured context passed as logger.info(..., extra={"metric": ...})
        for key in ("metric", "token", "block_window", "endpoint"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Coloured console output for development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]

        # [TIMESTAMP] LEVEL - logger:line - message
        formatted = (
            f"{color}[{self.formatTime(record, '%Y-%m-%d %H:%M:%S')}] "
            f"{record.levelname:<8}{reset} - "
            f"{record.name}:{record.lineno} - "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(
    name: str = DEFAULT_LOGGER_NAME,
    level: str = "INFO",
    mode: str = "development",
    log_dir: str | None = "logs",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Install console and rotating file handlers on the package logger

    Args:
        name: Logger name; module loggers below it inherit the handlers
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        mode: "development" for human-readable, "production" for JSON
        log_dir: Directory for log files, or None to log to console only
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup log files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    # stderr keeps stdout free for the JSON bundle printed by the CLI
    console_handler = logging.StreamHandler(sys.stderr)
    if mode == "production":
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(HumanReadableFormatter())
    logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{name}.log", maxBytes=max_bytes, backupCount=backup_count
        )
        if mode == "production":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"
                )
            )
        logger.addHandler(file_handler)

    logger.debug("Logging initialized: mode=%s, level=%s, log_dir=%s", mode, level, log_dir)

    return logger
