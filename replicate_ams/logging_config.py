"""
Logging setup for replication runs.

Console output goes through colorlog; every run also writes a log file (the
run's log artifact). structlog is configured to render through the same
standard-library handlers so structured run events land in both places.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import colorlog
import structlog

logger = logging.getLogger(__name__)

LOG_FILE_PREFIX = "ReplicateAMS"


def _set_azure_http_log_level(log_level: str) -> None:
    """Set log levels for HTTP-related loggers to reduce noise."""
    http_loggers = [
        "azure.core.pipeline.policies.http_logging_policy",
        "azure.core.pipeline.policies.HttpLoggingPolicy",
        "azure.core.pipeline",
        "azure.identity",
        "azure.mgmt",
        "azure.storage",
        "azure",
        "msal",
        "urllib3",
        "urllib3.connectionpool",
        "http.client",
    ]
    # HTTP logging should only appear at DEBUG level
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in http_loggers:
        logging.getLogger(name).setLevel(target_level)


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    log_directory: str = field(default_factory=lambda: os.getenv("LOG_DIR", "."))

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        level_attr = getattr(logging, self.level, None)
        if level_attr is None:
            raise ValueError(f"Invalid log level: {self.level}")
        return int(level_attr)

    def resolve_log_file(self, now: Optional[datetime] = None) -> Path:
        """Path of the run's log artifact."""
        if self.file_output:
            return Path(self.file_output)
        stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        return Path(self.log_directory) / f"{LOG_FILE_PREFIX}_{stamp}.log"


def configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def setup_logging(config: LoggingConfig, create_log_file: bool = True) -> Optional[Path]:
    """
    Setup logging configuration based on config.

    Returns:
        Path of the log file created for this run, or None
    """
    _set_azure_http_log_level(config.level)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(config.get_log_level())

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
    root_logger.addHandler(console_handler)

    log_file: Optional[Path] = None
    if create_log_file:
        log_file = config.resolve_log_file()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
        )
        root_logger.addHandler(file_handler)

    configure_structlog()

    logger.debug(
        f"Logging configured: level={config.level}, file={log_file or 'console only'}"
    )
    return log_file
