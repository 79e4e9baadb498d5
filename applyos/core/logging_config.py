"""
Centralized logging configuration.

Every module logs through the standard library logging tree:
- console (stdout) handler at the configured level
- daily log file under logs/ capturing everything
- one shared format: timestamp | level | module:line | message
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


# Module-level flag to prevent duplicate handler registration
_logging_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

# Third-party loggers that are chatty at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "google", "grpc", "multipart")


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure application-wide logging.

    Safe to call more than once; only the first call installs handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files. Defaults to 'logs/' in project root.

    Returns:
        Configured root logger instance
    """
    global _logging_configured

    if _logging_configured:
        return logging.getLogger()

    if log_dir is None:
        log_dir = Path(__file__).parent.parent.parent / "logs"
    log_dir.mkdir(exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    log_file = log_dir / f"applyos_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_configured = True
    root_logger.debug(f"Logging configured: level={log_level}, file={log_file}")

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Importing 12 applications")
        2025-01-15 10:30:45 | INFO     | applyos.services.csv_import:88 | Importing 12 applications
    """
    return logging.getLogger(name)


class LoggerMixin:
    """Adds a self.logger named after the class."""

    @property
    def logger(self) -> logging.Logger:
        return get_logger(self.__class__.__name__)
