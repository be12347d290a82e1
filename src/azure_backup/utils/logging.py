"""Logging configuration and utilities."""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAME = "azure_backup"
LOG_DIR_ENV = "AZUREBACKUP_LOGDIR"
LOG_FILE_NAME = "backup.log"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        log_to_console: Whether to log to console
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    # Create logger
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        # Use rotating file handler
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def _has_write_access(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        probe = path / ".write_test"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
        return True
    except OSError:
        return False


def resolve_log_directory() -> Path:
    """Pick the directory for log files.

    Order: $AZUREBACKUP_LOGDIR, the system location (%ProgramData%\\AzureBackup\\logs
    on Windows, /var/log/azurebackup elsewhere if writable), the user's state
    directory, then ./logs.
    """
    from_env = os.getenv(LOG_DIR_ENV)
    if from_env and from_env.strip():
        return Path(from_env)

    if sys.platform == 'win32':
        program_data = os.getenv('ProgramData')
        if program_data:
            return Path(program_data) / "AzureBackup" / "logs"
    else:
        preferred = Path("/var/log/azurebackup")
        if _has_write_access(preferred):
            return preferred

        home = Path.home()
        if str(home):
            return home / ".local" / "state" / "azurebackup" / "logs"

    return Path.cwd() / "logs"


class ContextualLogger:
    """Logger that adds contextual information to log messages."""

    def __init__(self, logger: logging.Logger, context: dict):
        """Initialize contextual logger.

        Args:
            logger: Base logger
            context: Context dictionary to add to messages
        """
        self.logger = logger
        self.context = context

    def _format_message(self, message: str) -> str:
        context_str = " | ".join(f"{k}={v}" for k, v in self.context.items())
        return f"[{context_str}] {message}"

    def debug(self, message: str):
        """Log debug message with context."""
        self.logger.debug(self._format_message(message))

    def info(self, message: str):
        """Log info message with context."""
        self.logger.info(self._format_message(message))

    def warning(self, message: str):
        """Log warning message with context."""
        self.logger.warning(self._format_message(message))

    def error(self, message: str, exc_info: bool = False):
        """Log error message with context."""
        self.logger.error(self._format_message(message), exc_info=exc_info)


class TimedOperation:
    """Context manager for timing operations and logging results."""

    def __init__(self, logger: logging.Logger, operation_name: str, log_level: str = "INFO"):
        """Initialize timed operation.

        Args:
            logger: Logger to use
            operation_name: Name of the operation
            log_level: Log level for timing messages
        """
        self.logger = logger
        self.operation_name = operation_name
        self.log_level = getattr(logging, log_level.upper())
        self.start_time: Optional[datetime] = None
        self.duration = 0.0

    def __enter__(self):
        """Start timing."""
        self.start_time = datetime.now()
        self.logger.log(self.log_level, f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Stop timing and log results."""
        if self.start_time:
            self.duration = (datetime.now() - self.start_time).total_seconds()
            if exc_type is None:
                self.logger.log(self.log_level, f"Completed {self.operation_name} in {self.duration:.2f}s")
            else:
                self.logger.error(f"Failed {self.operation_name} after {self.duration:.2f}s: {exc_val}")
