"""
apps-ports Logging System
Singleton logger writing to stderr (stdout is reserved for tables and JSON),
with an optional audit file.
"""
import logging
import sys
from typing import Optional


class Logger:
    """Singleton logger shared by every resolution and termination component."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialize_logger()
        return cls._instance

    def _initialize_logger(self) -> None:
        """Configure logger with a console handler."""
        self.logger = logging.getLogger("appsports")
        self.logger.setLevel(logging.WARNING)
        self.logger.propagate = False

        if self.logger.hasHandlers():
            self.logger.handlers.clear()

        self.formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(self.formatter)
        self.logger.addHandler(console_handler)

    def configure(self, level: str = "WARNING", log_file: Optional[str] = None) -> None:
        """Apply the configured level and attach the audit file handler if requested."""
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))

        if not log_file:
            return

        for handler in list(self.logger.handlers):
            if isinstance(handler, logging.FileHandler):
                self.logger.removeHandler(handler)
                handler.close()

        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(self.formatter)
            self.logger.addHandler(file_handler)
        except PermissionError:
            pass

    def debug(self, msg: str) -> None:
        self.logger.debug(msg)

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)

    def success(self, msg: str) -> None:
        self.logger.info(f"[SUCCESS] {msg}")
