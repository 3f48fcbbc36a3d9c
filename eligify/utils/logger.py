"""
Logging system for the evaluation engine.
Structured "[TAG] | key=value" lines on the console, plus optional daily
log files when a log directory is configured.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

_RESET = "\033[0m"

# ANSI color per level for console output
_LEVEL_COLORS = {
    logging.DEBUG: "\033[96m",
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[1m\033[91m",
}

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class ColoredFormatter(logging.Formatter):
    """Wraps each rendered console line in its level color."""

    def format(self, record):
        # Color the rendered line only; the record is shared with other handlers
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        return f"{color}{line}{_RESET}" if color else line


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _file_handler(log_dir: Path, prefix: str) -> logging.Handler:
    path = log_dir / f"{prefix}_{datetime.now():%Y%m%d}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


class EngineLogger:
    """
    Central logging system for criteria evaluation.

    Two loggers:
    - "eligify": everything at the configured level
    - "eligify.errors": errors only, kept in a separate file

    Evaluation verdicts go to DEBUG, recovered rule errors to WARNING,
    configuration errors to ERROR.
    """

    _instance: Optional['EngineLogger'] = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_dir: str = "", log_level: str = "INFO"):
        if EngineLogger._initialized:
            return

        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._configure("eligify", log_level, "eligify", console=True)
        self.error_logger = self._configure("eligify.errors", "ERROR", "errors", console=False)

        EngineLogger._initialized = True

    def _configure(self, name: str, level: str, file_prefix: str, console: bool) -> logging.Logger:
        """Reset a named logger to its console and/or file handlers."""
        logger = logging.getLogger(name)
        logger.setLevel(level.upper())
        logger.handlers.clear()
        if console:
            logger.addHandler(_console_handler())
        if self.log_dir is not None:
            logger.addHandler(_file_handler(self.log_dir, file_prefix))
        if not logger.handlers:
            # Keeps logging's last-resort stderr handler from echoing errors
            logger.addHandler(logging.NullHandler())

        # Errors reach the console once, through the main logger
        logger.propagate = name == "eligify"
        return logger

    def info(self, msg: str, *args, **kwargs):
        self.main_logger.info(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self.main_logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Error to the main log and the errors-only log."""
        self.main_logger.error(msg, *args, **kwargs)
        self.error_logger.error(msg, *args, **kwargs)

    @staticmethod
    def _join(head: list, extra: dict) -> str:
        return " | ".join(head + [f"{k}={v}" for k, v in extra.items()])

    def evaluation(self, criteria: str, passed: bool, score: float,
                   threshold: float, duration_ms: float = None, **kwargs):
        """
        Log an evaluation verdict.

        Args:
            criteria: Criteria identifier
            passed: Final verdict
            score: Final score
            threshold: Pass threshold applied
            duration_ms: Total evaluation time (optional)
            **kwargs: Extra key=value fields appended to the line
        """
        head = [
            "[PASS]" if passed else "[FAIL]",
            f"criteria={criteria}",
            f"score={score:.2f}",
            f"threshold={threshold:.2f}",
        ]
        if duration_ms is not None:
            head.append(f"duration={duration_ms:.3f}ms")
        self.main_logger.debug(self._join(head, kwargs))

    def rule_error(self, rule: str, field: str, reason: str, message: str, **kwargs):
        """Log a recovered rule error (reason is a ReasonCode name)."""
        head = [f"[RULE:{reason}]", f"rule={rule}", f"field={field}", message]
        self.main_logger.warning(self._join(head, kwargs))


_logger: Optional[EngineLogger] = None


def get_logger(log_dir: str = None, log_level: str = None) -> EngineLogger:
    """
    Get or create the global logger instance.

    Unset arguments come from the logging section of the configuration.
    """
    global _logger
    if _logger is None:
        if log_dir is None or log_level is None:
            from ..config import get_config

            log_config = get_config().log
            log_dir = log_config.log_dir if log_dir is None else log_dir
            log_level = log_config.level if log_level is None else log_level
        _logger = EngineLogger(log_dir, log_level)
    return _logger


def setup_logger(log_dir: str = "", log_level: str = "INFO") -> EngineLogger:
    """Replace the global logger, e.g. to switch level or start file output."""
    global _logger
    EngineLogger._initialized = False
    EngineLogger._instance = None
    _logger = EngineLogger(log_dir, log_level)
    return _logger
