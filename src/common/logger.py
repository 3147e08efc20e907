"""
Centralized logging configuration for the job board backend.

Log lines for a paid operation carry its run id, operation name and user so
one request can be followed from the credit gate through the AI call to the
persisted result:

    2025-01-01 10:00:00 [INFO] src.billing.credit_gate: [run:3f2a9c1b] [evaluate_fit] [user:u-42] Admitted (remaining 4)
"""

import logging
import os
import sys
from typing import Optional


_GLOBAL_DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"


def set_global_debug_mode(enabled: bool) -> None:
    """Set global debug mode (used by the API debug flag)."""
    global _GLOBAL_DEBUG_MODE
    _GLOBAL_DEBUG_MODE = enabled


def is_debug_mode() -> bool:
    """Check if debug mode is enabled globally."""
    return _GLOBAL_DEBUG_MODE


class OperationLogger:
    """
    Logger adapter that prefixes every message with operation context.

    Only the context parts that are set are rendered, so the same class
    serves pure scoring code (no run id) and full paid workflows.
    """

    def __init__(
        self,
        name: str,
        run_id: Optional[str] = None,
        operation: Optional[str] = None,
        user_id: Optional[str] = None,
        debug_mode: Optional[bool] = None,
    ):
        self.logger = logging.getLogger(name)
        self.run_id = run_id
        self.operation = operation
        self.user_id = user_id

        debug = debug_mode if debug_mode is not None else is_debug_mode()
        if debug:
            self.logger.setLevel(logging.DEBUG)

    def _prefix(self, message: str) -> str:
        parts = []
        if self.run_id:
            parts.append(f"[run:{self.run_id[-8:]}]")
        if self.operation:
            parts.append(f"[{self.operation}]")
        if self.user_id:
            parts.append(f"[user:{self.user_id}]")
        return f"{' '.join(parts)} {message}" if parts else message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._prefix(message), **kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(self._prefix(message), **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._prefix(message), **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(self._prefix(message), **kwargs)

    def exception(self, message: str, **kwargs):
        self.logger.exception(self._prefix(message), **kwargs)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger to write to stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: "simple" for development, "json" for log aggregators
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if format == "json":
        formatter = logging.Formatter(
            '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(
    name: str,
    run_id: Optional[str] = None,
    operation: Optional[str] = None,
    user_id: Optional[str] = None,
    debug_mode: Optional[bool] = None,
) -> OperationLogger:
    """
    Get an operation logger instance.

    Args:
        name: Logger name (usually __name__)
        run_id: Optional run identifier
        operation: Optional operation name (e.g. "evaluate_fit")
        user_id: Optional owning user
        debug_mode: If True, enables DEBUG level. If None, uses global setting.
    """
    return OperationLogger(name, run_id, operation, user_id, debug_mode)
