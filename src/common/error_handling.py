"""
Centralized error handling for the job board backend.

Defines the error taxonomy shared by scoring, the credit gate and the
paid-operation workflows, plus logging helpers that never swallow errors.

Every error carries ``charged``: whether the user's credits were already
deducted when it was raised. Callers use it to tell "you were not charged"
apart from "you were charged but the operation failed".
"""

import logging
from typing import Any, Dict, Optional


class BoardError(Exception):
    """Base class for all job board domain errors."""

    error_type: str = "board_error"
    default_charged: bool = False

    def __init__(self, message: str, charged: Optional[bool] = None):
        super().__init__(message)
        self.message = message
        self.charged = self.default_charged if charged is None else charged

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "success": False,
            "error": self.message,
            "error_type": self.error_type,
            "charged": self.charged,
        }


class ValidationError(BoardError, ValueError):
    """Malformed input: a rating outside 1-5, missing competencies, etc."""

    error_type = "validation_error"


class NotFoundError(BoardError, LookupError):
    """A posting or credit ledger does not exist for the user."""

    error_type = "not_found"


class PlanLimitExceeded(BoardError):
    """The user's plan does not allow tracking another posting."""

    error_type = "plan_limit_exceeded"


class CreditGateRejected(BoardError):
    """Base for gate rejections. Nothing was deducted."""

    error_type = "credit_gate_rejected"

    def __init__(self, message: str, user_id: str, credit_type: str, amount: int):
        super().__init__(message, charged=False)
        self.user_id = user_id
        self.credit_type = credit_type
        self.amount = amount

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["credit_type"] = self.credit_type
        data["amount"] = self.amount
        return data


class InsufficientCredits(CreditGateRejected):
    """Remaining credits are below the requested amount. Never retried automatically."""

    error_type = "insufficient_credits"

    def __init__(self, user_id: str, credit_type: str, amount: int, remaining: int):
        super().__init__(
            f"Insufficient {credit_type} credits: {remaining} remaining, {amount} required",
            user_id=user_id,
            credit_type=credit_type,
            amount=amount,
        )
        self.remaining = remaining

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["remaining"] = self.remaining
        return data


class ConcurrentModification(CreditGateRejected):
    """The ledger changed between read and conditional deduct. Safe to retry the gate."""

    error_type = "concurrent_modification"

    def __init__(self, user_id: str, credit_type: str, amount: int, expected_remaining: int):
        super().__init__(
            f"{credit_type} credit ledger changed concurrently "
            f"(expected {expected_remaining} remaining); try again",
            user_id=user_id,
            credit_type=credit_type,
            amount=amount,
        )
        self.expected_remaining = expected_remaining


class ExternalCallFailed(BoardError):
    """The AI or scraping collaborator errored or returned unusable data."""

    error_type = "external_call_failed"


class OperationCancelled(BoardError):
    """The caller aborted the in-flight external call. Credits already spent stand."""

    error_type = "operation_cancelled"
    default_charged = True


class PersistenceFailed(BoardError):
    """Writing the operation result failed after the external call succeeded."""

    error_type = "persistence_failed"


def log_on_exception(
    logger: logging.Logger,
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
):
    """
    Context manager for logging exceptions without swallowing them.

    Usage:
        with log_on_exception(logger, "write posting", level=logging.ERROR):
            repository.write_posting(...)

    Args:
        logger: Logger instance to use
        operation: Operation description for the log message
        level: Log level (default: WARNING)
        include_traceback: Whether to include stack trace in log
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None:
                logger.log(
                    level,
                    f"[{operation}] Failed: {exc_val}",
                    exc_info=include_traceback,
                )
            # Never suppress
            return False

    return ExceptionLogger()
