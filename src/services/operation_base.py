"""
Shared pieces of the paid operation workflows.

Each paid operation (evaluate fit, generate resume, analyze job) returns an
OperationResult tagged with a run id, so log lines, the usage record and the
HTTP response can be correlated.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generator, Optional
import time
import uuid


@dataclass
class OperationResult:
    """Result from a paid operation."""

    success: bool
    run_id: str
    operation: str
    data: Dict[str, Any]
    duration_ms: int
    charged: bool
    error: Optional[str] = None
    model_used: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "run_id": self.run_id,
            "operation": self.operation,
            "data": self.data,
            "duration_ms": self.duration_ms,
            "charged": self.charged,
            "error": self.error,
            "model_used": self.model_used,
            "timestamp": self.timestamp.isoformat(),
        }


def create_run_id(operation: str) -> str:
    """
    Generate unique run ID for tracking.

    Returns:
        Unique run ID string in format "op_{operation}_{random_hex}"
    """
    return f"op_{operation}_{uuid.uuid4().hex[:12]}"


@contextmanager
def timed_execution() -> Generator["OperationTimer", None, None]:
    """
    Time a paid operation from admission to persisted result.

    The timer is stopped on exit even when the workflow raises, so a failed
    run still logs how long it held the user's credits:

        with timed_execution() as timer:
            admission = gate.admit(...)
            ...
        result.duration_ms = timer.duration_ms
    """
    timer = OperationTimer()
    try:
        yield timer
    finally:
        timer.stop()


@dataclass
class OperationTimer:
    start_time: float = field(default_factory=time.perf_counter)
    end_time: Optional[float] = None

    @property
    def duration_ms(self) -> int:
        """Elapsed milliseconds; still counting until stop() is called."""
        end = time.perf_counter() if self.end_time is None else self.end_time
        return int((end - self.start_time) * 1000)

    def stop(self) -> int:
        self.end_time = time.perf_counter()
        return self.duration_ms
