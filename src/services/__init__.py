"""
Services for posting scores and credit-gated AI operations.

EvaluationOrchestrator sequences the paid workflows; PostingScoreService is
the single recompute point for derived scores and priority.
"""

from src.services.operation_base import OperationResult, OperationTimer, create_run_id
from src.services.posting_score_service import PostingScoreService
from src.services.evaluation_orchestrator import EvaluationOrchestrator

__all__ = [
    "OperationResult",
    "OperationTimer",
    "create_run_id",
    "PostingScoreService",
    "EvaluationOrchestrator",
]
