"""
Service wiring for route handlers.

Routes receive their collaborators through FastAPI dependencies so tests
can replace them with app.dependency_overrides.
"""

from functools import lru_cache

from src.billing.credit_gate import CreditGate
from src.common.repositories import (
    LedgerRepositoryInterface,
    get_ledger_repository,
    get_posting_repository,
)
from src.services.evaluation_orchestrator import EvaluationOrchestrator
from src.services.posting_score_service import PostingScoreService

from .config import settings


def get_ledger() -> LedgerRepositoryInterface:
    return get_ledger_repository()


@lru_cache()
def get_score_service() -> PostingScoreService:
    return PostingScoreService(get_posting_repository(), get_ledger_repository())


@lru_cache()
def get_orchestrator() -> EvaluationOrchestrator:
    return EvaluationOrchestrator(
        credit_gate=CreditGate(get_ledger_repository()),
        score_service=get_score_service(),
        gate_max_attempts=settings.credit_gate_max_attempts,
    )
