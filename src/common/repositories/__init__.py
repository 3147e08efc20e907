"""
Repository Pattern for MongoDB Operations

Public API:
- get_posting_repository(): Factory for the job postings repository
- get_ledger_repository(): Factory for the credit ledger repository
- PostingRepositoryInterface / LedgerRepositoryInterface: Abstract interfaces
- WriteResult: Result dataclass for write operations

Usage:
    from src.common.repositories import get_posting_repository, get_ledger_repository

    postings = get_posting_repository()
    scores = postings.read_posting_scores(user_id)

    ledger = get_ledger_repository()
    modified = ledger.conditional_deduct(user_id, "ai", 1, expected_remaining=3)
"""

from .base import LedgerRepositoryInterface, PostingRepositoryInterface, WriteResult
from .config import (
    RepositoryConfig,
    get_ledger_repository,
    get_posting_repository,
    reset_ledger_repository,
    reset_posting_repository,
)

__all__ = [
    "get_posting_repository",
    "reset_posting_repository",
    "PostingRepositoryInterface",
    "get_ledger_repository",
    "reset_ledger_repository",
    "LedgerRepositoryInterface",
    "WriteResult",
    "RepositoryConfig",
]
