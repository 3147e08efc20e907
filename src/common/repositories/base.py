"""
Repository Interface Definitions

Abstract interfaces for the two persisted resources the core touches:
job postings (plus their tailored resumes) and per-user credit ledgers.
Consumers depend on these interfaces so tests can swap in in-memory fakes
and production can use the MongoDB implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from src.common.types import (
    CreditLedger,
    CreditUsageRecord,
    JobPosting,
    PostingScores,
    TailoredResume,
)


@dataclass
class WriteResult:
    """
    Result of a write operation.

    Attributes:
        matched_count: Number of documents that matched the filter
        modified_count: Number of documents actually modified
        upserted_id: ID of inserted/upserted document (if any)
    """
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None


class PostingRepositoryInterface(ABC):
    """
    Job postings owned by users.

    Every method is scoped by user_id: a posting is only visible to and
    writable by its owner.
    """

    @abstractmethod
    def find_posting(self, user_id: str, posting_id: str) -> Optional[JobPosting]:
        """
        Load one posting.

        Returns:
            JobPosting, or None if it does not exist or belongs to another user
        """
        pass

    @abstractmethod
    def read_posting_scores(self, user_id: str) -> List[PostingScores]:
        """
        Snapshot of (company_score, fit_score, priority) for all of a user's postings.

        The snapshot is read without locking; it may already be stale when
        used, which the ranker tolerates.
        """
        pass

    @abstractmethod
    def write_posting(
        self,
        user_id: str,
        posting_id: str,
        fields: Dict[str, Any],
    ) -> WriteResult:
        """
        Set fields on a posting ($set semantics). Fail-fast on database error.

        Args:
            user_id: Owner of the posting
            posting_id: Posting to update
            fields: Document fields to set (snake_case keys)
        """
        pass

    @abstractmethod
    def insert_posting(self, posting: JobPosting) -> str:
        """
        Insert a new posting.

        Returns:
            The new posting id
        """
        pass

    @abstractmethod
    def count_postings(self, user_id: str) -> int:
        """Number of postings the user currently tracks."""
        pass

    @abstractmethod
    def insert_tailored_resume(self, resume: TailoredResume) -> str:
        """
        Persist a generated resume.

        Returns:
            The new resume id
        """
        pass


class LedgerRepositoryInterface(ABC):
    """
    Per-user credit ledgers stored on the subscription record.

    The only mutation offered is a conditional deduction: there is no
    read-modify-write path, so concurrent requests cannot lose updates.
    """

    @abstractmethod
    def read_ledger(self, user_id: str, credit_type: str) -> Optional[CreditLedger]:
        """
        Read one credit type of the user's ledger.

        Returns:
            CreditLedger, or None if the user has no subscription record
        """
        pass

    @abstractmethod
    def conditional_deduct(
        self,
        user_id: str,
        credit_type: str,
        amount: int,
        expected_remaining: int,
    ) -> int:
        """
        Atomically move ``amount`` from remaining to used, only if remaining
        still equals ``expected_remaining``.

        Returns:
            Number of ledgers modified: 1 on success, 0 if remaining changed
        """
        pass

    @abstractmethod
    def record_usage(self, record: CreditUsageRecord) -> WriteResult:
        """Append a credit usage record."""
        pass

    @abstractmethod
    def get_job_limit(self, user_id: str) -> Optional[int]:
        """
        Maximum number of postings the user's plan allows.

        Returns:
            The limit, or None when the plan sets no limit
        """
        pass
