"""
In-memory repository fakes for unit and service tests.

Both fakes guard their state with a lock, so conditional_deduct behaves like
MongoDB's single-document update_one: the compare and the write happen
atomically.
"""

import copy
import itertools
import threading
from typing import Any, Dict, List, Optional

from src.common.repositories.base import (
    LedgerRepositoryInterface,
    PostingRepositoryInterface,
    WriteResult,
)
from src.common.types import (
    CompanyCriteriaScore,
    CreditLedger,
    CreditUsageRecord,
    JobPosting,
    KeyCompetency,
    PostingScores,
    TailoredResume,
)


class InMemoryPostingRepository(PostingRepositoryInterface):
    """Postings stored as documents keyed by id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self.resumes: List[Dict[str, Any]] = []
        self.write_calls: List[Dict[str, Any]] = []
        self.fail_writes = False
        self.fail_resume_inserts = False

    def find_posting(self, user_id: str, posting_id: str) -> Optional[JobPosting]:
        with self._lock:
            doc = self._docs.get(posting_id)
            if doc is None or doc["user_id"] != user_id:
                return None
            return JobPosting.from_document(copy.deepcopy(doc))

    def read_posting_scores(self, user_id: str) -> List[PostingScores]:
        with self._lock:
            return [
                PostingScores(
                    posting_id=doc["_id"],
                    company_score=doc.get("company_score") or 0,
                    fit_score=doc.get("fit_score") or 0,
                    priority=doc.get("priority") or 0,
                )
                for doc in self._docs.values()
                if doc["user_id"] == user_id
            ]

    def write_posting(self, user_id: str, posting_id: str, fields: Dict[str, Any]) -> WriteResult:
        if self.fail_writes:
            raise RuntimeError("write failed")
        with self._lock:
            self.write_calls.append({"posting_id": posting_id, "fields": copy.deepcopy(fields)})
            doc = self._docs.get(posting_id)
            if doc is None or doc["user_id"] != user_id:
                return WriteResult(matched_count=0, modified_count=0)
            doc.update(copy.deepcopy(fields))
            return WriteResult(matched_count=1, modified_count=1)

    def insert_posting(self, posting: JobPosting) -> str:
        if self.fail_writes:
            raise RuntimeError("insert failed")
        with self._lock:
            posting_id = posting.id or f"posting-{next(self._ids)}"
            doc = posting.to_document()
            doc["_id"] = posting_id
            self._docs[posting_id] = doc
            return posting_id

    def count_postings(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for doc in self._docs.values() if doc["user_id"] == user_id)

    def insert_tailored_resume(self, resume: TailoredResume) -> str:
        if self.fail_resume_inserts:
            raise RuntimeError("insert failed")
        with self._lock:
            resume_id = f"resume-{len(self.resumes) + 1}"
            self.resumes.append({"_id": resume_id, **resume.to_document()})
            return resume_id

    def raw(self, posting_id: str) -> Dict[str, Any]:
        """Stored document, for assertions."""
        return self._docs[posting_id]


class InMemoryLedgerRepository(LedgerRepositoryInterface):
    """
    Subscription records keyed by user.

    Set ``read_barrier`` to a threading.Barrier to hold every reader until
    all of them have read, forcing concurrent requests to observe the same
    balance.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subs: Dict[str, Dict[str, Any]] = {}
        self.usage: List[CreditUsageRecord] = []
        self.read_barrier: Optional[threading.Barrier] = None
        self.deduct_calls = 0
        self.fail_usage_writes = False

    def add_subscription(
        self,
        user_id: str,
        ai_remaining: int = 0,
        resume_remaining: int = 0,
        ai_used: int = 0,
        resume_used: int = 0,
        job_limit: Optional[int] = None,
    ) -> None:
        self._subs[user_id] = {
            "ai_credits_remaining": ai_remaining,
            "ai_credits_used": ai_used,
            "resume_credits_remaining": resume_remaining,
            "resume_credits_used": resume_used,
            "job_limit": job_limit,
        }

    def read_ledger(self, user_id: str, credit_type: str) -> Optional[CreditLedger]:
        with self._lock:
            sub = self._subs.get(user_id)
            ledger = None if sub is None else CreditLedger(
                user_id=user_id,
                credit_type=credit_type,
                remaining=sub[f"{credit_type}_credits_remaining"],
                used=sub[f"{credit_type}_credits_used"],
            )
        if self.read_barrier is not None:
            self.read_barrier.wait(timeout=5)
        return ledger

    def conditional_deduct(
        self,
        user_id: str,
        credit_type: str,
        amount: int,
        expected_remaining: int,
    ) -> int:
        with self._lock:
            self.deduct_calls += 1
            sub = self._subs.get(user_id)
            remaining_key = f"{credit_type}_credits_remaining"
            if sub is None or sub[remaining_key] != expected_remaining:
                return 0
            sub[remaining_key] -= amount
            sub[f"{credit_type}_credits_used"] += amount
            return 1

    def record_usage(self, record: CreditUsageRecord) -> WriteResult:
        if self.fail_usage_writes:
            raise RuntimeError("usage insert failed")
        with self._lock:
            self.usage.append(record)
        return WriteResult(matched_count=0, modified_count=0, upserted_id=str(len(self.usage)))

    def get_job_limit(self, user_id: str) -> Optional[int]:
        sub = self._subs.get(user_id)
        return None if sub is None else sub.get("job_limit")

    def balance(self, user_id: str, credit_type: str) -> Dict[str, int]:
        sub = self._subs[user_id]
        return {
            "remaining": sub[f"{credit_type}_credits_remaining"],
            "used": sub[f"{credit_type}_credits_used"],
        }


def make_posting(
    user_id: str = "user-1",
    posting_id: str = "",
    company_name: str = "Acme",
    title: str = "Backend Engineer",
    company_scores: Optional[List[Optional[int]]] = None,
    competency_scores: Optional[List[Optional[int]]] = None,
    company_score: int = 0,
    fit_score: int = 0,
    priority: int = 0,
    **extra,
) -> JobPosting:
    """Build a posting with rated criteria/competencies."""
    criteria = [
        CompanyCriteriaScore(name=f"criterion {i + 1}", score=s)
        for i, s in enumerate(company_scores or [])
    ]
    competencies = [
        KeyCompetency(title=f"competency {i + 1}", description=f"does thing {i + 1}", score=s)
        for i, s in enumerate(competency_scores or [])
    ]
    return JobPosting(
        id=posting_id,
        user_id=user_id,
        company_name=company_name,
        title=title,
        company_score=company_score,
        fit_score=fit_score,
        priority=priority,
        company_criteria_scores=criteria,
        key_competencies=competencies,
        **extra,
    )
