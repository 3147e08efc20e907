"""
Posting Score Service

The one place a posting's derived scores change. Every score mutation
(a manual rating, an AI fit evaluation, posting creation) goes through
apply_scores() or create_posting(), which recompute:

    company_score = compute_aggregate(company_criteria_scores)
    fit_score     = compute_aggregate(key_competencies)
    priority      = compute_priority(company_score, fit_score, other postings)

and write them in a single update. Only the posting being mutated is
re-ranked; other postings keep the priority computed at their own last
score change.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from src.common.error_handling import (
    NotFoundError,
    PlanLimitExceeded,
    ValidationError,
    log_on_exception,
)
from src.common.repositories.base import (
    LedgerRepositoryInterface,
    PostingRepositoryInterface,
)
from src.common.types import (
    JOB_STATUSES,
    CompanyCriteriaScore,
    JobPosting,
    KeyCompetency,
    PostingScores,
)
from src.scoring.aggregate import compute_aggregate, validate_rating
from src.scoring.priority import compute_priority

logger = logging.getLogger(__name__)

PRIORITY_MIN = 1
PRIORITY_MAX = 5


class PostingScoreService:
    """Recompute-and-persist for posting scores and priority."""

    def __init__(
        self,
        posting_repository: PostingRepositoryInterface,
        ledger_repository: Optional[LedgerRepositoryInterface] = None,
    ):
        self.posting_repository = posting_repository
        self.ledger_repository = ledger_repository

    def get_posting(self, user_id: str, posting_id: str) -> JobPosting:
        posting = self.posting_repository.find_posting(user_id, posting_id)
        if posting is None:
            raise NotFoundError(f"Posting {posting_id} not found for user {user_id}")
        return posting

    def _population(self, user_id: str, exclude_id: Optional[str] = None) -> List[PostingScores]:
        return [
            s for s in self.posting_repository.read_posting_scores(user_id)
            if s.posting_id != exclude_id
        ]

    def apply_scores(
        self,
        posting: JobPosting,
        company_criteria_scores: Optional[List[CompanyCriteriaScore]] = None,
        key_competencies: Optional[List[KeyCompetency]] = None,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> JobPosting:
        """
        Replace rated arrays, recompute derived scores and write once.

        Only the aggregate whose array is supplied is recomputed; the other
        keeps its stored value. Clears a manual priority override.

        Args:
            posting: Current posting
            company_criteria_scores: New criteria array, or None to keep
            key_competencies: New competencies array, or None to keep
            extra_fields: Additional document fields written in the same update

        Returns:
            The updated posting
        """
        criteria = (
            company_criteria_scores if company_criteria_scores is not None
            else posting.company_criteria_scores
        )
        competencies = (
            key_competencies if key_competencies is not None
            else posting.key_competencies
        )

        company_score = (
            compute_aggregate(criteria) if company_criteria_scores is not None
            else posting.company_score
        )
        fit_score = (
            compute_aggregate(competencies) if key_competencies is not None
            else posting.fit_score
        )

        population = self._population(posting.user_id, exclude_id=posting.id)
        priority = compute_priority(company_score, fit_score, population)

        fields: Dict[str, Any] = dict(extra_fields or {})
        fields.update({
            "company_criteria_scores": [c.to_dict() for c in criteria],
            "key_competencies": [k.to_dict() for k in competencies],
            "company_score": company_score,
            "fit_score": fit_score,
            "priority": priority,
            "priority_overridden": False,
        })

        with log_on_exception(logger, f"write scores of posting {posting.id}", level=logging.ERROR):
            result = self.posting_repository.write_posting(posting.user_id, posting.id, fields)
        if result.matched_count == 0:
            raise NotFoundError(f"Posting {posting.id} not found for user {posting.user_id}")

        logger.info(
            f"Rescored posting {posting.id}: company={company_score} fit={fit_score} "
            f"priority={priority} (against {len(population)} postings)"
        )
        return replace(
            posting,
            company_criteria_scores=list(criteria),
            key_competencies=list(competencies),
            company_score=company_score,
            fit_score=fit_score,
            priority=priority,
            priority_overridden=False,
        )

    def rate_company_criterion(
        self,
        user_id: str,
        posting_id: str,
        index: int,
        score: Optional[int],
    ) -> JobPosting:
        """Set (1-5) or clear (None) one company criterion rating."""
        rating = validate_rating(score)
        posting = self.get_posting(user_id, posting_id)
        if not 0 <= index < len(posting.company_criteria_scores):
            raise ValidationError(
                f"Company criterion index {index} out of range "
                f"(posting has {len(posting.company_criteria_scores)})"
            )
        criteria = [replace(c) for c in posting.company_criteria_scores]
        criteria[index].score = rating
        return self.apply_scores(posting, company_criteria_scores=criteria)

    def rate_competency(
        self,
        user_id: str,
        posting_id: str,
        index: int,
        score: Optional[int],
    ) -> JobPosting:
        """Set (1-5) or clear (None) one key competency rating."""
        rating = validate_rating(score)
        posting = self.get_posting(user_id, posting_id)
        if not 0 <= index < len(posting.key_competencies):
            raise ValidationError(
                f"Competency index {index} out of range "
                f"(posting has {len(posting.key_competencies)})"
            )
        competencies = [replace(k) for k in posting.key_competencies]
        competencies[index].score = rating
        return self.apply_scores(posting, key_competencies=competencies)

    def override_priority(self, user_id: str, posting_id: str, priority: int) -> JobPosting:
        """
        Manually set priority 1-5. Survives until the next score mutation.
        """
        if isinstance(priority, bool) or not isinstance(priority, int) or not (
            PRIORITY_MIN <= priority <= PRIORITY_MAX
        ):
            raise ValidationError(f"Priority must be an integer 1-5, got {priority!r}")

        posting = self.get_posting(user_id, posting_id)
        result = self.posting_repository.write_posting(
            user_id, posting_id, {"priority": priority, "priority_overridden": True}
        )
        if result.matched_count == 0:
            raise NotFoundError(f"Posting {posting_id} not found for user {user_id}")

        logger.info(f"Priority of posting {posting_id} overridden: {posting.priority} -> {priority}")
        return replace(posting, priority=priority, priority_overridden=True)

    def check_job_limit(self, user_id: str) -> None:
        """
        Raises:
            PlanLimitExceeded: The user already tracks as many postings as the plan allows
        """
        if self.ledger_repository is None:
            return
        limit = self.ledger_repository.get_job_limit(user_id)
        if limit is None:
            return
        count = self.posting_repository.count_postings(user_id)
        if count >= limit:
            raise PlanLimitExceeded(
                f"Plan allows {limit} postings; user {user_id} already has {count}"
            )

    def create_posting(
        self,
        user_id: str,
        fields: Dict[str, Any],
        company_criteria: Optional[List[CompanyCriteriaScore]] = None,
        key_competencies: Optional[List[KeyCompetency]] = None,
        initial_company_score: int = 0,
        initial_fit_score: int = 0,
        enforce_limit: bool = True,
    ) -> JobPosting:
        """
        Create a posting with its initial scores and priority.

        An aggregate with at least one rated item is derived from its array;
        otherwise the initial score (0 = unscored) seeds it.

        Args:
            user_id: Owner
            fields: Descriptive posting fields (company_name, title, summary, ...)
            company_criteria: Criteria inherited from the user's career goal
            key_competencies: Competencies extracted for the posting
            initial_company_score: Seed company score (0-5)
            initial_fit_score: Seed fit score (0-5)
            enforce_limit: Check the plan job limit before inserting

        Returns:
            The created posting with its id
        """
        status = fields.get("status", "reviewing")
        if status not in JOB_STATUSES:
            raise ValidationError(f"Unknown job status: {status}")
        if enforce_limit:
            self.check_job_limit(user_id)

        criteria = list(company_criteria or [])
        competencies = list(key_competencies or [])

        company_score = compute_aggregate(criteria) or (validate_rating(initial_company_score) or 0)
        fit_score = compute_aggregate(competencies) or (validate_rating(initial_fit_score) or 0)

        population = self._population(user_id)
        priority = compute_priority(company_score, fit_score, population)

        posting = JobPosting(
            id="",
            user_id=user_id,
            company_name=fields.get("company_name", ""),
            title=fields.get("title", ""),
            position=fields.get("position", ""),
            status=status,
            priority=priority,
            company_score=company_score,
            fit_score=fit_score,
            company_criteria_scores=criteria,
            key_competencies=competencies,
            summary=fields.get("summary"),
            source_url=fields.get("source_url"),
            language=fields.get("language"),
            min_experience=fields.get("min_experience"),
            location=fields.get("location"),
            work_type=fields.get("work_type"),
            visa_sponsorship=fields.get("visa_sponsorship"),
            evidence=dict(fields.get("evidence") or {}),
        )
        with log_on_exception(logger, f"insert posting for user {user_id}", level=logging.ERROR):
            posting_id = self.posting_repository.insert_posting(posting)

        logger.info(
            f"Created posting {posting_id} for user {user_id}: company={company_score} "
            f"fit={fit_score} priority={priority}"
        )
        return replace(posting, id=posting_id)

    def board_priorities(self, user_id: str) -> List[PostingScores]:
        """Current scores and priority of every posting on the user's board."""
        return self.posting_repository.read_posting_scores(user_id)
