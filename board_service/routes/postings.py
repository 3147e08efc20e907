"""
Posting Score Endpoints

Manual rating edits, priority override and the board's current priorities.
Every edit goes through PostingScoreService, which recomputes the derived
scores and the posting's priority in one write.

Handlers are plain functions: the repository calls are synchronous pymongo, so
FastAPI runs them in its threadpool instead of on the event loop.
"""

import logging

from fastapi import APIRouter, Depends

from src.common.types import JobPosting
from src.services.posting_score_service import PostingScoreService

from ..auth import verify_token
from ..dependencies import get_score_service
from ..models import (
    BoardPrioritiesResponse,
    PostingScoresResponse,
    PriorityOverrideRequest,
    RatingRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}", tags=["postings"])


def _scores_response(posting: JobPosting) -> PostingScoresResponse:
    return PostingScoresResponse(
        posting_id=posting.id,
        company_score=posting.company_score,
        fit_score=posting.fit_score,
        priority=posting.priority,
        priority_overridden=posting.priority_overridden,
    )


@router.put(
    "/postings/{posting_id}/company-criteria/{index}",
    response_model=PostingScoresResponse,
    dependencies=[Depends(verify_token)],
    summary="Rate a company criterion",
)
def rate_company_criterion(
    user_id: str,
    posting_id: str,
    index: int,
    request: RatingRequest,
    service: PostingScoreService = Depends(get_score_service),
) -> PostingScoresResponse:
    posting = service.rate_company_criterion(user_id, posting_id, index, request.score)
    return _scores_response(posting)


@router.put(
    "/postings/{posting_id}/competencies/{index}",
    response_model=PostingScoresResponse,
    dependencies=[Depends(verify_token)],
    summary="Rate a key competency",
)
def rate_competency(
    user_id: str,
    posting_id: str,
    index: int,
    request: RatingRequest,
    service: PostingScoreService = Depends(get_score_service),
) -> PostingScoresResponse:
    posting = service.rate_competency(user_id, posting_id, index, request.score)
    return _scores_response(posting)


@router.put(
    "/postings/{posting_id}/priority",
    response_model=PostingScoresResponse,
    dependencies=[Depends(verify_token)],
    summary="Override priority",
    description="Manual priority 1-5; replaced by the next score change",
)
def override_priority(
    user_id: str,
    posting_id: str,
    request: PriorityOverrideRequest,
    service: PostingScoreService = Depends(get_score_service),
) -> PostingScoresResponse:
    posting = service.override_priority(user_id, posting_id, request.priority)
    return _scores_response(posting)


@router.get(
    "/priorities",
    response_model=BoardPrioritiesResponse,
    dependencies=[Depends(verify_token)],
    summary="Board priorities",
)
def board_priorities(
    user_id: str,
    service: PostingScoreService = Depends(get_score_service),
) -> BoardPrioritiesResponse:
    scores = service.board_priorities(user_id)
    return BoardPrioritiesResponse(
        user_id=user_id,
        postings=[
            PostingScoresResponse(
                posting_id=s.posting_id,
                company_score=s.company_score,
                fit_score=s.fit_score,
                priority=s.priority,
            )
            for s in scores
        ],
    )
