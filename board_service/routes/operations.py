"""
Paid Operation Endpoints

- Evaluate fit: score the candidate against a posting's competencies (ai credit, hard gate)
- Generate resume: write a tailored resume (resume credit, soft gate, cancellable)
- Analyze job: scrape a posting URL and add it to the board (ai credit, hard gate)
- Cancel: abort an in-flight resume generation by run id

Each endpoint returns an OperationResponse with run_id and charged. Domain
errors are rendered by the app's BoardError handler.
"""

import asyncio
import logging
from typing import Dict

from fastapi import APIRouter, Depends

from src.common.error_handling import NotFoundError, ValidationError
from src.services.evaluation_orchestrator import EvaluationOrchestrator
from src.services.operation_base import OperationResult, create_run_id

from ..auth import verify_token
from ..dependencies import get_orchestrator
from ..models import (
    AnalyzeJobRequest,
    CancelResponse,
    ErrorResponse,
    EvaluateFitRequest,
    GenerateResumeRequest,
    OperationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["operations"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    402: {"model": ErrorResponse, "description": "Insufficient credits"},
    404: {"model": ErrorResponse, "description": "Posting or ledger not found"},
    502: {"model": ErrorResponse, "description": "AI or scraping call failed"},
}

# Cancel events of in-flight cancellable operations, keyed by run id
_cancel_events: Dict[str, asyncio.Event] = {}


def register_cancel_event(run_id: str) -> asyncio.Event:
    """Create the cancel event for a run. Run ids must be unique among in-flight runs."""
    if run_id in _cancel_events:
        raise ValidationError(f"Run {run_id} is already in progress")
    event = asyncio.Event()
    _cancel_events[run_id] = event
    return event


def release_cancel_event(run_id: str) -> None:
    _cancel_events.pop(run_id, None)


def _to_response(result: OperationResult) -> OperationResponse:
    return OperationResponse(
        success=result.success,
        run_id=result.run_id,
        operation=result.operation,
        data=result.data,
        charged=result.charged,
        duration_ms=result.duration_ms,
        error=result.error,
        model_used=result.model_used,
    )


@router.post(
    "/users/{user_id}/postings/{posting_id}/evaluate-fit",
    response_model=OperationResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(verify_token)],
    summary="Evaluate candidate fit",
    description="Score each key competency against the candidate's experiences and re-rank the posting",
)
async def evaluate_fit(
    user_id: str,
    posting_id: str,
    request: EvaluateFitRequest,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
) -> OperationResponse:
    logger.info(f"Starting evaluate-fit for posting {posting_id} (user {user_id})")
    result = await orchestrator.evaluate_fit(
        user_id,
        posting_id,
        [e.to_domain() for e in request.experiences],
        min_experience=request.min_experience,
    )
    return _to_response(result)


@router.post(
    "/users/{user_id}/postings/{posting_id}/generate-resume",
    response_model=OperationResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(verify_token)],
    summary="Generate tailored resume",
    description="Write a resume tailored to the posting; cancellable via /operations/{run_id}/cancel",
)
async def generate_resume(
    user_id: str,
    posting_id: str,
    request: GenerateResumeRequest,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
) -> OperationResponse:
    run_id = request.run_id or create_run_id("generate_resume")
    cancel_event = register_cancel_event(run_id)
    logger.info(f"Starting generate-resume {run_id} for posting {posting_id} (user {user_id})")
    try:
        result = await orchestrator.generate_resume(
            user_id,
            posting_id,
            [e.to_domain() for e in request.experiences],
            request.language,
            format=request.format,
            cancel_event=cancel_event,
            run_id=run_id,
        )
    finally:
        release_cancel_event(run_id)
    return _to_response(result)


@router.post(
    "/operations/{run_id}/cancel",
    response_model=CancelResponse,
    dependencies=[Depends(verify_token)],
    summary="Cancel an in-flight operation",
)
async def cancel_operation(run_id: str) -> CancelResponse:
    event = _cancel_events.get(run_id)
    if event is None:
        raise NotFoundError(f"No in-flight operation with run id {run_id}")
    event.set()
    logger.info(f"Cancellation requested for {run_id}")
    return CancelResponse(run_id=run_id, cancelled=True)


@router.post(
    "/users/{user_id}/analyze-job",
    response_model=OperationResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(verify_token)],
    summary="Analyze job posting URL",
    description="Scrape and extract a posting, then add it to the user's board",
)
async def analyze_job(
    user_id: str,
    request: AnalyzeJobRequest,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
) -> OperationResponse:
    logger.info(f"Starting analyze-job for user {user_id}: {request.url}")
    result = await orchestrator.analyze_job(
        user_id,
        request.url,
        company_criteria=[c.to_domain() for c in request.company_criteria],
    )
    return _to_response(result)
