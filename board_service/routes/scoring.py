"""
Pure scoring endpoints. No persistence, no credits.
"""

from fastapi import APIRouter, Depends

from src.scoring import combined_score, compute_aggregate, compute_priority

from ..auth import verify_token
from ..models import AggregateRequest, AggregateResponse, PriorityRequest, PriorityResponse

router = APIRouter(prefix="/scoring", tags=["scoring"])


@router.post(
    "/aggregate",
    response_model=AggregateResponse,
    dependencies=[Depends(verify_token)],
    summary="Aggregate item ratings",
)
async def aggregate(request: AggregateRequest) -> AggregateResponse:
    return AggregateResponse(score=compute_aggregate(request.items))


@router.post(
    "/priority",
    response_model=PriorityResponse,
    dependencies=[Depends(verify_token)],
    summary="Priority bucket of one posting against a population",
)
async def priority(request: PriorityRequest) -> PriorityResponse:
    population = [(p.company_score, p.fit_score) for p in request.population]
    bucket = compute_priority(request.company_score, request.fit_score, population)
    return PriorityResponse(
        priority=bucket,
        combined_score=combined_score(request.company_score, request.fit_score),
    )
