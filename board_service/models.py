"""
Pydantic models for the board service API.

Ratings and priorities are accepted as raw JSON values and validated by the
scoring layer, so malformed values get the same 400 error body as every
other validation failure.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.common.types import CompanyCriteriaScore, Experience


class ExperienceModel(BaseModel):
    """A work or project experience selected by the user."""

    type: str = Field("work", description="work or project")
    title: str
    company: Optional[str] = None
    period: Optional[str] = None
    description: str = ""
    bullets: List[str] = Field(default_factory=list)

    def to_domain(self) -> Experience:
        return Experience(
            title=self.title,
            description=self.description,
            type=self.type,
            company=self.company,
            period=self.period,
            bullets=list(self.bullets),
        )


class EvaluateFitRequest(BaseModel):
    experiences: List[ExperienceModel] = Field(default_factory=list)
    min_experience: Optional[str] = Field(
        None, description="Overrides the posting's stored minimum experience"
    )


class GenerateResumeRequest(BaseModel):
    experiences: List[ExperienceModel] = Field(default_factory=list)
    language: str = Field("en", description="Resume language code")
    format: Optional[str] = Field(None, description="consulting or narrative")
    run_id: Optional[str] = Field(
        None, description="Client-chosen run id, used to cancel the request"
    )


class CompanyCriterionModel(BaseModel):
    name: str
    weight: int = Field(1, ge=1, le=5)

    def to_domain(self) -> CompanyCriteriaScore:
        return CompanyCriteriaScore(name=self.name, weight=self.weight)


class AnalyzeJobRequest(BaseModel):
    url: str
    company_criteria: List[CompanyCriterionModel] = Field(default_factory=list)


class RatingRequest(BaseModel):
    score: Any = Field(None, description="1-5, or null/0 to clear")


class PriorityOverrideRequest(BaseModel):
    priority: Any = Field(..., description="1 (best) - 5 (worst)")


class OperationResponse(BaseModel):
    """Standard response for paid operation endpoints."""

    success: bool
    run_id: str
    operation: str
    data: Dict[str, Any] = Field(default_factory=dict)
    charged: bool = Field(..., description="Whether credits were deducted")
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    model_used: Optional[str] = None


class PostingScoresResponse(BaseModel):
    posting_id: str
    company_score: int
    fit_score: int
    priority: int
    priority_overridden: bool = False


class BoardPrioritiesResponse(BaseModel):
    user_id: str
    postings: List[PostingScoresResponse]


class CreditLedgerModel(BaseModel):
    remaining: int
    used: int
    total: int


class CreditsResponse(BaseModel):
    user_id: str
    credits: Dict[str, CreditLedgerModel]


class AggregateRequest(BaseModel):
    items: List[Any] = Field(
        default_factory=list,
        description="Ratings as ints/null or objects with a score field",
    )


class AggregateResponse(BaseModel):
    score: int


class PopulationEntry(BaseModel):
    company_score: Any = 0
    fit_score: Any = 0


class PriorityRequest(BaseModel):
    company_score: Any = 0
    fit_score: Any = 0
    population: List[PopulationEntry] = Field(default_factory=list)


class PriorityResponse(BaseModel):
    priority: int
    combined_score: float


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_type: str
    charged: bool


class CancelResponse(BaseModel):
    run_id: str
    cancelled: bool


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
