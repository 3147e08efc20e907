"""
Fit Evaluator

Scores a candidate's experiences against a posting's key competencies with
an LLM acting as a strict hiring manager. Also judges whether the candidate
meets the posting's minimum experience requirement.

Usage:
    evaluator = FitEvaluator()
    result = await evaluator.evaluate_fit(competencies, experiences, min_experience="3+ years")
"""

import logging
from dataclasses import dataclass
from typing import List, Literal, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.common.types import Experience, KeyCompetency, MinimumRequirementsCheck

logger = logging.getLogger(__name__)


# ===== PYDANTIC MODELS FOR LLM OUTPUT =====


class CompetencyEvaluation(BaseModel):
    """Evaluation of one competency."""

    competency_index: int = Field(ge=0, description="0-based index of the competency")
    score: int = Field(ge=1, le=5, description="Score 1-5")
    evaluation: str = Field(description="2-3 sentence honest assessment of the gap or match")


class MinimumRequirementsAssessment(BaseModel):
    """Whether the candidate meets the minimum experience requirement."""

    experience_met: Literal["met", "not_met", "unknown"]
    reason: str = Field(default="", description="One sentence justification")


class FitEvaluationResponse(BaseModel):
    """Complete fit evaluation from the LLM."""

    evaluations: List[CompetencyEvaluation] = Field(default_factory=list)
    minimum_requirements: Optional[MinimumRequirementsAssessment] = None


@dataclass
class FitEvaluationResult:
    """Fit evaluation mapped to domain types."""

    evaluations: List[CompetencyEvaluation]
    minimum_requirements_check: Optional[MinimumRequirementsCheck] = None


# ===== PROMPTS =====

SYSTEM_PROMPT_FIT = """You are a STRICT and REALISTIC career evaluator simulating an actual hiring manager reviewing resumes.

Your evaluation standards MUST be harsh and realistic:
- Score 5: ONLY if the candidate has DIRECT, RECENT experience doing exactly this skill at a similar or higher level
- Score 4: Strong related experience, but not exact match OR experience is from 5+ years ago
- Score 3: Some transferable skills, but significant gap between candidate's experience and job requirement
- Score 2: Minimal relevant experience, would need significant training/ramp-up
- Score 1: No relevant experience at all

SCORING GUIDELINES:
- Most candidates should average between 2-3.5. A score of 4+ should be rare.
- If the candidate's experience doesn't DIRECTLY match the competency, maximum score is 3
- Consider recency: old experience (5+ years) should be downgraded by 1 point
- Be skeptical: general skills don't count as evidence for specific competencies
- Always point out gaps honestly

For each competency, return its 0-based index, a score from 1-5 and a brief
evaluation citing specific evidence from the experience, or noting its absence.

If a minimum experience requirement is given, judge whether the candidate
meets it: "met", "not_met", or "unknown" when the experience cannot tell."""

USER_PROMPT_FIT_TEMPLATE = """Key competencies required by the posting:
{competencies}

Minimum experience requirement: {min_experience}

Candidate's experience:
{experiences}

Evaluate the candidate's fit for each competency."""


def format_competencies(competencies: List[KeyCompetency]) -> str:
    return "\n".join(
        f"{i + 1}. {c.title}: {c.description}" for i, c in enumerate(competencies)
    )


def format_experiences(experiences: List[Experience]) -> str:
    return "\n\n".join(exp.summary_line() for exp in experiences)


class FitEvaluator:
    """
    LLM-backed competency fit evaluation.

    Transient LLM failures are retried; whatever still fails propagates to
    the caller.
    """

    def __init__(self, model: Optional[str] = None, llm: Optional[ChatOpenAI] = None):
        self.model = model or Config.DEFAULT_MODEL
        self.llm = llm or ChatOpenAI(
            model=self.model,
            temperature=Config.ANALYTICAL_TEMPERATURE,
            api_key=Config.get_llm_api_key(),
            base_url=Config.get_llm_base_url(),
        )

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _invoke(self, messages) -> FitEvaluationResponse:
        structured_llm = self.llm.with_structured_output(FitEvaluationResponse)
        return await structured_llm.ainvoke(messages)

    async def evaluate_fit(
        self,
        competencies: List[KeyCompetency],
        experiences: List[Experience],
        min_experience: Optional[str] = None,
    ) -> FitEvaluationResult:
        """
        Evaluate the candidate against each competency.

        Args:
            competencies: Posting's key competencies, in stored order
            experiences: Candidate experiences to judge
            min_experience: Posting's minimum experience requirement, if any

        Returns:
            FitEvaluationResult with per-index evaluations
        """
        messages = [
            SystemMessage(content=SYSTEM_PROMPT_FIT),
            HumanMessage(
                content=USER_PROMPT_FIT_TEMPLATE.format(
                    competencies=format_competencies(competencies),
                    min_experience=min_experience or "Not specified",
                    experiences=format_experiences(experiences),
                )
            ),
        ]

        logger.info(
            f"Evaluating fit: {len(competencies)} competencies, {len(experiences)} experiences"
        )
        response = await self._invoke(messages)

        check = None
        if response.minimum_requirements is not None:
            check = MinimumRequirementsCheck(
                experience_met=response.minimum_requirements.experience_met,
                reason=response.minimum_requirements.reason,
            )
        return FitEvaluationResult(evaluations=response.evaluations, minimum_requirements_check=check)
