"""
Canonical data types for the job board.

- JobPosting: a tracked job with its per-item ratings and derived scores
- CompanyCriteriaScore / KeyCompetency: the rated items behind company_score / fit_score
- Experience: a candidate experience passed to AI operations
- PostingScores: the (company, fit, priority) snapshot the ranker works on
- CreditLedger / CreditUsageRecord: one credit type of a user's subscription
- TailoredResume: persisted output of resume generation

Documents are stored in MongoDB with snake_case keys; each type knows how to
convert itself to and from its document form.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


JOB_STATUSES = (
    "reviewing",
    "applied",
    "interview",
    "rejected-docs",
    "rejected-interview",
    "offer",
    "accepted",
)

CREDIT_TYPES = ("ai", "resume")

EXPERIENCE_MET_VALUES = ("met", "not_met", "unknown")

RESUME_FORMATS = ("consulting", "narrative")


@dataclass
class CompanyCriteriaScore:
    """User rating of one company criterion inherited from the active career goal."""

    name: str
    weight: int = 1                    # 1-5 importance, display/sorting only
    score: Optional[int] = None        # 1-5, None when not rated

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "weight": self.weight, "score": self.score}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompanyCriteriaScore":
        return cls(
            name=data.get("name", ""),
            weight=data.get("weight", 1),
            score=data.get("score"),
        )


@dataclass
class KeyCompetency:
    """AI-extracted competency with optional self/AI rating and AI evaluation text."""

    title: str
    description: str = ""
    score: Optional[int] = None
    evaluation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "score": self.score,
            "evaluation": self.evaluation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyCompetency":
        return cls(
            title=data.get("title", ""),
            description=data.get("description", ""),
            score=data.get("score"),
            evaluation=data.get("evaluation"),
        )


@dataclass
class MinimumRequirementsCheck:
    """Whether the candidate meets the posting's minimum experience."""

    experience_met: str                # met / not_met / unknown
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"experience_met": self.experience_met, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MinimumRequirementsCheck":
        experience_met = data.get("experience_met")
        return cls(
            experience_met=experience_met if experience_met in EXPERIENCE_MET_VALUES else "unknown",
            reason=data.get("reason", ""),
        )


@dataclass
class Experience:
    """A work or project experience supplied by the caller."""

    title: str
    description: str = ""
    type: str = "work"                 # work / project
    company: Optional[str] = None
    period: Optional[str] = None
    bullets: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "company": self.company,
            "period": self.period,
            "description": self.description,
            "bullets": list(self.bullets),
        }

    def summary_line(self) -> str:
        """One block of prompt text describing this experience."""
        kind = "Work" if self.type == "work" else "Project"
        header = f"[{kind}] {self.title}"
        if self.company:
            header += f" @ {self.company}"
        if self.period:
            header += f" ({self.period})"
        lines = [header]
        if self.description:
            lines.append(self.description)
        lines.extend(f"- {b}" for b in self.bullets)
        return "\n".join(lines)


@dataclass
class PostingScores:
    """Aggregate scores of one posting as seen by the priority ranker."""

    posting_id: str
    company_score: int = 0
    fit_score: int = 0
    priority: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "posting_id": self.posting_id,
            "company_score": self.company_score,
            "fit_score": self.fit_score,
            "priority": self.priority,
        }


@dataclass
class JobPosting:
    """
    A tracked job posting.

    company_score, fit_score and priority are derived fields: they are only
    written by the posting score service, never set independently (except a
    manual priority override, flagged by priority_overridden).
    """

    id: str
    user_id: str
    company_name: str
    title: str
    position: str = ""
    status: str = "reviewing"
    priority: int = 0
    priority_overridden: bool = False
    company_score: int = 0
    fit_score: int = 0
    company_criteria_scores: List[CompanyCriteriaScore] = field(default_factory=list)
    key_competencies: List[KeyCompetency] = field(default_factory=list)
    minimum_requirements_check: Optional[MinimumRequirementsCheck] = None
    summary: Optional[str] = None
    source_url: Optional[str] = None
    language: Optional[str] = None
    min_experience: Optional[str] = None
    location: Optional[str] = None
    work_type: Optional[str] = None
    visa_sponsorship: Optional[bool] = None
    evidence: Dict[str, str] = field(default_factory=dict)  # field name -> source sentence
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def job_info(self) -> Dict[str, Any]:
        """Fields the resume generator needs about the job."""
        return {
            "title": self.title,
            "company_name": self.company_name,
            "summary": self.summary or "",
        }

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document (without _id)."""
        return {
            "user_id": self.user_id,
            "company_name": self.company_name,
            "title": self.title,
            "position": self.position,
            "status": self.status,
            "priority": self.priority,
            "priority_overridden": self.priority_overridden,
            "company_score": self.company_score,
            "fit_score": self.fit_score,
            "company_criteria_scores": [c.to_dict() for c in self.company_criteria_scores],
            "key_competencies": [k.to_dict() for k in self.key_competencies],
            "minimum_requirements_check": (
                self.minimum_requirements_check.to_dict()
                if self.minimum_requirements_check else None
            ),
            "summary": self.summary,
            "source_url": self.source_url,
            "language": self.language,
            "min_experience": self.min_experience,
            "location": self.location,
            "work_type": self.work_type,
            "visa_sponsorship": self.visa_sponsorship,
            "evidence": dict(self.evidence),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "JobPosting":
        """Build from a MongoDB document. Missing score fields read as 0 (unscored)."""
        check = doc.get("minimum_requirements_check")
        now = datetime.utcnow()
        return cls(
            id=str(doc["_id"]),
            user_id=doc["user_id"],
            company_name=doc.get("company_name", ""),
            title=doc.get("title", ""),
            position=doc.get("position", ""),
            status=doc.get("status", "reviewing"),
            priority=doc.get("priority") or 0,
            priority_overridden=bool(doc.get("priority_overridden", False)),
            company_score=doc.get("company_score") or 0,
            fit_score=doc.get("fit_score") or 0,
            company_criteria_scores=[
                CompanyCriteriaScore.from_dict(c) for c in doc.get("company_criteria_scores") or []
            ],
            key_competencies=[
                KeyCompetency.from_dict(k) for k in doc.get("key_competencies") or []
            ],
            minimum_requirements_check=(
                MinimumRequirementsCheck.from_dict(check) if check else None
            ),
            summary=doc.get("summary"),
            source_url=doc.get("source_url"),
            language=doc.get("language"),
            min_experience=doc.get("min_experience"),
            location=doc.get("location"),
            work_type=doc.get("work_type"),
            visa_sponsorship=doc.get("visa_sponsorship"),
            evidence=doc.get("evidence") or {},
            created_at=doc.get("created_at") or now,
            updated_at=doc.get("updated_at") or now,
        )


@dataclass
class CreditLedger:
    """One credit type of a user's subscription."""

    user_id: str
    credit_type: str                   # ai / resume
    remaining: int
    used: int

    @property
    def total(self) -> int:
        """remaining + used, conserved across a deduction."""
        return self.remaining + self.used


@dataclass
class CreditUsageRecord:
    """Audit record appended for every admitted paid operation."""

    user_id: str
    credit_type: str
    operation: str
    amount: int
    deducted: bool
    run_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_document(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "credit_type": self.credit_type,
            "operation": self.operation,
            "amount": self.amount,
            "deducted": self.deducted,
            "run_id": self.run_id,
            "created_at": self.created_at,
        }


@dataclass
class TailoredResume:
    """A generated resume tailored to one posting."""

    user_id: str
    posting_id: str
    content: str
    ai_feedback: Optional[str]
    language: str
    format: str
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_document(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "posting_id": self.posting_id,
            "content": self.content,
            "ai_feedback": self.ai_feedback,
            "language": self.language,
            "format": self.format,
            "created_at": self.created_at,
        }
