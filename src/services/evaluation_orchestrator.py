"""
Evaluation Orchestrator

Runs the paid workflows end to end:

    preconditions -> credit gate -> external AI call -> map result -> persist -> re-rank

- evaluate_fit:    hard-gated (ai credits), scores competencies, re-ranks the posting
- generate_resume: soft-gated (resume credits), cancellable, stores a tailored resume
- analyze_job:     hard-gated (ai credits), scrapes + extracts, creates the posting

Errors raised after admission carry charged=True when credits were deducted.
Deducted credits are never refunded.
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from src.billing.credit_gate import Admission, CreditGate
from src.common.error_handling import (
    ExternalCallFailed,
    OperationCancelled,
    PersistenceFailed,
    ValidationError,
)
from src.common.logger import get_logger
from src.common.types import (
    RESUME_FORMATS,
    CompanyCriteriaScore,
    Experience,
    JobPosting,
    TailoredResume,
)
from src.scoring.aggregate import validate_rating
from src.services.fit_evaluator import FitEvaluator
from src.services.job_analyzer import JobAnalyzer
from src.services.operation_base import OperationResult, create_run_id, timed_execution
from src.services.posting_score_service import PostingScoreService
from src.services.resume_generator import ResumeGenerator, default_format

logger = logging.getLogger(__name__)

# Synchronous repository and gate calls of the async workflows
_db_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="board_db_")


class EvaluationOrchestrator:
    """
    Sequences gate, external call and persistence for paid operations.

    Collaborators are injected; the HTTP service builds one orchestrator per
    process from the repository singletons.
    """

    def __init__(
        self,
        credit_gate: CreditGate,
        score_service: PostingScoreService,
        fit_evaluator: Optional[FitEvaluator] = None,
        resume_generator: Optional[ResumeGenerator] = None,
        job_analyzer: Optional[JobAnalyzer] = None,
        gate_max_attempts: int = 1,
    ):
        self.credit_gate = credit_gate
        self.score_service = score_service
        self._fit_evaluator = fit_evaluator
        self._resume_generator = resume_generator
        self._job_analyzer = job_analyzer
        self.gate_max_attempts = gate_max_attempts

    @property
    def fit_evaluator(self) -> FitEvaluator:
        if self._fit_evaluator is None:
            self._fit_evaluator = FitEvaluator()
        return self._fit_evaluator

    @property
    def resume_generator(self) -> ResumeGenerator:
        if self._resume_generator is None:
            self._resume_generator = ResumeGenerator()
        return self._resume_generator

    @property
    def job_analyzer(self) -> JobAnalyzer:
        if self._job_analyzer is None:
            self._job_analyzer = JobAnalyzer()
        return self._job_analyzer

    def _resolve(self, name: str):
        """
        Build a lazily constructed collaborator before the credit gate runs.

        A missing API key or bad model config surfaces here, before anything
        is deducted.
        """
        try:
            return getattr(self, name)
        except Exception as e:
            logger.error(f"Failed to initialize {name}: {e}")
            raise ExternalCallFailed(f"{name} unavailable: {e}", charged=False) from e

    async def _run_db(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a synchronous repository or gate call in the DB thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_db_executor, functools.partial(fn, *args, **kwargs))

    async def _admit(self, user_id: str, operation: str, run_id: str) -> Admission:
        return await self._run_db(
            self.credit_gate.request_paid_operation,
            user_id,
            operation,
            max_attempts=self.gate_max_attempts,
            run_id=run_id,
        )

    async def _call_external(
        self,
        call: Awaitable[Any],
        admission: Admission,
        op_logger,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Await an external call, optionally racing it against ``cancel_event``.

        Raises:
            OperationCancelled: cancel_event was set before the call finished
            ExternalCallFailed: the call raised
        """
        task = asyncio.ensure_future(call)

        if cancel_event is not None:
            if cancel_event.is_set():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                raise OperationCancelled("Operation cancelled", charged=admission.deducted)

            waiter = asyncio.ensure_future(cancel_event.wait())
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if task not in done:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                op_logger.info("Cancelled during external call; nothing persisted")
                raise OperationCancelled("Operation cancelled", charged=admission.deducted)
            waiter.cancel()

        try:
            return await task
        except Exception as e:
            op_logger.error(f"External call failed: {e}")
            raise ExternalCallFailed(
                f"External call failed: {e}", charged=admission.deducted
            ) from e

    async def _persist(self, write, admission: Admission, op_logger, what: str):
        """Run a persistence step off the event loop, mapping any failure to PersistenceFailed."""
        try:
            return await self._run_db(write)
        except Exception as e:
            op_logger.exception(f"Failed to {what}")
            raise PersistenceFailed(f"Failed to {what}: {e}", charged=admission.deducted) from e

    async def evaluate_fit(
        self,
        user_id: str,
        posting_id: str,
        experiences: List[Experience],
        min_experience: Optional[str] = None,
    ) -> OperationResult:
        """
        Evaluate the candidate's fit for a posting and re-rank it.

        Args:
            user_id: Posting owner
            posting_id: Posting to evaluate
            experiences: Candidate experiences (at least one)
            min_experience: Overrides the posting's stored minimum experience

        Returns:
            OperationResult with the updated competencies, scores and priority
        """
        run_id = create_run_id("evaluate_fit")
        op_logger = get_logger(__name__, run_id=run_id, operation="evaluate_fit", user_id=user_id)

        with timed_execution() as timer:
            if not experiences:
                raise ValidationError("At least one experience is required")
            posting = await self._run_db(self.score_service.get_posting, user_id, posting_id)
            if not posting.key_competencies:
                raise ValidationError(f"Posting {posting_id} has no key competencies to evaluate")
            evaluator = self._resolve("fit_evaluator")

            admission = await self._admit(user_id, "evaluate_fit", run_id)

            result = await self._call_external(
                evaluator.evaluate_fit(
                    posting.key_competencies,
                    experiences,
                    min_experience or posting.min_experience,
                ),
                admission,
                op_logger,
            )

            competencies = [replace(k) for k in posting.key_competencies]
            for evaluation in result.evaluations:
                index = evaluation.competency_index
                if not 0 <= index < len(competencies):
                    op_logger.warning(f"Ignoring evaluation for unknown competency index {index}")
                    continue
                try:
                    score = validate_rating(evaluation.score, allow_unset=False)
                except ValidationError as e:
                    raise ExternalCallFailed(
                        f"Malformed fit evaluation: {e.message}", charged=admission.deducted
                    ) from e
                competencies[index].score = score
                competencies[index].evaluation = evaluation.evaluation

            extra_fields: Dict[str, Any] = {}
            check = result.minimum_requirements_check or posting.minimum_requirements_check
            if result.minimum_requirements_check is not None:
                extra_fields["minimum_requirements_check"] = check.to_dict()

            updated = await self._persist(
                lambda: self.score_service.apply_scores(
                    posting, key_competencies=competencies, extra_fields=extra_fields
                ),
                admission,
                op_logger,
                "store fit evaluation",
            )

        op_logger.info(
            f"Fit evaluated: fit_score={updated.fit_score} priority={updated.priority} "
            f"({timer.duration_ms}ms)"
        )
        return OperationResult(
            success=True,
            run_id=run_id,
            operation="evaluate_fit",
            data={
                "posting_id": updated.id,
                "key_competencies": [k.to_dict() for k in updated.key_competencies],
                "minimum_requirements_check": check.to_dict() if check else None,
                "company_score": updated.company_score,
                "fit_score": updated.fit_score,
                "priority": updated.priority,
                "credits": admission.to_dict(),
            },
            duration_ms=timer.duration_ms,
            charged=admission.deducted,
        )

    async def generate_resume(
        self,
        user_id: str,
        posting_id: str,
        experiences: List[Experience],
        language: str,
        format: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
        run_id: Optional[str] = None,
    ) -> OperationResult:
        """
        Generate and store a resume tailored to a posting.

        Setting ``cancel_event`` while the resume is being written aborts the
        call; nothing is stored and any deducted credit stays spent.
        """
        run_id = run_id or create_run_id("generate_resume")
        op_logger = get_logger(__name__, run_id=run_id, operation="generate_resume", user_id=user_id)

        with timed_execution() as timer:
            if not experiences:
                raise ValidationError("Select at least one experience")
            resume_format = format or default_format(language)
            if resume_format not in RESUME_FORMATS:
                raise ValidationError(f"Unknown resume format: {resume_format}")
            posting = await self._run_db(self.score_service.get_posting, user_id, posting_id)
            generator = self._resolve("resume_generator")

            admission = await self._admit(user_id, "generate_resume", run_id)

            generated = await self._call_external(
                generator.generate_resume(
                    posting.job_info(),
                    posting.key_competencies,
                    experiences,
                    language,
                    resume_format,
                    posting.minimum_requirements_check,
                ),
                admission,
                op_logger,
                cancel_event=cancel_event,
            )

            resume = TailoredResume(
                user_id=user_id,
                posting_id=posting.id,
                content=generated.content,
                ai_feedback=generated.ai_feedback,
                language=generated.language,
                format=generated.format,
            )
            resume_id = await self._persist(
                lambda: self.score_service.posting_repository.insert_tailored_resume(resume),
                admission,
                op_logger,
                "store tailored resume",
            )

        op_logger.info(f"Resume {resume_id} stored ({timer.duration_ms}ms, deducted={admission.deducted})")
        return OperationResult(
            success=True,
            run_id=run_id,
            operation="generate_resume",
            data={
                "resume_id": resume_id,
                "posting_id": posting.id,
                "content": generated.content,
                "ai_feedback": generated.ai_feedback,
                "language": generated.language,
                "format": generated.format,
                "credits": admission.to_dict(),
            },
            duration_ms=timer.duration_ms,
            charged=admission.deducted,
            model_used=generated.model_used,
        )

    async def analyze_job(
        self,
        user_id: str,
        url: str,
        company_criteria: Optional[List[CompanyCriteriaScore]] = None,
    ) -> OperationResult:
        """
        Scrape a posting URL, extract it and add it to the user's board.

        Args:
            user_id: Board owner
            url: Posting URL (scheme optional)
            company_criteria: Unrated criteria from the user's active career goal
        """
        run_id = create_run_id("analyze_job")
        op_logger = get_logger(__name__, run_id=run_id, operation="analyze_job", user_id=user_id)

        with timed_execution() as timer:
            if not url or not url.strip():
                raise ValidationError("URL is required")
            await self._run_db(self.score_service.check_job_limit, user_id)
            analyzer = self._resolve("job_analyzer")

            admission = await self._admit(user_id, "analyze_job", run_id)

            analysis = await self._call_external(
                analyzer.analyze(url),
                admission,
                op_logger,
            )

            try:
                company_score = validate_rating(analysis.extraction.company_score) or 0
                fit_score = validate_rating(analysis.extraction.fit_score) or 0
            except ValidationError as e:
                raise ExternalCallFailed(
                    f"Malformed job analysis: {e.message}", charged=admission.deducted
                ) from e

            posting: JobPosting = await self._persist(
                lambda: self.score_service.create_posting(
                    user_id,
                    analysis.posting_fields(),
                    company_criteria=company_criteria,
                    key_competencies=analysis.key_competencies,
                    initial_company_score=company_score,
                    initial_fit_score=fit_score,
                    enforce_limit=False,
                ),
                admission,
                op_logger,
                "create posting",
            )

        op_logger.info(
            f"Posting {posting.id} created from {analysis.source_url}: priority={posting.priority} "
            f"({timer.duration_ms}ms)"
        )
        return OperationResult(
            success=True,
            run_id=run_id,
            operation="analyze_job",
            data={
                "posting": {"id": posting.id, **posting.to_document()},
                "credits": admission.to_dict(),
            },
            duration_ms=timer.duration_ms,
            charged=admission.deducted,
        )
