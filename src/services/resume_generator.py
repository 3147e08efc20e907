"""
Resume Generator

Writes a resume tailored to one posting from the candidate's selected
experiences and the posting's evaluated competencies.

The LLM returns feedback and resume body in one response, delimited by
markers:

    ===AI_FEEDBACK===
    (feedback)
    ===RESUME===
    (resume body)

split_ai_feedback() separates the two, falling back to localized section
headers when the model ignores the markers.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.common.types import Experience, KeyCompetency, MinimumRequirementsCheck

logger = logging.getLogger(__name__)

FEEDBACK_MARKER = "===AI_FEEDBACK==="
RESUME_MARKER = "===RESUME==="
FALLBACK_FEEDBACK_HEADERS = ("[AI 피드백]", "[AI Feedback]")
EXPERIENCE_HEADER_PATTERN = re.compile(r"\n\s*\[(경험 제목|Experience Title)\]\s*\n")

WEAK_SCORE_MAX = 2
STRONG_SCORE_MIN = 4

LANGUAGE_NAMES = {"en": "English", "ko": "Korean"}


def default_format(language: str) -> str:
    """consulting for English, narrative otherwise."""
    return "consulting" if language == "en" else "narrative"


def split_ai_feedback(raw: str) -> Tuple[str, str]:
    """
    Split raw LLM output into (ai_feedback, resume_content).

    1. Both markers present, feedback first: text between them is feedback,
       text after the resume marker is the resume.
    2. A localized feedback header: feedback runs from the header to the
       first experience-title header (the resume continues from there); with
       no experience header, everything after the feedback header is
       feedback and everything before it is the resume.
    3. Otherwise the whole text is the resume and feedback is empty.
    """
    feedback_idx = raw.find(FEEDBACK_MARKER)
    resume_idx = raw.find(RESUME_MARKER)
    if feedback_idx != -1 and resume_idx != -1 and resume_idx > feedback_idx:
        feedback = raw[feedback_idx + len(FEEDBACK_MARKER):resume_idx].strip()
        content = raw[resume_idx + len(RESUME_MARKER):].strip()
        return feedback, content

    for header in FALLBACK_FEEDBACK_HEADERS:
        idx = raw.find(header)
        if idx == -1:
            continue
        after = raw[idx + len(header):].strip()
        match = EXPERIENCE_HEADER_PATTERN.search(after)
        if match:
            return after[:match.start()].strip(), after[match.start():].strip()
        return after, raw[:idx].strip()

    return "", raw.strip()


@dataclass
class GeneratedResume:
    """Generated resume split into body and feedback."""

    content: str
    ai_feedback: Optional[str]
    raw_content: str
    language: str
    format: str
    model_used: str


SYSTEM_PROMPT_RESUME = """You are a professional resume consultant with a recruiter mindset. Actually rewrite and improve the candidate's experiences to match the key competencies required by the job posting.

INSTRUCTIONS:
1. Keep work experience in reverse chronological order. This order CANNOT be changed.
2. You may reorder selected projects by relevance to the posting. If you do, explain the original and new order in the feedback.
3. Rewrite bullet points. Do NOT copy original bullets verbatim; add metrics and keywords aligned with the job requirements.
4. For low-scoring competencies (1-2), explicitly connect transferable skills from related experience.
5. For high-scoring competencies (4-5), include specific numbers and measurable outcomes.
6. Never invent facts or exaggerate achievements.
7. Do NOT use emojis in the resume body.

Output format (STRICT, no text outside the markers):
===AI_FEEDBACK===
(feedback only: overall assessment, competency analysis, project order adjustments, detailed revisions)
===RESUME===
(resume body only)

Write the resume in {language_name}. Format: {format_description}."""

FORMAT_DESCRIPTIONS = {
    "consulting": "consulting-style (concise, results-driven)",
    "narrative": "narrative-style (clear sections, descriptive)",
}


def build_resume_prompt(
    job_info: Dict[str, Any],
    competencies: List[KeyCompetency],
    experiences: List[Experience],
    minimum_requirements_check: Optional[MinimumRequirementsCheck] = None,
) -> str:
    """User prompt describing the posting, evaluated competencies and experiences."""
    lines = [
        "## Job Posting Information",
        f"Company: {job_info.get('company_name', '')}",
        f"Position: {job_info.get('title', '')}",
        f"Summary: {job_info.get('summary', '')}",
        "",
    ]

    if minimum_requirements_check is not None:
        lines += [
            "## Minimum Requirements Check",
            f"- Experience requirement: {minimum_requirements_check.experience_met}",
            f"- Reason: {minimum_requirements_check.reason}",
            "",
        ]

    lines.append("## Key Required Competencies (with AI Fit Evaluation)")
    for i, comp in enumerate(competencies):
        score_text = f" (self-assessment {comp.score}/5)" if comp.score else ""
        lines.append(f"{i + 1}. {comp.title}: {comp.description}{score_text}")
        if comp.evaluation:
            lines.append(f"   - AI analysis: {comp.evaluation}")
    lines.append("")

    weak = [c for c in competencies if c.score and c.score <= WEAK_SCORE_MAX]
    strong = [c for c in competencies if c.score and c.score >= STRONG_SCORE_MIN]
    if weak:
        lines.append("## Competencies Needing Improvement (Low Scores)")
        lines += [
            f"- {c.title} ({c.score}/5): {c.evaluation or 'Lacking related experience'}"
            for c in weak
        ]
        lines.append("")
    if strong:
        lines.append("## Strong Competencies (High Scores)")
        lines += [
            f"- {c.title} ({c.score}/5): {c.evaluation or 'Rich related experience'}"
            for c in strong
        ]
        lines.append("")

    lines.append("## Candidate's Experience")
    for i, exp in enumerate(experiences):
        kind = "Work Experience" if exp.type == "work" else "Project"
        company = f" @ {exp.company}" if exp.company else ""
        lines += [
            f"### {kind} {i + 1}: {exp.title}{company}",
            f"Period: {exp.period or 'Not specified'}",
            f"Description: {exp.description}",
            "Key Achievements:",
        ]
        lines += [f"- {b}" for b in exp.bullets]
        lines.append("")

    return "\n".join(lines)


class ResumeGenerator:
    """LLM-backed tailored resume writer."""

    def __init__(self, llm_factory=None):
        """
        Args:
            llm_factory: Optional callable(model) -> chat model, for tests.
                Defaults to ChatOpenAI at the creative temperature.
        """
        self._llm_factory = llm_factory or self._create_llm

    @staticmethod
    def _create_llm(model: str) -> ChatOpenAI:
        return ChatOpenAI(
            model=model,
            temperature=Config.CREATIVE_TEMPERATURE,
            api_key=Config.get_llm_api_key(),
            base_url=Config.get_llm_base_url(),
        )

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _invoke(self, model: str, messages) -> str:
        response = await self._llm_factory(model).ainvoke(messages)
        return response.content or ""

    async def generate_resume(
        self,
        job_info: Dict[str, Any],
        competencies: List[KeyCompetency],
        experiences: List[Experience],
        language: str,
        format: Optional[str] = None,
        minimum_requirements_check: Optional[MinimumRequirementsCheck] = None,
    ) -> GeneratedResume:
        """
        Generate a tailored resume.

        Args:
            job_info: title, company_name and summary of the posting
            competencies: Posting's key competencies with scores/evaluations
            experiences: Selected candidate experiences
            language: Resume language code ("en", "ko", ...)
            format: "consulting" or "narrative" (default depends on language)
            minimum_requirements_check: Result of the last fit evaluation

        Returns:
            GeneratedResume with body and feedback separated
        """
        resume_format = format or default_format(language)
        model = Config.get_resume_model(language)

        system_prompt = SYSTEM_PROMPT_RESUME.format(
            language_name=LANGUAGE_NAMES.get(language, language),
            format_description=FORMAT_DESCRIPTIONS.get(resume_format, resume_format),
        )
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(
                content=build_resume_prompt(
                    job_info, competencies, experiences, minimum_requirements_check
                )
            ),
        ]

        logger.info(
            f"Generating {resume_format} resume ({language}) for "
            f"{job_info.get('company_name')} / {job_info.get('title')} with {model}"
        )
        raw = await self._invoke(model, messages)
        feedback, content = split_ai_feedback(raw)
        logger.info(f"Resume generated: feedback={len(feedback)} chars, content={len(content)} chars")

        return GeneratedResume(
            content=content,
            ai_feedback=feedback or None,
            raw_content=raw,
            language=language,
            format=resume_format,
            model_used=model,
        )
