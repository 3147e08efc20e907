"""
Job Analyzer

Turns a posting URL into structured posting fields:

1. Scrape the page with FireCrawl (markdown, main content only)
2. Extract company, title, summary, five key competencies, evidence
   sentences and initial company/fit scores with an LLM

Usage:
    analyzer = JobAnalyzer()
    analysis = await analyzer.analyze("careers.example.com/jobs/123")
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from firecrawl import FirecrawlApp
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.common.error_handling import ExternalCallFailed, ValidationError
from src.common.types import KeyCompetency

logger = logging.getLogger(__name__)

KEY_COMPETENCY_COUNT = 5


def normalize_url(url: str) -> str:
    """Strip whitespace and default to https:// when no scheme is given."""
    if not url or not url.strip():
        raise ValidationError("URL is required")
    url = url.strip()
    return url if url.startswith("http") else f"https://{url}"


# ===== PYDANTIC MODELS FOR LLM OUTPUT =====


class ExtractedCompetency(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""


class JobPostingExtraction(BaseModel):
    """Structured posting fields extracted by the LLM."""

    language: str = Field(description="ko or en, the posting's original language")
    company_name: str
    title: str
    position: str = Field(description='Category like "Frontend", "Backend", "PM"')
    summary: str = Field(description="3-4 sentence summary in the posting's language")
    min_experience: Optional[str] = None
    min_experience_evidence: Optional[str] = None
    work_type: Optional[str] = None
    work_type_evidence: Optional[str] = None
    location: Optional[str] = None
    location_evidence: Optional[str] = None
    visa_sponsorship: Optional[bool] = None
    visa_sponsorship_evidence: Optional[str] = None
    key_competencies: List[ExtractedCompetency] = Field(
        min_length=KEY_COMPETENCY_COUNT, max_length=KEY_COMPETENCY_COUNT
    )
    # Range is checked by the caller; out-of-range values are never clamped
    company_score: Optional[int] = Field(default=None, description="Score 1-5")
    fit_score: Optional[int] = Field(default=None, description="Score 1-5")


@dataclass
class JobAnalysis:
    """Analyzed posting ready to be created on the board."""

    source_url: str
    extraction: JobPostingExtraction
    page_title: Optional[str] = None
    key_competencies: List[KeyCompetency] = field(default_factory=list)

    def posting_fields(self) -> Dict[str, Any]:
        """Posting document fields (scores excluded)."""
        e = self.extraction
        evidence = {
            name: value
            for name, value in (
                ("min_experience", e.min_experience_evidence),
                ("work_type", e.work_type_evidence),
                ("location", e.location_evidence),
                ("visa_sponsorship", e.visa_sponsorship_evidence),
            )
            if value
        }
        return {
            "company_name": e.company_name,
            "title": e.title,
            "position": e.position,
            "summary": e.summary,
            "language": e.language,
            "min_experience": e.min_experience,
            "work_type": e.work_type,
            "location": e.location,
            "visa_sponsorship": e.visa_sponsorship,
            "evidence": evidence,
            "source_url": self.source_url,
        }


# ===== PROMPTS =====

SYSTEM_PROMPT_EXTRACTION = """You are a job posting analyzer. Extract structured information from job postings.

INSTRUCTIONS:
1. Determine the original language of the posting: Korean (ko) or English (en).
2. For ALL text fields use the SAME language as the original posting.
3. Evidence fields must be an exact source sentence from the posting (do not translate evidence).
4. If a field is not mentioned, set it to null and set its evidence to "Not specified".
5. Extract EXACTLY 5 key competencies from the RECRUITER'S perspective, each with a title and description.
6. company_score and fit_score are integers from 1 to 5."""

USER_PROMPT_EXTRACTION_TEMPLATE = """Page title: {page_title}

Job posting content:
{content}"""


class JobAnalyzer:
    """
    Scrape-and-extract pipeline for new postings.

    Uses FireCrawl for web scraping and an LLM for field extraction.
    """

    def __init__(
        self,
        firecrawl: Optional[FirecrawlApp] = None,
        llm: Optional[ChatOpenAI] = None,
        content_limit: Optional[int] = None,
        min_content: Optional[int] = None,
    ):
        self.firecrawl = firecrawl or FirecrawlApp(api_key=Config.FIRECRAWL_API_KEY)
        self.llm = llm or ChatOpenAI(
            model=Config.DEFAULT_MODEL,
            temperature=Config.ANALYTICAL_TEMPERATURE,
            api_key=Config.get_llm_api_key(),
            base_url=Config.get_llm_base_url(),
        )
        self.content_limit = content_limit or Config.SCRAPE_CONTENT_LIMIT
        self.min_content = min_content if min_content is not None else Config.SCRAPE_MIN_CONTENT

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=2, max=5),
        reraise=True,
    )
    def _scrape_page(self, url: str) -> Dict[str, Optional[str]]:
        """
        Scrape the posting page using FireCrawl.

        Returns:
            {"content": markdown or None, "title": page title or None}
        """
        try:
            result = self.firecrawl.scrape(url, formats=["markdown"], only_main_content=True)
        except Exception as e:
            logger.warning(f"FireCrawl scraping failed for {url}: {str(e)}")
            raise

        content = getattr(result, "markdown", None) if result else None
        metadata = getattr(result, "metadata", None) if result else None
        title = getattr(metadata, "title", None) if metadata is not None else None
        return {"content": content, "title": title}

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _extract(self, page_title: str, content: str) -> JobPostingExtraction:
        messages = [
            SystemMessage(content=SYSTEM_PROMPT_EXTRACTION),
            HumanMessage(
                content=USER_PROMPT_EXTRACTION_TEMPLATE.format(
                    page_title=page_title or "",
                    content=content[:self.content_limit],
                )
            ),
        ]
        structured_llm = self.llm.with_structured_output(JobPostingExtraction)
        return await structured_llm.ainvoke(messages)

    async def analyze(self, url: str) -> JobAnalysis:
        """
        Scrape and extract one posting.

        Raises:
            ValidationError: Empty URL
            ExternalCallFailed: Page could not be read or had no usable content
        """
        formatted_url = normalize_url(url)
        logger.info(f"Scraping posting: {formatted_url}")

        loop = asyncio.get_running_loop()
        page = await loop.run_in_executor(None, self._scrape_page, formatted_url)

        content = page["content"] or ""
        if len(content) < self.min_content:
            raise ExternalCallFailed(
                f"Could not read posting content from {formatted_url} "
                f"({len(content)} chars)"
            )

        logger.info(f"Extracting posting fields from {len(content)} chars")
        extraction = await self._extract(page["title"], content)

        return JobAnalysis(
            source_url=url.strip(),
            extraction=extraction,
            page_title=page["title"],
            key_competencies=[
                KeyCompetency(title=c.title, description=c.description)
                for c in extraction.key_competencies
            ],
        )
