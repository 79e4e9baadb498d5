"""
AI Service - Gemini-backed features.

Orchestrates prompts, the Gemini client and output parsing for:
- question extraction (from text or a posting URL)
- answers to application questions and cover letters
- resume parsing and document reports
- resume vs job description matching

URL question extraction never fails the request once the URL is valid:
fetch and AI problems come back as an error message with no questions.
"""
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup, Comment

from applyos.core.config import get_settings
from applyos.core.exceptions import AIRateLimitError, LLMError, ValidationError
from applyos.core.logging_config import get_logger
from applyos.core.validators import validate_http_url
from applyos.llm.client import GeminiClient, get_llm_client
from applyos.llm.model_manager import TaskComplexity
from applyos.llm.parsing import clean_string_list, extract_json_array, require_json_object
from applyos.llm.prompts import (
    ANSWER_GENERATION_PROMPT,
    COMPATIBILITY_PROMPT,
    COVER_LETTER_PROMPT,
    DOCUMENT_PARSE_PROMPT,
    DOCUMENT_REPORT_PROMPT,
    QUESTION_EXTRACTION_PROMPT,
    RESUME_MATCH_PROMPT,
)

logger = get_logger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
MAX_PAGE_TEXT = 8000
MIN_PAGE_TEXT = 50
MAX_MATCH_TEXT = 4000
MAX_DOCUMENT_TEXT = 30000

EXTRACTION_ERRORS = {
    "not_configured": "AI service not configured. Please add Gemini API key to enable question extraction.",
    "fetch_failed": (
        "Failed to fetch URL content. The page may be protected or inaccessible. "
        "Please check the URL or add questions manually."
    ),
    "no_content": (
        "Could not extract meaningful content from the URL. "
        "The page may be empty or use JavaScript rendering."
    ),
    "unparseable": "Could not parse AI response. Please try again or add questions manually.",
    "no_questions": (
        "No open-ended questions found on this page. The application may only have basic form "
        "fields, or questions may be in a format that cannot be extracted."
    ),
    "ai_failed": "AI extraction failed. Please try again or add questions manually.",
}


@dataclass
class QuestionExtractionResult:
    """Questions found on a page, or an explanation of why there are none."""
    questions: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"questions": self.questions}
        if self.error:
            data["error"] = self.error
        return data


class PageFetchError(Exception):
    """The posting page could not be downloaded."""


def html_to_text(html: str) -> str:
    """Visible text of an HTML page with scripts, styles and comments removed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    text = soup.get_text(" ", strip=True)
    return re.sub(r"\s+", " ", text).strip()


def fetch_page_html(url: str, timeout: Optional[int] = None) -> str:
    """
    Download a posting page.

    Raises:
        PageFetchError: network failure or non-2xx status
        ValidationError: the URL does not serve HTML
    """
    timeout = timeout or get_settings().fetch_timeout_seconds
    try:
        response = requests.get(url, headers={"User-Agent": BROWSER_USER_AGENT}, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise PageFetchError(str(e)) from e

    content_type = response.headers.get("content-type", "")
    if "text/html" not in content_type:
        raise ValidationError("URL does not point to an HTML page", field="url")

    return response.text


def _string_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_parsed_document(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Coerce model output into the stored parsed_data shape.

    Entries given as bare strings become {"description": "..."}. A flat
    skills list, or a comma-separated skills string, is treated as
    technical skills. Shapes that fit none of these are dropped.
    """
    def entries(items: Any, keys: List[str]) -> List[Dict[str, Optional[str]]]:
        if isinstance(items, (str, dict)):
            items = [items]
        if not isinstance(items, list):
            return []
        result = []
        for item in items:
            if isinstance(item, str):
                if item.strip():
                    result.append({**{k: None for k in keys}, "description": item.strip()})
            elif isinstance(item, dict):
                result.append({k: _string_or_none(item.get(k)) for k in keys})
        return result

    skills = data.get("skills") or {}
    if isinstance(skills, str):
        skills = skills.split(",")
    if isinstance(skills, list):
        skills = {"technical": skills}
    elif not isinstance(skills, dict):
        skills = {}

    return {
        "education": entries(
            data.get("education"),
            ["institution", "degree", "field", "start_date", "end_date", "description"],
        ),
        "experience": entries(
            data.get("experience"),
            ["company", "role", "start_date", "end_date", "description"],
        ),
        "skills": {
            "technical": clean_string_list(skills.get("technical")),
            "soft": clean_string_list(skills.get("soft")),
            "other": clean_string_list(skills.get("other")),
        },
        "summary": _string_or_none(data.get("summary")),
    }


def _score(value: Any) -> int:
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return 0


class AIService:
    """
    Gemini-backed operations.

    Example:
        >>> service = AIService()
        >>> service.generate_answer("Why us?", {"resume": "..."})
    """

    def __init__(self, client: Optional[GeminiClient] = None):
        self.client = client or get_llm_client()

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    # ------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------

    def extract_questions_from_text(self, page_text: str) -> List[str]:
        """
        Ask the model for the open-ended questions in page text.

        Raises:
            LLMError: the response holds no JSON array
        """
        prompt = QUESTION_EXTRACTION_PROMPT.format(page_text=page_text[:MAX_PAGE_TEXT])
        raw = self.client.generate(prompt, TaskComplexity.SIMPLE)

        questions = extract_json_array(raw)
        if questions is None:
            logger.warning("No JSON array found in question extraction response")
            raise LLMError(EXTRACTION_ERRORS["unparseable"])

        return clean_string_list(questions)

    def extract_questions_from_url(self, url: str) -> QuestionExtractionResult:
        """
        Fetch a posting and extract its questions.

        Raises:
            ValidationError: missing/invalid URL or non-HTML response.
            Every other failure is reported through result.error.
        """
        if not self.is_configured:
            return QuestionExtractionResult(error=EXTRACTION_ERRORS["not_configured"])

        if not url or not url.strip():
            raise ValidationError("URL is required", field="url")
        url = validate_http_url(url)

        try:
            html = fetch_page_html(url.strip())
        except PageFetchError as e:
            logger.warning(f"Fetching {url} failed: {e}")
            return QuestionExtractionResult(error=EXTRACTION_ERRORS["fetch_failed"])

        text = html_to_text(html)
        if len(text) < MIN_PAGE_TEXT:
            return QuestionExtractionResult(error=EXTRACTION_ERRORS["no_content"])

        try:
            questions = self.extract_questions_from_text(text)
        except LLMError as e:
            if e.message == EXTRACTION_ERRORS["unparseable"]:
                return QuestionExtractionResult(error=e.message)
            logger.error(f"Question extraction failed for {url}: {e.message}")
            return QuestionExtractionResult(error=EXTRACTION_ERRORS["ai_failed"])
        except AIRateLimitError:
            logger.warning(f"Question extraction for {url} hit AI rate limits")
            return QuestionExtractionResult(error=EXTRACTION_ERRORS["ai_failed"])

        if not questions:
            return QuestionExtractionResult(error=EXTRACTION_ERRORS["no_questions"])

        logger.info(f"Extracted {len(questions)} questions from {url}")
        return QuestionExtractionResult(questions=questions)

    def generate_answer(self, question: str, context: Dict[str, Any]) -> str:
        """Answer an application question from the candidate's context."""
        prompt = ANSWER_GENERATION_PROMPT.format(
            question=question,
            context=json.dumps({k: v for k, v in context.items() if v}, indent=2),
        )
        return self.client.generate(prompt, TaskComplexity.MEDIUM).strip()

    def generate_cover_letter(
        self,
        title: str,
        company: Optional[str],
        context: Dict[str, Any],
        instructions: Optional[str] = None,
    ) -> str:
        background = {k: v for k, v in context.items() if v and k != "jobDescription"}
        prompt = COVER_LETTER_PROMPT.format(
            title=title,
            company=company or "the company",
            job_description=context.get("jobDescription") or "Not provided",
            context=json.dumps(background, indent=2) if background else "Not provided",
            instructions=f"Additional instructions: {instructions}" if instructions else "",
        )
        return self.client.generate(prompt, TaskComplexity.MEDIUM).strip()

    # ------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------

    def parse_document(self, document_text: str) -> Dict[str, Any]:
        """Structured education/experience/skills from resume text."""
        prompt = DOCUMENT_PARSE_PROMPT.format(document_text=document_text[:MAX_DOCUMENT_TEXT])
        raw = self.client.generate(prompt, TaskComplexity.MEDIUM)
        return normalize_parsed_document(require_json_object(raw, "document data"))

    def generate_document_report(self, document_text: str) -> Dict[str, Any]:
        prompt = DOCUMENT_REPORT_PROMPT.format(document_text=document_text[:MAX_DOCUMENT_TEXT])
        data = require_json_object(self.client.generate(prompt, TaskComplexity.COMPLEX), "document report")

        categories = []
        for category in data.get("categories") or []:
            if not isinstance(category, dict) or not category.get("name"):
                continue
            categories.append({
                "name": str(category["name"]),
                "score": _score(category.get("score")),
                "strengths": clean_string_list(category.get("strengths")),
                "improvements": clean_string_list(category.get("improvements")),
            })

        return {
            "documentType": str(data.get("documentType") or "other"),
            "overallScore": _score(data.get("overallScore")),
            "overallAssessment": str(data.get("overallAssessment") or ""),
            "categories": categories,
        }

    # ------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------

    def analyze_resume_match(self, resume_text: str, job_description: str) -> Dict[str, Any]:
        prompt = RESUME_MATCH_PROMPT.format(
            job_description=job_description[:MAX_MATCH_TEXT],
            resume_text=resume_text[:MAX_MATCH_TEXT],
        )
        data = require_json_object(self.client.generate(prompt, TaskComplexity.COMPLEX), "resume analysis")
        return {
            "score": _score(data.get("score")),
            "summary": str(data.get("summary") or ""),
            "strengths": clean_string_list(data.get("strengths")),
            "gaps": clean_string_list(data.get("gaps")),
            "missingKeywords": clean_string_list(data.get("missingKeywords")),
            "recommendations": clean_string_list(data.get("recommendations")),
        }

    def check_compatibility(self, job_description: str, resume_text: str) -> Dict[str, Any]:
        prompt = COMPATIBILITY_PROMPT.format(
            job_description=job_description[:MAX_MATCH_TEXT],
            resume_text=resume_text[:MAX_MATCH_TEXT],
        )
        data = require_json_object(self.client.generate(prompt, TaskComplexity.MEDIUM), "AI analysis")
        return {
            "score": _score(data.get("score")),
            "tips": clean_string_list(data.get("tips")),
            "missingKeywords": clean_string_list(data.get("missingKeywords")),
            "summary": str(data.get("summary") or ""),
        }


_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
