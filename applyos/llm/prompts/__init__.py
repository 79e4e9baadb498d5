"""Prompt templates, filled with str.format."""
from applyos.llm.prompts.application_prompts import (
    QUESTION_EXTRACTION_PROMPT,
    ANSWER_GENERATION_PROMPT,
    COVER_LETTER_PROMPT,
)
from applyos.llm.prompts.document_prompts import (
    DOCUMENT_PARSE_PROMPT,
    DOCUMENT_REPORT_PROMPT,
    RESUME_MATCH_PROMPT,
    COMPATIBILITY_PROMPT,
)

__all__ = [
    "QUESTION_EXTRACTION_PROMPT",
    "ANSWER_GENERATION_PROMPT",
    "COVER_LETTER_PROMPT",
    "DOCUMENT_PARSE_PROMPT",
    "DOCUMENT_REPORT_PROMPT",
    "RESUME_MATCH_PROMPT",
    "COMPATIBILITY_PROMPT",
]
