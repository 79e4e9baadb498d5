"""
Capture module - Server side of the browser extension's quick capture.

- page_detector.py      : is the page a job posting, and on which board
- extractors.py         : per-board posting extraction with a generic fallback
- question_extractor.py : labelled form fields as application questions
"""
from applyos.capture.page_detector import PageDetection, detect_page
from applyos.capture.extractors import ExtractedPosting, extract_posting
from applyos.capture.question_extractor import FormQuestion, extract_form_questions

__all__ = [
    "PageDetection",
    "detect_page",
    "ExtractedPosting",
    "extract_posting",
    "FormQuestion",
    "extract_form_questions",
]
