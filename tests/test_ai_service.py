"""
Tests for AIService with a mocked Gemini client and mocked page fetches.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from applyos.core.exceptions import AIRateLimitError, LLMError, ValidationError
from applyos.services.ai_service import (
    EXTRACTION_ERRORS,
    AIService,
    html_to_text,
    normalize_parsed_document,
)

POSTING_HTML = """
<html><head><title>Careers</title><style>.x{}</style><script>var a = 1;</script></head>
<body><h1>Software Engineer</h1>
<p>Join our platform team building reliable distributed systems for millions of users.</p>
<label>Why do you want to work here?</label><textarea></textarea>
</body></html>
"""


@pytest.fixture
def llm():
    client = MagicMock()
    client.is_configured = True
    return client


@pytest.fixture
def service(llm):
    return AIService(client=llm)


def html_response(text=POSTING_HTML, content_type="text/html; charset=utf-8"):
    response = MagicMock()
    response.text = text
    response.headers = {"content-type": content_type}
    return response


class TestHtmlToText:

    def test_scripts_and_styles_removed(self):
        text = html_to_text(POSTING_HTML)
        assert "var a" not in text
        assert ".x{}" not in text
        assert "Software Engineer" in text


class TestQuestionExtraction:

    def test_questions_from_text(self, service, llm):
        llm.generate.return_value = '```json\n["Why us?", "  ", "Describe a project"]\n```'
        assert service.extract_questions_from_text("page") == ["Why us?", "Describe a project"]

    def test_unparseable_response(self, service, llm):
        llm.generate.return_value = "I could not find any."
        with pytest.raises(LLMError):
            service.extract_questions_from_text("page")

    def test_not_configured(self, service, llm):
        llm.is_configured = False
        result = service.extract_questions_from_url("https://jobs.example.com/1")
        assert result.questions == []
        assert result.error == EXTRACTION_ERRORS["not_configured"]

    def test_invalid_url(self, service):
        with pytest.raises(ValidationError):
            service.extract_questions_from_url("ftp://example.com")

    @patch("applyos.services.ai_service.requests.get")
    def test_success(self, mock_get, service, llm):
        mock_get.return_value = html_response()
        llm.generate.return_value = '["Why do you want to work here?"]'
        result = service.extract_questions_from_url("https://jobs.example.com/1")
        assert result.to_dict() == {"questions": ["Why do you want to work here?"]}

    @patch("applyos.services.ai_service.requests.get")
    def test_fetch_failure_is_reported(self, mock_get, service):
        mock_get.side_effect = requests.ConnectionError("refused")
        result = service.extract_questions_from_url("https://jobs.example.com/1")
        assert result.error == EXTRACTION_ERRORS["fetch_failed"]

    @patch("applyos.services.ai_service.requests.get")
    def test_non_html_rejected(self, mock_get, service):
        mock_get.return_value = html_response(content_type="application/pdf")
        with pytest.raises(ValidationError):
            service.extract_questions_from_url("https://jobs.example.com/1.pdf")

    @patch("applyos.services.ai_service.requests.get")
    def test_thin_page(self, mock_get, service):
        mock_get.return_value = html_response("<html><body>Loading...</body></html>")
        result = service.extract_questions_from_url("https://jobs.example.com/1")
        assert result.error == EXTRACTION_ERRORS["no_content"]

    @patch("applyos.services.ai_service.requests.get")
    def test_no_questions(self, mock_get, service, llm):
        mock_get.return_value = html_response()
        llm.generate.return_value = "[]"
        result = service.extract_questions_from_url("https://jobs.example.com/1")
        assert result.error == EXTRACTION_ERRORS["no_questions"]

    @patch("applyos.services.ai_service.requests.get")
    def test_rate_limit_reported_as_ai_failure(self, mock_get, service, llm):
        mock_get.return_value = html_response()
        llm.generate.side_effect = AIRateLimitError()
        result = service.extract_questions_from_url("https://jobs.example.com/1")
        assert result.error == EXTRACTION_ERRORS["ai_failed"]


class TestGeneration:

    def test_answer_prompt_drops_empty_context(self, service, llm):
        llm.generate.return_value = "  Because I love it.  "
        answer = service.generate_answer("Why us?", {"resume": "Python dev", "education": None})
        assert answer == "Because I love it."
        prompt = llm.generate.call_args[0][0]
        assert "Python dev" in prompt
        assert "education" not in prompt

    def test_cover_letter_includes_instructions(self, service, llm):
        llm.generate.return_value = "Dear team"
        service.generate_cover_letter("SWE", None, {"jobDescription": "Build APIs"}, "Keep it short")
        prompt = llm.generate.call_args[0][0]
        assert "the company" in prompt
        assert "Build APIs" in prompt
        assert "Keep it short" in prompt


class TestDocuments:

    def test_normalize_parsed_document(self):
        parsed = normalize_parsed_document({
            "experience": ["Built things", {"company": "Acme", "role": "Engineer", "start_date": 2020}],
            "skills": ["Python", " ", "SQL"],
        })
        assert parsed["experience"][0]["description"] == "Built things"
        assert parsed["experience"][1]["start_date"] == "2020"
        assert parsed["skills"] == {"technical": ["Python", "SQL"], "soft": [], "other": []}
        assert parsed["education"] == []
        assert parsed["summary"] is None

    def test_skills_as_comma_separated_string(self):
        parsed = normalize_parsed_document({"skills": "Python, SQL, ,Docker"})
        assert parsed["skills"] == {"technical": ["Python", "SQL", "Docker"], "soft": [], "other": []}

    def test_unexpected_shapes(self):
        parsed = normalize_parsed_document({
            "education": {"institution": "MIT", "degree": "BSc"},
            "experience": 42,
            "skills": {"technical": "Python", "soft": {"a": 1}, "other": None},
        })
        assert parsed["education"][0]["institution"] == "MIT"
        assert parsed["experience"] == []
        assert parsed["skills"] == {"technical": ["Python"], "soft": [], "other": []}

    def test_parse_document_with_scalar_skills(self, service, llm):
        llm.generate.return_value = '{"skills": 7, "experience": "Led the data team"}'
        parsed = service.parse_document("resume text")
        assert parsed["skills"] == {"technical": [], "soft": [], "other": []}
        assert parsed["experience"][0]["description"] == "Led the data team"

    def test_report_scores_are_clamped(self, service, llm):
        llm.generate.return_value = json.dumps({
            "documentType": "resume",
            "overallScore": 130,
            "overallAssessment": "Strong",
            "categories": [
                {"name": "Impact", "score": "72.6", "strengths": ["Metrics"], "improvements": []},
                {"score": 50},
            ],
        })
        report = service.generate_document_report("resume text")
        assert report["overallScore"] == 100
        assert report["categories"] == [
            {"name": "Impact", "score": 73, "strengths": ["Metrics"], "improvements": []},
        ]

    def test_compatibility(self, service, llm):
        llm.generate.return_value = '{"score": 64, "tips": ["Add Kubernetes"], "missingKeywords": ["k8s"]}'
        result = service.check_compatibility("JD", "resume")
        assert result == {"score": 64, "tips": ["Add Kubernetes"], "missingKeywords": ["k8s"], "summary": ""}

    def test_resume_match_unparseable(self, service, llm):
        llm.generate.return_value = "no json"
        with pytest.raises(LLMError):
            service.analyze_resume_match("resume", "JD")
