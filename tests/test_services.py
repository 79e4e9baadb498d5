"""
Tests for the application, question, note, document and notification services
against the SQLite test database.
"""
from datetime import datetime, timedelta

import pytest

from applyos.core.exceptions import AIRateLimitError, LLMError, NotFoundError, ValidationError
from applyos.database import AIRetryTask, get_database
from applyos.services.application_service import ApplicationService, clean_application_fields
from applyos.services.document_service import (
    DocumentService,
    build_context_from_document,
    format_education,
    format_experience,
)
from applyos.services.note_service import NoteService
from applyos.services.notification_service import NotificationService
from applyos.services.question_service import QuestionService
from tests.conftest import OTHER_USER_ID, USER_ID

RESUME_TEXT = (
    "Ada Lovelace. Software engineer with eight years of Python, data pipelines "
    "and distributed systems experience."
)
PARSED = {
    "experience": [
        {"company": "Acme", "role": "Engineer", "start_date": "2020", "end_date": None, "description": "APIs"},
    ],
    "education": [
        {"institution": "MIT", "degree": "BSc", "field": "CS", "start_date": None, "end_date": None,
         "description": None},
    ],
    "skills": {"technical": ["Python", "SQL"], "soft": ["Mentoring"], "other": []},
    "summary": None,
}


@pytest.fixture
def apps(users):
    return ApplicationService()


@pytest.fixture
def docs(users):
    return DocumentService()


@pytest.fixture
def notifications():
    return NotificationService()


def analyzed_document(docs, user_id=USER_ID, parsed=None, name="resume.pdf"):
    doc = docs.register_document(user_id, name, extracted_text=RESUME_TEXT)
    return docs.save_analysis(user_id, doc["id"], "success", parsed=parsed or PARSED)


class TestCleanFields:

    def test_rejects_bad_enum(self):
        with pytest.raises(ValidationError, match="status"):
            clean_application_fields({"status": "pending"})

    def test_rejects_non_http_url(self):
        with pytest.raises(ValidationError):
            clean_application_fields({"url": "javascript:alert(1)"})

    def test_parses_deadline_and_blanks(self):
        cleaned = clean_application_fields({"deadline": "2025-05-01T12:00:00Z", "company": "  ", "other": 1})
        assert cleaned == {"deadline": datetime(2025, 5, 1, 12), "company": None}

    def test_bad_deadline(self):
        with pytest.raises(ValidationError, match="deadline"):
            clean_application_fields({"deadline": "next friday"})


class TestApplications:

    def test_draft_creation_has_no_history(self, apps):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        assert app["status"] == "draft"
        assert app["priority"] == "medium"
        assert app["type"] == "job"
        assert apps.get_status_history(USER_ID, app["id"]) == []

    def test_non_draft_creation_records_history(self, apps, notifications):
        app = apps.create_application(USER_ID, {"title": "SWE", "status": "submitted"})
        history = apps.get_status_history(USER_ID, app["id"])
        assert [(h["old_status"], h["new_status"]) for h in history] == [(None, "submitted")]
        # Creation is not a transition, so nobody is notified
        assert notifications.unread_count(USER_ID) == 0

    def test_status_change_records_history_and_notifies(self, apps, notifications):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        apps.update_application(USER_ID, app["id"], {"status": "submitted"})
        apps.update_application(USER_ID, app["id"], {"status": "interview", "priority": "high"})

        history = apps.get_status_history(USER_ID, app["id"])
        assert [(h["old_status"], h["new_status"]) for h in history] == [
            ("draft", "submitted"),
            ("submitted", "interview"),
        ]
        messages = [n["message"] for n in notifications.list_notifications(USER_ID)]
        assert 'Your application for "SWE" status changed from submitted to interview' in messages
        assert len(messages) == 2

    def test_same_status_update_is_not_a_transition(self, apps):
        app = apps.create_application(USER_ID, {"title": "SWE", "status": "submitted"})
        apps.update_application(USER_ID, app["id"], {"status": "submitted", "company": "Acme"})
        assert len(apps.get_status_history(USER_ID, app["id"])) == 1

    def test_identical_notifications_suppressed_within_a_minute(self, apps, notifications):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        apps.update_application(USER_ID, app["id"], {"status": "submitted"})
        apps.update_application(USER_ID, app["id"], {"status": "draft"})
        apps.update_application(USER_ID, app["id"], {"status": "submitted"})
        assert len(apps.get_status_history(USER_ID, app["id"])) == 3
        assert notifications.unread_count(USER_ID) == 2

    def test_list_filters_and_search(self, apps):
        apps.create_application(USER_ID, {"title": "Backend Engineer", "company": "Acme"})
        apps.create_application(USER_ID, {"title": "Designer", "company": "Globex", "status": "submitted"})
        apps.create_application(OTHER_USER_ID, {"title": "Backend Engineer"})

        assert len(apps.list_applications(USER_ID)) == 2
        assert [a["title"] for a in apps.list_applications(USER_ID, search="ACME")] == ["Backend Engineer"]
        assert [a["title"] for a in apps.list_applications(USER_ID, status="submitted")] == ["Designer"]
        with pytest.raises(ValidationError):
            apps.list_applications(USER_ID, status="unknown")

    def test_other_users_applications_are_not_found(self, apps):
        app = apps.create_application(OTHER_USER_ID, {"title": "Theirs"})
        with pytest.raises(NotFoundError):
            apps.get_application(USER_ID, app["id"])
        with pytest.raises(NotFoundError):
            apps.update_application(USER_ID, app["id"], {"title": "Mine now"})

    def test_stats(self, apps):
        now = datetime(2025, 3, 1, 12)
        apps.create_application(USER_ID, {"title": "A", "status": "in_review", "deadline": now + timedelta(days=2)})
        apps.create_application(USER_ID, {"title": "B", "deadline": now + timedelta(days=10)})
        apps.create_application(USER_ID, {"title": "C", "deadline": now - timedelta(days=1)})
        assert apps.get_stats(USER_ID, now=now) == {"total": 3, "pending": 1, "upcomingDeadlines": 1}

    def test_delete(self, apps):
        app = apps.create_application(USER_ID, {"title": "SWE", "status": "submitted"})
        apps.delete_application(USER_ID, app["id"])
        with pytest.raises(NotFoundError):
            apps.get_application(USER_ID, app["id"])


class TestDocumentLinks:

    def test_set_documents_replaces_links(self, apps, docs):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        first = docs.register_document(USER_ID, "a.pdf")
        second = docs.register_document(USER_ID, "b.pdf")

        assert apps.set_documents(USER_ID, app["id"], [first["id"], second["id"], first["id"]]) == [
            first["id"], second["id"],
        ]
        apps.set_documents(USER_ID, app["id"], [second["id"]])
        assert [d["id"] for d in apps.get_documents(USER_ID, app["id"])] == [second["id"]]

    def test_cannot_link_someone_elses_document(self, apps, docs):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        theirs = docs.register_document(OTHER_USER_ID, "theirs.pdf")
        with pytest.raises(NotFoundError):
            apps.set_documents(USER_ID, app["id"], [theirs["id"]])

    def test_add_and_remove_single_document(self, apps, docs):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        first = docs.register_document(USER_ID, "a.pdf")
        second = docs.register_document(USER_ID, "b.pdf")

        apps.add_document(USER_ID, app["id"], first["id"])
        assert apps.add_document(USER_ID, app["id"], second["id"]) == [first["id"], second["id"]]
        assert apps.add_document(USER_ID, app["id"], first["id"]) == [first["id"], second["id"]]
        assert apps.remove_document(USER_ID, app["id"], first["id"]) == [second["id"]]

    def test_document_ids_must_be_uuids(self, apps):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        with pytest.raises(ValidationError, match="UUID"):
            apps.set_documents(USER_ID, app["id"], ["not-an-id"])

    def test_deleting_document_removes_links(self, apps, docs):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        doc = docs.register_document(USER_ID, "a.pdf")
        apps.set_documents(USER_ID, app["id"], [doc["id"]])
        docs.delete_document(USER_ID, doc["id"])
        assert apps.get_documents(USER_ID, app["id"]) == []


class TestDocumentContext:

    def test_format_experience(self):
        assert format_experience(PARSED["experience"][0]) == "Engineer at Acme (2020 - Present): APIs"
        assert format_experience({"role": "Intern"}) == "Intern"

    def test_format_education(self):
        assert format_education(PARSED["education"][0]) == "BSc in CS from MIT"

    def test_build_context(self):
        context = build_context_from_document(PARSED)
        assert context["experience"] == "Engineer at Acme (2020 - Present): APIs"
        assert context["resume"] == (
            "Experience:\nEngineer at Acme (2020 - Present): APIs\n\n"
            "Education:\nBSc in CS from MIT\n\n"
            "Skills: Python, SQL, Mentoring"
        )

    def test_build_context_empty(self):
        assert build_context_from_document(None) == {"resume": None, "experience": None, "education": None}


class TestDocumentAnalysis:

    def test_register_requires_name(self, docs):
        with pytest.raises(ValidationError):
            docs.register_document(USER_ID, "  ")

    def test_too_little_text(self, docs, mock_ai):
        doc = docs.register_document(USER_ID, "empty.pdf", extracted_text="hi")
        with pytest.raises(ValidationError):
            docs.analyze_document(USER_ID, doc["id"])
        mock_ai.parse_document.assert_not_called()

    def test_success(self, docs, mock_ai):
        mock_ai.parse_document.return_value = PARSED
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        result = docs.analyze_document(USER_ID, doc["id"])
        assert result["analysis_status"] == "success"
        assert result["parsed_data"] == PARSED
        assert result["parsed_at"] is not None
        assert [d["id"] for d in docs.get_analyzed_documents(USER_ID)] == [doc["id"]]

    def test_rate_limited_queues_retry(self, docs, mock_ai):
        retry_at = datetime.utcnow() + timedelta(minutes=2)
        mock_ai.parse_document.side_effect = AIRateLimitError(retry_at)
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)

        result = docs.analyze_document(USER_ID, doc["id"])

        assert result["analysis_status"] == "rate_limited"
        with get_database().get_session() as session:
            task = session.query(AIRetryTask).one()
            assert task.task_type == "parse_document"
            assert task.task_data == {"document_id": doc["id"]}
            assert task.scheduled_retry_time == retry_at

    def test_failure_marks_document_failed(self, docs, mock_ai):
        mock_ai.parse_document.side_effect = LLMError("bad output")
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        with pytest.raises(LLMError):
            docs.analyze_document(USER_ID, doc["id"])
        stored = docs.get_document(USER_ID, doc["id"])
        assert stored["analysis_status"] == "failed"
        assert stored["analysis_error"] == "bad output"

    def test_unexpected_error_marks_document_failed(self, docs, mock_ai):
        mock_ai.parse_document.side_effect = AttributeError("'str' object has no attribute 'get'")
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        with pytest.raises(LLMError):
            docs.analyze_document(USER_ID, doc["id"])
        stored = docs.get_document(USER_ID, doc["id"])
        assert stored["analysis_status"] == "failed"
        assert stored["analysis_error"] == "Unusable AI response"

    def test_report_is_saved(self, docs, mock_ai):
        mock_ai.generate_document_report.return_value = {"overallScore": 80, "categories": []}
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        docs.generate_report(USER_ID, doc["id"])
        assert docs.get_document(USER_ID, doc["id"])["report"]["overallScore"] == 80


class TestAIApplicationFeatures:

    def test_cover_letter_uses_latest_analyzed_document(self, apps, docs, mock_ai):
        analyzed_document(docs)
        mock_ai.generate_cover_letter.return_value = "Dear hiring team"
        app = apps.create_application(USER_ID, {"title": "SWE", "company": "Acme", "job_description": "Python"})

        assert apps.generate_cover_letter(USER_ID, app["id"], "Be brief") == {"coverLetter": "Dear hiring team"}

        title, company, context, instructions = mock_ai.generate_cover_letter.call_args[0]
        assert (title, company, instructions) == ("SWE", "Acme", "Be brief")
        assert "Skills: Python, SQL, Mentoring" in context["resume"]
        assert context["jobDescription"] == "Python"
        assert apps.get_application(USER_ID, app["id"])["ai_cover_letter"] == "Dear hiring team"

    def test_linked_documents_take_precedence(self, apps, docs, mock_ai):
        analyzed_document(docs)
        linked = analyzed_document(docs, parsed={"skills": ["Rust"]}, name="rust.pdf")
        app = apps.create_application(USER_ID, {"title": "SWE"})
        apps.set_documents(USER_ID, app["id"], [linked["id"]])
        mock_ai.generate_cover_letter.return_value = "Letter"

        apps.generate_cover_letter(USER_ID, app["id"])

        context = mock_ai.generate_cover_letter.call_args[0][2]
        assert context["resume"] == "Skills: Rust"
        assert context["experience"] is None

    def test_resume_match_needs_job_description(self, apps, docs, mock_ai):
        doc = analyzed_document(docs)
        app = apps.create_application(USER_ID, {"title": "SWE"})
        with pytest.raises(ValidationError, match="job description"):
            apps.analyze_resume_match(USER_ID, app["id"], doc["id"])

    def test_resume_match(self, apps, docs, mock_ai):
        doc = analyzed_document(docs)
        app = apps.create_application(USER_ID, {"title": "SWE", "job_description": "Python and SQL"})
        mock_ai.analyze_resume_match.return_value = {"score": 88}
        assert apps.analyze_resume_match(USER_ID, app["id"], doc["id"]) == {"score": 88}
        resume_text, job_description = mock_ai.analyze_resume_match.call_args[0]
        assert resume_text.startswith("Experience:")
        assert job_description == "Python and SQL"

    def test_compatibility_without_resume(self, apps, mock_ai):
        with pytest.raises(ValidationError, match="Upload and analyze a resume first"):
            apps.check_compatibility(USER_ID, "Python developer")

    def test_compatibility_with_latest_resume(self, apps, docs, mock_ai):
        analyzed_document(docs)
        mock_ai.check_compatibility.return_value = {"score": 70, "tips": []}
        assert apps.check_compatibility(USER_ID, "Python developer")["score"] == 70


class TestQuestions:

    @pytest.fixture
    def questions(self, users):
        return QuestionService()

    @pytest.fixture
    def app(self, apps):
        return apps.create_application(USER_ID, {"title": "SWE", "job_description": "Python"})

    def test_bulk_create_skips_blanks_and_duplicates(self, questions, app):
        questions.create_question(USER_ID, app["id"], "Why us?")
        created = questions.create_questions(USER_ID, app["id"], ["why us?", " ", "Tell us about you", "TELL US ABOUT YOU"])
        assert [q["question_text"] for q in created] == ["Tell us about you"]
        assert len(questions.list_questions(USER_ID, app["id"])) == 2

    def test_create_requires_text(self, questions, app):
        with pytest.raises(ValidationError):
            questions.create_question(USER_ID, app["id"], "")

    def test_update_and_delete(self, questions, app):
        question = questions.create_question(USER_ID, app["id"], "Why us?")
        updated = questions.update_question(USER_ID, question["id"], {"manual_answer": "Because."})
        assert updated["manual_answer"] == "Because."
        questions.delete_question(USER_ID, question["id"])
        assert questions.list_questions(USER_ID, app["id"]) == []

    def test_other_user_cannot_edit(self, questions, app):
        question = questions.create_question(USER_ID, app["id"], "Why us?")
        with pytest.raises(NotFoundError):
            questions.update_question(OTHER_USER_ID, question["id"], {"manual_answer": "x"})

    def test_regenerate_all_skips_failures(self, questions, app, mock_ai):
        first = questions.create_question(USER_ID, app["id"], "Why us?")
        questions.create_question(USER_ID, app["id"], "Biggest failure?")
        def answer(text, context):
            if text != "Why us?":
                raise LLMError("nope")
            return "Great fit"

        mock_ai.generate_answer.side_effect = answer

        result = questions.regenerate_answers(USER_ID, app["id"])

        assert [(q["id"], q["ai_answer"]) for q in result] == [(first["id"], "Great fit")]
        assert mock_ai.generate_answer.call_args[0][1]["jobDescription"] == "Python"

    def test_regenerate_all_failing_raises(self, questions, app, mock_ai):
        questions.create_question(USER_ID, app["id"], "Why us?")
        mock_ai.generate_answer.side_effect = LLMError("down")
        with pytest.raises(LLMError):
            questions.regenerate_answers(USER_ID, app["id"])

    def test_regenerate_single(self, questions, app, mock_ai):
        question = questions.create_question(USER_ID, app["id"], "Why us?")
        questions.create_question(USER_ID, app["id"], "Other?")
        mock_ai.generate_answer.return_value = "Answer"
        result = questions.regenerate_answers(USER_ID, app["id"], question["id"])
        assert [q["id"] for q in result] == [question["id"]]
        assert mock_ai.generate_answer.call_count == 1

    def test_regenerate_unknown_question(self, questions, app, mock_ai):
        with pytest.raises(NotFoundError):
            questions.regenerate_answers(USER_ID, app["id"], "missing")

    def test_regenerate_no_questions(self, questions, app, mock_ai):
        assert questions.regenerate_answers(USER_ID, app["id"]) == []


class TestNotes:

    @pytest.fixture
    def notes(self, users):
        return NoteService()

    def test_pinned_first(self, apps, notes):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        first = notes.create_note(USER_ID, app["id"], "Recruiter called")
        notes.create_note(USER_ID, app["id"], "Prep system design", "interview")
        notes.toggle_pin(USER_ID, first["id"])

        listed = notes.list_notes(USER_ID, app["id"])
        assert [n["content"] for n in listed] == ["Recruiter called", "Prep system design"]
        assert listed[1]["category"] == "interview"
        assert listed[0]["is_pinned"] is True

    def test_update_and_delete(self, apps, notes):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        note = notes.create_note(USER_ID, app["id"], "Draft")
        assert notes.update_note(USER_ID, note["id"], {"content": "Final", "category": None})["category"] == "general"
        notes.delete_note(USER_ID, note["id"])
        assert notes.list_notes(USER_ID, app["id"]) == []

    def test_empty_content(self, apps, notes):
        app = apps.create_application(USER_ID, {"title": "SWE"})
        with pytest.raises(ValidationError):
            notes.create_note(USER_ID, app["id"], "   ")


class TestNotifications:

    def test_create_and_read(self, users, notifications):
        created = notifications.create_notification(USER_ID, "info", "Hello")
        assert created["is_read"] is False
        notifications.create_notification(USER_ID, "success", "Done")
        assert notifications.unread_count(USER_ID) == 2

        notifications.mark_as_read(USER_ID, created["id"])
        unread = notifications.list_notifications(USER_ID, unread_only=True)
        assert [n["message"] for n in unread] == ["Done"]

        assert notifications.mark_all_as_read(USER_ID) == 1
        assert notifications.unread_count(USER_ID) == 0

    def test_suppression(self, users, notifications):
        window = timedelta(seconds=60)
        assert notifications.create_notification(USER_ID, "info", "Same", window) is not None
        assert notifications.create_notification(USER_ID, "info", "Same", window) is None

    def test_invalid_type(self, users, notifications):
        with pytest.raises(ValidationError):
            notifications.create_notification(USER_ID, "shout", "Hi")

    def test_ownership(self, users, notifications):
        created = notifications.create_notification(OTHER_USER_ID, "info", "Private")
        with pytest.raises(NotFoundError):
            notifications.delete_notification(USER_ID, created["id"])

    def test_has_recent_notification(self, users, notifications):
        notifications.create_notification(USER_ID, "deadline", "Deadline SOON: Backend Engineer due in 3 days")
        hour_ago = datetime.utcnow() - timedelta(hours=1)

        assert notifications.has_recent_notification(USER_ID, "deadline", "Backend Engineer", since=hour_ago)
        assert not notifications.has_recent_notification(USER_ID, "deadline", "Designer", since=hour_ago)
        assert not notifications.has_recent_notification(USER_ID, "info", "Backend Engineer", since=hour_ago)
        assert not notifications.has_recent_notification(
            USER_ID, "deadline", "Backend Engineer", since=datetime.utcnow() + timedelta(minutes=1)
        )
