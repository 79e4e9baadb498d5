"""
Shared fixtures for the ApplyOS tests.

The environment is configured before any applyos import so Settings,
the database engine and the app are built against a throwaway SQLite
file, a known JWT secret and a known cron secret. Gemini is never
called: AI-dependent tests install a MagicMock AIService.
"""
import os
import tempfile
import time
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="applyos-tests-"))

os.environ["APP_ENV"] = "testing"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'applyos.db'}"
os.environ["SUPABASE_JWT_SECRET"] = "test-supabase-jwt-secret-0123456789abcdef"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["GEMINI_API_KEY"] = ""
os.environ["LLM_RETRY_DELAY_SECONDS"] = "0"
os.environ["ENABLE_AUDIT_LOGGING"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "true"

import jwt  # noqa: E402
import pytest  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

from applyos.core.auth import JWT_ALGORITHM, JWT_AUDIENCE  # noqa: E402
from applyos.core.rate_limiter import reset_rate_limiters  # noqa: E402
from applyos.database import drop_tables, init_tables  # noqa: E402
from applyos.llm.model_manager import get_model_manager  # noqa: E402
from applyos.services.ai_service import AIService  # noqa: E402

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


def make_token(user_id: str = USER_ID, email: str = "ada@example.com", expires_in: int = 3600) -> str:
    """Supabase-style HS256 access token signed with the test secret."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "email": email,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": {"full_name": "Ada Lovelace"},
    }
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm=JWT_ALGORITHM)


@pytest.fixture(autouse=True)
def database():
    """Fresh tables for every test."""
    drop_tables()
    init_tables()
    yield
    drop_tables()


@pytest.fixture(autouse=True)
def reset_state():
    """Clear process-wide rate limit counters and parked Gemini models."""
    reset_rate_limiters()
    get_model_manager().reset()
    yield
    reset_rate_limiters()
    get_model_manager().reset()


@pytest.fixture
def users():
    """Profile rows for the two test users."""
    from applyos.services.user_service import get_user_service

    service = get_user_service()
    service.ensure_user(USER_ID, "ada@example.com", "Ada Lovelace")
    service.ensure_user(OTHER_USER_ID, "grace@example.com", "Grace Hopper")
    return USER_ID, OTHER_USER_ID


@pytest.fixture
def mock_ai(monkeypatch):
    """Replace the shared AIService with a MagicMock."""
    ai = MagicMock(spec=AIService)
    ai.is_configured = True
    monkeypatch.setattr("applyos.services.ai_service._ai_service", ai)
    return ai


@pytest.fixture
def client():
    """TestClient for the FastAPI app (tables come from the database fixture)."""
    from fastapi.testclient import TestClient
    from applyos.api.main import app

    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {make_token(OTHER_USER_ID, 'grace@example.com')}"}


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {os.environ['CRON_SECRET']}"}
