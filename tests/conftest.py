"""Pytest configuration and shared fixtures for estimate agent tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Ensure local imports work (api/, config/, models/, services/, workflows/)
# ============================================================================
#
# The codebase uses absolute imports like `from models...` / `from services...`,
# so the repository root must be importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections."""
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool
    from services.database import init_db

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    from services.database import create_session_factory

    return create_session_factory(engine)


@pytest.fixture
def seeded_session_factory(session_factory):
    """Session factory with system categories and question templates loaded."""
    from services.seed_service import seed_reference_data

    seed_reference_data(session_factory)
    return session_factory


@pytest.fixture
def estimate_service(seeded_session_factory):
    from services.estimate_service import EstimateService

    return EstimateService(seeded_session_factory, ttl_hours=24)


@pytest.fixture
def question_service(seeded_session_factory):
    from services.question_service import QuestionService

    return QuestionService(seeded_session_factory)


@pytest.fixture
def categories(seeded_session_factory):
    from workflows.categorization import load_categories

    return load_categories(seeded_session_factory)


def category_by_marker(categories, marker):
    return next(c for c in categories if marker in c.name)


@pytest.fixture
def crm_category(categories):
    return category_by_marker(categories, "CRM")


@pytest.fixture
def inventory_category(categories):
    return category_by_marker(categories, "Inventory")


@pytest.fixture
def sample_estimate(estimate_service):
    """Draft estimate for session ``session-test-001``."""
    return estimate_service.create_temporary_estimate(
        session_id="session-test-001",
        title="Estimate for Acme",
        initial_requirements="We need a system to manage customer contacts and the sales pipeline",
        metadata={"organization": "Acme", "industry": "retail", "budget": 5000, "timeline": "3 months"},
    )


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content="Mock response content",
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """LLMService with a mocked chat client."""
    from services.llm_service import LLMService

    with patch('services.llm_service.ChatOpenAI', return_value=mock_chat_openai):
        service = LLMService(api_key="test-api-key")
        service._client = mock_chat_openai
        return service


@pytest.fixture
def mock_embedding_service():
    """EmbeddingService stand-in returning fixed vectors."""
    service = MagicMock()
    service.embed_query = AsyncMock(return_value=[0.1, 0.2, 0.3])
    service.embed_documents = AsyncMock(
        side_effect=lambda texts: [[0.1, 0.2, 0.3] for _ in texts]
    )
    return service


# ============================================================================
# Flask application
# ============================================================================

def make_settings(**overrides):
    from config.settings import Settings

    values = dict(
        environment="test",
        api_version="v1",
        supported_api_versions=["v1"],
        api_rate_limit=1000,
        api_rate_limit_window_ms=900000,
        require_api_key=False,
        database_url="sqlite://",
        llm_categorization_enabled=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings_factory():
    """Build test Settings with overrides, e.g. ``settings_factory(api_rate_limit=2)``."""
    return make_settings


@pytest.fixture
def app_settings():
    return make_settings()


@pytest.fixture
def services(engine, seeded_session_factory, app_settings, mock_llm_service, mock_embedding_service):
    from api.container import ServiceContainer

    return ServiceContainer.build(
        app_settings,
        engine=engine,
        llm_service=mock_llm_service,
        embedding_service=mock_embedding_service,
    )


@pytest.fixture
def app(app_settings, services):
    from api import create_app

    return create_app(app_settings, services)


@pytest.fixture
def client(app):
    return app.test_client()


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """Fake API key for every test; nothing reaches the real provider."""
    from config.secrets import clear_secret_cache

    monkeypatch.setenv("OPENAI_API_KEY", "test-api-key")
    clear_secret_cache()
    yield
    clear_secret_cache()
