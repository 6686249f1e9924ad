"""Service wiring for the Flask application."""

from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config.settings import Settings, settings as default_settings
from services.database import create_db_engine, create_session_factory, init_db
from services.category_embedding_service import CategoryEmbeddingService
from services.embedding_service import EmbeddingService
from services.estimate_service import EstimateService
from services.llm_service import LLMService
from services.question_service import QuestionService
from services.rag_service import RagService
from services.vector_store import PgVectorStore
from workflows.initial_estimate import InitialEstimateWorkflow

EXTENSION_KEY = "estimate_agent"


@dataclass
class ServiceContainer:
    engine: Engine
    session_factory: sessionmaker
    estimate_service: EstimateService
    question_service: QuestionService
    workflow: InitialEstimateWorkflow
    rag_service: RagService
    category_embedding_service: CategoryEmbeddingService

    @classmethod
    def build(
        cls,
        app_settings: Optional[Settings] = None,
        engine: Optional[Engine] = None,
        llm_service: Optional[LLMService] = None,
        embedding_service: Optional[EmbeddingService] = None,
    ) -> "ServiceContainer":
        """Create every service on one engine. Tables are created if missing."""
        app_settings = app_settings or default_settings
        engine = engine or create_db_engine(app_settings.database_url, app_settings.database_echo)
        init_db(engine)
        session_factory = create_session_factory(engine)
        llm_service = llm_service or LLMService()
        embedding_service = embedding_service or EmbeddingService()

        return cls(
            engine=engine,
            session_factory=session_factory,
            estimate_service=EstimateService(session_factory, ttl_hours=app_settings.estimate_ttl_hours),
            question_service=QuestionService(session_factory),
            workflow=InitialEstimateWorkflow(
                session_factory,
                llm_service=llm_service,
                llm_categorization_enabled=app_settings.llm_categorization_enabled,
            ),
            rag_service=RagService(
                PgVectorStore(engine, session_factory),
                embedding_service,
                llm_service,
                default_index=app_settings.rag_index_name,
                default_top_k=app_settings.rag_top_k,
            ),
            category_embedding_service=CategoryEmbeddingService(session_factory, embedding_service),
        )


def get_services() -> ServiceContainer:
    return current_app.extensions[EXTENSION_KEY]
