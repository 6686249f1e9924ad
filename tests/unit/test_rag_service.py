"""Unit tests for RagService and the pgvector store."""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from config.errors import VectorStoreError
from models.db import DocumentChunk
from services.rag_service import NO_CONTEXT_MESSAGE, RagService
from services.vector_store import PgVectorStore

DIMENSION = DocumentChunk.__table__.c.embedding.type.dim


@pytest.fixture
def vector_store():
    store = MagicMock()
    store.query.return_value = [
        {"id": "c1", "text": "Budget is 5M.", "score": 0.92, "metadata": {"text": "Budget is 5M.", "source": "rfp"}},
        {"id": "c2", "text": "Launch in April.", "score": 0.81, "metadata": {"text": "Launch in April."}},
    ]
    return store


@pytest.fixture
def rag_service(vector_store, mock_embedding_service, mock_llm_service):
    return RagService(
        vector_store,
        mock_embedding_service,
        mock_llm_service,
        default_index="requirements_embeddings",
        default_top_k=5,
    )


class TestRagService:

    @pytest.mark.asyncio
    async def test_process_and_store_document(self, rag_service, vector_store, mock_embedding_service):
        count = await rag_service.process_and_store_document(
            "Short requirements document.", "text", metadata={"source": "rfp"}
        )

        assert count == 1
        vector_store.ensure_index.assert_called_once_with("requirements_embeddings")
        mock_embedding_service.embed_documents.assert_awaited_once_with(["Short requirements document."])
        index_name, vectors, metadata = vector_store.upsert.call_args[0]
        assert index_name == "requirements_embeddings"
        assert vectors == [[0.1, 0.2, 0.3]]
        assert metadata == [{"text": "Short requirements document.", "source": "rfp"}]

    @pytest.mark.asyncio
    async def test_markdown_metadata_is_kept(self, rag_service, vector_store):
        await rag_service.process_and_store_document("# Scope\n\nTen screens.", "markdown", index_name="docs")

        index_name, _, metadata = vector_store.upsert.call_args[0]
        assert index_name == "docs"
        assert metadata[0]["title"] == "Scope"

    @pytest.mark.asyncio
    async def test_empty_document_stores_nothing(self, rag_service, vector_store, mock_embedding_service):
        assert await rag_service.process_and_store_document("   ") == 0

        mock_embedding_service.embed_documents.assert_not_called()
        vector_store.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_similar_chunks(self, rag_service, vector_store):
        results = await rag_service.search_similar_chunks("budget?", top_k=2, filter={"source": "rfp"})

        vector_store.query.assert_called_once_with(
            "requirements_embeddings", [0.1, 0.2, 0.3], top_k=2, filter={"source": "rfp"}
        )
        assert [r["text"] for r in results] == ["Budget is 5M.", "Launch in April."]
        assert results[0]["score"] == 0.92

    @pytest.mark.asyncio
    async def test_relevant_context_joins_chunks(self, rag_service):
        context = await rag_service.get_relevant_context("budget?")

        assert context == "Budget is 5M.\n\nLaunch in April."

    @pytest.mark.asyncio
    async def test_relevant_context_without_results(self, rag_service, vector_store):
        vector_store.query.return_value = []

        assert await rag_service.get_relevant_context("budget?") == NO_CONTEXT_MESSAGE

    @pytest.mark.asyncio
    async def test_generate_rag_response(self, rag_service, mock_llm_service):
        answer = await rag_service.generate_rag_response("What is the budget?")

        assert answer == "Mock response content"
        messages = mock_llm_service._client.ainvoke.call_args[0][0]
        assert "Budget is 5M." in messages[0].content
        assert messages[1].content == "What is the budget?"


class TestPgVectorStore:
    """Storage paths of the pgvector store that also run on SQLite."""

    @pytest.fixture
    def store(self, engine, session_factory):
        return PgVectorStore(engine, session_factory)

    def test_upsert_and_count(self, store):
        store.ensure_index("docs")

        ids = store.upsert(
            "docs",
            [[0.1] * DIMENSION, [0.2] * DIMENSION],
            [{"text": "first"}, {"text": "second", "source": "rfp"}],
        )

        assert len(ids) == 2
        assert store.count("docs") == 2
        assert store.count("other") == 0

    def test_upsert_length_mismatch(self, store):
        with pytest.raises(VectorStoreError):
            store.upsert("docs", [[0.1] * DIMENSION], [])


class TestPgVectorQuery:
    """Similarity query shape, compiled for PostgreSQL."""

    @staticmethod
    def compile(stmt):
        return stmt.compile(dialect=postgresql.dialect())

    def test_orders_by_cosine_distance_within_index(self):
        compiled = self.compile(PgVectorStore.query_statement("docs", [0.1, 0.2], top_k=3))
        sql = " ".join(str(compiled).split())

        assert "document_chunks.embedding <=> " in sql
        assert "AS distance" in sql
        assert "document_chunks.index_name = " in sql
        assert "ORDER BY distance" in sql
        assert "LIMIT" in sql
        assert "docs" in compiled.params.values()
        assert 3 in compiled.params.values()

    @pytest.mark.parametrize("value,fragment", [
        (True, "AS BOOLEAN"),
        (2, "AS INTEGER"),
        (0.5, "AS FLOAT"),
    ])
    def test_typed_metadata_predicates(self, value, fragment):
        compiled = self.compile(PgVectorStore.query_statement("docs", [0.1], filter={"field": value}))
        sql = " ".join(str(compiled).split())

        assert "document_chunks.chunk_metadata ->> " in sql
        assert fragment in sql
        assert "field" in compiled.params.values()
        if not isinstance(value, bool):
            assert value in compiled.params.values()

    def test_string_metadata_predicate(self):
        compiled = self.compile(PgVectorStore.query_statement("docs", [0.1], filter={"source": "rfp"}))
        sql = " ".join(str(compiled).split())

        assert "document_chunks.chunk_metadata ->> " in sql
        assert "rfp" in compiled.params.values()

    def test_none_metadata_matches_null(self):
        compiled = self.compile(PgVectorStore.query_statement("docs", [0.1], filter={"page": None}))
        sql = " ".join(str(compiled).split())

        assert "IS NULL" in sql
        assert "None" not in compiled.params.values()

    def test_query_converts_distance_to_score(self):
        chunk = DocumentChunk(id="c1", index_name="docs", content="Budget is 5M.", chunk_metadata={"source": "rfp"})
        session = MagicMock()
        session.execute.return_value = [(chunk, 0.25)]
        store = PgVectorStore(MagicMock(), MagicMock(return_value=session))

        results = store.query("docs", [0.1, 0.2], top_k=1, filter={"source": "rfp"})

        assert results == [
            {"id": "c1", "text": "Budget is 5M.", "score": 0.75, "metadata": {"source": "rfp"}},
        ]
        session.commit.assert_called_once()

    def test_query_error_is_wrapped(self):
        session = MagicMock()
        session.execute.side_effect = SQLAlchemyError("connection lost")
        store = PgVectorStore(MagicMock(), MagicMock(return_value=session))

        with pytest.raises(VectorStoreError) as exc_info:
            store.query("docs", [0.1])

        assert exc_info.value.details == {"index_name": "docs"}
        session.rollback.assert_called_once()
