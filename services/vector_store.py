"""pgvector-backed document store.

Chunks live in the ``document_chunks`` table; an "index" is the value of
its ``index_name`` column.
"""

from typing import Dict, Any, Optional, List

import structlog
from sqlalchemy import Select, select, func, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.errors import VectorStoreError
from models.db import DocumentChunk
from services.database import session_scope

logger = structlog.get_logger()


def _metadata_condition(key: str, value: Any):
    field = DocumentChunk.chunk_metadata[key]
    if value is None:
        # JSON null and a missing key both extract as SQL NULL
        return field.as_string().is_(None)
    if isinstance(value, bool):
        return field.as_boolean() == value
    if isinstance(value, int):
        return field.as_integer() == value
    if isinstance(value, float):
        return field.as_float() == value
    return field.as_string() == str(value)


class PgVectorStore:
    """Stores and searches embedded chunks with cosine distance."""

    def __init__(self, engine: Engine, session_factory: sessionmaker):
        self.engine = engine
        self.session_factory = session_factory

    def ensure_index(self, index_name: str) -> None:
        """Make sure the extension and chunk table exist."""
        try:
            if self.engine.dialect.name == "postgresql":
                with self.engine.begin() as conn:
                    conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            DocumentChunk.__table__.create(self.engine, checkfirst=True)
            logger.info("vector_index_ready", index_name=index_name)
        except SQLAlchemyError as e:
            logger.error("vector_index_create_failed", index_name=index_name, error=str(e))
            raise VectorStoreError(f"Failed to prepare index: {str(e)}", details={"index_name": index_name})

    def upsert(
        self,
        index_name: str,
        vectors: List[List[float]],
        metadata: List[Dict[str, Any]],
    ) -> List[str]:
        """Store vectors with their metadata. ``metadata[i]["text"]`` is the chunk body.

        Returns:
            IDs of the stored chunks.
        """
        if len(vectors) != len(metadata):
            raise VectorStoreError(
                "Vector and metadata counts differ",
                details={"vectors": len(vectors), "metadata": len(metadata)},
            )
        try:
            with session_scope(self.session_factory) as session:
                rows = [
                    DocumentChunk(
                        index_name=index_name,
                        content=str(meta.get("text", "")),
                        embedding=vector,
                        chunk_metadata=meta,
                    )
                    for vector, meta in zip(vectors, metadata)
                ]
                session.add_all(rows)
                session.flush()
                ids = [row.id for row in rows]
            logger.info("vectors_upserted", index_name=index_name, count=len(ids))
            return ids
        except SQLAlchemyError as e:
            logger.error("vector_upsert_failed", index_name=index_name, error=str(e))
            raise VectorStoreError(f"Failed to store chunks: {str(e)}", details={"index_name": index_name})

    @staticmethod
    def query_statement(
        index_name: str,
        query_vector: List[float],
        top_k: int = 5,
        filter: Optional[Dict[str, Any]] = None,
    ) -> Select:
        """SELECT of ``(chunk, distance)`` rows, nearest first."""
        distance = DocumentChunk.embedding.cosine_distance(query_vector).label("distance")
        stmt = select(DocumentChunk, distance).where(DocumentChunk.index_name == index_name)
        for key, value in (filter or {}).items():
            stmt = stmt.where(_metadata_condition(key, value))
        return stmt.order_by(distance).limit(top_k)

    def query(
        self,
        index_name: str,
        query_vector: List[float],
        top_k: int = 5,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Nearest chunks by cosine distance, restricted to a metadata equality filter.

        A ``None`` filter value matches chunks where the key is null or absent.

        Returns:
            List of ``{"id", "text", "score", "metadata"}`` with ``score = 1 - distance``.
        """
        stmt = self.query_statement(index_name, query_vector, top_k, filter)

        try:
            with session_scope(self.session_factory) as session:
                results = [
                    {
                        "id": chunk.id,
                        "text": chunk.content,
                        "score": 1 - float(dist),
                        "metadata": dict(chunk.chunk_metadata or {}),
                    }
                    for chunk, dist in session.execute(stmt)
                ]
        except SQLAlchemyError as e:
            logger.error("vector_query_failed", index_name=index_name, error=str(e))
            raise VectorStoreError(f"Failed to query chunks: {str(e)}", details={"index_name": index_name})

        logger.info("vector_query_completed", index_name=index_name, results=len(results))
        return results

    def count(self, index_name: str) -> int:
        with session_scope(self.session_factory) as session:
            return int(session.scalar(
                select(func.count(DocumentChunk.id)).where(DocumentChunk.index_name == index_name)
            ) or 0)
