"""Embeddings of system categories and similarity search over them."""

import json
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

import structlog
from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.errors import DatabaseError, EmbeddingError
from models.db import SystemCategory
from services.database import session_scope
from services.embedding_service import EmbeddingService

logger = structlog.get_logger()

DEFAULT_MATCH_THRESHOLD = 0.5
DEFAULT_MATCH_COUNT = 3


def category_embedding_text(category: SystemCategory) -> str:
    """Text embedded for a category: name, description and keywords."""
    keywords = json.dumps(list(category.keywords or []), ensure_ascii=False)
    return (
        f"Name: {category.name or ''}\n"
        f"Description: {category.description or ''}\n"
        f"Keywords: {keywords}"
    )


@dataclass
class CategoryEmbeddingResult:
    embedded: int = 0
    failed: List[str] = field(default_factory=list)


class CategoryEmbeddingService:
    """Stores ``content_embedding`` for each system category and searches it."""

    def __init__(self, session_factory: sessionmaker, embedding_service: EmbeddingService):
        self.session_factory = session_factory
        self.embedding_service = embedding_service

    def _pending_categories(self, missing_only: bool) -> List[Dict[str, str]]:
        stmt = select(SystemCategory).order_by(SystemCategory.created_at, SystemCategory.id)
        if missing_only:
            stmt = stmt.where(SystemCategory.content_embedding.is_(None))
        with session_scope(self.session_factory) as session:
            return [
                {"id": category.id, "text": category_embedding_text(category)}
                for category in session.scalars(stmt)
            ]

    async def embed_categories(self, missing_only: bool = False) -> CategoryEmbeddingResult:
        """Embed every category (or only those without an embedding).

        A category whose embedding fails is reported in ``failed`` and the
        rest are still processed.

        Raises:
            DatabaseError: If categories cannot be read or written.
        """
        result = CategoryEmbeddingResult()
        try:
            pending = self._pending_categories(missing_only)
            logger.info("category_embedding_started", count=len(pending), missing_only=missing_only)

            for entry in pending:
                try:
                    vector = await self.embedding_service.embed_query(entry["text"])
                except EmbeddingError as e:
                    logger.warning("category_embedding_failed", category_id=entry["id"], error=e.message)
                    result.failed.append(entry["id"])
                    continue

                with session_scope(self.session_factory) as session:
                    category = session.get(SystemCategory, entry["id"])
                    if category is not None:
                        category.content_embedding = vector
                result.embedded += 1
        except SQLAlchemyError as e:
            logger.error("category_embedding_store_failed", error=str(e))
            raise DatabaseError(f"Failed to store category embeddings: {str(e)}")

        logger.info("category_embedding_completed", embedded=result.embedded, failed=len(result.failed))
        return result

    @staticmethod
    def match_statement(
        query_vector: List[float],
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        match_count: int = DEFAULT_MATCH_COUNT,
    ) -> Select:
        """SELECT of ``(category, similarity)`` above ``match_threshold``, most similar first."""
        distance = SystemCategory.content_embedding.cosine_distance(query_vector)
        similarity = (1 - distance).label("similarity")
        return (
            select(SystemCategory, similarity)
            .where(SystemCategory.content_embedding.is_not(None))
            .where(1 - distance > match_threshold)
            .order_by(distance)
            .limit(match_count)
        )

    async def match_categories(
        self,
        text: str,
        match_threshold: Optional[float] = None,
        match_count: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Categories whose embedding is closest to ``text``. Needs PostgreSQL."""
        vector = await self.embedding_service.embed_query(text)
        stmt = self.match_statement(
            vector,
            DEFAULT_MATCH_THRESHOLD if match_threshold is None else match_threshold,
            match_count or DEFAULT_MATCH_COUNT,
        )
        try:
            with session_scope(self.session_factory) as session:
                matches = [
                    {**category.to_dict(), "similarity": float(similarity)}
                    for category, similarity in session.execute(stmt)
                ]
        except SQLAlchemyError as e:
            logger.error("category_match_failed", error=str(e))
            raise DatabaseError(f"Failed to match categories: {str(e)}")

        logger.info("category_match_completed", matches=len(matches))
        return matches
