"""Seed the reference tables (system categories, question templates)."""

from dataclasses import dataclass
from datetime import timedelta

import structlog
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.errors import DatabaseError
from models.db import SystemCategory, QuestionTemplate, utcnow
from models.seed_data import SYSTEM_CATEGORIES, QUESTION_TEMPLATES
from services.database import session_scope

logger = structlog.get_logger()


@dataclass
class SeedResult:
    categories_created: int = 0
    templates_created: int = 0

    @property
    def skipped(self) -> bool:
        return self.categories_created == 0 and self.templates_created == 0


def seed_reference_data(session_factory: sessionmaker) -> SeedResult:
    """Insert categories and templates into empty tables.

    A table that already holds rows is left untouched.
    """
    result = SeedResult()
    now = utcnow()
    try:
        with session_scope(session_factory) as session:
            if not session.scalar(select(func.count(SystemCategory.id))):
                # Distinct timestamps keep the listing order stable
                session.add_all(
                    SystemCategory(
                        name=data["name"],
                        description=data["description"],
                        keywords=list(data["keywords"]),
                        default_questions=list(data["default_questions"]),
                        created_at=now + timedelta(milliseconds=index),
                        updated_at=now,
                    )
                    for index, data in enumerate(SYSTEM_CATEGORIES)
                )
                result.categories_created = len(SYSTEM_CATEGORIES)

            if not session.scalar(select(func.count(QuestionTemplate.id))):
                session.add_all(QuestionTemplate(**data) for data in QUESTION_TEMPLATES)
                result.templates_created = len(QUESTION_TEMPLATES)
    except SQLAlchemyError as e:
        logger.error("seed_failed", error=str(e))
        raise DatabaseError(f"Failed to seed reference data: {str(e)}")

    logger.info(
        "reference_data_seeded",
        categories=result.categories_created,
        templates=result.templates_created,
        skipped=result.skipped,
    )
    return result
