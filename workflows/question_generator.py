"""Clarifying question generation.

Builds the question list for an estimate from the common templates, the
templates of the estimated category and the category's default questions,
then stores it on the estimate.
"""

from typing import Dict, Any, List, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.errors import (
    DatabaseError,
    ErrorCode,
    NotFoundError,
    QuestionGenerationError,
)
from models.db import (
    QuestionTemplate,
    SystemCategory,
    TemporaryEstimate,
    TemporaryEstimateQuestion,
)
from models.schemas import EstimateStatus, GeneratedQuestion, QuestionGenerationResult
from services.database import session_scope

logger = structlog.get_logger()

COMMON_CATEGORY = "common"
CUSTOM_CATEGORY = "custom"
MIN_QUESTION_COUNT = 10
POSITION_STEP = 10
DEFAULT_START_POSITION = 100
DEFAULT_ID_PREFIX = "default-"

# (template category key, markers found in category names)
CATEGORY_KEY_MARKERS = (
    ("crm", ("crm", "顧客管理")),
    ("inventory", ("inventory", "在庫")),
    ("booking", ("booking", "reservation", "予約")),
    ("workflow", ("workflow", "ワークフロー")),
    ("project", ("project", "プロジェクト")),
)


def category_key_for(name: str) -> str:
    """Map a category name to its template key, or "" when none applies."""
    lowered = name.lower()
    for key, markers in CATEGORY_KEY_MARKERS:
        if any(marker in lowered for marker in markers):
            return key
    return ""


def _overlaps(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def build_question_list(
    category: SystemCategory,
    common_templates: Sequence[QuestionTemplate],
    category_templates: Sequence[QuestionTemplate],
) -> List[Dict[str, Any]]:
    """Combine templates and default questions into one ordered list.

    Raises:
        QuestionGenerationError: If no question could be collected.
    """
    key = category_key_for(category.name)
    questions: List[Dict[str, Any]] = [
        template.to_dict()
        for template in list(common_templates) + list(category_templates)
    ]

    default_questions = [q for q in (category.default_questions or []) if isinstance(q, str)]
    if default_questions and len(questions) < MIN_QUESTION_COUNT:
        if questions:
            position = max(q["position"] or 0 for q in questions) + POSITION_STEP
        else:
            position = DEFAULT_START_POSITION

        for text in default_questions:
            if any(_overlaps(q["question"], text) for q in questions):
                continue
            questions.append({
                "id": f"{DEFAULT_ID_PREFIX}{position}",
                "question": text,
                "description": f"Question about {category.name}",
                "category": key or CUSTOM_CATEGORY,
                "position": position,
                "is_required": True,
            })
            position += POSITION_STEP

    if not questions:
        raise QuestionGenerationError(
            "No question templates were found",
            details={"category_id": category.id, "category_key": key},
        )
    return questions


class QuestionGenerator:
    """Generates and stores the clarifying questions for an estimate."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def generate_questions(self, category_id: str, temporary_estimate_id: str) -> QuestionGenerationResult:
        """Generate questions for the estimate from the category's templates.

        Also moves the estimate to the ``questions`` status and records the
        category on it.

        Raises:
            NotFoundError: If the category or the estimate does not exist.
            QuestionGenerationError: If no questions could be built.
            DatabaseError: If the database operation fails.
        """
        try:
            with session_scope(self.session_factory) as session:
                category = session.get(SystemCategory, category_id)
                if category is None:
                    raise NotFoundError(
                        "System category not found",
                        code=ErrorCode.CATEGORY_NOT_FOUND,
                        details={"category_id": category_id},
                    )
                estimate = session.get(TemporaryEstimate, temporary_estimate_id)
                if estimate is None:
                    raise NotFoundError(
                        "Estimate not found",
                        code=ErrorCode.ESTIMATE_NOT_FOUND,
                        details={"estimate_id": temporary_estimate_id},
                    )

                key = category_key_for(category.name)
                common = self._templates(session, COMMON_CATEGORY)
                specific = self._templates(session, key) if key else []
                entries = build_question_list(category, common, specific)

                rows = []
                for index, entry in enumerate(entries):
                    entry_id = entry.get("id")
                    rows.append(TemporaryEstimateQuestion(
                        temporary_estimate_id=temporary_estimate_id,
                        question=entry["question"],
                        description=entry.get("description"),
                        position=entry.get("position") or index * POSITION_STEP + POSITION_STEP,
                        category=entry.get("category") or CUSTOM_CATEGORY,
                        template_id=entry_id if entry_id and not entry_id.startswith(DEFAULT_ID_PREFIX) else None,
                        is_answered=False,
                    ))
                session.add_all(rows)

                estimate.status = EstimateStatus.QUESTIONS.value
                estimate.system_category_id = category_id
                session.flush()

                questions = [
                    GeneratedQuestion(
                        id=row.id,
                        question=row.question,
                        category=row.category or CUSTOM_CATEGORY,
                        position=row.position,
                        is_required=True,
                        template_id=row.template_id,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as e:
            logger.error("question_generation_failed", estimate_id=temporary_estimate_id, error=str(e))
            raise DatabaseError(
                f"Failed to store questions: {str(e)}",
                details={"estimate_id": temporary_estimate_id},
            )

        logger.info(
            "questions_generated",
            estimate_id=temporary_estimate_id,
            category_id=category_id,
            question_count=len(questions),
        )
        return QuestionGenerationResult(questions=questions, question_count=len(questions))

    @staticmethod
    def _templates(session, category: str) -> List[QuestionTemplate]:
        stmt = (
            select(QuestionTemplate)
            .where(QuestionTemplate.category == category)
            .order_by(QuestionTemplate.position)
        )
        return list(session.scalars(stmt))
