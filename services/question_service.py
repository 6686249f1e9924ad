"""Question service.

Clarifying questions attached to temporary estimates and the question
templates they are generated from.
"""

from typing import Dict, Any, Optional, List

import structlog
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.errors import DatabaseError, NotFoundError, ErrorCode
from models.db import QuestionTemplate, TemporaryEstimate, TemporaryEstimateQuestion
from services.database import session_scope

logger = structlog.get_logger()


class QuestionService:
    """Service for estimate questions and question templates."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create_estimate_questions(
        self,
        estimate_id: str,
        questions: List[Dict[str, Any]],
    ) -> List[TemporaryEstimateQuestion]:
        """Insert questions for an estimate.

        Args:
            estimate_id: Temporary estimate ID.
            questions: Dicts with ``question`` and optional ``description``,
                ``category`` and ``template_id``. Positions follow list order.
        """
        try:
            with session_scope(self.session_factory) as session:
                rows = [
                    TemporaryEstimateQuestion(
                        temporary_estimate_id=estimate_id,
                        question=question["question"],
                        description=question.get("description"),
                        category=question.get("category"),
                        template_id=question.get("template_id"),
                        position=index,
                        is_answered=False,
                    )
                    for index, question in enumerate(questions)
                ]
                session.add_all(rows)
                session.flush()
                logger.info("estimate_questions_created", estimate_id=estimate_id, count=len(rows))
                return rows
        except SQLAlchemyError as e:
            logger.error("estimate_questions_create_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to create questions: {str(e)}", details={"estimate_id": estimate_id})

    def get_estimate_questions(self, estimate_id: str) -> List[TemporaryEstimateQuestion]:
        try:
            with session_scope(self.session_factory) as session:
                stmt = (
                    select(TemporaryEstimateQuestion)
                    .where(TemporaryEstimateQuestion.temporary_estimate_id == estimate_id)
                    .order_by(TemporaryEstimateQuestion.position)
                )
                return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            logger.error("estimate_questions_get_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to get questions: {str(e)}", details={"estimate_id": estimate_id})

    def answer_question(
        self,
        question_id: str,
        answer: str,
        estimate_id: Optional[str] = None,
    ) -> TemporaryEstimateQuestion:
        """Store an answer and mark the question answered.

        Raises:
            NotFoundError: If the question does not exist or belongs to a
                different estimate than ``estimate_id``.
        """
        try:
            with session_scope(self.session_factory) as session:
                question = session.get(TemporaryEstimateQuestion, question_id)
                if question is None or (
                    estimate_id is not None and question.temporary_estimate_id != estimate_id
                ):
                    raise NotFoundError(
                        "Question not found",
                        code=ErrorCode.QUESTION_NOT_FOUND,
                        details={"question_id": question_id},
                    )
                question.answer = answer
                question.is_answered = True
                logger.info("question_answered", question_id=question_id, estimate_id=question.temporary_estimate_id)
                return question
        except SQLAlchemyError as e:
            logger.error("question_answer_failed", question_id=question_id, error=str(e))
            raise DatabaseError(f"Failed to answer question: {str(e)}", details={"question_id": question_id})

    def count_unanswered(self, estimate_id: str) -> int:
        try:
            with session_scope(self.session_factory) as session:
                stmt = select(func.count(TemporaryEstimateQuestion.id)).where(
                    TemporaryEstimateQuestion.temporary_estimate_id == estimate_id,
                    TemporaryEstimateQuestion.is_answered.is_not(True),
                )
                return int(session.scalar(stmt) or 0)
        except SQLAlchemyError as e:
            logger.error("unanswered_count_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to count questions: {str(e)}", details={"estimate_id": estimate_id})

    def are_all_questions_answered(self, estimate_id: str) -> bool:
        """True when the estimate has questions and every one is answered."""
        questions = self.get_estimate_questions(estimate_id)
        return bool(questions) and all(q.is_answered for q in questions)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def get_all_question_templates(self) -> List[QuestionTemplate]:
        try:
            with session_scope(self.session_factory) as session:
                stmt = select(QuestionTemplate).order_by(QuestionTemplate.position)
                return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            logger.error("question_templates_get_failed", error=str(e))
            raise DatabaseError(f"Failed to get question templates: {str(e)}")

    def get_question_templates_by_category(self, category: str) -> List[QuestionTemplate]:
        try:
            with session_scope(self.session_factory) as session:
                stmt = (
                    select(QuestionTemplate)
                    .where(QuestionTemplate.category == category)
                    .order_by(QuestionTemplate.position)
                )
                return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            logger.error("question_templates_get_failed", category=category, error=str(e))
            raise DatabaseError(
                f"Failed to get question templates: {str(e)}", details={"category": category}
            )

    def generate_questions_from_templates(
        self,
        estimate_id: str,
        category: Optional[str] = None,
    ) -> List[TemporaryEstimateQuestion]:
        """Create questions for an estimate from templates (all templates when no category)."""
        if category:
            templates = self.get_question_templates_by_category(category)
        else:
            templates = self.get_all_question_templates()

        with session_scope(self.session_factory) as session:
            if session.get(TemporaryEstimate, estimate_id) is None:
                raise NotFoundError(
                    "Estimate not found",
                    code=ErrorCode.ESTIMATE_NOT_FOUND,
                    details={"estimate_id": estimate_id},
                )

        return self.create_estimate_questions(
            estimate_id,
            [
                {
                    "question": template.question,
                    "description": template.description,
                    "category": template.category,
                    "template_id": template.id,
                }
                for template in templates
            ],
        )
