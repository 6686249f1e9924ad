"""Question endpoints: list questions for a session and answer them."""

import structlog

from api.container import get_services
from api.responses import success_response, json_response
from api.routes.helpers import get_request_json, parse_body, require_fields, require_query_param
from api.routes.v1 import v1
from models.schemas import (
    AnswerQuestionRequest,
    AnswerQuestionResponse,
    EstimateStatus,
    QuestionView,
    QuestionsResponse,
)

logger = structlog.get_logger()


def _question_view(question) -> QuestionView:
    return QuestionView(
        id=question.id,
        template_id=question.template_id,
        question=question.question,
        category=question.category or "general",
        position=question.position,
        is_required=True,
        is_answered=bool(question.is_answered),
        answer=question.answer,
    )


@v1.route("/questions", methods=["GET"])
def list_questions():
    session_id = require_query_param("session_id")
    services = get_services()

    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    questions = services.question_service.get_estimate_questions(estimate.id)

    response = QuestionsResponse(
        questions=[_question_view(q) for q in questions],
        total=len(questions),
        session_id=session_id,
    )
    return json_response(success_response(response.model_dump()))


@v1.route("/questions/<question_id>/answer", methods=["POST"])
def answer_question(question_id: str):
    """Store an answer; the estimate moves on to ``features`` after the last one."""
    data = get_request_json()
    require_fields(data, "session_id", "answer")
    body = parse_body(AnswerQuestionRequest, data)
    services = get_services()

    estimate = services.estimate_service.require_temporary_estimate_by_session_id(body.session_id)
    services.question_service.answer_question(question_id, body.answer, estimate_id=estimate.id)
    remaining = services.question_service.count_unanswered(estimate.id)

    if remaining == 0 and estimate.status == EstimateStatus.QUESTIONS.value:
        services.estimate_service.update_status(estimate.id, EstimateStatus.FEATURES)
        logger.info("all_questions_answered", estimate_id=estimate.id)

    response = AnswerQuestionResponse(success=True, remaining_questions=remaining, session_id=body.session_id)
    return json_response(success_response(response.model_dump()))
