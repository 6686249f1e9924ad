"""Initial estimate workflow.

Two sequential steps run after the requirements are stored:

1. estimate-category: pick the system category for the requirement text
2. generate-questions: store the clarifying questions for that category

A failing step never aborts the workflow; it is logged and replaced by a
fallback result.
"""

import time
from typing import Optional

import structlog
from sqlalchemy.orm import sessionmaker

from config.settings import settings
from models.schemas import (
    CategoryResult,
    QuestionGenerationResult,
    WorkflowResult,
    WorkflowStepStatus,
)
from services.llm_service import LLMService
from utils.workflow_logger import (
    log_workflow_start,
    log_workflow_complete,
    log_step_start,
    log_step_output,
    log_step_fallback,
)
from workflows.categorization import (
    estimate_category,
    is_default_result,
    load_categories,
    refine_with_llm,
)
from workflows.question_generator import QuestionGenerator

logger = structlog.get_logger()

WORKFLOW_NAME = "initial-estimate"
STEP_ESTIMATE_CATEGORY = "estimate-category"
STEP_GENERATE_QUESTIONS = "generate-questions"

FALLBACK_CATEGORY_ID = "default-category"
FALLBACK_CATEGORY_NAME = "CRM (Customer Management)"
FALLBACK_CATEGORY_CONFIDENCE = 0.5
UNKNOWN_CATEGORY_NAME = "Unknown category"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class InitialEstimateWorkflow:
    """Categorize the requirements, then generate the clarifying questions."""

    def __init__(
        self,
        session_factory: sessionmaker,
        question_generator: Optional[QuestionGenerator] = None,
        llm_service: Optional[LLMService] = None,
        llm_categorization_enabled: Optional[bool] = None,
    ):
        self.session_factory = session_factory
        self.question_generator = question_generator or QuestionGenerator(session_factory)
        self.llm_service = llm_service
        if llm_categorization_enabled is None:
            llm_categorization_enabled = settings.llm_categorization_enabled
        self.llm_categorization_enabled = llm_categorization_enabled

    async def run(self, description: str, estimate_id: str) -> WorkflowResult:
        start = time.monotonic()
        steps = {}
        log_workflow_start(WORKFLOW_NAME, estimate_id, [STEP_ESTIMATE_CATEGORY, STEP_GENERATE_QUESTIONS])

        category, steps[STEP_ESTIMATE_CATEGORY] = await self._estimate_category(description, estimate_id)
        questions, steps[STEP_GENERATE_QUESTIONS] = self._generate_questions(category, estimate_id)

        category_name = category.category_name
        if steps[STEP_GENERATE_QUESTIONS] == WorkflowStepStatus.FALLBACK:
            category_name = UNKNOWN_CATEGORY_NAME

        duration_ms = _elapsed_ms(start)
        log_workflow_complete(
            WORKFLOW_NAME,
            estimate_id,
            {name: status.value for name, status in steps.items()},
            duration_ms,
        )
        return WorkflowResult(
            estimate_id=estimate_id,
            category=category,
            category_name=category_name,
            questions=questions.questions,
            question_count=questions.question_count,
            steps=steps,
            duration_ms=duration_ms,
        )

    async def _estimate_category(self, description: str, estimate_id: str):
        step_start = time.monotonic()
        log_step_start(STEP_ESTIMATE_CATEGORY, estimate_id)
        try:
            categories = load_categories(self.session_factory)
            result = estimate_category(description, categories)
            if self.llm_categorization_enabled and self.llm_service and is_default_result(result):
                result = await refine_with_llm(self.llm_service, description, categories, result)
        except Exception as e:
            fallback = CategoryResult(
                category_id=FALLBACK_CATEGORY_ID,
                category_name=FALLBACK_CATEGORY_NAME,
                confidence=FALLBACK_CATEGORY_CONFIDENCE,
                keywords=[],
            )
            log_step_fallback(STEP_ESTIMATE_CATEGORY, estimate_id, str(e), fallback.model_dump())
            return fallback, WorkflowStepStatus.FALLBACK

        log_step_output(STEP_ESTIMATE_CATEGORY, estimate_id, result.model_dump(), _elapsed_ms(step_start))
        return result, WorkflowStepStatus.COMPLETED

    def _generate_questions(self, category: CategoryResult, estimate_id: str):
        step_start = time.monotonic()
        log_step_start(STEP_GENERATE_QUESTIONS, estimate_id)
        try:
            result = self.question_generator.generate_questions(category.category_id, estimate_id)
        except Exception as e:
            log_step_fallback(STEP_GENERATE_QUESTIONS, estimate_id, str(e), {"questions": []})
            return QuestionGenerationResult(), WorkflowStepStatus.FALLBACK

        log_step_output(
            STEP_GENERATE_QUESTIONS,
            estimate_id,
            {"question_count": result.question_count, "category": category.category_name},
            _elapsed_ms(step_start),
        )
        return result, WorkflowStepStatus.COMPLETED
