"""Estimate workflows: category estimation and question generation."""

from workflows.categorization import estimate_category
from workflows.question_generator import QuestionGenerator, build_question_list, category_key_for
from workflows.initial_estimate import InitialEstimateWorkflow

__all__ = [
    "estimate_category",
    "QuestionGenerator",
    "build_question_list",
    "category_key_for",
    "InitialEstimateWorkflow",
]
