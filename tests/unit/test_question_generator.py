"""Unit tests for clarifying question generation."""

import pytest

from config.errors import ErrorCode, NotFoundError, QuestionGenerationError
from models.db import QuestionTemplate, SystemCategory
from models.schemas import QuestionGenerationResult
from workflows.question_generator import (
    QuestionGenerator,
    build_question_list,
    category_key_for,
)


def make_template(id, category, question, position):
    return QuestionTemplate(
        id=id, category=category, question=question, position=position, is_required=True
    )


def make_category(name, default_questions):
    return SystemCategory(id="cat-1", name=name, keywords=[], default_questions=default_questions)


class TestCategoryKey:
    """Tests for category_key_for."""

    @pytest.mark.parametrize("name,key", [
        ("CRM (Customer Management)", "crm"),
        ("顧客管理システム", "crm"),
        ("Inventory Management", "inventory"),
        ("在庫管理", "inventory"),
        ("Booking System", "booking"),
        ("予約システム", "booking"),
        ("Workflow Automation", "workflow"),
        ("プロジェクト管理", "project"),
        ("Accounting", ""),
    ])
    def test_mapping(self, name, key):
        assert category_key_for(name) == key


class TestBuildQuestionList:
    """Tests for build_question_list."""

    def test_templates_then_defaults(self):
        category = make_category(
            "CRM (Customer Management)",
            ["How many users will use the system?", "Do you need an export?", "Is there a budget?"],
        )
        common = [
            make_template("t1", "common", "How many users will use the system?", 10),
            make_template("t2", "common", "Mobile support?", 20),
        ]
        specific = [make_template("t3", "crm", "What customer data?", 110)]

        questions = build_question_list(category, common, specific)

        assert [q["id"] for q in questions] == ["t1", "t2", "t3", "default-120", "default-130"]
        assert [q["position"] for q in questions] == [10, 20, 110, 120, 130]
        assert questions[3]["question"] == "Do you need an export?"
        assert questions[3]["category"] == "crm"
        assert questions[3]["description"] == "Question about CRM (Customer Management)"

    def test_overlap_is_case_insensitive_substring(self):
        category = make_category("Booking", ["mobile support"])
        common = [make_template("t1", "common", "Mobile support for staff?", 10)]

        questions = build_question_list(category, common, [])

        assert len(questions) == 1

    def test_defaults_only_start_at_100(self):
        category = make_category("Accounting", ["Which ledgers?", "Which currencies?"])

        questions = build_question_list(category, [], [])

        assert [q["position"] for q in questions] == [100, 110]
        assert all(q["category"] == "custom" for q in questions)

    def test_defaults_skipped_when_enough_templates(self):
        category = make_category("Accounting", ["Which ledgers?"])
        common = [make_template(f"t{i}", "common", f"Question {i}?", i * 10) for i in range(10)]

        questions = build_question_list(category, common, [])

        assert len(questions) == 10

    def test_no_questions_raises(self):
        category = make_category("Accounting", [])

        with pytest.raises(QuestionGenerationError):
            build_question_list(category, [], [])


class TestQuestionGenerator:
    """Tests for QuestionGenerator against the seeded database."""

    def test_generates_and_stores_questions(
        self, seeded_session_factory, estimate_service, question_service, sample_estimate, crm_category
    ):
        generator = QuestionGenerator(seeded_session_factory)

        result = generator.generate_questions(crm_category.id, sample_estimate.id)

        assert isinstance(result, QuestionGenerationResult)
        # 3 common + 2 crm templates + 3 default questions
        assert result.question_count == 8
        assert [q.position for q in result.questions] == [10, 20, 30, 110, 120, 130, 140, 150]
        assert all(q.template_id for q in result.questions[:5])
        assert all(q.template_id is None for q in result.questions[5:])

        stored = question_service.get_estimate_questions(sample_estimate.id)
        assert [q.id for q in stored] == [q.id for q in result.questions]
        assert not any(q.is_answered for q in stored)

        estimate = estimate_service.get_temporary_estimate(sample_estimate.id)
        assert estimate.status == "questions"
        assert estimate.system_category_id == crm_category.id

    def test_unknown_category(self, seeded_session_factory, sample_estimate):
        generator = QuestionGenerator(seeded_session_factory)

        with pytest.raises(NotFoundError) as exc_info:
            generator.generate_questions("missing", sample_estimate.id)

        assert exc_info.value.code == ErrorCode.CATEGORY_NOT_FOUND

    def test_unknown_estimate(self, seeded_session_factory, crm_category):
        generator = QuestionGenerator(seeded_session_factory)

        with pytest.raises(NotFoundError) as exc_info:
            generator.generate_questions(crm_category.id, "missing")

        assert exc_info.value.code == ErrorCode.ESTIMATE_NOT_FOUND
