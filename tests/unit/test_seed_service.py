"""Tests for reference data seeding."""

from sqlalchemy import func, select

from models.db import QuestionTemplate, SystemCategory
from services.database import session_scope
from services.seed_service import seed_reference_data


def test_seeds_empty_tables(session_factory):
    result = seed_reference_data(session_factory)

    assert result.categories_created == 5
    assert result.templates_created == 14
    assert not result.skipped


def test_second_run_is_skipped(session_factory):
    seed_reference_data(session_factory)

    result = seed_reference_data(session_factory)

    assert result.skipped
    with session_scope(session_factory) as session:
        assert session.scalar(select(func.count(SystemCategory.id))) == 5
        assert session.scalar(select(func.count(QuestionTemplate.id))) == 14


def test_categories_keep_seed_order(seeded_session_factory, categories):
    assert [c.name for c in categories] == [
        "CRM (Customer Management)",
        "Inventory Management",
        "Booking System",
        "Workflow Automation",
        "Project Management",
    ]
