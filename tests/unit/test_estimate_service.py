"""Unit tests for EstimateService."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from config.errors import ErrorCode, NotFoundError
from models.db import EmailNotification, Estimate, utcnow
from models.schemas import EstimateItemInput
from services.database import session_scope
from services.estimate_service import EstimateService, calculate_total


ITEMS = [
    {"name": "Customer database", "unit_price": 300000, "is_required": True},
    {"name": "Sales reports", "unit_price": 150000, "quantity": 2},
    {"name": "Mobile app", "unit_price": 500000, "is_selected": False},
]


class TestCalculateTotal:
    """Tests for calculate_total."""

    def test_sums_selected_items(self):
        assert calculate_total(ITEMS) == 600000

    def test_accepts_models(self):
        items = [EstimateItemInput(name="A", unit_price=100, quantity=3)]

        assert calculate_total(items) == 300

    def test_empty(self):
        assert calculate_total([]) == 0


class TestTemporaryEstimates:
    """Tests for temporary estimate CRUD."""

    def test_create_sets_draft_and_expiry(self, estimate_service, sample_estimate):
        assert sample_estimate.id
        assert sample_estimate.status == "draft"
        assert sample_estimate.estimate_metadata["organization"] == "Acme"
        assert sample_estimate.expires_at - sample_estimate.created_at == timedelta(hours=24)

    def test_get_by_session_returns_newest(self, estimate_service, sample_estimate):
        newer = estimate_service.create_temporary_estimate(
            session_id="session-test-001",
            title="Second try",
            initial_requirements="Booking system",
        )

        found = estimate_service.get_temporary_estimate_by_session_id("session-test-001")

        assert found.id == newer.id

    def test_get_by_unknown_session(self, estimate_service):
        assert estimate_service.get_temporary_estimate_by_session_id("nope") is None

        with pytest.raises(NotFoundError) as exc_info:
            estimate_service.require_temporary_estimate_by_session_id("nope")
        assert exc_info.value.code == ErrorCode.ESTIMATE_NOT_FOUND

    def test_list_recent(self, estimate_service):
        for index in range(3):
            estimate_service.create_temporary_estimate(
                session_id=f"s-{index}", title=f"T{index}", initial_requirements="x"
            )

        recent = estimate_service.list_recent_estimates(limit=2)

        assert [e.session_id for e in recent] == ["s-2", "s-1"]

    def test_update_status(self, estimate_service, sample_estimate):
        estimate_service.update_status(sample_estimate.id, "features")

        assert estimate_service.get_temporary_estimate(sample_estimate.id).status == "features"

    def test_update_status_rejects_unknown_value(self, estimate_service, sample_estimate):
        with pytest.raises(ValueError):
            estimate_service.update_status(sample_estimate.id, "archived")

    def test_update_status_missing_estimate(self, estimate_service):
        with pytest.raises(NotFoundError):
            estimate_service.update_status("missing", "review")

    def test_save_email_queues_notification(self, estimate_service, sample_estimate, seeded_session_factory):
        estimate_service.save_email(sample_estimate.id, "client@example.com")

        assert estimate_service.get_temporary_estimate(sample_estimate.id).email == "client@example.com"
        with session_scope(seeded_session_factory) as session:
            notifications = list(session.scalars(select(EmailNotification)))
            assert len(notifications) == 1
            assert notifications[0].status == "pending"
            assert notifications[0].temporary_estimate_id == sample_estimate.id


class TestItems:
    """Tests for line items and totals."""

    def test_create_items_assigns_positions(self, estimate_service, sample_estimate):
        rows = estimate_service.create_estimate_items(sample_estimate.id, ITEMS)

        assert [r.position for r in rows] == [0, 1, 2]
        stored = estimate_service.get_estimate_items(sample_estimate.id)
        assert [i.name for i in stored] == ["Customer database", "Sales reports", "Mobile app"]
        assert stored[1].quantity == 2
        assert stored[2].is_selected is False

    def test_create_items_for_missing_estimate(self, estimate_service):
        with pytest.raises(NotFoundError):
            estimate_service.create_estimate_items("missing", ITEMS)

    def test_total_follows_selection(self, estimate_service, sample_estimate):
        rows = estimate_service.create_estimate_items(sample_estimate.id, ITEMS)

        assert estimate_service.update_total_amount(sample_estimate.id) == 600000

        estimate_service.update_item_selection(sample_estimate.id, rows[2].id, True)
        assert estimate_service.update_total_amount(sample_estimate.id) == 1100000
        assert estimate_service.get_temporary_estimate(sample_estimate.id).total_amount == 1100000

    def test_selection_of_foreign_item(self, estimate_service, sample_estimate):
        other = estimate_service.create_temporary_estimate(
            session_id="other", title="Other", initial_requirements="x"
        )
        rows = estimate_service.create_estimate_items(other.id, ITEMS[:1])

        with pytest.raises(NotFoundError) as exc_info:
            estimate_service.update_item_selection(sample_estimate.id, rows[0].id, False)
        assert exc_info.value.code == ErrorCode.ITEM_NOT_FOUND


class TestLifecycle:
    """Tests for promotion and expiry cleanup."""

    def test_promote_copies_items_and_questions(
        self, estimate_service, question_service, sample_estimate, seeded_session_factory
    ):
        estimate_service.create_estimate_items(sample_estimate.id, ITEMS)
        estimate_service.update_total_amount(sample_estimate.id)
        question_service.create_estimate_questions(
            sample_estimate.id, [{"question": "How many users?", "category": "common"}]
        )

        promoted = estimate_service.promote_to_permanent(sample_estimate.id)

        assert promoted.source_temporary_estimate_id == sample_estimate.id
        assert promoted.total_amount == 600000
        assert estimate_service.get_temporary_estimate(sample_estimate.id).status == "completed"
        with session_scope(seeded_session_factory) as session:
            estimate = session.get(Estimate, promoted.id)
            assert len(estimate.items) == 3
            assert [q.question for q in estimate.questions] == ["How many users?"]

    def test_promote_twice_returns_existing(self, estimate_service, sample_estimate, seeded_session_factory):
        estimate_service.create_estimate_items(sample_estimate.id, ITEMS)

        first = estimate_service.promote_to_permanent(sample_estimate.id)
        second = estimate_service.promote_to_permanent(sample_estimate.id)

        assert second.id == first.id
        assert len(second.items) == 3
        with session_scope(seeded_session_factory) as session:
            rows = session.scalars(
                select(Estimate).where(Estimate.source_temporary_estimate_id == sample_estimate.id)
            ).all()
            assert len(rows) == 1

    def test_delete_expired(self, estimate_service, sample_estimate):
        estimate_service.save_email(sample_estimate.id, "client@example.com")
        estimate_service.create_estimate_items(sample_estimate.id, ITEMS)

        assert estimate_service.delete_expired_estimates() == 0

        deleted = estimate_service.delete_expired_estimates(now=utcnow() + timedelta(hours=25))

        assert deleted == 1
        assert estimate_service.get_temporary_estimate(sample_estimate.id) is None
        assert estimate_service.get_estimate_items(sample_estimate.id) == []

    def test_ttl_override(self, seeded_session_factory):
        service = EstimateService(seeded_session_factory, ttl_hours=1)

        estimate = service.create_temporary_estimate(session_id="s", title="t", initial_requirements="r")

        assert estimate.expires_at - estimate.created_at == timedelta(hours=1)
