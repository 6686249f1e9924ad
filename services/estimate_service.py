"""Estimate service.

CRUD for temporary estimates and their line items, total calculation,
email capture and promotion to permanent estimates.
"""

from datetime import datetime, timedelta
from typing import Dict, Any, Optional, List, Iterable, Union

import structlog
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from config.settings import settings
from config.errors import DatabaseError, NotFoundError, ErrorCode
from models.db import (
    EmailNotification,
    Estimate,
    EstimateItem,
    EstimateQuestion,
    TemporaryEstimate,
    TemporaryEstimateItem,
    utcnow,
)
from models.schemas import EstimateStatus, EstimateItemInput
from services.database import session_scope

logger = structlog.get_logger()

ItemLike = Union[EstimateItemInput, Dict[str, Any]]


def calculate_total(items: Iterable[Any]) -> float:
    """Sum ``unit_price * quantity`` over the selected items.

    Accepts ORM rows, pydantic models or plain dicts.
    """
    total = 0.0
    for item in items:
        if isinstance(item, dict):
            selected = item.get("is_selected", True)
            unit_price = item.get("unit_price", 0)
            quantity = item.get("quantity", 1)
        else:
            selected = item.is_selected
            unit_price = item.unit_price
            quantity = item.quantity
        if selected:
            total += float(unit_price or 0) * float(quantity if quantity is not None else 1)
    return total


def _item_fields(item: ItemLike) -> Dict[str, Any]:
    if isinstance(item, EstimateItemInput):
        return item.model_dump()
    return EstimateItemInput.model_validate(item).model_dump()


class EstimateService:
    """Service for temporary estimates and their items.

    All methods run in their own transaction; ``SQLAlchemyError`` is logged
    and re-raised as ``DatabaseError``.
    """

    def __init__(self, session_factory: sessionmaker, ttl_hours: Optional[int] = None):
        self.session_factory = session_factory
        self.ttl_hours = ttl_hours if ttl_hours is not None else settings.estimate_ttl_hours

    # ------------------------------------------------------------------
    # Temporary estimates
    # ------------------------------------------------------------------

    def create_temporary_estimate(
        self,
        session_id: str,
        title: str,
        initial_requirements: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TemporaryEstimate:
        """Create a draft estimate that expires after the configured TTL."""
        try:
            with session_scope(self.session_factory) as session:
                now = utcnow()
                estimate = TemporaryEstimate(
                    session_id=session_id,
                    title=title,
                    description=description,
                    initial_requirements=initial_requirements,
                    status=EstimateStatus.DRAFT.value,
                    estimate_metadata=metadata or {},
                    created_at=now,
                    updated_at=now,
                    expires_at=now + timedelta(hours=self.ttl_hours),
                )
                session.add(estimate)
                session.flush()
                logger.info("temporary_estimate_created", estimate_id=estimate.id, session_id=session_id)
                return estimate
        except SQLAlchemyError as e:
            logger.error("temporary_estimate_create_failed", session_id=session_id, error=str(e))
            raise DatabaseError(f"Failed to create estimate: {str(e)}", details={"session_id": session_id})

    def get_temporary_estimate(self, estimate_id: str) -> Optional[TemporaryEstimate]:
        try:
            with session_scope(self.session_factory) as session:
                return session.get(TemporaryEstimate, estimate_id)
        except SQLAlchemyError as e:
            logger.error("temporary_estimate_get_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to get estimate: {str(e)}", details={"estimate_id": estimate_id})

    def get_temporary_estimate_by_session_id(self, session_id: str) -> Optional[TemporaryEstimate]:
        """Return the newest estimate for a session, or None."""
        try:
            with session_scope(self.session_factory) as session:
                stmt = (
                    select(TemporaryEstimate)
                    .where(TemporaryEstimate.session_id == session_id)
                    .order_by(TemporaryEstimate.created_at.desc())
                    .limit(1)
                )
                return session.scalars(stmt).first()
        except SQLAlchemyError as e:
            logger.error("temporary_estimate_lookup_failed", session_id=session_id, error=str(e))
            raise DatabaseError(f"Failed to get estimate: {str(e)}", details={"session_id": session_id})

    def require_temporary_estimate_by_session_id(self, session_id: str) -> TemporaryEstimate:
        estimate = self.get_temporary_estimate_by_session_id(session_id)
        if estimate is None:
            raise NotFoundError(
                "Estimate not found for the given session",
                code=ErrorCode.ESTIMATE_NOT_FOUND,
                details={"session_id": session_id},
            )
        return estimate

    def list_recent_estimates(self, limit: int = 5) -> List[TemporaryEstimate]:
        try:
            with session_scope(self.session_factory) as session:
                stmt = select(TemporaryEstimate).order_by(TemporaryEstimate.created_at.desc()).limit(limit)
                return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            logger.error("temporary_estimate_list_failed", error=str(e))
            raise DatabaseError(f"Failed to list estimates: {str(e)}")

    def update_status(self, estimate_id: str, status: Union[EstimateStatus, str]) -> TemporaryEstimate:
        status_value = EstimateStatus(status).value
        try:
            with session_scope(self.session_factory) as session:
                estimate = self._load(session, estimate_id)
                estimate.status = status_value
                logger.info("estimate_status_updated", estimate_id=estimate_id, status=status_value)
                return estimate
        except SQLAlchemyError as e:
            logger.error("estimate_status_update_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to update status: {str(e)}", details={"estimate_id": estimate_id})

    def save_email(self, estimate_id: str, email: str) -> TemporaryEstimate:
        """Store the client email and queue a pending notification."""
        try:
            with session_scope(self.session_factory) as session:
                estimate = self._load(session, estimate_id)
                estimate.email = email
                session.add(
                    EmailNotification(
                        email=email,
                        temporary_estimate_id=estimate_id,
                        status="pending",
                        content={"type": "estimate_completed"},
                    )
                )
                logger.info("estimate_email_saved", estimate_id=estimate_id)
                return estimate
        except SQLAlchemyError as e:
            logger.error("estimate_email_save_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to save email: {str(e)}", details={"estimate_id": estimate_id})

    # ------------------------------------------------------------------
    # Items and totals
    # ------------------------------------------------------------------

    def create_estimate_items(self, estimate_id: str, items: List[ItemLike]) -> List[TemporaryEstimateItem]:
        """Insert line items; each item's position is its index in the list."""
        fields = [_item_fields(item) for item in items]
        try:
            with session_scope(self.session_factory) as session:
                self._load(session, estimate_id)
                rows = [
                    TemporaryEstimateItem(temporary_estimate_id=estimate_id, position=index, **data)
                    for index, data in enumerate(fields)
                ]
                session.add_all(rows)
                session.flush()
                logger.info("estimate_items_created", estimate_id=estimate_id, count=len(rows))
                return rows
        except SQLAlchemyError as e:
            logger.error("estimate_items_create_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to create items: {str(e)}", details={"estimate_id": estimate_id})

    def get_estimate_items(self, estimate_id: str) -> List[TemporaryEstimateItem]:
        try:
            with session_scope(self.session_factory) as session:
                stmt = (
                    select(TemporaryEstimateItem)
                    .where(TemporaryEstimateItem.temporary_estimate_id == estimate_id)
                    .order_by(TemporaryEstimateItem.position)
                )
                return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            logger.error("estimate_items_get_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to get items: {str(e)}", details={"estimate_id": estimate_id})

    def update_item_selection(self, estimate_id: str, item_id: str, is_selected: bool) -> TemporaryEstimateItem:
        try:
            with session_scope(self.session_factory) as session:
                item = session.get(TemporaryEstimateItem, item_id)
                if item is None or item.temporary_estimate_id != estimate_id:
                    raise NotFoundError(
                        "Item not found",
                        code=ErrorCode.ITEM_NOT_FOUND,
                        details={"estimate_id": estimate_id, "item_id": item_id},
                    )
                item.is_selected = is_selected
                return item
        except SQLAlchemyError as e:
            logger.error("estimate_item_update_failed", item_id=item_id, error=str(e))
            raise DatabaseError(f"Failed to update item: {str(e)}", details={"item_id": item_id})

    def update_total_amount(self, estimate_id: str) -> float:
        """Recompute the total from the selected items and store it."""
        try:
            with session_scope(self.session_factory) as session:
                estimate = self._load(session, estimate_id)
                stmt = select(TemporaryEstimateItem).where(
                    TemporaryEstimateItem.temporary_estimate_id == estimate_id
                )
                total = calculate_total(session.scalars(stmt))
                estimate.total_amount = total
                logger.info("estimate_total_updated", estimate_id=estimate_id, total_amount=total)
                return total
        except SQLAlchemyError as e:
            logger.error("estimate_total_update_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to update total: {str(e)}", details={"estimate_id": estimate_id})

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def promote_to_permanent(self, estimate_id: str) -> Estimate:
        """Copy a temporary estimate with its items and questions into the permanent tables.

        Promoting the same temporary estimate again returns the existing row.
        """
        try:
            with session_scope(self.session_factory) as session:
                temporary = self._load(session, estimate_id)
                existing = session.scalars(
                    select(Estimate)
                    .where(Estimate.source_temporary_estimate_id == estimate_id)
                    .options(selectinload(Estimate.items), selectinload(Estimate.questions))
                ).first()
                if existing is not None:
                    logger.info("estimate_already_promoted", temporary_estimate_id=estimate_id, estimate_id=existing.id)
                    return existing
                estimate = Estimate(
                    source_temporary_estimate_id=temporary.id,
                    session_id=temporary.session_id,
                    email=temporary.email,
                    title=temporary.title,
                    description=temporary.description,
                    initial_requirements=temporary.initial_requirements,
                    total_amount=temporary.total_amount,
                    status=EstimateStatus.COMPLETED.value,
                    system_category_id=temporary.system_category_id,
                    estimate_metadata=dict(temporary.estimate_metadata or {}),
                    pdf_url=temporary.pdf_url,
                )
                estimate.items = [
                    EstimateItem(
                        name=item.name,
                        description=item.description,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        is_required=item.is_required,
                        is_selected=item.is_selected,
                        complexity=item.complexity,
                        estimated_hours=item.estimated_hours,
                        position=item.position,
                    )
                    for item in temporary.items
                ]
                estimate.questions = [
                    EstimateQuestion(
                        question=question.question,
                        answer=question.answer,
                        position=question.position,
                        is_answered=question.is_answered,
                        template_id=question.template_id,
                        category=question.category,
                    )
                    for question in temporary.questions
                ]
                session.add(estimate)
                temporary.status = EstimateStatus.COMPLETED.value
                session.flush()
                logger.info(
                    "estimate_promoted",
                    temporary_estimate_id=estimate_id,
                    estimate_id=estimate.id,
                    items=len(estimate.items),
                )
                return estimate
        except SQLAlchemyError as e:
            logger.error("estimate_promote_failed", estimate_id=estimate_id, error=str(e))
            raise DatabaseError(f"Failed to finalize estimate: {str(e)}", details={"estimate_id": estimate_id})

    def delete_expired_estimates(self, now: Optional[datetime] = None) -> int:
        """Delete temporary estimates past their expiry. Returns the count."""
        cutoff = now or utcnow()
        try:
            with session_scope(self.session_factory) as session:
                expired = list(session.scalars(
                    select(TemporaryEstimate).where(TemporaryEstimate.expires_at < cutoff)
                ))
                for estimate in expired:
                    session.execute(
                        delete(EmailNotification).where(EmailNotification.temporary_estimate_id == estimate.id)
                    )
                    session.delete(estimate)
                logger.info("expired_estimates_deleted", count=len(expired))
                return len(expired)
        except SQLAlchemyError as e:
            logger.error("expired_estimates_delete_failed", error=str(e))
            raise DatabaseError(f"Failed to delete expired estimates: {str(e)}")

    def _load(self, session, estimate_id: str) -> TemporaryEstimate:
        estimate = session.get(TemporaryEstimate, estimate_id)
        if estimate is None:
            raise NotFoundError(
                "Estimate not found",
                code=ErrorCode.ESTIMATE_NOT_FOUND,
                details={"estimate_id": estimate_id},
            )
        return estimate
