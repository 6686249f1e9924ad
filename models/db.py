"""SQLAlchemy database models for the estimate agent.

Maps to the relational schema: reference data (system categories, question
templates), temporary estimates with their items and questions, permanent
estimates, email notifications, API keys and the pgvector document store.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from config.settings import settings


def _uuid() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ============================================================================
# Reference data
# ============================================================================


class SystemCategory(TimestampMixin, Base):
    """System category matched against requirement text."""

    __tablename__ = "system_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    keywords: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    default_questions: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    content_embedding = mapped_column(Vector(settings.embedding_dimension), nullable=True, deferred=True)

    def __repr__(self) -> str:
        return f"<SystemCategory id={self.id} name={self.name!r}>"

    def to_dict(self) -> Dict[str, Any]:
        return dict(
            id=self.id,
            name=self.name,
            description=self.description,
            keywords=list(self.keywords or []),
            default_questions=list(self.default_questions or []),
        )


class QuestionTemplate(TimestampMixin, Base):
    """Clarifying question template, keyed by category ("common", "crm", ...)."""

    __tablename__ = "question_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_required: Mapped[Optional[bool]] = mapped_column(Boolean, default=True)
    conditions: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)

    def __repr__(self) -> str:
        return f"<QuestionTemplate id={self.id} category={self.category!r} position={self.position}>"

    def to_dict(self) -> Dict[str, Any]:
        return dict(
            id=self.id,
            category=self.category,
            question=self.question,
            description=self.description,
            position=self.position,
            is_required=bool(self.is_required),
            conditions=self.conditions,
        )


# ============================================================================
# Temporary estimates (wizard sessions)
# ============================================================================


class TemporaryEstimate(TimestampMixin, Base):
    """Draft estimate created from the first requirements request."""

    __tablename__ = "temporary_estimates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(320))
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    initial_requirements: Mapped[str] = mapped_column(Text, nullable=False)
    total_amount: Mapped[Optional[float]] = mapped_column(Float)
    status: Mapped[str] = mapped_column(String(32), default="draft", nullable=False)
    system_category_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("system_categories.id", ondelete="SET NULL")
    )
    # "metadata" is reserved on declarative classes
    estimate_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON)
    pdf_url: Mapped[Optional[str]] = mapped_column(Text)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    items: Mapped[List["TemporaryEstimateItem"]] = relationship(
        back_populates="estimate",
        cascade="all, delete-orphan",
        order_by="TemporaryEstimateItem.position",
    )
    questions: Mapped[List["TemporaryEstimateQuestion"]] = relationship(
        back_populates="estimate",
        cascade="all, delete-orphan",
        order_by="TemporaryEstimateQuestion.position",
    )

    def __repr__(self) -> str:
        return f"<TemporaryEstimate id={self.id} session_id={self.session_id!r} status={self.status!r}>"

    def to_dict(self) -> Dict[str, Any]:
        return dict(
            id=self.id,
            session_id=self.session_id,
            email=self.email,
            title=self.title,
            description=self.description,
            initial_requirements=self.initial_requirements,
            total_amount=self.total_amount,
            status=self.status,
            system_category_id=self.system_category_id,
            metadata=self.estimate_metadata or {},
            pdf_url=self.pdf_url,
            created_at=_iso(self.created_at),
            updated_at=_iso(self.updated_at),
            expires_at=_iso(self.expires_at),
        )


class TemporaryEstimateItem(TimestampMixin, Base):
    """One priced line item of a temporary estimate."""

    __tablename__ = "temporary_estimate_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    temporary_estimate_id: Mapped[str] = mapped_column(
        ForeignKey("temporary_estimates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[float] = mapped_column(Float, default=1, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    is_required: Mapped[Optional[bool]] = mapped_column(Boolean, default=False)
    is_selected: Mapped[Optional[bool]] = mapped_column(Boolean, default=True)
    complexity: Mapped[Optional[str]] = mapped_column(String(16))
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    estimate: Mapped[TemporaryEstimate] = relationship(back_populates="items")

    def to_dict(self) -> Dict[str, Any]:
        return dict(
            id=self.id,
            name=self.name,
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            is_required=bool(self.is_required),
            is_selected=bool(self.is_selected),
            complexity=self.complexity,
            estimated_hours=self.estimated_hours,
            position=self.position,
        )


class TemporaryEstimateQuestion(TimestampMixin, Base):
    """Clarifying question asked for a temporary estimate."""

    __tablename__ = "temporary_estimate_questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    temporary_estimate_id: Mapped[str] = mapped_column(
        ForeignKey("temporary_estimates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    answer: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_answered: Mapped[Optional[bool]] = mapped_column(Boolean, default=False)
    template_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("question_templates.id", ondelete="SET NULL")
    )
    category: Mapped[Optional[str]] = mapped_column(String(64))

    estimate: Mapped[TemporaryEstimate] = relationship(back_populates="questions")

    def to_dict(self) -> Dict[str, Any]:
        return dict(
            id=self.id,
            template_id=self.template_id,
            question=self.question,
            description=self.description,
            answer=self.answer,
            is_answered=bool(self.is_answered),
            category=self.category,
            position=self.position,
        )


# ============================================================================
# Permanent estimates
# ============================================================================


class Estimate(TimestampMixin, Base):
    """Finalized estimate promoted from a temporary estimate."""

    __tablename__ = "estimates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    source_temporary_estimate_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    email: Mapped[Optional[str]] = mapped_column(String(320))
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    initial_requirements: Mapped[str] = mapped_column(Text, nullable=False)
    total_amount: Mapped[Optional[float]] = mapped_column(Float)
    status: Mapped[str] = mapped_column(String(32), default="completed", nullable=False)
    system_category_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("system_categories.id", ondelete="SET NULL")
    )
    estimate_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON)
    pdf_url: Mapped[Optional[str]] = mapped_column(Text)

    items: Mapped[List["EstimateItem"]] = relationship(
        back_populates="estimate", cascade="all, delete-orphan", order_by="EstimateItem.position"
    )
    questions: Mapped[List["EstimateQuestion"]] = relationship(
        back_populates="estimate", cascade="all, delete-orphan", order_by="EstimateQuestion.position"
    )

    def to_dict(self) -> Dict[str, Any]:
        return dict(
            id=self.id,
            source_temporary_estimate_id=self.source_temporary_estimate_id,
            session_id=self.session_id,
            email=self.email,
            title=self.title,
            description=self.description,
            initial_requirements=self.initial_requirements,
            total_amount=self.total_amount,
            status=self.status,
            system_category_id=self.system_category_id,
            metadata=self.estimate_metadata or {},
            pdf_url=self.pdf_url,
            created_at=_iso(self.created_at),
            updated_at=_iso(self.updated_at),
        )


class EstimateItem(TimestampMixin, Base):
    __tablename__ = "estimate_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    estimate_id: Mapped[str] = mapped_column(
        ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[float] = mapped_column(Float, default=1, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    is_required: Mapped[Optional[bool]] = mapped_column(Boolean, default=False)
    is_selected: Mapped[Optional[bool]] = mapped_column(Boolean, default=True)
    complexity: Mapped[Optional[str]] = mapped_column(String(16))
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    estimate: Mapped[Estimate] = relationship(back_populates="items")


class EstimateQuestion(TimestampMixin, Base):
    __tablename__ = "estimate_questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    estimate_id: Mapped[str] = mapped_column(
        ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_answered: Mapped[Optional[bool]] = mapped_column(Boolean, default=False)
    template_id: Mapped[Optional[str]] = mapped_column(String(36))
    category: Mapped[Optional[str]] = mapped_column(String(64))

    estimate: Mapped[Estimate] = relationship(back_populates="questions")


# ============================================================================
# Notifications and access
# ============================================================================


class EmailNotification(TimestampMixin, Base):
    """Queued email, sent by an external worker."""

    __tablename__ = "email_notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    temporary_estimate_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("temporary_estimates.id", ondelete="CASCADE"), index=True
    )
    estimate_id: Mapped[Optional[str]] = mapped_column(ForeignKey("estimates.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(String(32), default="pending", nullable=False)
    content: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class ApiKey(Base):
    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    key_value: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(64))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    permissions: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


# ============================================================================
# Vector store
# ============================================================================


class DocumentChunk(Base):
    """Embedded document chunk for retrieval, grouped by index name."""

    __tablename__ = "document_chunks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    index_name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding = mapped_column(Vector(settings.embedding_dimension), nullable=False)
    chunk_metadata: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_document_chunks_index_created", "index_name", "created_at"),
    )
