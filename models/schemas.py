"""Request and response models for the estimate agent.

Pydantic models for the HTTP payloads and for the data passed between
the workflow steps.
"""

from enum import Enum
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field, field_validator


class EstimateStatus(str, Enum):
    """Status of a temporary estimate as it moves through the wizard."""

    DRAFT = "draft"
    REQUIREMENTS = "requirements"
    QUESTIONS = "questions"
    FEATURES = "features"
    REVIEW = "review"
    COMPLETED = "completed"


class ItemComplexity(str, Enum):
    """Complexity tag of a line item."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DocumentType(str, Enum):
    """Supported document formats for retrieval ingestion."""

    TEXT = "text"
    MARKDOWN = "markdown"
    HTML = "html"
    JSON = "json"


def _require_text(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be blank")
    return value


# ============================================================================
# Requirements / questions
# ============================================================================


class InitialRequirementRequest(BaseModel):
    """Initial requirements submitted by the client."""

    description: str = Field(description="Free-text system requirements")
    organization: Optional[str] = Field(default=None, description="Client organization name")
    industry: Optional[str] = Field(default=None, description="Client industry")
    budget: Optional[float] = Field(default=None, ge=0, description="Budget in currency units")
    timeline: Optional[str] = Field(default=None, description="Desired timeline")
    session_id: Optional[str] = Field(default=None, description="Existing wizard session ID")

    @field_validator("description")
    @classmethod
    def check_description(cls, value: str) -> str:
        return _require_text(value)

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "organization": self.organization,
            "industry": self.industry,
            "budget": self.budget,
            "timeline": self.timeline,
        }


class InitialRequirementResponse(BaseModel):
    id: str
    session_id: str
    status: str = "success"
    message: Optional[str] = None


class AnswerQuestionRequest(BaseModel):
    """Answer to one clarifying question."""

    session_id: str = Field(description="Wizard session ID")
    answer: str = Field(description="Answer text")

    @field_validator("session_id", "answer")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        return _require_text(value)


class QuestionView(BaseModel):
    """Question as returned to the client."""

    id: str
    template_id: Optional[str] = None
    question: str
    category: str = "general"
    position: int
    is_required: bool = True
    is_answered: bool = False
    answer: Optional[str] = None


class QuestionsResponse(BaseModel):
    questions: List[QuestionView]
    total: int
    session_id: str


class AnswerQuestionResponse(BaseModel):
    success: bool
    remaining_questions: int
    session_id: str


# ============================================================================
# Estimate items / totals
# ============================================================================


class EstimateItemInput(BaseModel):
    """Line item to add to an estimate."""

    name: str = Field(description="Item name")
    unit_price: float = Field(ge=0, description="Price per unit")
    quantity: float = Field(default=1, ge=0, description="Number of units")
    description: Optional[str] = Field(default=None)
    is_required: bool = Field(default=False)
    is_selected: bool = Field(default=True)
    complexity: Optional[ItemComplexity] = Field(default=None)
    estimated_hours: Optional[float] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return _require_text(value)

    class Config:
        use_enum_values = True


class EstimateItemsRequest(BaseModel):
    items: List[EstimateItemInput] = Field(min_length=1)


class ItemSelectionRequest(BaseModel):
    is_selected: bool


class StatusUpdateRequest(BaseModel):
    status: EstimateStatus

    class Config:
        use_enum_values = True


class EmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip()
        local, _, domain = value.partition("@")
        if not local or not domain:
            raise ValueError("must be a valid email address")
        return value


class EstimateResultResponse(BaseModel):
    """Estimate with priced items and the computed total."""

    id: str
    session_id: str
    items: List[Dict[str, Any]]
    total_amount: float
    pdf_url: Optional[str] = None


# ============================================================================
# Retrieval
# ============================================================================


class DocumentIngestRequest(BaseModel):
    """Document to chunk, embed and store."""

    content: str = Field(min_length=1, description="Document body")
    type: DocumentType = Field(default=DocumentType.TEXT, description="Document format")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Metadata attached to every chunk")
    index_name: Optional[str] = Field(default=None, alias="indexName", description="Target index")

    class Config:
        populate_by_name = True
        use_enum_values = True


class RagQueryRequest(BaseModel):
    """Question answered from the stored documents."""

    query: str = Field(min_length=1, description="User question")
    filter: Dict[str, Any] = Field(default_factory=dict, description="Metadata equality filter")
    index_name: Optional[str] = Field(default=None, alias="indexName", description="Index to search")

    class Config:
        populate_by_name = True


# ============================================================================
# Workflow data
# ============================================================================


class CategoryResult(BaseModel):
    """Output of the category estimation step."""

    category_id: str = Field(description="Estimated system category ID")
    category_name: str = Field(description="Estimated system category name")
    confidence: float = Field(ge=0.0, le=1.0, description="Estimation confidence (0-1)")
    keywords: List[str] = Field(default_factory=list, description="Matched keywords")
    is_default: bool = Field(default=False, description="True when no category matched and the default was used")


class GeneratedQuestion(BaseModel):
    id: str
    question: str
    category: str
    position: int
    is_required: bool = True
    template_id: Optional[str] = None


class QuestionGenerationResult(BaseModel):
    questions: List[GeneratedQuestion] = Field(default_factory=list)
    question_count: int = 0


class WorkflowStepStatus(str, Enum):
    COMPLETED = "completed"
    FALLBACK = "fallback"


class WorkflowResult(BaseModel):
    """Result of the initial estimate workflow."""

    estimate_id: str
    category: CategoryResult
    category_name: str
    questions: List[GeneratedQuestion] = Field(default_factory=list)
    question_count: int = 0
    steps: Dict[str, WorkflowStepStatus] = Field(default_factory=dict)
    duration_ms: int = 0

    class Config:
        use_enum_values = True

    @property
    def succeeded(self) -> bool:
        return all(status == WorkflowStepStatus.COMPLETED.value for status in self.steps.values())
