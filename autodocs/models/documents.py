"""Document types, project types and the request/result models built on them."""

from enum import Enum
from typing import Annotated
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from autodocs.core.config import settings


class DocumentType(str, Enum):
    """The nine documentation artifacts the service can generate, in declaration order."""

    PRD = "prd"
    APP_FLOW = "appFlow"
    TECH_STACK = "techStack"
    FRONTEND = "frontend"
    BACKEND = "backend"
    CURSOR_RULES = "cursorRules"
    IMPLEMENTATION = "implementation"
    BEST_PRACTICES = "bestPractices"
    PROMPT_GUIDE = "promptGuide"


class ProjectType(str, Enum):
    WEB = "web"
    MOBILE = "mobile"
    DESKTOP = "desktop"
    AI = "ai"
    OTHER = "other"


PROJECT_TYPE_LABELS: dict[ProjectType, str] = {
    ProjectType.WEB: "Web Application",
    ProjectType.MOBILE: "Mobile App",
    ProjectType.DESKTOP: "Desktop Application",
    ProjectType.AI: "AI/ML Project",
    ProjectType.OTHER: "Other",
}


class DocumentTypeDescriptor(BaseModel):
    """Immutable description of one document type."""

    model_config = ConfigDict(frozen=True)

    identifier: DocumentType
    label: str
    filename: str


DOCUMENT_TYPES: tuple[DocumentTypeDescriptor, ...] = (
    DocumentTypeDescriptor(identifier=DocumentType.PRD, label="Project Requirements Document", filename="Project_Requirements.md"),
    DocumentTypeDescriptor(identifier=DocumentType.APP_FLOW, label="Application Flow", filename="Application_Flow.md"),
    DocumentTypeDescriptor(identifier=DocumentType.TECH_STACK, label="Technology Stack", filename="Technology_Stack.md"),
    DocumentTypeDescriptor(identifier=DocumentType.FRONTEND, label="Frontend Guidelines", filename="Frontend_Guidelines.md"),
    DocumentTypeDescriptor(identifier=DocumentType.BACKEND, label="Backend Structure", filename="Backend_Structure.md"),
    DocumentTypeDescriptor(identifier=DocumentType.CURSOR_RULES, label="Cursor Rules", filename="Cursor_Rules.md"),
    DocumentTypeDescriptor(identifier=DocumentType.IMPLEMENTATION, label="Implementation Plan", filename="Implementation_Plan.md"),
    DocumentTypeDescriptor(identifier=DocumentType.BEST_PRACTICES, label="Best Practices", filename="Best_Practices.md"),
    DocumentTypeDescriptor(identifier=DocumentType.PROMPT_GUIDE, label="Prompt Guide", filename="Prompt_Guide.md"),
)

DESCRIPTORS_BY_TYPE: dict[DocumentType, DocumentTypeDescriptor] = {d.identifier: d for d in DOCUMENT_TYPES}


def _check_description(value: str) -> str:
    value = value.strip()
    if len(value) < settings.min_description_chars:
        raise ValueError(f"Description must be at least {settings.min_description_chars} characters")
    return value


class GenerationRequest(BaseModel):
    """One outbound documentation request: a project and a single document type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str
    project_type: ProjectType = Field(alias="projectType")
    document_type: DocumentType = Field(alias="documentType")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _check_description(v)


class SessionRequest(BaseModel):
    """A submission covering several document types, generated one after another."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str
    project_type: ProjectType = Field(alias="projectType")
    selected_documents: list[DocumentType] = Field(
        default_factory=lambda: [d.identifier for d in DOCUMENT_TYPES],
        alias="selectedDocuments",
        min_length=1,
    )

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _check_description(v)

    @field_validator("selected_documents")
    @classmethod
    def collapse_duplicates(cls, v: list[DocumentType]) -> list[DocumentType]:
        # first occurrence wins
        return list(dict.fromkeys(v))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

FailureKind = Literal["service", "transport", "timeout", "empty_response", "cancelled", "aborted"]


class GenerationSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    document_type: DocumentType
    content: str = Field(min_length=1)


class GenerationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    document_type: DocumentType
    message: str
    error_type: FailureKind
    status_code: int | None = None


GenerationResult = Annotated[GenerationSuccess | GenerationFailure, Field(discriminator="status")]
