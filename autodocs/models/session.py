from enum import Enum
from uuid import uuid4

from pydantic import BaseModel
from pydantic import Field
from pydantic import computed_field

from autodocs.core.exceptions import AutoDocsError
from autodocs.models.documents import DocumentType
from autodocs.models.documents import GenerationFailure
from autodocs.models.documents import GenerationResult
from autodocs.models.documents import GenerationSuccess
from autodocs.models.documents import ProjectType


class OrchestratorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    TERMINAL = "terminal"


class GenerationSession(BaseModel):
    """Everything one "Generate" submission produces.

    The session is created fresh for each submission and mutated only by the
    orchestrator that owns it. ``results`` is append-only and keeps the order in
    which document types were attempted.
    """

    session_id: str = Field(default_factory=lambda: str(uuid4()))
    request_id: str
    description: str
    project_type: ProjectType
    selected: list[DocumentType]
    results: dict[DocumentType, GenerationResult] = Field(default_factory=dict)
    cancel_requested: bool = False

    def record(self, result: GenerationSuccess | GenerationFailure) -> None:
        """Store the single result for ``result.document_type``."""
        document_type = result.document_type
        if document_type not in self.selected:
            raise AutoDocsError(f"Document type {document_type.value!r} was not selected for session {self.session_id}")
        if document_type in self.results:
            raise AutoDocsError(f"Document type {document_type.value!r} already has a result in session {self.session_id}")
        self.results[document_type] = result

    def pending(self) -> list[DocumentType]:
        return [doc for doc in self.selected if doc not in self.results]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def completed(self) -> int:
        return len(self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return len(self.selected)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress(self) -> float:
        """Fraction of selected document types that have a result, in [0, 1]."""
        if not self.selected:
            return 0.0
        return self.completed / self.total

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_terminal(self) -> bool:
        return self.completed == self.total

    @computed_field  # type: ignore[prop-decorator]
    @property
    def bundle_ready(self) -> bool:
        """True only when every selected document type ended in success."""
        return self.is_terminal and not self.failures

    @property
    def failures(self) -> dict[DocumentType, GenerationFailure]:
        return {doc: r for doc, r in self.results.items() if isinstance(r, GenerationFailure)}

    @property
    def contents(self) -> dict[DocumentType, str]:
        """Successful contents, available even when the bundle is withheld."""
        return {doc: r.content for doc, r in self.results.items() if isinstance(r, GenerationSuccess)}
