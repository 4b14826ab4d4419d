"""Prompt Template Registry.

Maps every document type to a Jinja2 template under ``prompt_templates/`` and
renders it for a project description and project type. Rendering is pure and
deterministic, so it is safe to call from several orchestration runs at once.
"""

import logging
import pathlib

import jinja2

from autodocs.core.exceptions import ConfigurationError
from autodocs.core.exceptions import UnknownDocumentType
from autodocs.core.exceptions import ValidationError
from autodocs.models.documents import DESCRIPTORS_BY_TYPE
from autodocs.models.documents import DOCUMENT_TYPES
from autodocs.models.documents import PROJECT_TYPE_LABELS
from autodocs.models.documents import DocumentType
from autodocs.models.documents import DocumentTypeDescriptor
from autodocs.models.documents import ProjectType

logger = logging.getLogger(__name__)

PROMPT_DIR = pathlib.Path(__file__).parent / "prompt_templates"

# StrictUndefined turns a missing variable into an error instead of a blank prompt
env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(PROMPT_DIR),
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=False,
    autoescape=False,
)


def list_document_types() -> tuple[DocumentTypeDescriptor, ...]:
    return DOCUMENT_TYPES


def resolve_document_type(identifier: DocumentType | str) -> DocumentTypeDescriptor:
    """Return the descriptor for *identifier* or raise ``UnknownDocumentType``."""
    try:
        document_type = DocumentType(identifier)
    except ValueError:
        logger.error("Unknown document type requested: %r", identifier)
        raise UnknownDocumentType(identifier) from None
    return DESCRIPTORS_BY_TYPE[document_type]


def _resolve_project_type(project_type: ProjectType | str) -> ProjectType:
    try:
        return ProjectType(project_type)
    except ValueError:
        raise ValidationError(f"Unknown project type: {project_type!r}") from None


def render(document_type: DocumentType | str, description: str, project_type: ProjectType | str) -> str:
    """Render the prompt for one document type.

    Args:
        document_type: One of the enumerated document-type identifiers.
        description: The user's project description.
        project_type: One of the enumerated project types.

    Returns:
        The prompt text to send as the user turn.

    Raises:
        UnknownDocumentType: If *document_type* is outside the enumerated set.
        ConfigurationError: If the template for a known type is missing.
    """
    descriptor = resolve_document_type(document_type)
    project = _resolve_project_type(project_type)
    template_name = f"{descriptor.identifier.value}.jinja2"

    try:
        template = env.get_template(template_name)
    except jinja2.TemplateNotFound:
        logger.error("Prompt template not found: %s", template_name)
        raise ConfigurationError(f"Prompt template '{template_name}' not found.") from None

    prompt = template.render(
        description=description.strip(),
        project_type=project.value,
        project_type_label=PROJECT_TYPE_LABELS[project],
        document_label=descriptor.label,
    )
    return prompt.strip()
