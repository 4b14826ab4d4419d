import io
import zipfile

import pytest

from autodocs.core.exceptions import AssemblyError
from autodocs.core.exceptions import UnknownDocumentType
from autodocs.models.documents import DocumentType
from autodocs.services.bundle import KNOWLEDGE_BASE_FOLDER
from autodocs.services.bundle import assemble
from autodocs.services.bundle import extract


def test_bundle_contains_one_file_per_document():
    archive = assemble({"prd": "# PRD\n", DocumentType.TECH_STACK: "# Stack\n"})

    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        names = zf.namelist()

    assert names == [
        f"{KNOWLEDGE_BASE_FOLDER}/",
        f"{KNOWLEDGE_BASE_FOLDER}/Project_Requirements.md",
        f"{KNOWLEDGE_BASE_FOLDER}/Technology_Stack.md",
    ]


def test_round_trip_preserves_content_byte_for_byte():
    documents = {
        DocumentType.PRD: "# Projekt\n\nÜmlauts, emoji 🚀 and `code`\n",
        DocumentType.CURSOR_RULES: "- rule one\r\n- rule two",
        DocumentType.PROMPT_GUIDE: "```\nprompt\n```",
    }

    extracted = extract(assemble(documents))

    assert extracted == {
        "Project_Requirements.md": documents[DocumentType.PRD],
        "Cursor_Rules.md": documents[DocumentType.CURSOR_RULES],
        "Prompt_Guide.md": documents[DocumentType.PROMPT_GUIDE],
    }


def test_assembly_is_deterministic_and_ordered_by_registry():
    forward = assemble({"prd": "a", "backend": "b", "frontend": "c"})
    backward = assemble({"frontend": "c", "backend": "b", "prd": "a"})
    assert forward == backward
    assert list(extract(forward)) == ["Project_Requirements.md", "Frontend_Guidelines.md", "Backend_Structure.md"]


def test_empty_mapping_is_rejected():
    with pytest.raises(AssemblyError):
        assemble({})


def test_mapping_with_only_empty_content_is_rejected():
    with pytest.raises(AssemblyError):
        assemble({"prd": ""})


def test_unknown_key_is_rejected():
    with pytest.raises(UnknownDocumentType):
        assemble({"roadmap": "# Roadmap"})


def test_extract_rejects_garbage():
    with pytest.raises(AssemblyError):
        extract(b"not a zip")
