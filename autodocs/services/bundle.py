import io
import logging
import zipfile
from collections.abc import Mapping

from autodocs.core.exceptions import AssemblyError
from autodocs.models.documents import DOCUMENT_TYPES
from autodocs.models.documents import DocumentType
from autodocs.services.prompt_registry import resolve_document_type

logger = logging.getLogger(__name__)

KNOWLEDGE_BASE_FOLDER = "Knowledge Base"
BUNDLE_FILENAME = "Knowledge_Base.zip"
BUNDLE_MEDIA_TYPE = "application/zip"

# Fixed timestamp so the same mapping always produces the same bytes
_ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


def _zip_info(name: str, is_dir: bool = False) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=_ZIP_TIMESTAMP)
    if is_dir:
        info.external_attr = (0o40755 << 16) | 0x10
    else:
        info.external_attr = 0o644 << 16
        info.compress_type = zipfile.ZIP_DEFLATED
    return info


def assemble(documents: Mapping[DocumentType | str, str]) -> bytes:
    """Package generated documents into a Knowledge Base ZIP archive.

    Files are written in registry order, one per document type, under the
    ``Knowledge Base/`` folder. Entries with empty content are skipped.

    Raises:
        AssemblyError: If there is nothing to package.
        UnknownDocumentType: If a key is not a known document type.
    """
    by_type = {resolve_document_type(key).identifier: content for key, content in documents.items()}
    entries = [(d.filename, by_type[d.identifier]) for d in DOCUMENT_TYPES if by_type.get(d.identifier)]
    if not entries:
        raise AssemblyError("Cannot assemble a Knowledge Base from an empty set of documents")

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(_zip_info(f"{KNOWLEDGE_BASE_FOLDER}/", is_dir=True), b"")
        for filename, content in entries:
            archive.writestr(_zip_info(f"{KNOWLEDGE_BASE_FOLDER}/{filename}"), content.encode("utf-8"))

    logger.info("Assembled Knowledge Base with %d document(s), %d bytes", len(entries), buffer.tell())
    return buffer.getvalue()


def extract(archive_bytes: bytes) -> dict[str, str]:
    """Read a Knowledge Base archive back into ``{filename: content}``."""
    try:
        with zipfile.ZipFile(io.BytesIO(archive_bytes)) as archive:
            return {
                info.filename.removeprefix(f"{KNOWLEDGE_BASE_FOLDER}/"): archive.read(info).decode("utf-8")
                for info in archive.infolist()
                if not info.is_dir()
            }
    except zipfile.BadZipFile as e:
        raise AssemblyError(f"Not a valid Knowledge Base archive: {e}") from e
