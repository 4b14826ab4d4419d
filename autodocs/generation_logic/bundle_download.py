"""Handles packaging and streaming of the Knowledge Base bundle."""

import logging

from fastapi.responses import StreamingResponse

from autodocs.core.exceptions import AssemblyError
from autodocs.core.exceptions import AutoDocsError
from autodocs.models.session import GenerationSession
from autodocs.services.bundle import BUNDLE_FILENAME
from autodocs.services.bundle import BUNDLE_MEDIA_TYPE
from autodocs.services.bundle import assemble

__all__ = [
    "_stream_bundle",
]

logger = logging.getLogger(__name__)


async def _stream_bundle(session: GenerationSession, request_id: str) -> StreamingResponse:
    """Assemble the bundle of a bundle-ready *session* and stream it back to
    the client as an attachment.
    """
    if not session.bundle_ready:
        failed = sorted(doc.value for doc in session.failures)
        logger.warning(
            "[%s] Bundle requested for session %s which is not bundle-ready (terminal=%s, failed=%s)",
            request_id,
            session.session_id,
            session.is_terminal,
            failed,
        )
        if not session.is_terminal:
            raise AssemblyError("The generation session is still running")
        raise AssemblyError(f"Bundle withheld: generation failed for {', '.join(failed)}")

    try:
        archive = assemble(session.contents)
    except AutoDocsError:
        raise
    except Exception as e:
        logger.error("[%s] Failed to assemble bundle: %s", request_id, str(e), exc_info=True)
        raise AssemblyError("An unexpected error occurred while assembling the Knowledge Base.") from e

    logger.info("[%s] Streaming Knowledge Base for session %s (%d bytes)", request_id, session.session_id, len(archive))
    return StreamingResponse(
        iter([archive]),
        media_type=BUNDLE_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={BUNDLE_FILENAME}"},
    )
