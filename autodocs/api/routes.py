import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Header
from fastapi import status
from fastapi.responses import JSONResponse
from fastapi.responses import StreamingResponse

from autodocs.generation_logic.bundle_download import _stream_bundle

# Generation-logic helpers -------------------------------------------------
from autodocs.generation_logic.orchestrator import SessionRegistry
from autodocs.generation_logic.orchestrator import session_registry
from autodocs.generation_logic.stream_orchestrator import _stream_session_events
from autodocs.generation_logic.stream_orchestrator import session_snapshot
from autodocs.models.documents import PROJECT_TYPE_LABELS
from autodocs.models.documents import GenerationFailure
from autodocs.models.documents import GenerationRequest
from autodocs.models.documents import SessionRequest
from autodocs.services.document_generator import DocumentGenerator
from autodocs.services.prompt_registry import list_document_types
from autodocs.services.prompt_registry import render

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

DEFAULT_CLIENT_ID = "default"


def get_document_generator() -> DocumentGenerator:
    return DocumentGenerator()


def get_session_registry() -> SessionRegistry:
    return session_registry


def _failure_response(failure: GenerationFailure) -> JSONResponse:
    """Translate a single-document failure into the HTTP error contract."""
    if failure.error_type == "timeout":
        return JSONResponse(
            {"error": "Request timed out", "message": "The request took too long to complete"},
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        )
    if failure.error_type == "service":
        return JSONResponse({"error": "OpenAI API error", "message": failure.message}, status_code=500)
    if failure.error_type == "empty_response":
        return JSONResponse({"error": "Failed to generate content", "message": failure.message}, status_code=500)
    return JSONResponse({"error": "Failed to generate document", "message": failure.message}, status_code=500)


@router.get("/document-types", tags=["Documents"])
async def document_types() -> dict[str, Any]:
    """List the document types in declaration order, with the project types."""
    return {
        "document_types": [d.model_dump(mode="json") for d in list_document_types()],
        "project_types": [{"identifier": p.value, "label": label} for p, label in PROJECT_TYPE_LABELS.items()],
    }


@router.post("/generate", tags=["Documents"])
async def generate(
    payload: GenerationRequest,
    generator: DocumentGenerator = Depends(get_document_generator),
) -> JSONResponse:
    """Generate a single document.

    Returns `{"content": str}` on success. Failures return `{"error", "message"}`
    with status 400 (validation), 500 (upstream or configuration) or 504 (timeout).
    """
    request_id = str(uuid4())
    logger.info(
        "[%s] /generate called: document=%s project=%s",
        request_id,
        payload.document_type.value,
        payload.project_type.value,
    )

    generator.ensure_configured()
    prompt = render(payload.document_type, payload.description, payload.project_type)
    result = await generator.generate(payload.document_type, prompt, request_id=request_id)

    if isinstance(result, GenerationFailure):
        return _failure_response(result)
    return JSONResponse({"content": result.content}, headers=NO_CACHE_HEADERS)


@router.post("/session", tags=["Sessions"])
async def start_session(
    payload: SessionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
    client_id: str = Header(default=DEFAULT_CLIENT_ID, alias="X-Client-Id"),
) -> StreamingResponse:
    """
    Starts generating every selected document, one after another, and streams
    NDJSON events describing the progress.

    Stream events:
    - `session_started`: The session id and the ordered selection.
    - `document_started`: A document is about to be generated.
    - `document_completed`: A document finished, with its result and the progress.
    - `finished`: Every document has a result; carries the session snapshot and `bundle_ready`.
    - `error`: The session stopped unexpectedly.

    A submission while the client's previous session is still running is rejected with 409.
    """
    request_id = str(uuid4())
    orchestrator = registry.for_client(client_id)
    session = orchestrator.start(payload, request_id=request_id)
    logger.info("[%s] /session started for client '%s': %d document(s)", request_id, client_id, session.total)

    return StreamingResponse(
        _stream_session_events(orchestrator, session),
        media_type="application/x-ndjson",
        headers=NO_CACHE_HEADERS,
    )


@router.get("/session", tags=["Sessions"])
async def get_session(
    registry: SessionRegistry = Depends(get_session_registry),
    client_id: str = Header(default=DEFAULT_CLIENT_ID, alias="X-Client-Id"),
) -> dict[str, Any]:
    """Return the current session's state, progress and per-document results."""
    session = registry.get_session(client_id)
    return session_snapshot(session, registry.for_client(client_id).state.value)


@router.post("/session/cancel", status_code=status.HTTP_202_ACCEPTED, tags=["Sessions"])
async def cancel_session(
    registry: SessionRegistry = Depends(get_session_registry),
    client_id: str = Header(default=DEFAULT_CLIENT_ID, alias="X-Client-Id"),
) -> dict[str, Any]:
    """Stop the running session before its next document."""
    registry.get_session(client_id)
    session = registry.for_client(client_id).cancel()
    return {"session_id": session.session_id, "cancel_requested": True}


@router.get("/session/bundle", tags=["Sessions"])
async def download_bundle(
    registry: SessionRegistry = Depends(get_session_registry),
    client_id: str = Header(default=DEFAULT_CLIENT_ID, alias="X-Client-Id"),
) -> StreamingResponse:
    """Download the Knowledge Base ZIP. Only offered once every selected document succeeded."""
    request_id = str(uuid4())
    session = registry.get_session(client_id)
    return await _stream_bundle(session, request_id)
