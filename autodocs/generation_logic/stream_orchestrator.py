import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from autodocs.core.exceptions import AutoDocsError
from autodocs.core.exceptions import ConfigurationError
from autodocs.generation_logic.orchestrator import GenerationOrchestrator
from autodocs.models.documents import DESCRIPTORS_BY_TYPE
from autodocs.models.session import GenerationSession

__all__ = [
    "_create_stream_event",
    "_stream_session_events",
    "session_snapshot",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# NDJSON event helper
# ---------------------------------------------------------------------------


def _create_stream_event(
    event_type: str,
    message: str | None = None,
    payload: dict[str, Any] | None = None,
) -> str:
    """Serialize one progress event to an NDJSON line."""
    event: dict[str, Any] = {"type": event_type}
    if message is not None:
        event["message"] = message
    if payload is not None:
        event["payload"] = payload
    return json.dumps(event) + "\n"


def session_snapshot(session: GenerationSession, state: str | None = None) -> dict[str, Any]:
    """JSON-ready view of a session for clients that poll or stream."""
    snapshot = session.model_dump(mode="json", exclude={"description"})
    if state is not None:
        snapshot["state"] = state
    return snapshot


# ---------------------------------------------------------------------------
# Main streaming generation orchestrator
# ---------------------------------------------------------------------------


async def _stream_session_events(
    orchestrator: GenerationOrchestrator,
    session: GenerationSession,
) -> AsyncIterator[str]:
    """Drive *session* to completion, yielding NDJSON events that clients
    can consume as a stream.

    The session ends terminal however the stream ends, including a client
    that disconnects after the first event.
    """
    request_id = session.request_id
    updates = orchestrator.iter_run(session)
    try:
        yield _create_stream_event(
            "session_started",
            message=f"Generating {session.total} document(s).",
            payload={"session_id": session.session_id, "selected": [doc.value for doc in session.selected]},
        )

        async for update in updates:
            label = DESCRIPTORS_BY_TYPE[update.document_type].label
            if update.event == "document_started":
                yield _create_stream_event(
                    "document_started",
                    message=f"Generating {label}…",
                    payload=update.model_dump(mode="json", exclude={"result"}),
                )
            else:
                outcome = "generated" if update.result and update.result.status == "success" else "failed"
                yield _create_stream_event(
                    "document_completed",
                    message=f"{label} {outcome} ({update.completed}/{update.total}).",
                    payload=update.model_dump(mode="json"),
                )

        yield _create_stream_event(
            "finished",
            message="Bundle ready for download." if session.bundle_ready else "Finished with failures; bundle withheld.",
            payload=session_snapshot(session, orchestrator.state.value),
        )

    # ----------------------------------------------------------------------
    # Error handling
    # ----------------------------------------------------------------------
    except ConfigurationError as ce:
        logger.error("[%s] ConfigurationError during stream: %s", request_id, str(ce), exc_info=False)
        yield _create_stream_event("error", message=f"Configuration error: {str(ce)}")
    except AutoDocsError as ae:
        logger.error("[%s] Error during session stream: %s", request_id, str(ae), exc_info=False)
        yield _create_stream_event("error", message=str(ae))
    except Exception as e:
        logger.exception("[%s] Unexpected error during generation stream", request_id)
        yield _create_stream_event("error", message=f"An unexpected server error occurred: {str(e)}")
    finally:
        await updates.aclose()
        orchestrator.abandon(session)
        logger.info("[%s] Stream generation logic finished.", request_id)
