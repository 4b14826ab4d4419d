"""Generation Orchestrator.

Drives the selected document types through the Single-Document Generator one
at a time. Each run owns a fresh ``GenerationSession``; results are recorded
independently per document, so a failure never blocks the documents after it.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from collections.abc import Callable
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel

from autodocs.core.config import settings
from autodocs.core.exceptions import SessionConflictError
from autodocs.core.exceptions import SessionNotFoundError
from autodocs.models.documents import DocumentType
from autodocs.models.documents import FailureKind
from autodocs.models.documents import GenerationFailure
from autodocs.models.documents import GenerationResult
from autodocs.models.documents import SessionRequest
from autodocs.models.session import GenerationSession
from autodocs.models.session import OrchestratorState
from autodocs.services.document_generator import DocumentGenerator
from autodocs.services.prompt_registry import render
from autodocs.services.prompt_registry import resolve_document_type

__all__ = [
    "ABORTED_MESSAGE",
    "CANCELLED_MESSAGE",
    "GenerationOrchestrator",
    "ProgressUpdate",
    "SessionRegistry",
    "session_registry",
]

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "cancelled before generation started"
ABORTED_MESSAGE = "aborted before generation started"


class ProgressUpdate(BaseModel):
    """One observable step of a run."""

    event: Literal["document_started", "document_completed"]
    session_id: str
    document_type: DocumentType
    completed: int
    total: int
    progress: float
    result: GenerationResult | None = None


ProgressListener = Callable[[ProgressUpdate], None]


class GenerationOrchestrator:
    """Owns at most one session at a time for one client."""

    def __init__(
        self,
        generator: DocumentGenerator | None = None,
        listener: ProgressListener | None = None,
    ):
        self.generator = generator or DocumentGenerator()
        self.listener = listener
        self.state = OrchestratorState.IDLE
        self._session: GenerationSession | None = None
        self._iterating = False

    @property
    def session(self) -> GenerationSession | None:
        """The current (or last) session, for read-only observation."""
        return self._session

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, request: SessionRequest, request_id: str | None = None) -> GenerationSession:
        """Validate *request* and open a new session.

        Every check runs before the first outbound call: a running session,
        an unknown document type or a missing credential rejects the
        submission without touching the previous session's results.

        Raises:
            SessionConflictError: If a session is already running.
            UnknownDocumentType: If a selected identifier is not registered.
            ConfigurationError: If the API credential is missing.
        """
        if self.state is OrchestratorState.RUNNING:
            running_id = self._session.session_id if self._session else "unknown"
            raise SessionConflictError(f"A generation session is already running ({running_id})")

        selected = [resolve_document_type(doc).identifier for doc in request.selected_documents]
        self.generator.ensure_configured()

        session = GenerationSession(
            request_id=request_id or str(uuid4()),
            description=request.description,
            project_type=request.project_type,
            selected=selected,
        )
        self._session = session
        self.state = OrchestratorState.RUNNING
        logger.info(
            "[%s] Session %s started: %d document(s) %s",
            session.request_id,
            session.session_id,
            session.total,
            [doc.value for doc in selected],
        )
        return session

    def cancel(self) -> GenerationSession:
        """Ask the running session to stop before its next document.

        An in-flight call is left to finish or hit its own timeout. A session
        that nothing is iterating is finished right away.
        """
        if self._session is None:
            raise SessionNotFoundError("No generation session has been started")
        if self.state is not OrchestratorState.RUNNING:
            raise SessionConflictError("The generation session is not running")
        session = self._session
        session.cancel_requested = True
        logger.info("[%s] Cancellation requested for session %s", session.request_id, session.session_id)
        if not self._iterating:
            self._finish(session)
        return session

    def abandon(self, session: GenerationSession) -> None:
        """Finish *session* if it is still running and nothing drives it."""
        if session is self._session and self.state is OrchestratorState.RUNNING and not self._iterating:
            logger.warning("[%s] Session %s abandoned before completion", session.request_id, session.session_id)
            self._finish(session)

    def _publish(self, update: ProgressUpdate) -> ProgressUpdate:
        if self.listener is not None:
            self.listener(update)
        return update

    def _update(self, session: GenerationSession, event, document_type, result=None) -> ProgressUpdate:
        return self._publish(
            ProgressUpdate(
                event=event,
                session_id=session.session_id,
                document_type=document_type,
                completed=session.completed,
                total=session.total,
                progress=session.progress,
                result=result,
            )
        )

    def _finish(
        self,
        session: GenerationSession,
        message: str = CANCELLED_MESSAGE,
        error_type: FailureKind = "cancelled",
    ) -> None:
        for document_type in session.pending():
            session.record(
                GenerationFailure(
                    document_type=document_type,
                    message=message,
                    error_type=error_type,
                )
            )
        if self._session is session:
            self.state = OrchestratorState.TERMINAL
        logger.info(
            "[%s] Session %s terminal: %d/%d succeeded, bundle ready: %s",
            session.request_id,
            session.session_id,
            len(session.contents),
            session.total,
            session.bundle_ready,
        )

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------
    async def iter_run(self, session: GenerationSession) -> AsyncIterator[ProgressUpdate]:
        """Generate every selected document in order, yielding progress.

        The session always ends terminal, also when the consumer stops
        iterating early; unattempted documents are recorded as cancelled, or
        as aborted when an error stopped the run.
        """
        if session is not self._session or self.state is not OrchestratorState.RUNNING:
            raise SessionConflictError(f"Session {session.session_id} is not the running session")
        if self._iterating:
            raise SessionConflictError(f"Session {session.session_id} is already being generated")

        self._iterating = True
        abort_message, abort_kind = CANCELLED_MESSAGE, "cancelled"
        try:
            for document_type in session.selected:
                if session.cancel_requested:
                    logger.info("[%s] Session %s cancelled before '%s'", session.request_id, session.session_id, document_type.value)
                    break

                prompt = render(document_type, session.description, session.project_type)
                yield self._update(session, "document_started", document_type)

                result = await self.generator.generate(document_type, prompt, request_id=session.request_id)
                session.record(result)
                yield self._update(session, "document_completed", document_type, result)
        except Exception as e:
            abort_message, abort_kind = f"{ABORTED_MESSAGE}: {e}", "aborted"
            raise
        finally:
            self._iterating = False
            self._finish(session, abort_message, abort_kind)

    async def run(self, request: SessionRequest, request_id: str | None = None) -> GenerationSession:
        """Start a session and drive it to its terminal state."""
        session = self.start(request, request_id=request_id)
        async for _ in self.iter_run(session):
            pass
        return session


class SessionRegistry:
    """One orchestrator per client, so sessions of different clients never interfere.

    At most ``max_clients`` orchestrators are kept; when a new client arrives
    the least recently used orchestrator that is not running is evicted.
    """

    def __init__(
        self,
        generator_factory: Callable[[], DocumentGenerator] = DocumentGenerator,
        max_clients: int | None = None,
    ):
        self._generator_factory = generator_factory
        self._max_clients = max_clients if max_clients is not None else settings.max_tracked_clients
        self._orchestrators: dict[str, GenerationOrchestrator] = {}

    def __len__(self) -> int:
        return len(self._orchestrators)

    def for_client(self, client_id: str) -> GenerationOrchestrator:
        orchestrator = self._orchestrators.pop(client_id, None)
        if orchestrator is None:
            self._evict()
            orchestrator = GenerationOrchestrator(generator=self._generator_factory())
        # Most recently used last
        self._orchestrators[client_id] = orchestrator
        return orchestrator

    def _evict(self) -> None:
        while len(self._orchestrators) >= self._max_clients:
            idle = next(
                (cid for cid, o in self._orchestrators.items() if o.state is not OrchestratorState.RUNNING),
                None,
            )
            if idle is None:
                logger.warning("All %d tracked clients are running; registry grows past its limit", len(self._orchestrators))
                return
            logger.debug("Evicting session of client '%s'", idle)
            del self._orchestrators[idle]

    def get_session(self, client_id: str) -> GenerationSession:
        orchestrator = self._orchestrators.get(client_id)
        if orchestrator is None or orchestrator.session is None:
            raise SessionNotFoundError(f"No generation session for client '{client_id}'")
        return orchestrator.session

    def clear(self) -> None:
        self._orchestrators.clear()


session_registry = SessionRegistry()
