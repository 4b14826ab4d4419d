"""Single-Document Generator.

Wraps one outbound request for one document type, applies a wall-clock timeout
and turns every per-document error into a ``GenerationFailure``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable

from autodocs.core.config import settings
from autodocs.core.exceptions import EmptyResponseError
from autodocs.core.exceptions import GenerationError
from autodocs.core.exceptions import GenerationTimeoutError
from autodocs.core.exceptions import ServiceError
from autodocs.core.exceptions import TransportError
from autodocs.models.documents import DocumentType
from autodocs.models.documents import FailureKind
from autodocs.models.documents import GenerationFailure
from autodocs.models.documents import GenerationSuccess
from autodocs.services.llm import call_llm
from autodocs.services.llm import ensure_credential

logger = logging.getLogger(__name__)

TIMED_OUT_MESSAGE = "timed out"


def _failure_kind(exc: GenerationError) -> FailureKind:
    if isinstance(exc, GenerationTimeoutError):
        return "timeout"
    if isinstance(exc, TransportError):
        return "transport"
    if isinstance(exc, EmptyResponseError):
        return "empty_response"
    return "service"


class DocumentGenerator:
    """Generates one document per call, never retrying."""

    def __init__(
        self,
        completion: Callable[[str], Awaitable[str]] | None = None,
        timeout: float | None = None,
    ):
        self._completion = completion or call_llm
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else settings.generation_timeout

    def ensure_configured(self) -> None:
        """Raise ``ConfigurationError`` if no credential is available."""
        ensure_credential()

    async def _complete_with_deadline(self, prompt: str) -> str:
        try:
            content = await asyncio.wait_for(self._completion(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise GenerationTimeoutError(TIMED_OUT_MESSAGE) from None
        if not content or not content.strip():
            raise EmptyResponseError("The model returned an empty response")
        return content

    async def generate(
        self,
        document_type: DocumentType,
        prompt: str,
        request_id: str = "-",
    ) -> GenerationSuccess | GenerationFailure:
        """Run one completion for *document_type* and normalise the outcome.

        ``ConfigurationError`` is not caught: a missing credential fails every
        document identically and must abort the whole session.
        """
        logger.info("[%s] Generating '%s' (timeout %.0fs)", request_id, document_type.value, self.timeout)
        try:
            content = await self._complete_with_deadline(prompt)
        except GenerationError as e:
            kind = _failure_kind(e)
            status_code = e.status_code if isinstance(e, ServiceError) else None
            logger.warning(
                "[%s] Generation of '%s' failed (%s): %s",
                request_id,
                document_type.value,
                kind,
                str(e),
            )
            return GenerationFailure(
                document_type=document_type,
                message=str(e),
                error_type=kind,
                status_code=status_code,
            )

        logger.info("[%s] Generated '%s' (%d chars)", request_id, document_type.value, len(content))
        return GenerationSuccess(document_type=document_type, content=content)
