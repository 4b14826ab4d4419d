"""Core custom exceptions for the application."""


class AutoDocsError(Exception):
    """Base exception for every error raised by the application."""


class ValidationError(AutoDocsError):
    """Malformed or missing request fields. Never sent upstream."""


class UnknownDocumentType(ValidationError):
    """Raised when a document-type identifier is outside the enumerated set."""

    def __init__(self, identifier: object):
        self.identifier = identifier
        super().__init__(f"Unknown document type: {identifier!r}")


class ConfigurationError(AutoDocsError):
    """Exception for configuration-related errors (e.g., missing credential, missing templates)."""


class SessionConflictError(AutoDocsError):
    """Raised when a new session is submitted while the client's previous one is still running."""


class SessionNotFoundError(AutoDocsError):
    """Raised when a client asks for a session that was never started."""


class GenerationError(AutoDocsError):
    """Base exception for failures attributed to a single document type."""


class ServiceError(GenerationError):
    """The generative API rejected or failed the call."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class TransportError(GenerationError):
    """Network failure while talking to the generative API."""


class GenerationTimeoutError(TransportError):
    """The wall-clock deadline for a single document expired."""


class EmptyResponseError(GenerationError):
    """The call succeeded but returned no usable content."""


class AssemblyError(AutoDocsError):
    """Raised when a Knowledge Base bundle cannot be assembled."""
