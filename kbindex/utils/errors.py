"""Custom exception hierarchy for kbindex.

All application exceptions inherit from :class:`KnowledgeIndexError`.  Every
error carries the same structured fields so a calling layer (CLI, HTTP
handler, chat service) can decide what to show and whether to retry without
parsing messages:

* ``kind``              -- machine-readable :class:`ErrorKind` tag
* ``retryable``         -- whether waiting and trying again may succeed
* ``user_message``      -- short human-readable message
* ``technical_message`` -- the original low-level message, for logs

The hierarchy is organized by where in the index lifecycle the failure
happens:

    KnowledgeIndexError  (base -- catch-all for any kbindex error)
    +-- ExtractionError          (file could not be read / parsed)
    +-- UnsupportedFormatError   (no extractor for the file extension)
    +-- RemoteCallError          (remote call failed after the retry policy)
    |   +-- EmbeddingError       (embedding generation failed)
    +-- PersistenceError         (snapshot read / write failure)
    +-- ConfigurationError       (invalid settings, no provider available)
    |   +-- DimensionMismatchError  (vector size differs from the index)
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Closed set of error kinds surfaced to callers."""

    QUOTA_EXCEEDED = "quota_exceeded"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    SERVER_ERROR = "server_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TIMEOUT = "timeout"
    BAD_REQUEST = "bad_request"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"
    EXTRACTION_FAILED = "extraction_failed"
    UNSUPPORTED_FORMAT = "unsupported_format"
    PERSISTENCE_FAILED = "persistence_failed"
    CONFIGURATION_ERROR = "configuration_error"


class KnowledgeIndexError(Exception):
    """Base exception for all kbindex errors.

    ``__str__`` returns the user-facing message, prefixed with the
    ``context`` in brackets when one is set, e.g.
    ``[Embedding Generation] Request timed out. Retrying...``.
    """

    default_kind: ErrorKind = ErrorKind.UNKNOWN
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        kind: ErrorKind | None = None,
        retryable: bool = False,
        technical_message: str | None = None,
        context: str | None = None,
    ) -> None:
        self._user_message = message or self.default_message
        self._kind = kind or self.default_kind
        self._retryable = retryable
        self._technical_message = technical_message or self._user_message
        self._context = context
        super().__init__(self._user_message)

    @property
    def user_message(self) -> str:
        return self._user_message

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def retryable(self) -> bool:
        return self._retryable

    @property
    def technical_message(self) -> str:
        return self._technical_message

    @property
    def context(self) -> str | None:
        return self._context

    def to_dict(self) -> dict[str, object]:
        """Return the structured fields for logs and API payloads."""
        return {
            "kind": self._kind.value,
            "retryable": self._retryable,
            "user_message": self._user_message,
            "technical_message": self._technical_message,
            "context": self._context,
        }

    def __str__(self) -> str:
        if self._context:
            return f"[{self._context}] {self._user_message}"
        return self._user_message


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------


class ExtractionError(KnowledgeIndexError):
    """Raised when a document cannot be read or its text extracted.

    Fatal for that file only; a directory scan logs it and moves on.
    """

    default_kind = ErrorKind.EXTRACTION_FAILED
    default_message = "The document could not be read"


class UnsupportedFormatError(KnowledgeIndexError):
    """Raised when no extractor is registered for a file extension."""

    default_kind = ErrorKind.UNSUPPORTED_FORMAT
    default_message = "This file type is not supported"


# ---------------------------------------------------------------------------
# Remote call errors
# ---------------------------------------------------------------------------


class RemoteCallError(KnowledgeIndexError):
    """Final error of a remote call once the retry policy gave up.

    ``attempts`` is the number of attempts actually made, which is less than
    the configured maximum when the failure was not retryable.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        kind: ErrorKind | None = None,
        retryable: bool = False,
        technical_message: str | None = None,
        context: str | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(
            message,
            kind=kind,
            retryable=retryable,
            technical_message=technical_message,
            context=context,
        )
        self._attempts = attempts

    @property
    def attempts(self) -> int:
        return self._attempts

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["attempts"] = self._attempts
        return payload


class EmbeddingError(RemoteCallError):
    """Raised when an embedding could not be generated.

    During ingestion this is caught per chunk (the chunk is skipped); at
    query time it is fatal to the search call.
    """

    default_message = "Embedding generation failed"

    @classmethod
    def from_remote(cls, error: RemoteCallError) -> EmbeddingError:
        """Re-tag a :class:`RemoteCallError` as an embedding failure."""
        return cls(
            error.user_message,
            kind=error.kind,
            retryable=error.retryable,
            technical_message=error.technical_message,
            context=error.context,
            attempts=error.attempts,
        )


# ---------------------------------------------------------------------------
# Storage / configuration errors
# ---------------------------------------------------------------------------


class PersistenceError(KnowledgeIndexError):
    """Raised when the index snapshot cannot be written or read.

    Aborts the current operation; no partial-state repair is attempted.
    """

    default_kind = ErrorKind.PERSISTENCE_FAILED
    default_message = "The index could not be saved or loaded"


class ConfigurationError(KnowledgeIndexError):
    """Raised when configuration is invalid or no provider is available."""

    default_kind = ErrorKind.CONFIGURATION_ERROR
    default_message = "Invalid or missing configuration"


class DimensionMismatchError(ConfigurationError):
    """Raised when a vector's length differs from the vectors already indexed.

    Happens when the configured embedding provider changes (OpenAI 1536,
    Gemini and Nomic 768) over an existing snapshot.
    """

    default_message = (
        "The embedding model's vector size does not match the existing index. "
        "Run 'kbindex reprocess' to rebuild the index with the current model."
    )
