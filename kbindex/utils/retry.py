"""Retry policy with exponential backoff and error classification for remote calls.

The embedding provider is a rate-limited remote service that fails in a
handful of recognisable ways.  :func:`classify_error` maps any exception to
an :class:`ErrorClassification` (kind, retryable flag, canned user message)
and :class:`RetryPolicy` drives the attempt loop:

1. invoke the operation
2. on success return immediately
3. on failure classify the error
4. if this was the last attempt, or the error is not retryable, raise a
   :class:`~kbindex.utils.errors.RemoteCallError`
5. otherwise sleep ``base_delay * 2 ** (attempt - 1)`` and try again

The policy knows nothing about embeddings; it wraps any zero-argument
coroutine factory.

Classification precedence: HTTP status code found on the exception
(``status_code``, ``response.status_code`` or an integer ``code``), then the
exception type (timeouts and connection failures from the standard library,
``httpx`` and ``openai``), then status/phrase markers in the message.
"""

from __future__ import annotations

import asyncio
import re
import socket
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

import httpx
import openai
import structlog

from kbindex.utils.errors import ConfigurationError, ErrorKind, RemoteCallError

_T = TypeVar("_T")

_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.QUOTA_EXCEEDED: (
        "API quota exceeded. The system will automatically retry. "
        "Please try again in a few moments."
    ),
    ErrorKind.UNAUTHORIZED: "API authentication failed. Please check your API key configuration.",
    ErrorKind.FORBIDDEN: "API access forbidden. Please check your API key permissions.",
    ErrorKind.SERVER_ERROR: "The embedding service is temporarily unavailable. Retrying...",
    ErrorKind.SERVICE_UNAVAILABLE: "The embedding service is temporarily unavailable. Retrying...",
    ErrorKind.TIMEOUT: "Request timed out. Retrying...",
    ErrorKind.BAD_REQUEST: "Invalid request format. Please try rephrasing your question.",
    ErrorKind.NETWORK_ERROR: "Network connection error. Retrying...",
    ErrorKind.UNKNOWN: "An unexpected error occurred",
}

_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.QUOTA_EXCEEDED,
        ErrorKind.SERVER_ERROR,
        ErrorKind.SERVICE_UNAVAILABLE,
        ErrorKind.TIMEOUT,
        ErrorKind.NETWORK_ERROR,
    }
)

_STATUS_KINDS: dict[int, ErrorKind] = {
    429: ErrorKind.QUOTA_EXCEEDED,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    500: ErrorKind.SERVER_ERROR,
    503: ErrorKind.SERVICE_UNAVAILABLE,
    400: ErrorKind.BAD_REQUEST,
}

# Order matters: the first matching entry wins.  Status numbers only match
# as standalone numbers so "1500 tokens" is not a server error.
_MESSAGE_MARKERS: list[tuple[ErrorKind, re.Pattern[str]]] = [
    (ErrorKind.QUOTA_EXCEEDED, re.compile(r"(?<!\d)429(?!\d)|too many requests", re.I)),
    (ErrorKind.UNAUTHORIZED, re.compile(r"(?<!\d)401(?!\d)|unauthori[sz]ed", re.I)),
    (ErrorKind.FORBIDDEN, re.compile(r"(?<!\d)403(?!\d)|forbidden", re.I)),
    (ErrorKind.SERVER_ERROR, re.compile(r"(?<!\d)500(?!\d)|internal server error", re.I)),
    (ErrorKind.SERVICE_UNAVAILABLE, re.compile(r"(?<!\d)503(?!\d)|service unavailable", re.I)),
    (ErrorKind.TIMEOUT, re.compile(r"timeout|timed out|etimedout", re.I)),
    (ErrorKind.BAD_REQUEST, re.compile(r"(?<!\d)400(?!\d)|bad request", re.I)),
    (
        ErrorKind.NETWORK_ERROR,
        re.compile(r"econnrefused|enotfound|connection refused|name or service not known", re.I),
    ),
]

_TIMEOUT_TYPES: tuple[type[BaseException], ...] = (
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TimeoutException,
    openai.APITimeoutError,
)

_NETWORK_TYPES: tuple[type[BaseException], ...] = (
    ConnectionRefusedError,
    socket.gaierror,
    httpx.ConnectError,
    openai.APIConnectionError,
)


@dataclass(frozen=True, slots=True)
class ErrorClassification:
    """Outcome of classifying one failed attempt."""

    kind: ErrorKind
    retryable: bool
    user_message: str
    technical_message: str


def _status_code(exc: BaseException) -> int | None:
    """Return an HTTP-like status code carried by *exc*, if any."""
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return None


def _kind_for(exc: BaseException) -> ErrorKind:
    status = _status_code(exc)
    if status is not None and status in _STATUS_KINDS:
        return _STATUS_KINDS[status]

    # APITimeoutError subclasses APIConnectionError, so timeouts go first.
    if isinstance(exc, _TIMEOUT_TYPES):
        return ErrorKind.TIMEOUT
    if isinstance(exc, _NETWORK_TYPES):
        return ErrorKind.NETWORK_ERROR

    message = str(exc)
    for kind, pattern in _MESSAGE_MARKERS:
        if pattern.search(message):
            return kind
    return ErrorKind.UNKNOWN


def classify_error(exc: BaseException) -> ErrorClassification:
    """Map an exception raised by a remote call to an :class:`ErrorClassification`."""
    kind = _kind_for(exc)
    return ErrorClassification(
        kind=kind,
        retryable=kind in _RETRYABLE_KINDS,
        user_message=_USER_MESSAGES[kind],
        technical_message=str(exc) or type(exc).__name__,
    )


class RetryPolicy:
    """Bounded retry loop with exponential backoff.

    Parameters
    ----------
    context:
        Label attached to every log line and to the final error, e.g.
        ``"Embedding Generation"``.
    max_attempts:
        Total number of attempts, including the first one.
    base_delay_ms:
        Delay before the second attempt; doubles on every further attempt.
    sleep:
        Awaitable sleep taking seconds.  Tests inject a recorder here.
    """

    def __init__(
        self,
        context: str,
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ConfigurationError(
                "Retry policy needs at least one attempt",
                technical_message=f"max_attempts={max_attempts}",
            )
        if base_delay_ms < 0:
            raise ConfigurationError(
                "Retry delay cannot be negative",
                technical_message=f"base_delay_ms={base_delay_ms}",
            )
        self._context = context
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._sleep = sleep or asyncio.sleep
        self._logger = structlog.get_logger(logger_name=__name__)

    @property
    def context(self) -> str:
        return self._context

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_delay_ms(self, attempt: int) -> int:
        """Delay to wait after the failed *attempt* (1-based)."""
        return self._base_delay_ms * 2 ** (attempt - 1)

    async def call(self, operation: Callable[[], Awaitable[_T]]) -> _T:
        """Run *operation* until it succeeds or the policy gives up.

        Raises
        ------
        RemoteCallError
            Carrying the classification of the last failure.
        """
        attempt = 1
        while True:
            try:
                result = await operation()
            except Exception as exc:
                info = classify_error(exc)
                self._log_attempt(info, attempt)
                if attempt >= self._max_attempts or not info.retryable:
                    raise RemoteCallError(
                        info.user_message,
                        kind=info.kind,
                        retryable=info.retryable,
                        technical_message=info.technical_message,
                        context=self._context,
                        attempts=attempt,
                    ) from exc

                delay_ms = self.backoff_delay_ms(attempt)
                self._logger.info(
                    "api_call_retry_scheduled",
                    context=self._context,
                    delay_ms=delay_ms,
                    next_attempt=attempt + 1,
                    max_attempts=self._max_attempts,
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1
            else:
                self._logger.debug(
                    "api_call_succeeded",
                    context=self._context,
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    occurred_at=datetime.now(timezone.utc).isoformat(),
                )
                return result

    def _log_attempt(self, info: ErrorClassification, attempt: int) -> None:
        log = self._logger.warning if info.retryable else self._logger.error
        log(
            "api_call_failed",
            context=self._context,
            kind=info.kind.value,
            attempt=attempt,
            max_attempts=self._max_attempts,
            retryable=info.retryable,
            user_message=info.user_message,
            technical_message=info.technical_message,
            occurred_at=datetime.now(timezone.utc).isoformat(),
        )
