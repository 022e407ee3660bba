"""Gateway error types and the docbox error interceptor.

Errors raised by the shared httpx client pass through
``create_handle_client_error`` before they reach the caller. The handler:

1. Lifts docbox's own error text (``message``, then ``reason``) out of the
   response body onto the error.
2. Removes every occurrence of the internal docbox URL from the message so
   the upstream address is never disclosed.
3. Raises a ``DocboxGatewayError`` carrying the sanitized message. It never
   returns normally.
"""

from __future__ import annotations

from typing import Any, Callable, NoReturn, TypeVar

import httpx
from fastapi import HTTPException

from .observability.logging import get_logger
from .observability.metrics import DOCBOX_UPSTREAM_ERRORS_TOTAL

logger = get_logger(__name__)

E = TypeVar("E", BaseException, str)

_FALLBACK_MESSAGE = "docbox request failed"


class GatewayConfigError(ValueError):
    """Raised when gateway options are invalid at setup time.

    Attributes:
        errors: Every problem found, in validation order.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(
            "Docbox gateway options validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


class DocboxGatewayError(HTTPException):
    """A docbox call failed before a response could be relayed.

    Subclasses HTTPException so FastAPI renders it without any handler
    registration on the host application.
    """

    status_code_default = 502
    code_default = "DOCBOX_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.code = code or self.code_default
        self.message = message or _FALLBACK_MESSAGE
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail={"code": self.code, "message": self.message},
        )

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class DocboxUnavailableError(DocboxGatewayError):
    """Could not connect to (or read from) docbox."""

    code_default = "DOCBOX_UNAVAILABLE"


class DocboxTimeoutError(DocboxGatewayError):
    """docbox did not respond within the client timeout."""

    status_code_default = 504
    code_default = "DOCBOX_TIMEOUT"


def _response_error_message(error: BaseException) -> str | None:
    """Return docbox's own error text from a failed response, if any.

    ``reason`` is applied after ``message`` so it wins when both exist.
    """
    if not isinstance(error, httpx.HTTPStatusError):
        return None

    try:
        data: Any = error.response.json()
    except (httpx.ResponseNotRead, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    message: str | None = None
    if data.get("message"):
        message = str(data["message"])
    if data.get("reason"):
        message = str(data["reason"])
    return message


def sanitize_error(error: E, docbox_url: str) -> E:
    """Rewrite ``error`` so its message is safe to show to callers.

    Exceptions are updated in place (their ``args`` are replaced) and
    returned; plain strings are returned with the URL removed.

    Args:
        error: The exception (or bare string) raised by the client.
        docbox_url: The internal docbox base URL to scrub.

    Returns:
        The sanitized error, of the same type as the input.
    """
    if isinstance(error, str):
        return error.replace(docbox_url, "") if docbox_url else error

    upstream_message = _response_error_message(error)
    if upstream_message is not None:
        error.args = (upstream_message,)

    message = str(error)
    if docbox_url and docbox_url in message:
        error.args = (message.replace(docbox_url, ""),)
    return error


def _translate(error: BaseException) -> DocboxGatewayError:
    message = str(error)
    if isinstance(error, DocboxGatewayError):
        return error
    if isinstance(error, httpx.TimeoutException):
        return DocboxTimeoutError(message)
    if isinstance(error, httpx.TransportError):
        return DocboxUnavailableError(message)
    return DocboxGatewayError(message)


def create_handle_client_error(docbox_url: str) -> Callable[[BaseException], NoReturn]:
    """Create the error handler for the shared docbox client.

    Args:
        docbox_url: URL of the docbox server.

    Returns:
        A handler that sanitizes the error and always raises.
    """

    def handle_client_error(error: BaseException) -> NoReturn:
        sanitized = sanitize_error(error, docbox_url)
        gateway_error = _translate(sanitized)

        DOCBOX_UPSTREAM_ERRORS_TOTAL.labels(code=gateway_error.code).inc()
        logger.warning(
            "docbox_request_failed",
            code=gateway_error.code,
            error_type=type(error).__name__,
            error_message=gateway_error.message,
        )

        if gateway_error is sanitized:
            raise gateway_error
        raise gateway_error from sanitized

    return handle_client_error
