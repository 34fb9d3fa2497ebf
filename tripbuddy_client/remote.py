"""
Best-effort remote calls.

``call_remote`` is the one place the client turns transport and HTTP
failures into data. Callers branch on the returned ``RemoteResult`` instead
of catching exceptions. HTTP 400 is a caller bug, not an outage, and is
raised as ``ValidationError``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import httpx

from shared.errors import ValidationError
from shared.logging import get_logger

logger = get_logger("client.remote")

T = TypeVar("T")


class FailureReason(str, Enum):
    UNREACHABLE = "unreachable"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class RemoteResult(Generic[T]):
    """Outcome of a remote call: a value, or a failure reason."""

    value: Optional[T] = None
    reason: Optional[FailureReason] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> "RemoteResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, reason: FailureReason, error: str) -> "RemoteResult[T]":
        return cls(reason=reason, error=error)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


async def call_remote(name: str, fn: Callable[[], Awaitable[T]]) -> RemoteResult[T]:
    """Run ``fn`` and classify its failure, if any.

    Args:
        name: Operation name for logs
        fn: Zero-argument coroutine function performing the remote call

    Raises:
        ValidationError: The server rejected the request with HTTP 400
    """
    try:
        value = await fn()
    except httpx.HTTPStatusError as exc:
        response = exc.response
        message = _error_message(response)
        if response.status_code == 400:
            logger.warning("Remote call rejected", operation=name, error=message)
            raise ValidationError(message, details={"operation": name}) from exc
        if response.status_code == 404:
            logger.info("Remote call found nothing", operation=name, error=message)
            return RemoteResult.fail(FailureReason.NOT_FOUND, message)
        logger.warning(
            "Remote call failed",
            operation=name,
            status_code=response.status_code,
            error=message,
        )
        return RemoteResult.fail(FailureReason.SERVER_ERROR, message)
    except httpx.TransportError as exc:
        logger.warning("Server unreachable", operation=name, error=str(exc) or type(exc).__name__)
        return RemoteResult.fail(FailureReason.UNREACHABLE, str(exc) or type(exc).__name__)
    except ValueError as exc:
        # Undecodable or unexpectedly shaped response body
        logger.warning("Remote call returned an invalid body", operation=name, error=str(exc))
        return RemoteResult.fail(FailureReason.SERVER_ERROR, str(exc))

    return RemoteResult.success(value)
