"""Exception taxonomy for the approval bot."""

from __future__ import annotations

from enum import Enum


class ApprovalBotError(Exception):
    """Base class for errors raised by the approval bot."""


class ConfigError(ApprovalBotError, RuntimeError):
    """Raised when credentials or settings are missing, invalid, or rejected."""


class TransportError(ApprovalBotError):
    """Raised when the Socket Mode connection cannot deliver an acknowledgment."""


class ProtocolSurprise(ApprovalBotError):
    """Raised when no route exists for an event kind, sub-kind, or callback id."""


class OutboundErrorKind(str, Enum):
    API = "api"
    TRANSPORT = "transport"
    MALFORMED_RESPONSE = "malformed_response"


class OutboundError(ApprovalBotError):
    """Uniform failure of a post, update, or view-open call."""

    def __init__(
        self,
        kind: OutboundErrorKind,
        *,
        operation: str,
        cause: BaseException | None = None,
        error: str | None = None,
    ) -> None:
        self.kind = kind
        self.operation = operation
        self.cause = cause
        self.error = error
        detail = error or (str(cause) if cause is not None else kind.value)
        super().__init__(f"{operation} failed ({kind.value}): {detail}")


class DispatchError(ApprovalBotError):
    """Raised when the dispatch worker stops while the bot is still running."""
