"""Slack approval bot package initialisation."""

__version__ = "0.1.0"

from .ack import AcknowledgmentGate, AckStatus, Delivery  # noqa: E402,F401
from .config import AppSettings, get_settings  # noqa: E402,F401
from .errors import (  # noqa: E402,F401
    ConfigError,
    DispatchError,
    OutboundError,
    OutboundErrorKind,
    ProtocolSurprise,
    TransportError,
)
from .events import EventKind, decode_frame  # noqa: E402,F401
from .logging_config import configure_logging  # noqa: E402,F401
from .registry import ApprovalRegistry, ApprovalRequest, ApprovalState  # noqa: E402,F401
from .router import EventRouter  # noqa: E402,F401

__all__ = [
    "__version__",
    "AcknowledgmentGate",
    "AckStatus",
    "Delivery",
    "AppSettings",
    "get_settings",
    "ConfigError",
    "DispatchError",
    "OutboundError",
    "OutboundErrorKind",
    "ProtocolSurprise",
    "TransportError",
    "EventKind",
    "decode_frame",
    "configure_logging",
    "ApprovalRegistry",
    "ApprovalRequest",
    "ApprovalState",
    "EventRouter",
]
