"""Decode Socket Mode envelopes into a closed set of typed events."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Tuple, Union

EVENTS_API = "events_api"
INTERACTIVE = "interactive"

SHORTCUT_TYPES = ("shortcut", "message_action")
VIEW_SUBMISSION = "view_submission"
BLOCK_ACTIONS = "block_actions"


class EventKind(str, Enum):
    MESSAGE_POSTED = "message_posted"
    SHORTCUT_INVOKED = "shortcut_invoked"
    FORM_SUBMITTED = "form_submitted"
    BUTTON_CLICKED = "button_clicked"
    UNRECOGNIZED = "unrecognized"


RouteKey = Tuple[EventKind, Union[str, None], Union[str, None]]


class AcknowledgmentHandle:
    """One-shot capability to acknowledge a single envelope."""

    def __init__(self, envelope_id: str) -> None:
        self.envelope_id = envelope_id
        self._lock = threading.Lock()
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def consume(self) -> bool:
        """Return True exactly once; later calls return False."""

        with self._lock:
            if self._consumed:
                return False
            self._consumed = True
            return True

    def __repr__(self) -> str:
        return f"AcknowledgmentHandle(envelope_id={self.envelope_id!r}, consumed={self._consumed})"


@dataclass(frozen=True)
class _BaseEvent:
    envelope_id: str | None
    ack: AcknowledgmentHandle | None = field(repr=False, compare=False)
    raw: Mapping[str, Any] = field(repr=False, compare=False)

    kind: ClassVar[EventKind]

    @property
    def route_key(self) -> RouteKey:
        return (self.kind, None, None)


@dataclass(frozen=True)
class MessagePosted(_BaseEvent):
    channel: str | None = None
    user: str | None = None
    text: str = ""
    ts: str | None = None
    subtype: str | None = None
    bot_id: str | None = None
    retry_attempt: int | None = None

    kind: ClassVar[EventKind] = EventKind.MESSAGE_POSTED


@dataclass(frozen=True)
class ShortcutInvoked(_BaseEvent):
    sub_kind: str = "shortcut"
    callback_id: str | None = None
    trigger_id: str | None = None
    user_id: str | None = None

    kind: ClassVar[EventKind] = EventKind.SHORTCUT_INVOKED

    @property
    def route_key(self) -> RouteKey:
        return (self.kind, self.sub_kind, self.callback_id)


@dataclass(frozen=True)
class FormSubmitted(_BaseEvent):
    callback_id: str | None = None
    user_id: str | None = None
    values: Mapping[str, Any] = field(default_factory=dict)
    view_id: str | None = None

    kind: ClassVar[EventKind] = EventKind.FORM_SUBMITTED

    @property
    def route_key(self) -> RouteKey:
        return (self.kind, VIEW_SUBMISSION, self.callback_id)


@dataclass(frozen=True)
class ButtonClicked(_BaseEvent):
    action_id: str | None = None
    value: str = ""
    user_id: str | None = None
    channel_id: str | None = None
    message_ts: str | None = None

    kind: ClassVar[EventKind] = EventKind.BUTTON_CLICKED

    @property
    def route_key(self) -> RouteKey:
        return (self.kind, BLOCK_ACTIONS, self.action_id)


@dataclass(frozen=True)
class Unrecognized(_BaseEvent):
    envelope_type: str | None = None
    reason: str = ""

    kind: ClassVar[EventKind] = EventKind.UNRECOGNIZED


InboundEvent = Union[MessagePosted, ShortcutInvoked, FormSubmitted, ButtonClicked, Unrecognized]


def _as_dict(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _decode_events_api(common: dict, payload: Mapping[str, Any], retry_attempt: Any = None) -> InboundEvent:
    if payload.get("type") != "event_callback":
        return Unrecognized(envelope_type=EVENTS_API, reason=f"payload:{payload.get('type')}", **common)

    event = _as_dict(payload.get("event"))
    if event.get("type") != "message":
        return Unrecognized(envelope_type=EVENTS_API, reason=f"event:{event.get('type')}", **common)

    text = event.get("text")
    return MessagePosted(
        channel=_as_str(event.get("channel")),
        user=_as_str(event.get("user")),
        text=text if isinstance(text, str) else "",
        ts=_as_str(event.get("ts")),
        subtype=_as_str(event.get("subtype")),
        bot_id=_as_str(event.get("bot_id")),
        retry_attempt=retry_attempt if isinstance(retry_attempt, int) and retry_attempt > 0 else None,
        **common,
    )


def _decode_interactive(common: dict, payload: Mapping[str, Any]) -> InboundEvent:
    interaction_type = payload.get("type")
    user_id = _as_str(_as_dict(payload.get("user")).get("id"))

    if interaction_type in SHORTCUT_TYPES:
        return ShortcutInvoked(
            sub_kind=interaction_type,
            callback_id=_as_str(payload.get("callback_id")),
            trigger_id=_as_str(payload.get("trigger_id")),
            user_id=user_id,
            **common,
        )

    if interaction_type == VIEW_SUBMISSION:
        view = _as_dict(payload.get("view"))
        return FormSubmitted(
            callback_id=_as_str(view.get("callback_id")),
            user_id=user_id,
            values=_as_dict(_as_dict(view.get("state")).get("values")),
            view_id=_as_str(view.get("id")),
            **common,
        )

    if interaction_type == BLOCK_ACTIONS:
        actions = payload.get("actions")
        if not isinstance(actions, list) or not actions:
            return Unrecognized(envelope_type=INTERACTIVE, reason="block_actions:empty", **common)
        action = _as_dict(actions[0])
        value = action.get("value")
        container = _as_dict(payload.get("container"))
        message = _as_dict(payload.get("message"))
        return ButtonClicked(
            action_id=_as_str(action.get("action_id")),
            value=value if isinstance(value, str) else "",
            user_id=user_id,
            channel_id=_as_str(_as_dict(payload.get("channel")).get("id"))
            or _as_str(container.get("channel_id")),
            message_ts=_as_str(container.get("message_ts")) or _as_str(message.get("ts")),
            **common,
        )

    return Unrecognized(envelope_type=INTERACTIVE, reason=f"interaction:{interaction_type}", **common)


def decode_frame(frame: Any) -> InboundEvent:
    """Classify one Socket Mode frame.

    Pure and total: unknown envelope types, malformed payloads and non-mapping
    frames all decode to ``Unrecognized`` instead of raising. An
    acknowledgment handle is attached whenever the frame has an envelope id.
    """

    frame = _as_dict(frame)
    envelope_id = _as_str(frame.get("envelope_id"))
    common = {
        "envelope_id": envelope_id,
        "ack": AcknowledgmentHandle(envelope_id) if envelope_id else None,
        "raw": frame,
    }

    envelope_type = frame.get("type")
    payload = frame.get("payload")
    if not isinstance(payload, Mapping):
        return Unrecognized(envelope_type=_as_str(envelope_type), reason="payload:missing", **common)

    if envelope_type == EVENTS_API:
        return _decode_events_api(common, payload, frame.get("retry_attempt"))
    if envelope_type == INTERACTIVE:
        return _decode_interactive(common, payload)

    return Unrecognized(envelope_type=_as_str(envelope_type), reason="envelope", **common)
