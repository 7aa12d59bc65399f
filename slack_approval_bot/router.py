"""Route acknowledged events to the approval workflow handlers."""

from __future__ import annotations

from typing import Callable, Dict

import structlog

from .ack import Delivery
from .actions import parse_action_context
from .config import DEFAULT_SHORTCUT_CALLBACK_ID
from .errors import OutboundError, ProtocolSurprise
from .events import (
    BLOCK_ACTIONS,
    VIEW_SUBMISSION,
    ButtonClicked,
    EventKind,
    FormSubmitted,
    InboundEvent,
    MessagePosted,
    RouteKey,
    ShortcutInvoked,
)
from .messages import (
    APPROVE_ACTION_ID,
    REJECT_ACTION_ID,
    build_approval_message,
    build_greeting_message,
    build_resolution_update,
)
from .modal import TASK_FIELD, TASK_FORM_CALLBACK_ID, build_form
from .registry import ApprovalRegistry, ApprovalState, MessageRef
from .slack_client import SlackClient
from .submissions import parse_form_submission

Handler = Callable[[InboundEvent], None]

_BUTTON_OUTCOMES = {
    APPROVE_ACTION_ID: ApprovalState.APPROVED,
    REJECT_ACTION_ID: ApprovalState.REJECTED,
}


def _log_outbound_failure(log, exc: OutboundError, **context) -> None:
    log.error(
        "outbound_failed",
        operation=exc.operation,
        kind=exc.kind.value,
        error=exc.error or str(exc.cause or exc),
        **context,
    )


class EventRouter:
    """Dispatch table over ``(kind, sub_kind, callback_id)``.

    Every branch is total: unmatched keys are dropped with a debug trace and
    no handler error escapes ``dispatch``.
    """

    def __init__(
        self,
        *,
        registry: ApprovalRegistry,
        gateway: SlackClient,
        self_user_id: str,
        self_bot_id: str | None = None,
        approval_channel: str | None = None,
        greeting_keyword: str = "hello",
        shortcut_callback_id: str = DEFAULT_SHORTCUT_CALLBACK_ID,
    ) -> None:
        if not self_user_id:
            raise ValueError("The bot's own user id is required to suppress self-messages.")

        self._registry = registry
        self._gateway = gateway
        self._self_user_id = self_user_id
        self._self_bot_id = self_bot_id
        self._approval_channel = approval_channel
        self._greeting_keyword = greeting_keyword.casefold()

        self._routes: Dict[RouteKey, Handler] = {
            (EventKind.MESSAGE_POSTED, None, None): self._handle_message,
            (EventKind.SHORTCUT_INVOKED, "shortcut", shortcut_callback_id): self._handle_shortcut,
            (EventKind.SHORTCUT_INVOKED, "message_action", shortcut_callback_id): self._handle_shortcut,
            (EventKind.FORM_SUBMITTED, VIEW_SUBMISSION, TASK_FORM_CALLBACK_ID): self._handle_task_form,
        }
        for action_id in _BUTTON_OUTCOMES:
            self._routes[(EventKind.BUTTON_CLICKED, BLOCK_ACTIONS, action_id)] = self._handle_decision

    def route_for(self, event: InboundEvent) -> Handler:
        kind, sub_kind, callback_id = event.route_key
        for key in ((kind, sub_kind, callback_id), (kind, sub_kind, None), (kind, None, None)):
            handler = self._routes.get(key)
            if handler is not None:
                return handler
        raise ProtocolSurprise(f"No route for {kind.value}/{sub_kind}/{callback_id}")

    def dispatch(self, delivery: Delivery) -> None:
        event = delivery.event
        log = structlog.get_logger().bind(event_kind=event.kind.value, envelope_id=event.envelope_id)

        if delivery.ack_failed:
            log.warning("dispatching_unacknowledged_event")

        try:
            handler = self.route_for(event)
        except ProtocolSurprise as exc:
            log.debug("event_skipped", reason=str(exc), detail=getattr(event, "reason", None))
            return

        try:
            handler(event)
        except Exception:
            log.exception("handler_failed")

    def request_approval(self, channel: str, text: str, *, requested_by: str | None = None) -> str | None:
        """Create a request, post its message, and return the request id.

        The record is discarded when the post fails, so only requests with a
        visible message stay in the registry.
        """

        request_id = self._registry.create(text, channel, requested_by=requested_by)
        log = structlog.get_logger().bind(request_id=request_id, channel=channel)
        payload = build_approval_message(text, request_id)

        try:
            ref = self._gateway.post_message(channel=channel, text=payload["text"], blocks=payload["blocks"])
        except OutboundError as exc:
            self._registry.discard(request_id)
            _log_outbound_failure(log, exc)
            return None

        self._registry.attach_message(request_id, ref)
        log.info("approval_posted", message_ts=ref.ts, requested_by=requested_by)
        return request_id

    def _handle_message(self, event: MessagePosted) -> None:
        log = structlog.get_logger()
        if event.user == self._self_user_id or (self._self_bot_id and event.bot_id == self._self_bot_id):
            log.debug("self_message_ignored", channel=event.channel)
            return

        if not event.user or not event.channel:
            log.debug("message_without_sender", subtype=event.subtype)
            return

        if not self._greeting_keyword or self._greeting_keyword not in event.text.casefold():
            return

        if event.retry_attempt:
            log.debug("greeting_retry_skipped", retry_attempt=event.retry_attempt)
            return

        payload = build_greeting_message(event.user)
        try:
            self._gateway.post_message(channel=event.channel, text=payload["text"], blocks=payload["blocks"])
        except OutboundError as exc:
            _log_outbound_failure(log, exc, channel=event.channel)
            return
        log.info("greeting_sent", channel=event.channel, user_id=event.user)

    def _handle_shortcut(self, event: ShortcutInvoked) -> None:
        log = structlog.get_logger().bind(callback_id=event.callback_id, user_id=event.user_id)
        if not event.trigger_id:
            log.warning("shortcut_missing_trigger")
            return

        try:
            self._gateway.open_view(trigger_id=event.trigger_id, view=build_form(TASK_FORM_CALLBACK_ID))
        except OutboundError as exc:
            _log_outbound_failure(log, exc)
            return
        log.info("form_opened", schema=TASK_FORM_CALLBACK_ID)

    def _handle_task_form(self, event: FormSubmitted) -> None:
        log = structlog.get_logger().bind(callback_id=event.callback_id, user_id=event.user_id)
        try:
            submission = parse_form_submission(TASK_FORM_CALLBACK_ID, event.values)
        except ValueError:
            log.warning("invalid_form_submission")
            return

        log.debug("form_submitted", values=dict(submission.values))
        text = submission.get(TASK_FIELD)
        if not text:
            log.info("empty_task_ignored")
            return

        channel = self._approval_channel or event.user_id
        if not channel:
            log.warning("approval_channel_unknown")
            return

        self.request_approval(channel, text, requested_by=event.user_id)

    def _handle_decision(self, event: ButtonClicked) -> None:
        log = structlog.get_logger().bind(action_id=event.action_id, user_id=event.user_id)
        outcome = _BUTTON_OUTCOMES[event.action_id]

        try:
            context = parse_action_context(event.value)
        except ValueError:
            log.warning("invalid_action_payload")
            return

        log = log.bind(request_id=context.request_id)
        result = self._registry.try_resolve(context.request_id, outcome, decided_by=event.user_id)
        if not result.applied:
            if result.previous_state is None:
                log.info("request_missing")
            else:
                log.info("decision_already_recorded", state=result.previous_state.value)
            return

        log.info("request_resolved", state=outcome.value)

        request = self._registry.get(context.request_id)
        ref = request.message if request is not None else None
        if ref is None and event.channel_id and event.message_ts:
            # clicked before the post returned; the click carries the message location
            ref = MessageRef(channel=event.channel_id, ts=event.message_ts)
        if request is None or ref is None:
            log.warning("message_reference_missing")
            return

        payload = build_resolution_update(request)
        try:
            self._gateway.update_message(ref=ref, text=payload["text"], blocks=payload["blocks"])
        except OutboundError as exc:
            _log_outbound_failure(log, exc)
