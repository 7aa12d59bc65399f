"""Tests for event routing and the approval workflow scenarios."""

import json
from pathlib import Path
import sys

import pytest
from slack_sdk.errors import SlackRequestError
from structlog.testing import capture_logs

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slack_approval_bot.ack import AckStatus, Delivery  # noqa: E402
from slack_approval_bot.errors import ProtocolSurprise  # noqa: E402
from slack_approval_bot.events import decode_frame  # noqa: E402
from slack_approval_bot.messages import APPROVE_ACTION_ID, REJECT_ACTION_ID  # noqa: E402
from slack_approval_bot.modal import TASK_FIELD, TASK_FORM_CALLBACK_ID  # noqa: E402
from slack_approval_bot.registry import ApprovalRegistry, ApprovalState  # noqa: E402
from slack_approval_bot.router import EventRouter  # noqa: E402
from slack_approval_bot.slack_client import SlackClient  # noqa: E402

BOT_USER = "UBOT"


class DummySlackWebClient:
    def __init__(self):
        self.post_calls = []
        self.update_calls = []
        self.view_calls = []

    @property
    def calls(self):
        return self.post_calls + self.update_calls + self.view_calls

    def chat_postMessage(self, **kwargs):
        self.post_calls.append(kwargs)
        return {"ok": True, "channel": kwargs["channel"], "ts": f"1700000000.{len(self.post_calls):06d}"}

    def chat_update(self, **kwargs):
        self.update_calls.append(kwargs)
        return {"ok": True}

    def views_open(self, **kwargs):
        self.view_calls.append(kwargs)
        return {"ok": True}


@pytest.fixture
def web_client():
    return DummySlackWebClient()


@pytest.fixture
def registry():
    return ApprovalRegistry()


@pytest.fixture
def router(registry, web_client):
    return EventRouter(
        registry=registry,
        gateway=SlackClient(client=web_client),
        self_user_id=BOT_USER,
        self_bot_id="BBOT",
        approval_channel="CAPPROVALS",
    )


def _deliver(router, frame, status=AckStatus.ACKED):
    router.dispatch(Delivery(event=decode_frame(frame), ack_status=status))


def _message(user, text, **extra):
    event = {"type": "message", "channel": "C1", "user": user, "text": text, "ts": "1.0"}
    event.update(extra)
    return {"type": "events_api", "envelope_id": "env", "payload": {"type": "event_callback", "event": event}}


def _click(action_id, request_id, user="UAPPROVER"):
    return {
        "type": "interactive",
        "envelope_id": "env",
        "payload": {
            "type": "block_actions",
            "user": {"id": user},
            "container": {"channel_id": "CAPPROVALS", "message_ts": "1700000000.000001"},
            "actions": [{"action_id": action_id, "value": json.dumps({"request_id": request_id})}],
        },
    }


def _submission(text, user="UREQ"):
    return {
        "type": "interactive",
        "envelope_id": "env",
        "payload": {
            "type": "view_submission",
            "user": {"id": user},
            "view": {
                "id": "V1",
                "callback_id": TASK_FORM_CALLBACK_ID,
                "state": {"values": {TASK_FIELD: {"input": {"type": "plain_text_input", "value": text}}}},
            },
        },
    }


@pytest.mark.parametrize("text", ["hello", "HELLO world", "", "Deploy v2", "hello hello"])
def test_self_messages_never_produce_outbound_calls(router, web_client, text):
    _deliver(router, _message(BOT_USER, text))
    _deliver(router, _message("UOTHER", text, bot_id="BBOT"))

    assert web_client.calls == []


def test_greeting_reply_for_other_users(router, web_client):
    _deliver(router, _message("U1", "Hello everyone"))

    (call,) = web_client.post_calls
    assert call["channel"] == "C1"
    assert "<@U1>" in call["text"]


def test_message_without_keyword_is_ignored(router, web_client):
    _deliver(router, _message("U1", "good morning"))

    assert web_client.calls == []


def test_shortcut_opens_task_form(router, web_client):
    frame = {
        "type": "interactive",
        "envelope_id": "env",
        "payload": {"type": "shortcut", "callback_id": "socket-mode-shortcut", "trigger_id": "T-1", "user": {"id": "U1"}},
    }

    _deliver(router, frame)

    (call,) = web_client.view_calls
    assert call["trigger_id"] == "T-1"
    assert call["view"]["callback_id"] == TASK_FORM_CALLBACK_ID


def test_unknown_shortcut_is_dropped(router, web_client):
    frame = {
        "type": "interactive",
        "envelope_id": "env",
        "payload": {"type": "shortcut", "callback_id": "other", "trigger_id": "T-1"},
    }

    with capture_logs() as logs:
        _deliver(router, frame)

    assert web_client.calls == []
    assert any(entry["event"] == "event_skipped" for entry in logs)


def test_form_submission_posts_approval_request(router, registry, web_client):
    _deliver(router, _submission("Deploy v2"))

    (call,) = web_client.post_calls
    assert call["channel"] == "CAPPROVALS"
    button_value = json.loads(call["blocks"][-1]["elements"][0]["value"])
    request = registry.get(button_value["request_id"])
    assert request.state is ApprovalState.PENDING
    assert request.text == "Deploy v2"
    assert request.requested_by == "UREQ"
    assert request.message.ts == "1700000000.000001"


def test_form_submission_without_channel_goes_to_user(registry, web_client):
    router = EventRouter(registry=registry, gateway=SlackClient(client=web_client), self_user_id=BOT_USER)

    _deliver(router, _submission("Deploy v2", user="UREQ"))

    assert web_client.post_calls[0]["channel"] == "UREQ"


def test_blank_form_submission_is_dropped(router, registry, web_client):
    _deliver(router, _submission("   "))

    assert web_client.calls == []
    assert len(registry) == 0


def test_approve_scenario(router, registry, web_client):
    request_id = router.request_approval("CAPPROVALS", "Deploy v2")
    assert registry.pending_count() == 1

    _deliver(router, _click(APPROVE_ACTION_ID, request_id))

    request = registry.get(request_id)
    assert request.state is ApprovalState.APPROVED
    assert request.decided_by == "UAPPROVER"
    (update,) = web_client.update_calls
    assert update["channel"] == "CAPPROVALS"
    assert update["ts"] == request.message.ts
    assert "Approved" in update["text"]
    assert all(block["type"] != "actions" for block in update["blocks"])


def test_approve_then_reject_keeps_first_decision(router, registry, web_client):
    request_id = router.request_approval("CAPPROVALS", "Deploy v2")

    _deliver(router, _click(APPROVE_ACTION_ID, request_id))
    with capture_logs() as logs:
        _deliver(router, _click(REJECT_ACTION_ID, request_id, user="USECOND"))

    assert registry.get(request_id).state is ApprovalState.APPROVED
    assert len(web_client.update_calls) == 1
    assert any(entry["event"] == "decision_already_recorded" for entry in logs)


def test_reject_scenario(router, registry, web_client):
    request_id = router.request_approval("CAPPROVALS", "Drop table")

    _deliver(router, _click(REJECT_ACTION_ID, request_id))

    assert registry.get(request_id).state is ApprovalState.REJECTED
    assert "Rejected" in web_client.update_calls[0]["text"]


def test_click_on_unknown_request_is_noop(router, registry, web_client):
    _deliver(router, _click(APPROVE_ACTION_ID, "does-not-exist"))

    assert len(registry) == 0
    assert web_client.calls == []


def test_click_with_garbage_value_is_noop(router, web_client):
    frame = _click(APPROVE_ACTION_ID, "x")
    frame["payload"]["actions"][0]["value"] = "not-json"

    _deliver(router, frame)

    assert web_client.calls == []


def test_failed_post_discards_request(registry, web_client):
    def failing_post(**kwargs):
        raise SlackRequestError("connection reset")

    web_client.chat_postMessage = failing_post
    router = EventRouter(registry=registry, gateway=SlackClient(client=web_client), self_user_id=BOT_USER)

    with capture_logs() as logs:
        request_id = router.request_approval("C1", "Deploy v2")

    assert request_id is None
    assert len(registry) == 0
    assert any(entry["event"] == "outbound_failed" and entry["kind"] == "transport" for entry in logs)


def test_failed_update_keeps_resolution(router, registry, web_client):
    request_id = router.request_approval("CAPPROVALS", "Deploy v2")

    def failing_update(**kwargs):
        raise SlackRequestError("connection reset")

    web_client.chat_update = failing_update

    _deliver(router, _click(APPROVE_ACTION_ID, request_id))

    assert registry.get(request_id).state is ApprovalState.APPROVED


def test_unacknowledged_event_still_routed(router, registry, web_client):
    request_id = router.request_approval("CAPPROVALS", "Deploy v2")

    with capture_logs() as logs:
        _deliver(router, _click(APPROVE_ACTION_ID, request_id), status=AckStatus.FAILED)

    assert registry.get(request_id).state is ApprovalState.APPROVED
    assert any(entry["event"] == "dispatching_unacknowledged_event" for entry in logs)


def test_unrecognized_event_is_dropped(router, web_client):
    _deliver(router, {"type": "slash_commands", "envelope_id": "env", "payload": {"command": "/x"}})

    assert web_client.calls == []


def test_route_for_raises_protocol_surprise(router):
    event = decode_frame({"type": "something_new", "envelope_id": "env", "payload": {}})

    with pytest.raises(ProtocolSurprise):
        router.route_for(event)


def test_handler_exceptions_do_not_escape(router, web_client):
    def boom(**kwargs):
        raise RuntimeError("unexpected")

    web_client.views_open = boom
    frame = {
        "type": "interactive",
        "envelope_id": "env",
        "payload": {"type": "shortcut", "callback_id": "socket-mode-shortcut", "trigger_id": "T-1"},
    }

    with capture_logs() as logs:
        _deliver(router, frame)

    assert any(entry["event"] == "handler_failed" for entry in logs)


def test_router_requires_identity(registry, web_client):
    with pytest.raises(ValueError):
        EventRouter(registry=registry, gateway=SlackClient(client=web_client), self_user_id="")


def test_click_before_post_returns_updates_clicked_message(router, registry, web_client):
    posted = web_client.chat_postMessage

    def post_then_click(**kwargs):
        response = posted(**kwargs)
        button_value = json.loads(kwargs["blocks"][-1]["elements"][0]["value"])
        _deliver(router, _click(APPROVE_ACTION_ID, button_value["request_id"]))
        return response

    web_client.chat_postMessage = post_then_click

    request_id = router.request_approval("CAPPROVALS", "Deploy v2")

    assert registry.get(request_id).state is ApprovalState.APPROVED
    (update,) = web_client.update_calls
    assert update["channel"] == "CAPPROVALS"
    assert update["ts"] == "1700000000.000001"
    assert "Approved" in update["text"]


def test_redelivered_greeting_is_not_repeated(router, web_client):
    frame = _message("U1", "hello again")
    frame["retry_attempt"] = 1

    _deliver(router, frame)

    assert web_client.calls == []
