"""Tests for approval message and form builders."""

from datetime import UTC, datetime
import json
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slack_approval_bot.messages import (  # noqa: E402
    APPROVE_ACTION_ID,
    REJECT_ACTION_ID,
    build_approval_message,
    build_greeting_message,
    build_resolution_update,
)
from slack_approval_bot.modal import (  # noqa: E402
    MAX_TITLE_LENGTH,
    TASK_FIELD,
    TASK_FORM_CALLBACK_ID,
    build_form,
)
from slack_approval_bot.registry import ApprovalRequest, ApprovalState  # noqa: E402


def _request(state, decided_by=None):
    return ApprovalRequest(
        request_id="req-1",
        channel="C1",
        text="Deploy v2",
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
        state=state,
        decided_by=decided_by,
    )


def test_build_approval_message_contains_two_buttons():
    message = build_approval_message("Deploy v2", "req-1")

    assert "Deploy v2" in message["text"]
    assert message["blocks"][0]["text"]["text"] == "Deploy v2"

    actions_block = message["blocks"][-1]
    assert actions_block["type"] == "actions"
    approve_button, reject_button = actions_block["elements"]
    assert approve_button["action_id"] == APPROVE_ACTION_ID
    assert reject_button["action_id"] == REJECT_ACTION_ID
    assert json.loads(approve_button["value"]) == {"request_id": "req-1"}
    assert json.loads(reject_button["value"]) == {"request_id": "req-1"}
    assert "confirm" in reject_button


def test_build_approval_message_is_deterministic():
    assert build_approval_message("x", "id") == build_approval_message("x", "id")


@pytest.mark.parametrize(
    "state,label",
    [
        (ApprovalState.APPROVED, "Approved"),
        (ApprovalState.REJECTED, "Rejected"),
        (ApprovalState.EXPIRED, "Expired"),
    ],
)
def test_build_resolution_update_drops_buttons(state, label):
    updated = build_resolution_update(_request(state, decided_by="U7"))

    blocks = updated["blocks"]
    assert all(block["type"] != "actions" for block in blocks)
    context_text = blocks[-1]["elements"][0]["text"]
    assert label in context_text
    assert "<@U7>" in context_text
    assert updated["text"].startswith(label)


def test_build_resolution_update_without_decider():
    updated = build_resolution_update(_request(ApprovalState.EXPIRED))

    assert "<@" not in updated["blocks"][-1]["elements"][0]["text"]


def test_build_greeting_mentions_user():
    assert "<@U5>" in build_greeting_message("U5")["text"]


def test_build_form_for_task_schema():
    view = build_form(TASK_FORM_CALLBACK_ID)

    assert view["type"] == "modal"
    assert view["callback_id"] == TASK_FORM_CALLBACK_ID
    assert len(view["title"]["text"]) <= MAX_TITLE_LENGTH
    (block,) = view["blocks"]
    assert block["type"] == "input"
    assert block["block_id"] == TASK_FIELD
    assert block["element"]["multiline"] is True
    assert block["optional"] is False


def test_build_form_unknown_schema():
    with pytest.raises(KeyError):
        build_form("nope")
