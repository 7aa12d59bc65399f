"""Block Kit message builders for approval requests."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from .registry import ApprovalRequest, ApprovalState

APPROVE_ACTION_ID = "approval_approve"
REJECT_ACTION_ID = "approval_reject"
DECISION_BLOCK_ID = "approval_decision_buttons"

_STATE_EMOJI = {
    ApprovalState.PENDING: ":hourglass_flowing_sand:",
    ApprovalState.APPROVED: ":white_check_mark:",
    ApprovalState.REJECTED: ":no_entry_sign:",
    ApprovalState.EXPIRED: ":alarm_clock:",
}


def state_label(state: ApprovalState) -> str:
    return state.value.capitalize()


def _request_section(text: str) -> Dict[str, Any]:
    return {
        "type": "section",
        "text": {"type": "mrkdwn", "text": text},
    }


def _request_context(request_id: str) -> Dict[str, Any]:
    return {
        "type": "context",
        "elements": [{"type": "mrkdwn", "text": f"Request ID: `{request_id}`"}],
    }


def _decision_buttons(request_id: str) -> Dict[str, Any]:
    payload = json.dumps({"request_id": request_id}, separators=(",", ":"))
    return {
        "type": "actions",
        "block_id": DECISION_BLOCK_ID,
        "elements": [
            {
                "type": "button",
                "text": {"type": "plain_text", "text": "Approve", "emoji": True},
                "style": "primary",
                "action_id": APPROVE_ACTION_ID,
                "value": payload,
            },
            {
                "type": "button",
                "text": {"type": "plain_text", "text": "Reject", "emoji": True},
                "style": "danger",
                "action_id": REJECT_ACTION_ID,
                "value": payload,
                "confirm": {
                    "title": {"type": "plain_text", "text": "Reject request"},
                    "text": {
                        "type": "mrkdwn",
                        "text": "Are you sure you want to reject this request?",
                    },
                    "confirm": {"type": "plain_text", "text": "Reject"},
                    "deny": {"type": "plain_text", "text": "Cancel"},
                },
            },
        ],
    }


def build_approval_message(text: str, request_id: str) -> Dict[str, Any]:
    """Build the message asking for a decision on *text*."""

    blocks: List[Dict[str, Any]] = [
        _request_section(text),
        _request_context(request_id),
        _decision_buttons(request_id),
    ]
    return {
        "text": f"Approval requested: {text}",
        "blocks": blocks,
    }


def build_resolution_update(request: ApprovalRequest) -> Dict[str, Any]:
    """Return the replacement message once *request* has left Pending."""

    label = state_label(request.state)
    emoji = _STATE_EMOJI.get(request.state, ":information_source:")
    decision_text = f"{emoji} {label}"
    if request.decided_by:
        decision_text += f" by <@{request.decided_by}>"

    blocks: List[Dict[str, Any]] = [
        _request_section(request.text),
        _request_context(request.request_id),
        {
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": decision_text}],
        },
    ]
    return {
        "text": f"{label}: {request.text}",
        "blocks": blocks,
    }


def build_greeting_message(user_id: str) -> Dict[str, Any]:
    text = f":wave: Hello <@{user_id}>!"
    return {"text": text, "blocks": [_request_section(text)]}
