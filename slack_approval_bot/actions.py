"""Utilities for handling Slack button payloads."""

from __future__ import annotations

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class ActionContext:
    """Parsed context describing an approval button click."""

    request_id: str


def parse_action_context(raw_value: str) -> ActionContext:
    """Parse the button value into a structured context."""

    try:
        payload = json.loads(raw_value)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ValueError("Invalid action payload.") from exc

    if not isinstance(payload, dict):
        raise ValueError("Invalid action payload.")

    request_id = payload.get("request_id")
    if not isinstance(request_id, str) or not request_id:
        raise ValueError("Invalid action payload.")

    return ActionContext(request_id=request_id)
